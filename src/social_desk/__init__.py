# src/social_desk/__init__.py
"""Social Desk: media post approval workflow service."""

__version__ = "1.0.0"
