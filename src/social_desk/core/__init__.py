# src/social_desk/core/__init__.py
"""Core configuration for the Social Desk service."""
