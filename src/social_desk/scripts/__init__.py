# src/social_desk/scripts/__init__.py
