"""
Handlers package for Lambda function handlers.

This package contains the API endpoint handlers for authentication,
user profiles, image uploads and property listings.
"""

from . import auth, properties, routes, uploads, users

__all__ = ["auth", "users", "uploads", "properties", "routes"]
