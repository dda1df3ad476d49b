"""
Models package for data structures and database entities.

This package contains Pydantic models for request validation, the stored
User and Property records, and the key-value item representation.
"""

from .dynamodb import KeyValueItem
from .property import Property, PropertyCreate, PropertyFilters, PropertyForm
from .users import (
    ProfilePictureUpdate,
    ProfileUpdate,
    SigninRequest,
    SignupForm,
    SignupRequest,
    User,
)

__all__ = [
    "KeyValueItem",
    "User",
    "SignupRequest",
    "SignupForm",
    "SigninRequest",
    "ProfileUpdate",
    "ProfilePictureUpdate",
    "Property",
    "PropertyCreate",
    "PropertyForm",
    "PropertyFilters",
]
