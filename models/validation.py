"""
Validation rules shared by the request models and the Python client.

Keeping every rule here means the client-side forms and the Lambda handlers
check input the same way.
"""

import math
import re
from typing import Any, Dict, Iterable, Optional

from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

USER_TYPES = ("renter", "owner")
PROPERTY_TYPES = ("bachelor", "family")
RENT_TYPES = ("temporary", "monthly")
ALL_FILTER = "all"

USERNAME_MIN_LENGTH = 3
SIGNUP_NID_MIN_LENGTH = 10
PASSWORD_MIN_LENGTH = 6

# Advertised bounds, checked by the client forms only
TEMPORARY_RENT_DAYS_MIN = 1
TEMPORARY_RENT_DAYS_MAX = 15

SIGNUP_PHONE_PATTERN = re.compile(r"^[0-9+\-\s()]{10,15}$")
PROFILE_PHONE_PATTERN = re.compile(r"^\d{10,15}$")
# Plain decimal numbers: no underscores, nan or inf
PRICE_PATTERN = re.compile(
    r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?\s*$", re.ASCII
)

MAX_UPLOAD_BYTES = 5 * 1024 * 1024


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def require_fields(
    data: Any, fields: Iterable[str], message: str
) -> Dict[str, Any]:
    """
    Raise a single validation error when any of ``fields`` is blank.

    ``fields`` are snake_case names; the camelCase wire name is checked too.
    """
    if not isinstance(data, dict):
        raise PydanticCustomError("invalid_body", "Request body must be an object")
    for field in fields:
        value = data.get(to_camel(field), data.get(field))
        if is_blank(value):
            raise PydanticCustomError("missing_fields", message)
    return data


def check_username(value: str) -> str:
    if len(value.strip()) < USERNAME_MIN_LENGTH:
        raise PydanticCustomError(
            "username_too_short",
            "Username must be at least {min_length} characters",
            {"min_length": USERNAME_MIN_LENGTH},
        )
    return value


def check_signup_phone(value: str) -> str:
    if not SIGNUP_PHONE_PATTERN.match(value.strip()):
        raise PydanticCustomError(
            "invalid_phone", "Please enter a valid phone number"
        )
    return value


def check_profile_phone(value: str) -> str:
    digits = re.sub(r"[\s-]", "", value)
    if not PROFILE_PHONE_PATTERN.match(digits):
        raise PydanticCustomError(
            "invalid_phone", "Please enter a valid phone number"
        )
    return value


def check_signup_nid(value: str) -> str:
    if len(value.strip()) < SIGNUP_NID_MIN_LENGTH:
        raise PydanticCustomError("invalid_nid", "Please enter a valid NID number")
    return value


def check_choice(value: str, choices: Iterable[str], label: str) -> str:
    if value not in choices:
        raise PydanticCustomError(
            "invalid_choice",
            "{label} must be one of: {choices}",
            {"label": label, "choices": ", ".join(choices)},
        )
    return value


def check_password(value: str) -> str:
    if len(value) < PASSWORD_MIN_LENGTH:
        raise PydanticCustomError(
            "password_too_short",
            "Password must be at least {min_length} characters",
            {"min_length": PASSWORD_MIN_LENGTH},
        )
    return value


def check_price(value: str) -> str:
    """Client-side check that the price reads as a finite number."""
    if not PRICE_PATTERN.match(value) or not math.isfinite(float(value)):
        raise PydanticCustomError("invalid_price", "Please enter a valid price")
    return value


def check_temporary_rent_days(days: Optional[int]) -> Optional[int]:
    """Client-side bounds check for the number of temporary rent days."""
    if days is None:
        raise PydanticCustomError(
            "missing_days", "Number of days is required"
        )
    if not TEMPORARY_RENT_DAYS_MIN <= days <= TEMPORARY_RENT_DAYS_MAX:
        raise PydanticCustomError(
            "days_out_of_range",
            "Days must be between {min} and {max}",
            {"min": TEMPORARY_RENT_DAYS_MIN, "max": TEMPORARY_RENT_DAYS_MAX},
        )
    return days


def login_handle(username: str, domain: str) -> str:
    """
    Derive the synthetic login handle used as the provider-side email.

    The username is lower-cased and stripped of all whitespace.
    """
    local_part = re.sub(r"\s+", "", username.lower())
    return f"{local_part}@{domain}"
