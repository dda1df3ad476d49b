"""DynamoDB item shape and key naming for the key-value table."""

from typing import Any

from pydantic import BaseModel

USER_PREFIX = "user:"
PROPERTY_PREFIX = "property:"
USER_PROPERTIES_PREFIX = "properties:user:"
ALL_PROPERTIES_KEY = "properties:all"


class KeyValueItem(BaseModel):
    """One key-value entry. The whole JSON value lives in ``value``."""

    PK: str  # user:{userId} | property:{id} | properties:all | properties:user:{userId}
    value: Any = None


def user_key(user_id: str) -> str:
    return f"{USER_PREFIX}{user_id}"


def property_key(property_id: str) -> str:
    return f"{PROPERTY_PREFIX}{property_id}"


def user_properties_key(user_id: str) -> str:
    return f"{USER_PROPERTIES_PREFIX}{user_id}"
