"""Property listings, the create request and the search filters."""

import time
from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

import pydantic
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from models.base import RecordModel, RequestModel
from models.validation import (
    ALL_FILTER,
    PROPERTY_TYPES,
    RENT_TYPES,
    check_choice,
    check_price,
    check_temporary_rent_days,
    is_blank,
    require_fields,
)


def generate_property_id(user_id: str, now_ms: Optional[int] = None) -> str:
    """``prop_<epoch millis>_<userId>``; unique unless one user creates twice in a millisecond."""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"prop_{now_ms}_{user_id}"


class Property(RecordModel):
    """Listing stored under ``property:{id}``. Never modified after creation."""

    id: str
    user_id: str
    location: str
    monthly_price_range: Optional[str] = None
    phone_number: str
    room_details: str
    property_type: Literal["bachelor", "family"]
    images: List[str] = Field(default_factory=list)
    temporary_rent: bool = False
    temporary_rent_days: Optional[int] = None
    uploaded_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class PropertyCreate(RequestModel):
    """
    Body of ``POST /property``.

    ``temporaryRentDays`` is only type checked here; its advertised 1-15
    range is enforced by ``PropertyForm`` on the client.
    """

    location: str
    monthly_price_range: Optional[str] = None
    phone_number: str
    room_details: str
    property_type: str
    images: List[str] = Field(default_factory=list)
    temporary_rent: bool = False
    temporary_rent_days: Optional[int] = None

    @pydantic.model_validator(mode="before")
    @classmethod
    def required_fields(cls, data: Any) -> Any:
        data = require_fields(
            data,
            ("location", "phone_number", "room_details", "property_type"),
            "Required fields are missing",
        )
        normalized = dict(data)
        # Falsy optional values collapse to their defaults
        for key in ("monthlyPriceRange", "monthly_price_range"):
            if key in normalized and is_blank(normalized[key]):
                normalized[key] = None
        for key in ("images", "temporaryRent", "temporary_rent"):
            if key in normalized and normalized[key] is None:
                del normalized[key]
        for key in ("temporaryRentDays", "temporary_rent_days"):
            if key in normalized and not normalized[key]:
                normalized[key] = None
        return normalized

    @pydantic.field_validator("monthly_price_range", mode="before")
    @classmethod
    def price_as_text(cls, v: Any) -> Any:
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v

    @pydantic.field_validator("property_type")
    @classmethod
    def known_property_type(cls, v: str) -> str:
        return check_choice(v, PROPERTY_TYPES, "propertyType")

    def to_property(self, user_id: str, now_ms: Optional[int] = None) -> Property:
        if now_ms is None:
            now_ms = int(time.time() * 1000)
        return Property(
            id=generate_property_id(user_id, now_ms),
            user_id=user_id,
            uploaded_at=datetime.fromtimestamp(now_ms / 1000, tz=timezone.utc),
            **self.model_dump(),
        )


class PropertyForm(PropertyCreate):
    """Client-side upload form: adds the price and rent-days checks."""

    @pydantic.model_validator(mode="after")
    def client_checks(self):
        if is_blank(self.monthly_price_range):
            raise PydanticCustomError("missing_price", "Price is required")
        check_price(self.monthly_price_range)
        if self.temporary_rent:
            check_temporary_rent_days(self.temporary_rent_days)
        return self

    def to_request(self) -> PropertyCreate:
        return PropertyCreate.model_validate(self.model_dump())


class PropertyFilters(BaseModel):
    """
    Query parameters of ``GET /properties``.

    Empty values and ``all`` mean "no filter"; unknown rent types are ignored.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    location: Optional[str] = None
    rent_type: Optional[str] = None
    property_type: Optional[str] = None

    @pydantic.field_validator("location")
    @classmethod
    def blank_location_is_none(cls, v: Optional[str]) -> Optional[str]:
        return None if is_blank(v) else v

    @pydantic.field_validator("rent_type", "property_type")
    @classmethod
    def all_is_none(cls, v: Optional[str]) -> Optional[str]:
        if is_blank(v) or v == ALL_FILTER:
            return None
        return v

    @property
    def temporary_rent(self) -> Optional[bool]:
        """Required ``temporaryRent`` value, or None when rent type is not filtered."""
        if self.rent_type not in RENT_TYPES:
            return None
        return self.rent_type == "temporary"

    def to_query(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
