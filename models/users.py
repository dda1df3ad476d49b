"""User records and the request bodies that create or change them."""

from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

import pydantic
from pydantic import Field
from pydantic_core import PydanticCustomError

from models.base import RecordModel, RequestModel
from models.validation import (
    USER_TYPES,
    check_choice,
    check_password,
    check_profile_phone,
    check_signup_nid,
    check_signup_phone,
    check_username,
    is_blank,
    require_fields,
)


class User(RecordModel):
    """Profile stored under ``user:{userId}``."""

    user_id: str
    username: str
    location: str
    phone_number: str
    nid_number: str
    user_type: Literal["renter", "owner"]
    profile_picture: Optional[str] = None
    joined_date: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SignupRequest(RequestModel):
    """Body of ``POST /signup``. Values are stored exactly as submitted."""

    username: str
    location: str
    phone_number: str
    nid_number: str
    user_type: str
    password: str

    @pydantic.model_validator(mode="before")
    @classmethod
    def all_fields_required(cls, data: Any) -> Any:
        return require_fields(
            data,
            (
                "username",
                "location",
                "phone_number",
                "nid_number",
                "user_type",
                "password",
            ),
            "All fields are required",
        )

    @pydantic.field_validator("username")
    @classmethod
    def username_length(cls, v: str) -> str:
        return check_username(v)

    @pydantic.field_validator("phone_number")
    @classmethod
    def phone_format(cls, v: str) -> str:
        return check_signup_phone(v)

    @pydantic.field_validator("nid_number")
    @classmethod
    def nid_length(cls, v: str) -> str:
        return check_signup_nid(v)

    @pydantic.field_validator("user_type")
    @classmethod
    def known_user_type(cls, v: str) -> str:
        return check_choice(v, USER_TYPES, "userType")

    @pydantic.field_validator("password")
    @classmethod
    def password_length(cls, v: str) -> str:
        return check_password(v)

    def to_user(self, user_id: str) -> User:
        return User(
            user_id=user_id,
            username=self.username,
            location=self.location,
            phone_number=self.phone_number,
            nid_number=self.nid_number,
            user_type=self.user_type,
        )


class SignupForm(SignupRequest):
    """Client-side signup form: the request plus a password confirmation."""

    confirm_password: str

    @pydantic.model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise PydanticCustomError("password_mismatch", "Passwords do not match")
        return self

    def to_request(self) -> SignupRequest:
        return SignupRequest.model_validate(
            self.model_dump(exclude={"confirm_password"})
        )


class SigninRequest(RequestModel):
    username: str
    password: str

    @pydantic.model_validator(mode="before")
    @classmethod
    def credentials_required(cls, data: Any) -> Any:
        return require_fields(
            data, ("username", "password"), "Username and password are required"
        )


class ProfileUpdate(RequestModel):
    """
    Body of ``PUT /user/profile``.

    Absent or empty fields keep the stored value.
    """

    location: Optional[str] = None
    phone_number: Optional[str] = None
    nid_number: Optional[str] = None
    user_type: Optional[str] = None

    @pydantic.model_validator(mode="before")
    @classmethod
    def blanks_mean_unchanged(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        return {key: None if is_blank(value) else value for key, value in data.items()}

    @pydantic.field_validator("phone_number")
    @classmethod
    def phone_format(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else check_profile_phone(v)

    @pydantic.field_validator("user_type")
    @classmethod
    def known_user_type(cls, v: Optional[str]) -> Optional[str]:
        return None if v is None else check_choice(v, USER_TYPES, "userType")

    def changes(self) -> Dict[str, Any]:
        """Provided fields only, keyed by their stored (camelCase) names."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ProfilePictureUpdate(RequestModel):
    image_url: str

    @pydantic.model_validator(mode="before")
    @classmethod
    def url_required(cls, data: Any) -> Any:
        return require_fields(data, ("image_url",), "Image URL is required")
