"""
Client-side session state: the current page, the signed-in user and the
property list shown on the dashboard.
"""

import logging
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pydantic

from client.api_client import APIRequestError, RentalAPIClient
from models.property import PropertyFilters, PropertyForm
from models.users import SignupForm

logger = logging.getLogger(__name__)

# (filename, content, content type)
ImageFile = Tuple[str, bytes, str]


class Page(str, Enum):
    LANDING = "landing"
    LOGIN = "login"
    SIGNUP = "signup"
    DASHBOARD = "dashboard"
    PROFILE = "profile"


PROTECTED_PAGES = {Page.DASHBOARD, Page.PROFILE}


class RentalSession:
    """
    Holds view state and dispatches user actions to the API client.

    Actions return True on success; on failure they return False and keep
    the server's message in ``last_error``.
    """

    def __init__(self, client: RentalAPIClient):
        self.client = client
        self.page = Page.LANDING
        self.current_user: Optional[Dict[str, Any]] = None
        self.properties: List[Dict[str, Any]] = []
        self.my_properties: List[Dict[str, Any]] = []
        self.last_error: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None

    def _failed(self, error: APIRequestError) -> bool:
        self.last_error = error.message
        return False

    def restore(self) -> bool:
        """Resume a session from a stored access token."""
        if not self.client.access_token:
            return False

        try:
            data = self.client.get_user()
        except APIRequestError as e:
            logger.info("Stored session is no longer valid: %s", e.message)
            try:
                self.client.signout()
            except APIRequestError as signout_error:
                logger.info("Sign-out after failed restore: %s", signout_error.message)
            return False

        self.current_user = data.get("user")
        self.navigate(Page.DASHBOARD)
        return self.is_authenticated

    def signup(self, form: SignupForm) -> bool:
        try:
            result = self.client.signup(form)
        except APIRequestError as e:
            return self._failed(e)

        if result.get("success"):
            self.page = Page.LOGIN
            return True
        return False

    def login(self, username: str, password: str) -> bool:
        try:
            data = self.client.signin(username, password)
        except APIRequestError as e:
            return self._failed(e)

        if not (data.get("success") and data.get("user")):
            return False

        self.current_user = data["user"]
        self.navigate(Page.DASHBOARD)
        return True

    def logout(self) -> bool:
        try:
            self.client.signout()
        except APIRequestError as e:
            return self._failed(e)

        self.current_user = None
        self.properties = []
        self.my_properties = []
        self.page = Page.LANDING
        return True

    def navigate(self, page: Page) -> Page:
        """Go to ``page``; protected pages redirect to login when signed out."""
        page = Page(page)
        if page in PROTECTED_PAGES and not self.is_authenticated:
            page = Page.LOGIN

        self.page = page
        if page is Page.DASHBOARD:
            self.load_properties()
        return self.page

    def load_properties(self) -> bool:
        try:
            data = self.client.get_properties()
        except APIRequestError as e:
            return self._failed(e)

        self.properties = data.get("properties") or []
        return True

    def load_my_properties(self) -> bool:
        try:
            data = self.client.get_user_properties()
        except APIRequestError as e:
            return self._failed(e)

        self.my_properties = data.get("properties") or []
        return True

    def upload_property(
        self, form: PropertyForm, images: Iterable[ImageFile] = ()
    ) -> bool:
        """
        Upload the images, then publish the listing and refresh the list.

        Images that fail to upload are left out of the listing.
        """
        image_urls = list(form.images)
        for filename, content, content_type in images:
            try:
                result = self.client.upload_image(filename, content, content_type)
            except APIRequestError as e:
                logger.warning("Image upload failed for %s: %s", filename, e.message)
                continue
            if result.get("url"):
                image_urls.append(result["url"])

        listing = form.model_copy(update={"images": image_urls})
        try:
            result = self.client.create_property(listing)
        except APIRequestError as e:
            return self._failed(e)

        if not result.get("success"):
            return False
        return self.load_properties()

    def search(
        self,
        location: Optional[str] = None,
        rent_type: Optional[str] = None,
        property_type: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Search listings; empty and ``all`` filters are not sent."""
        filters = PropertyFilters(
            location=location, rent_type=rent_type, property_type=property_type
        )
        try:
            data = self.client.get_properties(filters)
        except APIRequestError as e:
            self._failed(e)
            return []
        return data.get("properties") or []

    def update_profile(self, **changes: Optional[str]) -> bool:
        try:
            result = self.client.update_profile(**changes)
        except APIRequestError as e:
            return self._failed(e)
        except pydantic.ValidationError as e:
            # Rejected locally before anything was sent
            errors = e.errors(include_url=False, include_input=False)
            self.last_error = errors[0]["msg"] if errors else "Validation failed"
            return False

        if result.get("success") and result.get("user"):
            self.current_user = result["user"]
            return True
        return False

    def change_profile_picture(self, image: ImageFile) -> bool:
        filename, content, content_type = image
        try:
            uploaded = self.client.upload_image(filename, content, content_type)
            if not uploaded.get("url"):
                return False
            result = self.client.update_profile_picture(uploaded["url"])
        except APIRequestError as e:
            return self._failed(e)

        self.current_user = result.get("user", self.current_user)
        return True
