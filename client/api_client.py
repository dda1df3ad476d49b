"""
HTTP client for the rental listings API.

The access token belongs to the client instance; unauthenticated calls send
the public anon key as the bearer token instead. Request bodies are checked
with the same models the Lambda handlers use before anything is sent.
"""

import logging
from typing import Any, Dict, Optional, Union

import requests

from models.property import PropertyCreate, PropertyFilters, PropertyForm
from models.users import ProfileUpdate, SignupForm

logger = logging.getLogger(__name__)


class APIRequestError(Exception):
    """A request failed; ``status_code`` is None when the server was unreachable."""

    def __init__(self, status_code: Optional[int], message: str):
        super().__init__(message)
        self.status_code = status_code
        self.message = message


class RentalAPIClient:
    def __init__(
        self,
        base_url: str,
        anon_key: str,
        access_token: Optional[str] = None,
        session: Optional[requests.Session] = None,
        timeout: int = 20,
    ):
        self.base_url = base_url.rstrip("/")
        self.anon_key = anon_key
        self.access_token = access_token
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(
        self,
        method: str,
        path: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        files: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {self.access_token or self.anon_key}",
        }
        try:
            response = self.session.request(
                method,
                f"{self.base_url}{path}",
                headers=headers,
                json=json,
                params=params,
                files=files,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            # Never include headers here: they carry the token
            logger.error("API request to %s failed: %s", path, type(e).__name__)
            raise APIRequestError(None, "Unable to reach the server") from e

        try:
            data = response.json()
        except ValueError:
            data = {}

        if not response.ok:
            message = data.get("error") if isinstance(data, dict) else None
            logger.warning("API error on %s: %s", path, response.status_code)
            raise APIRequestError(response.status_code, message or "API request failed")

        return data

    # Auth

    def signup(self, form: SignupForm) -> Dict[str, Any]:
        request = form.to_request()
        return self._request("POST", "/signup", json=request.model_dump(by_alias=True))

    def signin(self, username: str, password: str) -> Dict[str, Any]:
        data = self._request(
            "POST", "/signin", json={"username": username, "password": password}
        )
        if data.get("accessToken"):
            self.access_token = data["accessToken"]
        return data

    def signout(self) -> Dict[str, Any]:
        try:
            return self._request("POST", "/signout")
        finally:
            self.access_token = None

    # Users

    def get_user(self) -> Dict[str, Any]:
        return self._request("GET", "/user")

    def update_profile(self, **changes: Optional[str]) -> Dict[str, Any]:
        update = ProfileUpdate.model_validate(changes)
        return self._request("PUT", "/user/profile", json=update.changes())

    def upload_image(
        self, filename: str, content: bytes, content_type: str = "application/octet-stream"
    ) -> Dict[str, Any]:
        return self._request(
            "POST", "/upload-image", files={"file": (filename, content, content_type)}
        )

    def update_profile_picture(self, image_url: str) -> Dict[str, Any]:
        return self._request(
            "PUT", "/user/profile-picture", json={"imageUrl": image_url}
        )

    # Properties

    def create_property(
        self, listing: Union[PropertyForm, PropertyCreate]
    ) -> Dict[str, Any]:
        if isinstance(listing, PropertyForm):
            listing = listing.to_request()
        return self._request(
            "POST", "/property", json=listing.model_dump(mode="json", by_alias=True)
        )

    def get_properties(self, filters: Optional[PropertyFilters] = None) -> Dict[str, Any]:
        params = filters.to_query() if filters else None
        return self._request("GET", "/properties", params=params or None)

    def get_user_properties(self) -> Dict[str, Any]:
        return self._request("GET", "/user-properties")
