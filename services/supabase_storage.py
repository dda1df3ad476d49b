"""
Supabase Storage client used as the blob store for uploaded images.

Objects live in a private bucket and are shared through long-lived signed
URLs.
"""

import time
from pathlib import PurePosixPath
from typing import Callable, Dict, Optional
from urllib.parse import quote

import requests

from models.validation import MAX_UPLOAD_BYTES
from services.parameter_store import SupabaseSettings, config
from services.supabase_auth import PROVIDER_TIMEOUT, provider_message
from utils.exceptions import StorageError
from utils.logging import setup_logger

logger = setup_logger(__name__)

# One year
SIGNED_URL_TTL_SECONDS = 31_536_000


class SupabaseStorage:
    """Stores bytes under ``<userId>/<epochMillis>-<filename>`` and signs URLs for them."""

    def __init__(
        self,
        settings: Optional[SupabaseSettings] = None,
        session: Optional[requests.Session] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings or config.load_supabase_config()
        self.session = session or requests.Session()
        self.clock = clock
        self._bucket_ready = False

    @property
    def bucket(self) -> str:
        return self.settings.storage_bucket

    def _url(self, path: str) -> str:
        if not self.settings.is_configured:
            raise StorageError("Blob store is not configured")
        return f"{self.settings.url}/storage/v1{path}"

    def _headers(self, content_type: str = "application/json") -> Dict[str, str]:
        key = self.settings.service_role_key
        return {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": content_type,
        }

    def _post(self, path: str, **kwargs) -> requests.Response:
        try:
            return self.session.post(
                self._url(path), timeout=PROVIDER_TIMEOUT, **kwargs
            )
        except requests.RequestException as e:
            logger.error(f"Storage request failed: {str(e)}")
            raise StorageError("Failed to upload image") from e

    def ensure_bucket(self) -> None:
        """Create the private bucket on first use if it does not exist yet."""
        if self._bucket_ready:
            return

        try:
            response = self.session.get(
                self._url(f"/bucket/{self.bucket}"),
                headers=self._headers(),
                timeout=PROVIDER_TIMEOUT,
            )
        except requests.RequestException as e:
            raise StorageError("Failed to upload image") from e

        if response.status_code != 200:
            created = self._post(
                "/bucket",
                headers=self._headers(),
                json={
                    "id": self.bucket,
                    "name": self.bucket,
                    "public": False,
                    "file_size_limit": MAX_UPLOAD_BYTES,
                },
            )
            # 409: created concurrently by another instance
            if not created.ok and created.status_code != 409:
                raise StorageError(provider_message(created, "Failed to create bucket"))
            logger.info("Storage bucket created", extra={"bucket": self.bucket})

        self._bucket_ready = True

    def object_key(self, user_id: str, filename: str) -> str:
        millis = int(self.clock() * 1000)
        return f"{user_id}/{millis}-{PurePosixPath(filename).name}"

    def upload(
        self, user_id: str, filename: str, content: bytes, content_type: str
    ) -> Dict[str, str]:
        """
        Store the bytes and return ``{"path", "url"}``.

        Raises:
            StorageError: if the write or the URL signing fails; no URL is
                returned for an object that was not stored
        """
        self.ensure_bucket()

        path = self.object_key(user_id, filename)
        object_path = f"{quote(self.bucket)}/{quote(path)}"

        stored = self._post(
            f"/object/{object_path}",
            headers={**self._headers(content_type), "x-upsert": "false"},
            data=content,
        )
        if not stored.ok:
            logger.error(
                "Upload rejected",
                extra={
                    "status_code": stored.status_code,
                    "provider_message": provider_message(stored, ""),
                },
            )
            raise StorageError("Failed to upload image")

        signed = self._post(
            f"/object/sign/{object_path}",
            headers=self._headers(),
            json={"expiresIn": SIGNED_URL_TTL_SECONDS},
        )
        signed_path = signed.json().get("signedURL") if signed.ok else None
        if not signed_path:
            raise StorageError("Failed to create a signed URL for the image")

        logger.info("Image stored", extra={"user_id": user_id, "path": path})
        return {"path": path, "url": f"{self.settings.url}/storage/v1{signed_path}"}


storage = SupabaseStorage()
