"""
Error taxonomy for the rental listings API.

Services raise these exceptions and the ``lambda_handler`` decorator turns
them into JSON error envelopes with the matching HTTP status code.
"""

from typing import Any, Dict, Optional

from .responses import HTTPStatus


class RentalAPIError(Exception):
    """Base class for errors that map onto an HTTP error response."""

    status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR
    error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[HTTPStatus] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details


class ValidationError(RentalAPIError):
    """Missing or malformed input."""

    status_code = HTTPStatus.BAD_REQUEST
    error_code = "VALIDATION_ERROR"


class AuthError(RentalAPIError):
    """Missing, invalid or expired credentials."""

    status_code = HTTPStatus.UNAUTHORIZED
    error_code = "UNAUTHORIZED"


class NotFoundError(RentalAPIError):
    """A record is absent even though the caller is authenticated."""

    status_code = HTTPStatus.NOT_FOUND
    error_code = "RESOURCE_NOT_FOUND"


class IdentityError(RentalAPIError):
    """The identity provider failed or rejected the request."""

    error_code = "IDENTITY_ERROR"


class StorageError(RentalAPIError):
    """The key-value table or the blob store failed."""

    error_code = "STORAGE_ERROR"


class InternalError(RentalAPIError):
    """Catch-all for unexpected failures."""
