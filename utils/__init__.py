"""
Utils package for shared utilities and cross-cutting concerns.

This package contains decorators, logging utilities, response formatters
and the error taxonomy used across the application.
"""

from .decorators import (
    extract_bearer_token,
    get_header,
    lambda_handler,
    parse_multipart_body,
    require_auth,
    validate_json_body,
)
from .exceptions import (
    AuthError,
    IdentityError,
    InternalError,
    NotFoundError,
    RentalAPIError,
    StorageError,
    ValidationError,
)
from .logging import log_error, log_lambda_event, log_lambda_response, setup_logger
from .responses import (
    HTTPStatus,
    error_response,
    success_response,
    unauthorized_response,
    validation_error_response,
)

__all__ = [
    # Decorators
    "lambda_handler",
    "require_auth",
    "validate_json_body",
    "parse_multipart_body",
    "extract_bearer_token",
    "get_header",
    # Errors
    "RentalAPIError",
    "ValidationError",
    "AuthError",
    "NotFoundError",
    "IdentityError",
    "StorageError",
    "InternalError",
    # Logging
    "setup_logger",
    "log_lambda_event",
    "log_lambda_response",
    "log_error",
    # Responses
    "HTTPStatus",
    "success_response",
    "error_response",
    "validation_error_response",
    "unauthorized_response",
]
