"""
Standardized HTTP response utilities for Lambda functions.

Every endpoint answers with either a success envelope
(``{"success": true, ...payload}``) or an error envelope
(``{"error": "..."}``), serialized with the same JSON encoder.
"""

import json
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Union


class HTTPStatus(Enum):
    """Status codes the rental listings API answers with."""

    OK = 200
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500


# The web client is served from another origin
cors_headers = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "Content-Type,Authorization",
    "Access-Control-Allow-Methods": "GET,POST,PUT,DELETE,OPTIONS",
}


class APIJSONEncoder(json.JSONEncoder):
    """
    JSON encoder for API responses.

    Handles Decimal values read back from DynamoDB, datetimes and pydantic
    models (dumped with their camelCase aliases).
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Decimal):
            return int(obj) if obj == obj.to_integral_value() else float(obj)
        if isinstance(obj, datetime):
            return obj.isoformat()
        if hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json", by_alias=True)
        return super().default(obj)


def create_response(
    status_code: Union[int, HTTPStatus],
    body: Any = None,
    headers: Optional[Dict[str, str]] = None,
    cors_enabled: bool = True,
) -> Dict[str, Any]:
    """Build an API Gateway v2 proxy response with a JSON body and CORS headers."""
    if isinstance(status_code, HTTPStatus):
        status_code = status_code.value

    response_headers = {"Content-Type": "application/json"}

    if cors_enabled:
        response_headers.update(cors_headers)

    if headers:
        response_headers.update(headers)

    response = {
        "statusCode": status_code,
        "headers": response_headers,
    }

    if body is not None:
        response["body"] = json.dumps(body, cls=APIJSONEncoder)

    return response


def success_response(
    data: Optional[Dict[str, Any]] = None,
    message: Optional[str] = None,
    status_code: Union[int, HTTPStatus] = HTTPStatus.OK,
    include_success: bool = True,
) -> Dict[str, Any]:
    """
    Create a success response.

    ``data`` keys are merged into the top level of the body next to
    ``success`` and the optional ``message``. Read-only endpoints such as
    ``GET /user`` pass ``include_success=False`` to return the bare payload.
    """
    body: Dict[str, Any] = {}

    if include_success:
        body["success"] = True

    if message:
        body["message"] = message

    if data:
        body.update(data)

    return create_response(status_code, body)


def error_response(
    message: str,
    status_code: Union[int, HTTPStatus] = HTTPStatus.INTERNAL_SERVER_ERROR,
    error_code: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """
    Build the error envelope ``{"error": message}``.

    ``error_code`` (e.g. ``VALIDATION_ERROR``) and ``details`` are only added
    when given, so clients can always read the message from ``error``.
    """
    body = {"error": message}

    if error_code:
        body["error_code"] = error_code

    if details:
        body["details"] = details

    return create_response(status_code, body)


def validation_error_response(
    message: str = "Validation failed", errors: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """Create a 400 response for malformed input."""
    return error_response(
        message=message,
        status_code=HTTPStatus.BAD_REQUEST,
        error_code="VALIDATION_ERROR",
        details=errors,
    )


def unauthorized_response(message: str = "Unauthorized") -> Dict[str, Any]:
    """Create a 401 response."""
    return error_response(
        message=message, status_code=HTTPStatus.UNAUTHORIZED, error_code="UNAUTHORIZED"
    )
