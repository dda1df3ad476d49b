"""
Decorators for Lambda function handlers.

This module provides decorators that add consistent logging, error handling,
authentication and body parsing to Lambda functions.
"""

import base64
import json
import time
from email.message import Message
from functools import wraps
from typing import Any, Callable, Dict, List, Optional

import pydantic
from requests_toolbelt.multipart.decoder import (
    ImproperBodyPartContentException,
    MultipartDecoder,
    NonMultipartContentTypeException,
)

from .exceptions import InternalError, RentalAPIError
from .logging import log_error, log_lambda_event, log_lambda_response, setup_logger
from .responses import (
    HTTPStatus,
    error_response,
    unauthorized_response,
    validation_error_response,
)


def get_header(event: Dict[str, Any], name: str) -> Optional[str]:
    """Case-insensitive header lookup (HTTP API lowercases header names)."""
    headers = event.get("headers") or {}
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def extract_bearer_token(event: Dict[str, Any]) -> Optional[str]:
    """Return the token from an ``Authorization: Bearer <token>`` header."""
    authorization = get_header(event, "Authorization")
    if not authorization:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        return None

    return parts[1]


def _raw_body(event: Dict[str, Any]) -> bytes:
    body = event.get("body") or ""
    if event.get("isBase64Encoded"):
        return base64.b64decode(body)
    return body.encode("utf-8") if isinstance(body, str) else body


def _first_error_message(exc: pydantic.ValidationError) -> str:
    errors = exc.errors(
        include_url=False, include_context=False, include_input=False
    )
    if not errors:
        return "Validation failed"
    return errors[0]["msg"]


def _internal_error_response() -> Dict[str, Any]:
    error = InternalError("Internal server error")
    return error_response(error.message, error.status_code, error.error_code)


def lambda_handler(
    logger_name: Optional[str] = None,
    log_event: bool = True,
    log_response: bool = True,
    structured_logging: bool = True,
) -> Callable:
    """
    Decorator for Lambda function handlers that provides:
    - Consistent logging setup
    - Automatic event/response logging
    - Conversion of every exception into a JSON error envelope
    - Execution time tracking

    Args:
        logger_name: Logger name (defaults to function module name)
        log_event: Whether to log incoming events
        log_response: Whether to log responses
        structured_logging: Whether to use structured JSON logging

    Returns:
        Decorated function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            logger = setup_logger(
                logger_name or func.__module__, structured=structured_logging
            )

            start_time = time.time()

            if log_event:
                log_lambda_event(logger, event, context)

            try:
                response = func(event, context)

                if not isinstance(response, dict) or "statusCode" not in response:
                    logger.warning("Handler returned invalid response format")
                    response = _internal_error_response()

            except RentalAPIError as e:
                if e.status_code == HTTPStatus.INTERNAL_SERVER_ERROR:
                    log_error(logger, e, {"error_code": e.error_code})
                else:
                    logger.info(
                        "Request rejected",
                        extra={"error_code": e.error_code, "reason": e.message},
                    )
                response = error_response(
                    e.message, e.status_code, e.error_code, e.details
                )

            except pydantic.ValidationError as e:
                response = validation_error_response(
                    _first_error_message(e),
                    {
                        "validation_errors": e.errors(
                            include_url=False,
                            include_context=False,
                            include_input=False,
                        )
                    },
                )

            except Exception as e:
                log_error(
                    logger,
                    e,
                    {
                        "function_name": getattr(context, "function_name", "unknown"),
                        "request_id": getattr(context, "aws_request_id", "unknown"),
                        "event_path": event.get("path") or event.get("rawPath"),
                    },
                )
                response = _internal_error_response()

            if log_response:
                execution_time = (time.time() - start_time) * 1000
                log_lambda_response(logger, response, execution_time)

            return response

        return wrapper

    return decorator


def require_auth(func: Callable) -> Callable:
    """
    Decorator that ensures the request carries a valid bearer token.

    When the API Gateway authorizer already resolved the caller, its
    ``userId`` context is used; otherwise the token is resolved through the
    identity gateway. The caller's id and token are exposed to the handler
    as ``event["auth"]``.
    """

    @wraps(func)
    def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
        from services.identity import identity_gateway

        token = extract_bearer_token(event)

        authorizer_context = event.get("requestContext", {}).get("authorizer") or {}
        # HTTP APIs nest simple-response context under "lambda"
        auth_context = authorizer_context.get("lambda", authorizer_context) or {}
        user_id = auth_context.get("userId")

        if not user_id and token:
            user_id = identity_gateway.authenticate(token)

        if not user_id:
            return unauthorized_response()

        event["auth"] = {"user_id": user_id, "access_token": token}

        return func(event, context)

    return wrapper


def validate_json_body(required_fields: Optional[List[str]] = None) -> Callable:
    """
    Decorator that parses the JSON request body into ``event["json_body"]``.

    Args:
        required_fields: Field names that must be present and non-empty

    Returns:
        Decorated function
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
            try:
                body = json.loads(_raw_body(event) or b"{}")
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                return validation_error_response(
                    "Invalid JSON in request body", {"json_error": str(e)}
                )

            if not isinstance(body, dict):
                return validation_error_response("Request body must be a JSON object")

            if required_fields:
                missing_fields = [
                    field for field in required_fields if not body.get(field)
                ]
                if missing_fields:
                    return validation_error_response(
                        f"Missing required fields: {', '.join(missing_fields)}",
                        {"missing_fields": missing_fields},
                    )

            event["json_body"] = body
            return func(event, context)

        return wrapper

    return decorator


class UploadedFile:
    """A single file part of a multipart/form-data request."""

    def __init__(self, filename: str, content: bytes, content_type: str):
        self.filename = filename
        self.content = content
        self.content_type = content_type

    @property
    def size(self) -> int:
        return len(self.content)


def _content_disposition(part) -> Message:
    # Parameter parsing for headers such as: form-data; name="file"; filename="a.png"
    raw = part.headers.get(b"Content-Disposition", b"").decode(part.encoding)
    message = Message()
    message["Content-Disposition"] = raw
    return message


def parse_multipart_body(func: Callable) -> Callable:
    """
    Decorator that decodes a multipart/form-data body.

    File parts are exposed as ``event["files"]`` keyed by form field name.
    A request that is not multipart yields an empty mapping so the handler
    can answer with its own "no file" error.
    """

    @wraps(func)
    def wrapper(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
        files: Dict[str, UploadedFile] = {}
        content_type = get_header(event, "Content-Type") or ""

        if content_type.lower().startswith("multipart/"):
            try:
                decoder = MultipartDecoder(_raw_body(event), content_type)
            except (
                NonMultipartContentTypeException,
                ImproperBodyPartContentException,
            ) as e:
                return validation_error_response(
                    "Malformed multipart body", {"multipart_error": str(e)}
                )

            for part in decoder.parts:
                disposition = _content_disposition(part)
                field_name = disposition.get_param(
                    "name", header="content-disposition"
                )
                filename = disposition.get_filename()
                if not field_name or not filename:
                    continue
                part_type = part.headers.get(
                    b"Content-Type", b"application/octet-stream"
                ).decode(part.encoding)
                files[field_name] = UploadedFile(filename, part.content, part_type)

        event["files"] = files
        return func(event, context)

    return wrapper
