"""
Lambda authorizer for the rental listings HTTP API.

Resolves the bearer token of protected routes to a user id. Whether the
user's profile record exists is left to the handlers, which answer 404.
"""

from typing import Any, Dict

from services.identity import identity_gateway
from utils.decorators import extract_bearer_token
from utils.logging import log_error, setup_logger

# Initialize shared resources at module level for optimal Lambda performance
# This avoids re-initialization on warm starts and reduces cold start time
logger = setup_logger(__name__)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    HTTP API Gateway Lambda Authorizer (simple responses).

    Args:
        event: API Gateway authorizer event
        context: Lambda context object

    Returns:
        ``{"isAuthorized": bool}`` plus the caller's ``userId`` in the context
    """
    logger.info(
        "Authorization request received",
        extra={
            "request_id": getattr(context, "aws_request_id", "unknown"),
            "route_key": event.get("routeKey"),
        },
    )

    try:
        token = extract_bearer_token(event)
        if not token:
            logger.info("Authorization failed: no bearer token")
            return {"isAuthorized": False}

        user_id = identity_gateway.authenticate(token)
        if not user_id:
            logger.info("Authorization failed: token did not resolve to a user")
            return {"isAuthorized": False}

        logger.info("User authorized", extra={"user_id": user_id})
        return {
            "isAuthorized": True,
            "context": {"principalId": user_id, "userId": user_id},
        }

    except Exception as e:
        log_error(logger, e, {"route_key": event.get("routeKey")})
        return {"isAuthorized": False}
