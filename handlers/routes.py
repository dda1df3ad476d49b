"""
Route table of the HTTP API.

The infrastructure program creates one Lambda function and API Gateway
route per entry. ``dispatch`` serves the same table from a single function,
which is also how the handlers are exercised locally.
"""

import importlib
from typing import Any, Callable, Dict, List, NamedTuple

from utils.responses import HTTPStatus, error_response


class Route(NamedTuple):
    method: str
    path: str
    function: str  # Lambda function name suffix
    handler: str  # dotted path of the handler callable
    protected: bool

    @property
    def route_key(self) -> str:
        return f"{self.method} {self.path}"


ROUTES: List[Route] = [
    Route("GET", "/healthz", "healthz", "main.healthz", False),
    Route("POST", "/signup", "signup", "handlers.auth.signup", False),
    Route("POST", "/signin", "signin", "handlers.auth.signin", False),
    Route("POST", "/signout", "signout", "handlers.auth.signout", True),
    Route("GET", "/user", "get-user", "handlers.users.get_user", True),
    Route("PUT", "/user/profile", "update-profile", "handlers.users.update_profile", True),
    Route("POST", "/upload-image", "upload-image", "handlers.uploads.upload_image", True),
    Route(
        "PUT",
        "/user/profile-picture",
        "update-profile-picture",
        "handlers.users.update_profile_picture",
        True,
    ),
    Route("POST", "/property", "create-property", "handlers.properties.create_property", True),
    Route("GET", "/properties", "list-properties", "handlers.properties.list_properties", True),
    Route(
        "GET",
        "/user-properties",
        "list-user-properties",
        "handlers.properties.list_user_properties",
        True,
    ),
]


def load_handler(route: Route) -> Callable:
    module_name, _, attribute = route.handler.rpartition(".")
    return getattr(importlib.import_module(module_name), attribute)


def dispatch(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Route an API Gateway HTTP API (payload v2) event to its handler."""
    method = event.get("requestContext", {}).get("http", {}).get("method")
    path = event.get("rawPath")
    route_key = event.get("routeKey")
    if not route_key or route_key == "$default":
        route_key = f"{method} {path}"

    for route in ROUTES:
        if route.route_key == route_key:
            return load_handler(route)(event, context)

    return error_response(
        f"No route for {route_key}", HTTPStatus.NOT_FOUND, "ROUTE_NOT_FOUND"
    )
