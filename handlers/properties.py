"""
Property listing handlers for the rental listings API.

Listings are append-only: there is no edit or delete endpoint.
"""

from models.property import PropertyCreate, PropertyFilters
from services.records import records
from utils.decorators import lambda_handler, require_auth, validate_json_body
from utils.responses import success_response


@lambda_handler()
@require_auth
@validate_json_body()
def create_property(event, context):
    """
    Publish a property listing owned by the caller.

    POST /property

    The owner is taken from the bearer token. The listing id is generated
    from the current time and the owner's id.

    Args:
        event: Lambda event object containing the listing
        context: Lambda context object

    Returns:
        HTTP response with the stored listing
    """
    request = PropertyCreate.model_validate(event["json_body"])
    prop = records.create_property(request.to_property(event["auth"]["user_id"]))

    return success_response(data={"property": prop})


@lambda_handler()
@require_auth
def list_properties(event, context):
    """
    Search every listing.

    GET /properties?location=&rentType=&propertyType=

    All filters are optional and combined with AND. Results are in
    creation order, unpaginated.
    """
    filters = PropertyFilters.model_validate(event.get("queryStringParameters") or {})
    properties = records.list_all(filters)

    return success_response(data={"properties": properties}, include_success=False)


@lambda_handler()
@require_auth
def list_user_properties(event, context):
    """List the caller's own listings. GET /user-properties"""
    properties = records.list_for_user(event["auth"]["user_id"])

    return success_response(data={"properties": properties}, include_success=False)
