"""
User profile handlers for the rental listings API.

Every handler operates on the authenticated caller's own profile.
"""

from models.users import ProfilePictureUpdate, ProfileUpdate
from services.records import records
from utils.decorators import lambda_handler, require_auth, validate_json_body
from utils.responses import success_response


@lambda_handler()
@require_auth
def get_user(event, context):
    """
    Get the caller's profile.

    GET /user

    Args:
        event: Lambda event object (with auth context)
        context: Lambda context object

    Returns:
        HTTP response with the user profile, or 404 if no profile is stored
    """
    user = records.get_user(event["auth"]["user_id"])
    return success_response(data={"user": user}, include_success=False)


@lambda_handler()
@require_auth
@validate_json_body()
def update_profile(event, context):
    """
    Update location, phone number, NID number and user type.

    PUT /user/profile

    Fields that are absent or empty keep their stored value. Concurrent
    updates are last-write-wins.
    """
    update = ProfileUpdate.model_validate(event["json_body"])
    user = records.update_user(event["auth"]["user_id"], update.changes())

    return success_response(data={"user": user})


@lambda_handler()
@require_auth
@validate_json_body()
def update_profile_picture(event, context):
    """
    Point the caller's profile picture at an uploaded image.

    PUT /user/profile-picture
    """
    update = ProfilePictureUpdate.model_validate(event["json_body"])
    user = records.update_profile_picture(event["auth"]["user_id"], update.image_url)

    return success_response(data={"user": user})
