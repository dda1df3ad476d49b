"""
Authentication handlers for the rental listings API.

Signup and signin are public; signout requires a bearer token.
"""

from models.users import SigninRequest, SignupRequest
from services.identity import identity_gateway
from utils.decorators import lambda_handler, require_auth, validate_json_body
from utils.responses import success_response


@lambda_handler()
@validate_json_body()
def signup(event, context):
    """
    Register a renter or owner.

    POST /signup

    Creates the identity provider account (under a login handle derived
    from the username) and the stored user profile.

    Args:
        event: Lambda event object containing the signup form
        context: Lambda context object

    Returns:
        HTTP response with the new user's id
    """
    request = SignupRequest.model_validate(event["json_body"])
    user = identity_gateway.signup(request)

    return success_response(
        data={"userId": user.user_id}, message="User created successfully"
    )


@lambda_handler()
@validate_json_body()
def signin(event, context):
    """
    Exchange username and password for an access token.

    POST /signin

    Returns:
        HTTP response with the access token and the stored user profile
    """
    request = SigninRequest.model_validate(event["json_body"])
    access_token, user = identity_gateway.signin(request)

    return success_response(data={"accessToken": access_token, "user": user})


@lambda_handler()
@require_auth
def signout(event, context):
    """Invalidate the caller's sessions. POST /signout"""
    identity_gateway.signout(event["auth"]["access_token"])
    return success_response()
