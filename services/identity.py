"""
Identity gateway.

Maps the username/password model of the API onto the identity provider's
email/password accounts and resolves bearer tokens to user ids.
"""

import logging
from typing import Optional, Tuple

from models.users import SigninRequest, SignupRequest, User
from models.validation import login_handle
from services.records import RentalRecords, records
from services.supabase_auth import SupabaseAuth, supabase_auth
from utils.exceptions import AuthError

logger = logging.getLogger(__name__)


class IdentityGateway:
    def __init__(self, auth: SupabaseAuth, records: RentalRecords):
        self.auth = auth
        self.records = records

    def login_handle(self, username: str) -> str:
        return login_handle(username, self.auth.settings.login_handle_domain)

    def signup(self, request: SignupRequest) -> User:
        """
        Create the provider account, then the User record.

        There is no compensation if the record write fails after the account
        was created.
        """
        user_id = self.auth.create_account(
            self.login_handle(request.username),
            request.password,
            {"username": request.username},
        )
        user = self.records.create_user(request.to_user(user_id))
        logger.info("User signed up", extra={"user_id": user_id})
        return user

    def signin(self, request: SigninRequest) -> Tuple[str, User]:
        """
        Returns:
            The access token and the stored User

        Raises:
            AuthError: if the credentials were rejected
            NotFoundError: if a session was issued but no User record exists
        """
        session = self.auth.sign_in_with_password(
            self.login_handle(request.username), request.password
        )
        if not session:
            raise AuthError("Invalid username or password")

        user = self.records.get_user(session["user_id"])
        return session["access_token"], user

    def signout(self, access_token: Optional[str]) -> None:
        if not access_token or not self.authenticate(access_token):
            raise AuthError("Unauthorized")
        self.auth.sign_out(access_token)

    def authenticate(self, access_token: str) -> Optional[str]:
        """
        Resolve a bearer token to a user id.

        Returns None, never raises, when the token cannot be resolved.
        """
        try:
            user_info = self.auth.validate_jwt_token(access_token)
        except Exception as e:
            logger.error(f"Error resolving bearer token: {str(e)}")
            return None
        if not user_info:
            return None
        return user_info.get("user_id")


identity_gateway = IdentityGateway(supabase_auth, records)
