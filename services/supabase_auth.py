"""
Supabase Auth client: account creation, password sign-in, sign-out and
bearer token validation over the GoTrue REST API.
"""

import logging
from typing import Any, Dict, Optional

import jwt
import requests
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from services.parameter_store import SupabaseSettings, config
from utils.exceptions import IdentityError
from utils.responses import HTTPStatus

logger = logging.getLogger(__name__)

PROVIDER_TIMEOUT = 10


def provider_message(response: requests.Response, default: str) -> str:
    """Best-effort extraction of the provider's error message."""
    try:
        data = response.json()
    except ValueError:
        return default
    if not isinstance(data, dict):
        return default
    for field in ("msg", "message", "error_description", "error"):
        if data.get(field):
            return str(data[field])
    return default


class SupabaseAuth:
    def __init__(
        self,
        settings: Optional[SupabaseSettings] = None,
        session: Optional[requests.Session] = None,
    ):
        self.settings = settings or config.load_supabase_config()
        self.session = session or requests.Session()

        if not self.settings.url:
            logger.warning("Supabase URL not configured")

        if not self.settings.jwt_secret:
            logger.warning(
                "Supabase JWT secret not configured. "
                "Tokens are only checked by the provider."
            )

    def _endpoint(self, path: str) -> str:
        if not self.settings.is_configured:
            raise IdentityError("Identity provider is not configured")
        return f"{self.settings.url}/auth/v1{path}"

    def _headers(self, api_key: str, bearer: Optional[str] = None) -> Dict[str, str]:
        return {
            "apikey": api_key,
            "Authorization": f"Bearer {bearer or api_key}",
            "Content-Type": "application/json",
        }

    def create_account(
        self, email: str, password: str, user_metadata: Dict[str, Any]
    ) -> str:
        """
        Create a pre-confirmed account with the admin API.

        Args:
            email: Login handle used as the account email
            password: Account password
            user_metadata: Metadata stored with the account

        Returns:
            The provider-issued user id

        Raises:
            IdentityError: 400 when the provider rejects the account
                (e.g. already registered), 500 when it is unreachable
        """
        url = self._endpoint("/admin/users")
        key = self.settings.service_role_key
        try:
            response = self.session.post(
                url,
                headers=self._headers(key),
                json={
                    "email": email,
                    "password": password,
                    "user_metadata": user_metadata,
                    # No mail server: accounts are confirmed on creation
                    "email_confirm": True,
                },
                timeout=PROVIDER_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.error(f"Account creation request failed: {str(e)}")
            raise IdentityError("Failed to create user") from e

        if response.ok:
            return response.json()["id"]

        message = provider_message(response, "Failed to create user")
        logger.warning(
            "Account creation rejected",
            extra={"status_code": response.status_code, "provider_message": message},
        )
        if 400 <= response.status_code < 500:
            raise IdentityError(message, HTTPStatus.BAD_REQUEST)
        raise IdentityError(message)

    def sign_in_with_password(
        self, email: str, password: str
    ) -> Optional[Dict[str, str]]:
        """
        Exchange credentials for a session.

        Returns:
            ``{"access_token", "user_id"}``, or None if the provider
            rejected the credentials

        Raises:
            IdentityError: if the provider could not be reached or failed
        """
        url = self._endpoint("/token")
        key = self.settings.anon_key
        try:
            response = self.session.post(
                url,
                params={"grant_type": "password"},
                headers=self._headers(key),
                json={"email": email, "password": password},
                timeout=PROVIDER_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.error(f"Sign-in request failed: {str(e)}")
            raise IdentityError("Sign-in is temporarily unavailable") from e

        if response.status_code >= 500:
            raise IdentityError(provider_message(response, "Sign-in failed"))

        if not response.ok:
            logger.info(
                "Credential exchange rejected",
                extra={"status_code": response.status_code},
            )
            return None

        data = response.json()
        access_token = data.get("access_token")
        user_id = (data.get("user") or {}).get("id")
        if not access_token or not user_id:
            return None

        return {"access_token": access_token, "user_id": user_id}

    def sign_out(self, access_token: str) -> None:
        """Revoke every session of the token's user."""
        url = self._endpoint("/logout")
        try:
            response = self.session.post(
                url,
                params={"scope": "global"},
                headers=self._headers(self.settings.anon_key, bearer=access_token),
                timeout=PROVIDER_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.error(f"Sign-out request failed: {str(e)}")
            raise IdentityError("Failed to sign out") from e

        if not response.ok:
            raise IdentityError(provider_message(response, "Failed to sign out"))

    def validate_jwt_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Resolve a bearer token to its user.

        With the JWT secret configured, the signature, audience and expiry are
        checked locally first, so malformed or expired tokens never reach the
        provider. The provider is always asked for the token's user, which
        fails once the session was revoked by a sign-out.

        Args:
            token: The JWT token from the Authorization header

        Returns:
            Dictionary containing user information if valid, None otherwise
        """
        claims = None
        if self.settings.jwt_secret:
            claims = self._validate_jwt_manual(token)
            if not claims:
                return None

        user_info = self._validate_jwt_via_api(token)
        if not user_info or not claims:
            return user_info

        if user_info["user_id"] != claims["user_id"]:
            logger.warning("Token subject does not match the provider's user")
            return None
        user_info["exp"] = claims["exp"]
        return user_info

    def _validate_jwt_manual(self, token: str) -> Optional[Dict[str, Any]]:
        """Manual JWT verification using the JWT secret"""
        try:
            payload = jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=["HS256"],
                audience="authenticated",
            )
        except ExpiredSignatureError:
            logger.info("JWT token has expired")
            return None
        except InvalidTokenError as e:
            logger.info(f"Invalid JWT token: {str(e)}")
            return None

        # The public anon key is a valid JWT without a user subject
        if not payload.get("sub"):
            return None

        return {
            "user_id": payload["sub"],
            "email": payload.get("email"),
            "role": payload.get("role"),
            "exp": payload.get("exp"),
        }

    def _validate_jwt_via_api(self, token: str) -> Optional[Dict[str, Any]]:
        """Ask the provider for the token's user. Fails for revoked sessions."""
        if not self.settings.is_configured:
            logger.error("Supabase URL or anon key not configured for API verification")
            return None

        try:
            response = self.session.get(
                f"{self.settings.url}/auth/v1/user",
                headers=self._headers(self.settings.anon_key, bearer=token),
                timeout=PROVIDER_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.error(f"Error validating JWT token via API: {str(e)}")
            return None

        if response.status_code != 200:
            logger.info(f"Token validation failed via API: {response.status_code}")
            return None

        user_data = response.json()
        if not user_data.get("id"):
            return None

        return {
            "user_id": user_data["id"],
            "email": user_data.get("email"),
            "role": user_data.get("role"),
            "exp": None,  # Not provided by API
        }


# Global instance
supabase_auth = SupabaseAuth()
