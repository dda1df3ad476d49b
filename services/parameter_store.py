"""
AWS Systems Manager Parameter Store service.

Settings are read from environment variables first (a local ``.env`` file is
loaded with python-dotenv) and fall back to Parameter Store parameters under
``/rental-listings``.
"""

import os
from functools import lru_cache
from typing import Dict, Optional

import boto3
from botocore.exceptions import ClientError
from dotenv import load_dotenv
from pydantic import BaseModel

from utils.logging import setup_logger

logger = setup_logger(__name__)

# Load .env file for local development
load_dotenv()

# Cache for Parameter Store client
_ssm_client = None

# Environment variable -> parameter name below the prefix
SETTINGS_PARAMETERS = {
    "SUPABASE_URL": "supabase/url",
    "SUPABASE_SERVICE_ROLE_KEY": "supabase/service-role-key",
    "SUPABASE_ANON_KEY": "supabase/anon-key",
    "SUPABASE_JWT_SECRET": "supabase/jwt-secret",
    "STORAGE_BUCKET": "storage/bucket",
    "LOGIN_HANDLE_DOMAIN": "auth/login-handle-domain",
}
REQUIRED_SETTINGS = ("SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_ANON_KEY")


class SupabaseSettings(BaseModel):
    """Connection settings for the identity provider and the blob store."""

    url: Optional[str] = None
    service_role_key: Optional[str] = None
    anon_key: Optional[str] = None
    jwt_secret: Optional[str] = None
    storage_bucket: str = "rental-images"
    login_handle_domain: str = "rental.local"

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.service_role_key and self.anon_key)


def get_ssm_client():
    """Get or create SSM client with caching."""
    global _ssm_client
    if _ssm_client is None:
        _ssm_client = boto3.client("ssm")
    return _ssm_client


@lru_cache(maxsize=32)
def get_parameters_by_path(path: str, decrypt: bool = True) -> Dict[str, str]:
    """
    Get multiple parameters by path prefix with caching.

    Args:
        path: The path prefix to search for parameters
        decrypt: Whether to decrypt SecureString parameters

    Returns:
        Dictionary of parameter names (without path) to values
    """
    try:
        ssm = get_ssm_client()

        parameters = {}
        paginator = ssm.get_paginator("get_parameters_by_path")

        for page in paginator.paginate(
            Path=path, Recursive=True, WithDecryption=decrypt
        ):
            for param in page["Parameters"]:
                param_name = param["Name"].replace(path, "", 1).lstrip("/")
                parameters[param_name] = param["Value"]

        logger.debug(f"Retrieved {len(parameters)} parameters from path {path}")
        return parameters

    except ClientError as e:
        logger.error(f"Error retrieving parameters by path {path}: {e}")
        return {}
    except Exception as e:
        logger.error(f"Unexpected error retrieving parameters by path {path}: {e}")
        return {}


class ParameterStoreConfig:
    """
    Loads the service settings from the environment or Parameter Store.

    Parameter Store is only queried when a required setting is missing from
    the environment.
    """

    def __init__(self, parameter_prefix: str = "/rental-listings"):
        """
        Initialize configuration with parameter prefix.

        Args:
            parameter_prefix: Prefix for parameter names in Parameter Store
        """
        self.parameter_prefix = parameter_prefix.rstrip("/")
        self._settings: Optional[SupabaseSettings] = None

    def load_supabase_config(self) -> SupabaseSettings:
        if self._settings is not None:
            return self._settings

        values = {env: os.getenv(env) for env in SETTINGS_PARAMETERS}

        if any(not values[env] for env in REQUIRED_SETTINGS):
            parameters = get_parameters_by_path(self.parameter_prefix)
            for env, name in SETTINGS_PARAMETERS.items():
                if not values[env] and parameters.get(name):
                    values[env] = parameters[name]

        missing = [env for env in REQUIRED_SETTINGS if not values[env]]
        if missing:
            logger.warning(
                "Supabase settings incomplete", extra={"missing_settings": missing}
            )

        settings = SupabaseSettings(
            url=(values["SUPABASE_URL"] or "").rstrip("/") or None,
            service_role_key=values["SUPABASE_SERVICE_ROLE_KEY"],
            anon_key=values["SUPABASE_ANON_KEY"],
            jwt_secret=values["SUPABASE_JWT_SECRET"],
            **{
                field: values[env]
                for field, env in (
                    ("storage_bucket", "STORAGE_BUCKET"),
                    ("login_handle_domain", "LOGIN_HANDLE_DOMAIN"),
                )
                if values[env]
            },
        )
        self._settings = settings
        return settings


# Global config instance
config = ParameterStoreConfig()


def clear_cache():
    """Clear parameter cache. Useful for testing or config updates."""
    get_parameters_by_path.cache_clear()
    config._settings = None
    logger.info("Parameter Store cache cleared")
