"""
Services package for business logic and external integrations.

This package contains the key-value store, the record layer and the
identity provider and blob store gateways.
"""

from .dynamodb import KeyValueTable
from .identity import IdentityGateway, identity_gateway
from .records import RentalRecords, records
from .supabase_storage import SupabaseStorage, storage

__all__ = [
    "KeyValueTable",
    "RentalRecords",
    "records",
    "IdentityGateway",
    "identity_gateway",
    "SupabaseStorage",
    "storage",
]
