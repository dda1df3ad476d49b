"""
Record layer: User and Property records on top of the key-value store.

Key layout::

    user:<userId>              -> User
    property:<id>              -> Property
    properties:all             -> [property id, ...]  (creation order)
    properties:user:<userId>   -> [property id, ...]  (creation order)
"""

import logging
from typing import Any, Dict, List, Optional

from models.dynamodb import (
    ALL_PROPERTIES_KEY,
    property_key,
    user_key,
    user_properties_key,
)
from models.property import Property, PropertyFilters
from models.users import User
from services.dynamodb import KeyValueTable
from utils.exceptions import NotFoundError

logger = logging.getLogger(__name__)


class RentalRecords:
    """Reads and writes User and Property records and keeps the property indexes."""

    def __init__(self, store: KeyValueTable):
        self.store = store

    # Users

    def create_user(self, user: User) -> User:
        """Write ``user:<userId>``. No uniqueness check beyond the identity provider's."""
        self.store.set(user_key(user.user_id), user.to_record())
        return user

    def get_user(self, user_id: str) -> User:
        item = self.store.get(user_key(user_id))
        if not item:
            raise NotFoundError("User data not found")
        return User.from_record(item)

    def update_user(self, user_id: str, changes: Dict[str, Any]) -> User:
        """
        Shallow-merge ``changes`` (camelCase keys) over the stored user.

        None values keep the stored value. This is a read-merge-write with
        no version check, so concurrent updates are last-write-wins.
        """
        existing = self.store.get(user_key(user_id))
        if not existing:
            raise NotFoundError("User data not found")

        merged = dict(existing)
        merged.update({k: v for k, v in changes.items() if v is not None})
        # Identity fields never change
        merged["userId"] = existing["userId"]
        merged["joinedDate"] = existing["joinedDate"]

        user = User.from_record(merged)
        self.store.set(user_key(user_id), user.to_record())
        return user

    def update_profile_picture(self, user_id: str, image_url: str) -> User:
        return self.update_user(user_id, {"profilePicture": image_url})

    # Properties

    def create_property(self, prop: Property) -> Property:
        """
        Store the property and index it under its owner and the global list.

        The three writes happen in a single transaction.
        """
        self.store.put_with_index_appends(
            property_key(prop.id),
            prop.to_record(),
            [user_properties_key(prop.user_id), ALL_PROPERTIES_KEY],
            prop.id,
        )
        logger.info(
            "Property created", extra={"property_id": prop.id, "user_id": prop.user_id}
        )
        return prop

    def _resolve(self, property_ids: Optional[List[str]]) -> List[Property]:
        """Load properties in index order, skipping ids with no record."""
        keys = [property_key(pid) for pid in property_ids or []]
        if not keys:
            return []

        values = self.store.get_many(keys)
        properties = []
        for key in keys:
            item = values.get(key)
            if item:
                properties.append(Property.from_record(item))
            else:
                logger.warning("Dangling property index entry", extra={"key": key})
        return properties

    def list_all(self, filters: Optional[PropertyFilters] = None) -> List[Property]:
        """
        Every indexed property matching all of the given filters.

        Location is a case-insensitive substring match; rent type maps onto
        ``temporaryRent``; property type is an exact match.
        """
        properties = self._resolve(self.store.get(ALL_PROPERTIES_KEY))
        if filters is None:
            return properties

        if filters.location:
            needle = filters.location.lower()
            properties = [p for p in properties if needle in p.location.lower()]

        temporary_rent = filters.temporary_rent
        if temporary_rent is not None:
            properties = [p for p in properties if p.temporary_rent is temporary_rent]

        if filters.property_type:
            properties = [
                p for p in properties if p.property_type == filters.property_type
            ]

        return properties

    def list_for_user(self, user_id: str) -> List[Property]:
        return self._resolve(self.store.get(user_properties_key(user_id)))


records = RentalRecords(KeyValueTable())
