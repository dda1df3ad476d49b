"""Base classes shared by the record and request models."""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class RecordModel(BaseModel):
    """
    A record persisted in the key-value table.

    Fields are snake_case in Python and camelCase on the wire and in storage.
    Unknown stored attributes are ignored so older records still load.
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    def to_record(self) -> Dict[str, Any]:
        """JSON-compatible dict using camelCase keys."""
        return self.model_dump(mode="json", by_alias=True)

    @classmethod
    def from_record(cls, item: Dict[str, Any] | None):
        if not item:
            return None
        return cls.model_validate(item)


class RequestModel(BaseModel):
    """A request body validated at the API boundary. Unknown fields are rejected."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )
