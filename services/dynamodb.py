"""
DynamoDB key-value store for the rental listings backend.

Every entry is a single item ``{PK: <key>, value: <JSON value>}``. Index
lists are grown with conditional updates so concurrent appends never lose
an id, and a record can be written together with its index entries in one
transaction.
"""

import json
import logging
import math
import os
import time
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

import boto3
import botocore
from boto3.dynamodb.types import TypeSerializer

from models.dynamodb import KeyValueItem
from utils.exceptions import StorageError

# Initialize shared resources at module level for optimal Lambda performance
# This avoids re-initialization on warm starts and reduces cold start time
logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)

_dynamodb_resource = boto3.resource("dynamodb")

# BatchGetItem accepts at most 100 keys per request
BATCH_GET_LIMIT = 100

# Cancellation reason codes worth retrying
_RETRYABLE_CANCELLATIONS = {"TransactionConflict", "ThrottlingError"}

_APPEND_UNIQUE_UPDATE = "SET #value = list_append(if_not_exists(#value, :empty), :items)"
_APPEND_UNIQUE_CONDITION = "attribute_not_exists(#value) OR NOT contains(#value, :item)"


def _to_dynamodb(value: Any) -> Any:
    """DynamoDB rejects floats, so numbers go in as Decimal."""
    return json.loads(json.dumps(value), parse_float=Decimal)


def _from_dynamodb(value: Any) -> Any:
    """Turn the Decimals DynamoDB hands back into plain ints and floats."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, list):
        return [_from_dynamodb(v) for v in value]
    if isinstance(value, dict):
        return {k: _from_dynamodb(v) for k, v in value.items()}
    return value


def _error_code(err: botocore.exceptions.ClientError) -> str:
    return err.response.get("Error", {}).get("Code", "Unknown")


def _cancellation_codes(err: botocore.exceptions.ClientError) -> List[str]:
    """One code per transaction item, ``"None"`` for items that were fine."""
    return [
        (reason or {}).get("Code") or "None"
        for reason in err.response.get("CancellationReasons") or []
    ]


class KeyValueTable:
    """
    Generic get/set/delete over string keys holding JSON-serializable values.

    Optimized for Lambda environments with shared resource initialization
    and connection pooling for improved performance.
    """

    def __init__(
        self,
        table_name: Optional[str] = None,
        resource: Any = None,
        retry_max: int = 4,
        backoff_base: float = 0.05,
    ):
        """
        Initialize the DynamoDB table connection using shared resources.

        :param table_name: Name of the DynamoDB table.
        :param resource: boto3 DynamoDB service resource (defaults to the shared one).
        :param retry_max: Retries for unprocessed batch keys and conflicting
            transactions before giving up.
        :param backoff_base: First retry delay in seconds, doubled on each retry.
        """
        if table_name is None:
            table_name = os.environ.get("TABLE_NAME", "RentalListingsTable")

        self.resource = resource or _dynamodb_resource
        self.table = self.resource.Table(table_name)
        self.retry_max = int(retry_max)
        self.backoff_base = float(backoff_base)
        self._serializer = TypeSerializer()

    def _backoff(self, attempt: int) -> None:
        time.sleep(self.backoff_base * math.pow(2, attempt))

    def _fail(self, action: str, key: str, err: botocore.exceptions.ClientError):
        logger.error(
            "Couldn't %s %s in table %s. Error: %s: %s",
            action,
            key,
            self.table.name,
            _error_code(err),
            err.response.get("Error", {}).get("Message"),
        )
        return StorageError(f"Failed to {action} '{key}'")

    def get(self, key: str) -> Any:
        """
        Read the value stored under a key.

        :param key: The key to read.
        :return: The stored value, or None if the key is absent.
        """
        try:
            response = self.table.get_item(Key={"PK": key}, ConsistentRead=True)
        except botocore.exceptions.ClientError as err:
            raise self._fail("read", key, err) from err

        item = response.get("Item")
        if not item:
            return None
        return _from_dynamodb(item.get("value"))

    def set(self, key: str, value: Any) -> None:
        """Replace the value stored under a key (last write wins)."""
        item = KeyValueItem(PK=key, value=_to_dynamodb(value))
        try:
            self.table.put_item(Item=item.model_dump())
        except botocore.exceptions.ClientError as err:
            raise self._fail("write", key, err) from err

    def delete(self, key: str) -> None:
        try:
            self.table.delete_item(Key={"PK": key})
        except botocore.exceptions.ClientError as err:
            raise self._fail("delete", key, err) from err

    def get_many(self, keys: Iterable[str]) -> Dict[str, Any]:
        """
        Read several keys with BatchGetItem.

        :param keys: Keys to read; duplicates are fetched once.
        :return: Mapping of found keys to values. Missing keys are omitted.
        """
        unique_keys = list(dict.fromkeys(keys))
        found: Dict[str, Any] = {}

        for start in range(0, len(unique_keys), BATCH_GET_LIMIT):
            chunk = unique_keys[start : start + BATCH_GET_LIMIT]
            request = {
                self.table.name: {
                    "Keys": [{"PK": key} for key in chunk],
                    "ConsistentRead": True,
                }
            }
            attempt = 0
            while True:
                try:
                    response = self.resource.batch_get_item(RequestItems=request)
                except botocore.exceptions.ClientError as err:
                    raise self._fail("batch read", chunk[0], err) from err

                for item in response.get("Responses", {}).get(self.table.name, []):
                    found[item["PK"]] = _from_dynamodb(item.get("value"))

                request = response.get("UnprocessedKeys")
                if not request:
                    break
                if attempt == self.retry_max:
                    logger.error(
                        "Gave up on unprocessed keys in table %s after %d retries",
                        self.table.name,
                        attempt,
                    )
                    raise StorageError(f"Failed to batch read '{chunk[0]}'")
                self._backoff(attempt)
                attempt += 1

        return found

    def append_unique(self, list_key: str, item: str) -> bool:
        """
        Atomically append ``item`` to the list stored under ``list_key``.

        The list is created when missing. Appending an item that is already
        present leaves the list untouched.

        :return: True if the item was appended, False if it was already there.
        """
        try:
            self.table.update_item(
                Key={"PK": list_key},
                UpdateExpression=_APPEND_UNIQUE_UPDATE,
                ConditionExpression=_APPEND_UNIQUE_CONDITION,
                ExpressionAttributeNames={"#value": "value"},
                ExpressionAttributeValues={":empty": [], ":items": [item], ":item": item},
            )
            return True
        except botocore.exceptions.ClientError as err:
            if _error_code(err) == "ConditionalCheckFailedException":
                return False
            raise self._fail("append to", list_key, err) from err

    def put_with_index_appends(
        self, key: str, value: Any, list_keys: List[str], item: str
    ) -> None:
        """
        Write a new record and append its id to index lists in one transaction.

        Either the record and every index entry are written, or nothing is.
        The transaction is cancelled if ``key`` already exists or ``item`` is
        already present in one of the lists. A transaction cancelled by a
        concurrent write to the same items is retried with backoff.
        """
        serialize = self._serializer.serialize
        record = KeyValueItem(PK=key, value=_to_dynamodb(value)).model_dump()

        transact_items = [
            {
                "Put": {
                    "TableName": self.table.name,
                    "Item": {k: serialize(v) for k, v in record.items()},
                    "ConditionExpression": "attribute_not_exists(PK)",
                }
            }
        ]
        for list_key in list_keys:
            transact_items.append(
                {
                    "Update": {
                        "TableName": self.table.name,
                        "Key": {"PK": serialize(list_key)},
                        "UpdateExpression": _APPEND_UNIQUE_UPDATE,
                        "ConditionExpression": _APPEND_UNIQUE_CONDITION,
                        "ExpressionAttributeNames": {"#value": "value"},
                        "ExpressionAttributeValues": {
                            ":empty": serialize([]),
                            ":items": serialize([item]),
                            ":item": serialize(item),
                        },
                    }
                }
            )

        attempt = 0
        while True:
            try:
                self.resource.meta.client.transact_write_items(
                    TransactItems=transact_items
                )
                return
            except botocore.exceptions.ClientError as err:
                if _error_code(err) != "TransactionCanceledException":
                    raise self._fail("write", key, err) from err

                codes = _cancellation_codes(err)
                logger.warning("Transaction for %s cancelled: %s", key, codes)

                # Reasons are in TransactItems order: the Put comes first
                if codes[:1] == ["ConditionalCheckFailed"]:
                    raise StorageError(f"Record '{key}' already exists") from err
                if "ConditionalCheckFailed" in codes:
                    raise StorageError(f"'{item}' is already indexed") from err
                retryable = any(code in _RETRYABLE_CANCELLATIONS for code in codes)
                if not retryable or attempt == self.retry_max:
                    reasons = ", ".join(c for c in codes if c != "None") or "unknown"
                    raise StorageError(
                        f"Failed to write '{key}': transaction cancelled ({reasons})"
                    ) from err

            self._backoff(attempt)
            attempt += 1
