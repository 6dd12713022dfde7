"""DynamoDB backend implementing IKeyValueStore on a PK/SK table."""

from __future__ import annotations

from typing import Any

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from devsweep.core.exceptions import PersistenceError

STATE_TABLE = "devsweep-state"
PARTITION = "KV"


class DynamoDBKeyValueStore:
    """Production IKeyValueStore backed by DynamoDB.

    Every entry lives in one partition (``PK = "KV"``) keyed by ``SK = key`` so
    prefix listing is a single paginated ``begins_with`` query.
    """

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._table_suffix = table_suffix
        self._region = region
        self._endpoint_url = endpoint_url
        kwargs: dict = {"region_name": region}
        if endpoint_url:
            kwargs["endpoint_url"] = endpoint_url
        self._ddb = boto3.resource("dynamodb", **kwargs)
        self._table = self._ddb.Table(f"{STATE_TABLE}{table_suffix}")

    def get(self, key: str) -> str | None:
        try:
            resp = self._table.get_item(Key={"PK": PARTITION, "SK": key}, ConsistentRead=True)
        except (ClientError, BotoCoreError) as exc:
            raise PersistenceError(f"DynamoDB get failed for key={key!r}: {exc}") from exc
        item = resp.get("Item")
        return item["value"] if item else None

    def set(self, key: str, value: str) -> None:
        try:
            self._table.put_item(Item={"PK": PARTITION, "SK": key, "value": value})
        except (ClientError, BotoCoreError) as exc:
            raise PersistenceError(f"DynamoDB put failed for key={key!r}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._table.delete_item(Key={"PK": PARTITION, "SK": key})
        except (ClientError, BotoCoreError) as exc:
            raise PersistenceError(f"DynamoDB delete failed for key={key!r}: {exc}") from exc

    def list_keys(self, prefix: str) -> list[str]:
        condition = Key("PK").eq(PARTITION)
        if prefix:
            condition = condition & Key("SK").begins_with(prefix)
        query: dict[str, Any] = {
            "KeyConditionExpression": condition,
            "ProjectionExpression": "SK",
        }
        keys: list[str] = []
        try:
            while True:
                resp = self._table.query(**query)
                keys.extend(item["SK"] for item in resp.get("Items", []))
                last = resp.get("LastEvaluatedKey")
                if not last:
                    return keys
                query["ExclusiveStartKey"] = last
        except (ClientError, BotoCoreError) as exc:
            raise PersistenceError(f"DynamoDB query failed for prefix={prefix!r}: {exc}") from exc
