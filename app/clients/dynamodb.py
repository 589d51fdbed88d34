"""
DynamoDB document store exposing the same surface as ``SQLiteStore``.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, Optional

import boto3
from boto3.dynamodb.conditions import Attr, Key
from botocore.exceptions import ClientError

from app.core.config import AWSSettings
from app.core.errors import ConfigurationError


class DynamoDBClient:
    """CRUD and conditional counter operations against a single table."""

    def __init__(self, settings: AWSSettings, table: Any | None = None) -> None:
        self._settings = settings
        if table is None:
            if not settings.dynamodb_table_name:
                raise ConfigurationError(
                    "DYNAMODB_TABLE_NAME must be set when STORAGE_BACKEND=dynamodb."
                )
            resource = boto3.resource("dynamodb", region_name=settings.region_name)
            table = resource.Table(settings.dynamodb_table_name)
        self._table = table

    def put_item(self, item: Dict[str, Any]) -> None:
        """Put an item in the DynamoDB table."""
        self._table.put_item(Item=item)

    def put_item_if_absent(self, item: Dict[str, Any]) -> Dict[str, Any]:
        try:
            self._table.put_item(
                Item=item, ConditionExpression=Attr("pk").not_exists()
            )
        except ClientError as exc:
            if not _is_condition_failure(exc):
                raise
        stored = self.get_item(partition_key=item["pk"], sort_key=item["sk"])
        return stored if stored is not None else item

    def get_item(
        self, *, partition_key: str, sort_key: str
    ) -> Optional[Dict[str, Any]]:
        """Retrieve an item using its key."""
        response = self._table.get_item(Key={"pk": partition_key, "sk": sort_key})
        item = response.get("Item")
        return _plain(item) if item is not None else None

    def update_fields(
        self, *, partition_key: str, sort_key: str, values: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        if not values:
            return self.get_item(partition_key=partition_key, sort_key=sort_key)
        names = {f"#f{index}": field for index, field in enumerate(values)}
        updates = {
            f":v{index}": value for index, value in enumerate(values.values())
        }
        expression = "SET " + ", ".join(
            f"#f{index} = :v{index}" for index in range(len(values))
        )
        try:
            response = self._table.update_item(
                Key={"pk": partition_key, "sk": sort_key},
                UpdateExpression=expression,
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=updates,
                ConditionExpression="attribute_exists(pk)",
                ReturnValues="ALL_NEW",
            )
        except ClientError as exc:
            if _is_condition_failure(exc):
                return None
            raise
        return _plain(response.get("Attributes", {}))

    def increment_below_limit(
        self,
        *,
        partition_key: str,
        sort_key: str,
        counter: str,
        limit: int,
        unless_flag: str,
    ) -> tuple[bool, Optional[Dict[str, Any]]]:
        """Conditional ``ADD counter 1``; the condition is checked at commit time."""
        try:
            response = self._table.update_item(
                Key={"pk": partition_key, "sk": sort_key},
                UpdateExpression="ADD #counter :one",
                ConditionExpression=(
                    "attribute_exists(pk) AND #flag = :false AND #counter < :limit"
                ),
                ExpressionAttributeNames={"#counter": counter, "#flag": unless_flag},
                ExpressionAttributeValues={
                    ":one": 1,
                    ":false": False,
                    ":limit": limit,
                },
                ReturnValues="ALL_NEW",
            )
        except ClientError as exc:
            if not _is_condition_failure(exc):
                raise
            return False, self.get_item(partition_key=partition_key, sort_key=sort_key)
        return True, _plain(response.get("Attributes", {}))

    def delete_item(self, *, partition_key: str, sort_key: str) -> None:
        self._table.delete_item(Key={"pk": partition_key, "sk": sort_key})

    def list_items_with_prefix(
        self, *, partition_key: str, sort_key_prefix: str
    ) -> list[Dict[str, Any]]:
        """Query items that share the same partition key and sort key prefix."""
        response = self._table.query(
            KeyConditionExpression=Key("pk").eq(partition_key)
            & Key("sk").begins_with(sort_key_prefix)
        )
        return [_plain(item) for item in response.get("Items", [])]

    def find_item(
        self, *, sort_key: str, field: str, value: Any
    ) -> Optional[Dict[str, Any]]:
        # TODO: back customer lookups with a GSI once webhook volume warrants it.
        # The filter runs per page, so keep scanning until a match or the end.
        scan_kwargs: Dict[str, Any] = {
            "FilterExpression": Attr("sk").eq(sort_key) & Attr(field).eq(value)
        }
        while True:
            response = self._table.scan(**scan_kwargs)
            items = response.get("Items", [])
            if items:
                return _plain(items[0])
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return None
            scan_kwargs["ExclusiveStartKey"] = last_key


def _is_condition_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


def _plain(item: Dict[str, Any]) -> Dict[str, Any]:
    """Convert DynamoDB ``Decimal`` numbers back to ints/floats."""
    converted: Dict[str, Any] = {}
    for key, value in item.items():
        if isinstance(value, Decimal):
            converted[key] = int(value) if value == value.to_integral_value() else float(value)
        else:
            converted[key] = value
    return converted


__all__ = ["DynamoDBClient"]
