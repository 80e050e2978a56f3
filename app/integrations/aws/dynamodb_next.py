"""AWS DynamoDB Next Module

Table-level DynamoDB calls for the bot engine storage backend, built on
client_next.py. Every call returns an OperationResult; failed write
conditions come back as CONFLICT so that stores can treat "row already
exists" and "row missing" as ordinary outcomes.

Items cross this module in the low-level attribute-value format
(`{"chat_id": {"N": "42"}}`); serialize_item/deserialize_item convert from
and to plain dicts.

Usage:
    result = get_item(
        table_name="bot-engine-subscriptions",
        Key={"chat_id": {"N": "42"}},
    )
    if result.is_success:
        item = result.data.get("Item")
"""

from decimal import Decimal
from typing import Any, Dict, List

from boto3.dynamodb.types import TypeDeserializer, TypeSerializer  # type: ignore

from infrastructure.logging import get_module_logger
from infrastructure.operations.result import OperationResult
from integrations.aws.client_next import execute_aws_api_call

logger = get_module_logger()

# BatchWriteItem accepts at most 25 requests per call
BATCH_WRITE_LIMIT = 25
MAX_UNPROCESSED_ROUNDS = 5


def _table_call(method: str, table_name: str, **kwargs) -> OperationResult:
    return execute_aws_api_call(
        service_name="dynamodb",
        method=method,
        TableName=table_name,
        **kwargs,
    )


def get_item(table_name: str, Key: Dict[str, Any], **kwargs) -> OperationResult:
    """Get one item; `result.data["Item"]` is absent when the key is unknown."""
    return _table_call("get_item", table_name, Key=Key, **kwargs)


def put_item(table_name: str, Item: Dict[str, Any], **kwargs) -> OperationResult:
    """Put one item.

    Pass `ConditionExpression="attribute_not_exists(<key>)"` for an insert
    that fails with CONFLICT instead of overwriting.
    """
    return _table_call("put_item", table_name, Item=Item, **kwargs)


def update_item(table_name: str, Key: Dict[str, Any], **kwargs) -> OperationResult:
    """Update one item.

    Pass `ConditionExpression="attribute_exists(<key>)"` to make the update
    fail with CONFLICT, rather than create the row, when the key is unknown.
    """
    return _table_call("update_item", table_name, Key=Key, **kwargs)


def delete_item(table_name: str, Key: Dict[str, Any], **kwargs) -> OperationResult:
    """Delete one item. With `ReturnValues="ALL_OLD"` the removed row is in
    `result.data["Attributes"]`."""
    return _table_call("delete_item", table_name, Key=Key, **kwargs)


def scan(table_name: str, **kwargs) -> OperationResult:
    """Scan a table, following pagination; `result.data` is the item list."""
    return execute_aws_api_call(
        service_name="dynamodb",
        method="scan",
        TableName=table_name,
        keys=["Items"],
        force_paginate=True,
        **kwargs,
    )


def batch_delete(table_name: str, keys: List[Dict[str, Any]]) -> OperationResult:
    """Delete many items with BatchWriteItem, 25 keys per call.

    Unprocessed keys returned by DynamoDB are resubmitted a bounded number of
    times. The first failed call stops the batch.

    Returns:
        OperationResult: SUCCESS with the number of deleted keys as data, or
        the first error. Keys still unprocessed at the end make it a
        transient error.
    """
    deleted = 0
    for start in range(0, len(keys), BATCH_WRITE_LIMIT):
        chunk = keys[start : start + BATCH_WRITE_LIMIT]
        pending: Dict[str, Any] = {
            table_name: [{"DeleteRequest": {"Key": key}} for key in chunk]
        }
        for _ in range(MAX_UNPROCESSED_ROUNDS):
            result = execute_aws_api_call(
                service_name="dynamodb",
                method="batch_write_item",
                RequestItems=pending,
            )
            if not result.is_success:
                return result
            pending = (result.data or {}).get("UnprocessedItems") or {}
            if not pending:
                break
            logger.info(
                "dynamodb_batch_unprocessed",
                table=table_name,
                remaining=len(pending.get(table_name, [])),
            )
        if pending:
            remaining = len(pending.get(table_name, []))
            return OperationResult.transient_error(
                f"{remaining} deletes left unprocessed on {table_name}",
                error_code="UNPROCESSED_ITEMS",
            )
        deleted += len(chunk)

    return OperationResult.success(data=deleted)


_serializer = TypeSerializer()
_deserializer = TypeDeserializer()


def _to_dynamodb_value(value: Any) -> Any:
    # boto3 refuses float; Decimal(str()) keeps the printed value
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, dict):
        return {k: _to_dynamodb_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_dynamodb_value(v) for v in value]
    return value


def _from_dynamodb_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _from_dynamodb_value(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_from_dynamodb_value(v) for v in value]
    return value


def serialize_item(data: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a plain dict into DynamoDB attribute-value format.

    None values are dropped; floats are stored as Decimal.
    """
    return {
        key: _serializer.serialize(_to_dynamodb_value(value))
        for key, value in data.items()
        if value is not None
    }


def deserialize_item(item: Dict[str, Any]) -> Dict[str, Any]:
    """Convert a DynamoDB item back into a plain dict with native numbers."""
    return {
        key: _from_dynamodb_value(_deserializer.deserialize(value))
        for key, value in item.items()
    }
