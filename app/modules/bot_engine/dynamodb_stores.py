"""DynamoDB-backed stores.

Table layout (on-demand, one table per record kind):

- subscriptions: partition key `chat_id` (N)
- allowed users: partition key `username` (S)
- events: partition key `event_id` (S)

Timestamps are stored as fixed-width UTC strings so that string comparison
in filter expressions orders them correctly. Reads that need filtering use
scans; the tables stay small for a single bot.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult
from integrations.aws import dynamodb_next
from modules.bot_engine.models import (
    AllowedUser,
    DuplicateRecordError,
    Event,
    PersistenceError,
    Subscription,
    as_utc,
    utc_now,
)

logger = get_module_logger()

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"
TIMESTAMP_FIELDS = ("created_at", "updated_at")


def format_timestamp(value: datetime) -> str:
    return as_utc(value).strftime(TIMESTAMP_FORMAT)


def _to_item(model: Any) -> Dict[str, Any]:
    data = model.model_dump(mode="json")
    for key in TIMESTAMP_FIELDS:
        if key in data:
            data[key] = format_timestamp(getattr(model, key))
    return dynamodb_next.serialize_item(data)


def _require(result: OperationResult, operation: str, table: str) -> OperationResult:
    if not result.is_success:
        logger.error(
            "dynamodb_store_operation_failed",
            operation=operation,
            table=table,
            error=result.message,
            error_code=result.error_code,
        )
        raise PersistenceError(f"{operation} on {table} failed: {result.message}")
    return result


class DynamoDBSubscriptionStore:
    def __init__(self, table_name: str) -> None:
        self.table_name = table_name

    def _key(self, chat_id: int) -> Dict[str, Any]:
        return {"chat_id": {"N": str(chat_id)}}

    def get(self, chat_id: int) -> Optional[Subscription]:
        result = _require(
            dynamodb_next.get_item(
                self.table_name, Key=self._key(chat_id), ConsistentRead=True
            ),
            "get_item",
            self.table_name,
        )
        item = (result.data or {}).get("Item")
        if not item:
            return None
        return Subscription.model_validate(dynamodb_next.deserialize_item(item))

    def save(self, subscription: Subscription) -> Subscription:
        stored = subscription.model_copy(update={"updated_at": utc_now()})
        _require(
            dynamodb_next.put_item(self.table_name, Item=_to_item(stored)),
            "put_item",
            self.table_name,
        )
        return stored

    def set_active(self, chat_id: int, active: bool) -> bool:
        result = dynamodb_next.update_item(
            self.table_name,
            Key=self._key(chat_id),
            UpdateExpression="SET active = :active, updated_at = :updated_at",
            ConditionExpression="attribute_exists(chat_id)",
            ExpressionAttributeValues={
                ":active": {"BOOL": active},
                ":updated_at": {"S": format_timestamp(utc_now())},
            },
        )
        if result.is_conflict:
            return False
        _require(result, "update_item", self.table_name)
        return True

    def list_subscriptions(self, active: Optional[bool] = None) -> List[Subscription]:
        kwargs: Dict[str, Any] = {}
        if active is not None:
            kwargs["FilterExpression"] = "active = :active"
            kwargs["ExpressionAttributeValues"] = {":active": {"BOOL": active}}
        result = _require(
            dynamodb_next.scan(self.table_name, **kwargs), "scan", self.table_name
        )
        rows = [
            Subscription.model_validate(dynamodb_next.deserialize_item(item))
            for item in result.data or []
        ]
        return sorted(rows, key=lambda r: r.created_at, reverse=True)

    def count(self, active: Optional[bool] = None) -> int:
        return len(self.list_subscriptions(active=active))

    def delete(self, chat_id: int) -> bool:
        result = _require(
            dynamodb_next.delete_item(
                self.table_name, Key=self._key(chat_id), ReturnValues="ALL_OLD"
            ),
            "delete_item",
            self.table_name,
        )
        return bool((result.data or {}).get("Attributes"))


class DynamoDBAllowedUserStore:
    def __init__(self, table_name: str) -> None:
        self.table_name = table_name

    def list_users(self) -> List[AllowedUser]:
        result = _require(
            dynamodb_next.scan(self.table_name), "scan", self.table_name
        )
        users = [
            AllowedUser.model_validate(dynamodb_next.deserialize_item(item))
            for item in result.data or []
        ]
        return sorted(users, key=lambda u: u.username)

    def list_usernames(self) -> List[str]:
        result = _require(
            dynamodb_next.scan(self.table_name, ProjectionExpression="username"),
            "scan",
            self.table_name,
        )
        return [item["username"]["S"] for item in result.data or []]

    def add(self, user: AllowedUser) -> AllowedUser:
        result = dynamodb_next.put_item(
            self.table_name,
            Item=_to_item(user),
            ConditionExpression="attribute_not_exists(username)",
        )
        if result.is_conflict:
            raise DuplicateRecordError(f"username {user.username!r} already exists")
        _require(result, "put_item", self.table_name)
        return user

    def delete(self, username: str) -> bool:
        result = _require(
            dynamodb_next.delete_item(
                self.table_name,
                Key={"username": {"S": username}},
                ReturnValues="ALL_OLD",
            ),
            "delete_item",
            self.table_name,
        )
        return bool((result.data or {}).get("Attributes"))


def _event_filter(
    event_type: Optional[str],
    action: Optional[str],
    chat_id: Optional[int],
    since: Optional[datetime],
) -> Dict[str, Any]:
    """Build scan kwargs for the event filters."""
    clauses = []
    names: Dict[str, str] = {}
    values: Dict[str, Any] = {}
    if event_type is not None:
        clauses.append("#event_type = :event_type")
        names["#event_type"] = "event_type"
        values[":event_type"] = {"S": event_type}
    if action is not None:
        clauses.append("#action = :action")
        names["#action"] = "action"
        values[":action"] = {"S": action}
    if chat_id is not None:
        clauses.append("chat_id = :chat_id")
        values[":chat_id"] = {"N": str(chat_id)}
    if since is not None:
        clauses.append("created_at >= :since")
        values[":since"] = {"S": format_timestamp(since)}
    if not clauses:
        return {}

    kwargs: Dict[str, Any] = {
        "FilterExpression": " AND ".join(clauses),
        "ExpressionAttributeValues": values,
    }
    if names:
        kwargs["ExpressionAttributeNames"] = names
    return kwargs


class DynamoDBEventStore:
    def __init__(self, table_name: str) -> None:
        self.table_name = table_name

    def insert(self, event: Event) -> Event:
        _require(
            dynamodb_next.put_item(self.table_name, Item=_to_item(event)),
            "put_item",
            self.table_name,
        )
        return event

    def _scan(
        self,
        event_type: Optional[str],
        action: Optional[str],
        chat_id: Optional[int],
        since: Optional[datetime],
    ) -> List[Event]:
        kwargs = _event_filter(event_type, action, chat_id, since)
        result = _require(
            dynamodb_next.scan(self.table_name, **kwargs), "scan", self.table_name
        )
        return [
            Event.model_validate(dynamodb_next.deserialize_item(item))
            for item in result.data or []
        ]

    def query(
        self,
        event_type: Optional[str] = None,
        action: Optional[str] = None,
        chat_id: Optional[int] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Event]:
        rows = self._scan(event_type, action, chat_id, since)
        rows.sort(key=lambda e: e.created_at, reverse=True)
        end = None if limit is None else offset + limit
        return rows[offset:end]

    def count(
        self,
        event_type: Optional[str] = None,
        action: Optional[str] = None,
        chat_id: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> int:
        return len(self._scan(event_type, action, chat_id, since))

    def delete_older_than(self, cutoff: datetime) -> int:
        result = _require(
            dynamodb_next.scan(
                self.table_name,
                FilterExpression="created_at < :cutoff",
                ExpressionAttributeValues={":cutoff": {"S": format_timestamp(cutoff)}},
                ProjectionExpression="event_id",
            ),
            "scan",
            self.table_name,
        )
        keys = [{"event_id": item["event_id"]} for item in result.data or []]
        if not keys:
            return 0
        deleted = _require(
            dynamodb_next.batch_delete(self.table_name, keys),
            "batch_write_item",
            self.table_name,
        )
        return deleted.data
