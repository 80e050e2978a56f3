"""Domain models and store errors for the bot engine.

Pydantic models validate at the store boundary: an AllowedUser with an
empty username or an Event without a type never reaches a backend.
"""

import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat a naive datetime as UTC and convert an aware one to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class EventType(str, Enum):
    """Event types written by the engine. Hosts may log their own."""

    COMMAND = "command"
    AUTH_FAILURE = "auth_failure"
    DELIVERY = "delivery"


class EventAction(str, Enum):
    """Event actions written by the engine. Hosts may log their own."""

    START = "start"
    STOP = "stop"
    HELP = "help"
    UNAUTHORIZED = "unauthorized"
    DELIVERED = "delivered"
    BLOCKED = "blocked"
    BROADCAST = "broadcast"
    NOTIFY = "notify"


class Subscription(BaseModel):
    """A chat that receives broadcasts while `active` is true.

    At most one Subscription exists per `chat_id`.
    """

    chat_id: int
    user_id: Optional[int] = None
    username: Optional[str] = None
    first_name: Optional[str] = None
    active: bool = True
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class AllowedUser(BaseModel):
    """A username admitted by the persisted allowlist policy.

    Stored as entered; compared case-insensitively.
    """

    username: str = Field(min_length=1)
    note: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("username")
    @classmethod
    def _strip_username(cls, v: str) -> str:
        stripped = v.strip().lstrip("@")
        if not stripped:
            raise ValueError("username must not be blank")
        return stripped


class Event(BaseModel):
    """An immutable audit record."""

    model_config = ConfigDict(frozen=True)

    event_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    event_type: str = Field(min_length=1)
    action: str = Field(min_length=1)
    chat_id: Optional[int] = None
    username: Optional[str] = None
    details: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)

    @field_validator("created_at")
    @classmethod
    def _created_at_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class PersistenceError(Exception):
    """The storage backend failed (network, throttling, missing table)."""


class DuplicateRecordError(ValueError):
    """A record with the same unique key already exists."""


class RecordNotFoundError(LookupError):
    """The record addressed by an administrative action does not exist."""
