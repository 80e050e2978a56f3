"""Storage protocols and in-memory implementations.

Three record kinds are stored:

- Subscription, unique by `chat_id`
- AllowedUser, unique by `username` (exact match)
- Event, append-only, pruned by age

Every write is a single-record upsert or delete. Concurrent writers to the
same Subscription resolve as last-write-wins.
"""

import threading
from datetime import datetime
from typing import Dict, List, Optional, Protocol

from modules.bot_engine.models import (
    AllowedUser,
    DuplicateRecordError,
    Event,
    Subscription,
    as_utc,
    utc_now,
)


class SubscriptionStore(Protocol):
    def get(self, chat_id: int) -> Optional[Subscription]: ...

    def save(self, subscription: Subscription) -> Subscription:
        """Insert or replace the Subscription for its chat_id."""
        ...

    def set_active(self, chat_id: int, active: bool) -> bool:
        """Toggle `active` on an existing Subscription.

        Returns:
            False when no Subscription exists for chat_id (nothing is created).
        """
        ...

    def list_subscriptions(self, active: Optional[bool] = None) -> List[Subscription]:
        """Return Subscriptions, newest first, optionally filtered by `active`."""
        ...

    def count(self, active: Optional[bool] = None) -> int: ...

    def delete(self, chat_id: int) -> bool: ...


class AllowedUserStore(Protocol):
    def list_users(self) -> List[AllowedUser]:
        """Return allowed users ordered by username."""
        ...

    def list_usernames(self) -> List[str]: ...

    def add(self, user: AllowedUser) -> AllowedUser:
        """Insert a new allowed user.

        Raises:
            DuplicateRecordError: The username already exists.
        """
        ...

    def delete(self, username: str) -> bool: ...


class EventStore(Protocol):
    def insert(self, event: Event) -> Event: ...

    def query(
        self,
        event_type: Optional[str] = None,
        action: Optional[str] = None,
        chat_id: Optional[int] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Event]:
        """Return matching events, newest first.

        Filters are exact matches; `since` is an inclusive lower bound on
        `created_at`.
        """
        ...

    def count(
        self,
        event_type: Optional[str] = None,
        action: Optional[str] = None,
        chat_id: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> int: ...

    def delete_older_than(self, cutoff: datetime) -> int:
        """Delete events with `created_at` strictly before `cutoff`."""
        ...


class InMemorySubscriptionStore:
    def __init__(self) -> None:
        self._rows: Dict[int, Subscription] = {}
        self._lock = threading.Lock()

    def get(self, chat_id: int) -> Optional[Subscription]:
        with self._lock:
            row = self._rows.get(chat_id)
            return row.model_copy(deep=True) if row else None

    def save(self, subscription: Subscription) -> Subscription:
        with self._lock:
            stored = subscription.model_copy(deep=True, update={"updated_at": utc_now()})
            existing = self._rows.get(stored.chat_id)
            if existing is not None:
                stored = stored.model_copy(update={"created_at": existing.created_at})
            self._rows[stored.chat_id] = stored
            return stored.model_copy(deep=True)

    def set_active(self, chat_id: int, active: bool) -> bool:
        with self._lock:
            row = self._rows.get(chat_id)
            if row is None:
                return False
            self._rows[chat_id] = row.model_copy(
                update={"active": active, "updated_at": utc_now()}
            )
            return True

    def list_subscriptions(self, active: Optional[bool] = None) -> List[Subscription]:
        with self._lock:
            rows = [
                r.model_copy(deep=True)
                for r in self._rows.values()
                if active is None or r.active == active
            ]
        return sorted(rows, key=lambda r: r.created_at, reverse=True)

    def count(self, active: Optional[bool] = None) -> int:
        with self._lock:
            return sum(1 for r in self._rows.values() if active is None or r.active == active)

    def delete(self, chat_id: int) -> bool:
        with self._lock:
            return self._rows.pop(chat_id, None) is not None


class InMemoryAllowedUserStore:
    def __init__(self) -> None:
        self._rows: Dict[str, AllowedUser] = {}
        self._lock = threading.Lock()

    def list_users(self) -> List[AllowedUser]:
        with self._lock:
            return sorted(self._rows.values(), key=lambda u: u.username)

    def list_usernames(self) -> List[str]:
        return [u.username for u in self.list_users()]

    def add(self, user: AllowedUser) -> AllowedUser:
        with self._lock:
            if user.username in self._rows:
                raise DuplicateRecordError(f"username {user.username!r} already exists")
            self._rows[user.username] = user
            return user

    def delete(self, username: str) -> bool:
        with self._lock:
            return self._rows.pop(username, None) is not None


def _matches(
    event: Event,
    event_type: Optional[str],
    action: Optional[str],
    chat_id: Optional[int],
    since: Optional[datetime],
) -> bool:
    if event_type is not None and event.event_type != event_type:
        return False
    if action is not None and event.action != action:
        return False
    if chat_id is not None and event.chat_id != chat_id:
        return False
    if since is not None and event.created_at < as_utc(since):
        return False
    return True


class InMemoryEventStore:
    def __init__(self) -> None:
        self._rows: List[Event] = []
        self._lock = threading.Lock()

    def insert(self, event: Event) -> Event:
        with self._lock:
            self._rows.append(event)
        return event

    def query(
        self,
        event_type: Optional[str] = None,
        action: Optional[str] = None,
        chat_id: Optional[int] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Event]:
        with self._lock:
            rows = [
                e for e in self._rows if _matches(e, event_type, action, chat_id, since)
            ]
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
        with self._lock:
            return sum(
                1 for e in self._rows if _matches(e, event_type, action, chat_id, since)
            )

    def delete_older_than(self, cutoff: datetime) -> int:
        cutoff = as_utc(cutoff)
        with self._lock:
            kept = [e for e in self._rows if e.created_at >= cutoff]
            removed = len(self._rows) - len(kept)
            self._rows = kept
        return removed
