"""Append-only audit log of engine activity.

Every command, authorization failure and delivery outcome is recorded as an
Event. Roughly one write in a hundred also purges events older than the
retention window, so no separate cleanup job is needed.
"""

import random
from enum import Enum
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from infrastructure.logging import get_module_logger
from modules.bot_engine.config import BotEngineConfig
from modules.bot_engine.models import Event, PersistenceError, as_utc, utc_now
from modules.bot_engine.stores import EventStore

logger = get_module_logger()

PURGE_ONE_IN = 100


def _as_text(value: Any) -> str:
    return value.value if isinstance(value, Enum) else str(value)


def random_purge_decider() -> bool:
    return random.randrange(PURGE_ONE_IN) == 0


class EventLog:
    """Records and queries audit events.

    Args:
        store: Event storage backend
        config: Engine configuration (event_logging, event_retention_days)
        purge_decider: Called after each insert; a true result triggers a purge
        clock: Returns the current UTC time
    """

    def __init__(
        self,
        store: EventStore,
        config: BotEngineConfig,
        purge_decider: Optional[Callable[[], bool]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.store = store
        self.config = config
        self._purge_decider = purge_decider or random_purge_decider
        self._clock = clock or utc_now

    @property
    def enabled(self) -> bool:
        return self.config.event_logging

    def log(
        self,
        event_type: str,
        action: str,
        chat_id: Optional[int] = None,
        username: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> Optional[Event]:
        """Record one event.

        Does nothing (and never purges) when event logging is disabled. A
        storage failure is logged and swallowed: auditing never breaks the
        flow that triggered it.

        Returns:
            The stored Event, or None when nothing was stored.
        """
        if not self.enabled:
            return None

        event = Event(
            event_type=_as_text(event_type),
            action=_as_text(action),
            chat_id=chat_id,
            username=username,
            details=details or {},
            created_at=self._clock(),
        )
        try:
            self.store.insert(event)
        except PersistenceError as e:
            logger.error(
                "event_log_write_failed",
                event_type=event.event_type,
                action=event.action,
                error=str(e),
            )
            return None

        if self._purge_decider():
            self.purge_old()

        return event

    def purge_old(self, now: Optional[datetime] = None) -> int:
        """Delete events strictly older than the retention window."""
        retention = timedelta(days=self.config.event_retention_days)
        cutoff = as_utc(now or self._clock()) - retention
        try:
            removed = self.store.delete_older_than(cutoff)
        except PersistenceError as e:
            logger.error("event_log_purge_failed", cutoff=cutoff.isoformat(), error=str(e))
            return 0
        logger.info("event_log_purged", removed=removed, cutoff=cutoff.isoformat())
        return removed

    def recent(
        self,
        event_type: Optional[str] = None,
        action: Optional[str] = None,
        chat_id: Optional[int] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Event]:
        """Return matching events, newest first."""
        return self.store.query(
            event_type=event_type,
            action=action,
            chat_id=chat_id,
            since=as_utc(since) if since else None,
            limit=limit,
            offset=offset,
        )

    def count(
        self,
        event_type: Optional[str] = None,
        action: Optional[str] = None,
        chat_id: Optional[int] = None,
        since: Optional[datetime] = None,
    ) -> int:
        return self.store.count(
            event_type=event_type,
            action=action,
            chat_id=chat_id,
            since=as_utc(since) if since else None,
        )
