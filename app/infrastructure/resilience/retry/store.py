"""Work queue record storage.

Storage interface and in-memory implementation for queued records. The
protocol-based design lets a persistent backend replace the in-memory store
without touching the worker or the producers.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Protocol

from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry.config import RetryConfig
from infrastructure.resilience.retry.models import RetryRecord

logger = get_module_logger()


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _Claim:
    worker: str
    expires_at: datetime

    def active(self, now: datetime) -> bool:
        return self.expires_at > now


class RetryStore(Protocol):
    """Storage interface for queued records.

    Implementations must provide atomic claim semantics so that two workers
    never process the same record at the same time.

    Methods:
        save: Persist a new record, due immediately, and return its ID
        fetch_due: Return unclaimed records whose next attempt is due
        claim_record: Attempt to claim a record for processing
        mark_success: Remove a processed record from the queue
        mark_permanent_failure: Move a record to the dead letter queue
        increment_attempt: Count a failed attempt and reschedule (or DLQ)
    """

    def save(self, record: RetryRecord) -> str:
        """Persist a new record and return its ID."""
        ...

    def fetch_due(self, limit: int = 100) -> List[RetryRecord]:
        """Return up to `limit` unclaimed records that are due."""
        ...

    def claim_record(self, record_id: str, worker_id: str, lease_seconds: int) -> bool:
        """Attempt to claim a record for processing.

        Returns:
            True if claim succeeded, False if already claimed or gone
        """
        ...

    def mark_success(self, record_id: str) -> None:
        """Remove a processed record from the queue."""
        ...

    def mark_permanent_failure(self, record_id: str, reason: str) -> None:
        """Move a record to the dead letter queue."""
        ...

    def increment_attempt(
        self,
        record_id: str,
        last_error: str | None = None,
        retry_after: int | None = None,
    ) -> None:
        """Count a failed attempt, release the claim and reschedule.

        When the record has used all of its attempts it moves to the DLQ.
        `retry_after` (seconds) delays the next attempt at least that long,
        for transports that report rate limits.
        """
        ...


class InMemoryRetryStore:
    """Thread-safe in-memory RetryStore with exponential backoff.

    Supports:
    - Configurable exponential backoff and total attempts
    - Dead letter queue for exhausted or permanently failed records
    - Claim-based processing (prevents duplicate work)

    Suitable for single-process deployments and tests. Records do not survive
    a restart.

    Attributes:
        config: RetryConfig controlling retry behavior
        clock: Returns the current UTC time
    """

    def __init__(
        self,
        config: RetryConfig | None = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._store: Dict[str, RetryRecord] = {}
        self._claims: Dict[str, _Claim] = {}
        self._dlq: Dict[str, RetryRecord] = {}
        self._lock = threading.Lock()
        self._next_id = 1

        self.config = config or RetryConfig()
        self._clock = clock or _utc_now

    def save(self, record: RetryRecord) -> str:
        """Save a new record, due immediately."""
        with self._lock:
            record_id = str(self._next_id)
            self._next_id += 1
            now = self._clock()
            record.id = record_id
            record.attempts = 0
            record.created_at = now
            record.updated_at = now
            record.next_retry_at = now
            self._store[record_id] = record

            logger.debug(
                "retry_record_saved",
                record_id=record_id,
                operation_type=record.operation_type,
            )
            return record_id

    def fetch_due(self, limit: int = 100) -> List[RetryRecord]:
        """Return unclaimed due records, oldest due time first."""
        with self._lock:
            now = self._clock()
            due = []

            for record_id, record in self._store.items():
                claim = self._claims.get(record_id)
                if claim is not None:
                    if claim.active(now):
                        continue
                    del self._claims[record_id]
                    logger.debug(
                        "retry_claim_expired",
                        record_id=record_id,
                        worker=claim.worker,
                    )

                if record.next_retry_at and record.next_retry_at <= now:
                    due.append(record)

            due.sort(key=lambda r: r.next_retry_at or now)
            return due[:limit]

    def claim_record(self, record_id: str, worker_id: str, lease_seconds: int) -> bool:
        """Claim a record for processing."""
        with self._lock:
            if record_id not in self._store:
                logger.warning("retry_claim_failed_not_found", record_id=record_id)
                return False

            now = self._clock()
            claim = self._claims.get(record_id)
            if claim is not None and claim.active(now):
                logger.debug(
                    "retry_claim_failed_already_claimed",
                    record_id=record_id,
                    current_worker=claim.worker,
                )
                return False

            self._claims[record_id] = _Claim(
                worker=worker_id, expires_at=now + timedelta(seconds=lease_seconds)
            )
            return True

    def mark_success(self, record_id: str) -> None:
        """Remove a processed record from the queue."""
        with self._lock:
            record = self._store.pop(record_id, None)
            self._claims.pop(record_id, None)
            if record is not None:
                logger.debug(
                    "retry_success",
                    record_id=record_id,
                    operation_type=record.operation_type,
                    attempts=record.attempts,
                )

    def mark_permanent_failure(self, record_id: str, reason: str) -> None:
        """Move a record to the dead letter queue."""
        with self._lock:
            self._mark_permanent_failure_locked(record_id, reason)

    def _mark_permanent_failure_locked(self, record_id: str, reason: str) -> None:
        rec = self._store.pop(record_id, None)
        self._claims.pop(record_id, None)
        if rec is None:
            return

        rec.last_error = reason
        rec.updated_at = self._clock()
        self._dlq[record_id] = rec

        logger.warning(
            "retry_permanent_failure",
            record_id=record_id,
            operation_type=rec.operation_type,
            attempts=rec.attempts,
            reason=reason,
        )

    def increment_attempt(
        self,
        record_id: str,
        last_error: str | None = None,
        retry_after: int | None = None,
    ) -> None:
        """Count a failed attempt and reschedule, or move to the DLQ."""
        with self._lock:
            rec = self._store.get(record_id)
            if not rec:
                logger.warning("retry_increment_failed_not_found", record_id=record_id)
                return

            rec.attempts += 1
            rec.last_error = last_error
            rec.updated_at = self._clock()

            if rec.attempts >= self.config.max_attempts:
                self._mark_permanent_failure_locked(
                    record_id,
                    f"Max attempts ({self.config.max_attempts}) exceeded: {last_error}",
                )
                return

            retry_delay = self._calculate_retry_delay(rec.attempts)
            if retry_after is not None:
                retry_delay = max(retry_delay, retry_after)
            rec.next_retry_at = rec.updated_at + timedelta(seconds=retry_delay)
            self._claims.pop(record_id, None)

            logger.info(
                "retry_scheduled",
                record_id=record_id,
                operation_type=rec.operation_type,
                attempts=rec.attempts,
                max_attempts=self.config.max_attempts,
                next_retry_in_seconds=retry_delay,
            )

    def _calculate_retry_delay(self, attempts: int) -> int:
        """Exponential backoff: base_delay * (2 ^ attempts), capped at max_delay."""
        delay = self.config.base_delay_seconds * (2**attempts)
        return min(delay, self.config.max_delay_seconds)

    def get_record(self, record_id: str) -> Optional[RetryRecord]:
        """Return a queued (not dead-lettered) record by ID."""
        with self._lock:
            return self._store.get(record_id)

    def pending(self, operation_type: str | None = None) -> List[RetryRecord]:
        """Return queued records, optionally filtered by operation type."""
        with self._lock:
            return [
                r
                for r in self._store.values()
                if operation_type is None or r.operation_type == operation_type
            ]

    def get_dlq_entries(self) -> List[RetryRecord]:
        """Return records that have permanently failed."""
        with self._lock:
            return list(self._dlq.values())

    def get_stats(self) -> dict:
        """Return counts of active, claimed, and DLQ records."""
        with self._lock:
            return {
                "active_records": len(self._store),
                "claimed_records": len(self._claims),
                "dlq_records": len(self._dlq),
            }
