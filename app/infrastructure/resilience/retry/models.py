"""Work queue models.

Core data structures for queued work items. Records are generic: the
operation type names the processor, the payload carries its data.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class RetryResult(Enum):
    """Outcome of processing a queued record.

    Values:
        SUCCESS: Operation completed (or resolved terminally), remove from queue
        RETRY: Operation failed but is retryable, schedule another attempt
        PERMANENT_FAILURE: Operation can never succeed, move to DLQ
    """

    SUCCESS = "success"
    RETRY = "retry"
    PERMANENT_FAILURE = "permanent_failure"


@dataclass
class RetryRecord:
    """A queued unit of work.

    Fields:
        id: Unique identifier (assigned by store)
        operation_type: Namespace identifier (e.g., "bot_engine.delivery")
        payload: Processor-specific data
        attempts: Number of failed attempts so far
        last_error: Last error message encountered
        created_at: When the record was first queued
        updated_at: When the record was last updated
        next_retry_at: When the record becomes due (set by the store)

    Example:
        record = RetryRecord(
            operation_type="bot_engine.delivery",
            payload={"chat_id": 42, "text": "hello", "options": {}},
        )
    """

    operation_type: str
    payload: Dict[str, Any]

    id: Optional[str] = None
    attempts: int = 0
    last_error: Optional[str] = None

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    next_retry_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        """Validate required fields."""
        if not self.operation_type:
            raise ValueError("operation_type is required")
        if not isinstance(self.payload, dict):
            raise ValueError("payload must be a dictionary")
