"""Work queue configuration.

This module defines configuration for the retry-backed delivery queue.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from infrastructure.configuration import RetrySettings


@dataclass
class RetryConfig:
    """Configuration for work queue behavior.

    Controls backoff timing, total attempts, batch processing, claim leases
    and how often the background worker polls for due records.

    Attributes:
        max_attempts: Total attempts before a record moves to the DLQ
        base_delay_seconds: Base delay for exponential backoff
        max_delay_seconds: Maximum delay between attempts (backoff cap)
        batch_size: Number of records to process in a single batch
        claim_lease_seconds: How long a worker can hold a claim on a record
        poll_interval_seconds: Seconds between two batches of the worker loop

    Example:
        config = RetryConfig(max_attempts=3, base_delay_seconds=5)
    """

    max_attempts: int = 3
    base_delay_seconds: int = 5
    max_delay_seconds: int = 300
    batch_size: int = 25
    claim_lease_seconds: int = 120
    poll_interval_seconds: int = 2

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_seconds < 1:
            raise ValueError("base_delay_seconds must be at least 1")
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.claim_lease_seconds < 1:
            raise ValueError("claim_lease_seconds must be at least 1")
        if self.poll_interval_seconds < 1:
            raise ValueError("poll_interval_seconds must be at least 1")

    @classmethod
    def from_settings(cls, settings: "RetrySettings") -> "RetryConfig":
        """Build the queue configuration from RETRY_* environment settings."""
        return cls(
            max_attempts=settings.max_attempts,
            base_delay_seconds=settings.base_delay_seconds,
            max_delay_seconds=settings.max_delay_seconds,
            batch_size=settings.batch_size,
            claim_lease_seconds=settings.claim_lease_seconds,
            poll_interval_seconds=settings.poll_interval_seconds,
        )
