"""Delivery work queue infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class RetrySettings(InfrastructureSettings):
    """Work queue configuration for outbound message delivery.

    Every broadcast or notify call enqueues one record per target chat. The
    delivery worker claims due records in batches and retries transient
    failures with exponential backoff until `max_attempts` is reached, after
    which the record moves to the dead letter queue.

    Environment Variables:
        RETRY_ENABLED: Start the background delivery worker (default: True)
        RETRY_MAX_ATTEMPTS: Total delivery attempts before DLQ (default: 3)
        RETRY_BASE_DELAY_SECONDS: Base exponential backoff delay (default: 5s)
        RETRY_MAX_DELAY_SECONDS: Maximum backoff delay (default: 300s)
        RETRY_BATCH_SIZE: Records to process per batch (default: 25)
        RETRY_CLAIM_LEASE_SECONDS: Claim duration (default: 120s)
        RETRY_POLL_INTERVAL_SECONDS: Worker polling interval (default: 2s)

    Exponential Backoff:
        Delay calculation: min(base_delay * (2 ^ attempt), max_delay)

        Example with defaults (base=5s, max=300s):
            Attempt 1: 10s
            Attempt 2: 20s
            Attempt 3: moved to DLQ

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        if settings.retry.enabled:
            max_attempts = settings.retry.max_attempts
        ```
    """

    enabled: bool = Field(
        default=True,
        alias="RETRY_ENABLED",
        description="Start the background delivery worker",
    )
    max_attempts: int = Field(
        default=3,
        alias="RETRY_MAX_ATTEMPTS",
        description="Total delivery attempts before moving to DLQ",
    )
    base_delay_seconds: int = Field(
        default=5,
        alias="RETRY_BASE_DELAY_SECONDS",
        description="Base delay for exponential backoff (seconds)",
    )
    max_delay_seconds: int = Field(
        default=300,
        alias="RETRY_MAX_DELAY_SECONDS",
        description="Maximum delay for exponential backoff (seconds)",
    )
    batch_size: int = Field(
        default=25,
        alias="RETRY_BATCH_SIZE",
        description="Number of records to process per batch",
    )
    claim_lease_seconds: int = Field(
        default=120,
        alias="RETRY_CLAIM_LEASE_SECONDS",
        description="Duration to hold claim on a queued delivery (seconds)",
    )
    poll_interval_seconds: int = Field(
        default=2,
        alias="RETRY_POLL_INTERVAL_SECONDS",
        description="How often the delivery worker polls the queue (seconds)",
    )
