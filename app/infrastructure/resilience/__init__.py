"""Resilience patterns and implementations.

Contains the retry-backed work queue used for outbound message delivery.
"""

from infrastructure.resilience.retry import (
    InMemoryRetryStore,
    RetryConfig,
    RetryProcessor,
    RetryRecord,
    RetryResult,
    RetryStore,
    RetryWorker,
)

__all__ = [
    "RetryRecord",
    "RetryResult",
    "RetryConfig",
    "RetryStore",
    "InMemoryRetryStore",
    "RetryWorker",
    "RetryProcessor",
]
