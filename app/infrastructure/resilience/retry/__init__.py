"""Retry-backed work queue.

Queued work items (for example one outbound message to one chat) are stored
as RetryRecords, processed by a RetryWorker in batches and retried with
exponential backoff until they succeed or exhaust their attempts.

Architecture:
- RetryRecord: Generic data model for a queued work item
- RetryStore: Storage protocol with an in-memory implementation
- RetryWorker: Batch processor claiming and dispatching due records
- RetryProcessor: Protocol for operation-specific processing logic
- RetryConfig: Configuration for backoff, attempts and batching

Usage:
    from infrastructure.resilience.retry import (
        InMemoryRetryStore,
        RetryConfig,
        RetryRecord,
        RetryWorker,
    )

    config = RetryConfig(max_attempts=3)
    store = InMemoryRetryStore(config)
    store.save(RetryRecord(operation_type="bot_engine.delivery", payload={...}))

    worker = RetryWorker(store, processor, config)
    worker.process_batch()
"""

from infrastructure.resilience.retry.config import RetryConfig
from infrastructure.resilience.retry.models import RetryRecord, RetryResult
from infrastructure.resilience.retry.store import InMemoryRetryStore, RetryStore
from infrastructure.resilience.retry.worker import RetryProcessor, RetryWorker

__all__ = [
    # Models
    "RetryRecord",
    "RetryResult",
    # Configuration
    "RetryConfig",
    # Store
    "RetryStore",
    "InMemoryRetryStore",
    # Worker
    "RetryWorker",
    "RetryProcessor",
]
