"""Work queue worker and processor protocol.

The worker owns the queue mechanics (fetch, claim, record the outcome); the
operation-specific logic lives in a RetryProcessor.
"""

from typing import Protocol

from infrastructure.logging import bind_request_context, get_module_logger
from infrastructure.resilience.retry.config import RetryConfig
from infrastructure.resilience.retry.models import RetryRecord, RetryResult
from infrastructure.resilience.retry.store import RetryStore

logger = get_module_logger()

_STAT_KEYS = {
    RetryResult.SUCCESS: "successful",
    RetryResult.RETRY: "retried",
    RetryResult.PERMANENT_FAILURE: "permanent_failures",
}


class RetryProcessor(Protocol):
    """Protocol for operation-specific processing logic.

    A processor returns a RetryResult for outcomes it understands. Any
    exception it raises is treated by the worker as a retryable failure;
    an exception carrying a `retry_after` attribute (seconds) delays the
    next attempt at least that long.

    Example:
        class DeliveryProcessor:
            def process_record(self, record: RetryRecord) -> RetryResult:
                pipeline.deliver(**record.payload)
                return RetryResult.SUCCESS
    """

    def process_record(self, record: RetryRecord) -> RetryResult:
        """Process a queued record and report the outcome."""
        ...


class RetryWorker:
    """Worker processing batches of queued records.

    Each due record is claimed before processing, so several workers (or
    an overlapping scheduler run) never deliver the same message twice
    within one claim lease.

    Attributes:
        store: RetryStore holding queued records
        processor: RetryProcessor for operation-specific logic
        config: RetryConfig controlling batch size and claim lease
        worker_id: Identifier for this worker instance
    """

    def __init__(
        self,
        store: RetryStore,
        processor: RetryProcessor,
        config: RetryConfig | None = None,
        worker_id: str = "delivery-worker-1",
    ) -> None:
        self.store = store
        self.processor = processor
        self.config = config or RetryConfig()
        self.worker_id = worker_id
        self.log = logger.bind(worker_id=worker_id)

    def process_batch(self) -> dict:
        """Process one batch of due records.

        Safe to call repeatedly; records claimed by another worker are skipped.

        Returns:
            Dictionary with processing statistics:
                - processed: Number of records processed
                - successful: Number of records completed
                - retried: Number of records re-scheduled (or exhausted)
                - permanent_failures: Number moved to DLQ by the processor
                - skipped: Number that couldn't be claimed
        """
        stats = {
            "processed": 0,
            "successful": 0,
            "retried": 0,
            "permanent_failures": 0,
            "skipped": 0,
        }

        records = self.store.fetch_due(limit=self.config.batch_size)
        if not records:
            return stats

        self.log.info("retry_batch_start", record_count=len(records))

        for record in records:
            if not self.store.claim_record(
                record.id,  # type: ignore
                self.worker_id,
                self.config.claim_lease_seconds,
            ):
                self.log.debug("retry_record_skipped_claim_failed", record_id=record.id)
                stats["skipped"] += 1
                continue

            with bind_request_context(
                correlation_id=f"{record.operation_type}:{record.id}:{record.attempts + 1}",
                record_id=record.id,
            ):
                result = self._process_record(record)

            stats["processed"] += 1
            stats[_STAT_KEYS[result]] += 1

        self.log.info("retry_batch_complete", **stats)
        return stats

    def _process_record(self, record: RetryRecord) -> RetryResult:
        """Run the processor on one claimed record and record the outcome."""
        self.log.debug(
            "retry_record_processing",
            record_id=record.id,
            operation_type=record.operation_type,
            attempt=record.attempts + 1,
        )

        try:
            result = self.processor.process_record(record)
        except Exception as e:  # pylint: disable=broad-except
            self.log.warning(
                "retry_processor_exception",
                record_id=record.id,
                operation_type=record.operation_type,
                attempt=record.attempts + 1,
                error=str(e),
                error_type=type(e).__name__,
            )
            self.store.increment_attempt(
                record.id,  # type: ignore
                last_error=f"{type(e).__name__}: {str(e)}",
                retry_after=getattr(e, "retry_after", None),
            )
            return RetryResult.RETRY

        record_id: str = record.id  # type: ignore
        match result:
            case RetryResult.SUCCESS:
                self.store.mark_success(record_id)
            case RetryResult.PERMANENT_FAILURE:
                self.store.mark_permanent_failure(
                    record_id, reason="Processor returned permanent failure"
                )
            case RetryResult.RETRY:
                self.store.increment_attempt(
                    record_id, last_error="Operation failed, will retry"
                )

        return result
