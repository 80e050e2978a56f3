"""Shared fixtures for the delivery work queue tests."""

from typing import Any, Dict

import pytest

from infrastructure.resilience.retry import (
    InMemoryRetryStore,
    RetryConfig,
    RetryRecord,
    RetryResult,
)


@pytest.fixture
def retry_config_factory():
    def _factory(
        max_attempts: int = 3,
        base_delay_seconds: int = 5,
        max_delay_seconds: int = 300,
        batch_size: int = 25,
        claim_lease_seconds: int = 120,
    ) -> RetryConfig:
        return RetryConfig(
            max_attempts=max_attempts,
            base_delay_seconds=base_delay_seconds,
            max_delay_seconds=max_delay_seconds,
            batch_size=batch_size,
            claim_lease_seconds=claim_lease_seconds,
        )

    return _factory


@pytest.fixture
def retry_record_factory():
    def _factory(
        operation_type: str = "bot_engine.delivery",
        payload: Dict[str, Any] | None = None,
    ) -> RetryRecord:
        if payload is None:
            payload = {"chat_id": 42, "text": "hello", "options": {}}
        return RetryRecord(operation_type=operation_type, payload=payload)

    return _factory


@pytest.fixture
def retry_store(retry_config_factory):
    return InMemoryRetryStore(retry_config_factory())


@pytest.fixture
def mock_processor():
    """Processor returning a configurable result, or raising."""

    class MockProcessor:
        def __init__(self):
            self.processed_records = []
            self.result = RetryResult.SUCCESS
            self.error = None

        def process_record(self, record: RetryRecord) -> RetryResult:
            self.processed_records.append(record)
            if self.error is not None:
                raise self.error
            return self.result

    return MockProcessor()
