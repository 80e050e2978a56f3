"""Outbound message delivery.

Each outbound message to one chat is a work item on the delivery queue. The
DeliveryProcessor runs it through the DeliveryPipeline:

- success: a `delivered` event is recorded
- the chat can no longer be reached (bot blocked or removed): the
  subscription is deactivated, a `blocked` event is recorded and the item is
  done
- a Bot API error that cannot succeed on retry (bad request, invalid token)
  sends the item straight to the dead letter queue
- any other failure propagates, so the worker retries it with backoff until
  the attempts are exhausted and the item lands in the dead letter queue

Delivering the same item twice sends the message twice; the queue is
at-least-once.
"""

from typing import Any, Dict, Optional, Protocol

from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry import RetryRecord, RetryResult, RetryStore
from integrations.telegram import TelegramError, TelegramForbiddenError
from modules.bot_engine.event_log import EventLog
from modules.bot_engine.models import EventAction, EventType
from modules.bot_engine.stores import SubscriptionStore

logger = get_module_logger()

DELIVERY_OPERATION = "bot_engine.delivery"
PREVIEW_LENGTH = 100


class Transport(Protocol):
    def send_message(self, chat_id: int, text: str, **options: Any) -> Any:
        """Send a message.

        Raises:
            TelegramForbiddenError: The chat can no longer be reached
            Exception: Any other failure (retryable)
        """
        ...


def normalize_options(options: Optional[Dict[Any, Any]]) -> Dict[str, Any]:
    return {str(key): value for key, value in (options or {}).items()}


def preview(text: str) -> str:
    return text[:PREVIEW_LENGTH]


class DeliveryQueue:
    """Producer side of the delivery queue."""

    def __init__(self, store: RetryStore) -> None:
        self.store = store

    def enqueue(
        self, chat_id: int, text: str, options: Optional[Dict[Any, Any]] = None
    ) -> str:
        record = RetryRecord(
            operation_type=DELIVERY_OPERATION,
            payload={
                "chat_id": chat_id,
                "text": text,
                "options": normalize_options(options),
            },
        )
        return self.store.save(record)


class DeliveryPipeline:
    """Sends one message and interprets the outcome."""

    def __init__(
        self,
        transport: Transport,
        subscriptions: SubscriptionStore,
        event_log: EventLog,
    ) -> None:
        self.transport = transport
        self.subscriptions = subscriptions
        self.event_log = event_log

    def deliver(
        self, chat_id: int, text: str, options: Optional[Dict[Any, Any]] = None
    ) -> bool:
        """Deliver one message.

        Returns:
            True when sent, False when the chat could not be reached.

        Raises:
            Exception: Any transport failure other than an unreachable chat.
        """
        try:
            self.transport.send_message(chat_id, text, **normalize_options(options))
        except TelegramForbiddenError as e:
            deactivated = self.subscriptions.set_active(chat_id, False)
            logger.warning(
                "delivery_blocked",
                chat_id=chat_id,
                error=str(e),
                subscription_deactivated=deactivated,
            )
            self.event_log.log(
                EventType.DELIVERY,
                EventAction.BLOCKED,
                chat_id=chat_id,
                details={"error": str(e)},
            )
            return False

        logger.info("delivery_succeeded", chat_id=chat_id)
        self.event_log.log(
            EventType.DELIVERY,
            EventAction.DELIVERED,
            chat_id=chat_id,
            details={"text_preview": preview(text)},
        )
        return True


class DeliveryProcessor:
    """Consumer side of the delivery queue, run by the RetryWorker."""

    def __init__(self, pipeline: DeliveryPipeline) -> None:
        self.pipeline = pipeline

    def process_record(self, record: RetryRecord) -> RetryResult:
        if record.operation_type != DELIVERY_OPERATION:
            logger.error(
                "delivery_unexpected_operation",
                record_id=record.id,
                operation_type=record.operation_type,
            )
            return RetryResult.PERMANENT_FAILURE

        payload = record.payload
        if "chat_id" not in payload or "text" not in payload:
            logger.error("delivery_payload_invalid", record_id=record.id)
            return RetryResult.PERMANENT_FAILURE

        try:
            self.pipeline.deliver(
                payload["chat_id"], payload["text"], payload.get("options")
            )
        except TelegramError as e:
            if e.retryable:
                raise
            logger.error(
                "delivery_failed_permanently",
                record_id=record.id,
                chat_id=payload["chat_id"],
                error=str(e),
                error_code=e.error_code,
            )
            return RetryResult.PERMANENT_FAILURE
        return RetryResult.SUCCESS
