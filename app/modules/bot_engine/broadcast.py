"""Fan-out of one message to many chats.

Both operations return as soon as the work items are queued; delivery
outcomes are recorded by the delivery pipeline, never reported back here.
"""

from typing import Any

from infrastructure.logging import get_module_logger
from modules.bot_engine.delivery import DeliveryQueue, preview
from modules.bot_engine.event_log import EventLog
from modules.bot_engine.models import EventAction, EventType
from modules.bot_engine.stores import SubscriptionStore

logger = get_module_logger()


class Broadcaster:
    def __init__(
        self,
        subscriptions: SubscriptionStore,
        queue: DeliveryQueue,
        event_log: EventLog,
    ) -> None:
        self.subscriptions = subscriptions
        self.queue = queue
        self.event_log = event_log

    def broadcast(self, text: str, **options: Any) -> int:
        """Queue one delivery per active subscription.

        Returns:
            The number of deliveries queued.
        """
        count = 0
        for subscription in self.subscriptions.list_subscriptions(active=True):
            self.queue.enqueue(subscription.chat_id, text, options)
            count += 1

        logger.info("broadcast_queued", count=count)
        self.event_log.log(
            EventType.DELIVERY,
            EventAction.BROADCAST,
            details={"count": count, "text_preview": preview(text)},
        )
        return count

    def notify(self, chat_id: int, text: str, **options: Any) -> str:
        """Queue one delivery to a single chat, subscribed or not.

        Returns:
            The queued record ID.
        """
        record_id = self.queue.enqueue(chat_id, text, options)
        logger.info("notify_queued", chat_id=chat_id, record_id=record_id)
        self.event_log.log(
            EventType.DELIVERY,
            EventAction.NOTIFY,
            chat_id=chat_id,
            details={"text_preview": preview(text)},
        )
        return record_id
