"""Engine assembly.

`build_engine()` wires every component from settings; hosts normally use
the cached instance from `infrastructure.services.get_engine()`, after
`configure_engine()` when the environment cannot express their setup.

Example:
    from infrastructure.services import get_engine

    engine = get_engine()
    engine.register_command("status", lambda ctx: "All good")
    engine.broadcast("Deploy finished", parse_mode="Markdown")
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from infrastructure.logging import get_module_logger
from infrastructure.resilience.retry import (
    InMemoryRetryStore,
    RetryConfig,
    RetryStore,
    RetryWorker,
)
from integrations.telegram import TelegramApiError, TelegramClient
from modules.bot_engine.admin import AdminService
from modules.bot_engine.allowlist import AllowlistResolver
from modules.bot_engine.broadcast import Broadcaster
from modules.bot_engine.commands import CommandGateway, CommandHandler
from modules.bot_engine.config import BotEngineConfig
from modules.bot_engine.delivery import (
    DeliveryPipeline,
    DeliveryProcessor,
    DeliveryQueue,
    Transport,
)
from modules.bot_engine.dynamodb_stores import (
    DynamoDBAllowedUserStore,
    DynamoDBEventStore,
    DynamoDBSubscriptionStore,
)
from modules.bot_engine.event_log import EventLog
from modules.bot_engine.stores import (
    AllowedUserStore,
    EventStore,
    InMemoryAllowedUserStore,
    InMemoryEventStore,
    InMemorySubscriptionStore,
    SubscriptionStore,
)

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

logger = get_module_logger()


class UnconfiguredTransport:
    """Stands in for the Bot API client when no token is configured.

    Every send fails as a retryable error, so queued deliveries end in the
    dead letter queue instead of disappearing.
    """

    def send_message(self, chat_id: int, text: str, **options: Any) -> Any:
        raise TelegramApiError(
            "TELEGRAM_BOT_TOKEN is not configured", error_code="NOT_CONFIGURED"
        )


@dataclass
class BotEngine:
    config: BotEngineConfig
    subscriptions: SubscriptionStore
    allowed_users: AllowedUserStore
    events: EventStore
    event_log: EventLog
    authorizer: AllowlistResolver
    transport: Transport
    gateway: CommandGateway
    retry_config: RetryConfig
    retry_store: RetryStore
    queue: DeliveryQueue
    pipeline: DeliveryPipeline
    worker: RetryWorker
    broadcaster: Broadcaster
    admin: AdminService

    def broadcast(self, text: str, **options: Any) -> int:
        return self.broadcaster.broadcast(text, **options)

    def notify(self, chat_id: int, text: str, **options: Any) -> str:
        return self.broadcaster.notify(chat_id, text, **options)

    def register_command(
        self, name: str, handler: CommandHandler, description: str = ""
    ) -> None:
        self.gateway.register_command(name, handler, description)


def _build_stores(settings: "Settings"):
    engine_settings = settings.bot_engine
    if engine_settings.storage_backend == "dynamodb":
        return (
            DynamoDBSubscriptionStore(engine_settings.subscriptions_table),
            DynamoDBAllowedUserStore(engine_settings.allowed_users_table),
            DynamoDBEventStore(engine_settings.events_table),
        )
    return (
        InMemorySubscriptionStore(),
        InMemoryAllowedUserStore(),
        InMemoryEventStore(),
    )


def _build_transport(settings: "Settings") -> Transport:
    telegram = settings.telegram
    if not telegram.TELEGRAM_BOT_TOKEN:
        logger.warning("telegram_token_missing")
        return UnconfiguredTransport()
    return TelegramClient(
        token=telegram.TELEGRAM_BOT_TOKEN,
        api_url=telegram.TELEGRAM_API_URL,
        timeout=telegram.TELEGRAM_TIMEOUT_SECONDS,
    )


def _bot_username_lookup(transport: Transport):
    if not isinstance(transport, TelegramClient):
        return None

    def lookup() -> Optional[str]:
        result = transport.get_me()
        if not result.is_success:
            return None
        return (result.data or {}).get("username")

    return lookup


def build_engine(
    settings: "Settings",
    config: Optional[BotEngineConfig] = None,
    transport: Optional[Transport] = None,
    retry_store: Optional[RetryStore] = None,
    stores: Optional[tuple] = None,
) -> BotEngine:
    """Wire a BotEngine.

    Args:
        settings: Application settings
        config: Overrides the configuration derived from settings.bot_engine
        transport: Overrides the Telegram client
        retry_store: Overrides the in-memory delivery queue store
        stores: Overrides the (subscriptions, allowed_users, events) stores
    """
    config = config or BotEngineConfig.from_settings(settings.bot_engine)
    subscriptions, allowed_users, events = stores or _build_stores(settings)
    if transport is None:
        transport = _build_transport(settings)

    retry_config = RetryConfig.from_settings(settings.retry)
    if retry_store is None:
        retry_store = InMemoryRetryStore(retry_config)

    event_log = EventLog(events, config)
    authorizer = AllowlistResolver(config.allowed_usernames, allowed_users)
    gateway = CommandGateway(
        config, authorizer, subscriptions, event_log, transport=transport
    )
    queue = DeliveryQueue(retry_store)
    pipeline = DeliveryPipeline(transport, subscriptions, event_log)
    worker = RetryWorker(retry_store, DeliveryProcessor(pipeline), retry_config)
    broadcaster = Broadcaster(subscriptions, queue, event_log)
    admin = AdminService(
        subscriptions,
        allowed_users,
        authorizer,
        event_log,
        bot_username=_bot_username_lookup(transport),
    )

    logger.info(
        "bot_engine_built",
        storage_backend=settings.bot_engine.storage_backend,
        allowlist_policy=type(authorizer.policy).__name__,
        event_logging=config.event_logging,
    )

    return BotEngine(
        config=config,
        subscriptions=subscriptions,
        allowed_users=allowed_users,
        events=events,
        event_log=event_log,
        authorizer=authorizer,
        transport=transport,
        gateway=gateway,
        retry_config=retry_config,
        retry_store=retry_store,
        queue=queue,
        pipeline=pipeline,
        worker=worker,
        broadcaster=broadcaster,
        admin=admin,
    )
