"""Telegram subscription and broadcast engine.

Tracks which chats are subscribed, gates bot commands through an allowlist,
records an audit trail of events and delivers messages through a retrying
work queue with automatic unsubscription of unreachable chats.

Components:
- allowlist: policies and the AllowlistResolver
- stores / dynamodb_stores: in-memory and DynamoDB storage
- event_log: audit trail with retention purging
- commands: the CommandGateway for /start, /stop, /help and host commands
- delivery: the delivery queue, pipeline and queue processor
- broadcast: fan-out of one message to every active subscription
- admin: administrative operations
- engine: wiring of all of the above
"""

from modules.bot_engine.allowlist import (
    AllowlistResolver,
    DynamicPolicy,
    FixedPolicy,
    OpenPolicy,
    PersistedPolicy,
)
from modules.bot_engine.commands import CommandContext, CommandReply, Sender
from modules.bot_engine.config import BotEngineConfig
from modules.bot_engine.engine import BotEngine, build_engine
from modules.bot_engine.models import (
    AllowedUser,
    DuplicateRecordError,
    Event,
    PersistenceError,
    RecordNotFoundError,
    Subscription,
)

__all__ = [
    "AllowedUser",
    "AllowlistResolver",
    "BotEngine",
    "BotEngineConfig",
    "CommandContext",
    "CommandReply",
    "DuplicateRecordError",
    "DynamicPolicy",
    "Event",
    "FixedPolicy",
    "OpenPolicy",
    "PersistedPolicy",
    "PersistenceError",
    "RecordNotFoundError",
    "Sender",
    "Subscription",
    "build_engine",
]
