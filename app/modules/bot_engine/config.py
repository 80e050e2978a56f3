"""Runtime configuration for the bot engine."""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from modules.bot_engine.allowlist import (
    AllowlistPolicy,
    FixedPolicy,
    OpenPolicy,
    PersistedPolicy,
)

if TYPE_CHECKING:
    from infrastructure.configuration import BotEngineSettings

DEFAULT_UNAUTHORIZED_MESSAGE = "Sorry, you're not authorized to use this bot."
DEFAULT_WELCOME_MESSAGE = "Welcome {username}! Available commands:\n{commands}"


@dataclass(frozen=True)
class BotEngineConfig:
    """Configuration handed to every engine component at construction.

    Built once at process start, from the environment through
    `from_settings()` or directly in code when the host needs a policy that
    cannot come from the environment (a dynamic resolver callback).

    Attributes:
        allowed_usernames: Allowlist policy (open, fixed, dynamic or persisted)
        admin_enabled: Whether administrative operations are exposed
        unauthorized_message: Reply to senders rejected by the allowlist
        welcome_message: Reply to /start; `{username}` and `{commands}` are
            substituted
        event_logging: Whether audit events are recorded
        event_retention_days: Age after which audit events are purged
    """

    allowed_usernames: AllowlistPolicy = field(default_factory=OpenPolicy)
    admin_enabled: bool = True
    unauthorized_message: str = DEFAULT_UNAUTHORIZED_MESSAGE
    welcome_message: str = DEFAULT_WELCOME_MESSAGE
    event_logging: bool = True
    event_retention_days: int = 30

    def __post_init__(self) -> None:
        if self.event_retention_days < 1:
            raise ValueError("event_retention_days must be at least 1")

    @classmethod
    def from_settings(cls, settings: "BotEngineSettings") -> "BotEngineConfig":
        policy: AllowlistPolicy
        match settings.allowlist_mode:
            case "list":
                policy = FixedPolicy.of(settings.allowed_usernames)
            case "database":
                policy = PersistedPolicy()
            case _:
                policy = OpenPolicy()

        return cls(
            allowed_usernames=policy,
            admin_enabled=settings.admin_enabled,
            unauthorized_message=settings.unauthorized_message,
            welcome_message=settings.welcome_message,
            event_logging=settings.event_logging,
            event_retention_days=settings.event_retention_days,
        )
