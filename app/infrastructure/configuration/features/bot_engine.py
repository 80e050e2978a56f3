"""Bot engine feature settings."""

import json

from pydantic import Field, field_validator

from infrastructure.configuration.base import FeatureSettings

ALLOWLIST_MODES = ("open", "list", "database")
STORAGE_BACKENDS = ("memory", "dynamodb")


class BotEngineSettings(FeatureSettings):
    """Configuration for subscriptions, the command allowlist and the event log.

    Environment Variables:
        BOT_ALLOWLIST_MODE: 'open' (anyone), 'list' (BOT_ALLOWED_USERNAMES) or
            'database' (allowed users managed through the admin routes)
        BOT_ALLOWED_USERNAMES: Comma-separated usernames or a JSON list
        BOT_ADMIN_ENABLED: Expose the /admin routes (default: True)
        BOT_UNAUTHORIZED_MESSAGE: Reply sent to senders who fail the allowlist
        BOT_WELCOME_MESSAGE: Reply to /start, formatted with {username} and
            {commands}
        BOT_EVENT_LOGGING: Record audit events (default: True)
        BOT_EVENT_RETENTION_DAYS: Age after which events are purged (default: 30)
        BOT_STORAGE_BACKEND: 'memory' or 'dynamodb'
        BOT_SUBSCRIPTIONS_TABLE: DynamoDB table for subscriptions
        BOT_ALLOWED_USERS_TABLE: DynamoDB table for allowed users
        BOT_EVENTS_TABLE: DynamoDB table for audit events

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        if settings.bot_engine.allowlist_mode == "list":
            usernames = settings.bot_engine.allowed_usernames
        ```
    """

    allowlist_mode: str = Field(
        default="open",
        alias="BOT_ALLOWLIST_MODE",
        description="Allowlist policy: 'open', 'list' or 'database'",
    )
    allowed_usernames_raw: str = Field(
        default="",
        alias="BOT_ALLOWED_USERNAMES",
        description="Usernames for the 'list' policy (comma-separated or JSON list)",
    )
    admin_enabled: bool = Field(
        default=True,
        alias="BOT_ADMIN_ENABLED",
        description="Expose the administrative routes",
    )
    unauthorized_message: str = Field(
        default="Sorry, you're not authorized to use this bot.",
        alias="BOT_UNAUTHORIZED_MESSAGE",
    )
    welcome_message: str = Field(
        default="Welcome {username}! Available commands:\n{commands}",
        alias="BOT_WELCOME_MESSAGE",
    )
    event_logging: bool = Field(
        default=True,
        alias="BOT_EVENT_LOGGING",
        description="Record audit events",
    )
    event_retention_days: int = Field(
        default=30,
        alias="BOT_EVENT_RETENTION_DAYS",
        description="Events older than this many days are purged",
        ge=1,
    )
    storage_backend: str = Field(
        default="memory",
        alias="BOT_STORAGE_BACKEND",
        description="Storage backend: 'memory' or 'dynamodb'",
    )
    subscriptions_table: str = Field(
        default="bot-engine-subscriptions",
        alias="BOT_SUBSCRIPTIONS_TABLE",
    )
    allowed_users_table: str = Field(
        default="bot-engine-allowed-users",
        alias="BOT_ALLOWED_USERS_TABLE",
    )
    events_table: str = Field(
        default="bot-engine-events",
        alias="BOT_EVENTS_TABLE",
    )

    @field_validator("allowlist_mode", mode="before")
    @classmethod
    def _validate_allowlist_mode(cls, v: str) -> str:
        mode = (v or "open").strip().lower()
        if mode not in ALLOWLIST_MODES:
            raise ValueError(
                f"BOT_ALLOWLIST_MODE must be one of {', '.join(ALLOWLIST_MODES)}"
            )
        return mode

    @field_validator("storage_backend", mode="before")
    @classmethod
    def _validate_storage_backend(cls, v: str) -> str:
        backend = (v or "memory").strip().lower()
        if backend not in STORAGE_BACKENDS:
            raise ValueError(
                f"BOT_STORAGE_BACKEND must be one of {', '.join(STORAGE_BACKENDS)}"
            )
        return backend

    @property
    def allowed_usernames(self) -> list[str]:
        """Parse BOT_ALLOWED_USERNAMES from a JSON list or comma-separated string."""
        s = self.allowed_usernames_raw.strip()
        if not s:
            return []
        if s.startswith("["):
            try:
                parsed = json.loads(s)
            except (json.JSONDecodeError, ValueError) as e:
                raise ValueError(
                    f"Invalid BOT_ALLOWED_USERNAMES JSON: {e} (value: {s[:80]}...)"
                ) from e
            return [str(name).strip() for name in parsed if str(name).strip()]
        return [name.strip() for name in s.split(",") if name.strip()]
