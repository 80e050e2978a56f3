"""Infrastructure configuration module - public API.

Centralized configuration management for the bot engine using Pydantic
BaseSettings with domain-based organization.

Exports:
    Settings: Main settings class (aggregator)
    BotEngineSettings: Subscription, allowlist and audit log settings
    RetrySettings: Delivery work queue settings
    TelegramSettings: Telegram Bot API settings

Example:
    ```python
    from infrastructure.services import get_settings

    settings = get_settings()

    token = settings.telegram.TELEGRAM_BOT_TOKEN
    retention = settings.bot_engine.event_retention_days
    max_attempts = settings.retry.max_attempts
    ```
"""

from infrastructure.configuration.settings import Settings
from infrastructure.configuration.features.bot_engine import BotEngineSettings
from infrastructure.configuration.infrastructure.retry import RetrySettings
from infrastructure.configuration.integrations.telegram import TelegramSettings

__all__ = ["Settings", "BotEngineSettings", "RetrySettings", "TelegramSettings"]
