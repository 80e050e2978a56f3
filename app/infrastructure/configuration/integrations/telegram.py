"""Telegram Bot API integration settings."""

from pydantic import Field

from infrastructure.configuration.base import IntegrationSettings


class TelegramSettings(IntegrationSettings):
    """Telegram Bot API configuration settings.

    Environment Variables:
        TELEGRAM_BOT_TOKEN: Bot token issued by BotFather
        TELEGRAM_API_URL: Bot API base URL (default: https://api.telegram.org)
        TELEGRAM_TIMEOUT_SECONDS: HTTP timeout per API call (default: 10)
        TELEGRAM_WEBHOOK_SECRET: Expected X-Telegram-Bot-Api-Secret-Token value

    Example:
        ```python
        from infrastructure.services import get_settings

        settings = get_settings()

        token = settings.telegram.TELEGRAM_BOT_TOKEN
        ```
    """

    TELEGRAM_BOT_TOKEN: str = Field(default="", alias="TELEGRAM_BOT_TOKEN")
    TELEGRAM_API_URL: str = Field(
        default="https://api.telegram.org", alias="TELEGRAM_API_URL"
    )
    TELEGRAM_TIMEOUT_SECONDS: float = Field(
        default=10.0, alias="TELEGRAM_TIMEOUT_SECONDS"
    )
    TELEGRAM_WEBHOOK_SECRET: str | None = Field(
        default=None, alias="TELEGRAM_WEBHOOK_SECRET"
    )
