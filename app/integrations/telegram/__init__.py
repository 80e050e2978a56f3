"""Telegram Integration Package.

This package contains the Telegram Bot API integration. Contains:

- client: HTTP client for the Bot API methods used by the bot engine
  (sendMessage, getMe) and the transport errors raised by send_message.
"""

from integrations.telegram.client import (
    TelegramApiError,
    TelegramClient,
    TelegramError,
    TelegramForbiddenError,
)

__all__ = [
    "TelegramApiError",
    "TelegramClient",
    "TelegramError",
    "TelegramForbiddenError",
]
