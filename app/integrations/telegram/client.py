"""Telegram Bot API client.

Thin HTTP client over the Bot API (https://core.telegram.org/bots/api).
Every method is a POST to `{api_url}/bot{token}/{method}` answered with a
JSON envelope:

    {"ok": true, "result": {...}}
    {"ok": false, "error_code": 403, "description": "Forbidden: bot was blocked by the user"}
    {"ok": false, "error_code": 429, "description": "...", "parameters": {"retry_after": 5}}

`call()` never raises and returns an OperationResult. `send_message()` is the
delivery transport: it raises TelegramForbiddenError when the chat can no
longer be reached (the bot was blocked, kicked, or the user deactivated) and
TelegramApiError for every other failure, so that the work queue retries it.

Usage:
    from integrations.telegram import TelegramClient

    client = TelegramClient(token="123:abc")
    client.send_message(42, "*hello*", parse_mode="Markdown")
"""

import json
from typing import Any, Dict, Optional

import requests

from infrastructure.logging import get_module_logger
from infrastructure.operations import OperationResult, classify_telegram_error

logger = get_module_logger()

DEFAULT_API_URL = "https://api.telegram.org"


class TelegramError(Exception):
    """Base class for Telegram transport errors.

    `retryable` is false when sending the same request again cannot succeed
    (bad request, invalid token).
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        retry_after: Optional[int] = None,
        retryable: bool = True,
    ):
        self.message = message
        self.error_code = error_code
        self.retry_after = retry_after
        self.retryable = retryable
        super().__init__(message)

    @classmethod
    def from_result(cls, result: OperationResult) -> "TelegramError":
        return cls(
            result.message,
            error_code=result.error_code,
            retry_after=result.retry_after,
            retryable=result.is_transient,
        )


class TelegramForbiddenError(TelegramError):
    """The recipient cannot be reached: the bot was blocked or removed."""


class TelegramApiError(TelegramError):
    """Any other Bot API failure (rate limit, network, server or request error)."""


class TelegramClient:
    """HTTP client for the Telegram Bot API.

    Attributes:
        api_url: Bot API base URL
        timeout: Timeout in seconds for every call
    """

    def __init__(
        self,
        token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
    ) -> None:
        if not token:
            raise ValueError("Telegram bot token is required")
        self._token = token
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "User-Agent": "telegram-bot-engine/1.0",
                "Accept": "application/json",
            }
        )

    def _method_url(self, method: str) -> str:
        return f"{self.api_url}/bot{self._token}/{method}"

    def call(
        self, method: str, payload: Optional[Dict[str, Any]] = None
    ) -> OperationResult:
        """Call a Bot API method.

        Args:
            method: Bot API method name (e.g., "sendMessage")
            payload: JSON parameters for the method

        Returns:
            OperationResult with the `result` field as data, or the classified error
        """
        log = logger.bind(telegram_method=method)

        try:
            response = self._session.post(
                self._method_url(method),
                json=payload or {},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            result = classify_telegram_error(exc=e)
            log.warning(
                "telegram_request_failed",
                error=result.message,
                error_code=result.error_code,
            )
            return result

        body: Dict[str, Any] = {}
        if response.content:
            try:
                body = response.json()
            except json.JSONDecodeError:
                log.warning("telegram_non_json_response", status_code=response.status_code)

        if response.ok and body.get("ok"):
            return OperationResult.success(data=body.get("result"))

        result = classify_telegram_error(payload=body, status_code=response.status_code)
        log.info(
            "telegram_api_error",
            status_code=response.status_code,
            error_code=result.error_code,
            description=result.message,
            retry_after=result.retry_after,
        )
        return result

    def send_message(self, chat_id: int, text: str, **options: Any) -> Dict[str, Any]:
        """Send a text message to a chat.

        Args:
            chat_id: Target chat
            text: Message text
            **options: Extra sendMessage parameters (parse_mode,
                disable_notification, reply_markup, ...)

        Returns:
            The sent Message object

        Raises:
            TelegramForbiddenError: The chat can no longer be reached
            TelegramApiError: Any other failure
        """
        payload: Dict[str, Any] = {"chat_id": chat_id, "text": text}
        payload.update({str(key): value for key, value in options.items()})

        result = self.call("sendMessage", payload)
        if result.is_success:
            return result.data or {}
        if result.is_forbidden:
            raise TelegramForbiddenError.from_result(result)
        raise TelegramApiError.from_result(result)

    def get_me(self) -> OperationResult:
        """Return the bot's own User object (id, username, first_name)."""
        return self.call("getMe")

    def health_check(self) -> OperationResult:
        """Check that the token is valid and the Bot API reachable."""
        result = self.get_me()
        if result.is_success:
            username = (result.data or {}).get("username")
            return OperationResult.success(
                data={"username": username}, message="Telegram API reachable"
            )
        return result
