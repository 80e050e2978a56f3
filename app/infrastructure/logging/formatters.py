"""Structlog processors for the bot engine.

Each factory returns a processor with the structlog signature
`(logger, method_name, event_dict) -> event_dict`.

Two kinds of data must never reach the log sink verbatim: the bot token,
which Telegram embeds in every Bot API URL, and the body of messages users
send or receive. Masking works on keys (`mask_sensitive_data`,
`mask_message_text`) and on known secret values (`redact_secret_values`).
"""

from typing import Any, Iterable

EventDict = dict[str, Any]

REDACTED = "***REDACTED***"

# Keys whose values are credentials
SENSITIVE_PATTERNS = frozenset(
    {
        "password",
        "secret",
        "token",
        "api_key",
        "authorization",
        "credential",
    }
)

# Keys whose values are user message bodies
MESSAGE_TEXT_KEYS = frozenset({"text", "message_text", "reply_text"})


def add_app_info(app_name: str, app_version: str, environment: str):
    """Create a processor stamping each entry with the deployment it came from.

    Args:
        app_name: Name of the application.
        app_version: Git SHA or release of the running build.
        environment: "production" or "development".
    """

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        event_dict.setdefault("app_name", app_name)
        event_dict.setdefault("app_version", app_version)
        event_dict.setdefault("environment", environment)
        return event_dict

    return processor


def mask_sensitive_data(
    mask_value: str = REDACTED,
    additional_patterns: frozenset[str] | None = None,
):
    """Create a processor that masks values of credential-like keys.

    A key is sensitive when it contains one of the patterns, compared
    case-insensitively (`webhook_secret`, `TELEGRAM_BOT_TOKEN`, ...).

    Example:
        processor = mask_sensitive_data(additional_patterns=frozenset({"dsn"}))
    """
    patterns = SENSITIVE_PATTERNS
    if additional_patterns:
        patterns = patterns | additional_patterns

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for key, value in event_dict.items():
            if value is None:
                continue
            key_lower = key.lower()
            if any(pattern in key_lower for pattern in patterns):
                event_dict[key] = mask_value
        return event_dict

    return processor


def mask_message_text(max_preview: int = 0):
    """Create a processor that hides message bodies.

    Args:
        max_preview: Characters of the body to keep. 0 keeps only the length.
    """

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for key in MESSAGE_TEXT_KEYS & event_dict.keys():
            value = event_dict[key]
            if not isinstance(value, str):
                continue
            if max_preview and len(value) <= max_preview:
                continue
            kept = value[:max_preview] if max_preview else ""
            event_dict[key] = f"{kept}...[{len(value)} chars]"
        return event_dict

    return processor


def redact_secret_values(secrets: Iterable[str], mask_value: str = REDACTED):
    """Create a processor that removes known secret strings from any value.

    Key-based masking does not catch a secret embedded in free text, such as
    the bot token inside a Bot API URL quoted by an HTTP error message.

    Args:
        secrets: Literal secret strings to redact. Empty strings are ignored.
        mask_value: The string to replace each occurrence with.
    """
    needles = tuple(s for s in secrets if s)

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        if not needles:
            return event_dict
        for key, value in event_dict.items():
            if isinstance(value, str):
                for needle in needles:
                    value = value.replace(needle, mask_value)
                event_dict[key] = value
        return event_dict

    return processor


def truncate_large_values(max_length: int = 500):
    """Create a processor that truncates overly large string values,
    such as a raw Bot API error body.
    """

    def processor(logger: Any, method_name: str, event_dict: EventDict) -> EventDict:
        for key, value in event_dict.items():
            if isinstance(value, str) and len(value) > max_length:
                event_dict[key] = (
                    value[:max_length] + f"...[truncated, {len(value)} chars total]"
                )
        return event_dict

    return processor
