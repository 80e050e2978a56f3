"""Request context binding for structured logging.

Binds request-scoped context to logs so that a correlation ID and chat
metadata flow through every log entry made while one inbound update or one
queued delivery is being handled.

Contexts nest: the webhook route binds the HTTP request, the command gateway
binds the update it is handling, and leaving the inner block restores what
the outer one had bound.

Usage:
    from infrastructure.logging import bind_request_context

    with bind_request_context(chat_id=42, update_id=1001):
        logger.info("command_received", command="start")
"""

import uuid
from contextlib import contextmanager
from typing import Optional, Any, Generator
import structlog

_UNSET = object()


@contextmanager
def bind_request_context(
    correlation_id: Optional[str] = None,
    chat_id: Optional[int] = None,
    username: Optional[str] = None,
    request_path: Optional[str] = None,
    request_method: Optional[str] = None,
    **extra_context: Any,
) -> Generator[None, None, None]:
    """Bind request-scoped context to all logs within the context manager.

    Args:
        correlation_id: Request identifier. Inherited from an enclosing
            context, or generated, when not provided.
        chat_id: Telegram chat the request concerns (if any).
        username: Telegram username of the sender (if any).
        request_path: HTTP request path (e.g., "/telegram/webhook").
        request_method: HTTP method (e.g., "GET", "POST").
        **extra_context: Additional key-value pairs to include in logs.

    Example:
        with bind_request_context(
            correlation_id=f"retry-{record.id}",
            chat_id=record.payload["chat_id"],
        ):
            processor.process_record(record)
    """
    previous = structlog.contextvars.get_contextvars()

    context: dict[str, Any] = {
        "chat_id": chat_id,
        "username": username,
        "request_path": request_path,
        "request_method": request_method,
        **extra_context,
    }
    context = {key: value for key, value in context.items() if value is not None}
    if correlation_id is not None:
        context["correlation_id"] = correlation_id
    elif "correlation_id" not in previous:
        context["correlation_id"] = str(uuid.uuid4())

    saved = {key: previous.get(key, _UNSET) for key in context}
    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())
        restored = {key: value for key, value in saved.items() if value is not _UNSET}
        if restored:
            structlog.contextvars.bind_contextvars(**restored)


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID from the logging context."""
    return structlog.contextvars.get_contextvars().get("correlation_id")
