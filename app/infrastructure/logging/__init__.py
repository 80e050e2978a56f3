"""Structured logging infrastructure.

Public API:
    - configure_logging(): Initialize logging for the application
    - get_module_logger(): Get a logger for the calling module
    - bind_request_context(): Nestable context manager for request-scoped logging
    - get_correlation_id(): Get current correlation ID from context

Example:
    from infrastructure.logging import configure_logging, get_module_logger

    configure_logging()

    logger = get_module_logger()
    logger.info("module_initialized")
"""

from infrastructure.logging.setup import configure_logging, get_module_logger
from infrastructure.logging.context import bind_request_context, get_correlation_id
from infrastructure.logging.formatters import (
    add_app_info,
    mask_message_text,
    mask_sensitive_data,
    redact_secret_values,
    truncate_large_values,
)

__all__ = [
    "configure_logging",
    "get_module_logger",
    "bind_request_context",
    "get_correlation_id",
    "add_app_info",
    "mask_message_text",
    "mask_sensitive_data",
    "redact_secret_values",
    "truncate_large_values",
]
