"""Structlog configuration and logger setup.

Usage:
    from infrastructure.logging import configure_logging, get_module_logger

    # Configure logging at app startup
    configure_logging()

    # Get a logger for your module
    logger = get_module_logger()
    logger.info("event_name", key="value")
"""

import logging
import sys
import inspect
from typing import TYPE_CHECKING, Any, Optional

import structlog
from structlog.stdlib import BoundLogger

from infrastructure.logging.formatters import (
    add_app_info,
    mask_message_text,
    mask_sensitive_data,
    redact_secret_values,
    truncate_large_values,
)

if TYPE_CHECKING:
    from infrastructure.configuration import Settings

APP_NAME = "telegram-bot-engine"


def _is_test_environment() -> bool:
    """Detect if running in a test environment.

    Returns:
        True if pytest is in sys.modules, False otherwise
    """
    return "pytest" in sys.modules


def _configure_silent() -> BoundLogger:
    logging.root.setLevel(logging.CRITICAL + 1)

    # Basic processors avoid errors; the root logger level keeps them silent
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    logging.basicConfig(format="%(message)s", level=logging.CRITICAL + 1, force=True)
    return structlog.stdlib.get_logger()


def _processors(settings: "Settings", prod_mode: bool) -> list[Any]:
    bot_token = settings.telegram.TELEGRAM_BOT_TOKEN
    webhook_secret = settings.telegram.TELEGRAM_WEBHOOK_SECRET

    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.CallsiteParameterAdder(
            parameters=[
                structlog.processors.CallsiteParameter.FILENAME,
                structlog.processors.CallsiteParameter.LINENO,
                structlog.processors.CallsiteParameter.FUNC_NAME,
            ]
        ),
        add_app_info(
            APP_NAME,
            settings.GIT_SHA,
            "production" if prod_mode else "development",
        ),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        # Request errors embed the API URL, which carries the bot token
        redact_secret_values([bot_token or "", webhook_secret or ""]),
        mask_sensitive_data(),
        mask_message_text(max_preview=0 if prod_mode else 40),
        truncate_large_values(),
    ]

    if prod_mode:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())
    return processors


def configure_logging(
    log_level: Optional[str] = None,
    is_production: Optional[bool] = None,
    settings: Optional["Settings"] = None,
) -> BoundLogger:
    """Configure structured logging for the process.

    Under pytest every log entry is suppressed. Otherwise entries carry
    context variables (correlation ID, chat ID), callsite and deployment
    info, with the bot token, credential-like keys and message bodies
    masked. Production renders JSON, development a console layout.

    Args:
        log_level: Optional override for log level (DEBUG, INFO, WARNING, etc).
            Defaults to settings.LOG_LEVEL if not provided.
        is_production: Optional override for production mode. Defaults to
            settings.is_production if not provided.
        settings: Optional settings instance. Loaded from the provider if omitted.

    Returns:
        Configured logger instance
    """
    if _is_test_environment():
        return _configure_silent()

    if settings is None:
        from infrastructure.services.providers import get_settings

        settings = get_settings()

    prod_mode = is_production if is_production is not None else settings.is_production

    structlog.configure(
        processors=_processors(settings, prod_mode),
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    effective_log_level = log_level or settings.LOG_LEVEL
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, effective_log_level.upper(), logging.INFO),
    )

    return structlog.stdlib.get_logger()


def get_module_logger() -> BoundLogger:
    """Get a logger for the calling module.

    Binds `component` (last segment of the module name) and `module_path`.

    Example:
        # In modules/bot_engine/delivery.py
        logger = get_module_logger()
        # context: {"component": "delivery", "module_path": "modules.bot_engine.delivery"}
    """
    logger: BoundLogger = structlog.stdlib.get_logger()

    current_frame = inspect.currentframe()
    frame = current_frame.f_back if current_frame is not None else None
    module = inspect.getmodule(frame) if frame is not None else None
    if module is None:
        return logger.bind(component="unknown")

    module_name = module.__name__
    return logger.bind(component=module_name.split(".")[-1], module_path=module_name)
