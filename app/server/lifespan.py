from contextlib import asynccontextmanager
import sys
import threading
from typing import AsyncIterator, Optional, TYPE_CHECKING

from fastapi import FastAPI
from structlog.stdlib import BoundLogger

from infrastructure.logging.setup import configure_logging
from infrastructure.services import get_engine, get_settings
from jobs import scheduled_tasks

if TYPE_CHECKING:
    from infrastructure.configuration import Settings
    from modules.bot_engine.engine import BotEngine


def _is_test_environment() -> bool:
    """Detect if running in a test environment."""
    return "pytest" in sys.modules


def _get_logger(settings: "Settings") -> BoundLogger:
    return configure_logging(settings=settings)


def _list_configs(settings: "Settings", logger: BoundLogger) -> None:
    """Log the top-level settings, and only the key names of each section."""
    base: dict[str, object] = {}
    for key, value in settings.model_dump().items():
        if isinstance(value, dict):
            logger.info("configuration_loaded", config_setting=key, keys=sorted(value))
        else:
            base[key] = value
    logger.info("configuration_initialized", base_settings=base)


def _start_scheduled_tasks(
    engine: "BotEngine",
    settings: "Settings",
    logger: BoundLogger,
) -> Optional[threading.Event]:
    if _is_test_environment():
        return None
    if not settings.retry.enabled:
        logger.info("scheduled_tasks_skipped", reason="retry_disabled")
        return None

    scheduled_tasks.init(engine, settings.retry.poll_interval_seconds)
    stop_event = scheduled_tasks.run_continuously()
    logger.info("scheduled_tasks_started")
    return stop_event


def _stop_scheduled_tasks(stop_event: Optional[threading.Event]) -> None:
    if stop_event is not None:
        stop_event.set()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    logger = _get_logger(settings)

    app.state.settings = settings
    app.state.logger = logger

    logger.info("application_startup")
    _list_configs(settings, logger)

    engine = get_engine()
    app.state.engine = engine
    logger.info(
        "bot_engine_ready",
        storage_backend=settings.bot_engine.storage_backend,
        allowlist_policy=type(engine.config.allowed_usernames).__name__,
        admin_enabled=engine.config.admin_enabled,
    )
    app.state.scheduled_stop_event = _start_scheduled_tasks(engine, settings, logger)

    yield

    logger.info("application_shutdown")
    _stop_scheduled_tasks(app.state.scheduled_stop_event)
