"""
Factory functions for dependency injection.

Provides application-scoped singleton providers for core services.
"""

from functools import lru_cache
from typing import TYPE_CHECKING, Any, Dict

from infrastructure.configuration import Settings

if TYPE_CHECKING:
    from modules.bot_engine.engine import BotEngine

_engine_overrides: Dict[str, Any] = {}


@lru_cache
def get_settings() -> Settings:
    """
    Get application-scoped settings singleton.

    This is the single source of truth for settings across the entire application.
    The @lru_cache decorator ensures only ONE instance is created per process.

    Infrastructure packages should use this directly:
        from infrastructure.services.providers import get_settings
        settings = get_settings()

    Application code should use the DI type alias for testability:
        from infrastructure.services import SettingsDep
        @router.get("/config")
        def get_config(settings: SettingsDep):
            return settings.model_dump()

    Returns:
        Settings: Cached settings instance loaded from environment.
    """
    return Settings()


@lru_cache
def get_engine() -> "BotEngine":
    """
    Get application-scoped bot engine singleton.

    The engine wires the allowlist resolver, stores, event log, command gateway,
    delivery pipeline and broadcaster from the cached settings, plus whatever
    the host passed to configure_engine(). The webhook routes and the
    scheduled delivery worker both use this instance.

    Returns:
        BotEngine: Cached, fully wired engine.

    Usage:
        @router.post("/telegram/webhook")
        def webhook(update: dict, engine: EngineDep):
            engine.gateway.handle_update(update)
    """
    from modules.bot_engine.engine import build_engine

    return build_engine(get_settings(), **_engine_overrides)


def configure_engine(**overrides: Any) -> None:
    """Set the build_engine() overrides used by get_engine().

    Call before the server starts, for anything the environment cannot
    express, such as a dynamic allowlist:

        configure_engine(
            config=BotEngineConfig(allowed_usernames=DynamicPolicy(load_team))
        )

    Accepts the keyword arguments of build_engine() (config, transport,
    retry_store, stores). Drops any engine already built.
    """
    _engine_overrides.clear()
    _engine_overrides.update(overrides)
    get_engine.cache_clear()


def reset_engine() -> None:
    """Drop the cached engine, settings and configure_engine() overrides so
    the next call rebuilds them.

    Used by tests and by hosts that reconfigure the engine at runtime.
    """
    _engine_overrides.clear()
    get_engine.cache_clear()
    get_settings.cache_clear()
