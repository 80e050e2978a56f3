"""
Dependency injection services.

Provides type aliases and provider functions for FastAPI dependency injection.
"""

from infrastructure.services.providers import (
    configure_engine,
    get_engine,
    get_settings,
    reset_engine,
)
from infrastructure.services.dependencies import (
    EngineDep,
    SettingsDep,
)

__all__ = [
    "EngineDep",
    "SettingsDep",
    "configure_engine",
    "get_engine",
    "get_settings",
    "reset_engine",
]
