"""
Type aliases for FastAPI dependency injection.

Provides annotated type hints for common dependencies.
"""

from typing import Annotated
from fastapi import Depends
from infrastructure.configuration import Settings
from infrastructure.services.providers import get_engine, get_settings
from modules.bot_engine.engine import BotEngine

# Settings dependency
SettingsDep = Annotated[Settings, Depends(get_settings)]

# Bot engine dependency - gateway, broadcaster, admin service and stores
EngineDep = Annotated[BotEngine, Depends(get_engine)]

__all__ = [
    "SettingsDep",
    "EngineDep",
]
