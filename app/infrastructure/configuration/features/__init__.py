"""Feature settings __init__ - exports all feature settings."""

from infrastructure.configuration.features.bot_engine import BotEngineSettings

__all__ = [
    "BotEngineSettings",
]
