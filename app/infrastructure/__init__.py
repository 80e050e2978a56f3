"""Infrastructure modules for the bot engine.

Centralized infrastructure components:
- configuration: Settings management (Settings, BotEngineSettings, RetrySettings)
- logging: Structured logging (configure_logging, get_module_logger)
- operations: Operation results and error classification
- resilience: Retry-backed work queue for outbound deliveries
- services: Dependency injection services (SettingsDep, EngineDep, get_settings)
"""

# Configuration
from infrastructure.configuration import Settings

# Observability
from infrastructure.logging import configure_logging, get_module_logger

# Operations
from infrastructure.operations.result import OperationResult
from infrastructure.operations.status import OperationStatus

__all__ = [
    # Configuration
    "Settings",
    # Observability
    "configure_logging",
    "get_module_logger",
    # Operations
    "OperationResult",
    "OperationStatus",
]
