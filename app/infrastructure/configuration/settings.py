"""Bot engine configuration settings - main aggregator."""

from pydantic_settings import BaseSettings, SettingsConfigDict

from infrastructure.configuration.integrations import AwsSettings, TelegramSettings
from infrastructure.configuration.features import BotEngineSettings
from infrastructure.configuration.infrastructure import RetrySettings, ServerSettings


class Settings(BaseSettings):
    """Bot engine configuration settings - main aggregator.

    Aggregates all domain-specific settings into a single configuration object:

    - **Integrations**: Telegram Bot API, AWS (DynamoDB storage)
    - **Features**: subscriptions, allowlist policy, event log
    - **Infrastructure**: delivery work queue, HTTP server

    Environment Variables:
        PREFIX: Environment prefix (empty in production)
        LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
        GIT_SHA: Git commit SHA for deployment tracking
    """

    PREFIX: str = ""
    LOG_LEVEL: str = "INFO"
    GIT_SHA: str = "Unknown"

    telegram: TelegramSettings
    aws: AwsSettings
    bot_engine: BotEngineSettings
    retry: RetrySettings
    server: ServerSettings

    @property
    def is_production(self) -> bool:
        """True if PREFIX is empty (production)."""
        return not bool(self.PREFIX)

    def __init__(self, **kwargs):
        """Initialize Settings, instantiating any sub-settings not provided.

        Args:
            **kwargs: Optional overrides for specific settings sections.
        """
        settings_map = {
            "telegram": TelegramSettings,
            "aws": AwsSettings,
            "bot_engine": BotEngineSettings,
            "retry": RetrySettings,
            "server": ServerSettings,
        }

        for setting_name, setting_class in settings_map.items():
            if setting_name not in kwargs:
                kwargs[setting_name] = setting_class()

        super().__init__(**kwargs)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )
