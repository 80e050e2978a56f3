"""Server infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class ServerSettings(InfrastructureSettings):
    """HTTP server runtime configuration.

    Environment Variables:
        SERVER_HOST: Interface uvicorn binds to (default: 0.0.0.0)
        SERVER_PORT: Port uvicorn listens on (default: 8000)
        CORS_ALLOW_ORIGINS: Comma-separated origins allowed outside production

    Example:
        ```python
        from infrastructure.services import get_settings

        port = get_settings().server.PORT
        ```
    """

    HOST: str = Field(default="0.0.0.0", alias="SERVER_HOST")
    PORT: int = Field(default=8000, alias="SERVER_PORT")
    CORS_ALLOW_ORIGINS: str = Field(
        default="http://localhost:8000,http://127.0.0.1:8000",
        alias="CORS_ALLOW_ORIGINS",
    )

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.CORS_ALLOW_ORIGINS.split(",") if o.strip()]
