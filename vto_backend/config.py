"""Configuration management for the Virtual Try-On backend."""

from pydantic import AliasChoices, BaseModel, Field
from pydantic_settings import BaseSettings


FAL_TRYON_URL = "https://fal.run/fal-ai/image-apps-v2/virtual-try-on"


class FalConfig(BaseModel):
    """fal.ai connection settings."""
    api_url: str = FAL_TRYON_URL
    api_key: str | None = None
    timeout: float = 45.0  # seconds


class SupabaseConfig(BaseModel):
    """Supabase history store settings."""
    url: str | None = None
    key: str | None = None
    table: str = "tryon_history"

    @property
    def is_configured(self) -> bool:
        return bool(self.url and self.key)


class ServerConfig(BaseModel):
    """HTTP server settings."""
    port: int = 3000
    cors_origin: str = "*"
    rate_limit_window: int = 15  # minutes
    rate_limit_max_requests: int = 20
    max_file_size: int = 5 * 1024 * 1024
    environment: str = "production"

    @property
    def rate_limit_window_seconds(self) -> int:
        return self.rate_limit_window * 60

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


class AppConfig(BaseSettings):
    """Main application configuration.

    Field names match the flat environment variables (``FAL_AI_API_KEY``,
    ``SUPABASE_URL``, ``RATE_LIMIT_WINDOW`` ...); the grouped sub-configs are
    exposed as properties.
    """

    # fal.ai
    fal_ai_api_url: str = FAL_TRYON_URL
    fal_ai_api_key: str | None = None
    fal_ai_timeout: float = 45.0

    # Supabase
    supabase_url: str | None = None
    supabase_key: str | None = None
    supabase_table: str = "tryon_history"

    # Server
    port: int = 3000
    cors_origin: str = "*"
    rate_limit_window: int = 15
    rate_limit_max_requests: int = 20
    max_file_size: int = 5 * 1024 * 1024
    environment: str = Field(
        default="production",
        validation_alias=AliasChoices("environment", "node_env"),
    )

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_prefix = ""
        extra = "ignore"

    @property
    def fal(self) -> FalConfig:
        return FalConfig(
            api_url=self.fal_ai_api_url,
            api_key=self.fal_ai_api_key,
            timeout=self.fal_ai_timeout,
        )

    @property
    def supabase(self) -> SupabaseConfig:
        return SupabaseConfig(
            url=self.supabase_url,
            key=self.supabase_key,
            table=self.supabase_table,
        )

    @property
    def server(self) -> ServerConfig:
        return ServerConfig(
            port=self.port,
            cors_origin=self.cors_origin,
            rate_limit_window=self.rate_limit_window,
            rate_limit_max_requests=self.rate_limit_max_requests,
            max_file_size=self.max_file_size,
            environment=self.environment,
        )


def load_config() -> AppConfig:
    """Load configuration from environment and defaults."""
    return AppConfig()
