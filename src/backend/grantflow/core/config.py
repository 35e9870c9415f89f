"""
Settings, read from the environment and an optional ``.env`` file.

Field names map to upper-case variables, e.g. ``DATABASE_URL`` or
``CRAWLER_MAX_RETRIES``.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "GrantFlow Funding Discovery"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = False

    # HTTP API
    api_prefix: str = "/api/v1"
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    allowed_origins: str = Field(
        default="http://localhost:3000,http://localhost:5173",
        description="Comma-separated CORS origins",
    )

    # Database; the app always talks to it through an async driver
    database_url: str = "postgresql+asyncpg://localhost:5432/grantflow"
    database_pool_size: int = Field(default=5, ge=1, le=100)
    database_max_overflow: int = Field(default=10, ge=0, le=100)
    database_pool_timeout: int = Field(default=30, ge=5, le=120)
    database_echo: bool = False

    # OpenAI, for the website crawler's extraction fallback.
    # Azure wins when both are configured; with neither, extraction is off.
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    azure_openai_endpoint: str | None = None
    azure_openai_api_key: str | None = None
    azure_openai_deployment: str = "gpt-4o-mini"
    azure_openai_api_version: str = "2024-08-01-preview"

    # Outbound requests
    crawler_user_agent: str = "GrantFlow Funding Discovery Bot/1.0 (grant research tool)"
    crawler_timeout: float = Field(default=30.0, gt=0, le=300, description="Seconds per request")
    crawler_max_retries: int = Field(default=3, ge=1, le=10, description="Total attempts per request")
    crawler_retry_delay: float = Field(default=1.0, ge=0, description="Backoff base, times the attempt number")
    crawler_request_delay: float = Field(default=0.5, ge=0, description="Pause after each request group")
    crawler_scholarship_delay: float = Field(default=1.0, ge=0, description="Pause between aggregator pages")

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_format: Literal["json", "console"] = "json"

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    @field_validator("database_url", mode="before")
    @classmethod
    def use_async_driver(cls, v: str) -> str:
        """Rewrite bare PostgreSQL URLs to the asyncpg driver."""
        for prefix in ("postgresql://", "postgres://"):
            if v and v.startswith(prefix):
                return "postgresql+asyncpg://" + v[len(prefix):]
        return v


@lru_cache
def get_settings() -> Settings:
    """Settings are read once per process."""
    return Settings()
