"""Application settings using Pydantic BaseSettings."""

import os
from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _get_default_db_path() -> str:
    """Get absolute path to default SQLite database."""
    # backend/playground/config/ -> backend/
    config_dir = os.path.dirname(os.path.abspath(__file__))
    backend_dir = os.path.dirname(os.path.dirname(config_dir))
    db_path = os.path.join(backend_dir, "data", "playground.db")
    return f"sqlite:///{db_path}"


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server
    environment: str = Field(default="development")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_file: Optional[str] = Field(default=None)

    # HTTP surface
    cors_origins: str = Field(default="http://localhost:3000,http://localhost:3001")
    max_request_bytes: int = Field(default=1048576)
    sse_ping_interval_seconds: float = Field(default=10)

    # Database
    database_url: str = Field(default_factory=_get_default_db_path)

    # Providers
    playground_models: str = Field(default="gpt-3.5-turbo,gpt-4o-mini")
    openai_api_key: str = Field(default="")
    openai_base_url: str = Field(default="https://api.openai.com/v1")
    provider_timeout_seconds: int = Field(default=60)
    provider_max_retries: int = Field(default=1)
    provider_max_output_tokens: int = Field(default=1000)
    provider_temperature: float = Field(default=0.7)
    mock_chunk_delay_seconds: float = Field(default=0.05)

    # Rate limiting (orchestration invocations per caller)
    rate_limit_window_seconds: int = Field(default=3600)
    rate_limit_max_requests: int = Field(default=20)

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string."""
        if not self.cors_origins:
            return []
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def playground_models_list(self) -> List[str]:
        """Parse enabled model ids from comma-separated string."""
        if not self.playground_models:
            return []
        return [m.strip() for m in self.playground_models.split(",") if m.strip()]

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment.lower() == "production"

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        upper = v.upper()
        if upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return upper

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        vv = (v or "").strip().lower()
        if vv not in {"development", "staging", "production"}:
            raise ValueError("ENVIRONMENT must be one of: development, staging, production")
        return vv

    @field_validator("rate_limit_max_requests", "rate_limit_window_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Rate limit settings must be positive")
        return v


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
