"""Pydantic Settings configuration models.

3-tier config hierarchy (lowest to highest priority):
1. Pydantic defaults (in code below)
2. .env file (loaded by Pydantic Settings)
3. Environment variables (e.g., METAAPI_GW_WEB__PORT=8080)

The gateway builds one AppConfig at startup and hands it to create_app();
nothing reads the environment after that.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

VALID_LOG_LEVELS = frozenset({"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"})
VALID_LOG_FORMATS = frozenset({"console", "json"})


class ProviderConfig(BaseModel):
    """MetaApi client options.

    The token is never configured here; every request supplies its own.
    """

    domain: str = "agiliumtrade.agiliumtrade.ai"
    region: str | None = None
    request_timeout: int = Field(default=60, ge=1, le=600)
    accounts_page_size: int = Field(default=1000, ge=1, le=1000)


class HistoryConfig(BaseModel):
    """Defaults for the deal history endpoint."""

    default_limit: int = Field(default=20, ge=1)
    default_days: int = Field(default=30, ge=1)


class CorsConfig(BaseModel):
    """Cross-origin settings for browser frontends."""

    allow_origins: list[str] = Field(default=["*"])


class WebConfig(BaseModel):
    """Web server configuration."""

    host: str = "0.0.0.0"
    port: int = Field(default=3001, ge=1, le=65535)


class AppConfig(BaseSettings):
    """Top-level application configuration.

    Env var examples:
        METAAPI_GW_LOG_LEVEL=DEBUG
        METAAPI_GW_WEB__PORT=8080
        METAAPI_GW_PROVIDER__REGION=london
        METAAPI_GW_CORS__ALLOW_ORIGINS='["http://localhost:5173"]'
    """

    model_config = SettingsConfigDict(
        env_prefix="METAAPI_GW_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    log_level: str = "INFO"
    log_format: str = "console"
    provider: ProviderConfig = ProviderConfig()
    history: HistoryConfig = HistoryConfig()
    cors: CorsConfig = CorsConfig()
    web: WebConfig = WebConfig()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.upper()
        if v not in VALID_LOG_LEVELS:
            raise ValueError(
                f"log_level must be one of {sorted(VALID_LOG_LEVELS)}, got {v}"
            )
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        v = v.lower()
        if v not in VALID_LOG_FORMATS:
            raise ValueError(
                f"log_format must be one of {sorted(VALID_LOG_FORMATS)}, got {v}"
            )
        return v
