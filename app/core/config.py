"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


DEFAULT_SYSTEM_PROMPT = (
    "You are a helpful assistant that responds briefly and professionally."
)
ONE_WEEK_SECONDS = 7 * 24 * 60 * 60


class LLMSettings(BaseSettings):
    """LLM provider configuration.

    Validation of provider-specific requirements happens in the factory.
    """

    provider: str = Field(
        "openai",
        description="LLM provider name (only 'openai' is supported)",
    )
    model: str = Field(
        "gpt-4o-mini",
        description="Default model used when the request does not name one",
    )
    api_key: str | None = Field(
        None,
        description="API key for the provider (required for the chat endpoint)",
    )
    base_url: str | None = Field(
        None,
        description="Custom OpenAI-compatible endpoint (defaults to api.openai.com)",
    )
    timeout_seconds: float = Field(
        45.0,
        description="Request timeout in seconds",
    )

    model_config = SettingsConfigDict(
        env_prefix="LLM_",
        case_sensitive=False,
    )


class ChatSettings(BaseSettings):
    """Defaults applied when building upstream completion requests."""

    default_system_prompt: str = Field(
        DEFAULT_SYSTEM_PROMPT,
        description="System prompt used when the caller does not provide one",
    )
    default_temperature: float = Field(
        0.7,
        description="Sampling temperature used when the caller does not provide a number",
    )
    cors_allow_origin: str = Field(
        "*",
        description="Value for Access-Control-Allow-Origin on chat responses",
    )

    model_config = SettingsConfigDict(
        env_prefix="CHAT_",
        case_sensitive=False,
    )


class QuotaSettings(BaseSettings):
    """Per-caller quota configuration."""

    enabled: bool = Field(
        True,
        description="Enforce the per-caller quota on the chat endpoint",
    )
    limit: int = Field(
        20,
        description="Maximum number of chat requests per window (per caller)",
        ge=1,
    )
    window_seconds: int = Field(
        ONE_WEEK_SECONDS,
        description="Quota window length in seconds",
        ge=1,
    )
    backend: str = Field(
        "memory",
        description="Usage store backend: 'memory' (per-process) or 'redis' (shared)",
    )
    redis_url: str | None = Field(
        None,
        description="Redis connection URL (required when backend is 'redis')",
    )
    namespace: str = Field(
        "chat-rate-limit",
        description="Store namespace prefixed to every usage record key",
    )
    include_headers: bool = Field(
        True,
        description="Include X-RateLimit-* and Retry-After headers when throttling",
    )

    model_config = SettingsConfigDict(
        env_prefix="QUOTA_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration."""

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: 'json' or 'plain'")
    output: str = Field("stdout", description="Log output: 'stdout' or 'file'")
    file_path: str | None = Field(None, description="Log file path when output is 'file'")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Number of rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header used to read and echo the request correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Nested settings are created via default_factory so env loading works.
    """

    app_env: str = APP_ENV
    llm: LLMSettings = Field(default_factory=LLMSettings)
    chat: ChatSettings = Field(default_factory=ChatSettings)
    quota: QuotaSettings = Field(default_factory=QuotaSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
settings = Settings()
