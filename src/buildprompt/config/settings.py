"""Application settings and configuration management."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Service Configuration
    app_name: str = Field(
        default="buildprompt",
        description="Service name",
    )
    app_description: str = Field(
        default="Turns project ideas into build guides and coding-agent prompts",
        description="Service description",
    )
    host: str = Field(
        default="0.0.0.0",
        description="Server host",
    )
    port: int = Field(
        default=8000,
        description="Server port",
    )

    # Model Endpoint Configuration (OpenAI-compatible chat completions)
    xai_api_key: str | None = Field(
        default=None,
        description="API key for the xAI chat completions endpoint",
    )
    xai_api_base_url: str = Field(
        default="https://api.x.ai/v1",
        description="Base URL of the chat completions API",
    )
    xai_model: str = Field(
        default="grok-4.1-fast",
        description="Model used for build generation",
    )
    model_temperature: float = Field(
        default=0.7,
        description="Sampling temperature for build generation",
    )
    model_max_tokens: int = Field(
        default=8000,
        description="Maximum completion tokens per generation",
    )
    model_request_timeout_seconds: float = Field(
        default=60.0,
        description="Timeout for a single model endpoint request",
    )

    # Generation Retry Policy
    generation_max_retries: int = Field(
        default=3,
        description="Retries after the first failed model call",
    )
    generation_retry_base_delay_seconds: float = Field(
        default=2.0,
        description="Base delay for exponential backoff between model calls",
    )

    # Rate Limiting
    rate_limit_backend: Literal["memory", "redis"] = Field(
        default="memory",
        description="Where rate limit windows are stored",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis URL for the redis rate limit backend",
    )
    rate_limit_sweep_interval_seconds: int = Field(
        default=300,
        description="Interval between sweeps of expired rate limit windows",
    )
    anonymous_daily_limit: int = Field(
        default=5,
        description="Builds per day for anonymous callers (per client IP)",
    )
    rate_limit_allowlist: list[str] = Field(
        default_factory=list,
        description="Client IPs that bypass the anonymous daily limit",
    )

    # Usage Persistence
    usage_backend: Literal["memory", "database"] = Field(
        default="memory",
        description="Where users and usage entries are stored",
    )
    database_url: str = Field(
        default="sqlite+aiosqlite:///./buildprompt.db",
        description="Database connection URL",
    )
    database_pool_size: int = Field(
        default=5,
        description="Connection pool size (ignored for SQLite)",
    )
    database_pool_max_overflow: int = Field(
        default=10,
        description="Connection pool overflow (ignored for SQLite)",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["json", "text"] = Field(
        default="json",
        description="Log format",
    )

    # Development Settings
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # OpenTelemetry Configuration
    otel_enabled: bool = Field(
        default=False,
        description="Enable OpenTelemetry tracing",
    )
    otel_service_name: str = Field(
        default="buildprompt",
        description="Service name for OpenTelemetry traces",
    )
    otel_exporter_type: Literal["otlp", "otlp-http", "console"] = Field(
        default="otlp",
        description="Telemetry exporter type",
    )
    otel_exporter_otlp_endpoint: str = Field(
        default="http://localhost:4317",
        description="OTLP exporter endpoint (gRPC)",
    )
    otel_exporter_otlp_http_endpoint: str = Field(
        default="http://localhost:4318",
        description="OTLP exporter endpoint (HTTP)",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
