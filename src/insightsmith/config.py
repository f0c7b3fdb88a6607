"""Configuration management for InsightSmith."""

from typing import Optional
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="INSIGHTSMITH_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Application
    app_name: str = "InsightSmith"
    debug: bool = False
    log_level: str = "INFO"

    # API Keys
    openai_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("INSIGHTSMITH_OPENAI_API_KEY", "OPENAI_API_KEY"),
    )
    anthropic_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("INSIGHTSMITH_ANTHROPIC_API_KEY", "ANTHROPIC_API_KEY"),
    )
    gemini_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("INSIGHTSMITH_GEMINI_API_KEY", "GEMINI_API_KEY", "GOOGLE_API_KEY"),
    )

    # "live" registers SDK-backed providers for configured keys, "fake" wires
    # the deterministic offline provider under every provider name.
    provider_backend: str = "live"

    # Routing tiers
    deep_provider: str = "anthropic"
    deep_model: str = "claude-3-opus-20240229"
    deep_fallback_provider: str = "openai"
    deep_fallback_model: str = "gpt-4o"
    fast_provider: str = "openai"
    fast_model: str = "gpt-4o"
    fast_fallback_provider: str = "anthropic"
    fast_fallback_model: str = "claude-3-haiku-20240307"
    balanced_provider: str = "anthropic"
    balanced_model: str = "claude-3-5-sonnet-latest"
    balanced_fallback_provider: str = "openai"
    balanced_fallback_model: str = "gpt-4o-mini"

    # LLM Configuration
    temperature: float = 0.7
    sql_temperature: float = 0.1
    max_tokens: int = 1000
    provider_timeout_seconds: float = Field(default=20.0, gt=0)

    # Response cache
    cache_max_entries: int = Field(default=100, ge=1)
    cache_default_ttl_seconds: int = Field(default=3600, ge=0)
    enable_redis: bool = False
    redis_url: Optional[str] = None

    # Orchestrator
    history_size: int = Field(default=100, ge=1)
    auto_include_filters: bool = True
    single_flight: bool = False

    # Health monitoring
    health_poll_interval_seconds: float = Field(default=30.0, gt=0)
    health_window_seconds: float = Field(default=3600.0, gt=0)
    unhealthy_latency_ms: float = 10000.0
    degraded_latency_ms: float = 5000.0
    unhealthy_error_rate: float = 0.5
    degraded_fallback_rate: float = 0.3

    # Data store
    database_url: Optional[str] = None
    max_rows: int = Field(default=1000, ge=1)
    execute_generated_sql: bool = True

    # Schema registry override (packaged YAML when unset)
    schema_file: Optional[str] = None


def get_settings() -> Settings:
    """Build settings from the environment."""
    return Settings()
