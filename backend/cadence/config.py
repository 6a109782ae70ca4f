"""
Application configuration using Pydantic settings.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict

from typing import Optional


class Settings(BaseSettings):
    """Application settings."""

    # App
    app_name: str = "Cadence"
    log_level: str = "INFO"

    # Database
    database_url: str = "sqlite:///./data/cadence.sqlite"

    # AI Provider
    ai_provider: str = "openai"  # openrouter, ollama, openai, anthropic
    ai_model: str = "gpt-4o"
    ai_base_url: Optional[str] = None  # For Ollama: http://localhost:11434
    ai_temperature: float = 0.2
    ai_max_tokens: int = 500
    ai_timeout: float = 30.0  # Seconds per oracle call
    ai_max_retries: int = 2

    # API Keys (optional based on provider)
    openrouter_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None

    # Pattern engine
    frequency_tolerance: float = 0.2  # Allowed deviation as a fraction of the mean interval
    single_interval_confidence: str = "oracle"  # oracle, zero
    analysis_concurrency: int = 4

    # Cache
    cache_backend: str = "memory"  # memory, database
    cache_ttl_short: int = 300
    cache_ttl_medium: int = 3600
    cache_ttl_long: int = 86400

    # Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    frontend_url: str = "http://localhost:5173"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
settings = Settings()
