"""
LogPulse AI - Service Configuration
===================================

Centralized configuration using Pydantic Settings.
"""

from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache

from logpulse_shared.constants import ProviderName, Limits, RateLimitDefaults


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    """

    # Service identification
    service_name: str = Field(
        default="logpulse",
        description="Name of this service"
    )
    service_version: str = Field(
        default="0.1.0",
        description="Semantic version"
    )

    # Server configuration
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8080)
    debug: bool = Field(default=False)

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)

    # Network exposure
    cors_allowed_origins: list[str] = Field(
        default_factory=lambda: ["*"],
        description="Origins allowed to call the API from a browser"
    )
    trust_forwarded_headers: bool = Field(
        default=True,
        description=(
            "Use X-Forwarded-For / X-Real-IP to identify callers. Enable only "
            "behind a proxy that overwrites these headers; otherwise callers "
            "can pick their own quota identity"
        )
    )

    # Rate limiting
    rate_limit_max_requests: int = Field(
        default=RateLimitDefaults.MAX_REQUESTS,
        ge=1,
        description="Analyses allowed per identity within the window"
    )
    rate_limit_window_hours: int = Field(
        default=RateLimitDefaults.WINDOW_HOURS,
        ge=1,
        description="Length of the trailing rate-limit window"
    )
    rate_limit_strict: bool = Field(
        default=True,
        description="Serialize admission and persistence per identity"
    )

    # Input validation
    input_min_chars: int = Field(default=Limits.MIN_INPUT_CHARS)
    input_max_chars: int = Field(default=Limits.MAX_INPUT_CHARS)
    input_max_words: int = Field(default=Limits.MAX_INPUT_WORDS)

    # Diagnosis backend
    provider: ProviderName = Field(
        default=ProviderName.MOCK,
        description="Diagnosis backend to use (mock, openai, gemini, ollama)"
    )
    provider_model_name: str = Field(
        default="llama-3.3-70b-versatile",
        description="Model name passed through to the backend"
    )
    provider_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=2.0,
        description="Sampling temperature for generation"
    )
    provider_max_tokens: int = Field(
        default=2000,
        description="Maximum output tokens for a diagnosis"
    )
    provider_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Timeout for a single backend call"
    )
    provider_api_key: str = Field(
        default="",
        description="API key for hosted backends"
    )
    provider_base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        description="Base URL of the OpenAI-compatible chat API"
    )
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the Gemini Generative Language API"
    )
    ollama_url: str = Field(
        default="http://localhost:11434",
        description="Ollama API URL"
    )

    # Persistence
    database_url: str = Field(
        default="",
        description="SQLAlchemy URL for analysis history; empty keeps history in memory"
    )

    class Config:
        env_prefix = ""
        case_sensitive = False
        env_file = ".env"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
