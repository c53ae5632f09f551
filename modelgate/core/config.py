"""
Application configuration using pydantic-settings.

WHAT: Centralized config from environment variables
WHY: Type-safe, validated config with sensible defaults
HOW: Pydantic BaseSettings reads from .env and environment
"""

from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parent.parent.parent / ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # App metadata
    APP_NAME: str = "modelgate"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Backend selection
    LLM_PROVIDER: Literal["vendor", "aggregator", "host"] = "aggregator"

    # Credential/model cache
    LLM_AUTH_CACHE_TTL: float = 300.0  # seconds
    LLM_TRUST_EXTERNAL_AUTH_STATUS: bool = False

    # Request defaults
    LLM_DEFAULT_TEMPERATURE: float = 0.5
    LLM_DEFAULT_MAX_TOKENS: int = 0  # 0 = let the backend decide
    LLM_CONNECT_TIMEOUT: float = 5.0
    LLM_READ_TIMEOUT: float = 60.0

    # Vendor-direct (OpenAI-compatible)
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    OPENAI_ORGANIZATION: str = ""
    OPENAI_DEFAULT_MODEL: str = ""

    # Aggregator (OpenRouter)
    OPENROUTER_API_KEY: str = ""
    OPENROUTER_BASE_URL: str = "https://openrouter.ai/api/v1"
    OPENROUTER_DEFAULT_MODEL: str = ""
    OPENROUTER_REFERER: str = "https://github.com/modelgate"

    # Host capability
    HOST_DEFAULT_MODEL: str = ""

    # CORS - accepts comma-separated string or list
    CORS_ORIGINS: str = "http://localhost:3000"

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from comma-separated string or list."""
        if isinstance(v, list):
            return ",".join(v)
        return v

    def get_cors_origins_list(self) -> list[str]:
        """Get CORS origins as a list."""
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "./data/logs/modelgate.log"


# Singleton instance
settings = Settings()
