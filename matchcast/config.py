"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Database
    DATABASE_URL: str = "sqlite:///./data/matchcast.db"

    # API-Sports (football v3 / basketball v1)
    API_FOOTBALL_KEY: str = ""
    API_BASKETBALL_KEY: str = ""  # Empty = reuse API_FOOTBALL_KEY
    API_BASKETBALL_SEASON: str = ""  # Empty = derive from current date (e.g. "2025-2026")
    API_TIMEZONE: str = "Europe/Berlin"
    API_TIMEOUT_SECONDS: float = 15.0

    # Remote llama server (tier 1). Empty = tier skipped.
    LLAMA_SERVER_URL: Optional[str] = None
    LLAMA_TIMEOUT_SECONDS: float = 20.0
    LLAMA_MAX_TOKENS: int = 256
    LLAMA_TEMPERATURE: float = 0.2

    # Local Ollama (tier 2). OLLAMA_MODEL empty = tier skipped.
    OLLAMA_HOST: str = "http://localhost:11434"
    OLLAMA_MODEL: Optional[str] = None
    OLLAMA_TIMEOUT_SECONDS: float = 30.0

    # Feature engine
    FEATURE_WINDOW_SIZE: int = 10
    FEATURE_LOOKBACK_DAYS: int = 365

    # Telemetry / Observability
    METRICS_BEARER_TOKEN: str = ""  # Bearer token for /metrics (empty = open)
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def basketball_api_key(self) -> str:
        return self.API_BASKETBALL_KEY or self.API_FOOTBALL_KEY


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
