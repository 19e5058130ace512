"""
Centralized configuration for the Harvest Desk backend.

All environment variables and settings should be defined here
to avoid duplication across modules.
"""
import os
from functools import lru_cache


class Settings:
    """Application settings loaded from environment variables."""

    # CORS - comma-separated list of allowed origins
    ALLOWED_ORIGINS: list = os.environ.get(
        "ALLOWED_ORIGINS",
        "http://localhost:8090,http://localhost:5173,http://127.0.0.1:8090"
    ).split(",")

    # Database
    DB_PATH: str = os.environ.get("HARVEST_DB_PATH", "data/harvest.db")

    # Claude API (product-matching oracle)
    CLAUDE_API_KEY: str = os.environ.get("CLAUDE_API_KEY", "")
    CLAUDE_API_URL: str = os.environ.get("CLAUDE_API_URL", "https://api.anthropic.com/v1/messages")
    CLAUDE_MATCH_MODEL: str = os.environ.get("CLAUDE_MATCH_MODEL", "claude-haiku-4-5-20251001")

    # Seconds to wait for one oracle answer
    ORACLE_TIMEOUT: int = int(os.environ.get("ORACLE_TIMEOUT", "30"))


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for easy import
settings = get_settings()
