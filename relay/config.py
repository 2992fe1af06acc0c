"""
Configuration - Relay Module
Typed configuration management using Pydantic, built once at startup
"""

import os
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1"


def _env_int(name: str, default: int) -> int:
    """Parse integer env values with explicit validation errors."""
    raw = os.getenv(name)
    if raw is None:
        return default

    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer.") from exc


def _env_float(name: str, default: float) -> float:
    """Parse numeric env values (seconds) with explicit validation errors."""
    raw = os.getenv(name)
    if raw is None:
        return default

    try:
        return float(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a number.") from exc


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


class AppConfig(BaseModel):
    model_config = ConfigDict(validate_default=True)

    # App Identity
    APP_NAME: str = "Gemini Analysis Relay"
    VERSION: str = "1.0.0"

    # Server
    PORT: int = Field(default_factory=lambda: _env_int("PORT", 3000), ge=1, le=65535)
    CORS_ALLOWED_ORIGINS: List[str] = Field(
        default_factory=lambda: _env_list("CORS_ALLOWED_ORIGINS", ["*"])
    )

    # Upstream call discipline
    AI_REQUEST_TIMEOUT: float = Field(
        default_factory=lambda: _env_float("AI_REQUEST_TIMEOUT", 30.0),
        gt=0,
    )
    AI_MAX_RETRIES: int = Field(
        default_factory=lambda: _env_int("AI_MAX_RETRIES", 2),
        ge=0,
    )
    AI_RETRY_DELAY: float = Field(
        default_factory=lambda: _env_float("AI_RETRY_DELAY", 2.0),
        ge=0,
    )

    # Upstream endpoint
    GEMINI_BASE_URL: str = Field(
        default_factory=lambda: os.getenv("GEMINI_BASE_URL") or DEFAULT_GEMINI_BASE_URL
    )

    # Secrets
    GEMINI_API_KEY: Optional[str] = Field(default_factory=lambda: os.getenv("GEMINI_API_KEY"))

    def validate_secrets(self) -> None:
        """Validate that required environment variables are present."""
        if not self.GEMINI_API_KEY:
            raise ValueError(
                "GEMINI_API_KEY not found in environment. "
                "Please create a .env file with: GEMINI_API_KEY=your-key"
            )

    @property
    def api_key_preview(self) -> str:
        """First characters of the API key, safe to show to operators."""
        if not self.GEMINI_API_KEY:
            return ""
        return f"{self.GEMINI_API_KEY[:5]}…"

    @classmethod
    def load(cls) -> "AppConfig":
        """Load configuration from the environment."""
        config = cls()
        config.GEMINI_BASE_URL = config.GEMINI_BASE_URL.rstrip("/")
        return config
