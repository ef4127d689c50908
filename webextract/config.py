"""Configuration management using pydantic-settings.

Values come from (highest precedence first) explicit keyword arguments,
environment variables, a local ``.env`` file and the model defaults.
"""

import os
from enum import Enum
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import OutputFormat

load_dotenv()


class Provider(str, Enum):
    """AI completion backends webextract can talk to."""

    GROQ = "groq"
    OPENAI = "openai"
    TOGETHER = "together"
    GEMINI = "gemini"
    COHERE = "cohere"
    HUGGINGFACE = "huggingface"
    OLLAMA = "ollama"


# Per-provider environment variable holding the API key (None: no key needed).
PROVIDER_KEY_ENV = {
    Provider.GROQ: "GROQ_API_KEY",
    Provider.OPENAI: "OPENAI_API_KEY",
    Provider.TOGETHER: "TOGETHER_API_KEY",
    Provider.GEMINI: "GEMINI_API_KEY",
    Provider.COHERE: "COHERE_API_KEY",
    Provider.HUGGINGFACE: "HUGGINGFACE_API_KEY",
    Provider.OLLAMA: None,
}


class AIConfig(BaseSettings):
    """AI backend selection and credentials (``AI_*`` environment variables)."""

    model_config = SettingsConfigDict(env_prefix="AI_", env_file=".env", extra="ignore")

    provider: Optional[Provider] = None
    api_key: Optional[str] = None
    model: Optional[str] = None
    base_url: Optional[str] = None
    timeout: float = 60.0
    max_retries: int = Field(default=5, ge=1)
    retry_base_delay: float = Field(default=2.0, ge=0.0)

    @field_validator("provider", mode="before")
    @classmethod
    def normalize_provider(cls, v):
        if isinstance(v, str):
            v = v.strip().lower()
            return v or None
        return v

    @property
    def enabled(self) -> bool:
        return self.provider is not None

    def resolve_api_key(self) -> Optional[str]:
        """Explicit key first, then the provider's own environment variable."""
        if self.api_key:
            return self.api_key
        if self.provider is None:
            return None
        env_name = PROVIDER_KEY_ENV.get(self.provider)
        return os.getenv(env_name) if env_name else None


class ExtractionSettings(BaseSettings):
    """Tunables for the extraction pipeline (``WEBEXTRACT_*`` environment variables)."""

    model_config = SettingsConfigDict(env_prefix="WEBEXTRACT_", env_file=".env", extra="ignore")

    fast_path_confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    ai_context_chars: int = Field(default=8000, gt=0)
    max_concurrent: int = Field(default=3, ge=1)
    use_browser: bool = True
    headless: bool = True
    page_timeout_ms: int = 30000
    settle_ms: int = 1000
    output_format: OutputFormat = OutputFormat.MARKDOWN
    log_level: str = "INFO"


_settings: Optional[ExtractionSettings] = None


def get_settings() -> ExtractionSettings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = ExtractionSettings()
    return _settings


def reset_settings() -> None:
    """Drop cached settings (mainly for testing)."""
    global _settings
    _settings = None
