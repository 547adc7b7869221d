"""SiteQuote configuration settings.

Loads configuration from environment variables with sensible defaults.
Secrets are loaded via Google Secret Manager (production) or environment variables (emulator).
"""

import os
from typing import List
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file for non-secret configuration (provider order, timeouts, etc.)
# API keys should come from Secret Manager or environment variables
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


def _env_list(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


@dataclass
class Settings:
    """Application settings loaded from environment variables.

    Note: API keys are accessed via the config.secrets module, not this class.
    """

    # Provider selection
    primary_provider: str = field(default_factory=lambda: os.getenv("PRIMARY_PROVIDER", "gemini"))
    fallback_providers: List[str] = field(default_factory=lambda: _env_list("FALLBACK_PROVIDERS", "openai,mock"))
    vision_provider: str = field(default_factory=lambda: os.getenv("VISION_PROVIDER", "gemini"))
    conversational_provider: str = field(default_factory=lambda: os.getenv("CONVERSATIONAL_PROVIDER", "openai"))
    provider_timeout_ms: int = field(default_factory=lambda: int(os.getenv("PROVIDER_TIMEOUT_MS", "30000")))
    allow_fallback: bool = field(default_factory=lambda: _env_bool("ALLOW_FALLBACK", "true"))

    # LLM Configuration (non-secrets)
    gemini_model: str = field(default_factory=lambda: os.getenv("GEMINI_MODEL", "gemini-2.0-flash"))
    gemini_base_url: str = field(default_factory=lambda: os.getenv(
        "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
    ))
    openai_model: str = field(default_factory=lambda: os.getenv("OPENAI_MODEL", "gpt-4o-mini"))
    llm_temperature: float = field(default_factory=lambda: float(os.getenv("LLM_TEMPERATURE", "0.3")))
    llm_max_tokens: int = field(default_factory=lambda: int(os.getenv("LLM_MAX_TOKENS", "4000")))

    # Image fetching
    image_fetch_timeout_seconds: float = field(default_factory=lambda: float(os.getenv("IMAGE_FETCH_TIMEOUT_SECONDS", "15")))

    # Pricing
    pricing_cache_ttl_seconds: int = field(default_factory=lambda: int(os.getenv("PRICING_CACHE_TTL_SECONDS", "3600")))
    pricing_fallback_to_estimates: bool = field(default_factory=lambda: _env_bool("PRICING_FALLBACK_TO_ESTIMATES", "true"))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    verbose_logging: bool = field(default_factory=lambda: _env_bool("VERBOSE_LOGGING", "false"))

    # Environment
    app_env: str = field(default_factory=lambda: os.getenv("APP_ENV", "development"))
    use_emulators: bool = field(default_factory=lambda: _env_bool("FUNCTIONS_EMULATOR", "false"))

    def validate(self) -> None:
        """Validate settings are coherent.

        Raises:
            ValueError: If a setting is out of range.
        """
        if self.provider_timeout_ms <= 0:
            raise ValueError("PROVIDER_TIMEOUT_MS must be positive")
        if self.pricing_cache_ttl_seconds < 0:
            raise ValueError("PRICING_CACHE_TTL_SECONDS must not be negative")
        if not self.primary_provider:
            raise ValueError("PRIMARY_PROVIDER is required")


# Singleton settings instance
settings = Settings()
