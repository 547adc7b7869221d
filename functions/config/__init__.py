"""SiteQuote configuration.

This package contains:
- settings: Environment variables and configuration
- secrets: Unified secret access (Google Secret Manager)
- errors: Custom exceptions and error codes
"""

from config.settings import settings
from config.errors import SiteQuoteError
from config.secrets import get_secret, get_gemini_api_key, get_openai_api_key

__all__ = [
    "settings",
    "SiteQuoteError",
    "get_secret",
    "get_gemini_api_key",
    "get_openai_api_key",
]
