"""Unified secret access for SiteQuote functions.

In production: Uses Google Cloud Secret Manager
In emulator: Falls back to environment variables

Usage:
    from config.secrets import get_gemini_api_key

    api_key = get_gemini_api_key()
"""

import os
from functools import lru_cache
from typing import Optional

import structlog
from google.cloud import secretmanager

logger = structlog.get_logger()

# Keys shorter than this, or equal to the template placeholder, are treated as unset.
MIN_API_KEY_LENGTH = 20
PLACEHOLDER_VALUES = {"your_api_key_here", "your-api-key", "changeme"}


def is_emulator_mode() -> bool:
    """Check if running in Firebase emulator mode."""
    return os.environ.get('FUNCTIONS_EMULATOR') == 'true'


def get_secret(secret_id: str) -> Optional[str]:
    """
    Get secret from Secret Manager (production) or environment (local).

    Args:
        secret_id: The name of the secret (e.g., 'GEMINI_API_KEY')

    Returns:
        The secret value, or None if not found
    """
    value = os.environ.get(secret_id)
    if value or is_emulator_mode():
        if not value:
            logger.warning("secret_missing", secret_id=secret_id)
        return value

    try:
        client = secretmanager.SecretManagerServiceClient()
        project_id = os.environ.get('GCLOUD_PROJECT') or os.environ.get('GOOGLE_CLOUD_PROJECT', 'sitequote-dev')
        name = f"projects/{project_id}/secrets/{secret_id}/versions/latest"

        response = client.access_secret_version(request={"name": name})
        logger.debug("secret_loaded", secret_id=secret_id, source="secret_manager")
        return response.payload.data.decode("UTF-8")

    except Exception as e:
        logger.warning("secret_load_failed", secret_id=secret_id, error=str(e))
        return None


def is_usable_key(value: Optional[str]) -> bool:
    """Reject empty, placeholder, and obviously truncated keys."""
    if not value:
        return False
    if value.strip().lower() in PLACEHOLDER_VALUES:
        return False
    return len(value.strip()) >= MIN_API_KEY_LENGTH


@lru_cache(maxsize=1)
def get_gemini_api_key() -> Optional[str]:
    """Get Google Gemini API key from secrets."""
    return get_secret('GEMINI_API_KEY')


@lru_cache(maxsize=1)
def get_openai_api_key() -> Optional[str]:
    """Get OpenAI API key from secrets."""
    return get_secret('OPENAI_API_KEY')


def clear_secret_cache() -> None:
    """Clear cached secrets. Useful for testing or when secrets are rotated."""
    get_gemini_api_key.cache_clear()
    get_openai_api_key.cache_clear()
