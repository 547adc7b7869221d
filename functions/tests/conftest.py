"""Pytest configuration and shared fixtures for SiteQuote tests."""

import asyncio
import os
import sys
from datetime import date
from typing import Optional

import pytest


# ============================================================================
# Ensure local imports work (config/, models/, providers/, services/)
# ============================================================================
#
# Our codebase uses absolute imports like `from models...` / `from services...`.
# This guarantees that `functions/` is importable as the top-level module root.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from config.errors import ProviderError  # noqa: E402
from providers.base import BaseProvider  # noqa: E402
from tests.fixtures.mock_provider_responses import (  # noqa: E402
    IMAGE_ONLY_REQUEST_PAYLOAD,
    KITCHEN_REQUEST_PAYLOAD,
    QUOTE_RESPONSE_TEXT,
)


# ============================================================================
# Fake Providers
# ============================================================================

class FakeProvider(BaseProvider):
    """Scriptable provider: returns fixed text, sleeps, or raises."""

    def __init__(
        self,
        name: str,
        response_text: str = QUOTE_RESPONSE_TEXT,
        delay_seconds: float = 0.0,
        error: Optional[Exception] = None,
        vision_capable: bool = True,
    ):
        super().__init__()
        self.name = name
        self.vision_capable = vision_capable
        self.response_text = response_text
        self.delay_seconds = delay_seconds
        self.error = error
        self.calls = 0
        self.requests = []

    def is_available(self) -> bool:
        return True

    async def generate(self, request) -> str:
        self.calls += 1
        self.requests.append(request)
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error
        return self.response_text

    async def ping(self) -> None:
        if self.error is not None:
            raise self.error


@pytest.fixture
def make_provider():
    """Factory for FakeProvider instances."""
    def _make(name: str, **kwargs) -> FakeProvider:
        return FakeProvider(name, **kwargs)
    return _make


@pytest.fixture
def failing_provider():
    """Provider whose backend always errors."""
    return FakeProvider(
        "broken",
        error=ProviderError(message="backend exploded", provider_name="broken"),
    )


# ============================================================================
# Pricing
# ============================================================================

class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def off_season_day():
    """A March date: seasonal multiplier 1.00."""
    return date(2025, 3, 10)


@pytest.fixture
def pricing_engine(fake_clock, off_season_day):
    """PricingEngine with a fake clock and a fixed off-season date."""
    from services.pricing_engine import PricingEngine

    return PricingEngine(
        cache_ttl_seconds=3600,
        allow_estimate_fallback=True,
        clock=fake_clock,
        today=lambda: off_season_day,
    )


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest.fixture
def kitchen_payload():
    """Sample analysis request payload (Manchester kitchen)."""
    return {**KITCHEN_REQUEST_PAYLOAD, "context": dict(KITCHEN_REQUEST_PAYLOAD["context"])}


@pytest.fixture
def image_only_payload():
    """Sample analysis request payload with only a photo."""
    return dict(IMAGE_ONLY_REQUEST_PAYLOAD)


# ============================================================================
# Environment Setup
# ============================================================================

@pytest.fixture(autouse=True)
def mock_settings(monkeypatch):
    """Pin settings and secrets for all tests."""
    from config.secrets import clear_secret_cache
    from config.settings import settings

    monkeypatch.setenv("FUNCTIONS_EMULATOR", "true")
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    clear_secret_cache()

    monkeypatch.setattr(settings, "primary_provider", "gemini")
    monkeypatch.setattr(settings, "fallback_providers", ["openai", "mock"])
    monkeypatch.setattr(settings, "vision_provider", "gemini")
    monkeypatch.setattr(settings, "conversational_provider", "openai")
    monkeypatch.setattr(settings, "provider_timeout_ms", 30000)
    monkeypatch.setattr(settings, "allow_fallback", True)
    monkeypatch.setattr(settings, "llm_temperature", 0.3)
    monkeypatch.setattr(settings, "llm_max_tokens", 4000)
    monkeypatch.setattr(settings, "pricing_cache_ttl_seconds", 3600)
    monkeypatch.setattr(settings, "pricing_fallback_to_estimates", True)
    monkeypatch.setattr(settings, "verbose_logging", False)
    monkeypatch.setattr(settings, "use_emulators", True)
    yield settings
    clear_secret_cache()
