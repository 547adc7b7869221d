"""SiteQuote analysis providers.

This package contains the AI backends the orchestrator selects between:
- Base provider contract (availability, health, analyze)
- Gemini (REST generateContent, vision)
- OpenAI (LangChain ChatOpenAI, conversational)
- Mock (deterministic, always available)
"""

from providers.base import BaseProvider, HealthStatus

__all__ = ["BaseProvider", "HealthStatus"]
