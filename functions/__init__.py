"""SiteQuote analysis core - Cloud Functions.

This package contains the Python Cloud Functions for the SiteQuote
construction quoting assistant.

Architecture:
- Provider adapters: Gemini, OpenAI, Mock
- Orchestrator: provider selection, timeout, ordered fallback
- Normalizer: repairs free-form provider output into ProjectAnalysis
- Pricing engine: regional/seasonal UK market rates and enrichment
"""

__version__ = "1.0.0"
