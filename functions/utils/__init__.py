"""Utility modules for SiteQuote functions."""

from utils.analysis_logger import (
    log_analysis_start,
    log_analysis_complete,
    log_provider_failed,
    log_fallback_used,
)

__all__ = [
    "log_analysis_start",
    "log_analysis_complete",
    "log_provider_failed",
    "log_fallback_used",
]
