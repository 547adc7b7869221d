"""Analysis pipeline logger for SiteQuote.

Prints highly visible banner blocks for pipeline milestones so they
stand out in emulator output. Banners are only printed when
VERBOSE_LOGGING is enabled; the structlog events are always emitted.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import structlog

from config.settings import settings

logger = structlog.get_logger()

BANNER_WIDTH = 80
PIPELINE_BANNER_CHAR = "█"
PROVIDER_BANNER_CHAR = "─"
FALLBACK_BANNER_CHAR = "░"


def _create_banner(char: str, text: str, width: int = BANNER_WIDTH) -> str:
    """Create a centered banner with given character."""
    text_with_spaces = f" {text} "
    padding = (width - len(text_with_spaces)) // 2
    return char * padding + text_with_spaces + char * (width - padding - len(text_with_spaces))


def _print_block(char: str, title: str, rows: Dict[str, Any]) -> None:
    if not settings.verbose_logging:
        return

    label_width = max(len(label) for label in rows) if rows else 0
    print("\n")
    print(char * BANNER_WIDTH)
    print(_create_banner(char, title))
    print(char * BANNER_WIDTH)
    for label, value in rows.items():
        print(f"║ {label.ljust(label_width)} : {value}")
    print(char * BANNER_WIDTH)
    print("\n")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def log_analysis_start(
    provider: str,
    has_image: bool,
    has_message: bool,
    region: Optional[str] = None
) -> None:
    """Log analysis start with prominent banner."""
    _print_block(PIPELINE_BANNER_CHAR, "SITEQUOTE ANALYSIS STARTED", {
        "Timestamp": _now(),
        "Provider": provider,
        "Image": "yes" if has_image else "no",
        "Message": "yes" if has_message else "no",
        "Region": region or "UK",
    })

    logger.info(
        "analysis_start_logged",
        provider=provider,
        has_image=has_image,
        has_message=has_message,
        region=region,
    )


def log_analysis_complete(
    analysis_id: str,
    provider: str,
    response_type: str,
    confidence: float,
    duration_ms: int,
    total: Optional[Dict[str, float]] = None
) -> None:
    """Log analysis completion with summary."""
    rows = {
        "Analysis ID": analysis_id,
        "Timestamp": _now(),
        "Provider": provider,
        "Response": response_type,
        "Confidence": f"{confidence:.0f}",
        "Duration": f"{duration_ms:,} ms ({duration_ms / 1000:.2f}s)",
    }
    if total:
        rows["Total"] = f"£{total['min']:,.0f} - £{total['max']:,.0f}"
    _print_block(PIPELINE_BANNER_CHAR, "✓ ANALYSIS COMPLETED", rows)

    logger.info(
        "analysis_complete_logged",
        analysis_id=analysis_id,
        provider=provider,
        response_type=response_type,
        duration_ms=duration_ms,
    )


def log_provider_failed(provider: str, error: str, attempt: int) -> None:
    """Log a failed provider attempt."""
    _print_block(PROVIDER_BANNER_CHAR, f"✗ PROVIDER FAILED: {provider.upper()}", {
        "Timestamp": _now(),
        "Attempt": attempt,
        "Error": error[:200],
    })

    logger.warning(
        "provider_failed_logged",
        provider=provider,
        attempt=attempt,
        error=error,
    )


def log_fallback_used(failures: List[Dict[str, str]]) -> None:
    """Log that the generic fallback analysis replaced every provider."""
    rows = {"Timestamp": _now(), "Failures": len(failures)}
    for failure in failures:
        rows[f"  {failure.get('provider', 'unknown')}"] = failure.get("error", "")[:120]
    _print_block(FALLBACK_BANNER_CHAR, "⚠ FALLBACK ANALYSIS USED", rows)

    logger.error(
        "fallback_used_logged",
        failed_providers=[failure.get("provider") for failure in failures],
    )
