"""Base provider for SiteQuote.

Abstract base class for every AI analysis backend. Subclasses return raw
backend text from generate(); analyze() hands that text to the
ResponseNormalizer so malformed output always surfaces as a typed error.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, Optional
import time
import structlog

from config.errors import SiteQuoteError, ProviderError
from models.analysis import ProjectAnalysis
from models.request import AnalysisRequest
from services.response_normalizer import ResponseNormalizer

logger = structlog.get_logger()


class HealthStatus:
    """Health status constants."""

    HEALTHY = "healthy"
    DEGRADED = "degraded"
    DOWN = "down"


class BaseProvider(ABC):
    """Abstract base class for analysis providers.

    Provides:
    - analyze() = generate() + normalization, with error wrapping
    - Latency-based health checks

    Subclasses must implement:
    - is_available() - configured and usable
    - generate(request) - raw backend text for a request
    - ping() - cheapest possible round-trip, used by health_check
    """

    name: str = "base"
    vision_capable: bool = False
    degraded_latency_ms: int = 2000

    def __init__(self, normalizer: Optional[ResponseNormalizer] = None):
        self.normalizer = normalizer or ResponseNormalizer()

    @abstractmethod
    def is_available(self) -> bool:
        """Whether the provider is configured and can be called."""

    @abstractmethod
    async def generate(self, request: AnalysisRequest) -> str:
        """Call the backend and return its raw text."""

    @abstractmethod
    async def ping(self) -> None:
        """Minimal backend round-trip. Raises on failure."""

    async def analyze(self, request: AnalysisRequest) -> ProjectAnalysis:
        """Analyze a request.

        Args:
            request: Validated analysis request.

        Returns:
            Normalized ProjectAnalysis stamped with this provider's name.

        Raises:
            ProviderInvalidResponseError: Backend text could not be parsed.
            ProviderError: Any other backend failure.
        """
        start_time = time.perf_counter()
        try:
            raw_text = await self.generate(request)
        except SiteQuoteError:
            raise
        except Exception as e:
            logger.warning("provider_call_failed", provider=self.name, error=str(e))
            raise ProviderError(
                message=f"{self.name} analysis failed: {e}",
                provider_name=self.name,
                details={"original_error": str(e)}
            )

        analysis = self.normalizer.normalize(raw_text, self.name)

        logger.info(
            "provider_analysis_complete",
            provider=self.name,
            response_type=analysis.response_type,
            latency_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return analysis

    async def health_check(self) -> Dict[str, Any]:
        """Round-trip health status: healthy, degraded (slow) or down."""
        if not self.is_available():
            return {"status": HealthStatus.DOWN, "error": "not configured"}

        start_time = time.perf_counter()
        try:
            await self.ping()
        except Exception as e:
            logger.warning("provider_health_check_failed", provider=self.name, error=str(e))
            return {"status": HealthStatus.DOWN, "error": str(e)}

        latency_ms = round((time.perf_counter() - start_time) * 1000)
        status = HealthStatus.HEALTHY if latency_ms < self.degraded_latency_ms else HealthStatus.DEGRADED
        return {"status": status, "latencyMs": latency_ms}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
