"""Analysis orchestrator for SiteQuote.

Single entry point for construction analysis:
1. Validate the request and build project/pricing contexts
2. Fetch regional market pricing (non-fatal)
3. Pick a provider and race it against the timeout
4. Fall back through the configured providers in order
5. Enrich the result with market pricing

When every provider fails the generic fallback analysis is returned, so
the only error a caller ever sees is a malformed request.
"""

import asyncio
import secrets
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import structlog
from pydantic import ValidationError

from config.errors import (
    AllProvidersFailedError,
    ErrorCode,
    InvalidRequestError,
    PricingFetchError,
    ProviderTimeoutError,
)
from config.secrets import get_gemini_api_key, get_openai_api_key, is_usable_key
from config.settings import settings
from models.analysis import ProjectAnalysis, ResponseType
from models.pricing import PricingResponse
from models.request import AnalysisRequest, AnalysisResponse, ErrorInfo
from providers.base import BaseProvider
from providers.gemini_provider import GeminiProvider
from providers.mock_provider import MockProvider
from providers.openai_provider import OpenAIProvider
from services.context_builder import RequestContextBuilder
from services.fallback_analysis import generate_fallback_analysis
from services.pricing_engine import PricingEngine
from utils.analysis_logger import (
    log_analysis_complete,
    log_analysis_start,
    log_fallback_used,
    log_provider_failed,
)

logger = structlog.get_logger()

# Conversations longer than this go to the conversational provider.
LONG_CONVERSATION_TURNS = 6
COMPLEX_PROJECT_KEYWORDS = ("extension", "renovation")
MARKET_SNAPSHOT_ROWS = 3


def _discard_late_result(task: "asyncio.Future[Any]") -> None:
    """Consume the outcome of a provider call that already timed out."""
    if not task.cancelled():
        task.exception()


def _elapsed_ms(started_at: float, now: float) -> int:
    return max(0, round((now - started_at) * 1000))


class AnalysisOrchestrator:
    """Provider registry with selection, timeout and fallback.

    Args:
        primary_provider: Provider tried when no routing rule applies.
        fallback_providers: Providers tried in order after a failure.
        timeout_ms: Per-attempt timeout.
        allow_fallback: Try fallbacks after the first failure.
        vision_provider: Provider for image requests.
        conversational_provider: Provider for long or complex conversations.
        pricing_engine: PricingEngine instance (created when omitted).
        context_builder: RequestContextBuilder instance (created when omitted).
        clock: Monotonic clock in seconds, injectable for tests.

    Every configuration argument defaults to the value in settings.
    """

    def __init__(
        self,
        primary_provider: Optional[str] = None,
        fallback_providers: Optional[List[str]] = None,
        timeout_ms: Optional[int] = None,
        allow_fallback: Optional[bool] = None,
        vision_provider: Optional[str] = None,
        conversational_provider: Optional[str] = None,
        pricing_engine: Optional[PricingEngine] = None,
        context_builder: Optional[RequestContextBuilder] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.primary_provider = primary_provider or settings.primary_provider
        self.fallback_providers = list(
            settings.fallback_providers if fallback_providers is None else fallback_providers
        )
        self.timeout_ms = timeout_ms or settings.provider_timeout_ms
        self.allow_fallback = settings.allow_fallback if allow_fallback is None else allow_fallback
        self.vision_provider = vision_provider or settings.vision_provider
        self.conversational_provider = conversational_provider or settings.conversational_provider

        self.pricing_engine = pricing_engine or PricingEngine()
        self.context_builder = context_builder or RequestContextBuilder()
        self._clock = clock or time.perf_counter
        self._providers: Dict[str, BaseProvider] = {}

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register_provider(self, provider: BaseProvider) -> None:
        """Register (or replace) a provider under its name."""
        self._providers[provider.name] = provider
        logger.info("provider_registered", provider=provider.name, vision=provider.vision_capable)

    def get_provider(self, name: str) -> Optional[BaseProvider]:
        return self._providers.get(name)

    def available_providers(self) -> List[str]:
        return list(self._providers)

    async def initialize(self) -> None:
        """Register the configured providers and prepare the pricing engine.

        Gemini and OpenAI are registered only when their API keys are
        usable; the mock provider is always registered.
        """
        if is_usable_key(get_gemini_api_key()):
            self.register_provider(GeminiProvider())
        else:
            logger.warning("provider_not_configured", provider="gemini")

        if is_usable_key(get_openai_api_key()):
            self.register_provider(OpenAIProvider())
        else:
            logger.warning("provider_not_configured", provider="openai")

        self.register_provider(MockProvider())
        await self.pricing_engine.initialize()

        logger.info(
            "orchestrator_initialized",
            environment=settings.app_env,
            providers=self.available_providers(),
            primary=self.primary_provider,
            fallbacks=self.fallback_providers,
        )

    # ------------------------------------------------------------------
    # Selection and execution
    # ------------------------------------------------------------------

    def select_provider(self, request: AnalysisRequest) -> str:
        """Name of the provider to try first for a request."""
        preferred = request.context.preferred_provider
        if preferred and preferred in self._providers:
            return preferred

        turns = len(request.history)
        if request.has_image and turns <= LONG_CONVERSATION_TURNS:
            if self.vision_provider in self._providers:
                return self.vision_provider

        project_type = (request.context.project_type or "").lower()
        is_complex = any(keyword in project_type for keyword in COMPLEX_PROJECT_KEYWORDS)
        if turns > LONG_CONVERSATION_TURNS or is_complex:
            if self.conversational_provider in self._providers:
                return self.conversational_provider

        return self.primary_provider

    async def _analyze_with_timeout(self, provider: BaseProvider, request: AnalysisRequest) -> ProjectAnalysis:
        """Race provider.analyze() against the timeout.

        The provider call is not cancelled on timeout; its late result
        is discarded.
        """
        task = asyncio.ensure_future(provider.analyze(request))
        done, _ = await asyncio.wait({task}, timeout=self.timeout_ms / 1000)
        if task in done:
            return task.result()

        task.add_done_callback(_discard_late_result)
        raise ProviderTimeoutError(provider.name, self.timeout_ms)

    async def _attempt(
        self,
        name: str,
        request: AnalysisRequest,
        failures: List[Dict[str, str]]
    ) -> Optional[ProjectAnalysis]:
        provider = self.get_provider(name)
        if provider is None:
            failures.append({"provider": name, "error": f"Provider {name} is not registered"})
            logger.warning("provider_not_registered", provider=name)
            return None

        try:
            return await self._analyze_with_timeout(provider, request)
        except Exception as e:
            failures.append({"provider": name, "error": str(e)})
            log_provider_failed(name, str(e), attempt=len(failures))
            return None

    async def execute(self, request: AnalysisRequest, started_at: Optional[float] = None) -> ProjectAnalysis:
        """Run the selected provider, then the fallbacks, until one succeeds.

        Args:
            request: Validated analysis request.
            started_at: Clock reading at request entry, for processingTimeMs.

        Returns:
            ProjectAnalysis stamped with processingTimeMs and aiProvider.

        Raises:
            AllProvidersFailedError: Every attempted provider failed.
        """
        if started_at is None:
            started_at = self._clock()

        failures: List[Dict[str, str]] = []
        selected = self.select_provider(request)

        analysis = await self._attempt(selected, request, failures)
        if analysis is not None:
            return self._stamp(analysis, selected, started_at)

        if not self.allow_fallback:
            raise AllProvidersFailedError(failures)

        for name in self.fallback_providers:
            if name == selected:
                continue
            analysis = await self._attempt(name, request, failures)
            if analysis is not None:
                logger.warning("fallback_provider_used", provider=name, failed=selected)
                analysis = self._stamp(analysis, name, started_at)
                return analysis.model_copy(update={
                    "warnings": [*analysis.warnings, f"Analysis completed using fallback provider: {name}"],
                })

        raise AllProvidersFailedError(failures)

    def _stamp(self, analysis: ProjectAnalysis, provider_name: str, started_at: float) -> ProjectAnalysis:
        return analysis.model_copy(update={
            "ai_provider": provider_name,
            "processing_time_ms": _elapsed_ms(started_at, self._clock()),
        })

    # ------------------------------------------------------------------
    # Pipeline
    # ------------------------------------------------------------------

    def _market_snapshot(self, region: str, pricing: PricingResponse) -> Dict[str, Any]:
        """Compact pricing summary handed to the providers' prompts."""
        return {
            "region": region,
            "regionMultiplier": pricing.context_factors.region_multiplier,
            "seasonalMultiplier": pricing.context_factors.seasonal_multiplier,
            "toolHire": [
                {"name": tool.name, "dailyRate": tool.daily_rate}
                for tool in pricing.tool_hire[:MARKET_SNAPSHOT_ROWS]
            ],
            "materials": [
                {"name": material.name, "averagePrice": material.price_range.average, "unit": material.unit}
                for material in pricing.materials[:MARKET_SNAPSHOT_ROWS]
            ],
        }

    async def analyze(self, request: AnalysisRequest) -> ProjectAnalysis:
        """Full analysis pipeline.

        Raises:
            InvalidRequestError: Neither a usable image nor a message. No
                provider is invoked.
        """
        started_at = self._clock()
        project_context, pricing_context = self.context_builder.build(request)

        pricing: Optional[PricingResponse] = None
        try:
            pricing = await self.pricing_engine.get_pricing_data(pricing_context)
        except PricingFetchError as e:
            logger.warning("pricing_unavailable", region=pricing_context.region, error=e.message)

        if pricing is not None:
            market_data = self._market_snapshot(pricing_context.region, pricing)
            context = request.context.model_copy(update={"market_data": market_data})
            request = request.model_copy(update={"context": context})

        log_analysis_start(
            provider=self.select_provider(request),
            has_image=request.has_image,
            has_message=request.has_message,
            region=project_context.region,
        )

        try:
            analysis = await self.execute(request, started_at)
        except AllProvidersFailedError as e:
            log_fallback_used(e.failures)
            return generate_fallback_analysis(request, e)

        now_ms = int(time.time() * 1000)
        analysis = analysis.model_copy(update={
            "analysis_id": f"analysis_{now_ms}_{secrets.token_hex(5)[:9]}",
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

        if pricing is not None and analysis.response_type != ResponseType.CONVERSATION.value:
            analysis = self.pricing_engine.enrich(analysis, pricing)

        log_analysis_complete(
            analysis_id=analysis.analysis_id,
            provider=analysis.ai_provider or "unknown",
            response_type=analysis.response_type,
            confidence=analysis.confidence,
            duration_ms=analysis.processing_time_ms or 0,
            total=analysis.cost_breakdown.total.model_dump(),
        )
        return analysis

    async def handle_request(self, payload: Optional[Dict[str, Any]]) -> AnalysisResponse:
        """Transport entry point: parse, analyze, wrap.

        Malformed requests come back as success=False with code
        VALIDATION_ERROR; everything else succeeds.
        """
        started_at = self._clock()
        try:
            request = AnalysisRequest.model_validate(payload or {})
            analysis = await self.analyze(request)
        except ValidationError as e:
            logger.warning("analysis_request_invalid", errors=e.error_count())
            return AnalysisResponse(
                success=False,
                error=ErrorInfo(
                    code=ErrorCode.VALIDATION_ERROR,
                    message="Invalid request",
                    details={"errors": e.errors(include_url=False, include_context=False)},
                ),
                processing_time_ms=_elapsed_ms(started_at, self._clock()),
            )
        except InvalidRequestError as e:
            logger.warning("analysis_request_invalid", error=e.message, details=e.details)
            return AnalysisResponse(
                success=False,
                error=ErrorInfo(code=ErrorCode.VALIDATION_ERROR, message=e.message, details=e.details or None),
                processing_time_ms=_elapsed_ms(started_at, self._clock()),
            )

        return AnalysisResponse(
            success=True,
            data=analysis.to_response_dict(),
            processing_time_ms=_elapsed_ms(started_at, self._clock()),
            ai_provider=analysis.ai_provider,
        )

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def health_check(self) -> Dict[str, Dict[str, Any]]:
        """Health of every registered provider, keyed by name."""
        names = self.available_providers()
        results = await asyncio.gather(*(self._providers[name].health_check() for name in names))
        return dict(zip(names, results))
