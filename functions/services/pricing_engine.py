"""
Pricing engine for SiteQuote.

Produces regional and seasonal UK market rates for a project and uses
them to re-price a normalized ProjectAnalysis.

Architecture:
- Base rates come from a pluggable data source (StaticPricingDataSource by default)
- Every rate is scaled by region x season; labour additionally by demand
- Responses are cached per (region, project type, scale) with a TTL;
  entries are frozen models, replaced on expiry and never mutated
- Any computation failure degrades to a fixed national estimate unless
  the caller disables that fallback
"""

import re
import time
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Tuple

import structlog

from config.errors import PricingFetchError
from config.settings import settings
from models.analysis import CostBreakdown, LaborCost, MaterialsCost, ProjectAnalysis, ResponseType
from models.pricing import (
    AggregateRate,
    ContextFactors,
    Impact,
    LaborRate,
    MaterialPrice,
    PriceBand,
    PricingContext,
    PricingRecommendation,
    PricingResponse,
    PricingSource,
    RecommendationType,
    ToolHireRate,
)
from services.pricing_data_source import StaticPricingDataSource
from services.uk_reference_rates import (
    AGGREGATE_RATES,
    FALLBACK_RECOMMENDATION,
    HIGH_DEMAND_KEYWORDS,
    HIGH_DEMAND_MULTIPLIER,
    LABOR_RATES,
    MATERIAL_PRICES,
    NATIONAL_REGION,
    SEASONAL_MULTIPLIERS,
    TOOL_HIRE_RATES,
)

logger = structlog.get_logger()

# Enrichment bands around the re-priced figures.
MATERIALS_BAND = (0.9, 1.2)
LABOR_BAND = (0.9, 1.1)

# Region multipliers above this earn a disclosure warning on the analysis.
REGION_WARNING_THRESHOLD = 1.15

# Recommendation thresholds.
REGION_RECOMMENDATION_THRESHOLD = 1.10
SEASON_RECOMMENDATION_THRESHOLD = 1.05

# Largest quantity read from a free-text material line.
MAX_QUANTITY = 100_000

_LEADING_QUANTITY = re.compile(r"^\s*(\d+)")


def _money(value: float) -> float:
    """Round to pence."""
    return round(value, 2)


def seasonal_multiplier_for(month: int) -> float:
    """Seasonal multiplier for a calendar month (1-12)."""
    return SEASONAL_MULTIPLIERS.get(month, 1.0)


def demand_multiplier_for(project_type: Optional[str]) -> float:
    """Labour demand multiplier for high-demand project types."""
    lowered = (project_type or "").lower()
    if any(keyword in lowered for keyword in HIGH_DEMAND_KEYWORDS):
        return HIGH_DEMAND_MULTIPLIER
    return 1.0


def leading_quantity(quantity: Optional[str]) -> int:
    """Leading integer of a free-text quantity ('12 sheets' -> 12), default 1, capped at MAX_QUANTITY."""
    match = _LEADING_QUANTITY.match(quantity or "")
    if not match:
        return 1
    digits = match.group(1).lstrip("0")
    if not digits:
        return 1
    if len(digits) > len(str(MAX_QUANTITY)):
        return MAX_QUANTITY
    return min(int(digits), MAX_QUANTITY)


def _names_match(left: str, right: str) -> bool:
    a, b = left.strip().lower(), right.strip().lower()
    return bool(a and b) and (a in b or b in a)


def _scale_band(band: PriceBand, multiplier: float) -> PriceBand:
    return PriceBand(
        min=_money(band.min * multiplier),
        max=_money(band.max * multiplier),
        average=_money(band.average * multiplier),
    )


def _scale_optional(value: Optional[float], multiplier: float) -> Optional[float]:
    return None if value is None else _money(value * multiplier)


class PricingEngine:
    """Regional market pricing with a TTL cache.

    Args:
        data_source: Object exposing async fetch_reference_rates(region, project_type, scale).
        cache_ttl_seconds: Cache lifetime (default from settings).
        allow_estimate_fallback: Default for get_pricing_data (default from settings).
        clock: Monotonic clock for cache expiry, injectable for tests.
        today: Callable returning the current date, used for seasonal pricing.
    """

    def __init__(
        self,
        data_source: Optional[Any] = None,
        cache_ttl_seconds: Optional[int] = None,
        allow_estimate_fallback: Optional[bool] = None,
        clock: Optional[Callable[[], float]] = None,
        today: Optional[Callable[[], date]] = None,
    ):
        self.data_source = data_source or StaticPricingDataSource()
        self._cache_ttl = settings.pricing_cache_ttl_seconds if cache_ttl_seconds is None else cache_ttl_seconds
        self.allow_estimate_fallback = (
            settings.pricing_fallback_to_estimates
            if allow_estimate_fallback is None else allow_estimate_fallback
        )
        self._clock = clock or time.monotonic
        self._today = today or date.today
        self._cache: Dict[Tuple[str, str, str], Tuple[PricingResponse, float]] = {}
        self._initialized = False

    async def initialize(self) -> None:
        """Prepare the engine. Safe to call more than once."""
        if self._initialized:
            return
        self._initialized = True
        logger.info(
            "pricing_engine_initialized",
            data_source=type(self.data_source).__name__,
            cache_ttl_seconds=self._cache_ttl,
        )

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def _get_cached(self, cache_key: Tuple[str, str, str]) -> Optional[PricingResponse]:
        """Get cached response if still valid."""
        if cache_key in self._cache:
            response, stored_at = self._cache[cache_key]
            if self._clock() - stored_at < self._cache_ttl:
                return response
            del self._cache[cache_key]
        return None

    def _set_cached(self, cache_key: Tuple[str, str, str], response: PricingResponse) -> None:
        self._cache[cache_key] = (response, self._clock())

    def clear_cache(self) -> None:
        """Drop every cached response."""
        self._cache.clear()
        logger.info("pricing_cache_cleared")

    @property
    def cache_size(self) -> int:
        return len(self._cache)

    # ------------------------------------------------------------------
    # Pricing
    # ------------------------------------------------------------------

    async def get_pricing_data(
        self,
        context: PricingContext,
        allow_estimate_fallback: Optional[bool] = None
    ) -> PricingResponse:
        """Market rates for a project context, cache first.

        Args:
            context: Region, project type and scale to price.
            allow_estimate_fallback: Return fixed national estimates instead
                of raising when computation fails (default from constructor).

        Returns:
            PricingResponse, shared with the cache; it is frozen.

        Raises:
            PricingFetchError: Computation failed and fallback is disabled.
        """
        await self.initialize()
        allow_fallback = self.allow_estimate_fallback if allow_estimate_fallback is None else allow_estimate_fallback

        cache_key = context.cache_key
        cached = self._get_cached(cache_key)
        if cached is not None:
            logger.debug("pricing_cache_hit", region=context.region, project_type=context.project_type)
            return cached

        start_time = time.perf_counter()
        try:
            response = await self._compute(context)
        except Exception as e:
            logger.warning(
                "pricing_compute_failed",
                region=context.region,
                project_type=context.project_type,
                error=str(e),
                fallback=allow_fallback,
            )
            if not allow_fallback:
                raise PricingFetchError(
                    message=f"Failed to compute pricing for {context.region}: {e}",
                    details={"region": context.region, "project_type": context.project_type}
                )
            return self.fallback_estimate()

        self._set_cached(cache_key, response)
        logger.info(
            "pricing_computed",
            region=context.region,
            project_type=context.project_type,
            scale=context.scale,
            region_multiplier=response.context_factors.region_multiplier,
            seasonal_multiplier=response.context_factors.seasonal_multiplier,
            latency_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        return response

    async def _compute(self, context: PricingContext) -> PricingResponse:
        rates = await self.data_source.fetch_reference_rates(
            context.region, context.project_type, context.scale
        )

        region_multiplier = rates.region_multiplier
        seasonal_multiplier = seasonal_multiplier_for(self._today().month)
        demand_multiplier = demand_multiplier_for(context.project_type)

        price_multiplier = region_multiplier * seasonal_multiplier
        labor_multiplier = price_multiplier * demand_multiplier

        tool_hire = [
            tool.model_copy(update={
                "daily_rate": _money(tool.daily_rate * price_multiplier),
                "weekly_rate": _money(tool.weekly_rate * price_multiplier),
            })
            for tool in rates.tool_hire
        ]
        materials = [
            material.model_copy(update={"price_range": _scale_band(material.price_range, price_multiplier)})
            for material in rates.materials
        ]
        aggregates = [
            aggregate.model_copy(update={
                "price_per_tonne": _scale_optional(aggregate.price_per_tonne, price_multiplier),
                "price_per_cubic_metre": _scale_optional(aggregate.price_per_cubic_metre, price_multiplier),
            })
            for aggregate in rates.aggregates
        ]
        labor = [
            rate.model_copy(update={
                "hourly_rate": _scale_band(rate.hourly_rate, labor_multiplier),
                "daily_rate": _scale_band(rate.daily_rate, labor_multiplier),
            })
            for rate in rates.labor
        ]

        factors = ContextFactors(
            region_multiplier=region_multiplier,
            seasonal_multiplier=seasonal_multiplier,
            demand_multiplier=demand_multiplier,
            accessibility_multiplier=1.0,
        )

        return PricingResponse(
            tool_hire=tool_hire,
            materials=materials,
            aggregates=aggregates,
            labor=labor,
            context_factors=factors,
            recommendations=self._recommendations(context, factors),
            last_updated=datetime.now(timezone.utc).isoformat(),
            source=PricingSource.REFERENCE_DATA.value,
        )

    def _recommendations(
        self,
        context: PricingContext,
        factors: ContextFactors
    ) -> List[PricingRecommendation]:
        recommendations = []

        if factors.region_multiplier > REGION_RECOMMENDATION_THRESHOLD:
            premium = round((factors.region_multiplier - 1) * 100)
            recommendations.append(PricingRecommendation(
                type=RecommendationType.COST_SAVING.value,
                message=(
                    f"Prices in {context.region} are {premium}% above national average. "
                    "Consider sourcing from nearby areas."
                ),
                impact=Impact.HIGH.value,
            ))

        if factors.seasonal_multiplier > SEASON_RECOMMENDATION_THRESHOLD:
            recommendations.append(PricingRecommendation(
                type=RecommendationType.TIMING.value,
                message="Current season has higher pricing. Consider delaying non-urgent work to shoulder seasons.",
                impact=Impact.MEDIUM.value,
            ))

        if context.scale == "large":
            recommendations.append(PricingRecommendation(
                type=RecommendationType.SUPPLIER.value,
                message="For large projects, consider direct supplier relationships for bulk discounts.",
                impact=Impact.HIGH.value,
            ))

        if context.price_range == "budget":
            recommendations.append(PricingRecommendation(
                type=RecommendationType.QUALITY.value,
                message="Budget materials selected. Ensure they meet building regulations and consider long-term value.",
                impact=Impact.MEDIUM.value,
            ))

        return recommendations

    def fallback_estimate(self) -> PricingResponse:
        """Fixed national estimate used when fresh pricing cannot be computed."""
        return PricingResponse(
            tool_hire=[ToolHireRate.model_validate(row) for row in TOOL_HIRE_RATES],
            materials=[MaterialPrice.model_validate(row) for row in MATERIAL_PRICES],
            aggregates=[AggregateRate.model_validate(row) for row in AGGREGATE_RATES],
            labor=[LaborRate.model_validate(row) for row in LABOR_RATES],
            context_factors=ContextFactors(),
            recommendations=[PricingRecommendation(
                type=RecommendationType.QUALITY.value,
                message=FALLBACK_RECOMMENDATION,
                impact=Impact.MEDIUM.value,
            )],
            last_updated=datetime.now(timezone.utc).isoformat(),
            source=PricingSource.FALLBACK_ESTIMATES.value,
        )

    # ------------------------------------------------------------------
    # Enrichment
    # ------------------------------------------------------------------

    def enrich(self, analysis: ProjectAnalysis, pricing: PricingResponse) -> ProjectAnalysis:
        """Re-price an analysis with market rates.

        Matched material lines take the market average unit price, matched
        tools the market daily rate, and labour the general trade average.
        Bands are then rebuilt around the re-priced figures. Estimations
        keep the bands derived from their rough estimate and only gain the
        market recommendations and warnings. The input analysis is not
        modified.
        """
        breakdown = analysis.cost_breakdown
        if analysis.response_type == ResponseType.ESTIMATION.value:
            return self._annotate(analysis, pricing, {})

        items = []
        for item in breakdown.materials.items:
            match = next((m for m in pricing.materials if _names_match(item.name, m.name)), None)
            if match is not None:
                unit_price = match.price_range.average
                item = item.model_copy(update={
                    "unit_price": unit_price,
                    "total_price": _money(unit_price * leading_quantity(item.quantity)),
                })
            items.append(item)

        tools = []
        for tool in analysis.tools_required:
            match = next((t for t in pricing.tool_hire if _names_match(tool.name, t.name)), None)
            if match is not None:
                tool = tool.model_copy(update={"daily_rental_price": match.daily_rate})
            tools.append(tool)

        hourly_rate = breakdown.labor.hourly_rate
        general = pricing.general_labor_rate()
        if general is not None:
            hourly_rate = general.hourly_rate.average

        items_total = sum(item.total_price for item in items)
        materials_base = items_total if items_total > 0 else breakdown.materials.min
        labor_base = hourly_rate * breakdown.labor.estimated_hours

        cost_breakdown = CostBreakdown.from_parts(
            MaterialsCost(
                min=round(materials_base * MATERIALS_BAND[0]),
                max=round(materials_base * MATERIALS_BAND[1]),
                items=items,
            ),
            LaborCost(
                min=round(labor_base * LABOR_BAND[0]),
                max=round(labor_base * LABOR_BAND[1]),
                hourly_rate=hourly_rate,
                estimated_hours=breakdown.labor.estimated_hours,
            ),
        )

        logger.debug(
            "analysis_enriched",
            matched_materials=sum(1 for a, b in zip(items, breakdown.materials.items) if a is not b),
            matched_tools=sum(1 for a, b in zip(tools, analysis.tools_required) if a is not b),
            total_min=cost_breakdown.total.min,
            total_max=cost_breakdown.total.max,
        )

        return self._annotate(analysis, pricing, {
            "cost_breakdown": cost_breakdown,
            "tools_required": tools,
        })

    def _annotate(
        self,
        analysis: ProjectAnalysis,
        pricing: PricingResponse,
        update: Dict[str, Any]
    ) -> ProjectAnalysis:
        """Copy with market recommendations and the premium-region warning appended."""
        recommendations = list(analysis.recommendations)
        for recommendation in pricing.recommendations:
            if recommendation.message not in recommendations:
                recommendations.append(recommendation.message)

        warnings = list(analysis.warnings)
        region_multiplier = pricing.context_factors.region_multiplier
        if region_multiplier > REGION_WARNING_THRESHOLD:
            premium = round((region_multiplier - 1) * 100)
            warnings.append(f"Regional pricing is {premium}% above national average")

        return analysis.model_copy(update={
            **update,
            "recommendations": recommendations,
            "warnings": warnings,
        })

    # ------------------------------------------------------------------
    # Health
    # ------------------------------------------------------------------

    async def health_check(self) -> Dict[str, Any]:
        """Price a national reference project without touching the cache."""
        start_time = time.perf_counter()
        try:
            await self._compute(PricingContext(region=NATIONAL_REGION))
            return {
                "status": "healthy",
                "latencyMs": round((time.perf_counter() - start_time) * 1000),
                "cacheEntries": self.cache_size,
            }
        except Exception as e:
            logger.warning("pricing_health_check_failed", error=str(e))
            return {"status": "down", "error": str(e), "cacheEntries": self.cache_size}
