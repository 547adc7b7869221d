"""Request context builder for SiteQuote.

Validates an inbound AnalysisRequest and derives the immutable
ProjectContext and PricingContext the rest of the pipeline works from.
"""

import re
from typing import List, Optional, Tuple

import structlog

from config.errors import InvalidRequestError
from models.pricing import PricingContext
from models.request import AnalysisRequest, PriceTier, ProjectContext, ProjectScale
from services.uk_reference_rates import NATIONAL_REGION, REGION_ALIASES, REGION_CITIES, REGION_MULTIPLIERS

logger = structlog.get_logger()

DEFAULT_PROJECT_TYPE = "General Construction"

# Budget midpoint thresholds (GBP).
SMALL_SCALE_LIMIT = 5000
MEDIUM_SCALE_LIMIT = 25000
BUDGET_TIER_LIMIT = 8000
MID_TIER_LIMIT = 20000

# Timeline assumed when the caller has a budget in mind.
BUDGETED_TIMELINE_DAYS = 14

ALLOWED_IMAGE_PREFIXES = ("data:", "http://", "https://")

# (city, region), longest names first so "Londonderry" beats "London".
CITY_REGIONS: List[Tuple[str, str]] = sorted(
    ((city, region) for region, cities in REGION_CITIES.items() for city in cities),
    key=lambda pair: len(pair[0]),
    reverse=True,
)


def determine_scale(budget_midpoint: Optional[float]) -> str:
    """Bucket a budget midpoint into small/medium/large."""
    if budget_midpoint is None:
        return ProjectScale.MEDIUM.value
    if budget_midpoint < SMALL_SCALE_LIMIT:
        return ProjectScale.SMALL.value
    if budget_midpoint < MEDIUM_SCALE_LIMIT:
        return ProjectScale.MEDIUM.value
    return ProjectScale.LARGE.value


def determine_price_tier(budget_midpoint: Optional[float]) -> str:
    """Bucket a budget midpoint into budget/mid/premium."""
    if budget_midpoint is None:
        return PriceTier.MID.value
    if budget_midpoint < BUDGET_TIER_LIMIT:
        return PriceTier.BUDGET.value
    if budget_midpoint < MID_TIER_LIMIT:
        return PriceTier.MID.value
    return PriceTier.PREMIUM.value


def _contains_word(text: str, phrase: str) -> bool:
    return re.search(rf"\b{re.escape(phrase.lower())}\b", text) is not None


def resolve_region(location: Optional[str]) -> Tuple[str, Optional[str]]:
    """Map a free-text location to (region, city).

    Whole-word city names are matched first, then region names and
    aliases, so "Basingstoke" does not match "Stoke".
    Anything unrecognised resolves to national rates.
    """
    if not location or not location.strip():
        return NATIONAL_REGION, None

    lowered = location.strip().lower()

    for city, region in CITY_REGIONS:
        if _contains_word(lowered, city):
            return region, city

    for region in REGION_MULTIPLIERS:
        if _contains_word(lowered, region):
            return region, None

    for alias, region in REGION_ALIASES.items():
        if _contains_word(lowered, alias):
            return region, None

    return NATIONAL_REGION, None


class RequestContextBuilder:
    """Builds per-request contexts from an AnalysisRequest."""

    def validate(self, request: AnalysisRequest) -> None:
        """Reject requests the pipeline cannot analyze.

        Raises:
            InvalidRequestError: If neither image nor message is present,
                or the image reference is not a data: URI or http(s) URL.
        """
        if not request.has_image and not request.has_message:
            raise InvalidRequestError(
                message="Either an image or a message is required",
                field="imageUri"
            )

        if request.has_image and not request.image_uri.strip().lower().startswith(ALLOWED_IMAGE_PREFIXES):
            raise InvalidRequestError(
                message="Image reference must be a data: URI or an http(s) URL",
                field="imageUri"
            )

    def build_project_context(self, request: AnalysisRequest) -> ProjectContext:
        context = request.context
        region, city = resolve_region(context.location)
        midpoint = context.budget_range.midpoint if context.budget_range else None

        project_context = ProjectContext(
            region=region,
            city=city,
            project_type=context.project_type or DEFAULT_PROJECT_TYPE,
            scale=determine_scale(midpoint),
            price_range=determine_price_tier(midpoint),
            timeline_days=BUDGETED_TIMELINE_DAYS if context.budget_range else None,
        )

        logger.debug(
            "project_context_built",
            region=project_context.region,
            city=project_context.city,
            scale=project_context.scale,
            price_range=project_context.price_range,
        )
        return project_context

    def build_pricing_context(self, project_context: ProjectContext) -> PricingContext:
        return PricingContext(
            region=project_context.region,
            city=project_context.city,
            project_type=project_context.project_type,
            scale=project_context.scale,
            timeline_days=project_context.timeline_days,
            price_range=project_context.price_range,
        )

    def build(self, request: AnalysisRequest) -> Tuple[ProjectContext, PricingContext]:
        """Validate the request and derive both contexts."""
        self.validate(request)
        project_context = self.build_project_context(request)
        return project_context, self.build_pricing_context(project_context)
