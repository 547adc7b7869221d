"""
Reference-rate data source for the SiteQuote pricing engine.

The pricing engine only reads national base rates through this seam,
queried by (region, project type, scale). StaticPricingDataSource serves
the bundled UK tables; a live supplier feed can replace it by providing
the same fetch_reference_rates coroutine.
"""

from dataclasses import dataclass, field
from typing import List, Optional

import structlog

from models.pricing import AggregateRate, LaborRate, MaterialPrice, ToolHireRate
from services.uk_reference_rates import (
    AGGREGATE_RATES,
    LABOR_RATES,
    MATERIAL_PRICES,
    NATIONAL_REGION,
    PROJECT_TYPE_PROFILES,
    REGION_MULTIPLIERS,
    TOOL_HIRE_RATES,
)

logger = structlog.get_logger()


@dataclass
class ReferenceRates:
    """National base rates plus the multiplier for the requested region."""

    region: str
    region_multiplier: float
    tool_hire: List[ToolHireRate] = field(default_factory=list)
    materials: List[MaterialPrice] = field(default_factory=list)
    aggregates: List[AggregateRate] = field(default_factory=list)
    labor: List[LaborRate] = field(default_factory=list)


def region_multiplier_for(region: Optional[str]) -> float:
    """Regional multiplier, case-insensitive; 1.0 for unknown regions."""
    if not region:
        return 1.0
    for name, multiplier in REGION_MULTIPLIERS.items():
        if name.lower() == region.strip().lower():
            return multiplier
    return 1.0


def _profile_for(project_type: str) -> Optional[dict]:
    lowered = (project_type or "").lower()
    for profile in PROJECT_TYPE_PROFILES:
        if any(keyword in lowered for keyword in profile["keywords"]):
            return profile
    return None


class StaticPricingDataSource:
    """Serves the bundled UK reference tables.

    Rates are filtered to the categories and trades relevant to the
    project type; unknown project types get every table row.
    """

    def __init__(self):
        self._tools = [ToolHireRate.model_validate(row) for row in TOOL_HIRE_RATES]
        self._materials = [MaterialPrice.model_validate(row) for row in MATERIAL_PRICES]
        self._aggregates = [AggregateRate.model_validate(row) for row in AGGREGATE_RATES]
        self._labor = [LaborRate.model_validate(row) for row in LABOR_RATES]

    async def fetch_reference_rates(
        self,
        region: str,
        project_type: str,
        scale: str
    ) -> ReferenceRates:
        """Return base rates relevant to a project.

        Args:
            region: UK region name, or "UK" for national rates.
            project_type: Free-text project type.
            scale: small, medium or large. Large projects also get
                aggregates regardless of project type.

        Returns:
            ReferenceRates with the region multiplier resolved.
        """
        profile = _profile_for(project_type)
        multiplier = region_multiplier_for(region)

        if profile is None:
            rates = ReferenceRates(
                region=region or NATIONAL_REGION,
                region_multiplier=multiplier,
                tool_hire=list(self._tools),
                materials=list(self._materials),
                aggregates=list(self._aggregates),
                labor=list(self._labor),
            )
        else:
            wants_aggregates = "structural" in profile["materials"] or scale == "large"
            rates = ReferenceRates(
                region=region or NATIONAL_REGION,
                region_multiplier=multiplier,
                tool_hire=[t for t in self._tools if t.category in profile["tools"]],
                materials=[m for m in self._materials if m.category in profile["materials"]],
                aggregates=list(self._aggregates) if wants_aggregates else [],
                labor=[
                    rate for rate in self._labor
                    if "general" in rate.trade_type.lower()
                    or any(trade in rate.trade_type.lower() for trade in profile["trades"])
                ],
            )

        logger.debug(
            "reference_rates_loaded",
            region=rates.region,
            project_type=project_type,
            scale=scale,
            materials=len(rates.materials),
            tools=len(rates.tool_hire),
            labor=len(rates.labor),
        )
        return rates
