"""Market pricing models for SiteQuote.

Input and output of the pricing engine: a project context in, regional
and seasonal rates for tool hire, materials, aggregates and labour out.
All monetary values are GBP.
"""

from enum import Enum
from typing import Optional, List, Tuple
from pydantic import BaseModel, Field

from models.request import PriceTier, ProjectScale


class PricingSource(str, Enum):
    """Where a PricingResponse came from."""

    REFERENCE_DATA = "reference_data"
    FALLBACK_ESTIMATES = "fallback_estimates"


class RecommendationType(str, Enum):
    COST_SAVING = "cost_saving"
    QUALITY = "quality"
    TIMING = "timing"
    SUPPLIER = "supplier"


class Impact(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# =============================================================================
# INPUT
# =============================================================================


class PricingContext(BaseModel):
    """Pricing engine input."""

    region: str = Field(description="UK region name or 'UK' for national rates")
    city: Optional[str] = None
    project_type: str = Field(default="General Construction", alias="projectType")
    scale: ProjectScale = Field(default=ProjectScale.MEDIUM.value)
    timeline_days: Optional[int] = Field(default=None, alias="timelineDays")
    price_range: Optional[PriceTier] = Field(default=None, alias="priceRange")

    class Config:
        populate_by_name = True
        use_enum_values = True
        frozen = True

    @property
    def cache_key(self) -> Tuple[str, str, str]:
        return (self.region.lower(), self.project_type.lower(), str(self.scale))


# =============================================================================
# RATES
# =============================================================================


class PriceBand(BaseModel):
    min: float = Field(ge=0)
    max: float = Field(ge=0)
    average: float = Field(ge=0)


class ToolHireRate(BaseModel):
    id: str
    name: str
    category: str
    daily_rate: float = Field(ge=0, alias="dailyRate")
    weekly_rate: float = Field(ge=0, alias="weeklyRate")
    availability: str = "high"
    alternatives: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True
        frozen = True


class MaterialPrice(BaseModel):
    id: str
    name: str
    category: str
    price_range: PriceBand = Field(alias="priceRange")
    unit: str
    waste_factor: float = Field(default=0.05, ge=0, le=1, alias="wasteFactor")

    class Config:
        populate_by_name = True
        frozen = True


class AggregateRate(BaseModel):
    id: str
    name: str
    type: str
    price_per_tonne: Optional[float] = Field(default=None, ge=0, alias="pricePerTonne")
    price_per_cubic_metre: Optional[float] = Field(default=None, ge=0, alias="pricePerCubicMetre")
    delivery_charge: float = Field(default=0, ge=0, alias="deliveryCharge")
    minimum_order: float = Field(default=0, ge=0, alias="minimumOrder")

    class Config:
        populate_by_name = True
        frozen = True


class LaborRate(BaseModel):
    id: str
    trade_type: str = Field(alias="tradeType")
    skill_level: str = Field(default="skilled", alias="skillLevel")
    hourly_rate: PriceBand = Field(alias="hourlyRate")
    daily_rate: PriceBand = Field(alias="dailyRate")
    in_demand: bool = Field(default=False, alias="inDemand")

    class Config:
        populate_by_name = True
        frozen = True


# =============================================================================
# OUTPUT
# =============================================================================


class ContextFactors(BaseModel):
    region_multiplier: float = Field(default=1.0, alias="regionMultiplier")
    seasonal_multiplier: float = Field(default=1.0, alias="seasonalMultiplier")
    demand_multiplier: float = Field(default=1.0, alias="demandMultiplier")
    accessibility_multiplier: float = Field(default=1.0, alias="accessibilityMultiplier")

    class Config:
        populate_by_name = True
        frozen = True


class PricingRecommendation(BaseModel):
    type: RecommendationType
    message: str
    impact: Impact = Impact.MEDIUM.value

    class Config:
        use_enum_values = True
        frozen = True


class PricingResponse(BaseModel):
    """Pricing engine output. Frozen so cached entries cannot be mutated."""

    tool_hire: List[ToolHireRate] = Field(default_factory=list, alias="toolHire")
    materials: List[MaterialPrice] = Field(default_factory=list)
    aggregates: List[AggregateRate] = Field(default_factory=list)
    labor: List[LaborRate] = Field(default_factory=list)
    context_factors: ContextFactors = Field(default_factory=ContextFactors, alias="contextFactors")
    recommendations: List[PricingRecommendation] = Field(default_factory=list)
    last_updated: str = Field(alias="lastUpdated")
    source: PricingSource = PricingSource.REFERENCE_DATA.value

    class Config:
        populate_by_name = True
        use_enum_values = True
        frozen = True

    def general_labor_rate(self) -> Optional[LaborRate]:
        """The general labourer rate, if the response carries one."""
        for rate in self.labor:
            if "general" in rate.trade_type.lower():
                return rate
        return None

    def to_response_dict(self):
        return self.model_dump(by_alias=True, exclude_none=True)
