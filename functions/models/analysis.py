"""Project analysis models for SiteQuote.

Pydantic models for the normalized analysis every provider result is
repaired into. Cost totals and confidence bounds are enforced here, so
no code path can emit an analysis that violates them.
"""

from enum import Enum
from typing import Dict, Any, Optional, List
from pydantic import BaseModel, Field, model_validator

# Tolerance for float sums when checking totals.
TOTAL_TOLERANCE = 0.01


class DifficultyLevel(str, Enum):
    """How hard the project is for a non-professional."""

    EASY = "Easy"
    MODERATE = "Moderate"
    DIFFICULT = "Difficult"
    PROFESSIONAL_REQUIRED = "Professional Required"
    INFORMATION_NEEDED = "Information Needed"
    PRELIMINARY_ESTIMATE = "Preliminary Estimate"


class ResponseType(str, Enum):
    """Which conversational stage produced the analysis."""

    CONVERSATION = "conversation"
    ESTIMATION = "estimation"
    QUOTE = "quote"


# =============================================================================
# COST MODELS
# =============================================================================


class CostRange(BaseModel):
    """A min/max band in GBP."""

    min: float = Field(default=0, ge=0)
    max: float = Field(default=0, ge=0)

    class Config:
        allow_inf_nan = False

    @model_validator(mode="after")
    def check_order(self) -> "CostRange":
        if self.max < self.min:
            raise ValueError(f"max ({self.max}) is below min ({self.min})")
        return self


class MaterialItem(BaseModel):
    """One itemized material line."""

    name: str
    quantity: str = Field(default="1", description="Free-text quantity, e.g. '12 sheets'")
    unit_price: float = Field(default=0, ge=0, alias="unitPrice")
    total_price: float = Field(default=0, ge=0, alias="totalPrice")
    supplier: Optional[str] = None

    class Config:
        populate_by_name = True
        allow_inf_nan = False


class MaterialsCost(CostRange):
    """Materials band plus itemized lines."""

    items: List[MaterialItem] = Field(default_factory=list)


class LaborCost(CostRange):
    """Labor band plus the rate and hours it was derived from."""

    hourly_rate: float = Field(default=30, ge=0, alias="hourlyRate")
    estimated_hours: float = Field(default=8, ge=0, alias="estimatedHours")

    class Config:
        populate_by_name = True


class CostBreakdown(BaseModel):
    """Materials, labor and their total.

    total.min == materials.min + labor.min and total.max == materials.max + labor.max.
    Use from_parts() to build one with the total derived.
    """

    materials: MaterialsCost
    labor: LaborCost
    total: CostRange

    @model_validator(mode="after")
    def check_total(self) -> "CostBreakdown":
        expected_min = self.materials.min + self.labor.min
        expected_max = self.materials.max + self.labor.max
        if (abs(self.total.min - expected_min) > TOTAL_TOLERANCE or
                abs(self.total.max - expected_max) > TOTAL_TOLERANCE):
            raise ValueError(
                f"total ({self.total.min}-{self.total.max}) does not equal "
                f"materials + labor ({expected_min}-{expected_max})"
            )
        return self

    @classmethod
    def from_parts(cls, materials: MaterialsCost, labor: LaborCost) -> "CostBreakdown":
        return cls(
            materials=materials,
            labor=labor,
            total=CostRange(min=materials.min + labor.min, max=materials.max + labor.max),
        )


# =============================================================================
# TIMELINE / TOOLS
# =============================================================================


class TimelinePhase(BaseModel):
    name: str
    duration: str = ""
    description: str = ""


class Timeline(BaseModel):
    diy: str = Field(default="1-2 weeks", description="Estimated DIY duration")
    professional: str = Field(default="3-5 days", description="Estimated trade duration")
    phases: List[TimelinePhase] = Field(default_factory=list)


class ToolRequirement(BaseModel):
    """A tool the project needs, with hire pricing."""

    name: str
    category: str = Field(default="hand_tools")
    daily_rental_price: float = Field(default=0, ge=0, alias="dailyRentalPrice")
    estimated_days: float = Field(default=1, ge=0, alias="estimatedDays")
    required: bool = True
    alternatives: List[str] = Field(default_factory=list)

    class Config:
        populate_by_name = True
        allow_inf_nan = False


class RoughEstimate(BaseModel):
    """Preliminary range returned before a full quote."""

    min: float = Field(default=0, ge=0)
    max: float = Field(default=0, ge=0)
    caveats: List[str] = Field(default_factory=list)


# =============================================================================
# MAIN ANALYSIS MODEL
# =============================================================================


class ProjectAnalysis(BaseModel):
    """Normalized analysis of a construction project.

    Produced by the response normalizer from provider text, or by the
    fallback generator when every provider failed.
    """

    project_type: str = Field(alias="projectType", description="Detected project type")
    description: str = Field(default="", description="Summary of the work")
    difficulty_level: DifficultyLevel = Field(
        default=DifficultyLevel.MODERATE.value,
        alias="difficultyLevel"
    )
    response_type: ResponseType = Field(default=ResponseType.QUOTE.value, alias="responseType")
    questions_asked: List[str] = Field(default_factory=list, alias="questionsAsked")
    information_needed: List[str] = Field(default_factory=list, alias="informationNeeded")
    rough_estimate: Optional[RoughEstimate] = Field(default=None, alias="roughEstimate")

    cost_breakdown: CostBreakdown = Field(alias="costBreakdown")
    timeline: Timeline = Field(default_factory=Timeline)
    tools_required: List[ToolRequirement] = Field(default_factory=list, alias="toolsRequired")
    safety_considerations: List[str] = Field(default_factory=list, alias="safetyConsiderations")
    permits_required: List[str] = Field(default_factory=list, alias="permitsRequired")
    requires_professional: bool = Field(default=False, alias="requiresProfessional")
    professional_reasons: List[str] = Field(default_factory=list, alias="professionalReasons")
    confidence: float = Field(default=75, ge=0, le=100, description="Confidence score (0-100)")
    recommendations: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    # Metadata stamped by the orchestrator
    analysis_id: Optional[str] = Field(default=None, alias="analysisId")
    timestamp: Optional[str] = Field(default=None, description="ISO timestamp")
    ai_provider: Optional[str] = Field(default=None, alias="aiProvider")
    processing_time_ms: Optional[int] = Field(default=None, alias="processingTimeMs")

    class Config:
        populate_by_name = True
        use_enum_values = True
        allow_inf_nan = False

    def to_response_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys for API responses."""
        return self.model_dump(by_alias=True, exclude_none=True)
