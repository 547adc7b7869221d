"""Request and response envelope models for SiteQuote.

Pydantic models for the inbound analysis request, the per-request
project context derived from it, and the boundary response envelope.
"""

from enum import Enum
from typing import Dict, Any, Optional, List
from pydantic import AliasChoices, BaseModel, Field


class ProjectScale(str, Enum):
    """Project size bucket derived from the budget midpoint."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


class PriceTier(str, Enum):
    """Budget tier derived from the budget midpoint."""

    BUDGET = "budget"
    MID = "mid"
    PREMIUM = "premium"


class ConversationTurn(BaseModel):
    """One prior turn of the user/assistant conversation."""

    role: str = Field(description="user or assistant")
    content: str = Field(default="", description="Turn text")
    timestamp: Optional[str] = Field(default=None, description="ISO timestamp")


class BudgetRange(BaseModel):
    """Caller's declared budget in GBP."""

    min: float = Field(ge=0, description="Lower bound (£)")
    max: float = Field(ge=0, description="Upper bound (£)")

    @property
    def midpoint(self) -> float:
        return (self.min + self.max) / 2


class RequestContext(BaseModel):
    """Optional hints supplied alongside a request."""

    project_type: Optional[str] = Field(
        default=None,
        alias="projectType",
        description="Declared project type, e.g. 'Kitchen Renovation'"
    )
    budget_range: Optional[BudgetRange] = Field(
        default=None,
        alias="budgetRange",
        description="Declared budget range"
    )
    location: Optional[str] = Field(
        default=None,
        description="Free-text location (city or region)"
    )
    preferred_provider: Optional[str] = Field(
        default=None,
        alias="preferredProvider",
        description="Provider name to use when registered"
    )
    user_preferences: List[str] = Field(
        default_factory=list,
        alias="userPreferences",
        description="Free-text preferences forwarded to prompts"
    )
    market_data: Optional[Dict[str, Any]] = Field(
        default=None,
        alias="marketData",
        description="Pricing snapshot attached by the orchestrator for prompts"
    )

    class Config:
        populate_by_name = True


class AnalysisRequest(BaseModel):
    """Inbound analysis request.

    At least one of image or message must be present; that invariant is
    checked by RequestContextBuilder.validate so that the boundary can
    report it as an InvalidRequestError rather than a schema failure.
    """

    image_uri: Optional[str] = Field(
        default=None,
        alias="imageUri",
        validation_alias=AliasChoices("imageUri", "imageRef", "imageUrl", "image_uri"),
        description="data: URI or http(s) URL of the project photo"
    )
    message: Optional[str] = Field(
        default=None,
        description="Free-text project description"
    )
    context: RequestContext = Field(
        default_factory=RequestContext,
        description="Optional project hints"
    )
    history: List[ConversationTurn] = Field(
        default_factory=list,
        description="Prior conversation turns, oldest first"
    )
    user_id: Optional[str] = Field(
        default=None,
        alias="userId",
        description="Caller identity, opaque to the core"
    )

    class Config:
        populate_by_name = True

    @property
    def has_image(self) -> bool:
        return bool(self.image_uri and self.image_uri.strip())

    @property
    def has_message(self) -> bool:
        return bool(self.message and self.message.strip())


class ProjectContext(BaseModel):
    """Immutable per-request project context used for pricing."""

    region: str = Field(description="Resolved UK region, or 'UK' when unknown")
    city: Optional[str] = Field(default=None, description="Matched city, if any")
    project_type: str = Field(
        default="General Construction",
        alias="projectType",
        description="Project type used for pricing lookups"
    )
    scale: ProjectScale = Field(default=ProjectScale.MEDIUM.value)
    price_range: PriceTier = Field(default=PriceTier.MID.value, alias="priceRange")
    timeline_days: Optional[int] = Field(default=None, alias="timelineDays")

    class Config:
        populate_by_name = True
        use_enum_values = True
        frozen = True


class ErrorInfo(BaseModel):
    """Error block of a failed response."""

    code: str
    message: str
    details: Optional[Dict[str, Any]] = None


class AnalysisResponse(BaseModel):
    """Boundary envelope returned to every transport."""

    success: bool
    data: Optional[Dict[str, Any]] = Field(default=None, description="Serialized ProjectAnalysis")
    error: Optional[ErrorInfo] = None
    processing_time_ms: int = Field(default=0, alias="processingTimeMs")
    ai_provider: Optional[str] = Field(default=None, alias="aiProvider")

    class Config:
        populate_by_name = True

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)
