"""Fallback analysis for SiteQuote.

Generic, conservative analysis returned when every AI provider failed,
so callers always receive a usable result. Must not raise.
"""

import time
from datetime import datetime, timezone
from typing import Optional

import structlog

from models.analysis import (
    CostBreakdown,
    DifficultyLevel,
    LaborCost,
    MaterialsCost,
    ProjectAnalysis,
    Timeline,
    TimelinePhase,
    ToolRequirement,
)
from models.request import AnalysisRequest

logger = structlog.get_logger()

FALLBACK_PROVIDER = "fallback"
FALLBACK_CONFIDENCE = 20


def generate_fallback_analysis(
    request: Optional[AnalysisRequest],
    error: Optional[BaseException] = None
) -> ProjectAnalysis:
    """Build the fixed fallback analysis.

    Args:
        request: The request that could not be analyzed.
        error: The failure that triggered the fallback; its message is
            disclosed in the warnings.

    Returns:
        ProjectAnalysis with confidence 20 that requires a professional.
    """
    message = str(error) if error is not None and str(error) else "Unknown error"

    logger.warning(
        "fallback_analysis_generated",
        user_id=request.user_id if request is not None else None,
        error=message,
    )

    return ProjectAnalysis(
        project_type="General Construction Project",
        description=(
            "Unable to perform detailed AI analysis. "
            "Please contact a professional for accurate assessment."
        ),
        difficulty_level=DifficultyLevel.PROFESSIONAL_REQUIRED.value,
        cost_breakdown=CostBreakdown.from_parts(
            MaterialsCost(min=500, max=2000),
            LaborCost(min=800, max=3000, hourly_rate=40, estimated_hours=20),
        ),
        timeline=Timeline(
            diy="1-2 weeks",
            professional="3-5 days",
            phases=[
                TimelinePhase(name="Assessment", duration="1 day",
                              description="Professional assessment required"),
                TimelinePhase(name="Planning", duration="1-2 days",
                              description="Project planning and permits"),
                TimelinePhase(name="Execution", duration="2-3 days",
                              description="Main construction work"),
            ],
        ),
        tools_required=[
            ToolRequirement(
                name="Basic Hand Tools",
                category="hand_tools",
                daily_rental_price=25,
                estimated_days=3,
                required=True,
            ),
        ],
        safety_considerations=[
            "Professional assessment recommended",
            "Ensure proper safety equipment",
            "Check local building codes",
        ],
        permits_required=["Building permit may be required"],
        requires_professional=True,
        professional_reasons=["AI analysis unavailable - professional assessment needed"],
        confidence=FALLBACK_CONFIDENCE,
        recommendations=[
            "Contact local contractors for detailed quotes",
            "Consider multiple professional opinions",
            "Ensure all work meets local building codes",
        ],
        warnings=[
            "AI analysis failed - estimates are generic",
            "Professional consultation strongly recommended",
            f"Error: {message}",
        ],
        analysis_id=f"fallback_{int(time.time() * 1000)}",
        timestamp=datetime.now(timezone.utc).isoformat(),
        ai_provider=FALLBACK_PROVIDER,
        processing_time_ms=0,
    )
