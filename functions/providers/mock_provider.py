"""Mock provider for SiteQuote.

Deterministic stand-in for an AI backend: infers a project type from
keywords and emits a quote-mode JSON document, so it goes through the
same normalization path as real providers. Always available; used as
the last fallback and in tests.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

import structlog

from models.analysis import DifficultyLevel
from models.request import AnalysisRequest, BudgetRange
from providers.base import BaseProvider
from services.response_normalizer import ResponseNormalizer

logger = structlog.get_logger()

# (keyword(s), project type), first match wins.
PROJECT_TYPE_KEYWORDS = [
    (("kitchen",), "Kitchen Renovation"),
    (("bathroom",), "Bathroom Renovation"),
    (("roof",), "Roof Repair"),
    (("garden", "landscaping"), "Garden Landscaping"),
    (("paint",), "Interior Painting"),
    (("floor",), "Flooring Installation"),
    (("wall",), "Wall Construction/Repair"),
    (("extension",), "Home Extension"),
]

EASY_KEYWORDS = ("paint", "garden", "small")
MODERATE_KEYWORDS = ("kitchen", "bathroom", "floor")
PROFESSIONAL_KEYWORDS = ("roof", "extension", "structural")

COST_BASE = {
    DifficultyLevel.EASY.value: (200, 1000),
    DifficultyLevel.MODERATE.value: (1000, 5000),
    DifficultyLevel.DIFFICULT.value: (3000, 15000),
    DifficultyLevel.PROFESSIONAL_REQUIRED.value: (5000, 25000),
}

CONFIDENCE = {
    DifficultyLevel.EASY.value: 80,
    DifficultyLevel.MODERATE.value: 70,
    DifficultyLevel.PROFESSIONAL_REQUIRED.value: 60,
}

# Material lines by complexity; names line up with the reference price list.
MATERIAL_LINES = {
    DifficultyLevel.EASY.value: [
        ("Emulsion Paint", "3 tins", 45.0),
    ],
    DifficultyLevel.MODERATE.value: [
        ("Plasterboard", "12 sheets", 10.0),
        ("Ceramic Wall Tiles", "10 m²", 25.0),
        ("Cement", "5 bags", 5.0),
    ],
    DifficultyLevel.PROFESSIONAL_REQUIRED.value: [
        ("Engineering Bricks", "800 bricks", 0.6),
        ("Cement", "20 bags", 5.0),
        ("Treated Timber", "30 lengths", 6.0),
        ("Plasterboard", "25 sheets", 10.0),
    ],
}

HOURLY_RATE = 35.0


def determine_project_type(request: AnalysisRequest) -> str:
    if request.context.project_type:
        return request.context.project_type

    message = (request.message or "").lower()
    for keywords, project_type in PROJECT_TYPE_KEYWORDS:
        if any(keyword in message for keyword in keywords):
            return project_type

    budget = request.context.budget_range
    if budget:
        if budget.midpoint < 2000:
            return "Small Home Repair"
        if budget.midpoint < 10000:
            return "Medium Home Improvement"
        return "Major Home Renovation"

    return "General Construction Project"


def determine_complexity(project_type: str) -> str:
    lowered = project_type.lower()
    if any(keyword in lowered for keyword in EASY_KEYWORDS):
        return DifficultyLevel.EASY.value
    if any(keyword in lowered for keyword in MODERATE_KEYWORDS):
        return DifficultyLevel.MODERATE.value
    if any(keyword in lowered for keyword in PROFESSIONAL_KEYWORDS):
        return DifficultyLevel.PROFESSIONAL_REQUIRED.value
    return DifficultyLevel.MODERATE.value


class MockProvider(BaseProvider):
    """Keyword-driven deterministic provider.

    Args:
        latency_seconds: Simulated processing delay.
        normalizer: Optional ResponseNormalizer.
    """

    name = "mock"
    vision_capable = True
    degraded_latency_ms = 2000

    def __init__(self, latency_seconds: float = 0.0, normalizer: Optional[ResponseNormalizer] = None):
        super().__init__(normalizer)
        self.latency_seconds = latency_seconds

    def is_available(self) -> bool:
        return True

    async def ping(self) -> None:
        await asyncio.sleep(0)

    async def generate(self, request: AnalysisRequest) -> str:
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

        project_type = determine_project_type(request)
        complexity = determine_complexity(project_type)
        professional = complexity == DifficultyLevel.PROFESSIONAL_REQUIRED.value

        document = {
            "responseType": "quote",
            "projectType": project_type,
            "description": (
                f"Mock analysis of {project_type.lower()}. "
                "This is a simulated response for testing purposes."
            ),
            "difficultyLevel": complexity,
            "costBreakdown": self._cost_breakdown(complexity, request.context.budget_range),
            "timeline": {
                "diy": {"Easy": "1-2 days", "Moderate": "3-5 days"}.get(complexity, "1-2 weeks"),
                "professional": {"Easy": "4-6 hours", "Moderate": "1-2 days"}.get(complexity, "3-5 days"),
                "phases": self._phases(professional),
            },
            "toolsRequired": self._tools(complexity),
            "safetyConsiderations": self._safety(complexity),
            "permitsRequired": ["Building permit", "Planning permission"] if professional else [],
            "requiresProfessional": professional,
            "professionalReasons": (
                ["Structural modifications required", "Complex electrical/plumbing work"]
                if professional else []
            ),
            "confidence": CONFIDENCE.get(complexity, 70),
            "recommendations": [
                "Consider getting multiple quotes from local contractors",
                "Plan for potential unexpected costs (10-15% contingency)",
                "Ensure all work complies with local building regulations",
            ],
            "warnings": [
                "This is a mock analysis for testing purposes only",
                "Real professional assessment recommended for actual projects",
            ],
        }

        logger.debug("mock_generated", project_type=project_type, complexity=complexity)
        return json.dumps(document)

    def _cost_breakdown(self, complexity: str, budget: Optional[BudgetRange]) -> Dict[str, Any]:
        base_min, base_max = (budget.min, budget.max) if budget else COST_BASE[complexity]

        items = []
        for name, quantity, unit_price in MATERIAL_LINES[complexity]:
            count = int(quantity.split()[0])
            items.append({
                "name": name,
                "quantity": quantity,
                "unitPrice": unit_price,
                "totalPrice": round(unit_price * count, 2),
            })

        materials_min = round(base_min * 0.4)
        materials_max = round(base_max * 0.6)
        labor_min = round(base_min * 0.6)
        labor_max = round(base_max * 0.4)

        return {
            "materials": {"min": materials_min, "max": materials_max, "items": items},
            "labor": {
                "min": labor_min,
                "max": labor_max,
                "hourlyRate": HOURLY_RATE,
                "estimatedHours": max(1, round(labor_min / HOURLY_RATE)),
            },
            "total": {"min": materials_min + labor_min, "max": materials_max + labor_max},
        }

    def _phases(self, professional: bool) -> List[Dict[str, str]]:
        phases = [
            {"name": "Planning", "duration": "1 day", "description": "Project planning and preparation"},
            {"name": "Execution", "duration": "2-3 days", "description": "Main construction work"},
            {"name": "Finishing", "duration": "1 day", "description": "Final touches and cleanup"},
        ]
        if professional:
            return [
                {"name": "Assessment", "duration": "1 day", "description": "Professional site assessment"},
                {"name": "Permits", "duration": "1-2 weeks", "description": "Obtain necessary permits"},
                *phases,
            ]
        return phases

    def _tools(self, complexity: str) -> List[Dict[str, Any]]:
        tools = [{
            "name": "Basic Hand Tools", "category": "hand_tools", "dailyRentalPrice": 15,
            "estimatedDays": 2, "required": True, "alternatives": ["Purchase basic tool set"],
        }]
        if complexity == DifficultyLevel.EASY.value:
            return tools

        tools += [
            {"name": "SDS Plus Drill", "category": "power_tools", "dailyRentalPrice": 25,
             "estimatedDays": 3, "required": True, "alternatives": ["Cordless drill", "Hammer drill"]},
            {"name": "Angle Grinder", "category": "power_tools", "dailyRentalPrice": 20,
             "estimatedDays": 2, "required": False, "alternatives": ["Manual cutting tools"]},
        ]
        if complexity == DifficultyLevel.PROFESSIONAL_REQUIRED.value:
            tools.append({
                "name": "Mini Digger", "category": "heavy_machinery", "dailyRentalPrice": 100,
                "estimatedDays": 3, "required": True,
                "alternatives": ["Professional contractor with equipment"],
            })
        return tools

    def _safety(self, complexity: str) -> List[str]:
        basic = [
            "Wear appropriate personal protective equipment (PPE)",
            "Ensure adequate lighting in work area",
            "Keep first aid kit accessible",
        ]
        if complexity == DifficultyLevel.PROFESSIONAL_REQUIRED.value:
            return basic + [
                "Professional safety assessment required",
                "Structural safety considerations",
                "Building regulations compliance",
            ]
        if complexity == DifficultyLevel.MODERATE.value:
            return basic + [
                "Check for asbestos and lead paint",
                "Ensure proper ventilation",
                "Turn off utilities when required",
            ]
        return basic
