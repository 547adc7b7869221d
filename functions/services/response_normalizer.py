"""Response normalizer for SiteQuote.

Turns a provider's free-form text into a strict ProjectAnalysis, or
raises ProviderInvalidResponseError. Providers answer in one of three
modes (conversation, estimation, quote); each is repaired with its own
defaults so downstream code never sees missing or contradictory figures.
"""

import json
import math
from typing import Any, Dict, List, Optional

import structlog

from config.errors import ProviderInvalidResponseError
from models.analysis import (
    CostBreakdown,
    DifficultyLevel,
    LaborCost,
    MaterialItem,
    MaterialsCost,
    ProjectAnalysis,
    ResponseType,
    RoughEstimate,
    Timeline,
    TimelinePhase,
    ToolRequirement,
)

logger = structlog.get_logger()

# Floor cost breakdown used in place of zeros.
DEFAULT_MATERIALS = {"min": 100.0, "max": 500.0}
DEFAULT_LABOR = {"min": 200.0, "max": 800.0, "hourlyRate": 30.0, "estimatedHours": 8.0}
MIN_HOURLY_RATE = 20.0
MIN_ESTIMATED_HOURS = 1.0

# Materials share of a rough estimate; labor takes the remainder.
ESTIMATE_MATERIALS_SHARE = {"min": 0.5, "max": 0.6}
ESTIMATE_HOURLY_RATE = 35.0
ESTIMATE_HOURS = 20.0

DEFAULT_CONFIDENCE = {
    ResponseType.CONVERSATION.value: 0.0,
    ResponseType.ESTIMATION.value: 50.0,
    ResponseType.QUOTE.value: 75.0,
}

DEFAULT_PROJECT_TYPE = "Construction Project"
EXCERPT_LENGTH = 200

# Largest magnitude accepted for any provider figure (GBP, hours, days).
MAX_FIGURE = 10_000_000.0


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced {...} span in text, or None.

    Braces inside JSON string literals (including escaped quotes) are
    ignored, so prose around the object and a second trailing object do
    not break extraction.
    """
    if not text:
        return None

    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for index in range(start, len(text)):
            char = text[index]
            if in_string:
                if escaped:
                    escaped = False
                elif char == "\\":
                    escaped = True
                elif char == '"':
                    in_string = False
                continue
            if char == '"':
                in_string = True
            elif char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth == 0:
                    return text[start:index + 1]
        # Unbalanced from this brace; try the next one.
        start = text.find("{", start + 1)
    return None


# =============================================================================
# Type-checked field readers. A wrong-typed or non-finite value is treated
# as absent; numbers are clamped to MAX_FIGURE.
# =============================================================================


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    try:
        number = float(value)
    except OverflowError:
        return None
    if not math.isfinite(number):
        return None
    return max(-MAX_FIGURE, min(MAX_FIGURE, number))


def _text(value: Any, default: str = "") -> str:
    if isinstance(value, str) and value.strip():
        return value
    return default


def _strings(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item.strip()]


def _mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _non_negative(value: Any, default: float) -> float:
    number = _number(value)
    return default if number is None else max(0.0, number)


def _band(source: Dict[str, Any], default: Dict[str, float]) -> Dict[str, float]:
    """Read a min/max pair, clamping negatives and widening max up to min."""
    low = _non_negative(source.get("min"), default["min"])
    high = _non_negative(source.get("max"), default["max"])
    return {"min": low, "max": max(low, high)}


class ResponseNormalizer:
    """Parse-or-raise boundary between provider text and ProjectAnalysis."""

    def normalize(self, raw_text: str, provider_name: str) -> ProjectAnalysis:
        """Normalize provider output.

        Args:
            raw_text: Raw text returned by the provider.
            provider_name: Name stamped into errors and the result.

        Returns:
            ProjectAnalysis satisfying every schema invariant.

        Raises:
            ProviderInvalidResponseError: No JSON object, or it does not parse.
        """
        span = extract_json_object(raw_text or "")
        if span is None:
            raise ProviderInvalidResponseError(
                message=f"No JSON object found in {provider_name} response",
                provider_name=provider_name,
                raw_excerpt=(raw_text or "")[:EXCERPT_LENGTH]
            )

        try:
            data = json.loads(span)
        except json.JSONDecodeError as e:
            raise ProviderInvalidResponseError(
                message=f"Malformed JSON in {provider_name} response: {e.msg}",
                provider_name=provider_name,
                raw_excerpt=span[:EXCERPT_LENGTH]
            )

        mode = data.get("responseType")
        if mode == ResponseType.CONVERSATION.value:
            analysis = self._conversation(data)
        elif mode == ResponseType.ESTIMATION.value:
            analysis = self._estimation(data)
        else:
            analysis = self._quote(data)

        logger.debug(
            "response_normalized",
            provider=provider_name,
            response_type=analysis.response_type,
            confidence=analysis.confidence,
        )
        return analysis.model_copy(update={"ai_provider": provider_name})

    # ------------------------------------------------------------------
    # Modes
    # ------------------------------------------------------------------

    def _conversation(self, data: Dict[str, Any]) -> ProjectAnalysis:
        return ProjectAnalysis(
            project_type=_text(data.get("projectType"), DEFAULT_PROJECT_TYPE),
            description=_text(
                data.get("message"),
                "I need more information to provide an accurate quote."
            ),
            difficulty_level=DifficultyLevel.INFORMATION_NEEDED.value,
            response_type=ResponseType.CONVERSATION.value,
            questions_asked=_strings(data.get("questionsAsked")),
            information_needed=_strings(data.get("informationNeeded")),
            cost_breakdown=self._cost_breakdown(None),
            timeline=Timeline(diy="Information needed", professional="Information needed"),
            confidence=self._confidence(data, ResponseType.CONVERSATION.value),
            recommendations=_strings(data.get("recommendations")),
        )

    def _estimation(self, data: Dict[str, Any]) -> ProjectAnalysis:
        rough_source = _mapping(data.get("roughEstimate"))
        band = _band(rough_source, {"min": 0.0, "max": 0.0})
        caveats = _strings(rough_source.get("caveats"))

        if band["max"] > 0:
            materials_min = round(band["min"] * ESTIMATE_MATERIALS_SHARE["min"], 2)
            labor_min = round(band["min"] - materials_min, 2)
            materials_max = round(band["max"] * ESTIMATE_MATERIALS_SHARE["max"], 2)
            labor_max = round(band["max"] - materials_max, 2)
            # Narrow ranges: keep labor's band ordered, give the rest to materials.
            if labor_max < labor_min:
                labor_max = labor_min
                materials_max = round(band["max"] - labor_min, 2)

            cost_breakdown = CostBreakdown.from_parts(
                MaterialsCost(min=materials_min, max=materials_max),
                LaborCost(
                    min=labor_min,
                    max=labor_max,
                    hourly_rate=ESTIMATE_HOURLY_RATE,
                    estimated_hours=ESTIMATE_HOURS,
                ),
            )
        else:
            cost_breakdown = self._cost_breakdown(None)

        return ProjectAnalysis(
            project_type=_text(data.get("projectType"), DEFAULT_PROJECT_TYPE),
            description=_text(data.get("message"), "Rough estimate provided with caveats."),
            difficulty_level=DifficultyLevel.PRELIMINARY_ESTIMATE.value,
            response_type=ResponseType.ESTIMATION.value,
            questions_asked=_strings(data.get("questionsAsked")),
            rough_estimate=RoughEstimate(min=band["min"], max=band["max"], caveats=caveats),
            cost_breakdown=cost_breakdown,
            timeline=Timeline(
                diy="Requires detailed assessment",
                professional="Requires detailed assessment",
            ),
            safety_considerations=caveats,
            requires_professional=True,
            professional_reasons=["Detailed assessment required"],
            confidence=self._confidence(data, ResponseType.ESTIMATION.value),
            recommendations=_strings(data.get("recommendations")) or [
                "Site survey recommended",
                "Get multiple quotes",
            ],
            warnings=list(caveats),
        )

    def _quote(self, data: Dict[str, Any]) -> ProjectAnalysis:
        requires_professional = data.get("requiresProfessional")
        return ProjectAnalysis(
            project_type=_text(data.get("projectType"), DEFAULT_PROJECT_TYPE),
            description=_text(data.get("description"), "Project analysis completed"),
            difficulty_level=self._difficulty(data.get("difficultyLevel")),
            response_type=ResponseType.QUOTE.value,
            cost_breakdown=self._cost_breakdown(data.get("costBreakdown")),
            timeline=self._timeline(data.get("timeline")),
            tools_required=self._tools(data.get("toolsRequired")),
            safety_considerations=_strings(data.get("safetyConsiderations")),
            permits_required=_strings(data.get("permitsRequired")),
            requires_professional=requires_professional if isinstance(requires_professional, bool) else False,
            professional_reasons=_strings(data.get("professionalReasons")),
            confidence=self._confidence(data, ResponseType.QUOTE.value),
            recommendations=_strings(data.get("recommendations")),
            warnings=_strings(data.get("warnings")),
        )

    # ------------------------------------------------------------------
    # Sections
    # ------------------------------------------------------------------

    def _confidence(self, data: Dict[str, Any], mode: str) -> float:
        value = _number(data.get("confidence"))
        if value is None:
            return DEFAULT_CONFIDENCE[mode]
        return min(100.0, max(0.0, value))

    def _difficulty(self, value: Any) -> str:
        allowed = {level.value for level in DifficultyLevel}
        if isinstance(value, str) and value in allowed:
            return value
        return DifficultyLevel.MODERATE.value

    def _cost_breakdown(self, value: Any) -> CostBreakdown:
        source = _mapping(value)
        materials_source = _mapping(source.get("materials"))
        labor_source = _mapping(source.get("labor"))

        materials_band = _band(materials_source, DEFAULT_MATERIALS)
        labor_band = _band(labor_source, DEFAULT_LABOR)

        hourly_rate = _number(labor_source.get("hourlyRate"))
        estimated_hours = _number(labor_source.get("estimatedHours"))

        materials = MaterialsCost(
            min=materials_band["min"],
            max=materials_band["max"],
            items=self._material_items(materials_source.get("items")),
        )
        labor = LaborCost(
            min=labor_band["min"],
            max=labor_band["max"],
            hourly_rate=max(MIN_HOURLY_RATE, hourly_rate if hourly_rate is not None else DEFAULT_LABOR["hourlyRate"]),
            estimated_hours=max(
                MIN_ESTIMATED_HOURS,
                estimated_hours if estimated_hours is not None else DEFAULT_LABOR["estimatedHours"]
            ),
        )
        return CostBreakdown.from_parts(materials, labor)

    def _material_items(self, value: Any) -> List[MaterialItem]:
        items = []
        for entry in value if isinstance(value, list) else []:
            entry = _mapping(entry)
            name = _text(entry.get("name"))
            if not name:
                continue
            quantity = entry.get("quantity")
            if _number(quantity) is not None:
                quantity = f"{quantity:g}" if isinstance(quantity, float) else str(quantity)
            items.append(MaterialItem(
                name=name,
                quantity=_text(quantity, "1"),
                unit_price=_non_negative(entry.get("unitPrice"), 0.0),
                total_price=_non_negative(entry.get("totalPrice"), 0.0),
                supplier=_text(entry.get("supplier")) or None,
            ))
        return items

    def _tools(self, value: Any) -> List[ToolRequirement]:
        tools = []
        for entry in value if isinstance(value, list) else []:
            entry = _mapping(entry)
            name = _text(entry.get("name"))
            if not name:
                continue
            required = entry.get("required")
            tools.append(ToolRequirement(
                name=name,
                category=_text(entry.get("category"), "hand_tools"),
                daily_rental_price=_non_negative(entry.get("dailyRentalPrice"), 0.0),
                estimated_days=_non_negative(entry.get("estimatedDays"), 1.0),
                required=required if isinstance(required, bool) else True,
                alternatives=_strings(entry.get("alternatives")),
            ))
        return tools

    def _timeline(self, value: Any) -> Timeline:
        source = _mapping(value)
        phases = []
        for entry in source.get("phases") if isinstance(source.get("phases"), list) else []:
            entry = _mapping(entry)
            name = _text(entry.get("name"))
            if name:
                phases.append(TimelinePhase(
                    name=name,
                    duration=_text(entry.get("duration")),
                    description=_text(entry.get("description")),
                ))

        if not phases:
            phases = [
                TimelinePhase(name="Preparation", duration="1-2 days",
                              description="Site preparation, material ordering and tool hire"),
                TimelinePhase(name="Execution", duration="2-5 days",
                              description="Main construction work"),
            ]

        return Timeline(
            diy=_text(source.get("diy"), "1-2 weeks"),
            professional=_text(source.get("professional"), "3-5 days"),
            phases=phases,
        )
