"""Unit tests for ResponseNormalizer."""

import json

import pytest

from config.errors import ErrorCode, ProviderInvalidResponseError
from services.response_normalizer import ResponseNormalizer, extract_json_object
from tests.fixtures.mock_provider_responses import (
    CONVERSATION_RESPONSE,
    ESTIMATION_RESPONSE,
    FENCED_QUOTE_RESPONSE_TEXT,
    QUOTE_RESPONSE,
    QUOTE_RESPONSE_TEXT,
)


@pytest.fixture
def normalizer():
    return ResponseNormalizer()


def _assert_totals_consistent(analysis):
    breakdown = analysis.cost_breakdown
    assert breakdown.total.min == pytest.approx(breakdown.materials.min + breakdown.labor.min)
    assert breakdown.total.max == pytest.approx(breakdown.materials.max + breakdown.labor.max)
    assert breakdown.total.max >= breakdown.total.min


class TestExtractJsonObject:
    """Tests for the JSON span extractor."""

    def test_plain_object(self):
        assert extract_json_object('{"a": 1}') == '{"a": 1}'

    def test_prose_and_fences(self):
        """Test that surrounding prose and markdown fences are ignored."""
        span = extract_json_object(FENCED_QUOTE_RESPONSE_TEXT)

        assert json.loads(span)["projectType"] == "Kitchen Wall Replastering"

    def test_braces_inside_strings(self):
        """Test that braces and escaped quotes in strings do not end the span."""
        text = 'note {"message": "use a {brace} and \\"quote\\"", "n": 2} trailing {"x": 1}'

        assert json.loads(extract_json_object(text)) == {"message": 'use a {brace} and "quote"', "n": 2}

    def test_unbalanced_prefix_skipped(self):
        """Test that a stray opening brace does not hide a later object."""
        assert extract_json_object('oops { then {"ok": true}') == '{"ok": true}'

    def test_no_object(self):
        assert extract_json_object("no json here") is None
        assert extract_json_object("") is None


class TestNormalizeErrors:
    """Tests for the parse-or-raise boundary."""

    def test_no_json_raises(self, normalizer):
        with pytest.raises(ProviderInvalidResponseError) as exc_info:
            normalizer.normalize("I'm sorry, I can't help with that.", "gemini")

        assert exc_info.value.code == ErrorCode.PROVIDER_INVALID_RESPONSE
        assert exc_info.value.provider_name == "gemini"

    def test_malformed_json_raises(self, normalizer):
        with pytest.raises(ProviderInvalidResponseError):
            normalizer.normalize('{"responseType": "quote", "confidence": 80,}', "openai")


class TestQuoteMode:
    """Tests for full quote normalization."""

    def test_quote(self, normalizer):
        """Test a well-formed quote keeps its figures."""
        analysis = normalizer.normalize(QUOTE_RESPONSE_TEXT, "gemini")

        assert analysis.response_type == "quote"
        assert analysis.project_type == "Kitchen Wall Replastering"
        assert analysis.difficulty_level == "Moderate"
        assert analysis.confidence == 82
        assert analysis.ai_provider == "gemini"
        assert analysis.cost_breakdown.materials.min == 250
        assert analysis.cost_breakdown.labor.hourly_rate == 25
        assert [phase.name for phase in analysis.timeline.phases] == ["Strip out", "Board and skim"]
        _assert_totals_consistent(analysis)

    def test_numeric_quantity_becomes_text(self, normalizer):
        analysis = normalizer.normalize(QUOTE_RESPONSE_TEXT, "gemini")

        skirting = analysis.cost_breakdown.materials.items[2]
        assert skirting.quantity == "3"

    def test_total_recomputed_from_parts(self, normalizer):
        """Test that a contradictory total is replaced by materials + labor."""
        data = json.loads(QUOTE_RESPONSE_TEXT)
        data["costBreakdown"]["total"] = {"min": 1, "max": 999999}

        analysis = normalizer.normalize(json.dumps(data), "gemini")

        assert analysis.cost_breakdown.total.min == 850
        assert analysis.cost_breakdown.total.max == 1300

    def test_floors_and_repairs(self, normalizer):
        """Test defaults for missing costs, bad difficulty and out-of-range confidence."""
        raw = json.dumps({
            "projectType": "Shed Base",
            "difficultyLevel": "Trivial",
            "costBreakdown": {"materials": {"min": -50, "max": "lots"}, "labor": {"hourlyRate": 5}},
            "confidence": 140,
            "toolsRequired": [{"category": "power_tools"}, {"name": "Mini Digger"}],
        })

        analysis = normalizer.normalize(raw, "openai")

        assert analysis.response_type == "quote"
        assert analysis.difficulty_level == "Moderate"
        assert analysis.confidence == 100
        assert analysis.cost_breakdown.materials.min == 0
        assert analysis.cost_breakdown.materials.max == 500
        assert analysis.cost_breakdown.labor.min == 200
        assert analysis.cost_breakdown.labor.hourly_rate == 20
        assert [tool.name for tool in analysis.tools_required] == ["Mini Digger"]
        assert [phase.name for phase in analysis.timeline.phases] == ["Preparation", "Execution"]
        _assert_totals_consistent(analysis)

    def test_max_below_min_widened(self, normalizer):
        raw = json.dumps({"costBreakdown": {"labor": {"min": 900, "max": 300}}})

        analysis = normalizer.normalize(raw, "gemini")

        assert analysis.cost_breakdown.labor.max == 900
        _assert_totals_consistent(analysis)

    def test_zero_confidence_kept(self, normalizer):
        """Test that an explicit zero confidence is not replaced by the default."""
        analysis = normalizer.normalize(json.dumps({**QUOTE_RESPONSE, "confidence": 0}), "gemini")

        assert analysis.confidence == 0

    def test_missing_confidence_defaults(self, normalizer):
        data = dict(QUOTE_RESPONSE)
        data.pop("confidence")

        analysis = normalizer.normalize(json.dumps(data), "gemini")

        assert analysis.confidence == 75


class TestEstimationMode:
    """Tests for rough estimate normalization."""

    def test_estimation(self, normalizer):
        analysis = normalizer.normalize(json.dumps(ESTIMATION_RESPONSE), "openai")

        assert analysis.response_type == "estimation"
        assert analysis.difficulty_level == "Preliminary Estimate"
        assert analysis.requires_professional is True
        assert analysis.confidence == 45
        assert analysis.rough_estimate.min == 30000
        assert analysis.rough_estimate.max == 60000
        assert analysis.warnings == ESTIMATION_RESPONSE["roughEstimate"]["caveats"]
        assert analysis.questions_asked == ESTIMATION_RESPONSE["questionsAsked"]
        assert analysis.cost_breakdown.total.min == pytest.approx(30000)
        assert analysis.cost_breakdown.total.max == pytest.approx(60000)
        _assert_totals_consistent(analysis)

    def test_narrow_range_keeps_bands_ordered(self, normalizer):
        """Test that a narrow rough range still yields valid sub-bands."""
        raw = json.dumps({"responseType": "estimation", "roughEstimate": {"min": 1000, "max": 1050}})

        analysis = normalizer.normalize(raw, "openai")

        labor = analysis.cost_breakdown.labor
        materials = analysis.cost_breakdown.materials
        assert labor.max >= labor.min
        assert materials.max >= materials.min
        assert analysis.cost_breakdown.total.max == pytest.approx(1050)
        _assert_totals_consistent(analysis)

    def test_estimation_defaults(self, normalizer):
        analysis = normalizer.normalize('{"responseType": "estimation"}', "openai")

        assert analysis.confidence == 50
        assert analysis.recommendations == ["Site survey recommended", "Get multiple quotes"]
        _assert_totals_consistent(analysis)


class TestConversationMode:
    """Tests for clarifying-question normalization."""

    def test_conversation(self, normalizer):
        analysis = normalizer.normalize(json.dumps(CONVERSATION_RESPONSE), "openai")

        assert analysis.response_type == "conversation"
        assert analysis.difficulty_level == "Information Needed"
        assert analysis.confidence == 0
        assert analysis.description == CONVERSATION_RESPONSE["message"]
        assert analysis.information_needed == ["room", "dimensions"]
        assert analysis.timeline.diy == "Information needed"
        _assert_totals_consistent(analysis)


class TestNumericGuards:
    """Tests for figures that cannot be represented or priced."""

    def test_overflowing_figures_treated_as_absent(self, normalizer):
        """Test that 1e400 and Infinity fall back to defaults instead of inf."""
        raw = (
            '{"costBreakdown": {"materials": {"min": 1e400, "max": Infinity},'
            ' "labor": {"min": 300, "max": 600, "hourlyRate": NaN, "estimatedHours": 1e400}},'
            ' "confidence": -Infinity}'
        )

        analysis = normalizer.normalize(raw, "gemini")

        assert analysis.cost_breakdown.materials.min == 100
        assert analysis.cost_breakdown.materials.max == 500
        assert analysis.cost_breakdown.labor.hourly_rate == 30
        assert analysis.cost_breakdown.labor.estimated_hours == 8
        assert analysis.confidence == 75
        _assert_totals_consistent(analysis)

    def test_huge_integer_treated_as_absent(self, normalizer):
        raw = '{"costBreakdown": {"labor": {"estimatedHours": 1' + "0" * 400 + '}}}'

        analysis = normalizer.normalize(raw, "gemini")

        assert analysis.cost_breakdown.labor.estimated_hours == 8

    def test_large_figures_clamped(self, normalizer):
        raw = json.dumps({"costBreakdown": {"materials": {"min": 1e300, "max": 1e301}}})

        analysis = normalizer.normalize(raw, "gemini")

        assert analysis.cost_breakdown.materials.min == 10_000_000
        assert analysis.cost_breakdown.materials.max == 10_000_000
        _assert_totals_consistent(analysis)
