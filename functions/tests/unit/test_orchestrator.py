"""Unit tests for AnalysisOrchestrator."""

import asyncio
import json
import re

import pytest

from config.errors import AllProvidersFailedError, ErrorCode
from config.secrets import clear_secret_cache
from models.request import AnalysisRequest
from services.orchestrator import AnalysisOrchestrator
from services.pricing_engine import PricingEngine
from tests.fixtures.mock_provider_responses import CONVERSATION_RESPONSE, ESTIMATION_RESPONSE, QUOTE_RESPONSE


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def orchestrator(pricing_engine):
    """Orchestrator with explicit routing and no registered providers."""
    return AnalysisOrchestrator(
        primary_provider="gemini",
        fallback_providers=["openai", "mock"],
        timeout_ms=30000,
        allow_fallback=True,
        vision_provider="gemini",
        conversational_provider="openai",
        pricing_engine=pricing_engine,
    )


@pytest.fixture
def providers(orchestrator, make_provider):
    """Register healthy gemini/openai/mock fakes."""
    registered = {name: make_provider(name) for name in ("gemini", "openai", "mock")}
    for provider in registered.values():
        orchestrator.register_provider(provider)
    return registered


def _failing(make_provider, name):
    return make_provider(name, error=RuntimeError(f"{name} is down"))


# ============================================================================
# Selection
# ============================================================================


class TestSelectProvider:
    """Tests for provider routing."""

    def test_preferred_provider_wins(self, orchestrator, providers):
        request = AnalysisRequest.model_validate({
            "imageUri": "https://photos.test/a.jpg",
            "context": {"preferredProvider": "mock"},
        })

        assert orchestrator.select_provider(request) == "mock"

    def test_unregistered_preference_ignored(self, orchestrator, providers):
        request = AnalysisRequest.model_validate({"message": "hi", "context": {"preferredProvider": "claude"}})

        assert orchestrator.select_provider(request) == "gemini"

    def test_image_goes_to_vision_provider(self, orchestrator, providers):
        request = AnalysisRequest(image_uri="https://photos.test/a.jpg", message="quote this")

        assert orchestrator.select_provider(request) == "gemini"

    def test_long_conversation_goes_to_conversational(self, orchestrator, providers):
        history = [{"role": "user", "content": str(index)} for index in range(7)]
        request = AnalysisRequest.model_validate({
            "imageUri": "https://photos.test/a.jpg",
            "history": history,
        })

        assert orchestrator.select_provider(request) == "openai"

    def test_complex_project_goes_to_conversational(self, orchestrator, providers):
        request = AnalysisRequest.model_validate({
            "message": "rear extension",
            "context": {"projectType": "Single Storey Extension"},
        })

        assert orchestrator.select_provider(request) == "openai"

    def test_primary_returned_even_when_unregistered(self, orchestrator):
        assert orchestrator.select_provider(AnalysisRequest(message="new fence")) == "gemini"


# ============================================================================
# Execution
# ============================================================================


class TestExecute:
    """Tests for timeout and fallback execution."""

    @pytest.mark.asyncio
    async def test_primary_success(self, orchestrator, providers):
        analysis = await orchestrator.execute(AnalysisRequest(message="replaster a wall"))

        assert analysis.ai_provider == "gemini"
        assert analysis.processing_time_ms >= 0
        assert providers["openai"].calls == 0
        assert not any("fallback provider" in warning for warning in analysis.warnings)

    @pytest.mark.asyncio
    async def test_falls_back_in_order(self, orchestrator, providers, make_provider):
        orchestrator.register_provider(_failing(make_provider, "gemini"))

        analysis = await orchestrator.execute(AnalysisRequest(message="replaster a wall"))

        assert analysis.ai_provider == "openai"
        assert analysis.warnings[-1] == "Analysis completed using fallback provider: openai"
        assert providers["mock"].calls == 0

    @pytest.mark.asyncio
    async def test_skips_provider_already_tried(self, orchestrator, make_provider):
        gemini = _failing(make_provider, "gemini")
        mock = make_provider("mock")
        orchestrator.register_provider(gemini)
        orchestrator.register_provider(mock)
        orchestrator.fallback_providers = ["gemini", "mock"]

        analysis = await orchestrator.execute(AnalysisRequest(message="replaster a wall"))

        assert analysis.ai_provider == "mock"
        assert gemini.calls == 1

    @pytest.mark.asyncio
    async def test_unregistered_primary_skips_to_fallback(self, orchestrator, make_provider):
        orchestrator.register_provider(make_provider("mock"))

        analysis = await orchestrator.execute(AnalysisRequest(message="replaster a wall"))

        assert analysis.ai_provider == "mock"

    @pytest.mark.asyncio
    async def test_no_fallback_when_disabled(self, orchestrator, providers, make_provider):
        orchestrator.register_provider(_failing(make_provider, "gemini"))
        orchestrator.allow_fallback = False

        with pytest.raises(AllProvidersFailedError) as exc_info:
            await orchestrator.execute(AnalysisRequest(message="replaster a wall"))

        assert [failure["provider"] for failure in exc_info.value.failures] == ["gemini"]
        assert providers["openai"].calls == 0

    @pytest.mark.asyncio
    async def test_timeout_moves_to_fallback(self, orchestrator, providers, make_provider):
        """Test that a slow provider times out and its late result is discarded."""
        slow = make_provider("gemini", delay_seconds=0.2)
        orchestrator.register_provider(slow)
        orchestrator.timeout_ms = 20

        analysis = await orchestrator.execute(AnalysisRequest(message="replaster a wall"))

        assert analysis.ai_provider == "openai"
        assert slow.calls == 1
        # Let the abandoned call finish; its result must not surface anywhere.
        await asyncio.sleep(0.3)
        assert analysis.ai_provider == "openai"

    @pytest.mark.asyncio
    async def test_each_attempt_gets_full_timeout(self, orchestrator, make_provider):
        """Test that a fallback close to the limit succeeds after a primary timed out."""
        slow = make_provider("gemini", delay_seconds=0.2)
        steady = make_provider("openai", delay_seconds=0.035)
        orchestrator.register_provider(slow)
        orchestrator.register_provider(steady)
        orchestrator.timeout_ms = 50

        analysis = await orchestrator.execute(AnalysisRequest(message="replaster a wall"))

        assert analysis.ai_provider == "openai"
        assert steady.calls == 1
        await asyncio.sleep(0.25)

    @pytest.mark.asyncio
    async def test_timeout_failure_recorded(self, orchestrator, make_provider):
        orchestrator.register_provider(make_provider("gemini", delay_seconds=0.2))
        orchestrator.timeout_ms = 20
        orchestrator.allow_fallback = False

        with pytest.raises(AllProvidersFailedError) as exc_info:
            await orchestrator.execute(AnalysisRequest(message="replaster a wall"))

        assert "timed out after 20ms" in exc_info.value.failures[0]["error"]
        await asyncio.sleep(0.3)

    @pytest.mark.asyncio
    async def test_all_fail(self, orchestrator, make_provider):
        for name in ("gemini", "openai", "mock"):
            orchestrator.register_provider(_failing(make_provider, name))

        with pytest.raises(AllProvidersFailedError) as exc_info:
            await orchestrator.execute(AnalysisRequest(message="replaster a wall"))

        assert [failure["provider"] for failure in exc_info.value.failures] == ["gemini", "openai", "mock"]
        assert exc_info.value.code == ErrorCode.ALL_PROVIDERS_FAILED
        assert "mock is down" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_invalid_provider_output_falls_back(self, orchestrator, providers, make_provider):
        orchestrator.register_provider(make_provider("gemini", response_text="not json at all"))

        analysis = await orchestrator.execute(AnalysisRequest(message="replaster a wall"))

        assert analysis.ai_provider == "openai"


# ============================================================================
# Full pipeline
# ============================================================================


class TestAnalyze:
    """Tests for the full analysis pipeline."""

    @pytest.mark.asyncio
    async def test_stamps_and_enriches(self, orchestrator, providers, kitchen_payload):
        request = AnalysisRequest.model_validate(kitchen_payload)

        analysis = await orchestrator.analyze(request)

        assert re.fullmatch(r"analysis_\d+_[0-9a-f]{9}", analysis.analysis_id)
        assert analysis.timestamp
        assert analysis.ai_provider == "gemini"
        # Re-priced at North West market rates.
        assert analysis.cost_breakdown.labor.hourly_rate == pytest.approx(19.0 * 0.90, abs=0.01)
        assert analysis.cost_breakdown.total.max >= analysis.cost_breakdown.total.min

    @pytest.mark.asyncio
    async def test_market_data_reaches_provider(self, orchestrator, providers, kitchen_payload):
        await orchestrator.analyze(AnalysisRequest.model_validate(kitchen_payload))

        market_data = providers["gemini"].requests[0].context.market_data
        assert market_data["region"] == "North West"
        assert market_data["regionMultiplier"] == 0.90
        assert len(market_data["toolHire"]) == 3
        assert len(market_data["materials"]) == 3

    @pytest.mark.asyncio
    async def test_manchester_below_london(self, orchestrator, providers):
        manchester = await orchestrator.analyze(AnalysisRequest.model_validate({
            "message": "replaster a wall", "context": {"location": "Manchester"},
        }))
        london = await orchestrator.analyze(AnalysisRequest.model_validate({
            "message": "replaster a wall", "context": {"location": "London"},
        }))

        assert manchester.cost_breakdown.total.min < london.cost_breakdown.total.min
        assert manchester.cost_breakdown.total.max < london.cost_breakdown.total.max
        assert "Regional pricing is 30% above national average" in london.warnings

    @pytest.mark.asyncio
    async def test_all_fail_returns_fallback_analysis(self, orchestrator, make_provider):
        for name in ("gemini", "openai", "mock"):
            orchestrator.register_provider(_failing(make_provider, name))

        analysis = await orchestrator.analyze(AnalysisRequest(message="replaster a wall"))

        assert analysis.confidence == 20
        assert analysis.requires_professional is True
        assert analysis.ai_provider == "fallback"
        assert analysis.analysis_id.startswith("fallback_")
        assert any(warning.startswith("Error: ") for warning in analysis.warnings)

    @pytest.mark.asyncio
    async def test_pricing_failure_is_not_fatal(self, providers, fake_clock):
        class DownDataSource:
            async def fetch_reference_rates(self, region, project_type, scale):
                raise ConnectionError("down")

        engine = PricingEngine(data_source=DownDataSource(), allow_estimate_fallback=False, clock=fake_clock)
        orchestrator = AnalysisOrchestrator(
            primary_provider="gemini", fallback_providers=[], pricing_engine=engine,
        )
        orchestrator.register_provider(providers["gemini"])

        analysis = await orchestrator.analyze(AnalysisRequest(message="replaster a wall"))

        # Provider figures, not re-priced.
        assert analysis.cost_breakdown.materials.min == QUOTE_RESPONSE["costBreakdown"]["materials"]["min"]
        assert analysis.cost_breakdown.labor.hourly_rate == 25
        assert providers["gemini"].requests[0].context.market_data is None

    @pytest.mark.asyncio
    async def test_conversation_not_repriced(self, orchestrator, make_provider):
        orchestrator.register_provider(make_provider("gemini", response_text=json.dumps(CONVERSATION_RESPONSE)))

        analysis = await orchestrator.analyze(AnalysisRequest.model_validate({
            "message": "help", "context": {"location": "London"},
        }))

        assert analysis.response_type == "conversation"
        assert analysis.cost_breakdown.labor.hourly_rate == 30
        assert analysis.warnings == []

    @pytest.mark.asyncio
    async def test_estimation_totals_match_rough_estimate(self, orchestrator, make_provider):
        orchestrator.register_provider(make_provider("gemini", response_text=json.dumps(ESTIMATION_RESPONSE)))

        analysis = await orchestrator.analyze(AnalysisRequest.model_validate({
            "message": "loft conversion", "context": {"location": "Leeds"},
        }))

        assert analysis.response_type == "estimation"
        assert analysis.cost_breakdown.total.min == pytest.approx(analysis.rough_estimate.min)
        assert analysis.cost_breakdown.total.max == pytest.approx(analysis.rough_estimate.max)

    @pytest.mark.asyncio
    async def test_overflowing_provider_figures_still_answer(self, orchestrator, make_provider):
        """Test that a figure json parses to infinity does not break the pipeline."""
        raw = (
            '{"projectType": "Garden Wall", "costBreakdown": {"labor": '
            '{"min": 200, "max": 400, "hourlyRate": 25, "estimatedHours": 1e400}}}'
        )
        orchestrator.register_provider(make_provider("gemini", response_text=raw))

        response = await orchestrator.handle_request({"message": "build a wall"})

        assert response.success is True
        assert response.ai_provider == "gemini"
        labor = response.data["costBreakdown"]["labor"]
        assert labor["estimatedHours"] == 8
        assert labor["max"] >= labor["min"]


class TestHandleRequest:
    """Tests for the transport-facing entry point."""

    @pytest.mark.asyncio
    async def test_success(self, orchestrator, providers, kitchen_payload):
        response = await orchestrator.handle_request(kitchen_payload)
        body = response.to_dict()

        assert body["success"] is True
        assert body["aiProvider"] == "gemini"
        assert body["data"]["projectType"] == "Kitchen Wall Replastering"
        assert "processingTimeMs" in body
        assert "error" not in body

    @pytest.mark.asyncio
    async def test_empty_request_rejected_before_providers(self, orchestrator, providers):
        response = await orchestrator.handle_request({})

        assert response.success is False
        assert response.error.code == ErrorCode.VALIDATION_ERROR
        assert response.error.details["field"] == "imageUri"
        assert all(provider.calls == 0 for provider in providers.values())

    @pytest.mark.asyncio
    async def test_schema_error_rejected(self, orchestrator, providers):
        response = await orchestrator.handle_request({"message": "hi", "history": "not a list"})

        assert response.success is False
        assert response.error.code == ErrorCode.VALIDATION_ERROR
        assert response.error.details["errors"]
        assert all(provider.calls == 0 for provider in providers.values())

    @pytest.mark.asyncio
    async def test_image_only_accepted(self, orchestrator, providers, image_only_payload):
        response = await orchestrator.handle_request(image_only_payload)

        assert response.success is True
        assert response.data["projectType"]
        assert response.ai_provider == "gemini"

    @pytest.mark.asyncio
    async def test_all_fail_still_succeeds(self, orchestrator, make_provider, kitchen_payload):
        for name in ("gemini", "openai", "mock"):
            orchestrator.register_provider(_failing(make_provider, name))

        response = await orchestrator.handle_request(kitchen_payload)

        assert response.success is True
        assert response.data["confidence"] == 20
        assert response.data["requiresProfessional"] is True
        assert response.ai_provider == "fallback"


# ============================================================================
# Registry and health
# ============================================================================


class TestInitialize:
    """Tests for provider registration from configured keys."""

    @pytest.mark.asyncio
    async def test_only_mock_without_keys(self, orchestrator):
        await orchestrator.initialize()

        assert orchestrator.available_providers() == ["mock"]

    @pytest.mark.asyncio
    async def test_registers_keyed_providers(self, orchestrator, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "AIza" + "g" * 35)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-" + "o" * 45)
        clear_secret_cache()

        await orchestrator.initialize()

        assert orchestrator.available_providers() == ["gemini", "openai", "mock"]

    @pytest.mark.asyncio
    async def test_placeholder_key_skipped(self, orchestrator, monkeypatch):
        monkeypatch.setenv("GEMINI_API_KEY", "your_api_key_here")
        clear_secret_cache()

        await orchestrator.initialize()

        assert "gemini" not in orchestrator.available_providers()

    @pytest.mark.asyncio
    async def test_health_check(self, orchestrator, providers, failing_provider):
        orchestrator.register_provider(failing_provider)

        health = await orchestrator.health_check()

        assert set(health) == {"gemini", "openai", "mock", "broken"}
        assert health["gemini"]["status"] == "healthy"
        assert health["broken"]["status"] == "down"
