"""Unit tests for the HTTP entry points in main.py."""

import json

import pytest
from flask import Request
from werkzeug.test import EnvironBuilder

import main


def _request(method: str, body=None, data=None) -> Request:
    builder = EnvironBuilder(method=method, json=body, data=data, content_type="application/json")
    try:
        return builder.get_request(Request)
    finally:
        builder.close()


def _body(response) -> dict:
    return json.loads(response.get_data(as_text=True))


@pytest.fixture(autouse=True)
def fresh_pricing_cache():
    main.pricing_engine.clear_cache()
    yield
    main.pricing_engine.clear_cache()


class TestAnalyzeConstruction:
    """Tests for the analyze_construction endpoint."""

    def test_preflight(self):
        response = main.analyze_construction(_request("OPTIONS"))

        assert response.status_code == 204
        assert response.headers["Access-Control-Allow-Origin"] == "*"

    def test_analysis_with_mock_provider(self, kitchen_payload):
        """Test that without API keys the mock provider answers via fallback."""
        response = main.analyze_construction(_request("POST", kitchen_payload))
        body = _body(response)

        assert response.status_code == 200
        assert body["success"] is True
        assert body["aiProvider"] == "mock"
        assert body["data"]["projectType"] == "Kitchen Renovation"
        assert "Analysis completed using fallback provider: mock" in body["data"]["warnings"]
        total = body["data"]["costBreakdown"]["total"]
        assert total["max"] >= total["min"]

    def test_empty_request_rejected(self):
        response = main.analyze_construction(_request("POST", {}))
        body = _body(response)

        assert response.status_code == 400
        assert body["success"] is False
        assert body["error"]["code"] == "VALIDATION_ERROR"

    def test_invalid_json_rejected(self):
        response = main.analyze_construction(_request("POST", data="{not json"))
        body = _body(response)

        assert response.status_code == 400
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert "Invalid JSON" in body["error"]["message"]

    def test_non_object_body_rejected(self):
        response = main.analyze_construction(_request("POST", [1]))
        body = _body(response)

        assert response.status_code == 400
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert body["error"]["message"] == "Request body must be a JSON object"

    def test_invalid_settings_rejected(self, mock_settings, monkeypatch, kitchen_payload):
        """Test that settings are validated before an orchestrator is built."""
        monkeypatch.setattr(mock_settings, "provider_timeout_ms", 0)

        response = main.analyze_construction(_request("POST", kitchen_payload))
        body = _body(response)

        assert response.status_code == 500
        assert body["error"]["code"] == "INTERNAL_ERROR"
        assert "PROVIDER_TIMEOUT_MS must be positive" in body["error"]["message"]

    def test_health(self):
        response = main.analyze_construction(_request("GET"))
        body = _body(response)

        assert response.status_code == 200
        assert body["data"]["providers"]["mock"]["status"] == "healthy"
        assert body["data"]["pricing"]["status"] == "healthy"


class TestGetPricing:
    """Tests for the get_pricing endpoint."""

    def test_location_resolved_to_region(self):
        response = main.get_pricing(_request("POST", {"location": "Manchester", "projectType": "Kitchen"}))
        body = _body(response)

        assert response.status_code == 200
        assert body["success"] is True
        assert body["data"]["contextFactors"]["regionMultiplier"] == 0.90
        assert body["data"]["toolHire"]

    def test_unknown_location_uses_national_rates(self):
        body = _body(main.get_pricing(_request("POST", {"location": "Atlantis"})))

        assert body["data"]["contextFactors"]["regionMultiplier"] == 1.0

    def test_bad_scale_rejected(self):
        response = main.get_pricing(_request("POST", {"region": "London", "scale": "gigantic"}))
        body = _body(response)

        assert response.status_code == 400
        assert body["error"]["code"] == "VALIDATION_ERROR"
        assert body["error"]["details"]["errors"]

    def test_non_object_body_rejected(self):
        response = main.get_pricing(_request("POST", ["London"]))

        assert response.status_code == 400
        assert _body(response)["error"]["code"] == "VALIDATION_ERROR"

    def test_preflight(self):
        assert main.get_pricing(_request("OPTIONS")).status_code == 204
