"""Cloud Function entry points for SiteQuote.

Provides HTTP endpoints for:
- Construction analysis (POST) and provider health (GET)
- Regional market pricing
"""

import asyncio
import json
from typing import Any, Dict, Optional

import structlog
from firebase_functions import https_fn, options
from pydantic import ValidationError as PydanticValidationError

from config.errors import ErrorCode, InvalidRequestError, SiteQuoteError
from config.settings import settings
from models.pricing import PricingContext
from services.context_builder import resolve_region
from services.orchestrator import AnalysisOrchestrator
from services.pricing_engine import PricingEngine

logger = structlog.get_logger()

# Shared across invocations so the pricing cache survives between requests.
# Orchestrators (and their provider clients) are built per request because
# every request runs in its own event loop.
pricing_engine = PricingEngine()

# ============================================================================
# Helper Functions
# ============================================================================


def success_response(data: Dict[str, Any]) -> Dict[str, Any]:
    """Build success response."""
    return {"success": True, "data": data}


def error_response(code: str, message: str, details: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Build error response."""
    return {
        "success": False,
        "error": {
            "code": code,
            "message": message,
            "details": details or {}
        }
    }


def get_request_json(req: https_fn.Request) -> Dict[str, Any]:
    """Extract JSON from request body.

    Args:
        req: HTTP request object.

    Returns:
        Parsed JSON data.

    Raises:
        InvalidRequestError: If JSON is invalid or not an object.
    """
    try:
        data = req.get_json(force=True) or {}
    except Exception as e:
        raise InvalidRequestError(
            message=f"Invalid JSON in request body: {str(e)}"
        )

    if not isinstance(data, dict):
        raise InvalidRequestError(
            message="Request body must be a JSON object"
        )
    return data


async def build_orchestrator() -> AnalysisOrchestrator:
    settings.validate()
    orchestrator = AnalysisOrchestrator(pricing_engine=pricing_engine)
    await orchestrator.initialize()
    return orchestrator


# ============================================================================
# Analysis
# ============================================================================


async def _analyze_async(data: Dict[str, Any]) -> Dict[str, Any]:
    orchestrator = await build_orchestrator()
    response = await orchestrator.handle_request(data)
    return response.to_dict()


async def _health_async() -> Dict[str, Any]:
    orchestrator = await build_orchestrator()
    return {
        "providers": await orchestrator.health_check(),
        "pricing": await orchestrator.pricing_engine.health_check(),
    }


@https_fn.on_request(
    timeout_sec=120,
    memory=options.MemoryOption.MB_512,
    region="us-central1"
)
def analyze_construction(req: https_fn.Request) -> https_fn.Response:
    """Analyze a construction project photo and/or description.

    Request body:
    {
        "imageUri": "https://... or data:image/jpeg;base64,...",
        "message": "Replace the kitchen worktops",
        "context": {"location": "Manchester", "budgetRange": {"min": 2000, "max": 5000}},
        "history": [{"role": "user", "content": "..."}]
    }

    Response:
    {
        "success": true,
        "data": {...ProjectAnalysis...},
        "processingTimeMs": 1234,
        "aiProvider": "gemini"
    }

    GET returns provider and pricing health.
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        if req.method == "GET":
            return _json_response(success_response(asyncio.run(_health_async())))

        data = get_request_json(req)
        logger.info(
            "analysis_request_received",
            has_image=bool(data.get("imageUri") or data.get("imageRef") or data.get("imageUrl")),
            has_message=bool(data.get("message")),
            user_id=data.get("userId"),
        )

        result = asyncio.run(_analyze_async(data))
        return _json_response(result, status=200 if result.get("success") else 400)

    except InvalidRequestError as e:
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=400
        )
    except SiteQuoteError as e:
        logger.error("analysis_error", error=e.message, code=e.code)
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=500
        )
    except Exception as e:
        logger.exception("analysis_exception", error=str(e))
        return _json_response(
            error_response(
                ErrorCode.INTERNAL_ERROR,
                f"Failed to analyze project: {str(e)}"
            ),
            status=500
        )


# ============================================================================
# Pricing
# ============================================================================


def parse_pricing_context(data: Dict[str, Any]) -> PricingContext:
    """Build a PricingContext from a request body.

    Accepts either an explicit region or a free-text location, which is
    resolved to a region (and city) the same way analysis requests are.

    Raises:
        pydantic.ValidationError: If a field has the wrong type.
    """
    region, city = resolve_region(data.get("location") or data.get("region"))
    return PricingContext.model_validate({
        **{key: value for key, value in data.items() if key != "location"},
        "region": region,
        "city": data.get("city") or city,
    })


async def _get_pricing_async(context: PricingContext) -> Dict[str, Any]:
    await pricing_engine.initialize()
    response = await pricing_engine.get_pricing_data(context)
    return response.to_response_dict()


@https_fn.on_request(
    timeout_sec=60,
    memory=options.MemoryOption.MB_256,
    region="us-central1"
)
def get_pricing(req: https_fn.Request) -> https_fn.Response:
    """Get regional market pricing.

    Request body:
    {
        "location": "Leeds",          // or "region": "Yorkshire"
        "projectType": "Loft Conversion",
        "scale": "medium"
    }
    """
    if req.method == "OPTIONS":
        return _cors_response()

    try:
        data = get_request_json(req)
        context = parse_pricing_context(data)

        logger.info(
            "pricing_request_received",
            region=context.region,
            project_type=context.project_type,
        )

        result = asyncio.run(_get_pricing_async(context))
        return _json_response(success_response(result))

    except PydanticValidationError as e:
        return _json_response(
            error_response(
                ErrorCode.VALIDATION_ERROR,
                "Invalid pricing request",
                {"errors": e.errors(include_url=False, include_context=False)}
            ),
            status=400
        )
    except InvalidRequestError as e:
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=400
        )
    except SiteQuoteError as e:
        logger.error("pricing_error", error=e.message, code=e.code)
        return _json_response(
            error_response(e.code, e.message, e.details),
            status=500
        )
    except Exception as e:
        logger.exception("pricing_exception", error=str(e))
        return _json_response(
            error_response(
                ErrorCode.INTERNAL_ERROR,
                f"Failed to get pricing: {str(e)}"
            ),
            status=500
        )


# ============================================================================
# CORS
# ============================================================================

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "3600"
}


def _cors_response() -> https_fn.Response:
    """Return CORS preflight response."""
    return https_fn.Response(
        "",
        status=204,
        headers=CORS_HEADERS
    )


def _json_response(data: dict, status: int = 200) -> https_fn.Response:
    """Return JSON response with CORS headers."""
    return https_fn.Response(
        json.dumps(data, default=str),
        status=status,
        mimetype="application/json",
        headers=CORS_HEADERS
    )
