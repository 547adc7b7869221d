"""Google Gemini provider for SiteQuote.

Calls the Gemini REST generateContent endpoint with httpx. Vision
capable: images travel as base64 inlineData parts.
"""

from typing import Any, Dict, List, Optional

import httpx
import structlog

from config.errors import ProviderError
from config.secrets import get_gemini_api_key, is_usable_key
from config.settings import settings
from models.request import AnalysisRequest
from providers.base import BaseProvider
from providers.image_data import prepare_image_data
from providers.prompts import SYSTEM_PROMPT, build_analysis_prompt
from services.response_normalizer import ResponseNormalizer

logger = structlog.get_logger()

GEMINI_TIMEOUT_SECONDS = 60.0


class GeminiProvider(BaseProvider):
    """Gemini generateContent adapter.

    Args:
        api_key: Gemini API key (default from secrets).
        model: Model name (default from settings).
        base_url: API base URL (default from settings).
        transport: Optional httpx transport, used by tests.
        normalizer: Optional ResponseNormalizer.
    """

    name = "gemini"
    vision_capable = True
    degraded_latency_ms = 2000

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        normalizer: Optional[ResponseNormalizer] = None,
    ):
        super().__init__(normalizer)
        self.api_key = api_key or get_gemini_api_key()
        self.model = model or settings.gemini_model
        self.base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self._transport = transport

    def is_available(self) -> bool:
        return is_usable_key(self.api_key)

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/models/{self.model}:generateContent"

    async def generate(self, request: AnalysisRequest) -> str:
        parts: List[Dict[str, Any]] = [{"text": build_analysis_prompt(request)}]

        if request.has_image:
            image = await prepare_image_data(request.image_uri, transport=self._transport)
            parts.append(image.to_gemini_part())

        return await self._generate_content(
            parts,
            generation_config={
                "temperature": settings.llm_temperature,
                "maxOutputTokens": settings.llm_max_tokens,
                "responseMimeType": "application/json",
            },
        )

    async def ping(self) -> None:
        await self._generate_content([{"text": "Health check"}], generation_config={"maxOutputTokens": 5})

    async def _generate_content(
        self,
        parts: List[Dict[str, Any]],
        generation_config: Optional[Dict[str, Any]] = None
    ) -> str:
        """POST a generateContent call and return the first candidate's text.

        Raises:
            ProviderError: Non-2xx status or a response without candidate text.
        """
        body: Dict[str, Any] = {
            "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
            "contents": [{"role": "user", "parts": parts}],
        }
        if generation_config:
            body["generationConfig"] = generation_config

        async with httpx.AsyncClient(timeout=GEMINI_TIMEOUT_SECONDS, transport=self._transport) as client:
            response = await client.post(
                self.endpoint,
                json=body,
                headers={"x-goog-api-key": self.api_key or "", "Content-Type": "application/json"},
            )

        if response.status_code >= 400:
            raise ProviderError(
                message=f"Gemini API error: {response.status_code}",
                provider_name=self.name,
                details={"status_code": response.status_code, "body": response.text[:200]}
            )

        data = response.json()
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            raise ProviderError(
                message="Invalid response from Gemini API: no candidate text",
                provider_name=self.name,
            )

        logger.debug("gemini_generated", model=self.model, content_length=len(text))
        return text
