"""OpenAI provider for SiteQuote.

LangChain ChatOpenAI wrapper used as the conversational provider.
Images are passed as image_url content parts; the last few history
turns go in as chat messages.
"""

from typing import Any, Dict, List, Optional

import structlog
from langchain_openai import ChatOpenAI
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from config.errors import ProviderError
from config.secrets import get_openai_api_key, is_usable_key
from config.settings import settings
from models.request import AnalysisRequest
from providers.base import BaseProvider
from providers.prompts import SYSTEM_PROMPT, build_analysis_prompt
from services.response_normalizer import ResponseNormalizer

logger = structlog.get_logger()

# Trailing history turns sent as chat messages (two user/assistant rounds).
HISTORY_TURNS = 4


class OpenAIProvider(BaseProvider):
    """Chat completions adapter with JSON response format.

    Args:
        api_key: OpenAI API key (default from secrets).
        model: Model name (default from settings).
        temperature: Sampling temperature (default from settings).
        normalizer: Optional ResponseNormalizer.
    """

    name = "openai"
    vision_capable = True
    degraded_latency_ms = 3000

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        normalizer: Optional[ResponseNormalizer] = None,
    ):
        super().__init__(normalizer)
        self.api_key = api_key or get_openai_api_key()
        self.model = model or settings.openai_model
        self.temperature = settings.llm_temperature if temperature is None else temperature

        self._client: Optional[ChatOpenAI] = None
        self._total_tokens_used = 0

    def is_available(self) -> bool:
        return is_usable_key(self.api_key)

    @property
    def client(self) -> ChatOpenAI:
        """Get LangChain ChatOpenAI client (lazy initialization)."""
        if self._client is None:
            self._client = ChatOpenAI(
                model=self.model,
                temperature=self.temperature,
                api_key=self.api_key,
                max_tokens=settings.llm_max_tokens,
            )
        return self._client

    @property
    def total_tokens_used(self) -> int:
        return self._total_tokens_used

    def build_messages(self, request: AnalysisRequest) -> List[BaseMessage]:
        """System prompt, recent history, then the current request."""
        messages: List[BaseMessage] = [SystemMessage(content=SYSTEM_PROMPT)]

        for turn in request.history[-HISTORY_TURNS:]:
            if turn.role == "user":
                messages.append(HumanMessage(content=turn.content))
            else:
                messages.append(AIMessage(content=turn.content))

        content: List[Dict[str, Any]] = [
            {"type": "text", "text": build_analysis_prompt(request, history_turns=0)}
        ]
        if request.has_image:
            content.append({
                "type": "image_url",
                "image_url": {"url": request.image_uri.strip(), "detail": "high"},
            })
        messages.append(HumanMessage(content=content))
        return messages

    async def generate(self, request: AnalysisRequest) -> str:
        try:
            response = await self.client.ainvoke(
                self.build_messages(request),
                response_format={"type": "json_object"},
            )
        except Exception as e:
            error_msg = str(e)
            if "rate_limit" in error_msg.lower():
                raise ProviderError(
                    message="OpenAI rate limit exceeded",
                    provider_name=self.name,
                    details={"original_error": error_msg}
                )
            raise ProviderError(
                message=f"OpenAI generation failed: {error_msg}",
                provider_name=self.name,
                details={"original_error": error_msg}
            )

        tokens_used = 0
        if hasattr(response, "response_metadata"):
            usage = response.response_metadata.get("token_usage", {}) or {}
            tokens_used = usage.get("total_tokens", 0)
            self._total_tokens_used += tokens_used

        content = response.content if isinstance(response.content, str) else str(response.content)
        logger.info(
            "openai_generated",
            model=self.model,
            tokens_used=tokens_used,
            content_length=len(content),
        )
        return content

    async def ping(self) -> None:
        await self.client.ainvoke([HumanMessage(content="Health check")], max_tokens=5)
