"""Image preparation for vision providers.

Turns a request's image reference into base64 inline data: data: URIs
are split in place, http(s) URLs are downloaded with retries.
"""

import base64
from dataclasses import dataclass
from typing import Optional

import httpx
import structlog
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from config.settings import settings

logger = structlog.get_logger()

DEFAULT_MIME_TYPE = "image/jpeg"


@dataclass
class InlineImage:
    """Base64 image payload plus its MIME type."""

    mime_type: str
    data: str

    def to_gemini_part(self) -> dict:
        return {"inlineData": {"mimeType": self.mime_type, "data": self.data}}


def parse_data_uri(image_uri: str) -> InlineImage:
    """Split 'data:<mime>;base64,<payload>' into an InlineImage.

    Raises:
        ValueError: The URI has no payload.
    """
    header, _, payload = image_uri.partition(",")
    if not payload:
        raise ValueError("data: URI has no payload")
    mime_type = header[len("data:"):].split(";")[0] or DEFAULT_MIME_TYPE
    return InlineImage(mime_type=mime_type, data=payload)


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    retry=retry_if_exception_type((httpx.TransportError, httpx.TimeoutException)),
)
async def fetch_image(
    url: str,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> InlineImage:
    """Download an image and base64-encode it.

    Transport errors are retried; HTTP error statuses are not.
    """
    async with httpx.AsyncClient(
        timeout=settings.image_fetch_timeout_seconds,
        transport=transport,
        follow_redirects=True,
    ) as client:
        response = await client.get(url)
        response.raise_for_status()

    mime_type = response.headers.get("content-type", DEFAULT_MIME_TYPE).split(";")[0].strip()
    logger.debug("image_fetched", url=url[:80], bytes=len(response.content), mime_type=mime_type)
    return InlineImage(
        mime_type=mime_type or DEFAULT_MIME_TYPE,
        data=base64.b64encode(response.content).decode("ascii"),
    )


async def prepare_image_data(
    image_uri: str,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> InlineImage:
    """Inline image data for a data: URI or http(s) URL.

    Raises:
        ValueError: Unsupported image reference.
        httpx.HTTPError: The image could not be downloaded.
    """
    reference = image_uri.strip()
    if reference.startswith("data:"):
        return parse_data_uri(reference)
    if reference.startswith(("http://", "https://")):
        return await fetch_image(reference, transport=transport)
    raise ValueError("Unsupported image URI format")
