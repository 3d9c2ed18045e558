"""Gemini backend for text generation."""
import logging
from typing import Optional, Protocol

from google import genai

from referral_scraper.errors import TransportFailure

logger = logging.getLogger(__name__)


class TextGenerator(Protocol):
    """Anything that turns a prompt into a free-form text reply."""

    async def generate(self, prompt: str) -> str: ...


class GeminiGenerator:
    """Calls Gemini generate_content through the async client."""

    def __init__(self, api_key: str, model: str, client: Optional[genai.Client] = None):
        key = (api_key or "").strip()
        if not key and client is None:
            raise ValueError("api_key must be a non-empty string")
        self.model = model
        self.client = client or genai.Client(api_key=key)

    async def generate(self, prompt: str) -> str:
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
            )
        except Exception as e:
            raise TransportFailure(f"Gemini call failed ({self.model}): {e}") from e

        text = (getattr(response, "text", None) or "").strip()
        logger.debug(f"Gemini raw response: {text[:500]}")
        return text
