# FILE: app/llm/gemini_client.py
"""
Gemini text generation with primary/secondary API key failover.

Two interchangeable credential slots share one model and one fixed
generation config. generate_with_fallback():
  - primary succeeds        -> its text, secondary never called
  - primary fails, no slot  -> primary's exception, unchanged
  - primary fails, secondary succeeds -> secondary's text
  - both fail               -> ProviderError naming both messages

Generation parameters are not configurable per request.
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

from google import genai
from google.genai import types

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash-lite"
TEMPERATURE = 0.8
MAX_OUTPUT_TOKENS = 2048


class ProviderError(Exception):
    """Text generation failed on every configured provider."""
    pass


class TextProvider(Protocol):
    name: str

    async def generate(self, prompt: str) -> str: ...


class GeminiProvider:
    """One Gemini API key bound to the service model."""

    def __init__(self, name: str, api_key: str, model_name: str = DEFAULT_MODEL):
        self.name = name
        self.model_name = model_name
        self._api_key = api_key
        self._client: Optional[genai.Client] = None

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    @staticmethod
    def generation_config() -> types.GenerateContentConfig:
        return types.GenerateContentConfig(
            temperature=TEMPERATURE,
            max_output_tokens=MAX_OUTPUT_TOKENS,
        )

    async def generate(self, prompt: str) -> str:
        response: Any = await self.client.aio.models.generate_content(
            model=self.model_name,
            contents=prompt,
            config=self.generation_config(),
        )
        return getattr(response, "text", "") or ""


class GeminiClient:
    """Primary provider with an optional secondary fallback."""

    def __init__(self, primary: TextProvider, secondary: Optional[TextProvider] = None):
        self.primary = primary
        self.secondary = secondary

    async def generate_with_fallback(self, prompt: str) -> str:
        try:
            text = await self.primary.generate(prompt)
            logger.info("[gemini] Generated response using %s API key", self.primary.name)
            return text
        except Exception as primary_error:
            logger.warning("[gemini] %s API key failed: %s", self.primary.name, primary_error)
            if self.secondary is None:
                raise

            try:
                text = await self.secondary.generate(prompt)
                logger.info("[gemini] Generated response using %s API key", self.secondary.name)
                return text
            except Exception as secondary_error:
                logger.error("[gemini] %s API key also failed: %s", self.secondary.name, secondary_error)
                raise ProviderError(
                    f"Both API keys failed. Primary: {primary_error}, Secondary: {secondary_error}"
                ) from secondary_error


def create_gemini_client(
    api_key: Optional[str],
    secondary_api_key: Optional[str] = None,
    model_name: str = DEFAULT_MODEL,
) -> GeminiClient:
    if not api_key:
        logger.warning("[gemini] GEMINI_API_KEY not set - generation requests will fail")
    primary = GeminiProvider("primary", api_key or "", model_name)
    secondary = GeminiProvider("secondary", secondary_api_key, model_name) if secondary_api_key else None
    return GeminiClient(primary, secondary)
