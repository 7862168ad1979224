"""Tiny Gemini (Google GenAI) client wrapper.

Used by the business document generators. It expects ``GEMINI_API_KEY``
in the environment (or passed explicitly); without it construction raises
``ServiceNotConfigured`` so routers answer 503 instead of crashing.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from google import genai
from google.genai import types

from usefreetools.config import GEMINI_MAX_TOKENS, GEMINI_MODEL, GEMINI_TEMPERATURE
from usefreetools.errors import ServiceNotConfigured, UpstreamError
from usefreetools.retry import upstream_retry

LOG = logging.getLogger(__name__)


class GeminiClient:
    """Gemini text generation over the google-genai SDK.

    ``generate`` returns the model output as one string (empty when the
    model produced no text).
    """

    def __init__(self, api_key: Optional[str] = None, default_model: Optional[str] = GEMINI_MODEL):
        self.api_key = api_key or os.environ.get("GEMINI_API_KEY")
        if not self.api_key:
            raise ServiceNotConfigured(
                "AI", "AI service not available. Please try again later."
            )
        self.default_model = default_model

        try:
            self._client = genai.Client(api_key=self.api_key)
        except Exception as exc:
            raise UpstreamError(f"Failed to initialize GenAI client: {exc}") from exc

    def generate(
        self,
        prompt: str,
        model: Optional[str] = None,
        max_tokens: int = GEMINI_MAX_TOKENS,
        temperature: float = GEMINI_TEMPERATURE,
    ) -> str:
        """Generate text for the given prompt."""
        model_id = model or self.default_model
        if not model_id:
            raise ValueError("model must be provided either via constructor or argument")

        config = types.GenerateContentConfig(
            max_output_tokens=max_tokens,
            temperature=temperature,
        )

        @upstream_retry
        def _call() -> str:
            response = self._client.models.generate_content(
                model=model_id,
                contents=prompt,
                config=config,
            )
            return response.text or ""

        try:
            return _call()
        except Exception as exc:
            raise UpstreamError(f"Gemini API error: {exc}") from exc

    def ping(self) -> bool:
        """Return True when the default model's metadata can be fetched."""
        try:
            self._client.models.get(model=self.default_model)
        except Exception as exc:
            LOG.warning("Gemini health probe failed: %s", exc)
            return False
        return True


def get_gemini_client() -> GeminiClient:
    return GeminiClient()


__all__ = ["GeminiClient", "get_gemini_client"]
