"""Deepgram client: speech-to-text, text-to-speech and the voice catalogue.

Talks to the Deepgram REST API with ``requests``; transient failures are
retried by ``usefreetools.retry``.

Configuration (environment variables):
    DEEPGRAM_API_KEY   – required; absence raises ``ServiceNotConfigured``
    DEEPGRAM_BASE_URL  – default ``https://api.deepgram.com/v1``
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

import requests

from usefreetools.config import (
    DEEPGRAM_BASE_URL,
    DEEPGRAM_STT_MODEL,
    DEEPGRAM_TTS_MODEL,
    HEALTH_CHECK_TIMEOUT,
    TRANSCRIPTION_TIMEOUT,
    TTS_TIMEOUT,
    VOICE_MODELS_TIMEOUT,
)
from usefreetools.errors import ServiceNotConfigured, UpstreamError
from usefreetools.retry import upstream_retry

LOG = logging.getLogger(__name__)

# format -> query parameters for /speak
_SPEAK_ENCODINGS = {
    "mp3": {"encoding": "mp3"},
    "wav": {"encoding": "linear16", "container": "wav"},
}


class DeepgramClient:
    """Thin wrapper over the three Deepgram endpoints this service uses."""

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        self.api_key = api_key or os.environ.get("DEEPGRAM_API_KEY")
        if not self.api_key:
            raise ServiceNotConfigured("Deepgram")
        self.base_url = (base_url or DEEPGRAM_BASE_URL).rstrip("/")

    def _headers(self, content_type: str = "application/json") -> Dict[str, str]:
        return {"Authorization": f"Token {self.api_key}", "Content-Type": content_type}

    # ------------------------------------------------------------------
    # speech-to-text
    # ------------------------------------------------------------------

    def transcribe(self, audio: bytes, mimetype: str) -> Dict[str, Any]:
        """Return ``{"transcript", "confidence"}`` for a prerecorded file."""

        @upstream_retry
        def _call() -> Dict[str, Any]:
            resp = requests.post(
                f"{self.base_url}/listen",
                params={
                    "model": DEEPGRAM_STT_MODEL,
                    "language": "en-US",
                    "smart_format": "true",
                    "punctuate": "true",
                    "paragraphs": "true",
                },
                headers=self._headers(mimetype or "application/octet-stream"),
                data=audio,
                timeout=TRANSCRIPTION_TIMEOUT,
            )
            resp.raise_for_status()
            return resp.json()

        try:
            payload = _call()
        except Exception as exc:
            raise UpstreamError(f"Deepgram transcription error: {exc}") from exc

        try:
            alternative = payload["results"]["channels"][0]["alternatives"][0]
        except (KeyError, IndexError, TypeError):
            alternative = {}
        return {
            "transcript": alternative.get("transcript") or "",
            "confidence": alternative.get("confidence") or 0.0,
        }

    # ------------------------------------------------------------------
    # text-to-speech
    # ------------------------------------------------------------------

    def speak(self, text: str, model: str = DEEPGRAM_TTS_MODEL, fmt: str = "mp3") -> bytes:
        params = {"model": model, **_SPEAK_ENCODINGS[fmt]}

        @upstream_retry
        def _call() -> bytes:
            resp = requests.post(
                f"{self.base_url}/speak",
                params=params,
                headers=self._headers(),
                json={"text": text},
                timeout=TTS_TIMEOUT,
            )
            resp.raise_for_status()
            return resp.content

        try:
            return _call()
        except Exception as exc:
            raise UpstreamError(f"Deepgram TTS failed: {exc}") from exc

    # ------------------------------------------------------------------
    # catalogue
    # ------------------------------------------------------------------

    def list_tts_models(self) -> List[Dict[str, Any]]:
        @upstream_retry
        def _call() -> Dict[str, Any]:
            resp = requests.get(
                f"{self.base_url}/models",
                headers=self._headers(),
                timeout=VOICE_MODELS_TIMEOUT,
            )
            resp.raise_for_status()
            return resp.json()

        try:
            data = _call()
        except Exception as exc:
            raise UpstreamError(f"Deepgram API error: {exc}") from exc

        models = data.get("tts") if isinstance(data, dict) else None
        if not isinstance(models, list):
            raise UpstreamError("Invalid response format: no TTS models found")
        return models

    def ping(self) -> bool:
        """Cheap reachability probe used by /health."""
        try:
            resp = requests.get(
                f"{self.base_url}/projects",
                headers=self._headers(),
                timeout=HEALTH_CHECK_TIMEOUT,
            )
        except requests.RequestException as exc:
            LOG.warning("Deepgram health probe failed: %s", exc)
            return False
        return resp.ok


def get_deepgram_client() -> DeepgramClient:
    return DeepgramClient()


__all__ = ["DeepgramClient", "get_deepgram_client"]
