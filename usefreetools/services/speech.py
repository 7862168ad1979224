"""Text-to-speech through Deepgram Aura."""
from __future__ import annotations

import logging

from usefreetools.config import TTS_TIMEOUT
from usefreetools.deepgram_client import get_deepgram_client
from usefreetools.errors import (
    ErrorKind,
    ServiceNotConfigured,
    ToolError,
    UpstreamError,
    report_exception,
    run_with_timeout,
)
from usefreetools.models import SpeechRequest

LOG = logging.getLogger(__name__)

MEDIA_TYPES = {"mp3": "audio/mpeg", "wav": "audio/wav"}


async def synthesize(req: SpeechRequest) -> bytes:
    """Return encoded audio for ``req``.

    Raises ``ServiceNotConfigured`` without a key, a 503
    ``TTS_SERVICE_UNAVAILABLE`` when Deepgram fails and a 500 ``TTS_FAILED``
    when it answers with no audio.
    """
    try:
        client = get_deepgram_client()
    except ServiceNotConfigured as exc:
        raise ServiceNotConfigured("TTS") from exc

    try:
        audio = await run_with_timeout(
            client.speak,
            req.text,
            req.model,
            req.format,
            timeout=TTS_TIMEOUT,
            label="deepgram tts",
            message="Request timeout. Please try with shorter text or try again later.",
        )
    except UpstreamError as exc:
        LOG.warning("Deepgram TTS failed: %s", exc)
        report_exception(exc, service="deepgram", text_length=len(req.text), model=req.model)
        raise ToolError(
            ErrorKind.SERVICE_UNAVAILABLE,
            "Text-to-speech service temporarily unavailable. Please try again later.",
            code="TTS_SERVICE_UNAVAILABLE",
        ) from exc

    if not audio:
        LOG.error("Deepgram returned no audio for model %s", req.model)
        raise ToolError(
            ErrorKind.UNEXPECTED,
            "Text-to-speech generation failed. Please try again.",
            code="TTS_FAILED",
        )
    return audio


__all__ = ["MEDIA_TYPES", "synthesize"]
