"""Speech-to-text with a degraded fallback.

Deepgram is tried first. A missing key, an upstream failure, a timeout or
an empty transcript all degrade to ``fallback_transcription()`` so the
caller still gets a 200 with an explanatory message.
"""
from __future__ import annotations

import logging

from usefreetools.config import TRANSCRIPTION_TIMEOUT
from usefreetools.deepgram_client import get_deepgram_client
from usefreetools.errors import ServiceNotConfigured, ToolError, UpstreamError, report_exception, run_with_timeout
from usefreetools.models import AudioUpload, TranscriptionResult

LOG = logging.getLogger(__name__)

FALLBACK_TRANSCRIPT = "Transcription service temporarily unavailable. Please try again later."


class EmptyTranscript(UpstreamError):
    pass


def fallback_transcription() -> TranscriptionResult:
    return TranscriptionResult(transcript=FALLBACK_TRANSCRIPT, confidence=0.0, service="fallback")


async def transcribe_audio(audio: bytes, upload: AudioUpload) -> TranscriptionResult:
    try:
        client = get_deepgram_client()
    except ServiceNotConfigured:
        LOG.warning("Deepgram not configured; using fallback transcription")
        return fallback_transcription()

    try:
        result = await run_with_timeout(
            client.transcribe,
            audio,
            upload.mime_type,
            timeout=TRANSCRIPTION_TIMEOUT,
            label="deepgram transcription",
        )
        transcript = (result.get("transcript") or "").strip()
        if not transcript:
            raise EmptyTranscript("Empty transcript received from Deepgram")
    except (UpstreamError, ToolError) as exc:
        LOG.warning("Deepgram transcription failed for %s: %s", upload.filename, exc)
        report_exception(
            exc,
            service="deepgram",
            file_size=upload.size_bytes,
            file_type=upload.mime_type,
        )
        return fallback_transcription()

    return TranscriptionResult(
        transcript=transcript,
        confidence=float(result.get("confidence") or 0.0),
        service="deepgram",
    )


__all__ = ["FALLBACK_TRANSCRIPT", "fallback_transcription", "transcribe_audio"]
