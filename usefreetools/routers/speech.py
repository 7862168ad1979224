"""Router for the speech tools: /transcribe, /tts and /voice-models."""

import logging
import math

from fastapi import APIRouter, Depends, Request
from fastapi.responses import Response

from usefreetools.config import VOICE_MODELS_CACHE_SECONDS, VOICE_MODELS_FALLBACK_CACHE_SECONDS
from usefreetools.dependencies import describe_upload, form_file, read_form, read_json_body, read_upload, rate_limited
from usefreetools.envelope import Stopwatch, binary_success, json_success, preflight_response, usage_header
from usefreetools.errors import guarded
from usefreetools.rate_limit import RateLimitDecision
from usefreetools.services.speech import MEDIA_TYPES, synthesize
from usefreetools.services.transcription import transcribe_audio
from usefreetools.services.voice_models import VoiceModelCache, fetch_voice_models
from usefreetools.validation import validate_audio_upload, validate_speech_request

log = logging.getLogger(__name__)

router = APIRouter(tags=["speech"])


# ── Speech to text ─────────────────────────────────────────────────────────


@router.post("/transcribe")
async def transcribe_endpoint(
    request: Request,
    decision: RateLimitDecision = Depends(rate_limited("transcribe")),
):
    """Transcribe an uploaded audio file (multipart field ``audio``)."""
    stopwatch = Stopwatch()
    with guarded("transcribe", "Transcription failed. Please try again.", code="TRANSCRIPTION_FAILED"):
        form = await read_form(request)
        upload = form_file(form, "audio")
        audio_req = validate_audio_upload(describe_upload(upload)).unwrap()
        audio = await read_upload(upload)
        result = await transcribe_audio(audio, audio_req)

    log.info(
        "Transcription completed: %d chars, service=%s",
        len(result.transcript), result.service,
    )
    headers = {"X-Service-Used": result.service}
    headers.update(usage_header(
        "transcribe", result.service,
        fileSize=audio_req.size_bytes,
        duration=math.ceil(stopwatch.elapsed_ms / 1000),
    ))
    return json_success(
        {
            "success": True,
            "transcript": result.transcript,
            "confidence": result.confidence,
        },
        decision=decision,
        stopwatch=stopwatch,
        metadata={
            "service": result.service,
            "fileSize": audio_req.size_bytes,
            "fileName": audio_req.filename,
        },
        headers=headers,
    )


@router.options("/transcribe")
def transcribe_preflight():
    return preflight_response(["POST"])


# ── Text to speech ─────────────────────────────────────────────────────────


@router.post("/tts")
async def tts_endpoint(
    request: Request,
    decision: RateLimitDecision = Depends(rate_limited("tts")),
):
    """Synthesize speech from JSON ``{text, format, model}``."""
    stopwatch = Stopwatch()
    with guarded("tts", "Text-to-speech generation failed. Please try again.", code="TTS_FAILED"):
        body = await read_json_body(request)
        speech = validate_speech_request(body).unwrap()
        audio = await synthesize(speech)

    log.info("TTS completed: %d chars, %d bytes", len(speech.text), len(audio))
    headers = {
        "Cache-Control": "public, max-age=3600",
        "X-Service-Used": "deepgram",
        "X-Text-Length": str(len(speech.text)),
    }
    headers.update(usage_header(
        "tts", "deepgram",
        textLength=len(speech.text),
        model=speech.model,
        format=speech.format,
    ))
    return binary_success(
        audio,
        MEDIA_TYPES[speech.format],
        decision=decision,
        stopwatch=stopwatch,
        headers=headers,
    )


@router.options("/tts")
def tts_preflight():
    return preflight_response(["POST"])


# ── Voice catalogue ────────────────────────────────────────────────────────


def get_voice_model_cache(request: Request) -> VoiceModelCache:
    return request.app.state.voice_model_cache


@router.get("/voice-models")
async def voice_models_endpoint(
    request: Request,
    decision: RateLimitDecision = Depends(rate_limited("voice-models")),
):
    """List the available TTS voices, served from a short-lived cache."""
    stopwatch = Stopwatch()
    cache = get_voice_model_cache(request)

    catalogue = cache.get()
    cached = catalogue is not None
    if catalogue is None:
        with guarded("voice-models", "Failed to load voice models. Please try again."):
            catalogue = await fetch_voice_models()
        cache.put(catalogue)
    else:
        log.debug("Returning cached voice models")

    provider = "fallback" if catalogue.fallback else "deepgram"
    max_age = VOICE_MODELS_FALLBACK_CACHE_SECONDS if catalogue.fallback else VOICE_MODELS_CACHE_SECONDS
    headers = {
        "Cache-Control": f"public, max-age={max_age}",
        "X-Cache": "HIT" if cached else "MISS",
        "X-Fallback-Used": str(catalogue.fallback).lower(),
    }
    if not cached:
        headers.update(usage_header("voice-models", provider, modelsCount=len(catalogue.voices)))
        log.info(
            "Voice models fetched: %d models, fallback=%s",
            len(catalogue.voices), catalogue.fallback,
        )

    return json_success(
        {
            "success": True,
            "voiceModels": [v.model_dump() for v in catalogue.voices],
            "total": len(catalogue.voices),
            "fallback": catalogue.fallback,
        },
        decision=decision,
        stopwatch=stopwatch,
        metadata={"cached": cached, "provider": provider},
        headers=headers,
    )


@router.head("/voice-models")
def voice_models_head():
    return Response(status_code=200, headers={"Cache-Control": f"public, max-age={VOICE_MODELS_CACHE_SECONDS}"})


@router.options("/voice-models")
def voice_models_preflight():
    return preflight_response(["GET", "HEAD"])
