"""Voice catalogue: Deepgram TTS models, normalised and cached.

The cache is separate from the rate limiter's store. Successful upstream
results are kept for ``VOICE_MODELS_CACHE_SECONDS``; the built-in
fallback list for ``VOICE_MODELS_FALLBACK_CACHE_SECONDS``.
"""
from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from usefreetools.clock import Clock, SystemClock
from usefreetools.config import VOICE_MODELS_CACHE_SECONDS, VOICE_MODELS_FALLBACK_CACHE_SECONDS, VOICE_MODELS_TIMEOUT
from usefreetools.deepgram_client import get_deepgram_client
from usefreetools.errors import ServiceNotConfigured, ToolError, UpstreamError, report_exception, run_with_timeout
from usefreetools.models import VoiceModel

LOG = logging.getLogger(__name__)

_FEMALE_TAGS = {"female", "woman", "feminine"}
_MALE_TAGS = {"male", "man", "masculine"}


def _fallback(id_: str, name: str, description: str, gender: str, tags: List[str], use_cases: List[str]) -> VoiceModel:
    return VoiceModel(
        id=id_,
        name=name,
        description=description,
        gender=gender,
        metadata={
            "display_name": name,
            "accent": "American",
            "tags": tags,
            "use_cases": use_cases,
        },
    )


FALLBACK_VOICES: List[VoiceModel] = [
    _fallback(
        "aura-asteria-en", "Asteria",
        "Warm, professional female voice with clear articulation", "female",
        ["professional", "warm", "clear"], ["business", "education", "narration"],
    ),
    _fallback(
        "aura-luna-en", "Luna",
        "Friendly, approachable female voice with natural tone", "female",
        ["friendly", "natural", "conversational"], ["customer service", "casual content", "podcasts"],
    ),
    _fallback(
        "aura-orion-en", "Orion",
        "Professional, trustworthy male voice with authoritative tone", "male",
        ["professional", "authoritative", "trustworthy"], ["business", "announcements", "training"],
    ),
    _fallback(
        "aura-stella-en", "Stella",
        "Energetic, youthful female voice with vibrant delivery", "female",
        ["energetic", "youthful", "vibrant"], ["marketing", "entertainment", "social media"],
    ),
    _fallback(
        "aura-zeus-en", "Zeus",
        "Deep, commanding male voice with strong presence", "male",
        ["deep", "commanding", "strong"], ["announcements", "dramatic content", "presentations"],
    ),
]


def normalize_voice(raw: Dict[str, Any]) -> VoiceModel:
    """Map one Deepgram ``tts`` entry onto ``VoiceModel``."""
    metadata = dict(raw.get("metadata") or {})
    tags = [str(t) for t in metadata.get("tags") or []]
    lowered = {t.lower() for t in tags}

    if lowered & _FEMALE_TAGS:
        gender = "female"
    elif lowered & _MALE_TAGS:
        gender = "male"
    else:
        gender = "neutral"

    name = str(raw.get("name") or "")
    title = name[:1].upper() + name[1:]

    description = f"{', '.join(tags[:3])} voice" if tags else f"{name} voice"
    if metadata.get("accent"):
        description += f" with {metadata['accent']} accent"

    metadata["display_name"] = metadata.get("display_name") or title
    return VoiceModel(
        id=raw.get("canonical_name") or name,
        name=title,
        description=description,
        gender=gender,
        languages=raw.get("languages") or ["en-US"],
        provider="deepgram",
        metadata=metadata,
    )


@dataclass(frozen=True)
class VoiceCatalogue:
    voices: List[VoiceModel]
    fallback: bool


class VoiceModelCache:
    """Single-slot cache of the last catalogue with an expiry instant."""

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._value: Optional[VoiceCatalogue] = None
        self._expires_at = 0

    def get(self) -> Optional[VoiceCatalogue]:
        with self._lock:
            if self._value is not None and self.clock.now() < self._expires_at:
                return self._value
            return None

    def put(self, value: VoiceCatalogue) -> None:
        ttl = VOICE_MODELS_FALLBACK_CACHE_SECONDS if value.fallback else VOICE_MODELS_CACHE_SECONDS
        with self._lock:
            self._value = value
            self._expires_at = self.clock.now() + ttl * 1000

    def clear(self) -> None:
        with self._lock:
            self._value = None
            self._expires_at = 0


async def fetch_voice_models() -> VoiceCatalogue:
    """Query Deepgram; any failure yields the fallback catalogue."""
    try:
        client = get_deepgram_client()
    except ServiceNotConfigured:
        LOG.warning("Deepgram API key not configured, using fallback models")
        return VoiceCatalogue(voices=list(FALLBACK_VOICES), fallback=True)

    try:
        raw_models = await run_with_timeout(
            client.list_tts_models,
            timeout=VOICE_MODELS_TIMEOUT,
            label="deepgram voice models",
        )
        voices = [normalize_voice(m) for m in raw_models if isinstance(m, dict)]
    except (UpstreamError, ToolError) as exc:
        LOG.warning("Error fetching voice models from API: %s", exc)
        report_exception(exc, endpoint="voice-models", fallback_used=True)
        return VoiceCatalogue(voices=list(FALLBACK_VOICES), fallback=True)

    return VoiceCatalogue(voices=voices, fallback=False)


__all__ = [
    "FALLBACK_VOICES",
    "VoiceCatalogue",
    "VoiceModelCache",
    "fetch_voice_models",
    "normalize_voice",
]
