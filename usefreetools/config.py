"""Centralized configuration for the Usefreetools API.

Every tunable lives here so limits, timeouts and upstream endpoints are not
scattered across routers. Values are read from the environment once, at
import time; a ``.env`` file in the project root is loaded first when
present.

Upstream credentials are *not* cached here: the clients read them at call
time so a missing key surfaces as ``SERVICE_NOT_CONFIGURED`` instead of an
import-time failure.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parents[1] / ".env")

# ── Environment ───────────────────────────────────────────────────────────

ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
APP_VERSION: str = os.getenv("APP_VERSION", "1.0.0")

# ── Upstream services ─────────────────────────────────────────────────────

DEEPGRAM_BASE_URL = os.getenv("DEEPGRAM_BASE_URL", "https://api.deepgram.com/v1")
DEEPGRAM_STT_MODEL = "nova-2"
DEEPGRAM_TTS_MODEL = "aura-asteria-en"

GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_MAX_TOKENS = 4096
GEMINI_TEMPERATURE = 0.4

VIRUSTOTAL_BASE_URL = os.getenv("VIRUSTOTAL_BASE_URL", "https://www.virustotal.com/api/v3")
VIRUSTOTAL_ANALYSIS_WAIT = float(os.getenv("VIRUSTOTAL_ANALYSIS_WAIT", "3"))

PAGESPEED_BASE_URL = os.getenv(
    "PAGESPEED_BASE_URL", "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"
)
PAGESPEED_CATEGORIES = ("performance", "accessibility", "best-practices", "seo")

UPSTREAM_MAX_RETRIES = int(os.getenv("UPSTREAM_MAX_RETRIES", "3"))
UPSTREAM_BACKOFF_MIN = float(os.getenv("UPSTREAM_BACKOFF_MIN", "1"))
UPSTREAM_BACKOFF_MAX = float(os.getenv("UPSTREAM_BACKOFF_MAX", "10"))

# ── Timeouts (seconds) ────────────────────────────────────────────────────

FORM_PARSE_TIMEOUT = 10
FILE_READ_TIMEOUT = 15
BODY_PARSE_TIMEOUT = 5
TRANSCRIPTION_TIMEOUT = 30
TTS_TIMEOUT = 30
VOICE_MODELS_TIMEOUT = 10
GEMINI_TIMEOUT = 60
VIRUSTOTAL_TIMEOUT = 30
# Lighthouse runs a full page load per strategy
PAGESPEED_TIMEOUT = 60
HEALTH_CHECK_TIMEOUT = 5

# ── Input limits ──────────────────────────────────────────────────────────

MAX_AUDIO_BYTES = 25 * 1024 * 1024
MAX_DOCUMENT_BYTES = 10 * 1024 * 1024
# VirusTotal public API upload cap
MAX_SCAN_FILE_BYTES = 32 * 1024 * 1024
MAX_TTS_TEXT_LENGTH = 5000
MAX_DOMAIN_LENGTH = 253

# ── Caching ───────────────────────────────────────────────────────────────

VOICE_MODELS_CACHE_SECONDS = 5 * 60
VOICE_MODELS_FALLBACK_CACHE_SECONDS = 60

# ── Rate limiting ─────────────────────────────────────────────────────────

# Seconds clients are told to wait after a 429
RETRY_AFTER_SECONDS = 60

# scope -> "<count>/<period>"; each entry may be overridden with
# RATE_LIMIT_<SCOPE> (dashes become underscores), e.g. RATE_LIMIT_TTS=40/minute
DEFAULT_RATE_LIMITS = {
    "transcribe": "10/minute",
    "tts": "20/minute",
    "convert-document": "10/minute",
    "voice-models": "30/minute",
    "invoice": "10/minute",
    "proposal": "5/minute",
    "meeting-notes": "5/minute",
}

RATE_LIMITS = {
    scope: os.getenv("RATE_LIMIT_" + scope.upper().replace("-", "_"), default)
    for scope, default in DEFAULT_RATE_LIMITS.items()
}

# ── Error tracking ────────────────────────────────────────────────────────

SENTRY_DSN = os.getenv("SENTRY_DSN")
SENTRY_TRACES_SAMPLE_RATE = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1"))
