"""FastAPI application for the Usefreetools API.

Run locally with::

    uvicorn usefreetools.main:app --reload

Endpoints:
  POST /transcribe                        multipart ``audio`` -> transcript JSON
  POST /tts                               ``{text, format, model}`` -> audio bytes
  GET  /voice-models                      cached voice catalogue
  POST /convert-document                  multipart ``file`` + ``targetFormat``
  POST /business/generate-invoice         invoice PDF / CSV
  POST /business/generate-proposal        proposal PDF (Gemini)
  POST /business/generate-meeting-notes   meeting notes PDF (Gemini)
  POST /security/scan-blacklist           domain / IP reputation
  POST /security/scan-url                 VirusTotal URL report
  POST /security/scan-file                VirusTotal file upload scan
  POST /utility/pagespeed                 PageSpeed Insights summary
  GET  /health                            upstream status

Errors are always ``{"error": "...", "code": "..."}`` JSON.
"""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

import sentry_sdk
from fastapi import FastAPI, Request

from usefreetools.clock import Clock, SystemClock
from usefreetools.config import (
    APP_VERSION,
    ENVIRONMENT,
    SENTRY_DSN,
    SENTRY_TRACES_SAMPLE_RATE,
)
from usefreetools.envelope import ALLOW_ORIGIN, error_response
from usefreetools.errors import ErrorKind, ToolError, report_exception
from usefreetools.logging_config import setup_logging
from usefreetools.rate_limit import RateLimiter, RateLimitStore
from usefreetools.routers.business import router as business_router
from usefreetools.routers.documents import router as documents_router
from usefreetools.routers.health import router as health_router
from usefreetools.routers.security import router as security_router
from usefreetools.routers.speech import router as speech_router
from usefreetools.routers.utility import router as utility_router
from usefreetools.services.voice_models import VoiceModelCache

log = logging.getLogger(__name__)


def _init_sentry() -> None:
    """Initialize Sentry SDK if DSN is configured."""
    if SENTRY_DSN:
        sentry_sdk.init(
            dsn=SENTRY_DSN,
            environment=ENVIRONMENT,
            release=APP_VERSION,
            traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
        )
        log.info("Sentry initialized (environment=%s)", ENVIRONMENT)


async def handle_tool_error(request: Request, exc: ToolError):
    if exc.status_code >= 500:
        log.warning("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message)
    else:
        log.info("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message)
    return error_response(exc)


async def handle_unexpected(request: Request, exc: Exception):
    log.exception("Unhandled error on %s %s", request.method, request.url.path)
    report_exception(exc, endpoint=request.url.path)
    return error_response(ToolError(ErrorKind.UNEXPECTED, "Internal server error", code="INTERNAL_ERROR"))


def create_app(store: Optional[RateLimitStore] = None, clock: Optional[Clock] = None) -> FastAPI:
    """Build the application.

    ``store`` and ``clock`` let tests inject a shared store or a manual
    clock; by default each app gets a fresh store and the system clock.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_clock = clock or SystemClock()
        app.state.rate_limit_store = store if store is not None else RateLimitStore()
        app.state.rate_limiter = RateLimiter(app.state.rate_limit_store, app_clock)
        app.state.voice_model_cache = VoiceModelCache(app_clock)
        log.info("Usefreetools API started (environment=%s, version=%s)", ENVIRONMENT, APP_VERSION)
        yield
        log.info("Usefreetools API stopping; %d rate limit keys tracked", len(app.state.rate_limit_store))

    app = FastAPI(title="Usefreetools API", version=APP_VERSION, lifespan=lifespan)
    app.add_exception_handler(ToolError, handle_tool_error)
    app.add_exception_handler(Exception, handle_unexpected)

    # Preflights are answered by the per-endpoint OPTIONS routes; this only
    # opens the actual responses to browsers.
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        log.debug("Incoming request: %s %s", request.method, request.url.path)
        response = await call_next(request)
        response.headers.setdefault("Access-Control-Allow-Origin", ALLOW_ORIGIN)
        log.info("Response %s for %s %s", response.status_code, request.method, request.url.path)
        return response

    @app.get("/")
    async def root():
        """Short JSON index of the available endpoints."""
        return {
            "service": "usefreetools api",
            "version": APP_VERSION,
            "endpoints": [
                {"path": "/transcribe", "method": "POST", "desc": "speech to text (multipart 'audio')"},
                {"path": "/tts", "method": "POST", "desc": "text to speech"},
                {"path": "/voice-models", "method": "GET", "desc": "list available TTS voices"},
                {"path": "/convert-document", "method": "POST", "desc": "convert a document to txt/html/csv"},
                {"path": "/business/generate-invoice", "method": "POST", "desc": "invoice as PDF or CSV"},
                {"path": "/business/generate-proposal", "method": "POST", "desc": "AI drafted proposal PDF"},
                {"path": "/business/generate-meeting-notes", "method": "POST", "desc": "AI meeting notes PDF"},
                {"path": "/security/scan-blacklist", "method": "POST", "desc": "domain / IP blacklist check"},
                {"path": "/security/scan-url", "method": "POST", "desc": "VirusTotal URL scan"},
                {"path": "/security/scan-file", "method": "POST", "desc": "VirusTotal file scan (multipart 'file')"},
                {"path": "/utility/pagespeed", "method": "POST", "desc": "PageSpeed Insights report"},
                {"path": "/health", "method": "GET", "desc": "upstream service status"},
            ],
        }

    app.include_router(speech_router)
    app.include_router(documents_router)
    app.include_router(business_router)
    app.include_router(security_router)
    app.include_router(utility_router)
    app.include_router(health_router)
    return app


setup_logging()
_init_sentry()

app = create_app()
