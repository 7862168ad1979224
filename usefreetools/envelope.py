"""Uniform response shaping for every tool endpoint.

Success bodies are JSON with a ``metadata`` block or raw bytes with a
download disposition; failures are always JSON ``{"error", "code"?}``
even on binary endpoints.
"""
from __future__ import annotations

import json
import re
import time
import unicodedata
from typing import Any, Dict, Iterable, Optional
from urllib.parse import quote

from fastapi.responses import JSONResponse, Response

from usefreetools.config import RETRY_AFTER_SECONDS
from usefreetools.errors import ErrorKind, ToolError
from usefreetools.rate_limit import RateLimitDecision

RATE_LIMIT_MESSAGE = "Rate limit exceeded. Please wait before trying again."
ALLOW_ORIGIN = "*"

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]")
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")


class Stopwatch:
    """Measures handler processing time in milliseconds."""

    def __init__(self) -> None:
        self._start = time.perf_counter()

    @property
    def elapsed_ms(self) -> int:
        return int((time.perf_counter() - self._start) * 1000)


def content_disposition(filename: str) -> str:
    """Attachment header safe for any user-supplied name.

    Header values must be latin-1, so the plain ``filename`` parameter gets
    an ASCII fallback and the real name travels in ``filename*`` (RFC 5987)
    whenever the two differ.
    """
    name = _CONTROL_CHARS.sub("", filename)
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    fallback = _UNSAFE_FILENAME_CHARS.sub("_", ascii_name)
    if not fallback.strip("._"):
        fallback = "download"
    if fallback == name:
        return f'attachment; filename="{fallback}"'
    return f"attachment; filename=\"{fallback}\"; filename*=UTF-8''{quote(name, safe='')}"


def rate_limit_headers(decision: Optional[RateLimitDecision]) -> Dict[str, str]:
    if decision is None:
        return {}
    return {
        "X-RateLimit-Limit": str(decision.limit),
        "X-RateLimit-Remaining": str(decision.remaining),
    }


def rate_limited_error(decision: RateLimitDecision) -> ToolError:
    headers = rate_limit_headers(decision)
    headers["X-RateLimit-Reset"] = str(decision.reset_epoch_seconds)
    headers["Retry-After"] = str(RETRY_AFTER_SECONDS)
    return ToolError(
        ErrorKind.RATE_LIMITED,
        RATE_LIMIT_MESSAGE,
        code="RATE_LIMIT",
        headers=headers,
        extra={"retryAfter": RETRY_AFTER_SECONDS},
    )


def error_response(error: ToolError) -> JSONResponse:
    return JSONResponse(error.to_dict(), status_code=error.status_code, headers=error.headers)


def json_success(
    payload: Dict[str, Any],
    *,
    decision: Optional[RateLimitDecision] = None,
    stopwatch: Optional[Stopwatch] = None,
    metadata: Optional[Dict[str, Any]] = None,
    headers: Optional[Dict[str, str]] = None,
    status_code: int = 200,
) -> JSONResponse:
    """Build a success body; ``metadata`` gains ``processingTime`` when timed."""
    body = dict(payload)
    out_headers = rate_limit_headers(decision)
    if metadata is not None or stopwatch is not None:
        meta = dict(metadata or {})
        if stopwatch is not None:
            meta["processingTime"] = stopwatch.elapsed_ms
            out_headers["X-Processing-Time"] = str(meta["processingTime"])
        body["metadata"] = meta
    out_headers.update(headers or {})
    return JSONResponse(body, status_code=status_code, headers=out_headers)


def binary_success(
    content: bytes,
    media_type: str,
    *,
    filename: Optional[str] = None,
    decision: Optional[RateLimitDecision] = None,
    stopwatch: Optional[Stopwatch] = None,
    headers: Optional[Dict[str, str]] = None,
) -> Response:
    out_headers = rate_limit_headers(decision)
    if filename:
        out_headers["Content-Disposition"] = content_disposition(filename)
    if stopwatch is not None:
        out_headers["X-Processing-Time"] = str(stopwatch.elapsed_ms)
    out_headers.update(headers or {})
    return Response(content=content, media_type=media_type, headers=out_headers)


def usage_header(kind: str, service: str, **metadata: Any) -> Dict[str, str]:
    """Usage-tracking headers read by the front end."""
    data = {"type": kind, "service": service, "metadata": {"success": True, **metadata}}
    return {"X-Usage-Data": json.dumps(data), "X-Usage-Tracked": "true"}


def preflight_response(methods: Iterable[str]) -> Response:
    verbs = [m.upper() for m in methods if m.upper() != "OPTIONS"] + ["OPTIONS"]
    return Response(
        status_code=200,
        headers={
            "Access-Control-Allow-Origin": ALLOW_ORIGIN,
            "Access-Control-Allow-Methods": ", ".join(verbs),
            "Access-Control-Allow-Headers": "Content-Type",
        },
    )


__all__ = [
    "ALLOW_ORIGIN",
    "RATE_LIMIT_MESSAGE",
    "Stopwatch",
    "binary_success",
    "content_disposition",
    "error_response",
    "json_success",
    "preflight_response",
    "rate_limit_headers",
    "rate_limited_error",
    "usage_header",
]
