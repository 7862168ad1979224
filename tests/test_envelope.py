"""Tests for usefreetools.envelope and usefreetools.errors."""
from __future__ import annotations

import asyncio
import json
import time

import pytest

from usefreetools.envelope import (
    RATE_LIMIT_MESSAGE,
    Stopwatch,
    binary_success,
    content_disposition,
    json_success,
    preflight_response,
    rate_limited_error,
    usage_header,
)
from usefreetools.errors import (
    ErrorKind,
    ServiceNotConfigured,
    ToolError,
    guarded,
    run_with_timeout,
)
from usefreetools.rate_limit import RateLimitDecision

_DENIED = RateLimitDecision(allowed=False, remaining=0, limit=10, reset_at=1_700_000_060_000)


# =====================================================================
# ToolError
# =====================================================================

class TestToolError:

    @pytest.mark.parametrize("kind,status", [
        (ErrorKind.VALIDATION, 400),
        (ErrorKind.PAYLOAD_TOO_LARGE, 413),
        (ErrorKind.RATE_LIMITED, 429),
        (ErrorKind.TIMEOUT, 408),
        (ErrorKind.SERVICE_UNAVAILABLE, 503),
        (ErrorKind.UNEXPECTED, 500),
    ])
    def test_status_by_kind(self, kind, status):
        assert ToolError(kind, "x").status_code == status

    def test_to_dict_minimal(self):
        assert ToolError(ErrorKind.VALIDATION, "Bad").to_dict() == {"error": "Bad"}

    def test_to_dict_lists_errors_only_when_several(self):
        single = ToolError(ErrorKind.VALIDATION, "a", errors=["a"])
        many = ToolError(ErrorKind.VALIDATION, "a", errors=["a", "b"])
        assert "errors" not in single.to_dict()
        assert many.to_dict()["errors"] == ["a", "b"]

    def test_service_not_configured(self):
        err = ServiceNotConfigured("TTS")
        assert err.status_code == 503
        assert err.to_dict() == {
            "error": "TTS service not configured. Please contact support.",
            "code": "SERVICE_NOT_CONFIGURED",
        }


# =====================================================================
# Response shaping
# =====================================================================

class TestEnvelope:

    def test_rate_limited_error(self):
        err = rate_limited_error(_DENIED)
        assert err.status_code == 429
        assert err.to_dict() == {
            "error": RATE_LIMIT_MESSAGE,
            "code": "RATE_LIMIT",
            "retryAfter": 60,
        }
        assert err.headers["Retry-After"] == "60"
        assert err.headers["X-RateLimit-Limit"] == "10"
        assert err.headers["X-RateLimit-Remaining"] == "0"
        assert err.headers["X-RateLimit-Reset"] == "1700000060"

    def test_json_success_with_stopwatch(self):
        allowed = RateLimitDecision(allowed=True, remaining=3, limit=10, reset_at=0)
        resp = json_success(
            {"success": True},
            decision=allowed,
            stopwatch=Stopwatch(),
            metadata={"service": "deepgram"},
        )
        body = json.loads(resp.body)
        assert body["success"] is True
        assert body["metadata"]["service"] == "deepgram"
        assert isinstance(body["metadata"]["processingTime"], int)
        assert resp.headers["X-RateLimit-Remaining"] == "3"
        assert "x-processing-time" in resp.headers

    def test_json_success_without_metadata(self):
        body = json.loads(json_success({"status": "ok"}).body)
        assert body == {"status": "ok"}

    def test_binary_success_sets_disposition(self):
        resp = binary_success(b"abc", "text/csv", filename="x.csv")
        assert resp.body == b"abc"
        assert resp.media_type == "text/csv"
        assert resp.headers["Content-Disposition"] == 'attachment; filename="x.csv"'

    def test_disposition_non_latin_name(self):
        header = content_disposition("报告_converted.html")
        assert header == (
            "attachment; filename=\"_converted.html\"; "
            "filename*=UTF-8''%E6%8A%A5%E5%91%8A_converted.html"
        )
        header.encode("latin-1")

    def test_disposition_accented_name_keeps_ascii_letters(self):
        assert content_disposition("café.txt").startswith('attachment; filename="cafe.txt"; filename*=')

    def test_disposition_strips_quotes_and_newlines(self):
        header = content_disposition('a"b\r\nSet-Cookie: x.pdf')
        assert "\r" not in header and "\n" not in header
        assert header.startswith('attachment; filename="a_bSet-Cookie__x.pdf"; ')
        assert "%22" in header

    def test_disposition_unusable_fallback(self):
        assert content_disposition("株式会社").startswith('attachment; filename="download"; ')

    def test_usage_header(self):
        headers = usage_header("tts", "deepgram", textLength=5)
        data = json.loads(headers["X-Usage-Data"])
        assert data == {"type": "tts", "service": "deepgram", "metadata": {"success": True, "textLength": 5}}
        assert headers["X-Usage-Tracked"] == "true"

    def test_preflight_response(self):
        resp = preflight_response(["post"])
        assert resp.status_code == 200
        assert resp.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"
        assert resp.headers["Access-Control-Allow-Origin"] == "*"


# =====================================================================
# guarded / run_with_timeout
# =====================================================================

class TestGuarded:

    def test_tool_error_passes_through(self):
        with pytest.raises(ToolError) as excinfo:
            with guarded("ep", "generic"):
                raise ToolError(ErrorKind.VALIDATION, "specific")
        assert excinfo.value.message == "specific"

    def test_unexpected_becomes_500(self):
        with pytest.raises(ToolError) as excinfo:
            with guarded("ep", "Something failed", code="X_FAILED"):
                raise KeyError("boom")
        assert excinfo.value.status_code == 500
        assert excinfo.value.message == "Something failed"
        assert excinfo.value.code == "X_FAILED"
        assert isinstance(excinfo.value.__cause__, KeyError)


class TestRunWithTimeout:

    def test_returns_result(self):
        result = asyncio.run(run_with_timeout(lambda a, b: a + b, 1, 2, timeout=1, label="add"))
        assert result == 3

    def test_timeout_raises_408(self):
        with pytest.raises(ToolError) as excinfo:
            asyncio.run(run_with_timeout(time.sleep, 0.5, timeout=0.05, label="sleep", message="Too slow"))
        assert excinfo.value.status_code == 408
        assert excinfo.value.message == "Too slow"
        assert excinfo.value.code == "TIMEOUT"

    def test_exceptions_propagate(self):
        def boom():
            raise ValueError("bad")

        with pytest.raises(ValueError):
            asyncio.run(run_with_timeout(boom, timeout=1, label="boom"))
