"""Shared fixtures for the usefreetools test suite."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from usefreetools.clock import ManualClock
from usefreetools.main import create_app
from usefreetools.rate_limit import RateLimiter, RateLimitPolicy, RateLimitStore


# ---------------------------------------------------------------------------
# Environment
# ---------------------------------------------------------------------------

_UPSTREAM_KEYS = (
    "DEEPGRAM_API_KEY",
    "GEMINI_API_KEY",
    "VIRUS_TOTAL_API_KEY",
    "PAGESPEED_API_KEY",
    "SENTRY_DSN",
)


@pytest.fixture(autouse=True)
def _no_upstream_credentials(monkeypatch):
    """Tests never talk to real upstreams; clients see no keys unless patched."""
    for key in _UPSTREAM_KEYS:
        monkeypatch.delenv(key, raising=False)


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------

@pytest.fixture
def clock() -> ManualClock:
    return ManualClock()


@pytest.fixture
def store() -> RateLimitStore:
    return RateLimitStore()


@pytest.fixture
def limiter(store, clock) -> RateLimiter:
    return RateLimiter(store, clock)


@pytest.fixture
def minute_policy() -> RateLimitPolicy:
    return RateLimitPolicy(window_ms=60_000, max_requests=5)


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

@pytest.fixture
def app(store, clock):
    return create_app(store=store, clock=clock)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
