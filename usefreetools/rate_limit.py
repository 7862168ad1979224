"""Centralized per-client rate limiting.

Fixed-window counters keyed by ``{scope}:{client}``. A window opens on the
first request for a key and lasts ``policy.window_ms``; up to
``policy.max_requests`` requests are allowed inside it. Requests rejected
at the boundary do not consume quota.

This is a fixed window, not a sliding one: a client can get up to twice
the quota through in a short burst straddling a window boundary.

The store lives in process memory. Each running instance counts on its own,
so a horizontally scaled deployment admits ``instances × quota``. Entries
are never evicted; the store grows with the number of distinct clients
seen during the process lifetime.

Env vars
--------
RATE_LIMIT_<SCOPE> : str
    Override a scope's policy, e.g. ``RATE_LIMIT_TTS="40/minute"``.
"""
from __future__ import annotations

import logging
import math
import re
import threading
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Dict, Iterator, Mapping, Optional

from usefreetools.clock import Clock, SystemClock
from usefreetools.config import RATE_LIMITS

LOG = logging.getLogger(__name__)

UNKNOWN_CLIENT = "unknown"

_PERIODS_MS = {
    "second": 1000,
    "minute": 60 * 1000,
    "hour": 60 * 60 * 1000,
}

_POLICY_RE = re.compile(r"^\s*(\d+)\s*/\s*(second|minute|hour)s?\s*$", re.IGNORECASE)


@dataclass(frozen=True)
class RateLimitPolicy:
    """Static per-scope limit: ``max_requests`` per ``window_ms``."""
    window_ms: int
    max_requests: int

    def __post_init__(self) -> None:
        if self.window_ms <= 0:
            raise ValueError("window_ms must be positive")
        if self.max_requests <= 0:
            raise ValueError("max_requests must be positive")


@dataclass(frozen=True)
class RateLimitEntry:
    count: int
    window_reset_at: int


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    remaining: int
    limit: int
    reset_at: int

    @property
    def reset_epoch_seconds(self) -> int:
        return math.ceil(self.reset_at / 1000)


def parse_policy(value: str) -> RateLimitPolicy:
    """Parse ``"10/minute"`` style notation into a policy."""
    match = _POLICY_RE.match(value or "")
    if not match:
        raise ValueError(
            f"Invalid rate limit '{value}'. Expected '<count>/<second|minute|hour>'"
        )
    count, period = int(match.group(1)), match.group(2).lower()
    return RateLimitPolicy(window_ms=_PERIODS_MS[period], max_requests=count)


POLICIES: Dict[str, RateLimitPolicy] = {
    scope: parse_policy(limit) for scope, limit in RATE_LIMITS.items()
}


def get_policy(scope: str) -> RateLimitPolicy:
    try:
        return POLICIES[scope]
    except KeyError:
        raise KeyError(f"No rate limit policy configured for scope '{scope}'") from None


def client_identifier(headers: Mapping[str, str]) -> str:
    """Derive the caller's identity from proxy headers.

    First address of ``X-Forwarded-For``, then ``X-Real-IP``, then the
    literal ``"unknown"`` (every such caller shares one bucket).
    """
    forwarded = headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = (headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip
    return UNKNOWN_CLIENT


def rate_limit_key(scope: str, client: str) -> str:
    return f"{scope}:{client}"


class RateLimitStore:
    """In-process ``key -> RateLimitEntry`` map.

    ``get``/``put`` are individually thread-safe. Read-modify-write
    sequences must run under ``locked()`` so concurrent requests for the
    same key are all counted.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, RateLimitEntry] = {}
        self._lock = threading.RLock()

    def get(self, key: str) -> Optional[RateLimitEntry]:
        with self._lock:
            return self._entries.get(key)

    def put(self, key: str, entry: RateLimitEntry) -> None:
        with self._lock:
            self._entries[key] = entry

    @contextmanager
    def locked(self) -> Iterator["RateLimitStore"]:
        with self._lock:
            yield self

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RateLimiter:
    """Fixed-window allow/deny decisions over a ``RateLimitStore``."""

    def __init__(self, store: Optional[RateLimitStore] = None, clock: Optional[Clock] = None):
        self.store = store if store is not None else RateLimitStore()
        self.clock = clock or SystemClock()

    def check(self, key: str, policy: RateLimitPolicy, now: int) -> RateLimitDecision:
        with self.store.locked():
            current = self.store.get(key)

            # A request landing exactly on window_reset_at still counts
            # against the old window.
            if current is None or now > current.window_reset_at:
                entry = RateLimitEntry(count=1, window_reset_at=now + policy.window_ms)
                self.store.put(key, entry)
                return RateLimitDecision(
                    allowed=True,
                    remaining=policy.max_requests - 1,
                    limit=policy.max_requests,
                    reset_at=entry.window_reset_at,
                )

            if current.count >= policy.max_requests:
                return RateLimitDecision(
                    allowed=False,
                    remaining=0,
                    limit=policy.max_requests,
                    reset_at=current.window_reset_at,
                )

            entry = replace(current, count=current.count + 1)
            self.store.put(key, entry)
            return RateLimitDecision(
                allowed=True,
                remaining=policy.max_requests - entry.count,
                limit=policy.max_requests,
                reset_at=entry.window_reset_at,
            )

    def hit(self, scope: str, client: str, policy: RateLimitPolicy) -> RateLimitDecision:
        decision = self.check(rate_limit_key(scope, client), policy, self.clock.now())
        if not decision.allowed:
            LOG.info("rate limit exceeded scope=%s client=%s", scope, client)
        return decision


__all__ = [
    "RateLimitPolicy",
    "RateLimitEntry",
    "RateLimitDecision",
    "RateLimitStore",
    "RateLimiter",
    "POLICIES",
    "UNKNOWN_CLIENT",
    "client_identifier",
    "get_policy",
    "parse_policy",
    "rate_limit_key",
]
