"""Time sources used by the rate limiter and the voice-model cache.

All instants are integer milliseconds since the Unix epoch.
"""
from __future__ import annotations

import threading
import time
from abc import ABC, abstractmethod


class Clock(ABC):
    """Supplier of the current instant."""

    @abstractmethod
    def now(self) -> int:
        """Return the current time in epoch milliseconds."""


class SystemClock(Clock):
    def now(self) -> int:
        return int(time.time() * 1000)


class ManualClock(Clock):
    """Clock that only moves when told to.

    Lets window arithmetic be exercised without real waits.
    """

    def __init__(self, start: int = 1_700_000_000_000):
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> int:
        with self._lock:
            return self._now

    def advance(self, ms: int) -> int:
        with self._lock:
            self._now += ms
            return self._now

    def set(self, instant: int) -> None:
        with self._lock:
            self._now = instant


__all__ = ["Clock", "SystemClock", "ManualClock"]
