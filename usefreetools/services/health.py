"""Upstream reachability probes for ``GET /health``."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Dict

from usefreetools.config import HEALTH_CHECK_TIMEOUT
from usefreetools.deepgram_client import get_deepgram_client
from usefreetools.errors import ServiceNotConfigured, ToolError, UpstreamError, run_with_timeout
from usefreetools.gemini_client import get_gemini_client
from usefreetools.virustotal_client import get_virustotal_client

LOG = logging.getLogger(__name__)

STARTED_AT = time.monotonic()


def uptime_seconds() -> float:
    return round(time.monotonic() - STARTED_AT, 3)


async def probe(name: str, factory: Callable[[], object]) -> str:
    """Return ``up``, ``down`` or ``not_configured`` for one service."""
    try:
        client = factory()
    except ServiceNotConfigured:
        return "not_configured"
    except UpstreamError as exc:
        LOG.warning("%s client could not be created: %s", name, exc)
        return "down"

    try:
        ok = await run_with_timeout(
            client.ping, timeout=HEALTH_CHECK_TIMEOUT, label=f"{name} health probe"
        )
    except ToolError:
        return "down"
    return "up" if ok else "down"


async def check_services() -> Dict[str, str]:
    factories = {
        "deepgram": get_deepgram_client,
        "gemini": get_gemini_client,
        "virustotal": get_virustotal_client,
    }
    statuses = await asyncio.gather(*(probe(name, f) for name, f in factories.items()))
    return dict(zip(factories, statuses))


__all__ = ["check_services", "probe", "uptime_seconds"]
