"""Router for /health."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Request

from usefreetools.config import APP_VERSION, ENVIRONMENT
from usefreetools.envelope import Stopwatch, json_success, preflight_response
from usefreetools.services.health import check_services, uptime_seconds

log = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


@router.get("/health")
async def health_endpoint(request: Request):
    """Report upstream reachability; any ``down`` service means HTTP 207."""
    stopwatch = Stopwatch()
    services = await check_services()
    degraded = any(status == "down" for status in services.values())
    if degraded:
        log.warning("Health check degraded: %s", services)

    return json_success(
        {
            "status": "degraded" if degraded else "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "version": APP_VERSION,
            "environment": ENVIRONMENT,
            "uptime": uptime_seconds(),
            "services": services,
            "rateLimitKeys": len(request.app.state.rate_limit_store),
            "responseTime": f"{stopwatch.elapsed_ms}ms",
        },
        status_code=207 if degraded else 200,
        headers=NO_CACHE_HEADERS,
    )


@router.options("/health")
def health_preflight():
    return preflight_response(["GET"])
