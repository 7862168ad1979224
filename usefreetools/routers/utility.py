"""Router for the /utility site tools.

Not rate limited; PageSpeed enforces its own per-key quota.
"""

import logging

from fastapi import APIRouter, Request

from usefreetools.dependencies import read_json_body
from usefreetools.envelope import json_success, preflight_response
from usefreetools.errors import guarded
from usefreetools.services.pagespeed import analyze
from usefreetools.validation import validate_pagespeed

log = logging.getLogger(__name__)

router = APIRouter(prefix="/utility", tags=["utility"])


@router.post("/pagespeed")
async def pagespeed_endpoint(request: Request):
    """Mobile and desktop PageSpeed scores for a URL, plus recommendations."""
    with guarded("pagespeed", "Internal server error"):
        body = await read_json_body(request)
        req = validate_pagespeed(body).unwrap()
        result = await analyze(req.url)
    return json_success(result)


@router.options("/pagespeed")
def pagespeed_preflight():
    return preflight_response(["POST"])
