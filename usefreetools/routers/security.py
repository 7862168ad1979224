"""Router for the /security scanners.

These endpoints are not rate limited.
"""

import logging

from fastapi import APIRouter, Request

from usefreetools.dependencies import describe_upload, form_file, read_form, read_json_body, read_upload
from usefreetools.envelope import json_success, preflight_response
from usefreetools.errors import guarded
from usefreetools.services.security import scan_blacklists, scan_file, scan_url
from usefreetools.validation import validate_file_scan, validate_scan_target, validate_url_scan

log = logging.getLogger(__name__)

router = APIRouter(prefix="/security", tags=["security"])


@router.post("/scan-blacklist")
async def scan_blacklist_endpoint(request: Request):
    """Check a domain or IP against the known blacklist sources."""
    with guarded("scan-blacklist", "Failed to scan target"):
        body = await read_json_body(request)
        target = validate_scan_target(body).unwrap()
        result = scan_blacklists(target)
    return json_success(result.model_dump(exclude_none=True))


@router.post("/scan-url")
async def scan_url_endpoint(request: Request):
    """Look up (or submit) a URL on VirusTotal."""
    with guarded("scan-url", "Internal server error during URL scan"):
        body = await read_json_body(request)
        req = validate_url_scan(body).unwrap()
        result = await scan_url(req.url)
    return json_success(result.model_dump())


@router.post("/scan-file")
async def scan_file_endpoint(request: Request):
    """Upload a file (multipart field ``file``) to VirusTotal and report the verdict."""
    with guarded("scan-file", "Internal server error during file scan"):
        form = await read_form(request)
        upload = form_file(form, "file")
        file_req = validate_file_scan(describe_upload(upload)).unwrap()
        data = await read_upload(upload)
        result = await scan_file(data, file_req)
    return json_success(result.model_dump())


@router.options("/scan-blacklist")
@router.options("/scan-url")
@router.options("/scan-file")
def security_preflight():
    return preflight_response(["POST"])
