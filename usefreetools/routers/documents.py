"""Router for /convert-document."""

import logging

from fastapi import APIRouter, Depends, Request

from usefreetools.config import FILE_READ_TIMEOUT
from usefreetools.dependencies import describe_upload, form_file, form_text, read_form, read_upload, rate_limited
from usefreetools.envelope import Stopwatch, binary_success, preflight_response
from usefreetools.errors import guarded, run_with_timeout
from usefreetools.rate_limit import RateLimitDecision
from usefreetools.services.documents import convert_document
from usefreetools.validation import validate_document_conversion

log = logging.getLogger(__name__)

router = APIRouter(tags=["documents"])


@router.post("/convert-document")
async def convert_document_endpoint(
    request: Request,
    decision: RateLimitDecision = Depends(rate_limited("convert-document")),
):
    """Convert an uploaded document (``file``) to ``targetFormat``."""
    stopwatch = Stopwatch()
    with guarded("convert-document", "Document conversion failed. Please try again."):
        form = await read_form(request)
        upload = form_file(form, "file")
        conversion = validate_document_conversion(
            describe_upload(upload), form_text(form, "targetFormat")
        ).unwrap()
        data = await read_upload(upload)
        converted = await run_with_timeout(
            convert_document, conversion, data,
            timeout=FILE_READ_TIMEOUT, label="document conversion",
        )

    return binary_success(
        converted.content,
        converted.media_type,
        filename=converted.filename,
        decision=decision,
        stopwatch=stopwatch,
    )


@router.options("/convert-document")
def convert_document_preflight():
    return preflight_response(["POST"])
