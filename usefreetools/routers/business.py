"""Router for the /business document generators."""

import logging

from fastapi import APIRouter, Depends, Request

from usefreetools.config import GEMINI_TIMEOUT
from usefreetools.dependencies import read_json_body, rate_limited
from usefreetools.envelope import Stopwatch, binary_success, preflight_response
from usefreetools.errors import guarded, run_with_timeout
from usefreetools.rate_limit import RateLimitDecision
from usefreetools.services.business import GeneratedDocument, generate_invoice, generate_meeting_notes, generate_proposal
from usefreetools.validation import validate_invoice, validate_meeting_notes, validate_proposal

log = logging.getLogger(__name__)

router = APIRouter(prefix="/business", tags=["business"])


def _document_response(doc: GeneratedDocument, decision: RateLimitDecision, stopwatch: Stopwatch):
    return binary_success(
        doc.content,
        doc.media_type,
        filename=doc.filename,
        decision=decision,
        stopwatch=stopwatch,
    )


@router.post("/generate-invoice")
async def generate_invoice_endpoint(
    request: Request,
    decision: RateLimitDecision = Depends(rate_limited("invoice")),
):
    stopwatch = Stopwatch()
    with guarded("generate-invoice", "Failed to generate invoice. Please try again."):
        body = await read_json_body(request)
        invoice = validate_invoice(body).unwrap()
        doc = await run_with_timeout(
            generate_invoice, invoice, timeout=GEMINI_TIMEOUT, label="invoice rendering"
        )
    return _document_response(doc, decision, stopwatch)


@router.post("/generate-proposal")
async def generate_proposal_endpoint(
    request: Request,
    decision: RateLimitDecision = Depends(rate_limited("proposal")),
):
    stopwatch = Stopwatch()
    with guarded("generate-proposal", "Failed to generate proposal. Please try again."):
        body = await read_json_body(request)
        proposal = validate_proposal(body).unwrap()
        doc = await generate_proposal(proposal)
    return _document_response(doc, decision, stopwatch)


@router.post("/generate-meeting-notes")
async def generate_meeting_notes_endpoint(
    request: Request,
    decision: RateLimitDecision = Depends(rate_limited("meeting-notes")),
):
    stopwatch = Stopwatch()
    with guarded("generate-meeting-notes", "Failed to generate meeting notes. Please try again."):
        body = await read_json_body(request)
        notes = validate_meeting_notes(body).unwrap()
        doc = await generate_meeting_notes(notes)
    return _document_response(doc, decision, stopwatch)


@router.options("/generate-invoice")
@router.options("/generate-proposal")
@router.options("/generate-meeting-notes")
def business_preflight():
    return preflight_response(["POST"])
