"""Business document generators: invoices, proposals and meeting notes.

Invoices are assembled locally (PDF or an Excel-friendly CSV). Proposals
and meeting notes are drafted by Gemini and rendered to PDF.
"""
from __future__ import annotations

import csv
import io
import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from usefreetools.config import GEMINI_TIMEOUT
from usefreetools.errors import ErrorKind, ToolError, UpstreamError, report_exception, run_with_timeout
from usefreetools.gemini_client import get_gemini_client
from usefreetools.models import InvoiceRequest, MeetingNotesRequest, ProposalRequest
from usefreetools.services.pdf import render_pdf

LOG = logging.getLogger(__name__)

AI_TIMEOUT_MESSAGE = "Request timeout. Please try again."


@dataclass
class GeneratedDocument:
    content: bytes
    media_type: str
    filename: str


def _slug(value: Optional[str], default: str) -> str:
    return re.sub(r"\s+", "_", value.strip()) if value and value.strip() else default


def _money(value: float) -> str:
    return f"${value:,.2f}"


def _quantity(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


# ---------------------------------------------------------------------------
# Invoice
# ---------------------------------------------------------------------------

def invoice_csv(req: InvoiceRequest, today: Optional[date] = None) -> bytes:
    today = today or date.today()
    out = io.StringIO()
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(["INVOICE"])
    writer.writerow([])
    writer.writerow(["Invoice Number:", req.invoice_number or "N/A"])
    writer.writerow(["Date:", today.isoformat()])
    writer.writerow(["Due Date:", req.due_date or "N/A"])
    writer.writerow([])
    writer.writerow(["From:"])
    writer.writerow([req.company_name])
    if req.company_address:
        writer.writerow([req.company_address.replace("\n", " ")])
    writer.writerow([])
    writer.writerow(["To:"])
    writer.writerow([req.client_name])
    if req.client_address:
        writer.writerow([req.client_address.replace("\n", " ")])
    writer.writerow([])
    writer.writerow(["Description", "Quantity", "Rate", "Amount"])
    for item in req.items:
        writer.writerow([item.description, _quantity(item.quantity), f"{item.rate:.2f}", f"{item.amount:.2f}"])
    writer.writerow([])
    writer.writerow(["Total:", "", "", f"{req.total:.2f}"])
    if req.notes:
        writer.writerow([])
        writer.writerow(["Notes:"])
        writer.writerow([req.notes])
    return out.getvalue().encode("utf-8")


def invoice_markdown(req: InvoiceRequest, today: Optional[date] = None) -> str:
    today = today or date.today()
    lines = [
        f"**Invoice #:** {req.invoice_number or 'N/A'}  ",
        f"**Date:** {today.isoformat()}  ",
    ]
    if req.due_date:
        lines.append(f"**Due Date:** {req.due_date}  ")
    lines += ["", "## From", "", req.company_name]
    if req.company_address:
        lines += ["", req.company_address]
    lines += ["", "## To", "", req.client_name]
    if req.client_address:
        lines += ["", req.client_address]
    lines += [
        "",
        "## Items",
        "",
        "| Description | Qty | Rate | Amount |",
        "|---|---:|---:|---:|",
    ]
    for item in req.items:
        description = item.description.replace("|", "\\|")
        lines.append(
            f"| {description} | {_quantity(item.quantity)} | {_money(item.rate)} | {_money(item.amount)} |"
        )
    lines += ["", f"**Total: {_money(req.total)}**"]
    if req.notes:
        lines += ["", "## Notes", "", req.notes]
    return "\n".join(lines) + "\n"


def generate_invoice(req: InvoiceRequest) -> GeneratedDocument:
    number = req.invoice_number or "new"
    if req.format == "excel":
        LOG.info("Invoice (CSV) generated: %d items", len(req.items))
        return GeneratedDocument(invoice_csv(req), "text/csv", f"invoice_{number}.csv")

    pdf = render_pdf(invoice_markdown(req), "INVOICE")
    LOG.info("Invoice (PDF) generated: %d items", len(req.items))
    return GeneratedDocument(pdf, "application/pdf", f"invoice_{number}.pdf")


# ---------------------------------------------------------------------------
# AI drafted documents
# ---------------------------------------------------------------------------

def proposal_prompt(req: ProposalRequest) -> str:
    return f"""Generate a professional business proposal with the following details:

Client: {req.client_name}
Project Title: {req.project_title}
Project Description: {req.project_description}
Budget: {req.budget or 'To be discussed'}
Timeline: {req.timeline or 'To be determined'}
Company: {req.company_name or 'Our Company'}
Contact Person: {req.contact_person or 'Project Manager'}

Please create a comprehensive proposal that includes:
1. Executive Summary
2. Project Overview
3. Scope of Work
4. Deliverables
5. Timeline and Milestones
6. Investment and Payment Terms
7. Why Choose Us
8. Next Steps

Format the response as Markdown with clear section headings and professional language. Make it persuasive and tailored to the client's needs."""


def meeting_notes_prompt(req: MeetingNotesRequest, today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"""Please analyze the following meeting transcript and create structured meeting notes. Format the output as Markdown with clear sections.

Meeting Title: {req.meeting_title or 'Meeting'}
Attendees: {req.attendees or 'Not specified'}
Date: {today.isoformat()}

Transcript:
{req.transcript}

Please structure the meeting notes with the following sections:
1. **Executive Summary** - Brief overview of the meeting
2. **Key Discussion Points** - Main topics discussed with bullet points
3. **Decisions Made** - Clear list of decisions reached
4. **Action Items** - Specific tasks with responsible parties (if mentioned) and deadlines
5. **Next Steps** - Follow-up actions and future meetings
6. **Additional Notes** - Any other relevant information

Make sure to:
- Use clear, professional language
- Extract specific action items with owners when possible
- Identify key decisions and outcomes
- Highlight important deadlines or dates mentioned

If the transcript is unclear or incomplete in some areas, note this appropriately."""


async def _draft(prompt: str, endpoint: str) -> str:
    client = get_gemini_client()
    try:
        text = await run_with_timeout(
            client.generate,
            prompt,
            timeout=GEMINI_TIMEOUT,
            label=f"gemini {endpoint}",
            message=AI_TIMEOUT_MESSAGE,
        )
    except UpstreamError as exc:
        LOG.warning("%s: Gemini call failed: %s", endpoint, exc)
        report_exception(exc, endpoint=endpoint, service="gemini")
        raise ToolError(
            ErrorKind.SERVICE_UNAVAILABLE,
            "AI service temporarily unavailable. Please try again later.",
            code="AI_SERVICE_UNAVAILABLE",
        ) from exc

    if not text.strip():
        raise ToolError(
            ErrorKind.SERVICE_UNAVAILABLE,
            "AI service returned an empty response. Please try again.",
            code="AI_SERVICE_UNAVAILABLE",
        )
    return text


async def generate_proposal(req: ProposalRequest) -> GeneratedDocument:
    content = await _draft(proposal_prompt(req), "generate-proposal")
    subtitle = f"For: {req.client_name} | Project: {req.project_title} | Date: {date.today().isoformat()}"
    pdf = await run_with_timeout(
        render_pdf, content, "Business Proposal", subtitle,
        timeout=GEMINI_TIMEOUT, label="proposal pdf",
    )
    LOG.info("Proposal generated: %d chars", len(content))
    return GeneratedDocument(pdf, "application/pdf", f"proposal_{_slug(req.client_name, 'client')}.pdf")


async def generate_meeting_notes(req: MeetingNotesRequest) -> GeneratedDocument:
    content = await _draft(meeting_notes_prompt(req), "generate-meeting-notes")
    subtitle = f"Meeting: {req.meeting_title or 'Untitled Meeting'} | Date: {date.today().isoformat()}"
    if req.attendees:
        subtitle += f" | Attendees: {req.attendees}"
    pdf = await run_with_timeout(
        render_pdf, content, "Meeting Notes", subtitle,
        timeout=GEMINI_TIMEOUT, label="meeting notes pdf",
    )
    LOG.info("Meeting notes generated: %d chars", len(content))
    return GeneratedDocument(
        pdf, "application/pdf", f"meeting_notes_{_slug(req.meeting_title, 'untitled')}.pdf"
    )


__all__ = [
    "GeneratedDocument",
    "generate_invoice",
    "generate_meeting_notes",
    "generate_proposal",
    "invoice_csv",
    "invoice_markdown",
    "meeting_notes_prompt",
    "proposal_prompt",
]
