"""Inbound request validation.

Each ``validate_*`` function takes the raw inbound data for one tool kind
and returns a ``ValidationResult``: either a fully built request model or
the list of every rule that failed, never both.

Most rules map to 400; size limits map to 413. Routers call
``result.unwrap()`` which raises a ``ToolError`` carrying the first
violation as the primary message and all of them in ``errors``.
"""
from __future__ import annotations

import ipaddress
import re
from dataclasses import dataclass, field
from typing import Any, Generic, List, Mapping, Optional, TypeVar
from urllib.parse import urlparse

from pydantic import ValidationError

from usefreetools.config import (
    DEEPGRAM_TTS_MODEL,
    MAX_AUDIO_BYTES,
    MAX_DOCUMENT_BYTES,
    MAX_DOMAIN_LENGTH,
    MAX_SCAN_FILE_BYTES,
    MAX_TTS_TEXT_LENGTH,
)
from usefreetools.errors import ErrorKind, ToolError
from usefreetools.models import (
    AudioUpload,
    DocumentConversion,
    FileScanUpload,
    InvoiceItem,
    InvoiceRequest,
    MeetingNotesRequest,
    PageSpeedRequest,
    ProposalRequest,
    ScanTarget,
    SpeechRequest,
    UrlScanRequest,
)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

AUDIO_MIME_TYPES = frozenset({
    "audio/mpeg", "audio/mp3", "audio/wav", "audio/m4a",
    "audio/flac", "audio/ogg", "video/mp4", "video/webm",
})
_AUDIO_EXTENSION_RE = re.compile(r"\.(mp3|wav|m4a|flac|ogg|mp4|webm)$", re.IGNORECASE)

SPEECH_FORMATS = ("mp3", "wav")
DOCUMENT_TARGET_FORMATS = ("txt", "html", "csv")
INVOICE_FORMATS = ("pdf", "excel")

_DOMAIN_RE = re.compile(
    r"^[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(\.[a-zA-Z0-9]([a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*$"
)


@dataclass
class FileInfo:
    """What a validator needs to know about an uploaded file."""
    filename: str
    content_type: str
    size: int


@dataclass(frozen=True)
class Violation:
    kind: ErrorKind
    message: str


@dataclass
class ValidationResult(Generic[T]):
    value: Optional[T] = None
    violations: List[Violation] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.violations

    @property
    def messages(self) -> List[str]:
        return [v.message for v in self.violations]

    def unwrap(self) -> T:
        if self.violations:
            primary = self.violations[0]
            raise ToolError(primary.kind, primary.message, errors=self.messages)
        return self.value


def _invalid(message: str) -> Violation:
    return Violation(ErrorKind.VALIDATION, message)


def _too_large(message: str) -> Violation:
    return Violation(ErrorKind.PAYLOAD_TOO_LARGE, message)


def _text(body: Mapping[str, Any], name: str) -> Optional[str]:
    """Return a trimmed string field or None when absent/blank/not a string."""
    value = body.get(name)
    if not isinstance(value, str) or not value.strip():
        return None
    return value.strip()


def _as_mapping(body: Any) -> Mapping[str, Any]:
    return body if isinstance(body, Mapping) else {}


def _build(model_cls: type, violations: List[Violation], /, **fields: Any) -> ValidationResult:
    if violations:
        return ValidationResult(violations=violations)
    try:
        return ValidationResult(value=model_cls(**fields))
    except ValidationError as exc:
        return ValidationResult(violations=[_invalid(str(e["msg"])) for e in exc.errors()])


# ---------------------------------------------------------------------------
# Speech
# ---------------------------------------------------------------------------

def validate_audio_upload(file: Optional[FileInfo]) -> ValidationResult[AudioUpload]:
    if file is None:
        return ValidationResult(violations=[_invalid("Audio file is required")])

    violations: List[Violation] = []
    if file.size > MAX_AUDIO_BYTES:
        violations.append(_too_large("File too large. Maximum size is 25MB."))

    # Either a known MIME type or a known extension is enough
    mime_ok = file.content_type in AUDIO_MIME_TYPES
    extension_ok = bool(_AUDIO_EXTENSION_RE.search(file.filename or ""))
    if not (mime_ok or extension_ok):
        violations.append(_invalid(
            "Unsupported file type. Please use MP3, WAV, M4A, FLAC, OGG, MP4, or WebM."
        ))

    return _build(
        AudioUpload,
        violations,
        filename=file.filename,
        mime_type=file.content_type,
        size_bytes=file.size,
    )


def validate_speech_request(body: Any) -> ValidationResult[SpeechRequest]:
    body = _as_mapping(body)
    violations: List[Violation] = []

    text = body.get("text")
    if not isinstance(text, str):
        violations.append(_invalid("Text is required and must be a string"))
    elif not text.strip():
        violations.append(_invalid("Text cannot be empty"))
    elif len(text) > MAX_TTS_TEXT_LENGTH:
        violations.append(_invalid(
            f"Text too long. Maximum length is {MAX_TTS_TEXT_LENGTH} characters."
        ))

    fmt = body.get("format", "mp3")
    if fmt not in SPEECH_FORMATS:
        violations.append(_invalid("Invalid format. Supported formats: mp3, wav"))

    model = body.get("model") or DEEPGRAM_TTS_MODEL
    if not isinstance(model, str):
        violations.append(_invalid("Model must be a string"))

    return _build(
        SpeechRequest,
        violations,
        text=text.strip() if isinstance(text, str) else "",
        format=fmt,
        model=model,
    )


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

def detect_document_type(filename: str, content_type: str) -> Optional[str]:
    """Classify a document by MIME type or extension."""
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    content_type = (content_type or "").lower()

    if content_type == "application/pdf" or extension == "pdf":
        return "pdf"
    if content_type == "text/plain" or extension == "txt":
        return "txt"
    if content_type == "text/html" or extension == "html":
        return "html"
    if content_type == "text/csv" or extension == "csv":
        return "csv"
    if "word" in content_type or extension in ("docx", "doc"):
        return "word"
    if "excel" in content_type or "spreadsheet" in content_type or extension in ("xlsx", "xls"):
        return "excel"
    return None


def validate_document_conversion(
    file: Optional[FileInfo],
    target_format: Optional[str],
) -> ValidationResult[DocumentConversion]:
    target = target_format.strip().lower() if isinstance(target_format, str) else ""

    unsupported_target = (
        _invalid(f"Target format {target} not supported")
        if target and target not in DOCUMENT_TARGET_FORMATS
        else None
    )

    violations: List[Violation] = []
    if file is None or not target:
        violations.append(_invalid("File and target format are required"))
    if file is None:
        if unsupported_target:
            violations.append(unsupported_target)
        return ValidationResult(violations=violations)

    if file.size > MAX_DOCUMENT_BYTES:
        violations.append(_too_large("File too large. Maximum size is 10MB."))

    source_type = detect_document_type(file.filename or "", file.content_type)
    if source_type is None:
        violations.append(_invalid(f"Unsupported source format: {file.content_type or 'unknown'}"))

    if unsupported_target:
        violations.append(unsupported_target)

    return _build(
        DocumentConversion,
        violations,
        filename=file.filename,
        mime_type=file.content_type,
        size_bytes=file.size,
        source_type=source_type,
        target_format=target,
    )


# ---------------------------------------------------------------------------
# Security scanners
# ---------------------------------------------------------------------------

def is_valid_domain(value: str) -> bool:
    return len(value) <= MAX_DOMAIN_LENGTH and bool(_DOMAIN_RE.match(value))


def is_valid_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True


def validate_scan_target(body: Any) -> ValidationResult[ScanTarget]:
    body = _as_mapping(body)
    target = _text(body, "target")
    kind = body.get("type")

    if target is None or not kind:
        return ValidationResult(violations=[_invalid("Target and type are required")])
    if kind not in ("domain", "ip"):
        return ValidationResult(violations=[_invalid('Type must be either "domain" or "ip"')])

    target = target.lower()
    violations: List[Violation] = []
    if kind == "domain" and not is_valid_domain(target):
        violations.append(_invalid("Invalid domain format"))
    elif kind == "ip" and not is_valid_ip(target):
        violations.append(_invalid("Invalid IP address format"))

    return _build(ScanTarget, violations, target=target, type=kind)


def is_http_url(value: str) -> bool:
    parsed = urlparse(value)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_url_scan(body: Any) -> ValidationResult[UrlScanRequest]:
    url = _text(_as_mapping(body), "url")
    if url is None:
        return ValidationResult(violations=[_invalid("No URL provided")])
    if not is_http_url(url):
        return ValidationResult(violations=[_invalid("Invalid URL format")])
    return _build(UrlScanRequest, [], url=url)


def validate_file_scan(file: Optional[FileInfo]) -> ValidationResult[FileScanUpload]:
    if file is None:
        return ValidationResult(violations=[_invalid("No file provided")])

    violations: List[Violation] = []
    if file.size > MAX_SCAN_FILE_BYTES:
        violations.append(_too_large("File too large. Maximum size is 32MB."))
    return _build(
        FileScanUpload,
        violations,
        filename=file.filename,
        mime_type=file.content_type,
        size_bytes=file.size,
    )


# ---------------------------------------------------------------------------
# Site analysis
# ---------------------------------------------------------------------------

def validate_pagespeed(body: Any) -> ValidationResult[PageSpeedRequest]:
    url = _text(_as_mapping(body), "url")
    if url is None:
        return ValidationResult(violations=[_invalid("URL is required")])
    if not is_http_url(url):
        return ValidationResult(violations=[_invalid("Invalid URL format")])
    return _build(PageSpeedRequest, [], url=url)


# ---------------------------------------------------------------------------
# Business documents
# ---------------------------------------------------------------------------

def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


def _invoice_items(raw_items: Any) -> Optional[List[InvoiceItem]]:
    """Parse invoice items; None if any item breaks the rules."""
    items = []
    for raw in raw_items:
        if not isinstance(raw, Mapping):
            return None
        description = _text(raw, "description")
        quantity = _number(raw.get("quantity"))
        rate = _number(raw.get("rate"))
        if description is None or quantity is None or rate is None:
            return None
        if quantity <= 0 or rate < 0:
            return None
        amount = _number(raw.get("amount"))
        items.append(InvoiceItem(
            description=description,
            quantity=quantity,
            rate=rate,
            amount=amount if amount is not None else round(quantity * rate, 2),
        ))
    return items


def validate_invoice(body: Any) -> ValidationResult[InvoiceRequest]:
    body = _as_mapping(body)
    violations: List[Violation] = []

    client_name = _text(body, "clientName")
    company_name = _text(body, "companyName")
    raw_items = body.get("items")
    if client_name is None or company_name is None or not isinstance(raw_items, list) or not raw_items:
        violations.append(_invalid("Missing required fields: clientName, companyName, items"))
        items = None
    else:
        items = _invoice_items(raw_items)
        if items is None:
            violations.append(_invalid(
                "Invalid item data. All items must have description, "
                "positive quantity, and non-negative rate."
            ))

    fmt = body.get("format") or "pdf"
    if fmt not in INVOICE_FORMATS:
        violations.append(_invalid("Invalid format. Supported formats: pdf, excel"))

    return _build(
        InvoiceRequest,
        violations,
        invoice_number=_text(body, "invoiceNumber"),
        client_name=client_name,
        client_address=_text(body, "clientAddress"),
        company_name=company_name,
        company_address=_text(body, "companyAddress"),
        items=items,
        due_date=_text(body, "dueDate"),
        notes=_text(body, "notes"),
        format=fmt,
    )


def validate_proposal(body: Any) -> ValidationResult[ProposalRequest]:
    body = _as_mapping(body)
    fields = {
        "client_name": _text(body, "clientName"),
        "project_title": _text(body, "projectTitle"),
        "project_description": _text(body, "projectDescription"),
    }
    violations: List[Violation] = []
    if any(value is None for value in fields.values()):
        violations.append(_invalid(
            "Missing required fields: clientName, projectTitle, projectDescription"
        ))
    return _build(
        ProposalRequest,
        violations,
        budget=_text(body, "budget"),
        timeline=_text(body, "timeline"),
        company_name=_text(body, "companyName"),
        contact_person=_text(body, "contactPerson"),
        **fields,
    )


def validate_meeting_notes(body: Any) -> ValidationResult[MeetingNotesRequest]:
    body = _as_mapping(body)
    transcript = _text(body, "transcript")
    violations = [] if transcript else [_invalid("Transcript is required")]
    return _build(
        MeetingNotesRequest,
        violations,
        transcript=transcript,
        meeting_title=_text(body, "meetingTitle"),
        attendees=_text(body, "attendees"),
    )


__all__ = [
    "AUDIO_MIME_TYPES",
    "FileInfo",
    "ValidationResult",
    "Violation",
    "detect_document_type",
    "is_http_url",
    "is_valid_domain",
    "is_valid_ip",
    "validate_audio_upload",
    "validate_document_conversion",
    "validate_file_scan",
    "validate_invoice",
    "validate_meeting_notes",
    "validate_pagespeed",
    "validate_proposal",
    "validate_scan_target",
    "validate_speech_request",
    "validate_url_scan",
]
