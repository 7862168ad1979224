"""Pydantic models shared across routers and services.

The ``*Request`` / ``*Upload`` models are only ever built by
``usefreetools.validation`` once every rule for their kind has passed.
"""
from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Validated requests
# ---------------------------------------------------------------------------

class AudioUpload(BaseModel):
    filename: str
    mime_type: str
    size_bytes: int


class SpeechRequest(BaseModel):
    text: str
    format: Literal["mp3", "wav"] = "mp3"
    model: str


class DocumentConversion(BaseModel):
    filename: str
    mime_type: str
    size_bytes: int
    source_type: Literal["pdf", "txt", "html", "csv", "word", "excel"]
    target_format: Literal["txt", "html", "csv"]


class ScanTarget(BaseModel):
    target: str
    type: Literal["domain", "ip"]


class UrlScanRequest(BaseModel):
    url: str


class FileScanUpload(BaseModel):
    filename: str
    mime_type: str
    size_bytes: int


class PageSpeedRequest(BaseModel):
    url: str


class InvoiceItem(BaseModel):
    description: str
    quantity: float
    rate: float
    amount: float


class InvoiceRequest(BaseModel):
    invoice_number: Optional[str] = None
    client_name: str
    client_address: Optional[str] = None
    company_name: str
    company_address: Optional[str] = None
    items: List[InvoiceItem]
    due_date: Optional[str] = None
    notes: Optional[str] = None
    format: Literal["pdf", "excel"] = "pdf"

    @property
    def total(self) -> float:
        return sum(item.amount for item in self.items)


class ProposalRequest(BaseModel):
    client_name: str
    project_title: str
    project_description: str
    budget: Optional[str] = None
    timeline: Optional[str] = None
    company_name: Optional[str] = None
    contact_person: Optional[str] = None


class MeetingNotesRequest(BaseModel):
    transcript: str
    meeting_title: Optional[str] = None
    attendees: Optional[str] = None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

class TranscriptionResult(BaseModel):
    transcript: str
    confidence: float = 0.0
    service: Literal["deepgram", "fallback"]


class VoiceModel(BaseModel):
    id: str
    name: str
    description: str
    gender: Literal["female", "male", "neutral"]
    languages: List[str] = Field(default_factory=lambda: ["en-US"])
    provider: str = "deepgram"
    metadata: Dict[str, Any] = Field(default_factory=dict)


class BlacklistResult(BaseModel):
    source: str
    listed: bool
    details: Optional[str] = None
    reason: Optional[str] = None


class ScanSummary(BaseModel):
    total_checked: int
    total_listed: int
    reputation_score: int
    risk_level: Literal["low", "medium", "high"]


class BlacklistScan(BaseModel):
    target: str
    type: Literal["domain", "ip"]
    blacklists: List[BlacklistResult]
    summary: ScanSummary
    scan_date: str


class VirusTotalReport(BaseModel):
    status: Literal["clean", "malicious", "suspicious", "unknown"]
    positives: int
    total: int
    scan_date: Optional[Any] = None
    permalink: str
    details: Dict[str, Any] = Field(default_factory=dict)
