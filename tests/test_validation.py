"""Tests for usefreetools.validation: per-tool request rules."""
from __future__ import annotations

import pytest

from usefreetools.config import MAX_AUDIO_BYTES, MAX_DOCUMENT_BYTES, MAX_SCAN_FILE_BYTES
from usefreetools.errors import ErrorKind, ToolError
from usefreetools.validation import (
    FileInfo,
    detect_document_type,
    is_valid_domain,
    is_valid_ip,
    validate_audio_upload,
    validate_document_conversion,
    validate_file_scan,
    validate_invoice,
    validate_meeting_notes,
    validate_pagespeed,
    validate_proposal,
    validate_scan_target,
    validate_speech_request,
    validate_url_scan,
)


# =====================================================================
# Audio upload
# =====================================================================

class TestAudioUpload:

    def test_missing_file(self):
        result = validate_audio_upload(None)
        assert result.messages == ["Audio file is required"]

    def test_valid_by_mime_type(self):
        result = validate_audio_upload(FileInfo("recording", "audio/mpeg", 1024))
        assert result.ok
        assert result.value.mime_type == "audio/mpeg"

    def test_valid_by_extension_only(self):
        result = validate_audio_upload(FileInfo("clip.WEBM", "application/octet-stream", 10))
        assert result.ok

    def test_unsupported_type(self):
        result = validate_audio_upload(FileInfo("notes.txt", "text/plain", 10))
        assert result.messages == [
            "Unsupported file type. Please use MP3, WAV, M4A, FLAC, OGG, MP4, or WebM."
        ]

    def test_too_large_is_413(self):
        result = validate_audio_upload(FileInfo("big.mp3", "audio/mpeg", MAX_AUDIO_BYTES + 1))
        assert result.violations[0].kind is ErrorKind.PAYLOAD_TOO_LARGE
        assert result.messages == ["File too large. Maximum size is 25MB."]

    def test_exactly_at_limit_is_accepted(self):
        assert validate_audio_upload(FileInfo("ok.mp3", "audio/mpeg", MAX_AUDIO_BYTES)).ok

    def test_reports_every_violation(self):
        result = validate_audio_upload(FileInfo("big.txt", "text/plain", MAX_AUDIO_BYTES + 1))
        assert len(result.violations) == 2

    def test_unwrap_raises_primary_violation(self):
        result = validate_audio_upload(FileInfo("big.txt", "text/plain", MAX_AUDIO_BYTES + 1))
        with pytest.raises(ToolError) as excinfo:
            result.unwrap()
        assert excinfo.value.status_code == 413
        assert excinfo.value.message == "File too large. Maximum size is 25MB."
        assert len(excinfo.value.errors) == 2


# =====================================================================
# Text to speech
# =====================================================================

class TestSpeechRequest:

    def test_valid_defaults(self):
        result = validate_speech_request({"text": "  Hello  "})
        assert result.ok
        assert result.value.text == "Hello"
        assert result.value.format == "mp3"
        assert result.value.model == "aura-asteria-en"

    @pytest.mark.parametrize("body", [{}, {"text": 42}, None, []])
    def test_text_missing_or_wrong_type(self, body):
        result = validate_speech_request(body)
        assert result.messages[0] == "Text is required and must be a string"

    def test_empty_text(self):
        assert validate_speech_request({"text": "", "format": "mp3"}).messages == ["Text cannot be empty"]

    def test_whitespace_text(self):
        assert validate_speech_request({"text": "   "}).messages == ["Text cannot be empty"]

    def test_text_too_long(self):
        result = validate_speech_request({"text": "a" * 5001})
        assert result.messages == ["Text too long. Maximum length is 5000 characters."]

    def test_text_at_limit(self):
        assert validate_speech_request({"text": "a" * 5000}).ok

    def test_invalid_format(self):
        result = validate_speech_request({"text": "hi", "format": "ogg"})
        assert result.messages == ["Invalid format. Supported formats: mp3, wav"]

    def test_multiple_violations(self):
        result = validate_speech_request({"format": "flac"})
        assert result.messages == [
            "Text is required and must be a string",
            "Invalid format. Supported formats: mp3, wav",
        ]


# =====================================================================
# Documents
# =====================================================================

class TestDocumentConversion:

    @pytest.mark.parametrize("filename,content_type,expected", [
        ("a.pdf", "", "pdf"),
        ("a", "application/pdf", "pdf"),
        ("a.txt", "", "txt"),
        ("page.html", "", "html"),
        ("data.csv", "text/csv", "csv"),
        ("report.docx", "", "word"),
        ("a", "application/msword", "word"),
        ("sheet.xlsx", "", "excel"),
        ("a", "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet", "excel"),
        ("image.png", "image/png", None),
    ])
    def test_detect_document_type(self, filename, content_type, expected):
        assert detect_document_type(filename, content_type) == expected

    def test_missing_file_and_target(self):
        result = validate_document_conversion(None, None)
        assert result.messages == ["File and target format are required"]

    def test_missing_file_still_reports_bad_target(self):
        result = validate_document_conversion(None, "docx")
        assert result.messages == [
            "File and target format are required",
            "Target format docx not supported",
        ]

    def test_missing_target(self):
        result = validate_document_conversion(FileInfo("a.txt", "text/plain", 10), "")
        assert result.messages == ["File and target format are required"]

    def test_too_large(self):
        result = validate_document_conversion(
            FileInfo("a.txt", "text/plain", MAX_DOCUMENT_BYTES + 1), "html"
        )
        assert result.violations[0].kind is ErrorKind.PAYLOAD_TOO_LARGE
        assert result.messages == ["File too large. Maximum size is 10MB."]

    def test_unsupported_source(self):
        result = validate_document_conversion(FileInfo("a.png", "image/png", 10), "txt")
        assert result.messages == ["Unsupported source format: image/png"]

    def test_unsupported_target(self):
        result = validate_document_conversion(FileInfo("a.txt", "text/plain", 10), "docx")
        assert result.messages == ["Target format docx not supported"]

    def test_valid(self):
        result = validate_document_conversion(FileInfo("a.txt", "text/plain", 10), "HTML")
        assert result.ok
        assert result.value.source_type == "txt"
        assert result.value.target_format == "html"


# =====================================================================
# Security scanners
# =====================================================================

class TestScanTargets:

    @pytest.mark.parametrize("value", ["example.com", "a.b.c.example.org", "localhost", "xn--bcher-kva.de"])
    def test_valid_domains(self, value):
        assert is_valid_domain(value)

    @pytest.mark.parametrize("value", ["-bad.com", "bad-.com", "spaces here.com", "a..b", "a" * 64 + ".com"])
    def test_invalid_domains(self, value):
        assert not is_valid_domain(value)

    def test_domain_length_limit(self):
        label = "a" * 63
        too_long = ".".join([label] * 4) + ".com"
        assert len(too_long) > 253
        assert not is_valid_domain(too_long)

    @pytest.mark.parametrize("value", ["127.0.0.1", "8.8.8.8", "::1", "2001:db8::1"])
    def test_valid_ips(self, value):
        assert is_valid_ip(value)

    @pytest.mark.parametrize("value", ["256.1.1.1", "1.2.3", "example.com", ""])
    def test_invalid_ips(self, value):
        assert not is_valid_ip(value)

    def test_scan_target_required(self):
        assert validate_scan_target({"target": "example.com"}).messages == ["Target and type are required"]

    def test_scan_target_bad_type(self):
        result = validate_scan_target({"target": "example.com", "type": "url"})
        assert result.messages == ['Type must be either "domain" or "ip"']

    def test_declared_type_must_match(self):
        assert validate_scan_target({"target": "8.8.8.8.9", "type": "ip"}).messages == [
            "Invalid IP address format"
        ]
        assert validate_scan_target({"target": "not a domain", "type": "domain"}).messages == [
            "Invalid domain format"
        ]

    def test_target_normalized(self):
        result = validate_scan_target({"target": "  Example.COM ", "type": "domain"})
        assert result.value.target == "example.com"

    def test_url_scan(self):
        assert validate_url_scan({}).messages == ["No URL provided"]
        assert validate_url_scan({"url": "notaurl"}).messages == ["Invalid URL format"]
        assert validate_url_scan({"url": "https://example.com/path"}).ok

    def test_file_scan(self):
        assert validate_file_scan(None).messages == ["No file provided"]
        assert validate_file_scan(FileInfo("a.exe", "", MAX_SCAN_FILE_BYTES)).ok

    def test_file_scan_too_large_is_413(self):
        result = validate_file_scan(FileInfo("a.iso", "", MAX_SCAN_FILE_BYTES + 1))
        assert result.violations[0].kind is ErrorKind.PAYLOAD_TOO_LARGE
        assert result.messages == ["File too large. Maximum size is 32MB."]

    def test_pagespeed_url(self):
        assert validate_pagespeed({}).messages == ["URL is required"]
        assert validate_pagespeed({"url": 5}).messages == ["URL is required"]
        assert validate_pagespeed({"url": "javascript:alert(1)"}).messages == ["Invalid URL format"]
        assert validate_pagespeed({"url": "http://example.com"}).value.url == "http://example.com"


# =====================================================================
# Business documents
# =====================================================================

_INVOICE = {
    "clientName": "Acme",
    "companyName": "Widgets Ltd",
    "items": [{"description": "Design", "quantity": 2, "rate": 50}],
}


class TestBusinessValidation:

    def test_invoice_valid_computes_amount(self):
        result = validate_invoice(_INVOICE)
        assert result.ok
        assert result.value.items[0].amount == 100
        assert result.value.total == 100
        assert result.value.format == "pdf"

    def test_invoice_missing_fields(self):
        result = validate_invoice({"clientName": "Acme"})
        assert result.messages == ["Missing required fields: clientName, companyName, items"]

    @pytest.mark.parametrize("item", [
        {"description": "x", "quantity": 0, "rate": 1},
        {"description": "x", "quantity": 1, "rate": -1},
        {"description": "", "quantity": 1, "rate": 1},
        {"description": "x", "quantity": "1", "rate": 1},
    ])
    def test_invoice_invalid_items(self, item):
        result = validate_invoice({**_INVOICE, "items": [item]})
        assert result.messages[0].startswith("Invalid item data")

    def test_invoice_invalid_format(self):
        result = validate_invoice({**_INVOICE, "format": "docx"})
        assert result.messages == ["Invalid format. Supported formats: pdf, excel"]

    def test_proposal_requires_fields(self):
        result = validate_proposal({"clientName": "Acme"})
        assert result.messages == [
            "Missing required fields: clientName, projectTitle, projectDescription"
        ]

    def test_proposal_valid(self):
        result = validate_proposal({
            "clientName": "Acme", "projectTitle": "Site", "projectDescription": "New site",
        })
        assert result.ok
        assert result.value.budget is None

    def test_meeting_notes_requires_transcript(self):
        assert validate_meeting_notes({"transcript": "  "}).messages == ["Transcript is required"]
