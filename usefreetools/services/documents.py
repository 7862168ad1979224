"""Document conversion to txt / html / csv.

Text is extracted from the source (PDF through ``pypdf``; plain text
formats decoded as UTF-8; Word and Excel get a descriptive summary) and
then rendered into the target format.
"""
from __future__ import annotations

import csv
import html
import io
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from pypdf import PdfReader
from pypdf.errors import PyPdfError

from usefreetools.errors import ErrorKind, ToolError
from usefreetools.models import DocumentConversion

LOG = logging.getLogger(__name__)

TARGET_MEDIA_TYPES = {
    "txt": "text/plain",
    "html": "text/html",
    "csv": "text/csv",
}


@dataclass
class ConvertedDocument:
    content: bytes
    media_type: str
    filename: str


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def extract_pdf_text(data: bytes) -> str:
    try:
        reader = PdfReader(io.BytesIO(data))
        pages = [page.extract_text() or "" for page in reader.pages]
    except (PyPdfError, ValueError) as exc:
        LOG.info("Unreadable PDF upload: %s", exc)
        raise ToolError(ErrorKind.VALIDATION, "Failed to extract text from PDF") from exc

    lines = [f"Document: PDF with {len(pages)} pages", ""]
    for number, text in enumerate(pages, start=1):
        lines.append(f"--- Page {number} ---")
        lines.append(text.strip())
        lines.append("")
    lines.append(f"Pages: {len(pages)}")
    lines.append(f"Extracted on: {_now_iso()}")
    return "\n".join(lines) + "\n"


def _office_summary(req: DocumentConversion) -> str:
    kind = req.source_type.upper()
    return (
        f"Document: {req.filename}\n"
        f"Type: {kind}\n"
        f"Size: {req.size_bytes / 1024:.2f} KB\n\n"
        f"Note: Full content extraction for {kind} files is not supported.\n"
        f"This is a basic conversion containing file details only.\n\n"
        f"Converted on: {_now_iso()}\n"
    )


def extract_text(req: DocumentConversion, data: bytes) -> str:
    if req.source_type == "pdf":
        return extract_pdf_text(data)
    if req.source_type in ("txt", "html", "csv"):
        return data.decode("utf-8", errors="replace")
    return _office_summary(req)


def render_target(text: str, target: str, original_filename: str) -> bytes:
    if target == "txt":
        return text.encode("utf-8")

    if target == "html":
        name = html.escape(original_filename)
        body = html.escape(text).replace("\n", "<br>\n")
        page = (
            "<!DOCTYPE html>\n<html>\n<head>\n"
            f"    <title>Converted from {name}</title>\n"
            '    <meta charset="UTF-8">\n'
            "    <style>\n"
            "        body { font-family: Arial, sans-serif; margin: 40px; line-height: 1.6; }\n"
            "        .header { border-bottom: 2px solid #333; padding-bottom: 10px; margin-bottom: 20px; }\n"
            "    </style>\n</head>\n<body>\n"
            '    <div class="header">\n'
            "        <h1>Document Conversion</h1>\n"
            f"        <p>Converted from: {name}</p>\n"
            f"        <p>Date: {datetime.now(timezone.utc).date().isoformat()}</p>\n"
            "    </div>\n"
            f'    <div class="content">{body}</div>\n'
            "</body>\n</html>\n"
        )
        return page.encode("utf-8")

    if target == "csv":
        out = io.StringIO()
        writer = csv.writer(out, quoting=csv.QUOTE_ALL)
        writer.writerow(["Content", "Value"])
        writer.writerow(["Original File", original_filename])
        writer.writerow(["Conversion Date", _now_iso()])
        writer.writerow(["Text Content", text])
        return out.getvalue().encode("utf-8")

    raise ToolError(ErrorKind.VALIDATION, f"Target format {target} not supported")


def converted_filename(original: str, target: str) -> str:
    stem = original.split(".")[0] or "document"
    return f"{stem}_converted.{target}"


def convert_document(req: DocumentConversion, data: bytes) -> ConvertedDocument:
    text = extract_text(req, data)
    content = render_target(text, req.target_format, req.filename)
    LOG.info(
        "Document converted: %s (%s) -> %s",
        req.filename, req.source_type, req.target_format,
    )
    return ConvertedDocument(
        content=content,
        media_type=TARGET_MEDIA_TYPES[req.target_format],
        filename=converted_filename(req.filename, req.target_format),
    )


__all__ = [
    "ConvertedDocument",
    "TARGET_MEDIA_TYPES",
    "convert_document",
    "converted_filename",
    "extract_pdf_text",
    "extract_text",
    "render_target",
]
