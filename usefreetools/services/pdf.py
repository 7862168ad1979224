"""Markdown -> HTML -> PDF rendering for generated business documents.

Uses ``markdown`` for the HTML pass and ``xhtml2pdf`` (pisa) for the PDF
pass. Both run synchronously; routers call them through
``run_with_timeout``.
"""
from __future__ import annotations

import html
import io
import logging
from typing import Optional

import markdown
from xhtml2pdf import pisa

LOG = logging.getLogger(__name__)

_CSS = """
@page { size: a4 portrait; margin: 2cm; }
body { font-family: Helvetica, Arial, sans-serif; font-size: 11pt; line-height: 1.5; color: #222; }
h1 { font-size: 20pt; margin-bottom: 4pt; }
h2 { font-size: 14pt; margin-top: 14pt; border-bottom: 1px solid #ccc; }
h3 { font-size: 12pt; }
.subtitle { color: #555; font-size: 10pt; }
table { width: 100%; border-collapse: collapse; margin: 10pt 0; }
th, td { border: 1px solid #ccc; padding: 4pt 6pt; text-align: left; }
th { background-color: #f0f0f0; }
td.num, th.num { text-align: right; }
.total { font-weight: bold; font-size: 13pt; }
"""


def markdown_to_html(markdown_text: str, title: str, subtitle: Optional[str] = None) -> str:
    """Wrap the Markdown body in a standalone HTML page."""
    body = markdown.markdown(markdown_text or "", extensions=["tables", "sane_lists"])
    subtitle_html = f'<p class="subtitle">{html.escape(subtitle)}</p>' if subtitle else ""
    return (
        "<!DOCTYPE html>\n"
        "<html><head><meta charset=\"utf-8\">"
        f"<title>{html.escape(title)}</title>"
        f"<style>{_CSS}</style></head>"
        f"<body><h1>{html.escape(title)}</h1>{subtitle_html}{body}</body></html>"
    )


def html_to_pdf(source_html: str) -> bytes:
    buf = io.BytesIO()
    status = pisa.CreatePDF(source_html, dest=buf, encoding="utf-8")
    if status.err:
        raise RuntimeError(f"PDF rendering failed with {status.err} error(s)")
    return buf.getvalue()


def render_pdf(markdown_text: str, title: str, subtitle: Optional[str] = None) -> bytes:
    return html_to_pdf(markdown_to_html(markdown_text, title, subtitle))


__all__ = ["html_to_pdf", "markdown_to_html", "render_pdf"]
