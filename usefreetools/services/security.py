"""Reputation scanners: blacklist heuristics and VirusTotal URL and file reports."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Tuple

from usefreetools.config import VIRUSTOTAL_ANALYSIS_WAIT, VIRUSTOTAL_TIMEOUT
from usefreetools.errors import ErrorKind, ToolError, UpstreamError, report_exception, run_with_timeout
from usefreetools.models import (
    BlacklistResult,
    BlacklistScan,
    FileScanUpload,
    ScanSummary,
    ScanTarget,
    VirusTotalReport,
)
from usefreetools.virustotal_client import VirusTotalClient, get_virustotal_client, url_identifier

LOG = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Blacklists
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class BlacklistSource:
    name: str
    description: str
    check_domain: bool
    check_ip: bool

    def applies_to(self, kind: str) -> bool:
        return self.check_domain if kind == "domain" else self.check_ip


BLACKLIST_SOURCES: Tuple[BlacklistSource, ...] = (
    BlacklistSource("Spamhaus SBL", "Spamhaus Block List", True, True),
    BlacklistSource("Spamhaus CSS", "Spamhaus CSS List", True, True),
    BlacklistSource("SURBL", "Spam URI Realtime Blocklists", True, False),
    BlacklistSource("URIBL", "URI Blacklist", True, False),
    BlacklistSource("Barracuda", "Barracuda Reputation Block List", True, True),
    BlacklistSource("SpamCop", "SpamCop Blocking List", False, True),
    BlacklistSource("SORBS", "Spam and Open Relay Blocking System", False, True),
    BlacklistSource("Composite Blocking List", "CBL - Composite Blocking List", False, True),
    BlacklistSource("Passive Spam Block List", "PSBL - Passive Spam Block List", False, True),
    BlacklistSource("DNSWL", "DNS Whitelist (inverted check)", True, True),
)

SUSPICIOUS_MARKERS = ("spam", "malware", "phishing")
NEVER_LISTED = frozenset({"localhost", "127.0.0.1", "::1"})


def check_source(target: str, kind: str, source: BlacklistSource) -> BlacklistResult:
    if not source.applies_to(kind):
        return BlacklistResult(
            source=source.name,
            listed=False,
            details=f"{source.description} - Not applicable for {kind}",
        )

    listed = target not in NEVER_LISTED and any(m in target for m in SUSPICIOUS_MARKERS)
    return BlacklistResult(
        source=source.name,
        listed=listed,
        details=source.description,
        reason="Detected suspicious activity" if listed else None,
    )


def summarize(results: List[BlacklistResult]) -> ScanSummary:
    checked = len(results)
    listed = sum(1 for r in results if r.listed)
    if checked == 0:
        return ScanSummary(total_checked=0, total_listed=0, reputation_score=0, risk_level="high")

    score = round((checked - listed) / checked * 100)
    if score >= 90:
        risk = "low"
    elif score >= 70:
        risk = "medium"
    else:
        risk = "high"
    return ScanSummary(total_checked=checked, total_listed=listed, reputation_score=score, risk_level=risk)


def scan_blacklists(req: ScanTarget) -> BlacklistScan:
    results = [check_source(req.target, req.type, source) for source in BLACKLIST_SOURCES]
    summary = summarize(results)
    LOG.info(
        "Blacklist scan %s (%s): %d/%d listed",
        req.target, req.type, summary.total_listed, summary.total_checked,
    )
    return BlacklistScan(
        target=req.target,
        type=req.type,
        blacklists=results,
        summary=summary,
        scan_date=datetime.now(timezone.utc).isoformat(),
    )


# ---------------------------------------------------------------------------
# VirusTotal
# ---------------------------------------------------------------------------

def classify_stats(stats: Dict[str, Any]) -> str:
    if stats.get("malicious", 0) > 0:
        return "malicious"
    if stats.get("suspicious", 0) > 0:
        return "suspicious"
    if stats.get("harmless", 0) > 0 or stats.get("undetected", 0) > 0:
        return "clean"
    return "unknown"


def _tally(stats: Dict[str, Any]) -> Tuple[int, int]:
    malicious = int(stats.get("malicious", 0))
    suspicious = int(stats.get("suspicious", 0))
    total = malicious + suspicious + int(stats.get("harmless", 0)) + int(stats.get("undetected", 0))
    return malicious + suspicious, total


def build_url_result(url: str, report: Dict[str, Any]) -> VirusTotalReport:
    attributes = (report.get("data") or {}).get("attributes") or {}
    stats = attributes.get("stats") or attributes.get("last_analysis_stats") or {}
    positives, total = _tally(stats)
    return VirusTotalReport(
        status=classify_stats(stats),
        positives=positives,
        total=total,
        scan_date=attributes.get("date") or attributes.get("last_analysis_date"),
        permalink=f"https://www.virustotal.com/gui/url/{url_identifier(url)}",
        details={
            "stats": stats,
            "url_info": {
                "url": url,
                "reputation": attributes.get("reputation"),
                "categories": attributes.get("categories"),
            },
        },
    )


def build_file_result(analysis_id: str, upload: FileScanUpload, report: Dict[str, Any]) -> VirusTotalReport:
    attributes = (report.get("data") or {}).get("attributes") or {}
    stats = attributes.get("stats") or {}
    positives, total = _tally(stats)
    return VirusTotalReport(
        status=classify_stats(stats),
        positives=positives,
        total=total,
        scan_date=attributes.get("date"),
        permalink=f"https://www.virustotal.com/gui/file-analysis/{analysis_id}",
        details={
            "stats": stats,
            "file_info": {
                "name": upload.filename,
                "size": upload.size_bytes,
                "type": upload.mime_type,
            },
        },
    )


def _await_analysis(client: VirusTotalClient, analysis_id: str) -> Dict[str, Any]:
    # Analyses are queued; give VirusTotal a moment before polling
    if VIRUSTOTAL_ANALYSIS_WAIT > 0:
        time.sleep(VIRUSTOTAL_ANALYSIS_WAIT)
    return client.get_analysis(analysis_id)


def _fetch_report(client: VirusTotalClient, url: str) -> Dict[str, Any]:
    report = client.lookup_url(url)
    if report is None:
        LOG.info("No existing VirusTotal analysis for %s; submitting new scan", url)
        report = _await_analysis(client, client.submit_url(url))
    return report


def _scan_unavailable(exc: UpstreamError, endpoint: str, subject: str) -> ToolError:
    report_exception(exc, endpoint=endpoint, service="virustotal")
    return ToolError(
        ErrorKind.SERVICE_UNAVAILABLE,
        f"{subject} scanning service temporarily unavailable. Please try again later.",
        code="SCAN_SERVICE_UNAVAILABLE",
    )


async def scan_url(url: str) -> VirusTotalReport:
    client = get_virustotal_client()
    try:
        report = await run_with_timeout(
            _fetch_report, client, url,
            timeout=VIRUSTOTAL_TIMEOUT + VIRUSTOTAL_ANALYSIS_WAIT,
            label="virustotal scan",
        )
    except UpstreamError as exc:
        LOG.warning("VirusTotal scan failed for %s: %s", url, exc)
        raise _scan_unavailable(exc, "scan-url", "URL") from exc
    return build_url_result(url, report)


def _upload_and_analyse(client: VirusTotalClient, data: bytes, upload: FileScanUpload) -> Tuple[str, Dict[str, Any]]:
    analysis_id = client.upload_file(data, upload.filename, upload.mime_type)
    return analysis_id, _await_analysis(client, analysis_id)


async def scan_file(data: bytes, upload: FileScanUpload) -> VirusTotalReport:
    client = get_virustotal_client()
    try:
        analysis_id, report = await run_with_timeout(
            _upload_and_analyse, client, data, upload,
            timeout=2 * VIRUSTOTAL_TIMEOUT + VIRUSTOTAL_ANALYSIS_WAIT,
            label="virustotal file scan",
        )
    except UpstreamError as exc:
        LOG.warning("VirusTotal file scan failed for %s: %s", upload.filename, exc)
        raise _scan_unavailable(exc, "scan-file", "File") from exc
    LOG.info("File scanned: %s (%d bytes)", upload.filename, upload.size_bytes)
    return build_file_result(analysis_id, upload, report)


__all__ = [
    "BLACKLIST_SOURCES",
    "BlacklistSource",
    "build_file_result",
    "build_url_result",
    "check_source",
    "classify_stats",
    "scan_blacklists",
    "scan_file",
    "scan_url",
    "summarize",
]
