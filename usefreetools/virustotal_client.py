"""VirusTotal v3 client for URL reputation lookups and file scans.

Configuration (environment variables):
    VIRUS_TOTAL_API_KEY  – required; absence raises ``ServiceNotConfigured``
    VIRUSTOTAL_BASE_URL  – default ``https://www.virustotal.com/api/v3``
"""
from __future__ import annotations

import base64
import logging
import os
from typing import Any, Dict, Optional

import requests

from usefreetools.config import HEALTH_CHECK_TIMEOUT, VIRUSTOTAL_BASE_URL, VIRUSTOTAL_TIMEOUT
from usefreetools.errors import ServiceNotConfigured, UpstreamError
from usefreetools.retry import upstream_retry

LOG = logging.getLogger(__name__)


def url_identifier(url: str) -> str:
    """VirusTotal's URL id: unpadded url-safe base64 of the URL."""
    return base64.urlsafe_b64encode(url.encode("utf-8")).decode("ascii").rstrip("=")


class VirusTotalClient:
    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        self.api_key = api_key or os.environ.get("VIRUS_TOTAL_API_KEY")
        if not self.api_key:
            raise ServiceNotConfigured("VirusTotal", "VirusTotal API key not configured")
        self.base_url = (base_url or VIRUSTOTAL_BASE_URL).rstrip("/")

    @property
    def _headers(self) -> Dict[str, str]:
        return {"x-apikey": self.api_key}

    def lookup_url(self, url: str) -> Optional[Dict[str, Any]]:
        """Return the existing report for ``url`` or None if VirusTotal has none."""

        @upstream_retry
        def _call() -> Optional[Dict[str, Any]]:
            resp = requests.get(
                f"{self.base_url}/urls/{url_identifier(url)}",
                headers=self._headers,
                timeout=VIRUSTOTAL_TIMEOUT,
            )
            if resp.status_code == 404:
                return None
            resp.raise_for_status()
            return resp.json()

        try:
            return _call()
        except Exception as exc:
            raise UpstreamError(f"VirusTotal lookup failed: {exc}") from exc

    def submit_url(self, url: str) -> str:
        """Queue a fresh analysis and return its id."""

        @upstream_retry
        def _call() -> Dict[str, Any]:
            resp = requests.post(
                f"{self.base_url}/urls",
                headers=self._headers,
                data={"url": url},
                timeout=VIRUSTOTAL_TIMEOUT,
            )
            resp.raise_for_status()
            return resp.json()

        try:
            return _call()["data"]["id"]
        except Exception as exc:
            raise UpstreamError(f"Failed to submit URL to VirusTotal: {exc}") from exc

    def upload_file(self, data: bytes, filename: str, content_type: str) -> str:
        """Upload a file for scanning and return the analysis id."""

        @upstream_retry
        def _call() -> Dict[str, Any]:
            resp = requests.post(
                f"{self.base_url}/files",
                headers=self._headers,
                files={"file": (filename or "upload", data, content_type or "application/octet-stream")},
                timeout=VIRUSTOTAL_TIMEOUT,
            )
            resp.raise_for_status()
            return resp.json()

        try:
            return _call()["data"]["id"]
        except Exception as exc:
            raise UpstreamError(f"Failed to upload file to VirusTotal: {exc}") from exc

    def get_analysis(self, analysis_id: str) -> Dict[str, Any]:
        @upstream_retry
        def _call() -> Dict[str, Any]:
            resp = requests.get(
                f"{self.base_url}/analyses/{analysis_id}",
                headers=self._headers,
                timeout=VIRUSTOTAL_TIMEOUT,
            )
            resp.raise_for_status()
            return resp.json()

        try:
            return _call()
        except Exception as exc:
            raise UpstreamError(f"Failed to get analysis results: {exc}") from exc

    def ping(self) -> bool:
        try:
            resp = requests.get(
                f"{self.base_url}/users/current",
                headers=self._headers,
                timeout=HEALTH_CHECK_TIMEOUT,
            )
        except requests.RequestException as exc:
            LOG.warning("VirusTotal health probe failed: %s", exc)
            return False
        return resp.ok


def get_virustotal_client() -> VirusTotalClient:
    return VirusTotalClient()


__all__ = ["VirusTotalClient", "get_virustotal_client", "url_identifier"]
