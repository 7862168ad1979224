"""Tests for the /security scanners and their helpers."""
from __future__ import annotations

from unittest.mock import patch

import pytest

from usefreetools.errors import UpstreamError
from usefreetools.models import BlacklistResult
from usefreetools.services.security import build_url_result, classify_stats, summarize
from usefreetools.virustotal_client import url_identifier

_REPORT = {
    "data": {
        "attributes": {
            "last_analysis_stats": {"malicious": 2, "suspicious": 1, "harmless": 60, "undetected": 7},
            "last_analysis_date": 1700000000,
            "reputation": -5,
            "categories": {"Forcepoint": "phishing"},
        }
    }
}


# =====================================================================
# Helpers
# =====================================================================

class TestSummary:

    def _results(self, listed: int, total: int):
        return [BlacklistResult(source=str(i), listed=i < listed) for i in range(total)]

    @pytest.mark.parametrize("listed,score,risk", [
        (0, 100, "low"),
        (1, 90, "low"),
        (2, 80, "medium"),
        (3, 70, "medium"),
        (4, 60, "high"),
    ])
    def test_score_and_risk(self, listed, score, risk):
        summary = summarize(self._results(listed, 10))
        assert summary.reputation_score == score
        assert summary.risk_level == risk
        assert summary.total_checked == 10
        assert summary.total_listed == listed

    @pytest.mark.parametrize("stats,status", [
        ({"malicious": 1, "harmless": 50}, "malicious"),
        ({"suspicious": 2}, "suspicious"),
        ({"harmless": 10}, "clean"),
        ({"undetected": 3}, "clean"),
        ({}, "unknown"),
    ])
    def test_classify_stats(self, stats, status):
        assert classify_stats(stats) == status

    def test_build_url_result(self):
        result = build_url_result("https://bad.example/login", _REPORT)
        assert result.status == "malicious"
        assert result.positives == 3
        assert result.total == 70
        assert result.scan_date == 1700000000
        assert result.permalink == f"https://www.virustotal.com/gui/url/{url_identifier('https://bad.example/login')}"
        assert result.details["url_info"]["reputation"] == -5

    def test_url_identifier_has_no_padding(self):
        assert url_identifier("http://a.b") == "aHR0cDovL2EuYg"


# =====================================================================
# POST /security/scan-blacklist
# =====================================================================

class TestScanBlacklist:

    def test_clean_domain(self, client):
        resp = client.post("/security/scan-blacklist", json={"target": "example.com", "type": "domain"})
        assert resp.status_code == 200
        body = resp.json()
        assert body["target"] == "example.com"
        assert len(body["blacklists"]) == 10
        assert body["summary"] == {
            "total_checked": 10,
            "total_listed": 0,
            "reputation_score": 100,
            "risk_level": "low",
        }
        assert "scan_date" in body

    def test_suspicious_domain(self, client):
        body = client.post(
            "/security/scan-blacklist", json={"target": "free-malware.example", "type": "domain"}
        ).json()
        assert body["summary"]["total_listed"] == 6
        assert body["summary"]["risk_level"] == "high"
        listed = [b for b in body["blacklists"] if b["listed"]]
        assert all(b["reason"] == "Detected suspicious activity" for b in listed)

    def test_not_applicable_sources_are_marked(self, client):
        body = client.post("/security/scan-blacklist", json={"target": "8.8.8.8", "type": "ip"}).json()
        surbl = next(b for b in body["blacklists"] if b["source"] == "SURBL")
        assert surbl["listed"] is False
        assert surbl["details"].endswith("Not applicable for ip")
        assert "reason" not in surbl

    def test_localhost_never_listed(self, client):
        body = client.post("/security/scan-blacklist", json={"target": "localhost", "type": "domain"}).json()
        assert body["summary"]["total_listed"] == 0

    def test_invalid_domain(self, client):
        resp = client.post("/security/scan-blacklist", json={"target": "bad domain", "type": "domain"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid domain format"

    def test_invalid_ip(self, client):
        resp = client.post("/security/scan-blacklist", json={"target": "999.1.1.1", "type": "ip"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid IP address format"

    def test_missing_type(self, client):
        resp = client.post("/security/scan-blacklist", json={"target": "example.com"})
        assert resp.status_code == 400

    def test_not_rate_limited(self, client):
        for _ in range(40):
            resp = client.post("/security/scan-blacklist", json={"target": "example.com", "type": "domain"})
        assert resp.status_code == 200


# =====================================================================
# POST /security/scan-url
# =====================================================================

@pytest.fixture
def no_analysis_wait():
    with patch("usefreetools.services.security.VIRUSTOTAL_ANALYSIS_WAIT", 0):
        yield


class TestScanUrl:

    def test_without_key_is_503(self, client):
        resp = client.post("/security/scan-url", json={"url": "https://example.com"})
        assert resp.status_code == 503
        assert resp.json() == {
            "error": "VirusTotal API key not configured",
            "code": "SERVICE_NOT_CONFIGURED",
        }

    def test_missing_url(self, client):
        resp = client.post("/security/scan-url", json={})
        assert resp.status_code == 400
        assert resp.json()["error"] == "No URL provided"

    def test_invalid_url(self, client):
        resp = client.post("/security/scan-url", json={"url": "ftp:/nope"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "Invalid URL format"

    @patch("usefreetools.services.security.get_virustotal_client")
    def test_existing_report(self, mock_factory, client):
        mock_factory.return_value.lookup_url.return_value = _REPORT
        resp = client.post("/security/scan-url", json={"url": "https://bad.example/login"})

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "malicious"
        assert body["positives"] == 3
        assert body["total"] == 70
        mock_factory.return_value.submit_url.assert_not_called()

    @patch("usefreetools.services.security.get_virustotal_client")
    def test_unknown_url_is_submitted(self, mock_factory, client, no_analysis_wait):
        vt = mock_factory.return_value
        vt.lookup_url.return_value = None
        vt.submit_url.return_value = "analysis-1"
        vt.get_analysis.return_value = {"data": {"attributes": {"stats": {"harmless": 5}, "date": 1}}}

        body = client.post("/security/scan-url", json={"url": "https://fresh.example"}).json()

        vt.get_analysis.assert_called_once_with("analysis-1")
        assert body["status"] == "clean"
        assert body["total"] == 5

    @patch("usefreetools.services.security.get_virustotal_client")
    def test_upstream_failure_is_503(self, mock_factory, client):
        mock_factory.return_value.lookup_url.side_effect = UpstreamError("VirusTotal lookup failed: 500")
        resp = client.post("/security/scan-url", json={"url": "https://example.com"})
        assert resp.status_code == 503
        assert resp.json()["code"] == "SCAN_SERVICE_UNAVAILABLE"

    @patch("usefreetools.services.security.get_virustotal_client")
    def test_unexpected_failure_is_500(self, mock_factory, client):
        mock_factory.return_value.lookup_url.side_effect = TypeError("bad payload")
        resp = client.post("/security/scan-url", json={"url": "https://example.com"})
        assert resp.status_code == 500
        assert resp.json()["error"] == "Internal server error during URL scan"


# =====================================================================
# POST /security/scan-file
# =====================================================================

_EICAR = ("eicar.com", b"X5O!P%@AP[4\\PZX54(P^)7CC)7}$EICAR", "application/octet-stream")


class TestScanFile:

    def test_without_key_is_503(self, client):
        resp = client.post("/security/scan-file", files={"file": _EICAR})
        assert resp.status_code == 503
        assert resp.json()["code"] == "SERVICE_NOT_CONFIGURED"

    def test_missing_file(self, client):
        resp = client.post("/security/scan-file", data={"note": "nothing"})
        assert resp.status_code == 400
        assert resp.json()["error"] == "No file provided"

    @patch("usefreetools.services.security.get_virustotal_client")
    def test_upload_and_report(self, mock_factory, client, no_analysis_wait):
        vt = mock_factory.return_value
        vt.upload_file.return_value = "file-analysis-9"
        vt.get_analysis.return_value = {
            "data": {"attributes": {"stats": {"malicious": 40, "undetected": 20}, "date": 1700000001}}
        }

        resp = client.post("/security/scan-file", files={"file": _EICAR})

        assert resp.status_code == 200
        body = resp.json()
        assert body["status"] == "malicious"
        assert body["positives"] == 40
        assert body["total"] == 60
        assert body["permalink"] == "https://www.virustotal.com/gui/file-analysis/file-analysis-9"
        assert body["details"]["file_info"] == {
            "name": "eicar.com",
            "size": len(_EICAR[1]),
            "type": "application/octet-stream",
        }
        data, filename, content_type = vt.upload_file.call_args.args
        assert data == _EICAR[1]
        assert filename == "eicar.com"
        vt.get_analysis.assert_called_once_with("file-analysis-9")

    @patch("usefreetools.services.security.get_virustotal_client")
    def test_upload_failure_is_503(self, mock_factory, client):
        mock_factory.return_value.upload_file.side_effect = UpstreamError("Failed to upload file to VirusTotal")
        resp = client.post("/security/scan-file", files={"file": _EICAR})
        assert resp.status_code == 503
        assert resp.json() == {
            "error": "File scanning service temporarily unavailable. Please try again later.",
            "code": "SCAN_SERVICE_UNAVAILABLE",
        }

    def test_preflight(self, client):
        resp = client.options("/security/scan-file")
        assert resp.headers["Access-Control-Allow-Methods"] == "POST, OPTIONS"
