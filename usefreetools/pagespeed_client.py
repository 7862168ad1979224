"""Google PageSpeed Insights v5 client.

Configuration (environment variables):
    PAGESPEED_API_KEY   – required; absence raises ``ServiceNotConfigured``
    PAGESPEED_BASE_URL  – default ``https://www.googleapis.com/pagespeedonline/v5/runPagespeed``
"""
from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional, Tuple

import requests

from usefreetools.config import PAGESPEED_BASE_URL, PAGESPEED_CATEGORIES, PAGESPEED_TIMEOUT
from usefreetools.errors import ServiceNotConfigured, UpstreamError
from usefreetools.retry import upstream_retry

LOG = logging.getLogger(__name__)


def _error_message(resp: requests.Response) -> Optional[str]:
    try:
        return resp.json().get("error", {}).get("message")
    except ValueError:
        return None


class PageSpeedClient:
    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        self.api_key = api_key or os.environ.get("PAGESPEED_API_KEY")
        if not self.api_key:
            raise ServiceNotConfigured("PageSpeed", "PageSpeed API key not configured")
        self.base_url = base_url or PAGESPEED_BASE_URL

    def run(self, url: str, strategy: str) -> Dict[str, Any]:
        """Run a Lighthouse audit of ``url`` for ``mobile`` or ``desktop``."""
        params: List[Tuple[str, str]] = [("url", url), ("strategy", strategy)]
        params += [("category", category) for category in PAGESPEED_CATEGORIES]

        @upstream_retry
        def _call() -> Dict[str, Any]:
            resp = requests.get(
                self.base_url,
                params=params,
                headers={"X-goog-api-key": self.api_key},
                timeout=PAGESPEED_TIMEOUT,
            )
            if resp.status_code == 400:
                # Unreachable or rejected page; retrying will not help
                raise UpstreamError(_error_message(resp) or "PageSpeed rejected the URL")
            resp.raise_for_status()
            return resp.json()

        try:
            data = _call()
        except UpstreamError:
            raise
        except Exception as exc:
            raise UpstreamError(f"Failed to fetch PageSpeed data: {exc}") from exc

        if not isinstance(data, dict) or "lighthouseResult" not in data:
            raise UpstreamError("Invalid PageSpeed response: no lighthouseResult")
        return data


def get_pagespeed_client() -> PageSpeedClient:
    return PageSpeedClient()


__all__ = ["PageSpeedClient", "get_pagespeed_client"]
