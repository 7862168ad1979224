"""Retry policy for upstream HTTP calls.

Transient failures (connection drops, timeouts, 429 and 5xx) are retried
with exponential backoff; everything else fails on the first attempt.
"""
from __future__ import annotations

import logging

import requests
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from usefreetools.config import UPSTREAM_BACKOFF_MAX, UPSTREAM_BACKOFF_MIN, UPSTREAM_MAX_RETRIES

LOG = logging.getLogger(__name__)

_RETRYABLE_STATUS = (429, 500, 502, 503, 504)


def is_retryable(exc: BaseException) -> bool:
    """Return True for transient upstream errors safe to retry."""
    if isinstance(exc, requests.exceptions.HTTPError):
        status = exc.response.status_code if exc.response is not None else None
        return status in _RETRYABLE_STATUS
    if isinstance(exc, (requests.exceptions.ConnectionError, requests.exceptions.Timeout)):
        return True
    if isinstance(exc, (ConnectionError, TimeoutError)):
        return True
    exc_str = str(exc).lower()
    if "resource_exhausted" in exc_str or "unavailable" in exc_str:
        return True
    return any(str(code) in exc_str for code in _RETRYABLE_STATUS)


upstream_retry = retry(
    stop=stop_after_attempt(UPSTREAM_MAX_RETRIES),
    wait=wait_exponential(min=UPSTREAM_BACKOFF_MIN, max=UPSTREAM_BACKOFF_MAX),
    retry=retry_if_exception(is_retryable),
    before_sleep=before_sleep_log(LOG, logging.WARNING),
    reraise=True,
)

__all__ = ["is_retryable", "upstream_retry"]
