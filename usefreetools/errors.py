"""Error taxonomy shared by every endpoint.

Errors carry an explicit ``ErrorKind`` set where they are raised, so the
HTTP status is a table lookup instead of a guess from the message text.
"""
from __future__ import annotations

import asyncio
import enum
import logging
from contextlib import contextmanager
from functools import partial
from typing import Any, Callable, Dict, Iterator, List, Optional

import sentry_sdk

LOG = logging.getLogger(__name__)


class ErrorKind(str, enum.Enum):
    VALIDATION = "validation"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    SERVICE_UNAVAILABLE = "service_unavailable"
    UNEXPECTED = "unexpected"


STATUS_BY_KIND: Dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.PAYLOAD_TOO_LARGE: 413,
    ErrorKind.RATE_LIMITED: 429,
    ErrorKind.TIMEOUT: 408,
    ErrorKind.SERVICE_UNAVAILABLE: 503,
    ErrorKind.UNEXPECTED: 500,
}


class ToolError(Exception):
    """An error with a known HTTP rendering.

    ``message`` is shown to the caller verbatim, ``code`` is the stable
    machine-readable token clients branch on.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        code: Optional[str] = None,
        errors: Optional[List[str]] = None,
        headers: Optional[Dict[str, str]] = None,
        extra: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.code = code
        self.errors = errors or []
        self.headers = headers or {}
        self.extra = extra or {}

    @property
    def status_code(self) -> int:
        return STATUS_BY_KIND[self.kind]

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.code:
            body["code"] = self.code
        if len(self.errors) > 1:
            body["errors"] = list(self.errors)
        body.update(self.extra)
        return body


class ServiceNotConfigured(ToolError):
    """Raised when an upstream credential is missing."""

    def __init__(self, service: str, message: Optional[str] = None):
        super().__init__(
            ErrorKind.SERVICE_UNAVAILABLE,
            message or f"{service} service not configured. Please contact support.",
            code="SERVICE_NOT_CONFIGURED",
        )
        self.service = service


class UpstreamError(RuntimeError):
    """An upstream call failed after retries."""


def report_exception(exc: BaseException, **tags: Any) -> None:
    """Send ``exc`` to Sentry; never let the reporter break a response."""
    try:
        with sentry_sdk.new_scope() as scope:
            for name, value in tags.items():
                scope.set_tag(name, value)
            sentry_sdk.capture_exception(exc)
    except Exception:
        LOG.exception("Sentry capture failed")


@contextmanager
def guarded(endpoint: str, message: str, code: Optional[str] = None) -> Iterator[None]:
    """Turn anything that is not a ``ToolError`` into a generic 500.

    The original exception is logged and reported; the caller only sees
    ``message``.
    """
    try:
        yield
    except ToolError:
        raise
    except Exception as exc:
        LOG.exception("%s: unexpected failure", endpoint)
        report_exception(exc, endpoint=endpoint)
        raise ToolError(ErrorKind.UNEXPECTED, message, code=code) from exc


async def run_with_timeout(
    func: Callable[..., Any],
    *args: Any,
    timeout: float,
    label: str,
    message: str = "Request timeout. Please try again later.",
    **kwargs: Any,
) -> Any:
    """Run blocking ``func`` in a worker thread, racing it against a timer.

    On expiry the worker is abandoned (it may still finish in the
    background) and a TIMEOUT ``ToolError`` is raised.
    """
    try:
        return await asyncio.wait_for(
            asyncio.to_thread(partial(func, *args, **kwargs)), timeout=timeout
        )
    except asyncio.TimeoutError as exc:
        LOG.warning("%s timed out after %ss", label, timeout)
        raise ToolError(ErrorKind.TIMEOUT, message, code="TIMEOUT") from exc


async def await_with_timeout(awaitable: Any, *, timeout: float, label: str, message: str) -> Any:
    """Same as ``run_with_timeout`` for an already-async operation."""
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as exc:
        LOG.warning("%s timed out after %ss", label, timeout)
        raise ToolError(ErrorKind.TIMEOUT, message, code="TIMEOUT") from exc


__all__ = [
    "ErrorKind",
    "STATUS_BY_KIND",
    "ToolError",
    "ServiceNotConfigured",
    "UpstreamError",
    "await_with_timeout",
    "guarded",
    "report_exception",
    "run_with_timeout",
]
