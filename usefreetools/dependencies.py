"""Request-level helpers shared by the routers.

``rate_limited(scope)`` is a FastAPI dependency; the rest are awaited from
handler bodies so body-parsing problems come back as 400/408 through the
normal error envelope instead of FastAPI's 422.
"""
import json
import logging
from typing import Any, Callable, Optional

from fastapi import Request
from starlette.datastructures import FormData, UploadFile

from usefreetools.config import BODY_PARSE_TIMEOUT, FILE_READ_TIMEOUT, FORM_PARSE_TIMEOUT
from usefreetools.envelope import rate_limited_error
from usefreetools.errors import ErrorKind, ToolError, await_with_timeout
from usefreetools.rate_limit import RateLimitDecision, RateLimiter, client_identifier, get_policy
from usefreetools.validation import FileInfo

logger = logging.getLogger(__name__)


# ── Rate limiting ──────────────────────────────────────────────────────────


def get_rate_limiter(request: Request) -> RateLimiter:
    return request.app.state.rate_limiter


def rate_limited(scope: str) -> Callable[[Request], RateLimitDecision]:
    """Dependency factory: count this request against ``scope``'s quota."""
    policy = get_policy(scope)

    def dependency(request: Request) -> RateLimitDecision:
        limiter = get_rate_limiter(request)
        decision = limiter.hit(scope, client_identifier(request.headers), policy)
        if not decision.allowed:
            raise rate_limited_error(decision)
        return decision

    return dependency


# ── Body parsing ───────────────────────────────────────────────────────────


async def read_json_body(request: Request) -> Any:
    raw = await await_with_timeout(
        request.body(),
        timeout=BODY_PARSE_TIMEOUT,
        label="request body",
        message="Request parsing timeout. Please try again.",
    )
    try:
        return json.loads(raw or b"null")
    except (ValueError, UnicodeDecodeError):
        raise ToolError(ErrorKind.VALIDATION, "Invalid JSON body")


async def read_form(request: Request) -> FormData:
    try:
        return await await_with_timeout(
            request.form(),
            timeout=FORM_PARSE_TIMEOUT,
            label="form data",
            message="Request timeout. Please try with a smaller file or try again later.",
        )
    except ToolError:
        raise
    except Exception as exc:
        logger.info("Malformed form data: %s", exc)
        raise ToolError(ErrorKind.VALIDATION, "Invalid form data")


def form_file(form: FormData, field: str) -> Optional[UploadFile]:
    value = form.get(field)
    return value if isinstance(value, UploadFile) else None


def form_text(form: FormData, field: str) -> Optional[str]:
    value = form.get(field)
    return value if isinstance(value, str) else None


def describe_upload(upload: Optional[UploadFile]) -> Optional[FileInfo]:
    if upload is None:
        return None
    size = upload.size
    if size is None:
        # Older multipart backends do not record the size
        upload.file.seek(0, 2)
        size = upload.file.tell()
        upload.file.seek(0)
    return FileInfo(
        filename=upload.filename or "",
        content_type=upload.content_type or "",
        size=size,
    )


async def read_upload(upload: UploadFile) -> bytes:
    data = await await_with_timeout(
        upload.read(),
        timeout=FILE_READ_TIMEOUT,
        label="file read",
        message="Request timeout. Please try with a smaller file or try again later.",
    )
    await upload.seek(0)
    return data
