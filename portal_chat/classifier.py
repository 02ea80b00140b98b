from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx
from fastapi.responses import JSONResponse

from .errors import (
    DEFAULT_RETRY_AFTER_MS,
    ErrorKind,
    PortalError,
    ProviderError,
    ProviderFailedError,
    ProviderUnavailableError,
    RateLimitedError,
)
from .retry import iter_error_chain, parse_retry_delay_ms


logger = logging.getLogger(__name__)

GENERIC_ERROR_MESSAGE = "Chat service error"

_TRANSIENT_STATUS = {500, 502, 503, 504}
_TRANSIENT_STATUS_NAMES = {"UNAVAILABLE", "INTERNAL", "DEADLINE_EXCEEDED"}
_TRANSIENT_TYPES = (
    httpx.TimeoutException,
    httpx.TransportError,
    asyncio.TimeoutError,
    TimeoutError,
    ConnectionError,
)


def error_status(err: Any) -> Optional[int]:
    """Best-effort HTTP status of a raw error (``status_code``, ``code`` or ``status``)."""
    for attr in ("status_code", "code", "status"):
        value = getattr(err, attr, None)
        if isinstance(value, bool):
            continue
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.isdigit():
            return int(value)
    return None


def _status_name(err: Any) -> str:
    value = getattr(err, "status", None)
    return value.upper() if isinstance(value, str) else ""


def _message_text(err: Any) -> str:
    message = getattr(err, "message", None)
    if isinstance(message, str) and message:
        return message
    return str(err)


def is_rate_limited(err: Any) -> bool:
    for link in iter_error_chain(err):
        if error_status(link) == 429 or _status_name(link) == "RESOURCE_EXHAUSTED":
            return True
        text = _message_text(link).lower()
        if "429" in text or "rate limit" in text:
            return True
    return False


def is_transient(err: Any) -> bool:
    for link in iter_error_chain(err):
        if isinstance(link, _TRANSIENT_TYPES):
            return True
        if error_status(link) in _TRANSIENT_STATUS or _status_name(link) in _TRANSIENT_STATUS_NAMES:
            return True
        text = _message_text(link).lower()
        if "overloaded" in text or "unavailable" in text:
            return True
    return False


def to_provider_error(err: Exception, provider: str) -> PortalError:
    """Convert a raw provider exception into the tagged error union."""
    if isinstance(err, PortalError):
        return err
    if is_rate_limited(err):
        retry_after_ms = parse_retry_delay_ms(err)
        return RateLimitedError(
            provider,
            retry_after_ms if retry_after_ms is not None else DEFAULT_RETRY_AFTER_MS,
        )
    if is_transient(err):
        return ProviderUnavailableError(provider)
    return ProviderFailedError(provider)


@dataclass(frozen=True)
class ErrorResponse:
    status_code: int
    body: Dict[str, Any]

    def to_response(self) -> JSONResponse:
        return JSONResponse(status_code=self.status_code, content=self.body)


def _rate_limited(retry_after_ms: int) -> ErrorResponse:
    retry_after_sec = math.ceil(retry_after_ms / 1000)
    return ErrorResponse(
        status_code=429,
        body={
            "message": f"Rate limit exceeded. Please try again in {retry_after_sec}s.",
            "retryAfterMs": retry_after_ms,
            "type": ErrorKind.RATE_LIMITED.value,
        },
    )


def _server_error(message: str) -> ErrorResponse:
    return ErrorResponse(
        status_code=500,
        body={"message": message or GENERIC_ERROR_MESSAGE, "type": ErrorKind.SERVER_ERROR.value},
    )


def classify_error(err: Exception) -> ErrorResponse:
    """Map a caught error to the HTTP status and body shown to the caller."""
    if isinstance(err, RateLimitedError):
        logger.error("Provider %s rate limited, retry after %sms", err.provider, err.retry_after_ms)
        return _rate_limited(err.retry_after_ms)

    if isinstance(err, PortalError) and err.status_code < 500:
        logger.warning("%s: %s", err.kind.value, err.message)
        return ErrorResponse(status_code=err.status_code, body={"message": err.message})

    if isinstance(err, PortalError):
        if isinstance(err, ProviderError):
            logger.error("Provider %s failed: %s", err.provider, err.message, exc_info=err)
        else:
            logger.error("%s: %s", err.kind.value, err.message, exc_info=err)
        if err.kind is ErrorKind.UPSTREAM:
            return ErrorResponse(status_code=err.status_code, body={"message": err.message})
        return _server_error(err.message)

    # Raw errors that escaped a boundary: never echo their text to the caller
    if is_rate_limited(err):
        retry_after_ms = parse_retry_delay_ms(err)
        logger.error("Upstream rate limit: %r", err, exc_info=err)
        return _rate_limited(
            retry_after_ms if retry_after_ms is not None else DEFAULT_RETRY_AFTER_MS
        )

    logger.error("Unhandled error: %r", err, exc_info=err)
    return _server_error(GENERIC_ERROR_MESSAGE)
