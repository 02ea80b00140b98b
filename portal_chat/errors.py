"""Tagged error types shared by the gateway, the services and the HTTP layer.

Every failure that crosses a module boundary is a ``PortalError`` carrying a
``kind`` discriminant. Raw provider or collaborator exceptions are converted
exactly once, where they are first observed.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional


DEFAULT_RETRY_AFTER_MS = 5000


class ErrorKind(str, Enum):
    VALIDATION = "VALIDATION_ERROR"
    FORBIDDEN = "FORBIDDEN"
    NOT_FOUND = "NOT_FOUND"
    UPSTREAM = "UPSTREAM_ERROR"
    RATE_LIMITED = "RATE_LIMIT"
    PROVIDER_UNAVAILABLE = "PROVIDER_UNAVAILABLE"
    MISCONFIGURED = "MISCONFIGURED"
    SERVER_ERROR = "SERVER_ERROR"


class PortalError(Exception):
    kind: ErrorKind = ErrorKind.SERVER_ERROR
    status_code: int = 500

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(PortalError):
    kind = ErrorKind.VALIDATION
    status_code = 400


class ForbiddenError(PortalError):
    kind = ErrorKind.FORBIDDEN
    status_code = 403


class NotFoundError(PortalError):
    kind = ErrorKind.NOT_FOUND
    status_code = 404


class UpstreamError(PortalError):
    """Non-success reply from the exam-records collaborator; keeps its status."""

    kind = ErrorKind.UPSTREAM


class MisconfiguredError(PortalError):
    kind = ErrorKind.MISCONFIGURED


class ProviderError(PortalError):
    """Base for failures reported by a generation provider."""

    def __init__(self, provider: str, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message, status_code=status_code)
        self.provider = provider


class RateLimitedError(ProviderError):
    kind = ErrorKind.RATE_LIMITED
    status_code = 429

    def __init__(self, provider: str, retry_after_ms: int = DEFAULT_RETRY_AFTER_MS) -> None:
        super().__init__(provider, f"{provider} rate limit exceeded")
        self.retry_after_ms = retry_after_ms


class ProviderUnavailableError(ProviderError):
    kind = ErrorKind.PROVIDER_UNAVAILABLE

    def __init__(self, provider: str) -> None:
        super().__init__(provider, "Chat service is temporarily unavailable")


class ProviderFailedError(ProviderError):
    def __init__(self, provider: str) -> None:
        super().__init__(provider, "Chat service error")


class EmptyGenerationError(ProviderError):
    def __init__(self, provider: str) -> None:
        super().__init__(provider, "Chat service returned an empty response")
