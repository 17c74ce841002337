"""Error kinds for external processor calls and the retry policy."""

from collections.abc import Callable
from enum import StrEnum
from typing import Any, TypeVar

import httpx
from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from docstruct.utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class ErrorKind(StrEnum):
    """Closed set of failure categories for processor calls."""

    PERMISSION_DENIED = "PERMISSION_DENIED"
    RESOURCE_EXHAUSTED = "RESOURCE_EXHAUSTED"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"
    NETWORK_ERROR = "NETWORK_ERROR"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    TIMEOUT = "TIMEOUT"
    AUTHENTICATION_ERROR = "AUTHENTICATION_ERROR"
    INVALID_DOCUMENT = "INVALID_DOCUMENT"
    PROCESSING_ERROR = "PROCESSING_ERROR"


RETRYABLE_KINDS = frozenset(
    {ErrorKind.NETWORK_ERROR, ErrorKind.TIMEOUT, ErrorKind.QUOTA_EXCEEDED}
)

_DEFAULT_MESSAGES: dict[ErrorKind, str] = {
    ErrorKind.PERMISSION_DENIED: "Invalid API credentials or insufficient permissions",
    ErrorKind.RESOURCE_EXHAUSTED: "API quota exceeded. Please try again later.",
    ErrorKind.INVALID_ARGUMENT: "Invalid file format or corrupted PDF",
    ErrorKind.DEADLINE_EXCEEDED: "Processing timeout. File may be too large or complex.",
    ErrorKind.NETWORK_ERROR: "Unable to connect to processing service.",
    ErrorKind.QUOTA_EXCEEDED: "Processing quota exceeded. Please try again later.",
    ErrorKind.TIMEOUT: "Document processing timed out.",
    ErrorKind.AUTHENTICATION_ERROR: "Service authentication failed.",
    ErrorKind.INVALID_DOCUMENT: "The document appears to be corrupted or unsupported.",
    ErrorKind.PROCESSING_ERROR: "An unexpected error occurred during processing.",
}

# Canonical RPC status codes reported by layout services.
_RPC_CODES: dict[int, ErrorKind] = {
    3: ErrorKind.INVALID_ARGUMENT,
    4: ErrorKind.DEADLINE_EXCEEDED,
    7: ErrorKind.PERMISSION_DENIED,
    8: ErrorKind.RESOURCE_EXHAUSTED,
}

_HTTP_STATUSES: dict[int, ErrorKind] = {
    400: ErrorKind.INVALID_ARGUMENT,
    401: ErrorKind.AUTHENTICATION_ERROR,
    403: ErrorKind.PERMISSION_DENIED,
    408: ErrorKind.TIMEOUT,
    429: ErrorKind.QUOTA_EXCEEDED,
    502: ErrorKind.NETWORK_ERROR,
    503: ErrorKind.NETWORK_ERROR,
    504: ErrorKind.DEADLINE_EXCEEDED,
}

# Message substrings checked in order when nothing more specific is known.
_MESSAGE_HINTS: list[tuple[tuple[str, ...], ErrorKind]] = [
    (("quota",), ErrorKind.QUOTA_EXCEEDED),
    (("timeout", "timed out"), ErrorKind.TIMEOUT),
    (("credentials",), ErrorKind.AUTHENTICATION_ERROR),
    (("corrupted", "invalid"), ErrorKind.INVALID_DOCUMENT),
]


class ProcessingError(Exception):
    """Failure of a processor call or of document validation.

    Args:
        kind: Failure category.
        message: Human-readable message. Defaults to the kind's message.
        details: Extra context for logs.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.kind = kind
        self.message = message or _DEFAULT_MESSAGES[kind]
        self.details = details or {}
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return self.kind in RETRYABLE_KINDS

    def __repr__(self) -> str:
        return f"ProcessingError({self.kind}, {self.message!r})"


def from_status_code(code: int, message: str | None = None) -> ProcessingError:
    """Map an RPC status code to a processing error."""
    kind = _RPC_CODES.get(code, ErrorKind.PROCESSING_ERROR)
    return ProcessingError(kind, message, details={"code": code})


def from_http_status(status_code: int, message: str | None = None) -> ProcessingError:
    """Map an HTTP status code to a processing error."""
    kind = _HTTP_STATUSES.get(status_code)
    if kind is None:
        kind = (
            ErrorKind.NETWORK_ERROR
            if status_code >= 500
            else ErrorKind.PROCESSING_ERROR
        )
    return ProcessingError(kind, message, details={"status_code": status_code})


def classify_error(exc: BaseException) -> ProcessingError:
    """Map any exception raised by a processor call to a processing error.

    Args:
        exc: The raised exception.

    Returns:
        ``exc`` itself if already classified, otherwise a new error.
    """
    if isinstance(exc, ProcessingError):
        return exc
    if isinstance(exc, httpx.TimeoutException):
        return ProcessingError(ErrorKind.TIMEOUT, str(exc) or None)
    if isinstance(exc, httpx.HTTPStatusError):
        return from_http_status(exc.response.status_code, str(exc))
    if isinstance(exc, (httpx.TransportError, ConnectionError)):
        return ProcessingError(ErrorKind.NETWORK_ERROR, str(exc) or None)

    message = str(exc)
    lowered = message.lower()
    for hints, kind in _MESSAGE_HINTS:
        if any(h in lowered for h in hints):
            return ProcessingError(kind, message)
    return ProcessingError(ErrorKind.PROCESSING_ERROR, message or None)


def call_with_retry(
    operation: Callable[[], T],
    attempts: int = 3,
    backoff_seconds: float = 1.0,
    on_retry: Callable[[ProcessingError], None] | None = None,
    label: str = "processor call",
) -> T:
    """Run ``operation``, retrying retryable failures with exponential backoff.

    Every exception is classified first, so callers only ever see
    ``ProcessingError``.

    Args:
        operation: Zero-argument callable to run.
        attempts: Maximum number of attempts, including the first.
        backoff_seconds: Base delay; doubles after each failed attempt.
        on_retry: Called with the error before each retry.
        label: Description used in log messages.

    Returns:
        The operation's result.

    Raises:
        ProcessingError: The last error once retries are exhausted, or the
            first non-retryable error.
    """

    def _classified() -> T:
        try:
            return operation()
        except Exception as exc:
            raise classify_error(exc) from exc

    def _before_sleep(state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome else None
        logger.warning(
            "%s failed (attempt %d/%d): %r",
            label,
            state.attempt_number,
            attempts,
            error,
        )
        if on_retry is not None and isinstance(error, ProcessingError):
            on_retry(error)

    retrying = Retrying(
        stop=stop_after_attempt(max(attempts, 1)),
        wait=wait_exponential(multiplier=backoff_seconds, max=backoff_seconds * 8),
        retry=retry_if_exception(
            lambda exc: isinstance(exc, ProcessingError) and exc.retryable
        ),
        before_sleep=_before_sleep,
        reraise=True,
    )
    return retrying(_classified)
