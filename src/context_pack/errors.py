"""Typed failures for LLM calls.

Every raw transport failure is mapped into exactly one `LLMClientError`
subclass by `classify_failure`. Whether a failure may be retried is part of
the type: the retry loop only ever catches `RetryableLLMError`.
"""

from __future__ import annotations

import http.client
import socket
import ssl
from enum import Enum
from typing import Any
from urllib.error import HTTPError, URLError


class ErrorKind(str, Enum):
    """Machine-checkable failure taxonomy."""

    AUTH = "auth"
    RATE_LIMIT = "rate_limit"
    TOKEN_LIMIT = "token_limit"
    SERVER = "server"
    NETWORK = "network"
    SCHEMA_VALIDATION = "schema_validation"
    UNKNOWN = "unknown"


class LLMClientError(RuntimeError):
    """Base class for every failure surfaced by the completion layers."""

    kind: ErrorKind = ErrorKind.UNKNOWN
    retryable: bool = False
    default_message: str = "LLM call failed"

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        self.message = message or self.default_message
        self.status_code = status_code
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class RetryableLLMError(LLMClientError):
    """Transient failure; `CompletionClient` backs off and tries again."""

    retryable = True


class FatalLLMError(LLMClientError):
    """Failure that retrying the same request cannot fix."""

    retryable = False


class RateLimitError(RetryableLLMError):
    kind = ErrorKind.RATE_LIMIT
    default_message = "Rate limit exceeded"


class ServerError(RetryableLLMError):
    kind = ErrorKind.SERVER
    default_message = "Server error"


class NetworkError(RetryableLLMError):
    kind = ErrorKind.NETWORK
    default_message = "Network error"


class AuthError(FatalLLMError):
    kind = ErrorKind.AUTH
    default_message = "Invalid API key"


class TokenLimitError(FatalLLMError):
    """The request does not fit the model context. Callers must shrink it."""

    kind = ErrorKind.TOKEN_LIMIT
    default_message = "Token limit exceeded"


class UnknownLLMError(FatalLLMError):
    kind = ErrorKind.UNKNOWN
    default_message = "Unknown error"


class SchemaValidationError(LLMClientError):
    """Raised when no response matched the requested schema.

    Only the validation layer retries this failure, with its own budget, so it
    is never retryable from the transport's point of view.
    """

    kind = ErrorKind.SCHEMA_VALIDATION
    retryable = False
    default_message = "Schema validation failed"

    def __init__(
        self,
        message: str | None = None,
        *,
        last_errors: list[dict[str, Any]] | None = None,
        attempts: int = 0,
    ) -> None:
        super().__init__(message)
        self.last_errors = list(last_errors or [])
        self.attempts = attempts


_TOKEN_LIMIT_MARKERS = (
    "maximum context length",
    "context_length_exceeded",
    "context length",
    "too many tokens",
)


def _is_token_limit(status: int, body: str) -> bool:
    if status not in (400, 413):
        return False
    lowered = body.lower()
    return any(marker in lowered for marker in _TOKEN_LIMIT_MARKERS)


def _read_body(err: HTTPError) -> str:
    raw = err.read()
    if not raw:
        return ""
    return raw.decode("utf-8", errors="replace")


def classify_status(status: int, body: str = "") -> LLMClientError:
    """Map an HTTP status (and response body) to a typed error."""
    detail = body.strip() or f"HTTP {status}"
    if status in (401, 403):
        return AuthError(detail, status_code=status)
    if status == 429:
        return RateLimitError(detail, status_code=status)
    if _is_token_limit(status, body):
        return TokenLimitError(detail, status_code=status)
    if status >= 500:
        return ServerError(f"Server error: {detail}", status_code=status)
    return UnknownLLMError(detail, status_code=status)


# IncompleteRead and RemoteDisconnected arrive as HTTPException while the body is read.
_NETWORK_FAILURES = (
    URLError,
    ConnectionError,
    TimeoutError,
    socket.timeout,
    http.client.HTTPException,
    ssl.SSLError,
)


def classify_failure(exc: BaseException) -> LLMClientError:
    """Map a raw transport failure into the error taxonomy, exactly once."""
    if isinstance(exc, LLMClientError):
        return exc
    # HTTPError subclasses URLError; it must be checked first.
    if isinstance(exc, HTTPError):
        return classify_status(exc.code, _read_body(exc))
    if isinstance(exc, _NETWORK_FAILURES):
        reason = getattr(exc, "reason", None) or exc
        return NetworkError(f"Network error: {reason}")
    return UnknownLLMError(str(exc) or type(exc).__name__)
