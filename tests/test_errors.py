from __future__ import annotations

import http.client
import io
import socket
import ssl
from urllib.error import HTTPError, URLError

import pytest

from context_pack.errors import (
    AuthError,
    ErrorKind,
    FatalLLMError,
    NetworkError,
    RateLimitError,
    RetryableLLMError,
    SchemaValidationError,
    ServerError,
    TokenLimitError,
    UnknownLLMError,
    classify_failure,
)


def http_error(status: int, body: str = "") -> HTTPError:
    return HTTPError(
        "https://api.example.test/v1/chat/completions",
        status,
        "error",
        None,
        io.BytesIO(body.encode("utf-8")),
    )


@pytest.mark.parametrize(
    ("status", "body", "expected"),
    [
        (401, '{"error": "invalid api key"}', AuthError),
        (403, "", AuthError),
        (429, "slow down", RateLimitError),
        (400, "This model's maximum context length is 8192 tokens", TokenLimitError),
        (400, '{"error": {"code": "context_length_exceeded"}}', TokenLimitError),
        (400, "bad request", UnknownLLMError),
        (404, "not found", UnknownLLMError),
        (500, "boom", ServerError),
        (503, "", ServerError),
    ],
)
def test_http_failures_are_classified_by_status(status: int, body: str, expected: type) -> None:
    error = classify_failure(http_error(status, body))

    assert type(error) is expected
    assert error.status_code == status


def test_connectivity_failures_are_retryable_network_errors() -> None:
    for raw in (
        URLError("connection refused"),
        ConnectionResetError("reset by peer"),
        TimeoutError("timed out"),
        socket.timeout("timed out"),
        http.client.IncompleteRead(b"partial", 100),
        http.client.RemoteDisconnected("closed without response"),
        ssl.SSLError("handshake failed"),
    ):
        error = classify_failure(raw)
        assert isinstance(error, NetworkError)
        assert error.retryable is True
        assert error.kind == ErrorKind.NETWORK


def test_unexpected_exceptions_become_fatal_unknown_errors() -> None:
    error = classify_failure(ValueError("weird"))

    assert isinstance(error, UnknownLLMError)
    assert error.retryable is False
    assert error.message == "weird"


def test_typed_errors_pass_through_unchanged() -> None:
    original = RateLimitError("already typed")
    assert classify_failure(original) is original


def test_retryability_is_part_of_the_type() -> None:
    assert issubclass(RateLimitError, RetryableLLMError)
    assert issubclass(ServerError, RetryableLLMError)
    assert issubclass(NetworkError, RetryableLLMError)
    assert issubclass(AuthError, FatalLLMError)
    assert issubclass(TokenLimitError, FatalLLMError)
    assert issubclass(UnknownLLMError, FatalLLMError)
    assert not issubclass(SchemaValidationError, RetryableLLMError)

    assert AuthError().message == "Invalid API key"
    assert AuthError().kind == ErrorKind.AUTH


def test_schema_validation_error_carries_last_errors() -> None:
    err = SchemaValidationError(
        "failed",
        last_errors=[{"loc": ("age",), "msg": "Field required", "type": "missing"}],
        attempts=3,
    )

    assert err.kind == ErrorKind.SCHEMA_VALIDATION
    assert err.retryable is False
    assert err.attempts == 3
    assert err.last_errors[0]["loc"] == ("age",)
