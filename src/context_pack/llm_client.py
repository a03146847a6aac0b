"""Completion client with retry, backoff and error classification.

`OpenAIChatTransport` performs a single HTTP round trip against an
OpenAI-compatible `/chat/completions` endpoint. `CompletionClient` wraps any
`ChatTransport`, classifies raw failures once at that boundary and retries the
retryable ones with exponential backoff.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol
from urllib.request import Request, urlopen
from uuid import uuid4

from .config import DEFAULT_API_BASE, DEFAULT_MODEL, Settings
from .errors import LLMClientError, RetryableLLMError, UnknownLLMError, classify_failure
from .models import CompletionRequest, CompletionResponse, TokenUsage

logger = logging.getLogger("context_pack.llm_client")

DEFAULT_TEMPERATURE = 0.7


class ChatTransport(Protocol):
    """One network round trip. Raw failures propagate unclassified."""

    def send(self, request: CompletionRequest) -> CompletionResponse:
        """Return the completion for a single attempt."""


@dataclass(slots=True)
class OpenAIChatTransport:
    """OpenAI-compatible chat completions REST transport."""

    api_key: str
    model: str = DEFAULT_MODEL
    api_base: str = DEFAULT_API_BASE
    timeout_seconds: float = 60.0

    @classmethod
    def from_settings(cls, settings: Settings) -> OpenAIChatTransport:
        return cls(
            api_key=settings.api_key,
            model=settings.model,
            api_base=settings.api_base,
            timeout_seconds=settings.timeout_seconds,
        )

    def send(self, request: CompletionRequest) -> CompletionResponse:
        """POST one chat completion and normalize content and usage."""
        payload = self.build_payload(request)
        body = json.dumps(payload, ensure_ascii=True).encode("utf-8")
        http_request = Request(
            f"{self.api_base.rstrip('/')}/chat/completions",
            data=body,
            method="POST",
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {self.api_key}",
            },
        )

        with urlopen(http_request, timeout=self.timeout_seconds) as response:
            raw = response.read().decode("utf-8")

        try:
            response_json = json.loads(raw)
        except json.JSONDecodeError as err:
            raise UnknownLLMError("Completion API returned non-JSON response") from err

        return self.parse_response(response_json)

    def build_payload(self, request: CompletionRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_prompt},
            ],
            "temperature": (
                request.temperature if request.temperature is not None else DEFAULT_TEMPERATURE
            ),
        }
        if request.max_tokens is not None:
            payload["max_tokens"] = request.max_tokens
        if request.json_mode:
            payload["response_format"] = {"type": "json_object"}
        return payload

    @staticmethod
    def parse_response(response_json: dict[str, Any]) -> CompletionResponse:
        """Extract the first choice's message text and the usage block."""
        choices = response_json.get("choices")
        content = None
        if isinstance(choices, list) and choices and isinstance(choices[0], dict):
            message = choices[0].get("message")
            if isinstance(message, dict):
                content = message.get("content")
        if not isinstance(content, str) or content == "":
            raise UnknownLLMError("No response from API")

        usage_raw = response_json.get("usage")
        if not isinstance(usage_raw, dict):
            usage_raw = {}
        usage = TokenUsage(
            prompt_tokens=usage_raw.get("prompt_tokens") or 0,
            completion_tokens=usage_raw.get("completion_tokens") or 0,
            total_tokens=usage_raw.get("total_tokens") or 0,
        )
        return CompletionResponse(content=content, usage=usage)


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """Transport retry budget: delay before attempt k (k >= 1) is base * 2**(k-1)."""

    max_retries: int = 3
    base_delay_seconds: float = 1.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.base_delay_seconds < 0:
            raise ValueError("base_delay_seconds must be >= 0")

    def delay_for(self, attempt: int) -> float:
        if attempt < 1:
            return 0.0
        return self.base_delay_seconds * (2 ** (attempt - 1))

    def worst_case_delay(self) -> float:
        """Total backoff slept when every attempt fails retryably."""
        return self.base_delay_seconds * (2**self.max_retries - 1)


@dataclass(slots=True)
class CompletionClient:
    """Executes completion requests with classified, bounded retries."""

    transport: ChatTransport
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    sleep: Callable[[float], None] = time.sleep

    @classmethod
    def from_env(cls) -> CompletionClient:
        """Build a client from environment variables."""
        return cls.from_settings(Settings.from_env())

    @classmethod
    def from_settings(cls, settings: Settings) -> CompletionClient:
        return cls(
            transport=OpenAIChatTransport.from_settings(settings),
            retry_policy=RetryPolicy(
                max_retries=settings.max_retries,
                base_delay_seconds=settings.base_delay_seconds,
            ),
        )

    def execute(self, request: CompletionRequest) -> CompletionResponse:
        """Run one request, retrying retryable failures with exponential backoff.

        Fatal failures raise on the attempt that produced them. When the retry
        budget runs out, the last classified error is raised unchanged.
        """
        request_id = str(uuid4())
        total_attempts = self.retry_policy.max_retries + 1
        attempt = 0

        while True:
            try:
                response = self._send_once(request)
            except RetryableLLMError as err:
                if attempt >= self.retry_policy.max_retries:
                    logger.error(
                        "completion_retries_exhausted",
                        extra={
                            "request_id": request_id,
                            "attempts": attempt + 1,
                            "kind": err.kind.value,
                            "error": err.message,
                        },
                    )
                    raise
                attempt += 1
                delay = self.retry_policy.delay_for(attempt)
                logger.warning(
                    "completion_retry",
                    extra={
                        "request_id": request_id,
                        "attempt": attempt,
                        "max_attempts": total_attempts,
                        "kind": err.kind.value,
                        "delay_seconds": delay,
                        "error": err.message,
                    },
                )
                self.sleep(delay)
                continue
            except LLMClientError as err:
                logger.error(
                    "completion_failed",
                    extra={
                        "request_id": request_id,
                        "attempt": attempt,
                        "kind": err.kind.value,
                        "error": err.message,
                    },
                )
                raise

            logger.info(
                "completion_done",
                extra={
                    "request_id": request_id,
                    "attempts": attempt + 1,
                    "total_tokens": response.usage.total_tokens,
                },
            )
            return response

    def _send_once(self, request: CompletionRequest) -> CompletionResponse:
        try:
            return self.transport.send(request)
        except LLMClientError:
            raise
        except Exception as exc:  # noqa: BLE001 - classification boundary
            raise classify_failure(exc) from exc
