"""
Schema-validated completions.

Structured-output mode is advisory: the model usually returns JSON, but nothing
guarantees it matches the shape the caller needs. This layer closes that gap:

1) Force JSON mode on the request.
2) Parse the text into a JSON value, tolerating code fences and prose.
3) Validate it with a strict Pydantic model.
4) On failure, re-prompt with the JSON Schema and the field-level violations
   of the attempt that just failed, up to a bounded number of extra attempts.

Transport failures are never retried here; `CompletionClient` has already
spent its own budget by the time one surfaces.
"""

from __future__ import annotations

import hashlib
import json
import logging
import re
from dataclasses import dataclass
from typing import Any, TypeVar
from uuid import uuid4

from pydantic import BaseModel, ValidationError

from .errors import SchemaValidationError
from .llm_client import CompletionClient
from .models import CompletionRequest

TModel = TypeVar("TModel", bound=BaseModel)

_JSON_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)


@dataclass(frozen=True)
class ParseFailure:
    """Why one response was rejected, in a form the model can act on."""

    kind: str
    errors: list[dict[str, Any]]


def _sha12(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:12]


def _truncate(text: str, max_len: int = 2000) -> str:
    return text if len(text) <= max_len else (text[:max_len] + "...[truncated]")


_DECODE_ERRORS = (json.JSONDecodeError, RecursionError)


def _iter_json_candidates(text: str) -> list[str]:
    """Find JSON object/array candidates by decoding from each opening bracket."""
    decoder = json.JSONDecoder()
    candidates: list[str] = []
    for idx, char in enumerate(text):
        if char not in "{[":
            continue
        try:
            # raw_decode reports an absolute end index
            _, end_idx = decoder.raw_decode(text, idx)
        except json.JSONDecodeError:
            continue
        except RecursionError:
            # every later bracket sits inside the same too-deep nesting
            break
        candidates.append(text[idx:end_idx])
    return candidates


def extract_json_text(raw_output: str) -> str:
    """
    Extract a JSON document from model output, tolerating code fences and noise.

    Strategy:
    1) Strip and remove leading BOM.
    2) Remove markdown fences if present.
    3) Fast path: the whole text decodes.
    4) Substring between the first "{" and last "}" if it decodes.
    5) Slow path: first decodable object/array candidate.
    """
    text = raw_output.strip().lstrip("\ufeff")
    text = _JSON_FENCE_RE.sub("", text).strip()

    try:
        json.loads(text)
        return text
    except _DECODE_ERRORS:
        pass

    start_idx = text.find("{")
    end_idx = text.rfind("}")
    if start_idx != -1 and end_idx > start_idx:
        candidate = text[start_idx : end_idx + 1]
        try:
            json.loads(candidate)
            return candidate
        except _DECODE_ERRORS:
            pass

    candidates = _iter_json_candidates(text)
    if candidates:
        return candidates[0]

    return text


def format_validation_errors(errors: list[dict[str, Any]]) -> str:
    if not errors:
        return "- Unknown validation error"
    lines = []
    for error in errors:
        path = ".".join(str(part) for part in error.get("loc", ()))
        lines.append(f"- {path}: {error.get('msg', 'invalid value')}")
    return "\n".join(lines)


class SchemaValidatingCompletion:
    """Turns "probably JSON" into "guaranteed to match the schema"."""

    def __init__(
        self,
        *,
        client: CompletionClient,
        max_schema_retries: int = 2,
        logger: logging.Logger | None = None,
        max_output_preview_chars: int = 2000,
    ) -> None:
        if max_schema_retries < 0:
            raise ValueError("max_schema_retries must be >= 0")

        self.client = client
        self.max_schema_retries = max_schema_retries
        self.logger = logger or logging.getLogger("context_pack.structured")
        self.max_output_preview_chars = max_output_preview_chars

    def execute_validated(self, request: CompletionRequest, schema: type[TModel]) -> TModel:
        """Return a validated `schema` instance or raise `SchemaValidationError`."""
        request_id = str(uuid4())
        base_request = request.model_copy(update={"json_mode": True})
        attempt_request = base_request
        total_attempts = self.max_schema_retries + 1
        last_errors: list[dict[str, Any]] = []

        self.logger.info(
            "validated_completion_start",
            extra={
                "request_id": request_id,
                "schema": schema.__name__,
                "max_attempts": total_attempts,
                "system_prompt_hash": _sha12(base_request.system_prompt),
            },
        )

        for attempt in range(1, total_attempts + 1):
            response = self.client.execute(attempt_request)

            self.logger.debug(
                "validated_completion_response",
                extra={
                    "request_id": request_id,
                    "attempt": attempt,
                    "raw_output_preview": _truncate(
                        response.content, self.max_output_preview_chars
                    ),
                },
            )

            result, failure = self._parse_and_validate(response.content, schema)
            if failure is None:
                return result

            last_errors = failure.errors
            self.logger.warning(
                "schema_validation_failed",
                extra={
                    "request_id": request_id,
                    "schema": schema.__name__,
                    "attempt": attempt,
                    "max_attempts": total_attempts,
                    "error_kind": failure.kind,
                    "error": format_validation_errors(failure.errors),
                },
            )

            if attempt < total_attempts:
                attempt_request = self._build_correction_request(base_request, schema, failure)

        raise SchemaValidationError(
            f"Schema validation failed for {schema.__name__} after {total_attempts} attempts",
            last_errors=last_errors,
            attempts=total_attempts,
        )

    @staticmethod
    def _parse_and_validate(
        raw_output: str, schema: type[TModel]
    ) -> tuple[TModel | None, ParseFailure | None]:
        try:
            data = json.loads(extract_json_text(raw_output))
        except _DECODE_ERRORS as err:
            return None, ParseFailure(
                kind="json_decode",
                errors=[{"loc": (), "msg": f"Invalid JSON: {err}", "type": "json_invalid"}],
            )

        try:
            return schema.model_validate(data), None
        except ValidationError as err:
            errors = [
                {"loc": tuple(error["loc"]), "msg": error["msg"], "type": error["type"]}
                for error in err.errors()
            ]
            return None, ParseFailure(kind="validation", errors=errors)

    @staticmethod
    def _build_correction_request(
        base_request: CompletionRequest,
        schema: type[BaseModel],
        failure: ParseFailure,
    ) -> CompletionRequest:
        schema_json = json.dumps(schema.model_json_schema(), indent=2, ensure_ascii=False)
        system_prompt = (
            f"{base_request.system_prompt}\n\n"
            f"IMPORTANT: Your response MUST be a JSON value matching this exact schema:\n"
            f"{schema_json}\n\n"
            f"Previous validation errors:\n"
            f"{format_validation_errors(failure.errors)}"
        )
        return base_request.model_copy(update={"system_prompt": system_prompt})
