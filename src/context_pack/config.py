"""Runtime settings read from the process environment.

Environment variables (used by `Settings.from_env`):
- `OPENAI_API_KEY` (required unless demo mode is on)
- `OPENAI_MODEL` (default: gpt-4-turbo-preview)
- `OPENAI_API_BASE` (default: https://api.openai.com/v1)
- `OPENAI_TIMEOUT_SECONDS` (default: 60)
- `LLM_MAX_RETRIES` (default: 3)
- `LLM_BASE_DELAY_SECONDS` (default: 1.0)
- `LLM_MAX_SCHEMA_RETRIES` (default: 2)
- `CONTEXT_PACK_DEMO_MODE` (default: false)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .errors import AuthError

DEFAULT_MODEL = "gpt-4-turbo-preview"
DEFAULT_API_BASE = "https://api.openai.com/v1"

_TRUTHY = {"1", "true", "yes", "on"}


def _read_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as err:
        raise ValueError(f"{name} must be numeric") from err


def _read_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as err:
        raise ValueError(f"{name} must be an integer") from err


@dataclass(frozen=True, slots=True)
class Settings:
    api_key: str
    model: str = DEFAULT_MODEL
    api_base: str = DEFAULT_API_BASE
    timeout_seconds: float = 60.0
    max_retries: int = 3
    base_delay_seconds: float = 1.0
    max_schema_retries: int = 2
    demo_mode: bool = False

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from environment variables."""
        demo_mode = os.getenv("CONTEXT_PACK_DEMO_MODE", "").strip().lower() in _TRUTHY
        api_key = os.getenv("OPENAI_API_KEY", "").strip()
        if not api_key and not demo_mode:
            raise AuthError("OPENAI_API_KEY environment variable is not set")

        max_retries = _read_int("LLM_MAX_RETRIES", 3)
        max_schema_retries = _read_int("LLM_MAX_SCHEMA_RETRIES", 2)
        if max_retries < 0 or max_schema_retries < 0:
            raise ValueError("retry counts must be >= 0")

        return cls(
            api_key=api_key,
            model=os.getenv("OPENAI_MODEL") or DEFAULT_MODEL,
            api_base=os.getenv("OPENAI_API_BASE") or DEFAULT_API_BASE,
            timeout_seconds=_read_float("OPENAI_TIMEOUT_SECONDS", 60.0),
            max_retries=max_retries,
            base_delay_seconds=_read_float("LLM_BASE_DELAY_SECONDS", 1.0),
            max_schema_retries=max_schema_retries,
            demo_mode=demo_mode,
        )


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip()
    if line.startswith("export "):
        line = line[len("export ") :].lstrip()
    name, sep, value = line.partition("=")
    name = name.strip()
    if not sep or not name or name.startswith("#"):
        return None

    value = value.strip()
    if value[:1] in {"'", '"'}:
        closing = value.find(value[0], 1)
        if closing != -1:
            return name, value[1:closing]
    # Unquoted values may carry a trailing " # comment".
    comment_at = value.find(" #")
    if comment_at != -1:
        value = value[:comment_at].rstrip()
    return name, value


def load_dotenv(path: Path, *, override: bool = False) -> dict[str, str]:
    """Apply `NAME=value` lines from a .env file to `os.environ`.

    Variables already present in the environment win unless `override` is set.
    Returns the variables that were actually written; a missing file is a no-op.
    """
    if not path.is_file():
        return {}

    applied: dict[str, str] = {}
    for raw_line in path.read_text(encoding="utf-8").splitlines():
        parsed = _parse_env_line(raw_line)
        if parsed is None:
            continue
        name, value = parsed
        if name in os.environ and not override:
            continue
        os.environ[name] = value
        applied[name] = value
    return applied
