from __future__ import annotations

from pathlib import Path

import pytest

from context_pack.config import DEFAULT_MODEL, Settings, load_dotenv
from context_pack.errors import AuthError
from context_pack.llm_client import CompletionClient, RetryPolicy

ENV_VARS = (
    "OPENAI_API_KEY",
    "OPENAI_MODEL",
    "OPENAI_API_BASE",
    "OPENAI_TIMEOUT_SECONDS",
    "LLM_MAX_RETRIES",
    "LLM_BASE_DELAY_SECONDS",
    "LLM_MAX_SCHEMA_RETRIES",
    "CONTEXT_PACK_DEMO_MODE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv first so monkeypatch restores values written by load_dotenv too
    for name in ENV_VARS:
        monkeypatch.setenv(name, "")
        monkeypatch.delenv(name)


def test_missing_api_key_is_an_auth_error() -> None:
    with pytest.raises(AuthError, match="OPENAI_API_KEY"):
        Settings.from_env()


def test_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    settings = Settings.from_env()

    assert settings.api_key == "sk-test"
    assert settings.model == DEFAULT_MODEL
    assert settings.max_retries == 3
    assert settings.base_delay_seconds == 1.0
    assert settings.max_schema_retries == 2
    assert settings.demo_mode is False


def test_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv("OPENAI_MODEL", "gpt-4o-mini")
    monkeypatch.setenv("OPENAI_TIMEOUT_SECONDS", "15")
    monkeypatch.setenv("LLM_MAX_RETRIES", "5")
    monkeypatch.setenv("LLM_BASE_DELAY_SECONDS", "0.5")

    settings = Settings.from_env()
    client = CompletionClient.from_env()

    assert settings.model == "gpt-4o-mini"
    assert settings.timeout_seconds == 15.0
    assert client.retry_policy == RetryPolicy(max_retries=5, base_delay_seconds=0.5)


def test_demo_mode_does_not_need_a_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONTEXT_PACK_DEMO_MODE", "true")

    settings = Settings.from_env()

    assert settings.demo_mode is True
    assert settings.api_key == ""


@pytest.mark.parametrize(
    ("name", "value"),
    [
        ("OPENAI_TIMEOUT_SECONDS", "soon"),
        ("LLM_MAX_RETRIES", "three"),
        ("LLM_MAX_RETRIES", "-1"),
    ],
)
def test_invalid_numbers_are_rejected(monkeypatch: pytest.MonkeyPatch, name: str, value: str) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    monkeypatch.setenv(name, value)

    with pytest.raises(ValueError):
        Settings.from_env()


def test_load_dotenv_sets_missing_values_only(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("OPENAI_MODEL", "already-set")
    env_file = tmp_path / ".env"
    env_file.write_text(
        "# comment\nOPENAI_API_KEY='sk-from-file'\nOPENAI_MODEL=from-file\nnot a pair\n",
        encoding="utf-8",
    )

    load_dotenv(env_file)

    settings = Settings.from_env()
    assert settings.api_key == "sk-from-file"
    assert settings.model == "already-set"


def test_load_dotenv_ignores_missing_file(tmp_path: Path) -> None:
    assert load_dotenv(tmp_path / "missing.env") == {}


def test_load_dotenv_understands_shell_style_lines(tmp_path: Path) -> None:
    env_file = tmp_path / ".env"
    env_file.write_text(
        "export OPENAI_API_KEY=sk-exported\n"
        "OPENAI_MODEL=gpt-4o-mini  # cheaper for local runs\n"
        'OPENAI_API_BASE="http://localhost:8080/v1#frag" # quoted hash stays\n'
        "LLM_MAX_RETRIES = 5\n",
        encoding="utf-8",
    )

    applied = load_dotenv(env_file)

    assert applied == {
        "OPENAI_API_KEY": "sk-exported",
        "OPENAI_MODEL": "gpt-4o-mini",
        "OPENAI_API_BASE": "http://localhost:8080/v1#frag",
        "LLM_MAX_RETRIES": "5",
    }
    settings = Settings.from_env()
    assert settings.api_key == "sk-exported"
    assert settings.api_base == "http://localhost:8080/v1#frag"
    assert settings.max_retries == 5


def test_load_dotenv_override_replaces_existing_values(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    monkeypatch.setenv("OPENAI_MODEL", "already-set")
    env_file = tmp_path / ".env"
    env_file.write_text("OPENAI_MODEL=from-file\n", encoding="utf-8")

    assert load_dotenv(env_file) == {}
    assert load_dotenv(env_file, override=True) == {"OPENAI_MODEL": "from-file"}
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    assert Settings.from_env().model == "from-file"
