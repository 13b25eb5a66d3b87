"""Tests for config loading and validation."""

from __future__ import annotations

from pathlib import Path

import pytest

from config import ConfigError, get_config, get_session_file_path, reset_config_cache

REQUIRED_ENV = {
    "AZURE_OPENAI_ENDPOINT": "https://example.openai.azure.com/",
    "AZURE_OPENAI_API_KEY": "azure-key",
    "CANVAS_BASE_URL": "https://canvas.example.edu/",
    "CANVAS_API_TOKEN": "canvas-token",
}

OPTIONAL_ENV = (
    "AZURE_OPENAI_DEPLOYMENT",
    "AZURE_API_VERSION",
    "SESSION_FILE_PATH",
    "FAILURE_LOG_DIR",
    "REVIEW_TEMPLATE_PATH",
    "MAX_EXTERNAL_RETRIES",
    "REWRITE_WORKERS",
    "REQUEST_TIMEOUT_SECONDS",
    "ENABLE_DRY_RUN",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    reset_config_cache()
    for key, value in REQUIRED_ENV.items():
        monkeypatch.setenv(key, value)
    for key in OPTIONAL_ENV:
        monkeypatch.delenv(key, raising=False)


def test_get_config_applies_defaults_and_strips_slashes() -> None:
    config = get_config(load_dotenv_file=False)

    assert config.azure_openai_endpoint == "https://example.openai.azure.com"
    assert config.canvas_base_url == "https://canvas.example.edu"
    assert config.azure_openai_deployment == "gpt-4o"
    assert config.azure_api_version == "2024-12-01-preview"
    assert config.session_file_path == Path("data/session.json")
    assert config.failure_log_dir == Path("data/failures")
    assert config.review_template_path == Path("templates/review_report.html")
    assert config.max_external_retries == 3
    assert config.rewrite_workers == 1
    assert config.request_timeout_seconds == 60
    assert config.enable_dry_run is True


def test_get_config_parses_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REWRITE_WORKERS", "4")
    monkeypatch.setenv("ENABLE_DRY_RUN", "off")
    monkeypatch.setenv("AZURE_OPENAI_DEPLOYMENT", "gpt-4.1")

    config = get_config(load_dotenv_file=False)

    assert config.rewrite_workers == 4
    assert config.enable_dry_run is False
    assert config.azure_openai_deployment == "gpt-4.1"


def test_get_config_is_cached() -> None:
    assert get_config(load_dotenv_file=False) is get_config(load_dotenv_file=False)


def test_get_config_missing_required_raises(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CANVAS_API_TOKEN", raising=False)

    with pytest.raises(ConfigError, match="CANVAS_API_TOKEN"):
        get_config(load_dotenv_file=False)


def test_get_config_rejects_invalid_bool(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("ENABLE_DRY_RUN", "sometimes")

    with pytest.raises(ConfigError):
        get_config(load_dotenv_file=False)


@pytest.mark.parametrize("value", ["0", "9", "many"])
def test_get_config_rejects_out_of_range_workers(
    monkeypatch: pytest.MonkeyPatch, value: str
) -> None:
    monkeypatch.setenv("REWRITE_WORKERS", value)

    with pytest.raises(ConfigError):
        get_config(load_dotenv_file=False)


def test_session_file_path_resolves_without_credentials(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in REQUIRED_ENV:
        monkeypatch.delenv(key)
    monkeypatch.setenv("SESSION_FILE_PATH", "work/course.json")

    assert get_session_file_path(load_dotenv_file=False) == Path("work/course.json")
    with pytest.raises(ConfigError):
        get_config(load_dotenv_file=False)
