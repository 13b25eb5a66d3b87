"""Centralized configuration loading for the course rewriter."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv


class ConfigError(ValueError):
    """Raised when required configuration is missing or invalid."""


DEFAULT_AZURE_DEPLOYMENT = "gpt-4o"
DEFAULT_AZURE_API_VERSION = "2024-12-01-preview"
MAX_REWRITE_WORKERS = 8


@dataclass(frozen=True)
class AppConfig:
    """Typed application configuration loaded from environment variables."""

    azure_openai_endpoint: str
    azure_openai_api_key: str
    azure_openai_deployment: str
    azure_api_version: str
    canvas_base_url: str
    canvas_api_token: str
    session_file_path: Path
    failure_log_dir: Path
    review_template_path: Path
    max_external_retries: int
    rewrite_workers: int
    request_timeout_seconds: int
    enable_dry_run: bool


_REQUIRED_ENV_VARS = (
    "AZURE_OPENAI_ENDPOINT",
    "AZURE_OPENAI_API_KEY",
    "CANVAS_BASE_URL",
    "CANVAS_API_TOKEN",
)


def _get_required_env(name: str) -> str:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        raise ConfigError(f"Missing required environment variable: {name}")
    return raw.strip()


def _get_optional_env(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip()


def _parse_bool(name: str, raw: str) -> bool:
    normalized = raw.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"Invalid boolean value for {name}: {raw!r}")


def _parse_int(name: str, raw: str, minimum: int | None = None, maximum: int | None = None) -> int:
    try:
        value = int(raw)
    except ValueError as exc:
        raise ConfigError(f"Invalid integer value for {name}: {raw!r}") from exc

    if minimum is not None and value < minimum:
        raise ConfigError(f"{name} must be >= {minimum}, got {value}")
    if maximum is not None and value > maximum:
        raise ConfigError(f"{name} must be <= {maximum}, got {value}")
    return value


def _strip_trailing_slash(url: str) -> str:
    return url[:-1] if url.endswith("/") else url


def _validate_required_envs() -> None:
    for name in _REQUIRED_ENV_VARS:
        _get_required_env(name)


def _session_file_path() -> Path:
    return Path(_get_optional_env("SESSION_FILE_PATH", "data/session.json"))


def get_session_file_path(load_dotenv_file: bool = True) -> Path:
    """Resolve the session file without requiring Azure or Canvas credentials."""
    if load_dotenv_file:
        load_dotenv()
    return _session_file_path()


@lru_cache(maxsize=1)
def get_config(load_dotenv_file: bool = True) -> AppConfig:
    """Load and cache app configuration."""
    if load_dotenv_file:
        load_dotenv()

    _validate_required_envs()

    max_external_retries = _parse_int(
        "MAX_EXTERNAL_RETRIES",
        _get_optional_env("MAX_EXTERNAL_RETRIES", "3"),
        minimum=1,
    )
    rewrite_workers = _parse_int(
        "REWRITE_WORKERS",
        _get_optional_env("REWRITE_WORKERS", "1"),
        minimum=1,
        maximum=MAX_REWRITE_WORKERS,
    )
    request_timeout_seconds = _parse_int(
        "REQUEST_TIMEOUT_SECONDS",
        _get_optional_env("REQUEST_TIMEOUT_SECONDS", "60"),
        minimum=1,
    )

    return AppConfig(
        azure_openai_endpoint=_strip_trailing_slash(_get_required_env("AZURE_OPENAI_ENDPOINT")),
        azure_openai_api_key=_get_required_env("AZURE_OPENAI_API_KEY"),
        azure_openai_deployment=_get_optional_env(
            "AZURE_OPENAI_DEPLOYMENT", DEFAULT_AZURE_DEPLOYMENT
        ),
        azure_api_version=_get_optional_env("AZURE_API_VERSION", DEFAULT_AZURE_API_VERSION),
        canvas_base_url=_strip_trailing_slash(_get_required_env("CANVAS_BASE_URL")),
        canvas_api_token=_get_required_env("CANVAS_API_TOKEN"),
        session_file_path=_session_file_path(),
        failure_log_dir=Path(_get_optional_env("FAILURE_LOG_DIR", "data/failures")),
        review_template_path=Path(
            _get_optional_env("REVIEW_TEMPLATE_PATH", "templates/review_report.html")
        ),
        max_external_retries=max_external_retries,
        rewrite_workers=rewrite_workers,
        request_timeout_seconds=request_timeout_seconds,
        enable_dry_run=_parse_bool("ENABLE_DRY_RUN", _get_optional_env("ENABLE_DRY_RUN", "true")),
    )


def reset_config_cache() -> None:
    """Clear memoized configuration for tests and process reloads."""
    get_config.cache_clear()
