"""Shared pytest fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from config import AppConfig


@pytest.fixture
def app_config(tmp_path: Path) -> AppConfig:
    data_dir = tmp_path / "data"
    return AppConfig(
        azure_openai_endpoint="https://example.openai.azure.com",
        azure_openai_api_key="azure-test-key",
        azure_openai_deployment="gpt-4o",
        azure_api_version="2024-12-01-preview",
        canvas_base_url="https://canvas.example.edu",
        canvas_api_token="canvas-test-token",
        session_file_path=data_dir / "session.json",
        failure_log_dir=data_dir / "failures",
        review_template_path=Path(__file__).resolve().parent.parent
        / "templates"
        / "review_report.html",
        max_external_retries=1,
        rewrite_workers=1,
        request_timeout_seconds=5,
        enable_dry_run=True,
    )
