"""Dead-letter records for rewrite and publish calls that failed."""

from __future__ import annotations

import json
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9_.-]+")


def save_dead_letter(
    *,
    failure_dir: Path,
    stage: str,
    item_key: str,
    error: str,
    status_code: int | None = None,
    payload: dict[str, Any] | None = None,
) -> Path:
    """Persist a failed collaborator call so it can be inspected or retried by hand."""
    failure_dir.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%S%fZ")
    safe_key = _UNSAFE_FILENAME_CHARS.sub("_", item_key)
    out_path = failure_dir / f"failure_{stage}_{safe_key}_{timestamp}.json"
    body = {
        "stage": stage,
        "item_key": item_key,
        "error": error,
        "status_code": status_code,
        "payload": payload or {},
        "created_at": datetime.now(UTC).isoformat(),
    }
    out_path.write_text(json.dumps(body, indent=2, sort_keys=True), encoding="utf-8")
    return out_path
