"""Structured JSON events for course rewrite runs.

Every event carries the workflow stage (``rewrite`` or ``publish``) and the
target course, so one course's history can be rebuilt from the log stream.
Batch events add ``batch_id``; per-item events add ``item_key``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from typing import Any

_LOGGER_NAME = "course_rewriter.events"


@dataclass(frozen=True)
class LogContext:
    """Where in the workflow an event happened."""

    course_id: str | None = None
    stage: str | None = None
    batch_id: str | None = None
    item_key: str | None = None
    extras: dict[str, Any] = field(default_factory=dict)

    def for_item(self, item_key: str) -> LogContext:
        return replace(self, item_key=item_key)

    def as_fields(self) -> dict[str, Any]:
        fields: dict[str, Any] = {
            name: value
            for name, value in (
                ("course_id", self.course_id),
                ("stage", self.stage),
                ("batch_id", self.batch_id),
                ("item_key", self.item_key),
            )
            if value
        }
        fields.update(self.extras)
        return fields


class StructuredLogger:
    """Emit one JSON object per workflow event."""

    def __init__(self) -> None:
        self._logger = logging.getLogger(_LOGGER_NAME)
        if not self._logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("%(message)s"))
            self._logger.addHandler(handler)
            # Event lines are already JSON.
            self._logger.propagate = False
        self._logger.setLevel(logging.INFO)

    def info(self, event: str, *, context: LogContext | None = None, **fields: Any) -> None:
        self._emit(logging.INFO, event, context=context, fields=fields)

    def warning(self, event: str, *, context: LogContext | None = None, **fields: Any) -> None:
        self._emit(logging.WARNING, event, context=context, fields=fields)

    def error(self, event: str, *, context: LogContext | None = None, **fields: Any) -> None:
        self._emit(logging.ERROR, event, context=context, fields=fields)

    def _emit(
        self,
        level: int,
        event: str,
        *,
        context: LogContext | None,
        fields: dict[str, Any],
    ) -> None:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": logging.getLevelName(level).lower(),
            "event": event,
        }
        if context is not None:
            payload.update(context.as_fields())
        payload.update(fields)
        self._logger.log(level, json.dumps(payload, sort_keys=True, default=str))


_default_logger: StructuredLogger | None = None


def get_logger() -> StructuredLogger:
    global _default_logger
    if _default_logger is None:
        _default_logger = StructuredLogger()
    return _default_logger
