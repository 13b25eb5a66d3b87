"""Tests for publishing approved items back to Canvas."""

from __future__ import annotations

import json
from typing import Any

import pytest

from models import ItemKind, PublishItem
from services.publisher import CoursePublisher
from services.resilience import ExternalServiceError


class _FakeCanvas:
    def __init__(self, failing_keys: set[str] | None = None) -> None:
        self.calls: list[tuple[str, ItemKind, str | int, str]] = []
        self._failing_keys = failing_keys or set()

    def update_item(self, course_id: str, kind: ItemKind, identifier: str | int, html: str) -> None:
        self.calls.append((course_id, kind, identifier, html))
        if f"{kind.value}:{identifier}" in self._failing_keys:
            raise ExternalServiceError("canvas_api failed: 403 Forbidden", service="canvas_api", status_code=403)


def _items(count: int) -> list[PublishItem]:
    kinds = list(ItemKind)
    return [
        PublishItem(kind=kinds[index % 3], identifier=index, html=f"<div>{index}</div>")
        for index in range(count)
    ]


@pytest.mark.parametrize("count", [0, 1, 5])
def test_dry_run_reports_success_without_calls(app_config: Any, count: int) -> None:
    canvas = _FakeCanvas()

    report = CoursePublisher(app_config, canvas).publish("101", _items(count))

    assert report.dry_run is True
    assert report.total == count
    assert all(result.success for result in report.results)
    assert canvas.calls == []


def test_live_mode_updates_each_item(app_config: Any) -> None:
    object.__setattr__(app_config, "enable_dry_run", False)
    canvas = _FakeCanvas()
    items = _items(3)

    report = CoursePublisher(app_config, canvas).publish("101", items)

    assert report.dry_run is False
    assert (report.total, report.successful, report.failed) == (3, 3, 0)
    assert [call[1:] for call in canvas.calls] == [
        (item.kind, item.identifier, item.html) for item in items
    ]


def test_dry_run_override_forces_live_publish(app_config: Any) -> None:
    canvas = _FakeCanvas()

    report = CoursePublisher(app_config, canvas).publish("101", _items(2), dry_run=False)

    assert report.dry_run is False
    assert len(canvas.calls) == 2


def test_failures_are_captured_per_item(app_config: Any) -> None:
    object.__setattr__(app_config, "enable_dry_run", False)
    canvas = _FakeCanvas(failing_keys={"assignment:1"})

    report = CoursePublisher(app_config, canvas).publish("101", _items(3))

    assert (report.successful, report.failed) == (2, 1)
    failed = [result for result in report.results if not result.success]
    assert failed[0].identifier == 1
    assert failed[0].error == "403: canvas_api failed: 403 Forbidden"
    assert len(canvas.calls) == 3

    dead_letters = list(app_config.failure_log_dir.glob("failure_publish_*.json"))
    assert len(dead_letters) == 1
    assert json.loads(dead_letters[0].read_text(encoding="utf-8"))["item_key"] == "assignment:1"
