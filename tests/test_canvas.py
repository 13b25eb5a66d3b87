"""Tests for the Canvas REST adapter."""

from __future__ import annotations

from typing import Any

import pytest
import requests

from models import ItemKind, SampleCounts
from services import canvas as canvas_module
from services.canvas import CanvasClient
from services.resilience import ExternalServiceError

BASE = "https://canvas.example.edu/api/v1"


class _FakeResponse:
    def __init__(self, payload: Any, status_code: int = 200, next_url: str | None = None) -> None:
        self._payload = payload
        self.status_code = status_code
        self.links = {"next": {"url": next_url}} if next_url else {}

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} error", response=self)  # type: ignore[arg-type]

    def json(self) -> Any:
        return self._payload


def _install_routes(monkeypatch: pytest.MonkeyPatch, routes: dict[str, _FakeResponse]) -> list[str]:
    requested: list[str] = []

    def fake_get(url: str, **kwargs: Any) -> _FakeResponse:
        requested.append(url)
        assert kwargs["headers"] == {"Authorization": "Bearer canvas-test-token"}
        return routes[url]

    monkeypatch.setattr(canvas_module.requests, "get", fake_get)
    return requested


def test_load_items_follows_pagination_and_fetches_page_bodies(
    app_config: Any, monkeypatch: pytest.MonkeyPatch
) -> None:
    routes = {
        f"{BASE}/courses/101": _FakeResponse({"id": 101, "name": "Biology"}),
        f"{BASE}/courses/101/pages?per_page=100": _FakeResponse(
            [{"url": "welcome"}], next_url=f"{BASE}/courses/101/pages?page=2"
        ),
        f"{BASE}/courses/101/pages?page=2": _FakeResponse([{"url": "broken"}, {"url": "week-1"}]),
        f"{BASE}/courses/101/pages/welcome": _FakeResponse(
            {"url": "welcome", "title": "Welcome", "body": "<p>hi</p>"}
        ),
        f"{BASE}/courses/101/pages/broken": _FakeResponse({}, status_code=500),
        f"{BASE}/courses/101/pages/week-1": _FakeResponse(
            {"url": "week-1", "title": "Week 1", "body": None}
        ),
        f"{BASE}/courses/101/assignments?per_page=100": _FakeResponse(
            [{"id": 7, "name": "Essay", "description": "<p>e</p>", "html_url": "https://x/a/7"}]
        ),
        f"{BASE}/courses/101/discussion_topics?per_page=100": _FakeResponse(
            [{"id": 9, "title": "Forum", "message": "<p>d</p>", "html_url": "https://x/d/9"}]
        ),
    }
    _install_routes(monkeypatch, routes)

    content = CanvasClient(app_config).load_items("101")

    assert content.course_name == "Biology"
    assert [item.key for item in content.items] == [
        "page:welcome",
        "page:week-1",
        "assignment:7",
        "discussion:9",
    ]
    assert content.items[0].url == "https://canvas.example.edu/courses/101/pages/welcome"
    assert content.items[1].original_html == ""
    assert content.items[2].title == "Essay"
    assert content.items[3].original_html == "<p>d</p>"


def test_load_samples_skips_kinds_with_zero_count(
    app_config: Any, monkeypatch: pytest.MonkeyPatch
) -> None:
    routes = {
        f"{BASE}/courses/5": _FakeResponse({"id": 5, "name": "Model"}),
        f"{BASE}/courses/5/assignments?per_page=100": _FakeResponse([]),
    }
    requested = _install_routes(monkeypatch, routes)

    content = CanvasClient(app_config).load_samples(
        "5", SampleCounts(pages=0, assignments=2, discussions=0)
    )

    assert content.items == []
    assert requested == [f"{BASE}/courses/5", f"{BASE}/courses/5/assignments?per_page=100"]


def test_course_fetch_failure_raises_with_status(
    app_config: Any, monkeypatch: pytest.MonkeyPatch
) -> None:
    _install_routes(monkeypatch, {f"{BASE}/courses/404": _FakeResponse({}, status_code=404)})

    with pytest.raises(ExternalServiceError) as exc_info:
        CanvasClient(app_config).load_items("404")

    assert exc_info.value.status_code == 404
    assert exc_info.value.service == "canvas_api"


@pytest.mark.parametrize(
    ("kind", "identifier", "path", "body"),
    [
        (ItemKind.PAGE, "welcome", "/courses/101/pages/welcome", {"wiki_page": {"body": "<b>x</b>"}}),
        (ItemKind.ASSIGNMENT, 7, "/courses/101/assignments/7", {"assignment": {"description": "<b>x</b>"}}),
        (ItemKind.DISCUSSION, 9, "/courses/101/discussion_topics/9", {"message": "<b>x</b>"}),
    ],
)
def test_update_item_writes_kind_specific_field(
    app_config: Any,
    monkeypatch: pytest.MonkeyPatch,
    kind: ItemKind,
    identifier: str | int,
    path: str,
    body: dict[str, Any],
) -> None:
    captured: dict[str, Any] = {}

    def fake_put(url: str, **kwargs: Any) -> _FakeResponse:
        captured["url"] = url
        captured["json"] = kwargs["json"]
        return _FakeResponse({})

    monkeypatch.setattr(canvas_module.requests, "put", fake_put)

    CanvasClient(app_config).update_item("101", kind, identifier, "<b>x</b>")

    assert captured == {"url": f"{BASE}{path}", "json": body}


def test_transport_errors_are_retried(app_config: Any, monkeypatch: pytest.MonkeyPatch) -> None:
    object.__setattr__(app_config, "max_external_retries", 2)
    attempts = {"count": 0}

    def flaky_put(url: str, **_: Any) -> _FakeResponse:
        attempts["count"] += 1
        if attempts["count"] == 1:
            raise requests.ConnectionError("reset")
        return _FakeResponse({})

    monkeypatch.setattr(canvas_module.requests, "put", flaky_put)

    CanvasClient(app_config).update_item("101", ItemKind.DISCUSSION, 9, "<p></p>")

    assert attempts["count"] == 2
