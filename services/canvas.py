"""Canvas LMS REST adapter for reading and writing course HTML."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import requests

from config import AppConfig
from models import ContentItem, ItemKind, SampleCounts
from services.resilience import ExternalServiceError, ResiliencePolicy

logger = logging.getLogger(__name__)

PAGE_SIZE = 100
_TRANSPORT_ERRORS = (requests.ConnectionError, requests.Timeout)


@dataclass(frozen=True)
class CourseContent:
    """A course name plus the rewritable items loaded from it."""

    course_name: str
    items: list[ContentItem]


class CanvasClient:
    """Read course content and write back HTML bodies through the Canvas API."""

    def __init__(self, config: AppConfig) -> None:
        self._base_url = config.canvas_base_url
        self._token = config.canvas_api_token
        self._timeout = config.request_timeout_seconds
        self._resilience = ResiliencePolicy(
            name="canvas_api",
            max_attempts=config.max_external_retries,
            retry_on=_TRANSPORT_ERRORS,
        )

    @property
    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._token}"}

    def _api_url(self, path: str) -> str:
        return f"{self._base_url}/api/v1{path}"

    def _get(self, url: str) -> requests.Response:
        def _operation() -> requests.Response:
            response = requests.get(url, headers=self._headers, timeout=self._timeout)
            response.raise_for_status()
            return response

        return self._resilience.execute(_operation)

    def _get_all(self, path: str) -> list[dict[str, Any]]:
        """Follow ``Link: rel="next"`` headers until every page is collected."""
        results: list[dict[str, Any]] = []
        url: str | None = self._api_url(f"{path}?per_page={PAGE_SIZE}")
        while url:
            response = self._get(url)
            payload = response.json()
            if not isinstance(payload, list):
                raise ExternalServiceError(
                    f"Canvas returned a non-list payload for {path}",
                    service="canvas_api",
                    status_code=response.status_code,
                )
            results.extend(entry for entry in payload if isinstance(entry, dict))
            url = response.links.get("next", {}).get("url")
        return results

    def get_course(self, course_id: str) -> dict[str, Any]:
        payload = self._get(self._api_url(f"/courses/{course_id}")).json()
        if not isinstance(payload, dict):
            raise ExternalServiceError(
                f"Canvas returned an unexpected course payload for {course_id}",
                service="canvas_api",
            )
        return payload

    def load_items(
        self,
        course_id: str,
        *,
        include_pages: bool = True,
        include_assignments: bool = True,
        include_discussions: bool = True,
    ) -> CourseContent:
        """Load the course name and every requested kind of item, pages first."""
        course = self.get_course(course_id)
        items: list[ContentItem] = []

        if include_pages:
            items.extend(self._load_pages(course_id))
        if include_assignments:
            for assignment in self._get_all(f"/courses/{course_id}/assignments"):
                items.append(
                    ContentItem(
                        kind=ItemKind.ASSIGNMENT,
                        identifier=assignment["id"],
                        title=str(assignment.get("name") or ""),
                        original_html=assignment.get("description") or "",
                        url=assignment.get("html_url"),
                    )
                )
        if include_discussions:
            for topic in self._get_all(f"/courses/{course_id}/discussion_topics"):
                items.append(
                    ContentItem(
                        kind=ItemKind.DISCUSSION,
                        identifier=topic["id"],
                        title=str(topic.get("title") or ""),
                        original_html=topic.get("message") or "",
                        url=topic.get("html_url"),
                    )
                )

        logger.info("Loaded %d items from course %s", len(items), course_id)
        return CourseContent(course_name=str(course.get("name") or course_id), items=items)

    def load_samples(self, course_id: str, counts: SampleCounts) -> CourseContent:
        """Load only the kinds that have a non-zero sample count."""
        return self.load_items(
            course_id,
            include_pages=counts.pages > 0,
            include_assignments=counts.assignments > 0,
            include_discussions=counts.discussions > 0,
        )

    def _load_pages(self, course_id: str) -> list[ContentItem]:
        # The listing endpoint omits page bodies, so each page is fetched in full.
        pages: list[ContentItem] = []
        for summary in self._get_all(f"/courses/{course_id}/pages"):
            slug = summary.get("url")
            if not slug:
                continue
            try:
                full = self._get(self._api_url(f"/courses/{course_id}/pages/{slug}")).json()
            except ExternalServiceError as exc:
                logger.warning("Skipping page %s in course %s: %s", slug, course_id, exc)
                continue
            pages.append(
                ContentItem(
                    kind=ItemKind.PAGE,
                    identifier=str(full.get("url") or slug),
                    title=str(full.get("title") or ""),
                    original_html=full.get("body") or "",
                    url=f"{self._base_url}/courses/{course_id}/pages/{full.get('url') or slug}",
                )
            )
        return pages

    def update_item(self, course_id: str, kind: ItemKind, identifier: str | int, html: str) -> None:
        """Write ``html`` into the body field that matches ``kind``."""
        if kind == ItemKind.PAGE:
            path = f"/courses/{course_id}/pages/{identifier}"
            body: dict[str, Any] = {"wiki_page": {"body": html}}
        elif kind == ItemKind.ASSIGNMENT:
            path = f"/courses/{course_id}/assignments/{identifier}"
            body = {"assignment": {"description": html}}
        elif kind == ItemKind.DISCUSSION:
            path = f"/courses/{course_id}/discussion_topics/{identifier}"
            body = {"message": html}
        else:
            raise ValueError(f"Unknown item kind: {kind}")

        url = self._api_url(path)

        def _operation() -> requests.Response:
            response = requests.put(url, headers=self._headers, json=body, timeout=self._timeout)
            response.raise_for_status()
            return response

        self._resilience.execute(_operation)
