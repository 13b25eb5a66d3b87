"""Publish approved rewrites back to Canvas, with dry-run support."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Protocol

from config import AppConfig
from models import ItemKind, PublishItem
from services.failures import save_dead_letter
from services.observability import LogContext, StructuredLogger, get_logger
from services.resilience import ExternalServiceError


class ContentWriter(Protocol):
    def update_item(self, course_id: str, kind: ItemKind, identifier: str | int, html: str) -> None: ...


@dataclass(frozen=True)
class PublishResult:
    kind: ItemKind
    identifier: str | int
    success: bool
    error: str | None = None


@dataclass(frozen=True)
class PublishReport:
    """Outcome of one publish run."""

    dry_run: bool
    results: list[PublishResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def successful(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return self.total - self.successful


class CoursePublisher:
    """Write approved HTML into Canvas items one at a time."""

    def __init__(
        self,
        config: AppConfig,
        writer: ContentWriter,
        *,
        logger: StructuredLogger | None = None,
    ) -> None:
        self._config = config
        self._dry_run = config.enable_dry_run
        self._writer = writer
        self._logger = logger or get_logger()

    def publish(
        self,
        course_id: str,
        items: Sequence[PublishItem],
        *,
        dry_run: bool | None = None,
    ) -> PublishReport:
        """Publish ``items``; failures become results instead of exceptions."""
        dry_run = self._dry_run if dry_run is None else dry_run
        if dry_run:
            self._logger.info(
                "publish_dry_run",
                context=LogContext(course_id=course_id, stage="publish"),
                item_count=len(items),
            )
            return PublishReport(
                dry_run=True,
                results=[
                    PublishResult(kind=item.kind, identifier=item.identifier, success=True)
                    for item in items
                ],
            )

        run_context = LogContext(course_id=course_id, stage="publish")
        results: list[PublishResult] = []
        for item in items:
            context = run_context.for_item(item.key)
            try:
                self._writer.update_item(course_id, item.kind, item.identifier, item.html)
            except (ExternalServiceError, ValueError) as exc:
                status_code = exc.status_code if isinstance(exc, ExternalServiceError) else None
                self._logger.error("publish_failed", context=context, error=str(exc))
                save_dead_letter(
                    failure_dir=self._config.failure_log_dir,
                    stage="publish",
                    item_key=item.key,
                    error=str(exc),
                    status_code=status_code,
                    payload={"course_id": course_id, "html_length": len(item.html)},
                )
                results.append(
                    PublishResult(
                        kind=item.kind,
                        identifier=item.identifier,
                        success=False,
                        error=_format_error(exc, status_code),
                    )
                )
                continue

            self._logger.info("publish_succeeded", context=context)
            results.append(PublishResult(kind=item.kind, identifier=item.identifier, success=True))

        report = PublishReport(dry_run=False, results=results)
        self._logger.info(
            "publish_finished",
            context=run_context,
            total=report.total,
            successful=report.successful,
            failed=report.failed,
        )
        return report


def _format_error(exc: Exception, status_code: int | None) -> str:
    if status_code is None:
        return str(exc)
    return f"{status_code}: {exc}"
