"""Rewrite pipeline: one draft, one validation, at most one repair."""

from __future__ import annotations

import logging
import threading
import time
import uuid
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

from config import AppConfig
from models import ContentItem, ModelProfile, StyleFlags
from services.failures import save_dead_letter
from services.observability import LogContext, StructuredLogger, get_logger
from services.prompts import DESIGNTOOLS_SYSTEM_PROMPT, build_repair_prompt, build_rewrite_prompt
from services.resilience import EmptyCompletionError, ExternalServiceError
from services.styling import score_styled
from services.validator import normalize_llm_html, validate_rewrite

if TYPE_CHECKING:
    from services.session import RewriteSession

logger = logging.getLogger(__name__)


class RewriteInputError(ValueError):
    """Raised when a rewrite is requested without the inputs it needs."""


class RewriteCollaborator(Protocol):
    def generate(self, system_prompt: str, user_prompt: str) -> str: ...


@dataclass(frozen=True)
class RewriteRequest:
    """Everything a single item rewrite needs."""

    original_html: str
    title: str
    kind: str
    style_guide: str
    signature_snippets: str
    flags: StyleFlags
    global_instructions: str = ""
    item_instructions: str = ""
    preserve_existing: bool = False


@dataclass(frozen=True)
class RewriteOutcome:
    """Resolved rewrite: the kept HTML and the violations it still has."""

    html: str
    violations: tuple[str, ...]
    draft_violations: tuple[str, ...]
    repair_attempted: bool
    repair_accepted: bool

    @property
    def clean(self) -> bool:
        return not self.violations


class RewriteOrchestrator:
    """Drive draft -> validate -> optional single repair for one item.

    Collaborator failures propagate unchanged, except an empty repair
    completion, which keeps the draft. Transport retries belong to the
    collaborator's own resilience policy.
    """

    def __init__(
        self,
        collaborator: RewriteCollaborator,
        *,
        logger: StructuredLogger | None = None,
    ) -> None:
        self._collaborator = collaborator
        self._logger = logger or get_logger()

    def rewrite(self, request: RewriteRequest, *, context: LogContext | None = None) -> RewriteOutcome:
        if not request.style_guide.strip():
            raise RewriteInputError("A style guide is required; analyze the model course first")
        if not request.original_html.strip():
            raise RewriteInputError(f'"{request.title}" has no original HTML to rewrite')

        prompt = build_rewrite_prompt(
            original_html=request.original_html,
            title=request.title,
            kind=request.kind,
            style_guide=request.style_guide,
            signature_snippets=request.signature_snippets,
            global_instructions=request.global_instructions,
            item_instructions=request.item_instructions,
            preserve_existing=request.preserve_existing,
        )
        draft = normalize_llm_html(self._collaborator.generate(DESIGNTOOLS_SYSTEM_PROMPT, prompt))
        draft_violations = tuple(validate_rewrite(request.original_html, draft, request.flags))
        if not draft_violations:
            return RewriteOutcome(
                html=draft,
                violations=(),
                draft_violations=(),
                repair_attempted=False,
                repair_accepted=False,
            )

        self._logger.info(
            "repair_attempted",
            context=context,
            violation_count=len(draft_violations),
        )
        try:
            repaired = normalize_llm_html(
                self._collaborator.generate(
                    DESIGNTOOLS_SYSTEM_PROMPT,
                    build_repair_prompt(draft, draft_violations),
                )
            )
        except EmptyCompletionError as exc:
            self._logger.warning("repair_empty", context=context, error=str(exc))
            return RewriteOutcome(
                html=draft,
                violations=draft_violations,
                draft_violations=draft_violations,
                repair_attempted=True,
                repair_accepted=False,
            )
        repaired_violations = tuple(
            validate_rewrite(request.original_html, repaired, request.flags)
        )

        if len(repaired_violations) < len(draft_violations):
            self._logger.info(
                "repair_accepted",
                context=context,
                before=len(draft_violations),
                after=len(repaired_violations),
            )
            return RewriteOutcome(
                html=repaired,
                violations=repaired_violations,
                draft_violations=draft_violations,
                repair_attempted=True,
                repair_accepted=True,
            )

        return RewriteOutcome(
            html=draft,
            violations=draft_violations,
            draft_violations=draft_violations,
            repair_attempted=True,
            repair_accepted=False,
        )


class ItemOutcome(StrEnum):
    CLEAN = "clean"
    VIOLATED = "violated"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class ItemRecord:
    """Per-item line in a batch report."""

    key: str
    outcome: ItemOutcome
    duration_seconds: float
    detail: tuple[str, ...] = ()


@dataclass
class BatchReport:
    batch_id: str
    records: list[ItemRecord] = field(default_factory=list)
    duration_seconds: float = 0.0

    def count(self, outcome: ItemOutcome) -> int:
        return sum(1 for record in self.records if record.outcome == outcome)

    @property
    def clean(self) -> int:
        return self.count(ItemOutcome.CLEAN)

    @property
    def violated(self) -> int:
        return self.count(ItemOutcome.VIOLATED)

    @property
    def failed(self) -> int:
        return self.count(ItemOutcome.FAILED)

    @property
    def skipped(self) -> int:
        return self.count(ItemOutcome.SKIPPED)


class BatchRewriter:
    """Rewrite many session items, sequentially unless workers are configured."""

    def __init__(
        self,
        config: AppConfig,
        collaborator: RewriteCollaborator,
        *,
        logger: StructuredLogger | None = None,
    ) -> None:
        self._config = config
        self._logger = logger or get_logger()
        self._orchestrator = RewriteOrchestrator(collaborator, logger=self._logger)
        self._lock = threading.Lock()

    def run(self, session: RewriteSession, items: Sequence[ContentItem]) -> BatchReport:
        """Rewrite ``items`` in place inside ``session`` and return the report."""
        profile = session.model_profile
        if profile is None or not profile.style_guide.strip():
            raise RewriteInputError("A style guide is required; analyze the model course first")

        report = BatchReport(batch_id=uuid.uuid4().hex[:12])
        base_context = LogContext(
            course_id=session.target_course_id, stage="rewrite", batch_id=report.batch_id
        )
        self._logger.info("batch_started", context=base_context, item_count=len(items))
        started = time.perf_counter()

        workers = max(1, min(self._config.rewrite_workers, len(items) or 1))
        if workers == 1:
            for item in items:
                self._process(session, profile, item, report)
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                futures = [pool.submit(self._process, session, profile, item, report) for item in items]
                for future in as_completed(futures):
                    future.result()
            order = {item.key: index for index, item in enumerate(items)}
            report.records.sort(key=lambda record: order[record.key])

        report.duration_seconds = time.perf_counter() - started
        self._logger.info(
            "batch_finished",
            context=base_context,
            clean=report.clean,
            violated=report.violated,
            failed=report.failed,
            skipped=report.skipped,
            duration_seconds=round(report.duration_seconds, 3),
        )
        return report

    def _process(
        self,
        session: RewriteSession,
        profile: ModelProfile,
        item: ContentItem,
        report: BatchReport,
    ) -> None:
        context = LogContext(
            course_id=session.target_course_id, stage="rewrite", batch_id=report.batch_id
        ).for_item(item.key)
        started = time.perf_counter()

        if session.options.skip_already_styled:
            score = score_styled(item.original_html, profile.flags)
            if score.is_styled:
                self._logger.info("item_skipped", context=context, confidence=score.confidence)
                self._record(
                    report,
                    ItemRecord(item.key, ItemOutcome.SKIPPED, time.perf_counter() - started, score.reasons),
                )
                return

        request = RewriteRequest(
            original_html=item.original_html,
            title=item.title,
            kind=item.kind.value,
            style_guide=profile.style_guide,
            signature_snippets=profile.signature_snippets,
            flags=profile.flags,
            global_instructions=session.global_instructions,
            item_instructions=session.instructions_for(item),
            preserve_existing=session.options.preserve_existing_design_tools,
        )

        try:
            outcome = self._orchestrator.rewrite(request, context=context)
        except (ExternalServiceError, RewriteInputError) as exc:
            message = str(exc)
            self._logger.error("item_failed", context=context, error=message)
            if isinstance(exc, ExternalServiceError):
                save_dead_letter(
                    failure_dir=self._config.failure_log_dir,
                    stage="rewrite",
                    item_key=item.key,
                    error=message,
                    status_code=exc.status_code,
                    payload={"title": item.title, "course_id": session.target_course_id},
                )
            with self._lock:
                session.update_item(item.with_failure(message))
                report.records.append(
                    ItemRecord(item.key, ItemOutcome.FAILED, time.perf_counter() - started, (message,))
                )
            return

        with self._lock:
            session.update_item(item.with_rewrite(outcome.html, outcome.violations))
            report.records.append(
                ItemRecord(
                    item.key,
                    ItemOutcome.CLEAN if outcome.clean else ItemOutcome.VIOLATED,
                    time.perf_counter() - started,
                    outcome.violations,
                )
            )
        self._logger.info(
            "item_rewritten",
            context=context,
            violations=len(outcome.violations),
            repair_attempted=outcome.repair_attempted,
            repair_accepted=outcome.repair_accepted,
        )

    def _record(self, report: BatchReport, record: ItemRecord) -> None:
        with self._lock:
            report.records.append(record)
