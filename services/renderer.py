"""Side-by-side HTML review report for a rewrite session."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape

from models import ContentItem, StyleFlags, StyledConfidenceResult
from services.session import RewriteSession
from services.structure import audit_structure
from services.styling import score_styled
from services.validator import validate_rewrite


@dataclass(frozen=True)
class ReviewRow:
    """Template-facing view of one item."""

    item: ContentItem
    violations: list[str]
    score: StyledConfidenceResult | None
    structure_notes: list[str]


class ReviewReportRenderer:
    """Render a session into a standalone review document via Jinja."""

    def __init__(self, template_path: Path) -> None:
        self._template_path = template_path
        self._environment = Environment(
            loader=FileSystemLoader(str(template_path.parent)),
            autoescape=select_autoescape(enabled_extensions=("html", "xml")),
            undefined=StrictUndefined,
            trim_blocks=True,
            lstrip_blocks=True,
        )

    def render(self, session: RewriteSession, items: list[ContentItem] | None = None) -> str:
        flags = session.model_profile.flags if session.model_profile else StyleFlags()
        rows = [_build_row(item, flags) for item in (session.items if items is None else items)]
        template = self._environment.get_template(self._template_path.name)
        return template.render(
            course_id=session.target_course_id or "",
            course_name=session.target_course_name or "",
            model_course_name=session.model_profile.course_name if session.model_profile else "",
            counts={status.value: count for status, count in session.item_counts().items()},
            rows=rows,
            generated_at=datetime.now(UTC).strftime("%Y-%m-%d %H:%M UTC"),
        )


def _build_row(item: ContentItem, flags: StyleFlags) -> ReviewRow:
    html = item.rewritten_html
    if html is None:
        return ReviewRow(item=item, violations=[], score=None, structure_notes=[])
    return ReviewRow(
        item=item,
        violations=validate_rewrite(item.original_html, html, flags),
        score=score_styled(html, flags),
        structure_notes=audit_structure(html, flags),
    )
