"""Core typed models used across the course rewrite workflow."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Any, ClassVar


class ItemKind(StrEnum):
    """Canvas content kinds that carry rewritable HTML."""

    PAGE = "page"
    ASSIGNMENT = "assignment"
    DISCUSSION = "discussion"


class ItemStatus(StrEnum):
    """Review-facing status derived from an item's lifecycle state."""

    ORIGINAL = "original"
    REWRITTEN = "rewritten"
    APPROVED = "approved"
    ERROR = "error"


@dataclass(frozen=True)
class OriginalState:
    """Item as loaded from Canvas, never rewritten."""

    status: ClassVar[ItemStatus] = ItemStatus.ORIGINAL


@dataclass(frozen=True)
class RewrittenState:
    """Rewrite finished with no residual violations."""

    html: str
    status: ClassVar[ItemStatus] = ItemStatus.REWRITTEN


@dataclass(frozen=True)
class ApprovedState:
    """Rewrite approved by a reviewer and eligible for publishing."""

    html: str
    status: ClassVar[ItemStatus] = ItemStatus.APPROVED


@dataclass(frozen=True)
class FailedState:
    """Rewrite left residual violations or a collaborator call failed.

    ``html`` is kept when a candidate exists so reviewers can still inspect
    (and explicitly approve) it.
    """

    reason: str
    html: str | None = None
    status: ClassVar[ItemStatus] = ItemStatus.ERROR


ItemState = OriginalState | RewrittenState | ApprovedState | FailedState


@dataclass(frozen=True)
class ContentItem:
    """One rewritable unit of course content."""

    kind: ItemKind
    identifier: str | int
    title: str
    original_html: str
    url: str | None = None
    state: ItemState = field(default_factory=OriginalState)

    @property
    def key(self) -> str:
        return item_key(self.kind, self.identifier)

    @property
    def status(self) -> ItemStatus:
        return self.state.status

    @property
    def rewritten_html(self) -> str | None:
        if isinstance(self.state, OriginalState):
            return None
        return self.state.html

    @property
    def approved(self) -> bool:
        return isinstance(self.state, ApprovedState)

    @property
    def last_error(self) -> str | None:
        if isinstance(self.state, FailedState):
            return self.state.reason
        return None

    def with_rewrite(self, html: str, violations: list[str] | tuple[str, ...]) -> ContentItem:
        """Record a rewrite result; residual violations mark the item as failed."""
        if violations:
            return replace(self, state=FailedState(reason="; ".join(violations), html=html))
        return replace(self, state=RewrittenState(html=html))

    def with_failure(self, message: str) -> ContentItem:
        """Record a collaborator failure, keeping any earlier candidate HTML."""
        return replace(self, state=FailedState(reason=message, html=self.rewritten_html))

    def approve(self) -> ContentItem:
        """Approve a clean rewrite. Error items must be rewritten again first."""
        if isinstance(self.state, ApprovedState):
            return self
        if isinstance(self.state, FailedState) and self.state.html is not None:
            raise ValueError(
                f"Cannot approve {self.key}: rewritten content has unresolved errors"
            )
        if not isinstance(self.state, RewrittenState):
            raise ValueError(f"Cannot approve {self.key}: no rewritten content")
        return replace(self, state=ApprovedState(html=self.state.html))

    def unapprove(self) -> ContentItem:
        if not isinstance(self.state, ApprovedState):
            raise ValueError(f"Cannot unapprove {self.key}: item is not approved")
        return replace(self, state=RewrittenState(html=self.state.html))


@dataclass(frozen=True)
class PublishItem:
    """Approved HTML addressed to one Canvas object."""

    kind: ItemKind
    identifier: str | int
    html: str

    @property
    def key(self) -> str:
        return item_key(self.kind, self.identifier)


def item_key(kind: ItemKind | str, identifier: str | int) -> str:
    """Return the session-unique key for an item."""
    return f"{ItemKind(kind).value}:{identifier}"


@dataclass(frozen=True)
class StyleFlags:
    """Structural requirements detected from model-course content."""

    VERSION: ClassVar[int] = 1

    require_embed_wrapper: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {"version": self.VERSION, "require_embed_wrapper": self.require_embed_wrapper}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StyleFlags:
        return cls(require_embed_wrapper=bool(data.get("require_embed_wrapper", False)))


@dataclass(frozen=True)
class ValidationRule:
    """A single compliance check over (original, candidate, flags)."""

    rule_id: str
    name: str
    description: str
    check: Callable[[str, str, StyleFlags], str | None]

    def evaluate(self, original: str, candidate: str, flags: StyleFlags) -> str | None:
        return self.check(original, candidate, flags)


@dataclass(frozen=True)
class StyledConfidenceResult:
    """Heuristic estimate of whether HTML already matches the model style."""

    is_styled: bool
    confidence: float
    reasons: tuple[str, ...] = ()


@dataclass(frozen=True)
class SampleCounts:
    """How many model-course items of each kind feed style analysis."""

    pages: int = 3
    assignments: int = 2
    discussions: int = 2

    def for_kind(self, kind: ItemKind) -> int:
        if kind == ItemKind.PAGE:
            return self.pages
        if kind == ItemKind.ASSIGNMENT:
            return self.assignments
        return self.discussions


@dataclass(frozen=True)
class ModelProfile:
    """Model-course analysis result shared by every rewrite in a batch."""

    course_id: str
    course_name: str
    sample_counts: SampleCounts
    context: str
    signature_snippets: str
    style_guide: str
    flags: StyleFlags
