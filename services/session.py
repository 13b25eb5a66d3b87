"""Explicit rewrite session passed between workflow steps.

The session is plain in-memory state. It is only serialized at the process
boundary by :class:`SessionStore`, which validates the JSON file against
:data:`services.schemas.SESSION_SCHEMA` on load.
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from jsonschema import ValidationError, validate

from models import (
    ApprovedState,
    ContentItem,
    FailedState,
    ItemKind,
    ItemState,
    ItemStatus,
    ModelProfile,
    OriginalState,
    PublishItem,
    RewrittenState,
    SampleCounts,
    StyleFlags,
)
from services.schemas import SESSION_SCHEMA

SESSION_FORMAT_VERSION = 1


class SessionFormatError(ValueError):
    """Raised when a persisted session file is unreadable or inconsistent."""


@dataclass
class RewriteOptions:
    """Reviewer-selected switches for the rewrite step."""

    preserve_existing_design_tools: bool = False
    skip_already_styled: bool = False
    use_item_instructions: bool = False


@dataclass
class RewriteSession:
    """Workflow state for one target course."""

    target_course_id: str | None = None
    target_course_name: str | None = None
    items: list[ContentItem] = field(default_factory=list)
    global_instructions: str = ""
    item_instructions: dict[str, str] = field(default_factory=dict)
    model_profile: ModelProfile | None = None
    options: RewriteOptions = field(default_factory=RewriteOptions)

    def load_target(self, course_id: str, course_name: str, items: Iterable[ContentItem]) -> None:
        """Replace the target course and all of its items."""
        self.target_course_id = course_id
        self.target_course_name = course_name
        self.items = list(items)
        self.item_instructions = {}

    def get_item(self, key: str) -> ContentItem:
        for item in self.items:
            if item.key == key:
                return item
        raise KeyError(f"Unknown item: {key}")

    def update_item(self, updated: ContentItem) -> None:
        for index, item in enumerate(self.items):
            if item.key == updated.key:
                self.items[index] = updated
                return
        raise KeyError(f"Unknown item: {updated.key}")

    def filter_items(
        self,
        *,
        kinds: Iterable[ItemKind] | None = None,
        statuses: Iterable[ItemStatus] | None = None,
        search: str = "",
    ) -> list[ContentItem]:
        """Return items matching every given filter; empty filters match all."""
        kind_set = set(kinds or ())
        status_set = set(statuses or ())
        needle = search.strip().lower()
        return [
            item
            for item in self.items
            if (not kind_set or item.kind in kind_set)
            and (not status_set or item.status in status_set)
            and (not needle or needle in item.title.lower())
        ]

    def item_counts(self) -> dict[ItemStatus, int]:
        counts = {status: 0 for status in ItemStatus}
        for item in self.items:
            counts[item.status] += 1
        return counts

    def approve(self, key: str) -> ContentItem:
        item = self.get_item(key).approve()
        self.update_item(item)
        return item

    def unapprove(self, key: str) -> ContentItem:
        item = self.get_item(key).unapprove()
        self.update_item(item)
        return item

    def approve_all(self, items: Iterable[ContentItem]) -> int:
        """Approve every given item that was rewritten cleanly; return the count."""
        approved = 0
        for item in items:
            if isinstance(item.state, RewrittenState):
                self.update_item(item.approve())
                approved += 1
        return approved

    def set_item_instructions(self, key: str, text: str) -> None:
        self.get_item(key)
        if text.strip():
            self.item_instructions[key] = text
        else:
            self.item_instructions.pop(key, None)

    def instructions_for(self, item: ContentItem) -> str:
        if not self.options.use_item_instructions:
            return ""
        return self.item_instructions.get(item.key, "")

    def publishable_items(self) -> list[PublishItem]:
        return [
            PublishItem(kind=item.kind, identifier=item.identifier, html=item.state.html)
            for item in self.items
            if isinstance(item.state, ApprovedState)
        ]

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": SESSION_FORMAT_VERSION,
            "target_course_id": self.target_course_id,
            "target_course_name": self.target_course_name,
            "items": [_item_to_dict(item) for item in self.items],
            "global_instructions": self.global_instructions,
            "item_instructions": dict(self.item_instructions),
            "model_profile": (
                _profile_to_dict(self.model_profile) if self.model_profile is not None else None
            ),
            "options": {
                "preserve_existing_design_tools": self.options.preserve_existing_design_tools,
                "skip_already_styled": self.options.skip_already_styled,
                "use_item_instructions": self.options.use_item_instructions,
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RewriteSession:
        try:
            validate(instance=data, schema=SESSION_SCHEMA)
        except ValidationError as exc:
            path = ".".join(str(part) for part in exc.path)
            context = f" at {path}" if path else ""
            raise SessionFormatError(f"Session validation failed{context}: {exc.message}") from exc

        profile_data = data.get("model_profile")
        return cls(
            target_course_id=data.get("target_course_id"),
            target_course_name=data.get("target_course_name"),
            items=[_item_from_dict(raw) for raw in data["items"]],
            global_instructions=data["global_instructions"],
            item_instructions=dict(data["item_instructions"]),
            model_profile=_profile_from_dict(profile_data) if profile_data else None,
            options=RewriteOptions(**data["options"]),
        )


class SessionStore:
    """Load and save a :class:`RewriteSession` as a JSON file."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> RewriteSession:
        """Return the stored session, or a fresh one when no file exists yet."""
        if not self.path.exists():
            return RewriteSession()
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise SessionFormatError(f"Session file {self.path} is not valid JSON") from exc
        return RewriteSession.from_dict(data)

    def save(self, session: RewriteSession) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        body = json.dumps(session.to_dict(), indent=2, sort_keys=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(body)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def _item_to_dict(item: ContentItem) -> dict[str, Any]:
    return {
        "kind": item.kind.value,
        "identifier": item.identifier,
        "title": item.title,
        "original_html": item.original_html,
        "url": item.url,
        "status": item.status.value,
        "rewritten_html": item.rewritten_html,
        "last_error": item.last_error,
    }


def _item_from_dict(raw: dict[str, Any]) -> ContentItem:
    status = ItemStatus(raw["status"])
    html = raw.get("rewritten_html")
    state: ItemState
    if status == ItemStatus.ORIGINAL:
        state = OriginalState()
    elif status == ItemStatus.ERROR:
        state = FailedState(reason=raw.get("last_error") or "Unknown error", html=html)
    elif html is None:
        raise SessionFormatError(
            f"Item {raw['kind']}:{raw['identifier']} is {status.value} but has no rewritten_html"
        )
    elif status == ItemStatus.APPROVED:
        state = ApprovedState(html=html)
    else:
        state = RewrittenState(html=html)

    return ContentItem(
        kind=ItemKind(raw["kind"]),
        identifier=raw["identifier"],
        title=raw["title"],
        original_html=raw["original_html"],
        url=raw.get("url"),
        state=state,
    )


def _profile_to_dict(profile: ModelProfile) -> dict[str, Any]:
    return {
        "course_id": profile.course_id,
        "course_name": profile.course_name,
        "sample_counts": {
            "pages": profile.sample_counts.pages,
            "assignments": profile.sample_counts.assignments,
            "discussions": profile.sample_counts.discussions,
        },
        "context": profile.context,
        "signature_snippets": profile.signature_snippets,
        "style_guide": profile.style_guide,
        "flags": profile.flags.to_dict(),
    }


def _profile_from_dict(raw: dict[str, Any]) -> ModelProfile:
    return ModelProfile(
        course_id=raw["course_id"],
        course_name=raw["course_name"],
        sample_counts=SampleCounts(**raw["sample_counts"]),
        context=raw["context"],
        signature_snippets=raw["signature_snippets"],
        style_guide=raw["style_guide"],
        flags=StyleFlags.from_dict(raw["flags"]),
    )
