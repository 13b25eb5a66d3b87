"""Tests for model-course sampling and analysis."""

from __future__ import annotations

import pytest

from models import ContentItem, ItemKind, SampleCounts
from services.canvas import CourseContent
from services.model_course import (
    ModelCourseAnalyzer,
    StyleGuideGenerator,
    build_model_context,
    build_signature_snippets,
    sample_items,
)
from services.rewriter import RewriteInputError


def _item(kind: ItemKind, identifier: int, html: str = "<p>x</p>") -> ContentItem:
    return ContentItem(kind=kind, identifier=identifier, title=f"{kind.value} {identifier}", original_html=html)


class _FakeSource:
    def __init__(self, items: list[ContentItem]) -> None:
        self._items = items
        self.requested: list[tuple[str, SampleCounts]] = []

    def load_samples(self, course_id: str, counts: SampleCounts) -> CourseContent:
        self.requested.append((course_id, counts))
        return CourseContent(course_name="Model Course", items=self._items)


class _FakeCollaborator:
    def __init__(self, response: str = "  STYLE GUIDE  ") -> None:
        self.response = response
        self.prompts: list[str] = []

    def generate(self, system_prompt: str, user_prompt: str) -> str:
        self.prompts.append(user_prompt)
        return self.response


def test_sample_items_takes_first_n_per_kind_in_kind_order() -> None:
    items = [
        _item(ItemKind.DISCUSSION, 1),
        _item(ItemKind.PAGE, 1),
        _item(ItemKind.ASSIGNMENT, 1),
        _item(ItemKind.PAGE, 2),
        _item(ItemKind.ASSIGNMENT, 2),
        _item(ItemKind.ASSIGNMENT, 3),
    ]

    samples = sample_items(items, SampleCounts(pages=1, assignments=2, discussions=0))

    assert [item.key for item in samples] == ["page:1", "assignment:1", "assignment:2"]


def test_model_context_format_and_truncation() -> None:
    samples = [_item(ItemKind.PAGE, 1, "<div>a</div>"), _item(ItemKind.DISCUSSION, 2, "<div>b</div>")]

    assert build_model_context(samples) == (
        "<!-- PAGE: page 1 -->\n<div>a</div>\n\n---\n\n<!-- DISCUSSION: discussion 2 -->\n<div>b</div>"
    )
    assert len(build_model_context([_item(ItemKind.PAGE, 1, "x" * 20_000)])) == 14_000


def test_signature_snippets_truncate_each_item_and_total() -> None:
    samples = [_item(ItemKind.PAGE, index, "y" * 1_000) for index in range(5)]

    snippets = build_signature_snippets(samples)

    assert snippets.startswith("[page] page 0:\n" + "y" * 900 + "\n\n---\n\n")
    assert len(snippets) == 3_500


def test_style_guide_requires_context() -> None:
    collaborator = _FakeCollaborator()

    with pytest.raises(RewriteInputError):
        StyleGuideGenerator(collaborator).generate("   ")

    assert collaborator.prompts == []


def test_analyze_builds_profile_with_flags_from_context() -> None:
    source = _FakeSource(
        [
            _item(ItemKind.PAGE, 1, '<div class="dp-embed-wrapper"><iframe src="v"></iframe></div>'),
            _item(ItemKind.ASSIGNMENT, 2),
        ]
    )
    collaborator = _FakeCollaborator()

    profile = ModelCourseAnalyzer(source, collaborator).analyze("55")

    assert source.requested == [("55", SampleCounts())]
    assert profile.course_name == "Model Course"
    assert profile.style_guide == "STYLE GUIDE"
    assert profile.flags.require_embed_wrapper is True
    assert "MODEL COURSE SAMPLES" in collaborator.prompts[0]
    assert "<!-- ASSIGNMENT: assignment 2 -->" in profile.context


def test_analyze_with_no_samples_is_an_input_error() -> None:
    with pytest.raises(RewriteInputError):
        ModelCourseAnalyzer(_FakeSource([]), _FakeCollaborator()).analyze("55")
