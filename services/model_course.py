"""Model-course sampling and style-guide extraction."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Protocol

from models import ContentItem, ItemKind, ModelProfile, SampleCounts
from services.canvas import CourseContent
from services.prompts import DESIGNTOOLS_SYSTEM_PROMPT, build_style_guide_prompt
from services.rewriter import RewriteCollaborator, RewriteInputError
from services.validator import detect_style_flags

logger = logging.getLogger(__name__)

MODEL_CONTEXT_MAX_CHARS = 14_000
SNIPPET_ITEM_MAX_CHARS = 900
SNIPPETS_MAX_CHARS = 3_500
SAMPLE_SEPARATOR = "\n\n---\n\n"

_KIND_ORDER = (ItemKind.PAGE, ItemKind.ASSIGNMENT, ItemKind.DISCUSSION)


class ModelCourseSource(Protocol):
    def load_samples(self, course_id: str, counts: SampleCounts) -> CourseContent: ...


def sample_items(items: Sequence[ContentItem], counts: SampleCounts) -> list[ContentItem]:
    """Take the first N items of each kind, pages then assignments then discussions."""
    samples: list[ContentItem] = []
    for kind in _KIND_ORDER:
        of_kind = [item for item in items if item.kind == kind]
        samples.extend(of_kind[: counts.for_kind(kind)])
    return samples


def build_model_context(samples: Sequence[ContentItem]) -> str:
    parts = [
        f"<!-- {sample.kind.value.upper()}: {sample.title} -->\n{sample.original_html}"
        for sample in samples
    ]
    return SAMPLE_SEPARATOR.join(parts)[:MODEL_CONTEXT_MAX_CHARS]


def build_signature_snippets(samples: Sequence[ContentItem]) -> str:
    parts = [
        f"[{sample.kind.value}] {sample.title}:\n{sample.original_html[:SNIPPET_ITEM_MAX_CHARS]}"
        for sample in samples
    ]
    return SAMPLE_SEPARATOR.join(parts)[:SNIPPETS_MAX_CHARS]


class StyleGuideGenerator:
    """Ask the LLM to describe the model course's DesignTools conventions."""

    def __init__(self, collaborator: RewriteCollaborator) -> None:
        self._collaborator = collaborator

    def generate(self, model_context: str) -> str:
        if not model_context.strip():
            raise RewriteInputError("Model context is empty; load model course samples first")
        return self._collaborator.generate(
            DESIGNTOOLS_SYSTEM_PROMPT,
            build_style_guide_prompt(model_context),
        ).strip()


class ModelCourseAnalyzer:
    """Build a :class:`ModelProfile` from a model course in one pass.

    Style flags are detected once here and carried immutably by the profile,
    so every rewrite in a batch validates against the same requirements.
    """

    def __init__(self, source: ModelCourseSource, collaborator: RewriteCollaborator) -> None:
        self._source = source
        self._style_guides = StyleGuideGenerator(collaborator)

    def analyze(self, course_id: str, counts: SampleCounts | None = None) -> ModelProfile:
        counts = counts or SampleCounts()
        content = self._source.load_samples(course_id, counts)
        samples = sample_items(content.items, counts)
        context = build_model_context(samples)
        snippets = build_signature_snippets(samples)
        style_guide = self._style_guides.generate(context)
        flags = detect_style_flags(context or style_guide)
        logger.info(
            "Analyzed model course %s: %d samples, require_embed_wrapper=%s",
            course_id,
            len(samples),
            flags.require_embed_wrapper,
        )
        return ModelProfile(
            course_id=course_id,
            course_name=content.course_name,
            sample_counts=counts,
            context=context,
            signature_snippets=snippets,
            style_guide=style_guide,
            flags=flags,
        )
