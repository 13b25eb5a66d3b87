"""Heuristic scoring for content that already follows the model style."""

from __future__ import annotations

from models import StyledConfidenceResult, StyleFlags
from services.patterns import (
    WRAPPER_ID_MARKER,
    count_dp_classes,
    count_embed_wrappers,
    count_iframes,
)

STYLED_THRESHOLD = 0.6
BASE_CRITERIA = 4
MIN_DP_CLASS_OCCURRENCES = 5


def score_styled(html: str, flags: StyleFlags) -> StyledConfidenceResult:
    """Estimate whether ``html`` already carries DesignTools styling.

    The denominator starts at four criteria and gains one when the model
    requires embed wrappers. ``reasons`` lists satisfied criteria in
    evaluation order and does not affect the decision.
    """
    html = html or ""
    reasons: list[str] = []
    score = 0
    max_score = BASE_CRITERIA

    if WRAPPER_ID_MARKER in html:
        score += 1
        reasons.append("Has dp-wrapper")

    if "dp-header" in html and "dp-heading" in html:
        score += 1
        reasons.append("Has header structure")

    if "dp-content-block" in html:
        score += 1
        reasons.append("Has content blocks")

    if flags.require_embed_wrapper:
        max_score += 1
        iframe_count = count_iframes(html)
        if iframe_count == 0 or count_embed_wrappers(html) >= iframe_count:
            score += 1
            reasons.append("Embed wrappers present")

    dp_class_count = count_dp_classes(html)
    if dp_class_count >= MIN_DP_CLASS_OCCURRENCES:
        score += 1
        reasons.append(f"Has {dp_class_count} dp- classes")

    confidence = score / max_score
    return StyledConfidenceResult(
        is_styled=confidence >= STYLED_THRESHOLD,
        confidence=confidence,
        reasons=tuple(reasons),
    )
