"""DesignTools compliance rules for rewritten course HTML.

Every check is substring/regex based. Markup is never parsed into a DOM here,
so a marker anywhere in the text (comments and unrelated attributes included)
counts as present. DOM-aware checks live in :mod:`services.structure` and are
advisory only.
"""

from __future__ import annotations

from models import StyleFlags, ValidationRule
from services.patterns import (
    EMBED_WRAPPER_MARKER,
    count_embed_wrappers,
    count_iframes,
    count_wrapper_ids,
    extract_api_endpoints,
    extract_iframe_srcs,
)

BANNER_IMAGE_MARKER = "dp-banner-image"
PROGRESS_ICONS_MARKER = "dp-module-progress-icons"


def _check_single_wrapper(original: str, candidate: str, flags: StyleFlags) -> str | None:
    count = count_wrapper_ids(candidate)
    if count != 1:
        return f'Output must contain exactly one id="dp-wrapper" wrapper (found {count}).'
    return None


def _check_header_structure(original: str, candidate: str, flags: StyleFlags) -> str | None:
    has_header = "<header" in candidate
    has_dp_header = "dp-header" in candidate
    has_dp_heading = "dp-heading" in candidate
    if not (has_header and has_dp_header and has_dp_heading):
        return "Missing required DesignTools header structure (dp-header/dp-heading)."
    return None


def _check_iframes_preserved(original: str, candidate: str, flags: StyleFlags) -> str | None:
    for src in extract_iframe_srcs(original):
        if src not in candidate:
            return f"Missing original iframe src: {src}"
    return None


def _check_embed_wrappers(original: str, candidate: str, flags: StyleFlags) -> str | None:
    if not flags.require_embed_wrapper:
        return None

    iframe_count = count_iframes(original)
    if iframe_count == 0:
        return None

    # Count-based only: wrappers are not matched to individual iframes.
    if count_embed_wrappers(candidate) < iframe_count:
        return (
            "Model style requires dp-embed-wrapper around iframes; "
            "output lacks enough wrappers."
        )
    return None


def _check_api_endpoints_preserved(
    original: str, candidate: str, flags: StyleFlags
) -> str | None:
    for endpoint in extract_api_endpoints(original):
        if endpoint not in candidate:
            return f"Missing original data-api-endpoint: {endpoint}"
    return None


def _check_banner_image(original: str, candidate: str, flags: StyleFlags) -> str | None:
    if BANNER_IMAGE_MARKER in original and BANNER_IMAGE_MARKER not in candidate:
        return "Missing dp-banner-image block that existed in the original."
    return None


def _check_progress_icons(original: str, candidate: str, flags: StyleFlags) -> str | None:
    if PROGRESS_ICONS_MARKER in original and PROGRESS_ICONS_MARKER not in candidate:
        return "Missing dp-module-progress-icons placeholder that existed in the original."
    return None


VALIDATION_RULES: tuple[ValidationRule, ...] = (
    ValidationRule(
        rule_id="dp-wrapper-count",
        name="Single dp-wrapper",
        description='Output must contain exactly one id="dp-wrapper" wrapper',
        check=_check_single_wrapper,
    ),
    ValidationRule(
        rule_id="dp-header-structure",
        name="Header structure",
        description="Must have header with dp-header and dp-heading classes",
        check=_check_header_structure,
    ),
    ValidationRule(
        rule_id="iframe-preservation",
        name="Iframe preservation",
        description="All original iframe srcs must be preserved",
        check=_check_iframes_preserved,
    ),
    ValidationRule(
        rule_id="embed-wrapper",
        name="Embed wrapper requirement",
        description="If model uses dp-embed-wrapper, all iframes must be wrapped",
        check=_check_embed_wrappers,
    ),
    ValidationRule(
        rule_id="api-endpoint-preservation",
        name="API endpoint preservation",
        description="All original Canvas data-api-endpoint attributes must be preserved",
        check=_check_api_endpoints_preserved,
    ),
    ValidationRule(
        rule_id="banner-image",
        name="Banner image preservation",
        description="If original had dp-banner-image, it must be in output",
        check=_check_banner_image,
    ),
    ValidationRule(
        rule_id="progress-icons",
        name="Progress icons preservation",
        description="If original had dp-module-progress-icons, it must be in output",
        check=_check_progress_icons,
    ),
)


def validate_rewrite(
    original: str,
    candidate: str,
    flags: StyleFlags,
    rules: tuple[ValidationRule, ...] = VALIDATION_RULES,
) -> list[str]:
    """Run every rule and return violations in registration order."""
    violations: list[str] = []
    for rule in rules:
        violation = rule.evaluate(original, candidate, flags)
        if violation:
            violations.append(violation)
    return violations


def detect_style_flags(aggregate_html: str) -> StyleFlags:
    """Derive structural requirements from aggregated model-course HTML."""
    return StyleFlags(require_embed_wrapper=EMBED_WRAPPER_MARKER in (aggregate_html or ""))


def normalize_llm_html(text: str) -> str:
    """Strip whitespace and a surrounding markdown code fence from model output."""
    html = (text or "").strip()

    if html.startswith("```html"):
        html = html[len("```html") :]
    elif html.startswith("```"):
        html = html[3:]

    if html.endswith("```"):
        html = html[:-3]

    return html.strip()
