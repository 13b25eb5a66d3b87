"""Prompt construction for style-guide extraction, rewrites and repairs."""

from __future__ import annotations

DESIGNTOOLS_SYSTEM_PROMPT = (
    "You are a deterministic HTML transformer for Canvas DesignTools (DesignPLUS). "
    "Restructure and style HTML to match a model course's DesignTools patterns "
    "while preserving all instructional text and media verbatim.\n\n"
    "OUTPUT:\n"
    "- Return ONLY the transformed HTML. No code fences, markdown or commentary.\n\n"
    "CONTENT PRESERVATION:\n"
    "- Keep instructional text verbatim unless the user explicitly asks for rewording.\n"
    "- Preserve every URL exactly: href, src, data-api-endpoint.\n"
    "- Keep Canvas attributes: id, class, data-*, title, target, rel, style.\n"
    "- Never modify iframe, image or link URLs. Never delete content.\n\n"
    "DESIGNTOOLS STRUCTURE:\n"
    '- Exactly one <div id="dp-wrapper" class="dp-wrapper ..."> wrapper.\n'
    '- First child is <header class="dp-header"> containing <h2 class="dp-heading">, '
    "using dp-header-pre and dp-header-title spans.\n"
    '- Sections use <div class="dp-content-block"> with data-title/data-category.\n'
    "- Icons use the dp-has-icon pattern with a hidden dp-icon-content span.\n"
    "- Wrap iframes in dp-embed-wrapper when the model course does.\n"
    "- Panels use dp-panels-wrapper (tabs, accordion, expander). Keep dp-callout and card "
    "structures intact.\n\n"
    "SPECIAL ELEMENTS:\n"
    "- Preserve dp-banner-image, dp-module-progress-icons and data-api-endpoint blocks "
    "when the original has them.\n\n"
    "When given a style guide, follow its structural patterns, class combinations, "
    "nesting hierarchy and spacing."
)

_STYLE_GUIDE_FOCUS = (
    "1. Wrapper structure and variant classes\n"
    "2. Header format (dp-header, dp-heading, pre/title spans)\n"
    "3. Content block organization\n"
    "4. Icon usage patterns\n"
    "5. Panel modes (tabs, accordion, expander)\n"
    "6. Embed wrapper usage\n"
    "7. Callout/card structures\n"
    "8. Any consistent class combinations\n"
)

_FULL_TRANSFORM_BLOCK = (
    "## Full Transform Mode\n"
    "Completely restructure the content to match the model course style.\n"
    "- Apply the model's DesignTools patterns throughout\n"
    "- Reorganize content structure as needed to match model patterns\n"
    "- Ensure consistent styling from start to finish\n"
)

_PRESERVE_MODE_BLOCK = (
    "## Preserve Mode (IMPORTANT)\n"
    "The original content may already have some DesignTools styling.\n"
    "- PRESERVE existing dp-* structures that already match the model style\n"
    "- Only ADD missing DesignTools patterns where the content lacks styling\n"
    "- Do NOT restructure sections that already have dp-content-block wrappers\n"
    "- Do NOT change existing dp-header structures that match the model pattern\n"
    "- If content is already fully styled, return it with minimal changes\n"
)


def build_style_guide_prompt(model_context: str) -> str:
    return (
        "Analyze the following HTML samples from a Canvas model course and extract a "
        "concise style guide describing the DesignTools/DesignPLUS patterns used.\n\n"
        f"Focus on:\n{_STYLE_GUIDE_FOCUS}\n"
        "Be concise but thorough. The style guide will be used to transform other "
        "content to match this style.\n\n"
        "---\n\n"
        f"MODEL COURSE SAMPLES:\n\n{model_context}\n\n"
        "---\n\n"
        "Extract a style guide describing the DesignTools patterns observed:"
    )


def build_rewrite_prompt(
    *,
    original_html: str,
    title: str,
    kind: str,
    style_guide: str,
    signature_snippets: str,
    global_instructions: str = "",
    item_instructions: str = "",
    preserve_existing: bool = False,
) -> str:
    """Assemble the rewrite prompt.

    Sections always appear in this order: style guide, signature snippets,
    mode block, global instructions, item instructions, original HTML and the
    output directive. Empty instruction sections are omitted.
    """
    sections = [
        f'Transform the following {kind} titled "{title}" to match the model course style.\n',
        f"## Style Guide\n{style_guide}\n",
        f"## Signature Snippets (structural examples)\n{signature_snippets}\n",
        _PRESERVE_MODE_BLOCK if preserve_existing else _FULL_TRANSFORM_BLOCK,
    ]
    if global_instructions.strip():
        sections.append(f"## Global Instructions\n{global_instructions.strip()}\n")
    if item_instructions.strip():
        sections.append(f"## Item-Specific Instructions\n{item_instructions.strip()}\n")
    sections.append(
        "---\n\n"
        f"ORIGINAL HTML TO TRANSFORM:\n\n{original_html}\n\n"
        "---\n\n"
        "Output the transformed HTML only:"
    )
    return "\n".join(sections)


def build_repair_prompt(candidate_html: str, violations: list[str] | tuple[str, ...]) -> str:
    numbered = "\n".join(f"{index}. {violation}" for index, violation in enumerate(violations, 1))
    return (
        "The following HTML has validation errors. Fix ONLY these specific issues:\n\n"
        f"VIOLATIONS:\n{numbered}\n\n"
        "Do not change anything else. Output only the corrected HTML.\n\n"
        "---\n\n"
        f"HTML TO FIX:\n\n{candidate_html}\n\n"
        "---\n\n"
        "Output the corrected HTML only:"
    )
