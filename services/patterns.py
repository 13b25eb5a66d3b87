"""Regex extractors for embeds and Canvas API references in raw markup."""

from __future__ import annotations

import re

_IFRAME_SRC_PATTERN = re.compile(
    r"""<iframe\b[^>]*\bsrc=['"]([^'"]+)['"][^>]*>""",
    re.IGNORECASE,
)
_API_ENDPOINT_PATTERN = re.compile(
    r"""data-api-endpoint=['"]([^'"]+)['"]""",
    re.IGNORECASE,
)
_IFRAME_OPEN_PATTERN = re.compile(r"<iframe", re.IGNORECASE)
_EMBED_WRAPPER_PATTERN = re.compile(r"dp-embed-wrapper", re.IGNORECASE)
_DP_CLASS_PATTERN = re.compile(r"dp-[\w-]+")

WRAPPER_ID_MARKER = 'id="dp-wrapper"'
EMBED_WRAPPER_MARKER = "dp-embed-wrapper"


def extract_iframe_srcs(html: str) -> list[str]:
    """Return every iframe ``src`` value in document order."""
    return _IFRAME_SRC_PATTERN.findall(html or "")


def extract_api_endpoints(html: str) -> list[str]:
    """Return every ``data-api-endpoint`` value in document order."""
    return _API_ENDPOINT_PATTERN.findall(html or "")


def count_iframes(html: str) -> int:
    return len(_IFRAME_OPEN_PATTERN.findall(html or ""))


def count_embed_wrappers(html: str) -> int:
    return len(_EMBED_WRAPPER_PATTERN.findall(html or ""))


def count_wrapper_ids(html: str) -> int:
    return (html or "").count(WRAPPER_ID_MARKER)


def count_dp_classes(html: str) -> int:
    # Counts occurrences, not distinct names.
    return len(_DP_CLASS_PATTERN.findall(html or ""))
