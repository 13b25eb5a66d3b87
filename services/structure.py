"""DOM-aware advisory checks over rewritten HTML.

These notes are shown to reviewers only. They never feed the text-based
validator or the repair loop.
"""

from __future__ import annotations

from bs4 import BeautifulSoup, Tag

from models import StyleFlags
from services.patterns import EMBED_WRAPPER_MARKER


def audit_structure(candidate: str, flags: StyleFlags) -> list[str]:
    soup = BeautifulSoup(candidate, "html.parser")
    notes: list[str] = []

    wrapper = soup.find(id="dp-wrapper")
    if isinstance(wrapper, Tag) and wrapper.name != "div":
        notes.append(f"#dp-wrapper should be a <div>, found <{wrapper.name}>.")

    for header in soup.select("header.dp-header"):
        if not isinstance(wrapper, Tag) or wrapper not in header.parents:
            notes.append("header.dp-header should sit inside #dp-wrapper.")
            break

    if flags.require_embed_wrapper:
        unwrapped = [
            iframe
            for iframe in soup.find_all("iframe")
            if not any(EMBED_WRAPPER_MARKER in (parent.get("class") or []) for parent in iframe.parents)
        ]
        if unwrapped:
            notes.append(f"{len(unwrapped)} iframe(s) are not inside a dp-embed-wrapper.")

    return notes
