"""Tests for DOM-based advisory structure notes."""

from __future__ import annotations

from models import StyleFlags
from services.structure import audit_structure


def test_well_formed_markup_has_no_notes() -> None:
    html = (
        '<div id="dp-wrapper"><header class="dp-header"><h2 class="dp-heading">T</h2></header>'
        '<div class="dp-embed-wrapper"><iframe src="v"></iframe></div></div>'
    )

    assert audit_structure(html, StyleFlags(require_embed_wrapper=True)) == []


def test_wrapper_must_be_div() -> None:
    html = '<section id="dp-wrapper"><header class="dp-header"></header></section>'

    assert audit_structure(html, StyleFlags()) == ["#dp-wrapper should be a <div>, found <section>."]


def test_header_outside_wrapper() -> None:
    html = '<header class="dp-header"></header><div id="dp-wrapper"></div>'

    assert audit_structure(html, StyleFlags()) == ["header.dp-header should sit inside #dp-wrapper."]


def test_unwrapped_iframes_only_flagged_when_required() -> None:
    html = (
        '<div id="dp-wrapper"><header class="dp-header"></header>'
        '<iframe src="a"></iframe><div class="dp-embed-wrapper"></div><iframe src="b"></iframe></div>'
    )

    assert audit_structure(html, StyleFlags()) == []
    assert audit_structure(html, StyleFlags(require_embed_wrapper=True)) == [
        "2 iframe(s) are not inside a dp-embed-wrapper."
    ]


def test_markers_in_comments_do_not_satisfy_dom_checks() -> None:
    html = '<!-- <div class="dp-embed-wrapper"> --><iframe src="a"></iframe>'

    assert audit_structure(html, StyleFlags(require_embed_wrapper=True)) == [
        "1 iframe(s) are not inside a dp-embed-wrapper."
    ]
