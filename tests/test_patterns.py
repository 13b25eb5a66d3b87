"""Tests for regex extractors over raw markup."""

from __future__ import annotations

from services.patterns import (
    count_dp_classes,
    count_embed_wrappers,
    count_iframes,
    count_wrapper_ids,
    extract_api_endpoints,
    extract_iframe_srcs,
)


def test_extract_iframe_srcs_handles_case_quotes_and_attribute_order() -> None:
    html = (
        '<IFRAME SRC="https://a.example/1"></IFRAME>'
        "<iframe width='560' src='https://b.example/2' allowfullscreen></iframe>"
        '<iframe title="no source"></iframe>'
    )

    assert extract_iframe_srcs(html) == ["https://a.example/1", "https://b.example/2"]


def test_extract_api_endpoints_returns_document_order() -> None:
    html = (
        '<a data-api-endpoint="https://canvas/api/v1/courses/1/pages/b">b</a>'
        "<a DATA-API-ENDPOINT='https://canvas/api/v1/courses/1/pages/a'>a</a>"
    )

    assert extract_api_endpoints(html) == [
        "https://canvas/api/v1/courses/1/pages/b",
        "https://canvas/api/v1/courses/1/pages/a",
    ]


def test_extractors_return_empty_list_without_matches() -> None:
    assert extract_iframe_srcs("<p>plain</p>") == []
    assert extract_api_endpoints("") == []


def test_counters() -> None:
    html = (
        '<div id="dp-wrapper" class="dp-wrapper">'
        '<div class="DP-EMBED-WRAPPER"><Iframe src="x"></Iframe></div>'
        '<div class="dp-content-block dp-content-block"></div></div>'
    )

    assert count_iframes(html) == 1
    assert count_embed_wrappers(html) == 1
    assert count_wrapper_ids(html) == 1
    # dp-wrapper appears in the id and the class; duplicates are counted.
    assert count_dp_classes(html) == 4
