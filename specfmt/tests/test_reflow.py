"""Tests for the greedy reflow engine and its wrap contract."""

from __future__ import annotations

import pytest

from specfmt.core import WrapConfig, reflow
from specfmt.core.document import build_paragraph
from specfmt.core.reflow import display_width, iter_units, reflow_tokens
from specfmt.core.tokens import tokenize

PARAGRAPHS = [
    [
        "The <code>document.open()</code> method steps are to run the [=document open steps=]",
        "given [=this=], with <var>url</var> and <var>target</var>.",
    ],
    [
        "  <p>When the user agent is to <dfn>fire an event</dfn> named <var>e</var> at",
        "  <var>target</var>, see {{EventTarget/dispatchEvent()}} and",
        '  <a href="https://example.com/a b">the dispatch algorithm</a>.</p>',
    ],
    [
        "- a list item with `inline code spans` and ''css-value'' tokens that wraps onto",
        "  several lines when the column is narrow enough to force it",
    ],
    ["unclosed `code span and <b>bold</b> text with a very-long-hyphenated-word inside"],
]


def _paragraph(lines: list[str], config: WrapConfig | None = None):
    return build_paragraph(lines, 0, config or WrapConfig())


def _atomic_texts(lines: list[str]) -> list[str]:
    paragraph = _paragraph(lines)
    return [token.text for token in paragraph.tokens if token.atomic]


def test_example_width_ten() -> None:
    paragraph = _paragraph(["alpha beta gamma"])

    assert reflow(paragraph, 10) == ["alpha beta", "gamma"]


def test_oversized_atomic_span_gets_its_own_line() -> None:
    paragraph = _paragraph(["a `longtoken` b"])

    assert reflow(paragraph, 5) == ["a", "`longtoken`", "b"]


def test_unwraps_short_lines_before_rewrapping() -> None:
    paragraph = _paragraph(["one", "two", "three four"])

    assert reflow(paragraph, 100) == ["one two three four"]


def test_indentation_seeds_every_line() -> None:
    paragraph = _paragraph(["  <p>one two three four five</p>"])

    lines = reflow(paragraph, 16)

    assert lines == ["  <p>one two", "  three four", "  five</p>"]


def test_list_items_hang_under_the_item_text() -> None:
    paragraph = _paragraph(["* alpha beta gamma delta"])

    assert reflow(paragraph, 12) == ["* alpha beta", "  gamma", "  delta"]


def test_glued_tokens_move_together() -> None:
    paragraph = _paragraph(["see <code>foo</code>, then bar"])

    assert reflow(paragraph, 12) == ["see", "<code>foo</code>,", "then bar"]


def test_tabs_count_by_tab_width() -> None:
    tokens = tokenize("aa bb cc")

    assert reflow_tokens(tokens, "\t", 9, tab_width=4) == ["\taa bb", "\tcc"]
    assert reflow_tokens(tokens, "\t", 9, tab_width=8) == ["\taa", "\tbb", "\tcc"]


def test_empty_token_stream_has_no_lines() -> None:
    assert reflow_tokens([], "  ", 10) == []


def test_iter_units_groups_joined_tokens() -> None:
    assert list(iter_units(tokenize("a (<b>c</b>) d"))) == ["a", "(<b>c</b>)", "d"]


@pytest.mark.parametrize("lines", PARAGRAPHS)
@pytest.mark.parametrize("width", range(1, 101, 7))
def test_width_bound(lines: list[str], width: int) -> None:
    paragraph = _paragraph(lines)

    for line in reflow(paragraph, width):
        if display_width(line) <= width:
            continue
        body = line.strip()
        assert list(iter_units(tokenize(body))) == [body], line


@pytest.mark.parametrize("lines", PARAGRAPHS)
@pytest.mark.parametrize("width", range(1, 101, 7))
def test_atomic_spans_are_never_split(lines: list[str], width: int) -> None:
    output = reflow(_paragraph(lines), width)
    source = " ".join(lines)

    for span in _atomic_texts(lines):
        if source.count(span) != 1:
            continue
        assert sum(span in line for line in output) == 1, span


@pytest.mark.parametrize("lines", PARAGRAPHS)
@pytest.mark.parametrize("width", [10, 20, 33, 47, 60, 80, 100])
def test_reflow_is_idempotent(lines: list[str], width: int) -> None:
    paragraph = _paragraph(lines)

    first = reflow(paragraph, width)
    second = reflow(_paragraph(first), width)

    assert second == first


@pytest.mark.parametrize("lines", PARAGRAPHS)
@pytest.mark.parametrize("width", [5, 30, 100])
def test_content_is_preserved(lines: list[str], width: int) -> None:
    paragraph = _paragraph(lines)

    output = reflow(paragraph, width)

    assert [token.text for token in _paragraph(output).tokens] == [
        token.text for token in paragraph.tokens
    ]
