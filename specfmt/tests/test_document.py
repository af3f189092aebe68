from __future__ import annotations

import pytest

from specfmt.core import (
    BlockKind,
    MalformedAtomicSpan,
    Paragraph,
    WrapConfig,
    format_text,
    parse_document,
)

SPEC = """\
<h2 id="intro">Introduction</h2>

This specification defines the <dfn>event loop</dfn>. Each [=agent=] has an
associated event loop, which is unique to that agent.

<pre class=idl>
interface   Example   {
  undefined   run();
};
</pre>

* The first item refers to {{Window/postMessage()}} and
  continues under the marker.
* The second item.

<!--
  a comment    that must not move
-->

| a | b |
"""


def _kinds(text: str) -> list[BlockKind]:
    return [block.kind for block in parse_document(text).blocks]


def test_render_is_lossless() -> None:
    for text in (SPEC, "", "no newline", "a\r\nb\r\n\r\n", "x\n\n\n"):
        assert parse_document(text).render() == text


def test_blocks_cover_every_line_once() -> None:
    document = parse_document(SPEC)

    starts = [block.start for block in document.blocks]
    assert starts == sorted(starts)
    assert sum(len(block.lines) for block in document.blocks) == len(
        SPEC.splitlines()
    )


def test_block_kinds() -> None:
    assert _kinds("a\n\n<pre>\nx\n</pre>\n# h\n") == [
        BlockKind.PROSE,
        BlockKind.BLANK,
        BlockKind.VERBATIM,
        BlockKind.STRUCTURAL,
    ]


def test_pre_block_is_copied_verbatim() -> None:
    text = "Intro line one\nline two\n<pre>\n  a   b\n</pre>\nafter\n"

    assert format_text(text) == "Intro line one line two\n<pre>\n  a   b\n</pre>\nafter\n"


def test_fenced_code_is_copied_verbatim() -> None:
    text = "```js\nfoo    bar\n   baz\n```\n"

    assert format_text(text, WrapConfig(width=5)) == text


def test_multiline_comment_is_copied_verbatim() -> None:
    text = "<!--\nkeep   this\nas is\n-->\n"

    assert format_text(text, WrapConfig(width=5)) == text


def test_blank_lines_separate_paragraphs() -> None:
    assert format_text("a\nb\n\nc\nd\n") == "a b\n\nc d\n"


def test_block_level_tags_start_paragraphs() -> None:
    text = "<p>first\n<p>second\n<li>third\n"

    assert format_text(text) == text


def test_br_closes_a_paragraph() -> None:
    text = "line one<br>\nline two\n"

    assert format_text(text) == text


def test_indentation_change_starts_a_paragraph() -> None:
    text = "outer\n  inner\n"

    assert format_text(text) == text


def test_setext_heading_is_structural() -> None:
    text = "Title\n=====\nbody\ntext\n"

    assert format_text(text) == "Title\n=====\nbody text\n"


def test_list_items_hang_their_continuation_lines() -> None:
    text = "* one two\n  three\n* four\n"

    assert format_text(text) == "* one two three\n* four\n"
    paragraph = parse_document(text).paragraphs[0]
    assert paragraph.continuation_indent == "  "


def test_crlf_line_endings_are_preserved() -> None:
    assert format_text("alpha\r\nbeta\r\n") == "alpha beta\r\n"


def test_missing_trailing_newline_is_preserved() -> None:
    assert format_text("alpha\nbeta") == "alpha beta"


def test_anomalies_point_at_their_source_line() -> None:
    anomalies: list[MalformedAtomicSpan] = []

    parse_document("first line\nsee `broken here\n", anomalies=anomalies)

    assert anomalies == [MalformedAtomicSpan("code", 4, 1)]
    assert anomalies[0].describe() == "line 2, column 5: unclosed code span"


def test_paragraph_start_survives_reflow() -> None:
    document = parse_document(SPEC)
    paragraph = document.paragraphs[0]

    assert isinstance(paragraph, Paragraph)
    assert paragraph.start == 2
    assert paragraph.lines == SPEC.splitlines()[2:4]


@pytest.mark.parametrize("width", [20, 40, 72, 100])
def test_formatting_twice_changes_nothing(width: int) -> None:
    config = WrapConfig(width=width)

    once = format_text(SPEC, config)

    assert format_text(once, config) == once


def test_html_heading_is_structural() -> None:
    text = '<h3 id="the-event-loop">Processing model of the event loop</h3>\n'

    assert _kinds(text) == [BlockKind.STRUCTURAL]
    assert format_text(text, WrapConfig(width=40)) == text


def test_mixed_line_endings_round_trip() -> None:
    for text in ("a\r\nb\nc\r\n", "a\nb\r\n\nc", "x\r\n\n\r\ny\n"):
        assert parse_document(text).render() == text


def test_lines_are_counted_on_lf_like_git() -> None:
    document = parse_document("a b\r\nc d\n\r\ne f\r\n")

    assert [block.start for block in document.blocks] == [0, 2, 3]
    assert document.newline == "\r\n"


def test_rewrapped_paragraph_uses_the_majority_newline() -> None:
    text = "one two\nthree\r\n\r\nfour\r\n"

    assert format_text(text) == "one two three\r\n\r\nfour\r\n"
    assert format_text("one two three\n", WrapConfig(width=8)) == "one two\nthree\n"
