"""Greedy first-fit reflow of prose paragraphs."""

from __future__ import annotations

import dataclasses
import logging
from typing import Iterator, List, Sequence

from .config import DEFAULT_TAB_WIDTH, WrapConfig
from .document import Document, Paragraph
from .tokens import Token

logger = logging.getLogger("specfmt.reflow")


def display_width(text: str, tab_width: int = DEFAULT_TAB_WIDTH) -> int:
    return len(text.expandtabs(tab_width))


def iter_units(tokens: Sequence[Token]) -> Iterator[str]:
    """Yield wrap units: maximal runs of tokens with no whitespace between them."""
    unit: List[str] = []
    for token in tokens:
        if unit and not token.joined:
            yield "".join(unit)
            unit = []
        unit.append(token.text)
    if unit:
        yield "".join(unit)


def reflow_tokens(
    tokens: Sequence[Token],
    indent: str,
    width: int,
    *,
    continuation_indent: str | None = None,
    tab_width: int = DEFAULT_TAB_WIDTH,
) -> list[str]:
    """Lay ``tokens`` out on lines no wider than ``width``.

    A line only overflows when it holds a single unit that is wider than the
    available room on its own; two units never share an overflowing line.
    """
    if continuation_indent is None:
        continuation_indent = indent
    lines: list[str] = []
    seed = indent
    buffer = seed
    length = display_width(seed, tab_width)
    empty = True

    for unit in iter_units(tokens):
        if empty:
            buffer += unit
            length += len(unit)
            empty = False
            continue
        candidate = length + 1 + len(unit)
        if candidate <= width:
            buffer += " " + unit
            length = candidate
            continue
        lines.append(buffer)
        seed = continuation_indent
        buffer = seed + unit
        length = display_width(seed, tab_width) + len(unit)

    if not empty:
        lines.append(buffer)
    return lines


def reflow(
    paragraph: Paragraph, width: int, *, tab_width: int = DEFAULT_TAB_WIDTH
) -> list[str]:
    """Return the physical lines for ``paragraph`` wrapped to ``width``."""
    return reflow_tokens(
        paragraph.tokens,
        paragraph.indent,
        width,
        continuation_indent=paragraph.continuation_indent,
        tab_width=tab_width,
    )


def _rewrapped_endings(paragraph: Paragraph, count: int, newline: str) -> list[str]:
    # New breaks use the document's newline; the last line keeps the source terminator.
    last = paragraph.endings[-1:] or [newline]
    return [newline] * (count - 1) + last


def reflow_document(document: Document, config: WrapConfig) -> Document:
    """Build the candidate document: every prose paragraph rewrapped, the rest copied."""
    blocks = []
    rewrapped = 0
    for block in document.blocks:
        if isinstance(block, Paragraph):
            lines = reflow(block, config.width, tab_width=config.tab_width)
            if lines != block.lines:
                rewrapped += 1
                block = dataclasses.replace(
                    block,
                    lines=lines,
                    endings=_rewrapped_endings(block, len(lines), document.newline),
                )
        blocks.append(block)
    logger.debug(
        "reflowed %d of %d paragraphs at width %d",
        rewrapped,
        len(document.paragraphs),
        config.width,
    )
    return dataclasses.replace(document, blocks=blocks)
