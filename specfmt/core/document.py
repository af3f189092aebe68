"""Split a spec source into prose paragraphs and pass-through blocks.

Paragraph detection follows WHATWG and Bikeshed source conventions:

- blank lines separate paragraphs;
- ``<pre>``, ``<xmp>``, ``<script>``, ``<style>``, ``<textarea>``, ``<wpt>``,
  multi-line comments and fenced code are copied verbatim;
- headings, rules, table rows, link definitions, block quotes, standalone
  comments and lines made only of tags are copied as structural lines;
- a line that opens a block-level element or a list item starts a new
  paragraph, as does a change of indentation;
- a line that ends with a block-level tag or ``<br>`` closes its paragraph.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Sequence, Union

from .config import WrapConfig
from .tokens import MalformedAtomicSpan, Token, tokenize

BLOCK_TAGS = (
    "address|article|aside|blockquote|body|caption|colgroup|dd|details|dialog|div|dl|dt|"
    "fieldset|figcaption|figure|footer|form|h[1-6]|head|header|hgroup|hr|html|li|main|"
    "menu|nav|ol|optgroup|option|p|search|section|summary|table|tbody|td|tfoot|th|thead|"
    "tr|ul"
)
VERBATIM_TAGS = ("pre", "xmp", "script", "style", "textarea", "wpt")

VERBATIM_OPEN_RE = re.compile(
    r"^\s*<(?P<tag>" + "|".join(VERBATIM_TAGS) + r")(?=[\s>])", re.IGNORECASE
)
COMMENT_OPEN_RE = re.compile(r"^\s*<!--")
FENCE_OPEN_RE = re.compile(r"^(\s*)(`{3,}|~{3,})(.*)$")

ATX_HEADING_RE = re.compile(r"^\s{0,3}#{1,6}(?:\s|$)")
HTML_HEADING_RE = re.compile(r"^\s*<h[1-6](?=[\s>]).*</h[1-6]>\s*$", re.IGNORECASE)
SETEXT_UNDERLINE_RE = re.compile(r"^\s{0,3}(=+|-+)\s*$")
HR_RE = re.compile(r"^\s{0,3}([-*_])(?:\s*\1){2,}\s*$")
TABLE_ROW_RE = re.compile(r"^\s*\|")
LINK_DEF_RE = re.compile(r"^\s*\[[^\]]+\]:\s+\S+")
BLOCKQUOTE_RE = re.compile(r"^\s*>")
COMMENT_LINE_RE = re.compile(r"^\s*<!--.*-->\s*$")
TAGS_ONLY_RE = re.compile(r"^\s*(?:<[^<>]+>\s*)+$")

BLOCK_START_RE = re.compile(r"^\s*</?(?:" + BLOCK_TAGS + r")(?=[\s>/])", re.IGNORECASE)
BLOCK_END_RE = re.compile(
    r"(?:</?(?:" + BLOCK_TAGS + r")(?:\s[^<>]*)?>|<br\s*/?>)\s*$", re.IGNORECASE
)
LIST_MARKER_RE = re.compile(
    r"""
    ^(?P<indent>\s*)
    (?P<marker>[*+-]|\d{1,9}[.)])
    (?P<space>\s+)
    (?P<checkbox>\[(?:\s|x|X)\]\s+)?
    """,
    re.VERBOSE,
)
INDENT_RE = re.compile(r"^[ \t]*")


class BlockKind(str, Enum):
    PROSE = "prose"
    BLANK = "blank"
    VERBATIM = "verbatim"
    STRUCTURAL = "structural"


@dataclass
class Passthrough:
    """Source lines that are emitted byte-identical."""

    start: int
    lines: List[str]
    kind: BlockKind = BlockKind.VERBATIM
    endings: List[str] = field(default_factory=list)

    @property
    def end(self) -> int:
        return self.start + len(self.lines)


@dataclass
class Paragraph:
    """A run of prose lines reflowed as one unit.

    ``start`` always refers to the paragraph's position in the source file, even
    after ``lines`` has been replaced by reflowed output.
    """

    start: int
    lines: List[str]
    indent: str
    tokens: List[Token] = field(default_factory=list)
    continuation_indent: str = ""
    kind: BlockKind = BlockKind.PROSE
    endings: List[str] = field(default_factory=list)

    @property
    def end(self) -> int:
        return self.start + len(self.lines)


Block = Union[Paragraph, Passthrough]


@dataclass
class Document:
    """Ordered blocks plus the newline style new line breaks are written with.

    Each block carries the terminator of every source line it holds, so a file
    that mixes ``\\n`` and ``\\r\\n`` renders back byte-identical and its line
    indices match the ones ``git diff`` reports.
    """

    blocks: List[Block]
    newline: str = "\n"
    trailing_newline: bool = True

    @property
    def paragraphs(self) -> list[Paragraph]:
        return [block for block in self.blocks if isinstance(block, Paragraph)]

    @property
    def lines(self) -> list[str]:
        return [line for block in self.blocks for line in block.lines]

    def render(self) -> str:
        pieces: list[str] = []
        for block in self.blocks:
            for index, line in enumerate(block.lines):
                pieces.append(line)
                pieces.append(
                    block.endings[index] if index < len(block.endings) else self.newline
                )
        if pieces and not self.trailing_newline:
            pieces[-1] = ""
        return "".join(pieces)


def detect_newline_style(endings: Sequence[str]) -> str:
    """CRLF when at least half of the terminated lines use it."""
    crlf = sum(1 for ending in endings if ending == "\r\n")
    lf = sum(1 for ending in endings if ending == "\n")
    return "\r\n" if crlf and crlf >= lf else "\n"


def split_lines(text: str) -> tuple[list[str], list[str]]:
    """Split on ``\\n`` and return (lines, endings).

    ``endings[i]`` is ``"\\r\\n"``, ``"\\n"`` or, for a last line with no
    terminator, ``""``.
    """
    if not text:
        return [], []
    lines: list[str] = []
    endings: list[str] = []
    *terminated, last = text.split("\n")
    for line in terminated:
        if line.endswith("\r"):
            lines.append(line[:-1])
            endings.append("\r\n")
        else:
            lines.append(line)
            endings.append("\n")
    if last:
        lines.append(last)
        endings.append("")
    return lines, endings


def leading_whitespace(line: str) -> str:
    match = INDENT_RE.match(line)
    return match.group(0) if match else ""


def _is_blank(line: str) -> bool:
    return line.strip() == ""


def _verbatim_end(lines: Sequence[str], i: int) -> int | None:
    """Return the index after a verbatim block opening at ``i``, or None."""
    line = lines[i]

    fence = FENCE_OPEN_RE.match(line)
    if fence:
        marker = fence.group(2)
        close_re = re.compile(rf"^\s*{re.escape(marker[0])}{{{len(marker)},}}\s*$")
        for j in range(i + 1, len(lines)):
            if close_re.match(lines[j]):
                return j + 1
        return len(lines)

    opened = VERBATIM_OPEN_RE.match(line)
    if opened:
        closer = "</" + opened.group("tag").lower()
        if closer in line[opened.end() :].lower():
            return i + 1
        for j in range(i + 1, len(lines)):
            if closer in lines[j].lower():
                return j + 1
        return len(lines)

    if COMMENT_OPEN_RE.match(line) and "-->" not in line:
        for j in range(i + 1, len(lines)):
            if "-->" in lines[j]:
                return j + 1
        return len(lines)

    return None


def _is_structural(lines: Sequence[str], i: int) -> bool:
    line = lines[i]
    if (
        ATX_HEADING_RE.match(line)
        or HTML_HEADING_RE.match(line)
        or HR_RE.match(line)
        or TABLE_ROW_RE.match(line)
        or LINK_DEF_RE.match(line)
        or BLOCKQUOTE_RE.match(line)
        or COMMENT_LINE_RE.match(line)
        or TAGS_ONLY_RE.match(line)
    ):
        return True
    if SETEXT_UNDERLINE_RE.match(line):
        return True
    # Setext heading text: the next line underlines it.
    return i + 1 < len(lines) and bool(SETEXT_UNDERLINE_RE.match(lines[i + 1]))


def _starts_paragraph(line: str) -> bool:
    return bool(BLOCK_START_RE.match(line) or LIST_MARKER_RE.match(line))


def _closes_paragraph(line: str) -> bool:
    return bool(BLOCK_END_RE.search(line))


def _paragraph_end(lines: Sequence[str], i: int, continuation_indent: str) -> int:
    if _closes_paragraph(lines[i]):
        return i + 1
    j = i + 1
    while j < len(lines):
        line = lines[j]
        if (
            _is_blank(line)
            or leading_whitespace(line) != continuation_indent
            or _starts_paragraph(line)
            or _verbatim_end(lines, j) is not None
            or _is_structural(lines, j)
        ):
            break
        j += 1
        if _closes_paragraph(line):
            break
    return j


def continuation_indent_for(line: str) -> str:
    """List items hang their continuation lines under the item text."""
    indent = leading_whitespace(line)
    marker = LIST_MARKER_RE.match(line)
    if marker is None:
        return indent
    return indent + " " * (len(marker.group(0)) - len(indent))


def _locate(
    record: MalformedAtomicSpan, start: int, offsets: Sequence[int]
) -> MalformedAtomicSpan:
    """Map a column in the joined paragraph text back to its source line."""
    row = 0
    while row + 1 < len(offsets) and offsets[row + 1] <= record.column:
        row += 1
    return MalformedAtomicSpan(record.family, record.column - offsets[row], start + row)


def build_paragraph(
    lines: Sequence[str],
    start: int,
    config: WrapConfig,
    anomalies: list[MalformedAtomicSpan] | None = None,
    endings: Sequence[str] = (),
) -> Paragraph:
    """Tokenize the paragraph's lines as one logical line."""
    indent = leading_whitespace(lines[0])
    continuation = continuation_indent_for(lines[0])

    parts = [line.strip() for line in lines]
    offsets = []
    position = 0
    for part in parts:
        offsets.append(position)
        position += len(part) + 1

    found: list[MalformedAtomicSpan] = []
    tokens = tokenize(" ".join(parts), config.span_families, anomalies=found)
    if anomalies is not None:
        anomalies.extend(_locate(record, start, offsets) for record in found)
    return Paragraph(
        start=start,
        lines=list(lines),
        indent=indent,
        tokens=tokens,
        continuation_indent=continuation,
        endings=list(endings),
    )


def parse_document(
    text: str,
    config: WrapConfig | None = None,
    *,
    anomalies: list[MalformedAtomicSpan] | None = None,
) -> Document:
    """Parse ``text`` into blocks that cover every source line exactly once."""
    config = config or WrapConfig()
    lines, endings = split_lines(text)
    blocks: list[Block] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if _is_blank(line):
            blocks.append(Passthrough(i, [line], BlockKind.BLANK, endings[i : i + 1]))
            i += 1
            continue

        end = _verbatim_end(lines, i)
        if end is not None:
            blocks.append(Passthrough(i, lines[i:end], BlockKind.VERBATIM, endings[i:end]))
            i = end
            continue

        if _is_structural(lines, i):
            blocks.append(Passthrough(i, [line], BlockKind.STRUCTURAL, endings[i : i + 1]))
            i += 1
            continue

        end = _paragraph_end(lines, i, continuation_indent_for(line))
        blocks.append(build_paragraph(lines[i:end], i, config, anomalies, endings[i:end]))
        i = end

    return Document(
        blocks=blocks,
        newline=detect_newline_style(endings),
        trailing_newline=bool(endings) and endings[-1] != "",
    )
