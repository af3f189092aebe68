"""Split prose into breakable words and atomic spans.

The scanner is a two-state automaton. In ``PLAIN`` it accumulates word
characters; when a span family's opener appears it moves to ``ATOMIC`` and
consumes characters until the family's closer. Reaching the end of the line while
still in ``ATOMIC`` takes the unmatched transition: the opener is demoted to
plain text, a :class:`MalformedAtomicSpan` record is appended for the caller, and
scanning resumes right after the opener.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Sequence

from .config import SpanFamily, default_span_families

ESCAPE = "\\"
ESCAPE_FAMILY = "escape"

logger = logging.getLogger("specfmt.tokens")


class TokenKind(str, Enum):
    BREAKABLE = "breakable"
    ATOMIC = "atomic"


class ScanState(Enum):
    PLAIN = "plain"
    ATOMIC = "atomic"


@dataclass(frozen=True)
class Token:
    """A contiguous run of source text.

    ``joined`` is True when no whitespace separated the token from the previous
    one; joined tokens are laid out as a single unit.
    """

    text: str
    kind: TokenKind = TokenKind.BREAKABLE
    family: str | None = None
    joined: bool = False

    @property
    def atomic(self) -> bool:
        return self.kind is TokenKind.ATOMIC

    def __len__(self) -> int:
        return len(self.text)


@dataclass(frozen=True)
class MalformedAtomicSpan:
    """An opener with no closer before the end of the line. Recovered, never raised."""

    family: str
    column: int
    line: int | None = None

    def describe(self) -> str:
        where = f"line {self.line + 1}, " if self.line is not None else ""
        return f"{where}column {self.column + 1}: unclosed {self.family} span"


def _by_opener_length(families: Sequence[SpanFamily]) -> list[SpanFamily]:
    # sorted() is stable, so equal-length openers keep configuration order.
    return sorted(families, key=lambda family: -len(family.open))


def _match_opener(
    line: str, i: int, families: Sequence[SpanFamily]
) -> tuple[SpanFamily, str, str] | None:
    """Return (family, opener, closer) for a span opening at ``i``."""
    for family in families:
        if family.match_run:
            char = family.open[0]
            if line[i] != char:
                continue
            j = i
            while j < len(line) and line[j] == char:
                j += 1
            if j - i < len(family.open) or not family.follows(line[j : j + 1]):
                continue
            return family, line[i:j], family.close[0] * (j - i)
        if line.startswith(family.open, i):
            after = line[i + len(family.open) : i + len(family.open) + 1]
            if family.follows(after):
                return family, family.open, family.close
    return None


def _closes_at(
    line: str, i: int, family: SpanFamily, closer: str
) -> tuple[bool, int]:
    """Return whether ``closer`` sits at ``i`` and the index to continue from."""
    if not family.match_run:
        if line.startswith(closer, i):
            return True, i + len(closer)
        return False, i + 1
    char = closer[0]
    j = i
    while j < len(line) and line[j] == char:
        j += 1
    if j == i:
        return False, i + 1
    # A run of the wrong length is skipped whole.
    return j - i == len(closer), j


def tokenize(
    line: str,
    families: Sequence[SpanFamily] | None = None,
    *,
    line_number: int | None = None,
    anomalies: list[MalformedAtomicSpan] | None = None,
) -> list[Token]:
    """Tokenize one newline-free line of text."""
    ordered = _by_opener_length(
        default_span_families() if families is None else families
    )
    tokens: list[Token] = []
    word: list[str] = []
    separated = True  # whitespace (or line start) precedes the next token

    def emit(text: str, kind: TokenKind, family: str | None = None) -> None:
        nonlocal separated
        tokens.append(
            Token(text, kind, family, joined=bool(tokens) and not separated)
        )
        separated = False

    def flush_word() -> None:
        if word:
            emit("".join(word), TokenKind.BREAKABLE)
            word.clear()

    state = ScanState.PLAIN
    family: SpanFamily | None = None
    opener = closer = ""
    quote: str | None = None
    span_start = 0
    n = len(line)
    i = 0

    while i < n or state is ScanState.ATOMIC:
        if state is ScanState.ATOMIC:
            assert family is not None
            if i >= n:
                # Unmatched opener: demote it to plain text and rescan after it.
                record = MalformedAtomicSpan(family.name, span_start, line_number)
                logger.debug("recovered %s", record.describe())
                if anomalies is not None:
                    anomalies.append(record)
                word.append(opener)
                state = ScanState.PLAIN
                i = span_start + len(opener)
                continue
            char = line[i]
            if quote is not None:
                if char == quote:
                    quote = None
                i += 1
                continue
            if family.escape is not None and char == family.escape:
                i += 2
                continue
            if char in family.quotes:
                quote = char
                i += 1
                continue
            closed, end = _closes_at(line, i, family, closer)
            if not closed:
                i = end
                continue
            flush_word()
            emit(line[span_start:end], TokenKind.ATOMIC, family.name)
            state = ScanState.PLAIN
            i = end
            continue

        char = line[i]
        if char.isspace():
            flush_word()
            separated = True
            i += 1
            continue
        match = _match_opener(line, i, ordered)
        if match is not None:
            family, opener, closer = match
            quote = None
            span_start = i
            state = ScanState.ATOMIC
            i += len(opener)
            continue
        if char == ESCAPE and i + 1 < n and not line[i + 1].isspace():
            flush_word()
            emit(line[i : i + 2], TokenKind.ATOMIC, ESCAPE_FAMILY)
            i += 2
            continue
        word.append(char)
        i += 1

    flush_word()
    return tokens


def longest_atomic(tokens: Sequence[Token]) -> int:
    return max((len(token) for token in tokens if token.atomic), default=0)
