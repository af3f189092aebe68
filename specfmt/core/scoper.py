"""Restrict reformatting to the lines the current branch changed.

Line numbers reported by ``git diff`` are 1-based; everything past
:func:`changed_ranges` works with 0-based, half-open line ranges of the current
(pre-format) file.
"""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, NamedTuple, Sequence

from .document import Document, Paragraph

logger = logging.getLogger("specfmt.scoper")

DIFF_HEADER_PREFIXES = ("+++", "---", "index", "diff")


class LineRange(NamedTuple):
    start: int
    end: int

    def intersects(self, start: int, end: int) -> bool:
        return self.start < end and start < self.end


class RegionStatus(str, Enum):
    CHANGED = "changed"
    UNCHANGED = "unchanged"


@dataclass(frozen=True)
class DiffRegion:
    start: int
    end: int
    status: RegionStatus
    block: int

    @property
    def changed(self) -> bool:
        return self.status is RegionStatus.CHANGED


@dataclass(frozen=True)
class ChangeSet:
    """Lines added or modified in the working file relative to ``baseline``.

    An empty change set means the branch touched nothing; an unavailable baseline
    is reported as :class:`~specfmt.core.errors.BaselineUnavailable` instead.
    """

    ranges: tuple[LineRange, ...] = field(default_factory=tuple)
    baseline: str | None = None

    @classmethod
    def from_diff(cls, diff: str, baseline: str | None = None) -> "ChangeSet":
        return cls(tuple(changed_ranges(parse_diff_line_numbers(diff))), baseline)

    def intersects(self, start: int, end: int) -> bool:
        return any(line_range.intersects(start, end) for line_range in self.ranges)

    def __len__(self) -> int:
        return sum(line_range.end - line_range.start for line_range in self.ranges)


def parse_diff_line_numbers(diff: str) -> list[int]:
    """Return the 1-based line numbers a unified diff adds to the new file.

    ``@@ -a,b +c,d @@`` moves the cursor to line ``c``; ``+`` lines are recorded
    and advance it; context lines advance it without being recorded; ``-`` lines
    leave it in place.
    """
    line_numbers: list[int] = []
    current = 0
    in_header = True
    for index, line in enumerate(diff.split("\n")):
        if line.startswith("diff "):
            in_header = True
        # Inside a hunk "+++" is an added line that happens to start with "++".
        if in_header and line.startswith(DIFF_HEADER_PREFIXES):
            logger.debug("diff: skipping header line %d: %r", index, line)
            continue
        if line.startswith("@@"):
            in_header = False
            current = _hunk_new_start(line, current)
            logger.debug("diff: hunk at line %d resets cursor to %d", index, current)
        elif line.startswith("+"):
            logger.debug("diff: line %d added: %r", current, line[1:])
            line_numbers.append(current)
            current += 1
        elif line.startswith("-"):
            logger.debug("diff: deletion, cursor stays at %d", current)
        elif line.startswith(" "):
            current += 1
    logger.debug("diff: %d changed lines", len(line_numbers))
    return line_numbers


def _hunk_new_start(header: str, fallback: int) -> int:
    parts = header.split("@@")
    if len(parts) < 2:
        return fallback
    for section in parts[1].split():
        if section.startswith("+"):
            number = section[1:].split(",", 1)[0]
            if number.isdigit():
                return int(number)
    return fallback


def changed_ranges(line_numbers: Iterable[int]) -> list[LineRange]:
    """Merge 1-based line numbers into sorted 0-based half-open ranges."""
    ranges: list[LineRange] = []
    for number in sorted(set(line_numbers)):
        index = number - 1
        if index < 0:
            continue
        if ranges and ranges[-1].end == index:
            ranges[-1] = LineRange(ranges[-1].start, index + 1)
        else:
            ranges.append(LineRange(index, index + 1))
    return ranges


def _paragraph_blocks(document: Document) -> List[tuple[int, Paragraph]]:
    return [
        (index, block)
        for index, block in enumerate(document.blocks)
        if isinstance(block, Paragraph)
    ]


def scope(
    original: Document, candidate: Document, changes: ChangeSet | None
) -> list[DiffRegion]:
    """Classify every paragraph of ``original`` as changed or unchanged.

    ``changes`` is None when the whole file is in scope, either because the run
    is a full-file run or because no baseline could be determined.
    """
    if len(original.blocks) != len(candidate.blocks):
        raise ValueError(
            "candidate document does not line up with the original: "
            f"{len(candidate.blocks)} blocks vs {len(original.blocks)}"
        )
    regions: list[DiffRegion] = []
    for index, paragraph in _paragraph_blocks(original):
        if not isinstance(candidate.blocks[index], Paragraph):
            raise ValueError(f"block {index} is not a paragraph in the candidate")
        start, end = paragraph.start, paragraph.end
        touched = changes is None or changes.intersects(start, end)
        regions.append(
            DiffRegion(
                start,
                end,
                RegionStatus.CHANGED if touched else RegionStatus.UNCHANGED,
                index,
            )
        )
    return regions


def apply_scope(
    original: Document, candidate: Document, regions: Sequence[DiffRegion]
) -> Document:
    """Undo the candidate's reflow for every region classified unchanged."""
    blocks = list(candidate.blocks)
    for region in regions:
        if region.changed:
            continue
        source = original.blocks[region.block]
        blocks[region.block] = dataclasses.replace(
            blocks[region.block],
            lines=list(source.lines),
            endings=list(source.endings),
        )
    return dataclasses.replace(candidate, blocks=blocks)
