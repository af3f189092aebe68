"""Compose tokenizer, reflow engine and diff scoper into one formatting run."""

from __future__ import annotations

import difflib
import logging
import os
import shutil
import tempfile
from contextlib import suppress
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Protocol

from .config import WrapConfig
from .document import parse_document
from .errors import BaselineUnavailable, IoFailure, PreconditionFailure
from .git import GitRepository
from .reflow import reflow_document
from .scoper import ChangeSet, DiffRegion, apply_scope, scope
from .tokens import MalformedAtomicSpan

logger = logging.getLogger("specfmt.formatter")

SCOPE_FULL = "full"
SCOPE_DIFF = "diff-scoped"
SCOPE_FALLBACK = "full (baseline unavailable)"


class RevisionControl(Protocol):
    def is_working_tree_dirty(self, path: Path) -> bool: ...

    def changed_line_ranges(
        self, path: Path, base_branch: str | None = None
    ) -> ChangeSet: ...


class FormatStatus(str, Enum):
    UNCHANGED = "unchanged"
    FORMATTED = "formatted"
    WOULD_FORMAT = "would-format"


@dataclass
class FormatResult:
    path: Path
    status: FormatStatus
    scope: str
    changed_paragraphs: int
    total_paragraphs: int
    original: str
    formatted: str
    anomalies: List[MalformedAtomicSpan] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.formatted != self.original

    def unified_diff(self) -> str:
        return "".join(
            difflib.unified_diff(
                self.original.splitlines(keepends=True),
                self.formatted.splitlines(keepends=True),
                fromfile=str(self.path),
                tofile=str(self.path),
            )
        )


@dataclass
class FormatOutcome:
    """The pure part of a run: final text plus how each paragraph was scoped."""

    text: str
    regions: List[DiffRegion]
    anomalies: List[MalformedAtomicSpan]

    @property
    def changed_paragraphs(self) -> int:
        return sum(1 for region in self.regions if region.changed)


def format_outcome(
    text: str, config: WrapConfig, changes: ChangeSet | None = None
) -> FormatOutcome:
    """Reflow ``text``; paragraphs outside ``changes`` keep their original bytes.

    ``changes`` of None puts the whole document in scope.
    """
    anomalies: list[MalformedAtomicSpan] = []
    original = parse_document(text, config, anomalies=anomalies)
    candidate = reflow_document(original, config)
    regions = scope(original, candidate, changes)
    final = apply_scope(original, candidate, regions)
    return FormatOutcome(final.render(), regions, anomalies)


def format_text(
    text: str,
    config: WrapConfig | None = None,
    changes: ChangeSet | None = None,
    anomalies: list[MalformedAtomicSpan] | None = None,
) -> str:
    outcome = format_outcome(text, config or WrapConfig(), changes)
    if anomalies is not None:
        anomalies.extend(outcome.anomalies)
    return outcome.text


def read_text(path: Path) -> str:
    try:
        # newline="" keeps CRLF files byte-identical.
        with path.open("r", encoding="utf-8", newline="") as handle:
            return handle.read()
    except UnicodeDecodeError as exc:
        raise IoFailure(path, f"not valid UTF-8: {exc}") from exc
    except OSError as exc:
        raise IoFailure(path, f"cannot read: {exc.strerror or exc}") from exc


def write_atomic(path: Path, text: str) -> None:
    """Replace ``path`` with ``text`` in one rename; the original survives any failure."""
    tmp_path: Path | None = None
    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        tmp_path = Path(tmp_name)
        with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
            handle.write(text)
            handle.flush()
            os.fsync(handle.fileno())
        shutil.copymode(path, tmp_path)
        os.replace(tmp_path, path)
    except OSError as exc:
        raise IoFailure(path, f"cannot write: {exc.strerror or exc}") from exc
    finally:
        if tmp_path is not None and tmp_path.exists():
            with suppress(OSError):
                tmp_path.unlink()


class SpecFormatter:
    """Format one spec file in place, scoped to the current branch's changes."""

    def __init__(self, git: RevisionControl | None = None) -> None:
        self.git = git if git is not None else GitRepository()

    def _assert_clean(self, path: Path) -> None:
        try:
            dirty = self.git.is_working_tree_dirty(path)
        except BaselineUnavailable as exc:
            logger.warning("Cannot check %s for uncommitted changes: %s", path, exc)
            return
        if dirty:
            raise PreconditionFailure(path)

    def _changes(
        self, path: Path, config: WrapConfig, base_branch: str | None
    ) -> tuple[ChangeSet | None, str]:
        if not config.diff_scoped:
            return None, SCOPE_FULL
        try:
            return self.git.changed_line_ranges(path, base_branch), SCOPE_DIFF
        except BaselineUnavailable as exc:
            logger.warning("%s; formatting the entire file", exc)
            return None, SCOPE_FALLBACK

    def format_path(
        self,
        path: Path,
        config: WrapConfig,
        *,
        force: bool = False,
        base_branch: str | None = None,
        check: bool = False,
    ) -> FormatResult:
        original = read_text(path)
        logger.info("Successfully read file '%s'", path)
        if not force:
            self._assert_clean(path)

        changes, scope_name = self._changes(path, config, base_branch)
        outcome = format_outcome(original, config, changes)
        for anomaly in outcome.anomalies:
            logger.warning("%s: %s (left as plain text)", path, anomaly.describe())

        if outcome.text == original:
            status = FormatStatus.UNCHANGED
            logger.info("No changes needed for '%s'", path)
        elif check:
            status = FormatStatus.WOULD_FORMAT
        else:
            write_atomic(path, outcome.text)
            status = FormatStatus.FORMATTED
            logger.info("Write succeeded for '%s'", path)

        return FormatResult(
            path=path,
            status=status,
            scope=scope_name,
            changed_paragraphs=outcome.changed_paragraphs,
            total_paragraphs=len(outcome.regions),
            original=original,
            formatted=outcome.text,
            anomalies=outcome.anomalies,
        )
