from __future__ import annotations

from pathlib import Path

import pytest

from specfmt.core import BaselineUnavailable, ChangeSet


class FakeGit:
    """In-memory stand-in for :class:`specfmt.core.GitRepository`."""

    def __init__(
        self, dirty: bool = False, changes: ChangeSet | None = None
    ) -> None:
        self.dirty = dirty
        self.changes = changes
        self.diff_requests: list[str | None] = []

    def is_working_tree_dirty(self, path: Path) -> bool:
        return self.dirty

    def changed_line_ranges(
        self, path: Path, base_branch: str | None = None
    ) -> ChangeSet:
        self.diff_requests.append(base_branch)
        if self.changes is None:
            raise BaselineUnavailable("no merge base with origin/main")
        return self.changes


@pytest.fixture
def fake_git() -> FakeGit:
    return FakeGit()
