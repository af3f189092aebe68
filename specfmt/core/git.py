"""Read-only git queries consumed by the formatter."""

from __future__ import annotations

import logging
import shutil
import subprocess  # nosec B404 - fixed git invocations only
from pathlib import Path
from typing import List, Sequence

from .errors import BaselineUnavailable
from .scoper import ChangeSet

logger = logging.getLogger("specfmt.git")

# Most preferred first. Forks usually only have the upstream branch as origin/main.
BASE_BRANCH_PREFERENCE = ("origin/main", "main", "origin/master", "master")


class GitRepository:
    """Thin wrapper over the ``git`` binary, scoped to one target file."""

    def __init__(self, git_bin: str | None = None) -> None:
        self.git_bin = git_bin or shutil.which("git") or "git"

    def _run(self, args: List[str], cwd: Path) -> subprocess.CompletedProcess:
        cmd = [self.git_bin, *args]
        logger.debug("_run: %s (cwd=%s)", cmd, cwd)
        try:
            return subprocess.run(
                cmd,
                cwd=str(cwd),
                capture_output=True,
                text=True,
                check=False,
            )
        except OSError as exc:
            raise BaselineUnavailable(f"Cannot run git: {exc}") from exc

    def _checked(self, args: List[str], cwd: Path, what: str) -> str:
        result = self._run(args, cwd)
        if result.returncode != 0:
            detail = result.stderr.strip() or f"exit status {result.returncode}"
            raise BaselineUnavailable(f"{what} failed in {cwd}: {detail}")
        return result.stdout

    @staticmethod
    def _split(path: Path) -> tuple[Path, str]:
        path = path.resolve()
        return path.parent, path.name

    def is_working_tree_dirty(self, path: Path) -> bool:
        """True when ``git status`` reports uncommitted changes to ``path``."""
        directory, name = self._split(path)
        status = self._checked(
            ["status", "--porcelain", "--", name], directory, "git status"
        )
        if status.strip():
            logger.debug("uncommitted changes: %s", status.strip())
            return True
        return False

    def current_branch(self, path: Path) -> str:
        directory, _ = self._split(path)
        result = self._run(["branch", "--show-current"], directory)
        return result.stdout.strip() if result.returncode == 0 else ""

    def resolve_base_branch(self, path: Path, base_branch: str | None = None) -> str:
        """Pick the branch to compare against: explicit, else main/master variants."""
        if base_branch:
            return base_branch
        directory, _ = self._split(path)
        refs = self._checked(
            ["for-each-ref", "--format=%(refname:short)"],
            directory,
            "git for-each-ref",
        ).split("\n")
        base = pick_base_branch(refs)
        if base is None:
            branch = self.current_branch(path) or "HEAD"
            raise BaselineUnavailable(
                f"Cannot find a 'master' or 'main' base branch to compare '{branch}' with"
            )
        return base

    def merge_base(self, path: Path, base: str) -> str:
        directory, _ = self._split(path)
        output = self._checked(
            ["merge-base", base, "HEAD"], directory, f"git merge-base {base} HEAD"
        ).strip()
        if not output:
            raise BaselineUnavailable(f"No merge base between {base} and HEAD")
        return output

    def diff(self, path: Path, baseline: str) -> str:
        directory, name = self._split(path)
        return self._checked(
            ["diff", "-U0", "--no-color", "--no-ext-diff", baseline, "--", name],
            directory,
            "git diff",
        )

    def changed_line_ranges(
        self, path: Path, base_branch: str | None = None
    ) -> ChangeSet:
        """Lines of ``path`` added or modified since its merge base with the base branch."""
        directory, name = self._split(path)
        tracked = self._run(["ls-files", "--error-unmatch", "--", name], directory)
        if tracked.returncode != 0:
            # git diff is silent about untracked files; the whole file is new.
            raise BaselineUnavailable(f"{name} is not tracked by git")
        base = self.resolve_base_branch(path, base_branch)
        logger.info("Found '%s' as the base branch to compute diff", base)
        baseline = self.merge_base(path, base)
        changes = ChangeSet.from_diff(self.diff(path, baseline), baseline)
        logger.debug(
            "%d changed lines in %d ranges against %s",
            len(changes),
            len(changes.ranges),
            baseline,
        )
        return changes


def pick_base_branch(refs: Sequence[str]) -> str | None:
    available = {ref.strip() for ref in refs if ref.strip()}
    for candidate in BASE_BRANCH_PREFERENCE:
        if candidate in available:
            return candidate
    return None
