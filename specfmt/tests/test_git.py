from __future__ import annotations

import shutil
import subprocess
from pathlib import Path

import pytest

from specfmt.core import BaselineUnavailable, GitRepository, LineRange
from specfmt.core.git import pick_base_branch

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")

BASE = "".join(f"line {n}\n" for n in range(1, 6))


def _git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        [
            "git",
            "-c",
            "user.name=specfmt",
            "-c",
            "user.email=specfmt@example.invalid",
            "-c",
            "commit.gpgsign=false",
            *args,
        ],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout


@pytest.fixture
def repo(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
    _git(tmp_path, "init", "-q")
    _git(tmp_path, "symbolic-ref", "HEAD", "refs/heads/main")
    (tmp_path / "source").write_text(BASE, encoding="utf-8")
    _git(tmp_path, "add", "source")
    _git(tmp_path, "commit", "-q", "-m", "base")
    _git(tmp_path, "checkout", "-q", "-b", "feature")
    return tmp_path


def test_pick_base_branch_prefers_origin_main() -> None:
    assert pick_base_branch(["feature", "main", "origin/main"]) == "origin/main"
    assert pick_base_branch(["master", " origin/master\n"]) == "origin/master"
    assert pick_base_branch(["main", "master"]) == "main"
    assert pick_base_branch(["develop", ""]) is None


@requires_git
def test_changed_lines_since_the_merge_base(repo: Path) -> None:
    path = repo / "source"
    path.write_text(BASE.replace("line 3", "LINE 3") + "line 6\n", encoding="utf-8")
    _git(repo, "commit", "-q", "-am", "feature work")
    main_sha = _git(repo, "rev-parse", "main").strip()

    changes = GitRepository().changed_line_ranges(path)

    assert changes.ranges == (LineRange(2, 3), LineRange(5, 6))
    assert changes.baseline == main_sha


@requires_git
def test_explicit_base_branch_is_used(repo: Path) -> None:
    _git(repo, "branch", "develop", "main")
    path = repo / "source"
    path.write_text("new first line\n" + BASE, encoding="utf-8")
    _git(repo, "commit", "-q", "-am", "prepend")

    git = GitRepository()

    assert git.resolve_base_branch(path, "develop") == "develop"
    assert git.changed_line_ranges(path, "develop").ranges == (LineRange(0, 1),)


@requires_git
def test_unchanged_branch_has_an_empty_change_set(repo: Path) -> None:
    changes = GitRepository().changed_line_ranges(repo / "source")

    assert changes.ranges == ()


@requires_git
def test_dirty_working_tree_is_detected(repo: Path) -> None:
    path = repo / "source"
    git = GitRepository()

    assert not git.is_working_tree_dirty(path)
    path.write_text(BASE + "uncommitted\n", encoding="utf-8")
    assert git.is_working_tree_dirty(path)


@requires_git
def test_untracked_file_has_no_baseline(repo: Path) -> None:
    path = repo / "draft.bs"
    path.write_text("x\n", encoding="utf-8")

    with pytest.raises(BaselineUnavailable):
        GitRepository().changed_line_ranges(path)


@requires_git
def test_missing_base_branch(repo: Path) -> None:
    _git(repo, "branch", "-q", "-m", "main", "trunk")

    with pytest.raises(BaselineUnavailable) as excinfo:
        GitRepository().changed_line_ranges(repo / "source")

    assert "'feature'" in str(excinfo.value)


@requires_git
def test_outside_a_repository(tmp_path: Path, monkeypatch) -> None:
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
    path = tmp_path / "source"
    path.write_text(BASE, encoding="utf-8")

    with pytest.raises(BaselineUnavailable):
        GitRepository().is_working_tree_dirty(path)


def test_missing_git_binary(tmp_path: Path) -> None:
    git = GitRepository(git_bin=str(tmp_path / "no-such-git"))

    with pytest.raises(BaselineUnavailable):
        git.is_working_tree_dirty(tmp_path / "source")
