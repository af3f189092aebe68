"""Locate the spec to format when no file is named explicitly."""

from __future__ import annotations

from pathlib import Path

from .errors import ResolveError

WATTSI_SOURCE = "source"
BIKESHED_SUFFIX = ".bs"


def resolve_target(candidate: str | Path | None = None) -> Path:
    """Return the spec file to format.

    An existing file is used as given. Otherwise ``candidate`` (or the current
    directory) is searched for a Wattsi ``source`` file, then for a unique
    Bikeshed ``.bs`` file.
    """
    directory = Path(".")
    if candidate is not None:
        path = Path(candidate)
        if path.is_file():
            return path
        directory = path

    source = directory / WATTSI_SOURCE
    if source.is_file():
        return source

    bs_files = (
        sorted(p for p in directory.iterdir() if p.suffix == BIKESHED_SUFFIX and p.is_file())
        if directory.is_dir()
        else []
    )
    if len(bs_files) == 1:
        return bs_files[0]
    if len(bs_files) > 1:
        names = ", ".join(p.name for p in bs_files)
        raise ResolveError(
            f"Must specify filename: {directory} contains multiple .bs files ({names})"
        )
    raise ResolveError(
        f"Must specify filename: {directory} doesn't contain \"source\" or a .bs spec"
    )
