"""Error taxonomy for specfmt runs."""

from __future__ import annotations

from pathlib import Path


class SpecfmtError(RuntimeError):
    """Base class for every failure a formatting run can report."""


class PreconditionFailure(SpecfmtError):
    """Raised when the target has uncommitted changes and no override was given."""

    def __init__(self, path: Path, status: str = "") -> None:
        self.path = path
        self.status = status
        super().__init__(
            f"{path} has uncommitted changes. Commit or stash them, or pass --force."
        )


class IoFailure(SpecfmtError):
    """Raised when the target cannot be read or written. Nothing is partially written."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"{path}: {reason}")


class BaselineUnavailable(SpecfmtError):
    """Raised when no revision-control baseline can be determined for the target."""


class ResolveError(SpecfmtError):
    """Raised when no unique spec file can be found."""


class ConfigError(SpecfmtError):
    """Raised when a specfmt config file is unreadable or invalid."""
