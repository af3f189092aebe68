"""specfmt package root exposing the formatter and its building blocks."""

from .core import (
    ChangeSet,
    SpecFormatter,
    WrapConfig,
    format_text,
    reflow,
    scope,
    tokenize,
)

__version__ = "0.3.0"

__all__ = [
    "ChangeSet",
    "SpecFormatter",
    "WrapConfig",
    "format_text",
    "reflow",
    "scope",
    "tokenize",
    "__version__",
]
