"""specfmt core package - tokenizer, reflow engine, diff scoper and orchestrator."""

from .config import ScopeMode, SpanFamily, WrapConfig, build_config
from .document import BlockKind, Document, Paragraph, Passthrough, parse_document
from .errors import (
    BaselineUnavailable,
    ConfigError,
    IoFailure,
    PreconditionFailure,
    ResolveError,
    SpecfmtError,
)
from .formatter import FormatResult, FormatStatus, SpecFormatter, format_text
from .git import GitRepository
from .reflow import reflow, reflow_document
from .resolver import resolve_target
from .scoper import ChangeSet, DiffRegion, LineRange, RegionStatus, scope
from .tokens import MalformedAtomicSpan, Token, TokenKind, tokenize

__all__ = [
    "BaselineUnavailable",
    "BlockKind",
    "ChangeSet",
    "ConfigError",
    "DiffRegion",
    "Document",
    "FormatResult",
    "FormatStatus",
    "GitRepository",
    "IoFailure",
    "LineRange",
    "MalformedAtomicSpan",
    "Paragraph",
    "Passthrough",
    "PreconditionFailure",
    "RegionStatus",
    "ResolveError",
    "ScopeMode",
    "SpanFamily",
    "SpecFormatter",
    "SpecfmtError",
    "Token",
    "TokenKind",
    "WrapConfig",
    "build_config",
    "format_text",
    "parse_document",
    "reflow",
    "reflow_document",
    "resolve_target",
    "scope",
    "tokenize",
]
