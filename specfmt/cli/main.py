#!/usr/bin/env python3
"""Format Bikeshed and Wattsi specifications using WHATWG conventions."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from pathlib import Path

from specfmt import __version__
from specfmt.core import (
    ConfigError,
    FormatStatus,
    IoFailure,
    PreconditionFailure,
    ResolveError,
    ScopeMode,
    SpecFormatter,
    build_config,
    resolve_target,
)
from specfmt.core.config import find_config_file, load_config_payload

EXIT_OK = 0
EXIT_WOULD_CHANGE = 1
EXIT_USAGE = 2
EXIT_PRECONDITION = 3
EXIT_IO = 4

LOG_ENV = "SPECFMT_LOG"


def _log_level(verbose: bool) -> int:
    if verbose:
        return logging.DEBUG
    name = os.environ.get(LOG_ENV, "WARNING").upper()
    level = getattr(logging, name, None)
    return level if isinstance(level, int) else logging.WARNING


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=_log_level(verbose), format="%(levelname)s %(name)s: %(message)s"
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="specfmt", description=__doc__)
    parser.add_argument(
        "filename",
        nargs="?",
        help='Spec to reformat. Defaults to "source" or the unique .bs file in the directory.',
    )
    parser.add_argument(
        "--wrap",
        type=int,
        default=None,
        help="Number of columns to wrap to (default: 100).",
    )
    parser.add_argument(
        "--tab-width",
        type=int,
        default=None,
        help="Columns a tab counts for in indentation (default: 4).",
    )
    parser.add_argument(
        "-f",
        "--force",
        action="store_true",
        help="Reformat the spec even if it has uncommitted changes.",
    )
    parser.add_argument(
        "--full-spec",
        action="store_true",
        help="Reformat the entire spec, not only the changes of the current branch.",
    )
    parser.add_argument(
        "--base-branch",
        help="Base branch to compare the current branch with.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to a .specfmt.yml file (default: searched next to the spec, then in the cwd).",
    )
    output = parser.add_mutually_exclusive_group()
    output.add_argument(
        "--check",
        action="store_true",
        help="Exit with status 1 if the spec would change; do not write it.",
    )
    output.add_argument(
        "--stdout",
        action="store_true",
        help="Write the reformatted spec to STDOUT instead of in place.",
    )
    parser.add_argument(
        "--diff", action="store_true", help="Show a unified diff of the changes."
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug output, including git diff parsing.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _load_payload(args: argparse.Namespace, target: Path) -> dict[str, object]:
    config_path = args.config or find_config_file(target.resolve().parent, Path.cwd())
    if config_path is None:
        return {}
    logging.getLogger("specfmt.cli").debug("using config %s", config_path)
    return load_config_payload(config_path)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        target = resolve_target(args.filename)
        payload = _load_payload(args, target)
        config = build_config(
            payload,
            width=args.wrap,
            tab_width=args.tab_width,
            mode=ScopeMode.FULL if args.full_spec else None,
        )
    except (ResolveError, ConfigError) as exc:
        print(f"[specfmt] {exc}", file=sys.stderr)
        return EXIT_USAGE

    base_branch = args.base_branch or payload.get("base_branch")
    formatter = SpecFormatter()
    try:
        result = formatter.format_path(
            target,
            config,
            force=args.force,
            base_branch=str(base_branch) if base_branch else None,
            check=args.check or args.stdout,
        )
    except PreconditionFailure as exc:
        print(f"[specfmt] {exc}", file=sys.stderr)
        return EXIT_PRECONDITION
    except IoFailure as exc:
        print(f"[specfmt] {exc}", file=sys.stderr)
        return EXIT_IO

    if args.stdout:
        sys.stdout.write(result.formatted)
        return EXIT_OK
    if args.diff and result.changed:
        sys.stdout.write(result.unified_diff())

    if result.status is FormatStatus.UNCHANGED:
        print(f"[specfmt] {target}: no changes needed ({result.scope})")
        return EXIT_OK
    if result.status is FormatStatus.WOULD_FORMAT:
        print(
            f"[specfmt] {target}: would reformat ({result.changed_paragraphs} of "
            f"{result.total_paragraphs} paragraphs in scope, {result.scope})",
            file=sys.stderr,
        )
        return EXIT_WOULD_CHANGE
    print(
        f"[specfmt] {target}: reformatted ({result.changed_paragraphs} of "
        f"{result.total_paragraphs} paragraphs in scope, {result.scope})"
    )
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
