#!/usr/bin/env python3
"""phpdoc_typecheck/main.py — CLI entry-point for phpdoc-typecheck.

Usage examples
--------------
    # Check a project, recursing into directories
    python -m phpdoc_typecheck check src/ lib/Legacy.php

    # Also warn about undocumented functions and properties
    python -m phpdoc_typecheck check src/ --check-has-docs

    # Rewrite types into house style in place
    python -m phpdoc_typecheck check src/ --fix

    # Machine-readable output
    python -m phpdoc_typecheck check src/ --format json

    # Show how a PHPDoc type is read
    python -m phpdoc_typecheck parse-type 'array<int, string>|null'

    # Does the narrow type fit the wide one?
    python -m phpdoc_typecheck compare 'iterable' 'list<int>'

Exit codes
----------
    0   Success (no error-severity findings).
    1   One or more findings with severity ERROR were reported.
    2   Infrastructure failure (bad configuration, unreadable file, etc.).

The module doubles as ``python -m phpdoc_typecheck`` via the companion
``phpdoc_typecheck/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import logging
import sys
import textwrap
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from . import __version__
from .config import ScanConfig, discover_config
from .errors import ConfigError
from .reporter import FORMATS, Reporter
from .scanner import check_source
from .scope import Scope
from .type_lattice import TypeLattice
from .type_parser import DocTypeParser, ParseMode

_log = logging.getLogger("phpdoc_typecheck")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_ERROR: int = 1
EXIT_INFRA: int = 2


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``phpdoc_typecheck`` logger.

    Parameters
    ----------
    verbosity:
        0 → WARNING, 1 → INFO, 2+ → DEBUG.
    """
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)-5.5s] %(name)s: %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    root = logging.getLogger("phpdoc_typecheck")
    root.setLevel(level)
    root.addHandler(handler)


def _resolve_path(raw: str, label: str = "file") -> Path:
    """Resolve *raw* to an absolute ``Path``, raising on missing files."""
    p = Path(raw).expanduser().resolve()
    if not p.exists():
        _log.error("%s not found: %s", label, p)
        raise SystemExit(EXIT_INFRA)
    return p


def _collect_files(paths: Sequence[str], extensions: Tuple[str, ...]) -> List[Path]:
    """Expand directories into the files beneath them with a wanted extension.

    Files named explicitly are always kept.
    """
    found: List[Path] = []
    for raw in paths:
        p = _resolve_path(raw, "path")
        if p.is_dir():
            found.extend(
                sorted(f for f in p.rglob("*") if f.is_file() and f.suffix in extensions)
            )
        else:
            found.append(p)
    return found


def _scan_config(args: argparse.Namespace) -> ScanConfig:
    """Configuration file values with command-line flags on top."""
    config = discover_config(args.config)
    return config.with_overrides(
        check_style=False if args.no_style else None,
        check_has_docs=True if args.check_has_docs else None,
        fix=True if args.fix else None,
    )


# ===========================================================================
# Subcommand implementations
# ===========================================================================

# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------

def cmd_check(args: argparse.Namespace) -> int:
    """Check the documentation comments of every PHP file given.

    Workflow:
        1. Load the configuration and apply command-line overrides.
        2. Expand directories into PHP files.
        3. Scan each file and report its findings.
        4. With ``--fix``, write fixed files back.
    """
    try:
        config = _scan_config(args)
    except ConfigError as exc:
        _log.error("Configuration error: %s", exc)
        return EXIT_INFRA

    files = _collect_files(args.paths, config.extensions)
    _log.info("Checking %d file(s)", len(files))

    with Reporter(sys.stdout, fmt=args.format) as reporter:
        for path in files:
            _log.info("Scanning %s", path)
            try:
                with path.open(encoding="utf-8", newline="") as fh:
                    source = fh.read()
            except (OSError, UnicodeDecodeError) as exc:
                _log.error("Cannot read %s: %s", path, exc)
                return EXIT_INFRA

            report = check_source(source, str(path), config)
            reporter.report_file(report, source)
            _log.info(
                "%s: %d error(s), %d warning(s)",
                path, report.error_count, report.warning_count,
            )

            if config.fix and report.fixes_applied:
                with path.open("w", encoding="utf-8", newline="") as fh:
                    fh.write(report.fixed_source())
                _log.info("Wrote %d fix(es) to %s", report.fixes_applied, path)

    return EXIT_ERROR if reporter.stats.error > 0 else EXIT_OK


# ---------------------------------------------------------------------------
# parse-type
# ---------------------------------------------------------------------------

def cmd_parse_type(args: argparse.Namespace) -> int:
    """Print the canonical form of a PHPDoc type."""
    namespace = ""
    if args.namespace:
        namespace = "\\" + args.namespace.strip("\\")
    parser = DocTypeParser()
    parsed = parser.parse_type_and_var(
        Scope(namespace=namespace), args.text, ParseMode.TYPE, prefer_wide=args.wide,
    )
    if parsed.type is None:
        _log.error("Malformed type: %s", args.text)
        return EXIT_ERROR

    print(parsed.type)
    if parsed.fixed is not None and parsed.type_span is not None:
        start, stop = parsed.type_span
        if args.text[start:stop] != parsed.fixed:
            print(f"house style: {parsed.fixed}")
    if parsed.remainder:
        print(f"remainder: {parsed.remainder}")
    return EXIT_OK


# ---------------------------------------------------------------------------
# compare
# ---------------------------------------------------------------------------

def cmd_compare(args: argparse.Namespace) -> int:
    """Report whether NARROW is the same as or narrower than WIDE."""
    parser = DocTypeParser()
    wide = parser.parse_type_and_var(None, args.wide, prefer_wide=True).type
    narrow = parser.parse_type_and_var(None, args.narrow).type
    for label, text, parsed in (("wide", args.wide, wide), ("narrow", args.narrow, narrow)):
        if parsed is None:
            _log.error("Malformed %s type: %s", label, text)
            return EXIT_ERROR

    fits = TypeLattice().compare_types(wide, narrow)
    print(f"{narrow} {'fits' if fits else 'does not fit'} {wide}")
    return EXIT_OK if fits else EXIT_ERROR


# ===========================================================================
# Argument parser construction
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the full CLI argument parser with subcommands."""

    # --- Top-level parser --------------------------------------------------
    parser = argparse.ArgumentParser(
        prog="phpdoc-typecheck",
        description=(
            "phpdoc-typecheck — check PHPDoc type annotations against\n"
            "native PHP declarations and a recommended house style."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              phpdoc-typecheck check src/
              phpdoc-typecheck check src/ --check-has-docs --format cppcheck
              phpdoc-typecheck parse-type '?Foo|int[]' --namespace App
              phpdoc-typecheck compare 'object' '\\Foo&\\Bar'
        """),
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="count",
        default=0,
        help="Increase verbosity (-v info, -vv debug).",
    )

    subparsers = parser.add_subparsers(
        dest="command",
        title="commands",
        metavar="<command>",
    )

    # --- check -------------------------------------------------------------
    p_check = subparsers.add_parser(
        "check",
        help="Check PHP files or directories.",
        description=(
            "Scan PHP sources, compare every PHPDoc type with the native "
            "declaration it documents, and report the findings."
        ),
    )
    p_check.add_argument(
        "paths",
        nargs="+",
        metavar="PATH",
        help="PHP files or directories to check.",
    )
    p_check.add_argument(
        "-f", "--format",
        choices=FORMATS,
        default="text",
        help="Output format (default: text).",
    )
    p_check.add_argument(
        "--config",
        default=None,
        metavar="FILE",
        help="JSON configuration file (default: ./.phpdoc-typecheck.json if present).",
    )
    g = p_check.add_argument_group("checks")
    g.add_argument(
        "--no-style",
        action="store_true",
        help="Skip the house-style checks.",
    )
    g.add_argument(
        "--check-has-docs",
        action="store_true",
        help="Warn about undocumented functions, parameters, returns and properties.",
    )
    g.add_argument(
        "--fix",
        action="store_true",
        help="Rewrite types into house style and save the files.",
    )
    p_check.set_defaults(func=cmd_check)

    # --- parse-type --------------------------------------------------------
    p_parse = subparsers.add_parser(
        "parse-type",
        help="Print the canonical form of a PHPDoc type.",
    )
    p_parse.add_argument("text", metavar="TEXT", help="The type expression.")
    p_parse.add_argument(
        "--wide",
        action="store_true",
        help="Read unknowable constructs as mixed rather than never.",
    )
    p_parse.add_argument(
        "--namespace",
        default=None,
        metavar="NS",
        help="Namespace that relative class names resolve in.",
    )
    p_parse.set_defaults(func=cmd_parse_type)

    # --- compare -----------------------------------------------------------
    p_compare = subparsers.add_parser(
        "compare",
        help="Check whether one type fits another.",
    )
    p_compare.add_argument("wide", metavar="WIDE", help="The declared type.")
    p_compare.add_argument("narrow", metavar="NARROW", help="The documented type.")
    p_compare.set_defaults(func=cmd_compare)

    return parser


# ===========================================================================
# Main entry point
# ===========================================================================

def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the phpdoc-typecheck CLI.

    Parameters
    ----------
    argv:
        Command-line arguments.  ``None`` → ``sys.argv[1:]``.

    Returns
    -------
    int
        Exit code (see module docstring for semantics).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    _configure_logging(args.verbose)

    # No subcommand given → print help.
    if not hasattr(args, "func"):
        parser.print_help(sys.stderr)
        return EXIT_INFRA

    try:
        return args.func(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA


if __name__ == "__main__":
    raise SystemExit(main())
