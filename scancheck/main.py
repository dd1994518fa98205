#!/usr/bin/env python3
"""scancheck/main.py — CLI entry-point for scancheck.

Usage examples
--------------
    # Check every package below the current directory
    scancheck ./...

    # Check single files, machine-readable output
    scancheck cmd/tool/main.go internal/io/lines.go --format json

    # Write a SARIF log for code-scanning upload
    scancheck ./... --format sarif --output scancheck.sarif

    # Point the checker at a look-alike iterator API
    scancheck ./... --import-path example.com/lines \\
        --constructor NewReader --type-name Reader --advance Next

Exit codes
----------
    0   Success (no diagnostics).
    1   One or more diagnostics were reported.
    2   Infrastructure failure (unreadable file, syntax error, bad options).

The module doubles as ``python -m scancheck`` via the companion
``scancheck/__main__.py`` which simply calls :func:`main`.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
import textwrap
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, TextIO, Tuple

from scancheck import __version__
from scancheck.checkers import (
    CheckerRunner,
    CheckerRunResults,
    SuppressionManager,
    default_registry,
)
from scancheck.errors import ConfigError, FrontendError
from scancheck.frontend import SourceUnit, parse_file
from scancheck.reporter import render_json, render_plain, render_sarif, render_terminal

_log = logging.getLogger("scancheck")

# Exit codes ----------------------------------------------------------------

EXIT_OK: int = 0
EXIT_FINDINGS: int = 1
EXIT_INFRA: int = 2

# Directories never entered while walking a tree (Go tooling convention).
_SKIPPED_DIRS = frozenset({"vendor", "testdata"})

_FORMATS = ("text", "gcc", "json", "sarif", "summary")


# ===========================================================================
# Utility helpers
# ===========================================================================

def _configure_logging(verbosity: int) -> None:
    """Set up the ``scancheck`` logger.

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
    root = logging.getLogger("scancheck")
    root.setLevel(level)
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)


def _open_output(dest: Optional[str]) -> TextIO:
    """Return a writable text stream.

    *dest* ``None`` or ``"-"`` → ``sys.stdout``; otherwise open the path
    for writing (creating parent directories as needed).
    """
    if dest is None or dest == "-":
        return sys.stdout
    p = Path(dest).expanduser().resolve()
    p.parent.mkdir(parents=True, exist_ok=True)
    return open(p, "w", encoding="utf-8")


def _skip_dir(name: str) -> bool:
    return name in _SKIPPED_DIRS or name.startswith((".", "_"))


def _walk_go_files(root: Path) -> List[Path]:
    found: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not _skip_dir(d))
        for fname in sorted(filenames):
            if fname.endswith(".go") and not fname.startswith((".", "_")):
                found.append(Path(dirpath) / fname)
    return found


def discover_files(patterns: Sequence[str]) -> Tuple[List[Path], List[str]]:
    """Expand command-line *patterns* into Go source files.

    Accepts files, directories and ``dir/...`` patterns; directories are
    walked recursively either way.

    Returns
    -------
    (files, missing)
        The files found in order without duplicates, and the patterns that
        named nothing on disk.
    """
    files: List[Path] = []
    missing: List[str] = []
    seen = set()
    for raw in patterns or ["."]:
        text = raw
        if text == "...":
            text = "."
        elif text.endswith("/..."):
            text = text[:-4] or "/"
        path = Path(text)
        if path.is_dir():
            candidates = _walk_go_files(path)
        elif path.is_file():
            candidates = [path]
        else:
            missing.append(raw)
            continue
        for candidate in candidates:
            key = os.path.normpath(str(candidate))
            if key not in seen:
                seen.add(key)
                files.append(candidate)
    return files, missing


def _target_options(args: argparse.Namespace) -> Dict[str, Any]:
    options: Dict[str, Any] = {}
    if args.import_path is not None:
        options["import_path"] = args.import_path
    if args.constructor:
        options["constructors"] = list(args.constructor)
    if args.type_name is not None:
        options["type_name"] = args.type_name
    if args.advance is not None:
        options["advance"] = args.advance
    if args.error_check is not None:
        options["error_check"] = args.error_check
    return options


def _emit_results(
    results: CheckerRunResults,
    units: Dict[str, SourceUnit],
    fmt: str,
    stream: TextIO,
) -> None:
    """Write *results* to *stream* in the chosen format."""
    if fmt == "json":
        render_json(results.diagnostics, stream)
    elif fmt == "gcc":
        render_plain(results.diagnostics, stream)
    elif fmt == "sarif":
        render_sarif(results.diagnostics, stream)
    elif fmt == "summary":
        stream.write(results.summary() + "\n")
    else:
        color = None if stream is sys.stdout else False
        render_terminal(results.diagnostics, stream, units=units, color=color)


def _list_checkers(stream: TextIO) -> None:
    registry = default_registry()
    for cls in registry.get_all():
        ids = ", ".join(sorted(cls.error_ids))
        stream.write(f"{cls.name:<20} {cls.description} [{ids}]\n")


# ===========================================================================
# Argument parser construction
# ===========================================================================

def _build_parser() -> argparse.ArgumentParser:
    """Construct the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="scancheck",
        description=(
            "scancheck: report bufio.Scanner error checks made inside the\n"
            "Scan() loop instead of after it."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""\
            examples:
              scancheck ./...
              scancheck main.go --format gcc
              scancheck ./... --format sarif -o scancheck.sarif
        """),
    )
    parser.add_argument(
        "paths",
        nargs="*",
        metavar="PATH",
        help="Go files, directories or dir/... patterns (default: .).",
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
    parser.add_argument(
        "-o", "--output",
        default=None,
        metavar="FILE",
        help='Output file ("-" or omit for stdout).',
    )
    parser.add_argument(
        "-f", "--format",
        choices=_FORMATS,
        default="text",
        help="Output format (default: text).",
    )
    parser.add_argument(
        "--suppress",
        action="append",
        default=[],
        metavar="ID",
        help="Suppress an error id everywhere (repeatable).",
    )
    parser.add_argument(
        "--list-checkers",
        action="store_true",
        help="List the available checkers and exit.",
    )

    g = parser.add_argument_group("target iterator")
    g.add_argument("--import-path", default=None, metavar="PATH",
                   help='Import path of the iterator package (default: "bufio").')
    g.add_argument("--constructor", action="append", default=[], metavar="NAME",
                   help='Constructor function name, repeatable (default: "NewScanner").')
    g.add_argument("--type-name", default=None, metavar="NAME",
                   help='Iterator type name (default: "Scanner").')
    g.add_argument("--advance", default=None, metavar="NAME",
                   help='Advance method driving the loop (default: "Scan").')
    g.add_argument("--error-check", default=None, metavar="NAME",
                   help='Error accessor method (default: "Err").')
    return parser


# ===========================================================================
# Driver
# ===========================================================================

def _check(args: argparse.Namespace) -> int:
    if args.list_checkers:
        _list_checkers(sys.stdout)
        return EXIT_OK

    try:
        suppressions = SuppressionManager()
        for error_id in args.suppress:
            suppressions.add_global_suppression(error_id)
        runner = CheckerRunner(suppressions=suppressions, options=_target_options(args))
    except ConfigError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA

    files, missing = discover_files(args.paths)
    infra_failure = False
    for pattern in missing:
        _log.error("no such file or directory: %s", pattern)
        infra_failure = True

    units: Dict[str, SourceUnit] = {}
    results = CheckerRunResults()
    for path in files:
        try:
            unit = parse_file(path)
        except FrontendError as exc:
            _log.error("%s", exc)
            infra_failure = True
            continue
        units[unit.filename] = unit
        results.merge(runner.run(unit))
    _log.info("checked %d file(s), %d diagnostic(s)", len(units), results.total_count)

    out = _open_output(args.output)
    try:
        _emit_results(results, units, args.format, out)
    finally:
        if out is not sys.stdout:
            out.close()

    if infra_failure:
        return EXIT_INFRA
    return EXIT_FINDINGS if results.total_count > 0 else EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the scancheck CLI.

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
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else EXIT_INFRA

    _configure_logging(args.verbose)

    try:
        return _check(args)
    except KeyboardInterrupt:
        _log.info("Interrupted by user.")
        return 130  # Standard UNIX convention for SIGINT
    except OSError as exc:
        _log.error("%s", exc)
        return EXIT_INFRA


# ---------------------------------------------------------------------------
# Module execution support
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    raise SystemExit(main())
