"""
scancheck — bufio.Scanner misuse detector for Go sources
=========================================================

Reports ``scanner.Err()`` calls made inside the ``for scanner.Scan()`` loop
that drives the same scanner.  ``Scan`` returns false both at end of input
and on failure, so the error is only meaningful once the loop has ended.

Core modules
------------
grammar, frontend
    Go front-end: semicolon insertion, a parsimonious PEG grammar and the
    visitor that builds the syntax tree of :mod:`scancheck.goast`.
scopes
    Lexical scope resolution: identifier → declaring binding.
resolver
    Binding resolver: receiver identifier → declaring statement.
classifier
    Instance classifier: does a declaration construct a scanner?
scanloop
    Loop scanner and the analyzer factory.
checkers, reporter
    Checker framework, suppressions and output formats.
main
    Command-line interface.

Quick start
-----------
>>> from scancheck import new_analyzer, parse_source
>>> unit = parse_source(open("main.go").read(), "main.go")
>>> for diag in new_analyzer().run(unit):
...     print(diag.to_gcc_format())
"""

from __future__ import annotations

from typing import List

# ---------------------------------------------------------------------------
# Package metadata
# ---------------------------------------------------------------------------

__version__ = "0.1.0"
__license__ = "MIT"

from scancheck.checkers import (  # noqa: E402
    CheckerRunner,
    Diagnostic,
    DiagnosticSeverity,
    SourceLocation,
    default_registry,
)
from scancheck.config import TargetConfig  # noqa: E402
from scancheck.errors import (  # noqa: E402
    ConfigError,
    FrontendError,
    GoSyntaxError,
    ScancheckError,
    TraversalContractError,
)
from scancheck.frontend import SourceUnit, parse_file, parse_source  # noqa: E402
from scancheck.scanloop import Analyzer, new_analyzer, run  # noqa: E402

__all__: List[str] = [
    "__version__",
    "Analyzer",
    "new_analyzer",
    "run",
    "SourceUnit",
    "parse_source",
    "parse_file",
    "TargetConfig",
    "Diagnostic",
    "DiagnosticSeverity",
    "SourceLocation",
    "CheckerRunner",
    "default_registry",
    "ScancheckError",
    "FrontendError",
    "GoSyntaxError",
    "ConfigError",
    "TraversalContractError",
]
