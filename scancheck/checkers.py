"""
scancheck/checkers.py
═════════════════════

Checker framework: the diagnostic model, suppressions, the checker
lifecycle, the registry and the runner that drives checkers over parsed
Go source units.

Architecture
────────────

  ┌─────────────────────────────────────────────────────────┐
  │                   CheckerRunner                         │
  │  ┌──────────────────────┐                               │
  │  │ ScanErrInLoopChecker │   (one per registry entry)    │
  │  └──────────┬───────────┘                               │
  │             │                                           │
  │  ┌──────────▼────────────────────────────────────────┐  │
  │  │      SourceUnit  (goast.File + BindingInfo)       │  │
  │  └──────────────────────────┬────────────────────────┘  │
  │                             │                           │
  │  ┌──────────────────────────▼────────────────────────┐  │
  │  │           SuppressionManager                      │  │
  │  │  //nolint  │  file patterns  │  global            │  │
  │  └──────────────────────────┬────────────────────────┘  │
  │                             │                           │
  │  ┌──────────────────────────▼────────────────────────┐  │
  │  │        Diagnostic (JSON lines / gcc / SARIF)      │  │
  │  └──────────────────────────────────────────────────┘  │
  └─────────────────────────────────────────────────────────┘

Each Checker follows a four-phase lifecycle:

  1. **configure()**        — read target names and options
  2. **collect_evidence()** — walk the tree, gather suspicious sites
  3. **diagnose()**         — turn sites into Diagnostics
  4. **report()**           — emit Diagnostics (filtered by suppressions)
"""

from __future__ import annotations

import json
import logging
import re
import time
from abc import ABC, abstractmethod
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum, auto
from fnmatch import fnmatch
from typing import (
    TYPE_CHECKING,
    Any,
    ClassVar,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    Sequence,
    Set,
    Tuple,
    Type,
)

from scancheck.config import TargetConfig

if TYPE_CHECKING:
    from scancheck.frontend import SourceUnit

logger = logging.getLogger(__name__)

TOOL_NAME = "scancheck"


# ═════════════════════════════════════════════════════════════════════════
#  PART 1 — DIAGNOSTIC MODEL
# ═════════════════════════════════════════════════════════════════════════

class DiagnosticSeverity(Enum):
    """Severity levels, ordered from most to least severe."""
    ERROR = "error"
    WARNING = "warning"
    STYLE = "style"
    INFORMATION = "information"


class Confidence(Enum):
    """
    How certain we are that the diagnostic is a true positive.

    HIGH   — the construction of the instance was recognised syntactically
    MEDIUM — the instance was recognised through a looser shape
    LOW    — heuristic / pattern-based, may be false positive
    """
    HIGH = auto()
    MEDIUM = auto()
    LOW = auto()


@dataclass(frozen=True)
class SourceLocation:
    """A specific point in source code."""
    file: str = ""
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        if self.column:
            return f"{self.file}:{self.line}:{self.column}"
        if self.line:
            return f"{self.file}:{self.line}"
        return self.file


@dataclass(frozen=True)
class Diagnostic:
    """
    A single diagnostic finding.

    Attributes
    ----------
    error_id     : Unique identifier (e.g., "scannerErrInScanLoop")
    message      : Human-readable description
    severity     : DiagnosticSeverity
    location     : Primary source location
    confidence   : Confidence level
    cwe          : CWE identifier (0 = none)
    checker_name : Name of the checker that produced this
    addon        : Tool name reported in machine-readable output
    extra        : Additional context string
    secondary    : Related locations (e.g., the loop that drives the scanner)
    evidence     : Machine-readable evidence dict for downstream tooling
    """
    error_id: str
    message: str
    severity: DiagnosticSeverity
    location: SourceLocation
    confidence: Confidence = Confidence.MEDIUM
    cwe: int = 0
    checker_name: str = ""
    addon: str = TOOL_NAME
    extra: str = ""
    secondary: Tuple[SourceLocation, ...] = ()
    evidence: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def to_json(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dict."""
        result: Dict[str, Any] = {
            "file": self.location.file,
            "line": self.location.line,
            "column": self.location.column,
            "severity": self.severity.value,
            "message": self.message,
            "addon": self.addon,
            "errorId": self.error_id,
            "checker": self.checker_name,
            "confidence": self.confidence.name.lower(),
        }
        if self.cwe:
            result["cwe"] = self.cwe
        if self.extra:
            result["extra"] = self.extra
        if self.secondary:
            result["related"] = [
                {"file": loc.file, "line": loc.line, "column": loc.column}
                for loc in self.secondary
            ]
        return result

    def to_json_str(self) -> str:
        """Single-line JSON string."""
        return json.dumps(self.to_json())

    def to_gcc_format(self) -> str:
        """GCC-style diagnostic string: file:line:col: severity: message."""
        sev = self.severity.value
        return f"{self.location}: {sev}: {self.message} [{self.error_id}]"


# ═════════════════════════════════════════════════════════════════════════
#  PART 2 — SUPPRESSION MANAGER
# ═════════════════════════════════════════════════════════════════════════

# //nolint, //nolint:scancheck, //nolint:errcheck,scancheck
_NOLINT_RE = re.compile(r"^\s*nolint(?::(?P<ids>[\w,\-]+))?\b")
# // scancheck:ignore, // scancheck:ignore scannerErrInScanLoop
_IGNORE_RE = re.compile(r"^\s*scancheck:ignore(?:\s+(?P<ids>[\w,\-]+))?")


class SuppressionManager:
    """
    Manages diagnostic suppressions from multiple sources.

    Sources:
      1. Inline comments: ``//nolint``, ``//nolint:scancheck`` or
         ``// scancheck:ignore [errorId,...]`` on the reported line, or
         alone on the line above it
      2. File-level suppressions (passed programmatically)
      3. Global suppressions (command-line or config)

    Usage
    -----
    >>> sm = SuppressionManager()
    >>> sm.load_inline_suppressions(unit)
    >>> sm.add_file_suppression("scannerErrInScanLoop", "legacy/*.go")
    >>> sm.add_global_suppression("checkerInternalError")
    >>> if not sm.is_suppressed(diagnostic):
    ...     emit(diagnostic)
    """

    def __init__(self) -> None:
        # {(file, line)} → set of error_ids suppressed at that location
        self._inline: Dict[Tuple[str, int], Set[str]] = defaultdict(set)
        # file pattern → set of error_ids
        self._file_level: Dict[str, Set[str]] = defaultdict(set)
        # globally suppressed error_ids
        self._global: Set[str] = set()

    def load_inline_suppressions(self, unit: "SourceUnit") -> int:
        """
        Scan the comments of *unit* for suppression markers.

        Returns the number of markers found.
        """
        found = 0
        for comment in unit.comments:
            if not comment.is_line:
                continue
            ids = self._parse_marker(comment.body)
            if ids is None:
                continue
            line, column = unit.position(comment.pos)
            # A marker alone on its line also covers the line below it.
            alone = not unit.line_text(line)[:column - 1].strip()
            for error_id in ids:
                self.add_inline_suppression(unit.filename, line, error_id,
                                            next_line=alone)
            found += 1
        if found:
            logger.debug("%s: %d inline suppression(s)", unit.filename, found)
        return found

    @staticmethod
    def _parse_marker(body: str) -> Optional[Set[str]]:
        m = _NOLINT_RE.match(body) or _IGNORE_RE.match(body)
        if m is None:
            return None
        raw = m.group("ids")
        if not raw:
            return {"*"}
        ids = {part for part in raw.split(",") if part}
        if TOOL_NAME in ids or "all" in ids:
            return {"*"}
        # Anything else names error ids (or other linters, which never match).
        return ids

    def add_inline_suppression(
        self, file: str, line: int, error_id: str = "*", next_line: bool = False
    ) -> None:
        """Suppress ``error_id`` on *line* (and on the line below if *next_line*)."""
        self._inline[(file, line)].add(error_id)
        if next_line:
            self._inline[(file, line + 1)].add(error_id)

    def add_file_suppression(self, error_id: str, file_pattern: str) -> None:
        """Suppress ``error_id`` in files matching ``file_pattern``."""
        self._file_level[file_pattern].add(error_id)

    def add_global_suppression(self, error_id: str) -> None:
        """Globally suppress ``error_id``."""
        self._global.add(error_id)

    def is_suppressed(self, diag: Diagnostic) -> bool:
        """Check whether a diagnostic should be suppressed."""
        eid = diag.error_id

        if eid in self._global or "*" in self._global:
            return True

        loc = diag.location

        suppressed_ids = self._inline.get((loc.file, loc.line), set())
        if eid in suppressed_ids or "*" in suppressed_ids:
            return True

        for pattern, ids in self._file_level.items():
            if eid in ids or "*" in ids:
                if pattern == loc.file or loc.file.endswith(pattern):
                    return True
                if fnmatch(loc.file, pattern):
                    return True

        return False

    def filter_diagnostics(
        self, diagnostics: Iterable[Diagnostic]
    ) -> List[Diagnostic]:
        """Return only non-suppressed diagnostics."""
        return [d for d in diagnostics if not self.is_suppressed(d)]


# ═════════════════════════════════════════════════════════════════════════
#  PART 3 — CHECKER BASE CLASS
# ═════════════════════════════════════════════════════════════════════════

class Checker(ABC):
    """
    Abstract base class for all checkers.

    Lifecycle
    ─────────
      1. ``configure(ctx)``        — receive context, read options
      2. ``collect_evidence(ctx)``  — walk the syntax tree
      3. ``diagnose(ctx)``          — turn evidence into diagnostics
      4. ``report(ctx)``            — yield final diagnostics

    Subclass Contract
    ─────────────────
      - Override ``name``, ``description``, ``error_ids``
      - Implement ``collect_evidence()`` and ``diagnose()``
      - Optionally override ``configure()`` for custom setup
    """

    name: ClassVar[str] = "base-checker"
    description: ClassVar[str] = ""
    error_ids: ClassVar[FrozenSet[str]] = frozenset()
    default_severity: ClassVar[DiagnosticSeverity] = DiagnosticSeverity.WARNING
    cwe_ids: ClassVar[Dict[str, int]] = {}  # error_id → CWE number

    def __init__(self) -> None:
        self._diagnostics: List[Diagnostic] = []

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return list(self._diagnostics)

    def configure(self, ctx: CheckerContext) -> None:
        """
        Called before evidence collection.

        Override to read configuration.  Default implementation does nothing.
        """
        pass

    @abstractmethod
    def collect_evidence(self, ctx: CheckerContext) -> None:
        """Walk ``ctx.unit`` and store suspicious sites."""
        ...

    @abstractmethod
    def diagnose(self, ctx: CheckerContext) -> None:
        """
        Correlate evidence into Diagnostic objects.

        Append diagnostics to ``self._diagnostics``.
        """
        ...

    def report(self, ctx: CheckerContext) -> List[Diagnostic]:
        """
        Return final diagnostics, filtered by suppressions.

        Normally you don't need to override this.
        """
        return ctx.suppressions.filter_diagnostics(self._diagnostics)

    def _emit(
        self,
        error_id: str,
        message: str,
        file: str,
        line: int,
        column: int = 0,
        severity: Optional[DiagnosticSeverity] = None,
        confidence: Confidence = Confidence.MEDIUM,
        extra: str = "",
        secondary: Tuple[SourceLocation, ...] = (),
        evidence: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Helper to create and store a diagnostic."""
        self._diagnostics.append(Diagnostic(
            error_id=error_id,
            message=message,
            severity=severity or self.default_severity,
            location=SourceLocation(file=file, line=line, column=column),
            confidence=confidence,
            cwe=self.cwe_ids.get(error_id, 0),
            checker_name=self.name,
            extra=extra,
            secondary=secondary,
            evidence=evidence or {},
        ))

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} '{self.name}'>"


@dataclass
class CheckerContext:
    """
    Shared context passed to every checker during execution.

    Attributes
    ----------
    unit         : the parsed SourceUnit under analysis
    config       : TargetConfig naming the iterator family to check
    suppressions : SuppressionManager
    options      : user-provided options dict
    stats        : mutable dict for timing / counting statistics
    """
    unit: "SourceUnit"
    config: TargetConfig = field(default_factory=TargetConfig)
    suppressions: SuppressionManager = field(default_factory=SuppressionManager)
    options: Dict[str, Any] = field(default_factory=dict)
    stats: Dict[str, Any] = field(default_factory=dict)


# ═════════════════════════════════════════════════════════════════════════
#  PART 4 — CHECKER REGISTRY
# ═════════════════════════════════════════════════════════════════════════

class CheckerRegistry:
    """
    Checker classes by name.

    The runner takes every registered checker unless the caller names a
    subset; ``scancheck --list-checkers`` prints the same table.

    Usage
    -----
    >>> registry = CheckerRegistry()
    >>> registry.register(ScanErrInLoopChecker)
    >>> registry.get_by_name("scan-err-in-loop")
    <class 'scancheck.scanloop.ScanErrInLoopChecker'>
    """

    def __init__(self) -> None:
        self._checkers: Dict[str, Type[Checker]] = {}

    def register(self, checker_cls: Type[Checker]) -> None:
        self._checkers[checker_cls.name] = checker_cls

    def get_all(self) -> List[Type[Checker]]:
        """Registered checker classes, in registration order."""
        return list(self._checkers.values())

    def get_by_name(self, name: str) -> Optional[Type[Checker]]:
        return self._checkers.get(name)


def default_registry() -> CheckerRegistry:
    """A fresh registry holding every built-in checker."""
    from scancheck.scanloop import ScanErrInLoopChecker

    registry = CheckerRegistry()
    registry.register(ScanErrInLoopChecker)
    return registry


# ═════════════════════════════════════════════════════════════════════════
#  PART 5 — CHECKER RUNNER
# ═════════════════════════════════════════════════════════════════════════

@dataclass
class CheckerRunResults:
    """
    Aggregate results from running a suite of checkers.

    Attributes
    ----------
    diagnostics            : All diagnostics from all checkers
    diagnostics_by_checker : Diagnostics grouped by checker name
    stats                  : Timing and counting statistics
    checker_names          : Names of checkers that were run
    files                  : Files the checkers ran over
    """
    diagnostics: List[Diagnostic] = field(default_factory=list)
    diagnostics_by_checker: Dict[str, List[Diagnostic]] = field(
        default_factory=lambda: defaultdict(list)
    )
    stats: Dict[str, Any] = field(default_factory=dict)
    checker_names: List[str] = field(default_factory=list)
    files: List[str] = field(default_factory=list)

    def count(self, severity: DiagnosticSeverity) -> int:
        return sum(1 for d in self.diagnostics if d.severity is severity)

    @property
    def total_count(self) -> int:
        return len(self.diagnostics)

    def merge(self, other: "CheckerRunResults") -> None:
        """Fold the results for another file into these, summing timings."""
        self.diagnostics.extend(other.diagnostics)
        for name, diags in other.diagnostics_by_checker.items():
            self.diagnostics_by_checker[name].extend(diags)
        for key, val in other.stats.items():
            self.stats[key] = self.stats.get(key, 0) + val
        for name in other.checker_names:
            if name not in self.checker_names:
                self.checker_names.append(name)
        self.files.extend(f for f in other.files if f not in self.files)

    def summary(self) -> str:
        """Human-readable summary."""
        errors = self.count(DiagnosticSeverity.ERROR)
        warnings = self.count(DiagnosticSeverity.WARNING)
        lines = [
            f"Checker run complete: {self.total_count} diagnostics "
            f"({errors} errors, {warnings} warnings) in {len(self.files)} file(s)",
        ]
        for name in self.checker_names:
            found = len(self.diagnostics_by_checker.get(name, []))
            elapsed = self.stats.get(f"{name}_elapsed_ms", 0)
            lines.append(f"  {name}: {found} findings ({elapsed:.1f}ms)")
        return "\n".join(lines)


class CheckerRunner:
    """
    Runs a suite of checkers against parsed Go source units.

    Usage
    -----
    >>> runner = CheckerRunner()
    >>> results = runner.run(parse_file("main.go"))
    >>> print(results.summary())

    >>> # Or select specific checkers:
    >>> results = runner.run(unit, checkers=["scan-err-in-loop"])

    Parameters for constructor
    ─────────────────────────
    registry    : CheckerRegistry — source of checker classes
    suppressions: SuppressionManager — pre-loaded suppression rules
    options     : dict — target overrides and per-checker configuration
    """

    def __init__(
        self,
        registry: Optional[CheckerRegistry] = None,
        suppressions: Optional[SuppressionManager] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.registry = registry or default_registry()
        self.suppressions = suppressions or SuppressionManager()
        self.options = options or {}
        self.config = TargetConfig.from_options(self.options)

    def _select(self, checkers: Optional[Sequence[str]]) -> List[Type[Checker]]:
        if checkers is None:
            return self.registry.get_all()
        selected: List[Type[Checker]] = []
        for name in checkers:
            cls = self.registry.get_by_name(name)
            if cls is None:
                logger.warning("unknown checker %r ignored", name)
                continue
            selected.append(cls)
        return selected

    def run(
        self,
        unit: "SourceUnit",
        checkers: Optional[Sequence[str]] = None,
    ) -> CheckerRunResults:
        """
        Run checkers against a single source unit.

        Parameters
        ----------
        unit     : SourceUnit from :func:`scancheck.frontend.parse_source`
        checkers : list of checker names to run (None = all registered)
        """
        results = CheckerRunResults(files=[unit.filename])

        self.suppressions.load_inline_suppressions(unit)

        ctx = CheckerContext(
            unit=unit,
            config=self.config,
            suppressions=self.suppressions,
            options=self.options,
        )

        for cls in self._select(checkers):
            checker = cls()
            checker_name = cls.name
            results.checker_names.append(checker_name)

            t0 = time.monotonic()
            try:
                checker.configure(ctx)
                checker.collect_evidence(ctx)
                checker.diagnose(ctx)
                diags = checker.report(ctx)
            except Exception as exc:
                logger.exception("checker %s failed on %s", checker_name, unit.filename)
                diags = [Diagnostic(
                    error_id="checkerInternalError",
                    message=f"Checker '{checker_name}' failed: {exc}",
                    severity=DiagnosticSeverity.INFORMATION,
                    location=SourceLocation(file=unit.filename),
                    checker_name=checker_name,
                )]
                diags = self.suppressions.filter_diagnostics(diags)
            elapsed_ms = (time.monotonic() - t0) * 1000.0

            results.diagnostics.extend(diags)
            results.diagnostics_by_checker[checker_name] = list(diags)
            results.stats[f"{checker_name}_elapsed_ms"] = elapsed_ms
            logger.debug("%s: %s produced %d diagnostic(s) in %.1fms",
                         unit.filename, checker_name, len(diags), elapsed_ms)

        return results


__all__ = [
    # Diagnostic model
    "Diagnostic",
    "DiagnosticSeverity",
    "Confidence",
    "SourceLocation",
    # Suppression
    "SuppressionManager",
    # Checker framework
    "Checker",
    "CheckerContext",
    "CheckerRegistry",
    "default_registry",
    # Runner
    "CheckerRunner",
    "CheckerRunResults",
    "TOOL_NAME",
]
