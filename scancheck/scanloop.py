# scancheck/scanloop.py
"""
Loop scanner: report ``scanner.Err()`` calls made inside ``for scanner.Scan()``.

``Scan`` returns false both at end of input and on a read error, so the
error has to be inspected once, after the loop.  Checking it on every
iteration always sees ``nil`` and hides the failure that ends the loop.

Per loop, in tree pre-order::

    S0  condition is a single call expression            else skip loop
    S1  it is  recv.Scan()  with recv a classified instance   else skip
    S2  pre-order walk of the body: every  recv.Err()  on the same
        instance is reported, and its subtree is not entered
    --  nested loops are visited independently by the outer walk

The same call can be reached from an outer and an inner loop over the
same scanner; it is reported once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import ClassVar, Dict, FrozenSet, List, Optional, Set, Tuple

from scancheck import goast as ast
from scancheck.ast_helper import Inspector, expr_to_string, inspect, method_call
from scancheck.checkers import (
    Checker,
    CheckerContext,
    Confidence,
    Diagnostic,
    DiagnosticSeverity,
)
from scancheck.classifier import ConstructionShape, construction_shape
from scancheck.config import TargetConfig
from scancheck.errors import TraversalContractError
from scancheck.frontend import SourceUnit
from scancheck.resolver import resolve
from scancheck.scopes import Binding

logger = logging.getLogger(__name__)

ANALYZER_NAME = "scancheck"
ANALYZER_DOC = "Checks that bufio scanner errors are checked outside a Scan() loop"

ERROR_ID = "scannerErrInScanLoop"
CWE_UNCHECKED_CONDITION = 754


@dataclass(frozen=True)
class Finding:
    """One error-check call found inside a qualifying loop."""
    call: ast.CallExpr
    loop: ast.ForStmt
    receiver: ast.Ident
    shape: ConstructionShape


class LoopScanner:
    """Runs the per-loop state machine over one source unit."""

    def __init__(self, unit: SourceUnit, config: Optional[TargetConfig] = None) -> None:
        self.unit = unit
        self.config = config or TargetConfig()

    def instance(self, ident: ast.Ident) -> Optional[Tuple[Binding, ConstructionShape]]:
        """Binding and construction shape of *ident*, if it holds a target instance."""
        declaration = resolve(ident, self.unit.bindings)
        if declaration is None:
            return None
        shape = construction_shape(declaration, ident.name, self.unit.bindings,
                                   self.unit, self.config)
        if shape is ConstructionShape.UNCLASSIFIED:
            return None
        return self.unit.bindings.lookup(ident), shape

    def qualify(self, loop: ast.Node) -> Optional[Tuple[Binding, ConstructionShape]]:
        """States S0 and S1: the instance driving *loop*, or None."""
        if not isinstance(loop, ast.ForStmt):
            raise TraversalContractError(loop)
        if not isinstance(loop.cond, ast.CallExpr):
            return None
        shape = method_call(loop.cond)
        if shape is None:
            return None
        recv, method = shape
        if method != self.config.advance:
            return None
        return self.instance(recv)

    def scan_body(self, loop: ast.ForStmt, binding: Binding,
                  shape: ConstructionShape) -> List[Finding]:
        """State S2: error-check calls on *binding* inside the loop body."""
        found: List[Finding] = []
        bindings = self.unit.bindings

        def visit(node: ast.Node) -> bool:
            call = method_call(node)
            if call is None:
                return True
            recv, method = call
            if method != self.config.error_check:
                return True
            if bindings.lookup(recv) is not binding:
                return True
            found.append(Finding(node, loop, recv, shape))
            return False

        inspect(loop.body, visit)
        return found

    def scan(self) -> List[Finding]:
        """Every finding in the unit, in pre-order, without duplicates."""
        findings: List[Finding] = []
        seen: Set[int] = set()
        loops = 0
        for loop in Inspector(self.unit.file).preorder(ast.ForStmt):
            qualified = self.qualify(loop)
            if qualified is None:
                continue
            loops += 1
            binding, shape = qualified
            logger.debug("%s: loop at %s drives %s (%s)", self.unit.filename,
                         self.unit.location(loop), binding.name, shape.value)
            for finding in self.scan_body(loop, binding, shape):
                if finding.call.pos in seen:
                    continue
                seen.add(finding.call.pos)
                findings.append(finding)
        logger.debug("%s: %d qualifying loop(s), %d finding(s)",
                     self.unit.filename, loops, len(findings))
        return findings


def _confidence(shape: ConstructionShape) -> Confidence:
    if shape is ConstructionShape.DIRECT_CONSTRUCTOR_CALL:
        return Confidence.HIGH
    return Confidence.MEDIUM


def _evidence(finding: Finding) -> Dict[str, str]:
    return {
        "receiver": finding.receiver.name,
        "call": expr_to_string(finding.call),
        "loop_condition": expr_to_string(finding.loop.cond),
        "construction": finding.shape.value,
    }


def run(unit: SourceUnit, config: Optional[TargetConfig] = None) -> List[Diagnostic]:
    """
    Analyse one source unit.

    Deterministic: the same unit always yields the same diagnostics in the
    same order.  No suppressions are applied here; the checker's
    ``report`` phase, which filters them, is not run.
    """
    checker = ScanErrInLoopChecker()
    ctx = CheckerContext(unit=unit, config=config or TargetConfig())
    checker.configure(ctx)
    checker.collect_evidence(ctx)
    checker.diagnose(ctx)
    return checker.diagnostics


# ═══════════════════════════════════════════════════════════════════════════
#  ANALYZER FACTORY
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Analyzer:
    """An analyzer value a driver holds and runs; nothing global."""
    name: str = ANALYZER_NAME
    doc: str = ANALYZER_DOC
    config: TargetConfig = field(default_factory=TargetConfig)

    def run(self, unit: SourceUnit) -> List[Diagnostic]:
        return run(unit, self.config)


def new_analyzer(config: Optional[TargetConfig] = None) -> Analyzer:
    return Analyzer(config=config or TargetConfig())


# ═══════════════════════════════════════════════════════════════════════════
#  CHECKER FRAMEWORK ADAPTER
# ═══════════════════════════════════════════════════════════════════════════

class ScanErrInLoopChecker(Checker):
    """
    Detects ``Err()`` checks made inside the ``Scan()`` loop they belong to.

    CWE-754: Improper Check for Unusual or Exceptional Conditions
    """

    name: ClassVar[str] = "scan-err-in-loop"
    description: ClassVar[str] = "scanner.Err() checked inside a Scan() loop"
    error_ids: ClassVar[FrozenSet[str]] = frozenset({ERROR_ID})
    default_severity: ClassVar[DiagnosticSeverity] = DiagnosticSeverity.WARNING
    cwe_ids: ClassVar[Dict[str, int]] = {ERROR_ID: CWE_UNCHECKED_CONDITION}

    def __init__(self) -> None:
        super().__init__()
        self._target = TargetConfig()
        self._findings: List[Finding] = []

    def configure(self, ctx: CheckerContext) -> None:
        self._target = ctx.config

    def collect_evidence(self, ctx: CheckerContext) -> None:
        self._findings = LoopScanner(ctx.unit, self._target).scan()
        ctx.stats[f"{self.name}_findings"] = (
            ctx.stats.get(f"{self.name}_findings", 0) + len(self._findings)
        )

    def diagnose(self, ctx: CheckerContext) -> None:
        unit = ctx.unit
        message = self._target.message
        for finding in self._findings:
            loc = unit.location(finding.call)
            self._emit(
                error_id=ERROR_ID,
                message=message,
                file=loc.file, line=loc.line, column=loc.column,
                confidence=_confidence(finding.shape),
                secondary=(unit.location(finding.loop),),
                evidence=_evidence(finding),
            )


__all__ = [
    "ANALYZER_NAME",
    "ANALYZER_DOC",
    "ERROR_ID",
    "Finding",
    "LoopScanner",
    "run",
    "Analyzer",
    "new_analyzer",
    "ScanErrInLoopChecker",
]
