# tests/test_checkers.py
"""
Tests for the checker framework: diagnostics, suppressions, registry and
runner.
"""

import json

import pytest

from scancheck.checkers import (
    Checker,
    CheckerRegistry,
    CheckerRunner,
    CheckerRunResults,
    Confidence,
    Diagnostic,
    DiagnosticSeverity,
    SourceLocation,
    SuppressionManager,
    default_registry,
)
from scancheck.frontend import parse_file
from scancheck.scanloop import ERROR_ID, ScanErrInLoopChecker, run


def _diag(line=3, error_id=ERROR_ID, file="a.go", severity=DiagnosticSeverity.WARNING):
    return Diagnostic(
        error_id=error_id,
        message="scanner.Err() called inside a Scan() loop",
        severity=severity,
        location=SourceLocation(file=file, line=line, column=5),
        cwe=754,
        checker_name="scan-err-in-loop",
    )


TRAILING_MARKER = """\
package scan

import (
	"bufio"
	"io"
)

func f(r io.Reader) {
	scanner := bufio.NewScanner(r)
	for scanner.Scan() {
		_ = scanner.Bytes() //nolint:errcheck,scancheck
		if err := scanner.Err(); err != nil {
			panic(err)
		}
	}
}
"""


class _ExplodingChecker(Checker):
    name = "exploding"
    description = "always fails"

    def collect_evidence(self, ctx):
        raise RuntimeError("boom")

    def diagnose(self, ctx):
        pass


# ═══════════════════════════════════════════════════════════════════════
#  DIAGNOSTIC MODEL
# ═══════════════════════════════════════════════════════════════════════

class TestDiagnostic:

    def test_source_location_str(self):
        assert str(SourceLocation("a.go", 3, 5)) == "a.go:3:5"
        assert str(SourceLocation("a.go", 3)) == "a.go:3"
        assert str(SourceLocation("a.go")) == "a.go"

    def test_gcc_format(self):
        assert _diag().to_gcc_format() == (
            "a.go:3:5: warning: scanner.Err() called inside a Scan() loop "
            "[scannerErrInScanLoop]"
        )

    def test_json(self):
        diag = Diagnostic(
            error_id=ERROR_ID,
            message="m",
            severity=DiagnosticSeverity.WARNING,
            location=SourceLocation("a.go", 3, 5),
            confidence=Confidence.HIGH,
            cwe=754,
            secondary=(SourceLocation("a.go", 2, 2),),
        )
        data = json.loads(diag.to_json_str())
        assert data["errorId"] == ERROR_ID
        assert data["confidence"] == "high"
        assert data["cwe"] == 754
        assert data["addon"] == "scancheck"
        assert data["related"] == [{"file": "a.go", "line": 2, "column": 2}]

    def test_json_omits_empty_fields(self):
        data = Diagnostic("x", "m", DiagnosticSeverity.STYLE, SourceLocation("a.go", 1)).to_json()
        assert "cwe" not in data
        assert "related" not in data

    def test_evidence_does_not_affect_equality(self):
        a = _diag()
        b = Diagnostic(**{**a.__dict__, "evidence": {"receiver": "s"}})
        assert a == b


# ═══════════════════════════════════════════════════════════════════════
#  SUPPRESSIONS
# ═══════════════════════════════════════════════════════════════════════

class TestSuppressionManager:

    @pytest.mark.parametrize("body, expected", [
        ("nolint", {"*"}),
        ("nolint:scancheck", {"*"}),
        ("nolint:all", {"*"}),
        ("nolint:errcheck,scancheck", {"*"}),
        ("nolint:errcheck", {"errcheck"}),
        (" scancheck:ignore", {"*"}),
        (" scancheck:ignore scannerErrInScanLoop", {"scannerErrInScanLoop"}),
        (" just a comment", None),
        (" nolintish", None),
    ])
    def test_parse_marker(self, body, expected):
        assert SuppressionManager._parse_marker(body) == expected

    def test_inline_markers_from_fixture(self, testdata):
        unit = parse_file(testdata / "suppressed.go")
        sm = SuppressionManager()
        assert sm.load_inline_suppressions(unit) == 3
        diagnostics = run(unit)
        assert len(diagnostics) == 3
        kept = sm.filter_diagnostics(diagnostics)
        assert [d.location.line for d in kept] == [30]

    def test_global(self):
        sm = SuppressionManager()
        sm.add_global_suppression(ERROR_ID)
        assert sm.is_suppressed(_diag())
        assert not sm.is_suppressed(_diag(error_id="other"))

    def test_file_pattern(self):
        sm = SuppressionManager()
        sm.add_file_suppression(ERROR_ID, "legacy/*.go")
        assert sm.is_suppressed(_diag(file="legacy/old.go"))
        assert not sm.is_suppressed(_diag(file="new/fresh.go"))

    def test_inline_next_line_only_when_requested(self):
        sm = SuppressionManager()
        sm.add_inline_suppression("a.go", 2)
        sm.add_inline_suppression("a.go", 7, next_line=True)
        assert sm.is_suppressed(_diag(line=2))
        assert not sm.is_suppressed(_diag(line=3))
        assert sm.is_suppressed(_diag(line=7))
        assert sm.is_suppressed(_diag(line=8))
        assert not sm.is_suppressed(_diag(line=9))

    def test_trailing_marker_does_not_cover_next_line(self, unit_of):
        unit = unit_of(TRAILING_MARKER)
        sm = SuppressionManager()
        assert sm.load_inline_suppressions(unit) == 1
        (diag,) = run(unit)
        assert diag.location.line == 12
        assert not sm.is_suppressed(diag)

    def test_marker_alone_on_line_covers_next_line(self, unit_of):
        unit = unit_of(TRAILING_MARKER.replace(
            "\t\t_ = scanner.Bytes() //nolint:errcheck,scancheck\n",
            "\t\t//nolint:errcheck,scancheck\n",
        ))
        sm = SuppressionManager()
        sm.load_inline_suppressions(unit)
        assert sm.filter_diagnostics(run(unit)) == []


# ═══════════════════════════════════════════════════════════════════════
#  REGISTRY AND RUNNER
# ═══════════════════════════════════════════════════════════════════════

class TestRegistry:

    def test_default_registry(self):
        registry = default_registry()
        assert registry.get_all() == [ScanErrInLoopChecker]
        assert registry.get_by_name("scan-err-in-loop") is ScanErrInLoopChecker
        assert registry.get_by_name("nope") is None

    def test_default_registry_is_fresh(self):
        first = default_registry()
        first.register(_ExplodingChecker)
        assert default_registry().get_all() == [ScanErrInLoopChecker]

    def test_registration_order(self):
        registry = CheckerRegistry()
        registry.register(_ExplodingChecker)
        registry.register(ScanErrInLoopChecker)
        assert [cls.name for cls in registry.get_all()] == ["exploding", "scan-err-in-loop"]


class TestCheckerRunner:

    def test_applies_inline_suppressions(self, testdata):
        unit = parse_file(testdata / "suppressed.go")
        results = CheckerRunner().run(unit)
        assert results.total_count == 1
        assert results.diagnostics[0].location.line == 30
        assert results.checker_names == ["scan-err-in-loop"]
        assert results.files == [unit.filename]

    def test_global_suppression(self, testdata):
        sm = SuppressionManager()
        sm.add_global_suppression(ERROR_ID)
        results = CheckerRunner(suppressions=sm).run(parse_file(testdata / "err.go"))
        assert results.total_count == 0

    def test_target_options(self, testdata):
        options = {
            "import_path": "example.com/lines",
            "constructors": ["NewReader"],
            "type_name": "Reader",
            "advance": "Next",
            "error_check": "Failure",
        }
        results = CheckerRunner(options=options).run(parse_file(testdata / "custom.go"))
        (diag,) = results.diagnostics
        assert diag.message == "scanner.Failure() called inside a Next() loop"
        assert diag.location.line == 8

    def test_matches_analyzer_output(self, testdata):
        unit = parse_file(testdata / "nested.go")
        results = CheckerRunner().run(unit)
        assert results.diagnostics == run(unit)

    def test_internal_error_becomes_diagnostic(self, testdata):
        registry = CheckerRegistry()
        registry.register(_ExplodingChecker)
        results = CheckerRunner(registry=registry).run(parse_file(testdata / "happy.go"))
        (diag,) = results.diagnostics
        assert diag.error_id == "checkerInternalError"
        assert diag.severity is DiagnosticSeverity.INFORMATION
        assert "boom" in diag.message

    def test_unknown_checker_ignored(self, testdata):
        results = CheckerRunner().run(parse_file(testdata / "err.go"), checkers=["nope"])
        assert results.checker_names == []
        assert results.total_count == 0

    def test_results_merge_across_files(self, testdata):
        runner = CheckerRunner()
        results = CheckerRunResults()
        for name in ("err.go", "nested.go"):
            results.merge(runner.run(parse_file(testdata / name)))
        assert results.total_count == 6
        assert len(results.files) == 2
        assert results.checker_names == ["scan-err-in-loop"]
        assert len(results.diagnostics_by_checker["scan-err-in-loop"]) == 6
        assert "scan-err-in-loop_elapsed_ms" in results.stats


class TestCheckerRunResults:

    def test_counts_and_summary(self):
        results = CheckerRunResults(
            diagnostics=[_diag(), _diag(severity=DiagnosticSeverity.ERROR)],
            checker_names=["scan-err-in-loop"],
            files=["a.go"],
        )
        results.diagnostics_by_checker["scan-err-in-loop"] = list(results.diagnostics)
        assert results.count(DiagnosticSeverity.WARNING) == 1
        assert results.count(DiagnosticSeverity.ERROR) == 1
        assert results.count(DiagnosticSeverity.STYLE) == 0
        summary = results.summary()
        assert summary.startswith("Checker run complete: 2 diagnostics (1 errors, 1 warnings)")
        assert "scan-err-in-loop: 2 findings" in summary

    def test_merge_accumulates_stats(self):
        a = CheckerRunResults(stats={"t": 1.0}, files=["a.go"])
        b = CheckerRunResults(stats={"t": 2.0, "u": 1}, files=["a.go", "b.go"])
        a.merge(b)
        assert a.stats == {"t": 3.0, "u": 1}
        assert a.files == ["a.go", "b.go"]
