# tests/test_scanloop.py
"""
Tests for the loop scanner: end-to-end detection over Go snippets and the
annotated fixtures in ``testdata/``.
"""

import re

import pytest

from scancheck import goast as ast
from scancheck.ast_helper import Inspector
from scancheck.checkers import CheckerContext, Confidence, DiagnosticSeverity
from scancheck.config import TargetConfig
from scancheck.errors import TraversalContractError
from scancheck.frontend import parse_file
from scancheck.scanloop import (
    ERROR_ID,
    Analyzer,
    LoopScanner,
    ScanErrInLoopChecker,
    new_analyzer,
    run,
)

MESSAGE = "scanner.Err() called inside a Scan() loop"

ERR_IN_LOOP = """
    scanner := bufio.NewScanner(r)
    for scanner.Scan() {
        if err := scanner.Err(); err != nil {
            panic(err)
        }
    }
"""


def _column(src, line, needle):
    return src.splitlines()[line - 1].index(needle) + 1


class TestDetection:

    def test_direct_constructor(self, go_source, analyze, line_of):
        src = go_source(ERR_IN_LOOP)
        (diag,) = analyze(src, wrap=False)
        line = line_of(src, "scanner.Err()")
        assert diag.message == MESSAGE
        assert diag.error_id == ERROR_ID
        assert diag.severity is DiagnosticSeverity.WARNING
        assert diag.location.line == line
        assert diag.location.column == _column(src, line, "scanner.Err()")
        assert diag.confidence is Confidence.HIGH

    def test_two_violations_in_disjoint_branches(self, go_source, analyze, line_of):
        src = go_source("""
            scanner := bufio.NewScanner(r)
            for scanner.Scan() {
                if len(scanner.Bytes()) > 0 {
                    _ = scanner.Err()
                } else {
                    _ = scanner.Err()
                }
            }
        """)
        diags = analyze(src, wrap=False)
        assert [d.location.line for d in diags] == [
            line_of(src, "scanner.Err()", 1),
            line_of(src, "scanner.Err()", 2),
        ]

    def test_check_after_loop(self, analyze):
        assert analyze("""
            scanner := bufio.NewScanner(r)
            for scanner.Scan() {
                _ = scanner.Text()
            }
            if err := scanner.Err(); err != nil {
                panic(err)
            }
        """) == []

    def test_shadowed_package(self, analyze):
        assert analyze("""
            bufio := lookalike{}
            scanner := bufio.NewScanner()
            for scanner.Scan() {
                if err := scanner.Err(); err != nil {
                    panic(err)
                }
            }
        """) == []

    def test_allocation(self, go_source, analyze, line_of):
        src = go_source("""
            scanner := new(bufio.Scanner)
            for scanner.Scan() {
                _ = scanner.Err()
            }
        """)
        (diag,) = analyze(src, wrap=False)
        assert diag.message == MESSAGE
        assert diag.error_id == ERROR_ID
        assert diag.location.line == line_of(src, "scanner.Err()")
        assert diag.confidence is Confidence.MEDIUM
        assert diag.evidence["construction"] == "allocated composite literal"

    def test_declared_composite_literal(self, analyze):
        (diag,) = analyze("""
            var scanner = bufio.Scanner{}
            for scanner.Scan() {
                _ = scanner.Err()
            }
        """)
        assert diag.evidence["construction"] == "declared composite literal"

    def test_multi_assignment_aligned(self, analyze):
        diags = analyze("""
            a, scanner := bufio.NewReader(r), bufio.NewScanner(r)
            _ = a
            for scanner.Scan() {
                _ = scanner.Err()
            }
        """)
        assert len(diags) == 1

    def test_multi_assignment_single_call(self, analyze):
        assert analyze("""
            a, scanner := pair(r)
            _ = a
            for scanner.Scan() {
                _ = scanner.Err()
            }
        """) == []

    def test_deterministic(self, go_source, unit_of):
        unit = unit_of(go_source(ERR_IN_LOOP + "\n" + ERR_IN_LOOP.replace("scanner", "other")))
        first, second = run(unit), run(unit)
        assert first == second
        assert len(first) == 2
        assert [d.location.line for d in first] == sorted(d.location.line for d in first)

    def test_qualifying_loop_inside_plain_loop(self, analyze):
        diags = analyze("""
            for i := 0; i < 3; i++ {
                scanner := bufio.NewScanner(r)
                for scanner.Scan() {
                    _ = scanner.Err()
                }
            }
        """)
        assert len(diags) == 1

    def test_plain_loop_inside_qualifying_loop(self, analyze):
        diags = analyze("""
            scanner := bufio.NewScanner(r)
            for scanner.Scan() {
                for {
                    _ = scanner.Err()
                    break
                }
            }
        """)
        assert len(diags) == 1

    def test_same_call_reached_from_nested_loops(self, analyze):
        diags = analyze("""
            scanner := bufio.NewScanner(r)
            for scanner.Scan() {
                for scanner.Scan() {
                    _ = scanner.Err()
                }
            }
        """)
        assert len(diags) == 1


class TestLoopQualification:

    @pytest.mark.parametrize("header", [
        "for (scanner.Scan()) {",
        "for scanner.Scan() && true {",
        "for !scanner.Scan() {",
        "for scanner.Buffer(nil, 0) {",
        "for {",
    ])
    def test_condition_shapes_that_do_not_qualify(self, analyze, header):
        body = f"""
            scanner := bufio.NewScanner(r)
            {header}
                _ = scanner.Err()
            }}
        """
        assert analyze(body) == []

    def test_three_clause_loop_with_scan_condition(self, analyze):
        diags = analyze("""
            scanner := bufio.NewScanner(r)
            for n := 0; scanner.Scan(); n++ {
                _ = scanner.Err()
            }
        """)
        assert len(diags) == 1

    def test_range_loop_never_qualifies(self, analyze):
        assert analyze("""
            scanner := bufio.NewScanner(r)
            for range []int{1} {
                _ = scanner.Err()
            }
        """) == []

    def test_parameter_receiver(self, go_source, analyze):
        src = go_source("""
            for scanner.Scan() {
                _ = scanner.Err()
            }
        """, signature="func f(scanner *bufio.Scanner)")
        assert analyze(src, wrap=False) == []

    def test_copied_instance(self, analyze):
        assert analyze("""
            scanner := bufio.NewScanner(r)
            other := scanner
            for other.Scan() {
                _ = other.Err()
            }
        """) == []

    def test_qualify_rejects_non_loops(self, go_source, unit_of):
        scanner = LoopScanner(unit_of(go_source("_ = r")))
        with pytest.raises(TraversalContractError) as info:
            scanner.qualify(ast.Ident("x"))
        assert "Ident" in str(info.value)

    def test_qualify_returns_instance(self, go_source, unit_of):
        unit = unit_of(go_source(ERR_IN_LOOP))
        loop = next(Inspector(unit.file).preorder(ast.ForStmt))
        binding, shape = LoopScanner(unit).qualify(loop)
        assert binding.name == "scanner"
        assert shape.value == "direct constructor call"


class TestBodyScan:

    def test_error_check_on_other_instance(self, analyze):
        assert analyze("""
            a := bufio.NewScanner(r)
            b := bufio.NewScanner(r)
            for a.Scan() {
                _ = b.Err()
            }
        """) == []

    def test_shadowed_receiver_inside_body(self, analyze):
        assert analyze("""
            scanner := bufio.NewScanner(r)
            for scanner.Scan() {
                scanner := lookalike{}
                _ = scanner.Err()
            }
        """) == []

    def test_call_inside_closure(self, analyze):
        diags = analyze("""
            scanner := bufio.NewScanner(r)
            for scanner.Scan() {
                defer func() {
                    _ = scanner.Err()
                }()
            }
        """)
        assert len(diags) == 1

    def test_parenthesised_receiver(self, analyze):
        assert len(analyze("""
            scanner := bufio.NewScanner(r)
            for scanner.Scan() {
                _ = (scanner).Err()
            }
        """)) == 1

    def test_method_value_is_not_a_call(self, analyze):
        assert analyze("""
            scanner := bufio.NewScanner(r)
            for scanner.Scan() {
                check := scanner.Err
                _ = check
            }
        """) == []

    def test_evidence_and_related_location(self, go_source, analyze, line_of):
        src = go_source(ERR_IN_LOOP)
        (diag,) = analyze(src, wrap=False)
        assert diag.evidence == {
            "receiver": "scanner",
            "call": "scanner.Err()",
            "loop_condition": "scanner.Scan()",
            "construction": "direct constructor call",
        }
        (loop_loc,) = diag.secondary
        assert loop_loc.line == line_of(src, "for scanner.Scan()")
        assert diag.cwe == 754


class TestAnnotatedFixtures:

    @pytest.mark.parametrize("name", ["scancheck.go", "nested.go", "err.go", "happy.go"])
    def test_want_annotations(self, testdata, want_annotations, name):
        unit = parse_file(testdata / name)
        self._check(unit, run(unit), want_annotations(unit))

    def test_configured_target(self, testdata, want_annotations):
        unit = parse_file(testdata / "custom.go")
        config = TargetConfig(
            import_path="example.com/lines",
            constructors=("NewReader",),
            type_name="Reader",
            advance="Next",
            error_check="Failure",
        )
        self._check(unit, run(unit, config), want_annotations(unit))
        assert run(unit) == []

    @staticmethod
    def _check(unit, diagnostics, wants):
        got = {}
        for diag in diagnostics:
            got.setdefault(diag.location.line, []).append(diag.message)
        assert sorted(got) == sorted(wants), unit.filename
        for line, patterns in wants.items():
            assert len(got[line]) == len(patterns)
            for message, pattern in zip(got[line], patterns):
                assert re.search(pattern, message), (line, message, pattern)


class TestAnalyzerFactory:

    def test_defaults(self):
        analyzer = new_analyzer()
        assert isinstance(analyzer, Analyzer)
        assert analyzer.name == "scancheck"
        assert "Scan()" in analyzer.doc
        assert analyzer.config == TargetConfig()

    def test_independent_instances(self):
        custom = TargetConfig(advance="Next")
        first, second = new_analyzer(), new_analyzer(custom)
        assert first is not second
        assert first.config.advance == "Scan"
        assert second.config is custom

    def test_run_matches_module_function(self, go_source, unit_of):
        unit = unit_of(go_source(ERR_IN_LOOP))
        assert new_analyzer().run(unit) == run(unit)


class TestChecker:

    def test_checker_metadata(self):
        assert ScanErrInLoopChecker.name == "scan-err-in-loop"
        assert ERROR_ID in ScanErrInLoopChecker.error_ids
        assert ScanErrInLoopChecker.cwe_ids[ERROR_ID] == 754

    def test_lifecycle_emits_each_call_once(self, go_source, unit_of):
        unit = unit_of(go_source("""
            scanner := bufio.NewScanner(r)
            for scanner.Scan() {
                for scanner.Scan() {
                    _ = scanner.Err()
                }
                _ = scanner.Err()
            }
        """))
        ctx = CheckerContext(unit=unit)
        checker = ScanErrInLoopChecker()
        checker.configure(ctx)
        checker.collect_evidence(ctx)
        checker.diagnose(ctx)
        lines = [d.location.line for d in checker.diagnostics]
        assert len(lines) == 2
        assert len(set(lines)) == 2
        assert checker.report(ctx) == run(unit)
        assert ctx.stats["scan-err-in-loop_findings"] == 2

    def test_run_does_not_apply_inline_suppressions(self, testdata):
        unit = parse_file(testdata / "suppressed.go")
        assert [d.location.line for d in run(unit)] == [11, 21, 30]
