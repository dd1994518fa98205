# tests/test_reporter.py
"""
Tests for the diagnostic renderers.
"""

import io
import json

import pytest

from scancheck import __version__
from scancheck.checkers import Diagnostic, DiagnosticSeverity, SourceLocation
from scancheck.frontend import parse_file
from scancheck.reporter import (
    SARIF_VERSION,
    build_sarif,
    render_json,
    render_plain,
    render_sarif,
    render_terminal,
)
from scancheck.scanloop import ERROR_ID, run


@pytest.fixture
def err_unit(testdata):
    return parse_file(testdata / "err.go")


@pytest.fixture
def err_diags(err_unit):
    return run(err_unit)


class TestPlainAndJson:

    def test_plain(self, err_unit, err_diags):
        out = io.StringIO()
        render_plain(err_diags, out)
        assert out.getvalue() == (
            f"{err_unit.filename}:14:13: warning: "
            "scanner.Err() called inside a Scan() loop [scannerErrInScanLoop]\n"
        )

    def test_json_lines(self, err_diags):
        out = io.StringIO()
        render_json(err_diags + err_diags, out)
        lines = out.getvalue().splitlines()
        assert len(lines) == 2
        record = json.loads(lines[0])
        assert record["line"] == 14
        assert record["column"] == 13
        assert record["errorId"] == ERROR_ID
        assert record["related"][0]["line"] == 11


class TestTerminal:

    def test_excerpt_and_caret(self, err_unit, err_diags):
        out = io.StringIO()
        render_terminal(err_diags, out, units={err_unit.filename: err_unit}, color=False)
        lines = out.getvalue().splitlines()
        assert lines[0] == "warning[scannerErrInScanLoop]: scanner.Err() called inside a Scan() loop"
        assert lines[1] == f"  --> {err_unit.filename}:14:13"
        source_line = err_unit.line_text(14)
        assert lines[3] == f"  14 | {source_line}"
        caret_line = lines[4]
        caret_col = caret_line.index("^") - len("  14 | ") + 1
        assert caret_col == 13
        assert caret_line.count("^") == len("scanner.Err()")

    def test_notes(self, err_unit, err_diags):
        out = io.StringIO()
        render_terminal(err_diags, out, units={err_unit.filename: err_unit}, color=False)
        text = out.getvalue()
        assert "= note: loop starts here" in text
        assert f"--> {err_unit.filename}:11:2" in text
        assert "= help: check scanner's error once, after the loop ends" in text
        assert "CWE-754: https://cwe.mitre.org/data/definitions/754.html" in text

    def test_reads_source_from_disk(self, err_unit, err_diags):
        out = io.StringIO()
        render_terminal(err_diags, out, color=False)
        assert err_unit.line_text(14) in out.getvalue()

    def test_missing_source(self):
        diag = Diagnostic(
            error_id="x",
            message="m",
            severity=DiagnosticSeverity.ERROR,
            location=SourceLocation("nowhere/absent.go", 3, 1),
        )
        out = io.StringIO()
        render_terminal([diag], out, color=False)
        assert out.getvalue() == "error[x]: m\n  --> nowhere/absent.go:3:1\n\n"

    def test_forced_colour(self, err_unit, err_diags):
        out = io.StringIO()
        render_terminal(err_diags, out, units={err_unit.filename: err_unit}, color=True)
        assert "\x1b[" in out.getvalue()


class TestSarif:

    def test_structure(self, err_unit, err_diags):
        log = build_sarif(err_diags)
        assert log["version"] == SARIF_VERSION
        (run_,) = log["runs"]
        driver = run_["tool"]["driver"]
        assert driver["name"] == "scancheck"
        assert driver["version"] == __version__
        (rule,) = driver["rules"]
        assert rule["id"] == ERROR_ID
        assert rule["relationships"][0]["target"]["id"] == "754"

        (result,) = run_["results"]
        assert result["ruleId"] == ERROR_ID
        assert result["level"] == "warning"
        physical = result["locations"][0]["physicalLocation"]
        assert physical["artifactLocation"]["uri"] == err_unit.filename
        assert physical["region"] == {"startLine": 14, "startColumn": 13}
        related = result["relatedLocations"][0]["physicalLocation"]["region"]
        assert related["startLine"] == 11
        assert result["properties"]["cwe"] == 754

    def test_rules_are_deduplicated(self, err_diags):
        log = build_sarif(err_diags * 3, version="9.9")
        driver = log["runs"][0]["tool"]["driver"]
        assert len(driver["rules"]) == 1
        assert driver["version"] == "9.9"
        assert len(log["runs"][0]["results"]) == 3

    def test_empty(self):
        log = build_sarif([])
        assert log["runs"][0]["results"] == []
        assert log["runs"][0]["tool"]["driver"]["rules"] == []

    def test_render(self, err_diags):
        out = io.StringIO()
        render_sarif(err_diags, out)
        assert json.loads(out.getvalue())["version"] == "2.1.0"
