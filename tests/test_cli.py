# tests/test_cli.py
"""
Tests for the command-line driver.
"""

import json
import logging
import shutil

import pytest

from scancheck import __version__
from scancheck.main import EXIT_FINDINGS, EXIT_INFRA, EXIT_OK, discover_files, main


@pytest.fixture(autouse=True)
def _plain_output(monkeypatch):
    monkeypatch.setenv("NO_COLOR", "1")
    monkeypatch.delenv("FORCE_COLOR", raising=False)
    yield
    logger = logging.getLogger("scancheck")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def tree(tmp_path, testdata):
    """A small source tree with files the walker must skip."""
    (tmp_path / "cmd").mkdir()
    shutil.copy(testdata / "err.go", tmp_path / "cmd" / "err.go")
    shutil.copy(testdata / "happy.go", tmp_path / "happy.go")
    for skipped in ("vendor", "testdata", ".git", "_build"):
        (tmp_path / skipped).mkdir()
        shutil.copy(testdata / "syntax_error.go", tmp_path / skipped / "broken.go")
    (tmp_path / "notes.txt").write_text("not go\n")
    return tmp_path


class TestExitCodes:

    def test_clean_file(self, testdata, capsys):
        assert main([str(testdata / "happy.go")]) == EXIT_OK
        assert capsys.readouterr().out == ""

    def test_findings(self, testdata, capsys):
        assert main([str(testdata / "err.go")]) == EXIT_FINDINGS
        out = capsys.readouterr().out
        assert "warning[scannerErrInScanLoop]" in out
        assert "scanner.Err() called inside a Scan() loop" in out

    def test_syntax_error(self, testdata, capsys):
        assert main([str(testdata / "syntax_error.go")]) == EXIT_INFRA
        assert "syntax_error.go:4:7" in capsys.readouterr().err

    def test_missing_path(self, tmp_path, capsys):
        assert main([str(tmp_path / "absent.go")]) == EXIT_INFRA
        assert "no such file or directory" in capsys.readouterr().err

    def test_infra_failure_wins_over_findings(self, testdata, capsys):
        code = main([str(testdata / "err.go"), str(testdata / "syntax_error.go")])
        assert code == EXIT_INFRA
        assert "scanner.Err()" in capsys.readouterr().out

    def test_bad_target_option(self, testdata, capsys):
        assert main([str(testdata / "err.go"), "--advance", "Scan()"]) == EXIT_INFRA
        assert "advance" in capsys.readouterr().err

    def test_unknown_format(self, testdata, capsys):
        assert main([str(testdata / "err.go"), "--format", "xml"]) == EXIT_INFRA

    def test_version(self, capsys):
        assert main(["--version"]) == EXIT_OK
        assert __version__ in capsys.readouterr().out


class TestFormats:

    def test_gcc(self, testdata, capsys):
        main([str(testdata / "err.go"), "--format", "gcc"])
        out = capsys.readouterr().out
        assert out.endswith(":14:13: warning: scanner.Err() called inside a Scan() loop "
                            "[scannerErrInScanLoop]\n")

    def test_json(self, testdata, capsys):
        main([str(testdata / "nested.go"), "-f", "json"])
        records = [json.loads(line) for line in capsys.readouterr().out.splitlines()]
        assert [r["line"] for r in records] == [13, 25, 45, 55, 66]

    def test_sarif(self, testdata, capsys):
        main([str(testdata / "err.go"), "--format", "sarif"])
        log = json.loads(capsys.readouterr().out)
        assert log["runs"][0]["results"][0]["ruleId"] == "scannerErrInScanLoop"

    def test_summary(self, testdata, capsys):
        main([str(testdata / "err.go"), "--format", "summary"])
        out = capsys.readouterr().out
        assert out.startswith("Checker run complete: 1 diagnostics")
        assert "scan-err-in-loop: 1 findings" in out

    def test_output_file(self, testdata, tmp_path, capsys):
        dest = tmp_path / "reports" / "out.txt"
        assert main([str(testdata / "err.go"), "-o", str(dest)]) == EXIT_FINDINGS
        assert capsys.readouterr().out == ""
        text = dest.read_text(encoding="utf-8")
        assert "\x1b[" not in text
        assert "scanner.Err() called inside a Scan() loop" in text


class TestOptions:

    def test_global_suppression(self, testdata, capsys):
        code = main([str(testdata / "err.go"), "--suppress", "scannerErrInScanLoop"])
        assert code == EXIT_OK
        assert capsys.readouterr().out == ""

    def test_inline_suppressions(self, testdata, capsys):
        assert main([str(testdata / "suppressed.go"), "-f", "gcc"]) == EXIT_FINDINGS
        lines = capsys.readouterr().out.splitlines()
        assert len(lines) == 1
        assert ":30:" in lines[0]

    def test_target_flags(self, testdata, capsys):
        path = str(testdata / "custom.go")
        assert main([path]) == EXIT_OK
        code = main([
            path, "-f", "gcc",
            "--import-path", "example.com/lines",
            "--constructor", "NewReader",
            "--type-name", "Reader",
            "--advance", "Next",
            "--error-check", "Failure",
        ])
        assert code == EXIT_FINDINGS
        assert "scanner.Failure() called inside a Next() loop" in capsys.readouterr().out

    def test_list_checkers(self, capsys):
        assert main(["--list-checkers"]) == EXIT_OK
        out = capsys.readouterr().out
        assert out.startswith("scan-err-in-loop")
        assert "[scannerErrInScanLoop]" in out

    def test_verbose_logging(self, testdata, capsys):
        main([str(testdata / "happy.go"), "-vv"])
        err = capsys.readouterr().err
        assert "[DEBUG] scancheck.frontend" in err
        assert "checked 1 file(s), 0 diagnostic(s)" in err


class TestDiscovery:

    def test_walks_tree_and_skips_dirs(self, tree):
        files, missing = discover_files([str(tree)])
        assert missing == []
        assert sorted(p.name for p in files) == ["err.go", "happy.go"]

    def test_recursive_pattern(self, tree, monkeypatch):
        monkeypatch.chdir(tree)
        for pattern in ("./...", "...", "."):
            files, _ = discover_files([pattern])
            assert sorted(p.name for p in files) == ["err.go", "happy.go"]

    def test_default_is_current_directory(self, tree, monkeypatch):
        monkeypatch.chdir(tree)
        files, _ = discover_files([])
        assert len(files) == 2

    def test_duplicates_removed(self, tree):
        target = str(tree / "cmd" / "err.go")
        files, _ = discover_files([target, str(tree / "cmd"), target])
        assert len(files) == 1

    def test_explicit_file_in_skipped_dir(self, tree):
        files, _ = discover_files([str(tree / "testdata" / "broken.go")])
        assert len(files) == 1

    def test_missing(self, tree):
        files, missing = discover_files([str(tree / "nope"), str(tree / "nope") + "/..."])
        assert files == []
        assert len(missing) == 2

    def test_main_over_tree(self, tree, capsys):
        assert main([f"{tree}/...", "-f", "gcc"]) == EXIT_FINDINGS
        (line,) = capsys.readouterr().out.splitlines()
        assert "err.go:14:13" in line
