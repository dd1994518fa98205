# tests/conftest.py
"""
Shared pytest fixtures for the scancheck test suite.

Go snippets are wrapped into a complete file by :func:`go_source`; most
tests only care about the body of one function.
"""

import re
import textwrap
from pathlib import Path

import pytest

from scancheck.frontend import parse_source
from scancheck.scanloop import run

TESTDATA = Path(__file__).parent / "testdata"

_WANT_RE = re.compile(r'want\s+"((?:[^"\\]|\\.)*)"')

GO_HEADER = """\
package scan

import (
\t"bufio"
\t"io"
)

"""


def _wrap(body, header=GO_HEADER, signature="func f(r io.Reader)"):
    body = textwrap.indent(textwrap.dedent(body).strip("\n"), "\t")
    return f"{header}{signature} {{\n{body}\n}}\n"


@pytest.fixture
def testdata():
    return TESTDATA


@pytest.fixture
def go_source():
    """Build a complete Go file around a function body."""
    return _wrap


@pytest.fixture
def unit_of():
    """Parse Go source text into a SourceUnit."""
    def _parse(src, filename="scan.go"):
        return parse_source(src, filename)
    return _parse


@pytest.fixture
def analyze():
    """Run the analyzer over a function body (or a whole file) and return diagnostics."""
    def _analyze(src, config=None, wrap=True, filename="scan.go"):
        text = _wrap(src) if wrap else src
        return run(parse_source(text, filename), config)
    return _analyze


@pytest.fixture
def line_of():
    """1-based line of the first line of *src* containing *needle*."""
    def _line_of(src, needle, nth=1):
        seen = 0
        for idx, text in enumerate(src.splitlines(), 1):
            if needle in text:
                seen += 1
                if seen == nth:
                    return idx
        raise AssertionError(f"{needle!r} not found in source")
    return _line_of


@pytest.fixture
def want_annotations():
    """``{line: [regex, ...]}`` from ``// want "regex"`` comments of a unit."""
    def _wants(unit):
        wants = {}
        for comment in unit.comments:
            for raw in _WANT_RE.findall(comment.body):
                pattern = re.sub(r"\\(.)", r"\1", raw)
                line = unit.position(comment.pos)[0]
                wants.setdefault(line, []).append(pattern)
        return wants
    return _wants
