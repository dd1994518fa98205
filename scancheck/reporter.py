"""
scancheck/reporter.py
═════════════════════

Diagnostic output.

Output formats
──────────────
  • text   : colourful Rust-style rendering with the offending source line
  • gcc    : one ``file:line:col: severity: message [errorId]`` line each
  • json   : one JSON object per line
  • sarif  : a SARIF 2.1.0 log

Colour follows termcolor's own rules (``NO_COLOR``, ``FORCE_COLOR``, TTY
detection) unless ``color`` is passed explicitly.

Usage
─────
    from scancheck.reporter import render_terminal

    render_terminal(diagnostics, sys.stdout, units={unit.filename: unit})
"""

from __future__ import annotations

import json
import sys
from typing import Any, Dict, Iterable, List, Mapping, Optional, TextIO, Tuple

from termcolor import colored

from scancheck.checkers import TOOL_NAME, Diagnostic, DiagnosticSeverity, SourceLocation
from scancheck.frontend import SourceUnit

# severity → (termcolor colour, SARIF level)
_SEVERITY_LOOK: Dict[DiagnosticSeverity, Tuple[str, str]] = {
    DiagnosticSeverity.ERROR: ("red", "error"),
    DiagnosticSeverity.WARNING: ("yellow", "warning"),
    DiagnosticSeverity.STYLE: ("cyan", "note"),
    DiagnosticSeverity.INFORMATION: ("white", "note"),
}

SARIF_VERSION = "2.1.0"
SARIF_SCHEMA = (
    "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/"
    "Schemata/sarif-schema-2.1.0.json"
)


# ═════════════════════════════════════════════════════════════════════════
#  TERMINAL RENDERER  (Rust-style colourful output)
# ═════════════════════════════════════════════════════════════════════════

class _TerminalRenderer:
    """Render diagnostics to a terminal with colours."""

    def __init__(
        self,
        stream: TextIO,
        units: Optional[Mapping[str, SourceUnit]] = None,
        color: Optional[bool] = None,
    ) -> None:
        self._stream = stream
        self._units = units or {}
        self._color_kw: Dict[str, bool] = {}
        if color is True:
            self._color_kw = {"force_color": True}
        elif color is False:
            self._color_kw = {"no_color": True}

    def _c(self, text: str, color: Optional[str] = None,
           attrs: Optional[List[str]] = None) -> str:
        return colored(text, color, attrs=attrs, **self._color_kw)

    # ── public API ───────────────────────────────────────────────────

    def render(self, diag: Diagnostic) -> None:
        colour, _ = _SEVERITY_LOOK[diag.severity]
        lines: List[str] = []

        # ── header: severity[errorId]: message ───────────────────────
        sev_str = self._c(f"{diag.severity.value}[{diag.error_id}]", colour, attrs=["bold"])
        lines.append(f"{sev_str}: {self._c(diag.message, attrs=['bold'])}")

        # ── primary location ─────────────────────────────────────────
        loc = diag.location
        if loc.file:
            arrow = self._c("-->", "blue", attrs=["bold"])
            lines.append(f"  {arrow} {loc}")

        # ── source excerpt ───────────────────────────────────────────
        if loc.line:
            width = len(diag.evidence.get("call", "")) or 1
            lines.extend(self._render_excerpt(loc, width, colour))

        # ── notes ────────────────────────────────────────────────────
        for related in diag.secondary:
            prefix = self._c("note", "cyan", attrs=["bold"])
            lines.append(f"  = {prefix}: loop starts here")
            arrow = self._c("-->", "blue", attrs=["bold"])
            lines.append(f"    {arrow} {related}")

        receiver = diag.evidence.get("receiver")
        if receiver:
            prefix = self._c("help", "green", attrs=["bold"])
            lines.append(f"  = {prefix}: check {receiver}'s error once, after the loop ends")

        # ── CWE tag ──────────────────────────────────────────────────
        if diag.cwe:
            cwe_str = self._c(f"CWE-{diag.cwe}", "blue", attrs=["underline"])
            lines.append(f"  = {cwe_str}: https://cwe.mitre.org/data/definitions/{diag.cwe}.html")

        lines.append("")  # blank separator
        self._stream.write("\n".join(lines) + "\n")

    # ── excerpt helpers ──────────────────────────────────────────────

    def _render_excerpt(self, loc: SourceLocation, width: int, colour: str) -> List[str]:
        src_text = self._source_line(loc.file, loc.line)
        if src_text is None:
            return []
        gutter_w = len(str(loc.line)) + 1
        pipe = self._c("|", "blue", attrs=["bold"])
        line_prefix = self._c(str(loc.line).rjust(gutter_w), "blue", attrs=["bold"])
        start = max(loc.column, 1)
        width = max(1, min(width, len(src_text) - start + 1))
        pad = " " * (start - 1)
        marker = self._c("^" * width, colour, attrs=["bold"])
        blank_gutter = " " * gutter_w
        return [
            f" {blank_gutter} {pipe}",
            f" {line_prefix} {pipe} {src_text}",
            f" {blank_gutter} {pipe} {pad}{marker}",
        ]

    def _source_line(self, filepath: str, line: int) -> Optional[str]:
        unit = self._units.get(filepath)
        if unit is not None:
            return unit.line_text(line)
        if not filepath:
            return None
        try:
            with open(filepath, "r", encoding="utf-8", errors="replace") as fh:
                for idx, text in enumerate(fh, 1):
                    if idx == line:
                        return text.rstrip("\n\r")
        except OSError:
            return None
        return None


def render_terminal(
    diagnostics: Iterable[Diagnostic],
    stream: Optional[TextIO] = None,
    units: Optional[Mapping[str, SourceUnit]] = None,
    color: Optional[bool] = None,
) -> None:
    renderer = _TerminalRenderer(stream or sys.stdout, units, color)
    for diag in diagnostics:
        renderer.render(diag)


# ═════════════════════════════════════════════════════════════════════════
#  PLAIN / JSON RENDERERS
# ═════════════════════════════════════════════════════════════════════════

def render_plain(diagnostics: Iterable[Diagnostic], stream: Optional[TextIO] = None) -> None:
    """One GCC-style line per diagnostic."""
    stream = stream or sys.stdout
    for diag in diagnostics:
        stream.write(diag.to_gcc_format() + "\n")


def render_json(diagnostics: Iterable[Diagnostic], stream: Optional[TextIO] = None) -> None:
    """One JSON object per line."""
    stream = stream or sys.stdout
    for diag in diagnostics:
        stream.write(diag.to_json_str() + "\n")


# ═════════════════════════════════════════════════════════════════════════
#  SARIF 2.1.0 BUILDER
# ═════════════════════════════════════════════════════════════════════════

def _physical_location(loc: SourceLocation) -> Dict[str, Any]:
    region: Dict[str, Any] = {"startLine": max(loc.line, 1)}
    if loc.column:
        region["startColumn"] = loc.column
    return {
        "artifactLocation": {"uri": loc.file},
        "region": region,
    }


def build_sarif(
    diagnostics: Iterable[Diagnostic],
    tool_name: str = TOOL_NAME,
    version: str = "",
) -> Dict[str, Any]:
    """Build a SARIF 2.1.0 log holding one run."""
    if not version:
        from scancheck import __version__ as version

    rules: Dict[str, Dict[str, Any]] = {}
    results: List[Dict[str, Any]] = []
    for diag in diagnostics:
        # ── rule ─────────────────────────────────────────────────────
        if diag.error_id not in rules:
            rule: Dict[str, Any] = {
                "id": diag.error_id,
                "shortDescription": {"text": diag.message},
            }
            if diag.cwe:
                rule["relationships"] = [
                    {
                        "target": {
                            "id": str(diag.cwe),
                            "toolComponent": {"name": "CWE"},
                        },
                        "kinds": ["superset"],
                    }
                ]
            rules[diag.error_id] = rule

        # ── result ───────────────────────────────────────────────────
        _, level = _SEVERITY_LOOK[diag.severity]
        result: Dict[str, Any] = {
            "ruleId": diag.error_id,
            "level": level,
            "message": {"text": diag.message},
        }
        if diag.location.file:
            result["locations"] = [{"physicalLocation": _physical_location(diag.location)}]
        related = [
            {
                "id": idx,
                "message": {"text": "loop starts here"},
                "physicalLocation": _physical_location(loc),
            }
            for idx, loc in enumerate(diag.secondary)
        ]
        if related:
            result["relatedLocations"] = related
        if diag.cwe:
            result.setdefault("properties", {})["cwe"] = diag.cwe
        results.append(result)

    return {
        "$schema": SARIF_SCHEMA,
        "version": SARIF_VERSION,
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": tool_name,
                        "version": version,
                        "rules": list(rules.values()),
                    }
                },
                "results": results,
            }
        ],
    }


def render_sarif(diagnostics: Iterable[Diagnostic], stream: Optional[TextIO] = None) -> None:
    stream = stream or sys.stdout
    stream.write(json.dumps(build_sarif(diagnostics), indent=2) + "\n")


__all__ = [
    "render_terminal",
    "render_plain",
    "render_json",
    "render_sarif",
    "build_sarif",
    "SARIF_VERSION",
    "SARIF_SCHEMA",
]
