# scancheck/errors.py
"""
scancheck Error Types

Infrastructure failures only.  Resolution and classification misses are
never errors: the analyzer stays silent on anything it cannot prove.

Error Hierarchy
───────────────
  ScancheckError (base)
  ├── FrontendError            - a Go source file cannot be read or decoded
  │   └── GoSyntaxError        - the Go grammar rejected the input
  ├── ConfigError              - invalid target configuration / options
  └── TraversalContractError   - traversal delivered a non-loop node

Every error may carry a :class:`SourceLocation` so the CLI can print it in
the same ``file:line:col`` shape as a diagnostic.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from scancheck.checkers import SourceLocation


class ScancheckError(Exception):
    """
    Base exception for all scancheck errors.

    Carries an optional source location and the underlying cause, and
    formats itself GCC-style.
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.location = location
        self.cause = cause

    def to_gcc_format(self) -> str:
        """Format as ``file:line:col: error: message``."""
        if self.location is not None and self.location.file:
            return f"{self.location}: error: {self.message}"
        return f"error: {self.message}"

    def __str__(self) -> str:
        return self.to_gcc_format()


# ───────────────────────────────────────────────────────────────────────────
# FRONT-END ERRORS
# ───────────────────────────────────────────────────────────────────────────

class FrontendError(ScancheckError):
    """A source file could not be read or decoded."""


class GoSyntaxError(FrontendError):
    """The Go grammar rejected the input."""

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        cause: Optional[BaseException] = None,
        excerpt: str = "",
    ) -> None:
        super().__init__(message, location=location, cause=cause)
        self.excerpt = excerpt

    @property
    def line(self) -> int:
        return self.location.line if self.location else 0

    @property
    def column(self) -> int:
        return self.location.column if self.location else 0


# ───────────────────────────────────────────────────────────────────────────
# CONFIGURATION / CONTRACT ERRORS
# ───────────────────────────────────────────────────────────────────────────

class ConfigError(ScancheckError):
    """Invalid target configuration."""

    def __init__(self, message: str, option: str = "", value: Any = None) -> None:
        super().__init__(message)
        self.option = option
        self.value = value


class TraversalContractError(ScancheckError):
    """The loop traversal handed the scanner something other than a loop."""

    def __init__(self, node: Any) -> None:
        super().__init__(
            f"expected a for statement, got {type(node).__name__}"
        )
        self.node = node


__all__ = [
    "ScancheckError",
    "FrontendError",
    "GoSyntaxError",
    "ConfigError",
    "TraversalContractError",
]
