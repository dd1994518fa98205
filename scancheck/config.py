# scancheck/config.py
"""
Target configuration.

The analyzer is written against one iterator family, but every name it
matches on lives here so the same passes can be pointed at a look-alike
API (``--import-path``, ``--constructor`` ... on the command line, or the
options dict of a :class:`~scancheck.checkers.CheckerContext`).

Defaults describe Go's ``bufio.Scanner``::

    scanner := bufio.NewScanner(r)     // constructor
    for scanner.Scan() {               // advance
        if err := scanner.Err(); ...   // error check
    }
"""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from scancheck.errors import ConfigError

_GO_IDENT = re.compile(r"^[^\W\d]\w*$")

DEFAULT_MESSAGE_TEMPLATE = "scanner.{error_check}() called inside a {advance}() loop"


@dataclass(frozen=True)
class TargetConfig:
    """Names that identify the target iterator and its methods."""

    import_path: str = "bufio"
    constructors: Tuple[str, ...] = ("NewScanner",)
    type_name: str = "Scanner"
    advance: str = "Scan"
    error_check: str = "Err"
    allocator: str = "new"
    message_template: str = DEFAULT_MESSAGE_TEMPLATE

    def __post_init__(self) -> None:
        if not self.import_path or self.import_path.endswith("/"):
            raise ConfigError(
                f"invalid import path {self.import_path!r}",
                option="import_path", value=self.import_path,
            )
        if not self.constructors:
            raise ConfigError("at least one constructor is required",
                              option="constructors", value=self.constructors)
        for option in ("type_name", "advance", "error_check", "allocator"):
            value = getattr(self, option)
            if not _GO_IDENT.match(value or ""):
                raise ConfigError(f"{option} must be a Go identifier, got {value!r}",
                                  option=option, value=value)
        for ctor in self.constructors:
            if not _GO_IDENT.match(ctor or ""):
                raise ConfigError(f"constructor must be a Go identifier, got {ctor!r}",
                                  option="constructors", value=ctor)
        self._format_message()

    @property
    def namespace(self) -> str:
        """Default package name: the last element of the import path."""
        return self.import_path.rsplit("/", 1)[-1]

    @property
    def message(self) -> str:
        return self._format_message()

    def _format_message(self) -> str:
        try:
            return self.message_template.format(
                error_check=self.error_check,
                advance=self.advance,
                type_name=self.type_name,
                namespace=self.namespace,
            )
        except (KeyError, IndexError, ValueError, AttributeError) as exc:
            raise ConfigError(f"bad message template: {exc}",
                              option="message_template",
                              value=self.message_template) from exc

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None) -> "TargetConfig":
        """
        Build a config from a plain options mapping.

        Unknown keys are ignored so the same dict can carry options for
        other checkers; ``None`` values fall back to the defaults.
        """
        base = cls()
        if not options:
            return base
        overrides: Dict[str, Any] = {}
        for key in ("import_path", "type_name", "advance", "error_check",
                    "allocator", "message_template"):
            value = options.get(key)
            if value is not None:
                if not isinstance(value, str):
                    raise ConfigError(f"{key} must be a string", option=key, value=value)
                overrides[key] = value
        ctors = options.get("constructors")
        if ctors is not None:
            if isinstance(ctors, str):
                ctors = (ctors,)
            overrides["constructors"] = tuple(ctors)
        return replace(base, **overrides)

    def to_options(self) -> Dict[str, Any]:
        return {
            "import_path": self.import_path,
            "constructors": list(self.constructors),
            "type_name": self.type_name,
            "advance": self.advance,
            "error_check": self.error_check,
            "allocator": self.allocator,
            "message_template": self.message_template,
        }


__all__ = ["TargetConfig", "DEFAULT_MESSAGE_TEMPLATE"]
