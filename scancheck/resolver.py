# scancheck/resolver.py
"""
Binding resolver: receiver identifier → declaring statement.

Only two declaration shapes can introduce a scanner instance the analyzer
will trust, and they are modelled as a closed tagged variant:

  Assignment(stmt)               ``s := bufio.NewScanner(r)``
  DeclaredWithInitializer(spec)  ``var s = bufio.NewScanner(r)``

Parameters, range variables, constants, ``var`` declarations without an
initializer and names the front-end could not link all resolve to
``None``.  Callers treat ``None`` as "not a match", never as an error.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Union

from scancheck import goast as ast
from scancheck.scopes import BindingInfo, BindingKind


@dataclass(frozen=True)
class Assignment:
    """A short variable declaration introduced the name."""
    stmt: ast.AssignStmt

    @property
    def targets(self) -> List[ast.Expr]:
        return self.stmt.lhs

    @property
    def values(self) -> List[ast.Expr]:
        return self.stmt.rhs


@dataclass(frozen=True)
class DeclaredWithInitializer:
    """A ``var`` spec with an initializer list introduced the name."""
    spec: ast.ValueSpec

    @property
    def targets(self) -> List[ast.Ident]:
        return self.spec.names

    @property
    def values(self) -> List[ast.Expr]:
        return self.spec.values


Declaration = Union[Assignment, DeclaredWithInitializer]


def resolve(ident: ast.Ident, bindings: BindingInfo) -> Optional[Declaration]:
    """Find the declaration that introduced *ident*, if it is one we trust."""
    binding = bindings.lookup(ident)
    if binding is None:
        return None
    decl = binding.decl
    if binding.kind is BindingKind.SHORT_VAR and isinstance(decl, ast.AssignStmt):
        return Assignment(decl)
    if (binding.kind is BindingKind.VAR
            and isinstance(decl, ast.ValueSpec) and decl.values):
        return DeclaredWithInitializer(decl)
    return None


__all__ = ["Assignment", "DeclaredWithInitializer", "Declaration", "resolve"]
