# scancheck/classifier.py
"""
Instance classifier: does a declaration construct a target iterator?

Recognised construction shapes, tried in this order::

    s := bufio.NewScanner(r)        DIRECT_CONSTRUCTOR_CALL
    s := new(bufio.Scanner)         ALLOCATED_COMPOSITE_LITERAL
    var s = bufio.Scanner{}         DECLARED_COMPOSITE_LITERAL

The qualifier (``bufio`` above) is trusted only when it is an identifier
with no local binding whose name is the local name of an import of the
target package.  A local variable called ``bufio`` therefore disqualifies
every shape, whatever methods its value happens to have.

For multi-name declarations the initializer is picked by position; when
there are fewer initializers than names (one call returning several
values) nothing is classified.
"""

from __future__ import annotations

import enum
import logging
from functools import singledispatch
from typing import TYPE_CHECKING, Optional, Sequence, Union

from scancheck import goast as ast
from scancheck.ast_helper import qualified_name, unparen
from scancheck.config import TargetConfig
from scancheck.resolver import Assignment, DeclaredWithInitializer
from scancheck.scopes import BindingInfo

if TYPE_CHECKING:
    from scancheck.frontend import SourceUnit

logger = logging.getLogger(__name__)


class ConstructionShape(enum.Enum):
    DIRECT_CONSTRUCTOR_CALL = "direct constructor call"
    ALLOCATED_COMPOSITE_LITERAL = "allocated composite literal"
    DECLARED_COMPOSITE_LITERAL = "declared composite literal"
    UNCLASSIFIED = "unclassified"


# ───────────────────────────────────────────────────────────────────────────
# Positional alignment
# ───────────────────────────────────────────────────────────────────────────

def _align(targets: Sequence[ast.Expr], values: Sequence[ast.Expr],
           name: str) -> Optional[ast.Expr]:
    if len(values) < len(targets):
        return None
    for idx, target in enumerate(targets):
        if isinstance(target, ast.Ident) and target.name == name:
            return values[idx] if idx < len(values) else None
    return None


@singledispatch
def aligned_initializer(declaration, name: str) -> Optional[ast.Expr]:
    """The initializer expression bound to *name* by *declaration*."""
    return None


@aligned_initializer.register(Assignment)
def _(declaration: Assignment, name: str) -> Optional[ast.Expr]:
    return _align(declaration.targets, declaration.values, name)


@aligned_initializer.register(DeclaredWithInitializer)
def _(declaration: DeclaredWithInitializer, name: str) -> Optional[ast.Expr]:
    return _align(declaration.targets, declaration.values, name)


# ───────────────────────────────────────────────────────────────────────────
# Shape checks
# ───────────────────────────────────────────────────────────────────────────

def _is_target_namespace(qualifier: ast.Ident, bindings: BindingInfo,
                         unit: Optional["SourceUnit"], config: TargetConfig) -> bool:
    if bindings.is_bound(qualifier):
        return False
    if unit is None:
        return qualifier.name == config.namespace
    if qualifier.name in unit.import_names(config.import_path):
        return True
    # No import introduces this name: accept the default package name.
    return (qualifier.name == config.namespace
            and qualifier.name not in unit.imported_names())


def _names_target(expr: Optional[ast.Expr], selected: Sequence[str],
                  bindings: BindingInfo, unit: Optional["SourceUnit"],
                  config: TargetConfig) -> bool:
    q = qualified_name(expr)
    if q is None:
        return False
    qualifier, sel = q
    return sel in selected and _is_target_namespace(qualifier, bindings, unit, config)


def _is_allocation(call: ast.CallExpr, bindings: BindingInfo,
                   unit: Optional["SourceUnit"], config: TargetConfig) -> bool:
    fun = unparen(call.fun)
    if not isinstance(fun, ast.Ident) or fun.name != config.allocator:
        return False
    if bindings.is_bound(fun):
        # a local function or variable named like the allocator
        return False
    if len(call.args) != 1 or call.has_ellipsis:
        return False
    return _names_target(call.args[0], (config.type_name,), bindings, unit, config)


def construction_shape(
    declaration: Union[Assignment, DeclaredWithInitializer, None],
    name: Union[str, ast.Ident],
    bindings: BindingInfo,
    unit: Optional["SourceUnit"] = None,
    config: Optional[TargetConfig] = None,
) -> ConstructionShape:
    """Classify how *declaration* produced the value bound to *name*."""
    if declaration is None:
        return ConstructionShape.UNCLASSIFIED
    config = config or TargetConfig()
    if isinstance(name, ast.Ident):
        name = name.name
    init = unparen(aligned_initializer(declaration, name))
    if init is None:
        return ConstructionShape.UNCLASSIFIED

    if isinstance(init, ast.CallExpr):
        if _names_target(init.fun, config.constructors, bindings, unit, config):
            return ConstructionShape.DIRECT_CONSTRUCTOR_CALL
        if _is_allocation(init, bindings, unit, config):
            return ConstructionShape.ALLOCATED_COMPOSITE_LITERAL

    if isinstance(declaration, DeclaredWithInitializer) and isinstance(init, ast.CompositeLit):
        if _names_target(init.type, (config.type_name,), bindings, unit, config):
            return ConstructionShape.DECLARED_COMPOSITE_LITERAL

    return ConstructionShape.UNCLASSIFIED


def classifies(
    declaration: Union[Assignment, DeclaredWithInitializer, None],
    name: Union[str, ast.Ident],
    bindings: BindingInfo,
    unit: Optional["SourceUnit"] = None,
    config: Optional[TargetConfig] = None,
) -> bool:
    """True when *declaration* plausibly constructs a target instance."""
    shape = construction_shape(declaration, name, bindings, unit, config)
    if shape is not ConstructionShape.UNCLASSIFIED:
        logger.debug("%s classified as %s", name if isinstance(name, str) else name.name,
                     shape.value)
        return True
    return False


__all__ = ["ConstructionShape", "aligned_initializer", "construction_shape", "classifies"]
