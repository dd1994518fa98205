"""
scancheck/ast_helper.py
═══════════════════════

Traversal and query utilities for the Go syntax tree in
:mod:`scancheck.goast`.

    ┌─────────────────────────────────────────────────────────────────┐
    │  Traversal                                                      │
    │    • Pre-order iteration                                        │
    │    • Pruning walk (visit callback returns "descend?")           │
    │    • Inspector: one flattened walk, fast node-kind filtering    │
    ├─────────────────────────────────────────────────────────────────┤
    │  Queries                                                        │
    │    • Parenthesis stripping                                      │
    │    • Method-call shape  recv.Method(...)                        │
    │    • Qualified-name shape  pkg.Name                             │
    │    • Expression stringification                                 │
    └─────────────────────────────────────────────────────────────────┘

All functions are read-only and iterative, so deeply nested files do not
hit the interpreter's recursion limit.

Usage Example
─────────────
    from scancheck.ast_helper import Inspector, method_call

    insp = Inspector(unit.file)
    for call in insp.preorder(goast.CallExpr):
        shape = method_call(call)
        if shape is not None:
            recv, name = shape
"""

from __future__ import annotations

from typing import Callable, Iterator, List, Optional, Tuple, Type

from scancheck import goast as ast


# ═══════════════════════════════════════════════════════════════════════════
#  PART 1 — TRAVERSAL
# ═══════════════════════════════════════════════════════════════════════════

def iter_preorder(root: Optional[ast.Node]) -> Iterator[ast.Node]:
    """
    Iterate over a subtree in pre-order, children in source order.

    Args:
        root: The root of the subtree (may be None)

    Yields:
        Nodes in pre-order sequence, *root* first
    """
    if root is None:
        return
    stack: List[ast.Node] = [root]
    while stack:
        node = stack.pop()
        yield node
        # Push in reverse so the first child is processed first (LIFO)
        stack.extend(reversed(list(ast.iter_children(node))))


def inspect(root: Optional[ast.Node], visit: Callable[[ast.Node], bool]) -> None:
    """
    Pre-order walk with a suppress-children signal.

    *visit* is called on every reached node; when it returns ``False`` the
    node's children are skipped, and the walk resumes with the next sibling.

    Args:
        root: The root of the subtree (may be None)
        visit: Callback returning whether to descend into the node
    """
    if root is None:
        return
    stack: List[ast.Node] = [root]
    while stack:
        node = stack.pop()
        if visit(node):
            stack.extend(reversed(list(ast.iter_children(node))))


class Inspector:
    """
    A flattened pre-order view of one tree.

    The walk happens once, at construction; :meth:`preorder` then answers
    "every node of these kinds" with a filter over the cached sequence.
    """

    def __init__(self, root: ast.Node) -> None:
        self.root = root
        self._nodes: List[ast.Node] = list(iter_preorder(root))

    def __len__(self) -> int:
        return len(self._nodes)

    def preorder(self, *types: Type[ast.Node]) -> Iterator[ast.Node]:
        """Yield nodes of the given kinds (all nodes when none given)."""
        if not types:
            yield from self._nodes
            return
        for node in self._nodes:
            if isinstance(node, types):
                yield node


# ═══════════════════════════════════════════════════════════════════════════
#  PART 2 — QUERIES
# ═══════════════════════════════════════════════════════════════════════════

def unparen(expr: Optional[ast.Expr]) -> Optional[ast.Expr]:
    """Strip any number of enclosing parentheses."""
    while isinstance(expr, ast.ParenExpr):
        expr = expr.x
    return expr


def method_call(call: ast.Node) -> Optional[Tuple[ast.Ident, str]]:
    """
    Match ``recv.Method(...)`` with a bare identifier receiver.

    Returns:
        ``(receiver ident, method name)``, or None for any other shape
    """
    if not isinstance(call, ast.CallExpr):
        return None
    fun = unparen(call.fun)
    if not isinstance(fun, ast.SelectorExpr):
        return None
    recv = unparen(fun.x)
    if not isinstance(recv, ast.Ident):
        return None
    return recv, fun.sel.name


def qualified_name(expr: Optional[ast.Expr]) -> Optional[Tuple[ast.Ident, str]]:
    """
    Match ``pkg.Name`` where ``pkg`` is a bare identifier.

    Returns:
        ``(qualifier ident, selected name)``, or None
    """
    expr = unparen(expr)
    if not isinstance(expr, ast.SelectorExpr):
        return None
    if not isinstance(expr.x, ast.Ident):
        return None
    return expr.x, expr.sel.name


def expr_to_string(expr: Optional[ast.Node]) -> str:
    """
    Render a short, Go-like string for an expression.

    Only the shapes that appear in diagnostics evidence are rendered in
    full; anything else becomes ``...``.
    """
    if expr is None:
        return ""
    if isinstance(expr, ast.Ident):
        return expr.name
    if isinstance(expr, ast.BasicLit):
        return expr.value
    if isinstance(expr, ast.SelectorExpr):
        return f"{expr_to_string(expr.x)}.{expr.sel.name}"
    if isinstance(expr, ast.CallExpr):
        args = ", ".join(expr_to_string(a) for a in expr.args)
        return f"{expr_to_string(expr.fun)}({args})"
    if isinstance(expr, ast.ParenExpr):
        return f"({expr_to_string(expr.x)})"
    if isinstance(expr, ast.StarExpr):
        return f"*{expr_to_string(expr.x)}"
    if isinstance(expr, ast.UnaryExpr):
        return f"{expr.op}{expr_to_string(expr.x)}"
    if isinstance(expr, ast.CompositeLit):
        return f"{expr_to_string(expr.type)}{{...}}"
    return "..."


__all__ = [
    "iter_preorder",
    "inspect",
    "Inspector",
    "unparen",
    "method_call",
    "qualified_name",
    "expr_to_string",
]
