# scancheck/goast.py
"""
Go syntax tree.

The node set follows the shape of Go's own ``go/ast`` package closely
enough that anyone who has written a ``go/analysis`` pass will recognise
it, trimmed to what a single-file syntactic checker needs.

Every node records ``pos`` and ``end``: character offsets into the source
text (``end`` exclusive).  Nodes compare by identity, which lets them key
dictionaries such as the binding table built by :mod:`scancheck.scopes`.

Child order
───────────
:func:`iter_children` yields children in source order, driven by the
dataclass field order of each node.  Fields marked ``child=False`` in their
metadata (e.g. ``File.imports``, which aliases specs already reachable
through ``File.decls``) are skipped.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Iterator, List, Optional


# ═══════════════════════════════════════════════════════════════════════════
#  BASE CLASSES
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(eq=False)
class Node:
    pos: int = field(default=0, kw_only=True, metadata={"child": False})
    end: int = field(default=0, kw_only=True, metadata={"child": False})

    def __repr__(self) -> str:
        return f"<{type(self).__name__} @{self.pos}>"


class Expr(Node):
    """Expressions and type expressions."""


class Stmt(Node):
    """Statements."""


class Spec(Node):
    """Import, value and type specifications."""


class Decl(Node):
    """Top-level declarations."""


# ═══════════════════════════════════════════════════════════════════════════
#  EXPRESSIONS
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(eq=False, repr=False)
class Ident(Expr):
    name: str

    def __repr__(self) -> str:
        return f"<Ident {self.name!r} @{self.pos}>"


@dataclass(eq=False, repr=False)
class Ellipsis(Expr):
    """``...`` in an array length or before a variadic parameter type."""
    elt: Optional[Expr] = None


@dataclass(eq=False, repr=False)
class BasicLit(Expr):
    kind: str                     # INT, FLOAT, IMAG, CHAR, STRING
    value: str


@dataclass(eq=False, repr=False)
class FuncLit(Expr):
    type: "FuncType"
    body: "BlockStmt"


@dataclass(eq=False, repr=False)
class CompositeLit(Expr):
    type: Optional[Expr]
    elts: List[Expr] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class ParenExpr(Expr):
    x: Expr


@dataclass(eq=False, repr=False)
class SelectorExpr(Expr):
    x: Expr
    sel: Ident


@dataclass(eq=False, repr=False)
class IndexExpr(Expr):
    """``x[i]`` or a generic instantiation ``x[A, B]``."""
    x: Expr
    indices: List[Expr] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class SliceExpr(Expr):
    x: Expr
    low: Optional[Expr] = None
    high: Optional[Expr] = None
    max: Optional[Expr] = None
    slice3: bool = False


@dataclass(eq=False, repr=False)
class TypeAssertExpr(Expr):
    """``x.(T)``; ``type`` is ``None`` for the ``x.(type)`` switch guard."""
    x: Expr
    type: Optional[Expr] = None


@dataclass(eq=False, repr=False)
class CallExpr(Expr):
    fun: Expr
    args: List[Expr] = field(default_factory=list)
    has_ellipsis: bool = False


@dataclass(eq=False, repr=False)
class StarExpr(Expr):
    """Pointer type or dereference."""
    x: Expr


@dataclass(eq=False, repr=False)
class UnaryExpr(Expr):
    op: str
    x: Expr


@dataclass(eq=False, repr=False)
class BinaryExpr(Expr):
    x: Expr
    op: str
    y: Expr


@dataclass(eq=False, repr=False)
class KeyValueExpr(Expr):
    key: Expr
    value: Expr


# ── type expressions ─────────────────────────────────────────────────────

@dataclass(eq=False, repr=False)
class Field(Node):
    names: List[Ident] = field(default_factory=list)
    type: Optional[Expr] = None
    tag: Optional[BasicLit] = None


@dataclass(eq=False, repr=False)
class FieldList(Node):
    list: List[Field] = field(default_factory=list)

    def num_fields(self) -> int:
        return sum(len(f.names) or 1 for f in self.list)


@dataclass(eq=False, repr=False)
class ArrayType(Expr):
    """``[N]T``, ``[...]T`` or, with ``len`` None, the slice type ``[]T``."""
    len: Optional[Expr]
    elt: Expr


@dataclass(eq=False, repr=False)
class StructType(Expr):
    fields: FieldList


@dataclass(eq=False, repr=False)
class FuncType(Expr):
    type_params: Optional[FieldList]
    params: FieldList
    results: Optional[FieldList] = None


@dataclass(eq=False, repr=False)
class InterfaceType(Expr):
    methods: FieldList


@dataclass(eq=False, repr=False)
class MapType(Expr):
    key: Expr
    value: Expr


@dataclass(eq=False, repr=False)
class ChanType(Expr):
    dir: str                      # "both", "send" or "recv"
    value: Expr


# ═══════════════════════════════════════════════════════════════════════════
#  STATEMENTS
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(eq=False, repr=False)
class DeclStmt(Stmt):
    decl: "GenDecl"


@dataclass(eq=False, repr=False)
class LabeledStmt(Stmt):
    label: Ident
    stmt: Optional[Stmt] = None


@dataclass(eq=False, repr=False)
class ExprStmt(Stmt):
    x: Expr


@dataclass(eq=False, repr=False)
class SendStmt(Stmt):
    chan: Expr
    value: Expr


@dataclass(eq=False, repr=False)
class IncDecStmt(Stmt):
    x: Expr
    tok: str


@dataclass(eq=False, repr=False)
class AssignStmt(Stmt):
    """``lhs tok rhs`` where ``tok`` is ``=``, ``:=`` or an op-assign."""
    lhs: List[Expr]
    tok: str
    rhs: List[Expr]


@dataclass(eq=False, repr=False)
class GoStmt(Stmt):
    call: Expr


@dataclass(eq=False, repr=False)
class DeferStmt(Stmt):
    call: Expr


@dataclass(eq=False, repr=False)
class ReturnStmt(Stmt):
    results: List[Expr] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class BranchStmt(Stmt):
    tok: str                      # break, continue, goto, fallthrough
    label: Optional[Ident] = None


@dataclass(eq=False, repr=False)
class BlockStmt(Stmt):
    list: List[Stmt] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class IfStmt(Stmt):
    init: Optional[Stmt]
    cond: Expr
    body: BlockStmt
    else_: Optional[Stmt] = None


@dataclass(eq=False, repr=False)
class CaseClause(Stmt):
    """``list`` is ``None`` for the ``default`` clause."""
    list: Optional[List[Expr]]
    body: List[Stmt] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class SwitchStmt(Stmt):
    init: Optional[Stmt]
    tag: Optional[Expr]
    body: BlockStmt


@dataclass(eq=False, repr=False)
class TypeSwitchStmt(Stmt):
    init: Optional[Stmt]
    assign: Stmt                  # x := y.(type) or y.(type)
    body: BlockStmt


@dataclass(eq=False, repr=False)
class CommClause(Stmt):
    """``comm`` is ``None`` for the ``default`` clause."""
    comm: Optional[Stmt]
    body: List[Stmt] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class SelectStmt(Stmt):
    body: BlockStmt


@dataclass(eq=False, repr=False)
class ForStmt(Stmt):
    init: Optional[Stmt]
    cond: Optional[Expr]
    post: Optional[Stmt]
    body: BlockStmt


@dataclass(eq=False, repr=False)
class RangeStmt(Stmt):
    key: Optional[Expr]
    value: Optional[Expr]
    tok: str                      # ":=", "=" or "" when there is no lhs
    x: Expr
    body: BlockStmt


# ═══════════════════════════════════════════════════════════════════════════
#  DECLARATIONS
# ═══════════════════════════════════════════════════════════════════════════

@dataclass(eq=False, repr=False)
class ImportSpec(Spec):
    name: Optional[Ident]
    path: BasicLit

    @property
    def import_path(self) -> str:
        return self.path.value[1:-1]


@dataclass(eq=False, repr=False)
class ValueSpec(Spec):
    names: List[Ident]
    type: Optional[Expr] = None
    values: List[Expr] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class TypeSpec(Spec):
    name: Ident
    type_params: Optional[FieldList]
    assign: bool
    type: Expr


@dataclass(eq=False, repr=False)
class GenDecl(Decl):
    tok: str                      # import, const, type, var
    specs: List[Spec] = field(default_factory=list)


@dataclass(eq=False, repr=False)
class FuncDecl(Decl):
    recv: Optional[FieldList]
    name: Ident
    type: FuncType
    body: Optional[BlockStmt] = None


@dataclass(eq=False, repr=False)
class File(Node):
    name: Ident
    decls: List[Decl] = field(default_factory=list)
    imports: List[ImportSpec] = field(default_factory=list, metadata={"child": False})


# ═══════════════════════════════════════════════════════════════════════════
#  CHILD ITERATION
# ═══════════════════════════════════════════════════════════════════════════

_CHILD_FIELDS: dict = {}


def _child_fields(cls: type) -> tuple:
    names = _CHILD_FIELDS.get(cls)
    if names is None:
        names = tuple(
            f.name for f in fields(cls) if f.metadata.get("child", True)
        )
        _CHILD_FIELDS[cls] = names
    return names


def iter_children(node: Node) -> Iterator[Node]:
    """Yield the direct children of *node* in source order."""
    for name in _child_fields(type(node)):
        value = getattr(node, name)
        if isinstance(value, Node):
            yield value
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, Node):
                    yield item


__all__ = [
    "Node", "Expr", "Stmt", "Spec", "Decl",
    "Ident", "Ellipsis", "BasicLit", "FuncLit", "CompositeLit", "ParenExpr",
    "SelectorExpr", "IndexExpr", "SliceExpr", "TypeAssertExpr", "CallExpr",
    "StarExpr", "UnaryExpr", "BinaryExpr", "KeyValueExpr",
    "Field", "FieldList", "ArrayType", "StructType", "FuncType",
    "InterfaceType", "MapType", "ChanType",
    "DeclStmt", "LabeledStmt", "ExprStmt", "SendStmt", "IncDecStmt",
    "AssignStmt", "GoStmt", "DeferStmt", "ReturnStmt", "BranchStmt",
    "BlockStmt", "IfStmt", "CaseClause", "SwitchStmt", "TypeSwitchStmt",
    "CommClause", "SelectStmt", "ForStmt", "RangeStmt",
    "ImportSpec", "ValueSpec", "TypeSpec", "GenDecl", "FuncDecl", "File",
    "iter_children",
]
