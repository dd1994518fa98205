# scancheck/scopes.py
"""
Lexical binding resolution for a single Go file.

Walks a :class:`goast.File` with a stack of scopes and records, for every
identifier *use*, the :class:`Binding` it refers to.  The rules follow Go's
block structure:

  - the file scope holds every top-level var, const, type and non-method
    func; import names are **not** declared, so a package qualifier such
    as ``bufio`` in ``bufio.NewScanner`` stays unbound
  - functions and function literals open a scope holding receiver, type
    parameters, parameters and results, shared with the body's top level
  - ``if``, ``for``, ``switch`` and ``select`` headers, blocks and case
    clauses each open their own scope
  - ``a, b := ...`` resolves the right-hand side first, then declares the
    names that are new in the *current* scope; names already declared there
    are reused (plain assignment)
  - selector field names, labels, struct fields and interface methods are
    never resolved

Unresolved identifiers simply have no entry.  The table is keyed by node
identity.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Union

from scancheck import goast as ast

logger = logging.getLogger(__name__)


class BindingKind(enum.Enum):
    VAR = "var"
    CONST = "const"
    TYPE = "type"
    FUNC = "func"
    SHORT_VAR = "short_var"
    PARAM = "param"
    RANGE = "range"
    TYPE_PARAM = "type_param"


@dataclass(eq=False)
class Binding:
    """
    One declared name.

    ``decl`` is the node that introduces it: the ``AssignStmt`` of a short
    variable declaration, the ``ValueSpec`` of a ``var``/``const``, the
    ``TypeSpec``, ``FuncDecl``, ``Field`` or ``RangeStmt``.
    """
    name: str
    kind: BindingKind
    ident: ast.Ident
    decl: ast.Node

    def __repr__(self) -> str:
        return f"<Binding {self.kind.value} {self.name!r} @{self.ident.pos}>"


class BindingInfo:
    """Identifier → :class:`Binding` table for one file."""

    def __init__(self) -> None:
        self._uses: Dict[int, Binding] = {}
        self._defs: Dict[int, Binding] = {}

    def __len__(self) -> int:
        return len(self._defs)

    def lookup(self, ident: ast.Ident) -> Optional[Binding]:
        """Binding of *ident*, whether it is a use or the declaring occurrence."""
        key = id(ident)
        return self._uses.get(key) or self._defs.get(key)

    def is_bound(self, ident: ast.Ident) -> bool:
        return self.lookup(ident) is not None

    def definition(self, ident: ast.Ident) -> Optional[Binding]:
        """Binding introduced by *ident*, if *ident* is a declaring occurrence."""
        return self._defs.get(id(ident))

    def bindings(self) -> List[Binding]:
        return list(self._defs.values())

    def _define(self, binding: Binding) -> None:
        self._defs[id(binding.ident)] = binding

    def _use(self, ident: ast.Ident, binding: Binding) -> None:
        self._uses[id(ident)] = binding


class _Scope:
    __slots__ = ("parent", "names")

    def __init__(self, parent: Optional["_Scope"]) -> None:
        self.parent = parent
        self.names: Dict[str, Binding] = {}

    def lookup(self, name: str) -> Optional[Binding]:
        scope: Optional[_Scope] = self
        while scope is not None:
            found = scope.names.get(name)
            if found is not None:
                return found
            scope = scope.parent
        return None


class _Resolver:
    def __init__(self, info: BindingInfo) -> None:
        self.info = info
        self.scope: Optional[_Scope] = None
        # Idents that were already given a binding as a declaration.
        self._declared: set = set()

    # ── scope helpers ────────────────────────────────────────────────

    def open(self) -> None:
        self.scope = _Scope(self.scope)

    def close(self) -> None:
        assert self.scope is not None
        self.scope = self.scope.parent

    def declare(self, ident: ast.Ident, kind: BindingKind, decl: ast.Node) -> Binding:
        binding = Binding(ident.name, kind, ident, decl)
        self.info._define(binding)
        self._declared.add(id(ident))
        if ident.name != "_":
            self.scope.names[ident.name] = binding
        return binding

    # ── walkers ──────────────────────────────────────────────────────

    def walk_list(self, nodes) -> None:
        for node in nodes:
            if node is not None:
                self.walk(node)

    def walk(self, node: Optional[ast.Node]) -> None:
        if node is None:
            return
        method = getattr(self, "walk_" + type(node).__name__, None)
        if method is not None:
            method(node)
        else:
            self.walk_list(ast.iter_children(node))

    # ── file ─────────────────────────────────────────────────────────

    def walk_File(self, node: ast.File) -> None:
        self.open()
        for decl in node.decls:
            if isinstance(decl, ast.FuncDecl):
                if decl.recv is None and decl.name.name not in ("init", "_"):
                    self.declare(decl.name, BindingKind.FUNC, decl)
            elif isinstance(decl, ast.GenDecl) and decl.tok != "import":
                for spec in decl.specs:
                    self._predeclare_spec(decl.tok, spec)
        for decl in node.decls:
            if isinstance(decl, ast.GenDecl):
                if decl.tok == "import":
                    continue
                for spec in decl.specs:
                    self._walk_spec_body(spec)
            else:
                self.walk(decl)
        self.close()

    def _predeclare_spec(self, tok: str, spec: ast.Spec) -> None:
        if isinstance(spec, ast.TypeSpec):
            self.declare(spec.name, BindingKind.TYPE, spec)
        elif isinstance(spec, ast.ValueSpec):
            kind = BindingKind.CONST if tok == "const" else BindingKind.VAR
            for name in spec.names:
                self.declare(name, kind, spec)

    def _walk_spec_body(self, spec: ast.Spec) -> None:
        if isinstance(spec, ast.TypeSpec):
            self.open()
            self._declare_fields(spec.type_params, BindingKind.TYPE_PARAM)
            self.walk(spec.type)
            self.close()
        elif isinstance(spec, ast.ValueSpec):
            self.walk(spec.type)
            self.walk_list(spec.values)

    # ── functions ────────────────────────────────────────────────────

    def _declare_fields(self, fields: Optional[ast.FieldList], kind: BindingKind) -> None:
        if fields is None:
            return
        for fld in fields.list:
            for name in fld.names:
                self.declare(name, kind, fld)

    def _walk_field_types(self, fields: Optional[ast.FieldList]) -> None:
        if fields is None:
            return
        for fld in fields.list:
            self.walk(fld.type)

    def _walk_function(self, recv, ftype: ast.FuncType, body) -> None:
        self.open()
        self._declare_fields(ftype.type_params, BindingKind.TYPE_PARAM)
        self._walk_field_types(ftype.type_params)
        if recv is not None:
            self._walk_field_types(recv)
            self._declare_fields(recv, BindingKind.PARAM)
        self._walk_field_types(ftype.params)
        self._walk_field_types(ftype.results)
        self._declare_fields(ftype.params, BindingKind.PARAM)
        self._declare_fields(ftype.results, BindingKind.PARAM)
        if body is not None:
            # The body shares the function scope.
            self.walk_list(body.list)
        self.close()

    def walk_FuncDecl(self, node: ast.FuncDecl) -> None:
        self._walk_function(node.recv, node.type, node.body)

    def walk_FuncLit(self, node: ast.FuncLit) -> None:
        self._walk_function(None, node.type, node.body)

    def walk_FuncType(self, node: ast.FuncType) -> None:
        # A bare function type: parameter names are not visible anywhere.
        self._walk_field_types(node.type_params)
        self._walk_field_types(node.params)
        self._walk_field_types(node.results)

    # ── types ────────────────────────────────────────────────────────

    def walk_StructType(self, node: ast.StructType) -> None:
        self._walk_field_types(node.fields)

    def walk_InterfaceType(self, node: ast.InterfaceType) -> None:
        self._walk_field_types(node.methods)

    # ── expressions ──────────────────────────────────────────────────

    def walk_Ident(self, node: ast.Ident) -> None:
        if id(node) in self._declared:
            return
        binding = self.scope.lookup(node.name) if self.scope else None
        if binding is not None:
            self.info._use(node, binding)

    def walk_SelectorExpr(self, node: ast.SelectorExpr) -> None:
        self.walk(node.x)

    def walk_KeyValueExpr(self, node: ast.KeyValueExpr) -> None:
        # Struct field keys resolve only if a binding of that name exists.
        self.walk(node.key)
        self.walk(node.value)

    # ── statements ───────────────────────────────────────────────────

    def walk_BlockStmt(self, node: ast.BlockStmt) -> None:
        self.open()
        self.walk_list(node.list)
        self.close()

    def walk_DeclStmt(self, node: ast.DeclStmt) -> None:
        decl = node.decl
        for spec in decl.specs:
            if isinstance(spec, ast.TypeSpec):
                # Type names are in scope inside their own definition.
                self.declare(spec.name, BindingKind.TYPE, spec)
                self._walk_spec_body(spec)
            elif isinstance(spec, ast.ValueSpec):
                self._walk_spec_body(spec)
                kind = BindingKind.CONST if decl.tok == "const" else BindingKind.VAR
                for name in spec.names:
                    self.declare(name, kind, spec)

    def walk_AssignStmt(self, node: ast.AssignStmt) -> None:
        self.walk_list(node.rhs)
        if node.tok != ":=":
            self.walk_list(node.lhs)
            return
        for target in node.lhs:
            if not isinstance(target, ast.Ident):
                self.walk(target)
                continue
            existing = self.scope.names.get(target.name)
            if existing is not None:
                self.info._use(target, existing)
            else:
                self.declare(target, BindingKind.SHORT_VAR, node)

    def walk_LabeledStmt(self, node: ast.LabeledStmt) -> None:
        self.walk(node.stmt)

    def walk_BranchStmt(self, node: ast.BranchStmt) -> None:
        pass

    def walk_IfStmt(self, node: ast.IfStmt) -> None:
        self.open()
        self.walk(node.init)
        self.walk(node.cond)
        self.walk(node.body)
        self.walk(node.else_)
        self.close()

    def walk_ForStmt(self, node: ast.ForStmt) -> None:
        self.open()
        self.walk(node.init)
        self.walk(node.cond)
        self.walk(node.post)
        self.walk(node.body)
        self.close()

    def walk_RangeStmt(self, node: ast.RangeStmt) -> None:
        self.walk(node.x)
        self.open()
        for target in (node.key, node.value):
            if target is None:
                continue
            if node.tok == ":=" and isinstance(target, ast.Ident):
                self.declare(target, BindingKind.RANGE, node)
            else:
                self.walk(target)
        self.walk(node.body)
        self.close()

    def walk_SwitchStmt(self, node: ast.SwitchStmt) -> None:
        self.open()
        self.walk(node.init)
        self.walk(node.tag)
        for clause in node.body.list:
            self.walk(clause)
        self.close()

    def walk_TypeSwitchStmt(self, node: ast.TypeSwitchStmt) -> None:
        self.open()
        self.walk(node.init)
        guard = node.assign
        symbol: Optional[ast.Ident] = None
        if isinstance(guard, ast.AssignStmt):
            symbol = guard.lhs[0] if isinstance(guard.lhs[0], ast.Ident) else None
            self.walk_list(guard.rhs)
        else:
            self.walk(guard)
        for clause in node.body.list:
            self.walk_list(clause.list or [])
            self.open()
            if symbol is not None:
                # Each clause gets its own copy of the guard variable.
                binding = Binding(symbol.name, BindingKind.SHORT_VAR, symbol, guard)
                if id(symbol) not in self._declared:
                    self.info._define(binding)
                    self._declared.add(id(symbol))
                if symbol.name != "_":
                    self.scope.names[symbol.name] = self.info.definition(symbol)
            self.walk_list(clause.body)
            self.close()
        self.close()

    def walk_CaseClause(self, node: ast.CaseClause) -> None:
        self.walk_list(node.list or [])
        self.open()
        self.walk_list(node.body)
        self.close()

    def walk_CommClause(self, node: ast.CommClause) -> None:
        self.open()
        self.walk(node.comm)
        self.walk_list(node.body)
        self.close()


def resolve_file(file: ast.File) -> BindingInfo:
    """Resolve every identifier in *file* to its binding, where one exists."""
    info = BindingInfo()
    _Resolver(info).walk(file)
    return info


__all__ = ["BindingKind", "Binding", "BindingInfo", "resolve_file"]
