# scancheck/frontend.py
"""
Go front-end: source text → :class:`SourceUnit`.

Pipeline::

    text ──insert_semicolons──▶ rewritten text ──GO_GRAMMAR──▶ parse tree
         ──GoASTBuilder──▶ goast.File ──resolve_file──▶ BindingInfo

A :class:`SourceUnit` bundles the tree with its binding information, the
comments of the file and the original text, and converts node offsets to
1-based ``line:column`` locations.
"""

from __future__ import annotations

import bisect
import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple, Union

from parsimonious.exceptions import ParseError, VisitationError
from parsimonious.expressions import Literal, Regex
from parsimonious.nodes import NodeVisitor

from scancheck import goast as ast
from scancheck.checkers import SourceLocation
from scancheck.errors import FrontendError, GoSyntaxError, ScancheckError
from scancheck.grammar import GO_GRAMMAR, Comment, insert_semicolons
from scancheck.scopes import BindingInfo, resolve_file

logger = logging.getLogger(__name__)

_RECURSION_LIMIT = 10000

# Go binary operator precedence, tightest last.
_PRECEDENCE: Dict[str, int] = {
    "||": 1,
    "&&": 2,
    "==": 3, "!=": 3, "<": 3, "<=": 3, ">": 3, ">=": 3,
    "+": 4, "-": 4, "|": 4, "^": 4,
    "*": 5, "/": 5, "%": 5, "<<": 5, ">>": 5, "&": 5, "&^": 5,
}


# ═══════════════════════════════════════════════════════════════════
#  PART 1 — SOURCE UNIT
# ═══════════════════════════════════════════════════════════════════

@dataclass
class SourceUnit:
    """One parsed Go file together with everything the analyzer needs."""
    filename: str
    source: str
    file: ast.File
    bindings: BindingInfo
    comments: List[Comment] = field(default_factory=list)
    _line_starts: List[int] = field(default_factory=list, repr=False)

    def __post_init__(self) -> None:
        if not self._line_starts:
            self._line_starts = _line_starts(self.source)

    def position(self, offset: int) -> Tuple[int, int]:
        """1-based (line, column) of a character offset."""
        return _position(self._line_starts, offset)

    def location(self, target: Union[ast.Node, int]) -> SourceLocation:
        offset = target.pos if isinstance(target, ast.Node) else target
        line, column = self.position(offset)
        return SourceLocation(file=self.filename, line=line, column=column)

    def line_text(self, line: int) -> str:
        if line < 1 or line > len(self._line_starts):
            return ""
        start = self._line_starts[line - 1]
        stop = self.source.find("\n", start)
        if stop < 0:
            stop = len(self.source)
        return self.source[start:stop].rstrip("\r")

    def comments_on_line(self, line: int) -> List[Comment]:
        return [c for c in self.comments if self.position(c.pos)[0] == line]

    def import_names(self, path: str) -> Set[str]:
        """Local names under which *path* is imported by this file."""
        names: Set[str] = set()
        for spec in self.file.imports:
            if spec.import_path != path:
                continue
            if spec.name is None:
                names.add(path.rsplit("/", 1)[-1])
            elif spec.name.name not in ("_", "."):
                names.add(spec.name.name)
        return names

    def imported_names(self) -> Set[str]:
        """Every local package name introduced by an import."""
        names: Set[str] = set()
        for spec in self.file.imports:
            if spec.name is None:
                names.add(spec.import_path.rsplit("/", 1)[-1])
            elif spec.name.name not in ("_", "."):
                names.add(spec.name.name)
        return names


def _line_starts(text: str) -> List[int]:
    starts = [0]
    for idx, ch in enumerate(text):
        if ch == "\n":
            starts.append(idx + 1)
    return starts


def _position(starts: List[int], offset: int) -> Tuple[int, int]:
    idx = bisect.bisect_right(starts, offset) - 1
    return idx + 1, offset - starts[idx] + 1


# ═══════════════════════════════════════════════════════════════════
#  PART 2 — PARSE TREE → GO AST
# ═══════════════════════════════════════════════════════════════════

@dataclass
class _ForClause:
    init: Optional[ast.Stmt]
    cond: Optional[ast.Expr]
    post: Optional[ast.Stmt]


@dataclass
class _RangeClause:
    lhs: List[ast.Expr]
    tok: str
    x: ast.Expr


@dataclass
class _TypeSwitchGuard:
    stmt: ast.Stmt


def _collect(loop: List[Any], tail: List[Any], optional: bool = False) -> List[Any]:
    """Gather ``(item _ ";" _)* (item _)?`` into a flat list."""
    items: List[Any] = []
    for entry in loop:
        if optional:
            items.extend(entry[0])
        else:
            items.append(entry[0])
    for entry in tail:
        items.append(entry[0])
    return items


def _fold_binary(first: ast.Expr, pairs: List[Tuple[str, ast.Expr]]) -> ast.Expr:
    operands: List[ast.Expr] = [first]
    ops: List[str] = []

    def reduce() -> None:
        y = operands.pop()
        x = operands.pop()
        operands.append(ast.BinaryExpr(x, ops.pop(), y, pos=x.pos, end=y.end))

    for op, rhs in pairs:
        while ops and _PRECEDENCE[ops[-1]] >= _PRECEDENCE[op]:
            reduce()
        ops.append(op)
        operands.append(rhs)
    while ops:
        reduce()
    return operands[0]


def _number_kind(text: str) -> str:
    if text.endswith("i"):
        return "IMAG"
    lowered = text.lower()
    if lowered.startswith("0x"):
        return "FLOAT" if ("." in lowered or "p" in lowered) else "INT"
    if lowered.startswith(("0b", "0o")):
        return "INT"
    return "FLOAT" if ("." in lowered or "e" in lowered) else "INT"


class GoASTBuilder(NodeVisitor):
    """Transforms a parsimonious parse tree into :mod:`scancheck.goast`."""

    unwrapped_exceptions = (ScancheckError,)

    def generic_visit(self, node, visited_children):
        # Leaves (keywords, punctuation, operators) come back as the parse
        # node itself so callers can read ``.text`` and offsets.
        if isinstance(node.expr, (Literal, Regex)):
            return node
        return visited_children

    # ─────────────────────────────────────────────────────────────
    # Source file
    # ─────────────────────────────────────────────────────────────

    def visit_source_file(self, node, children):
        _, _, _, name, _, _, _, imports, decls, _ = children
        file = ast.File(name, imports + decls, pos=node.start, end=node.end)
        for decl in imports:
            file.imports.extend(decl.specs)
        return file

    def visit_import_decls(self, node, children):
        return [entry[0] for entry in children]

    def visit_top_level_decls(self, node, children):
        loop, tail = children
        return _collect(loop, tail, optional=True)

    def visit_top_level_decl(self, node, children):
        return children[0]

    def visit_import_decl(self, node, children):
        _, _, specs = children
        return ast.GenDecl("import", specs, pos=node.start, end=node.end)

    def visit_import_body(self, node, children):
        body = children[0]
        return body if isinstance(body, list) else [body]

    def visit_import_group(self, node, children):
        _, _, loop, tail, _ = children
        return _collect(loop, tail)

    def visit_import_spec(self, node, children):
        name_opt, path = children
        name = name_opt[0][0] if name_opt else None
        return ast.ImportSpec(name, path, pos=node.start, end=node.end)

    def visit_import_name(self, node, children):
        return ast.Ident(node.text, pos=node.start, end=node.end)

    # ─────────────────────────────────────────────────────────────
    # Declarations
    # ─────────────────────────────────────────────────────────────

    def visit_declaration(self, node, children):
        return children[0]

    def visit_const_decl(self, node, children):
        _, _, specs = children
        return ast.GenDecl("const", specs, pos=node.start, end=node.end)

    def visit_var_decl(self, node, children):
        _, _, specs = children
        return ast.GenDecl("var", specs, pos=node.start, end=node.end)

    def visit_type_decl(self, node, children):
        _, _, specs = children
        return ast.GenDecl("type", specs, pos=node.start, end=node.end)

    def visit_value_body(self, node, children):
        body = children[0]
        return body if isinstance(body, list) else [body]

    visit_type_body = visit_value_body

    def visit_value_group(self, node, children):
        _, _, loop, tail, _ = children
        return _collect(loop, tail)

    visit_type_group = visit_value_group

    def visit_value_spec(self, node, children):
        names, type_opt, values_opt = children
        typ = type_opt[0][1] if type_opt else None
        values = values_opt[0][3] if values_opt else []
        return ast.ValueSpec(names, typ, values, pos=node.start, end=node.end)

    def visit_type_spec(self, node, children):
        name, _, tparams_opt, assign_opt, typ = children
        tparams = tparams_opt[0][0] if tparams_opt else None
        return ast.TypeSpec(name, tparams, bool(assign_opt), typ,
                            pos=node.start, end=node.end)

    def visit_func_decl(self, node, children):
        _, _, recv_opt, name, _, tparams_opt, ftype, body_opt = children
        ftype.type_params = tparams_opt[0][0] if tparams_opt else None
        ftype.pos = node.start
        recv = recv_opt[0][0] if recv_opt else None
        body = body_opt[0][1] if body_opt else None
        return ast.FuncDecl(recv, name, ftype, body, pos=node.start, end=node.end)

    def visit_type_params(self, node, children):
        _, _, first, rest, _, _, _ = children
        return ast.FieldList([first] + [entry[3] for entry in rest],
                             pos=node.start, end=node.end)

    def visit_type_param_decl(self, node, children):
        names, _, constraint = children
        return ast.Field(names, constraint, pos=node.start, end=node.end)

    def visit_type_constraint(self, node, children):
        first, rest = children
        result = first
        for _, _, _, term in rest:
            result = ast.BinaryExpr(result, "|", term, pos=result.pos, end=term.end)
        return result

    def visit_constraint_term(self, node, children):
        tilde_opt, typ = children
        if tilde_opt:
            return ast.UnaryExpr("~", typ, pos=node.start, end=node.end)
        return typ

    def visit_signature(self, node, children):
        params, result_opt = children
        results = result_opt[0][1] if result_opt else None
        return ast.FuncType(None, params, results, pos=node.start, end=node.end)

    def visit_result(self, node, children):
        result = children[0]
        if isinstance(result, ast.FieldList):
            return result
        return ast.FieldList([ast.Field([], result, pos=result.pos, end=result.end)],
                             pos=node.start, end=node.end)

    def visit_parameters(self, node, children):
        _, _, list_opt, _ = children
        fields = list_opt[0][0] if list_opt else []
        return ast.FieldList(fields, pos=node.start, end=node.end)

    def visit_parameter_list(self, node, children):
        return children[0]

    def visit_named_params(self, node, children):
        first, rest = children
        return [first] + [entry[3] for entry in rest]

    def visit_param_group(self, node, children):
        names, _, ellipsis_opt, _, typ = children
        if ellipsis_opt:
            typ = ast.Ellipsis(typ, pos=ellipsis_opt[0].start, end=typ.end)
        return ast.Field(names, typ, pos=node.start, end=node.end)

    def visit_anon_params(self, node, children):
        first, rest = children
        types = [first] + [entry[3] for entry in rest]
        return [ast.Field([], t, pos=t.pos, end=t.end) for t in types]

    def visit_param_type(self, node, children):
        ellipsis_opt, typ = children
        if ellipsis_opt:
            return ast.Ellipsis(typ, pos=node.start, end=node.end)
        return typ

    def visit_identifier_list(self, node, children):
        first, rest = children
        return [first] + [entry[3] for entry in rest]

    # ─────────────────────────────────────────────────────────────
    # Types
    # ─────────────────────────────────────────────────────────────

    def visit_type(self, node, children):
        return children[0]

    visit_type_lit = visit_type

    def visit_paren_type(self, node, children):
        _, _, typ, _, _ = children
        return ast.ParenExpr(typ, pos=node.start, end=node.end)

    def visit_type_name_generic(self, node, children):
        name, args_opt = children
        if args_opt:
            return ast.IndexExpr(name, args_opt[0][1], pos=node.start, end=node.end)
        return name

    def visit_type_name(self, node, children):
        first, sel_opt = children
        if sel_opt:
            return ast.SelectorExpr(first, sel_opt[0][3], pos=node.start, end=node.end)
        return first

    def visit_type_args(self, node, children):
        _, _, first, rest, _, _, _ = children
        return [first] + [entry[3] for entry in rest]

    def visit_slice_type(self, node, children):
        return ast.ArrayType(None, children[-1], pos=node.start, end=node.end)

    def visit_array_type(self, node, children):
        _, _, length, _, _, _, elt = children
        return ast.ArrayType(length, elt, pos=node.start, end=node.end)

    def visit_array_len(self, node, children):
        if node.text == "...":
            return ast.Ellipsis(None, pos=node.start, end=node.end)
        return children[0]

    def visit_pointer_type(self, node, children):
        return ast.StarExpr(children[-1], pos=node.start, end=node.end)

    def visit_func_type(self, node, children):
        ftype = children[-1]
        ftype.pos = node.start
        return ftype

    def visit_map_type(self, node, children):
        _, _, _, _, key, _, _, _, value = children
        return ast.MapType(key, value, pos=node.start, end=node.end)

    def visit_chan_type(self, node, children):
        prefix, _, value = children
        text = prefix.text
        if text.startswith("<-"):
            direction = "recv"
        elif text.endswith("<-"):
            direction = "send"
        else:
            direction = "both"
        return ast.ChanType(direction, value, pos=node.start, end=node.end)

    def visit_struct_type(self, node, children):
        _, _, lbrace, _, loop, tail, _ = children
        fields = ast.FieldList(_collect(loop, tail), pos=lbrace.start, end=node.end)
        return ast.StructType(fields, pos=node.start, end=node.end)

    def visit_field_decl(self, node, children):
        fld, tag_opt = children
        if tag_opt:
            fld.tag = tag_opt[0][1]
            fld.end = node.end
        return fld

    def visit_field_body(self, node, children):
        return children[0]

    def visit_named_field(self, node, children):
        names, _, typ = children
        return ast.Field(names, typ, pos=node.start, end=node.end)

    def visit_embedded_field(self, node, children):
        star_opt, typ = children
        if star_opt:
            typ = ast.StarExpr(typ, pos=node.start, end=node.end)
        return ast.Field([], typ, pos=node.start, end=node.end)

    def visit_interface_type(self, node, children):
        _, _, lbrace, _, loop, tail, _ = children
        elems = []
        for elem in _collect(loop, tail):
            if not isinstance(elem, ast.Field):
                elem = ast.Field([], elem, pos=elem.pos, end=elem.end)
            elems.append(elem)
        methods = ast.FieldList(elems, pos=lbrace.start, end=node.end)
        return ast.InterfaceType(methods, pos=node.start, end=node.end)

    def visit_interface_elem(self, node, children):
        return children[0]

    def visit_method_elem(self, node, children):
        name, _, ftype = children
        return ast.Field([name], ftype, pos=node.start, end=node.end)

    # ─────────────────────────────────────────────────────────────
    # Statements
    # ─────────────────────────────────────────────────────────────

    def visit_block(self, node, children):
        _, _, stmts, _ = children
        return ast.BlockStmt(stmts, pos=node.start, end=node.end)

    def visit_statement_list(self, node, children):
        loop, tail = children
        return _collect(loop, tail, optional=True)

    def visit_statement(self, node, children):
        stmt = children[0]
        if isinstance(stmt, ast.GenDecl):
            return ast.DeclStmt(stmt, pos=stmt.pos, end=stmt.end)
        return stmt

    def visit_labeled_stmt(self, node, children):
        label, _, _, _, stmt_opt = children
        stmt = stmt_opt[0] if stmt_opt else None
        return ast.LabeledStmt(label, stmt, pos=node.start, end=node.end)

    def visit_go_stmt(self, node, children):
        return ast.GoStmt(children[-1], pos=node.start, end=node.end)

    def visit_defer_stmt(self, node, children):
        return ast.DeferStmt(children[-1], pos=node.start, end=node.end)

    def visit_return_stmt(self, node, children):
        _, results_opt = children
        results = results_opt[0][1] if results_opt else []
        return ast.ReturnStmt(results, pos=node.start, end=node.end)

    def _branch(self, tok, node, label_opt):
        label = label_opt[0][1] if label_opt else None
        return ast.BranchStmt(tok, label, pos=node.start, end=node.end)

    def visit_break_stmt(self, node, children):
        return self._branch("break", node, children[1])

    def visit_continue_stmt(self, node, children):
        return self._branch("continue", node, children[1])

    def visit_goto_stmt(self, node, children):
        return ast.BranchStmt("goto", children[-1], pos=node.start, end=node.end)

    def visit_fallthrough_stmt(self, node, children):
        return ast.BranchStmt("fallthrough", None, pos=node.start, end=node.end)

    def visit_simple_stmt(self, node, children):
        stmt = children[0]
        if isinstance(stmt, ast.Expr):
            return ast.ExprStmt(stmt, pos=stmt.pos, end=stmt.end)
        return stmt

    def visit_short_var_decl(self, node, children):
        names, _, _, _, values = children
        return ast.AssignStmt(names, ":=", values, pos=node.start, end=node.end)

    def visit_assignment(self, node, children):
        lhs, _, op, _, rhs = children
        return ast.AssignStmt(lhs, op.text, rhs, pos=node.start, end=node.end)

    def visit_inc_dec_stmt(self, node, children):
        x, _, op = children
        return ast.IncDecStmt(x, op.text, pos=node.start, end=node.end)

    def visit_send_stmt(self, node, children):
        chan, _, _, _, value = children
        return ast.SendStmt(chan, value, pos=node.start, end=node.end)

    def visit_if_stmt(self, node, children):
        _, _, init_opt, cond, _, body, else_opt = children
        init = init_opt[0][0] if init_opt else None
        else_ = else_opt[0][3] if else_opt else None
        return ast.IfStmt(init, cond, body, else_, pos=node.start, end=node.end)

    def visit_else_branch(self, node, children):
        return children[0]

    def visit_for_stmt(self, node, children):
        _, _, header_opt, body = children
        header = header_opt[0][0] if header_opt else None
        if isinstance(header, _RangeClause):
            key = header.lhs[0] if header.lhs else None
            value = header.lhs[1] if len(header.lhs) > 1 else None
            return ast.RangeStmt(key, value, header.tok, header.x, body,
                                 pos=node.start, end=node.end)
        if isinstance(header, _ForClause):
            return ast.ForStmt(header.init, header.cond, header.post, body,
                               pos=node.start, end=node.end)
        return ast.ForStmt(None, header, None, body, pos=node.start, end=node.end)

    def visit_for_header(self, node, children):
        return children[0]

    def visit_for_clause(self, node, children):
        init_opt, _, _, cond_opt, _, _, post_opt = children
        return _ForClause(
            init=init_opt[0][0] if init_opt else None,
            cond=cond_opt[0][0] if cond_opt else None,
            post=post_opt[0] if post_opt else None,
        )

    def visit_range_clause(self, node, children):
        lhs_opt, _, _, x = children
        if lhs_opt:
            lhs, tok = lhs_opt[0][0]
            return _RangeClause(lhs, tok, x)
        return _RangeClause([], "", x)

    def visit_range_lhs(self, node, children):
        lhs, _, tok = children
        return (lhs, tok.text)

    def visit_switch_stmt(self, node, children):
        _, _, init_opt, guard_opt, lbrace, _, clauses, _ = children
        init = init_opt[0][0] if init_opt else None
        guard = guard_opt[0][0] if guard_opt else None
        body = ast.BlockStmt([entry[0] for entry in clauses],
                             pos=lbrace.start, end=node.end)
        if isinstance(guard, _TypeSwitchGuard):
            return ast.TypeSwitchStmt(init, guard.stmt, body, pos=node.start, end=node.end)
        return ast.SwitchStmt(init, guard, body, pos=node.start, end=node.end)

    def visit_switch_guard(self, node, children):
        return children[0]

    def visit_type_switch_guard(self, node, children):
        bind_opt, x = children[0], children[1]
        assert_expr = ast.TypeAssertExpr(x, None, pos=x.pos, end=node.end)
        if bind_opt:
            name = bind_opt[0][0]
            stmt = ast.AssignStmt([name], ":=", [assert_expr],
                                  pos=node.start, end=node.end)
        else:
            stmt = ast.ExprStmt(assert_expr, pos=node.start, end=node.end)
        return _TypeSwitchGuard(stmt)

    def visit_case_clause(self, node, children):
        head, _, _, _, body = children
        return ast.CaseClause(head, body, pos=node.start, end=node.end)

    def visit_case_head(self, node, children):
        head = children[0]
        return head if isinstance(head, list) else None

    def visit_case_list_head(self, node, children):
        return children[-1]

    def visit_select_stmt(self, node, children):
        _, _, lbrace, _, clauses, _ = children
        body = ast.BlockStmt([entry[0] for entry in clauses],
                             pos=lbrace.start, end=node.end)
        return ast.SelectStmt(body, pos=node.start, end=node.end)

    def visit_comm_clause(self, node, children):
        head, _, _, _, body = children
        return ast.CommClause(head, body, pos=node.start, end=node.end)

    def visit_comm_head(self, node, children):
        head = children[0]
        return head if isinstance(head, ast.Stmt) else None

    def visit_comm_case_head(self, node, children):
        return children[-1]

    visit_simple_stmt_nl = visit_simple_stmt
    visit_short_var_decl_nl = visit_short_var_decl
    visit_assignment_nl = visit_assignment
    visit_inc_dec_stmt_nl = visit_inc_dec_stmt
    visit_send_stmt_nl = visit_send_stmt

    # ─────────────────────────────────────────────────────────────
    # Expressions
    # ─────────────────────────────────────────────────────────────

    def visit_expression_list(self, node, children):
        first, rest = children
        return [first] + [entry[3] for entry in rest]

    def visit_expression(self, node, children):
        first, rest = children
        if not rest:
            return first
        return _fold_binary(first, [(op.text, rhs) for _, op, _, rhs in rest])

    def visit_unary_expr(self, node, children):
        return children[0]

    def visit_prefixed_expr(self, node, children):
        op, _, x = children
        if op.text == "*":
            return ast.StarExpr(x, pos=node.start, end=node.end)
        return ast.UnaryExpr(op.text, x, pos=node.start, end=node.end)

    def visit_primary_expr(self, node, children):
        x, suffixes = children
        for _, suffix in suffixes:
            x = self._apply_suffix(x, suffix)
        return x

    def _apply_suffix(self, x, suffix):
        kind, end = suffix[0], suffix[-1]
        if kind == "selector":
            return ast.SelectorExpr(x, suffix[1], pos=x.pos, end=end)
        if kind == "assert":
            return ast.TypeAssertExpr(x, suffix[1], pos=x.pos, end=end)
        if kind == "index":
            return ast.IndexExpr(x, suffix[1], pos=x.pos, end=end)
        if kind == "slice":
            _, low, high, max_, three, _ = suffix
            return ast.SliceExpr(x, low, high, max_, three, pos=x.pos, end=end)
        _, args, has_ellipsis, _ = suffix
        return ast.CallExpr(x, args, has_ellipsis, pos=x.pos, end=end)

    def visit_operand(self, node, children):
        return children[0]

    visit_operand_type_lit = visit_operand

    visit_expression_list_nl = visit_expression_list
    visit_expression_nl = visit_expression
    visit_unary_expr_nl = visit_unary_expr
    visit_prefixed_expr_nl = visit_prefixed_expr
    visit_primary_expr_nl = visit_primary_expr
    visit_operand_nl = visit_operand

    def visit_composite_lit(self, node, children):
        typ, _, lit = children
        lit.type = typ
        lit.pos = node.start
        return lit

    visit_composite_lit_nl = visit_composite_lit

    def visit_literal_type(self, node, children):
        return children[0]

    visit_literal_type_nl = visit_literal_type

    def visit_literal_value(self, node, children):
        _, _, elts_opt, _ = children
        elts = elts_opt[0][0] if elts_opt else []
        return ast.CompositeLit(None, elts, pos=node.start, end=node.end)

    def visit_element_list(self, node, children):
        first, rest = children
        return [first] + [entry[3] for entry in rest]

    def visit_keyed_element(self, node, children):
        key_opt, value = children
        if key_opt:
            key = key_opt[0][0]
            return ast.KeyValueExpr(key, value, pos=node.start, end=node.end)
        return value

    def visit_element(self, node, children):
        return children[0]

    def visit_func_lit(self, node, children):
        ftype, _, body = children
        return ast.FuncLit(ftype, body, pos=node.start, end=node.end)

    def visit_paren_expr(self, node, children):
        _, _, x, _, _ = children
        return ast.ParenExpr(x, pos=node.start, end=node.end)

    def visit_suffix(self, node, children):
        return children[0]

    def visit_selector(self, node, children):
        return ("selector", children[-1], node.end)

    def visit_type_assertion(self, node, children):
        _, _, _, _, typ, _, _ = children
        return ("assert", typ, node.end)

    def visit_index_suffix(self, node, children):
        _, _, body, _, _ = children
        return body + (node.end,)

    def visit_index_body(self, node, children):
        return children[0]

    def visit_slice_body(self, node, children):
        low_opt, _, _, high_opt, max_opt = children
        low = low_opt[0][0] if low_opt else None
        high = high_opt[0][0] if high_opt else None
        max_ = max_opt[0][2] if max_opt else None
        return ("slice", low, high, max_, bool(max_opt))

    def visit_index_list(self, node, children):
        first, rest, _ = children
        return ("index", [first] + [entry[3] for entry in rest])

    def visit_call_suffix(self, node, children):
        _, _, args_opt, _ = children
        if args_opt:
            args, has_ellipsis = args_opt[0][0]
        else:
            args, has_ellipsis = [], False
        return ("call", args, has_ellipsis, node.end)

    def visit_call_args(self, node, children):
        first, rest, ellipsis_opt, _ = children
        return ([first] + [entry[3] for entry in rest], bool(ellipsis_opt))

    # ─────────────────────────────────────────────────────────────
    # Lexical
    # ─────────────────────────────────────────────────────────────

    def visit_basic_lit(self, node, children):
        return children[0]

    def visit_number_lit(self, node, children):
        return ast.BasicLit(_number_kind(node.text), node.text,
                            pos=node.start, end=node.end)

    def visit_string_lit(self, node, children):
        return ast.BasicLit("STRING", node.text, pos=node.start, end=node.end)

    def visit_rune_lit(self, node, children):
        return ast.BasicLit("CHAR", node.text, pos=node.start, end=node.end)

    def visit_identifier(self, node, children):
        return ast.Ident(node.text, pos=node.start, end=node.end)


# ═══════════════════════════════════════════════════════════════════
#  PART 3 — ENTRY POINTS
# ═══════════════════════════════════════════════════════════════════

def _ensure_recursion_limit() -> None:
    if sys.getrecursionlimit() < _RECURSION_LIMIT:
        sys.setrecursionlimit(_RECURSION_LIMIT)


def parse_source(text: str, filename: str = "<input>") -> SourceUnit:
    """
    Parse Go source text into a :class:`SourceUnit`.

    Raises
    ------
    GoSyntaxError  if the text is not in the supported Go subset
    FrontendError  if the tree could not be built
    """
    if text.startswith("\ufeff"):
        text = " " + text[1:]
    starts = _line_starts(text)
    # A trailing newline lets the last line receive its automatic semicolon.
    rewritten, comments = insert_semicolons(text + "\n")

    _ensure_recursion_limit()
    try:
        tree = GO_GRAMMAR.parse(rewritten)
    except ParseError as exc:
        offset = min(max(exc.pos, 0), len(text))
        line, column = _position(starts, offset)
        excerpt = text[offset:offset + 20].split("\n", 1)[0]
        rule = getattr(exc.expr, "name", "") or "source_file"
        raise GoSyntaxError(
            f"syntax error near {excerpt!r} (in {rule})",
            location=SourceLocation(file=filename, line=line, column=column),
            cause=exc,
            excerpt=excerpt,
        ) from exc
    except RecursionError as exc:
        raise FrontendError(f"{filename}: nesting too deep to parse",
                            location=SourceLocation(file=filename), cause=exc) from exc

    try:
        file = GoASTBuilder().visit(tree)
    except (VisitationError, RecursionError) as exc:
        raise FrontendError(f"could not build syntax tree: {exc}",
                            location=SourceLocation(file=filename), cause=exc) from exc

    bindings = resolve_file(file)
    logger.debug("parsed %s: %d declarations, %d comments, %d bindings",
                 filename, len(file.decls), len(comments), len(bindings))
    return SourceUnit(filename, text, file, bindings, comments, starts)


def parse_file(path: Union[str, Path]) -> SourceUnit:
    """Read and parse a ``.go`` file."""
    path = Path(path)
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise FrontendError(f"cannot read {path}: {exc.strerror or exc}",
                            location=SourceLocation(file=str(path)), cause=exc) from exc
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FrontendError(f"{path} is not valid UTF-8",
                            location=SourceLocation(file=str(path)), cause=exc) from exc
    return parse_source(text, str(path))


__all__ = ["SourceUnit", "GoASTBuilder", "parse_source", "parse_file"]
