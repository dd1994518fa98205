# scancheck/grammar.py
"""
Go-subset PEG grammar (parsimonious) and lexical pre-pass.

Go's grammar is written with explicit semicolons that the lexer inserts at
line ends.  :func:`insert_semicolons` performs that rewrite up front,
replacing the triggering newline with ``;`` so that every offset in the
rewritten text still points at the same character of the original.  The
PEG grammar below then parses the rewritten text with ordinary whitespace
and comment skipping.

Header contexts
───────────────
``if``, ``for`` and ``switch`` headers use the ``*_nl`` ("no literal")
variants of the expression rules, which refuse composite literals whose
type is a bare type name.  This mirrors the Go rule that ``T{}`` must be
parenthesised in those positions; without it ``for x {`` would be read as
a composite literal.

Naming
──────
Rules that are nothing but a reference to another rule are folded into
the referenced rule by parsimonious, so every named rule here has some
structure of its own (a sequence, choice, quantifier or regex).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Tuple

from parsimonious.grammar import Grammar

GO_KEYWORDS = frozenset({
    "break", "case", "chan", "const", "continue", "default", "defer",
    "else", "fallthrough", "for", "func", "go", "goto", "if", "import",
    "interface", "map", "package", "range", "return", "select", "struct",
    "switch", "type", "var",
})

# Keywords after which a newline ends the statement.
_TERMINATING_KEYWORDS = frozenset({"break", "continue", "fallthrough", "return"})
_TERMINATING_OPS = frozenset({")", "]", "}", "++", "--"})


# ═══════════════════════════════════════════════════════════════════════════
#  PART 1 — LEXICAL PRE-PASS (automatic semicolons)
# ═══════════════════════════════════════════════════════════════════════════

_TOKEN_RE = re.compile(r"""
    (?P<nl>\n)
  | (?P<ws>[ \t\r\f\v]+)
  | (?P<line_comment>//[^\n]*)
  | (?P<block_comment>/\*[\s\S]*?\*/)
  | (?P<raw_string>`[^`]*`)
  | (?P<string>"(?:[^"\\\n]|\\.)*")
  | (?P<rune>'(?:[^'\\\n]|\\.)*')
  | (?P<number>\.?[0-9](?:[eEpP][+-]|[0-9a-zA-Z_.])*)
  | (?P<ident>[^\W\d]\w*)
  | (?P<op>\+\+|--|\.\.\.|[\s\S])
""", re.VERBOSE)


@dataclass(frozen=True)
class Comment:
    """A comment as it appears in the original source."""
    pos: int
    end: int
    text: str

    @property
    def is_line(self) -> bool:
        return self.text.startswith("//")

    @property
    def body(self) -> str:
        if self.is_line:
            return self.text[2:]
        return self.text[2:-2]


def _blank(text: str) -> str:
    return "".join(c if c == "\n" else " " for c in text)


def insert_semicolons(text: str) -> Tuple[str, List[Comment]]:
    """
    Apply Go's automatic semicolon rule.

    A newline that follows an identifier, a literal, one of the keywords
    ``break``/``continue``/``fallthrough``/``return``, or one of
    ``) ] } ++ --`` becomes ``;``.  A block comment spanning lines after
    such a token counts as a newline and its first character becomes ``;``.

    Comments are blanked to spaces (newlines kept) in the rewritten text,
    so an inserted ``;`` can never end up inside one.

    Returns the rewritten text (same length as *text*) and the comments
    found along the way.
    """
    out: List[str] = []
    comments: List[Comment] = []
    pending = False
    for m in _TOKEN_RE.finditer(text):
        kind = m.lastgroup
        tok = m.group()
        if kind == "nl":
            out.append(";" if pending else tok)
            pending = False
        elif kind == "ws":
            out.append(tok)
        elif kind == "line_comment":
            comments.append(Comment(m.start(), m.end(), tok))
            out.append(_blank(tok))
        elif kind == "block_comment":
            comments.append(Comment(m.start(), m.end(), tok))
            if pending and "\n" in tok:
                out.append(";" + _blank(tok[1:]))
                pending = False
            else:
                out.append(_blank(tok))
        else:
            out.append(tok)
            if kind == "ident":
                pending = tok not in GO_KEYWORDS or tok in _TERMINATING_KEYWORDS
            elif kind == "op":
                pending = tok in _TERMINATING_OPS
            else:
                pending = True
    return "".join(out), comments


# ═══════════════════════════════════════════════════════════════════════════
#  PART 2 — GRAMMAR
# ═══════════════════════════════════════════════════════════════════════════

GO_GRAMMAR = Grammar(r'''
    # ─────────────────────────────────────────────────────────────
    # Source file
    # ─────────────────────────────────────────────────────────────

    source_file        = _ kw_package _ identifier _ ";" _ import_decls top_level_decls eof
    import_decls       = (import_decl _ ";" _)*
    top_level_decls    = (top_level_decl? _ ";" _)* (top_level_decl _)?
    top_level_decl     = func_decl / declaration

    import_decl        = kw_import _ import_body
    import_body        = import_group / import_spec
    import_group       = "(" _ (import_spec _ ";" _)* (import_spec _)? ")"
    import_spec        = (import_name _)? string_lit
    import_name        = ~r"\.|[^\W\d]\w*"

    # ─────────────────────────────────────────────────────────────
    # Declarations
    # ─────────────────────────────────────────────────────────────

    declaration        = const_decl / var_decl / type_decl
    const_decl         = kw_const _ value_body
    var_decl           = kw_var _ value_body
    value_body         = value_group / value_spec
    value_group        = "(" _ (value_spec _ ";" _)* (value_spec _)? ")"
    value_spec         = identifier_list (_ type)? (_ "=" _ expression_list)?

    type_decl          = kw_type _ type_body
    type_body          = type_group / type_spec
    type_group         = "(" _ (type_spec _ ";" _)* (type_spec _)? ")"
    type_spec          = identifier _ (type_params _)? ("=" _)? type

    func_decl          = kw_func _ (parameters _)? identifier _ (type_params _)? signature (_ block)?

    type_params        = "[" _ type_param_decl (_ "," _ type_param_decl)* (_ ",")? _ "]"
    type_param_decl    = identifier_list _ type_constraint
    type_constraint    = constraint_term (_ "|" _ constraint_term)*
    constraint_term    = ("~" _)? type

    signature          = parameters (_ result)?
    result             = parameters / type
    parameters         = "(" _ (parameter_list _ ("," _)?)? ")"
    parameter_list     = named_params / anon_params
    named_params       = param_group (_ "," _ param_group)*
    param_group        = identifier_list _ "..."? _ type
    anon_params        = param_type (_ "," _ param_type)*
    param_type         = ("..." _)? type

    identifier_list    = identifier (_ "," _ identifier)*

    # ─────────────────────────────────────────────────────────────
    # Types
    # ─────────────────────────────────────────────────────────────

    type               = type_lit / paren_type / type_name_generic
    paren_type         = "(" _ type _ ")"
    type_name_generic  = type_name (_ type_args)?
    type_name          = identifier (_ "." _ identifier)?
    type_args          = "[" _ type (_ "," _ type)* (_ ",")? _ "]"

    type_lit           = slice_type / array_type / struct_type / pointer_type
                       / func_type / interface_type / map_type / chan_type
    slice_type         = "[" _ "]" _ type
    array_type         = "[" _ array_len _ "]" _ type
    array_len          = "..." / expression
    pointer_type       = "*" _ type
    func_type          = kw_func _ signature
    map_type           = kw_map _ "[" _ type _ "]" _ type
    chan_type          = chan_prefix _ type
    chan_prefix        = ~r"chan\s*<-|<-\s*chan\b|chan\b"

    struct_type        = kw_struct _ "{" _ (field_decl _ ";" _)* (field_decl _)? "}"
    field_decl         = field_body (_ string_lit)?
    field_body         = named_field / embedded_field
    named_field        = identifier_list _ type
    embedded_field     = ("*" _)? type_name_generic

    interface_type     = kw_interface _ "{" _ (interface_elem _ ";" _)* (interface_elem _)? "}"
    interface_elem     = method_elem / type_constraint
    method_elem        = identifier _ signature

    # ─────────────────────────────────────────────────────────────
    # Statements
    # ─────────────────────────────────────────────────────────────

    block              = "{" _ statement_list "}"
    statement_list     = (statement? _ ";" _)* (statement _)?
    statement          = declaration / labeled_stmt / go_stmt / defer_stmt
                       / return_stmt / break_stmt / continue_stmt / goto_stmt
                       / fallthrough_stmt / block / if_stmt / switch_stmt
                       / select_stmt / for_stmt / simple_stmt

    labeled_stmt       = identifier _ ~r":(?!=)" _ statement?
    go_stmt            = kw_go _ expression
    defer_stmt         = kw_defer _ expression
    return_stmt        = kw_return (_ expression_list)?
    break_stmt         = kw_break (_ identifier)?
    continue_stmt      = kw_continue (_ identifier)?
    goto_stmt          = kw_goto _ identifier
    fallthrough_stmt   = ~r"fallthrough\b"

    simple_stmt        = short_var_decl / assignment / inc_dec_stmt / send_stmt / expression
    short_var_decl     = identifier_list _ ":=" _ expression_list
    assignment         = expression_list _ assign_op _ expression_list
    inc_dec_stmt       = expression _ inc_dec_op
    send_stmt          = expression _ "<-" _ expression

    if_stmt            = kw_if _ (simple_stmt_nl _ ";" _)? expression_nl _ block (_ kw_else _ else_branch)?
    else_branch        = if_stmt / block

    for_stmt           = kw_for _ (for_header _)? block
    for_header         = for_clause / range_clause / expression_nl
    for_clause         = (simple_stmt_nl _)? ";" _ (expression_nl _)? ";" _ simple_stmt_nl?
    range_clause       = (range_lhs _)? kw_range _ expression_nl
    range_lhs          = expression_list_nl _ range_assign
    range_assign       = ~r":=|=(?!=)"

    switch_stmt        = kw_switch _ (simple_stmt_nl _ ";" _)? (switch_guard _)? "{" _ (case_clause _)* "}"
    switch_guard       = type_switch_guard / expression_nl
    type_switch_guard  = (identifier _ ":=" _)? primary_expr_nl _ "." _ "(" _ kw_type _ ")"
    case_clause        = case_head _ ":" _ statement_list
    case_head          = case_list_head / kw_default
    case_list_head     = kw_case _ expression_list

    select_stmt        = kw_select _ "{" _ (comm_clause _)* "}"
    comm_clause        = comm_head _ ":" _ statement_list
    comm_head          = comm_case_head / kw_default
    comm_case_head     = kw_case _ simple_stmt

    # Header ("no literal") variants.
    simple_stmt_nl     = short_var_decl_nl / assignment_nl / inc_dec_stmt_nl / send_stmt_nl / expression_nl
    short_var_decl_nl  = identifier_list _ ":=" _ expression_list_nl
    assignment_nl      = expression_list_nl _ assign_op _ expression_list_nl
    inc_dec_stmt_nl    = expression_nl _ inc_dec_op
    send_stmt_nl       = expression_nl _ "<-" _ expression_nl

    # ─────────────────────────────────────────────────────────────
    # Expressions
    # ─────────────────────────────────────────────────────────────

    expression_list    = expression (_ "," _ expression)*
    expression         = unary_expr (_ binary_op _ unary_expr)*
    unary_expr         = prefixed_expr / primary_expr
    prefixed_expr      = unary_op _ unary_expr
    primary_expr       = operand (_ suffix)*
    operand            = basic_lit / composite_lit / func_lit / paren_expr
                       / operand_type_lit / identifier

    expression_list_nl = expression_nl (_ "," _ expression_nl)*
    expression_nl      = unary_expr_nl (_ binary_op _ unary_expr_nl)*
    unary_expr_nl      = prefixed_expr_nl / primary_expr_nl
    prefixed_expr_nl   = unary_op _ unary_expr_nl
    primary_expr_nl    = operand_nl (_ suffix)*
    operand_nl         = basic_lit / composite_lit_nl / func_lit / paren_expr
                       / operand_type_lit / identifier

    operand_type_lit   = slice_type / array_type / map_type / chan_type
                       / func_type / struct_type / interface_type

    composite_lit      = literal_type _ literal_value
    literal_type       = struct_type / slice_type / array_type / map_type / type_name_generic
    composite_lit_nl   = literal_type_nl _ literal_value
    literal_type_nl    = struct_type / slice_type / array_type / map_type
    literal_value      = "{" _ (element_list _ ("," _)?)? "}"
    element_list       = keyed_element (_ "," _ keyed_element)*
    keyed_element      = (element _ ":" _)? element
    element            = expression / literal_value

    func_lit           = func_type _ block
    paren_expr         = "(" _ expression _ ")"

    suffix             = selector / type_assertion / index_suffix / call_suffix
    selector           = "." _ identifier
    type_assertion     = "." _ "(" _ type _ ")"
    index_suffix       = "[" _ index_body _ "]"
    index_body         = slice_body / index_list
    slice_body         = (expression _)? ":" _ (expression _)? (":" _ expression _)?
    index_list         = expression (_ "," _ expression)* (_ ",")?
    call_suffix        = "(" _ (call_args _)? ")"
    call_args          = expression (_ "," _ expression)* (_ "...")? (_ ",")?

    # ─────────────────────────────────────────────────────────────
    # Lexical
    # ─────────────────────────────────────────────────────────────

    basic_lit          = number_lit / string_lit / rune_lit
    number_lit         = ~r"(?:0[xX][0-9a-fA-F_]*\.?[0-9a-fA-F_]*(?:[pP][+-]?[0-9_]+)?|0[bB][01_]+|0[oO][0-7_]+|(?:[0-9][0-9_]*\.?[0-9_]*|\.[0-9][0-9_]*)(?:[eE][+-]?[0-9_]+)?)i?"
    string_lit         = ~r'"(?:[^"\\\n]|\\.)*"|`[^`]*`'
    rune_lit           = ~r"'(?:[^'\\\n]|\\.)*'"

    binary_op          = ~r"\|\||&&|==|!=|<=|>=|<<|>>|&\^|<(?!-)|>|[+\-*/%&|^]"
    unary_op           = ~r"<-|[+\-!^*&]"
    assign_op          = ~r"(?:<<|>>|&\^|[+\-*/%&|^])?=(?!=)"
    inc_dec_op         = ~r"\+\+|--"

    identifier         = ~r"(?!(?:break|case|chan|const|continue|default|defer|else|fallthrough|for|func|goto|go|if|import|interface|map|package|range|return|select|struct|switch|type|var)\b)[^\W\d]\w*"

    kw_package         = ~r"package\b"
    kw_import          = ~r"import\b"
    kw_func            = ~r"func\b"
    kw_var             = ~r"var\b"
    kw_const           = ~r"const\b"
    kw_type            = ~r"type\b"
    kw_struct          = ~r"struct\b"
    kw_interface       = ~r"interface\b"
    kw_map             = ~r"map\b"
    kw_go              = ~r"go\b"
    kw_defer           = ~r"defer\b"
    kw_return          = ~r"return\b"
    kw_break           = ~r"break\b"
    kw_continue        = ~r"continue\b"
    kw_goto            = ~r"goto\b"
    kw_if              = ~r"if\b"
    kw_else            = ~r"else\b"
    kw_for             = ~r"for\b"
    kw_range           = ~r"range\b"
    kw_switch          = ~r"switch\b"
    kw_case            = ~r"case\b"
    kw_default         = ~r"default\b"
    kw_select          = ~r"select\b"

    _                  = ~r"(?:[ \t\r\n\f\v]+|//[^\n]*|/\*[\s\S]*?\*/)*"
    eof                = !~r"[\s\S]"
''')


__all__ = ["GO_GRAMMAR", "GO_KEYWORDS", "Comment", "insert_semicolons"]
