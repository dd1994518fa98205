# tests/test_resolver.py
"""
Tests for the binding resolver (identifier → trusted declaration).
"""

from scancheck import goast as ast
from scancheck.ast_helper import Inspector
from scancheck.resolver import Assignment, DeclaredWithInitializer, resolve


def _last(unit, name):
    found = [node for node in Inspector(unit.file).preorder(ast.Ident)
             if node.name == name]
    return found[-1]


class TestResolve:

    def test_short_variable_declaration(self, go_source, unit_of):
        unit = unit_of(go_source("""
            s := bufio.NewScanner(r)
            _ = s
        """))
        decl = resolve(_last(unit, "s"), unit.bindings)
        assert isinstance(decl, Assignment)
        assert [t.name for t in decl.targets] == ["s"]
        assert isinstance(decl.values[0], ast.CallExpr)

    def test_var_with_initializer(self, go_source, unit_of):
        unit = unit_of(go_source("""
            var s = bufio.Scanner{}
            _ = s
        """))
        decl = resolve(_last(unit, "s"), unit.bindings)
        assert isinstance(decl, DeclaredWithInitializer)
        assert isinstance(decl.values[0], ast.CompositeLit)

    def test_declaring_occurrence_resolves_too(self, go_source, unit_of):
        unit = unit_of(go_source("s := bufio.NewScanner(r)"))
        decl = resolve(_last(unit, "s"), unit.bindings)
        assert isinstance(decl, Assignment)

    def test_reused_name_resolves_to_first_declaration(self, go_source, unit_of):
        unit = unit_of(go_source("""
            a, s := bufio.NewReader(r), bufio.NewScanner(r)
            b, s := bufio.NewReader(r), bufio.NewScanner(r)
            _, _, _ = a, b, s
        """))
        decl = resolve(_last(unit, "s"), unit.bindings)
        assert [t.name for t in decl.targets] == ["a", "s"]

    def test_var_without_initializer(self, go_source, unit_of):
        unit = unit_of(go_source("""
            var s *bufio.Scanner
            s = bufio.NewScanner(r)
            _ = s
        """))
        assert resolve(_last(unit, "s"), unit.bindings) is None

    def test_parameter(self, go_source, unit_of):
        unit = unit_of(go_source("_ = r"))
        assert resolve(_last(unit, "r"), unit.bindings) is None

    def test_range_variable(self, go_source, unit_of):
        unit = unit_of(go_source("""
            for _, s := range []int{1} {
                _ = s
            }
        """))
        assert resolve(_last(unit, "s"), unit.bindings) is None

    def test_constant(self, go_source, unit_of):
        unit = unit_of(go_source("""
            const s = 1
            _ = s
        """))
        assert resolve(_last(unit, "s"), unit.bindings) is None

    def test_package_qualifier(self, go_source, unit_of):
        unit = unit_of(go_source("_ = bufio.MaxScanTokenSize"))
        assert resolve(_last(unit, "bufio"), unit.bindings) is None

    def test_undeclared_identifier(self, go_source, unit_of):
        unit = unit_of(go_source("_ = missing"))
        assert resolve(_last(unit, "missing"), unit.bindings) is None
