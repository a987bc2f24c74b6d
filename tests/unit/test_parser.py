"""
Tests for the lark frontend: parse tree to statement tree lowering.
"""

import pytest

from circflow.frontend.parser import Parser, ParseError
from circflow.shared.nodes import (
    AssignOp, Block, Call, ComponentAccess, ArrayAccess, Declaration, ExpressionInfixOpcode,
    IfThenElse, InfixOp, InitializationBlock, InlineSwitchOp, AnonymousComp, MultSubstitution,
    Number, PrefixOp, SignalType, Substitution, UnderscoreSubstitution, Variable, While,
)
from tests.test_utils import statements_of


def _body(program, name="T"):
    return program.get_template_data(name).get_body()


class TestProgramStructure:
    """Top-level items"""

    def test_templates_functions_and_main(self, parse_program):
        program = parse_program("""
        pragma circom 2.1.6;
        include "circomlib/poseidon.circom";

        function square(x) {
            return x * x;
        }

        template Multiplier(n) {
            signal input a;
            signal output b;
            b <== a * n;
        }

        component main {public [a]} = Multiplier(3);
        """)
        assert list(program.get_templates()) == ["Multiplier"]
        assert program.contains_template("Multiplier")
        assert program.get_template_data("Multiplier").params == ["n"]
        assert "square" in program.functions
        assert isinstance(program.main_component, Call)
        assert program.public_inputs == ["a"]

    def test_template_order_is_preserved(self, parse_program):
        program = parse_program("""
        template B() { }
        template A() { }
        template C() { }
        """)
        assert list(program.get_templates()) == ["B", "A", "C"]

    def test_declared_inputs_and_outputs(self, parse_program):
        program = parse_program("""
        template T() {
            signal input x;
            signal output o1;
            signal input y[2][3];
            signal mid;
            signal output o2[4];
        }
        """)
        data = program.get_template_data("T")
        assert data.get_declaration_inputs() == [("x", 0), ("y", 2)]
        assert data.get_declaration_outputs() == [("o1", 0), ("o2", 1)]

    def test_template_modifiers_and_tags(self, parse_program):
        program = parse_program("""
        template parallel T() {
            signal input {binary} a;
            signal output {binary} b;
            b <== a;
        }
        """)
        assert program.get_template_data("T").get_declaration_inputs() == [("a", 0)]

    def test_comments_are_ignored(self, parse_program):
        program = parse_program("""
        // line comment
        template T() {
            /* block
               comment */
            signal input a; // trailing
        }
        """)
        assert len(statements_of(program, "T")) == 1


class TestDeclarations:
    """Declaration lowering"""

    def test_signal_kinds(self, parse_program):
        program = parse_program("""
        template T() {
            signal input a;
            signal output b;
            signal c;
            var v;
            component k;
        }
        """)
        decls = statements_of(program, "T")
        assert [d.xtype.signal_type for d in decls[:3]] == [SignalType.INPUT, SignalType.OUTPUT, SignalType.INTERMEDIATE]
        assert decls[3].xtype.is_var
        assert decls[4].xtype.is_component

    def test_every_declaration_is_an_initialization_block(self, parse_program):
        program = parse_program("template T() { var v; signal s <== 1; }")
        body = _body(program)
        assert all(isinstance(stmt, InitializationBlock) for stmt in body.stmts)
        decl, init = body.stmts[1].initializations
        assert isinstance(decl, Declaration)
        assert isinstance(init, Substitution)
        assert init.op == AssignOp.ASSIGN_CONSTRAINT_SIGNAL

    def test_dimensions(self, parse_program):
        program = parse_program("template T(n) { signal input x[n][2]; }")
        [decl] = statements_of(program, "T")
        assert len(decl.dimensions) == 2
        assert isinstance(decl.dimensions[1], Number)
        assert program.print_meta(decl.meta) == "signal input x[n][2]"

    def test_component_inference(self, parse_program):
        program = parse_program("""
        template A() { signal input x; }
        template T() {
            component a = A();
            component b[2];
            b[0] = A();
            component c = B();
            component d = Later();
        }
        template Later() { signal input y; }
        """)
        decls = {s.name: s for s in statements_of(program, "T") if isinstance(s, Declaration)}
        assert decls["a"].meta.component_inference == "A"
        assert decls["b"].meta.component_inference == "A"
        # B is not defined in this file (e.g. it comes from an include)
        assert decls["c"].meta.component_inference is None
        assert decls["d"].meta.component_inference == "Later"

    def test_elem_ids_are_unique(self, parse_program):
        program = parse_program("""
        template T() {
            var x = 0;
            for (var i = 0; i < 2; i++) { x += i; }
        }
        """)
        ids = [s.meta.elem_id for s in statements_of(program, "T")]
        assert len(ids) == len(set(ids))


class TestStatements:
    """Statement lowering and desugaring"""

    def test_assignment_operators(self, parse_program):
        program = parse_program("""
        template T() {
            signal input a;
            signal b;
            signal c;
            var v;
            b <-- a;
            c <== a;
            v = 1;
            a ==> c;
            a --> b;
        }
        """)
        subs = [s for s in statements_of(program, "T") if isinstance(s, Substitution)]
        assert [(s.var, s.op) for s in subs] == [
            ("b", AssignOp.ASSIGN_SIGNAL),
            ("c", AssignOp.ASSIGN_CONSTRAINT_SIGNAL),
            ("v", AssignOp.ASSIGN_VAR),
            ("c", AssignOp.ASSIGN_CONSTRAINT_SIGNAL),
            ("b", AssignOp.ASSIGN_SIGNAL),
        ]

    def test_access_paths(self, parse_program):
        program = parse_program("template T() { component c[2]; c[1].x <== 3; }")
        sub = [s for s in statements_of(program, "T") if isinstance(s, Substitution)][0]
        assert sub.var == "c"
        assert isinstance(sub.access[0], ArrayAccess)
        assert isinstance(sub.access[1], ComponentAccess) and sub.access[1].name == "x"

    def test_grammar_builds_without_cache(self, tmp_path):
        fresh = Parser(cache_file=str(tmp_path / "grammar.cache"))
        program = fresh.parse("template T() { signal output o; o <== c.out[1].y[0]; }")
        sub = [s for s in statements_of(program, "T") if isinstance(s, Substitution)][0]
        assert isinstance(sub.rhe, Variable) and sub.rhe.name == "c"
        assert [type(acc) for acc in sub.rhe.access] == [
            ComponentAccess, ArrayAccess, ComponentAccess, ArrayAccess,
        ]
        assert sub.rhe.access[2].name == "y"

    @pytest.mark.parametrize("source,opcode,operand", [
        ("x += 2;", ExpressionInfixOpcode.ADD, 2),
        ("x -= 3;", ExpressionInfixOpcode.SUB, 3),
        ("x *= 4;", ExpressionInfixOpcode.MUL, 4),
        ("x <<= 1;", ExpressionInfixOpcode.SHIFT_L, 1),
        ("x++;", ExpressionInfixOpcode.ADD, 1),
        ("x--;", ExpressionInfixOpcode.SUB, 1),
    ])
    def test_update_desugaring(self, parse_program, source, opcode, operand):
        program = parse_program(f"template T() {{ var x = 1; {source} }}")
        sub = _body(program).stmts[-1]
        assert isinstance(sub, Substitution)
        assert sub.op == AssignOp.ASSIGN_VAR
        assert isinstance(sub.rhe, InfixOp)
        assert sub.rhe.infix_op == opcode
        assert isinstance(sub.rhe.lhe, Variable) and sub.rhe.lhe.name == "x"
        assert sub.rhe.rhe.value == operand

    def test_for_desugaring(self, parse_program):
        program = parse_program("template T() { var s = 0; for (var i = 0; i < 3; i++) { s += i; } }")
        loop_block = _body(program).stmts[-1]
        assert isinstance(loop_block, Block)
        init, loop = loop_block.stmts
        assert isinstance(init, InitializationBlock)
        assert isinstance(loop, While)
        assert isinstance(loop.stmt, Block)
        body, step = loop.stmt.stmts
        assert isinstance(body, Block)
        assert program.print_meta(step.meta) == "i++"

    def test_dangling_else_binds_innermost(self, parse_program):
        program = parse_program("""
        template T() {
            var x;
            if (1 == 1) if (2 == 2) x = 1; else x = 2;
        }
        """)
        outer = _body(program).stmts[-1]
        assert isinstance(outer, IfThenElse)
        assert outer.else_case is None
        assert isinstance(outer.if_case, IfThenElse)
        assert outer.if_case.else_case is not None

    def test_multi_and_underscore_substitution(self, parse_program):
        program = parse_program("""
        template A() { signal input x; signal output y; signal output z; y <== x; z <== x; }
        template T() {
            signal input a;
            signal p;
            (p, _) <== A()(a);
            _ <== A()(a);
        }
        """)
        multi, under = _body(program).stmts[-2:]
        assert isinstance(multi, MultSubstitution)
        assert [v.name for v in multi.lhe.values] == ["p", "_"]
        assert isinstance(multi.rhe, AnonymousComp)
        assert isinstance(under, UnderscoreSubstitution)


class TestExpressions:
    """Precedence and literal text"""

    def _rhe(self, parse_program, expr: str):
        program = parse_program(f"template T(n) {{ var x = {expr}; }}")
        init = _body(program).stmts[0].initializations[1]
        return program, init.rhe

    def test_precedence(self, parse_program):
        _, rhe = self._rhe(parse_program, "1 + 2 * 3")
        assert rhe.infix_op == ExpressionInfixOpcode.ADD
        assert rhe.rhe.infix_op == ExpressionInfixOpcode.MUL

    def test_power_is_right_associative(self, parse_program):
        _, rhe = self._rhe(parse_program, "2 ** 3 ** 2")
        assert rhe.infix_op == ExpressionInfixOpcode.POW
        assert isinstance(rhe.lhe, Number)
        assert rhe.rhe.infix_op == ExpressionInfixOpcode.POW

    def test_ternary_and_prefix(self, parse_program):
        _, rhe = self._rhe(parse_program, "n > 0 ? -n : ~n")
        assert isinstance(rhe, InlineSwitchOp)
        assert isinstance(rhe.if_true, PrefixOp)
        assert isinstance(rhe.if_false, PrefixOp)

    def test_hex_numbers(self, parse_program):
        _, rhe = self._rhe(parse_program, "0xff")
        assert rhe.value == 255

    def test_literal_source_text(self, parse_program):
        program, rhe = self._rhe(parse_program, "(n + 1) * 2  \\  3")
        assert program.print_expr(rhe) == "(n + 1) * 2  \\  3"
        assert rhe.infix_op == ExpressionInfixOpcode.INT_DIV


class TestParseErrors:
    """Syntax errors surface as ParseError"""

    def test_unexpected_token(self, parse_program):
        with pytest.raises(ParseError) as excinfo:
            parse_program("template T() { signal input a }", "bad.circom")
        error = excinfo.value
        assert error.error_code == "E0001"
        assert error.source_file == "bad.circom"
        assert error.location is not None
        assert error.location.line == 1

    def test_unterminated_template(self, parse_program):
        with pytest.raises(ParseError):
            parse_program("template T() {")

    def test_error_location_line(self, parse_program):
        with pytest.raises(ParseError) as excinfo:
            parse_program("template T() {\n    var x = ;\n}")
        assert excinfo.value.location.line == 2
