"""
End-to-end tests: source text through the driver to diagnostics.
"""

import pytest

from circflow.analysis.lint import ReportCode
from circflow.passes.lint_pass import LintPass
from circflow.shared.errors import Severity


pytestmark = pytest.mark.integration


class TestAssignmentDiagnostics:
    """Unassigned and multiply assigned signals"""

    def test_unassigned_signal_is_an_error(self, driver):
        result = driver.analyze("""
        template T() {
            signal input a;
            signal mid;
            signal output out;
            out <== mid * a;
        }
        """, "unassigned.circom")
        assert result.has_errors()
        assert not result.success
        [lint] = result.lints_with_code(ReportCode.UNASSIGNED_SIGNAL)
        assert lint.error_msg == "Unassigned signal: `mid`"
        assert "error[L0301]: Unassigned signal: `mid`" in result.format_diagnostics(color=False)

    def test_conditional_assignment(self, driver):
        result = driver.analyze("""
        template T(n) {
            signal input a;
            signal mid;
            signal output out;
            if (n > 0) {
                mid <== a;
            }
            out <== mid;
        }
        """)
        assert len(result.lints_with_code(ReportCode.UNASSIGNED_SIGNAL)) == 1

    def test_assignment_on_both_branches(self, driver):
        result = driver.analyze("""
        template T(n) {
            signal input a;
            signal mid;
            signal output out;
            if (n > 0) {
                mid <== a;
            } else {
                mid <== a + 1;
            }
            out <== mid;
        }
        """)
        assert result.success
        assert result.lints == []

    def test_double_constraint_reported_once(self, driver):
        result = driver.analyze("""
        template T() {
            signal input a;
            signal output b;
            b <== a;
            b <== a + 1;
        }
        """)
        assert result.has_errors()
        assert len(result.lints_with_code(ReportCode.MULTIPLE_ASSIGNMENT)) == 1

    def test_constraint_inside_loop(self, driver):
        result = driver.analyze("""
        template T() {
            signal input a;
            signal output b;
            for (var i = 0; i < 3; i++) {
                b <== a;
            }
        }
        """)
        [lint] = result.lints_with_code(ReportCode.MULTIPLE_ASSIGNMENT)
        assert lint.error_msg == "Multiple assignments to signal: `b`"

    def test_array_signals_are_not_checked(self, driver):
        result = driver.analyze("""
        template T() {
            signal input a;
            signal out[2];
            for (var i = 0; i < 2; i++) {
                out[i] <== a * i;
            }
        }
        """)
        assert result.lints_with_code(ReportCode.MULTIPLE_ASSIGNMENT) == []
        assert result.lints_with_code(ReportCode.UNASSIGNED_SIGNAL) == []

    def test_same_name_in_two_templates(self, driver):
        result = driver.analyze("""
        template A() { signal input a; signal output b; b <== a; }
        template B() { signal input a; signal output b; b <== a; }
        """)
        assert result.success
        assert result.lints == []


class TestStyleDiagnostics:
    """Notes never fail the analysis"""

    def test_anonymous_component_note(self, driver):
        result = driver.analyze("""
        template A() {
            signal input x;
            signal output y;
            y <== x;
        }
        template T() {
            signal input a;
            signal output b;
            component c = A();
            c.x <== a;
            b <== c.y;
        }
        """)
        assert result.success
        [lint] = result.lints_with_code(ReportCode.ANONYMOUS_COMPONENT)
        assert "note[L0101]" in result.format_diagnostics(color=False)
        assert result.reporter.count(Severity.NOTE) == 1

    def test_included_templates_are_not_linted(self, driver):
        result = driver.analyze("""
        include "circomlib/poseidon.circom";
        template A() {
            signal input a;
            signal output b;
            component h = Poseidon(1);
            h.inputs[0] <== a;
            b <== h.out;
        }
        """)
        assert result.success
        assert result.lints_with_code(ReportCode.ANONYMOUS_COMPONENT) == []

    def test_constant_signal_note(self, driver):
        result = driver.analyze("""
        template T() {
            signal c;
            c <== 5;
        }
        """)
        assert result.success
        [lint] = result.lints_with_code(ReportCode.CONSTANT_SIGNAL)
        assert lint.error_msg == "Constant signal: `c`"


class TestLoopDiagnostics:
    """Loop termination through the driver"""

    def test_unsafe_loop_is_an_error(self, driver):
        result = driver.analyze("""
        template T() {
            var x = 0;
            for (var i = 0; i < 10; i--) {
                x = x + 1;
            }
        }
        """)
        assert result.has_errors()
        [lint] = result.lints_with_code(ReportCode.LOOP_MAY_OVERFLOW)
        assert "error[L0202]" in result.format_diagnostics(color=False)

    def test_safe_loop(self, driver):
        result = driver.analyze("""
        template T() {
            var x = 0;
            for (var i = 0; i < 10; i++) {
                x = x + i;
            }
        }
        """)
        assert result.success
        assert result.lints == []


class TestParseFailures:
    """Syntax errors become diagnostics"""

    def test_parse_error(self, driver):
        result = driver.analyze("template T() { signal input a }", "broken.circom")
        assert not result.success
        assert result.has_errors()
        assert result.program is None
        output = result.format_diagnostics(color=False)
        assert output.startswith("error[E0001]")
        assert "broken.circom:1:" in output

    def test_analyze_program_reuses_parsed_program(self, driver, parse_program):
        program = parse_program("template T() { signal output o; o <== 1; }")
        result = driver.analyze_program(program)
        assert result.program is program
        assert result.ctx.has_analysis(LintPass)
        assert result.lints_with_code(ReportCode.CONSTANT_SIGNAL)
