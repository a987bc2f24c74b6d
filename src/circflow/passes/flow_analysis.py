"""
Flow Analysis Pass

Rust Pattern: rustc_borrowck (MIR-based initialization checks)

Drives the path analyses over every template:
1. every scalar intermediate/output signal read by a statement must be
   assigned exactly once on all paths reaching that statement
2. every substitution to a scalar signal must be the only one on all paths
   reaching it
3. constraint assignments (`<==`, `==>`) are fed to the PathAnalyser, which
   also catches a constraint assignment repeated by a loop
"""

import logging
from typing import Dict, List, Set, Tuple

from ..analysis.lint import Lint, report_lints
from ..analysis.path_analysis import (
    PathAnalyser, PathAnalysisErr, lint_all_paths_to_signal, check_double_assignment, path_lint,
)
from ..shared.ast_visitor import StatementVisitor, ExpressionVisitor
from ..shared.nodes import (
    Statement, Expression, Declaration, Substitution, MultSubstitution, UnderscoreSubstitution,
    ConstraintEquality, LogCall, Assert, Return, IfThenElse, While, Number, Variable,
    ArrayAccess, AssignOp,
)
from ..shared.program import ProgramArchive, TemplateData
from .base import BasePass, AnalysisCtxt

logger = logging.getLogger("circflow.passes.flow_analysis")


class _VariableReads(ExpressionVisitor[None]):
    """Every Variable read by an expression, index expressions included"""

    def __init__(self):
        self.reads: List[Variable] = []

    def visit_number(self, node: Number) -> None:
        pass

    def visit_variable(self, node: Variable) -> None:
        self.reads.append(node)
        self.visit_access_indices(node)


class _StatementReads(StatementVisitor[None]):
    """
    Collects (statement, variables read) for every statement of a body.

    Conditions are attributed to their IfThenElse / While statement.
    """

    def __init__(self):
        self.reads: List[Tuple[Statement, List[Variable]]] = []
        self.declarations: Dict[str, Declaration] = {}
        self.substitutions: List[Substitution] = []

    def _record(self, stmt: Statement, *exprs: Expression) -> None:
        visitor = _VariableReads()
        for expr in exprs:
            expr.accept(visitor)
        if visitor.reads:
            self.reads.append((stmt, visitor.reads))

    def visit_declaration(self, node: Declaration) -> None:
        self.declarations.setdefault(node.name, node)

    def visit_substitution(self, node: Substitution) -> None:
        self.substitutions.append(node)
        indices = [acc.index for acc in node.access if isinstance(acc, ArrayAccess)]
        self._record(node, node.rhe, *indices)

    def visit_mult_substitution(self, node: MultSubstitution) -> None:
        self._record(node, node.rhe)

    def visit_underscore_substitution(self, node: UnderscoreSubstitution) -> None:
        self._record(node, node.rhe)

    def visit_constraint_equality(self, node: ConstraintEquality) -> None:
        self._record(node, node.lhe, node.rhe)

    def visit_log_call(self, node: LogCall) -> None:
        self._record(node, *[arg for arg in node.args if isinstance(arg, Expression)])

    def visit_assert(self, node: Assert) -> None:
        self._record(node, node.arg)

    def visit_return(self, node: Return) -> None:
        self._record(node, node.value)

    def visit_if_then_else(self, node: IfThenElse) -> None:
        self._record(node, node.cond)
        super().visit_if_then_else(node)

    def visit_while(self, node: While) -> None:
        self._record(node, node.cond)
        super().visit_while(node)


def _is_checked_signal(decl: Declaration) -> bool:
    """Scalar intermediate or output signal"""
    return (decl.xtype.is_signal
            and not decl.xtype.is_input_signal
            and not decl.dimensions)


class FlowAnalysisPass(BasePass):
    """
    Path-sensitive assignment checks.

    Results: List[Lint], at most one per (code, location, name)
    """
    requires = []

    def run(self, program: ProgramArchive, ctx: AnalysisCtxt) -> ProgramArchive:
        analyser = PathAnalyser(program)
        lints: List[Lint] = []
        seen: Set[Tuple[str, int, int, str]] = set()

        def add(lint) -> None:
            key = (lint.error_code.value, lint.loc.start, lint.loc.end, lint.name)
            if key not in seen:
                seen.add(key)
                lints.append(lint)

        for name, template in program.get_templates().items():
            logger.debug(f"Flow analysis of template {name}")
            for lint in self.analyse_template(program, template, analyser):
                add(lint)

        report_lints(program, lints, ctx.reporter)
        ctx.set_analysis(FlowAnalysisPass, lints)
        return program

    def analyse_template(self, program: ProgramArchive, template: TemplateData,
                         analyser: PathAnalyser) -> List[Lint]:
        collector = _StatementReads()
        template.get_body().accept(collector)
        signals = {
            name: decl for name, decl in collector.declarations.items()
            if _is_checked_signal(decl)
        }
        lints: List[Lint] = []

        checked: Set[Tuple[str, int]] = set()
        for stmt, reads in collector.reads:
            for variable in reads:
                if variable.name not in signals or variable.access:
                    continue
                key = (variable.name, stmt.meta.elem_id)
                if key in checked:
                    continue
                checked.add(key)
                lint = lint_all_paths_to_signal(program, template.name, variable.name, variable.meta)
                if lint is not None:
                    lints.append(lint)

        for sub in collector.substitutions:
            decl = signals.get(sub.var)
            if decl is None or sub.access:
                continue
            if not check_double_assignment(program, template.name, sub.meta):
                lints.append(path_lint(
                    sub.var, PathAnalysisErr.MULTIPLE_ASSIGNMENT, decl.xtype, sub.meta.location,
                    f"Signal {sub.var} was already assigned a value and multiple assignments are not allowed.",
                ))
            if sub.op == AssignOp.ASSIGN_CONSTRAINT_SIGNAL:
                lint = analyser.constraint_signal_assignment(template.name, sub.meta, sub.var)
                if lint is None and self._inside_loop(analyser, template.name, sub):
                    # the next iteration assigns it again
                    lint = analyser.constraint_signal_assignment(template.name, sub.meta, sub.var)
                if lint is not None:
                    lints.append(lint)
        return lints

    def _inside_loop(self, analyser: PathAnalyser, template_name: str, stmt: Statement) -> bool:
        graph = analyser.flowgraph(template_name)
        node = graph.find_by_elem_id(stmt.meta.elem_id)
        return any(graph.has_path(succ, node) for succ in graph.successors(node))
