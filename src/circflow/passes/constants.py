"""
Constant Handler

Rust Pattern: rustc_const_eval (compile-time known values)

Marks declarations whose value is known at compile time. A name is constant
when it is a scalar (no dimensions), is assigned at least once, and every
assignment to it is built only from number literals, other constant names
and operators. Input signals, components and template parameters are never
constant. The result is the least fixpoint, so a name that depends on itself
(`i = i + 1`) is never constant.
"""

import logging
from typing import Dict, List, Set

from ..shared.ast_visitor import StatementVisitor, ExpressionVisitor
from ..shared.nodes import (
    Declaration, Substitution, Number, Variable, InfixOp, PrefixOp,
    InlineSwitchOp, Call, AnonymousComp, ArrayInLine, TupleExpr,
)
from ..shared.program import ProgramArchive, TemplateData
from .base import BasePass, AnalysisCtxt

logger = logging.getLogger("circflow.passes.constants")


class _AssignmentCollector(StatementVisitor[None]):
    """Declarations and substitutions of one template body, by name"""

    def __init__(self):
        self.declarations: Dict[str, List[Declaration]] = {}
        self.substitutions: Dict[str, List[Substitution]] = {}

    def visit_declaration(self, node: Declaration) -> None:
        self.declarations.setdefault(node.name, []).append(node)

    def visit_substitution(self, node: Substitution) -> None:
        self.substitutions.setdefault(node.var, []).append(node)


class _ConstantExpression(ExpressionVisitor[bool]):
    """True when an expression only depends on literals and known constants"""

    def __init__(self, constants: Set[str]):
        self.constants = constants

    def visit_number(self, node: Number) -> bool:
        return True

    def visit_variable(self, node: Variable) -> bool:
        return not node.access and node.name in self.constants

    def visit_infix_op(self, node: InfixOp) -> bool:
        return node.lhe.accept(self) and node.rhe.accept(self)

    def visit_prefix_op(self, node: PrefixOp) -> bool:
        return node.rhe.accept(self)

    def visit_inline_switch_op(self, node: InlineSwitchOp) -> bool:
        return node.cond.accept(self) and node.if_true.accept(self) and node.if_false.accept(self)

    def visit_call(self, node: Call) -> bool:
        return False

    def visit_anonymous_comp(self, node: AnonymousComp) -> bool:
        return False

    def visit_array_inline(self, node: ArrayInLine) -> bool:
        return False

    def visit_tuple(self, node: TupleExpr) -> bool:
        return False


def _may_be_constant(declarations: List[Declaration], substitutions: List[Substitution]) -> bool:
    if not substitutions:
        return False
    for decl in declarations:
        xtype = decl.xtype
        if decl.dimensions or xtype.is_component:
            return False
        if xtype.is_input_signal:
            return False
    return all(not sub.access for sub in substitutions)


def handle_template_constants(template: TemplateData) -> Set[str]:
    """
    Set Declaration.is_constant for every declaration in `template`.

    Returns the names found to be constant. Running it again on the same
    template yields the same marks.
    """
    collector = _AssignmentCollector()
    template.get_body().accept(collector)

    candidates = {
        name for name, decls in collector.declarations.items()
        if name not in template.params
        and _may_be_constant(decls, collector.substitutions.get(name, []))
    }

    constants: Set[str] = set()
    changed = True
    while changed:
        changed = False
        checker = _ConstantExpression(constants)
        for name in sorted(candidates - constants):
            if all(sub.rhe.accept(checker) for sub in collector.substitutions[name]):
                constants.add(name)
                changed = True

    for name, decls in collector.declarations.items():
        for decl in decls:
            decl.is_constant = name in constants
    logger.debug(f"Constants in {template.name}: {sorted(constants)}")
    return constants


class ConstantHandlerPass(BasePass):
    """
    Marks compile-time constant declarations in every template.

    Results: template name -> set of constant names
    """
    requires = []

    def run(self, program: ProgramArchive, ctx: AnalysisCtxt) -> ProgramArchive:
        results = {
            name: handle_template_constants(template)
            for name, template in program.get_templates().items()
        }
        ctx.set_analysis(ConstantHandlerPass, results)
        return program
