"""
Loop Termination Analysis

Rust Pattern: rustc_lint late lint over loops

Recognizes the canonical for-loop shape

    var i = <init>; while (i < <bound>) { ...; <step> }

(what `for (var i = <init>; i < <bound>; <step>)` lowers to) and checks, per
path through the loop body, whether the counter moves towards the bound.
Field arithmetic wraps around: a counter that decreases past zero becomes a
value near the field modulus instead of a negative number.
"""

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Set, Tuple

from ..shared.nodes import (
    Statement, Expression, Meta, Declaration, Substitution, Block, InitializationBlock,
    While, InfixOp, Variable, Number, ExpressionInfixOpcode, VariableType, AssignOp,
)
from ..shared.program import ProgramArchive
from ..shared.source_location import generate_file_location
from ..utils.config import FIELD_ARITHMETIC_DOCS_URL
from .cfg import build_statement_flowgraph, all_simple_paths, assignments_to
from .lint import AstVisitor, Lint, LintLevel, ReportCode

logger = logging.getLogger("circflow.analysis.termination")


@dataclass
class ForLoop:
    """A recognized loop: counter starts at init and runs while counter < bound"""
    counter: str
    init: int
    bound: int
    cond: Expression
    loop_body: Block

    def describe(self, program: ProgramArchive) -> str:
        return (f"counter: {self.counter} init: {self.init} "
                f"cond: {program.print_expr(self.cond)} bound: {self.bound}")


class Monotonicity(Enum):
    INCREASING = "increasing"
    DECREASING = "decreasing"
    CONSTANT = "constant"


def _number(expr: Expression) -> Optional[int]:
    return expr.value if isinstance(expr, Number) else None


def _is_counter(expr: Expression, counter: str) -> bool:
    return isinstance(expr, Variable) and expr.name == counter


def is_for_loop(program: ProgramArchive, statements: List[Statement]) -> Optional[ForLoop]:
    """
    Match [InitializationBlock(Declaration c, Substitution c = N),
    While(c < M, Block(non-empty))] exactly; anything else is None.
    """
    if len(statements) != 2:
        return None
    init_block, loop = statements
    if not isinstance(init_block, InitializationBlock) or not isinstance(loop, While):
        return None
    if not isinstance(loop.stmt, Block) or not loop.stmt.stmts:
        return None

    initializations = init_block.initializations
    if len(initializations) != 2:
        return None
    decl, init = initializations
    if not isinstance(decl, Declaration) or not isinstance(init, Substitution):
        return None
    counter = init.var
    if decl.name != counter:
        return None
    init_value = _number(init.rhe)
    if init_value is None:
        return None

    cond = loop.cond
    if not isinstance(cond, InfixOp) or cond.infix_op != ExpressionInfixOpcode.LESSER:
        return None
    if not _is_counter(cond.lhe, counter):
        return None
    bound = _number(cond.rhe)
    if bound is None:
        return None

    return ForLoop(counter=counter, init=init_value, bound=bound, cond=cond, loop_body=loop.stmt)


class TerminationAnalyser:
    """Classifies every path through a recognized loop body"""

    def __init__(self, for_loop: Optional[ForLoop]):
        self.for_loop = for_loop

    def eval_step(self, counter: str, step: Statement) -> Optional[int]:
        """
        Delta of `counter = counter + k` (k) or `counter = counter - k` (-k).

        None for any other shape.
        """
        if not isinstance(step, Substitution):
            return None
        rhe = step.rhe
        if not isinstance(rhe, InfixOp) or not _is_counter(rhe.lhe, counter):
            return None
        value = _number(rhe.rhe)
        if value is None:
            return None
        if rhe.infix_op == ExpressionInfixOpcode.ADD:
            return value
        if rhe.infix_op == ExpressionInfixOpcode.SUB:
            return -value
        return None

    def analyse_monotonicity(self, incr: int) -> Monotonicity:
        if incr > 0:
            return Monotonicity.INCREASING
        if incr < 0:
            return Monotonicity.DECREASING
        return Monotonicity.CONSTANT

    def analyse_termination(self, for_loop: ForLoop,
                            steps: List[Substitution]) -> Tuple[Optional[Lint], int]:
        """
        Lint for one path (None when the counter increases) and its delta.

        Unrecognized steps do not contribute to the delta.
        """
        incr = sum(
            delta for delta in (self.eval_step(for_loop.counter, s) for s in steps)
            if delta is not None
        )
        loc_meta = steps[0].meta if steps else for_loop.cond.meta
        loc = generate_file_location(loc_meta.start, loc_meta.end, loc_meta.file_id)

        monotonicity = self.analyse_monotonicity(incr)
        if monotonicity == Monotonicity.CONSTANT:
            return Lint(
                error_code=ReportCode.LOOP_NO_PROGRESS,
                error_msg="Loop does not progress",
                loc=loc,
                msg="",
                level=LintLevel.WARNING,
            ), incr
        if monotonicity == Monotonicity.DECREASING:
            return Lint(
                error_code=ReportCode.LOOP_MAY_OVERFLOW,
                error_msg=(
                    "Loop may overflow: refer to Circom's docs on modular field arithmetic: "
                    f"{FIELD_ARITHMETIC_DOCS_URL}"
                ),
                loc=loc,
                msg="",
                level=LintLevel.WARNING,
            ), incr
        return None, incr

    def analyse(self, program: ProgramArchive) -> List[Lint]:
        """
        Lints for every unsafe path of the loop body.

        When no path is safe, every lint is escalated to an error.
        """
        if self.for_loop is None:
            return []
        for_loop = self.for_loop
        graph = build_statement_flowgraph(program, for_loop.loop_body, name=for_loop.counter)
        paths = all_simple_paths(graph)
        logger.debug(f"Loop over `{for_loop.counter}`: {len(paths)} paths")

        lints: List[Lint] = []
        for path in paths:
            steps = assignments_to(graph, path, for_loop.counter)
            lint, incr = self.analyse_termination(for_loop, steps)
            if lint is not None:
                lints.append(lint)
            else:
                logger.debug(f"Path {path} increments `{for_loop.counter}` by {incr}")

        if len(lints) == len(paths):
            lints = [replace(lint, level=LintLevel.ERROR) for lint in lints]
        return lints


class LoopTerminationLinter(AstVisitor):
    """Runs TerminationAnalyser on every lowered for-loop"""

    def __init__(self):
        self.lints: List[Lint] = []
        self.checked_for_loops: Set[int] = set()

    def init(self, program: ProgramArchive) -> None:
        pass

    def visit_declaration(self, program: ProgramArchive, meta: Meta, xtype: VariableType,
                          name: str, dimensions: List[Expression], is_constant: bool) -> None:
        pass

    def visit_substitution(self, program: ProgramArchive, meta: Meta, var: str,
                           access: list, op: AssignOp, rhe: Expression) -> None:
        pass

    def visit_block(self, program: ProgramArchive, meta: Meta, stmts: List[Statement]) -> None:
        # a lowered for-loop is a block of exactly [init, while]
        for_loop = is_for_loop(program, stmts)
        if for_loop is None or meta.elem_id in self.checked_for_loops:
            return
        self.checked_for_loops.add(meta.elem_id)
        logger.debug(f"Recognized for-loop {for_loop.describe(program)}")
        self.lints.extend(TerminationAnalyser(for_loop).analyse(program))

    def lint(self, program: ProgramArchive) -> List[Lint]:
        return list(self.lints)
