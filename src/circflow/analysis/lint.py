"""
Lint Framework

Rust Pattern: rustc_lint::LintPass / EarlyLintPass

Provides:
1. Lint records (code, short message, location, long message, level)
2. AstVisitor, the contract every pluggable linter implements
3. StaticLinter, which runs a set of linters over every template body
4. Two style rules: anonymous components and constant signals
5. report_lints, converting lints into diagnostics

Findings are returned as data and never raised.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from ..passes.constants import handle_template_constants
from ..shared.ast_visitor import StatementVisitor
from ..shared.errors import Error, ErrorReporter, Severity
from ..shared.nodes import (
    Meta, VariableType, AssignOp, Expression, Statement,
    Declaration, Substitution, Block, Variable, Call, ComponentAccess,
)
from ..shared.program import ProgramArchive, TemplateData
from ..shared.source_location import FileLocation, generate_file_location
from ..utils.config import UNCAPTURED_PLACEHOLDER

logger = logging.getLogger("circflow.analysis.lint")


class LintLevel(Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"


class ReportCode(Enum):
    """Stable codes shown in diagnostics (`note[L0101]: ...`)"""
    ANONYMOUS_COMPONENT = "L0101"
    CONSTANT_SIGNAL = "L0102"
    LOOP_NO_PROGRESS = "L0201"
    LOOP_MAY_OVERFLOW = "L0202"
    UNASSIGNED_SIGNAL = "L0301"
    MULTIPLE_ASSIGNMENT = "L0302"


@dataclass(frozen=True)
class Lint:
    """
    A finding produced by an analysis.

    error_msg is the short headline, msg the long explanation (may be empty).
    """
    error_code: ReportCode
    error_msg: str
    loc: FileLocation
    msg: str
    level: LintLevel


# ============================================================================
# Visitor contract
# ============================================================================

class AstVisitor(ABC):
    """
    Pluggable linter.

    StaticLinter calls init() once before traversal, the visit_* callbacks
    during a pre-order walk of every template body, and lint() once after
    the walk.
    """

    @abstractmethod
    def init(self, program: ProgramArchive) -> None:
        """One-time setup (may annotate the program, e.g. constant folding)"""

    @abstractmethod
    def visit_declaration(self, program: ProgramArchive, meta: Meta, xtype: VariableType,
                          name: str, dimensions: List[Expression], is_constant: bool) -> None:
        ...

    @abstractmethod
    def visit_substitution(self, program: ProgramArchive, meta: Meta, var: str,
                           access: list, op: AssignOp, rhe: Expression) -> None:
        ...

    @abstractmethod
    def visit_block(self, program: ProgramArchive, meta: Meta, stmts: List[Statement]) -> None:
        ...

    @abstractmethod
    def lint(self, program: ProgramArchive) -> List[Lint]:
        """Collect the findings of this linter after the traversal"""


class StaticLinter(StatementVisitor[None]):
    """
    Runs registered linters over a program.

    The walk recurses into blocks (visit_block is dispatched before the
    children), both branches of conditionals, loop bodies and initialization
    blocks. Calls, asserts, logs, returns, constraint equalities and multi or
    underscore substitutions are leaves and are not dispatched.
    """

    def __init__(self, program: ProgramArchive, linters: List[AstVisitor]):
        self.program = program
        self.linters = linters

    def lint(self) -> List[Lint]:
        """Lints of every linter, in linter registration order"""
        for linter in self.linters:
            linter.init(self.program)
        for name, template in self.program.get_templates().items():
            logger.debug(f"Linting template {name}")
            self.walk_ast(template.get_body())
        lints: List[Lint] = []
        for linter in self.linters:
            lints.extend(linter.lint(self.program))
        return lints

    def walk_ast(self, stmt: Statement) -> None:
        stmt.accept(self)

    def visit_declaration(self, node: Declaration) -> None:
        for linter in self.linters:
            linter.visit_declaration(self.program, node.meta, node.xtype, node.name,
                                     node.dimensions, node.is_constant)

    def visit_substitution(self, node: Substitution) -> None:
        for linter in self.linters:
            linter.visit_substitution(self.program, node.meta, node.var, node.access, node.op, node.rhe)

    def visit_block(self, node: Block) -> None:
        for linter in self.linters:
            linter.visit_block(self.program, node.meta, node.stmts)
        super().visit_block(node)


def print_expr(program: ProgramArchive, expr: Expression) -> str:
    """The expression as it literally appears in the program source"""
    return program.print_expr(expr)


# ============================================================================
# Anonymous components
# ============================================================================

@dataclass
class ComponentInOut:
    """Inputs fed into and outputs read from one component instance"""
    inputs: Dict[str, str]
    outputs: Dict[str, str]
    params: str = ""


@dataclass
class AnonComponentCandidate:
    loc: FileLocation
    template_name: str
    var: str
    component: ComponentInOut


class AnonComponentLinter(AstVisitor):
    """
    Suggests anonymous component syntax for declared components.

    For

        component a = A();
        a.in1 <== in[0];
        a.in2 <== in[1];
        salida <== a.out2;

    it suggests `(_, salida) <== A()(in[0], in[1]);`, listing outputs and
    inputs in the template's declaration order.
    """

    def __init__(self):
        self.components: Dict[str, ComponentInOut] = {}
        self.candidates: List[AnonComponentCandidate] = []

    def init(self, program: ProgramArchive) -> None:
        pass

    def visit_declaration(self, program, meta, xtype, name, dimensions, is_constant) -> None:
        if not xtype.is_component:
            return
        if meta.component_inference is None:
            logger.debug(f"Component `{name}` is never instantiated from a known template")
            return
        # A later declaration with the same name (e.g. in another template)
        # starts a fresh record; earlier candidates keep their own.
        component = ComponentInOut({}, {})
        self.components[name] = component
        self.candidates.append(AnonComponentCandidate(
            loc=generate_file_location(meta.start, meta.end, meta.file_id),
            template_name=meta.component_inference,
            var=name,
            component=component,
        ))

    def visit_substitution(self, program, meta, var, access, op, rhe) -> None:
        component = self.components.get(var)
        if component is not None:
            if isinstance(rhe, Call) and not access:
                component.params = ", ".join(print_expr(program, arg) for arg in rhe.args)
            # comp.field <== expr
            for acc in access:
                if isinstance(acc, ComponentAccess):
                    component.inputs[acc.name] = print_expr(program, rhe)
        # var <== comp.field
        if isinstance(rhe, Variable) and rhe.name in self.components:
            source = self.components[rhe.name]
            for acc in rhe.access:
                if isinstance(acc, ComponentAccess):
                    source.outputs[acc.name] = var

    def visit_block(self, program, meta, stmts) -> None:
        pass

    def lint(self, program: ProgramArchive) -> List[Lint]:
        lints = []
        for candidate in self.candidates:
            if not program.contains_template(candidate.template_name):
                logger.debug(f"Template `{candidate.template_name}` of `{candidate.var}` is not in this file")
                continue
            data = program.get_template_data(candidate.template_name)
            component = candidate.component
            lints.append(Lint(
                error_code=ReportCode.ANONYMOUS_COMPONENT,
                error_msg=f"Anonymous component: `{candidate.var}`",
                loc=candidate.loc,
                msg=(
                    f"You can use ({fmt_component_outs(data, component.outputs)}) <== "
                    f"{candidate.template_name}({component.params})"
                    f"({fmt_component_args(data, component.inputs)});"
                ),
                level=LintLevel.NOTE,
            ))
        return lints


def fmt_component_args(data: TemplateData, inputs: Dict[str, str]) -> str:
    """Inputs fed to a component, in the template's input declaration order"""
    return ", ".join(
        inputs.get(name, UNCAPTURED_PLACEHOLDER) for name, _ in data.get_declaration_inputs()
    )


def fmt_component_outs(data: TemplateData, outputs: Dict[str, str]) -> str:
    """Variables capturing a component's outputs, `_` for outputs nobody reads"""
    return ", ".join(
        outputs.get(name, UNCAPTURED_PLACEHOLDER) for name, _ in data.get_declaration_outputs()
    )


# ============================================================================
# Constant signals
# ============================================================================

@dataclass
class SignalDefinition:
    """One intermediate/output signal declaration and its last right-hand side"""
    loc: FileLocation
    name: str
    is_constant: bool
    rhe: Optional[Expression] = None


class ConstantSignalLinter(AstVisitor):
    """Flags intermediate/output signals whose value is a compile-time constant"""

    def __init__(self):
        self.definitions: List[SignalDefinition] = []
        # name -> declaration currently in scope; redeclaring the name (in a
        # later template, or as a var or input) shadows the earlier one
        self.in_scope: Dict[str, SignalDefinition] = {}

    def init(self, program: ProgramArchive) -> None:
        """Marks Declaration.is_constant in every template"""
        for template in program.get_templates().values():
            handle_template_constants(template)

    def visit_declaration(self, program, meta, xtype, name, dimensions, is_constant) -> None:
        if not xtype.is_signal or xtype.is_input_signal:
            self.in_scope.pop(name, None)
            return
        definition = SignalDefinition(
            generate_file_location(meta.start, meta.end, meta.file_id), name, is_constant
        )
        self.definitions.append(definition)
        self.in_scope[name] = definition

    def visit_substitution(self, program, meta, var, access, op, rhe) -> None:
        definition = self.in_scope.get(var)
        if definition is not None:
            definition.rhe = rhe

    def visit_block(self, program, meta, stmts) -> None:
        pass

    def lint(self, program: ProgramArchive) -> List[Lint]:
        lints = []
        for definition in self.definitions:
            if not definition.is_constant:
                continue
            name = definition.name
            value = f" = {print_expr(program, definition.rhe)}" if definition.rhe is not None else ""
            lints.append(Lint(
                error_code=ReportCode.CONSTANT_SIGNAL,
                error_msg=f"Constant signal: `{name}`",
                loc=definition.loc,
                msg=f"You should define `{name}` as a variable instead: `var {name}{value}`",
                level=LintLevel.NOTE,
            ))
        return lints


# ============================================================================
# Reporting
# ============================================================================

_LEVEL_SEVERITY = {
    LintLevel.ERROR: Severity.ERROR,
    LintLevel.WARNING: Severity.WARNING,
    LintLevel.NOTE: Severity.NOTE,
}

# Assignment violations are compile errors whatever level the analysis gave them
_ERROR_CODES = (ReportCode.UNASSIGNED_SIGNAL, ReportCode.MULTIPLE_ASSIGNMENT)


def lint_severity(lint: Lint) -> Severity:
    if lint.error_code in _ERROR_CODES:
        return Severity.ERROR
    return _LEVEL_SEVERITY[lint.level]


def report_lints(program: ProgramArchive, lints: List[Lint],
                 reporter: Optional[ErrorReporter] = None) -> List[Error]:
    """
    Convert lints into diagnostics.

    Style lints are notes, loop lints keep their level and assignment
    violations are errors. When a reporter is given the diagnostics are also
    added to it.
    """
    errors = []
    for lint in lints:
        error = Error(
            message=lint.error_msg,
            location=program.to_source_location(lint.loc),
            code=lint.error_code.value,
            help=lint.msg or None,
            severity=lint_severity(lint),
        )
        errors.append(error)
        if reporter is not None:
            reporter.emit(error)
    return errors
