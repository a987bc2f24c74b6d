"""
Analysis Driver

Rust Pattern: rustc_driver::driver
"""

import logging
from typing import List, Optional

from ..analysis.lint import Lint
from ..frontend.parser import Parser, ParseError
from ..passes.base import AnalysisCtxt, PassManager
from ..passes.constants import ConstantHandlerPass
from ..passes.flow_analysis import FlowAnalysisPass
from ..passes.lint_pass import LintPass
from ..shared.errors import ErrorReporter
from ..shared.program import ProgramArchive
from ..utils.config import DEFAULT_SOURCE_NAME

logger = logging.getLogger("circflow.compiler.driver")


class AnalysisResult:
    """Analysis result"""
    def __init__(
        self,
        program: Optional[ProgramArchive] = None,
        ctx: Optional[AnalysisCtxt] = None,
        lints: Optional[List[Lint]] = None,
        success: bool = False,
        reporter: Optional[ErrorReporter] = None,
    ):
        self.program = program
        self.ctx = ctx
        self.lints: List[Lint] = lints or []
        self.success = success
        self.reporter = reporter if reporter is not None else (ctx.reporter if ctx else None)

    def has_errors(self) -> bool:
        """True if analysis reported errors."""
        if self.reporter is not None:
            return self.reporter.has_errors()
        return not self.success

    def lints_with_code(self, code) -> List[Lint]:
        return [lint for lint in self.lints if lint.error_code == code]

    def format_diagnostics(self, color: Optional[bool] = None) -> str:
        if self.reporter is None:
            return ""
        return self.reporter.format_all_errors(color=color)


class AnalysisDriver:
    """
    Analysis driver (Rust naming: rustc_driver::driver).

    Rust Pattern: rustc_driver::driver

    - Parses the source
    - Runs the analysis passes in dependency order
    - Collects lints into diagnostics

    Broken internal invariants (CircflowImplementationError) are not
    caught here: they abort the analysis.
    """

    def __init__(self, parser: Optional[Parser] = None):
        self.pass_manager = PassManager()
        self.parser = parser if parser is not None else Parser()
        self._register_passes()

    def _register_passes(self) -> None:
        """
        Register all passes.

        Pass order:
        1. ConstantHandlerPass (marks compile-time constant declarations)
        2. LintPass (anonymous components, constant signals, loop termination)
        3. FlowAnalysisPass (unassigned and multiply assigned signals)
        """
        self.pass_manager.register_pass(ConstantHandlerPass)
        self.pass_manager.register_pass(LintPass)
        self.pass_manager.register_pass(FlowAnalysisPass)

    def analyze(self, source: str, source_file: str = DEFAULT_SOURCE_NAME) -> AnalysisResult:
        """
        Analyse source code.

        Rust Pattern: rustc_driver::driver::compile_input()

        Phases:
        1. Parsing (source -> ProgramArchive)
        2. Passes (constants, lints, flow analysis)
        """
        try:
            program = self.parser.parse(source, source_file)
        except ParseError as e:
            reporter = ErrorReporter({source_file: source})
            reporter.report_error(e.message, e.location, code=e.error_code)
            logger.debug(f"Parse of {source_file} failed: {e.message}")
            return AnalysisResult(success=False, reporter=reporter)

        return self.analyze_program(program)

    def analyze_program(self, program: ProgramArchive) -> AnalysisResult:
        """Run the passes on an already parsed program"""
        ctx = AnalysisCtxt(program)
        program = self.pass_manager.run_all(program, ctx)

        lints: List[Lint] = []
        for pass_class in (LintPass, FlowAnalysisPass):
            if ctx.has_analysis(pass_class):
                lints.extend(ctx.get_analysis(pass_class))
        logger.debug(f"Analysis finished with {len(lints)} lints")
        return AnalysisResult(
            program=program,
            ctx=ctx,
            lints=lints,
            success=not ctx.reporter.has_errors(),
        )
