"""
Lint Pass

Rust Pattern: rustc_lint::late::check_crate

Runs the static linters (anonymous components, constant signals, loop
termination) over every template and reports their findings.
"""

import logging

from ..analysis.lint import (
    StaticLinter, AnonComponentLinter, ConstantSignalLinter, report_lints,
)
from ..analysis.termination import LoopTerminationLinter
from ..shared.program import ProgramArchive
from .base import BasePass, AnalysisCtxt
from .constants import ConstantHandlerPass

logger = logging.getLogger("circflow.passes.lint_pass")


class LintPass(BasePass):
    """
    Static lint pass.

    Results: List[Lint] in linter registration order
    """
    requires = [ConstantHandlerPass]

    def run(self, program: ProgramArchive, ctx: AnalysisCtxt) -> ProgramArchive:
        linter = StaticLinter(program, [
            AnonComponentLinter(),
            ConstantSignalLinter(),
            LoopTerminationLinter(),
        ])
        lints = linter.lint()
        logger.debug(f"Static linters produced {len(lints)} lints")
        report_lints(program, lints, ctx.reporter)
        ctx.set_analysis(LintPass, lints)
        return program
