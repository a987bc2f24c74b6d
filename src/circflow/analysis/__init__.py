"""
Flow-sensitive analyses: control flow graphs, path assignment analysis,
static linters and loop termination.
"""

from .cfg import (
    FlowNode, ControlFlowGraph, FlowGraphBuilder, Path,
    build_flowgraph, build_statement_flowgraph, all_simple_paths, assignments_to,
)
from .lint import (
    Lint, LintLevel, ReportCode, AstVisitor, StaticLinter,
    AnonComponentLinter, ConstantSignalLinter, report_lints,
)
from .path_analysis import (
    AssignmentState, PathAnalysisErr, PathAnalysisLint, PathAnalyser,
    run_path_analysis, lint_all_paths_to_signal, check_double_assignment, count_assignments,
)
from .termination import ForLoop, Monotonicity, TerminationAnalyser, LoopTerminationLinter, is_for_loop

__all__ = [
    'FlowNode', 'ControlFlowGraph', 'FlowGraphBuilder', 'Path',
    'build_flowgraph', 'build_statement_flowgraph', 'all_simple_paths', 'assignments_to',
    'Lint', 'LintLevel', 'ReportCode', 'AstVisitor', 'StaticLinter',
    'AnonComponentLinter', 'ConstantSignalLinter', 'report_lints',
    'AssignmentState', 'PathAnalysisErr', 'PathAnalysisLint', 'PathAnalyser',
    'run_path_analysis', 'lint_all_paths_to_signal', 'check_double_assignment', 'count_assignments',
    'ForLoop', 'Monotonicity', 'TerminationAnalyser', 'LoopTerminationLinter', 'is_for_loop',
]
