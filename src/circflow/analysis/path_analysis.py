"""
Path Analysis

Rust Pattern: rustc_borrowck definite initialization (MaybeUninitializedPlaces)

On any given path a signal or var should be assigned exactly once. A path
that reaches a use without assigning the name leaves it Unassigned; a second
assignment makes it MultiplyAssigned. Both are reported as lints; a
substitution to a name never declared on the path is an internal error.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from ..shared.errors import UndeclaredAssignmentError
from ..shared.nodes import Meta, VariableType, SignalType, Declaration, Substitution
from ..shared.program import ProgramArchive
from ..shared.source_location import FileLocation, generate_file_location
from .cfg import ControlFlowGraph, Path, build_flowgraph, all_simple_paths
from .lint import Lint, LintLevel, ReportCode

logger = logging.getLogger("circflow.analysis.path_analysis")


class AssignmentState(Enum):
    UNASSIGNED = "unassigned"
    ASSIGNED = "assigned"
    MULTIPLY_ASSIGNED = "multiply_assigned"


class PathAnalysisErr(Enum):
    UNASSIGNED = "unassigned"
    MULTIPLE_ASSIGNMENT = "multiple_assignment"


@dataclass
class AssignmentVal:
    """Declared kind and declaring location of a name on one path"""
    xtype: VariableType
    loc: FileLocation
    state: AssignmentState = AssignmentState.UNASSIGNED

    def error(self) -> Optional[PathAnalysisErr]:
        if self.state == AssignmentState.UNASSIGNED:
            return PathAnalysisErr.UNASSIGNED
        if self.state == AssignmentState.MULTIPLY_ASSIGNED:
            return PathAnalysisErr.MULTIPLE_ASSIGNMENT
        return None


Assignments = Dict[str, AssignmentVal]


@dataclass(frozen=True)
class PathAnalysisLint(Lint):
    """Lint about one name, carrying the kind of violation"""
    name: str
    path_err: PathAnalysisErr
    xtype: VariableType


def path_lint(name: str, err: PathAnalysisErr, xtype: VariableType,
               loc: FileLocation, msg: str) -> PathAnalysisLint:
    kind = "var" if xtype.is_var else "signal"
    if err == PathAnalysisErr.UNASSIGNED:
        code, error_msg = ReportCode.UNASSIGNED_SIGNAL, f"Unassigned {kind}: `{name}`"
    else:
        code, error_msg = ReportCode.MULTIPLE_ASSIGNMENT, f"Multiple assignments to {kind}: `{name}`"
    return PathAnalysisLint(
        error_code=code,
        error_msg=error_msg,
        loc=loc,
        msg=msg,
        level=LintLevel.NOTE,
        name=name,
        path_err=err,
        xtype=xtype,
    )


def run_path_analysis(graph: ControlFlowGraph, path: Path) -> Assignments:
    """Assignment state of every name declared along `path`"""
    assignments: Assignments = {}
    for index in path:
        stmt = graph.node_weight(index).stmt
        if isinstance(stmt, Declaration):
            meta = stmt.meta
            assignments[stmt.name] = AssignmentVal(
                xtype=stmt.xtype,
                loc=generate_file_location(meta.start, meta.end, meta.file_id),
            )
        elif isinstance(stmt, Substitution):
            declared = assignments.get(stmt.var)
            if declared is None:
                raise UndeclaredAssignmentError(
                    f"Assignment to `{stmt.var}` which is not declared on this path"
                )
            if declared.state == AssignmentState.UNASSIGNED:
                declared.state = AssignmentState.ASSIGNED
            else:
                declared.state = AssignmentState.MULTIPLY_ASSIGNED
    return assignments


def lint_all_paths_to_signal(program: ProgramArchive, template_name: str,
                             signal: str, meta: Meta) -> Optional[PathAnalysisLint]:
    """
    Check that `signal` is assigned exactly once on every path reaching `meta`.

    `meta` may belong to an expression or call that has no node of its own;
    the innermost node enclosing it is used. Returns the lint for the first
    offending path, or None. Input signals are never flagged.
    """
    graph = build_flowgraph(program, template_name)
    last = graph.find_enclosing(meta)
    paths = all_simple_paths(graph, 0, last)
    logger.debug(f"Checking `{signal}` in {template_name} over {len(paths)} paths")

    for path in paths:
        assignments = run_path_analysis(graph, path)
        assignment = assignments.get(signal)
        if assignment is None:
            raise UndeclaredAssignmentError(
                f"`{signal}` is not declared on a path of template `{template_name}`"
            )
        err = assignment.error()
        if err is None:
            continue
        xtype = assignment.xtype
        if xtype.is_input_signal:
            continue
        if xtype.is_signal:
            if err == PathAnalysisErr.UNASSIGNED:
                return path_lint(signal, err, xtype, meta.location, (
                    f"Signal `{signal}` is not initialized on all execution paths and would be "
                    f"given a zero value where no assignment has been made to it. Consider "
                    f"assigning a value to it explicitly."
                ))
            return path_lint(signal, err, xtype, assignment.loc, (
                f"Signal {signal} was already assigned a value and multiple assignments are not allowed."
            ))
        if xtype.is_var:
            if err == PathAnalysisErr.UNASSIGNED:
                return path_lint(signal, err, xtype, assignment.loc, (
                    f"Var `{signal}` is not initialized on all execution paths and would be "
                    f"given a zero value where no assignment has been made to it. Consider "
                    f"assigning a value to it explicitly."
                ))
            return path_lint(signal, err, xtype, assignment.loc, (
                f"Var {signal} was already assigned a value and multiple assignments are not allowed."
            ))
        # components are instantiated, not assigned
    return None


def count_assignments(graph: ControlFlowGraph, path: Path, signal_name: str) -> int:
    """Number of substitutions to `signal_name` along `path`"""
    return sum(
        1 for index in path
        if isinstance(graph.node_weight(index).stmt, Substitution)
        and graph.node_weight(index).stmt.var == signal_name
    )


def check_double_assignment(program: ProgramArchive, template_name: str, reassignment: Meta) -> bool:
    """
    True when every path from the entry up to and including the substitution
    identified by `reassignment` assigns its target exactly once.
    """
    graph = build_flowgraph(program, template_name)
    node = graph.find_by_elem_id(reassignment.elem_id)
    stmt = graph.node_weight(node).stmt
    if not isinstance(stmt, Substitution):
        return True
    for path in all_simple_paths(graph, 0, node):
        if count_assignments(graph, path, stmt.var) != 1:
            logger.debug(f"`{stmt.var}` is not assigned exactly once on path {path}")
            return False
    return True


class PathAnalyser:
    """
    Tracks constraint assignments (`<==`) to signals across calls.

    Control flow graphs are built lazily per template and cached. The history
    of constrained locations lives as long as the analyser and is keyed by
    (template name, symbol), so same-named signals of different templates
    never conflict. Not thread safe.
    """

    def __init__(self, program: ProgramArchive):
        self.program = program
        self.call_flow_graphs: Dict[str, ControlFlowGraph] = {}
        self.constraint_execution_assignments: Dict[Tuple[str, str], List[Meta]] = {}

    def flowgraph(self, template_name: str) -> ControlFlowGraph:
        graph = self.call_flow_graphs.get(template_name)
        if graph is None:
            graph = build_flowgraph(self.program, template_name)
            self.call_flow_graphs[template_name] = graph
        return graph

    def constraint_signal_assignment(self, template_name: str, meta: Meta,
                                     symbol: str) -> Optional[PathAnalysisLint]:
        """
        Record a constraint assignment of `symbol` at `meta`.

        Returns a MultipleAssignment lint when an earlier recorded assignment
        reaches this one (or is reached by it) in the template's graph, or is
        the same node; the location is then not recorded.
        """
        graph = self.flowgraph(template_name)
        key = (template_name, symbol)
        history = self.constraint_execution_assignments.setdefault(key, [])
        end = graph.find_by_elem_id(meta.elem_id)
        for prev_meta in history:
            start = graph.find_by_elem_id(prev_meta.elem_id)
            # same node: one loop body statement revisited across iterations
            if start == end or graph.has_path(start, end) or graph.has_path(end, start):
                return path_lint(
                    symbol,
                    PathAnalysisErr.MULTIPLE_ASSIGNMENT,
                    VariableType.signal(SignalType.OUTPUT),
                    meta.location,
                    f"Signal {symbol} is assigned to multiple times",
                )
        history.append(meta)
        return None
