"""
Pass System

Rust Pattern: rustc_mir::transform::MirPass

Passes declare the passes they depend on; the manager runs them in
dependency order against one shared AnalysisCtxt.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Type

import networkx as nx

from ..shared.errors import ErrorReporter
from ..shared.program import ProgramArchive

logger = logging.getLogger("circflow.passes.base")


class AnalysisCtxt:
    """
    State shared by every pass of one analysis run.

    Rust Pattern: rustc_middle::ty::TyCtxt

    Holds the program, the diagnostic reporter (primed with the program's
    sources) and each pass's results, keyed by pass class.
    """

    def __init__(self, program: ProgramArchive):
        self.program = program
        self.reporter = ErrorReporter(program.get_file_library().to_storage())
        self._results: Dict[Type['BasePass'], Any] = {}

    def get_analysis(self, pass_class: Type['BasePass']) -> Any:
        try:
            return self._results[pass_class]
        except KeyError:
            raise RuntimeError(f"Analysis {pass_class.__name__} has not run") from None

    def set_analysis(self, pass_class: Type['BasePass'], results: Any) -> None:
        self._results[pass_class] = results

    def has_analysis(self, pass_class: Type['BasePass']) -> bool:
        return pass_class in self._results


class BasePass(ABC):
    """
    One analysis step over the whole program.

    Rust Pattern: rustc_mir::transform::MirPass

    Results go to the context with set_analysis, never onto the pass
    instance; a fresh instance is created for every run.
    """
    requires: List[Type['BasePass']] = []

    @abstractmethod
    def run(self, program: ProgramArchive, ctx: AnalysisCtxt) -> ProgramArchive:
        """Analyse (and possibly annotate) `program`, returning it"""
        raise NotImplementedError


class PassManager:
    """
    Runs registered passes in dependency order.

    Rust Pattern: rustc driver with pass scheduling

    Among passes whose dependencies are satisfied, registration order wins.
    """

    def __init__(self):
        self.passes: List[Type[BasePass]] = []

    def register_pass(self, pass_class: Type[BasePass]) -> None:
        self.passes.append(pass_class)

    def run_all(self, program: ProgramArchive, ctx: AnalysisCtxt) -> ProgramArchive:
        for pass_class in self._topological_sort():
            logger.debug(f"Running {pass_class.__name__}")
            program = pass_class().run(program, ctx)
        return program

    def _topological_sort(self) -> List[Type[BasePass]]:
        order = {pass_class: index for index, pass_class in enumerate(self.passes)}
        missing = sorted({
            dep.__name__
            for pass_class in self.passes
            for dep in pass_class.requires
            if dep not in order
        })
        if missing:
            raise RuntimeError(f"Required passes not registered: {', '.join(missing)}")

        deps = nx.DiGraph()
        deps.add_nodes_from(self.passes)
        for pass_class in self.passes:
            deps.add_edges_from((dep, pass_class) for dep in pass_class.requires)
        try:
            return list(nx.lexicographical_topological_sort(deps, key=order.__getitem__))
        except nx.NetworkXUnfeasible:
            raise RuntimeError("Circular dependency detected in passes") from None
