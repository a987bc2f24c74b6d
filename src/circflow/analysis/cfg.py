"""
Control Flow Graph

Rust Pattern: rustc_middle::mir::BasicBlocks (one node per statement)

Lowers structured statement trees (blocks, conditionals, loops) into a
directed graph of statement nodes, and enumerates simple paths over it.

Shape of the graph:
- node 0 is the unique entry
- Declaration, Substitution and control-irrelevant leaves are one node each
- IfThenElse is a condition node; without an else branch, the original
  predecessors of the condition fall through to the join
- While is a head node plus a second node for the same While acting as the
  loop exit; body exits -> exit, exit -> head (the single back edge) and
  head -> exit (zero iterations)
"""

import logging
from typing import Iterator, List, Optional, Tuple

import networkx as nx

from ..shared.ast_visitor import StatementVisitor
from ..shared.errors import FlowGraphLookupError
from ..shared.nodes import (
    Statement, Declaration, Substitution, Block, InitializationBlock,
    IfThenElse, While, Meta,
)
from ..shared.program import ProgramArchive

logger = logging.getLogger("circflow.analysis.cfg")

Path = List[int]


class FlowNode:
    """A CFG vertex: one statement occurrence plus its owning program"""

    __slots__ = ('stmt', 'program')

    def __init__(self, stmt: Statement, program: ProgramArchive):
        self.stmt = stmt
        self.program = program

    @property
    def meta(self) -> Meta:
        return self.stmt.meta

    def __str__(self) -> str:
        if isinstance(self.stmt, While):
            return f"While ({self.program.print_meta(self.stmt.cond.meta)})"
        if isinstance(self.stmt, IfThenElse):
            return f"If ({self.program.print_meta(self.stmt.cond.meta)})"
        return self.program.print_meta(self.stmt.meta)

    def __repr__(self) -> str:
        return f"FlowNode({self.stmt.node_type.value}, elem_id={self.meta.elem_id})"


class ControlFlowGraph:
    """
    Statement-level control flow graph backed by a networkx DiGraph.

    Node indices are assigned in insertion order starting at 0. Edge weights
    are not used; parallel edges collapse into one.
    """

    def __init__(self, program: ProgramArchive, name: str = ""):
        self.program = program
        self.name = name
        self.graph = nx.DiGraph()

    def add_node(self, stmt: Statement) -> int:
        index = self.graph.number_of_nodes()
        self.graph.add_node(index, node=FlowNode(stmt, self.program))
        return index

    def add_edge(self, source: int, target: int) -> None:
        self.graph.add_edge(source, target)

    def node_weight(self, index: int) -> FlowNode:
        return self.graph.nodes[index]["node"]

    def node_count(self) -> int:
        return self.graph.number_of_nodes()

    def edge_count(self) -> int:
        return self.graph.number_of_edges()

    def node_indices(self) -> range:
        return range(self.node_count())

    def nodes(self) -> Iterator[Tuple[int, FlowNode]]:
        for index in self.node_indices():
            yield index, self.node_weight(index)

    def edges(self) -> List[Tuple[int, int]]:
        return sorted(self.graph.edges())

    def has_edge(self, source: int, target: int) -> bool:
        return self.graph.has_edge(source, target)

    def successors(self, index: int) -> List[int]:
        return sorted(self.graph.successors(index))

    def predecessors(self, index: int) -> List[int]:
        return sorted(self.graph.predecessors(index))

    def has_path(self, source: int, target: int) -> bool:
        return nx.has_path(self.graph, source, target)

    def find_by_elem_id(self, elem_id: int) -> int:
        """Node whose statement carries the identity token `elem_id` (first match)"""
        for index, node in self.nodes():
            if node.meta.elem_id == elem_id:
                return index
        raise FlowGraphLookupError(
            f"No node with elem_id {elem_id} in control flow graph of `{self.name}`"
        )

    def find_enclosing(self, meta: Meta) -> int:
        """
        Innermost node whose span encloses `meta`.

        Conditions and loops span their bodies, so the smallest enclosing span
        wins; ties go to the lowest index (a loop head before its exit).
        """
        best: Optional[int] = None
        best_len = 0
        for index, node in self.nodes():
            span = node.meta
            if span.start <= meta.start and span.end >= meta.end:
                length = span.end - span.start
                if best is None or length < best_len:
                    best, best_len = index, length
        if best is None:
            raise FlowGraphLookupError(
                f"No node encloses span [{meta.start}, {meta.end}) in control flow graph of `{self.name}`"
            )
        return best

    def simple_paths(self, start: int = 0, end: Optional[int] = None) -> List[Path]:
        return all_simple_paths(self, start, end)

    def to_dot(self) -> str:
        """Graphviz rendering (node labels are the statements' source text)"""
        lines = [f'digraph "{self.name or "cfg"}" {{']
        for index, node in self.nodes():
            label = str(node).replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")
            lines.append(f'    {index} [ label = "{label}" ]')
        for source, target in self.edges():
            lines.append(f"    {source} -> {target}")
        lines.append("}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"ControlFlowGraph(name={self.name!r}, nodes={self.node_count()}, edges={self.edge_count()})"


class FlowGraphBuilder(StatementVisitor[List[int]]):
    """
    Lowers statements into a ControlFlowGraph.

    Every visit method lowers one statement given the current predecessor
    set and returns the predecessor set after it.
    """

    def __init__(self, graph: ControlFlowGraph):
        self.graph = graph
        self._parents: List[int] = []

    def build(self, stmt: Statement, parents: Optional[List[int]] = None) -> List[int]:
        saved = self._parents
        self._parents = list(parents or [])
        try:
            return stmt.accept(self)
        finally:
            self._parents = saved

    def _add_linked(self, stmt: Statement, parents: List[int]) -> int:
        child = self.graph.add_node(stmt)
        for parent in parents:
            self.graph.add_edge(parent, child)
        return child

    def visit_leaf(self, node: Statement) -> List[int]:
        return [self._add_linked(node, self._parents)]

    def visit_declaration(self, node: Declaration) -> List[int]:
        return self.visit_leaf(node)

    def visit_substitution(self, node: Substitution) -> List[int]:
        return self.visit_leaf(node)

    def visit_block(self, node: Block) -> List[int]:
        parents = self._parents
        for stmt in node.stmts:
            parents = self.build(stmt, parents)
        return parents

    def visit_initialization_block(self, node: InitializationBlock) -> List[int]:
        parents = self._parents
        for stmt in node.initializations:
            parents = self.build(stmt, parents)
        return parents

    def visit_if_then_else(self, node: IfThenElse) -> List[int]:
        cond = self._add_linked(node, self._parents)
        join = list(self._parents)
        then_exits = self.build(node.if_case, [cond])
        if node.else_case is not None:
            join = self.build(node.else_case, [cond])
        return join + then_exits

    def visit_while(self, node: While) -> List[int]:
        head = self._add_linked(node, self._parents)
        body_exits = self.build(node.stmt, [head])
        loop_exit = self._add_linked(node, body_exits)
        self.graph.add_edge(loop_exit, head)
        self.graph.add_edge(head, loop_exit)
        return [loop_exit]


def build_flowgraph(program: ProgramArchive, template_name: str) -> ControlFlowGraph:
    """Builds a control flow graph of the body of template `template_name`"""
    template = program.get_template_data(template_name)
    graph = ControlFlowGraph(program, template_name)
    FlowGraphBuilder(graph).build(template.get_body())
    logger.debug(f"CFG for template {template_name}: {graph.node_count()} nodes, {graph.edge_count()} edges")
    return graph


def build_statement_flowgraph(program: ProgramArchive, stmt: Statement, name: str = "") -> ControlFlowGraph:
    """Builds a control flow graph of a single statement (e.g. a loop body)"""
    graph = ControlFlowGraph(program, name)
    FlowGraphBuilder(graph).build(stmt)
    logger.debug(f"CFG for statement {stmt.meta.elem_id}: {graph.node_count()} nodes")
    return graph


def all_simple_paths(graph: ControlFlowGraph, start: int = 0, end: Optional[int] = None) -> List[Path]:
    """
    Every simple path from `start` to `end` (default: the last node).

    A path from a node to itself is the trivial path [start]. No depth bound
    is applied, so the count is exponential in the number of branches.
    """
    if graph.node_count() == 0:
        return []
    if end is None:
        end = graph.node_count() - 1
    if start == end:
        return [[start]]
    paths = [list(path) for path in nx.all_simple_paths(graph.graph, start, end)]
    logger.debug(f"{len(paths)} simple paths {start} -> {end} in `{graph.name}`")
    return paths


def assignments_to(graph: ControlFlowGraph, path: Path, name: str) -> List[Substitution]:
    """Substitutions to `name` along `path`, in path order"""
    steps = []
    for index in path:
        stmt = graph.node_weight(index).stmt
        if isinstance(stmt, Substitution) and stmt.var == name:
            steps.append(stmt)
    return steps

