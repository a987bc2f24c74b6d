"""
Test utilities for the circflow test suite.

Helpers to locate statements in parsed programs and to inspect graphs.
"""

import sys
from pathlib import Path
from typing import List

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))
from circflow.shared.ast_visitor import StatementVisitor
from circflow.shared.nodes import Declaration, Statement, Substitution
from circflow.shared.program import ProgramArchive


class _StatementFinder(StatementVisitor[None]):
    """Collects every declaration and substitution in pre-order"""

    def __init__(self):
        self.found: List[Statement] = []

    def visit_declaration(self, node: Declaration) -> None:
        self.found.append(node)

    def visit_substitution(self, node: Substitution) -> None:
        self.found.append(node)


def statements_of(program: ProgramArchive, template_name: str) -> List[Statement]:
    """Declarations and substitutions of a template body, in source order"""
    finder = _StatementFinder()
    program.get_template_data(template_name).get_body().accept(finder)
    return finder.found


def find_substitution(program: ProgramArchive, template_name: str, source_text: str,
                      occurrence: int = 0) -> Substitution:
    """The `occurrence`-th substitution whose literal source text is `source_text`"""
    matches = [
        stmt for stmt in statements_of(program, template_name)
        if isinstance(stmt, Substitution) and program.print_meta(stmt.meta) == source_text
    ]
    if len(matches) <= occurrence:
        raise AssertionError(f"No substitution `{source_text}` (#{occurrence}) in {template_name}")
    return matches[occurrence]


def find_declaration(program: ProgramArchive, template_name: str, name: str) -> Declaration:
    for stmt in statements_of(program, template_name):
        if isinstance(stmt, Declaration) and stmt.name == name:
            return stmt
    raise AssertionError(f"No declaration of `{name}` in {template_name}")


def node_labels(graph) -> List[str]:
    """Literal label of every CFG node, by index"""
    return [str(node) for _, node in graph.nodes()]


def loc_text(program: ProgramArchive, loc) -> str:
    """Source text covered by a lint location"""
    return program.get_file_library().source_text(loc.file_id, loc.start, loc.end)
