"""
Program Archive

The program representation handed to the flow analyses: templates and
functions with their statement trees, and the file library that maps byte
spans back to source text and line/column positions.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .ast_visitor import StatementVisitor
from .errors import CircflowImplementationError
from .nodes import Declaration, Substitution, Statement, Expression, Meta, SignalType
from .source_location import FileLocation, SourceLocation


@dataclass
class SourceFile:
    name: str
    source: str

    def line_column(self, offset: int) -> Tuple[int, int]:
        """1-based (line, column) of a byte offset"""
        line = self.source.count("\n", 0, offset) + 1
        column = offset - (self.source.rfind("\n", 0, offset) + 1) + 1
        return line, column


class FileLibrary:
    """Source files of a program, indexed by file id"""

    def __init__(self):
        self._files: List[SourceFile] = []

    def add_file(self, name: str, source: str) -> int:
        self._files.append(SourceFile(name, source))
        return len(self._files) - 1

    def get_file(self, file_id: int) -> SourceFile:
        if not 0 <= file_id < len(self._files):
            raise CircflowImplementationError(f"Unknown file id {file_id}")
        return self._files[file_id]

    def source_text(self, file_id: int, start: int, end: int) -> str:
        return self.get_file(file_id).source[start:end]

    def to_source_location(self, loc: FileLocation) -> SourceLocation:
        source_file = self.get_file(loc.file_id)
        line, column = source_file.line_column(loc.start)
        end_line, end_column = source_file.line_column(max(loc.start, loc.end))
        return SourceLocation(
            file=source_file.name,
            line=line,
            column=column,
            start=loc.start,
            end=loc.end,
            end_line=end_line,
            end_column=end_column,
        )

    def to_storage(self) -> Dict[str, str]:
        """File name -> source text (what ErrorReporter consumes)"""
        return {f.name: f.source for f in self._files}


class _SignalCollector(StatementVisitor[None]):
    """Collects input/output signal declarations in declaration order"""

    def __init__(self):
        self.inputs: List[Tuple[str, int]] = []
        self.outputs: List[Tuple[str, int]] = []

    def visit_declaration(self, node: Declaration) -> None:
        if not node.xtype.is_signal:
            return
        entry = (node.name, len(node.dimensions))
        if node.xtype.signal_type == SignalType.INPUT:
            self.inputs.append(entry)
        elif node.xtype.signal_type == SignalType.OUTPUT:
            self.outputs.append(entry)

    def visit_substitution(self, node: Substitution) -> None:
        pass


class TemplateData:
    """A template definition: name, parameters and body"""

    def __init__(self, name: str, params: List[str], body: Statement, meta: Meta):
        self.name = name
        self.params = params
        self.body = body
        self.meta = meta
        collector = _SignalCollector()
        body.accept(collector)
        self._inputs = collector.inputs
        self._outputs = collector.outputs

    def get_body(self) -> Statement:
        return self.body

    def get_declaration_inputs(self) -> List[Tuple[str, int]]:
        """(name, number of dimensions) of input signals, in declaration order"""
        return list(self._inputs)

    def get_declaration_outputs(self) -> List[Tuple[str, int]]:
        """(name, number of dimensions) of output signals, in declaration order"""
        return list(self._outputs)

    def __repr__(self) -> str:
        return f"TemplateData(name={self.name!r}, params={self.params!r})"


class FunctionData:
    """A function definition. Functions are not analysed, only kept for lookup."""

    def __init__(self, name: str, params: List[str], body: Statement, meta: Meta):
        self.name = name
        self.params = params
        self.body = body
        self.meta = meta

    def get_body(self) -> Statement:
        return self.body


class ProgramArchive:
    """
    Parsed (and assumed type-checked) program.

    Templates keep their declaration order, which is the order the linter
    walks them in.
    """

    def __init__(self,
                 file_library: FileLibrary,
                 templates: Optional[Dict[str, TemplateData]] = None,
                 functions: Optional[Dict[str, FunctionData]] = None,
                 main_file_id: int = 0,
                 main_component: Optional[Expression] = None,
                 public_inputs: Optional[List[str]] = None):
        self.file_library = file_library
        self.templates: Dict[str, TemplateData] = templates or {}
        self.functions: Dict[str, FunctionData] = functions or {}
        self.main_file_id = main_file_id
        self.main_component = main_component
        self.public_inputs: List[str] = public_inputs or []

    def get_file_library(self) -> FileLibrary:
        return self.file_library

    def get_templates(self) -> Dict[str, TemplateData]:
        return self.templates

    def contains_template(self, name: str) -> bool:
        return name in self.templates

    def get_template_data(self, name: str) -> TemplateData:
        try:
            return self.templates[name]
        except KeyError:
            raise CircflowImplementationError(
                f"Template `{name}` is not defined; the program should not have passed type checking"
            ) from None

    def print_meta(self, meta: Meta) -> str:
        """Return the span of `meta` as it literally appears in the source"""
        return self.file_library.source_text(meta.file_id, meta.start, meta.end)

    def print_expr(self, expr: Expression) -> str:
        return self.print_meta(expr.meta)

    def to_source_location(self, loc: FileLocation) -> SourceLocation:
        return self.file_library.to_source_location(loc)

