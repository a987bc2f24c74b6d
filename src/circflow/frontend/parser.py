"""
Parser

Rust Pattern: rustc_parse
"""

import logging
from pathlib import Path
from typing import Optional

from lark import Lark
from lark.exceptions import UnexpectedInput, VisitError, LarkError

from ..shared.errors import CircflowSourceError
from ..shared.program import FileLibrary, ProgramArchive
from ..shared.source_location import SourceLocation
from ..utils.config import DEFAULT_PARSER_CACHE_FILE, DEFAULT_SOURCE_NAME
from .transformer import CircuitTransformer

logger = logging.getLogger("circflow.frontend.parser")


class Parser:
    """
    Parser (Rust naming: rustc_parse).

    Rust Pattern: rustc_parse::parse()

    Takes source text, returns a ProgramArchive whose nodes carry byte spans
    into the registered source file.
    """

    def __init__(self, cache_file: str = DEFAULT_PARSER_CACHE_FILE):
        grammar_path = Path(__file__).parent / "grammar.lark"
        self.parser = Lark.open(
            str(grammar_path),
            start='program',
            parser='lalr',              # Required for caching
            cache=cache_file,
            propagate_positions=True,
            maybe_placeholders=False,
        )
        self.transformer = CircuitTransformer()

    def parse(self, source: str, source_file: str = DEFAULT_SOURCE_NAME,
              file_library: Optional[FileLibrary] = None) -> ProgramArchive:
        """
        Parse source code into a program archive.

        Rust Pattern: rustc_parse::parse()
        """
        library = file_library if file_library is not None else FileLibrary()
        file_id = library.add_file(source_file, source)
        self.transformer._reset(library, file_id)

        try:
            tree = self.parser.parse(source)
        except UnexpectedInput as e:
            location = SourceLocation(
                file=source_file,
                line=e.line if e.line and e.line > 0 else 1,
                column=e.column if e.column and e.column > 0 else 1,
                start=e.pos_in_stream or 0,
                end=e.pos_in_stream or 0,
            )
            raise ParseError(f"Parse error: {_first_line(str(e))}", source_file, location, source) from e
        except LarkError as e:
            raise ParseError(f"Parse error: {e}", source_file, source_code=source) from e

        try:
            program = self.transformer.transform(tree)
        except VisitError as e:
            # Unwrap errors raised by transformer callbacks
            raise e.orig_exc from e
        logger.debug(f"Parsed {source_file}: {len(program.templates)} templates")
        return program


def _first_line(text: str) -> str:
    return text.strip().split("\n")[0]


class ParseError(CircflowSourceError):
    """Parse error with source location"""
    def __init__(self, message: str, source_file: str,
                 location: Optional[SourceLocation] = None,
                 source_code: Optional[str] = None):
        super().__init__(message, location, error_code="E0001", source_code=source_code)
        self.source_file = source_file
