"""
Source Location (Span)

Rust Pattern: rustc_span::Span
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class SourceLocation:
    """
    Source location (Rust Span pattern).

    Rust Pattern: rustc_span::Span

    Rendering position of a diagnostic:
    - File, line, column (+ start/end byte offsets)
    - Code snippets extracted from source files when needed (not stored here)
    - Immutable (frozen) for hashability
    """
    file: str
    line: int
    column: int
    start: int = 0
    end: int = 0
    end_line: int = 0
    end_column: int = 0

    def __str__(self) -> str:
        """Format as file:line:column (Rust pattern)"""
        return f"{self.file}:{self.line}:{self.column}"


@dataclass(frozen=True)
class FileLocation:
    """
    Byte range [start, end) inside one source file.

    This is what analyses attach to lints; the reporting layer turns it into a
    SourceLocation through the FileLibrary.
    """
    start: int
    end: int
    file_id: int = 0


def generate_file_location(start: int, end: int, file_id: int = 0) -> FileLocation:
    return FileLocation(start, end, file_id)
