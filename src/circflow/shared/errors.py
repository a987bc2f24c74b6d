"""
Diagnostics

Rust Pattern: rustc_errors::Diagnostic / rustc_errors::Emitter

Analyses never raise for findings in user code: they return lints, and the
reporting layer turns those into diagnostics with a severity (error, warning,
note). Exceptions are reserved for source that cannot be analysed at all and
for broken internal invariants.
"""

import os
import sys
from dataclasses import dataclass
from enum import Enum
from typing import Optional, List, Dict

from .source_location import SourceLocation
from ..utils.config import COLOR_ENV_VAR


class Severity(Enum):
    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"


@dataclass
class Error:
    """
    One diagnostic, whatever its severity.

    Rust Pattern: rustc_errors::Diagnostic
    """
    message: str
    location: Optional[SourceLocation]
    code: Optional[str] = None
    help: Optional[str] = None
    note: Optional[str] = None
    label: Optional[str] = None
    severity: Severity = Severity.ERROR


# ---------------------------------------------------------------------------
# Terminal styling
# ---------------------------------------------------------------------------

_FORCE_ON = ("1", "true", "yes", "always")
_FORCE_OFF = ("0", "false", "no", "never")


def _color_enabled() -> bool:
    """NO_COLOR wins, then CIRCFLOW_COLOR, then whether stderr is a terminal"""
    if os.environ.get("NO_COLOR"):
        return False
    forced = os.environ.get(COLOR_ENV_VAR, "").lower()
    if forced in _FORCE_OFF:
        return False
    if forced in _FORCE_ON:
        return True
    return sys.stderr.isatty()


class _Palette:
    """ANSI escapes; a disabled palette returns text untouched"""

    BOLD = "\033[1m"
    RESET = "\033[0m"
    BLUE = "\033[34m"
    CYAN = "\033[36m"
    SEVERITY = {
        Severity.ERROR: "\033[31m",
        Severity.WARNING: "\033[33m",
        Severity.NOTE: "\033[32m",
    }

    def __init__(self, enabled: bool):
        self.enabled = enabled

    def paint(self, text: str, *codes: str) -> str:
        if not self.enabled or not codes:
            return text
        return "".join(codes) + text + self.RESET

    def strong(self, text: str) -> str:
        return self.paint(text, self.BOLD)

    def gutter(self, text: str) -> str:
        return self.paint(text, self.BOLD, self.BLUE)

    def marker(self, text: str) -> str:
        return self.paint(text, self.BOLD, self.CYAN)

    def level(self, severity: Severity, text: str) -> str:
        return self.paint(text, self.BOLD, self.SEVERITY[severity])


# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------

class _DiagnosticRenderer:
    """
    Renders diagnostics in rustc style.

    Plain output for a warning with a one-line span::

        warning[L0202]: Loop may overflow
         --> main.circom:5:9
          |
        5 |         i = i - 1;
          |         ^^^^^^^^^
    """

    def __init__(self, source_files: Dict[str, str], palette: _Palette):
        self.source_files = source_files
        self.palette = palette

    def render(self, diag: Error) -> str:
        lines = [self._header(diag)]
        loc = diag.location
        source = self.source_files.get(loc.file) if loc is not None else None
        if source is None:
            where = str(loc) if loc is not None else "<unknown location>"
            lines.append(self.palette.gutter(" --> ") + where)
            width = 1
        else:
            width = self._snippet(lines, diag, source)
        lines.extend(self._annotations(diag, width))
        return "\n".join(lines)

    def _header(self, diag: Error) -> str:
        tag = f"{diag.severity.value}[{diag.code}]" if diag.code else diag.severity.value
        return self.palette.level(diag.severity, tag) + self.palette.strong(f": {diag.message}")

    def _snippet(self, lines: List[str], diag: Error, source: str) -> int:
        """Append the location, source lines and carets; return the gutter width"""
        loc = diag.location
        src_lines = source.split("\n")
        first = loc.line
        last = loc.end_line if loc.end_line and loc.end_line >= first else first
        last = min(last, max(len(src_lines), first))
        width = len(str(last))
        blank = " " * (width + 1)

        lines.append(self.palette.gutter(" " * width + "--> ") + str(loc))
        lines.append(self.palette.gutter(blank + "|"))
        for line_num in range(first, last + 1):
            text = src_lines[line_num - 1] if line_num <= len(src_lines) else ""
            lines.append(self.palette.gutter(str(line_num).rjust(width) + " | ") + text)

            start = max(loc.column - 1, 0) if line_num == first else 0
            if line_num == last and loc.end_column:
                end = loc.end_column - 1
            else:
                end = len(text.rstrip())
            carets = " " * start + "^" * max(1, end - start)
            if line_num == last and diag.label:
                carets += f" {diag.label}"
            lines.append(self.palette.gutter(blank + "| ") + self.palette.level(diag.severity, carets))
        return width

    def _annotations(self, diag: Error, width: int) -> List[str]:
        extra = [(kind, text) for kind, text in (("help", diag.help), ("note", diag.note)) if text]
        if not extra:
            return []
        blank = " " * (width + 1)
        out = [self.palette.gutter(blank + "|")]
        for kind, text in extra:
            out.append(self.palette.marker(f"{blank}= ") + self.palette.strong(f"{kind}: ") + text)
        return out


def render_diagnostic(diag: Error, source_files: Dict[str, str], color: bool = False) -> str:
    return _DiagnosticRenderer(source_files, _Palette(color)).render(diag)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" + ("" if count == 1 else "s")


# ---------------------------------------------------------------------------
# ErrorReporter
# ---------------------------------------------------------------------------

class ErrorReporter:
    """
    Collects diagnostics of one analysis run and renders them.

    Rust Pattern: rustc_errors::Emitter

    `source_files` maps file names to their text, for snippets.
    """

    def __init__(self, source_files: Dict[str, str]):
        self.source_files = source_files
        self.errors: List[Error] = []

    def emit(self, diag: Error) -> None:
        self.errors.append(diag)

    def report(
        self,
        message: str,
        location: Optional[SourceLocation],
        severity: Severity = Severity.ERROR,
        code: Optional[str] = None,
        help: Optional[str] = None,
        note: Optional[str] = None,
        label: Optional[str] = None,
    ) -> None:
        self.emit(Error(message, location, code=code, help=help, note=note,
                        label=label, severity=severity))

    def report_error(self, message: str, location: Optional[SourceLocation], **kwargs) -> None:
        self.report(message, location, Severity.ERROR, **kwargs)

    def count(self, severity: Severity) -> int:
        return sum(1 for diag in self.errors if diag.severity == severity)

    def has_errors(self) -> bool:
        return self.count(Severity.ERROR) > 0

    def format_error(self, error: Error, color: Optional[bool] = None) -> str:
        enabled = _color_enabled() if color is None else color
        return render_diagnostic(error, self.source_files, color=enabled)

    def _summary(self, palette: _Palette) -> Optional[str]:
        errors = self.count(Severity.ERROR)
        if errors:
            text = f"aborting due to {_plural(errors, 'previous error')}"
            return palette.level(Severity.ERROR, "error") + palette.strong(f": {text}")
        warnings = self.count(Severity.WARNING)
        if warnings:
            text = f"{_plural(warnings, 'warning')} emitted"
            return palette.level(Severity.WARNING, "warning") + palette.strong(f": {text}")
        return None

    def format_all_errors(self, color: Optional[bool] = None) -> str:
        """Every diagnostic in report order, followed by a summary line"""
        enabled = _color_enabled() if color is None else color
        blocks = [self.format_error(diag, color=enabled) for diag in self.errors]
        summary = self._summary(_Palette(enabled))
        if summary:
            blocks.append(summary)
        return "\n\n".join(blocks)


# ============================================================================
# Exception Classes
# ============================================================================

class CircflowError(Exception):
    """A circuit that cannot be analysed"""

    def __init__(self, message: str, location: Optional[SourceLocation] = None):
        super().__init__(message)
        self.message = message
        self.location = location

    def __str__(self):
        return f"{self.message}\n --> {self.location}" if self.location else self.message


class CircflowSourceError(CircflowError):
    """
    Source that never reaches the analyses (syntax errors).

    Findings of the analyses themselves are lints, not exceptions.
    """

    def __init__(self,
                 message: str,
                 location: Optional[SourceLocation] = None,
                 error_code: str = "E0001",
                 source_code: Optional[str] = None,
                 help: Optional[str] = None):
        super().__init__(message, location)
        self.error_code = error_code
        self.source_code = source_code
        self.help_text = help

    def __str__(self):
        sources = {}
        if self.source_code and self.location:
            sources[self.location.file] = self.source_code
        diag = Error(self.message, self.location, code=self.error_code, help=self.help_text)
        return render_diagnostic(diag, sources)


class CircflowImplementationError(Exception):
    """
    Broken internal invariant (not an error in the user's circuit).

    Raised when an earlier phase admitted a program the flow analyses cannot
    assume, e.g. a CFG lookup that finds no node. Never converted to a lint.
    """

    def __init__(self, message: str, error_code: str = "E9999"):
        super().__init__(message)
        self.message = message
        self.error_code = error_code

    def __str__(self):
        return f"[{self.error_code}] {self.message}"


class FlowGraphLookupError(CircflowImplementationError):
    """No CFG node matches a location or identity token"""

    def __init__(self, message: str):
        super().__init__(message, error_code="E9001")


class UndeclaredAssignmentError(CircflowImplementationError):
    """Assignment to (or query of) a name with no declaration on the path"""

    def __init__(self, message: str):
        super().__init__(message, error_code="E9002")
