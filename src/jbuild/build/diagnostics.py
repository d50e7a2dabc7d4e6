"""Diagnostic parsing for forked compiler output.

External compilers only give us text. This module turns javac-style and
gcc-style message lines into Diagnostic records:

    src/main/java/Foo.java:12: error: cannot find symbol
    src/main/java/Foo.java:12:5: warning: unused variable
    error: invalid flag: -foo
    Note: Some input files use unchecked or unsafe operations.

Lines that follow a message (source echo, caret marker, symbol/location
details) are folded into that message. Count summaries ("2 errors") are
dropped. Text that precedes any recognized message is kept as OTHER.
"""

import re
from pathlib import Path
from typing import List, Optional

from .compiler import Diagnostic, Severity

_LOCATED = re.compile(
    r"^(?P<file>.+?\.\w+):(?P<line>\d+):(?:(?P<column>\d+):)?\s*"
    r"(?P<severity>error|warning|note|Error|Warning|Note):\s*(?P<message>.*)$"
)
_UNLOCATED = re.compile(
    r"^(?P<severity>error|warning|note|Error|Warning|Note):\s*(?P<message>.*)$"
)
_SUMMARY = re.compile(r"^\d+\s+(errors?|warnings?)$")


def _severity(text: str) -> Severity:
    return Severity(text.lower())


class _Pending:
    """Diagnostic under construction; continuation lines extend it."""

    def __init__(
        self,
        severity: Severity,
        message: str,
        file: Optional[Path] = None,
        line: Optional[int] = None,
        column: Optional[int] = None
    ):
        self.severity = severity
        self.lines = [message]
        self.file = file
        self.line = line
        self.column = column

    def build(self) -> Diagnostic:
        message = "\n".join(self.lines).rstrip()
        return Diagnostic(self.severity, message, self.file, self.line, self.column)


class DiagnosticParser:
    """Parses compiler console output into diagnostics."""

    def __init__(self, working_dir: Optional[Path] = None):
        """Initialize parser.

        Args:
            working_dir: Directory relative file names are resolved against
        """
        self.working_dir = Path(working_dir) if working_dir else None

    def _resolve(self, file_name: str) -> Path:
        path = Path(file_name)
        if not path.is_absolute() and self.working_dir is not None:
            path = self.working_dir / path
        return path

    def parse(self, text: str) -> List[Diagnostic]:
        """Parse compiler output.

        Args:
            text: Merged stdout/stderr text

        Returns:
            Diagnostics in output order
        """
        diagnostics: List[Diagnostic] = []
        pending: Optional[_Pending] = None
        orphan_lines: List[str] = []

        def flush() -> None:
            nonlocal pending
            if pending is not None:
                diagnostics.append(pending.build())
                pending = None

        for raw_line in text.splitlines():
            line = raw_line.rstrip()
            stripped = line.strip()

            if _SUMMARY.match(stripped):
                continue

            match = _LOCATED.match(stripped)
            if match:
                flush()
                pending = _Pending(
                    _severity(match.group("severity")),
                    match.group("message"),
                    file=self._resolve(match.group("file")),
                    line=int(match.group("line")),
                    column=int(match.group("column")) if match.group("column") else None,
                )
                continue

            match = _UNLOCATED.match(stripped)
            if match:
                flush()
                pending = _Pending(_severity(match.group("severity")), match.group("message"))
                continue

            if not stripped:
                continue

            if pending is not None:
                pending.lines.append(line)
            else:
                orphan_lines.append(line)

        flush()

        if orphan_lines:
            diagnostics.insert(0, Diagnostic(Severity.OTHER, "\n".join(orphan_lines)))

        return diagnostics


def parse_output(text: str, working_dir: Optional[Path] = None) -> List[Diagnostic]:
    """Parse compiler output into diagnostics."""
    return DiagnosticParser(working_dir).parse(text)
