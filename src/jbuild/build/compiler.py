"""Compiler abstractions.

This module defines the types shared by both invocation strategies:
- Diagnostic records and the uniform InvocationResult
- The listener interface in-process compilers report diagnostics through
- The in-process compiler interface and its registry (CompilerManager)
- The invocation mode variant (InProcess | Forked)
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

from ..config.compiler_config import DEFAULT_MAX_COMMAND_LINE
from .errors import InvocationStartError


class Severity(Enum):
    """Diagnostic severity."""

    ERROR = "error"
    WARNING = "warning"
    NOTE = "note"
    OTHER = "other"


@dataclass(frozen=True)
class Diagnostic:
    """A single compiler message."""

    severity: Severity
    message: str
    file: Optional[Path] = None
    line: Optional[int] = None
    column: Optional[int] = None

    @property
    def is_error(self) -> bool:
        return self.severity is Severity.ERROR

    def __str__(self) -> str:
        location = ""
        if self.file is not None:
            location = str(self.file)
            if self.line is not None:
                location += f":[{self.line}"
                if self.column is not None:
                    location += f",{self.column}"
                location += "]"
            location += " "
        return f"[{self.severity.value.upper()}] {location}{self.message}"


@dataclass
class InvocationResult:
    """Normalized outcome of one compiler invocation.

    Attributes:
        success: Whether the compiler reported success
        diagnostics: Every diagnostic emitted, in emission order
        exit_code: Process exit code (forked mode only)
        output: Raw merged stdout/stderr text (forked mode only)
    """

    success: bool
    diagnostics: List[Diagnostic] = field(default_factory=list)
    exit_code: Optional[int] = None
    output: str = ""

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.ERROR]

    @property
    def warnings(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.severity is Severity.WARNING]

    @property
    def failed(self) -> bool:
        """A result fails on any error diagnostic or non-zero exit code."""
        if not self.success or self.errors:
            return True
        return self.exit_code is not None and self.exit_code != 0


class IDiagnosticListener(ABC):
    """Receives diagnostics from an in-process compiler."""

    @abstractmethod
    def report(self, diagnostic: Diagnostic) -> None:
        pass


class DiagnosticCollector(IDiagnosticListener):
    """Listener that keeps every reported diagnostic."""

    def __init__(self) -> None:
        self.diagnostics: List[Diagnostic] = []

    def report(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)


class IInProcessCompiler(ABC):
    """Interface for compilers loaded into the current process."""

    @abstractmethod
    def compile(self, arguments: List[str], listener: IDiagnosticListener) -> bool:
        """Compile with the given argument list.

        Args:
            arguments: Complete compiler argument list (sources last)
            listener: Receives every diagnostic

        Returns:
            True if compilation succeeded
        """
        pass


class CompilerManager:
    """Registry of in-process compilers keyed by compiler id."""

    def __init__(self, compilers: Optional[Dict[str, IInProcessCompiler]] = None):
        self._compilers: Dict[str, IInProcessCompiler] = dict(compilers or {})

    def register(self, compiler_id: str, compiler: IInProcessCompiler) -> None:
        self._compilers[compiler_id] = compiler

    def get_compiler(self, compiler_id: str) -> IInProcessCompiler:
        """Look up an in-process compiler.

        Raises:
            InvocationStartError: If no compiler is registered for the id
        """
        try:
            return self._compilers[compiler_id]
        except KeyError:
            available = ", ".join(sorted(self._compilers)) or "none"
            raise InvocationStartError(
                f"No in-process compiler registered for '{compiler_id}' "
                f"(available: {available}). Enable fork mode to use an external compiler."
            ) from None


@dataclass(frozen=True)
class InProcess:
    """Invoke a registered in-process compiler."""

    compiler_id: str = "javac"


@dataclass(frozen=True)
class Forked:
    """Invoke an external compiler executable.

    Attributes:
        executable: Explicit executable path (None resolves via toolchain/PATH)
        tool_name: Tool name used for toolchain and PATH lookup
        timeout: Seconds before the process tree is killed
        working_dir: Working directory for the child process
        max_command_line: Command line length above which the arguments
            are passed through an @argument file
    """

    executable: Optional[Path] = None
    tool_name: str = "javac"
    timeout: Optional[float] = None
    working_dir: Optional[Path] = None
    max_command_line: int = DEFAULT_MAX_COMMAND_LINE


InvocationMode = Union[InProcess, Forked]
