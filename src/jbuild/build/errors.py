"""Exception hierarchy for the compilation core.

Resolution and invocation-start errors are fatal and propagate to the caller
unchanged. Compilation failures carry the complete diagnostic list so the
caller can render every message, not only the first one.
"""

from typing import TYPE_CHECKING, List, Optional

if TYPE_CHECKING:
    from .compiler import Diagnostic, InvocationResult


class JBuildError(Exception):
    """Base exception for jbuild errors."""
    pass


class ResolutionError(JBuildError):
    """Raised when a source root is unreadable or a pattern is malformed."""
    pass


class InvocationStartError(JBuildError):
    """Raised when the compiler cannot be located, spawned or initialized."""
    pass


class StatePersistenceError(JBuildError):
    """Raised when the build state file cannot be written."""
    pass


class CompilationFailureError(JBuildError):
    """Raised when compilation fails and failOnError is enabled.

    Attributes:
        diagnostics: Every diagnostic the compiler reported
        result: The invocation result that triggered the failure
    """

    def __init__(
        self,
        message: str,
        diagnostics: Optional[List["Diagnostic"]] = None,
        result: Optional["InvocationResult"] = None
    ):
        super().__init__(message)
        self.diagnostics = list(diagnostics or [])
        self.result = result

    def __str__(self) -> str:
        lines = [super().__str__()]
        for diagnostic in self.diagnostics:
            lines.append(str(diagnostic))
        return "\n".join(lines)
