"""
Shared fixtures for compilation core tests.

StubCompiler stands in for a real in-process compiler: it reads -d and
-sourcepath from its arguments and writes one output per source (a copy
of the source text) or a single aggregate output, so the build state and
staleness logic can be exercised without a JDK.
"""

import os
from pathlib import Path
from typing import List, Optional, Set, Tuple

import pytest

from jbuild.build import (
    CompileOrchestrator,
    CompilerManager,
    Diagnostic,
    IDiagnosticListener,
    IInProcessCompiler,
    Severity,
)
from jbuild.config import CompilerConfiguration
from jbuild.services import InMemoryArtifactManager


class StubCompiler(IInProcessCompiler):
    """In-process compiler double that records its invocations."""

    def __init__(self) -> None:
        self.calls: List[List[str]] = []
        self.fail_on: Set[str] = set()
        self.aggregate_name: Optional[str] = None
        self.warn = False
        # Like javac: write no outputs at all when any source fails
        self.all_or_nothing = False

    @staticmethod
    def _option(arguments: List[str], name: str) -> Optional[str]:
        if name in arguments:
            return arguments[arguments.index(name) + 1]
        return None

    def sources(self, call: int = -1) -> List[str]:
        return [a for a in self.calls[call] if a.endswith(".java")]

    def compile(self, arguments: List[str], listener: IDiagnosticListener) -> bool:
        self.calls.append(list(arguments))
        destination = Path(self._option(arguments, "-d"))
        source_path = self._option(arguments, "-sourcepath") or ""
        roots = [Path(p).resolve() for p in source_path.split(os.pathsep) if p]

        success = True
        outputs: List[Tuple[Path, Path]] = []
        for argument in arguments:
            if not argument.endswith(".java"):
                continue
            source = Path(argument).resolve()
            if self.warn:
                listener.report(Diagnostic(Severity.WARNING, "[deprecation] old API", source, 1, 1))
            if source.name in self.fail_on:
                listener.report(Diagnostic(Severity.ERROR, "cannot find symbol", source, 3, 9))
                success = False
                continue
            if self.aggregate_name is None:
                root = next(r for r in roots if r in source.parents)
                outputs.append((source, destination / source.relative_to(root).with_suffix(".class")))

        if success or not self.all_or_nothing:
            for source, output in outputs:
                output.parent.mkdir(parents=True, exist_ok=True)
                output.write_bytes(source.read_bytes())
        if self.aggregate_name is not None and success:
            (destination / self.aggregate_name).write_bytes(b"\xca\xfe\xba\xbe")
        return success


def write_source(root: Path, relative: str, body: Optional[str] = None) -> Path:
    """Write a Java source file under a source root."""
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    class_name = Path(relative).stem
    path.write_text(body if body is not None else f"public class {class_name} {{}}\n")
    return path


def bump_mtime(path: Path, seconds: int = 10) -> None:
    """Move a file's mtime forward without touching its contents."""
    stat = path.stat()
    os.utime(path, ns=(stat.st_atime_ns, stat.st_mtime_ns + seconds * 1_000_000_000))


@pytest.fixture
def source_root(tmp_path):
    root = tmp_path / "src" / "main" / "java"
    root.mkdir(parents=True)
    return root


@pytest.fixture
def destination(tmp_path):
    return tmp_path / "target" / "classes"


@pytest.fixture
def stub_compiler():
    return StubCompiler()


@pytest.fixture
def artifact_manager():
    return InMemoryArtifactManager()


@pytest.fixture
def orchestrator(stub_compiler, artifact_manager):
    return CompileOrchestrator(
        compiler_manager=CompilerManager({"javac": stub_compiler}),
        artifact_manager=artifact_manager,
    )


@pytest.fixture
def make_config(source_root, destination):
    """Factory for a unit configuration with an explicit language level."""

    def factory(**overrides) -> CompilerConfiguration:
        values = dict(
            destination_dir=destination,
            source_roots=[source_root],
            source="17",
            target="17",
            encoding="UTF-8",
        )
        values.update(overrides)
        return CompilerConfiguration(**values)

    return factory


@pytest.fixture
def write():
    return write_source


@pytest.fixture
def touch():
    return bump_mtime
