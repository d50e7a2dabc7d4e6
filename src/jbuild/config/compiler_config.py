"""Typed configuration for one compile unit.

The outer command surface (CLI, ini loader, or any host build tool) fills a
CompilerConfiguration with primitive values and passes it to the
orchestrator. Nothing in the compilation core knows how the fields were
populated.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import List, Optional


DEFAULT_LANGUAGE_LEVEL = "1.8"
DEFAULT_MAX_COMMAND_LINE = 8000


class SourceRole(Enum):
    """Role of a source set within a project."""

    MAIN = "main"
    TEST = "test"


class OutputMode(Enum):
    """How compiler outputs relate to source inputs."""

    PER_SOURCE = "per-source"   # One output artifact per source file
    AGGREGATE = "aggregate"     # One output artifact for the whole set


@dataclass
class CompilerConfiguration:
    """Configuration for compiling one source set (main or test).

    Attributes:
        destination_dir: Directory receiving compiled outputs
        source_roots: Source directories to scan
        role: Whether this unit compiles main or test sources
        includes: Include patterns (empty means every source file)
        excludes: Exclude patterns (excludes win over includes)
        classpath: Ordered classpath entries
        processor_path: Annotation processor path entries
        source: Source language level (e.g. "17")
        target: Target bytecode level
        release: Release level, takes precedence over source/target
        encoding: Source file encoding
        compiler_args: Extra raw arguments, passed through unmodified
        show_warnings: Whether the compiler should emit warnings
        show_deprecation: Whether to report deprecated API usage
        debug: Whether to generate debug information
        parameters: Whether to store formal parameter names
        verbose: Whether the compiler runs in verbose mode
        annotation_processing: Whether annotation processing is enabled
        annotation_processors: Explicit processor class names
        generated_sources_dir: Output directory for generated sources
        fork: Run the compiler as an external process
        executable: Explicit compiler executable (forked mode)
        compiler_id: Compiler identifier (tool name / in-process registry key)
        aggregate_output: Compiler produces one output for all sources
        aggregate_output_name: File name of the aggregate output
        source_extension: Recognized source file extension
        output_extension: Extension of per-source outputs
        skip: Skip this unit entirely
        fail_on_error: Raise on compilation failure instead of warning
        use_content_hash: Record content hashes to resolve timestamp skew
        state_file: Override location of the build state file
        timeout: Seconds before a forked compiler is killed
        max_command_line: Command line length that triggers an argument file
        working_dir: Working directory for the forked compiler
    """

    destination_dir: Path
    source_roots: List[Path] = field(default_factory=list)
    role: SourceRole = SourceRole.MAIN
    includes: List[str] = field(default_factory=list)
    excludes: List[str] = field(default_factory=list)
    classpath: List[Path] = field(default_factory=list)
    processor_path: List[Path] = field(default_factory=list)
    source: Optional[str] = None
    target: Optional[str] = None
    release: Optional[str] = None
    encoding: Optional[str] = None
    compiler_args: List[str] = field(default_factory=list)
    show_warnings: bool = True
    show_deprecation: bool = False
    debug: bool = True
    parameters: bool = False
    verbose: bool = False
    annotation_processing: bool = True
    annotation_processors: List[str] = field(default_factory=list)
    generated_sources_dir: Optional[Path] = None
    fork: bool = False
    executable: Optional[Path] = None
    compiler_id: str = "javac"
    aggregate_output: bool = False
    aggregate_output_name: Optional[str] = None
    source_extension: str = ".java"
    output_extension: str = ".class"
    skip: bool = False
    fail_on_error: bool = True
    use_content_hash: bool = True
    state_file: Optional[Path] = None
    timeout: Optional[float] = None
    max_command_line: int = DEFAULT_MAX_COMMAND_LINE
    working_dir: Optional[Path] = None

    def __post_init__(self) -> None:
        self.destination_dir = Path(self.destination_dir)
        self.source_roots = [Path(p) for p in self.source_roots]
        self.classpath = [Path(p) for p in self.classpath]
        self.processor_path = [Path(p) for p in self.processor_path]
        if self.executable is not None:
            self.executable = Path(self.executable)
        if self.state_file is not None:
            self.state_file = Path(self.state_file)
        if self.generated_sources_dir is not None:
            self.generated_sources_dir = Path(self.generated_sources_dir)
        if self.working_dir is not None:
            self.working_dir = Path(self.working_dir)

    @property
    def output_mode(self) -> OutputMode:
        return OutputMode.AGGREGATE if self.aggregate_output else OutputMode.PER_SOURCE

    @property
    def aggregate_output_path(self) -> Path:
        """Path of the single output artifact in aggregate mode."""
        name = self.aggregate_output_name or f"compiled{self.output_extension}"
        return self.destination_dir / name

    @property
    def state_path(self) -> Path:
        """Location of the build state file for this destination.

        The state lives next to the destination directory, not inside it, so
        packaging the destination never picks it up.
        """
        if self.state_file is not None:
            return self.state_file
        destination = self.destination_dir.resolve()
        return destination.parent / ".jbuild-state" / f"{destination.name}.json"
