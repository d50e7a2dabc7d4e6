"""
Compilation orchestration for jbuild.

This module coordinates one compile unit from source roots to persisted
build state, and a project build (main then test units):
- Source set resolution (include/exclude patterns)
- Staleness analysis against the persisted build state
- Classpath and argument assembly
- Compiler invocation (in-process or forked)
- Failure policy and build state refresh
- Artifact registration
"""

import logging
import time
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional

from ..config.compiler_config import CompilerConfiguration, OutputMode, SourceRole
from ..config.ini_parser import ProjectConfig
from ..services import IArtifactManager, IProjectManager, IToolchainManager
from .build_state import BuildStateStore
from .build_utils import remove_build_dir
from .compilation_executor import CompilationExecutor
from .compiler import CompilerManager, Diagnostic, Forked, InProcess, InvocationMode
from .flag_builder import CompileUnit, FlagBuilder, fingerprint
from .pattern_matcher import PatternMatcher
from .result_reporter import Outcome, ResultReporter
from .source_scanner import SourceScanner
from .staleness import StalenessAnalyzer, expected_output


@dataclass
class BuildResult:
    """Result of compiling one unit."""

    success: bool
    role: SourceRole
    destination_dir: Path
    message: str
    skipped: bool = False
    candidate_count: int = 0
    stale_count: int = 0
    outcome: Optional[Outcome] = None
    artifacts: List[Path] = field(default_factory=list)
    build_time: float = 0.0

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return self.outcome.diagnostics if self.outcome else []

    @property
    def warnings(self) -> List[str]:
        return self.outcome.warnings if self.outcome else []


@dataclass
class ProjectBuildResult:
    """Result of compiling a project's main and test units."""

    main: BuildResult
    test: BuildResult

    @property
    def success(self) -> bool:
        return self.main.success and self.test.success


class CompileOrchestrator:
    """
    Orchestrates compilation of one source set.

    Phases:
    1. Skip check
    2. Resolve candidate sources
    3. Load build state and compute the stale subset
    4. Build the argument list (creates the destination when needed)
    5. Invoke the compiler
    6. Apply the failure policy and refresh the build state
    7. Register the destination as the unit's artifact

    Example usage:
        orchestrator = CompileOrchestrator(compiler_manager=manager)
        result = orchestrator.compile(CompilerConfiguration(
            destination_dir=Path("target/classes"),
            source_roots=[Path("src/main/java")],
            release="17",
        ))
    """

    def __init__(
        self,
        compiler_manager: Optional[CompilerManager] = None,
        toolchain_manager: Optional[IToolchainManager] = None,
        artifact_manager: Optional[IArtifactManager] = None,
        executor: Optional[CompilationExecutor] = None
    ):
        """
        Initialize compile orchestrator.

        Args:
            compiler_manager: Registry of in-process compilers
            toolchain_manager: Toolchain lookup for forked compilation
            artifact_manager: Receives the built artifact path
            executor: Compiler invoker (built from the managers if omitted)
        """
        self.artifact_manager = artifact_manager
        self.executor = executor or CompilationExecutor(compiler_manager, toolchain_manager)

    @staticmethod
    def invocation_mode(config: CompilerConfiguration) -> InvocationMode:
        if config.fork:
            return Forked(
                executable=config.executable,
                tool_name=config.compiler_id,
                timeout=config.timeout,
                working_dir=config.working_dir,
                max_command_line=config.max_command_line,
            )
        return InProcess(compiler_id=config.compiler_id)

    def compile(self, config: CompilerConfiguration, artifact_id: Optional[str] = None) -> BuildResult:
        """
        Compile one unit.

        Args:
            config: Unit configuration
            artifact_id: Identifier the artifact is registered under
                (defaults to the unit role)

        Returns:
            BuildResult describing what happened

        Raises:
            ResolutionError: If sources cannot be resolved
            InvocationStartError: If the compiler cannot be started
            CompilationFailureError: If compilation fails and fail_on_error is set
        """
        start_time = time.time()
        artifact_id = artifact_id or config.role.value
        role = config.role.value

        if config.skip:
            logging.info(f"Not compiling {role} sources (skip is enabled)")
            return BuildResult(
                success=True,
                role=config.role,
                destination_dir=config.destination_dir,
                message="Skipped",
                skipped=True,
                build_time=time.time() - start_time,
            )

        matcher = PatternMatcher(config.includes, config.excludes, source_extension=config.source_extension)
        candidates = SourceScanner(matcher).resolve(config.source_roots)

        if not candidates:
            logging.info(f"No {role} sources to compile")
            return BuildResult(
                success=True,
                role=config.role,
                destination_dir=config.destination_dir,
                message="No sources to compile",
                build_time=time.time() - start_time,
            )

        flag_builder = FlagBuilder(config)
        options = flag_builder.build_options()
        options_fingerprint = fingerprint(options)

        store = BuildStateStore(config.state_path)
        analyzer = StalenessAnalyzer(
            config.destination_dir,
            output_mode=config.output_mode,
            output_extension=config.output_extension,
            aggregate_output=config.aggregate_output_path,
            use_content_hash=config.use_content_hash,
            options_fingerprint=options_fingerprint,
        )
        loaded_state = store.load()
        previous_state = loaded_state if analyzer.state_applies(loaded_state) else None
        stale = analyzer.compute_stale(candidates, previous_state)

        unit = CompileUnit(
            candidates=candidates,
            stale=stale,
            classpath=flag_builder.build_classpath(),
            destination_dir=config.destination_dir,
            options_fingerprint=options_fingerprint,
        )
        reporter = ResultReporter(config, store)

        if not stale:
            logging.info(f"Nothing to compile - all {role} classes are up to date")
            if reporter.needs_refresh(unit, previous_state):
                reporter.persist(unit, [], previous_state)
            self._register_artifact(artifact_id, config)
            return BuildResult(
                success=True,
                role=config.role,
                destination_dir=config.destination_dir,
                message="Up to date",
                candidate_count=len(candidates),
                artifacts=self._existing_outputs(config, candidates),
                build_time=time.time() - start_time,
            )

        logging.info(
            f"Compiling {len(stale)} {role} source file(s) with {config.compiler_id} "
            f"[{'forked' if config.fork else 'in-process'}] to {config.destination_dir}"
        )
        arguments = flag_builder.build(unit, options)
        output_snapshot = reporter.snapshot_outputs(stale)
        result = self.executor.invoke(arguments, self.invocation_mode(config))
        outcome = reporter.report(result, config.fail_on_error, unit, previous_state, output_snapshot)

        if not outcome.compilation_failed:
            self._register_artifact(artifact_id, config)

        return BuildResult(
            success=outcome.success,
            role=config.role,
            destination_dir=config.destination_dir,
            message="Compilation finished with errors" if outcome.compilation_failed else "Compilation successful",
            candidate_count=len(candidates),
            stale_count=len(stale),
            outcome=outcome,
            artifacts=self._existing_outputs(config, outcome.compiled),
            build_time=time.time() - start_time,
        )

    def _register_artifact(self, artifact_id: str, config: CompilerConfiguration) -> None:
        if self.artifact_manager is not None and config.destination_dir.exists():
            self.artifact_manager.set_path(artifact_id, config.destination_dir)

    @staticmethod
    def _existing_outputs(config: CompilerConfiguration, candidates) -> List[Path]:
        """Output artifacts that exist for the given sources."""
        if config.output_mode is OutputMode.AGGREGATE:
            output = config.aggregate_output_path
            return [output] if output.exists() and candidates else []
        outputs = (expected_output(c, config.destination_dir, config.output_extension) for c in candidates)
        return [p for p in outputs if p.exists()]


class ProjectBuilder:
    """Compiles a project's main sources, then its test sources."""

    def __init__(
        self,
        orchestrator: Optional[CompileOrchestrator] = None,
        project_manager: Optional[IProjectManager] = None
    ):
        self.orchestrator = orchestrator or CompileOrchestrator()
        self.project_manager = project_manager

    def build(
        self,
        project: ProjectConfig,
        skip_main: bool = False,
        skip_test: bool = False,
        fork: Optional[bool] = None,
        executable: Optional[Path] = None,
        fail_on_error: Optional[bool] = None
    ) -> ProjectBuildResult:
        """
        Compile main and test sources.

        Args:
            project: Parsed project configuration
            skip_main: Skip the main unit
            skip_test: Skip the test unit
            fork: Override fork mode for both units
            executable: Override the compiler executable for both units
            fail_on_error: Override the failure policy for both units

        Returns:
            ProjectBuildResult with both unit results
        """
        overrides = {}
        if fork is not None:
            overrides["fork"] = fork
        if executable is not None:
            overrides["executable"] = Path(executable)
        if fail_on_error is not None:
            overrides["fail_on_error"] = fail_on_error

        main_config = replace(project.main_configuration(), **overrides)
        if skip_main:
            main_config = replace(main_config, skip=True)
        main_result = self.orchestrator.compile(main_config, f"{project.name}:main")

        test_config = replace(project.test_configuration(), **overrides)
        if skip_test:
            test_config = replace(test_config, skip=True)
        test_result = self.orchestrator.compile(test_config, f"{project.name}:test")

        return ProjectBuildResult(main=main_result, test=test_result)

    def clean(self, project: str) -> None:
        """Remove a project's build outputs and build state."""
        if self.project_manager is None:
            raise ValueError("Cleaning requires a project manager")

        directories = self.project_manager.get_build_directories(project)
        for directory in (directories.output_dir, directories.test_output_dir):
            state_dir = directory.resolve().parent / ".jbuild-state"
            remove_build_dir(directory)
            remove_build_dir(state_dir)
        remove_build_dir(directories.build_dir)
        logging.info(f"Cleaned build outputs of {project}")
