"""
Compilation core for jbuild.

This module provides the build system implementation including:
- Source set resolution with include/exclude patterns
- Staleness analysis against persisted build state
- Classpath and compiler argument assembly
- In-process and forked compiler invocation
- Failure policy and build state refresh
"""

from .build_state import BuildState, BuildStateStore, SourceRecord
from .compilation_executor import CompilationExecutor
from .compiler import (
    CompilerManager,
    Diagnostic,
    DiagnosticCollector,
    Forked,
    IDiagnosticListener,
    IInProcessCompiler,
    InProcess,
    InvocationResult,
    Severity,
)
from .errors import (
    CompilationFailureError,
    InvocationStartError,
    JBuildError,
    ResolutionError,
    StatePersistenceError,
)
from .flag_builder import ArgumentList, CompileUnit, FlagBuilder
from .orchestrator import BuildResult, CompileOrchestrator, ProjectBuilder, ProjectBuildResult
from .pattern_matcher import PatternMatcher
from .result_reporter import Outcome, ResultReporter
from .source_scanner import CandidateFile, SourceRoot, SourceScanner
from .staleness import StalenessAnalyzer

__all__ = [
    'ArgumentList',
    'BuildResult',
    'BuildState',
    'BuildStateStore',
    'CandidateFile',
    'CompilationExecutor',
    'CompilationFailureError',
    'CompileOrchestrator',
    'CompileUnit',
    'CompilerManager',
    'Diagnostic',
    'DiagnosticCollector',
    'FlagBuilder',
    'Forked',
    'IDiagnosticListener',
    'IInProcessCompiler',
    'InProcess',
    'InvocationResult',
    'InvocationStartError',
    'JBuildError',
    'Outcome',
    'PatternMatcher',
    'ProjectBuildResult',
    'ProjectBuilder',
    'ResolutionError',
    'ResultReporter',
    'Severity',
    'SourceRecord',
    'SourceRoot',
    'SourceScanner',
    'StalenessAnalyzer',
    'StatePersistenceError',
]
