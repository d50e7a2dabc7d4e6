"""Failure policy and result reporting.

This module classifies an InvocationResult, decides whether a failure
aborts the build or is only reported, and persists the refreshed build
state for the sources that compiled.

Policy:
    - Any error diagnostic or non-zero exit code fails the unit
    - Failed + fail_on_error: raise CompilationFailureError with every
      diagnostic; build state is left untouched
    - Failed + not fail_on_error: log a warning and continue; sources that
      failed keep no state entry, so the next run retries them. A source no
      error names only counts as compiled if its output was rewritten during
      the run (javac writes nothing when any source fails)
    - Success: record every candidate's current timestamp (and digest)
"""

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, List, Optional, Set

from ..config.compiler_config import CompilerConfiguration, OutputMode
from .build_state import BuildState, BuildStateStore, SourceRecord, file_digest
from .compiler import Diagnostic, InvocationResult, Severity
from .errors import CompilationFailureError, StatePersistenceError
from .flag_builder import CompileUnit
from .source_scanner import CandidateFile
from .staleness import expected_output

#: Output mtime per stale source (relative path), None when absent
OutputSnapshot = Dict[str, Optional[int]]


@dataclass
class Outcome:
    """Result of applying the failure policy to one invocation.

    Attributes:
        success: Control-flow outcome (True unless the build must abort)
        compilation_failed: Whether the compiler reported a failure
        diagnostics: Every diagnostic from the compiler
        compiled: Stale sources that compiled successfully
        failed: Stale sources that did not compile
        warnings: Non-fatal problems (downgraded failures, state errors)
        state_written: Whether the build state was rewritten
    """

    success: bool
    compilation_failed: bool = False
    diagnostics: List[Diagnostic] = field(default_factory=list)
    compiled: List[CandidateFile] = field(default_factory=list)
    failed: List[CandidateFile] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    state_written: bool = False

    @property
    def errors(self) -> List[Diagnostic]:
        return [d for d in self.diagnostics if d.is_error]


def _path_key(path: Path) -> str:
    try:
        return str(Path(path).resolve())
    except OSError:
        return str(path)


class ResultReporter:
    """Applies the failure policy and refreshes the build state."""

    def __init__(self, config: CompilerConfiguration, store: Optional[BuildStateStore] = None):
        """Initialize reporter.

        Args:
            config: Configuration of the compile unit being reported
            store: Build state store (defaults to the configured state path)
        """
        self.config = config
        self.store = store or BuildStateStore(config.state_path)

    def report(
        self,
        result: InvocationResult,
        fail_on_error: bool = True,
        unit: Optional[CompileUnit] = None,
        previous_state: Optional[BuildState] = None,
        output_snapshot: Optional[OutputSnapshot] = None
    ) -> Outcome:
        """Classify a result and apply the failure policy.

        Args:
            result: Normalized invocation result
            fail_on_error: Raise on failure instead of downgrading to a warning
            unit: Compile unit whose state should be refreshed (optional)
            previous_state: State loaded before the run, if it applied
            output_snapshot: Output mtimes taken before the invocation (see
                snapshot_outputs); without it no source of a failed run
                counts as compiled

        Returns:
            Outcome describing what compiled

        Raises:
            CompilationFailureError: If the unit failed and fail_on_error is set
        """
        failed = result.failed
        self._log_diagnostics(result.diagnostics, failed and not fail_on_error)

        if failed and fail_on_error:
            count = len(result.errors)
            raise CompilationFailureError(
                f"Compilation failure: {count} error(s)",
                diagnostics=result.diagnostics,
                result=result
            )

        stale = list(unit.stale) if unit is not None else []
        if failed:
            failed_files = self._attribute_failures(stale, result.errors, output_snapshot)
            compiled = [c for c in stale if c not in failed_files]
            failed_list = [c for c in stale if c in failed_files]
        else:
            compiled = stale
            failed_list = []

        outcome = Outcome(
            success=True,
            compilation_failed=failed,
            diagnostics=list(result.diagnostics),
            compiled=compiled,
            failed=failed_list,
        )

        if failed:
            message = (
                f"Compilation failed ({len(result.errors)} error(s)) but failOnError is false; "
                f"{len(failed_list)} source(s) will be retried on the next build"
            )
            logging.warning(message)
            outcome.warnings.append(message)

        if unit is not None and unit.candidates:
            self.persist(unit, compiled, previous_state, outcome)

        return outcome

    def _log_diagnostics(self, diagnostics: List[Diagnostic], downgraded: bool) -> None:
        for diagnostic in diagnostics:
            if diagnostic.severity is Severity.ERROR:
                if downgraded:
                    logging.warning(str(diagnostic))
                else:
                    logging.error(str(diagnostic))
            elif diagnostic.severity is Severity.WARNING:
                logging.warning(str(diagnostic))
            else:
                logging.info(str(diagnostic))

    def _attribute_failures(
        self,
        stale: List[CandidateFile],
        errors: List[Diagnostic],
        output_snapshot: Optional[OutputSnapshot]
    ) -> Set[CandidateFile]:
        """Work out which stale sources failed.

        Only per-source output can be partially kept. When an error names
        no stale source, every stale source counts as failed. A source no
        error names still fails unless its output was rewritten by the run.
        """
        if self.config.output_mode is OutputMode.AGGREGATE or output_snapshot is None:
            return set(stale)

        by_path = {_path_key(c.path): c for c in stale}
        failed: Set[CandidateFile] = set()
        for error in errors:
            if error.file is None:
                return set(stale)
            candidate = by_path.get(_path_key(error.file))
            if candidate is None:
                return set(stale)
            failed.add(candidate)

        if not failed:
            return set(stale)

        for candidate in stale:
            if candidate not in failed and not self._output_rewritten(candidate, output_snapshot):
                logging.debug(f"No fresh output for {candidate.relative_path}; keeping it stale")
                failed.add(candidate)
        return failed

    def _output_mtime(self, candidate: CandidateFile) -> Optional[int]:
        output = expected_output(candidate, self.config.destination_dir, self.config.output_extension)
        try:
            return output.stat().st_mtime_ns
        except OSError:
            return None

    def snapshot_outputs(self, stale: List[CandidateFile]) -> OutputSnapshot:
        """Record the output mtime of each stale source before invoking the compiler."""
        return {c.relative_path: self._output_mtime(c) for c in stale}

    def _output_rewritten(self, candidate: CandidateFile, snapshot: OutputSnapshot) -> bool:
        current = self._output_mtime(candidate)
        if current is None:
            return False
        return current != snapshot.get(candidate.relative_path)

    def _record(self, candidate: CandidateFile) -> Optional[SourceRecord]:
        """Fresh state record, or None if the source changed during the run."""
        try:
            current_mtime = candidate.path.stat().st_mtime_ns
        except OSError:
            return None
        if current_mtime != candidate.mtime_ns:
            return None

        digest = file_digest(candidate.path) if self.config.use_content_hash else None
        return SourceRecord(mtime_ns=candidate.mtime_ns, digest=digest)

    def _carry_over(self, candidate: CandidateFile, record: Optional[SourceRecord]) -> Optional[SourceRecord]:
        """Previous record of an up-to-date source.

        An up-to-date source whose timestamp moved had its digest checked,
        so its record takes the new timestamp and the next run skips hashing.
        """
        if record is None or record.mtime_ns == candidate.mtime_ns:
            return record
        if self.config.use_content_hash and record.digest is not None:
            return replace(record, mtime_ns=candidate.mtime_ns)
        return record

    def needs_refresh(self, unit: CompileUnit, previous_state: Optional[BuildState]) -> bool:
        """Whether an up-to-date unit's state is out of date.

        True when sources were added or removed, or when an up-to-date
        source's recorded timestamp drifted.
        """
        if previous_state is None:
            return False
        if set(previous_state.sources) != {c.relative_path for c in unit.candidates}:
            return True
        return any(
            self._carry_over(c, previous_state.get(c.relative_path)) != previous_state.get(c.relative_path)
            for c in unit.candidates
        )

    def persist(
        self,
        unit: CompileUnit,
        compiled: List[CandidateFile],
        previous_state: Optional[BuildState],
        outcome: Optional[Outcome] = None
    ) -> bool:
        """Rewrite the build state to cover exactly the current candidates.

        Compiled sources get fresh records, up-to-date sources keep their
        previous records, failed sources get none.

        Returns:
            True if the state was written
        """
        compiled_set = set(compiled)
        stale_set = set(unit.stale)
        sources = {}

        for candidate in unit.candidates:
            if candidate in compiled_set:
                record = self._record(candidate)
            elif candidate not in stale_set and previous_state is not None:
                record = self._carry_over(candidate, previous_state.get(candidate.relative_path))
            else:
                record = None

            if record is not None:
                sources[candidate.relative_path] = record

        state = BuildState(
            destination_dir=str(Path(unit.destination_dir).resolve()),
            output_mode=self.config.output_mode.value,
            options_fingerprint=unit.options_fingerprint,
            sources=sources,
        )

        try:
            self.store.save(state)
        except StatePersistenceError as e:
            logging.warning(f"{e}; the next build will recompile everything")
            if outcome is not None:
                outcome.warnings.append(str(e))
            return False

        if outcome is not None:
            outcome.state_written = True
        return True


def report(
    result: InvocationResult,
    fail_on_error: bool,
    config: CompilerConfiguration,
    unit: Optional[CompileUnit] = None,
    previous_state: Optional[BuildState] = None,
    output_snapshot: Optional[OutputSnapshot] = None
) -> Outcome:
    """Apply the failure policy to a result (see ResultReporter)."""
    return ResultReporter(config).report(result, fail_on_error, unit, previous_state, output_snapshot)
