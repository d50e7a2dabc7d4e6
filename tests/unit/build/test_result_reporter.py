"""
Unit tests for ResultReporter (failure policy and state refresh).
"""

import logging
from unittest.mock import patch

import pytest

from jbuild.build.build_state import BuildStateStore
from jbuild.build.compiler import Diagnostic, InvocationResult, Severity
from jbuild.build.errors import CompilationFailureError, StatePersistenceError
from jbuild.build.flag_builder import CompileUnit
from jbuild.build.result_reporter import ResultReporter, report
from jbuild.build.source_scanner import SourceScanner


@pytest.fixture
def unit(source_root, destination, write):
    write(source_root, "A.java")
    write(source_root, "B.java")
    candidates = SourceScanner().resolve([source_root])
    return CompileUnit(candidates, list(candidates), [destination], destination, "fp")


def error_in(path, message="cannot find symbol"):
    return Diagnostic(Severity.ERROR, message, path, 1, 1)


class TestResultReporter:
    """Test suite for ResultReporter.report."""

    def test_success_records_every_source(self, make_config, unit):
        config = make_config()

        outcome = ResultReporter(config).report(InvocationResult(success=True, exit_code=0), True, unit)

        assert outcome.success
        assert not outcome.compilation_failed
        assert outcome.compiled == unit.stale
        assert outcome.state_written

        state = BuildStateStore(config.state_path).load()
        assert set(state.sources) == {"A.java", "B.java"}
        assert state.options_fingerprint == "fp"
        assert state.sources["A.java"].digest is not None

    def test_digest_not_recorded_when_disabled(self, make_config, unit):
        config = make_config(use_content_hash=False)

        ResultReporter(config).report(InvocationResult(success=True), True, unit)

        state = BuildStateStore(config.state_path).load()
        assert state.sources["A.java"].digest is None

    def test_failure_raises_with_all_diagnostics(self, make_config, unit):
        config = make_config()
        diagnostics = [
            Diagnostic(Severity.WARNING, "deprecated"),
            error_in(unit.stale[0].path),
            error_in(unit.stale[1].path, "incompatible types"),
        ]

        with pytest.raises(CompilationFailureError) as exc_info:
            ResultReporter(config).report(InvocationResult(success=False, diagnostics=diagnostics), True, unit)

        assert exc_info.value.diagnostics == diagnostics
        assert "2 error(s)" in str(exc_info.value)
        assert exc_info.value.result is not None
        assert not config.state_path.exists()

    def test_nonzero_exit_fails(self, make_config):
        with pytest.raises(CompilationFailureError):
            report(InvocationResult(success=True, exit_code=1), True, make_config())

    def test_downgraded_failure(self, make_config, unit, destination, caplog):
        config = make_config()
        reporter = ResultReporter(config)
        snapshot = reporter.snapshot_outputs(unit.stale)
        destination.mkdir(parents=True)
        (destination / "A.class").write_bytes(b"")
        result = InvocationResult(success=False, diagnostics=[error_in(unit.stale[1].path)])

        with caplog.at_level(logging.WARNING):
            outcome = reporter.report(result, False, unit, output_snapshot=snapshot)

        assert outcome.success
        assert outcome.compilation_failed
        assert [c.relative_path for c in outcome.failed] == ["B.java"]
        assert [c.relative_path for c in outcome.compiled] == ["A.java"]
        assert len(outcome.errors) == 1
        # Errors are logged as warnings when the failure is downgraded
        assert not [r for r in caplog.records if r.levelno >= logging.ERROR]

        state = BuildStateStore(config.state_path).load()
        assert set(state.sources) == {"A.java"}

    def test_source_without_fresh_output_fails(self, make_config, unit, destination):
        config = make_config()
        destination.mkdir(parents=True)
        (destination / "A.class").write_bytes(b"old")
        reporter = ResultReporter(config)
        snapshot = reporter.snapshot_outputs(unit.stale)
        result = InvocationResult(success=False, diagnostics=[error_in(unit.stale[1].path)])

        outcome = reporter.report(result, False, unit, output_snapshot=snapshot)

        assert len(outcome.failed) == 2
        assert outcome.compiled == []
        assert BuildStateStore(config.state_path).load().sources == {}

    def test_rewritten_output_counts_as_compiled(self, make_config, unit, destination, touch):
        config = make_config()
        destination.mkdir(parents=True)
        output = destination / "A.class"
        output.write_bytes(b"old")
        reporter = ResultReporter(config)
        snapshot = reporter.snapshot_outputs(unit.stale)
        output.write_bytes(b"new")
        touch(output)
        result = InvocationResult(success=False, diagnostics=[error_in(unit.stale[1].path)])

        outcome = reporter.report(result, False, unit, output_snapshot=snapshot)

        assert [c.relative_path for c in outcome.compiled] == ["A.java"]

    def test_failure_without_snapshot_fails_every_source(self, make_config, unit, destination):
        destination.mkdir(parents=True)
        (destination / "A.class").write_bytes(b"")
        result = InvocationResult(success=False, diagnostics=[error_in(unit.stale[1].path)])

        outcome = ResultReporter(make_config()).report(result, False, unit)

        assert len(outcome.failed) == 2

    def test_unattributed_error_fails_every_source(self, make_config, unit):
        result = InvocationResult(success=False, diagnostics=[Diagnostic(Severity.ERROR, "invalid flag")])

        outcome = ResultReporter(make_config()).report(result, False, unit)

        assert len(outcome.failed) == 2
        assert outcome.compiled == []

    def test_aggregate_failure_fails_every_source(self, make_config, unit):
        result = InvocationResult(success=False, diagnostics=[error_in(unit.stale[0].path)])

        outcome = ResultReporter(make_config(aggregate_output=True)).report(result, False, unit)

        assert len(outcome.failed) == 2

    def test_source_modified_during_run_not_recorded(self, make_config, unit, touch):
        config = make_config()
        touch(unit.stale[0].path)

        ResultReporter(config).report(InvocationResult(success=True), True, unit)

        state = BuildStateStore(config.state_path).load()
        assert set(state.sources) == {"B.java"}

    def test_state_write_failure_is_a_warning(self, make_config, unit):
        config = make_config()
        store = BuildStateStore(config.state_path)

        with patch.object(store, "save", side_effect=StatePersistenceError("read-only")):
            outcome = ResultReporter(config, store).report(InvocationResult(success=True), True, unit)

        assert outcome.success
        assert not outcome.state_written
        assert outcome.warnings == ["read-only"]

    def test_report_without_unit(self, make_config):
        outcome = report(InvocationResult(success=True), True, make_config())

        assert outcome.success
        assert not outcome.state_written


class TestPersist:
    """Tests for rewriting the state when nothing was compiled."""

    def test_keeps_previous_records(self, make_config, unit):
        config = make_config()
        reporter = ResultReporter(config)
        reporter.report(InvocationResult(success=True), True, unit)
        previous = BuildStateStore(config.state_path).load()

        up_to_date = CompileUnit(unit.candidates[:1], [], unit.classpath, unit.destination_dir, "fp")
        assert reporter.persist(up_to_date, [], previous)

        state = BuildStateStore(config.state_path).load()
        assert state.sources == {"A.java": previous.sources["A.java"]}

    def test_touched_source_takes_new_timestamp(self, make_config, unit, touch):
        config = make_config()
        reporter = ResultReporter(config)
        reporter.report(InvocationResult(success=True), True, unit)
        previous = BuildStateStore(config.state_path).load()

        touch(unit.candidates[0].path)
        candidates = SourceScanner().resolve([unit.candidates[0].path.parent])
        up_to_date = CompileUnit(candidates, [], unit.classpath, unit.destination_dir, "fp")
        assert reporter.needs_refresh(up_to_date, previous)
        reporter.persist(up_to_date, [], previous)

        state = BuildStateStore(config.state_path).load()
        assert state.sources["A.java"].mtime_ns == candidates[0].mtime_ns
        assert state.sources["A.java"].digest == previous.sources["A.java"].digest
        assert not reporter.needs_refresh(up_to_date, state)

    def test_no_refresh_without_digest(self, make_config, unit, touch):
        config = make_config(use_content_hash=False)
        reporter = ResultReporter(config)
        reporter.report(InvocationResult(success=True), True, unit)
        previous = BuildStateStore(config.state_path).load()

        touch(unit.candidates[0].path)
        candidates = SourceScanner().resolve([unit.candidates[0].path.parent])
        up_to_date = CompileUnit(candidates, [], unit.classpath, unit.destination_dir, "fp")

        assert not reporter.needs_refresh(up_to_date, previous)
