"""Unit tests for CLI utilities."""

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from jbuild.build.compiler import Diagnostic, Severity
from jbuild.cli_utils import LOG_FILE_NAME, BannerFormatter, ErrorFormatter, PathValidator, setup_logging


@pytest.fixture
def restore_root_logger():
    """Undo handler and level changes made by setup_logging."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if handler not in handlers and type(handler) in (logging.StreamHandler, RotatingFileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_console_only(self, restore_root_logger):
        before = len(restore_root_logger.handlers)

        setup_logging(verbose=False)

        assert restore_root_logger.level == logging.INFO
        assert len(restore_root_logger.handlers) == before + 1

    def test_verbose(self, restore_root_logger):
        setup_logging(verbose=True)

        assert restore_root_logger.level == logging.DEBUG

    def test_repeated_setup_replaces_handlers(self, restore_root_logger, tmp_path):
        before = len(restore_root_logger.handlers)

        setup_logging(log_dir=tmp_path)
        setup_logging(log_dir=tmp_path)
        setup_logging()

        assert len(restore_root_logger.handlers) == before + 1

    def test_log_file(self, restore_root_logger, tmp_path):
        log_dir = tmp_path / "target"

        setup_logging(log_dir=log_dir)
        logging.info("compiling 3 sources")
        for handler in restore_root_logger.handlers:
            handler.flush()

        log_file = log_dir / LOG_FILE_NAME
        assert log_file.exists()
        assert "compiling 3 sources" in log_file.read_text()


class TestErrorFormatter:
    """Tests for ErrorFormatter."""

    def test_print_error(self, capsys):
        ErrorFormatter.print_error("Compilation failed", "2 diagnostic(s)")
        captured = capsys.readouterr()

        assert "✗ Compilation failed" in captured.out
        assert "2 diagnostic(s)" in captured.out

    def test_format_error_diagnostic_colored(self):
        text = ErrorFormatter.format_diagnostic(Diagnostic(Severity.ERROR, "boom", Path("A.java"), 1))

        assert text.startswith(ErrorFormatter.RED)
        assert "[ERROR] A.java:[1] boom" in text

    def test_format_note_plain(self):
        assert ErrorFormatter.format_diagnostic(Diagnostic(Severity.NOTE, "fyi")) == "[NOTE] fyi"

    def test_print_diagnostics(self, capsys):
        ErrorFormatter.print_diagnostics([
            Diagnostic(Severity.WARNING, "careful"),
            Diagnostic(Severity.ERROR, "boom"),
        ])
        lines = capsys.readouterr().out.strip().split("\n")

        assert len(lines) == 2
        assert "careful" in lines[0]
        assert "boom" in lines[1]

    def test_keyboard_interrupt_exit_code(self):
        with pytest.raises(SystemExit) as exc_info:
            ErrorFormatter.handle_keyboard_interrupt()

        assert exc_info.value.code == 130

    def test_unexpected_error_exit_code(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            ErrorFormatter.handle_unexpected_error(RuntimeError("kaboom"))

        assert exc_info.value.code == 1
        assert "RuntimeError: kaboom" in capsys.readouterr().out


class TestBannerFormatter:
    """Tests for BannerFormatter class."""

    def test_format_banner_single_line_centered(self):
        """Test formatting a single-line banner with centered text."""
        result = BannerFormatter.format_banner("Hello World", width=20, center=True)
        lines = result.split("\n")

        assert len(lines) == 3
        assert lines[0] == "=" * 20
        assert lines[2] == "=" * 20
        assert lines[1].strip() == "Hello World"

    def test_format_banner_build_summary(self):
        """Test formatting a multi-line compile summary."""
        message = "Compilation finished\nmain: 12/12 compiled\ntest: skipped"
        result = BannerFormatter.format_banner(message, width=60, center=False)
        lines = result.split("\n")

        assert len(lines) == 5
        assert lines[1] == "  Compilation finished"
        assert lines[2] == "  main: 12/12 compiled"
        assert lines[3] == "  test: skipped"

    def test_format_banner_custom_border_char(self):
        result = BannerFormatter.format_banner("Test", width=10, border_char="-", center=False)
        lines = result.split("\n")

        assert lines[0] == "-" * 10
        assert lines[2] == "-" * 10

    def test_print_banner(self, capsys):
        BannerFormatter.print_banner("Compilation finished", width=30, center=False)
        output_lines = capsys.readouterr().out.strip().split("\n")

        assert output_lines == ["=" * 30, "  Compilation finished", "=" * 30]


class TestPathValidator:
    """Tests for PathValidator."""

    def test_valid_directory(self, tmp_path):
        PathValidator.validate_project_dir(tmp_path)

    def test_missing_directory(self, tmp_path):
        with pytest.raises(SystemExit) as exc_info:
            PathValidator.validate_project_dir(tmp_path / "missing")

        assert exc_info.value.code == 2

    def test_file_instead_of_directory(self, tmp_path):
        file_path = tmp_path / "jbuild.ini"
        file_path.write_text("")

        with pytest.raises(SystemExit) as exc_info:
            PathValidator.validate_project_dir(file_path)

        assert exc_info.value.code == 2
