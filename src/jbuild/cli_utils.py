"""CLI utility functions for jbuild.

This module provides common utilities used across CLI commands including:
- Logging setup
- Error handling and formatting
- Diagnostic and banner display
- Project directory validation
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Iterable, List, Optional

from jbuild.build.compiler import Diagnostic, Severity

LOG_FILE_NAME = "jbuild.log"

# Handlers installed by setup_logging, replaced on the next call
_installed_handlers: List[logging.Handler] = []


def setup_logging(verbose: bool = False, log_dir: Optional[Path] = None) -> None:
    """Set up logging for CLI runs.

    Args:
        verbose: Log debug messages to the console
        log_dir: Directory for a rotating jbuild.log (skipped if None)
    """
    logger = logging.getLogger()
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    while _installed_handlers:
        handler = _installed_handlers.pop()
        logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    console_handler.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
    logger.addHandler(console_handler)
    _installed_handlers.append(console_handler)

    if log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            str(log_dir / LOG_FILE_NAME),
            maxBytes=10 * 1024 * 1024,  # 10MB
            backupCount=3,
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))
        logger.addHandler(file_handler)
        _installed_handlers.append(file_handler)


class ErrorFormatter:
    """Formats and displays error messages with ANSI color codes."""

    # ANSI color codes
    RED = "\033[1;31m"
    GREEN = "\033[1;32m"
    YELLOW = "\033[1;33m"
    RESET = "\033[0m"

    @staticmethod
    def print_error(title: str, message: str) -> None:
        """Print formatted error message.

        Args:
            title: Error title (e.g., "Compilation failed")
            message: Error message details
        """
        print()
        print(f"{ErrorFormatter.RED}✗ {title}{ErrorFormatter.RESET}")
        print()
        print(message)
        print()

    @staticmethod
    def print_success(message: str) -> None:
        print()
        print(f"{ErrorFormatter.GREEN}✓ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def print_warning(message: str) -> None:
        print()
        print(f"{ErrorFormatter.YELLOW}⚠ {message}{ErrorFormatter.RESET}")

    @staticmethod
    def format_diagnostic(diagnostic: Diagnostic) -> str:
        """Format one diagnostic, coloured by severity."""
        color = {
            Severity.ERROR: ErrorFormatter.RED,
            Severity.WARNING: ErrorFormatter.YELLOW,
        }.get(diagnostic.severity)
        text = str(diagnostic)
        return f"{color}{text}{ErrorFormatter.RESET}" if color else text

    @staticmethod
    def print_diagnostics(diagnostics: Iterable[Diagnostic]) -> None:
        for diagnostic in diagnostics:
            print(ErrorFormatter.format_diagnostic(diagnostic))

    @staticmethod
    def handle_keyboard_interrupt() -> None:
        """Handle KeyboardInterrupt with standard formatting."""
        ErrorFormatter.print_warning("Build interrupted")
        sys.exit(130)  # Standard exit code for SIGINT

    @staticmethod
    def handle_unexpected_error(error: Exception, verbose: bool = False) -> None:
        """Handle unexpected errors with standard formatting.

        Args:
            error: The exception to handle
            verbose: Whether to print traceback
        """
        message = f"{type(error).__name__}: {error}"
        ErrorFormatter.print_error("Unexpected error", message)

        if verbose:
            import traceback

            print("Traceback:")
            print(traceback.format_exc())

        sys.exit(1)


class BannerFormatter:
    """Formats and displays banner messages with borders."""

    DEFAULT_WIDTH = 80
    DEFAULT_BORDER_CHAR = "="

    @staticmethod
    def format_banner(
        message: str,
        width: int = DEFAULT_WIDTH,
        border_char: str = DEFAULT_BORDER_CHAR,
        center: bool = True,
    ) -> str:
        """Format a banner message with top and bottom borders.

        Args:
            message: The message to display (can be multi-line)
            width: Width of the banner in characters (default: 80)
            border_char: Character to use for borders (default: "=")
            center: Whether to center text (default: True)

        Returns:
            Formatted banner string with borders
        """
        border = border_char * width
        formatted_lines = [border]

        for line in message.split("\n"):
            if center:
                formatted_lines.append(" " * ((width - len(line)) // 2) + line)
            else:
                formatted_lines.append("  " + line)

        formatted_lines.append(border)
        return "\n".join(formatted_lines)

    @staticmethod
    def print_banner(message: str, width: int = DEFAULT_WIDTH, center: bool = True) -> None:
        print()
        print(BannerFormatter.format_banner(message, width=width, center=center))


class PathValidator:
    """Validates project paths and directories."""

    @staticmethod
    def validate_project_dir(project_dir: Path) -> None:
        """Validate that project directory exists and is a directory.

        Args:
            project_dir: Path to validate

        Raises:
            SystemExit: If path doesn't exist or isn't a directory
        """
        if not project_dir.exists():
            print(f"{ErrorFormatter.RED}✗ Error: Path does not exist: {project_dir}{ErrorFormatter.RESET}")
            sys.exit(2)
        if not project_dir.is_dir():
            print(f"{ErrorFormatter.RED}✗ Error: Path is not a directory: {project_dir}{ErrorFormatter.RESET}")
            sys.exit(2)
