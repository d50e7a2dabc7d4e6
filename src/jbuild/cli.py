"""
Command-line interface for jbuild.

This module provides the `jbuild` CLI tool for compiling a project's main
and test source trees.
"""

import argparse
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from jbuild import __version__
from jbuild.build import CompilationFailureError, CompileOrchestrator, JBuildError, ProjectBuilder
from jbuild.build.orchestrator import BuildResult
from jbuild.cli_utils import BannerFormatter, ErrorFormatter, PathValidator, setup_logging
from jbuild.config import ProjectConfig, ProjectConfigError
from jbuild.services import InMemoryArtifactManager, InMemoryProjectManager, InMemoryToolchainManager


@dataclass
class CompileArgs:
    """Arguments for the compile command."""

    project_dir: Path
    skip_main: bool = False
    skip_test: bool = False
    executable: Optional[Path] = None
    toolchain_home: Optional[Path] = None
    fail_on_error: Optional[bool] = None
    verbose: bool = False


@dataclass
class CleanArgs:
    """Arguments for the clean command."""

    project_dir: Path
    verbose: bool = False


def _print_unit(result: BuildResult) -> None:
    role = result.role.value
    if result.skipped:
        print(f"  {role:<5} skipped")
    elif result.candidate_count == 0:
        print(f"  {role:<5} no sources")
    else:
        print(
            f"  {role:<5} {result.stale_count}/{result.candidate_count} compiled "
            f"-> {result.destination_dir} ({result.build_time:.2f}s)"
        )
    for warning in result.warnings:
        ErrorFormatter.print_warning(warning)


def compile_command(args: CompileArgs) -> None:
    """Compile main and test sources.

    Examples:
        jbuild compile                     # Compile the current project
        jbuild compile path/to/project     # Compile a specific project
        jbuild compile --skip-test         # Main sources only
        jbuild compile --executable /opt/jdk/bin/javac

    The CLI registers no in-process compiler, so both units always run the
    compiler as an external process.
    """
    print(f"jbuild v{__version__}")

    try:
        project = ProjectConfig.from_project_dir(args.project_dir)
        setup_logging(args.verbose, project.build_directories.build_dir)

        toolchain = InMemoryToolchainManager(home=args.toolchain_home) if args.toolchain_home else None
        orchestrator = CompileOrchestrator(
            toolchain_manager=toolchain,
            artifact_manager=InMemoryArtifactManager(),
        )

        start_time = time.time()
        result = ProjectBuilder(orchestrator).build(
            project,
            skip_main=args.skip_main,
            skip_test=args.skip_test,
            fork=True,
            executable=args.executable,
            fail_on_error=args.fail_on_error,
        )
        build_time = time.time() - start_time

        _print_unit(result.main)
        _print_unit(result.test)

        downgraded = [
            d for unit in (result.main, result.test) if unit.outcome and unit.outcome.compilation_failed
            for d in unit.diagnostics
        ]
        if downgraded:
            ErrorFormatter.print_diagnostics(downgraded)

        BannerFormatter.print_banner(f"Compilation finished in {build_time:.2f}s")
        ErrorFormatter.print_success("Build successful!")
        sys.exit(0)

    except CompilationFailureError as e:
        ErrorFormatter.print_error("Compilation failed", f"{len(e.diagnostics)} diagnostic(s)")
        ErrorFormatter.print_diagnostics(e.diagnostics)
        sys.exit(1)
    except ProjectConfigError as e:
        ErrorFormatter.print_error("Configuration error", str(e))
        sys.exit(1)
    except JBuildError as e:
        ErrorFormatter.print_error("Build error", str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def clean_command(args: CleanArgs) -> None:
    """Remove build outputs and build state."""
    try:
        project = ProjectConfig.from_project_dir(args.project_dir)
        setup_logging(args.verbose)

        manager = InMemoryProjectManager()
        manager.add_project(project.name, project.build_directories)
        ProjectBuilder(project_manager=manager).clean(project.name)

        ErrorFormatter.print_success(f"Cleaned {project.name}")
        sys.exit(0)
    except ProjectConfigError as e:
        ErrorFormatter.print_error("Configuration error", str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        ErrorFormatter.handle_keyboard_interrupt()
    except Exception as e:
        ErrorFormatter.handle_unexpected_error(e, args.verbose)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jbuild",
        description="Incremental compiler driver for JVM source trees",
    )
    parser.add_argument("--version", action="version", version=f"jbuild {__version__}")
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    compile_parser = subparsers.add_parser("compile", help="Compile main and test sources")
    compile_parser.add_argument(
        "project_dir",
        nargs="?",
        type=Path,
        default=Path.cwd(),
        help="Project directory containing jbuild.ini (default: current directory)",
    )
    compile_parser.add_argument("--skip-main", action="store_true", help="Do not compile main sources")
    compile_parser.add_argument("--skip-test", action="store_true", help="Do not compile test sources")
    compile_parser.add_argument(
        "--executable",
        type=Path,
        default=None,
        help="Compiler executable (default: toolchain, then JBUILD_JAVAC, then PATH)",
    )
    compile_parser.add_argument(
        "--toolchain-home",
        type=Path,
        default=None,
        help="Toolchain home whose bin/ directory provides the compiler",
    )
    compile_parser.add_argument(
        "--no-fail-on-error",
        dest="fail_on_error",
        action="store_false",
        default=None,
        help="Report compilation errors as warnings instead of failing",
    )
    compile_parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")

    clean_parser = subparsers.add_parser("clean", help="Remove build outputs")
    clean_parser.add_argument(
        "project_dir",
        nargs="?",
        type=Path,
        default=Path.cwd(),
        help="Project directory containing jbuild.ini (default: current directory)",
    )
    clean_parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """jbuild - incremental compiler driver."""
    parser = build_parser()
    parsed_args = parser.parse_args(argv)

    # If no command specified, show help
    if not parsed_args.command:
        parser.print_help()
        sys.exit(0)

    PathValidator.validate_project_dir(parsed_args.project_dir)

    if parsed_args.command == "compile":
        compile_command(CompileArgs(
            project_dir=parsed_args.project_dir,
            skip_main=parsed_args.skip_main,
            skip_test=parsed_args.skip_test,
            executable=parsed_args.executable,
            toolchain_home=parsed_args.toolchain_home,
            fail_on_error=parsed_args.fail_on_error,
            verbose=parsed_args.verbose,
        ))
    elif parsed_args.command == "clean":
        clean_command(CleanArgs(
            project_dir=parsed_args.project_dir,
            verbose=parsed_args.verbose,
        ))


if __name__ == "__main__":
    main()
