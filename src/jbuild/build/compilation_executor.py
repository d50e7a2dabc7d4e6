"""Compilation Executor.

This module runs the compiler, either in-process through a registered
compiler or as an external process, and normalizes both to an
InvocationResult.

Design:
    - In-process: diagnostics arrive through a listener, no process spawned
    - Forked: the executable comes from an explicit path, then the toolchain,
      then the JBUILD_JAVAC environment variable, then PATH
    - Long command lines are passed through a temporary @argument file that
      is deleted on every exit path, spawn failures included
    - stdout/stderr are merged and parsed into diagnostics
    - A timeout kills the whole compiler process tree and reports failure
"""

import logging
import os
import shutil
import subprocess
import tempfile
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional, Sequence, Union

import psutil

from ..services import IToolchainManager
from .compiler import (
    CompilerManager,
    Diagnostic,
    DiagnosticCollector,
    Forked,
    InProcess,
    InvocationMode,
    InvocationResult,
    Severity,
)
from .diagnostics import DiagnosticParser
from .errors import InvocationStartError
from .flag_builder import ArgumentList

EXECUTABLE_ENV_VAR = "JBUILD_JAVAC"

_NEEDS_QUOTING = set(' \t\r\n"\'\\#')


def quote_argument(argument: str) -> str:
    """Quote one argument for an @argument file."""
    if argument and not any(c in _NEEDS_QUOTING for c in argument):
        return argument
    escaped = argument.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


@contextmanager
def argument_file(arguments: Sequence[str]) -> Iterator[Path]:
    """Write arguments to a temporary file, deleted when the block exits.

    Args:
        arguments: Arguments, one per line in the file

    Yields:
        Path of the argument file
    """
    fd, name = tempfile.mkstemp(prefix="jbuild-args-", suffix=".txt")
    path = Path(name)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write("\n".join(quote_argument(a) for a in arguments))
            f.write("\n")
        yield path
    finally:
        try:
            path.unlink()
        except FileNotFoundError:
            pass


def kill_process_tree(pid: int) -> int:
    """Terminate a process and all of its children.

    Args:
        pid: Root process id

    Returns:
        Number of processes signalled
    """
    try:
        root = psutil.Process(pid)
        processes = root.children(recursive=True) + [root]
    except psutil.NoSuchProcess:
        return 0

    signalled: List[psutil.Process] = []
    for proc in processes:
        try:
            proc.terminate()
            signalled.append(proc)
        except psutil.NoSuchProcess:
            pass  # Already dead

    _gone, alive = psutil.wait_procs(signalled, timeout=3)

    # Force kill any stragglers
    for proc in alive:
        try:
            proc.kill()
            logging.warning(f"Force killed compiler process {proc.pid}")
        except psutil.NoSuchProcess:
            pass

    return len(signalled)


class CompilationExecutor:
    """Invokes the compiler and returns a uniform InvocationResult.

    This class handles:
    - Looking up in-process compilers
    - Resolving and spawning external compiler executables
    - Falling back to an @argument file for long command lines
    - Converting compiler output to diagnostics
    """

    def __init__(
        self,
        compiler_manager: Optional[CompilerManager] = None,
        toolchain_manager: Optional[IToolchainManager] = None
    ):
        """Initialize compilation executor.

        Args:
            compiler_manager: Registry of in-process compilers
            toolchain_manager: Toolchain lookup used by forked mode
        """
        self.compiler_manager = compiler_manager or CompilerManager()
        self.toolchain_manager = toolchain_manager

    def invoke(
        self,
        arguments: Union[ArgumentList, Sequence[str]],
        mode: InvocationMode
    ) -> InvocationResult:
        """Run one compilation.

        Args:
            arguments: Complete compiler argument list
            mode: InProcess or Forked

        Returns:
            InvocationResult with every diagnostic collected

        Raises:
            InvocationStartError: If the compiler cannot be found or started
        """
        if isinstance(arguments, ArgumentList):
            argument_list = arguments.arguments
        else:
            argument_list = list(arguments)

        if isinstance(mode, InProcess):
            return self._invoke_in_process(argument_list, mode)
        if isinstance(mode, Forked):
            return self._invoke_forked(argument_list, mode)
        raise TypeError(f"Unknown invocation mode: {mode!r}")

    def _invoke_in_process(self, arguments: List[str], mode: InProcess) -> InvocationResult:
        compiler = self.compiler_manager.get_compiler(mode.compiler_id)
        collector = DiagnosticCollector()

        logging.debug(f"Invoking in-process compiler '{mode.compiler_id}'")
        success = compiler.compile(list(arguments), collector)

        return InvocationResult(success=bool(success), diagnostics=collector.diagnostics)

    def resolve_executable(self, mode: Forked) -> Path:
        """Locate the compiler executable for forked mode.

        Raises:
            InvocationStartError: If no executable can be found
        """
        if mode.executable is not None:
            executable = Path(mode.executable)
            if not executable.exists():
                raise InvocationStartError(
                    f"Compiler executable not found: {executable}. Ensure the toolchain is installed."
                )
            return executable

        if self.toolchain_manager is not None:
            tool = self.toolchain_manager.find_tool(mode.tool_name)
            if tool is not None:
                logging.debug(f"Using toolchain {mode.tool_name}: {tool}")
                return Path(tool)

        env_executable = os.environ.get(EXECUTABLE_ENV_VAR)
        if env_executable:
            return Path(env_executable)

        found = shutil.which(mode.tool_name)
        if found:
            return Path(found)

        raise InvocationStartError(
            f"Cannot find compiler executable '{mode.tool_name}': not configured, "
            "not provided by a toolchain and not on PATH"
        )

    def _invoke_forked(self, arguments: List[str], mode: Forked) -> InvocationResult:
        executable = self.resolve_executable(mode)
        command = [str(executable)] + arguments

        if len(subprocess.list2cmdline(command)) > mode.max_command_line:
            with argument_file(arguments) as arg_file:
                logging.debug(f"Command line too long, passing arguments through {arg_file}")
                return self._run([str(executable), f"@{arg_file}"], mode)

        return self._run(command, mode)

    def _run(self, command: List[str], mode: Forked) -> InvocationResult:
        logging.debug(f"Running: {subprocess.list2cmdline(command)}")

        try:
            process = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                cwd=str(mode.working_dir) if mode.working_dir else None,
            )
        except OSError as e:
            raise InvocationStartError(f"Failed to start compiler {command[0]}: {e}") from e

        try:
            output, _ = process.communicate(timeout=mode.timeout)
        except subprocess.TimeoutExpired:
            kill_process_tree(process.pid)
            output, _ = process.communicate()
            return self._timeout_result(output or "", mode.timeout)
        except KeyboardInterrupt:
            kill_process_tree(process.pid)
            raise

        return self._to_result(output or "", process.returncode, mode.working_dir)

    def _timeout_result(self, output: str, timeout: Optional[float]) -> InvocationResult:
        parser = DiagnosticParser()
        diagnostics = parser.parse(output)
        diagnostics.append(Diagnostic(
            Severity.ERROR,
            f"Compiler process timed out after {timeout} seconds and was terminated"
        ))
        return InvocationResult(success=False, diagnostics=diagnostics, exit_code=None, output=output)

    def _to_result(self, output: str, returncode: int, working_dir: Optional[Path]) -> InvocationResult:
        diagnostics = DiagnosticParser(working_dir or Path.cwd()).parse(output)
        success = returncode == 0

        if not success and not any(d.is_error for d in diagnostics):
            if returncode < 0:
                message = f"Compiler process terminated by signal {-returncode}"
            else:
                message = f"Compiler exited with code {returncode}"
            if output.strip():
                message += f"\n{output.strip()}"
            diagnostics.append(Diagnostic(Severity.ERROR, message))

        return InvocationResult(
            success=success,
            diagnostics=diagnostics,
            exit_code=returncode,
            output=output
        )


def invoke(
    arguments: Union[ArgumentList, Sequence[str]],
    mode: InvocationMode,
    compiler_manager: Optional[CompilerManager] = None
) -> InvocationResult:
    """Invoke a compiler with the given arguments and mode."""
    return CompilationExecutor(compiler_manager).invoke(arguments, mode)
