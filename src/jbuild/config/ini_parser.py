"""
jbuild.ini project configuration parser.

This module reads a project description and turns it into the two
CompilerConfiguration values (main and test) the compilation core consumes.

Example jbuild.ini:
    [project]
    name = demo
    source_dirs = src/main/java
    test_source_dirs = src/test/java
    build_dir = target
    classpath =
        lib/commons-lang3.jar

    [compiler]
    release = 17
    encoding = UTF-8
    args =
        -Xlint:all

    [testCompile]
    skip = true

List values hold one entry per line. Relative paths are resolved against
the directory containing jbuild.ini. Values use ExtendedInterpolation, so a
literal '$' must be written as '$$'.
"""

import configparser
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..services import BuildDirectories
from .compiler_config import CompilerConfiguration, SourceRole

CONFIG_FILE_NAME = "jbuild.ini"

# Options accepted in [compiler], [compile] and [testCompile]
_BOOL_OPTIONS = {
    "show_warnings", "show_deprecation", "debug", "parameters", "verbose",
    "fork", "aggregate_output", "skip", "fail_on_error", "use_content_hash",
}
_LIST_OPTIONS = {"includes", "excludes", "processors", "args"}
_PATH_LIST_OPTIONS = {"processor_path"}
_PATH_OPTIONS = {"executable", "generated_sources_dir", "working_dir"}
_STR_OPTIONS = {
    "source", "target", "release", "encoding", "compiler_id",
    "aggregate_output_name", "source_extension", "output_extension", "proc",
}
_NUMBER_OPTIONS = {"timeout", "max_command_line"}

_RENAMED = {
    "args": "compiler_args",
    "processors": "annotation_processors",
}


class ProjectConfigError(Exception):
    """Exception raised for jbuild.ini configuration errors."""

    pass


def split_list(value: Optional[str]) -> List[str]:
    """Split a multi-line option value into its non-empty entries."""
    if not value:
        return []
    return [line.strip() for line in value.splitlines() if line.strip()]


class ProjectConfig:
    """
    Parser for jbuild.ini project files.

    Usage:
        project = ProjectConfig(Path("jbuild.ini"))
        main = project.main_configuration()
        test = project.test_configuration()
    """

    MAIN_SECTION = "compile"
    TEST_SECTION = "testCompile"

    def __init__(self, ini_path: Path):
        """
        Initialize the parser with a jbuild.ini file.

        Args:
            ini_path: Path to the jbuild.ini file

        Raises:
            ProjectConfigError: If the file doesn't exist or cannot be parsed
        """
        self.ini_path = Path(ini_path)

        if not self.ini_path.exists():
            raise ProjectConfigError(f"Configuration file not found: {self.ini_path}")

        self.base_dir = self.ini_path.resolve().parent
        # Keep option names case-sensitive so [testCompile] keys read as written
        self.config = configparser.ConfigParser(
            allow_no_value=True, interpolation=configparser.ExtendedInterpolation()
        )
        self.config.optionxform = str  # type: ignore[assignment,method-assign]

        try:
            self.config.read(self.ini_path, encoding="utf-8")
        except configparser.Error as e:
            raise ProjectConfigError(f"Failed to parse {self.ini_path}: {e}") from e

    @classmethod
    def from_project_dir(cls, project_dir: Path) -> "ProjectConfig":
        return cls(Path(project_dir) / CONFIG_FILE_NAME)

    def _get(self, section: str, key: str, default: Optional[str] = None) -> Optional[str]:
        if not self.config.has_section(section):
            return default
        try:
            value = self.config.get(section, key, fallback=default)
        except configparser.Error as e:
            raise ProjectConfigError(f"Invalid value for [{section}] {key}: {e}") from e
        return value

    def _path(self, value: str) -> Path:
        path = Path(value).expanduser()
        if not path.is_absolute():
            path = self.base_dir / path
        return path

    def _paths(self, value: Optional[str]) -> List[Path]:
        return [self._path(v) for v in split_list(value)]

    @property
    def name(self) -> str:
        return self._get("project", "name") or self.base_dir.name

    @property
    def build_directories(self) -> BuildDirectories:
        """Build, output and test output directories of the project."""
        build_dir = self._path(self._get("project", "build_dir") or "target")
        output_dir = self._get("project", "output_dir")
        test_output_dir = self._get("project", "test_output_dir")
        return BuildDirectories(
            build_dir=build_dir,
            output_dir=self._path(output_dir) if output_dir else build_dir / "classes",
            test_output_dir=self._path(test_output_dir) if test_output_dir else build_dir / "test-classes",
        )

    def _compiler_options(self, unit_section: str) -> Dict[str, str]:
        """Merge [compiler] with the unit section; unit values win."""
        options: Dict[str, str] = {}
        for section in ("compiler", unit_section):
            if not self.config.has_section(section):
                continue
            for key in self.config[section]:
                value = self._get(section, key)
                options[key] = value if value is not None else ""
        return options

    def _convert(self, section: str, key: str, value: str) -> Any:
        if key in _BOOL_OPTIONS:
            lowered = value.strip().lower()
            if lowered not in configparser.ConfigParser.BOOLEAN_STATES:
                raise ProjectConfigError(f"[{section}] {key}: not a boolean: {value!r}")
            return configparser.ConfigParser.BOOLEAN_STATES[lowered]
        if key in _LIST_OPTIONS:
            return split_list(value)
        if key in _PATH_LIST_OPTIONS:
            return self._paths(value)
        if key in _PATH_OPTIONS:
            return self._path(value) if value.strip() else None
        if key in _NUMBER_OPTIONS:
            try:
                return int(value) if key == "max_command_line" else float(value)
            except ValueError as e:
                raise ProjectConfigError(f"[{section}] {key}: not a number: {value!r}") from e
        if key in _STR_OPTIONS:
            return value.strip() or None
        raise ProjectConfigError(f"Unknown option in [{section}]: {key}")

    def _configuration(
        self,
        role: SourceRole,
        unit_section: str,
        source_dirs_key: str,
        default_source_dir: str,
        destination_dir: Path,
        classpath: List[Path]
    ) -> CompilerConfiguration:
        source_dirs = self._get("project", source_dirs_key)
        source_roots = self._paths(source_dirs) if source_dirs else [self._path(default_source_dir)]

        kwargs: Dict[str, Any] = {}
        for key, raw in self._compiler_options(unit_section).items():
            value = self._convert(unit_section, key, raw)
            if key == "proc":
                if value == "none":
                    kwargs["annotation_processing"] = False
                elif value not in (None, "full"):
                    raise ProjectConfigError(f"[{unit_section}] proc: expected 'none' or 'full', got {value!r}")
                continue
            kwargs[_RENAMED.get(key, key)] = value

        if kwargs.get("working_dir") is None:
            kwargs["working_dir"] = self.base_dir

        return CompilerConfiguration(
            destination_dir=destination_dir,
            source_roots=source_roots,
            role=role,
            classpath=classpath,
            **kwargs,
        )

    def main_configuration(self) -> CompilerConfiguration:
        """Configuration for compiling main sources."""
        directories = self.build_directories
        return self._configuration(
            SourceRole.MAIN,
            self.MAIN_SECTION,
            "source_dirs",
            "src/main/java",
            directories.output_dir,
            self._paths(self._get("project", "classpath")),
        )

    def test_configuration(self) -> CompilerConfiguration:
        """Configuration for compiling test sources.

        Test sources compile against the main output directory, then the
        main classpath, then the test-only classpath.
        """
        directories = self.build_directories
        classpath = (
            [directories.output_dir]
            + self._paths(self._get("project", "classpath"))
            + self._paths(self._get("project", "test_classpath"))
        )
        return self._configuration(
            SourceRole.TEST,
            self.TEST_SECTION,
            "test_source_dirs",
            "src/test/java",
            directories.test_output_dir,
            classpath,
        )
