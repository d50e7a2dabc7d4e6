"""Configuration for jbuild compile units and projects."""

from .compiler_config import (
    DEFAULT_LANGUAGE_LEVEL,
    CompilerConfiguration,
    OutputMode,
    SourceRole,
)
from .ini_parser import ProjectConfig, ProjectConfigError

__all__ = [
    'DEFAULT_LANGUAGE_LEVEL',
    'CompilerConfiguration',
    'OutputMode',
    'SourceRole',
    'ProjectConfig',
    'ProjectConfigError',
]
