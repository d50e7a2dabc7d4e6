"""Compiler Argument Builder.

This module assembles the classpath and the full compiler argument list for
one compile unit.

Design:
    - Classpath keeps caller order; duplicates collapse to the first entry
    - The destination directory leads the classpath so sources that are not
      recompiled still resolve against their existing outputs
    - Language level: release wins; otherwise source/target are surfaced
      together, defaulting the unset ones with a warning
    - Extra raw arguments are appended verbatim, in order
    - Source files come last
"""

import hashlib
import locale
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional

from ..config.compiler_config import DEFAULT_LANGUAGE_LEVEL, CompilerConfiguration
from .source_scanner import CandidateFile


@dataclass
class CompileUnit:
    """Working set for one invocation."""

    candidates: List[CandidateFile]
    stale: List[CandidateFile]
    classpath: List[Path]
    destination_dir: Path
    options_fingerprint: str = ""


@dataclass
class ArgumentList:
    """Compiler arguments split into options and source files."""

    options: List[str] = field(default_factory=list)
    sources: List[str] = field(default_factory=list)

    @property
    def arguments(self) -> List[str]:
        return self.options + self.sources

    def __len__(self) -> int:
        return len(self.options) + len(self.sources)


def normalize_entry(path: Path) -> str:
    """Normalized absolute form of a classpath entry, used for deduplication."""
    return os.path.normcase(os.path.abspath(os.path.expanduser(str(path))))


def dedupe_paths(paths: Iterable[Path]) -> List[Path]:
    """Remove duplicate paths, keeping the first occurrence."""
    seen = set()
    result = []
    for path in paths:
        key = normalize_entry(path)
        if key in seen:
            continue
        seen.add(key)
        result.append(Path(path))
    return result


def fingerprint(options: List[str]) -> str:
    """Stable fingerprint of an option list."""
    sha = hashlib.sha256()
    for option in options:
        sha.update(option.encode("utf-8", "surrogateescape"))
        sha.update(b"\0")
    return sha.hexdigest()


class FlagBuilder:
    """Builds compiler arguments from a CompilerConfiguration.

    This class handles:
    - Classpath and processor path assembly
    - Language level flags (source/target/release)
    - Encoding, warning, debug and annotation processing flags
    - Passing extra raw arguments through unmodified
    """

    def __init__(self, config: CompilerConfiguration):
        """Initialize flag builder.

        Args:
            config: Compile unit configuration
        """
        self.config = config

    def build_classpath(self) -> List[Path]:
        """Ordered, deduplicated classpath led by the destination directory."""
        return dedupe_paths([self.config.destination_dir] + list(self.config.classpath))

    def _language_level_flags(self) -> List[str]:
        config = self.config

        if config.release:
            if config.source or config.target:
                logging.warning(
                    f"Both release ({config.release}) and source/target are set; "
                    "release takes precedence"
                )
            return ["--release", config.release]

        if not config.source:
            logging.warning(
                "No explicit value set for source or release! "
                f"Using the default language level {DEFAULT_LANGUAGE_LEVEL}. "
                "Set it explicitly to keep the build reproducible."
            )

        source = config.source or DEFAULT_LANGUAGE_LEVEL
        target = config.target or DEFAULT_LANGUAGE_LEVEL
        return ["-source", source, "-target", target]

    def build_options(self) -> List[str]:
        """Build every argument except the source file list.

        Returns:
            Option list in the order it is passed to the compiler
        """
        config = self.config
        options: List[str] = ["-d", str(config.destination_dir)]

        classpath = self.build_classpath()
        if classpath:
            options.extend(["-classpath", os.pathsep.join(str(p) for p in classpath)])

        source_path = [p for p in config.source_roots if p.exists()]
        if config.generated_sources_dir is not None:
            source_path.append(config.generated_sources_dir)
            options.extend(["-s", str(config.generated_sources_dir)])
        if source_path:
            options.extend(["-sourcepath", os.pathsep.join(str(p) for p in dedupe_paths(source_path))])

        if config.processor_path:
            processor_path = dedupe_paths(config.processor_path)
            options.extend(["-processorpath", os.pathsep.join(str(p) for p in processor_path)])
        if not config.annotation_processing:
            options.append("-proc:none")
        elif config.annotation_processors:
            options.extend(["-processor", ",".join(config.annotation_processors)])

        options.extend(self._language_level_flags())

        if config.encoding:
            options.extend(["-encoding", config.encoding])
        else:
            logging.warning(
                "File encoding has not been set, using platform encoding "
                f"{locale.getpreferredencoding(False)}, i.e. build is platform dependent!"
            )

        if config.debug:
            options.append("-g")
        if config.parameters:
            options.append("-parameters")
        if config.verbose:
            options.append("-verbose")
        if not config.show_warnings:
            options.append("-nowarn")
        if config.show_deprecation:
            options.append("-deprecation")

        options.extend(config.compiler_args)
        return options

    def build(self, unit: CompileUnit, options: Optional[List[str]] = None) -> ArgumentList:
        """Build the full argument list for a compile unit.

        Creates the destination directory when there is something to compile.

        Args:
            unit: Compile unit with its stale source set
            options: Previously built options (rebuilt if omitted)

        Returns:
            ArgumentList with options followed by the stale sources
        """
        if options is None:
            options = self.build_options()

        if unit.stale:
            unit.destination_dir.mkdir(parents=True, exist_ok=True)
            if self.config.generated_sources_dir is not None:
                self.config.generated_sources_dir.mkdir(parents=True, exist_ok=True)

        sources = [str(c.path) for c in unit.stale]
        logging.debug(f"Compiler options: {' '.join(options)}")
        return ArgumentList(options=list(options), sources=sources)


def build(unit: CompileUnit, configuration: CompilerConfiguration) -> ArgumentList:
    """Build the argument list for a compile unit."""
    return FlagBuilder(configuration).build(unit)
