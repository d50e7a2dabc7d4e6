"""
Source set resolution.

This module handles:
- Walking configured source roots recursively
- Applying include/exclude patterns to root-relative paths
- Deduplicating files reachable through more than one root
- Producing CandidateFile records for the staleness analysis
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from ..config.compiler_config import SourceRole
from .errors import ResolutionError
from .pattern_matcher import PatternMatcher

# Directories never descended into
EXCLUDED_DIRS = {'.git', '.svn', '.hg', '__pycache__', '.jbuild-state'}


@dataclass(frozen=True)
class SourceRoot:
    """A configured source directory and the role of its sources."""

    path: Path
    role: SourceRole = SourceRole.MAIN


@dataclass(frozen=True)
class CandidateFile:
    """A resolved source file.

    Attributes:
        path: Absolute path of the source file
        relative_path: Path relative to its source root, '/' separated
        mtime_ns: Last-modified timestamp in nanoseconds
        root: Source root the file was found under
    """

    path: Path
    relative_path: str
    mtime_ns: int
    root: Path


class SourceScanner:
    """
    Scans source roots for candidate files.

    The scanner:
    1. Walks every source root (missing roots count as empty)
    2. Selects files whose root-relative path passes the pattern matcher
    3. Keeps the first occurrence of a file reachable via several roots
    4. Returns candidates sorted by relative path
    """

    def __init__(self, matcher: Optional[PatternMatcher] = None):
        """
        Initialize source scanner.

        Args:
            matcher: Include/exclude matcher (defaults to all .java files)
        """
        self.matcher = matcher or PatternMatcher()

    def resolve(self, source_roots: Iterable[Path]) -> List[CandidateFile]:
        """
        Resolve the candidate file set for the given roots.

        Args:
            source_roots: Source directories (or SourceRoot records)

        Returns:
            Candidate files sorted by relative path

        Raises:
            ResolutionError: If a directory under a root cannot be read
        """
        seen: Dict[Path, CandidateFile] = {}

        for root in source_roots:
            root_path = Path(root.path if isinstance(root, SourceRoot) else root)
            for candidate in self._scan_root(root_path):
                key = candidate.path
                if key not in seen:
                    seen[key] = candidate

        return sorted(seen.values(), key=lambda c: (c.relative_path, str(c.path)))

    def _scan_root(self, root: Path) -> List[CandidateFile]:
        """
        Scan one source root.

        Args:
            root: Source root directory

        Returns:
            Candidate files found under the root
        """
        if not root.exists():
            return []
        if not root.is_dir():
            raise ResolutionError(f"Source root is not a directory: {root}")

        root = root.resolve()
        candidates = []

        def on_error(error: OSError) -> None:
            raise ResolutionError(
                f"Cannot read source directory {error.filename}: {error.strerror}"
            ) from error

        for dirpath, dirnames, filenames in os.walk(root, onerror=on_error):
            dirnames[:] = sorted(d for d in dirnames if d not in EXCLUDED_DIRS)

            for filename in sorted(filenames):
                file_path = Path(dirpath) / filename
                relative = file_path.relative_to(root).as_posix()
                if not self.matcher.matches(relative):
                    continue

                try:
                    stat = file_path.stat()
                except OSError as e:
                    raise ResolutionError(f"Cannot stat source file {file_path}: {e}") from e

                candidates.append(CandidateFile(
                    path=file_path,
                    relative_path=relative,
                    mtime_ns=stat.st_mtime_ns,
                    root=root
                ))

        return candidates


def resolve(
    source_roots: Iterable[Path],
    includes: Optional[Iterable[str]] = None,
    excludes: Optional[Iterable[str]] = None,
    source_extension: str = ".java"
) -> List[CandidateFile]:
    """Resolve candidate files for roots and an include/exclude set."""
    matcher = PatternMatcher(includes, excludes, source_extension=source_extension)
    return SourceScanner(matcher).resolve(source_roots)
