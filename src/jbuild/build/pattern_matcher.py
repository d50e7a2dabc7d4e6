"""Include/exclude pattern matching.

This module evaluates glob-style include and exclude rules against source
paths relative to their source root.

Pattern syntax:
    - ``**`` matches zero or more whole path segments
    - ``*`` matches any run of characters inside one segment
    - ``?`` matches exactly one character inside one segment
    - A pattern ending in ``/`` is treated as ``<pattern>/**``

Matching is case-sensitive. Backslashes in both patterns and paths are
normalized to ``/`` before matching, so patterns written on Windows behave
the same on POSIX hosts.
"""

import re
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .errors import ResolutionError

DEFAULT_SOURCE_EXTENSION = ".java"

# Sentinel for the multi-segment wildcard
_ANY_SEGMENTS = "**"

_Segment = Union[str, "re.Pattern[str]"]


def normalize_path(path: str) -> str:
    """Normalize separators to '/' and strip leading './' and '/'."""
    normalized = path.replace("\\", "/")
    while normalized.startswith("./"):
        normalized = normalized[2:]
    return normalized.lstrip("/")


def default_includes(source_extension: str = DEFAULT_SOURCE_EXTENSION) -> List[str]:
    """Include patterns used when the caller configures none."""
    return [f"**/*{source_extension}"]


class GlobPattern:
    """A single compiled include/exclude pattern."""

    def __init__(self, pattern: str):
        """Compile a pattern.

        Args:
            pattern: Glob pattern (e.g. '**/Test*.java')

        Raises:
            ResolutionError: If the pattern is malformed
        """
        if pattern is None or not pattern.strip():
            raise ResolutionError("Empty include/exclude pattern")
        if "\x00" in pattern:
            raise ResolutionError(f"Pattern contains a NUL character: {pattern!r}")
        if "***" in pattern:
            raise ResolutionError(f"Malformed pattern (use '**' for directories): {pattern!r}")

        self.pattern = pattern
        normalized = normalize_path(pattern.strip())
        if normalized.endswith("/") or normalized == "":
            normalized += _ANY_SEGMENTS

        self._segments: List[_Segment] = []
        for segment in normalized.split("/"):
            if segment == "":
                continue
            if segment == _ANY_SEGMENTS:
                # Consecutive '**' segments are equivalent to one
                if not self._segments or self._segments[-1] != _ANY_SEGMENTS:
                    self._segments.append(_ANY_SEGMENTS)
            else:
                self._segments.append(self._compile_segment(segment))

    @staticmethod
    def _compile_segment(segment: str) -> "re.Pattern[str]":
        parts = []
        for char in segment:
            if char == "*":
                parts.append("[^/]*")
            elif char == "?":
                parts.append("[^/]")
            else:
                parts.append(re.escape(char))
        return re.compile("".join(parts))

    def matches(self, relative_path: str) -> bool:
        """Check whether a relative path matches this pattern."""
        path_segments = [s for s in normalize_path(relative_path).split("/") if s]
        memo: Dict[Tuple[int, int], bool] = {}

        def match_from(i: int, j: int) -> bool:
            key = (i, j)
            if key in memo:
                return memo[key]

            if i == len(self._segments):
                result = j == len(path_segments)
            elif self._segments[i] == _ANY_SEGMENTS:
                result = match_from(i + 1, j) or (
                    j < len(path_segments) and match_from(i, j + 1)
                )
            else:
                segment = self._segments[i]
                assert not isinstance(segment, str)
                result = (
                    j < len(path_segments)
                    and segment.fullmatch(path_segments[j]) is not None
                    and match_from(i + 1, j + 1)
                )

            memo[key] = result
            return result

        return match_from(0, 0)

    def __repr__(self) -> str:
        return f"GlobPattern({self.pattern!r})"


class PatternMatcher:
    """Evaluates an include/exclude pattern set against relative paths.

    A path is selected when it matches at least one include pattern and no
    exclude pattern. Excludes always win over includes.

    Example:
        matcher = PatternMatcher(includes=['**/TestCompile4*.java'],
                                 excludes=['**/TestCompile2*.java'])
        matcher.matches('org/acme/TestCompile4.java')  # True
    """

    def __init__(
        self,
        includes: Optional[Iterable[str]] = None,
        excludes: Optional[Iterable[str]] = None,
        source_extension: str = DEFAULT_SOURCE_EXTENSION
    ):
        """Initialize pattern matcher.

        Args:
            includes: Include patterns (defaults to every source file)
            excludes: Exclude patterns
            source_extension: Extension used by the default include pattern

        Raises:
            ResolutionError: If any pattern is malformed
        """
        include_list = list(includes or [])
        if not include_list:
            include_list = default_includes(source_extension)

        self.includes = [GlobPattern(p) for p in include_list]
        self.excludes = [GlobPattern(p) for p in (excludes or [])]

    def is_included(self, relative_path: str) -> bool:
        return any(p.matches(relative_path) for p in self.includes)

    def is_excluded(self, relative_path: str) -> bool:
        return any(p.matches(relative_path) for p in self.excludes)

    def matches(self, relative_path: str) -> bool:
        """Check whether a relative path is selected by this pattern set."""
        return self.is_included(relative_path) and not self.is_excluded(relative_path)


def matches(
    relative_path: str,
    include_patterns: Sequence[str],
    exclude_patterns: Sequence[str]
) -> bool:
    """Check one relative path against include and exclude patterns.

    An empty include list falls back to the default source include pattern.
    """
    return PatternMatcher(include_patterns, exclude_patterns).matches(relative_path)
