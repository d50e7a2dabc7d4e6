"""Staleness analysis.

Decides which candidate sources must be (re)compiled.

Rules:
    - No usable prior state: every candidate is stale (first build).
    - Per-source mode: a candidate is stale when it has no state entry, when
      it changed since the entry was recorded, or when its expected output
      is missing from the destination tree.
    - Aggregate mode: if any candidate is stale, if the aggregate output is
      missing, or if a previously compiled source disappeared, the whole
      candidate set is stale. Otherwise nothing is.

Change detection favours fewer rebuilds: equal timestamps are never stale.
When a content digest was recorded and the timestamp differs in either
direction, the digest decides. Without a digest only a strictly newer
timestamp counts as a change.
"""

import logging
from pathlib import Path, PurePosixPath
from typing import List, Optional, Sequence

from ..config.compiler_config import OutputMode
from .build_state import BuildState, file_digest
from .source_scanner import CandidateFile


def expected_output(candidate: CandidateFile, destination_dir: Path, output_extension: str) -> Path:
    """Output artifact a per-source compiler produces for a candidate."""
    relative = PurePosixPath(candidate.relative_path).with_suffix(output_extension)
    return Path(destination_dir) / Path(*relative.parts)


class StalenessAnalyzer:
    """Computes the stale subset of a candidate set."""

    def __init__(
        self,
        destination_dir: Path,
        output_mode: OutputMode = OutputMode.PER_SOURCE,
        output_extension: str = ".class",
        aggregate_output: Optional[Path] = None,
        use_content_hash: bool = True,
        options_fingerprint: str = ""
    ):
        """Initialize staleness analyzer.

        Args:
            destination_dir: Directory receiving compiled outputs
            output_mode: Per-source or aggregate output
            output_extension: Extension of per-source outputs
            aggregate_output: Path of the aggregate output (aggregate mode)
            use_content_hash: Consult recorded digests when timestamps differ
            options_fingerprint: Fingerprint of the current compiler options
        """
        self.destination_dir = Path(destination_dir)
        self.output_mode = output_mode
        self.output_extension = output_extension
        self.aggregate_output = aggregate_output
        self.use_content_hash = use_content_hash
        self.options_fingerprint = options_fingerprint

        if output_mode is OutputMode.AGGREGATE and aggregate_output is None:
            raise ValueError("Aggregate output mode requires an aggregate output path")

    def state_applies(self, state: Optional[BuildState]) -> bool:
        """Check whether a loaded state describes this destination and options."""
        if state is None:
            return False
        if state.destination_dir != str(self.destination_dir.resolve()):
            logging.debug("Build state recorded for another destination; ignoring it")
            return False
        if state.output_mode != self.output_mode.value:
            logging.debug("Build state recorded for another output mode; ignoring it")
            return False
        if state.options_fingerprint != self.options_fingerprint:
            logging.info("Compiler options changed since the last build; recompiling everything")
            return False
        return True

    def source_changed(self, candidate: CandidateFile, state: BuildState) -> bool:
        """Check a candidate against its state entry, ignoring outputs."""
        record = state.get(candidate.relative_path)
        if record is None:
            return True
        if candidate.mtime_ns == record.mtime_ns:
            return False
        if self.use_content_hash and record.digest is not None:
            return file_digest(candidate.path) != record.digest
        return candidate.mtime_ns > record.mtime_ns

    def is_stale(self, candidate: CandidateFile, state: Optional[BuildState]) -> bool:
        """Per-source stale predicate."""
        if state is None:
            return True
        if self.source_changed(candidate, state):
            return True
        if self.output_mode is OutputMode.PER_SOURCE:
            return not expected_output(candidate, self.destination_dir, self.output_extension).exists()
        return False

    def compute_stale(
        self,
        candidates: Sequence[CandidateFile],
        state: Optional[BuildState]
    ) -> List[CandidateFile]:
        """Compute the candidates requiring recompilation.

        Args:
            candidates: Resolved candidate files
            state: Previously recorded build state (None on first build)

        Returns:
            Stale candidates, in candidate order
        """
        if not candidates:
            return []

        usable_state = state if self.state_applies(state) else None

        if self.output_mode is OutputMode.AGGREGATE:
            return self._compute_aggregate(candidates, usable_state)

        stale = [c for c in candidates if self.is_stale(c, usable_state)]
        logging.debug(f"{len(stale)} of {len(candidates)} sources are stale")
        return stale

    def _compute_aggregate(
        self,
        candidates: Sequence[CandidateFile],
        state: Optional[BuildState]
    ) -> List[CandidateFile]:
        assert self.aggregate_output is not None

        if state is None:
            return list(candidates)

        if not self.aggregate_output.exists():
            logging.debug(f"Aggregate output {self.aggregate_output} is missing")
            return list(candidates)

        current = {c.relative_path for c in candidates}
        removed = [path for path in state.sources if path not in current]
        if removed:
            logging.debug(f"Sources removed since the last build: {', '.join(sorted(removed))}")
            return list(candidates)

        if any(self.is_stale(c, state) for c in candidates):
            return list(candidates)

        return []


def compute_stale(
    candidates: Sequence[CandidateFile],
    build_state: Optional[BuildState],
    output_mode: OutputMode,
    destination_dir: Path,
    output_extension: str = ".class",
    aggregate_output: Optional[Path] = None,
    use_content_hash: bool = True,
    options_fingerprint: str = ""
) -> List[CandidateFile]:
    """Compute the stale subset of candidates (see StalenessAnalyzer)."""
    destination_dir = Path(destination_dir)
    if output_mode is OutputMode.AGGREGATE and aggregate_output is None:
        aggregate_output = destination_dir / f"compiled{output_extension}"
    analyzer = StalenessAnalyzer(
        destination_dir,
        output_mode=output_mode,
        output_extension=output_extension,
        aggregate_output=aggregate_output,
        use_content_hash=use_content_hash,
        options_fingerprint=options_fingerprint,
    )
    return analyzer.compute_stale(candidates, build_state)
