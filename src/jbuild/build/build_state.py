"""Persisted build state.

The build state records, for one destination directory, what each source
looked like when it was last compiled successfully. It is read at the start
of a run and replaced atomically after it.

State File Layout (JSON):
    {
      "version": 1,
      "destination_dir": "/abs/target/classes",
      "output_mode": "per-source",
      "options_fingerprint": "<sha256>",
      "sources": {
        "org/acme/Foo.java": {"mtime_ns": 1700000000000000000, "digest": "<sha256>"}
      }
    }

A missing, unreadable or corrupt file loads as "no state", which makes every
candidate stale. It never fails the build.
"""

import hashlib
import json
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from .errors import StatePersistenceError

STATE_VERSION = 1


def file_digest(path: Path) -> str:
    """Compute the SHA256 digest of a file's contents."""
    sha = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            sha.update(chunk)
    return sha.hexdigest()


@dataclass(frozen=True)
class SourceRecord:
    """State recorded for one successfully compiled source."""

    mtime_ns: int
    digest: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"mtime_ns": self.mtime_ns}
        if self.digest is not None:
            data["digest"] = self.digest
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SourceRecord":
        return cls(mtime_ns=int(data["mtime_ns"]), digest=data.get("digest"))


@dataclass
class BuildState:
    """Snapshot of the last successful compilation of one destination."""

    destination_dir: str
    output_mode: str
    options_fingerprint: str = ""
    sources: Dict[str, SourceRecord] = field(default_factory=dict)

    def get(self, relative_path: str) -> Optional[SourceRecord]:
        return self.sources.get(relative_path)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "version": STATE_VERSION,
            "destination_dir": self.destination_dir,
            "output_mode": self.output_mode,
            "options_fingerprint": self.options_fingerprint,
            "sources": {
                path: record.to_dict()
                for path, record in sorted(self.sources.items())
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BuildState":
        """Create BuildState from dictionary.

        Raises:
            ValueError: If the data does not describe a state of this version
        """
        if data.get("version") != STATE_VERSION:
            raise ValueError(f"Unsupported state version: {data.get('version')!r}")
        return cls(
            destination_dir=str(data["destination_dir"]),
            output_mode=str(data["output_mode"]),
            options_fingerprint=str(data.get("options_fingerprint", "")),
            sources={
                str(path): SourceRecord.from_dict(record)
                for path, record in data.get("sources", {}).items()
            },
        )


class BuildStateStore:
    """Reads and atomically replaces the state file of one destination."""

    def __init__(self, state_file: Path):
        """Initialize the store.

        Args:
            state_file: Path of the JSON state file
        """
        self.state_file = Path(state_file)

    def load(self) -> Optional[BuildState]:
        """Load the state from disk.

        Returns:
            The recorded state, or None if absent or unusable
        """
        if not self.state_file.exists():
            return None

        try:
            with open(self.state_file, encoding="utf-8") as f:
                data = json.load(f)
            state = BuildState.from_dict(data)
            logging.debug(f"Loaded build state with {len(state.sources)} entries from {self.state_file}")
            return state
        except KeyboardInterrupt:
            raise
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            logging.warning(f"Ignoring unusable build state {self.state_file}: {e}")
            return None

    def save(self, state: BuildState) -> None:
        """Write the state atomically (write to a temp file, then rename).

        On failure the previous state file is removed as well, so the next
        run falls back to a full rebuild instead of trusting stale data.

        Raises:
            StatePersistenceError: If the state could not be written
        """
        temp_path: Optional[Path] = None
        try:
            self.state_file.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(
                prefix=f".{self.state_file.name}.",
                suffix=".tmp",
                dir=self.state_file.parent
            )
            temp_path = Path(temp_name)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(state.to_dict(), f, indent=2)
                f.flush()
                os.fsync(f.fileno())

            os.replace(temp_path, self.state_file)
            temp_path = None
        except KeyboardInterrupt:
            raise
        except OSError as e:
            self.delete()
            raise StatePersistenceError(f"Failed to write build state {self.state_file}: {e}") from e
        finally:
            if temp_path is not None and temp_path.exists():
                temp_path.unlink()

    def delete(self) -> None:
        """Remove the state file if present."""
        try:
            self.state_file.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logging.warning(f"Failed to remove build state {self.state_file}: {e}")
