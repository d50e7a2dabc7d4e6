"""Host collaborator interfaces.

The compilation core depends on a few narrow capabilities of the host build
tool. Each is an interface with a trivial in-memory implementation, so tests
and the bundled CLI can supply them without a real host.
"""

import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional


@dataclass(frozen=True)
class BuildDirectories:
    """Build directories of a project."""

    build_dir: Path
    output_dir: Path
    test_output_dir: Path


class IArtifactManager(ABC):
    """Records which path is the built artifact of a project unit."""

    @abstractmethod
    def set_path(self, artifact_id: str, path: Path) -> None:
        pass

    @abstractmethod
    def get_path(self, artifact_id: str) -> Optional[Path]:
        pass


class IToolchainManager(ABC):
    """Locates tools provided by a configured toolchain."""

    @abstractmethod
    def find_tool(self, name: str) -> Optional[Path]:
        """Return the path of a toolchain tool, or None if not provided."""
        pass


class IProjectManager(ABC):
    """Answers questions about the project model."""

    @abstractmethod
    def get_build_directories(self, project: str) -> BuildDirectories:
        pass


class InMemoryArtifactManager(IArtifactManager):
    """Artifact manager backed by a dictionary."""

    def __init__(self) -> None:
        self._paths: Dict[str, Path] = {}

    def set_path(self, artifact_id: str, path: Path) -> None:
        self._paths[artifact_id] = Path(path)

    def get_path(self, artifact_id: str) -> Optional[Path]:
        return self._paths.get(artifact_id)


class InMemoryToolchainManager(IToolchainManager):
    """Toolchain manager serving tools from a name -> path mapping.

    Tools can also be resolved from a toolchain home directory, where
    ``<home>/bin/<name>`` is tried.
    """

    def __init__(self, tools: Optional[Dict[str, Path]] = None, home: Optional[Path] = None):
        self.tools = {name: Path(path) for name, path in (tools or {}).items()}
        self.home = Path(home) if home else None

    def find_tool(self, name: str) -> Optional[Path]:
        if name in self.tools:
            return self.tools[name]
        if self.home is not None:
            found = shutil.which(name, path=str(self.home / "bin"))
            if found:
                return Path(found)
        return None


class InMemoryProjectManager(IProjectManager):
    """Project manager backed by a dictionary of build directories."""

    def __init__(self, directories: Optional[Dict[str, BuildDirectories]] = None):
        self._directories = dict(directories or {})

    def add_project(self, project: str, directories: BuildDirectories) -> None:
        self._directories[project] = directories

    def get_build_directories(self, project: str) -> BuildDirectories:
        try:
            return self._directories[project]
        except KeyError:
            raise KeyError(f"Unknown project: {project}") from None
