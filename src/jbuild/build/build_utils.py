"""Filesystem helpers for cleaning build outputs."""

import os
import shutil
import stat
import sys
from pathlib import Path
from typing import Any, Callable


def _clear_readonly(func: Callable[[str], None], path: str, excinfo: Any) -> None:
    # Class files copied from read-only checkouts keep their mode bits
    os.chmod(path, stat.S_IWRITE | stat.S_IREAD | stat.S_IEXEC)
    func(path)


def remove_build_dir(path: Path) -> bool:
    """
    Delete an output or build-state directory.

    Read-only entries are made writable and retried once.

    Args:
        path: Directory to delete

    Returns:
        True if something was deleted, False if the directory did not exist

    Raises:
        OSError: If the directory cannot be deleted
    """
    path = Path(path)
    if not path.exists():
        return False

    try:
        if sys.version_info >= (3, 12):
            shutil.rmtree(path, onexc=_clear_readonly)
        else:
            shutil.rmtree(path, onerror=_clear_readonly)
    except OSError as e:
        raise OSError(f"Cannot clean {path}: {e}") from e
    return True
