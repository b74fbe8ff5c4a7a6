"""
File system helpers used by the installer.

Covers the small set of operations the provisioning pipeline needs:
removing scratch trees safely, deleting files that may not exist and
marking binaries executable.
"""

import logging
import os
import shutil
import stat
from pathlib import Path
from typing import Optional, Union

logger = logging.getLogger(__name__)

IS_WINDOWS = os.name == "nt"


class FilesystemError(Exception):
    """Base exception for filesystem operations."""

    pass


def is_relative_to(path: Path, parent: Path) -> bool:
    """
    Check whether `path` lies under `parent`.

    Args:
        path: Path to check
        parent: Potential parent directory

    Returns:
        True if path is parent or inside it
    """
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def safe_unlink(path: Union[str, Path]) -> bool:
    """
    Delete a file if it exists.

    Returns:
        True if a file was removed
    """
    path = Path(path)
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False


def safe_rmtree(
    path: Union[str, Path], require_prefix: Optional[Union[str, Path]] = None
) -> None:
    """
    Safely remove a directory tree with safeguards.

    Args:
        path: Directory to remove
        require_prefix: If specified, path must be under this directory

    Raises:
        ValueError: If path is not under require_prefix
        FilesystemError: If deletion fails

    Example:
        >>> safe_rmtree('resources/ffmpeg-temp', require_prefix='resources')
    """
    path = Path(path).resolve()

    if require_prefix is not None:
        require_prefix = Path(require_prefix).resolve()
        if not is_relative_to(path, require_prefix):
            raise ValueError(
                f"Refusing to delete '{path}': not under required prefix '{require_prefix}'"
            )

    if not path.exists():
        return

    if not path.is_dir():
        raise FilesystemError(f"Path is not a directory: {path}")

    try:
        if IS_WINDOWS:

            def handle_remove_readonly(func, path, exc):
                """Error handler for Windows read-only files."""
                if not os.access(path, os.W_OK):
                    os.chmod(path, stat.S_IWRITE)
                    func(path)
                else:
                    raise

            shutil.rmtree(path, onerror=handle_remove_readonly)
        else:
            shutil.rmtree(path)

    except Exception as e:
        raise FilesystemError(f"Failed to remove directory '{path}': {e}")


def set_executable(path: Union[str, Path], windows: bool = IS_WINDOWS) -> None:
    """
    Mark a file executable (0o755).

    Windows targets rely on the .exe extension, so this is a no-op there.
    """
    if windows:
        return
    os.chmod(path, 0o755)


def is_executable(path: Union[str, Path]) -> bool:
    """Check whether the executable bit is set for the owner."""
    return bool(Path(path).stat().st_mode & stat.S_IXUSR)


__all__ = [
    "FilesystemError",
    "is_relative_to",
    "safe_unlink",
    "safe_rmtree",
    "set_executable",
    "is_executable",
]
