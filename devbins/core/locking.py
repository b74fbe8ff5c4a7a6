"""
Cross-process locking for setup runs.

Two setup runs against the same output directory would otherwise race on
the same final paths. A file lock keyed by the resolved output directory
serializes them.

Usage:
    from devbins.core.locking import LockManager

    lock_manager = LockManager()
    with lock_manager.setup_lock(Path("resources"), timeout=600):
        # Only one process provisions this directory at a time
        pass
"""

import hashlib
import logging
import platform
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from filelock import FileLock, Timeout as LockTimeout

logger = logging.getLogger(__name__)


def get_global_cache_dir() -> Path:
    """
    Get the global cache directory for lock files.

    Returns:
        Path to global cache directory
    """
    if platform.system() == "Windows":
        base = Path.home() / "AppData" / "Local" / "devbins"
    else:
        base = Path.home() / ".devbins"

    return base


class LockManager:
    """
    Manages file locks for devbins.

    Lock files live outside the output directory so that directory only
    ever contains final binaries and ephemeral download artifacts.

    Attributes:
        lock_dir: Directory where lock files are stored
    """

    def __init__(self, lock_dir: Optional[Path] = None):
        """
        Initialize lock manager.

        Args:
            lock_dir: Directory for lock files (default: global cache/lock/)
        """
        if lock_dir is None:
            lock_dir = get_global_cache_dir() / "lock"

        self.lock_dir = Path(lock_dir)
        self.lock_dir.mkdir(parents=True, exist_ok=True)

    def lock_path_for(self, output_dir: Path) -> Path:
        """Lock file path for a given output directory."""
        digest = hashlib.sha256(
            str(Path(output_dir).resolve()).encode("utf-8")
        ).hexdigest()[:16]
        return self.lock_dir / f"setup-{digest}.lock"

    @contextmanager
    def setup_lock(self, output_dir: Path, timeout: float = 600):
        """
        Acquire the lock guarding one output directory.

        Args:
            output_dir: Directory being provisioned
            timeout: Maximum wait time in seconds

        Yields:
            None

        Raises:
            LockTimeout: If lock can't be acquired within timeout
        """
        lock_path = self.lock_path_for(output_dir)
        lock = FileLock(lock_path, timeout=timeout)

        try:
            with lock:
                logger.debug(f"Acquired setup lock: {lock_path}")
                yield
        except LockTimeout:
            logger.error(
                f"Another setup run holds {lock_path}; gave up after {timeout}s"
            )
            raise
        finally:
            logger.debug(f"Released setup lock: {lock_path}")


__all__ = ["LockManager", "LockTimeout", "get_global_cache_dir"]
