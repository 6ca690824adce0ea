"""Single-instance locking for Dockyard.

Prevents two installer processes from mutating the host at the same time.
"""
import fcntl
import os
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

from dockyard.core.errors import LockError
from dockyard.core.logger import get_logger

logger = get_logger(__name__)

DEFAULT_LOCK_FILE = Path("/run/dockyard/installer.lock")


class InstallerLock:
    """File-based lock held for the duration of a mutating session."""

    def __init__(self, lock_file: Optional[Path] = None, timeout: int = 0):
        """Initialize lock.

        Args:
            lock_file: Path to lock file (default: /run/dockyard/installer.lock)
            timeout: Seconds to wait for lock (0 = fail immediately)
        """
        self.lock_file = Path(lock_file) if lock_file else DEFAULT_LOCK_FILE
        self.timeout = timeout
        self.lock_fd = None

    def acquire(self) -> bool:
        """Acquire the lock.

        Returns:
            True if lock acquired successfully

        Raises:
            LockError: If unable to acquire lock
        """
        self.lock_file.parent.mkdir(parents=True, exist_ok=True)

        # Append mode keeps the holder's PID readable until we own the lock
        self.lock_fd = open(self.lock_file, 'a+')

        start_time = time.time()
        while True:
            try:
                fcntl.flock(self.lock_fd.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)

                self.lock_fd.seek(0)
                self.lock_fd.truncate()
                self.lock_fd.write(f"{os.getpid()}\n")
                self.lock_fd.write(f"{time.strftime('%Y-%m-%d %H:%M:%S')}\n")
                self.lock_fd.flush()

                logger.debug(f"Acquired lock: {self.lock_file}")
                return True

            except OSError:
                if self.timeout == 0 or time.time() - start_time >= self.timeout:
                    lock_info = self._read_lock_info()
                    self.lock_fd.close()
                    self.lock_fd = None
                    raise LockError(
                        f"Another Dockyard installer is running.\n"
                        f"Lock held by PID {lock_info['pid']} since {lock_info['time']}\n"
                        f"Wait for it to finish and try again."
                    )

                time.sleep(0.5)

    def release(self):
        """Release the lock."""
        if self.lock_fd is None:
            return

        # The file stays: unlinking it would let two processes lock different inodes
        try:
            self.lock_fd.seek(0)
            self.lock_fd.truncate()
            fcntl.flock(self.lock_fd.fileno(), fcntl.LOCK_UN)
            self.lock_fd.close()
            logger.debug(f"Released lock: {self.lock_file}")
        except OSError as e:
            logger.warning(f"Error releasing lock: {e}")
        finally:
            self.lock_fd = None

    def _read_lock_info(self) -> dict:
        """Read info from lock file about who holds it."""
        try:
            with open(self.lock_file) as f:
                lines = f.readlines()
                if len(lines) >= 2:
                    return {
                        'pid': lines[0].strip(),
                        'time': lines[1].strip()
                    }
        except OSError:
            pass

        return {'pid': 'unknown', 'time': 'unknown'}

    def __enter__(self):
        self.acquire()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False


@contextmanager
def installer_lock(lock_file: Optional[Path] = None, timeout: int = 0):
    """Context manager holding the installer lock.

    Usage:
        with installer_lock(config.lock_file):
            lifecycle.install(component)

    Raises:
        LockError: If unable to acquire lock
    """
    lock = InstallerLock(lock_file=lock_file, timeout=timeout)
    lock.acquire()
    try:
        yield lock
    finally:
        lock.release()
