"""
Advisory file locking for legacy migration.

Each call opens its own handle on the lock file, so concurrent callers in
one process never share a descriptor.  The lock is released when the
context exits, whatever the exit path.
"""

import fcntl
import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

from ..core.exceptions import LockTimeout

logger = logging.getLogger(__name__)

POLL_INTERVAL_SEC = 0.05


@contextmanager
def exclusive_lock(
    lock_path: Union[str, Path],
    timeout_seconds: float = 0,
    identifier: Optional[str] = None,
    clock=time.monotonic,
) -> Iterator[None]:
    """Hold an exclusive ``flock`` on ``lock_path``.

    Args:
        lock_path: Lock file (created if missing).
        timeout_seconds: Give up after this long; 0 waits indefinitely.
        identifier: Name reported in the timeout error.

    Raises:
        LockTimeout: The lock was not acquired within ``timeout_seconds``.
    """
    lock_path = Path(lock_path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with lock_path.open("a+", encoding="utf-8") as lock_handle:
        if timeout_seconds and timeout_seconds > 0:
            deadline = clock() + timeout_seconds
            while True:
                try:
                    fcntl.flock(lock_handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except BlockingIOError:
                    if clock() >= deadline:
                        raise LockTimeout(
                            f"timed out after {timeout_seconds}s waiting for "
                            f"lock {lock_path}",
                            identifier=identifier,
                        )
                    time.sleep(POLL_INTERVAL_SEC)
        else:
            fcntl.flock(lock_handle.fileno(), fcntl.LOCK_EX)
        logger.debug("Acquired migration lock %s", lock_path)
        try:
            yield
        finally:
            fcntl.flock(lock_handle.fileno(), fcntl.LOCK_UN)
            logger.debug("Released migration lock %s", lock_path)
