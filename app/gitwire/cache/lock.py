"""Per-repository locking for cache slots.

Two layers guard a cache directory while it is being populated: a
``threading.Lock`` per key serializes threads of this process, and a
``filelock.FileLock`` next to the directory serializes overlapping
processes. Both are held for the whole fetch. Eviction takes them without
waiting and leaves busy slots alone.
"""

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout

logger = logging.getLogger(__name__)


def lock_file_for(cache_path: Path) -> Path:
    """Path of the lock file guarding a cache directory."""
    return cache_path.with_suffix(".lock")


class RepositoryLockManager:
    """Hands out one lock per cache key.

    Attributes:
        _locks: Thread locks by key, created on first use.
    """

    def __init__(self) -> None:
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def _get_lock(self, key: str) -> threading.Lock:
        with self._registry_lock:
            if key not in self._locks:
                self._locks[key] = threading.Lock()
            return self._locks[key]

    @contextmanager
    def hold(self, key: str, cache_path: Path) -> Iterator[None]:
        """Hold the lock for a cache slot until the block exits.

        Blocks until both the in-process and the on-disk lock are acquired.
        They are released when the block exits, whether it succeeded or
        raised.

        Args:
            key: Cache key of the slot.
            cache_path: Cache directory of the slot.
        """
        repo_lock = self._get_lock(key)
        lock_path = lock_file_for(cache_path)
        lock_path.parent.mkdir(parents=True, exist_ok=True)
        with repo_lock:
            logger.debug("Waiting for cache lock %s", lock_path)
            with FileLock(str(lock_path)):
                logger.debug("Acquired cache lock %s", lock_path)
                yield
        logger.debug("Released cache lock %s", lock_path)

    @contextmanager
    def try_hold(self, key: str, cache_path: Path) -> Iterator[bool]:
        """Hold the lock for a cache slot if it is free right now.

        Never blocks. Yields True while both locks are held, or False if
        this process or another one holds the slot. Locks taken here are
        released when the block exits.

        Args:
            key: Cache key of the slot.
            cache_path: Cache directory of the slot.
        """
        repo_lock = self._get_lock(key)
        if not repo_lock.acquire(blocking=False):
            yield False
            return
        try:
            lock_path = lock_file_for(cache_path)
            lock_path.parent.mkdir(parents=True, exist_ok=True)
            file_lock = FileLock(str(lock_path), timeout=0)
            try:
                file_lock.acquire()
            except Timeout:
                logger.debug("Cache lock %s is busy", lock_path)
                held = False
            else:
                held = True
            try:
                yield held
            finally:
                if held:
                    file_lock.release()
        finally:
            repo_lock.release()
