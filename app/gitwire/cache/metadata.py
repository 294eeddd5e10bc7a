"""Disk-backed cache metadata and eviction.

This module provides the CacheMetadataStore class that keeps one
CacheMetadataRecord per cache key in a JSON file, rewritten atomically on
every change, and evicts cache directories that have not been accessed
for a given age.
"""

import json
import logging
import os
import shutil
import threading
from pathlib import Path
from tempfile import NamedTemporaryFile

from pydantic import ValidationError

from gitwire.cache.lock import RepositoryLockManager
from gitwire.core.errors import CacheError, ErrorKind
from gitwire.models.cache import CacheMetadataRecord, utc_timestamp
from gitwire.models.entry import Entry

logger = logging.getLogger(__name__)


def get_directory_size(path: Path) -> int:
    """Total size in bytes of the regular files below a directory.

    Symlinks are not followed. Unreadable entries are skipped.

    Args:
        path: Directory to measure.

    Returns:
        Size in bytes, 0 if the directory does not exist.
    """
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            file_path = Path(root) / name
            try:
                if not file_path.is_symlink():
                    total += file_path.stat().st_size
            except OSError:
                continue
    return total


def create_metadata_record(
    entry: Entry, cache_path: Path, commit_hash: str | None
) -> CacheMetadataRecord:
    """Build a fresh record for a cache directory that was just fetched.

    Args:
        entry: Entry whose repository was fetched.
        cache_path: Cache directory.
        commit_hash: Commit checked out by the fetch.

    Returns:
        Record with creation and access times set to now.
    """
    now = utc_timestamp()
    return CacheMetadataRecord(
        repo_url=entry.url,
        branch=entry.revision,
        commit_hash=commit_hash or "",
        created_at=now,
        last_accessed=now,
        size_bytes=get_directory_size(cache_path),
        cache_path=str(cache_path),
    )


class CacheMetadataStore:
    """Manages cache metadata in a JSON file.

    Storage location: ``<cache root>/metadata.json``

    The file holds a single JSON object mapping cache key to record. A
    missing file is an empty store; a corrupt file is logged and treated as
    empty so a damaged cache never blocks a sync.

    Attributes:
        path: Location of the metadata file.
        lock_manager: Slot locks consulted before deleting a directory.
    """

    def __init__(self, path: Path, lock_manager: RepositoryLockManager | None = None) -> None:
        """Initialize the store and load any existing records.

        Args:
            path: Location of the metadata file.
            lock_manager: Slot locks consulted before deleting a directory.
        """
        self.path = path
        self.lock_manager = lock_manager or RepositoryLockManager()
        self._records: dict[str, CacheMetadataRecord] = {}
        self._lock = threading.Lock()
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable cache metadata %s: %s", self.path, e)
            return
        if not isinstance(data, dict):
            logger.warning("Ignoring cache metadata %s: root is not an object", self.path)
            return
        for key, raw in data.items():
            try:
                self._records[key] = CacheMetadataRecord.model_validate(raw)
            except ValidationError as e:
                logger.warning("Skipping corrupt cache metadata for %s: %s", key, e)

    def _save(self) -> None:
        """Write all records atomically.

        Raises:
            CacheError: If the file cannot be written.
        """
        payload = {key: record.model_dump() for key, record in sorted(self._records.items())}
        tmp_path: Path | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self.path.parent,
                delete=False,
                suffix=".tmp",
            ) as f:
                tmp_path = Path(f.name)
                json.dump(payload, f, indent=2)
            os.replace(str(tmp_path), str(self.path))
        except OSError as e:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise CacheError(
                ErrorKind.METADATA_IO, f"Failed to write cache metadata: {self.path}", str(e)
            ) from e

    def store(self, key: str, record: CacheMetadataRecord) -> None:
        """Insert or replace the record for a key."""
        with self._lock:
            self._records[key] = record
            self._save()

    def get(self, key: str) -> CacheMetadataRecord | None:
        """Retrieve the record for a key, if any."""
        with self._lock:
            return self._records.get(key)

    def touch(self, key: str) -> bool:
        """Refresh the last access time of a record.

        Returns:
            True if the record existed, False otherwise.
        """
        with self._lock:
            record = self._records.get(key)
            if record is None:
                return False
            record.touch()
            self._save()
            return True

    def remove(self, key: str) -> CacheMetadataRecord | None:
        """Forget a record without touching its directory.

        Returns:
            The removed record, or None if the key was unknown.
        """
        with self._lock:
            record = self._records.pop(key, None)
            if record is not None:
                self._save()
            return record

    def keys(self) -> list[str]:
        """All known cache keys, sorted."""
        with self._lock:
            return sorted(self._records)

    def records(self) -> dict[str, CacheMetadataRecord]:
        """Snapshot of all records by key."""
        with self._lock:
            return dict(self._records)

    def evict(self, key: str) -> bool:
        """Remove a record and delete its cache directory.

        The slot is locked for the deletion. Its lock file stays on disk so
        a waiting fetch keeps locking the same file.

        Returns:
            True if the key was known, False otherwise.

        Raises:
            CacheError: If a fetch currently holds the slot.
        """
        record = self.get(key)
        if record is None:
            return False
        cache_path = Path(record.cache_path)
        with self.lock_manager.try_hold(key, cache_path) as held:
            if not held:
                raise CacheError(
                    ErrorKind.CACHE_IN_USE,
                    f"Cached repository is in use: {key}",
                    "Retry once the running sync has finished.",
                )
            self.remove(key)
            _delete_cache_dir(cache_path)
        return True

    def cleanup_old_entries(self, max_age_seconds: int, now: int | None = None) -> list[str]:
        """Evict every record last accessed at least ``max_age_seconds`` ago.

        Slots held by a running fetch are skipped and keep their record.

        Args:
            max_age_seconds: Maximum allowed age since last access.
            now: Reference time, defaults to the current time.

        Returns:
            Keys of the evicted records, sorted.
        """
        current = utc_timestamp() if now is None else now
        expired = sorted(
            key
            for key, record in self.records().items()
            if record.age_seconds(current) >= max_age_seconds
        )

        evicted: list[str] = []
        for key in expired:
            record = self.get(key)
            if record is None:
                continue
            cache_path = Path(record.cache_path)
            with self.lock_manager.try_hold(key, cache_path) as held:
                if not held:
                    logger.info("Skipping cache entry %s: in use", key)
                    continue
                self.remove(key)
                _delete_cache_dir(cache_path)
            evicted.append(key)
        if evicted:
            logger.info("Evicted %d cache entries older than %ds", len(evicted), max_age_seconds)
        return evicted


def _delete_cache_dir(cache_path: Path) -> None:
    if cache_path.is_dir():
        logger.debug("Deleting cache directory %s", cache_path)
        shutil.rmtree(cache_path, ignore_errors=True)
