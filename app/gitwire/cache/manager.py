"""Cache manager.

This module provides the CacheManager class that maps cache keys to
on-disk clone directories for the current run and plans the minimal set
of fetches needed to satisfy a list of entries.
"""

import logging
import threading
from datetime import UTC, datetime
from pathlib import Path

from gitwire.cache.key import generate_key
from gitwire.core.errors import CacheError, ErrorKind
from gitwire.models.cache import CachedRepository, WireOperation
from gitwire.models.entry import Entry, Method

logger = logging.getLogger(__name__)


def entry_cache_key(entry: Entry) -> str:
    """Cache key of the repository an entry points at."""
    return generate_key(entry.url, entry.revision)


class CacheManager:
    """Owns the key to CachedRepository map of one run.

    The map is guarded by a single lock; every mutation goes through
    ``get_or_schedule_fetch``.

    Attributes:
        cache_root: Directory holding one subdirectory per cache key.
    """

    def __init__(self, cache_root: Path) -> None:
        """Initialize the manager.

        Args:
            cache_root: Directory holding one subdirectory per cache key.
        """
        self.cache_root = cache_root
        self._repositories: dict[str, CachedRepository] = {}
        self._lock = threading.Lock()

    def cache_path_for(self, key: str) -> Path:
        """Deterministic cache directory of a key."""
        return self.cache_root / key

    def get_or_schedule_fetch(self, entry: Entry) -> Path:
        """Reserve the cache slot for an entry's repository.

        Returns the known path if the key was already requested during this
        run; otherwise creates the directory, records a new CachedRepository
        and returns its path. No network access happens here.

        Args:
            entry: Entry to place.

        Returns:
            Cache directory for the entry's repository.

        Raises:
            CacheError: If the cache directory cannot be created.
        """
        key = entry_cache_key(entry)
        with self._lock:
            cached = self._repositories.get(key)
            if cached is not None:
                return cached.local_cache_path

            cache_path = self.cache_path_for(key)
            try:
                cache_path.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise CacheError(
                    ErrorKind.TEMP_DIR_CREATION,
                    f"Cannot create cache directory: {cache_path}",
                    str(e),
                ) from e
            self._repositories[key] = CachedRepository(
                url=entry.url,
                revision=entry.revision,
                local_cache_path=cache_path,
            )
            logger.debug("Reserved cache slot %s for %s@%s", key, entry.url, entry.revision)
            return cache_path

    def get(self, entry: Entry) -> CachedRepository | None:
        """Known CachedRepository for an entry, if its key was requested."""
        with self._lock:
            return self._repositories.get(entry_cache_key(entry))

    def mark_fetched(self, entry: Entry, commit_hash: str | None) -> None:
        """Record that an entry's repository is ready in its cache slot.

        Args:
            entry: Entry whose repository was fetched or reused.
            commit_hash: Resolved commit, if the fetch reported one.
        """
        with self._lock:
            cached = self._repositories.get(entry_cache_key(entry))
            if cached is None:
                return
            if commit_hash:
                cached.commit_hash = commit_hash
            cached.last_pulled = datetime.now(UTC)
            cached.in_use = False

    def mark_in_use(self, entry: Entry) -> None:
        """Flag an entry's cache slot as being fetched."""
        with self._lock:
            cached = self._repositories.get(entry_cache_key(entry))
            if cached is not None:
                cached.in_use = True

    def plan_fetch_operations(
        self, entries: list[Entry]
    ) -> tuple[list[Entry], list[WireOperation]]:
        """Plan the unique fetches and per-entry operations for a run.

        Entries sharing a cache key share one fetch. The planned entry for a
        key is the first entry seen with that key, with its sources widened
        to the ordered union of the sources of every entry sharing the key,
        so that a sparse or partial checkout materializes all of them. If any
        of them skips sparse-checkout, the planned entry fetches a complete
        snapshot.

        Args:
            entries: Resolved entries, in run order.

        Returns:
            Tuple of (unique entries in first-seen order, one WireOperation
            per input entry).
        """
        first_seen: dict[str, Entry] = {}
        sources: dict[str, list[str]] = {}
        full: set[str] = set()
        operations: list[WireOperation] = []

        for entry in entries:
            key = entry_cache_key(entry)
            cache_path = self.get_or_schedule_fetch(entry)
            if key not in first_seen:
                first_seen[key] = entry
                sources[key] = []
            for src in entry.sources:
                if src not in sources[key]:
                    sources[key].append(src)
            if entry.effective_method == Method.SHALLOW_NO_SPARSE:
                full.add(key)
            operations.append(WireOperation(entry=entry, cache_path=cache_path))

        unique: list[Entry] = []
        for key, entry in first_seen.items():
            update: dict[str, object] = {}
            if sources[key] != entry.sources:
                update["sources"] = sources[key]
            if key in full and entry.effective_method != Method.SHALLOW_NO_SPARSE:
                update["method"] = Method.SHALLOW_NO_SPARSE
            if update:
                entry = entry.model_copy(update=update)
            unique.append(entry)

        logger.debug(
            "Planned %d unique fetches for %d entries", len(unique), len(operations)
        )
        return unique, operations
