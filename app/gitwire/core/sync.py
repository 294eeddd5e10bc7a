"""Sync orchestration.

This module provides the SyncOrchestrator class that turns a list of
entries into a deduplicated fetch plan, fetches every unique repository
under bounded concurrency, and places the filtered content of each entry
at its destination inside the project root.
"""

import logging
import shutil
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from pathlib import Path

from gitwire.cache.fetcher import RepositoryFetcher
from gitwire.cache.filter import filter_repository_content
from gitwire.cache.lock import RepositoryLockManager
from gitwire.cache.manager import CacheManager, entry_cache_key
from gitwire.cache.metadata import CacheMetadataStore, create_metadata_record
from gitwire.core.errors import DestinationError, ErrorKind, WireError
from gitwire.core.sequence import MAX_CONCURRENT_FETCHES
from gitwire.models.cache import FetchOutcome, WireOperation
from gitwire.models.entry import Entry
from gitwire.utils.formatting import print_info, print_progress

logger = logging.getLogger(__name__)


def validate_destination(root: Path, destination: str) -> Path:
    """Resolve an entry's destination and keep it inside the project root.

    Symlinks are followed, so a link pointing outside the root is caught
    as well as a literal traversal.

    Args:
        root: Project root.
        destination: Destination path of an entry, relative to the root.

    Returns:
        The resolved absolute destination.

    Raises:
        DestinationError: If the destination is the root itself or escapes it.
    """
    root_path = root.resolve()
    dest_path = (root_path / destination.lstrip("/")).resolve()
    if dest_path == root_path or not dest_path.is_relative_to(root_path):
        raise DestinationError(
            ErrorKind.DESTINATION_ESCAPE,
            f"Destination path '{destination}' escapes the project root "
            "(path traversal not allowed)",
            str(dest_path),
        )
    return dest_path


@dataclass(slots=True)
class SyncReport:
    """What one sync run did.

    Attributes:
        unique_entries: Entries fetched (or reused), one per cache key.
        operations: One operation per input entry.
        fetched: Cache directories populated by a network fetch.
        cache_hits: Cache directories reused without fetching.
        placed: Destinations written, in operation order.
        skipped: Operation ids skipped for having no sources.
        missing_sources: Missing source paths by destination.
    """

    unique_entries: list[Entry] = field(default_factory=list)
    operations: list[WireOperation] = field(default_factory=list)
    fetched: list[Path] = field(default_factory=list)
    cache_hits: list[Path] = field(default_factory=list)
    placed: list[Path] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    missing_sources: dict[str, list[str]] = field(default_factory=dict)

    @property
    def fetch_count(self) -> int:
        """Number of network fetches performed."""
        return len(self.fetched)


class SyncOrchestrator:
    """Runs the fetch-then-place pipeline for a list of entries.

    Attributes:
        cache_manager: Owner of the run's cache slots.
        fetcher: Repository fetcher.
        lock_manager: Per-slot locks held for the duration of each fetch.
        metadata_store: Optional durable bookkeeping for eviction.
        max_concurrent_fetches: Upper bound on concurrent fetches.
    """

    def __init__(
        self,
        cache_manager: CacheManager,
        fetcher: RepositoryFetcher | None = None,
        lock_manager: RepositoryLockManager | None = None,
        metadata_store: CacheMetadataStore | None = None,
        max_concurrent_fetches: int = MAX_CONCURRENT_FETCHES,
    ) -> None:
        self.cache_manager = cache_manager
        self.fetcher = fetcher or RepositoryFetcher()
        self.lock_manager = lock_manager or RepositoryLockManager()
        self.metadata_store = metadata_store
        self.max_concurrent_fetches = max(1, max_concurrent_fetches)

    def run(self, entries: list[Entry], root: Path) -> SyncReport:
        """Sync every entry into the project root.

        Args:
            entries: Resolved entries, in order.
            root: Project root.

        Returns:
            SyncReport describing fetches and placements.

        Raises:
            DestinationError: If any destination escapes the root; nothing is
                fetched or written in that case.
            WireError: If a fetch or a placement fails.
        """
        for entry in entries:
            validate_destination(root, entry.destination)

        report = SyncReport()
        report.unique_entries, report.operations = self.cache_manager.plan_fetch_operations(
            entries
        )
        logger.info(
            "Identified %d unique repositories to fetch (%d redundant fetches avoided)",
            len(report.unique_entries),
            len(entries) - len(report.unique_entries),
        )

        for outcome in self.fetch_all(report.unique_entries):
            if outcome.cache_hit:
                report.cache_hits.append(outcome.cache_path)
            else:
                report.fetched.append(outcome.cache_path)

        total = len(report.operations)
        for i, operation in enumerate(report.operations):
            entry = operation.entry
            if not entry.sources:
                logger.info("Skipping wire operation with no sources: %s", operation.operation_id)
                report.skipped.append(operation.operation_id)
                continue
            print_progress(f">> {i + 1}/{total} {entry.destination}{entry.label}")
            dest, missing = self.place(operation, root)
            report.placed.append(dest)
            if missing:
                report.missing_sources[entry.destination] = missing
        return report

    def fetch_all(self, unique_entries: list[Entry]) -> list[FetchOutcome]:
        """Fetch every unique entry's repository with bounded concurrency.

        All fetches run to completion; the error of the lowest-indexed
        failing entry is raised afterwards.

        Returns:
            One FetchOutcome per unique entry, in order.

        Raises:
            WireError: The first captured error, by entry index.
        """
        if not unique_entries:
            return []
        workers = min(self.max_concurrent_fetches, len(unique_entries))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="git-wire-fetch") as pool:
            futures = [pool.submit(self._fetch_one, entry) for entry in unique_entries]
            results: list[FetchOutcome | WireError] = []
            for entry, future in zip(unique_entries, futures, strict=True):
                try:
                    results.append(future.result())
                except WireError as e:
                    results.append(e)
                except Exception as e:
                    logger.debug("Fetch of %s raised unexpectedly", entry.url, exc_info=True)
                    results.append(
                        WireError(
                            ErrorKind.WORKER_FAULT,
                            f"Unexpected failure while fetching {entry.url}",
                            f"{type(e).__name__}: {e}",
                        )
                    )

        outcomes: list[FetchOutcome] = []
        for result in results:
            if isinstance(result, WireError):
                raise result
            outcomes.append(result)
        return outcomes

    def _fetch_one(self, entry: Entry) -> FetchOutcome:
        key = entry_cache_key(entry)
        cache_path = self.cache_manager.get_or_schedule_fetch(entry)
        with self.lock_manager.hold(key, cache_path):
            self.cache_manager.mark_in_use(entry)
            outcome = self.fetcher.fetch_repository(entry, cache_path)
            self.cache_manager.mark_fetched(entry, outcome.commit_hash)

        if outcome.cache_hit:
            print_info(f"Using cached repository: {entry.url} ({entry.revision})")
        else:
            print_info(f"Fetched repository: {entry.url} ({entry.revision})")
        self._record_metadata(key, entry, outcome)
        return outcome

    def _record_metadata(self, key: str, entry: Entry, outcome: FetchOutcome) -> None:
        if self.metadata_store is None:
            return
        if outcome.cache_hit and self.metadata_store.touch(key):
            return
        cached = self.cache_manager.get(entry)
        commit = cached.commit_hash if cached is not None else outcome.commit_hash
        if commit is None:
            commit = self.fetcher.head_commit(outcome.cache_path)
        self.metadata_store.store(key, create_metadata_record(entry, outcome.cache_path, commit))

    def place(self, operation: WireOperation, root: Path) -> tuple[Path, list[str]]:
        """Replace an entry's destination with its filtered content.

        Args:
            operation: Operation binding the entry to its cache directory.
            root: Project root.

        Returns:
            Tuple of (resolved destination, source paths missing from the cache).

        Raises:
            DestinationError: If the destination escapes the root or copying fails.
        """
        entry = operation.entry
        dest = validate_destination(root, entry.destination)
        try:
            if dest.is_symlink() or dest.is_file():
                dest.unlink()
            elif dest.exists():
                shutil.rmtree(dest)
            dest.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DestinationError(
                ErrorKind.COPY_TO_DESTINATION, f"Could not replace {dest}", str(e)
            ) from e

        missing = filter_repository_content(operation.cache_path, dest, entry.sources)
        logger.debug("Copied %s to %s", ", ".join(entry.sources), dest)
        return dest, missing
