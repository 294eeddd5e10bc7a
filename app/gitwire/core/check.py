"""Check orchestration.

This module verifies that previously synced destinations still match
their source. Each entry is fetched fresh into a temporary directory,
passed through the same content filter sync uses, and compared with the
destination in both directions.
"""

import filecmp
import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from gitwire.cache.fetcher import RepositoryFetcher
from gitwire.cache.filter import filter_repository_content
from gitwire.core.errors import CheckError, ErrorKind, WireError
from gitwire.core.sequence import Mode, run_sequence
from gitwire.core.sync import validate_destination
from gitwire.models.entry import Entry
from gitwire.utils.formatting import print_failure, print_info

logger = logging.getLogger(__name__)

TEMP_DIR_PREFIX = "git-wire-"


@dataclass(slots=True)
class FolderDiff:
    """Bidirectional comparison of a fresh copy and a destination.

    Paths are POSIX paths relative to the compared directories.

    Attributes:
        missing: Files only in the fresh copy (destination lacks updates).
        extra: Files only in the destination (stale or foreign files).
        changed: Files in both whose content differs.
    """

    missing: list[str] = field(default_factory=list)
    extra: list[str] = field(default_factory=list)
    changed: list[str] = field(default_factory=list)

    @property
    def identical(self) -> bool:
        """True when the two trees hold the same files with the same content."""
        return not (self.missing or self.extra or self.changed)


def _list_files(root: Path) -> set[str]:
    """Relative paths of the regular files below a directory."""
    files: set[str] = set()
    if not root.is_dir():
        return files
    for dirpath, _dirs, names in os.walk(root):
        base = Path(dirpath)
        for name in names:
            path = base / name
            if path.is_file() and not path.is_symlink():
                files.add(path.relative_to(root).as_posix())
    return files


def compare_folders(original: Path, destination: Path) -> FolderDiff:
    """Compare two directory trees file by file.

    A missing destination counts as empty, so every original file is
    reported as missing.

    Args:
        original: Freshly fetched and filtered content.
        destination: Content currently in the project.

    Returns:
        FolderDiff with sorted path lists.

    Raises:
        CheckError: If the trees cannot be read.
    """
    try:
        original_files = _list_files(original)
        destination_files = _list_files(destination)
        changed = [
            rel
            for rel in sorted(original_files & destination_files)
            if not filecmp.cmp(original / rel, destination / rel, shallow=False)
        ]
    except OSError as e:
        raise CheckError(
            ErrorKind.CHECK_DIFFERENCE_EXECUTION,
            f"Could not compare {original} with {destination}",
            str(e),
        ) from e
    return FolderDiff(
        missing=sorted(original_files - destination_files),
        extra=sorted(destination_files - original_files),
        changed=changed,
    )


class CheckOrchestrator:
    """Compares each entry's destination with a fresh copy of its sources.

    Attributes:
        fetcher: Repository fetcher used for the fresh copies.
        reports: FolderDiff per entry index, filled as entries are checked.
    """

    def __init__(self, fetcher: RepositoryFetcher | None = None) -> None:
        self.fetcher = fetcher or RepositoryFetcher()
        self.reports: dict[int, FolderDiff] = {}

    def compare_entry(self, entry: Entry, root: Path) -> FolderDiff:
        """Fetch an entry fresh and diff it against its destination.

        Args:
            entry: Entry to verify.
            root: Project root.

        Returns:
            FolderDiff between the fresh content and the destination.

        Raises:
            WireError: If the temporary directory, the fetch or the comparison fails.
        """
        destination = validate_destination(root, entry.destination)
        try:
            temp = tempfile.TemporaryDirectory(prefix=TEMP_DIR_PREFIX)
        except OSError as e:
            raise WireError(
                ErrorKind.TEMP_DIR_CREATION, "Could not create a temporary directory", str(e)
            ) from e

        with temp as temp_dir:
            clone = Path(temp_dir) / "repo"
            staging = Path(temp_dir) / "staging"
            self.fetcher.fetch_repository(entry, clone)
            filter_repository_content(clone, staging, entry.sources)
            return compare_folders(staging, destination)

    def check_entry(self, index: int, prefix: str, entry: Entry, root: Path) -> bool:
        """Check one entry and print every difference.

        Args:
            index: Position of the entry in the run.
            prefix: Message prefix identifying the entry in parallel runs.
            entry: Entry to verify.
            root: Project root.

        Returns:
            True if the destination matches the fresh copy.
        """
        print_info(f"  - {prefix}compare `src` and `dst`")
        diff = self.compare_entry(entry, root)
        self.reports[index] = diff
        for rel in diff.missing:
            print_failure(f"    {prefix}! file {entry.destination}/{rel} does not exist")
        for rel in diff.extra:
            print_failure(
                f"    {prefix}! file {entry.destination}/{rel} does not exist on original"
            )
        for rel in diff.changed:
            print_failure(
                f"    {prefix}! file {entry.destination}/{rel} is not identical to original"
            )
        if diff.identical:
            logger.debug(
                "Destination %s matches %s@%s", entry.destination, entry.url, entry.revision
            )
        return diff.identical

    def run(self, entries: list[Entry], root: Path, mode: Mode) -> bool:
        """Check every entry; the result is the AND of all comparisons.

        Raises:
            WireError: If any entry cannot be checked.
        """
        self.reports = {}
        return run_sequence(entries, root, self.check_entry, mode)
