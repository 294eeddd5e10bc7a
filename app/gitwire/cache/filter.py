"""Content filter.

Copies the requested subset of a cached repository tree into a
destination directory. A file source lands at the destination under its
basename; a directory source has its whole subtree copied into the
destination, relative to the source directory. Symlinks and other
non-regular entries are never copied.
"""

import logging
import shutil
from pathlib import Path

from gitwire.core.errors import DestinationError, ErrorKind
from gitwire.models.entry import VCS_METADATA_DIR

logger = logging.getLogger(__name__)


def normalize_path(path: str) -> str:
    """Collapse '.' and '..' segments and strip leading slashes.

    A '..' above the top is dropped, so the result never leaves the
    directory it is later joined to.

    Args:
        path: Source path as written in an entry.

    Returns:
        Relative POSIX path, empty for the repository root.
    """
    stack: list[str] = []
    for part in path.replace("\\", "/").split("/"):
        if part in ("", "."):
            continue
        if part == "..":
            if stack:
                stack.pop()
            continue
        stack.append(part)
    return "/".join(stack)


def _copy_tree(src: Path, dst: Path) -> int:
    """Copy regular files and directories below src into dst.

    The version-control metadata directory is skipped.

    Returns:
        Number of files copied.
    """
    dst.mkdir(parents=True, exist_ok=True)
    copied = 0
    for child in sorted(src.iterdir()):
        if child.is_symlink():
            logger.debug("Skipping symlink %s", child)
            continue
        target = dst / child.name
        if child.is_dir():
            if child.name == VCS_METADATA_DIR:
                continue
            copied += _copy_tree(child, target)
        elif child.is_file():
            shutil.copy2(child, target)
            copied += 1
    return copied


def filter_repository_content(
    source_root: Path, dest_root: Path, filters: list[str]
) -> list[str]:
    """Copy each filter path of source_root into dest_root.

    Args:
        source_root: Root of the cached (or freshly fetched) repository.
        dest_root: Directory receiving the content; created if missing.
        filters: Source paths, in entry order.

    Returns:
        The filter paths that were missing from the source and skipped.

    Raises:
        DestinationError: If copying fails.
    """
    missing: list[str] = []
    try:
        dest_root.mkdir(parents=True, exist_ok=True)
        for filter_path in filters:
            normalized = normalize_path(filter_path)
            source = source_root / normalized if normalized else source_root

            if source.is_symlink() or not source.exists():
                logger.warning(
                    "Filter path '%s' does not exist in source repository", filter_path
                )
                missing.append(filter_path)
                continue

            if source.is_file():
                shutil.copy2(source, dest_root / source.name)
                logger.debug("Copied file %s to %s", normalized, dest_root)
            elif source.is_dir():
                count = _copy_tree(source, dest_root)
                logger.debug("Copied %d files from %s to %s", count, normalized or ".", dest_root)
    except OSError as e:
        raise DestinationError(
            ErrorKind.COPY_TO_DESTINATION,
            f"Could not copy content from {source_root} to {dest_root}",
            str(e),
        ) from e
    return missing
