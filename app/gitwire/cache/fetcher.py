"""Repository fetcher.

This module provides the RepositoryFetcher class that populates a cache
directory with the content of one repository revision, using one of the
three clone strategies, and resolves symbolic revisions against the
remote's branch and tag refs.
"""

import json
import logging
import re
import shutil
from pathlib import Path

from gitwire.cache.filter import normalize_path
from gitwire.core.errors import ErrorKind, GitError
from gitwire.models.cache import FetchOutcome
from gitwire.models.entry import Entry, Method
from gitwire.utils.shell import CommandResult, run_command

logger = logging.getLogger(__name__)

GIT = "git"

# git must fail instead of asking for credentials on a terminal.
GIT_ENV = {"GIT_TERMINAL_PROMPT": "0"}

# Written into .git once a slot holds a complete snapshot of its revision.
COMPLETE_MARKER = "gitwire-complete"

# Written into .git after a restricted fetch: the sources it was made for.
SOURCES_RECORD = "gitwire-sources"


def is_cache_hit(cache_path: Path) -> bool:
    """Check whether a cache directory is already populated.

    The cache manager creates slot directories ahead of the fetch, so an
    existing but empty directory is still a miss.

    Args:
        cache_path: Cache directory of a slot.

    Returns:
        True if the directory exists and has any content.
    """
    if not cache_path.is_dir():
        return False
    return any(cache_path.iterdir())


def parse_ls_remote(output: str, revision: str) -> str | None:
    """Pick the commit a revision names from ``git ls-remote`` output.

    A line matches when its ref name ends with the revision, optionally
    followed by the annotated tag marker. A direct ref is preferred over
    the peeled tag line.

    Args:
        output: Standard output of ``git ls-remote --heads --tags``.
        revision: Branch, tag, or commit reference requested by the entry.

    Returns:
        The 40-character commit hash, or None if no ref matches.
    """
    pattern = re.compile(
        r"^([0-9a-fA-F]{40})\s+(.*" + re.escape(revision) + r")(\^\{\})?$"
    )
    best: tuple[int, str] | None = None
    for line in output.splitlines():
        match = pattern.match(line.strip())
        if match is None:
            continue
        commit, name, peeled = match.groups()
        if revision not in name:
            continue
        rank = 1 if peeled else 0
        if best is None or rank < best[0]:
            best = (rank, commit)
    return best[1] if best else None


_LISTING_LINE = re.compile(r"^[0-9a-fA-F]{40,64}\s+\S+$")


def _is_ls_remote_listing(output: str) -> bool:
    """Check that every non-blank line has the ``<hash> <ref>`` shape."""
    return all(_LISTING_LINE.match(line.strip()) for line in output.splitlines() if line.strip())


def _is_complete(cache_path: Path) -> bool:
    return (cache_path / ".git" / COMPLETE_MARKER).is_file()


def _write_record(cache_path: Path, name: str, content: str) -> None:
    git_dir = cache_path / ".git"
    if not git_dir.is_dir():
        return
    try:
        (git_dir / name).write_text(content, encoding="utf-8")
    except OSError as e:
        logger.debug("Could not write %s in %s: %s", name, cache_path, e)


def _recorded_sources(cache_path: Path) -> set[str] | None:
    """Normalized sources a restricted checkout was fetched for, if recorded."""
    try:
        data = json.loads((cache_path / ".git" / SOURCES_RECORD).read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    if not isinstance(data, list):
        return None
    return {normalize_path(src) for src in data if isinstance(src, str)}


def _missing_sources(entry: Entry, cache_path: Path) -> list[str]:
    """Sources a cached checkout cannot serve.

    A sparse or partial checkout made for other sources of the same revision
    lacks them. A source absent upstream is never materialized, so the
    recorded source set decides coverage when there is one. An entry without
    sparse-checkout needs a complete snapshot.
    """
    if _is_complete(cache_path):
        return []
    if entry.effective_method == Method.SHALLOW_NO_SPARSE:
        return list(entry.sources)
    recorded = _recorded_sources(cache_path)
    if recorded is not None:
        return [src for src in entry.sources if normalize_path(src) not in recorded]
    return [src for src in entry.sources if not (cache_path / normalize_path(src)).exists()]


def _sparse_patterns(sources: list[str]) -> list[str]:
    """Non-cone sparse-checkout patterns anchored at the repository root."""
    return [src if src.startswith("/") else f"/{src}" for src in sources]


class RepositoryFetcher:
    """Clones repositories into cache directories.

    Every git invocation is made through ``run_command``; a command that
    cannot be started and a command that exits non-zero raise GitError with
    different kinds.
    """

    def _git(
        self,
        args: list[str],
        *,
        cwd: Path | None,
        command_kind: ErrorKind,
        exit_kind: ErrorKind,
        action: str,
    ) -> CommandResult:
        """Run a git subcommand and raise on failure.

        Args:
            args: Arguments after ``git``.
            cwd: Working directory for the command.
            command_kind: Kind raised when git cannot be started.
            exit_kind: Kind raised when git exits non-zero.
            action: Short description used in the error message.

        Returns:
            The successful CommandResult.

        Raises:
            GitError: If git cannot be started or exits non-zero.
        """
        cmd = [GIT, *args]
        logger.debug("Running: %s", " ".join(cmd))
        try:
            result = run_command(cmd, cwd=str(cwd) if cwd else None, env=GIT_ENV)
        except OSError as e:
            raise GitError(
                command_kind,
                f"Could not run git to {action}",
                str(e),
                command=" ".join(cmd),
            ) from e
        if not result.success:
            raise GitError(
                exit_kind,
                f"git failed to {action}",
                result.stderr or f"exit status {result.returncode}",
                command=result.command_line,
            )
        return result

    def resolve_revision(self, url: str, revision: str) -> str | None:
        """Resolve a branch or tag name to a commit via ``git ls-remote``.

        Args:
            url: Repository URL.
            revision: Branch, tag, or commit reference.

        Returns:
            The commit hash of the matching ref, or None when no branch or
            tag matches and the revision should be used literally.

        Raises:
            GitError: If ls-remote cannot be run or is rejected.
        """
        result = self._git(
            ["ls-remote", "--heads", "--tags", url],
            cwd=None,
            command_kind=ErrorKind.GIT_LS_REMOTE_COMMAND,
            exit_kind=ErrorKind.GIT_LS_REMOTE_EXIT_STATUS,
            action=f"list refs of {url}",
        )
        if "\ufffd" in result.stdout:
            raise GitError(
                ErrorKind.GIT_LS_REMOTE_STDOUT_DECODE,
                f"Output of git ls-remote for {url} is not valid UTF-8",
                command=result.command_line,
            )
        if not _is_ls_remote_listing(result.stdout):
            raise GitError(
                ErrorKind.GIT_LS_REMOTE_STDOUT_PATTERN,
                f"Unexpected output of git ls-remote for {url}",
                result.stdout,
                command=result.command_line,
            )
        commit = parse_ls_remote(result.stdout, revision)
        if commit:
            logger.debug("Resolved %s@%s to %s", url, revision, commit)
        else:
            logger.debug("No ref named %s on %s, using it as a commit", revision, url)
        return commit

    def fetch_repository(self, entry: Entry, cache_path: Path) -> FetchOutcome:
        """Populate a cache directory with an entry's repository revision.

        Does nothing if the directory already holds every source, or a
        complete snapshot when the entry does not use sparse-checkout. On
        failure the partial content is removed so the next run
        retries the fetch.

        Args:
            entry: Entry naming the repository, revision, sources and method.
            cache_path: Directory to populate.

        Returns:
            FetchOutcome describing the cache hit or the fetched commit.

        Raises:
            GitError: If any mandatory git step fails.
        """
        if is_cache_hit(cache_path):
            missing = _missing_sources(entry, cache_path)
            if not missing:
                logger.info("Using cached repository %s at %s", entry.url, cache_path)
                return FetchOutcome(cache_path=cache_path, cache_hit=True)
            logger.info(
                "Cached checkout at %s does not cover %s, fetching again",
                cache_path,
                ", ".join(missing),
            )
            _clear_directory(cache_path)

        logger.info("Fetching %s@%s into %s", entry.url, entry.revision, cache_path)
        cache_path.mkdir(parents=True, exist_ok=True)
        try:
            resolved = self.resolve_revision(entry.url, entry.revision)
            target = resolved or entry.revision
            method = entry.effective_method
            complete = False
            if method == Method.PARTIAL:
                self._fetch_partial(entry, cache_path, target)
            else:
                complete = self._fetch_shallow(
                    entry, cache_path, target, use_sparse=method == Method.SHALLOW
                )
        except GitError:
            _clear_directory(cache_path)
            raise

        if complete:
            _write_record(cache_path, COMPLETE_MARKER, "")
        else:
            _write_record(cache_path, SOURCES_RECORD, json.dumps(entry.sources))
        # A partial clone leaves HEAD on the default branch.
        head = target if method == Method.PARTIAL else "HEAD"
        commit = self.head_commit(cache_path, head) or resolved
        return FetchOutcome(cache_path=cache_path, cache_hit=False, commit_hash=commit)

    def _fetch_shallow(self, entry: Entry, path: Path, target: str, *, use_sparse: bool) -> bool:
        """Depth-1 fetch of one commit, optionally restricted by sparse-checkout.

        Returns:
            True if the working copy is a complete snapshot.
        """
        self._git(
            ["init", "--quiet"],
            cwd=path,
            command_kind=ErrorKind.GIT_CLONE_COMMAND,
            exit_kind=ErrorKind.GIT_CLONE_EXIT_STATUS,
            action=f"initialize {path}",
        )
        self._git(
            ["remote", "add", "origin", entry.url],
            cwd=path,
            command_kind=ErrorKind.GIT_CLONE_COMMAND,
            exit_kind=ErrorKind.GIT_CLONE_EXIT_STATUS,
            action=f"add remote {entry.url}",
        )

        sparse = use_sparse and self._activate_sparse_checkout(path, entry.sources)

        self._git(
            ["fetch", "--depth", "1", "--progress", "origin", target],
            cwd=path,
            command_kind=ErrorKind.GIT_FETCH_COMMAND,
            exit_kind=ErrorKind.GIT_FETCH_EXIT_STATUS,
            action=f"fetch {entry.revision} from {entry.url}",
        )
        self._git(
            ["checkout", "--progress", "FETCH_HEAD"],
            cwd=path,
            command_kind=ErrorKind.GIT_CHECKOUT_COMMAND,
            exit_kind=ErrorKind.GIT_CHECKOUT_EXIT_STATUS,
            action=f"check out {entry.revision}",
        )
        return not sparse

    def _activate_sparse_checkout(self, path: Path, sources: list[str]) -> bool:
        """Restrict the working copy to the sources.

        Failure is tolerated: the fetch continues with a full checkout.

        Returns:
            True if sparse-checkout was activated.
        """
        try:
            self._git(
                ["sparse-checkout", "set", "--no-cone", *_sparse_patterns(sources)],
                cwd=path,
                command_kind=ErrorKind.GIT_CHECKOUT_COMMAND,
                exit_kind=ErrorKind.GIT_CHECKOUT_EXIT_STATUS,
                action="activate sparse-checkout",
            )
        except GitError as e:
            logger.warning(
                "Could not activate sparse-checkout, continuing with a full checkout: %s",
                (e.detail or e.message).strip(),
            )
            return False
        return True

    def _fetch_partial(self, entry: Entry, path: Path, target: str) -> None:
        """Full clone without checkout, then checkout of the sources only."""
        self._git(
            ["clone", "--no-checkout", "--progress", entry.url, str(path)],
            cwd=None,
            command_kind=ErrorKind.GIT_CLONE_COMMAND,
            exit_kind=ErrorKind.GIT_CLONE_EXIT_STATUS,
            action=f"clone {entry.url}",
        )
        self._git(
            ["checkout", "--progress", target, "--", *entry.sources],
            cwd=path,
            command_kind=ErrorKind.GIT_CHECKOUT_COMMAND,
            exit_kind=ErrorKind.GIT_CHECKOUT_EXIT_STATUS,
            action=f"check out {', '.join(entry.sources)} at {entry.revision}",
        )

    def head_commit(self, path: Path, rev: str = "HEAD") -> str | None:
        """Commit hash a revision points at in a local clone, if resolvable."""
        try:
            result = run_command(
                [GIT, "rev-parse", f"{rev}^{{commit}}"], cwd=str(path), env=GIT_ENV
            )
        except OSError as e:
            logger.debug("Could not run git rev-parse in %s: %s", path, e)
            return None
        if not result.success:
            logger.debug("git rev-parse %s failed in %s: %s", rev, path, result.stderr.strip())
            return None
        return result.stdout.strip() or None


def _clear_directory(path: Path) -> None:
    """Remove everything inside a directory, keeping the directory."""
    if not path.is_dir():
        return
    for child in path.iterdir():
        if child.is_dir() and not child.is_symlink():
            shutil.rmtree(child, ignore_errors=True)
        else:
            child.unlink(missing_ok=True)
