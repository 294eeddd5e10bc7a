"""Entry resolution and sequential or parallel execution.

This module turns the persisted configuration and command-line overrides
into the working entry list, and runs a per-entry operation over that
list either strictly in order or on a bounded worker pool.
"""

import logging
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from pydantic import ValidationError

from gitwire.core.config import load_entries, save_entry
from gitwire.core.errors import ConfigError, ErrorKind, NoItemToOperateError, WireError
from gitwire.core.paths import CONFIG_FILE_NAME, find_project_root, get_config_path
from gitwire.core.prompt import prompt_create_entry
from gitwire.models.entry import Entry, EntryOverride
from gitwire.utils.formatting import print_failure, print_progress, print_success

logger = logging.getLogger(__name__)

# Upper bound on concurrent work, shared by fetches and parallel entries.
MAX_CONCURRENT_FETCHES = 4

USAGE_EXAMPLES = """No .gitwire.toml file found and no CLI arguments provided.

Usage examples:

  git-wire {command} --url <URL> --rev <REV> --src <SRC> --dst <DST>

  git-wire {command} --url <URL> --rev <REV> --src '["lib","tools"]' --dst <DST>

  git-wire {command}  # Interactive mode"""


class Mode(str, Enum):
    """Execution mode of one invocation."""

    SINGLE = "single"
    PARALLEL = "parallel"


@dataclass(frozen=True, slots=True)
class TargetConfig:
    """What the user asked to operate on.

    Attributes:
        name_filter: Only persisted entries with this name (--name/--target).
        cli_override: Entry fields given on the command line.
        save_config: Persist the command-line entry to .gitwire.toml.
        append_config: Append to the existing file instead of overwriting.
        command: Name of the running command, used in usage hints.
    """

    name_filter: str | None = None
    cli_override: EntryOverride | None = None
    save_config: bool = False
    append_config: bool = False
    command: str = "sync"


@dataclass(frozen=True, slots=True)
class ResolvedTarget:
    """Working entry list of one invocation.

    Attributes:
        root: Project root that destinations are relative to.
        entries: Entries to operate on, in order.
        cli_entry: Entry built from the command line or the prompt, if any.
        config_path: Location of .gitwire.toml for this project.
    """

    root: Path
    entries: list[Entry]
    cli_entry: Entry | None
    config_path: Path


def _override_to_entry(override: EntryOverride) -> Entry:
    try:
        return override.to_entry()
    except ValidationError as e:
        raise ConfigError(
            ErrorKind.CONFIG_SHAPE,
            "Command line arguments do not form a complete entry "
            "(--url, --rev, --src and --dst are required)",
            str(e),
        ) from e


def resolve_entries(
    config: TargetConfig,
    cwd: Path | None = None,
    prompt: Callable[[], Entry | None] = prompt_create_entry,
) -> ResolvedTarget:
    """Build the working entry list.

    Precedence:
    - File and CLI fields with a name filter: the CLI fields override the
      named entry, or form a new entry if no entry has that name.
    - File and CLI fields without a name filter: the CLI entry replaces the
      persisted list.
    - File only: persisted entries, filtered by name.
    - CLI fields only: the CLI entry, placed relative to the project root
      so a saved entry lands in the same place on later runs.
    - Neither: ask interactively, save the answer and use it.

    Args:
        config: What the user asked to operate on.
        cwd: Directory the command runs from. If None, uses the current directory.
        prompt: Interactive entry builder.

    Returns:
        ResolvedTarget with root, entries and the entry to persist.

    Raises:
        ConfigError: If the configuration or the CLI fields are invalid.
        NoItemToOperateError: If nothing is left to operate on.
    """
    cwd = (cwd or Path.cwd()).resolve()
    root = find_project_root(cwd)
    config_path = get_config_path(root)
    file_entries = load_entries(config_path)

    override = config.cli_override
    if override is not None and override.is_empty:
        override = None

    if file_entries is not None and override is not None:
        if config.name_filter is not None:
            matched = next((e for e in file_entries if e.name == config.name_filter), None)
            if matched is not None:
                merged = override.merge_into(matched)
                return ResolvedTarget(root, [merged], merged, config_path)
        cli_entry = _override_to_entry(override)
        return ResolvedTarget(root, [cli_entry], cli_entry, config_path)

    if file_entries is not None:
        entries = file_entries
        if config.name_filter is not None:
            entries = [e for e in file_entries if e.name == config.name_filter]
            if not entries:
                raise NoItemToOperateError(
                    f"No entry with name '{config.name_filter}' found in {CONFIG_FILE_NAME}"
                )
        return ResolvedTarget(root, entries, None, config_path)

    if override is not None:
        cli_entry = _override_to_entry(override)
        return ResolvedTarget(root, [cli_entry], cli_entry, config_path)

    prompted = prompt()
    if prompted is None:
        raise NoItemToOperateError(USAGE_EXAMPLES.format(command=config.command))
    save_entry(prompted, config_path, append=False)
    print_success(f"Configuration saved to {CONFIG_FILE_NAME}")
    return ResolvedTarget(root, [prompted], prompted, config_path)


def prepare_target(
    config: TargetConfig,
    cwd: Path | None = None,
    prompt: Callable[[], Entry | None] = prompt_create_entry,
) -> ResolvedTarget:
    """Resolve the entries, honor --save, and refuse an empty list.

    Args:
        config: What the user asked to operate on.
        cwd: Directory the command runs from.
        prompt: Interactive entry builder.

    Returns:
        ResolvedTarget with at least one entry.

    Raises:
        WireError: If resolution or saving fails, or nothing is left to operate on.
    """
    target = resolve_entries(config, cwd=cwd, prompt=prompt)
    if config.save_config and target.cli_entry is not None:
        save_entry(target.cli_entry, target.config_path, append=config.append_config)
        print_success(f"Configuration saved to {CONFIG_FILE_NAME}")
    if not target.entries:
        raise NoItemToOperateError()
    logger.debug("Resolved %d entries under %s", len(target.entries), target.root)
    return target


# An operation receives the entry index, a message prefix, the entry and the
# project root, and reports whether the entry is in the expected state.
Operation = Callable[[int, str, Entry, Path], bool]


def run_single(entries: list[Entry], root: Path, operation: Operation) -> bool:
    """Run an operation over entries strictly in order.

    The first error aborts the run.

    Returns:
        True if the operation succeeded for every entry.
    """
    total = len(entries)
    result = True
    for i, entry in enumerate(entries):
        print_progress(f">> {i + 1}/{total} started{entry.label}")
        if not operation(i, "", entry, root):
            result = False
    print_progress(">> All tasks have done!")
    return result


def _run_worker(
    index: int, total: int, entry: Entry, root: Path, operation: Operation
) -> bool:
    prefix = f"No.{index} "
    print_progress(f">> {prefix}({index + 1}/{total}) started{entry.label}")
    try:
        success = operation(index, prefix, entry, root)
    except WireError:
        raise
    except Exception as e:
        logger.debug("Entry %d raised unexpectedly", index, exc_info=True)
        raise WireError(
            ErrorKind.WORKER_FAULT,
            f"Unexpected failure while processing entry {prefix.strip()}{entry.label}",
            f"{type(e).__name__}: {e}",
        ) from e
    if success:
        print_progress(f">> {prefix}({index + 1}/{total}) succeeded{entry.label}")
    else:
        print_failure(f">> {prefix}({index + 1}/{total}) failed{entry.label}")
    return success


def run_parallel(
    entries: list[Entry],
    root: Path,
    operation: Operation,
    max_workers: int = MAX_CONCURRENT_FETCHES,
) -> bool:
    """Run an operation over entries on a bounded worker pool.

    Every worker runs to completion. An error in one entry never cancels
    the others; after all finish, the error of the lowest-indexed failing
    entry is raised.

    Args:
        entries: Entries to process.
        root: Project root.
        operation: Per-entry operation.
        max_workers: Upper bound on concurrently processed entries.

    Returns:
        True if the operation succeeded for every entry.

    Raises:
        WireError: The first captured error, by entry index.
    """
    total = len(entries)
    with ThreadPoolExecutor(max_workers=max(1, min(max_workers, total))) as executor:
        futures = [
            executor.submit(_run_worker, i, total, entry, root, operation)
            for i, entry in enumerate(entries)
        ]
        outcomes: list[bool | WireError] = []
        for future in futures:
            try:
                outcomes.append(future.result())
            except WireError as e:
                outcomes.append(e)
    print_progress(">> All tasks have done!")

    for outcome in outcomes:
        if isinstance(outcome, WireError):
            raise outcome
    return all(outcomes)


def run_sequence(
    entries: list[Entry],
    root: Path,
    operation: Operation,
    mode: Mode,
) -> bool:
    """Run an operation over entries in the requested mode.

    Raises:
        NoItemToOperateError: If there are no entries.
    """
    if not entries:
        raise NoItemToOperateError()
    if mode == Mode.SINGLE:
        return run_single(entries, root, operation)
    return run_parallel(entries, root, operation)
