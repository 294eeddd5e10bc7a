"""Configuration file I/O operations.

This module provides functions for loading and saving ``.gitwire.toml``
in TOML format with validation using the Entry model. Loading fails
closed: any structural problem, unsound path or duplicate name aborts
before any network activity.

File layout::

    [wire]
    entries = [
        { name = "lib", url = "https://example.com/r.git", rev = "main",
          src = "lib", dst = "vendor/lib" },
    ]
"""

import logging
import os
import tomllib
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

import tomli_w
from pydantic import ValidationError

from gitwire.core.errors import ConfigError, ErrorKind
from gitwire.models.entry import VCS_METADATA_DIR, Entry, is_path_sound, parse_sources

logger = logging.getLogger(__name__)

WIRE_SECTION = "wire"
ENTRIES_KEY = "entries"


def _read_toml(path: Path) -> dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(ErrorKind.CONFIG_PARSE, f"{path.name} format error: {e}") from e
    except OSError as e:
        raise ConfigError(ErrorKind.CONFIG_OPEN, f"Failed to read {path}", str(e)) from e


def _entries_array(data: dict[str, Any], path: Path) -> list[Any]:
    wire = data.get(WIRE_SECTION)
    if wire is None:
        raise ConfigError(
            ErrorKind.CONFIG_SHAPE, f"Missing [{WIRE_SECTION}] section in {path.name}"
        )
    if not isinstance(wire, dict):
        raise ConfigError(ErrorKind.CONFIG_SHAPE, f"[{WIRE_SECTION}] must be a table")
    entries = wire.get(ENTRIES_KEY)
    if entries is None:
        raise ConfigError(
            ErrorKind.CONFIG_SHAPE, f"Missing {ENTRIES_KEY} array in [{WIRE_SECTION}]"
        )
    if not isinstance(entries, list):
        raise ConfigError(ErrorKind.CONFIG_SHAPE, f"{ENTRIES_KEY} must be an array")
    return entries


def _check_soundness(index: int, raw: dict[str, Any]) -> None:
    """Reject traversal components before building the model."""
    src = raw.get("src")
    if isinstance(src, str):
        src = [src]
    if isinstance(src, list):
        # Non-string items are reported by model validation.
        for path in parse_sources([s for s in src if isinstance(s, str)]):
            if not is_path_sound(path):
                raise ConfigError(
                    ErrorKind.CONFIG_SOUNDNESS,
                    f"Entry {index}: src path '{path}' must not include "
                    f"'.', '..', or '{VCS_METADATA_DIR}'.",
                )
    dst = raw.get("dst")
    if isinstance(dst, str) and not is_path_sound(dst):
        raise ConfigError(
            ErrorKind.CONFIG_SOUNDNESS,
            f"Entry {index}: dst path '{dst}' must not include "
            f"'.', '..', or '{VCS_METADATA_DIR}'.",
        )


def parse_entries(raw_entries: list[Any]) -> list[Entry]:
    """Validate raw ``[wire].entries`` items.

    Args:
        raw_entries: Items of the entries array as decoded from TOML.

    Returns:
        Validated entries in file order.

    Raises:
        ConfigError: On a shape, soundness or name uniqueness violation.
    """
    entries: list[Entry] = []
    seen_names: set[str] = set()
    for i, raw in enumerate(raw_entries):
        if not isinstance(raw, dict):
            raise ConfigError(
                ErrorKind.CONFIG_SHAPE,
                f"Entry {i} in [{WIRE_SECTION}].{ENTRIES_KEY} must be a table",
            )
        _check_soundness(i, raw)
        try:
            entry = Entry.model_validate(raw)
        except ValidationError as e:
            raise ConfigError(ErrorKind.CONFIG_SHAPE, f"Entry {i} is invalid", str(e)) from e

        if entry.name is not None:
            if entry.name in seen_names:
                raise ConfigError(
                    ErrorKind.CONFIG_NAME_NOT_UNIQUE,
                    f"Entry {i}: name '{entry.name}' is not unique",
                )
            seen_names.add(entry.name)
        entries.append(entry)
    return entries


def load_entries(path: Path) -> list[Entry] | None:
    """Load and validate the entries of a configuration file.

    Args:
        path: Path to ``.gitwire.toml``.

    Returns:
        Validated entries, or None if the file doesn't exist.

    Raises:
        ConfigError: If the file cannot be read, parsed or validated.
    """
    if not path.exists():
        logger.debug("No configuration file at %s", path)
        return None
    data = _read_toml(path)
    entries = parse_entries(_entries_array(data, path))
    logger.debug("Loaded %d entries from %s", len(entries), path)
    return entries


def _write_toml(data: dict[str, Any], path: Path) -> None:
    """Write a TOML document atomically.

    Raises:
        ConfigError: If the file cannot be written.
    """
    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            mode="wb",
            dir=path.parent,
            delete=False,
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            tomli_w.dump(data, f)
        os.replace(str(tmp_path), str(path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise ConfigError(ErrorKind.CONFIG_WRITE, f"Failed to write {path}", str(e)) from e


def save_entry(entry: Entry, path: Path, *, append: bool = False) -> Path:
    """Persist an entry to the configuration file.

    Without ``append`` the file is replaced by one holding only this entry.
    With ``append`` the entry is added to the existing entries array; a
    missing file is created. Appending validates the result, so a duplicate
    name is refused instead of producing a file that no longer loads.

    Args:
        entry: Entry to persist.
        path: Path to ``.gitwire.toml``.
        append: Append instead of overwrite.

    Returns:
        Path where the configuration was saved.

    Raises:
        ConfigError: If the existing file is invalid or cannot be written.
    """
    if append and path.exists():
        data = _read_toml(path)
        raw_entries = _entries_array(data, path)
        raw_entries.append(entry.to_toml_dict())
        parse_entries(raw_entries)
    else:
        data = {WIRE_SECTION: {ENTRIES_KEY: [entry.to_toml_dict()]}}

    _write_toml(data, path)
    logger.debug("Saved entry %s to %s (append=%s)", entry.name, path, append)
    return path
