"""Path management for gitwire.

This module locates the project root, the configuration file inside it,
and the shared repository cache.

Defaults:
- Project root: enclosing git work tree, else the current directory
- Config: <project root>/.gitwire.toml
- Cache: <system temp dir>/git-wire-cache/ (or $GIT_WIRE_CACHE_DIR)
"""

import logging
import os
import tempfile
from pathlib import Path

from gitwire.core.errors import CacheError, ErrorKind
from gitwire.utils.shell import run_command

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".gitwire.toml"
CACHE_DIR_NAME = "git-wire-cache"
CACHE_DIR_ENV = "GIT_WIRE_CACHE_DIR"
METADATA_FILE_NAME = "metadata.json"


def find_project_root(start: Path | None = None) -> Path:
    """Find the root of the project that entries are placed into.

    Args:
        start: Directory to start from. If None, uses the current directory.

    Returns:
        Top level of the enclosing git work tree, or ``start`` itself when
        it is not inside one (or git is unavailable).
    """
    cwd = (start or Path.cwd()).resolve()
    try:
        result = run_command(["git", "rev-parse", "--show-toplevel"], cwd=str(cwd))
    except OSError as e:
        logger.debug("git unavailable, using %s as project root: %s", cwd, e)
        return cwd
    if result.success and result.stdout.strip():
        return Path(result.stdout.strip()).resolve()
    return cwd


def get_config_path(root: Path | None = None) -> Path:
    """Get the configuration file path.

    Args:
        root: Project root. If None, it is discovered from the current directory.

    Returns:
        Path to <project root>/.gitwire.toml.
    """
    return (root or find_project_root()) / CONFIG_FILE_NAME


def get_cache_root() -> Path:
    """Get the cache root directory path.

    Returns:
        Path from $GIT_WIRE_CACHE_DIR, or <system temp dir>/git-wire-cache.
    """
    override = os.environ.get(CACHE_DIR_ENV)
    if override:
        return Path(override)
    return Path(tempfile.gettempdir()) / CACHE_DIR_NAME


def get_metadata_path(cache_root: Path | None = None) -> Path:
    """Get the cache metadata file path.

    Returns:
        Path to <cache root>/metadata.json.
    """
    return (cache_root or get_cache_root()) / METADATA_FILE_NAME


def ensure_cache_root() -> Path:
    """Create the cache root directory if it doesn't exist.

    Returns:
        Path to the cache root.

    Raises:
        CacheError: If the directory cannot be created.
    """
    path = get_cache_root()
    try:
        path.mkdir(parents=True, exist_ok=True)
    except PermissionError as e:
        raise CacheError(
            ErrorKind.TEMP_DIR_CREATION,
            f"Cannot create cache directory {path}: Permission denied",
        ) from e
    except OSError as e:
        raise CacheError(
            ErrorKind.TEMP_DIR_CREATION, f"Cannot create cache directory {path}", str(e)
        ) from e
    return path
