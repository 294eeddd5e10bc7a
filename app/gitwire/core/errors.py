"""Error taxonomy for gitwire.

Every failure the sync and check flows can report is a WireError tagged
with an ErrorKind, so callers can branch on the kind instead of parsing
messages. The message is meant for the user; ``detail`` carries captured
diagnostic output such as git's stderr.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Distinct kinds of failure."""

    # Configuration file
    CONFIG_OPEN = "config_open"
    CONFIG_PARSE = "config_parse"
    CONFIG_SHAPE = "config_shape"
    CONFIG_SOUNDNESS = "config_soundness"
    CONFIG_NAME_NOT_UNIQUE = "config_name_not_unique"
    CONFIG_WRITE = "config_write"
    PROMPT = "prompt"

    # Environment
    PROJECT_ROOT = "project_root"
    TEMP_DIR_CREATION = "temp_dir_creation"

    # Git invocation (could not start) vs rejection (non-zero exit)
    GIT_CLONE_COMMAND = "git_clone_command"
    GIT_CLONE_EXIT_STATUS = "git_clone_exit_status"
    GIT_CHECKOUT_COMMAND = "git_checkout_command"
    GIT_CHECKOUT_EXIT_STATUS = "git_checkout_exit_status"
    GIT_FETCH_COMMAND = "git_fetch_command"
    GIT_FETCH_EXIT_STATUS = "git_fetch_exit_status"
    GIT_LS_REMOTE_COMMAND = "git_ls_remote_command"
    GIT_LS_REMOTE_EXIT_STATUS = "git_ls_remote_exit_status"
    GIT_LS_REMOTE_STDOUT_DECODE = "git_ls_remote_stdout_decode"
    GIT_LS_REMOTE_STDOUT_PATTERN = "git_ls_remote_stdout_pattern"

    # Placement and verification
    DESTINATION_ESCAPE = "destination_escape"
    COPY_TO_DESTINATION = "copy_to_destination"
    NO_ITEM_TO_OPERATE = "no_item_to_operate"
    CHECK_DIFFERENCE_EXECUTION = "check_difference_execution"

    # Cache bookkeeping
    METADATA_IO = "metadata_io"
    CACHE_IN_USE = "cache_in_use"

    # Unexpected exception raised inside a worker
    WORKER_FAULT = "worker_fault"


class WireError(Exception):
    """Base exception for all gitwire failures.

    Attributes:
        kind: The tagged kind of failure.
        message: Human readable description.
        detail: Optional diagnostic output (stderr, offending path, ...).
    """

    def __init__(self, kind: ErrorKind, message: str, detail: str | None = None) -> None:
        self.kind = kind
        self.message = message
        self.detail = detail
        super().__init__(message)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}\n{self.detail.strip()}"
        return self.message


class ConfigError(WireError):
    """Raised when the configuration file cannot be read, parsed or written."""


class GitError(WireError):
    """Raised when a git command cannot be started or is rejected.

    Attributes:
        command: The command line that failed.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        detail: str | None = None,
        command: str | None = None,
    ) -> None:
        super().__init__(kind, message, detail)
        self.command = command


class DestinationError(WireError):
    """Raised when content cannot be placed at an entry's destination."""


class NoItemToOperateError(WireError):
    """Raised when the resolved entry list is empty."""

    def __init__(self, message: str = "There are no items to operate.") -> None:
        super().__init__(ErrorKind.NO_ITEM_TO_OPERATE, message)


class CheckError(WireError):
    """Raised when a folder comparison cannot be executed."""


class CacheError(WireError):
    """Raised when the cache slot or its metadata cannot be maintained."""
