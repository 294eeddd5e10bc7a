"""Utility modules for gitwire.

This module exports commonly used utility functions.
"""

from gitwire.utils.formatting import (
    console,
    create_cache_table,
    err_console,
    format_size,
    print_error,
    print_failure,
    print_info,
    print_progress,
    print_success,
    print_warning,
)
from gitwire.utils.shell import CommandResult, command_exists, run_command

__all__ = [
    "CommandResult",
    "command_exists",
    "console",
    "create_cache_table",
    "err_console",
    "format_size",
    "print_error",
    "print_failure",
    "print_info",
    "print_progress",
    "print_success",
    "print_warning",
    "run_command",
]
