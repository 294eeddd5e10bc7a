"""CLI commands for gitwire.

This package contains all subcommand implementations.
"""

from gitwire.cli.commands import cache, check, sync

__all__ = ["cache", "check", "sync"]
