"""CLI package for gitwire.

This package contains the Typer application and all subcommands.
"""

from gitwire.cli.main import app

__all__ = ["app"]
