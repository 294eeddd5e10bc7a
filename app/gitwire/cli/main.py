"""Main CLI application entry point.

Defines the Typer application and global options.
"""

import logging
from typing import Annotated

import typer
from rich.logging import RichHandler

from gitwire import __version__
from gitwire.cli.commands import cache, check, sync
from gitwire.utils.formatting import err_console

# Create main Typer app
app = typer.Typer(
    name="git-wire",
    help="Pull selected paths of remote git repositories into your project.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"git-wire version {__version__}")
        raise typer.Exit()


def configure_logging(verbose: bool) -> None:
    """Route log records to stderr through Rich.

    Args:
        verbose: Log at DEBUG instead of WARNING.
    """
    handler = RichHandler(console=err_console, show_path=False, show_time=verbose)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[handler],
        force=True,
    )


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    name: Annotated[
        str | None,
        typer.Option(
            "--name",
            "-n",
            help="Only operate on the entry with this name.",
        ),
    ] = None,
    target: Annotated[
        str | None,
        typer.Option(
            "--target",
            "-t",
            help="Alias of --name.",
        ),
    ] = None,
    singlethread: Annotated[
        bool,
        typer.Option(
            "--singlethread",
            "-s",
            help="Process entries one at a time, in order.",
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
) -> None:
    """git-wire - wire content of other git repositories into this one.

    Declare entries in .gitwire.toml (or pass them on the command line),
    then sync the content in and check that it has not drifted.
    """
    if name is not None and target is not None and name != target:
        raise typer.BadParameter("--name and --target must match", param_hint="--target")

    configure_logging(verbose)

    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["name_filter"] = name if name is not None else target
    ctx.obj["singlethread"] = singlethread
    ctx.obj["verbose"] = verbose


# Register commands
app.add_typer(sync.app, name="sync")
app.add_typer(check.app, name="check")
app.add_typer(cache.app, name="cache")


if __name__ == "__main__":
    app()
