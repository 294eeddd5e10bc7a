"""Check command.

This module provides the `git-wire check` command that verifies synced
destinations still match a fresh copy of their source.
"""

import typer

from gitwire.cli.types import (
    AppendOption,
    DescriptionOption,
    DstOption,
    EntryNameOption,
    MethodOption,
    RevOption,
    SaveOption,
    SrcOption,
    UrlOption,
    build_target_config,
    fail,
    get_mode,
    require_git,
)
from gitwire.core.check import CheckOrchestrator
from gitwire.core.errors import WireError
from gitwire.core.sequence import prepare_target
from gitwire.utils.formatting import console, print_failure, print_success

app = typer.Typer(
    name="check",
    help="Verify that synced content matches its source.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def check(
    ctx: typer.Context,
    url: UrlOption = None,
    rev: RevOption = None,
    src: SrcOption = None,
    dst: DstOption = None,
    entry_name: EntryNameOption = None,
    description: DescriptionOption = None,
    method: MethodOption = None,
    save: SaveOption = False,
    append: AppendOption = False,
) -> None:
    """Check entries from .gitwire.toml or the command line.

    Each entry is fetched fresh into a temporary directory and compared
    with its destination in both directions. Any missing, extra or changed
    file fails the check.

    Examples:
        git-wire check                      # All entries in .gitwire.toml
        git-wire -s check                   # One entry at a time
        git-wire check --url URL --rev v1.0 --src lib --dst vendor/lib
    """
    if ctx.invoked_subcommand is not None:
        return

    config = build_target_config(
        ctx,
        command="check",
        url=url,
        rev=rev,
        src=src,
        dst=dst,
        entry_name=entry_name,
        description=description,
        method=method,
        save=save,
        append=append,
    )
    mode = get_mode(ctx)

    console.print("git-wire check started\n")
    try:
        target = prepare_target(config)
        require_git()
        success = CheckOrchestrator().run(target.entries, target.root, mode)
    except WireError as e:
        raise fail(e) from None

    if not success:
        print_failure("Failure")
        raise typer.Exit(code=1)
    print_success("Success")
