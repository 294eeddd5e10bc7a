"""Shared types and utilities for CLI commands.

This module provides the entry options shared by ``sync`` and ``check``
and the helpers that turn them into a TargetConfig and report errors.
"""

from typing import Annotated

import typer

from gitwire.cache.fetcher import GIT
from gitwire.core.errors import ErrorKind, GitError, WireError
from gitwire.core.sequence import Mode, TargetConfig
from gitwire.models.entry import EntryOverride, Method, parse_sources
from gitwire.utils.formatting import err_console, print_error, print_failure
from gitwire.utils.shell import command_exists

UrlOption = Annotated[
    str | None,
    typer.Option("--url", help="Source repository URL."),
]
RevOption = Annotated[
    str | None,
    typer.Option("--rev", help="Branch, tag, or commit to take the content from."),
]
SrcOption = Annotated[
    list[str] | None,
    typer.Option(
        "--src",
        help=(
            "Source path in the repository. Repeatable, or a JSON array "
            "like '[\"lib\",\"tools\"]'."
        ),
    ),
]
DstOption = Annotated[
    str | None,
    typer.Option("--dst", help="Destination path inside the project."),
]
EntryNameOption = Annotated[
    str | None,
    typer.Option("--entry-name", help="Name of the entry built from the command line."),
]
DescriptionOption = Annotated[
    str | None,
    typer.Option("--description", help="Description of the entry."),
]
MethodOption = Annotated[
    Method | None,
    typer.Option("--method", help="Clone strategy.", case_sensitive=False),
]
SaveOption = Annotated[
    bool,
    typer.Option("--save", help="Save the command line entry to .gitwire.toml."),
]
AppendOption = Annotated[
    bool,
    typer.Option("--append", help="With --save, append instead of overwriting."),
]


def build_target_config(
    ctx: typer.Context,
    *,
    command: str,
    url: str | None,
    rev: str | None,
    src: list[str] | None,
    dst: str | None,
    entry_name: str | None,
    description: str | None,
    method: Method | None,
    save: bool,
    append: bool,
) -> TargetConfig:
    """Combine global and command options into a TargetConfig.

    The command-line entry is named by --entry-name, falling back to the
    global --name filter so that overrides apply to the named entry.

    Raises:
        typer.BadParameter: If --append is given without --save.
    """
    if append and not save:
        raise typer.BadParameter("--append requires --save", param_hint="--append")

    obj = ctx.find_root().obj or {}
    name_filter = obj.get("name_filter")
    override = EntryOverride(
        name=entry_name or name_filter,
        description=description,
        url=url,
        revision=rev,
        sources=parse_sources(src or []),
        destination=dst,
        method=method,
    )
    return TargetConfig(
        name_filter=name_filter,
        cli_override=override,
        save_config=save,
        append_config=append,
        command=command,
    )


def get_mode(ctx: typer.Context) -> Mode:
    """Execution mode selected by the global --singlethread flag."""
    obj = ctx.find_root().obj or {}
    return Mode.SINGLE if obj.get("singlethread") else Mode.PARALLEL


def require_git() -> None:
    """Fail early when the git executable is not installed.

    Raises:
        GitError: If git is not found in PATH.
    """
    if not command_exists(GIT):
        raise GitError(ErrorKind.GIT_CLONE_COMMAND, f"{GIT} executable not found in PATH")


def fail(error: WireError) -> typer.Exit:
    """Report a failure and build the exit to raise.

    Prints the error and its detail to stderr and "Failure" to stdout.

    Returns:
        typer.Exit with code 1.
    """
    print_error(error.message)
    if error.detail and error.detail.strip():
        err_console.print(error.detail.strip(), style="muted", markup=False)
    print_failure("Failure")
    return typer.Exit(code=1)
