"""Sync command.

This module provides the `git-wire sync` command that copies the
requested paths of remote repositories into the project, fetching each
distinct repository revision once through the shared cache.
"""

import typer

from gitwire.cache.manager import CacheManager
from gitwire.cache.metadata import CacheMetadataStore
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
from gitwire.core.errors import WireError
from gitwire.core.paths import ensure_cache_root, get_metadata_path
from gitwire.core.sequence import MAX_CONCURRENT_FETCHES, Mode, prepare_target
from gitwire.core.sync import SyncOrchestrator
from gitwire.utils.formatting import console, print_info, print_success, print_warning

app = typer.Typer(
    name="sync",
    help="Copy content from remote repositories into the project.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def sync(
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
    """Sync entries from .gitwire.toml or the command line.

    Every destination is removed and recreated with the filtered content
    of its source repository. Repositories shared by several entries are
    fetched once.

    Examples:
        git-wire sync                       # All entries in .gitwire.toml
        git-wire -n mylib sync              # Only the entry named mylib
        git-wire sync --url URL --rev main --src lib --dst vendor/lib
        git-wire sync --url URL --rev main --src lib --dst vendor/lib --save --append
    """
    if ctx.invoked_subcommand is not None:
        return

    config = build_target_config(
        ctx,
        command="sync",
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

    console.print("git-wire sync started\n")
    try:
        target = prepare_target(config)
        require_git()
        cache_root = ensure_cache_root()
        orchestrator = SyncOrchestrator(
            CacheManager(cache_root),
            metadata_store=CacheMetadataStore(get_metadata_path(cache_root)),
            max_concurrent_fetches=1 if mode == Mode.SINGLE else MAX_CONCURRENT_FETCHES,
        )
        report = orchestrator.run(target.entries, target.root)
    except WireError as e:
        raise fail(e) from None

    for destination, missing in report.missing_sources.items():
        print_warning(f"{destination}: source paths not found: {', '.join(missing)}")
    print_info(
        f"{len(report.placed)} destinations updated, "
        f"{report.fetch_count} fetched, {len(report.cache_hits)} from cache"
    )
    print_success("Success")
