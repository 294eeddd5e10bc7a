"""Cache command for inspecting and evicting cached repositories.

This module provides the `git-wire cache` command group:
- list: Show cached repositories recorded in the metadata file
- clean: Evict repositories not used for a number of days
- remove: Evict one repository by cache key
"""

from datetime import UTC, datetime
from typing import Annotated

import typer

from gitwire.cache.metadata import CacheMetadataStore
from gitwire.cli.types import fail
from gitwire.core.errors import WireError
from gitwire.core.paths import get_cache_root, get_metadata_path
from gitwire.utils.formatting import (
    console,
    create_cache_table,
    format_size,
    print_error,
    print_info,
    print_success,
)

SECONDS_PER_DAY = 86400

app = typer.Typer(
    name="cache",
    help="Inspect and evict cached repositories.",
    no_args_is_help=True,
)


def _open_store() -> CacheMetadataStore:
    return CacheMetadataStore(get_metadata_path(get_cache_root()))


def _format_timestamp(timestamp: int) -> str:
    return datetime.fromtimestamp(timestamp, UTC).strftime("%Y-%m-%d %H:%M")


@app.command("list")
def list_cache() -> None:
    """Show cached repositories."""
    records = _open_store().records()
    if not records:
        print_info("No cached repositories.")
        return

    table = create_cache_table()
    for key, record in sorted(records.items(), key=lambda item: -item[1].last_accessed):
        table.add_row(
            key,
            record.repo_url,
            record.branch,
            record.commit_hash[:12] or "-",
            format_size(record.size_bytes),
            _format_timestamp(record.last_accessed),
        )
    console.print(table)
    console.print(f"\n[muted]Cache directory: {get_cache_root()}[/]")


@app.command("clean")
def clean(
    max_age_days: Annotated[
        int,
        typer.Option(
            "--max-age-days",
            min=0,
            help="Evict repositories not accessed for this many days.",
        ),
    ] = 30,
) -> None:
    """Evict cached repositories not used recently.

    Examples:
        git-wire cache clean                    # Older than 30 days
        git-wire cache clean --max-age-days 0   # Everything
    """
    try:
        evicted = _open_store().cleanup_old_entries(max_age_days * SECONDS_PER_DAY)
    except WireError as e:
        raise fail(e) from None

    if not evicted:
        print_info("Nothing to clean.")
        return
    for key in evicted:
        console.print(f"  [muted]removed[/] {key}")
    print_success(f"Removed {len(evicted)} cached repositories.")


@app.command("remove")
def remove(
    key: Annotated[str, typer.Argument(help="Cache key as shown by 'git-wire cache list'.")],
) -> None:
    """Evict one cached repository."""
    try:
        removed = _open_store().evict(key)
    except WireError as e:
        raise fail(e) from None

    if not removed:
        print_error(f"No cached repository with key '{key}'.")
        raise typer.Exit(code=1)
    print_success(f"Removed cached repository {key}.")
