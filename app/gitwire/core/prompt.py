"""Interactive creation of an entry.

Used when neither a configuration file nor command-line entry fields are
available.
"""

import typer
from pydantic import ValidationError

from gitwire.core.errors import ConfigError, ErrorKind, WireError
from gitwire.models.entry import Entry, parse_sources
from gitwire.utils.formatting import console


def prompt_create_entry() -> Entry | None:
    """Ask the user for the fields of a new entry.

    Returns:
        The validated Entry, or None if the user declined to create one.

    Raises:
        WireError: If the prompt is aborted (kind PROMPT).
        ConfigError: If the answers do not form a valid entry.
    """
    try:
        create = typer.confirm(
            "No .gitwire.toml found and no CLI arguments provided. "
            "Would you like to create one?",
            default=True,
        )
        if not create:
            return None

        console.print("\n[header]Let's create your .gitwire.toml configuration:[/]")
        url = typer.prompt("Repository URL (e.g., https://github.com/user/repo.git)")
        rev = typer.prompt("Git revision (branch/tag/commit)", default="main")
        src = typer.prompt(
            'Source path(s) (single path or JSON array like ["lib", "tools"])',
            default="src",
        )
        dst = typer.prompt("Destination path", default="vendor")
        name = typer.prompt(
            "Entry name (optional, press Enter to skip)",
            default="",
            show_default=False,
        )
    except typer.Abort as e:
        raise WireError(ErrorKind.PROMPT, "Prompt aborted") from e

    try:
        return Entry(
            name=name.strip() or None,
            url=url.strip(),
            revision=rev.strip(),
            sources=parse_sources(src.strip()),
            destination=dst.strip(),
        )
    except ValidationError as e:
        raise ConfigError(ErrorKind.CONFIG_SHAPE, "Invalid entry", str(e)) from e
