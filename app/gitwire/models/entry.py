"""Entry models for declarative repository wiring.

This module defines the Pydantic models representing one entry of the
``[wire].entries`` array in ``.gitwire.toml``: which paths to pull from
which repository revision, and where to put them.
"""

from __future__ import annotations

import json
from enum import Enum
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# Name of the version-control metadata directory; never allowed in paths.
VCS_METADATA_DIR = ".git"


class Method(str, Enum):
    """Clone strategy used to fetch an entry's repository.

    Attributes:
        SHALLOW: Depth-1 fetch of the resolved ref with sparse-checkout.
        SHALLOW_NO_SPARSE: Depth-1 fetch, full snapshot checkout.
        PARTIAL: Full clone without checkout, then checkout of the sources only.
    """

    SHALLOW = "shallow"
    SHALLOW_NO_SPARSE = "shallow_no_sparse"
    PARTIAL = "partial"


def is_path_sound(path: str) -> bool:
    """Check that a path has no '.', '..' or '.git' component.

    Leading and repeated slashes are tolerated, matching how the paths are
    joined later on.

    Args:
        path: Source or destination path from an entry.

    Returns:
        True if every component is a plain name other than '.git'.
    """
    for part in path.replace("\\", "/").split("/"):
        if part in (".", "..", VCS_METADATA_DIR):
            return False
    return True


def parse_sources(value: str | list[str] | tuple[str, ...]) -> list[str]:
    """Normalize a source value into a list of paths.

    Accepts a single path, a list of paths, or a single string holding a
    JSON array (the form accepted by ``--src '["lib", "tools"]'``).

    Args:
        value: Raw source value.

    Returns:
        List of source paths, in the given order.

    Raises:
        ValueError: If a list item is not a string.
    """
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("["):
            try:
                decoded = json.loads(text)
            except json.JSONDecodeError:
                return [value]
            if isinstance(decoded, list) and all(isinstance(v, str) for v in decoded):
                return list(decoded)
        return [value]
    expanded: list[str] = []
    for item in value:
        if not isinstance(item, str):
            msg = f"Source paths must be strings, got {type(item).__name__}"
            raise ValueError(msg)
        expanded.extend(parse_sources(item))
    return expanded


class Entry(BaseModel):
    """One logical sync/check request.

    Field names follow Python conventions; the TOML keys (``rev``, ``src``,
    ``dst``) are accepted as aliases and used when serializing.

    Attributes:
        name: Optional identifier used by ``--name`` filtering.
        description: Optional free text shown in progress output.
        url: Source repository address.
        revision: Branch, tag, or (partial) commit hash.
        sources: Paths inside the source repository to extract.
        destination: Path inside the project root receiving the content.
        method: Clone strategy; None means shallow.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True, frozen=True)

    name: Annotated[str | None, Field(description="Entry name")] = None
    description: Annotated[str | None, Field(description="Entry description")] = None
    url: Annotated[str, Field(min_length=1, description="Source repository URL")]
    revision: Annotated[str, Field(alias="rev", min_length=1, description="Revision")]
    sources: Annotated[
        list[str],
        Field(alias="src", min_length=1, description="Source paths"),
    ]
    destination: Annotated[str, Field(alias="dst", min_length=1, description="Destination")]
    method: Annotated[Method | None, Field(description="Clone strategy")] = None

    @field_validator("sources", mode="before")
    @classmethod
    def coerce_sources(cls, v: Any) -> Any:
        """Accept a single string wherever a list of sources is expected."""
        if isinstance(v, (str, list, tuple)):
            return parse_sources(v)
        return v

    @model_validator(mode="after")
    def validate_paths(self) -> Entry:
        """Reject traversal components in sources and destination."""
        for src in self.sources:
            if not src:
                msg = "Source paths must not be empty"
                raise ValueError(msg)
            if not is_path_sound(src):
                msg = f"Source path '{src}' must not include '.', '..', or '{VCS_METADATA_DIR}'"
                raise ValueError(msg)
        if not is_path_sound(self.destination):
            msg = (
                f"Destination path '{self.destination}' must not include "
                f"'.', '..', or '{VCS_METADATA_DIR}'"
            )
            raise ValueError(msg)
        return self

    @property
    def effective_method(self) -> Method:
        """Clone strategy with the shallow default applied."""
        return self.method or Method.SHALLOW

    @property
    def label(self) -> str:
        """Suffix describing the entry in progress messages."""
        if self.name and self.description:
            return f" ({self.name}: {self.description})"
        if self.name:
            return f" ({self.name})"
        if self.description:
            return f" ({self.description})"
        return ""

    def to_toml_dict(self) -> dict[str, Any]:
        """Convert to a dictionary suitable for TOML serialization.

        Optional fields are omitted when unset, and a single source is
        written as a plain string.
        """
        result: dict[str, Any] = {}
        if self.name is not None:
            result["name"] = self.name
        if self.description is not None:
            result["description"] = self.description
        result["url"] = self.url
        result["rev"] = self.revision
        result["src"] = self.sources[0] if len(self.sources) == 1 else list(self.sources)
        result["dst"] = self.destination
        if self.method is not None:
            result["method"] = self.method.value
        return result


class EntryOverride(BaseModel):
    """Entry fields supplied on the command line.

    Every field is optional: non-empty values replace the fields of a
    persisted entry with the same name, or form a brand-new entry.
    """

    model_config = ConfigDict(extra="forbid")

    name: str | None = None
    description: str | None = None
    url: str | None = None
    revision: str | None = None
    sources: list[str] = Field(default_factory=list)
    destination: str | None = None
    method: Method | None = None

    @property
    def is_empty(self) -> bool:
        """True when no entry field was given."""
        return not (
            self.url
            or self.revision
            or self.sources
            or self.destination
            or self.description
            or self.method
        )

    def merge_into(self, entry: Entry) -> Entry:
        """Apply the non-empty override fields on top of a persisted entry.

        Args:
            entry: Entry loaded from the configuration file.

        Returns:
            New validated Entry with overrides applied.
        """
        data = entry.model_dump()
        if self.url:
            data["url"] = self.url
        if self.revision:
            data["revision"] = self.revision
        if self.sources:
            data["sources"] = list(self.sources)
        if self.destination:
            data["destination"] = self.destination
        if self.name is not None:
            data["name"] = self.name
        if self.description is not None:
            data["description"] = self.description
        if self.method is not None:
            data["method"] = self.method
        return Entry.model_validate(data)

    def to_entry(self) -> Entry:
        """Build a standalone Entry from the override fields.

        Raises:
            pydantic.ValidationError: If required fields are missing or unsound.
        """
        return Entry.model_validate(
            {
                "name": self.name,
                "description": self.description,
                "url": self.url or "",
                "revision": self.revision or "",
                "sources": list(self.sources),
                "destination": self.destination or "",
                "method": self.method,
            }
        )
