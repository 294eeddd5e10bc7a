"""Cache models.

This module defines the records that tie entries to on-disk clones:
the in-memory CachedRepository, the per-entry WireOperation, the
durable CacheMetadataRecord, and the FetchOutcome reported by the fetcher.
"""

import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field

from gitwire.models.entry import Entry


def utc_timestamp() -> int:
    """Current time as whole seconds since the epoch."""
    return int(datetime.now(UTC).timestamp())


@dataclass(slots=True)
class CachedRepository:
    """One on-disk clone known to the current run.

    Created the first time a cache key is requested during a run. The
    directory persists across runs; this record does not.

    Attributes:
        url: Repository URL.
        revision: Branch, tag, or commit reference.
        local_cache_path: Directory holding the clone.
        commit_hash: Commit checked out, once a fetch has resolved it.
        last_pulled: When the clone was last fetched or reused.
        in_use: True while a fetch holds the slot.
    """

    url: str
    revision: str
    local_cache_path: Path
    commit_hash: str | None = None
    last_pulled: datetime | None = None
    in_use: bool = False


def _new_operation_id() -> str:
    return uuid.uuid4().hex[:12]


@dataclass(frozen=True, slots=True)
class WireOperation:
    """Binds one entry to the cache directory of its repository.

    Attributes:
        entry: The entry to place.
        cache_path: Cache directory shared by every entry with the same key.
        operation_id: Unique id of this operation (12-character hex string from UUID).
    """

    entry: Entry
    cache_path: Path
    operation_id: str = field(default_factory=_new_operation_id)


@dataclass(frozen=True, slots=True)
class FetchOutcome:
    """What the repository fetcher did for one cache slot.

    Attributes:
        cache_path: The cache directory.
        cache_hit: True if the directory was already populated and left untouched.
        commit_hash: Commit checked out after a fetch; None on a cache hit.
    """

    cache_path: Path
    cache_hit: bool
    commit_hash: str | None = None


class CacheMetadataRecord(BaseModel):
    """Durable bookkeeping for one cache directory, used for eviction.

    Timestamps are whole seconds since the epoch.
    """

    model_config = ConfigDict(extra="ignore")

    repo_url: Annotated[str, Field(description="Repository URL")]
    branch: Annotated[str, Field(description="Revision that was cached")]
    commit_hash: Annotated[str, Field(description="Commit at caching time")] = ""
    created_at: Annotated[int, Field(description="Creation time")]
    last_accessed: Annotated[int, Field(description="Last access time")]
    size_bytes: Annotated[int, Field(ge=0, description="Directory size in bytes")] = 0
    cache_path: Annotated[str, Field(description="Cache directory")]

    def touch(self) -> None:
        """Refresh the last access time."""
        self.last_accessed = utc_timestamp()

    def age_seconds(self, now: int | None = None) -> int:
        """Seconds since the record was last accessed."""
        current = utc_timestamp() if now is None else now
        return current - self.last_accessed
