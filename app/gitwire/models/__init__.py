"""Data models for gitwire."""

from gitwire.models.cache import (
    CachedRepository,
    CacheMetadataRecord,
    FetchOutcome,
    WireOperation,
)
from gitwire.models.entry import Entry, EntryOverride, Method, is_path_sound, parse_sources

__all__ = [
    "CacheMetadataRecord",
    "CachedRepository",
    "Entry",
    "EntryOverride",
    "FetchOutcome",
    "Method",
    "WireOperation",
    "is_path_sound",
    "parse_sources",
]
