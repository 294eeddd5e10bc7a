"""Repository cache: keys, slots, locking, fetching and filtering."""

from gitwire.cache.fetcher import RepositoryFetcher, is_cache_hit
from gitwire.cache.filter import filter_repository_content, normalize_path
from gitwire.cache.key import generate_key
from gitwire.cache.lock import RepositoryLockManager
from gitwire.cache.manager import CacheManager, entry_cache_key
from gitwire.cache.metadata import CacheMetadataStore

__all__ = [
    "CacheManager",
    "CacheMetadataStore",
    "RepositoryFetcher",
    "RepositoryLockManager",
    "entry_cache_key",
    "filter_repository_content",
    "generate_key",
    "is_cache_hit",
    "normalize_path",
]
