"""Cache key generation.

A cache key identifies one clone: the repository URL, the requested
revision and, optionally, a pinned commit. The key is a SHA-256 digest of
a canonical JSON encoding of the three fields, so it is stable across
processes and machines, and an absent commit (``null``) never collides
with any present value.
"""

import hashlib
import json

# Hex characters kept from the digest; 64 bits.
KEY_LENGTH = 16


def generate_key(url: str, revision: str, commit_hash: str | None = None) -> str:
    """Derive the cache key for a repository revision.

    Args:
        url: Repository URL.
        revision: Branch, tag, or commit reference.
        commit_hash: Optional pinned commit.

    Returns:
        Lowercase hexadecimal key.
    """
    payload = json.dumps(
        {"url": url, "revision": revision, "commit_hash": commit_hash},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:KEY_LENGTH]
