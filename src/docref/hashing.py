"""
Deterministic hashing for content addressing.

Documents are identified by the SHA-256 of their raw bytes. Two files with
the same bytes share one cache entry; a one-byte edit produces a new key.

Manifesto:
    Hashing must be:
    - **Deterministic:** Same inputs → same output, always
    - **Byte-exact:** Hash the bytes on disk, not decoded text
    - **Order-dependent:** ``compute_hash(a, b) != compute_hash(b, a)``

Examples:
    >>> content_hash(b"Glossary\\n========\\n") == content_hash(b"Glossary\\n========\\n")
    True
    >>> len(compute_hash("object_types", "dbcommand", length=16))
    16

Tags:
    hashing, content-addressing, cache, docref
"""

import hashlib
from typing import Any


def content_hash(data: bytes) -> str:
    """Full SHA-256 hex digest of raw document bytes."""
    return hashlib.sha256(data).hexdigest()


def compute_hash(*values: Any, length: int = 32) -> str:
    """
    Compute deterministic hash from values.

    Values are converted to strings and joined with ``|`` before hashing.

    Args:
        *values: Values to hash (converted to strings)
        length: Hex digest length (default 32 = 128 bits)

    Returns:
        Hex string of specified length
    """
    content = "|".join(str(v) for v in values)
    return hashlib.sha256(content.encode()).hexdigest()[:length]
