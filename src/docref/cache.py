"""
Content-addressed scan cache.

Stores the extractor's ``DocumentFacts`` keyed by the SHA-256 of each
document's bytes, so an unchanged document is never re-scanned.

Manifesto:
    Facts are a pure function of (document bytes, scanner settings). Key
    by the bytes, stamp the file with a fingerprint of the settings, and
    the cache can never serve stale facts.

Architecture:
    ::

        .docref-cache.json
        {
          "version": 1,
          "fingerprint": "<hash of scanner settings>",
          "entries": {
            "<sha256 of bytes>": { DocumentFacts.to_dict() },
            ...
          }
        }

Features:
    - **get/put:** O(1) lookup by content hash
    - **prune:** drop entries for content no longer in the corpus
    - **save:** atomic replace (write temp file, then rename)
    - **hits/misses:** counters for run statistics

Guardrails:
    ❌ DON'T: Trust a cache written with different scanner settings
    ✅ DO: Discard it when the fingerprint or version differs

    ❌ DON'T: Abort a run because the cache file is corrupt
    ✅ DO: Log a warning and start empty

Tags:
    cache, content-addressing, idempotency, docref
"""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from docref.errors import CacheError
from docref.graph.schema import DocumentFacts
from docref.logging import get_logger

logger = get_logger(__name__)

CACHE_VERSION = 1


class ScanCache:
    """JSON-file cache of document facts keyed by content hash.

    Args:
        path: Cache file location (None for an in-memory cache)
        fingerprint: Hash of the scanner settings the facts depend on
    """

    def __init__(self, path: Path | None, fingerprint: str):
        self.path = Path(path) if path is not None else None
        self.fingerprint = fingerprint
        self._entries: dict[str, dict[str, Any]] = {}
        self._dirty = False
        self.hits = 0
        self.misses = 0

    @classmethod
    def load(cls, path: Path | None, fingerprint: str) -> ScanCache:
        """Open a cache file, discarding it if unusable."""
        cache = cls(path, fingerprint)
        if cache.path is None or not cache.path.is_file():
            return cache

        try:
            data = json.loads(cache.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("cache_discarded", path=str(cache.path), reason=str(e))
            cache._dirty = True
            return cache

        if not isinstance(data, dict) or not isinstance(data.get("entries"), dict):
            logger.warning("cache_discarded", path=str(cache.path), reason="unexpected structure")
            cache._dirty = True
            return cache

        if data.get("version") != CACHE_VERSION or data.get("fingerprint") != fingerprint:
            logger.info("cache_invalidated", path=str(cache.path))
            cache._dirty = True
            return cache

        cache._entries = data["entries"]
        logger.debug("cache_loaded", path=str(cache.path), entries=len(cache._entries))
        return cache

    def get(self, content_hash: str) -> DocumentFacts | None:
        """Return cached facts for ``content_hash``, or None."""
        entry = self._entries.get(content_hash)
        if entry is None:
            self.misses += 1
            return None
        try:
            facts = DocumentFacts.from_dict(entry)
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("cache_entry_discarded", content_hash=content_hash, reason=str(e))
            del self._entries[content_hash]
            self._dirty = True
            self.misses += 1
            return None
        self.hits += 1
        return facts

    def put(self, facts: DocumentFacts) -> None:
        if not facts.content_hash:
            return
        self._entries[facts.content_hash] = facts.to_dict()
        self._dirty = True

    def prune(self, live_hashes: Iterable[str]) -> int:
        """Drop entries whose content hash is not in ``live_hashes``."""
        live = set(live_hashes)
        stale = [h for h in self._entries if h not in live]
        for h in stale:
            del self._entries[h]
        if stale:
            self._dirty = True
        return len(stale)

    def save(self) -> None:
        """Write the cache atomically if anything changed.

        Raises:
            CacheError: The file could not be written
        """
        if self.path is None or not self._dirty:
            return
        payload = {
            "version": CACHE_VERSION,
            "fingerprint": self.fingerprint,
            "entries": self._entries,
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=self.path.name, suffix=".tmp", dir=str(self.path.parent)
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(payload, f, sort_keys=True)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise CacheError(f"Cannot write cache file: {self.path}", cause=e).with_context(
                path=str(self.path)
            )
        self._dirty = False
        logger.debug("cache_saved", path=str(self.path), entries=len(self._entries))

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, content_hash: object) -> bool:
        return content_hash in self._entries
