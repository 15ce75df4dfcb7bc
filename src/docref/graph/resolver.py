"""
Reference resolver.

Validates that every reference token lands on exactly one symbol and
classifies the ones that do not.

Example:
    >>> resolver = Resolver(table, documents=["index", "reference/glossary"], root=Path("docs"))
    >>> resolution = resolver.resolve(reference)
    >>> resolution.status
    <ResolutionStatus.DANGLING: 'dangling'>
"""

from __future__ import annotations

import difflib
import functools
import posixpath
import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from docref.graph.schema import Declaration, Reference, SymbolKey, SymbolKind, normalize_name
from docref.graph.symbols import SymbolTable
from docref.logging import get_logger

logger = get_logger(__name__)


@functools.lru_cache(maxsize=256)
def _glob_regex(pattern: str) -> re.Pattern[str]:
    """Compile a toctree glob. ``*`` and ``?`` stay within one path segment, ``**`` crosses them."""
    i, n = 0, len(pattern)
    parts: list[str] = []
    while i < n:
        c = pattern[i]
        i += 1
        if c == "*":
            if i < n and pattern[i] == "*":
                i += 1
                parts.append(".*")
            else:
                parts.append("[^/]*")
        elif c == "?":
            parts.append("[^/]")
        elif c == "[":
            j = i
            if j < n and pattern[j] == "!":
                j += 1
            if j < n and pattern[j] == "]":
                j += 1
            while j < n and pattern[j] != "]":
                j += 1
            if j >= n:
                parts.append("\\[")
            else:
                chars = pattern[i:j].replace("\\", "\\\\")
                i = j + 1
                if chars.startswith("!"):
                    chars = "^/" + chars[1:]
                elif chars.startswith("^"):
                    chars = "\\" + chars
                parts.append(f"[{chars}]")
        else:
            parts.append(re.escape(c))
    return re.compile("".join(parts) + r"\Z")


class ResolutionStatus(str, Enum):
    RESOLVED = "resolved"
    DANGLING = "dangling"
    AMBIGUOUS = "ambiguous"


@dataclass
class Resolution:
    """Outcome of resolving one reference.

    Attributes:
        reference: The reference that was resolved
        status: RESOLVED, DANGLING or AMBIGUOUS
        matches: Declarations the reference landed on
        suggestions: Close names for dangling references
    """

    reference: Reference
    status: ResolutionStatus
    matches: list[Declaration] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is ResolutionStatus.RESOLVED


class Resolver:
    """Resolve references against a symbol table.

    Manifesto:
        Every reference must resolve to exactly one symbol. Zero means the
        reader hits a dead link; two means the renderer picks one silently
        and the reader may land on the wrong page.

    Architecture:
        ```
        Reference
            │
            ├── kind None (:any:) ──► table.lookup_any()
            ├── DOCUMENT ──► relative to referring doc ──► table.lookup()
            │       └── pattern ──► glob over documents (>= 1 match)
            ├── FILE ──► relative to referring doc ──► file exists under root
            └── other ──► table.lookup(SymbolKey)
                            │
                            ▼
                0 ─► DANGLING (+ suggestions)   1 ─► RESOLVED   >1 ─► AMBIGUOUS
        ```

    Guardrails:
        - Do NOT treat a glob toctree entry matching many documents as ambiguous
          ✅ Patterns need at least one match
        - Do NOT resolve files outside the corpus root
          ✅ ``..`` escaping the root is dangling
    """

    SUGGESTION_CUTOFF = 0.75
    MAX_SUGGESTIONS = 3

    def __init__(
        self,
        table: SymbolTable,
        documents: Iterable[str] = (),
        root: Path | None = None,
        source_suffixes: Iterable[str] = (".rst", ".txt"),
    ):
        self.table = table
        self.documents = sorted(documents)
        self.root = Path(root) if root is not None else None
        self.source_suffixes = tuple(source_suffixes)

    def resolve(self, reference: Reference) -> Resolution:
        """Resolve a single reference.

        Args:
            reference: Reference with ``document`` set to the referring document

        Returns:
            Resolution
        """
        if reference.kind is None:
            matches = self.table.lookup_any(reference.target)
        elif reference.kind is SymbolKind.DOCUMENT:
            if reference.pattern:
                return self._resolve_pattern(reference)
            name = self.document_name(reference.target, reference.document)
            matches = self.table.lookup(SymbolKey(SymbolKind.DOCUMENT, "", name))
        elif reference.kind is SymbolKind.FILE:
            matches = self._resolve_file(reference)
        else:
            key = SymbolKey(
                reference.kind,
                reference.objtype,
                normalize_name(reference.kind, reference.target, reference.objtype),
            )
            matches = self.table.lookup(key)

        if not matches:
            return Resolution(
                reference,
                ResolutionStatus.DANGLING,
                suggestions=self._suggest(reference),
            )
        if len(matches) > 1:
            return Resolution(reference, ResolutionStatus.AMBIGUOUS, matches=matches)
        return Resolution(reference, ResolutionStatus.RESOLVED, matches=matches)

    def resolve_all(self, references: Iterable[Reference]) -> list[Resolution]:
        resolutions = [self.resolve(ref) for ref in references]
        logger.debug(
            "references_resolved",
            total=len(resolutions),
            unresolved=sum(1 for r in resolutions if not r.ok),
        )
        return resolutions

    def document_name(self, target: str, referrer: str) -> str:
        """Turn a ``:doc:`` or toctree target into a document name.

        Targets starting with ``/`` are relative to the corpus root; all
        others are relative to the referring document's directory.

        Examples:
            >>> resolver.document_name("find", "reference/command/index")
            'reference/command/find'
            >>> resolver.document_name("/core/crud.rst", "reference/index")
            'core/crud'
        """
        target = target.strip()
        for suffix in self.source_suffixes:
            if target.endswith(suffix):
                target = target[: -len(suffix)]
                break
        if target.startswith("/"):
            joined = target.lstrip("/")
        else:
            joined = posixpath.join(posixpath.dirname(referrer), target)
        return normalize_name(SymbolKind.DOCUMENT, joined)

    def file_path(self, target: str, referrer: str) -> str:
        """Corpus-relative POSIX path of an include/download target."""
        target = target.strip()
        if target.startswith("/"):
            joined = target.lstrip("/")
        else:
            joined = posixpath.join(posixpath.dirname(referrer), target)
        return posixpath.normpath(joined)

    def _resolve_pattern(self, reference: Reference) -> Resolution:
        pattern = self.document_name(reference.target, reference.document)
        matched = [
            doc for doc in self.documents
            if _glob_regex(pattern).match(doc) and doc != reference.document
        ]
        if not matched:
            return Resolution(reference, ResolutionStatus.DANGLING)
        matches: list[Declaration] = []
        for doc in matched:
            matches.extend(self.table.lookup(SymbolKey(SymbolKind.DOCUMENT, "", doc)))
        return Resolution(reference, ResolutionStatus.RESOLVED, matches=matches)

    def _resolve_file(self, reference: Reference) -> list[Declaration]:
        relative = self.file_path(reference.target, reference.document)
        if self.root is None or relative.startswith("../") or relative == "..":
            return []
        if (self.root / relative).is_file():
            return [Declaration(SymbolKind.FILE, relative, line=0, document=relative)]
        return []

    def _suggest(self, reference: Reference) -> list[str]:
        if reference.kind is None or reference.kind is SymbolKind.FILE or reference.pattern:
            return []
        if reference.kind is SymbolKind.DOCUMENT:
            wanted = self.document_name(reference.target, reference.document)
        else:
            wanted = normalize_name(reference.kind, reference.target, reference.objtype)
        candidates = self.table.names(reference.kind, reference.objtype)
        return difflib.get_close_matches(
            wanted, candidates, n=self.MAX_SUGGESTIONS, cutoff=self.SUGGESTION_CUTOFF
        )
