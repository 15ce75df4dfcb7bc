"""
Symbol table for a documentation corpus.

Maps every normalized symbol (label, glossary term, object, document) to
the declarations that define it.

Example:
    >>> table = SymbolTable()
    >>> table.declare(Declaration(SymbolKind.TERM, "BSON", line=4, document="glossary"))
    >>> [d.document for d in table.lookup(SymbolKey(SymbolKind.TERM, "", "bson"))]
    ['glossary']
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

from docref.graph.schema import Declaration, SymbolKey, SymbolKind, normalize_name


class SymbolTable:
    """Mapping from declared names to their defining locations.

    Manifesto:
        A reference is only as good as the symbol it lands on. The table
        keeps *every* declaration, including duplicates, so the resolver can
        tell a dangling reference from an ambiguous one and so duplicate
        glossary terms are visible instead of silently overwritten.

    Architecture:
        ```
        Declaration ──► key (kind, objtype, normalized name)
                              │
                              ▼
                 _symbols[key] ──► [Declaration, Declaration, ...]
                              │
                              ├──► lookup(key)        exact match
                              ├──► lookup_any(name)   :any: role search
                              └──► duplicates()       len(decls) > 1
        ```

    Guardrails:
        - Do NOT drop duplicate declarations
          ✅ Append; report them via duplicates()
    """

    def __init__(self, declarations: Iterable[Declaration] | None = None):
        self._symbols: dict[SymbolKey, list[Declaration]] = {}
        if declarations:
            self.declare_all(declarations)

    def declare(self, declaration: Declaration) -> None:
        """Record a declaration under its normalized key."""
        self._symbols.setdefault(declaration.key, []).append(declaration)

    def declare_all(self, declarations: Iterable[Declaration]) -> None:
        for declaration in declarations:
            self.declare(declaration)

    def lookup(self, key: SymbolKey) -> list[Declaration]:
        """Return all declarations for ``key`` (empty list if none)."""
        return list(self._symbols.get(key, []))

    def lookup_any(self, name: str) -> list[Declaration]:
        """Search every kind except FILE, as the ``:any:`` role does.

        Args:
            name: Raw target name

        Returns:
            Declarations from all matching symbols
        """
        matches: list[Declaration] = []
        for kind in (SymbolKind.LABEL, SymbolKind.TERM, SymbolKind.DOCUMENT):
            matches.extend(self._symbols.get(SymbolKey(kind, "", normalize_name(kind, name)), []))

        object_name = normalize_name(SymbolKind.OBJECT, name)
        for key, decls in self._symbols.items():
            if key.kind is SymbolKind.OBJECT and key.name == object_name:
                matches.extend(decls)
        return matches

    def names(self, kind: SymbolKind, objtype: str = "") -> list[str]:
        """Normalized names declared for a kind (and object type)."""
        return sorted(
            key.name
            for key in self._symbols
            if key.kind is kind and (kind is not SymbolKind.OBJECT or key.objtype == objtype)
        )

    def by_kind(self, kind: SymbolKind) -> dict[SymbolKey, list[Declaration]]:
        return {key: list(decls) for key, decls in self._symbols.items() if key.kind is kind}

    def duplicates(self) -> Iterator[tuple[SymbolKey, list[Declaration]]]:
        """Yield symbols declared more than once, in sorted key order."""
        for key in sorted(self._symbols, key=_sort_key):
            decls = self._symbols[key]
            if len(decls) > 1:
                yield key, list(decls)

    def counts(self) -> dict[str, int]:
        """Number of distinct symbols per kind."""
        counts = {kind.value: 0 for kind in SymbolKind if kind is not SymbolKind.FILE}
        for key in self._symbols:
            counts[key.kind.value] = counts.get(key.kind.value, 0) + 1
        return counts

    def to_dict(self) -> dict[str, Any]:
        """Export the table as ``{"kind:name": [declaration, ...]}``."""
        return {
            str(key): [d.to_dict() for d in self._symbols[key]]
            for key in sorted(self._symbols, key=_sort_key)
        }

    def __len__(self) -> int:
        return len(self._symbols)

    def __contains__(self, key: object) -> bool:
        return key in self._symbols

    def __iter__(self) -> Iterator[SymbolKey]:
        return iter(sorted(self._symbols, key=_sort_key))


def _sort_key(key: SymbolKey) -> tuple[str, str, str]:
    return (key.kind.value, key.objtype, key.name)
