"""
Schema definitions for the reference graph.

Defines the symbols a reStructuredText corpus declares, the references
that point at them, and the per-document facts the extractor produces.

Facts never mention the document they came from: two files with identical
bytes produce identical facts. The document name is attached afterwards
(``Declaration.document`` / ``Reference.document``) when facts are merged
into a corpus.
"""

from __future__ import annotations

import posixpath
import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, NamedTuple

_WHITESPACE = re.compile(r"\s+")
_TRAILING_PARAMS = re.compile(r"\s*\(.*\)\s*$", re.DOTALL)
_TERM_CLASSIFIER = re.compile(r"\s+:\s+.*$")


class SymbolKind(str, Enum):
    """Kinds of symbol a corpus can declare and reference."""

    LABEL = "label"  # .. _name:
    TERM = "term"  # glossary entry
    DOCUMENT = "document"  # a source file
    OBJECT = "object"  # .. dbcommand:: find
    FILE = "file"  # include / literalinclude / download target


class SymbolKey(NamedTuple):
    """Normalized identity of a symbol."""

    kind: SymbolKind
    objtype: str
    name: str

    def __str__(self) -> str:
        if self.kind is SymbolKind.OBJECT:
            return f"{self.objtype}:{self.name}"
        return f"{self.kind.value}:{self.name}"


def normalize_name(kind: SymbolKind, name: str, objtype: str = "") -> str:
    """Normalize a symbol name the way lookups compare it.

    Args:
        kind: Symbol kind
        name: Raw name as written in the markup
        objtype: Object type (only meaningful for OBJECT)

    Returns:
        Normalized name

    Examples:
        >>> normalize_name(SymbolKind.LABEL, "Read  Concern")
        'read concern'
        >>> normalize_name(SymbolKind.TERM, "BSON : format")
        'bson'
        >>> normalize_name(SymbolKind.OBJECT, "db.collection.find(query)", "method")
        'db.collection.find'
    """
    text = _WHITESPACE.sub(" ", name).strip()
    if kind is SymbolKind.LABEL:
        return text.lower()
    if kind is SymbolKind.TERM:
        return _TERM_CLASSIFIER.sub("", text).lower()
    if kind is SymbolKind.OBJECT:
        return _TRAILING_PARAMS.sub("", text)
    # Documents and files are POSIX paths
    return posixpath.normpath(text.replace("\\", "/")).lstrip("/") if text else text


@dataclass
class Declaration:
    """A place where a symbol is defined.

    Attributes:
        kind: Symbol kind
        name: Name as written
        line: 1-based line of the declaration
        objtype: Object type for OBJECT declarations (e.g. ``dbcommand``)
        document: Declaring document (set when merged into a corpus)
    """

    kind: SymbolKind
    name: str
    line: int
    objtype: str = ""
    document: str = ""

    @property
    def key(self) -> SymbolKey:
        return SymbolKey(self.kind, self.objtype, normalize_name(self.kind, self.name, self.objtype))

    def located(self, document: str) -> Declaration:
        """Return a copy attributed to ``document``."""
        return replace(self, document=document)

    def to_dict(self) -> dict[str, Any]:
        """Convert declaration to dictionary."""
        data: dict[str, Any] = {"kind": self.kind.value, "name": self.name, "line": self.line}
        if self.objtype:
            data["objtype"] = self.objtype
        if self.document:
            data["document"] = self.document
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Declaration:
        return cls(
            kind=SymbolKind(data["kind"]),
            name=data["name"],
            line=int(data["line"]),
            objtype=data.get("objtype", ""),
            document=data.get("document", ""),
        )


@dataclass
class Reference:
    """A markup token pointing at a symbol.

    ``kind`` is ``None`` for the ``:any:`` role, which may match a label,
    term, document or object.

    Attributes:
        kind: Expected symbol kind, or None for ``:any:``
        target: Target as written (title and ``~`` already stripped)
        role: Role or directive that produced the reference
        line: 1-based line of the reference
        objtype: Object type for OBJECT references
        toctree: True for toctree entries
        pattern: True for ``:glob:`` toctree patterns
        document: Referring document (set when merged into a corpus)
    """

    kind: SymbolKind | None
    target: str
    role: str
    line: int
    objtype: str = ""
    toctree: bool = False
    pattern: bool = False
    document: str = ""

    def located(self, document: str) -> Reference:
        """Return a copy attributed to ``document``."""
        return replace(self, document=document)

    def to_dict(self) -> dict[str, Any]:
        """Convert reference to dictionary."""
        data: dict[str, Any] = {
            "kind": self.kind.value if self.kind else None,
            "target": self.target,
            "role": self.role,
            "line": self.line,
        }
        if self.objtype:
            data["objtype"] = self.objtype
        if self.toctree:
            data["toctree"] = True
        if self.pattern:
            data["pattern"] = True
        if self.document:
            data["document"] = self.document
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Reference:
        kind = data.get("kind")
        return cls(
            kind=SymbolKind(kind) if kind else None,
            target=data["target"],
            role=data["role"],
            line=int(data["line"]),
            objtype=data.get("objtype", ""),
            toctree=bool(data.get("toctree", False)),
            pattern=bool(data.get("pattern", False)),
            document=data.get("document", ""),
        )


@dataclass
class CodeBlock:
    """A code example found in a document.

    Attributes:
        language: Stated language (lowercased), ``none`` if unknown
        content: Dedented block content
        line: 1-based line of the first content line
        literal: True for ``::`` literal blocks, False for code-block directives
    """

    language: str
    content: str
    line: int
    literal: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "language": self.language,
            "content": self.content,
            "line": self.line,
            "literal": self.literal,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CodeBlock:
        return cls(
            language=data["language"],
            content=data["content"],
            line=int(data["line"]),
            literal=bool(data.get("literal", False)),
        )


@dataclass
class RoleUse:
    """A role the extractor did not recognize."""

    role: str
    line: int

    def to_dict(self) -> dict[str, Any]:
        return {"role": self.role, "line": self.line}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RoleUse:
        return cls(role=data["role"], line=int(data["line"]))


@dataclass
class DocumentFacts:
    """Everything the extractor learned from one document's text.

    Attributes:
        content_hash: SHA-256 of the raw bytes
        declarations: Labels, terms and objects declared in the document
        references: Roles, toctree entries and includes
        code_blocks: Code examples
        unknown_roles: Roles neither recognized nor ignored
        orphan: True if the document carries the ``:orphan:`` field
    """

    content_hash: str
    declarations: list[Declaration] = field(default_factory=list)
    references: list[Reference] = field(default_factory=list)
    code_blocks: list[CodeBlock] = field(default_factory=list)
    unknown_roles: list[RoleUse] = field(default_factory=list)
    orphan: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert facts to a JSON-serializable dictionary."""
        return {
            "content_hash": self.content_hash,
            "declarations": [d.to_dict() for d in self.declarations],
            "references": [r.to_dict() for r in self.references],
            "code_blocks": [c.to_dict() for c in self.code_blocks],
            "unknown_roles": [u.to_dict() for u in self.unknown_roles],
            "orphan": self.orphan,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DocumentFacts:
        """Rebuild facts from ``to_dict`` output."""
        return cls(
            content_hash=data["content_hash"],
            declarations=[Declaration.from_dict(d) for d in data.get("declarations", [])],
            references=[Reference.from_dict(r) for r in data.get("references", [])],
            code_blocks=[CodeBlock.from_dict(c) for c in data.get("code_blocks", [])],
            unknown_roles=[RoleUse.from_dict(u) for u in data.get("unknown_roles", [])],
            orphan=bool(data.get("orphan", False)),
        )


@dataclass
class ScannedDocument:
    """A discovered document together with its extracted facts."""

    name: str
    path: str
    facts: DocumentFacts

    @property
    def declarations(self) -> list[Declaration]:
        return [d.located(self.name) for d in self.facts.declarations]

    @property
    def references(self) -> list[Reference]:
        return [r.located(self.name) for r in self.facts.references]
