"""
Role classification for interpreted text.

Turns ``:role:`body``` tokens into typed references, following the
cross-reference conventions of Sphinx: ``title <target>`` bodies, the ``~``
display prefix and the ``!`` no-link prefix.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from docref.graph.schema import Reference, SymbolKind

ROLE_PATTERN = re.compile(
    r"(?<![\w`\\])"
    r":(?P<role>[A-Za-z][\w+.-]*(?::[A-Za-z][\w+.-]*)*):"
    r"`(?P<body>[^`]+)`(?!`)"
)
_TITLE_TARGET = re.compile(r"^(?P<title>.*\S)\s*<(?P<target>[^<>]+)>$", re.DOTALL)

# Role name -> symbol kind. ``None`` means "any kind" (the :any: role).
ROLE_KINDS: dict[str, SymbolKind | None] = {
    "ref": SymbolKind.LABEL,
    "numref": SymbolKind.LABEL,
    "term": SymbolKind.TERM,
    "doc": SymbolKind.DOCUMENT,
    "download": SymbolKind.FILE,
    "any": None,
}


def split_title_target(body: str) -> tuple[str | None, str]:
    """Split a role body into ``(title, target)``.

    Examples:
        >>> split_title_target("Query Filters <query-filters>")
        ('Query Filters', 'query-filters')
        >>> split_title_target("read-concern")
        (None, 'read-concern')
    """
    body = " ".join(body.split())
    match = _TITLE_TARGET.match(body)
    if match:
        return match.group("title"), match.group("target").strip()
    return None, body


@dataclass
class RoleClassifier:
    """Decide what a role token refers to.

    Attributes:
        object_types: Object directive/role names (``dbcommand``, ``method``...)
        ignored_roles: Roles that are formatting only (``abbr``, ``guilabel``...)
    """

    object_types: frozenset[str]
    ignored_roles: frozenset[str]

    @classmethod
    def build(cls, object_types: Iterable[str], ignored_roles: Iterable[str]) -> RoleClassifier:
        return cls(
            object_types=frozenset(t.lower() for t in object_types),
            ignored_roles=frozenset(r.lower() for r in ignored_roles),
        )

    def is_ignored(self, role: str) -> bool:
        role = role.lower()
        return role in self.ignored_roles or role.rsplit(":", 1)[-1] in self.ignored_roles

    def is_known(self, role: str) -> bool:
        base = role.lower().rsplit(":", 1)[-1]
        return base in ROLE_KINDS or base in self.object_types or self.is_ignored(role)

    def classify(self, role: str, body: str, line: int) -> Reference | None:
        """Build a reference for ``role``, or None if it yields no link.

        Args:
            role: Role name as written (may be domain-qualified, e.g. ``std:ref``)
            body: Text between the backquotes
            line: 1-based line of the role

        Returns:
            Reference, or None for ignored/unknown roles and ``!`` bodies
        """
        name = role.lower()
        base = name.rsplit(":", 1)[-1]
        if self.is_ignored(name):
            return None

        if base in ROLE_KINDS:
            kind = ROLE_KINDS[base]
            objtype = ""
        elif base in self.object_types:
            kind = SymbolKind.OBJECT
            objtype = base
        else:
            return None

        _, target = split_title_target(body)
        if target.startswith("!"):
            return None
        target = target.lstrip("~")
        if not target:
            return None
        return Reference(kind=kind, target=target, role=name, line=line, objtype=objtype)
