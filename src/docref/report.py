"""
Validation report model.

An ``Issue`` is one editorial problem at one place in the corpus; a
``ValidationReport`` is the sorted list of issues from a run together with
corpus statistics.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """Issue severity, ordered ``info < warning < error``."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @property
    def rank(self) -> int:
        return _RANK[self]

    def at_least(self, other: Severity) -> bool:
        return self.rank >= other.rank


_RANK = {Severity.INFO: 0, Severity.WARNING: 1, Severity.ERROR: 2}


# Issue code -> default severity
ISSUE_CODES: dict[str, Severity] = {
    "dangling-reference": Severity.ERROR,
    "ambiguous-reference": Severity.ERROR,
    "duplicate-definition": Severity.ERROR,
    "missing-file": Severity.ERROR,
    "invalid-code-block": Severity.ERROR,
    "unreadable-document": Severity.ERROR,
    "orphan-document": Severity.WARNING,
    "unused-term": Severity.INFO,
    "unknown-role": Severity.INFO,
}


@dataclass
class Issue:
    """One problem found in the corpus.

    Attributes:
        code: Issue code (see ``ISSUE_CODES``)
        severity: Effective severity
        message: Human-readable description
        document: Document name the issue is reported against
        line: 1-based line, None for whole-document issues
        target: Reference target or symbol involved
        suggestions: Close matches for dangling references
        related: Other locations involved (``document:line``)
    """

    code: str
    severity: Severity
    message: str
    document: str
    line: int | None = None
    target: str | None = None
    suggestions: list[str] = field(default_factory=list)
    related: list[str] = field(default_factory=list)

    @property
    def location(self) -> str:
        return f"{self.document}:{self.line}" if self.line else self.document

    def sort_key(self) -> tuple[str, int, str, str]:
        return (self.document, self.line or 0, self.code, self.target or "")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "code": self.code,
            "severity": self.severity.value,
            "message": self.message,
            "document": self.document,
            "line": self.line,
        }
        if self.target is not None:
            data["target"] = self.target
        if self.suggestions:
            data["suggestions"] = list(self.suggestions)
        if self.related:
            data["related"] = list(self.related)
        return data


@dataclass
class ValidationReport:
    """Result of validating a corpus.

    Attributes:
        issues: Issues sorted by (document, line, code)
        stats: Corpus statistics (documents, symbols, references, code blocks)
        documents: Document name -> content hash
        root: Corpus root the report was produced for
    """

    issues: list[Issue] = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)
    documents: dict[str, str] = field(default_factory=dict)
    root: str = ""

    def __post_init__(self) -> None:
        self.issues.sort(key=Issue.sort_key)

    def counts(self) -> dict[str, int]:
        """Number of issues per severity."""
        counts = {s.value: 0 for s in Severity}
        for issue in self.issues:
            counts[issue.severity.value] += 1
        return counts

    def by_code(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for issue in self.issues:
            counts[issue.code] = counts.get(issue.code, 0) + 1
        return dict(sorted(counts.items()))

    def failures(self, fail_on: Severity = Severity.ERROR) -> list[Issue]:
        return [i for i in self.issues if i.severity.at_least(fail_on)]

    def passed(self, fail_on: Severity = Severity.ERROR) -> bool:
        """True if no issue is at or above ``fail_on``."""
        return not self.failures(fail_on)

    def to_dict(self, fail_on: Severity = Severity.ERROR) -> dict[str, Any]:
        return {
            "root": self.root,
            "passed": self.passed(fail_on),
            "fail_on": fail_on.value,
            "counts": self.counts(),
            "by_code": self.by_code(),
            "stats": self.stats,
            "documents": dict(sorted(self.documents.items())),
            "issues": [i.to_dict() for i in self.issues],
        }
