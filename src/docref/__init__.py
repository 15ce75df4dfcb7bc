"""
docref - content-addressed cross-reference validation for reStructuredText.

Scans a documentation corpus, builds a symbol table of every label,
glossary term, object and document, and reports references that do not
resolve, symbols defined twice, broken code examples and orphaned pages.

Quick start:
    >>> from pathlib import Path
    >>> from docref import CorpusValidator, load_settings
    >>> report = CorpusValidator(load_settings(Path("docs/source"))).validate()
    >>> report.passed()
    True

Tags:
    documentation, restructuredtext, validation, cross-references
"""

__version__ = "0.1.0"

from docref.config import DocrefSettings, load_settings
from docref.errors import DocrefError
from docref.orchestrator import CorpusValidator
from docref.report import Issue, Severity, ValidationReport

__all__ = [
    "CorpusValidator",
    "DocrefError",
    "DocrefSettings",
    "Issue",
    "Severity",
    "ValidationReport",
    "load_settings",
    "__version__",
]
