"""
Parser module for docref.

Provides the reStructuredText reference extractor and the syntax checks
for code examples found in documents.
"""

from docref.parser.code_blocks import CheckStatus, CodeBlockChecker, CodeCheckResult
from docref.parser.extractor import (
    DEFAULT_IGNORED_ROLES,
    DEFAULT_OBJECT_TYPES,
    ReferenceExtractor,
)
from docref.parser.roles import RoleClassifier, split_title_target

__all__ = [
    "CheckStatus",
    "CodeBlockChecker",
    "CodeCheckResult",
    "DEFAULT_IGNORED_ROLES",
    "DEFAULT_OBJECT_TYPES",
    "ReferenceExtractor",
    "RoleClassifier",
    "split_title_target",
]
