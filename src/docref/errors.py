"""
Structured error types for docref.

Errors here are for conditions that stop a run: a bad configuration, a
corpus root that does not exist, a cache file that cannot be written.
Problems *inside* the corpus (dangling references, broken code examples)
are never raised; they are collected as ``Issue`` objects in the report.

Manifesto:
    - **Typed hierarchy:** callers catch ``DocrefError`` or a narrower subclass
    - **Rich context:** errors carry document/line/key metadata for logging
    - **Error chaining:** the original exception is kept as ``cause``

Architecture:
    ::

        DocrefError (category, context, cause)
        ├── ConfigError         (CONFIG)
        │   ├── MissingConfigError
        │   └── InvalidConfigError
        ├── SourceError         (SOURCE)
        │   └── DocumentDecodeError
        └── CacheError          (CACHE)

Examples:
    >>> err = InvalidConfigError("fail_on", "fatal")
    >>> err.category
    <ErrorCategory.CONFIG: 'CONFIG'>
    >>> err.with_context(document="index").to_dict()["context"]
    {'document': 'index'}

Tags:
    error-handling, exception-hierarchy, error-context, docref
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and exit handling."""

    CONFIG = "CONFIG"      # Missing config, invalid settings
    SOURCE = "SOURCE"      # Corpus root or document cannot be read
    PARSE = "PARSE"        # Text could not be interpreted
    CACHE = "CACHE"        # Scan cache unreadable or unwritable
    INTERNAL = "INTERNAL"  # Bugs, unexpected state


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        document: Corpus document name (relative, without suffix)
        path: File system path involved
        line: 1-based line number
        key: Configuration key
        metadata: Additional key-value pairs
    """

    document: str | None = None
    path: str | None = None
    line: int | None = None
    key: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["document", "path", "line", "key"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class DocrefError(Exception):
    """Base exception for all docref errors.

    Subclasses set ``default_category``; callers may override it per
    instance. ``cause`` is chained as ``__cause__`` so tracebacks keep the
    original failure.
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> DocrefError:
        """Add context to this error (fluent API).

        Usage:
            raise SourceError("Cannot read").with_context(path=str(path))
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(DocrefError):
    """Configuration error. The configuration must be fixed before a rerun."""

    default_category = ErrorCategory.CONFIG


class MissingConfigError(ConfigError):
    """Required configuration is missing."""

    def __init__(self, key: str, message: str | None = None, **kwargs: Any):
        self.key = key
        super().__init__(message or f"Missing required configuration: {key}", **kwargs)
        self.context.key = key


class InvalidConfigError(ConfigError):
    """Configuration value is invalid."""

    def __init__(self, key: str, value: Any, message: str | None = None, **kwargs: Any):
        self.key = key
        self.value = value
        super().__init__(message or f"Invalid configuration for {key}: {value!r}", **kwargs)
        self.context.key = key


# =============================================================================
# SOURCE ERRORS
# =============================================================================


class SourceError(DocrefError):
    """A corpus root or document could not be read."""

    default_category = ErrorCategory.SOURCE


class DocumentDecodeError(SourceError):
    """Document bytes are not valid text in the expected encoding."""

    default_category = ErrorCategory.PARSE


# =============================================================================
# CACHE ERRORS
# =============================================================================


class CacheError(DocrefError):
    """The scan cache could not be loaded or saved."""

    default_category = ErrorCategory.CACHE


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "DocrefError",
    "ConfigError",
    "MissingConfigError",
    "InvalidConfigError",
    "SourceError",
    "DocumentDecodeError",
    "CacheError",
]
