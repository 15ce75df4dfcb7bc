"""
Syntax checks for code examples.

Each checker answers one question: does this block parse in its stated
language? Blocks in languages without a checker are skipped, not failed.

Example:
    >>> checker = CodeBlockChecker()
    >>> checker.check(CodeBlock("json", '{"a": 1', line=12)).status
    <CheckStatus.INVALID: 'invalid'>
"""

from __future__ import annotations

import ast
import json
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum

import yaml

from docref.graph.schema import CodeBlock


class CheckStatus(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    SKIPPED = "skipped"


@dataclass
class CodeCheckResult:
    """Outcome of checking one code block.

    Attributes:
        status: valid, invalid or skipped
        message: Parser message for invalid blocks
        line: Absolute document line of the problem (invalid only)
        checker: Checker that ran (empty when skipped)
    """

    status: CheckStatus
    message: str = ""
    line: int | None = None
    checker: str = ""


class CodeSyntaxError(Exception):
    """Raised by a checker; ``line`` is relative to the block (1-based)."""

    def __init__(self, message: str, line: int | None = None):
        super().__init__(message)
        self.message = message
        self.line = line


DEFAULT_LANGUAGES: dict[str, str] = {
    "python": "python",
    "py": "python",
    "python3": "python",
    "py3": "python",
    "pycon": "pycon",
    "json": "json",
    "yaml": "yaml",
    "yml": "yaml",
    "javascript": "javascript",
    "js": "javascript",
    "mongo": "javascript",
    "mongosh": "javascript",
    "json5": "javascript",
}


def check_python(source: str) -> None:
    try:
        ast.parse(source)
    except SyntaxError as e:
        raise CodeSyntaxError(e.msg, e.lineno) from e


def check_pycon(source: str) -> None:
    """Check only the prompt lines of an interactive session."""
    code_lines: list[str] = []
    origins: list[int] = []
    for number, line in enumerate(source.splitlines(), start=1):
        if line.startswith(">>>") or (line.startswith("...") and code_lines):
            code_lines.append(line[4:] if len(line) > 3 else "")
            origins.append(number)
    if not code_lines:
        return
    try:
        ast.parse("\n".join(code_lines))
    except SyntaxError as e:
        line = origins[e.lineno - 1] if e.lineno and e.lineno <= len(origins) else None
        raise CodeSyntaxError(e.msg, line) from e


def check_json(source: str) -> None:
    try:
        json.loads(source)
    except json.JSONDecodeError as e:
        raise CodeSyntaxError(e.msg, e.lineno) from e


def check_yaml(source: str) -> None:
    try:
        list(yaml.safe_load_all(source))
    except yaml.YAMLError as e:
        mark = getattr(e, "problem_mark", None)
        problem = getattr(e, "problem", None) or str(e)
        raise CodeSyntaxError(problem, mark.line + 1 if mark is not None else None) from e


_CLOSERS = {")": "(", "]": "[", "}": "{"}

# A `/` after one of these (or at the start) opens a regex literal, not a division
_REGEX_PRECEDERS = frozenset("(,=:[!&|?{};+-*%<>~^")


def check_javascript(source: str) -> None:
    """Delimiter balance with string and comment awareness.

    Not a JavaScript parser: shell examples in documentation are full of
    placeholders (``<field>``, ``...``) that a real parser rejects, while
    unbalanced brackets and unterminated strings are always mistakes.
    """
    stack: list[tuple[str, int]] = []
    prev = ""
    line = 1
    i = 0
    n = len(source)
    while i < n:
        ch = source[i]
        if ch == "\n":
            line += 1
        elif ch == "/" and source.startswith("//", i):
            newline = source.find("\n", i)
            i = n if newline == -1 else newline
            continue
        elif ch == "/" and source.startswith("/*", i):
            close = source.find("*/", i + 2)
            if close == -1:
                raise CodeSyntaxError("unterminated comment", line)
            line += source.count("\n", i, close)
            i = close + 2
            continue
        elif ch == "/" and (not prev or prev in _REGEX_PRECEDERS):
            i = _skip_regex(source, i, line)
        elif ch in "\"'`":
            start_line = line
            i += 1
            while i < n and source[i] != ch:
                if source[i] == "\\":
                    i += 1
                elif source[i] == "\n":
                    if ch != "`":
                        raise CodeSyntaxError("unterminated string literal", start_line)
                    line += 1
                i += 1
            if i >= n:
                raise CodeSyntaxError("unterminated string literal", start_line)
        elif ch in "([{":
            stack.append((ch, line))
        elif ch in _CLOSERS:
            if not stack:
                raise CodeSyntaxError(f"unexpected {ch!r}", line)
            opener, opened_at = stack.pop()
            if opener != _CLOSERS[ch]:
                raise CodeSyntaxError(
                    f"{ch!r} does not match {opener!r} opened on line {opened_at}", line
                )
        if not ch.isspace():
            prev = ch
        i += 1

    if stack:
        opener, opened_at = stack[-1]
        raise CodeSyntaxError(f"unclosed {opener!r}", opened_at)


def _skip_regex(source: str, start: int, line: int) -> int:
    """Index of the ``/`` that closes the regex literal opened at ``start``."""
    in_class = False
    i = start + 1
    while i < len(source):
        ch = source[i]
        if ch == "\n":
            break
        if ch == "\\":
            i += 1
        elif ch == "[":
            in_class = True
        elif ch == "]":
            in_class = False
        elif ch == "/" and not in_class:
            return i
        i += 1
    raise CodeSyntaxError("unterminated regular expression", line)


CHECKERS: dict[str, Callable[[str], None]] = {
    "python": check_python,
    "pycon": check_pycon,
    "json": check_json,
    "yaml": check_yaml,
    "javascript": check_javascript,
}


class CodeBlockChecker:
    """Check code blocks against the checker for their language.

    Args:
        languages: Language alias -> checker name (see ``CHECKERS``)
    """

    def __init__(self, languages: Mapping[str, str] | None = None):
        mapping = DEFAULT_LANGUAGES if languages is None else languages
        self.languages = {alias.lower(): checker for alias, checker in mapping.items()}

    def checker_for(self, language: str) -> str | None:
        checker = self.languages.get(language.lower())
        return checker if checker in CHECKERS else None

    def check(self, block: CodeBlock) -> CodeCheckResult:
        checker = self.checker_for(block.language)
        if checker is None:
            return CodeCheckResult(CheckStatus.SKIPPED)
        try:
            CHECKERS[checker](block.content)
        except CodeSyntaxError as e:
            line = block.line + e.line - 1 if e.line else block.line
            return CodeCheckResult(CheckStatus.INVALID, message=e.message, line=line, checker=checker)
        return CodeCheckResult(CheckStatus.VALID, checker=checker)
