"""
Reference extractor for reStructuredText documents.

Walks the lines of one document and collects what it declares (labels,
glossary terms, object directives), what it references (roles, toctree
entries, includes) and the code examples it contains.

Example:
    >>> extractor = ReferenceExtractor()
    >>> facts = extractor.extract(Path("docs/reference/glossary.rst").read_text())
    >>> [d.name for d in facts.declarations][:2]
    ['BSON', 'capped collection']
"""

from __future__ import annotations

import re
import textwrap
from collections.abc import Iterable
from dataclasses import dataclass, field

from docref.graph.schema import (
    CodeBlock,
    Declaration,
    DocumentFacts,
    Reference,
    RoleUse,
    SymbolKind,
)
from docref.parser.roles import ROLE_PATTERN, RoleClassifier, split_title_target

_EXPLICIT = re.compile(r"^(?P<indent>[ ]*)\.\.(?:[ ]+(?P<rest>.*))?$")
_TARGET = re.compile(r"^_(?P<name>`[^`]+`|[^:`][^:]*?|):(?P<after>.*)$")
_SUBSTITUTION = re.compile(r"^\|[^|]+\|\s+(?P<rest>.*)$")
_DIRECTIVE = re.compile(r"^(?P<name>[A-Za-z0-9][\w.+-]*(?::[\w.+-]+)*?)::(?:[ ]+(?P<arg>.*)|[ ]*$)")
_OPTION = re.compile(r"^\s*:(?P<name>[\w-]+):(?:\s+(?P<value>.*)|\s*$)")
_FIELD = re.compile(r"^:(?P<name>[\w-]+):(?:\s|$)")
_INLINE_LITERAL = re.compile(r"``.+?``", re.DOTALL)
_URL = re.compile(r"^[a-z][a-z0-9+.-]*://", re.IGNORECASE)
_GLOB_CHARS = set("*?[")

CODE_DIRECTIVES = frozenset({"code-block", "code", "sourcecode"})
INCLUDE_DIRECTIVES = frozenset({"include", "literalinclude"})
# Directive bodies that are neither prose nor code worth checking
OPAQUE_DIRECTIVES = frozenset({"raw", "math", "index", "graphviz", "digraph", "productionlist"})
OPTION_OBJECT_TYPES = frozenset({"option", "cmdoption"})

DEFAULT_OBJECT_TYPES = (
    "dbcommand",
    "method",
    "operator",
    "query",
    "update",
    "projection",
    "pipeline",
    "expression",
    "group",
    "aggregator",
    "setting",
    "parameter",
    "program",
    "option",
    "binary",
    "data",
    "limit",
    "error",
    "authaction",
    "authrole",
    "readmode",
    "function",
    "class",
)

DEFAULT_IGNORED_ROLES = (
    "abbr",
    "code",
    "command",
    "dfn",
    "emphasis",
    "envvar",
    "file",
    "guilabel",
    "kbd",
    "keyword",
    "literal",
    "mailheader",
    "makevar",
    "manpage",
    "math",
    "menuselection",
    "mimetype",
    "newsgroup",
    "pep",
    "regexp",
    "rfc",
    "samp",
    "strong",
    "sub",
    "sup",
    "subscript",
    "superscript",
    "title",
    "title-reference",
    "token",
    "urlencode",
)


@dataclass
class _ScanState:
    """Mutable state for one extraction pass."""

    facts: DocumentFacts
    literal_language: str
    seen_content: bool = False
    paragraph: list[tuple[int, str]] = field(default_factory=list)


class ReferenceExtractor:
    """Extract declarations, references and code blocks from reStructuredText.

    Manifesto:
        The extractor never resolves anything. It records what a single
        document says, independent of where the document lives, so the
        result can be cached by content hash and resolved later against the
        whole corpus.

    Architecture:
        ```
        text ──► lines ──► line loop
                              │
                              ├── ".. _label:"            ──► LABEL declaration
                              ├── ".. glossary::"         ──► TERM declarations
                              ├── ".. <objtype>:: name"   ──► OBJECT declaration
                              ├── ".. toctree::"          ──► DOCUMENT references
                              ├── ".. include:: path"     ──► FILE reference
                              ├── ".. code-block:: lang"  ──► CodeBlock
                              ├── ".. <comment>"          ──► skipped
                              ├── "paragraph::" + indent  ──► literal CodeBlock
                              └── prose paragraph ──► :role:`target` ──► references
        ```

    Features:
        - Roles spanning line breaks inside a paragraph
        - Inline literals and literal blocks never yield references
        - ``:noindex:`` object directives declare nothing
        - ``.. highlight::`` sets the language of later literal blocks
        - ``:orphan:`` document metadata

    Guardrails:
        - Do NOT fail on malformed markup
          ✅ Unrecognized explicit markup is treated as a comment
    """

    def __init__(
        self,
        object_types: Iterable[str] = DEFAULT_OBJECT_TYPES,
        ignored_roles: Iterable[str] = DEFAULT_IGNORED_ROLES,
        literal_language: str = "none",
    ):
        self.roles = RoleClassifier.build(object_types, ignored_roles)
        self.literal_language = literal_language.lower()

    def extract(self, text: str, content_hash: str = "") -> DocumentFacts:
        """Extract facts from document text.

        Args:
            text: Full document text
            content_hash: Content hash to stamp on the result

        Returns:
            DocumentFacts for the document
        """
        lines = [line.expandtabs(8).rstrip() for line in text.splitlines()]
        state = _ScanState(
            facts=DocumentFacts(content_hash=content_hash),
            literal_language=self.literal_language,
        )

        i = 0
        n = len(lines)
        while i < n:
            line = lines[i]
            stripped = line.strip()

            if not stripped:
                self._flush(state)
                i += 1
                continue

            explicit = _EXPLICIT.match(line)
            if explicit:
                self._flush(state)
                i = self._explicit(lines, i, len(explicit.group("indent")), explicit.group("rest") or "", state)
                continue

            if not state.seen_content and not state.paragraph:
                field_match = _FIELD.match(line)
                if field_match:
                    if field_match.group("name") == "orphan":
                        state.facts.orphan = True
                    i += 1
                    continue

            state.seen_content = True
            state.paragraph.append((i, line))

            if stripped.endswith("::"):
                self._flush(state)
                i = self._literal_block(lines, i + 1, _indent(line), state)
                continue

            i += 1

        self._flush(state)
        return state.facts

    # ------------------------------------------------------------------
    # Explicit markup
    # ------------------------------------------------------------------

    def _explicit(self, lines: list[str], i: int, indent: int, rest: str, state: _ScanState) -> int:
        """Handle a line starting with ``..``; return the next line index."""
        rest = rest.strip()
        if not rest and (i + 1 >= len(lines) or not lines[i + 1].strip()):
            # Empty comment; what follows the blank line is ordinary text
            return i + 1
        end = _block_end(lines, i, indent)

        target = _TARGET.match(rest)
        if target:
            state.seen_content = True
            name = target.group("name").strip("`").strip()
            if name and not target.group("after").strip() and name != "_":
                state.facts.declarations.append(Declaration(SymbolKind.LABEL, name, line=i + 1))
            return end

        substitution = _SUBSTITUTION.match(rest)
        if substitution:
            rest = substitution.group("rest")

        directive = _DIRECTIVE.match(rest)
        if not directive:
            # Comment
            return end

        state.seen_content = True
        name = directive.group("name").lower()
        base = name.rsplit(":", 1)[-1]
        arg = (directive.group("arg") or "").strip()
        options, content_start = _options(lines, i + 1, end)

        if name in CODE_DIRECTIVES:
            language = arg.split()[0].lower() if arg else state.literal_language
            self._code_block(lines, content_start, end, language, state, literal=False)
            return end

        if name == "highlight":
            state.literal_language = arg.split()[0].lower() if arg else "none"
            return end

        if name in INCLUDE_DIRECTIVES:
            if arg and not (arg.startswith("<") and arg.endswith(">")):
                state.facts.references.append(
                    Reference(SymbolKind.FILE, arg, role=name, line=i + 1)
                )
            return end

        if name == "toctree":
            self._toctree(lines, content_start, end, "glob" in options, state)
            return end

        if name == "glossary":
            # Term lines are declared here; definitions are scanned as prose
            self._glossary_terms(lines, content_start, end, state)
            return content_start

        if name in OPAQUE_DIRECTIVES:
            return end

        if base in self.roles.object_types:
            if "noindex" not in options and "no-index" not in options and arg:
                for signature in _signatures(base, arg):
                    state.facts.declarations.append(
                        Declaration(SymbolKind.OBJECT, signature, line=i + 1, objtype=base)
                    )
            return content_start

        if arg:
            self._scan_text([(i, arg)], state)
        return content_start

    def _toctree(self, lines: list[str], start: int, end: int, glob: bool, state: _ScanState) -> None:
        for j in range(start, end):
            entry = lines[j].strip()
            if not entry or _OPTION.match(lines[j]):
                continue
            _, target = split_title_target(entry)
            if target == "self" or _URL.match(target):
                continue
            pattern = glob and any(ch in _GLOB_CHARS for ch in target)
            state.facts.references.append(
                Reference(
                    SymbolKind.DOCUMENT,
                    target,
                    role="toctree",
                    line=j + 1,
                    toctree=True,
                    pattern=pattern,
                )
            )

    def _glossary_terms(self, lines: list[str], start: int, end: int, state: _ScanState) -> None:
        base_indent: int | None = None
        for j in range(start, end):
            line = lines[j]
            if not line.strip():
                continue
            indent = _indent(line)
            if base_indent is None:
                base_indent = indent
            if indent == base_indent:
                state.facts.declarations.append(
                    Declaration(SymbolKind.TERM, line.strip(), line=j + 1)
                )

    # ------------------------------------------------------------------
    # Code
    # ------------------------------------------------------------------

    def _code_block(
        self,
        lines: list[str],
        start: int,
        end: int,
        language: str,
        state: _ScanState,
        literal: bool,
    ) -> None:
        first = start
        while first < end and not lines[first].strip():
            first += 1
        if first >= end:
            return
        content = textwrap.dedent("\n".join(lines[first:end]))
        state.facts.code_blocks.append(
            CodeBlock(language=language or "none", content=content, line=first + 1, literal=literal)
        )

    def _literal_block(self, lines: list[str], start: int, para_indent: int, state: _ScanState) -> int:
        """Consume the indented block after a ``::`` paragraph."""
        j = start
        n = len(lines)
        while j < n and not lines[j].strip():
            j += 1
        if j >= n or _indent(lines[j]) <= para_indent:
            return start

        block_end = j
        k = j
        while k < n and (not lines[k].strip() or _indent(lines[k]) > para_indent):
            if lines[k].strip():
                block_end = k + 1
            k += 1

        self._code_block(lines, j, block_end, state.literal_language, state, literal=True)
        return block_end

    # ------------------------------------------------------------------
    # Prose
    # ------------------------------------------------------------------

    def _flush(self, state: _ScanState) -> None:
        if state.paragraph:
            self._scan_text(state.paragraph, state)
            state.paragraph = []

    def _scan_text(self, numbered_lines: list[tuple[int, str]], state: _ScanState) -> None:
        """Find roles in consecutive prose lines."""
        first_index = numbered_lines[0][0]
        text = "\n".join(line for _, line in numbered_lines)
        text = _INLINE_LITERAL.sub(lambda m: re.sub(r"[^\n]", " ", m.group()), text)

        for match in ROLE_PATTERN.finditer(text):
            line = first_index + text.count("\n", 0, match.start()) + 1
            role = match.group("role")
            if not self.roles.is_known(role):
                state.facts.unknown_roles.append(RoleUse(role=role.lower(), line=line))
                continue
            reference = self.roles.classify(role, match.group("body"), line)
            if reference is not None:
                state.facts.references.append(reference)


def _indent(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _block_end(lines: list[str], start: int, indent: int) -> int:
    """Index after the last non-blank line indented deeper than ``indent``."""
    end = start + 1
    j = start + 1
    while j < len(lines):
        line = lines[j]
        if line.strip():
            if _indent(line) <= indent:
                break
            end = j + 1
        j += 1
    return end


def _options(lines: list[str], start: int, end: int) -> tuple[dict[str, str], int]:
    """Parse a directive's option block; return options and content start."""
    options: dict[str, str] = {}
    j = start
    while j < end and lines[j].strip():
        option = _OPTION.match(lines[j])
        if not option:
            break
        options[option.group("name").lower()] = (option.group("value") or "").strip()
        j += 1
    return options, j


def _signatures(objtype: str, arg: str) -> list[str]:
    if objtype in OPTION_OBJECT_TYPES:
        names = []
        for part in arg.split(","):
            token = part.strip().split()
            if token:
                names.append(token[0])
        return names
    return [arg]
