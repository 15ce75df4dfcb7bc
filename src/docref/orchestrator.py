"""
Corpus validation orchestrator.

Coordinates a validation run: discover documents, scan them (through the
content-addressed cache), build the symbol table, resolve every reference,
check code examples and assemble the report.

Example:
    >>> validator = CorpusValidator(load_settings(Path("docs/source")))
    >>> report = validator.validate()
    >>> report.passed()
    False
    >>> report.by_code()
    {'dangling-reference': 3, 'unused-term': 12}
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

from docref.cache import ScanCache
from docref.config import DocrefSettings
from docref.errors import CacheError, DocumentDecodeError, SourceError
from docref.graph.resolver import Resolution, ResolutionStatus, Resolver
from docref.graph.schema import (
    Declaration,
    DocumentFacts,
    ScannedDocument,
    SymbolKey,
    SymbolKind,
)
from docref.graph.symbols import SymbolTable
from docref.hashing import content_hash
from docref.logging import LogContext, get_logger
from docref.parser.code_blocks import CheckStatus, CodeBlockChecker
from docref.parser.extractor import ReferenceExtractor
from docref.report import Issue, ValidationReport

logger = get_logger(__name__)


@dataclass
class SourceDocument:
    """A document file found during discovery."""

    name: str
    path: Path


class CorpusValidator:
    """Validate a documentation corpus end to end.

    Manifesto:
        One command answers "is this corpus internally consistent?". The
        validator scans each document once, keeps the symbol table for the
        whole run, and collects every problem instead of stopping at the
        first one.

    Architecture:
        ```
        CorpusValidator
              │
              ├──► discover()  ──► [SourceDocument]
              │
              ├──► scan()      ──► content hash ──► ScanCache hit? ──► facts
              │                                        │ miss
              │                                        ▼
              │                             ReferenceExtractor.extract()
              │
              ├──► build_symbol_table() ──► SymbolTable
              │
              └──► validate()
                      ├── Resolver.resolve() per reference
                      ├── CodeBlockChecker.check() per code block
                      ├── duplicates / unused terms / orphan documents
                      └── ValidationReport (sorted, severities applied)
        ```

    Guardrails:
        - Do NOT scan a document twice in one run
          ✅ Scan once, share facts across every check
        - Do NOT fail the run on one bad document
          ✅ Undecodable files become ``unreadable-document`` issues
        - Do NOT abort when the cache cannot be written
          ✅ Log a warning; the report is still produced
    """

    def __init__(self, settings: DocrefSettings):
        self.settings = settings
        self.root = Path(settings.root)
        self.extractor = ReferenceExtractor(
            object_types=settings.object_types,
            ignored_roles=settings.ignored_roles,
            literal_language=settings.literal_language,
        )
        self.code_checker = CodeBlockChecker(settings.code_languages)

        self.sources: list[SourceDocument] = []
        self.documents: list[ScannedDocument] = []
        self.table: SymbolTable | None = None
        self._scan_issues: list[Issue] = []
        self._cache_stats = {"cache_hits": 0, "cache_misses": 0}
        self._scanned = False

    # ------------------------------------------------------------------
    # Discovery and scanning
    # ------------------------------------------------------------------

    def discover(self) -> list[SourceDocument]:
        """Find document files under the corpus root, in sorted order.

        Raises:
            SourceError: The root is not a directory
        """
        if not self.root.is_dir():
            raise SourceError(f"Corpus root is not a directory: {self.root}").with_context(
                path=str(self.root)
            )

        suffixes = tuple(self.settings.source_suffixes)
        sources = []
        for path in sorted(self.root.rglob("*")):
            if not path.is_file() or path.suffix not in suffixes:
                continue
            relative = path.relative_to(self.root).as_posix()
            if self._should_skip(relative):
                continue
            sources.append(SourceDocument(name=relative[: -len(path.suffix)], path=path))
        return sources

    def _should_skip(self, relative: str) -> bool:
        return any(pattern in relative for pattern in self.settings.skip_patterns)

    def scan(self) -> list[ScannedDocument]:
        """Extract facts for every discovered document."""
        self.sources = self.discover()
        self.documents = []
        self._scan_issues = []

        cache_path = self.settings.resolved_cache_path if self.settings.use_cache else None
        cache = ScanCache.load(cache_path, self.settings.scanner_fingerprint())

        with LogContext(corpus=str(self.root)):
            for source in self.sources:
                try:
                    data = source.path.read_bytes()
                except OSError as e:
                    self._unreadable(source, f"cannot read file: {e.strerror or e}")
                    continue

                digest = content_hash(data)
                facts = cache.get(digest)
                if facts is None:
                    try:
                        facts = self._extract(source, data, digest)
                    except DocumentDecodeError as e:
                        self._unreadable(source, e.message)
                        continue
                    cache.put(facts)
                self.documents.append(ScannedDocument(source.name, str(source.path), facts))

            cache.prune(doc.facts.content_hash for doc in self.documents)
            try:
                cache.save()
            except CacheError as e:
                logger.warning("cache_not_saved", **e.to_dict())

            self._cache_stats = {"cache_hits": cache.hits, "cache_misses": cache.misses}
            logger.info(
                "corpus_scanned",
                documents=len(self.sources),
                scanned=len(self.documents),
                **self._cache_stats,
            )

        self._scanned = True
        return self.documents

    def _extract(self, source: SourceDocument, data: bytes, digest: str) -> DocumentFacts:
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise DocumentDecodeError(
                f"not valid UTF-8 (byte {e.start})", cause=e
            ).with_context(document=source.name, path=str(source.path))
        logger.debug("document_extracted", document=source.name)
        return self.extractor.extract(text, digest)

    def _unreadable(self, source: SourceDocument, reason: str) -> None:
        logger.warning("document_unreadable", document=source.name, reason=reason)
        issue = self._issue("unreadable-document", f"document could not be read: {reason}", source.name, None)
        if issue is not None:
            self._scan_issues.append(issue)

    def extract_file(self, path: Path) -> DocumentFacts:
        """Extract facts from a single file, without cache or corpus."""
        path = Path(path)
        try:
            data = path.read_bytes()
        except OSError as e:
            raise SourceError(f"Cannot read {path}", cause=e).with_context(path=str(path))
        source = SourceDocument(name=path.stem, path=path)
        return self._extract(source, data, content_hash(data))

    # ------------------------------------------------------------------
    # Symbol table
    # ------------------------------------------------------------------

    def build_symbol_table(self) -> SymbolTable:
        """Declare every document and every extracted declaration."""
        if not self._scanned:
            self.scan()

        table = SymbolTable()
        for source in self.sources:
            table.declare(Declaration(SymbolKind.DOCUMENT, source.name, line=0, document=source.name))
        for doc in self.documents:
            table.declare_all(doc.declarations)

        self.table = table
        return table

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate(self) -> ValidationReport:
        """Run every check and return the report."""
        self.scan()
        table = self.build_symbol_table()
        resolver = Resolver(
            table,
            documents=[s.name for s in self.sources],
            root=self.root,
            source_suffixes=self.settings.source_suffixes,
        )

        issues: list[Issue | None] = list(self._scan_issues)
        used_terms: set[SymbolKey] = set()
        in_toctree: set[str] = set()
        included: set[str] = set()
        code_counts = {"valid": 0, "invalid": 0, "skipped": 0}

        for doc in self.documents:
            for resolution in resolver.resolve_all(doc.references):
                self._record_usage(resolution, used_terms, in_toctree, included)
                issues.append(self._resolution_issue(resolution))

            for use in doc.facts.unknown_roles:
                issues.append(self._issue(
                    "unknown-role", f"unknown role ':{use.role}:'", doc.name, use.line, target=use.role,
                ))

            if self.settings.check_code:
                for block in doc.facts.code_blocks:
                    result = self.code_checker.check(block)
                    code_counts[result.status.value] += 1
                    if result.status is CheckStatus.INVALID:
                        issues.append(self._issue(
                            "invalid-code-block",
                            f"{block.language} code block does not parse: {result.message}",
                            doc.name,
                            result.line,
                            target=block.language,
                        ))

        issues.extend(self._duplicate_issues(table))
        issues.extend(self._unused_term_issues(table, used_terms))
        issues.extend(self._orphan_issues(in_toctree, included))

        report = ValidationReport(
            issues=[i for i in issues if i is not None],
            stats={**self._collect_stats(table), "code_checks": code_counts},
            documents={doc.name: doc.facts.content_hash for doc in self.documents},
            root=str(self.root),
        )
        logger.info("validation_finished", **report.counts())
        return report

    def get_stats(self) -> dict[str, Any]:
        """Corpus statistics without running the checks."""
        if self.table is None:
            self.build_symbol_table()
        return self._collect_stats(self.table)

    def _record_usage(
        self,
        resolution: Resolution,
        used_terms: set[SymbolKey],
        in_toctree: set[str],
        included: set[str],
    ) -> None:
        reference = resolution.reference
        for match in resolution.matches:
            if match.kind is SymbolKind.TERM:
                used_terms.add(match.key)
            elif match.kind is SymbolKind.DOCUMENT and reference.toctree:
                in_toctree.add(match.name)
            elif match.kind is SymbolKind.FILE:
                for suffix in self.settings.source_suffixes:
                    if match.name.endswith(suffix):
                        included.add(match.name[: -len(suffix)])

    def _resolution_issue(self, resolution: Resolution) -> Issue | None:
        reference = resolution.reference
        label = f":{reference.role}:" if reference.role not in {"toctree", "include", "literalinclude"} else reference.role

        if resolution.status is ResolutionStatus.DANGLING:
            code = "missing-file" if reference.kind is SymbolKind.FILE else "dangling-reference"
            message = f"{label} target {reference.target!r} does not resolve"
            if code == "missing-file":
                message = f"{label} file {reference.target!r} does not exist"
            if resolution.suggestions:
                message += f" (did you mean {', '.join(repr(s) for s in resolution.suggestions)}?)"
            return self._issue(
                code, message, reference.document, reference.line,
                target=reference.target, suggestions=resolution.suggestions,
            )

        if resolution.status is ResolutionStatus.AMBIGUOUS:
            return self._issue(
                "ambiguous-reference",
                f"{label} target {reference.target!r} matches {len(resolution.matches)} definitions",
                reference.document,
                reference.line,
                target=reference.target,
                related=[_location(d) for d in resolution.matches],
            )
        return None

    def _duplicate_issues(self, table: SymbolTable) -> list[Issue | None]:
        issues: list[Issue | None] = []
        for key, decls in table.duplicates():
            first = decls[0]
            for decl in decls[1:]:
                if key.kind is SymbolKind.DOCUMENT:
                    message = f"document {key.name!r} exists with more than one source suffix"
                else:
                    message = (
                        f"{_describe(key)} {decl.name!r} is already defined at {_location(first)}"
                    )
                issues.append(self._issue(
                    "duplicate-definition", message, decl.document, decl.line or None,
                    target=str(key), related=[_location(d) for d in decls if d is not decl],
                ))
        return issues

    def _unused_term_issues(self, table: SymbolTable, used_terms: set[SymbolKey]) -> list[Issue | None]:
        issues: list[Issue | None] = []
        for key, decls in table.by_kind(SymbolKind.TERM).items():
            if key in used_terms:
                continue
            first = decls[0]
            issues.append(self._issue(
                "unused-term", f"glossary term {first.name!r} is never referenced",
                first.document, first.line, target=key.name,
            ))
        return issues

    def _orphan_issues(self, in_toctree: set[str], included: set[str]) -> list[Issue | None]:
        names = {s.name for s in self.sources}
        root_doc = self.settings.root_doc
        if root_doc not in names:
            return []

        orphan_flagged = {doc.name for doc in self.documents if doc.facts.orphan}
        issues: list[Issue | None] = []
        for name in sorted(names):
            if name == root_doc or name in in_toctree or name in included or name in orphan_flagged:
                continue
            issues.append(self._issue(
                "orphan-document", "document is not included in any toctree", name, None,
            ))
        return issues

    def _issue(self, code: str, message: str, document: str, line: int | None, **kwargs: Any) -> Issue | None:
        severity = self.settings.severity_for(code)
        if severity is None:
            return None
        return Issue(code, severity, message, document, line, **kwargs)

    def _collect_stats(self, table: SymbolTable) -> dict[str, Any]:
        references: dict[str, int] = {}
        declarations = 0
        code_blocks = 0
        for doc in self.documents:
            declarations += len(doc.facts.declarations)
            code_blocks += len(doc.facts.code_blocks)
            for ref in doc.facts.references:
                kind = ref.kind.value if ref.kind else "any"
                references[kind] = references.get(kind, 0) + 1
        return {
            "documents": len(self.sources),
            "scanned": len(self.documents),
            **self._cache_stats,
            "symbols": table.counts(),
            "declarations": declarations,
            "references": dict(sorted(references.items())),
            "references_total": sum(references.values()),
            "code_blocks": code_blocks,
        }


def _location(decl: Declaration) -> str:
    return f"{decl.document}:{decl.line}" if decl.line else decl.document


def _describe(key: SymbolKey) -> str:
    if key.kind is SymbolKind.OBJECT:
        return key.objtype
    if key.kind is SymbolKind.TERM:
        return "glossary term"
    return key.kind.value
