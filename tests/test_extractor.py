"""Tests for the reference extractor."""

import textwrap

import pytest

from docref.graph.schema import SymbolKind
from docref.parser.extractor import ReferenceExtractor


def extract(text: str, **kwargs):
    return ReferenceExtractor(**kwargs).extract(textwrap.dedent(text).lstrip("\n"), "hash")


def refs(facts):
    return [(r.kind, r.target, r.line) for r in facts.references]


def decls(facts):
    return [(d.kind, d.objtype, d.name, d.line) for d in facts.declarations]


# =============================================================================
# Declarations
# =============================================================================

class TestDeclarations:
    """Labels, glossary terms and object directives."""

    def test_label(self):
        facts = extract("""
            .. _read-concern:

            Read Concern
            ============
        """)

        assert decls(facts) == [(SymbolKind.LABEL, "", "read-concern", 1)]

    def test_hyperlink_target_is_not_a_label(self):
        facts = extract("""
            .. _Python: https://www.python.org
            .. __: https://example.com
        """)

        assert facts.declarations == []

    def test_backquoted_label(self):
        facts = extract(".. _`write concern`:\n")

        assert decls(facts) == [(SymbolKind.LABEL, "", "write concern", 1)]

    def test_glossary_terms(self):
        facts = extract("""
            .. glossary::
               :sorted:

               BSON : format
                  A binary format.

               collection
                  A grouping of documents.
        """)

        assert decls(facts) == [
            (SymbolKind.TERM, "", "BSON : format", 4),
            (SymbolKind.TERM, "", "collection", 7),
        ]

    def test_glossary_definitions_are_scanned(self):
        facts = extract("""
            .. glossary::

               shard
                  One part of a :term:`sharded cluster`.
        """)

        assert refs(facts) == [(SymbolKind.TERM, "sharded cluster", 4)]

    def test_object_directive(self):
        facts = extract("""
            .. dbcommand:: find

               Selects documents.

            .. method:: db.collection.find(query, projection)
        """)

        assert decls(facts) == [
            (SymbolKind.OBJECT, "dbcommand", "find", 1),
            (SymbolKind.OBJECT, "method", "db.collection.find(query, projection)", 5),
        ]

    def test_domain_qualified_object_directive(self):
        facts = extract(".. mongodb:dbcommand:: aggregate\n")

        assert decls(facts) == [(SymbolKind.OBJECT, "dbcommand", "aggregate", 1)]

    def test_noindex_declares_nothing(self):
        facts = extract("""
            .. dbcommand:: find
               :noindex:

               Selects documents in a :term:`collection`.
        """)

        assert facts.declarations == []
        assert refs(facts) == [(SymbolKind.TERM, "collection", 4)]

    def test_option_signatures_split(self):
        facts = extract(".. option:: --port <port>, -p\n")

        assert [d.name for d in facts.declarations] == ["--port", "-p"]
        assert {d.objtype for d in facts.declarations} == {"option"}

    def test_unconfigured_directive_declares_nothing(self):
        facts = extract(".. dbcommand:: find\n", object_types=["method"])

        assert facts.declarations == []


# =============================================================================
# References
# =============================================================================

class TestReferences:
    """Roles, toctree entries and includes."""

    def test_roles_in_prose(self):
        facts = extract("""
            Use :dbcommand:`find` with a :term:`collection`.

            See :ref:`Read Concern <read-concern>` and :doc:`/reference/crud`.
        """)

        assert refs(facts) == [
            (SymbolKind.OBJECT, "find", 1),
            (SymbolKind.TERM, "collection", 1),
            (SymbolKind.LABEL, "read-concern", 3),
            (SymbolKind.DOCUMENT, "/reference/crud", 3),
        ]

    def test_role_spanning_lines(self):
        facts = extract("""
            First line.
            Second line with :ref:`the read
            concern page <read-concern>` link.
        """)

        assert refs(facts) == [(SymbolKind.LABEL, "read-concern", 2)]

    def test_tilde_and_bang(self):
        facts = extract("""
            :method:`~db.collection.find()` and :ref:`!not-a-link`.
        """)

        assert refs(facts) == [(SymbolKind.OBJECT, "db.collection.find()", 1)]
        assert facts.references[0].objtype == "method"

    def test_domain_qualified_role(self):
        facts = extract("See :std:ref:`indexes`.\n")

        assert refs(facts) == [(SymbolKind.LABEL, "indexes", 1)]
        assert facts.references[0].role == "std:ref"

    def test_any_role_has_no_kind(self):
        facts = extract("See :any:`find`.\n")

        assert refs(facts) == [(None, "find", 1)]

    def test_ignored_and_unknown_roles(self):
        facts = extract("""
            Press :guilabel:`OK`, then read :abbr:`CRUD (create, read)`.
            Also :madeup:`thing`.
        """)

        assert facts.references == []
        assert [(u.role, u.line) for u in facts.unknown_roles] == [("madeup", 2)]

    def test_inline_literal_hides_roles(self):
        facts = extract("Write ``see :ref:`x` here`` to show markup.\n")

        assert facts.references == []

    def test_comment_is_skipped(self):
        facts = extract("""
            .. this is a comment with :ref:`hidden`

            .. TODO:
               :term:`also-hidden`
        """)

        assert facts.references == []

    def test_empty_comment_ends_at_blank_line(self):
        facts = extract("..\n\n   See :ref:`missing-label`.\n")

        assert refs(facts) == [(SymbolKind.LABEL, "missing-label", 3)]

    def test_empty_comment_with_body(self):
        facts = extract("..\n   See :ref:`hidden`.\n\nText.\n")

        assert facts.references == []

    def test_substitution_definition(self):
        facts = extract(".. |find| replace:: :dbcommand:`find`\n")

        assert refs(facts) == [(SymbolKind.OBJECT, "find", 1)]

    def test_toctree_entries(self):
        facts = extract("""
            .. toctree::
               :glob:
               :maxdepth: 1

               Introduction <intro>
               self
               https://example.com
               reference/*
        """)

        entries = [(r.target, r.pattern, r.toctree) for r in facts.references]
        assert entries == [("intro", False, True), ("reference/*", True, True)]
        assert all(r.kind is SymbolKind.DOCUMENT for r in facts.references)

    def test_toctree_without_glob_has_no_patterns(self):
        facts = extract("""
            .. toctree::

               faq*
        """)

        assert facts.references[0].pattern is False

    def test_include_directives(self):
        facts = extract("""
            .. include:: /includes/fact-bson.rst

            .. literalinclude:: examples/find.py
               :language: python

            .. include:: <isonum.txt>
        """)

        assert [(r.kind, r.target, r.role) for r in facts.references] == [
            (SymbolKind.FILE, "/includes/fact-bson.rst", "include"),
            (SymbolKind.FILE, "examples/find.py", "literalinclude"),
        ]

    def test_generic_directive_content_is_prose(self):
        facts = extract("""
            .. note:: See :ref:`limits`.

               Also :term:`BSON`.
        """)

        assert refs(facts) == [
            (SymbolKind.LABEL, "limits", 1),
            (SymbolKind.TERM, "BSON", 3),
        ]


# =============================================================================
# Code
# =============================================================================

class TestCodeBlocks:
    """Code-block directives and literal blocks."""

    def test_code_block_directive(self):
        facts = extract("""
            .. code-block:: javascript
               :linenos:

               db.inventory.find( { status: "A" } )
        """)

        [block] = facts.code_blocks
        assert block.language == "javascript"
        assert block.content == 'db.inventory.find( { status: "A" } )'
        assert block.line == 4
        assert block.literal is False

    def test_literal_block_has_no_references(self):
        facts = extract("""
            Example::

               :ref:`not-a-link`

            After :ref:`real-link`.
        """)

        assert refs(facts) == [(SymbolKind.LABEL, "real-link", 5)]
        [block] = facts.code_blocks
        assert block.literal is True
        assert block.language == "none"
        assert block.line == 3

    def test_highlight_sets_literal_language(self):
        facts = extract("""
            .. highlight:: python

            Run this::

               print("hello")
        """)

        assert facts.code_blocks[0].language == "python"

    def test_default_literal_language(self):
        facts = extract("Run::\n\n   x = 1\n", literal_language="python")

        assert facts.code_blocks[0].language == "python"

    def test_code_block_without_language_uses_highlight(self):
        facts = extract("""
            .. highlight:: yaml

            .. code-block::

               key: value
        """)

        assert facts.code_blocks[0].language == "yaml"

    def test_opaque_directive_content_ignored(self):
        facts = extract("""
            .. raw:: html

               <a href=":ref:`x`">x</a>
        """)

        assert facts.references == []
        assert facts.code_blocks == []


# =============================================================================
# Metadata
# =============================================================================

class TestMetadata:
    """Orphan field and content hash."""

    def test_orphan_field(self):
        facts = extract("""
            :orphan:

            Title
            =====
        """)

        assert facts.orphan is True

    def test_orphan_after_content_is_not_metadata(self):
        facts = extract("""
            Title
            =====

            :orphan:
        """)

        assert facts.orphan is False

    def test_content_hash_is_stamped(self):
        facts = ReferenceExtractor().extract("Text.\n", "abc123")

        assert facts.content_hash == "abc123"

    @pytest.mark.parametrize("text", ["", "\n\n", ".."])
    def test_degenerate_input(self, text):
        facts = ReferenceExtractor().extract(text)

        assert facts.references == []
        assert facts.declarations == []
