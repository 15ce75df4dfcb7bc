"""Tests for the graph module."""

import pytest

from docref.graph.resolver import ResolutionStatus, Resolver
from docref.graph.schema import (
    CodeBlock,
    Declaration,
    DocumentFacts,
    Reference,
    RoleUse,
    ScannedDocument,
    SymbolKey,
    SymbolKind,
    normalize_name,
)
from docref.graph.symbols import SymbolTable


# =============================================================================
# Schema Tests
# =============================================================================

class TestNormalizeName:
    """Tests for name normalization."""

    @pytest.mark.parametrize(
        "kind,name,expected",
        [
            (SymbolKind.LABEL, "Read  Concern", "read concern"),
            (SymbolKind.LABEL, "read-concern", "read-concern"),
            (SymbolKind.TERM, "BSON", "bson"),
            (SymbolKind.TERM, "BSON : format", "bson"),
            (SymbolKind.TERM, "replica\n   set", "replica set"),
            (SymbolKind.OBJECT, "db.collection.find(query, projection)", "db.collection.find"),
            (SymbolKind.OBJECT, "find", "find"),
            (SymbolKind.OBJECT, "$eq", "$eq"),
            (SymbolKind.DOCUMENT, "/reference/./crud", "reference/crud"),
            (SymbolKind.DOCUMENT, "a/b/../c", "a/c"),
            (SymbolKind.FILE, "includes\\fact.rst", "includes/fact.rst"),
        ],
    )
    def test_normalize(self, kind, name, expected):
        assert normalize_name(kind, name) == expected

    def test_object_names_case_sensitive(self):
        assert normalize_name(SymbolKind.OBJECT, "Find") != normalize_name(SymbolKind.OBJECT, "find")


class TestSymbolKey:
    """Tests for SymbolKey."""

    def test_str_for_object(self):
        assert str(SymbolKey(SymbolKind.OBJECT, "dbcommand", "find")) == "dbcommand:find"

    def test_str_for_term(self):
        assert str(SymbolKey(SymbolKind.TERM, "", "bson")) == "term:bson"


class TestDocumentFacts:
    """Tests for DocumentFacts serialization."""

    def test_round_trip_preserves_everything(self):
        facts = DocumentFacts(
            content_hash="abc",
            declarations=[Declaration(SymbolKind.OBJECT, "find", line=3, objtype="dbcommand")],
            references=[
                Reference(SymbolKind.DOCUMENT, "crud/*", role="toctree", line=9, toctree=True, pattern=True),
                Reference(None, "find", role="any", line=12),
            ],
            code_blocks=[CodeBlock("json", "{}", line=20, literal=True)],
            unknown_roles=[RoleUse("madeup", 30)],
            orphan=True,
        )

        assert DocumentFacts.from_dict(facts.to_dict()) == facts

    def test_facts_carry_no_document(self):
        facts = DocumentFacts(
            content_hash="abc",
            declarations=[Declaration(SymbolKind.LABEL, "intro", line=1)],
        )

        assert "document" not in facts.to_dict()["declarations"][0]

    def test_scanned_document_locates_facts(self):
        facts = DocumentFacts(
            content_hash="abc",
            declarations=[Declaration(SymbolKind.LABEL, "intro", line=1)],
            references=[Reference(SymbolKind.TERM, "BSON", role="term", line=4)],
        )
        doc = ScannedDocument("tutorial/intro", "/docs/tutorial/intro.rst", facts)

        assert doc.declarations[0].document == "tutorial/intro"
        assert doc.references[0].document == "tutorial/intro"
        # Facts themselves stay location-free
        assert facts.declarations[0].document == ""


# =============================================================================
# Symbol Table Tests
# =============================================================================

@pytest.fixture
def table():
    return SymbolTable([
        Declaration(SymbolKind.LABEL, "read-concern", line=1, document="reference/read-concern"),
        Declaration(SymbolKind.TERM, "BSON", line=5, document="glossary"),
        Declaration(SymbolKind.TERM, "bson", line=40, document="reference/glossary"),
        Declaration(SymbolKind.OBJECT, "find", line=3, objtype="dbcommand", document="reference/command/find"),
        Declaration(SymbolKind.OBJECT, "find", line=7, objtype="method", document="reference/method/find"),
        Declaration(SymbolKind.DOCUMENT, "glossary", line=0, document="glossary"),
    ])


class TestSymbolTable:
    """Tests for SymbolTable."""

    def test_lookup(self, table):
        matches = table.lookup(SymbolKey(SymbolKind.LABEL, "", "read-concern"))

        assert [d.document for d in matches] == ["reference/read-concern"]

    def test_lookup_missing(self, table):
        assert table.lookup(SymbolKey(SymbolKind.LABEL, "", "nope")) == []

    def test_duplicates_kept(self, table):
        matches = table.lookup(SymbolKey(SymbolKind.TERM, "", "bson"))

        assert len(matches) == 2

    def test_duplicates(self, table):
        duplicates = list(table.duplicates())

        assert [str(key) for key, _ in duplicates] == ["term:bson"]
        assert [d.line for d in duplicates[0][1]] == [5, 40]

    def test_objects_keyed_by_type(self, table):
        assert SymbolKey(SymbolKind.OBJECT, "dbcommand", "find") in table
        assert SymbolKey(SymbolKind.OBJECT, "method", "find") in table

    def test_lookup_any_searches_all_object_types(self, table):
        matches = table.lookup_any("find")

        assert {d.objtype for d in matches} == {"dbcommand", "method"}

    def test_lookup_any_label_and_document(self, table):
        assert len(table.lookup_any("read-concern")) == 1
        assert len(table.lookup_any("glossary")) == 1

    def test_names(self, table):
        assert table.names(SymbolKind.TERM) == ["bson"]
        assert table.names(SymbolKind.OBJECT, "dbcommand") == ["find"]

    def test_counts(self, table):
        assert table.counts() == {"label": 1, "term": 1, "document": 1, "object": 2}

    def test_to_dict(self, table):
        data = table.to_dict()

        assert list(data) == [
            "document:glossary",
            "label:read-concern",
            "dbcommand:find",
            "method:find",
            "term:bson",
        ]
        assert data["term:bson"][1]["document"] == "reference/glossary"

    def test_len_and_iter(self, table):
        assert len(table) == 5
        assert list(table)[0] == SymbolKey(SymbolKind.DOCUMENT, "", "glossary")


# =============================================================================
# Resolver Tests
# =============================================================================

@pytest.fixture
def corpus_table():
    table = SymbolTable()
    for name in ["index", "reference/crud", "reference/command/find", "reference/command/insert", "tutorial/intro"]:
        table.declare(Declaration(SymbolKind.DOCUMENT, name, line=0, document=name))
    table.declare_all([
        Declaration(SymbolKind.LABEL, "read-concern", line=1, document="reference/crud"),
        Declaration(SymbolKind.TERM, "collection", line=9, document="index"),
        Declaration(SymbolKind.OBJECT, "find", line=3, objtype="dbcommand", document="reference/command/find"),
        Declaration(SymbolKind.OBJECT, "db.collection.find(query)", line=3, objtype="method", document="index"),
        Declaration(SymbolKind.LABEL, "dup", line=1, document="index"),
        Declaration(SymbolKind.LABEL, "dup", line=2, document="tutorial/intro"),
    ])
    return table


@pytest.fixture
def resolver(corpus_table, tmp_path):
    (tmp_path / "includes").mkdir()
    (tmp_path / "includes" / "fact.rst").write_text("Fact.\n")
    documents = [key.name for key in corpus_table if key.kind is SymbolKind.DOCUMENT]
    return Resolver(corpus_table, documents=documents, root=tmp_path)


def ref(kind, target, document="index", **kwargs):
    return Reference(kind, target, role=kwargs.pop("role", "ref"), line=kwargs.pop("line", 1), document=document, **kwargs)


class TestResolver:
    """Tests for Resolver."""

    def test_label_resolves(self, resolver):
        resolution = resolver.resolve(ref(SymbolKind.LABEL, "Read-Concern"))

        assert resolution.ok
        assert resolution.matches[0].document == "reference/crud"

    def test_dangling_with_suggestion(self, resolver):
        resolution = resolver.resolve(ref(SymbolKind.LABEL, "read-concen"))

        assert resolution.status is ResolutionStatus.DANGLING
        assert resolution.suggestions == ["read-concern"]

    def test_ambiguous(self, resolver):
        resolution = resolver.resolve(ref(SymbolKind.LABEL, "dup"))

        assert resolution.status is ResolutionStatus.AMBIGUOUS
        assert {d.document for d in resolution.matches} == {"index", "tutorial/intro"}

    def test_object_requires_matching_type(self, resolver):
        assert resolver.resolve(ref(SymbolKind.OBJECT, "find", objtype="dbcommand")).ok
        assert not resolver.resolve(ref(SymbolKind.OBJECT, "find", objtype="method")).ok

    def test_object_parameters_ignored(self, resolver):
        resolution = resolver.resolve(ref(SymbolKind.OBJECT, "db.collection.find()", objtype="method"))

        assert resolution.ok

    def test_any_role(self, resolver):
        resolution = resolver.resolve(ref(None, "find", role="any"))

        assert resolution.ok
        assert resolution.matches[0].objtype == "dbcommand"

    def test_relative_document(self, resolver):
        reference = ref(SymbolKind.DOCUMENT, "insert", document="reference/command/find", role="doc")

        assert resolver.resolve(reference).ok

    def test_absolute_document_with_suffix(self, resolver):
        reference = ref(SymbolKind.DOCUMENT, "/reference/crud.rst", document="tutorial/intro", role="doc")

        assert resolver.resolve(reference).ok

    def test_parent_relative_document(self, resolver):
        reference = ref(SymbolKind.DOCUMENT, "../crud", document="reference/command/find", role="doc")

        assert resolver.resolve(reference).ok

    def test_document_suggestion(self, resolver):
        reference = ref(SymbolKind.DOCUMENT, "reference/crd", role="doc")

        resolution = resolver.resolve(reference)

        assert resolution.suggestions == ["reference/crud"]

    def test_glob_pattern(self, resolver):
        reference = ref(SymbolKind.DOCUMENT, "reference/command/*", role="toctree", toctree=True, pattern=True)

        resolution = resolver.resolve(reference)

        assert resolution.ok
        assert sorted(d.name for d in resolution.matches) == [
            "reference/command/find",
            "reference/command/insert",
        ]

    def test_glob_star_stays_in_directory(self, resolver):
        reference = ref(SymbolKind.DOCUMENT, "reference/*", role="toctree", toctree=True, pattern=True)

        resolution = resolver.resolve(reference)

        assert [d.name for d in resolution.matches] == ["reference/crud"]

    def test_glob_double_star_crosses_directories(self, resolver):
        reference = ref(SymbolKind.DOCUMENT, "reference/**", role="toctree", toctree=True, pattern=True)

        resolution = resolver.resolve(reference)

        assert sorted(d.name for d in resolution.matches) == [
            "reference/command/find",
            "reference/command/insert",
            "reference/crud",
        ]

    def test_glob_pattern_without_match(self, resolver):
        reference = ref(SymbolKind.DOCUMENT, "faq/*", role="toctree", toctree=True, pattern=True)

        assert resolver.resolve(reference).status is ResolutionStatus.DANGLING

    def test_glob_pattern_excludes_self(self, resolver):
        reference = ref(SymbolKind.DOCUMENT, "ind*", role="toctree", toctree=True, pattern=True)

        assert not resolver.resolve(reference).ok

    def test_file_exists(self, resolver):
        reference = ref(SymbolKind.FILE, "/includes/fact.rst", role="include")

        resolution = resolver.resolve(reference)

        assert resolution.ok
        assert resolution.matches[0].name == "includes/fact.rst"

    def test_file_relative_to_document(self, resolver):
        reference = ref(SymbolKind.FILE, "../includes/fact.rst", document="tutorial/intro", role="include")

        assert resolver.resolve(reference).ok

    def test_file_missing(self, resolver):
        reference = ref(SymbolKind.FILE, "/includes/missing.rst", role="include")

        resolution = resolver.resolve(reference)

        assert resolution.status is ResolutionStatus.DANGLING
        assert resolution.suggestions == []

    def test_file_outside_root(self, resolver):
        reference = ref(SymbolKind.FILE, "../../etc/passwd", role="literalinclude")

        assert not resolver.resolve(reference).ok

    def test_document_name(self, resolver):
        assert resolver.document_name("find", "reference/command/index") == "reference/command/find"
        assert resolver.document_name("/core/crud.rst", "reference/index") == "core/crud"

    def test_resolve_all(self, resolver):
        resolutions = resolver.resolve_all([ref(SymbolKind.LABEL, "read-concern"), ref(SymbolKind.LABEL, "x")])

        assert [r.ok for r in resolutions] == [True, False]
