"""
Tests for the FileTripleStore.
"""

import json
import logging
import shutil
import tempfile
from pathlib import Path

import polars as pl
import pytest

from rdf_filestore import (
    ANY,
    IRI,
    BlankNode,
    FileTripleStore,
    Literal,
    Statement,
    StoreConfig,
    StoreState,
)
from rdf_filestore.errors import (
    ConfigValidationError,
    CorruptMetadataError,
    InvalidPatternError,
    NoGraphResolvedError,
    NotFoundError,
    ParseError,
    StateError,
    StoreIOError,
    UnsupportedFeatureError,
    ValidationError,
)
from rdf_filestore.storage import StoreMapping, encode_mapping


G1 = "http://example.org/g1"
G2 = "http://example.org/g2"
NAME = "<http://xmlns.com/foaf/0.1/name>"
KNOWS = "<http://xmlns.com/foaf/0.1/knows>"
ALICE = "<http://example.org/alice>"
BOB = "<http://example.org/bob>"


def statement(subject=None, predicate=None, obj=None, graph=None):
    return Statement.parse(subject, predicate, obj, graph)


@pytest.fixture
def temp_dir():
    """Create a temporary base directory."""
    path = tempfile.mkdtemp(prefix="rdf_filestore_test_")
    yield Path(path)
    shutil.rmtree(path, ignore_errors=True)


@pytest.fixture
def store(temp_dir):
    """An initialized store with two empty graphs, G1 being the default."""
    (temp_dir / "g1.nt").write_text("", encoding="utf-8")
    (temp_dir / "g2.nt").write_text("", encoding="utf-8")
    store = FileTripleStore(temp_dir)
    store.initialize()
    store.add_graph(G1, "g1.nt")
    store.add_graph(G2, "g2.nt")
    store.set_default_graph(G1)
    return store


def read_metadata(base_dir):
    return json.loads((base_dir / ".store").read_text(encoding="utf-8"))


# ========== Construction Tests ==========

class TestConstruction:
    def test_base_dir_required(self):
        with pytest.raises(ValidationError, match="base_dir"):
            FileTripleStore()

    def test_nothing_read_before_initialize(self, temp_dir):
        store = FileTripleStore(temp_dir / "missing")
        assert store.state is StoreState.UNINITIALIZED
        assert not store.is_initialized

    def test_invalid_config(self, temp_dir):
        with pytest.raises(ConfigValidationError):
            FileTripleStore(config=StoreConfig(base_dir=temp_dir, graph_format="turtle"))

    def test_base_dir_overrides_config(self, temp_dir):
        config = StoreConfig(base_dir=Path("/elsewhere"), default_graph=G1)
        store = FileTripleStore(temp_dir, config=config)
        assert store.base_dir == temp_dir.resolve()
        assert store.config.default_graph == G1


# ========== Lifecycle Tests ==========

class TestLifecycle:
    def test_initialize_creates_metadata(self, temp_dir):
        """First initialize writes an empty .store document."""
        store = FileTripleStore(temp_dir)
        store.initialize()

        assert store.is_initialized
        assert read_metadata(temp_dir) == {"defaultGraph": None, "mapping": {}}

    def test_initialize_is_idempotent(self, temp_dir):
        store = FileTripleStore(temp_dir)
        store.initialize()
        store.add_graph(G1, "g1.nt")
        store.initialize()
        assert store.contains_graph(G1)

    def test_initialize_missing_base_dir(self, temp_dir):
        store = FileTripleStore(temp_dir / "missing")
        with pytest.raises(StoreIOError, match="does not exist"):
            store.initialize()
        assert store.state is StoreState.UNINITIALIZED

    def test_initialize_base_dir_is_a_file(self, temp_dir):
        (temp_dir / "file").write_text("x")
        with pytest.raises(StoreIOError, match="not a directory"):
            FileTripleStore(temp_dir / "file").initialize()

    def test_initialize_loads_existing_metadata(self, temp_dir):
        (temp_dir / ".store").write_text(
            json.dumps({"defaultGraph": G1, "mapping": {G1: "g1.nt", G2: "data/g2.nt"}}),
            encoding="utf-8",
        )
        store = FileTripleStore(temp_dir)
        store.initialize()

        assert store.get_default_graph() == G1
        assert store.get_available_graphs() == [G1, G2]

    def test_initialize_corrupt_metadata(self, temp_dir):
        (temp_dir / ".store").write_text('{"mapping": {}}', encoding="utf-8")
        store = FileTripleStore(temp_dir)
        with pytest.raises(CorruptMetadataError):
            store.initialize()
        assert not store.is_initialized

    def test_initialize_metadata_path_escapes_base_dir(self, temp_dir):
        (temp_dir / ".store").write_text(
            json.dumps({"defaultGraph": None, "mapping": {G1: "../g1.nt"}}),
            encoding="utf-8",
        )
        with pytest.raises(CorruptMetadataError):
            FileTripleStore(temp_dir).initialize()

    def test_metadata_round_trip(self, temp_dir):
        """Loading and closing a store rewrites an identical .store document."""
        document = encode_mapping(StoreMapping(
            default_graph="https://ex/g1",
            entries={"https://ex/g1": "g1.nt"},
        ))
        (temp_dir / ".store").write_text(document, encoding="utf-8")

        store = FileTripleStore(temp_dir)
        store.initialize()
        store.close()

        assert (temp_dir / ".store").read_text(encoding="utf-8") == document

    def test_config_default_graph_applied(self, temp_dir):
        store = FileTripleStore(config=StoreConfig(base_dir=temp_dir, default_graph=G1))
        store.initialize()
        assert store.get_default_graph() == G1
        assert read_metadata(temp_dir)["defaultGraph"] == G1

    def test_operations_require_initialize(self, temp_dir):
        store = FileTripleStore(temp_dir)
        with pytest.raises(StateError, match="Not initialized"):
            store.add_graph(G1, "g1.nt")
        with pytest.raises(StateError):
            store.get_matching_statements([statement()])
        with pytest.raises(StateError):
            store.get_default_graph()

    def test_close_is_terminal(self, store):
        store.close()
        assert store.state is StoreState.CLOSED
        with pytest.raises(StateError, match="closed"):
            store.get_available_graphs()
        with pytest.raises(StateError):
            store.initialize()

    def test_close_twice(self, store):
        store.close()
        store.close()
        assert store.state is StoreState.CLOSED

    def test_close_persists(self, store, temp_dir):
        """Closing writes loaded graphs and the mapping; a new store sees them."""
        store.add_statements([statement(ALICE, NAME, '"Alice"')])
        store.add_statements([statement(ALICE, KNOWS, BOB)], graph_uri=G2)
        store.close()

        assert read_metadata(temp_dir) == {
            "defaultGraph": G1,
            "mapping": {G1: "g1.nt", G2: "g2.nt"},
        }
        assert (temp_dir / "g1.nt").read_text(encoding="utf-8") == (
            '<http://example.org/alice> <http://xmlns.com/foaf/0.1/name> "Alice" .\n'
        )

        reopened = FileTripleStore(temp_dir)
        reopened.initialize()
        assert reopened.get_default_graph() == G1
        assert reopened.has_matching_statement([statement(ALICE, KNOWS, BOB)], graph_uri=G2)
        assert len(reopened.get_matching_statements([statement()])) == 1

    def test_close_write_failure_keeps_store_open(self, store, temp_dir):
        store.add_statements([statement(ALICE, NAME, '"Alice"')])
        (temp_dir / "g1.nt").unlink()
        (temp_dir / "g1.nt").mkdir()
        with pytest.raises(StoreIOError):
            store.close()
        assert store.is_initialized

    def test_flush(self, store, temp_dir):
        store.add_statements([statement(ALICE, NAME, '"Alice"')])
        store.flush()
        assert store.is_initialized
        assert "Alice" in (temp_dir / "g1.nt").read_text(encoding="utf-8")

    def test_unloaded_graphs_are_not_rewritten(self, store, temp_dir):
        (temp_dir / "g2.nt").write_text("# hand written\n", encoding="utf-8")
        store.close()
        assert (temp_dir / "g2.nt").read_text(encoding="utf-8") == "# hand written\n"

    def test_context_manager(self, temp_dir):
        (temp_dir / "g1.nt").write_text("", encoding="utf-8")
        with FileTripleStore(temp_dir) as store:
            assert store.is_initialized
            store.add_graph(G1, "g1.nt")
            store.add_statements([statement(ALICE, NAME, '"Alice"')], graph_uri=G1)
        assert store.state is StoreState.CLOSED
        assert "Alice" in (temp_dir / "g1.nt").read_text(encoding="utf-8")

    def test_context_manager_error_skips_flush(self, temp_dir):
        (temp_dir / "g1.nt").write_text("", encoding="utf-8")
        with pytest.raises(RuntimeError):
            with FileTripleStore(temp_dir) as store:
                store.add_graph(G1, "g1.nt")
                store.add_statements([statement(ALICE, NAME, '"Alice"')], graph_uri=G1)
                raise RuntimeError("boom")
        assert store.is_initialized
        assert (temp_dir / "g1.nt").read_text(encoding="utf-8") == ""

    def test_lifecycle_is_logged(self, temp_dir, caplog):
        with caplog.at_level(logging.INFO, logger="rdf_filestore.store"):
            store = FileTripleStore(temp_dir)
            store.initialize()
            store.close()
        assert "Using base dir" in caplog.text
        assert "Initializing base dir for the first time" in caplog.text
        assert "Initialized" in caplog.text
        assert "Closed" in caplog.text


# ========== Graph Management Tests ==========

class TestGraphManagement:
    def test_add_and_remove_graph(self, store):
        store.add_graph("http://example.org/g3", "g3.nt")
        assert store.contains_graph("http://example.org/g3")
        store.remove_graph("http://example.org/g3")
        assert not store.contains_graph("http://example.org/g3")

    def test_remove_unknown_graph_is_noop(self, store):
        store.remove_graph("http://example.org/unknown")
        assert store.get_available_graphs() == [G1, G2]

    def test_remove_graph_keeps_file(self, store, temp_dir):
        store.remove_graph(G2)
        assert (temp_dir / "g2.nt").exists()

    def test_add_graph_invalid_uri(self, store):
        with pytest.raises(ValidationError):
            store.add_graph("not a uri", "x.nt")

    def test_add_graph_path_outside_base_dir(self, store):
        with pytest.raises(ValidationError):
            store.add_graph("http://example.org/g3", "../g3.nt")

    def test_clear_graphs(self, store):
        store.clear_graphs()
        assert store.get_available_graphs() == []

    def test_set_default_graph_invalid(self, store):
        with pytest.raises(ValidationError):
            store.set_default_graph("nope")

    def test_get_graph(self, store):
        store.add_statements([statement(ALICE, NAME, '"Alice"')])
        assert len(store.get_graph()) == 1
        assert len(store.get_graph(G2)) == 0

    def test_get_graph_without_default(self, temp_dir):
        store = FileTripleStore(temp_dir)
        store.initialize()
        with pytest.raises(NoGraphResolvedError):
            store.get_graph()

    def test_store_mapping(self, store):
        mapping = store.get_store_mapping()
        assert mapping.default_graph == G1
        assert mapping.entries == {G1: "g1.nt", G2: "g2.nt"}


# ========== Statement Tests ==========

class TestAddStatements:
    def test_add_to_default_graph(self, store):
        store.add_statements([statement(ALICE, NAME, '"Alice"')])
        assert store.has_matching_statement([statement(ALICE, NAME, '"Alice"')])
        assert not store.has_matching_statement([statement(ALICE, NAME, '"Alice"')], graph_uri=G2)

    def test_add_is_idempotent(self, store):
        s = statement(ALICE, NAME, '"Alice"')
        store.add_statements([s])
        store.add_statements([s, s])
        assert len(store.get_graph(G1)) == 1

    def test_graph_uri_overrides_default(self, store):
        store.add_statements([statement(ALICE, NAME, '"Alice"')], graph_uri=G2)
        assert len(store.get_graph(G1)) == 0
        assert len(store.get_graph(G2)) == 1

    def test_statement_graph_overrides_graph_uri(self, store):
        store.add_statements([statement(ALICE, NAME, '"Alice"', graph=G1)], graph_uri=G2)
        assert len(store.get_graph(G1)) == 1
        assert len(store.get_graph(G2)) == 0

    def test_resolution_precedence(self, store, temp_dir):
        """Statement graph, then graph_uri, then the default graph."""
        g3 = "http://example.org/g3"
        (temp_dir / "g3.nt").write_text("", encoding="utf-8")
        store.add_graph(g3, "g3.nt")
        store.set_default_graph(g3)

        store.add_statements([statement(ALICE, NAME, '"one"', graph=G1)], graph_uri=G2)
        store.add_statements([statement(ALICE, NAME, '"two"')], graph_uri=G2)
        store.add_statements([statement(ALICE, NAME, '"three"')])

        def values(graph_uri):
            return {t.object.value for t in store.get_graph(graph_uri)}

        assert values(G1) == {"one"}
        assert values(G2) == {"two"}
        assert values(g3) == {"three"}

    def test_no_graph_resolved(self, temp_dir):
        store = FileTripleStore(temp_dir)
        store.initialize()
        with pytest.raises(NoGraphResolvedError):
            store.add_statements([statement(ALICE, NAME, '"Alice"')])

    def test_unregistered_graph(self, store):
        with pytest.raises(NotFoundError, match="Graph does not exist"):
            store.add_statements([statement(ALICE, NAME, '"Alice"')], graph_uri="http://example.org/nope")

    def test_missing_graph_file(self, store):
        store.add_graph("http://example.org/g3", "g3.nt")
        with pytest.raises(StoreIOError):
            store.add_statements([statement(ALICE, NAME, '"Alice"')], graph_uri="http://example.org/g3")

    def test_wildcard_rejected(self, store):
        with pytest.raises(InvalidPatternError):
            store.add_statements([statement(ALICE, NAME, None)])

    def test_blank_node_rejected(self, store):
        blank = Statement(BlankNode("b0"), IRI("http://xmlns.com/foaf/0.1/name"), Literal("x"))
        with pytest.raises(UnsupportedFeatureError):
            store.add_statements([blank])

    def test_not_atomic(self, store):
        """Statements before a failing one stay applied."""
        with pytest.raises(InvalidPatternError):
            store.add_statements([
                statement(ALICE, NAME, '"Alice"'),
                statement(BOB, NAME, None),
                statement(BOB, NAME, '"Bob"'),
            ])
        assert len(store.get_graph(G1)) == 1

    @pytest.mark.parametrize("statements", [None, [], ()])
    def test_empty_statements_rejected(self, store, statements):
        with pytest.raises(ValidationError):
            store.add_statements(statements)

    def test_single_statement_not_a_collection(self, store):
        with pytest.raises(ValidationError):
            store.add_statements(statement(ALICE, NAME, '"Alice"'))

    def test_non_statement_rejected(self, store):
        with pytest.raises(ValidationError):
            store.add_statements([(ALICE, NAME, '"Alice"')])

    def test_invalid_graph_uri(self, store):
        with pytest.raises(ValidationError):
            store.add_statements([statement(ALICE, NAME, '"Alice"')], graph_uri="g1")

    def test_options_rejected(self, store):
        with pytest.raises(ValidationError, match="Unknown options"):
            store.add_statements([statement(ALICE, NAME, '"Alice"')], options={"limit": 1})

    def test_add_statement(self, store):
        store.add_statement(statement(ALICE, NAME, '"Alice"'), G2)
        assert len(store.get_graph(G2)) == 1


class TestMatchStatements:
    @pytest.fixture
    def populated(self, store):
        store.add_statements([
            statement(ALICE, NAME, '"Alice"'),
            statement(ALICE, KNOWS, BOB),
            statement(BOB, NAME, '"Bob"@en'),
            statement(BOB, "<http://example.org/age>", '"42"^^<http://www.w3.org/2001/XMLSchema#integer>'),
        ])
        store.add_statements([statement(BOB, KNOWS, ALICE)], graph_uri=G2)
        return store

    def test_wildcard_projection(self, populated):
        results = populated.get_matching_statements([statement(None, NAME, None)])
        assert results == {
            statement(ALICE, NAME, '"Alice"', graph=G1),
            statement(BOB, NAME, '"Bob"@en', graph=G1),
        }

    def test_results_are_concrete_and_carry_graph(self, populated):
        for result in populated.get_matching_statements([statement()]):
            assert result.is_concrete
            assert result.graph == G1

    def test_match_all(self, populated):
        assert len(populated.get_matching_statements([statement()])) == 4

    def test_match_other_graph(self, populated):
        results = populated.get_matching_statements([statement()], graph_uri=G2)
        assert results == {statement(BOB, KNOWS, ALICE, graph=G2)}

    def test_union_across_patterns_and_graphs(self, populated):
        results = populated.get_matching_statements([
            statement(None, KNOWS, None),
            statement(None, KNOWS, None, graph=G2),
            statement(None, KNOWS, None),
        ])
        assert len(results) == 2
        assert {r.graph for r in results} == {G1, G2}

    def test_literal_matches_by_value(self, populated):
        assert populated.has_matching_statement([statement(None, None, '"Bob"@en')])
        assert not populated.has_matching_statement([statement(None, None, '"Bob"')])
        assert populated.has_matching_statement(
            [statement(None, None, '"42"^^<http://www.w3.org/2001/XMLSchema#integer>')]
        )

    def test_no_match(self, populated):
        assert populated.get_matching_statements([statement(BOB, KNOWS, BOB)]) == set()
        assert not populated.has_matching_statement([statement(BOB, KNOWS, BOB)])

    def test_limit(self, populated):
        assert len(populated.get_matching_statements([statement()], options={"limit": 2})) == 2
        assert populated.get_matching_statements([statement()], options={"limit": 0}) == set()

    @pytest.mark.parametrize("limit", [-1, "2", 1.5, True])
    def test_invalid_limit(self, populated, limit):
        with pytest.raises(ValidationError):
            populated.get_matching_statements([statement()], options={"limit": limit})

    def test_unknown_option(self, populated):
        with pytest.raises(ValidationError):
            populated.get_matching_statements([statement()], options={"offset": 1})

    def test_blank_node_pattern_rejected(self, populated):
        with pytest.raises(UnsupportedFeatureError):
            populated.get_matching_statements([Statement(BlankNode("b"), ANY, ANY)])

    def test_unregistered_graph(self, populated):
        with pytest.raises(NotFoundError):
            populated.has_matching_statement([statement(graph="http://example.org/nope")])


class TestDeleteStatements:
    @pytest.fixture
    def populated(self, store):
        store.add_statements([
            statement(ALICE, NAME, '"Alice"'),
            statement(ALICE, KNOWS, BOB),
            statement(BOB, NAME, '"Bob"'),
        ])
        return store

    def test_delete_concrete(self, populated):
        assert populated.delete_statements([statement(ALICE, KNOWS, BOB)]) == 1
        assert not populated.has_matching_statement([statement(ALICE, KNOWS, BOB)])
        assert len(populated.get_graph()) == 2

    def test_delete_absent_is_noop(self, populated):
        assert populated.delete_statements([statement(BOB, KNOWS, ALICE)]) == 0
        assert len(populated.get_graph()) == 3

    def test_delete_pattern(self, populated):
        assert populated.delete_statements([statement(None, NAME, None)]) == 2
        assert populated.get_matching_statements([statement()]) == {
            statement(ALICE, KNOWS, BOB, graph=G1),
        }

    def test_delete_everything(self, populated):
        assert populated.delete_statement(statement()) == 3
        assert len(populated.get_graph()) == 0

    def test_delete_only_touches_resolved_graph(self, populated):
        populated.add_statements([statement(ALICE, NAME, '"Alice"')], graph_uri=G2)
        populated.delete_statements([statement(None, NAME, None)], graph_uri=G2)
        assert len(populated.get_graph(G1)) == 3
        assert len(populated.get_graph(G2)) == 0

    def test_delete_persists(self, populated, temp_dir):
        populated.delete_statements([statement(ALICE, None, None)])
        populated.close()
        assert (temp_dir / "g1.nt").read_text(encoding="utf-8") == (
            '<http://example.org/bob> <http://xmlns.com/foaf/0.1/name> "Bob" .\n'
        )


# ========== Corrupt Graph File Tests ==========

class TestCorruptGraphFiles:
    def test_malformed_graph_file(self, temp_dir):
        (temp_dir / "bad.nt").write_text(
            '<http://example.org/s> <http://example.org/p> "a"b" .\n', encoding="utf-8"
        )
        store = FileTripleStore(temp_dir)
        store.initialize()
        store.add_graph(G1, "bad.nt")
        with pytest.raises(ParseError) as exc_info:
            store.get_matching_statements([statement()], graph_uri=G1)
        assert exc_info.value.line_number == 1


# ========== Store Information Tests ==========

class TestStoreInformation:
    def test_information(self, store, temp_dir):
        store.add_statements([statement(ALICE, NAME, '"Alice"')])
        info = store.get_store_information()
        assert info["base_dir"] == str(temp_dir.resolve())
        assert info["metadata_file"] == ".store"
        assert info["default_graph"] == G1
        assert info["graph_count"] == 2
        assert info["loaded_graph_count"] == 1
        assert info["loaded_triple_count"] == 1

    def test_list_graphs(self, store):
        store.add_statements([statement(ALICE, NAME, '"Alice"')])
        df = store.list_graphs()
        assert isinstance(df, pl.DataFrame)
        assert df["graph_uri"].to_list() == [G1, G2]
        assert df["is_default"].to_list() == [True, False]
        assert df["loaded"].to_list() == [True, False]
        assert df["triple_count"].to_list() == [1, None]

    def test_list_graphs_load(self, store):
        df = store.list_graphs(load=True)
        assert df["loaded"].to_list() == [True, True]
        assert df["triple_count"].to_list() == [0, 0]

    def test_graph_statistics(self, store):
        store.add_statements([
            statement(ALICE, NAME, '"Alice"'),
            statement(ALICE, KNOWS, BOB),
        ])
        stats = store.get_graph_statistics()
        assert stats.triple_count == 2
        assert stats.subject_count == 1
        assert stats.predicate_count == 2
        assert stats.literal_count == 1
        assert stats.iri_object_count == 1

    def test_repr(self, store):
        assert "initialized" in repr(store)


# ========== Persistence Edge Case Tests ==========

class TestPersistenceEdgeCases:
    @pytest.mark.parametrize("separator", ["\u2028", "\u2029", "\x85"])
    def test_unicode_line_separator_survives_reload(self, store, temp_dir, separator):
        """A literal holding a Unicode line separator is written on one line and reloads."""
        stored = Statement(
            IRI("http://example.org/alice"),
            IRI("http://xmlns.com/foaf/0.1/name"),
            Literal(f"a{separator}b"),
        )
        store.add_statements([stored])
        store.close()

        assert len((temp_dir / "g1.nt").read_text(encoding="utf-8").split("\n")) == 2

        reopened = FileTripleStore(temp_dir)
        reopened.initialize()
        assert reopened.get_matching_statements([statement(ALICE, None, None)]) == {
            stored.with_graph(G1),
        }

    def test_failed_save_keeps_previous_file(self, temp_dir):
        """An encoding failure on close leaves the graph file as it was."""
        original = '<http://example.org/s> <http://example.org/p> "keep" .\n'
        (temp_dir / "g1.nt").write_text(original, encoding="ascii")
        store = FileTripleStore(config=StoreConfig(base_dir=temp_dir, encoding="ascii"))
        store.initialize()
        store.add_graph(G1, "g1.nt")
        store.add_statements([statement(ALICE, NAME, '"café"')], graph_uri=G1)

        with pytest.raises(StoreIOError, match="encode"):
            store.close()

        assert store.is_initialized
        assert (temp_dir / "g1.nt").read_text(encoding="ascii") == original
