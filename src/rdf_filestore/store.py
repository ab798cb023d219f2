"""
File-backed triple store.

Named graphs live in N-Triples files below a base directory. The `.store`
metadata document maps graph URIs to those files and names the default
graph. Graphs are parsed on first use, mutated in memory and written back
when the store is flushed or closed.

Lifecycle:
    UNINITIALIZED --initialize()--> INITIALIZED --close()--> CLOSED

Every operation other than initialize() requires an initialized store;
a closed store rejects all further operations.

Graph resolution, for each statement:
    statement.graph  ->  graph_uri argument  ->  default graph

Multi-statement operations are not atomic: statements are applied in order
and processing stops at the first error, leaving earlier ones applied.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Union
import logging

import polars as pl

from rdf_filestore.config import StoreConfig
from rdf_filestore.errors import (
    CorruptMetadataError,
    InvalidPatternError,
    NoGraphResolvedError,
    NotFoundError,
    StateError,
    StoreIOError,
    UnsupportedFeatureError,
    ValidationError,
)
from rdf_filestore.formats import GraphCodec, get_codec
from rdf_filestore.graph import Graph
from rdf_filestore.models import Statement
from rdf_filestore.storage.filesystem import LocalFileSystem
from rdf_filestore.storage.graph_cache import GraphCache
from rdf_filestore.storage.graph_explorer import GraphExplorer, GraphStatistics
from rdf_filestore.storage.metadata import MetadataFile, StoreMapping
from rdf_filestore.uri import check_uri

logger = logging.getLogger(__name__)


class StoreState(Enum):
    """Lifecycle state of a FileTripleStore."""
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    CLOSED = "closed"


MATCH_OPTIONS = {"limit"}


class FileTripleStore:
    """
    A triple store persisting named graphs as N-Triples files.

    Usage:
        store = FileTripleStore("./data")
        store.initialize()
        store.add_graph("http://example.org/people", "people.nt")
        store.set_default_graph("http://example.org/people")

        store.add_statements([
            Statement.parse("<http://example.org/alice>",
                            "<http://xmlns.com/foaf/0.1/name>",
                            '"Alice"'),
        ])
        names = store.get_matching_statements([
            Statement.parse(None, "<http://xmlns.com/foaf/0.1/name>", None),
        ])
        store.close()   # writes people.nt and .store
    """

    def __init__(
        self,
        base_dir: Optional[Union[str, Path]] = None,
        config: Optional[StoreConfig] = None,
        codec: Optional[GraphCodec] = None,
    ):
        """
        Create a store over a base directory. Nothing is read until initialize().

        Args:
            base_dir: Directory holding `.store` and the graph files
            config: Full configuration; base_dir, when also given, overrides
                config.base_dir
            codec: Graph file codec; defaults to the one named by
                config.graph_format
        """
        if config is None:
            if base_dir is None:
                raise ValidationError("base_dir is None")
            config = StoreConfig(base_dir=Path(base_dir))
        elif base_dir is not None:
            config = StoreConfig.from_dict({**config.to_dict(), "base_dir": str(base_dir)})
        config.validate_or_raise()

        self.config = config
        self._filesystem = LocalFileSystem(config.base_dir, encoding=config.encoding)
        self._cache = GraphCache(self._filesystem, codec or get_codec(config.graph_format))
        self._metadata = MetadataFile(self._filesystem, config.metadata_file)
        self._default_graph: Optional[str] = None
        self._state = StoreState.UNINITIALIZED

        logger.info(f"Using base dir: {self.base_dir}")

    @property
    def base_dir(self) -> Path:
        return self._filesystem.base_dir

    @property
    def state(self) -> StoreState:
        return self._state

    @property
    def is_initialized(self) -> bool:
        return self._state is StoreState.INITIALIZED

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def initialize(self) -> None:
        """
        Load the store metadata, creating it on first use.

        Calling initialize() on an initialized store does nothing.

        Raises:
            StateError: the store was closed
            StoreIOError: the base directory is missing or unreadable
            CorruptMetadataError: the metadata document is malformed
        """
        if self._state is StoreState.INITIALIZED:
            return
        if self._state is StoreState.CLOSED:
            raise StateError("Store is closed")

        self._ensure_base_dir_is_readable()
        if self._metadata.exists():
            self._load_store_info()
        else:
            logger.info(
                f"No {self._metadata.name} file was found. "
                "Initializing base dir for the first time"
            )
            self._default_graph = self.config.default_graph
            self._save_store_info()

        if self._default_graph is None and self.config.default_graph is not None:
            self._default_graph = self.config.default_graph

        self._state = StoreState.INITIALIZED
        logger.info("Initialized")

    def flush(self) -> None:
        """Write every loaded graph and the metadata document."""
        self._ensure_initialized()
        for graph_uri in self._cache.graph_uris():
            self._cache.save(graph_uri)
        self._save_store_info()

    def close(self) -> None:
        """
        Flush all loaded graphs and the metadata document, then close.

        Closing a closed store does nothing. If writing fails the error
        propagates and the store stays open.
        """
        if self._state is StoreState.CLOSED:
            return
        self.flush()
        self._state = StoreState.CLOSED
        logger.info("Closed")

    def __enter__(self) -> "FileTripleStore":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        # Only persist when the block completed
        if exc_type is None:
            self.close()
        return False

    def _ensure_initialized(self) -> None:
        if self._state is StoreState.UNINITIALIZED:
            raise StateError("Not initialized")
        if self._state is StoreState.CLOSED:
            raise StateError("Store is closed")

    def _ensure_base_dir_is_readable(self) -> None:
        if not self._filesystem.exists():
            raise StoreIOError(f"Base dir does not exist: {self.base_dir}")
        if not self._filesystem.is_dir():
            raise StoreIOError(f"Base dir is not a directory: {self.base_dir}")
        if not self._filesystem.is_readable():
            raise StoreIOError(f"Base dir is not readable: {self.base_dir}")

    def _load_store_info(self) -> None:
        mapping = self._metadata.load()
        for graph_uri, path in mapping.entries.items():
            try:
                self._filesystem.resolve(path)
            except ValidationError as e:
                raise CorruptMetadataError(f"Invalid path for graph {graph_uri}: {e}") from e

        # Document fully validated, replace the in-memory state
        self._cache.clear_all()
        for graph_uri, path in mapping.entries.items():
            self._cache.register(graph_uri, path)
        self._default_graph = mapping.default_graph

    def _save_store_info(self) -> None:
        self._metadata.save(self.get_store_mapping())

    def get_store_mapping(self) -> StoreMapping:
        """The current default graph and graph -> file entries."""
        return StoreMapping(default_graph=self._default_graph, entries=self._cache.entries())

    # =========================================================================
    # Graph management
    # =========================================================================

    def add_graph(self, graph_uri: str, relative_path: str) -> None:
        """
        Register a graph backed by an N-Triples file relative to the base dir.

        Re-registering a URI replaces its path and drops its cached content.
        The file does not need to exist until the graph is first used.
        """
        self._ensure_initialized()
        self._cache.register(graph_uri, relative_path)
        logger.debug(f"Added graph {graph_uri} -> {relative_path}")

    def remove_graph(self, graph_uri: str) -> None:
        """Unregister a graph. Its file is left untouched."""
        self._ensure_initialized()
        self._cache.unregister(graph_uri)

    def contains_graph(self, graph_uri: str) -> bool:
        self._ensure_initialized()
        return self._cache.contains(graph_uri)

    def get_available_graphs(self) -> List[str]:
        self._ensure_initialized()
        return self._cache.graph_uris()

    def clear_graphs(self) -> None:
        """Unregister all graphs."""
        self._ensure_initialized()
        self._cache.clear_all()

    def get_graph(self, graph_uri: Optional[str] = None) -> Graph:
        """Return a graph (the default graph if no URI is given), loading it if needed."""
        self._ensure_initialized()
        if graph_uri is None:
            graph_uri = self._default_graph
            if graph_uri is None:
                raise NoGraphResolvedError(
                    "Neither an explicit graph URI was given nor a default graph URI was set"
                )
        return self._cache.get(graph_uri)

    def set_default_graph(self, graph_uri: str) -> None:
        self._ensure_initialized()
        self._default_graph = check_uri(graph_uri, "Default graph URI")

    def get_default_graph(self) -> Optional[str]:
        self._ensure_initialized()
        return self._default_graph

    # =========================================================================
    # Statements
    # =========================================================================

    def add_statements(
        self,
        statements: Iterable[Statement],
        graph_uri: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Add concrete statements, each to its resolved graph.

        Args:
            statements: Statements without wildcards or blank nodes
            graph_uri: Graph for statements that do not name one
            options: No options are currently recognised

        Raises:
            NoGraphResolvedError: no graph could be determined for a statement
            NotFoundError: the resolved graph is not registered
            UnsupportedFeatureError: a statement contains a blank node
            InvalidPatternError: a statement contains a wildcard
        """
        self._ensure_initialized()
        statements = self._check_statements(statements)
        self._check_graph_uri(graph_uri)
        self._check_options(options, set())

        for statement in statements:
            target = self._resolve_graph(statement, graph_uri)
            self._reject_blank_nodes(statement)
            if not statement.is_concrete:
                raise InvalidPatternError(f"Statement is not concrete: {statement}")
            self._cache.get(target).add(statement.to_triple())

        logger.debug(f"Added {len(statements)} statements")

    def add_statement(self, statement: Statement, graph_uri: Optional[str] = None) -> None:
        self.add_statements([statement], graph_uri)

    def delete_statements(
        self,
        statements: Iterable[Statement],
        graph_uri: Optional[str] = None,
    ) -> int:
        """
        Delete statements or every triple matching a pattern.

        A concrete statement removes that exact triple if present. A statement
        with wildcards removes all triples of its graph that match it.

        Returns:
            Number of triples removed
        """
        self._ensure_initialized()
        statements = self._check_statements(statements)
        self._check_graph_uri(graph_uri)

        removed = 0
        for statement in statements:
            target = self._resolve_graph(statement, graph_uri)
            self._reject_blank_nodes(statement)
            graph = self._cache.get(target)
            if statement.is_concrete:
                removed += graph.discard(statement.to_triple())
                continue
            matches = list(graph.match(statement.subject, statement.predicate, statement.object))
            for triple in matches:
                removed += graph.discard(triple)

        logger.debug(f"Deleted {removed} triples")
        return removed

    def delete_statement(self, statement: Statement, graph_uri: Optional[str] = None) -> int:
        return self.delete_statements([statement], graph_uri)

    def get_matching_statements(
        self,
        statements: Iterable[Statement],
        graph_uri: Optional[str] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Set[Statement]:
        """
        Find all triples matching any of the given patterns.

        Each result is a concrete statement carrying the URI of the graph it
        was found in. Results from all patterns and graphs are merged without
        duplicates; their order is unspecified.

        Args:
            statements: Patterns; ANY components match every term
            graph_uri: Graph for patterns that do not name one
            options: {"limit": n} caps the number of results
        """
        self._ensure_initialized()
        statements = self._check_statements(statements)
        self._check_graph_uri(graph_uri)
        options = self._check_options(options, MATCH_OPTIONS)
        limit = self._check_limit(options.get("limit"))

        results: Set[Statement] = set()
        for statement in statements:
            target = self._resolve_graph(statement, graph_uri)
            self._reject_blank_nodes(statement)
            graph = self._cache.get(target)
            for triple in graph.match(statement.subject, statement.predicate, statement.object):
                if limit is not None and len(results) >= limit:
                    return results
                results.add(Statement.from_triple(triple, target))
        return results

    def has_matching_statement(
        self,
        statements: Iterable[Statement],
        graph_uri: Optional[str] = None,
    ) -> bool:
        """True iff get_matching_statements() would return anything."""
        self._ensure_initialized()
        statements = self._check_statements(statements)
        self._check_graph_uri(graph_uri)

        for statement in statements:
            target = self._resolve_graph(statement, graph_uri)
            self._reject_blank_nodes(statement)
            graph = self._cache.get(target)
            if graph.has_match(statement.subject, statement.predicate, statement.object):
                return True
        return False

    def _resolve_graph(self, statement: Statement, graph_uri: Optional[str]) -> str:
        # Statement graph (quads), then the call's graph, then the default graph
        target = statement.graph or graph_uri or self._default_graph
        if target is None:
            raise NoGraphResolvedError(
                f"Neither the statement, the call nor the store names a graph: {statement}"
            )
        if not self._cache.contains(target):
            raise NotFoundError(f"Graph does not exist: {target}")
        return target

    @staticmethod
    def _reject_blank_nodes(statement: Statement) -> None:
        if statement.has_blank_node:
            raise UnsupportedFeatureError(f"No support for blank nodes: {statement}")

    @staticmethod
    def _check_statements(statements: Iterable[Statement]) -> List[Statement]:
        if statements is None:
            raise ValidationError("statements is None")
        if isinstance(statements, Statement):
            raise ValidationError("statements must be a collection of Statement, not a single Statement")
        statements = list(statements)
        if not statements:
            raise ValidationError("statements is empty")
        for statement in statements:
            if not isinstance(statement, Statement):
                raise ValidationError(f"Expected a Statement, got {type(statement).__name__}")
        return statements

    @staticmethod
    def _check_graph_uri(graph_uri: Optional[str]) -> None:
        if graph_uri is not None:
            check_uri(graph_uri, "graph_uri")

    @staticmethod
    def _check_options(options: Optional[Dict[str, Any]], allowed: Set[str]) -> Dict[str, Any]:
        if options is None:
            return {}
        if not isinstance(options, dict):
            raise ValidationError(f"options must be a dict, got {type(options).__name__}")
        unknown = set(options) - allowed
        if unknown:
            raise ValidationError(f"Unknown options: {sorted(unknown)}")
        return options

    @staticmethod
    def _check_limit(limit: Any) -> Optional[int]:
        if limit is None:
            return None
        if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
            raise ValidationError(f"limit must be a non-negative integer, got {limit!r}")
        return limit

    # =========================================================================
    # Store information
    # =========================================================================

    def get_store_information(self) -> Dict[str, Any]:
        """Summary of the store: base dir, default graph and cache usage."""
        self._ensure_initialized()
        loaded = [record.graph for record in self._cache.records() if record.loaded]
        return {
            "base_dir": str(self.base_dir),
            "metadata_file": self._metadata.name,
            "graph_format": self.config.graph_format,
            "default_graph": self._default_graph,
            "graph_count": len(self._cache),
            "loaded_graph_count": len(loaded),
            "loaded_triple_count": sum(len(graph) for graph in loaded),
        }

    def list_graphs(self, load: bool = False) -> pl.DataFrame:
        """
        Registered graphs as a DataFrame (one row per graph).

        Args:
            load: Load every graph so that all statistics are filled in
        """
        self._ensure_initialized()
        return GraphExplorer(self._cache, self._default_graph).list_graphs(load=load)

    def get_graph_statistics(self, graph_uri: Optional[str] = None) -> GraphStatistics:
        graph = self.get_graph(graph_uri)
        return GraphStatistics.from_graph(graph)

    def __repr__(self) -> str:
        return f"FileTripleStore(base_dir={str(self.base_dir)!r}, state={self._state.value})"
