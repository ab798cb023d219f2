"""
Graph cache: registered graphs and their lazily loaded content.

Each registered graph URI has a GraphRecord holding the relative path of its
backing file and, once accessed, the parsed Graph. Graphs are loaded on first
access through the codec and stay cached until the record is removed,
re-registered or the whole cache is cleared. There is no eviction policy.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional
import logging

from rdf_filestore.errors import (
    NotFoundError, ParseError, StoreIOError, UnsupportedFeatureError, ValidationError,
)
from rdf_filestore.formats import GraphCodec, NTriplesCodec
from rdf_filestore.graph import Graph
from rdf_filestore.storage.filesystem import LocalFileSystem
from rdf_filestore.uri import check_uri

logger = logging.getLogger(__name__)


@dataclass
class GraphRecord:
    """A registered graph: its URI, backing file and cached content."""
    graph_uri: str
    path: str
    graph: Optional[Graph] = None

    @property
    def loaded(self) -> bool:
        return self.graph is not None


class GraphCache:
    """
    Read-through cache of named graphs backed by files.

    Usage:
        cache = GraphCache(LocalFileSystem("./data"))
        cache.register("http://example.org/people", "people.nt")
        graph = cache.get("http://example.org/people")   # parsed on first access
        cache.save("http://example.org/people")
    """

    def __init__(self, filesystem: LocalFileSystem, codec: Optional[GraphCodec] = None):
        self.filesystem = filesystem
        self.codec = codec or NTriplesCodec()
        self._records: Dict[str, GraphRecord] = {}

    def register(self, graph_uri: str, path: str) -> GraphRecord:
        """
        Register (or re-register) a graph with a relative file path.

        Any previously cached content for the URI is dropped.
        """
        check_uri(graph_uri, "Graph URI")
        if not isinstance(path, str) or not path:
            raise ValidationError(f"Path for graph {graph_uri} must be a non-empty string")
        self.filesystem.resolve(path)
        record = GraphRecord(graph_uri=graph_uri, path=path)
        self._records[graph_uri] = record
        return record

    def unregister(self, graph_uri: str) -> bool:
        """Remove a graph and its cached content. Returns True if it was registered."""
        check_uri(graph_uri, "Graph URI")
        return self._records.pop(graph_uri, None) is not None

    def contains(self, graph_uri: str) -> bool:
        check_uri(graph_uri, "Graph URI")
        return graph_uri in self._records

    def is_loaded(self, graph_uri: str) -> bool:
        record = self._records.get(graph_uri)
        return record is not None and record.loaded

    def record(self, graph_uri: str) -> GraphRecord:
        check_uri(graph_uri, "Graph URI")
        try:
            return self._records[graph_uri]
        except KeyError:
            raise NotFoundError(f"Graph does not exist: {graph_uri}") from None

    def get(self, graph_uri: str) -> Graph:
        """
        Return the graph, loading it from its file on first access.

        Raises:
            NotFoundError: the URI is not registered
            StoreIOError: the backing file is missing or unreadable
            ParseError: the backing file is malformed
        """
        record = self.record(graph_uri)
        if record.graph is None:
            record.graph = self._load(record)
        return record.graph

    def _load(self, record: GraphRecord) -> Graph:
        absolute_path = self.filesystem.resolve(record.path)
        if not self.filesystem.is_file(record.path):
            raise StoreIOError(f"Not a file: {absolute_path}")
        if not self.filesystem.is_readable(record.path):
            raise StoreIOError(f"Not readable: {absolute_path}")

        text = self.filesystem.read_text(record.path)
        try:
            graph, count = self.codec.parse(text, record.graph_uri)
        except (ParseError, UnsupportedFeatureError) as e:
            logger.error(f"Unable to load graph {absolute_path}: {e}")
            raise
        logger.info(f"Graph successfully loaded: {absolute_path} ({count} triples)")
        return graph

    def save(self, graph_uri: str) -> bool:
        """
        Write a loaded graph back to its file.

        Returns False without touching the file if the graph was never loaded.
        """
        record = self.record(graph_uri)
        if record.graph is None:
            return False
        self.filesystem.write_text(record.path, self.codec.serialize(record.graph))
        logger.info(f"Saved graph {graph_uri} ({len(record.graph)} triples)")
        return True

    def clear_all(self) -> None:
        """Drop every record and cached graph."""
        self._records.clear()

    def graph_uris(self) -> List[str]:
        return list(self._records)

    def records(self) -> Iterator[GraphRecord]:
        return iter(list(self._records.values()))

    def entries(self) -> Dict[str, str]:
        """Graph URI -> relative path, in registration order."""
        return {uri: record.path for uri, record in self._records.items()}

    def __len__(self) -> int:
        return len(self._records)
