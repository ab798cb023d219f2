"""
Graph Explorer for rdf-filestore.

Provides:
- Graph list with statistics (as a Polars DataFrame)
- Per-graph statistics
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import polars as pl

from rdf_filestore.graph import Graph
from rdf_filestore.models import IRI, Literal
from rdf_filestore.storage.graph_cache import GraphCache


GRAPH_LIST_SCHEMA = {
    "graph_uri": pl.Utf8,
    "path": pl.Utf8,
    "is_default": pl.Boolean,
    "loaded": pl.Boolean,
    "triple_count": pl.Int64,
    "subject_count": pl.Int64,
    "predicate_count": pl.Int64,
    "object_count": pl.Int64,
    "literal_count": pl.Int64,
}


@dataclass
class GraphStatistics:
    """Statistics for a named graph."""
    triple_count: int = 0
    subject_count: int = 0
    predicate_count: int = 0
    object_count: int = 0
    literal_count: int = 0
    iri_object_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "triple_count": self.triple_count,
            "subject_count": self.subject_count,
            "predicate_count": self.predicate_count,
            "object_count": self.object_count,
            "literal_count": self.literal_count,
            "iri_object_count": self.iri_object_count,
        }

    @classmethod
    def from_graph(cls, graph: Graph) -> "GraphStatistics":
        subjects, predicates, objects = set(), set(), set()
        literal_count = 0
        iri_object_count = 0
        for triple in graph:
            subjects.add(triple.subject)
            predicates.add(triple.predicate)
            objects.add(triple.object)
            if isinstance(triple.object, Literal):
                literal_count += 1
            elif isinstance(triple.object, IRI):
                iri_object_count += 1
        return cls(
            triple_count=len(graph),
            subject_count=len(subjects),
            predicate_count=len(predicates),
            object_count=len(objects),
            literal_count=literal_count,
            iri_object_count=iri_object_count,
        )


class GraphExplorer:
    """
    Read-only views over the graphs registered in a cache.

    Statistics are computed from loaded graphs only; listing never forces a
    graph to load unless asked to.
    """

    def __init__(self, cache: GraphCache, default_graph: Optional[str] = None):
        self.cache = cache
        self.default_graph = default_graph

    def get_statistics(self, graph_uri: str) -> GraphStatistics:
        """Statistics for one graph, loading it if needed."""
        return GraphStatistics.from_graph(self.cache.get(graph_uri))

    def list_graphs(self, load: bool = False) -> pl.DataFrame:
        """
        One row per registered graph, sorted by URI.

        Args:
            load: Load unloaded graphs to fill in their statistics.
                  Otherwise statistics of unloaded graphs are null.
        """
        columns: Dict[str, list] = {name: [] for name in GRAPH_LIST_SCHEMA}
        for record in self.cache.records():
            if load and not record.loaded:
                self.cache.get(record.graph_uri)
            stats = GraphStatistics.from_graph(record.graph) if record.loaded else None

            columns["graph_uri"].append(record.graph_uri)
            columns["path"].append(record.path)
            columns["is_default"].append(record.graph_uri == self.default_graph)
            columns["loaded"].append(record.loaded)
            columns["triple_count"].append(stats.triple_count if stats else None)
            columns["subject_count"].append(stats.subject_count if stats else None)
            columns["predicate_count"].append(stats.predicate_count if stats else None)
            columns["object_count"].append(stats.object_count if stats else None)
            columns["literal_count"].append(stats.literal_count if stats else None)

        return pl.DataFrame(columns, schema=GRAPH_LIST_SCHEMA).sort("graph_uri")
