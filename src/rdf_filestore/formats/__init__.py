"""
Graph file formats.

A codec turns the text of one graph file into a Graph and back:

    parse(text, graph_uri=None) -> (Graph, triple_count)
    serialize(graph) -> text

Supports:
- N-Triples (.nt)
"""

from typing import Dict, Optional, Protocol, Tuple, Type, runtime_checkable

from rdf_filestore.errors import ValidationError
from rdf_filestore.graph import Graph
from rdf_filestore.formats.ntriples import (
    NTriplesCodec,
    NTriplesParser,
    NTriplesSerializer,
    parse_ntriples,
    serialize_ntriples,
)


@runtime_checkable
class GraphCodec(Protocol):
    """Parse/serialize collaborator used by the graph cache."""

    def parse(self, text: str, graph_uri: Optional[str] = None) -> Tuple[Graph, int]:
        ...

    def serialize(self, graph: Graph) -> str:
        ...


CODECS: Dict[str, Type] = {
    "ntriples": NTriplesCodec,
    "nt": NTriplesCodec,
}


def get_codec(name: str) -> GraphCodec:
    """Return a new codec instance for a format name."""
    try:
        return CODECS[name.lower()]()
    except (KeyError, AttributeError):
        raise ValidationError(
            f"Unknown graph format '{name}'. Valid options: {sorted(CODECS)}"
        ) from None


__all__ = [
    "GraphCodec",
    "CODECS",
    "get_codec",
    "NTriplesCodec",
    "NTriplesParser",
    "NTriplesSerializer",
    "parse_ntriples",
    "serialize_ntriples",
]
