"""
N-Triples Parser and Serializer.

Reads and writes whole graph files, one triple per line:
  <subject> <predicate> <object> .

Each line is handed to the term grammar (rdf_filestore.grammar); this module
only deals with lines, comments and line numbers. Blank nodes are rejected.

Reference: https://www.w3.org/TR/n-triples/
"""

from io import StringIO
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from rdf_filestore.errors import ParseError, UnsupportedFeatureError
from rdf_filestore.grammar import parse_triple, serialize_term
from rdf_filestore.graph import Graph
from rdf_filestore.models import Triple


class NTriplesParser:
    """
    Parser for N-Triples format.

    Empty lines and lines starting with '#' are skipped. Errors carry the
    1-based line number of the offending line.
    """

    def __init__(self):
        self.line_number = 0

    def parse(self, source: Union[str, Path, StringIO], graph_uri: Optional[str] = None) -> Tuple[Graph, int]:
        """
        Parse N-Triples content into a graph.

        Args:
            source: N-Triples content as string, file path, or StringIO
            graph_uri: URI of the resulting graph

        Returns:
            Tuple of (graph, number of triple lines read)
        """
        if isinstance(source, Path):
            text = source.read_text(encoding="utf-8")
        elif isinstance(source, StringIO):
            text = source.read()
        else:
            text = source

        graph = Graph(graph_uri)
        count = 0
        # Only \n ends a line, U+2028 and friends stay inside terms
        for triple in self.parse_lines(text.split("\n")):
            graph.add(triple)
            count += 1
        return graph, count

    def parse_lines(self, lines: List[str]) -> Iterator[Triple]:
        """
        Parse lines of N-Triples.

        Yields:
            Triple objects
        """
        for i, line in enumerate(lines):
            self.line_number = i + 1

            line = line.strip(" \t\r")
            if not line or line.startswith('#'):
                continue

            try:
                yield parse_triple(line)
            except UnsupportedFeatureError as e:
                raise UnsupportedFeatureError(f"Line {self.line_number}: {e}") from e
            except ParseError as e:
                raise ParseError(str(e), line_number=self.line_number) from e


class NTriplesSerializer:
    """
    Serializer for N-Triples format.

    Lines are sorted so that an unchanged graph produces an identical file.
    """

    def serialize_triple(self, triple: Triple) -> str:
        return " ".join(serialize_term(term) for term in triple) + " ."

    def serialize(self, graph: Graph) -> str:
        lines = sorted(self.serialize_triple(triple) for triple in graph)
        if not lines:
            return ""
        return "\n".join(lines) + "\n"


class NTriplesCodec:
    """Graph codec reading and writing N-Triples files."""

    name = "ntriples"

    def __init__(self):
        self._serializer = NTriplesSerializer()

    def parse(self, text: str, graph_uri: Optional[str] = None) -> Tuple[Graph, int]:
        # Parser keeps a line counter, so use a fresh one per document
        return NTriplesParser().parse(text, graph_uri)

    def serialize(self, graph: Graph) -> str:
        return self._serializer.serialize(graph)


def parse_ntriples(source: Union[str, Path, StringIO], graph_uri: Optional[str] = None) -> Tuple[Graph, int]:
    """
    Parse N-Triples content.

    Args:
        source: N-Triples content as string, file path, or StringIO
        graph_uri: URI of the resulting graph

    Returns:
        Tuple of (graph, number of triple lines read)
    """
    parser = NTriplesParser()
    return parser.parse(source, graph_uri)


def serialize_ntriples(graph: Graph) -> str:
    """Serialize a graph to N-Triples text."""
    serializer = NTriplesSerializer()
    return serializer.serialize(graph)
