"""
In-memory named graph: a mutable set of concrete triples.
"""

from typing import Iterable, Iterator, Optional, Set

from rdf_filestore.errors import UnsupportedFeatureError, ValidationError
from rdf_filestore.models import ANY, BlankNode, PatternTerm, Triple, Wildcard
from rdf_filestore.uri import check_uri


class Graph:
    """
    A URI-identified set of triples.

    Set semantics: adding a triple that is already present is a no-op.
    Blank nodes are rejected on insert.
    """

    def __init__(self, uri: Optional[str] = None, triples: Iterable[Triple] = ()):
        if uri is not None:
            check_uri(uri, "Graph URI")
        self.uri = uri
        self._triples: Set[Triple] = set()
        for triple in triples:
            self.add(triple)

    def add(self, triple: Triple) -> bool:
        """Insert a triple. Returns True if it was not present before."""
        if not isinstance(triple, Triple):
            raise ValidationError(f"Expected a Triple, got {type(triple).__name__}")
        if any(isinstance(term, BlankNode) for term in triple):
            raise UnsupportedFeatureError(f"No support for blank nodes: {triple}")
        if triple in self._triples:
            return False
        self._triples.add(triple)
        return True

    def discard(self, triple: Triple) -> bool:
        """Remove a triple if present. Returns True if it was removed."""
        if triple in self._triples:
            self._triples.remove(triple)
            return True
        return False

    def clear(self) -> None:
        self._triples.clear()

    def match(
        self,
        subject: PatternTerm = ANY,
        predicate: PatternTerm = ANY,
        obj: PatternTerm = ANY,
    ) -> Iterator[Triple]:
        """Yield every triple whose components equal the bound pattern components."""
        if not any(isinstance(t, Wildcard) for t in (subject, predicate, obj)):
            candidate = Triple(subject, predicate, obj)
            if candidate in self._triples:
                yield candidate
            return
        # Callers that mutate while iterating must collect the matches first
        for triple in self._triples:
            if triple.matches(subject, predicate, obj):
                yield triple

    def has_match(
        self,
        subject: PatternTerm = ANY,
        predicate: PatternTerm = ANY,
        obj: PatternTerm = ANY,
    ) -> bool:
        return next(self.match(subject, predicate, obj), None) is not None

    def __contains__(self, triple: object) -> bool:
        return triple in self._triples

    def __iter__(self) -> Iterator[Triple]:
        return iter(self._triples)

    def __len__(self) -> int:
        return len(self._triples)

    def __repr__(self) -> str:
        return f"Graph(uri={self.uri!r}, triples={len(self._triples)})"
