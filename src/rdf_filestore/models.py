"""
RDF term and statement model.

Terms are immutable value objects: two terms are equal iff they have the same
kind and the same lexical components. Patterns use the ANY wildcard in place
of a term; concrete triples never contain it.
"""

from dataclasses import dataclass
from typing import Iterator, Optional, Union
import re

from rdf_filestore.errors import ValidationError
from rdf_filestore.uri import is_valid_uri, check_uri


XSD = "http://www.w3.org/2001/XMLSchema#"
XSD_STRING = f"{XSD}string"
XSD_INTEGER = f"{XSD}integer"

LANGUAGE_TAG = re.compile(r"[A-Za-z]+(?:-[A-Za-z0-9]+)*")

# Lone surrogates cannot be encoded to UTF-8
_SURROGATE = re.compile(r"[\ud800-\udfff]")


# =============================================================================
# Terms
# =============================================================================

@dataclass(frozen=True)
class IRI:
    """An absolute IRI (<http://...>)."""
    value: str

    def __post_init__(self):
        if not is_valid_uri(self.value):
            raise ValidationError(f"IRI is not a valid URI: {self.value!r}")

    def __str__(self) -> str:
        return f"<{self.value}>"


@dataclass(frozen=True)
class Literal:
    """
    An RDF literal.

    Carries either a datatype IRI or a language tag, never both. A literal
    with neither is a plain literal.
    """
    value: str
    datatype: Optional[str] = None
    language: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.value, str):
            raise ValidationError(f"Literal value must be a string, got {type(self.value).__name__}")
        if _SURROGATE.search(self.value):
            raise ValidationError(f"Literal value contains a surrogate code point: {self.value!r}")
        if self.datatype is not None and self.language is not None:
            raise ValidationError("Literal cannot have both a datatype and a language tag")
        if self.datatype is not None and not is_valid_uri(self.datatype):
            raise ValidationError(f"Literal datatype is not a valid URI: {self.datatype!r}")
        if self.language is not None and not LANGUAGE_TAG.fullmatch(self.language):
            raise ValidationError(f"Invalid language tag: {self.language!r}")

    def __str__(self) -> str:
        base = f'"{self.value}"'
        if self.language:
            return f"{base}@{self.language}"
        if self.datatype:
            return f"{base}^^<{self.datatype}>"
        return base


@dataclass(frozen=True)
class BlankNode:
    """A blank node. Recognised by the grammar, rejected by the store."""
    label: str = ""

    def __str__(self) -> str:
        return f"_:{self.label}"


@dataclass(frozen=True)
class Wildcard:
    """Matches any term in a pattern position."""

    def __str__(self) -> str:
        return "*"


ANY = Wildcard()

Term = Union[IRI, Literal, BlankNode]
PatternTerm = Union[IRI, Literal, BlankNode, Wildcard]


# =============================================================================
# Triples and Statements
# =============================================================================

@dataclass(frozen=True)
class Triple:
    """A concrete (subject, predicate, object) triple held by a graph."""
    subject: Union[IRI, BlankNode]
    predicate: IRI
    object: Term

    def __iter__(self) -> Iterator[Term]:
        return iter((self.subject, self.predicate, self.object))

    def __str__(self) -> str:
        return f"{self.subject} {self.predicate} {self.object} ."

    def matches(self, subject: PatternTerm, predicate: PatternTerm, obj: PatternTerm) -> bool:
        """True iff every pattern component is ANY or equal to the corresponding term."""
        return (
            (isinstance(subject, Wildcard) or subject == self.subject)
            and (isinstance(predicate, Wildcard) or predicate == self.predicate)
            and (isinstance(obj, Wildcard) or obj == self.object)
        )


@dataclass(frozen=True)
class Statement:
    """
    A triple pattern with an optional graph URI (a quad when the graph is set).

    A statement is concrete when no component is ANY and none is a blank node.
    """
    subject: PatternTerm = ANY
    predicate: PatternTerm = ANY
    object: PatternTerm = ANY
    graph: Optional[str] = None

    def __post_init__(self):
        for name in ("subject", "predicate", "object"):
            term = getattr(self, name)
            if not isinstance(term, (IRI, Literal, BlankNode, Wildcard)):
                raise ValidationError(
                    f"Statement {name} must be a term or ANY, got {type(term).__name__}"
                )
        if isinstance(self.predicate, (Literal, BlankNode)):
            raise ValidationError(f"Statement predicate must be an IRI: {self.predicate}")
        if isinstance(self.subject, Literal):
            raise ValidationError(f"Statement subject cannot be a literal: {self.subject}")
        if self.graph is not None:
            check_uri(self.graph, "Statement graph")

    @classmethod
    def parse(
        cls,
        subject: Optional[str],
        predicate: Optional[str],
        obj: Optional[str],
        graph: Optional[str] = None,
    ) -> "Statement":
        """
        Build a statement from lexical N-Triples terms.

        An empty or None component becomes ANY.
        """
        from rdf_filestore.grammar import parse_pattern_term

        return cls(
            subject=parse_pattern_term(subject, "subject"),
            predicate=parse_pattern_term(predicate, "predicate"),
            object=parse_pattern_term(obj, "object"),
            graph=graph,
        )

    @classmethod
    def from_triple(cls, triple: Triple, graph: Optional[str] = None) -> "Statement":
        return cls(triple.subject, triple.predicate, triple.object, graph)

    @property
    def has_blank_node(self) -> bool:
        return any(isinstance(t, BlankNode) for t in (self.subject, self.predicate, self.object))

    @property
    def has_wildcard(self) -> bool:
        return any(isinstance(t, Wildcard) for t in (self.subject, self.predicate, self.object))

    @property
    def is_concrete(self) -> bool:
        return not self.has_wildcard and not self.has_blank_node

    def to_triple(self) -> Triple:
        """Return the concrete triple; the caller must check is_concrete first."""
        return Triple(self.subject, self.predicate, self.object)

    def with_graph(self, graph: Optional[str]) -> "Statement":
        return Statement(self.subject, self.predicate, self.object, graph)

    def __str__(self) -> str:
        if self.graph:
            return f"{self.subject} {self.predicate} {self.object} <{self.graph}> ."
        return f"{self.subject} {self.predicate} {self.object} ."
