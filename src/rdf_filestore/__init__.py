"""
rdf-filestore: a file-backed RDF triple store.

Named graphs are kept as N-Triples files under a base directory; a `.store`
document maps graph URIs to files and names the default graph.
"""

__version__ = "0.1.0"

from rdf_filestore.store import FileTripleStore, StoreState
from rdf_filestore.config import StoreConfig
from rdf_filestore.graph import Graph
from rdf_filestore.models import (
    ANY,
    IRI,
    BlankNode,
    Literal,
    Statement,
    Triple,
    Wildcard,
)
from rdf_filestore.grammar import (
    parse_term,
    parse_pattern_term,
    parse_triple,
    serialize_term,
)
from rdf_filestore.uri import is_valid_uri
from rdf_filestore.errors import (
    StoreError,
    ValidationError,
    ParseError,
    UnsupportedFeatureError,
    NotFoundError,
    NoGraphResolvedError,
    StoreIOError,
    CorruptMetadataError,
    StateError,
    InvalidPatternError,
    ConfigValidationError,
)

__all__ = [
    "FileTripleStore",
    "StoreState",
    "StoreConfig",
    "Graph",
    # Terms and statements
    "ANY",
    "IRI",
    "BlankNode",
    "Literal",
    "Statement",
    "Triple",
    "Wildcard",
    # Term grammar
    "parse_term",
    "parse_pattern_term",
    "parse_triple",
    "serialize_term",
    "is_valid_uri",
    # Errors
    "StoreError",
    "ValidationError",
    "ParseError",
    "UnsupportedFeatureError",
    "NotFoundError",
    "NoGraphResolvedError",
    "StoreIOError",
    "CorruptMetadataError",
    "StateError",
    "InvalidPatternError",
    "ConfigValidationError",
]
