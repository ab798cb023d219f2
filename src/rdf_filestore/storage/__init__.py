"""
rdf-filestore storage layer.

File access confined to the base directory, the `.store` metadata document,
and the cache of lazily loaded named graphs.
"""

from rdf_filestore.storage.filesystem import LocalFileSystem
from rdf_filestore.storage.metadata import (
    METADATA_FILE,
    MetadataFile,
    StoreMapping,
    encode_mapping,
    decode_mapping,
)
from rdf_filestore.storage.graph_cache import GraphCache, GraphRecord
from rdf_filestore.storage.graph_explorer import GraphExplorer, GraphStatistics

__all__ = [
    "LocalFileSystem",
    "METADATA_FILE",
    "MetadataFile",
    "StoreMapping",
    "encode_mapping",
    "decode_mapping",
    "GraphCache",
    "GraphRecord",
    "GraphExplorer",
    "GraphStatistics",
]
