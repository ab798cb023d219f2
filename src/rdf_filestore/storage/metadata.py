"""
Store metadata document.

The `.store` file in the base directory records the default graph and which
file backs each named graph:

    {
        "defaultGraph": "http://example.org/g1",
        "mapping": {
            "http://example.org/g1": "g1.nt"
        }
    }

`mapping` is always written as an object, even when empty. Decoding checks
the whole document before returning, so a corrupt file never replaces a
valid in-memory mapping.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional
import json
import logging

from rdf_filestore.errors import CorruptMetadataError
from rdf_filestore.storage.filesystem import LocalFileSystem
from rdf_filestore.uri import is_valid_uri

logger = logging.getLogger(__name__)

METADATA_FILE = ".store"
DEFAULT_GRAPH_KEY = "defaultGraph"
MAPPING_KEY = "mapping"


@dataclass
class StoreMapping:
    """Default graph plus graph URI -> relative file path entries."""
    default_graph: Optional[str] = None
    entries: Dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            DEFAULT_GRAPH_KEY: self.default_graph,
            MAPPING_KEY: dict(self.entries),
        }

    @classmethod
    def from_dict(cls, data: Any) -> "StoreMapping":
        """
        Build a mapping from a decoded document.

        Raises:
            CorruptMetadataError: a field is missing or has the wrong shape
        """
        if not isinstance(data, dict):
            raise CorruptMetadataError("Metadata document is not an object")

        if DEFAULT_GRAPH_KEY not in data:
            raise CorruptMetadataError(f"Key {DEFAULT_GRAPH_KEY} not found")
        default_graph = data[DEFAULT_GRAPH_KEY]
        if default_graph is not None and not is_valid_uri(default_graph):
            raise CorruptMetadataError(f"{DEFAULT_GRAPH_KEY} is not a valid URI: {default_graph!r}")

        if MAPPING_KEY not in data:
            raise CorruptMetadataError(f"Key {MAPPING_KEY} not found")
        mapping = data[MAPPING_KEY]
        if not isinstance(mapping, dict):
            raise CorruptMetadataError(f"{MAPPING_KEY} is not an object")

        entries = {}
        for uri, path in mapping.items():
            if not is_valid_uri(uri):
                raise CorruptMetadataError(f"Graph URI {uri!r} is not a valid URI")
            if not isinstance(path, str):
                raise CorruptMetadataError(f"Path for URI {uri} is not a string")
            entries[uri] = path

        return cls(default_graph=default_graph, entries=entries)


def encode_mapping(mapping: StoreMapping) -> str:
    """Encode a mapping as a pretty-printed JSON document."""
    return json.dumps(mapping.to_dict(), indent=4, ensure_ascii=False) + "\n"


def decode_mapping(text: str) -> StoreMapping:
    """
    Decode a JSON metadata document.

    Raises:
        CorruptMetadataError: the text is not JSON or not a valid mapping
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError) as e:
        raise CorruptMetadataError(f"Can't decode metadata document: {e}") from e
    return StoreMapping.from_dict(data)


class MetadataFile:
    """Reads and writes the metadata document through the filesystem."""

    def __init__(self, filesystem: LocalFileSystem, name: str = METADATA_FILE):
        self.filesystem = filesystem
        self.name = name

    @property
    def path(self):
        return self.filesystem.resolve(self.name)

    def exists(self) -> bool:
        return self.filesystem.is_file(self.name)

    def load(self) -> StoreMapping:
        mapping = decode_mapping(self.filesystem.read_text(self.name))
        logger.info(f"Loaded {self.name}: {len(mapping.entries)} graphs")
        return mapping

    def save(self, mapping: StoreMapping) -> None:
        self.filesystem.write_text(self.name, encode_mapping(mapping))
        logger.debug(f"Saved {self.name}")
