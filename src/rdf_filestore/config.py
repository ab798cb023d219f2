"""
Store configuration for rdf-filestore.

Provides:
- StoreConfig dataclass with dict round-trip
- Loading from JSON or YAML files and from the environment
- Configuration validation
"""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from rdf_filestore.errors import ConfigValidationError
from rdf_filestore.formats import CODECS
from rdf_filestore.storage.metadata import METADATA_FILE
from rdf_filestore.uri import is_valid_uri

logger = logging.getLogger(__name__)

BASE_DIR_ENV = "RDF_FILESTORE_BASE_DIR"


@dataclass
class StoreConfig:
    """
    Configuration for a FileTripleStore.

    Attributes:
        base_dir: Directory holding the metadata document and graph files
        metadata_file: Name of the metadata document inside base_dir
        encoding: Text encoding of graph files and metadata
        graph_format: Codec name used for graph files (see formats.CODECS)
        default_graph: Default graph applied on initialize when the
            metadata document does not name one
    """
    base_dir: Path = Path(".")
    metadata_file: str = METADATA_FILE
    encoding: str = "utf-8"
    graph_format: str = "ntriples"
    default_graph: Optional[str] = None

    def __post_init__(self):
        self.base_dir = Path(self.base_dir)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "base_dir": str(self.base_dir),
            "metadata_file": self.metadata_file,
            "encoding": self.encoding,
            "graph_format": self.graph_format,
            "default_graph": self.default_graph,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StoreConfig":
        return cls(
            base_dir=Path(data.get("base_dir", ".")),
            metadata_file=data.get("metadata_file", METADATA_FILE),
            encoding=data.get("encoding", "utf-8"),
            graph_format=data.get("graph_format", "ntriples"),
            default_graph=data.get("default_graph"),
        )

    @classmethod
    def load(cls, path: str | Path) -> "StoreConfig":
        """
        Load configuration from a JSON or YAML file (chosen by suffix).

        A relative base_dir is resolved against the file's directory.
        """
        path = Path(path)
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(f) or {}
            else:
                data = json.load(f)
        if not isinstance(data, dict):
            raise ConfigValidationError(f"Configuration in {path} is not a mapping")

        config = cls.from_dict(data)
        if not config.base_dir.is_absolute():
            config.base_dir = path.parent / config.base_dir
        logger.debug(f"Loaded configuration from {path}")
        return config

    @classmethod
    def from_env(cls, **overrides: Any) -> "StoreConfig":
        """Configuration with base_dir taken from RDF_FILESTORE_BASE_DIR."""
        data = {"base_dir": os.environ.get(BASE_DIR_ENV, ".")}
        data.update(overrides)
        return cls.from_dict(data)

    def save(self, path: str | Path) -> None:
        """Save configuration as JSON or YAML (chosen by suffix)."""
        path = Path(path)
        with open(path, "w", encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                yaml.safe_dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(self.to_dict(), f, indent=2)

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns list of error messages (empty if valid).
        """
        errors = []

        if not self.metadata_file or Path(self.metadata_file).name != self.metadata_file:
            errors.append("metadata_file must be a plain file name")

        try:
            "".encode(self.encoding)
        except LookupError:
            errors.append(f"Unknown encoding '{self.encoding}'")

        if self.graph_format.lower() not in CODECS:
            errors.append(
                f"Invalid graph_format '{self.graph_format}'. Valid options: {sorted(CODECS)}"
            )

        if self.default_graph is not None and not is_valid_uri(self.default_graph):
            errors.append(f"default_graph is not a valid URI: {self.default_graph}")

        return errors

    def validate_or_raise(self) -> None:
        """Validate configuration, raising on errors."""
        errors = self.validate()
        if errors:
            raise ConfigValidationError("; ".join(errors))
