"""
Local filesystem access confined to a base directory.

All paths handed to the store are relative to the base directory; resolving
a path that would leave it is a ValidationError. OS failures are reported as
StoreIOError.
"""

from __future__ import annotations
from pathlib import Path
import os

from rdf_filestore.errors import StoreIOError, ValidationError


class LocalFileSystem:
    """
    Whole-file reads and writes below a base directory.

    Usage:
        fs = LocalFileSystem("./data")
        if fs.is_file("people.nt"):
            text = fs.read_text("people.nt")
    """

    def __init__(self, base_dir: str | Path, encoding: str = "utf-8"):
        if base_dir is None or str(base_dir) == "":
            raise ValidationError("base_dir is empty")
        self.base_dir = Path(base_dir).resolve()
        self.encoding = encoding

    def resolve(self, relative_path: str | Path) -> Path:
        """Return the absolute path for a path relative to the base directory."""
        if relative_path is None or str(relative_path) == "":
            raise ValidationError("Path is empty")
        path = (self.base_dir / relative_path).resolve()
        if path != self.base_dir and self.base_dir not in path.parents:
            raise ValidationError(f"Path escapes the base directory: {relative_path}")
        return path

    def exists(self, relative_path: str | Path = ".") -> bool:
        return self.resolve(relative_path).exists()

    def is_file(self, relative_path: str | Path) -> bool:
        return self.resolve(relative_path).is_file()

    def is_dir(self, relative_path: str | Path = ".") -> bool:
        return self.resolve(relative_path).is_dir()

    def is_readable(self, relative_path: str | Path = ".") -> bool:
        return os.access(self.resolve(relative_path), os.R_OK)

    def read_text(self, relative_path: str | Path) -> str:
        path = self.resolve(relative_path)
        try:
            return path.read_text(encoding=self.encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise StoreIOError(f"Unable to read {path}: {e}") from e

    def write_text(self, relative_path: str | Path, content: str) -> None:
        path = self.resolve(relative_path)
        # Encode before opening, so a failure leaves the old file intact
        try:
            data = content.encode(self.encoding)
        except UnicodeError as e:
            raise StoreIOError(f"Unable to encode {path} as {self.encoding}: {e}") from e
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as e:
            raise StoreIOError(f"Unable to write {path}: {e}") from e
