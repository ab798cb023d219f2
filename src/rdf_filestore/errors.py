"""
Exception hierarchy for rdf-filestore.

Every error raised by the store derives from StoreError. Where a builtin
exception describes the same failure (ValueError, LookupError, OSError,
RuntimeError) it is mixed in so callers can catch either.
"""


class StoreError(Exception):
    """Base class for all store errors."""
    pass


class ValidationError(StoreError, ValueError):
    """A required argument is missing, empty or malformed (e.g. a bad URI)."""
    pass


class ParseError(StoreError, ValueError):
    """A term or a line of a graph file could not be parsed."""

    def __init__(self, message: str, line_number: int | None = None):
        if line_number is not None:
            message = f"Line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number


class UnsupportedFeatureError(StoreError):
    """The input uses an RDF feature the store rejects (blank nodes)."""
    pass


class NotFoundError(StoreError, LookupError):
    """A graph URI is not registered with the store."""
    pass


class NoGraphResolvedError(StoreError, LookupError):
    """Neither the statement, the call nor the store names a graph."""
    pass


class StoreIOError(StoreError, OSError):
    """A backing file or the base directory is missing or unreadable."""
    pass


class CorruptMetadataError(StoreError):
    """The metadata document cannot be decoded into a store mapping."""
    pass


class StateError(StoreError, RuntimeError):
    """The store is not initialized, or has already been closed."""
    pass


class InvalidPatternError(StoreError, ValueError):
    """A statement with wildcards was passed where a concrete one is required."""
    pass


class ConfigValidationError(StoreError, ValueError):
    """Configuration validation error."""
    pass
