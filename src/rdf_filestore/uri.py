"""
Absolute URI validation.

Used as a guard by every component that accepts a graph or term URI.
"""

import re

from rdf_filestore.errors import ValidationError


# scheme ":" followed by at least one character, no whitespace, controls or surrogates
_URI_PATTERN = re.compile(r"[A-Za-z][A-Za-z0-9+.\-]*:[^\x00-\x20\x7f\ud800-\udfff]+")


def is_valid_uri(value) -> bool:
    """Check that value is an absolute URI. Never raises."""
    if not isinstance(value, str):
        return False
    return _URI_PATTERN.fullmatch(value) is not None


def check_uri(value, what: str = "URI") -> str:
    """Return value unchanged, or raise ValidationError if it is not a valid URI."""
    if value is None or value == "":
        raise ValidationError(f"{what} is empty")
    if not is_valid_uri(value):
        raise ValidationError(f"{what} is not a valid URI: {value!r}")
    return value
