"""
N-Triples term grammar using pyparsing.

Parses the lexical form of a single subject, predicate or object into a term
of rdf_filestore.models, and serializes terms back. Whole-line lexing of
graph files lives in rdf_filestore.formats.ntriples and delegates each term
here.

Grammar (first alternative wins):
  subject   ::= IRIREF | BLANK_NODE_LABEL
  predicate ::= IRIREF
  object    ::= literal | IRIREF | BLANK_NODE_LABEL
  literal   ::= STRING_LITERAL_QUOTE ( LANGTAG | '^^' IRIREF )?

The literal value ends at the first unescaped quote. Whatever follows must
be empty, a language tag or a datatype, with no whitespace in between;
anything else (e.g. '"a"b"') is an ambiguous literal and is rejected. No later
closing quote is searched for, so a quote inside a value must be escaped.
"""

from typing import Optional
import re

import pyparsing as pp
from pyparsing import Regex, Literal as Lit, Suppress, Opt

from rdf_filestore.errors import ParseError, UnsupportedFeatureError, ValidationError
from rdf_filestore.models import (
    IRI, Literal, BlankNode, Wildcard, ANY, Term, PatternTerm, Triple,
)


POSITIONS = ("subject", "predicate", "object")


# =============================================================================
# Escaping
# =============================================================================

_ESCAPE_SEQUENCE = re.compile(r"\\(?:u([0-9A-Fa-f]{4})|U([0-9A-Fa-f]{8})|(.))", re.DOTALL)

_ECHAR = {
    "t": "\t",
    "b": "\b",
    "n": "\n",
    "r": "\r",
    "f": "\f",
    '"': '"',
    "'": "'",
    "\\": "\\",
}

_LITERAL_ESCAPES = {
    "\\": "\\\\",
    '"': '\\"',
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\b": "\\b",
    "\f": "\\f",
}

# Line separators that str.splitlines() honours beyond \n and \r
_LINE_BREAKS = {"\x85", "\u2028", "\u2029"}

# Characters not allowed unescaped inside <...>
_IRI_FORBIDDEN = set('<>"{}|^`\\') | {chr(c) for c in range(0x21)} | _LINE_BREAKS


def _codepoint(hex_digits: str) -> str:
    code = int(hex_digits, 16)
    if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
        raise ParseError(f"Invalid Unicode escape: {hex_digits}")
    return chr(code)


def unescape(text: str) -> str:
    """Resolve N-Triples escape sequences (ECHAR and UCHAR)."""
    if "\\" not in text:
        return text

    def replace(match: re.Match) -> str:
        short, long, char = match.groups()
        if short or long:
            return _codepoint(short or long)
        if char in _ECHAR:
            return _ECHAR[char]
        raise ParseError(f"Invalid escape sequence: \\{char}")

    return _ESCAPE_SEQUENCE.sub(replace, text)


def escape_literal(value: str) -> str:
    """Escape a literal value for use between double quotes."""
    out = []
    for char in value:
        if char in _LITERAL_ESCAPES:
            out.append(_LITERAL_ESCAPES[char])
        elif ord(char) < 0x20 or ord(char) == 0x7F or char in _LINE_BREAKS:
            out.append(f"\\u{ord(char):04X}")
        else:
            out.append(char)
    return "".join(out)


def escape_iri(value: str) -> str:
    """Escape an IRI for use between angle brackets."""
    return "".join(f"\\u{ord(c):04X}" if c in _IRI_FORBIDDEN else c for c in value)


# =============================================================================
# Grammar
# =============================================================================

def _make_iri(value: str) -> IRI:
    try:
        return IRI(value)
    except ValidationError as e:
        raise ParseError(str(e)) from e


class TermGrammar:
    """
    pyparsing grammar for single N-Triples terms.

    One instance holds the three positional rules; it has no other state and
    can be shared.
    """

    def __init__(self):
        self._build_grammar()

    def _build_grammar(self):
        """Build the pyparsing elements for subject, predicate and object."""

        # <http://...> with optional \u / \U escapes
        def make_iri(tokens):
            return _make_iri(unescape(tokens[0][1:-1]))

        iriref = Regex(
            r'<(?:[^\x00-\x20<>"{}|^`\\]|\\u[0-9A-Fa-f]{4}|\\U[0-9A-Fa-f]{8})*>'
        ).set_parse_action(make_iri)

        # _:label, label empty or alphanumeric
        def make_blank_node(tokens):
            return BlankNode(tokens[0][2:])

        blank_node = Regex(r"_:[A-Za-z0-9]*").set_parse_action(make_blank_node)

        # "..." up to the first unescaped quote
        def make_string(tokens):
            return unescape(tokens[0][1:-1])

        string = Regex(r'"(?:[^"\\\n\r]|\\.)*"').set_parse_action(make_string)

        # Suffixes must follow the closing quote directly
        lang_tag = Regex(r"@[A-Za-z]+(?:-[A-Za-z0-9]+)*").leave_whitespace()
        datatype = Suppress(Lit("^^").leave_whitespace()) + iriref.copy().leave_whitespace()("datatype")

        def make_literal(tokens):
            language = tokens.get("language")
            datatype_iri = tokens.get("datatype")
            try:
                return Literal(
                    tokens["value"],
                    datatype=datatype_iri.value if datatype_iri is not None else None,
                    language=language[1:] if language is not None else None,
                )
            except ValidationError as e:
                raise ParseError(str(e)) from e

        literal = (
            string("value") + Opt(lang_tag("language") | datatype)
        ).set_parse_action(make_literal)

        self.subject = iriref | blank_node
        self.predicate = iriref.copy()
        self.object = literal | iriref | blank_node

        # subject predicate object "." [# comment]
        comment = Suppress(Regex(r"#.*"))
        self.triple = (
            self.subject + self.predicate + self.object + Suppress(Lit(".")) + Opt(comment)
        )

    def rule(self, position: str) -> pp.ParserElement:
        if position not in POSITIONS:
            raise ValueError(f"Unknown term position: {position!r}")
        return getattr(self, position)

    def parse(self, text: str, position: str) -> Term:
        """
        Parse one term in the given position.

        Raises:
            ParseError: text is not a valid term for this position
            UnsupportedFeatureError: text is a blank node
        """
        try:
            term = self.rule(position).parse_string(text, parse_all=True)[0]
        except pp.ParseException as e:
            if position == "object" and text.lstrip().startswith('"'):
                raise ParseError(f"Malformed or ambiguous literal: {text!r}") from e
            raise ParseError(f"Failed to parse {position}: {text!r}") from e
        if isinstance(term, BlankNode):
            raise UnsupportedFeatureError(f"No support for blank nodes: {term}")
        return term

    def parse_triple(self, text: str) -> Triple:
        """
        Parse one N-Triples line (terminated by a period) into a Triple.

        Raises:
            ParseError: the line is not a well-formed triple
            UnsupportedFeatureError: the line contains a blank node
        """
        try:
            subject, predicate, obj = self.triple.parse_string(text, parse_all=True)
        except pp.ParseException as e:
            raise ParseError(f"Malformed triple at column {e.column}: {text.strip()!r}") from e
        triple = Triple(subject, predicate, obj)
        if isinstance(subject, BlankNode) or isinstance(obj, BlankNode):
            raise UnsupportedFeatureError(f"No support for blank nodes: {triple}")
        return triple


_GRAMMAR = TermGrammar()


# =============================================================================
# Public API
# =============================================================================

def parse_term(text: str, position: str = "object") -> Term:
    """Parse a lexical term; None or empty input is a ValidationError."""
    if text is None or (isinstance(text, str) and not text.strip()):
        raise ValidationError(f"{position} is empty")
    if not isinstance(text, str):
        raise ValidationError(f"{position} must be a string, got {type(text).__name__}")
    return _GRAMMAR.parse(text, position)


def parse_subject(text: str) -> Term:
    return parse_term(text, "subject")


def parse_predicate(text: str) -> IRI:
    return parse_term(text, "predicate")


def parse_object(text: str) -> Term:
    return parse_term(text, "object")


def parse_triple(text: str) -> Triple:
    """Parse a complete N-Triples line."""
    return _GRAMMAR.parse_triple(text)


def parse_pattern_term(text: Optional[str], position: str = "object") -> PatternTerm:
    """Like parse_term, but None or empty input is the ANY wildcard."""
    if text is None or (isinstance(text, str) and not text.strip()):
        return ANY
    return parse_term(text, position)


def serialize_term(term: Term) -> str:
    """Serialize a term to its N-Triples lexical form."""
    if isinstance(term, IRI):
        return f"<{escape_iri(term.value)}>"
    if isinstance(term, Literal):
        base = f'"{escape_literal(term.value)}"'
        if term.language is not None:
            return f"{base}@{term.language}"
        if term.datatype is not None:
            return f"{base}^^<{escape_iri(term.datatype)}>"
        return base
    if isinstance(term, BlankNode):
        raise UnsupportedFeatureError(f"No support for blank nodes: {term}")
    if isinstance(term, Wildcard):
        raise ValidationError("A wildcard has no lexical form")
    raise ValidationError(f"Not an RDF term: {term!r}")
