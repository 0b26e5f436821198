"""Deterministic sketch-to-ontology compiler.

Validates diagram documents (boxes, diamonds, arrows, text, trees), derives
RDF statements from their labels and renders them as N-Triples and grouped
Turtle blocks. No I/O in the core; the CLI and the service live on top.
"""

from ontosketch.compile_ontology import CompiledDocument, compile_document
from ontosketch.document import Document, canonicalize, parse
from ontosketch.history import History
from ontosketch.ntriples import StatementParseError, UnresolvedPrefixError, parse_raw_statements, to_ntriples
from ontosketch.triples import Classification, Statement, generate, generate_statements
from ontosketch.turtle import to_turtle
from ontosketch.validate import ValidationError, validate_document

__all__ = [
    "CompiledDocument",
    "compile_document",
    "Document",
    "canonicalize",
    "parse",
    "History",
    "StatementParseError",
    "UnresolvedPrefixError",
    "parse_raw_statements",
    "to_ntriples",
    "Classification",
    "Statement",
    "generate",
    "generate_statements",
    "to_turtle",
    "ValidationError",
    "validate_document",
]
