"""
N-Triples boundary: the user's raw statement text in, the flat statement
list out.

Raw statements are parsed line by line with rdflib's N-Triples parser and
compacted to qualified names against the document's prefix map (longest
namespace wins). An absolute identifier no namespace covers is an error:
the grouped view could not abbreviate it, so it is rejected at the door.
"""

import re
from typing import Iterable, Mapping, Set

from rdflib import BNode, URIRef
from rdflib import Literal as RDFLiteral
from rdflib.plugins.parsers.ntriples import ParseError, W3CNTriplesParser, r_literal, unquote, uriquote

from ontosketch.triples import RDF_FIRST, RDF_NIL, RDF_REST, Literal, Statement, StatementSet

_COMMENT_RE = re.compile(r"^\s*(#.*)?$")


class StatementParseError(ValueError):
    """Raised for a raw statement line that cannot be used."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{message}\nSource: {source}")
        self.source = source
        self.message = message


class UnresolvedPrefixError(ValueError):
    """Raised when a qualified name uses a prefix the document does not declare."""


# ──────────────────────────────────────────────────────────────────
# Identifier compaction / expansion
# ──────────────────────────────────────────────────────────────────

def shorten_uri(prefixes: Mapping[str, str], uri: str) -> str:
    """Compact an absolute identifier with the longest matching namespace."""
    candidates = sorted(
        ((prefix, ns) for prefix, ns in prefixes.items() if ns and uri.startswith(ns)),
        key=lambda pair: (-len(pair[1]), pair[0]),
    )
    if not candidates:
        raise UnresolvedPrefixError(f"No prefix found for URI: {uri}")
    prefix, namespace = candidates[0]
    return f"{prefix}:{uri[len(namespace):]}"


def expand_qname(prefixes: Mapping[str, str], qname: str) -> str:
    prefix, _, local = qname.partition(":")
    namespace = prefixes.get(prefix)
    if namespace is None:
        raise UnresolvedPrefixError(f"No namespace found for prefix: {prefix}")
    return namespace + local


def escape_literal(value: str) -> str:
    return (
        value.replace("\\", "\\\\")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
        .replace("\t", "\\t")
        .replace('"', '\\"')
    )


# ──────────────────────────────────────────────────────────────────
# Raw statement parsing
# ──────────────────────────────────────────────────────────────────

class _StatementSink:
    def __init__(self):
        self.triples = []

    def triple(self, s, p, o):
        self.triples.append((s, p, o))


class _LexicalParser(W3CNTriplesParser):
    """N-Triples parser that keeps literal lexical forms as written ("01" stays "01")."""

    def literal(self):
        if not self.peek('"'):
            return False
        lexical, language, datatype = self.eat(r_literal).groups()
        if language and datatype:
            raise ParseError("Can't have both a language and a datatype")
        if datatype:
            datatype = URIRef(uriquote(unquote(datatype)))
        return RDFLiteral(unquote(lexical), language or None, datatype or None, normalize=False)


def _term(prefixes: Mapping[str, str], term, line: str, role: str):
    if isinstance(term, BNode):
        raise StatementParseError(line, f"Invalid {role} - blank nodes are not supported")
    try:
        if isinstance(term, URIRef):
            return shorten_uri(prefixes, str(term))
        if isinstance(term, RDFLiteral):
            datatype = shorten_uri(prefixes, str(term.datatype)) if term.datatype else None
            return Literal(str(term), datatype=datatype, language=term.language)
    except UnresolvedPrefixError as exc:
        raise StatementParseError(line, f"Error parsing {role}: {exc}") from exc
    raise StatementParseError(line, f"Invalid {role}")


def parse_raw_line(prefixes: Mapping[str, str], line: str) -> Statement:
    sink = _StatementSink()
    try:
        _LexicalParser(sink).parsestring(line + "\n")
    except ParseError as exc:
        raise StatementParseError(
            line,
            "Invalid N-Triples syntax - expected format: <subject> <predicate> <object> .",
        ) from exc
    if len(sink.triples) != 1:
        raise StatementParseError(line, "Expected exactly one statement per line")

    (subject, predicate, obj), = sink.triples
    return Statement(
        _term(prefixes, subject, line, "subject"),
        _term(prefixes, predicate, line, "predicate"),
        _term(prefixes, obj, line, "object"),
    )


def parse_raw_statements(text: str, prefixes: Mapping[str, str]) -> StatementSet:
    """Parse user-authored N-Triples into a statement set.

    Blank lines and '#' comment lines are skipped; duplicates collapse.
    """
    statements: Set[Statement] = set()
    for line in (text or "").splitlines():
        if _COMMENT_RE.match(line):
            continue
        statements.add(parse_raw_line(prefixes, line))
    return frozenset(statements)


# ──────────────────────────────────────────────────────────────────
# Flat encoding
# ──────────────────────────────────────────────────────────────────

def _literal_ntriples(prefixes: Mapping[str, str], literal: Literal) -> str:
    text = f'"{escape_literal(literal.value)}"'
    if literal.language:
        return f"{text}@{literal.language}"
    if literal.datatype:
        return f"{text}^^<{expand_qname(prefixes, literal.datatype)}>"
    return text


def _iri(prefixes: Mapping[str, str], qname: str) -> str:
    return f"<{expand_qname(prefixes, qname)}>"


def to_ntriples(statements: Iterable[Statement], prefixes: Mapping[str, str]) -> str:
    """Serialize statements as sorted N-Triples lines.

    List objects become rdf:first/rdf:rest chains whose blank node labels are
    numbered by the list statement's position in sorted order.
    """
    ordered = sorted(statements, key=statement_sort_key)
    lines: Set[str] = set()
    list_count = 0

    for statement in ordered:
        subject = _iri(prefixes, statement.subject)
        predicate = _iri(prefixes, statement.predicate)
        obj = statement.object

        if isinstance(obj, tuple):
            if not obj:
                lines.add(f"{subject} {predicate} {_iri(prefixes, RDF_NIL)} .")
                continue
            nodes = [f"_:list{list_count}_{i}" for i in range(len(obj))]
            list_count += 1
            lines.add(f"{subject} {predicate} {nodes[0]} .")
            for i, item in enumerate(obj):
                rest = nodes[i + 1] if i + 1 < len(nodes) else _iri(prefixes, RDF_NIL)
                lines.add(f"{nodes[i]} {_iri(prefixes, RDF_FIRST)} {_iri(prefixes, item)} .")
                lines.add(f"{nodes[i]} {_iri(prefixes, RDF_REST)} {rest} .")
        elif isinstance(obj, Literal):
            lines.add(f"{subject} {predicate} {_literal_ntriples(prefixes, obj)} .")
        else:
            lines.add(f"{subject} {predicate} {_iri(prefixes, obj)} .")

    if not lines:
        return ""
    return "\n".join(sorted(lines)) + "\n"


def statement_sort_key(statement: Statement):
    obj = statement.object
    if isinstance(obj, Literal):
        obj_key = (1, obj.value, obj.datatype or "", obj.language or "")
    elif isinstance(obj, tuple):
        obj_key = (2, " ".join(obj), "", "")
    else:
        obj_key = (0, obj, "", "")
    return (statement.subject, statement.predicate, obj_key)

