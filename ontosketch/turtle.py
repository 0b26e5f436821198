"""
Grouped block encoding (a Turtle subset).

    @prefix rdf:   <http://www.w3.org/1999/02/22-rdf-syntax-ns#> .
    @prefix test:  <https://example.org/test#> .

    test:Movie
        a                upper:DirectClass ;
        upper:primaryKey ( test:title ) ;
        upper:property   test:title ;
    .

Output is byte-stable: subjects sort by case-insensitive local name,
predicates by the ontology priority list and then by qualified name, and
predicate columns are padded per block.
"""

import re
from typing import Dict, Iterable, List, Mapping, Set, Tuple

from ontosketch.labels import local_name, prefix_of
from ontosketch.ntriples import UnresolvedPrefixError
from ontosketch.triples import RDF_TYPE, XSD_INTEGER, Literal, Object, Statement

PREDICATE_ORDER = [
    "rdf:type",
    "upper:class",
    "upper:datatype",
    "upper:minCount",
    "upper:maxCount",
    "upper:primaryKey",
    "upper:property",
]

INDENT = "    "
LONG_LITERAL_INDENT = "        "
WRAP_WIDTH = 80

_BARE_LITERALS = {
    XSD_INTEGER: re.compile(r"^[+-]?\d+$"),
    "xsd:decimal": re.compile(r"^[+-]?\d*\.\d+$"),
    "xsd:double": re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)[eE][+-]?\d+$"),
    "xsd:boolean": re.compile(r"^(?:true|false)$"),
}


# ──────────────────────────────────────────────────────────────────
# Terms
# ──────────────────────────────────────────────────────────────────

def _long_quote(lines: List[str]) -> str:
    body = "\n".join(f"{LONG_LITERAL_INDENT}{line}" for line in lines)
    return f'"""\n{body}\n{LONG_LITERAL_INDENT}"""'


def _wrap(value: str) -> List[str]:
    lines: List[str] = []
    current = ""
    for word in value.split(" "):
        if current and len(current) + 1 + len(word) > WRAP_WIDTH:
            lines.append(current)
            current = word
        else:
            current = f"{current} {word}" if current else word
    if current:
        lines.append(current)
    return lines


def _quote(value: str, wrap: bool = False) -> str:
    """Quote a literal; typed literals past WRAP_WIDTH are word-wrapped into a long string."""
    if "\n" in value:
        return _long_quote(value.split("\n"))
    if wrap and len(value) > WRAP_WIDTH:
        return _long_quote(_wrap(value))
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\r", "\\r")
        .replace("\t", "\\t")
    )
    return f'"{escaped}"'


def is_bare_literal(literal: Literal) -> bool:
    pattern = _BARE_LITERALS.get(literal.datatype or "")
    return bool(pattern and pattern.match(literal.value))


def render_object(obj: Object) -> str:
    if isinstance(obj, Literal):
        if is_bare_literal(obj):
            return obj.value
        text = _quote(obj.value, wrap=bool(obj.datatype))
        if obj.language:
            return f"{text}@{obj.language}"
        if obj.datatype:
            return f"{text}^^{obj.datatype}"
        return text
    if isinstance(obj, tuple):
        return f"( {' '.join(obj)} )" if obj else "()"
    return obj


def render_predicate(predicate: str) -> str:
    return "a" if predicate == RDF_TYPE else predicate


def referenced_names(statement: Statement) -> List[str]:
    """Qualified names that appear in the rendered block for a statement."""
    names = [statement.subject, statement.predicate]
    obj = statement.object
    if isinstance(obj, Literal):
        if obj.datatype and not obj.language and not is_bare_literal(obj):
            names.append(obj.datatype)
    elif isinstance(obj, tuple):
        names.extend(obj)
    else:
        names.append(obj)
    return names


# ──────────────────────────────────────────────────────────────────
# Ordering
# ──────────────────────────────────────────────────────────────────

def subject_sort_key(subject: str) -> Tuple[str, str]:
    return (local_name(subject).casefold(), subject)


def predicate_sort_key(predicate: str, rendered_object: str):
    if predicate in PREDICATE_ORDER:
        return (0, PREDICATE_ORDER.index(predicate), "", rendered_object)
    return (1, 0, predicate, rendered_object)


def group_statements(statements: Iterable[Statement]) -> Dict[str, List[Tuple[str, str]]]:
    """subject -> ordered [(predicate, rendered object)]; exact duplicates collapse."""
    groups: Dict[str, Set[Tuple[str, str]]] = {}
    for statement in statements:
        groups.setdefault(statement.subject, set()).add(
            (statement.predicate, render_object(statement.object))
        )
    return {
        subject: sorted(groups[subject], key=lambda pair: predicate_sort_key(*pair))
        for subject in sorted(groups, key=subject_sort_key)
    }


# ──────────────────────────────────────────────────────────────────
# Snippets
# ──────────────────────────────────────────────────────────────────

def prefixes_snippet(prefixes: Mapping[str, str]) -> str:
    if not prefixes:
        return ""
    width = len("@prefix ") + max(len(p) for p in prefixes) + 1
    return "\n".join(
        f"{f'@prefix {prefix}:'.ljust(width)} <{prefixes[prefix]}> ."
        for prefix in sorted(prefixes)
    )


def block_snippet(subject: str, entries: List[Tuple[str, str]]) -> str:
    width = max(len(render_predicate(p)) for p, _ in entries)
    lines = [subject]
    for predicate, rendered in entries:
        lines.append(f"{INDENT}{render_predicate(predicate).ljust(width)} {rendered} ;")
    lines.append(".")
    return "\n".join(lines)


def to_turtle(statements: Iterable[Statement], prefixes: Mapping[str, str]) -> str:
    """Serialize a (merged) statement set to the grouped block format."""
    statements = list(statements)
    if not statements:
        return ""

    referenced: Set[str] = set()
    for statement in statements:
        referenced.update(prefix_of(name) for name in referenced_names(statement))
    missing = sorted(p for p in referenced if p not in prefixes)
    if missing:
        raise UnresolvedPrefixError(f"No namespace found for prefix: {missing[0]}")

    header = prefixes_snippet({p: prefixes[p] for p in referenced})
    blocks = [block_snippet(s, entries) for s, entries in group_statements(statements).items()]
    return "\n\n".join([header] + blocks) + "\n"
