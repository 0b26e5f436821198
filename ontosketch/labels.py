"""
Label grammar for sketch elements.

Labels are short free-text annotations:

    test:Movie (DC)            diamond, direct class
    xsd:string                 rectangle, datatype
    test:title (1..1 PK1)      arrow, cardinality + primary key position
    upper:label @fr            arrow from a diamond to a text element

Parsing is deterministic and lenient: nothing here raises. Text that does not
fit the grammar yields None (or a Label flagged malformed), which the
statement generator turns into an ignored/invalid element.
"""

import re
from dataclasses import dataclass
from typing import Mapping, Optional

CLASS_MARKERS = {
    "DC": "upper:DirectClass",
    "SC": "upper:SealedClass",
    "E": "upper:Enumeration",
    "V": "upper:EnumValue",
}

TEXT_PREDICATES = ("upper:label", "upper:description")

DEFAULT_LANGUAGE = "en"

_NAME_CHARS = r"[0-9A-Za-z._-]"

_QNAME_RE = re.compile(rf"^(?:(?P<prefix>{_NAME_CHARS}*):)?(?P<local>{_NAME_CHARS}*)$")

_LABEL_RE = re.compile(r"^\s*(?P<qname>[^\s()]+)(?:\s*\((?P<marker>[^()]*)\))?")

_CARDINALITY_RE = re.compile(
    r"^(?P<min>\d*)\.\.(?P<max>\d+|n)(?:\s+PK(?P<pk>[1-9]\d*))?$"
)

_TEXT_PREDICATE_RE = re.compile(r"^\s*(?P<predicate>\S+)(?:\s+@(?P<language>[a-z]{2,3}(?:-[A-Za-z0-9]+)*))?\s*$")

# Literal syntax accepted on text elements: "v", 'v', """v""", '''v''',
# optionally followed by @lang or ^^datatype.
_LITERAL_RE = re.compile(
    r'^(?P<quoted>"""[\s\S]*?"""|\'\'\'[\s\S]*?\'\'\'|"(?:[^"\\]|\\.)*"|\'(?:[^\'\\]|\\.)*\')'
    r'(?:@(?P<language>[a-z]{2,3}(?:-[A-Za-z0-9]+)*)|\^\^(?P<datatype>\S+))?$'
)


@dataclass(frozen=True)
class Label:
    """Semantic tokens extracted from one label."""
    qname: str
    class_marker: Optional[str] = None
    min_count: Optional[int] = None
    max_count: Optional[int] = None
    primary_key: Optional[int] = None
    has_marker: bool = False
    malformed: bool = False

    @property
    def is_bare(self) -> bool:
        return not self.has_marker


@dataclass(frozen=True)
class TextPredicate:
    predicate: str
    language: str = DEFAULT_LANGUAGE


@dataclass(frozen=True)
class LiteralText:
    value: str
    language: Optional[str] = None
    datatype: Optional[str] = None


# ──────────────────────────────────────────────────────────────────
# Qualified names
# ──────────────────────────────────────────────────────────────────

def split_qname(qname: str):
    """Split 'prefix:local' into (prefix, local); prefix is None when absent."""
    match = _QNAME_RE.match(qname or "")
    if not match:
        return None
    return match.group("prefix"), match.group("local")


def resolve_qname(text: str, domain: str, prefixes: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Normalise a label name to 'prefix:local'.

    A missing prefix means the domain prefix. When a prefix map is given the
    prefix must be declared in it. Returns None when the name cannot resolve.
    """
    parts = split_qname(text)
    if parts is None:
        return None
    prefix, local = parts
    if not local:
        return None
    if prefix is None:
        if not domain:
            return None
        prefix = domain
    elif not prefix:
        return None
    if prefixes is not None and prefix not in prefixes:
        return None
    return f"{prefix}:{local}"


def local_name(qname: str) -> str:
    return qname.split(":", 1)[1] if ":" in qname else qname


def prefix_of(qname: str) -> str:
    return qname.split(":", 1)[0] if ":" in qname else ""


# ──────────────────────────────────────────────────────────────────
# Label parsing
# ──────────────────────────────────────────────────────────────────

def _parse_marker(qname: str, marker: str) -> Label:
    marker = marker.strip()
    if marker in CLASS_MARKERS:
        return Label(qname=qname, class_marker=marker, has_marker=True)

    match = _CARDINALITY_RE.match(marker)
    if not match:
        return Label(qname=qname, has_marker=True, malformed=True)

    min_text, max_text, pk_text = match.group("min"), match.group("max"), match.group("pk")
    min_count = int(min_text) if min_text else None
    max_count = None
    if min_count is not None and max_text != "n":
        max_count = int(max_text)
    return Label(
        qname=qname,
        min_count=min_count,
        max_count=max_count,
        primary_key=int(pk_text) if pk_text else None,
        has_marker=True,
    )


def parse_label(text: str) -> Optional[Label]:
    """Parse '<qname> [(<marker>)]'; trailing text after the marker is ignored."""
    if not text:
        return None
    match = _LABEL_RE.match(text)
    if not match:
        return None
    qname = match.group("qname")
    parts = split_qname(qname)
    if parts is None or not parts[1]:
        return None
    marker = match.group("marker")
    if marker is None:
        return Label(qname=qname)
    return _parse_marker(qname, marker)


def parse_text_predicate(text: str) -> Optional[TextPredicate]:
    """Parse a diamond->text arrow label: 'upper:label' or 'upper:description' [@lang]."""
    match = _TEXT_PREDICATE_RE.match(text or "")
    if not match:
        return None
    predicate = match.group("predicate")
    if predicate not in TEXT_PREDICATES:
        return None
    return TextPredicate(predicate=predicate, language=match.group("language") or DEFAULT_LANGUAGE)


def _unquote(quoted: str) -> str:
    if quoted.startswith('"""') or quoted.startswith("'''"):
        return quoted[3:-3]
    body = quoted[1:-1]
    return re.sub(r"\\(.)", lambda m: {"n": "\n", "r": "\r", "t": "\t"}.get(m.group(1), m.group(1)), body)


def parse_literal(text: str) -> Optional[LiteralText]:
    """Parse literal syntax written on a text element ('"Hello"@en', '"42"^^xsd:integer')."""
    match = _LITERAL_RE.match((text or "").strip())
    if not match:
        return None
    return LiteralText(
        value=_unquote(match.group("quoted")),
        language=match.group("language"),
        datatype=match.group("datatype"),
    )
