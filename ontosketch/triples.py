"""
Deterministic statement generator.

Walks a validated element map and derives the ontology statements the sketch
describes, plus an explicit classification for every element so the
rendering layer can dim ignored shapes and flag unparseable labels.

Statements use qualified names throughout; expansion to absolute identifiers
happens only when serializing (see ontosketch.ntriples / ontosketch.turtle).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, List, Mapping, NamedTuple, Optional, Set, Tuple, Union

from ontosketch.document import Arrow, Diamond, Element, Rectangle, Text, Tree
from ontosketch.labels import (
    CLASS_MARKERS,
    parse_label,
    parse_literal,
    parse_text_predicate,
    prefix_of,
    resolve_qname,
)

RDF_TYPE = "rdf:type"
RDF_FIRST = "rdf:first"
RDF_REST = "rdf:rest"
RDF_NIL = "rdf:nil"
XSD_INTEGER = "xsd:integer"

UPPER_ATTRIBUTE = "upper:Attribute"
UPPER_RELATIONSHIP = "upper:Relationship"
UPPER_DOMAIN_MODEL = "upper:DomainModel"
UPPER_DOMAIN = "upper:domain"
UPPER_CLASS = "upper:class"
UPPER_DATATYPE = "upper:datatype"
UPPER_MIN_COUNT = "upper:minCount"
UPPER_MAX_COUNT = "upper:maxCount"
UPPER_PRIMARY_KEY = "upper:primaryKey"
UPPER_PROPERTY = "upper:property"
UPPER_ONE_OF = "upper:oneOf"


# ──────────────────────────────────────────────────────────────────
# Statement model
# ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Literal:
    """RDF literal; datatype is a qualified name."""
    value: str
    datatype: Optional[str] = None
    language: Optional[str] = None


def integer(value: int) -> Literal:
    return Literal(str(value), datatype=XSD_INTEGER)


Object = Union[str, Literal, Tuple[str, ...]]


class Statement(NamedTuple):
    subject: str
    predicate: str
    object: Object


StatementSet = FrozenSet[Statement]


class Classification(str, Enum):
    USED = "used"
    KEYED = "keyed"
    RAW = "raw"
    IGNORED = "ignored"
    INVALID = "invalid"

    @property
    def ignored(self) -> bool:
        """Invalid elements contribute nothing either."""
        return self in (Classification.IGNORED, Classification.INVALID)


@dataclass(frozen=True)
class Generation:
    statements: StatementSet
    classification: Dict[str, Classification]

    def ids(self, kind: Classification) -> Set[str]:
        return {eid for eid, c in self.classification.items() if c is kind}


# ──────────────────────────────────────────────────────────────────
# Element resolution
# ──────────────────────────────────────────────────────────────────

class _Pass:
    """Mutable bookkeeping for a single generate() call."""

    def __init__(self, elements: Mapping[str, Element], domain: str,
                 prefixes: Optional[Mapping[str, str]]):
        self.elements = elements
        self.domain = domain
        self.prefixes = prefixes
        self.statements: Set[Statement] = set()
        self.used: Set[str] = set()
        self.raw: Set[str] = set()
        self.invalid: Set[str] = set()
        # subject qname -> [(k, attribute qname, arrow id)]
        self.primary_keys: Dict[str, List[Tuple[int, str, str]]] = {}

    def add(self, subject: str, predicate: str, obj: Object) -> None:
        self.statements.add(Statement(subject, predicate, obj))

    def resolve(self, name: str) -> Optional[str]:
        return resolve_qname(name, self.domain, self.prefixes)

    def diamond(self, element: Diamond) -> Optional[Tuple[str, str]]:
        """(qname, class marker) for a decorated diamond, else None.

        Bare diamonds are simply ignored; anything unparseable is invalid.
        """
        label = parse_label(element.text)
        if label is None or label.malformed:
            self.invalid.add(element.id)
            return None
        qname = self.resolve(label.qname)
        if qname is None:
            self.invalid.add(element.id)
            return None
        if label.class_marker is None:
            if label.has_marker:
                self.invalid.add(element.id)
            return None
        return qname, label.class_marker

    def rectangle(self, element: Rectangle) -> Optional[str]:
        label = parse_label(element.text)
        if label is None or not label.is_bare:
            return None
        return self.resolve(label.qname)


def _diamond_pass(run: _Pass) -> Dict[str, Tuple[str, str]]:
    resolved: Dict[str, Tuple[str, str]] = {}
    for element in run.elements.values():
        if not isinstance(element, Diamond):
            continue
        info = run.diamond(element)
        if info is None:
            continue
        qname, marker = info
        resolved[element.id] = info
        run.add(qname, RDF_TYPE, CLASS_MARKERS[marker])
        run.used.add(element.id)
    return resolved


def _tree_pass(run: _Pass, diamonds: Dict[str, Tuple[str, str]]) -> None:
    for tree in run.elements.values():
        if not isinstance(tree, Tree):
            continue
        root = diamonds.get(tree.root)
        if root is None:
            run.invalid.add(tree.id)
            continue
        root_qname, marker = root
        if marker == "SC":
            # Sealed class hierarchies carry no statements of their own yet.
            continue
        if marker != "E":
            run.invalid.add(tree.id)
            continue

        values = []
        for item in tree.items:
            value = diamonds.get(item.element)
            if item.parent != tree.root or value is None or value[1] != "V":
                values = None
                break
            values.append(value[0])

        if values is None:
            run.invalid.add(tree.id)
        elif values:
            run.add(root_qname, UPPER_ONE_OF, tuple(values))
            run.used.add(tree.id)


def _attribute(run: _Pass, arrow: Arrow, source: str, target: Rectangle) -> bool:
    label = parse_label(arrow.text)
    arrow_qname = None
    if label is not None and not label.malformed and label.class_marker is None:
        arrow_qname = run.resolve(label.qname)
    datatype = run.rectangle(target)

    if arrow_qname is None:
        run.invalid.add(arrow.id)
    if datatype is None and target.id not in run.used:
        run.invalid.add(target.id)
    if arrow_qname is None or datatype is None:
        return False

    run.add(arrow_qname, RDF_TYPE, UPPER_ATTRIBUTE)
    run.add(arrow_qname, UPPER_DATATYPE, datatype)
    _cardinality(run, arrow_qname, label)
    run.add(source, UPPER_PROPERTY, arrow_qname)
    if label.primary_key is not None:
        run.primary_keys.setdefault(source, []).append((label.primary_key, arrow_qname, arrow.id))
    return True


def _relationship(run: _Pass, arrow: Arrow, source: str, target: str) -> bool:
    label = parse_label(arrow.text)
    arrow_qname = None
    if (label is not None and not label.malformed
            and label.class_marker is None and label.primary_key is None):
        arrow_qname = run.resolve(label.qname)
    if arrow_qname is None:
        run.invalid.add(arrow.id)
        return False

    run.add(arrow_qname, RDF_TYPE, UPPER_RELATIONSHIP)
    run.add(arrow_qname, UPPER_CLASS, target)
    _cardinality(run, arrow_qname, label)
    run.add(source, UPPER_PROPERTY, arrow_qname)
    return True


def _cardinality(run: _Pass, subject: str, label) -> None:
    if label.min_count is None:
        return
    run.add(subject, UPPER_MIN_COUNT, integer(label.min_count))
    if label.max_count is not None:
        run.add(subject, UPPER_MAX_COUNT, integer(label.max_count))


def _annotation(run: _Pass, arrow: Arrow, source: str, target: Text) -> bool:
    predicate = parse_text_predicate(arrow.text)
    if predicate is None:
        run.invalid.add(arrow.id)
        return False
    if not target.text:
        return False
    run.add(source, predicate.predicate, Literal(target.text, language=predicate.language))
    return True


def _text_object(run: _Pass, text: str) -> Optional[Object]:
    stripped = text.strip()
    if stripped.startswith(('"', "'")):
        literal = parse_literal(stripped)
        if literal is None:
            return None
        datatype = None
        if literal.datatype is not None:
            datatype = run.resolve(literal.datatype)
            if datatype is None:
                return None
        return Literal(literal.value, datatype=datatype, language=literal.language)
    return run.resolve(stripped)


def _raw(run: _Pass, arrow: Arrow, source: Text, target: Text) -> None:
    """Text -> text arrows spell out a single statement directly."""
    run.raw.update((arrow.id, source.id, target.id))

    subject = run.resolve(source.text.strip())
    predicate = run.resolve(arrow.text.strip())
    obj = _text_object(run, target.text)

    for part, element in ((subject, source), (predicate, arrow), (obj, target)):
        if part is None:
            run.invalid.add(element.id)
    if subject is None or predicate is None or obj is None:
        return

    run.add(subject, predicate, obj)
    run.used.update((arrow.id, source.id, target.id))


def _arrow_pass(run: _Pass, diamonds: Dict[str, Tuple[str, str]]) -> None:
    for arrow in run.elements.values():
        if not isinstance(arrow, Arrow) or not arrow.is_bound:
            continue
        source = run.elements.get(arrow.source)
        target = run.elements.get(arrow.target)
        if source is None or target is None:
            continue

        if isinstance(source, Text) and isinstance(target, Text):
            _raw(run, arrow, source, target)
            continue

        if not isinstance(source, Diamond) or source.id not in diamonds:
            continue
        subject = diamonds[source.id][0]

        if isinstance(target, Rectangle):
            produced = _attribute(run, arrow, subject, target)
        elif isinstance(target, Diamond):
            if target.id not in diamonds:
                continue
            produced = _relationship(run, arrow, subject, diamonds[target.id][0])
        elif isinstance(target, Text):
            produced = _annotation(run, arrow, subject, target)
        else:
            produced = False

        if produced:
            run.used.update((arrow.id, source.id, target.id))


def _primary_key_pass(run: _Pass) -> Set[str]:
    """Emit one ordered key list per subject.

    Positions must run 1, 2, 3...; the first arrow breaking the sequence and
    every arrow after it are flagged invalid, but the list is still emitted.
    """
    for subject, keys in run.primary_keys.items():
        ordered = sorted(keys)
        broken = False
        for expected, (k, _, arrow_id) in enumerate(ordered, start=1):
            broken = broken or k != expected
            if broken:
                run.invalid.add(arrow_id)
        run.add(subject, UPPER_PRIMARY_KEY, tuple(qname for _, qname, _ in ordered))
    return set(run.primary_keys)


# ──────────────────────────────────────────────────────────────────
# Public API
# ──────────────────────────────────────────────────────────────────

def domain_statements(domain: str, prefixes: Optional[Mapping[str, str]] = None) -> StatementSet:
    if not domain or (prefixes is not None and domain not in prefixes):
        return frozenset()
    subject = f"{domain}:"
    return frozenset({
        Statement(subject, RDF_TYPE, UPPER_DOMAIN_MODEL),
        Statement(subject, UPPER_DOMAIN, Literal(domain)),
    })


def _names(statement: Statement) -> List[str]:
    names = [statement.subject, statement.predicate]
    obj = statement.object
    if isinstance(obj, Literal):
        if obj.datatype:
            names.append(obj.datatype)
    elif isinstance(obj, tuple):
        names.extend(obj)
    else:
        names.append(obj)
    return names


def resolvable(statement: Statement, prefixes: Mapping[str, str]) -> bool:
    """True when every name in the statement uses a declared prefix."""
    return all(prefix_of(name) in prefixes for name in _names(statement))


def generate(elements: Mapping[str, Element], domain: str,
             prefixes: Optional[Mapping[str, str]] = None) -> Generation:
    """Derive statements and per-element classification from an element map.

    When a prefix map is given, names whose prefix is not declared in it are
    treated as unparseable, and statements the passes emit with an undeclared
    vocabulary prefix (rdf, upper, xsd) are dropped so every view renders.
    """
    run = _Pass(elements, domain, prefixes)
    run.statements.update(domain_statements(domain, prefixes))

    diamonds = _diamond_pass(run)
    _tree_pass(run, diamonds)
    _arrow_pass(run, diamonds)
    keyed_subjects = _primary_key_pass(run)

    classification: Dict[str, Classification] = {}
    for element_id, element in elements.items():
        if element_id in run.invalid:
            kind = Classification.INVALID
        elif element_id in run.raw:
            kind = Classification.RAW
        elif element_id in run.used:
            kind = Classification.USED
            if (isinstance(element, Diamond)
                    and diamonds.get(element_id, ("",))[0] in keyed_subjects):
                kind = Classification.KEYED
        else:
            kind = Classification.IGNORED
        classification[element_id] = kind

    statements = run.statements
    if prefixes is not None:
        statements = {s for s in statements if resolvable(s, prefixes)}
    return Generation(statements=frozenset(statements), classification=classification)


def generate_statements(elements: Mapping[str, Element], domain: str,
                        prefixes: Optional[Mapping[str, str]] = None) -> StatementSet:
    return generate(elements, domain, prefixes).statements

