"""
Sketch Document — canonical value exchanged with the editing layer

A document is the prefix map, the domain prefix, the element map (boxes,
diamonds, arrows, free text and trees keyed by id) and the user's own raw
N-Triples. The canonical JSON encoding of a document is the single persisted
representation; every derived view (N-Triples, Turtle) is recomputed from it.

Elements are immutable dataclasses discriminated by their ``type`` field.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from ontosketch.validate import ValidationError, validate_document


# ──────────────────────────────────────────────────────────────────
# Dataclasses
# ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Rectangle:
    id: str
    x: float
    y: float
    width: float
    height: float
    text: str
    type: str = "rectangle"


@dataclass(frozen=True)
class Diamond:
    id: str
    x: float
    y: float
    width: float
    height: float
    text: str
    type: str = "diamond"


@dataclass(frozen=True)
class Arrow:
    id: str
    x1: float
    y1: float
    x2: float
    y2: float
    text: str
    source: Optional[str] = None
    target: Optional[str] = None
    type: str = "arrow"

    @property
    def is_bound(self) -> bool:
        return self.source is not None and self.target is not None


@dataclass(frozen=True)
class Text:
    id: str
    x: float
    y: float
    text: str
    type: str = "text"


@dataclass(frozen=True)
class TreeItem:
    parent: str
    element: str


@dataclass(frozen=True)
class Tree:
    id: str
    root: str
    items: Tuple[TreeItem, ...] = ()
    type: str = "tree"


Element = Union[Rectangle, Diamond, Arrow, Text, Tree]

ELEMENT_CLASSES = {
    "rectangle": Rectangle,
    "diamond": Diamond,
    "arrow": Arrow,
    "text": Text,
    "tree": Tree,
}


@dataclass(frozen=True)
class Document:
    prefixes: Dict[str, str] = field(default_factory=dict)
    domain: str = ""
    elements: Dict[str, Element] = field(default_factory=dict)
    raw_statements: str = ""


# ──────────────────────────────────────────────────────────────────
# JSON Serialization
# ──────────────────────────────────────────────────────────────────

def element_to_json(element: Element) -> dict:
    if isinstance(element, Tree):
        return {
            "id": element.id,
            "type": element.type,
            "root": element.root,
            "items": [{"parent": i.parent, "element": i.element} for i in element.items],
        }
    return {k: getattr(element, k) for k in element.__dataclass_fields__}


def element_from_json(data: Mapping[str, Any]) -> Element:
    """Build an element from an already validated mapping."""
    if data["type"] == "tree":
        items = tuple(TreeItem(parent=i["parent"], element=i["element"]) for i in data["items"])
        return Tree(id=data["id"], root=data["root"], items=items)
    cls = ELEMENT_CLASSES[data["type"]]
    return cls(**{k: v for k, v in data.items() if k != "type"})


def to_json(doc: Document) -> dict:
    """Serialize a Document to a JSON-compatible dict (wire key names)."""
    return {
        "prefixes": dict(doc.prefixes),
        "domain": doc.domain,
        "elements": {eid: element_to_json(e) for eid, e in doc.elements.items()},
        "rawStatements": doc.raw_statements,
    }


def from_json(data: Mapping[str, Any]) -> Document:
    """Validate a dict (from JSON) and build a Document from it."""
    validate_document(data)
    return Document(
        prefixes=dict(data["prefixes"]),
        domain=data["domain"],
        elements={eid: element_from_json(e) for eid, e in data["elements"].items()},
        raw_statements=data["rawStatements"],
    )


# ──────────────────────────────────────────────────────────────────
# Canonical encoding
# ──────────────────────────────────────────────────────────────────

def canonical_json(value: Any) -> str:
    """Encode a JSON value with every object's keys sorted by code point.

    Compact separators, no ASCII escaping: the output is byte-stable for
    equal values regardless of key insertion order.
    """
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def value_from_object(obj: Any) -> str:
    """Validate a document mapping and return its canonical string."""
    validate_document(obj)
    return canonical_json(obj)


def value_from_json(text: str) -> str:
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"document must be valid JSON: {exc.msg}") from exc
    return value_from_object(obj)


def canonicalize(value: Union[str, Document, Mapping[str, Any]]) -> str:
    """Canonical string for a document given as JSON text, mapping or Document."""
    if isinstance(value, str):
        return value_from_json(value)
    if isinstance(value, Document):
        return value_from_object(to_json(value))
    return value_from_object(value)


def is_canonical(text: str) -> bool:
    return canonicalize(text) == text


def parse(text: str) -> Document:
    """Parse a JSON document string into a validated Document."""
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValidationError(f"document must be valid JSON: {exc.msg}") from exc
    return from_json(obj)


def save_document(doc: Document, path: str) -> None:
    """Write a Document's canonical value to a .json file."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(canonicalize(doc) + "\n", encoding="utf-8")


def load_document(path: str) -> Document:
    """Read a .json file and return a validated Document."""
    return parse(Path(path).read_text(encoding="utf-8"))
