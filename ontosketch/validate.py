"""
Schema validation for sketch documents.

Every check raises ValidationError on the first violation found. Precedence
inside a single object is missing-required-key, then wrong-type, then
extra-key, then value-range; tree cross-references are checked last, once
every element has passed its own checks. Messages are part of the public
contract: callers (the editing layer, tests) match on them verbatim.
"""

from typing import Any, Dict, List, Mapping, Set

ELEMENT_TYPES = ("rectangle", "diamond", "arrow", "text", "tree")

MIN_SHAPE_DIMENSION = 24

DOCUMENT_KEYS = ("prefixes", "domain", "elements", "rawStatements")

SCENE_KEYS = ("x", "y", "k")

# Fixed field order per variant; error messages follow this order.
_NUMBER = "number"
_STRING = "string"
_NULLABLE_STRING = "string or null"
_ITEMS = "items"

ELEMENT_FIELDS: Dict[str, List[tuple]] = {
    "rectangle": [
        ("id", _STRING), ("type", _STRING),
        ("x", _NUMBER), ("y", _NUMBER), ("width", _NUMBER), ("height", _NUMBER),
        ("text", _STRING),
    ],
    "diamond": [
        ("id", _STRING), ("type", _STRING),
        ("x", _NUMBER), ("y", _NUMBER), ("width", _NUMBER), ("height", _NUMBER),
        ("text", _STRING),
    ],
    "arrow": [
        ("id", _STRING), ("type", _STRING),
        ("x1", _NUMBER), ("y1", _NUMBER), ("x2", _NUMBER), ("y2", _NUMBER),
        ("text", _STRING),
        ("source", _NULLABLE_STRING), ("target", _NULLABLE_STRING),
    ],
    "text": [
        ("id", _STRING), ("type", _STRING),
        ("x", _NUMBER), ("y", _NUMBER),
        ("text", _STRING),
    ],
    "tree": [
        ("id", _STRING), ("type", _STRING),
        ("root", _STRING), ("items", _ITEMS),
    ],
}

INVALID_TREE_MESSAGE = (
    "elements['{id}'] has invalid tree structure "
    "(check that root and all items exist, are diamonds, and no cycles exist)"
)


class ValidationError(TypeError):
    """Raised when a document, element or value breaks the schema."""


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_object(value: Any) -> bool:
    return isinstance(value, Mapping)


def _type_name(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if _is_number(value):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, (list, tuple)):
        return "array"
    return "object"


# ──────────────────────────────────────────────────────────────────
# Primitive checks
# ──────────────────────────────────────────────────────────────────

def validate_defined(value: Any, name: str = "object") -> None:
    """Reject None (a missing value)."""
    if value is None:
        raise ValidationError(f"{name} must be defined")


def validate_coordinate(value: Any, name: str = "coordinate") -> None:
    """Require an int or float (bools excluded)."""
    if not _is_number(value):
        raise ValidationError(f"{name} must be a number")


def validate_string(value: Any, name: str = "value") -> None:
    """Require a str."""
    if not isinstance(value, str):
        raise ValidationError(f"{name} must be a string")


def validate_element_type(element_type: Any) -> None:
    """Require one of the known element variants."""
    if not isinstance(element_type, str):
        raise ValidationError("type must be a string")
    if element_type not in ELEMENT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(ELEMENT_TYPES)}")


def validate_has_element_type(element: Any, expected: str, name: str = "element") -> None:
    """Narrow an already validated element to one variant."""
    validate_element(element, name)
    if element["type"] != expected:
        raise ValidationError(f"{name}.type must be '{expected}', got '{element['type']}'")


# ──────────────────────────────────────────────────────────────────
# Elements
# ──────────────────────────────────────────────────────────────────

def _validate_items(items: Any, name: str) -> None:
    if not isinstance(items, list):
        raise ValidationError(f"{name}.items must be an array")
    for i, item in enumerate(items):
        if not _is_object(item):
            raise ValidationError(f"{name}.items[{i}] must be an object")
        if "parent" not in item or "element" not in item:
            raise ValidationError(f"{name}.items[{i}] must have parent and element properties")
        if not isinstance(item["parent"], str):
            raise ValidationError(f"{name}.items[{i}].parent must be a string")
        if not isinstance(item["element"], str):
            raise ValidationError(f"{name}.items[{i}].element must be a string")
        extra = sorted(k for k in item if k not in ("parent", "element"))
        if extra:
            raise ValidationError(f"{name}.items[{i}].{extra[0]} is not a valid field")


def validate_element(element: Any, name: str = "element") -> None:
    """Check one element against its variant's field set and ranges."""
    if not _is_object(element):
        raise ValidationError(f"{name} must be an object")
    if "type" not in element or "id" not in element:
        raise ValidationError(f"{name} must have type and id properties")

    element_type = element["type"]
    if not isinstance(element_type, str) or element_type not in ELEMENT_TYPES:
        raise ValidationError(f"{name}.type must be one of: {', '.join(ELEMENT_TYPES)}")

    fields = ELEMENT_FIELDS[element_type]

    for field_name, _ in fields:
        if field_name not in element:
            raise ValidationError(f"{name}.{field_name} is required")

    for field_name, kind in fields:
        value = element[field_name]
        if kind == _NUMBER and not _is_number(value):
            raise ValidationError(f"{name}.{field_name} must be a number")
        if kind == _STRING and not isinstance(value, str):
            raise ValidationError(f"{name}.{field_name} must be a string")
        if kind == _NULLABLE_STRING and value is not None and not isinstance(value, str):
            raise ValidationError(f"{name}.{field_name} must be a string or null")
        if kind == _ITEMS:
            _validate_items(value, name)

    allowed = {field_name for field_name, _ in fields}
    extra = sorted(k for k in element if k not in allowed)
    if extra:
        raise ValidationError(f"{name}.{extra[0]} is not a valid field")

    if element_type in ("rectangle", "diamond"):
        if abs(element["width"]) < MIN_SHAPE_DIMENSION:
            raise ValidationError(
                f"{name}.width absolute value must be at least {MIN_SHAPE_DIMENSION}px"
            )
        if abs(element["height"]) < MIN_SHAPE_DIMENSION:
            raise ValidationError(
                f"{name}.height absolute value must be at least {MIN_SHAPE_DIMENSION}px"
            )


# ──────────────────────────────────────────────────────────────────
# Tree structure
# ──────────────────────────────────────────────────────────────────

def _is_diamond(elements: Mapping[str, Any], element_id: str) -> bool:
    element = elements.get(element_id)
    return element is not None and element["type"] == "diamond"


def check_tree_structure(elements: Mapping[str, Any], tree: Mapping[str, Any]) -> bool:
    """Return True when a tree's root/items form an acyclic diamond hierarchy.

    Works on raw element mappings so it can run before any model objects exist.
    """
    root = tree["root"]
    if not _is_diamond(elements, root):
        return False

    members: Set[str] = {root}
    members.update(item["element"] for item in tree["items"])

    children: Dict[str, List[str]] = {}
    for item in tree["items"]:
        parent, child = item["parent"], item["element"]
        if not _is_diamond(elements, child):
            return False
        if parent not in members:
            return False
        if parent == child:
            return False
        children.setdefault(parent, []).append(child)

    visited: Set[str] = set()
    on_path: Set[str] = set()
    # Iterative DFS; each stack frame is (node, iterator over its children).
    stack = [(root, iter(children.get(root, [])))]
    visited.add(root)
    on_path.add(root)
    while stack:
        node, pending = stack[-1]
        child = next(pending, None)
        if child is None:
            on_path.discard(node)
            stack.pop()
            continue
        if child in on_path:
            return False
        if child not in visited:
            visited.add(child)
            on_path.add(child)
            stack.append((child, iter(children.get(child, []))))

    return visited == members


def validate_elements(elements: Any) -> None:
    """Check the id -> element map, id agreement and every tree's structure."""
    if not _is_object(elements):
        raise ValidationError("elements must be an object (not an array)")

    for element_id, element in elements.items():
        validate_element(element, f"elements['{element_id}']")
        if element["id"] != element_id:
            raise ValidationError(
                f"elements['{element_id}'].id must match the key '{element_id}'"
            )

    for element_id, element in elements.items():
        if element["type"] == "tree" and not check_tree_structure(elements, element):
            raise ValidationError(INVALID_TREE_MESSAGE.format(id=element_id))


# ──────────────────────────────────────────────────────────────────
# Document-level values
# ──────────────────────────────────────────────────────────────────

def validate_prefixes(prefixes: Any) -> None:
    """Require a mapping of prefix names to namespace strings."""
    if not _is_object(prefixes):
        raise ValidationError("prefixes must be an object (not an array)")
    for prefix, namespace in prefixes.items():
        if not isinstance(prefix, str):
            raise ValidationError(f"prefix key must be a string, got {_type_name(prefix)}")
        if not isinstance(namespace, str):
            raise ValidationError(
                f"prefixes['{prefix}'] must be a string, got {_type_name(namespace)}"
            )


def validate_domain(domain: Any) -> None:
    """Require the domain prefix name to be a string."""
    if not isinstance(domain, str):
        raise ValidationError("domain must be a string")


def validate_raw_statements(raw: Any) -> None:
    """Require the raw N-Triples text to be a string."""
    if not isinstance(raw, str):
        raise ValidationError("rawStatements must be a string")


def validate_scene(scene: Any) -> None:
    """Require an object with numeric x, y and k."""
    if not _is_object(scene):
        raise ValidationError("scene must be an object")
    if any(key not in scene for key in SCENE_KEYS):
        raise ValidationError("scene must have x, y, and k properties")
    for key in SCENE_KEYS:
        if not _is_number(scene[key]):
            raise ValidationError(f"scene.{key} must be a number")
    extra = sorted(k for k in scene if k not in SCENE_KEYS)
    if extra:
        raise ValidationError(f"scene.{extra[0]} is not a valid field")


def validate_document(doc: Any) -> None:
    """Validate a whole document mapping (the JSON-decoded canonical value)."""
    if not _is_object(doc):
        raise ValidationError("document must be an object")

    for key in DOCUMENT_KEYS:
        if key not in doc:
            raise ValidationError(f"document.{key} is required")

    validate_prefixes(doc["prefixes"])
    validate_domain(doc["domain"])
    validate_elements(doc["elements"])
    validate_raw_statements(doc["rawStatements"])

    extra = sorted(k for k in doc if k not in DOCUMENT_KEYS)
    if extra:
        raise ValidationError(f"unexpected key in document: {extra[0]}")
