"""Shared fixtures: a default prefix map and a small document builder."""

import copy

import pytest

from ontosketch.document import from_json

DEFAULT_PREFIXES = {
    "test": "https://github.com/theengineear/onto/test#",
    "rdf": "http://www.w3.org/1999/02/22-rdf-syntax-ns#",
    "upper": "https://github.com/theengineear/ns/upper#",
    "xsd": "http://www.w3.org/2001/XMLSchema#",
}

EXTRA_PREFIXES = {
    "dcterms": "http://purl.org/dc/terms/",
    "rdfs": "http://www.w3.org/2000/01/rdf-schema#",
}


class Sketch:
    """Builds document mappings element by element, the way the editor would."""

    def __init__(self, domain="test", prefixes=None):
        self.domain = domain
        self.prefixes = dict(DEFAULT_PREFIXES if prefixes is None else prefixes)
        self.elements = {}
        self.raw_statements = ""

    def _add(self, element):
        self.elements[element["id"]] = element
        return element["id"]

    def diamond(self, eid, text, x=10, y=10, width=100, height=100):
        return self._add({"id": eid, "type": "diamond", "x": x, "y": y,
                          "width": width, "height": height, "text": text})

    def rectangle(self, eid, text, x=200, y=10, width=100, height=60):
        return self._add({"id": eid, "type": "rectangle", "x": x, "y": y,
                          "width": width, "height": height, "text": text})

    def text(self, eid, text, x=0, y=0):
        return self._add({"id": eid, "type": "text", "x": x, "y": y, "text": text})

    def arrow(self, eid, text, source=None, target=None):
        return self._add({"id": eid, "type": "arrow", "x1": 0, "y1": 0, "x2": 100, "y2": 0,
                          "text": text, "source": source, "target": target})

    def tree(self, eid, root, items):
        return self._add({"id": eid, "type": "tree", "root": root,
                          "items": [{"parent": p, "element": e} for p, e in items]})

    def document(self):
        return copy.deepcopy({
            "prefixes": self.prefixes,
            "domain": self.domain,
            "elements": self.elements,
            "rawStatements": self.raw_statements,
        })

    def model(self):
        return from_json(self.document())


@pytest.fixture
def sketch():
    return Sketch()


@pytest.fixture
def movie_sketch():
    """Movie (DC) --title (1..1 PK1)--> xsd:string."""
    s = Sketch()
    s.diamond("diamond-1", "test:Movie (DC)")
    s.rectangle("rectangle-1", "xsd:string")
    s.arrow("arrow-1", "test:title (1..1 PK1)", "diamond-1", "rectangle-1")
    return s


@pytest.fixture
def default_doc():
    return Sketch().document()
