#!/usr/bin/env python3
"""
Sketch document -> ontology compiler.

Runs the whole pipeline on one document: validate, generate statements from
the elements, parse the raw N-Triples, merge (exact duplicates collapse) and
render both the flat N-Triples list and the grouped Turtle blocks.

Usage:
    python -m ontosketch.compile_ontology validate  movie.json
    python -m ontosketch.compile_ontology canonical movie.json
    python -m ontosketch.compile_ontology ntriples  movie.json
    python -m ontosketch.compile_ontology turtle    movie.json -o movie.ttl
    python -m ontosketch.compile_ontology classify  movie.json
"""

import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Union

from ontosketch.document import Document, canonicalize, parse
from ontosketch.ntriples import StatementParseError, UnresolvedPrefixError, parse_raw_statements, to_ntriples
from ontosketch.triples import Classification, StatementSet, generate
from ontosketch.turtle import to_turtle
from ontosketch.validate import ValidationError

COMPILE_ERRORS = (ValidationError, StatementParseError, UnresolvedPrefixError)


@dataclass(frozen=True)
class CompiledDocument:
    canonical: str
    document: Document
    generated: StatementSet
    raw: StatementSet
    classification: Dict[str, Classification]

    @property
    def statements(self) -> StatementSet:
        """Generated and raw statements merged; identical triples appear once."""
        return self.generated | self.raw

    @property
    def ntriples(self) -> str:
        return to_ntriples(self.statements, self.document.prefixes)

    @property
    def turtle(self) -> str:
        return to_turtle(self.statements, self.document.prefixes)

    def classification_json(self) -> Dict[str, str]:
        return {eid: kind.value for eid, kind in sorted(self.classification.items())}


def compile_document(value: Union[str, Document, Mapping[str, Any]]) -> CompiledDocument:
    """Validate a document (JSON text, mapping or Document) and derive its statements.

    Raises ValidationError for a malformed document and StatementParseError
    for unusable raw statements. Both views render for any accepted document.
    """
    canonical = canonicalize(value)
    doc = parse(canonical)

    generation = generate(doc.elements, doc.domain, doc.prefixes)
    raw = parse_raw_statements(doc.raw_statements, doc.prefixes)
    return CompiledDocument(
        canonical=canonical,
        document=doc,
        generated=generation.statements,
        raw=raw,
        classification=generation.classification,
    )


def compile_file(path: str) -> CompiledDocument:
    return compile_document(Path(path).read_text(encoding="utf-8"))


# ──────────────────────────────────────────────────────────────────
# CLI
# ──────────────────────────────────────────────────────────────────

def _render(command: str, compiled: CompiledDocument) -> str:
    if command == "canonical":
        return compiled.canonical + "\n"
    if command == "ntriples":
        return compiled.ntriples
    if command == "turtle":
        return compiled.turtle
    if command == "classify":
        return json.dumps(compiled.classification_json(), indent=2) + "\n"
    return ""


def main(argv=None) -> int:
    import argparse
    parser = argparse.ArgumentParser(description="Compile sketch documents into an ontology")
    sub = parser.add_subparsers(dest="command")

    for name, help_text in (
        ("validate", "Check a document file and report the first violation"),
        ("canonical", "Print the canonical JSON encoding of a document"),
        ("ntriples", "Print the merged statements as N-Triples"),
        ("turtle", "Print the merged statements as grouped Turtle blocks"),
        ("classify", "Print the per-element classification as JSON"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("file", help="Path to a document .json file")
        if name != "validate":
            cmd.add_argument("--output", "-o", help="Write to this path instead of stdout")

    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    if not Path(args.file).is_file():
        print(f"Error: Input file not found: {args.file}", file=sys.stderr)
        return 1

    try:
        compiled = compile_file(args.file)
        output = _render(args.command, compiled)
    except COMPILE_ERRORS as exc:
        print(f"[ontosketch] {args.file}: {exc}", file=sys.stderr)
        return 1

    if args.command == "validate":
        counts = {}
        for kind in compiled.classification.values():
            counts[kind.value] = counts.get(kind.value, 0) + 1
        summary = ", ".join(f"{n} {k}" for k, n in sorted(counts.items())) or "no elements"
        print(f"[ontosketch] {args.file}: valid ({summary})", file=sys.stderr)
        return 0

    if args.output:
        out = Path(args.output)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(output, encoding="utf-8")
        print(f"[ontosketch] {args.command} written to {out}", file=sys.stderr)
    else:
        sys.stdout.write(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
