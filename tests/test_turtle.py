"""Grouped Turtle block output."""

import textwrap

import pytest

from conftest import DEFAULT_PREFIXES, EXTRA_PREFIXES, Sketch

from ontosketch.compile_ontology import compile_document
from ontosketch.ntriples import UnresolvedPrefixError
from ontosketch.triples import Literal, Statement, integer
from ontosketch.turtle import predicate_sort_key, render_object, subject_sort_key, to_turtle

TEST = "https://github.com/theengineear/onto/test#"


def block(text):
    return textwrap.dedent(text).lstrip("\n")


def turtle(sketch):
    return compile_document(sketch.document()).turtle


class TestDocuments:

    def test_relationship_and_attribute(self):
        s = Sketch()
        s.diamond("diamond-1", "test:Movie (DC)")
        s.diamond("diamond-2", "test:Person (DC)")
        s.rectangle("rectangle-1", "xsd:string")
        s.arrow("arrow-1", "test:directedBy (1..1)", "diamond-1", "diamond-2")
        s.arrow("arrow-2", "test:name (1..1)", "diamond-2", "rectangle-1")

        assert turtle(s) == block("""
            @prefix rdf:   <http://www.w3.org/1999/02/22-rdf-syntax-ns#> .
            @prefix test:  <https://github.com/theengineear/onto/test#> .
            @prefix upper: <https://github.com/theengineear/ns/upper#> .
            @prefix xsd:   <http://www.w3.org/2001/XMLSchema#> .

            test:
                a            upper:DomainModel ;
                upper:domain "test" ;
            .

            test:directedBy
                a              upper:Relationship ;
                upper:class    test:Person ;
                upper:minCount 1 ;
                upper:maxCount 1 ;
            .

            test:Movie
                a              upper:DirectClass ;
                upper:property test:directedBy ;
            .

            test:name
                a              upper:Attribute ;
                upper:datatype xsd:string ;
                upper:minCount 1 ;
                upper:maxCount 1 ;
            .

            test:Person
                a              upper:DirectClass ;
                upper:property test:name ;
            .
        """)

    def test_primary_key(self):
        s = Sketch()
        s.diamond("diamond-1", "test:Movie (DC)")
        s.rectangle("rectangle-1", "xsd:string")
        s.rectangle("rectangle-2", "xsd:integer")
        s.arrow("arrow-1", "test:title (1..1 PK1)", "diamond-1", "rectangle-1")
        s.arrow("arrow-2", "test:year (1..1 PK2)", "diamond-1", "rectangle-2")

        assert turtle(s) == block("""
            @prefix rdf:   <http://www.w3.org/1999/02/22-rdf-syntax-ns#> .
            @prefix test:  <https://github.com/theengineear/onto/test#> .
            @prefix upper: <https://github.com/theengineear/ns/upper#> .
            @prefix xsd:   <http://www.w3.org/2001/XMLSchema#> .

            test:
                a            upper:DomainModel ;
                upper:domain "test" ;
            .

            test:Movie
                a                upper:DirectClass ;
                upper:primaryKey ( test:title test:year ) ;
                upper:property   test:title ;
                upper:property   test:year ;
            .

            test:title
                a              upper:Attribute ;
                upper:datatype xsd:string ;
                upper:minCount 1 ;
                upper:maxCount 1 ;
            .

            test:year
                a              upper:Attribute ;
                upper:datatype xsd:integer ;
                upper:minCount 1 ;
                upper:maxCount 1 ;
            .
        """)

    def test_unbounded_cardinality(self):
        s = Sketch()
        s.diamond("diamond-1", "test:Movie (DC)")
        s.diamond("diamond-2", "test:Actor (DC)")
        s.rectangle("rectangle-1", "xsd:string")
        s.arrow("arrow-1", "test:hasActor (1..n)", "diamond-1", "diamond-2")
        s.arrow("arrow-2", "test:name (1..n)", "diamond-2", "rectangle-1")

        assert turtle(s) == block("""
            @prefix rdf:   <http://www.w3.org/1999/02/22-rdf-syntax-ns#> .
            @prefix test:  <https://github.com/theengineear/onto/test#> .
            @prefix upper: <https://github.com/theengineear/ns/upper#> .
            @prefix xsd:   <http://www.w3.org/2001/XMLSchema#> .

            test:
                a            upper:DomainModel ;
                upper:domain "test" ;
            .

            test:Actor
                a              upper:DirectClass ;
                upper:property test:name ;
            .

            test:hasActor
                a              upper:Relationship ;
                upper:class    test:Actor ;
                upper:minCount 1 ;
            .

            test:Movie
                a              upper:DirectClass ;
                upper:property test:hasActor ;
            .

            test:name
                a              upper:Attribute ;
                upper:datatype xsd:string ;
                upper:minCount 1 ;
            .
        """)

    def test_raw_statements_follow_ontology_predicates(self):
        s = Sketch(prefixes={**DEFAULT_PREFIXES, **EXTRA_PREFIXES})
        s.diamond("diamond-1", "test:Movie (DC)")
        s.rectangle("rectangle-1", "xsd:string")
        s.arrow("arrow-1", "test:title (1..1)", "diamond-1", "rectangle-1")
        s.raw_statements = (
            f'<{TEST}Movie> <http://www.w3.org/2000/01/rdf-schema#comment> "Represents a movie entity" .\n'
            f'<{TEST}Movie> <http://purl.org/dc/terms/creator> "John Doe" .\n'
        )

        assert turtle(s) == block("""
            @prefix dcterms: <http://purl.org/dc/terms/> .
            @prefix rdf:     <http://www.w3.org/1999/02/22-rdf-syntax-ns#> .
            @prefix rdfs:    <http://www.w3.org/2000/01/rdf-schema#> .
            @prefix test:    <https://github.com/theengineear/onto/test#> .
            @prefix upper:   <https://github.com/theengineear/ns/upper#> .
            @prefix xsd:     <http://www.w3.org/2001/XMLSchema#> .

            test:
                a            upper:DomainModel ;
                upper:domain "test" ;
            .

            test:Movie
                a               upper:DirectClass ;
                upper:property  test:title ;
                dcterms:creator "John Doe" ;
                rdfs:comment    "Represents a movie entity" ;
            .

            test:title
                a              upper:Attribute ;
                upper:datatype xsd:string ;
                upper:minCount 1 ;
                upper:maxCount 1 ;
            .
        """)

    def test_duplicate_raw_statement_appears_once(self):
        s = Sketch(prefixes={**DEFAULT_PREFIXES, **EXTRA_PREFIXES})
        s.diamond("diamond-1", "test:Person (DC)")
        s.raw_statements = (
            f"<{TEST}Person> <http://www.w3.org/1999/02/22-rdf-syntax-ns#type> "
            f"<https://github.com/theengineear/ns/upper#DirectClass> .\n"
            f'<{TEST}Person> <http://www.w3.org/2000/01/rdf-schema#label> "Person Class" .\n'
        )
        out = turtle(s)
        assert out.count("upper:DirectClass") == 1
        assert '    rdfs:label "Person Class" ;\n' in out

    def test_only_referenced_prefixes_are_declared(self):
        s = Sketch(prefixes={**DEFAULT_PREFIXES, **EXTRA_PREFIXES})
        s.diamond("diamond-1", "test:Movie (DC)")
        out = turtle(s)
        assert "@prefix rdfs:" not in out
        assert "@prefix xsd:" not in out
        assert out.startswith("@prefix rdf:   <")


class TestRendering:

    def test_empty(self):
        assert to_turtle([], DEFAULT_PREFIXES) == ""

    def test_objects(self):
        assert render_object("test:Movie") == "test:Movie"
        assert render_object(integer(3)) == "3"
        assert render_object(Literal("-1.5", "xsd:decimal")) == "-1.5"
        assert render_object(Literal("true", "xsd:boolean")) == "true"
        assert render_object(Literal("abc", "xsd:integer")) == '"abc"^^xsd:integer'
        assert render_object(Literal("2024-01-01", "xsd:date")) == '"2024-01-01"^^xsd:date'
        assert render_object(Literal("Film", language="fr")) == '"Film"@fr'
        assert render_object(Literal('say "hi"')) == '"say \\"hi\\""'
        assert render_object(("test:a", "test:b")) == "( test:a test:b )"

    def test_multiline_literal(self):
        assert render_object(Literal("one\ntwo")) == '"""\n        one\n        two\n        """'

    def test_long_typed_literal_is_wrapped(self):
        words = ["lorem"] * 20
        assert render_object(Literal(" ".join(words), "xsd:string")) == (
            '"""\n'
            f'        {" ".join(words[:13])}\n'
            f'        {" ".join(words[13:])}\n'
            '        """^^xsd:string'
        )

    def test_long_plain_literal_stays_on_one_line(self):
        value = " ".join(["lorem"] * 20)
        assert render_object(Literal(value)) == f'"{value}"'
        assert render_object(Literal(value, language="en")) == f'"{value}"@en'

    def test_control_characters_are_escaped(self):
        assert render_object(Literal("a\tb\rc")) == '"a\\tb\\rc"'

    def test_datatype_prefix_only_declared_when_rendered(self):
        out = to_turtle([Statement("test:a", "test:n", integer(1))], DEFAULT_PREFIXES)
        assert "@prefix xsd:" not in out
        out = to_turtle([Statement("test:a", "test:d", Literal("x", "xsd:date"))], DEFAULT_PREFIXES)
        assert "@prefix xsd:" in out

    def test_undeclared_prefix(self):
        with pytest.raises(UnresolvedPrefixError, match="owl"):
            to_turtle([Statement("test:a", "rdf:type", "owl:Class")], DEFAULT_PREFIXES)

    def test_subject_order_is_case_insensitive(self):
        subjects = ["test:beta", "test:Alpha", "test:", "test:Gamma"]
        assert sorted(subjects, key=subject_sort_key) == ["test:", "test:Alpha", "test:beta", "test:Gamma"]

    def test_predicate_order(self):
        keys = ["rdfs:label", "upper:property", "Zed:x", "rdf:type", "upper:class"]
        ordered = sorted(keys, key=lambda p: predicate_sort_key(p, ""))
        assert ordered == ["rdf:type", "upper:class", "upper:property", "Zed:x", "rdfs:label"]

    def test_block_layout(self):
        out = to_turtle([
            Statement("test:a", "rdf:type", "upper:Attribute"),
            Statement("test:a", "upper:datatype", "xsd:string"),
        ], DEFAULT_PREFIXES)
        assert out.endswith("test:a\n    a              upper:Attribute ;\n    upper:datatype xsd:string ;\n.\n")
