import logging

import pytest
from rdflib import RDF, URIRef

from ontograph.errors import OntologyLoadError
from ontograph.models import GraphRequest, CLASS, DATATYPE, UNION, RESTRICTION
from ontograph.ontology_processor import BlankNodeIds, load_ontology, select_format
from ontograph.utils import get_qname

FIVE_CLASS_TTL = """@prefix owl: <http://www.w3.org/2002/07/owl#> .
@prefix rdf: <http://www.w3.org/1999/02/22-rdf-syntax-ns#> .
@prefix rdfs: <http://www.w3.org/2000/01/rdf-schema#> .
@prefix xsd: <http://www.w3.org/2001/XMLSchema#> .
@prefix test: <http://purl.org/ninepts/test#> .
@prefix ninepts: <http://purl.org/ninepts/> .

<http://purl.org/ninepts/test> a owl:Ontology .
test:Animal a owl:Class .
test:Dog a owl:Class ; rdfs:subClassOf test:Animal .
test:Cat a owl:Class ; rdfs:subClassOf test:Animal .
ninepts:Pet a owl:Class .
ninepts:Owner a owl:Class .
"""

DEFAULT_PREFIX_TTL = """@prefix : <http://example.org/zoo#> .
@prefix owl: <http://www.w3.org/2002/07/owl#> .

:Dog a owl:Class .
<http://elsewhere.org/Cat> a owl:Class .
"""

EXPRESSIONS_TTL = """
test:Pet a owl:Class ; owl:equivalentClass [ a owl:Class ; owl:unionOf ( test:Cat test:Dog ) ] .
test:Cat a owl:Class ;
    rdfs:subClassOf [ a owl:Restriction ; owl:onProperty test:eats ; owl:someValuesFrom test:Fish ] ,
                    [ a owl:Restriction ; owl:onProperty test:legs ; owl:cardinality 4 ] .
test:Dog a owl:Class .
test:Fish a owl:Class .
test:eats a owl:ObjectProperty .
test:legs a owl:DatatypeProperty .
"""

RDFXML = """<?xml version="1.0"?>
<rdf:RDF xmlns:rdf="http://www.w3.org/1999/02/22-rdf-syntax-ns#"
         xmlns:owl="http://www.w3.org/2002/07/owl#"
         xmlns:rdfs="http://www.w3.org/2000/01/rdf-schema#">
  <owl:Ontology rdf:about="http://example.org/zoo"/>
  <owl:Class rdf:about="http://example.org/zoo#Animal"/>
  <owl:Class rdf:about="http://example.org/zoo#Dog">
    <rdfs:subClassOf rdf:resource="http://example.org/zoo#Animal"/>
  </owl:Class>
</rdf:RDF>
"""

FUNCTIONAL = """Prefix(:=<http://example.org/zoo#>)
Prefix(owl:=<http://www.w3.org/2002/07/owl#>)
Ontology(<http://example.org/zoo>
Declaration(Class(:Animal))
Declaration(Class(:Dog))
SubClassOf(:Dog :Animal)
)
"""


@pytest.mark.parametrize("file_name, expected", [
    ("a.ttl", "turtle"),
    ("a.TTL", "turtle"),
    ("a.nt", "nt"),
    ("a.jsonld", "json-ld"),
    ("a.owl", "xml"),
    ("a.rdf", "xml"),
    ("a.ofn", "ofn"),
    ("a.trig", "trig"),
])
def test_parser_selected_by_suffix(file_name, expected):
    assert select_format(file_name) == expected


def test_media_type_used_for_unknown_suffix():
    assert select_format("upload.data", "text/turtle; charset=utf-8") == "turtle"


def test_unsupported_suffix_fails():
    request = GraphRequest(title="T", file_name="onto.xyz", file_data=b"whatever")
    with pytest.raises(OntologyLoadError, match="Unsupported ontology file type"):
        load_ontology(request)


def test_empty_payload_fails():
    request = GraphRequest(title="T", file_name="onto.ttl", file_data=b"   ")
    with pytest.raises(OntologyLoadError, match="empty"):
        load_ontology(request)


def test_malformed_turtle_fails(make_request):
    with pytest.raises(OntologyLoadError, match="Failed to load or parse ontology from bad.ttl"):
        load_ontology(make_request("<http://example.org/a> <http://example.org/b> .", file_name="bad.ttl"))


def test_undecodable_text_fails():
    request = GraphRequest(title="T", file_name="onto.ttl", file_data=b"\xff\xfe\xfa not utf-8")
    with pytest.raises(OntologyLoadError, match="not valid UTF-8"):
        load_ontology(request)


def test_prefixes_and_classes(load_view):
    view = load_view(FIVE_CLASS_TTL)
    assert [p for p, _ in view.prefixes] == ["ninepts", "owl", "rdf", "rdfs", "test", "xsd"]
    assert view.ontology_uri == "http://purl.org/ninepts/test"
    assert [view.qname(c) for c in view.classes] == [
        "ninepts:Owner", "ninepts:Pet", "test:Animal", "test:Cat", "test:Dog"
    ]


def test_default_prefix_and_undeclared_namespace(load_view, caplog):
    with caplog.at_level(logging.WARNING, logger="onto2graphml"):
        view = load_view(DEFAULT_PREFIX_TTL)
    assert view.qname(URIRef("http://example.org/zoo#Dog")) == ":Dog"
    assert view.qname(URIRef("http://elsewhere.org/Cat")) == "http://elsewhere.org/Cat"
    assert view.ontology_uri is None
    assert "No ontology IRI found" in caplog.text
    # core prefixes are always listed
    assert {"owl", "rdf", "rdfs", "xsd"} <= {p for p, _ in view.prefixes}


def test_get_qname_prefers_longest_namespace():
    prefix_map = {"http://purl.org/ninepts/": "ninepts", "http://purl.org/ninepts/test#": "test"}
    assert get_qname(URIRef("http://purl.org/ninepts/test#Dog"), prefix_map) == "test:Dog"
    assert get_qname(URIRef("http://purl.org/ninepts/Pet"), prefix_map) == "ninepts:Pet"
    assert get_qname(None, prefix_map) == "INVALID_URI"


def test_rdfxml_payload(make_request):
    view = load_ontology(make_request(RDFXML, file_name="zoo.owl"))
    assert [str(c) for c in view.classes] == ["http://example.org/zoo#Animal", "http://example.org/zoo#Dog"]
    assert view.ontology_uri == "http://example.org/zoo"


def test_functional_syntax_payload(make_request):
    view = load_ontology(make_request(FUNCTIONAL, file_name="zoo.ofn"))
    assert {str(c) for c in view.classes} == {"http://example.org/zoo#Animal", "http://example.org/zoo#Dog"}
    assert view.ontology_uri == "http://example.org/zoo"
    assert ("", "http://example.org/zoo#") in view.prefixes
    assert view.qname(URIRef("http://example.org/zoo#Dog")) == ":Dog"


def test_reasoning_request_is_only_logged(make_request, caplog):
    with caplog.at_level(logging.WARNING, logger="onto2graphml"):
        view = load_ontology(make_request(FIVE_CLASS_TTL, reasoning="reasoningTrue"))
    assert "Reasoning requested" in caplog.text
    assert len(view.classes) == 5


def test_blank_node_ids_are_monotonic_and_remember_owner():
    ids = BlankNodeIds()
    assert ids.id_for("a", "test:A") == "bnode_1"
    assert ids.id_for("b", "test:B") == "bnode_2"
    assert ids.id_for("a", "test:C") == "bnode_1"
    assert ids.owners == {"bnode_1": "test:A", "bnode_2": "test:B"}


def test_expression_trees(load_view):
    view = load_view(EXPRESSIONS_TTL)
    ids = BlankNodeIds()
    pet = URIRef("http://purl.org/ninepts/test#Pet")
    union = view.expression(view.graph.value(pet, URIRef("http://www.w3.org/2002/07/owl#equivalentClass")),
                            ids, "test:Pet")
    assert union.kind == UNION
    assert union.id == "bnode_1"
    assert [(role, op.id, op.kind) for role, op in union.operands] == [
        ("member", "test:Cat", CLASS), ("member", "test:Dog", CLASS)
    ]

    cat = URIRef("http://purl.org/ninepts/test#Cat")
    restrictions = [view.expression(r, ids, "test:Cat") for r in
                    view.sorted_objects(cat, URIRef("http://www.w3.org/2000/01/rdf-schema#subClassOf"))]
    assert [r.kind for r in restrictions] == [RESTRICTION, RESTRICTION]
    assert [r.label for r in restrictions] == [
        "Restriction:\ntest:eats some test:Fish",
        "Restriction:\ntest:legs exactly 4",
    ]
    assert [(role, op.id) for role, op in restrictions[0].operands] == [("someValuesFrom", "test:Fish")]


def test_datatypes_are_recognized(load_view):
    view = load_view(FIVE_CLASS_TTL)
    assert view.named(URIRef("http://www.w3.org/2001/XMLSchema#string")).kind == DATATYPE
    assert view.named(URIRef("http://www.w3.org/2000/01/rdf-schema#Literal")).kind == DATATYPE


def test_blank_nodes_with_equal_expressions_are_ordered_by_content(load_view):
    has = URIRef("http://example.org/has")
    for _ in range(10):
        view = load_view("ex:s ex:has [ a ex:Dog ] , [ a ex:Cat ] .")
        first, second = view.sorted_objects(URIRef("http://example.org/s"), has)
        assert view.sort_key(first) == view.sort_key(second)
        assert view.graph.value(first, RDF.type) == URIRef("http://example.org/Cat")
        assert view.order_key(first) == ("[]", "[rdf:type ex:Cat]")
