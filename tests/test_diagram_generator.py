import xml.etree.ElementTree as ET
from datetime import date

import pytest

from ontograph import generate_graphml
from ontograph.errors import InternalBuildError, OntologyLoadError
from ontograph.onto2graphml import main

GRAPHML = "{http://graphml.graphdrawing.org/xmlns}"
YED = "{http://www.yworks.com/xml/graphml}"
GENERATED = date(2024, 5, 1)

FIVE_CLASS_TTL = """@prefix owl: <http://www.w3.org/2002/07/owl#> .
@prefix rdf: <http://www.w3.org/1999/02/22-rdf-syntax-ns#> .
@prefix rdfs: <http://www.w3.org/2000/01/rdf-schema#> .
@prefix xsd: <http://www.w3.org/2001/XMLSchema#> .
@prefix test: <http://purl.org/ninepts/test#> .
@prefix ninepts: <http://purl.org/ninepts/> .

<http://purl.org/ninepts/test> a owl:Ontology .
test:Animal a owl:Class .
test:Dog a owl:Class ; rdfs:subClassOf test:Animal .
test:Puppy a owl:Class ; rdfs:subClassOf test:Dog .
test:Cat a owl:Class ; rdfs:subClassOf test:Animal, ninepts:Pet .
ninepts:Pet a owl:Class .
"""

FIVE_CLASS_PREFIXES = [
    "ninepts: http://purl.org/ninepts/",
    "owl: http://www.w3.org/2002/07/owl#",
    "rdf: http://www.w3.org/1999/02/22-rdf-syntax-ns#",
    "rdfs: http://www.w3.org/2000/01/rdf-schema#",
    "test: http://purl.org/ninepts/test#",
    "xsd: http://www.w3.org/2001/XMLSchema#",
]

PROPERTIES_TTL = """
test:Animal a owl:Class .
test:name a owl:DatatypeProperty, owl:FunctionalProperty ; rdfs:domain test:Animal ; rdfs:range xsd:string .
test:nickname a owl:DatatypeProperty ; rdfs:domain test:Animal ; rdfs:range xsd:string .
test:comment a owl:DatatypeProperty ; rdfs:domain test:Animal ; rdfs:range rdfs:Literal .
"""


def top_level(output):
    graph = ET.fromstring(output.encode("utf-8")).find(f"{GRAPHML}graph")
    return graph.findall(f"{GRAPHML}node"), graph.findall(f"{GRAPHML}edge")


def topology(output):
    nodes, edges = top_level(output)
    return [n.get("id") for n in nodes], [(e.get("id"), e.get("source"), e.get("target")) for e in edges]


def prefix_lines(output):
    root = ET.fromstring(output.encode("utf-8"))
    node = next(n for n in root.iter(f"{GRAPHML}node") if n.get("id") == "prefixes::n0")
    return node.find(f".//{YED}NodeLabel").text.splitlines()


@pytest.mark.parametrize("notation", ["custom", "graffoo", "vowl", "uml"])
def test_five_classes(make_request, notation):
    output = generate_graphml(make_request(FIVE_CLASS_TTL, notation=notation), GENERATED)
    nodes, edges = top_level(output)
    assert len(nodes) == 7
    assert len(edges) == 4
    assert prefix_lines(output) == FIVE_CLASS_PREFIXES
    assert "Ontology URI:  http://purl.org/ninepts/test" in output
    assert "Generated:  2024-05-01" in output


def test_five_classes_hierarchy(make_request):
    output = generate_graphml(make_request(FIVE_CLASS_TTL, title="Test Classes", notation="custom"), GENERATED)
    assert "Title:  Test Classes" in output
    node_ids, edges = topology(output)
    assert node_ids == ["title", "prefixes", "ninepts:Pet", "test:Animal", "test:Cat", "test:Dog", "test:Puppy"]
    # one edge per direct parent, nothing inferred
    assert edges == [
        ("test:Cat_subClassOf_ninepts:Pet", "test:Cat", "ninepts:Pet"),
        ("test:Cat_subClassOf_test:Animal", "test:Cat", "test:Animal"),
        ("test:Dog_subClassOf_test:Animal", "test:Dog", "test:Animal"),
        ("test:Puppy_subClassOf_test:Dog", "test:Puppy", "test:Dog"),
    ]
    assert "test:Puppy_subClassOf_test:Animal" not in output


def test_notations_share_the_topology(make_request):
    custom = generate_graphml(make_request(FIVE_CLASS_TTL, notation="custom"), GENERATED)
    vowl = generate_graphml(make_request(FIVE_CLASS_TTL, notation="vowl"), GENERATED)
    assert topology(custom) == topology(vowl)


def test_missing_ontology_uri(make_request):
    output = generate_graphml(make_request("test:Animal a owl:Class ."), GENERATED)
    assert "Ontology URI:  None defined" in output


def test_output_is_repeatable(make_request):
    request = make_request(FIVE_CLASS_TTL + PROPERTIES_TTL, scope="both", notation="custom")
    assert generate_graphml(request, GENERATED) == generate_graphml(request, GENERATED)


def test_tied_blank_nodes_are_numbered_the_same_on_every_parse(make_request):
    request = make_request("ex:s ex:has [ a ex:Cat ] , [ a ex:Dog ] .", scope="rdf")
    outputs = {generate_graphml(request, GENERATED) for _ in range(20)}
    assert len(outputs) == 1
    assert 'id="bnode_1_typeOf_ex:Cat"' in outputs.pop()


def test_control_characters_are_dropped(make_request):
    request = make_request('test:Dog a owl:Class .\ntest:rex a test:Dog ; test:note "bell\\u0007here" .',
                           scope="individual")
    output = generate_graphml(request, GENERATED)
    ET.fromstring(output.encode("utf-8"))
    assert "&quot;bellhere&quot;" in output


def test_uml_shows_attributes(make_request):
    output = generate_graphml(make_request(PROPERTIES_TTL, notation="uml"), GENERATED)
    assert "test:name : xsd:string [0..1]" in output
    assert "test:comment : xsd:String" in output
    nodes, edges = top_level(output)
    assert len(nodes) == 3
    assert edges == []


def test_collapsed_edges(make_request):
    request = make_request(PROPERTIES_TTL, notation="custom", scope="property", collapse_edges="collapseTrue")
    output = generate_graphml(request, GENERATED)
    assert 'id="test:Animal_datatypeProperty_xsd:string"' in output
    assert "test:name (functional),\ntest:nickname" in output
    _, edges = top_level(output)
    assert len(edges) == 2


def test_load_errors_propagate(make_request):
    with pytest.raises(OntologyLoadError):
        generate_graphml(make_request("test:Animal a", file_name="broken.ttl"))


def test_unexpected_failures_are_wrapped(make_request, monkeypatch):
    def broken(request):
        raise KeyError("classFillColor")
    monkeypatch.setattr("ontograph.diagram_generator.get_renderer", broken)
    with pytest.raises(InternalBuildError, match="Error creating the graph. Exception details:"):
        generate_graphml(make_request(FIVE_CLASS_TTL))


def test_cli_writes_graphml(tmp_path):
    source = tmp_path / "zoo.ttl"
    source.write_text(FIVE_CLASS_TTL, encoding="utf-8")
    style = tmp_path / "style.yaml"
    style.write_text("classFillColor: '#123456'\n", encoding="utf-8")
    assert main([str(source), "--notation", "custom", "--style", str(style)]) == 0
    output = (tmp_path / "zoo.graphml").read_text(encoding="utf-8")
    assert 'color="#123456"' in output
    assert "Title:  zoo.ttl" in output


def test_cli_reports_failures(tmp_path):
    source = tmp_path / "zoo.ttl"
    source.write_text(FIVE_CLASS_TTL, encoding="utf-8")
    out = tmp_path / "diagram.graphml"
    assert main([str(tmp_path / "missing.ttl")]) == 1
    assert main([str(source), "-o", str(out), "--title", "Zoo"]) == 0
    assert "Title:  Zoo" in out.read_text(encoding="utf-8")
