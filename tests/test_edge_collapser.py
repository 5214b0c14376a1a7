import pytest

from ontograph.edge_collapser import collapse, edge_text
from ontograph.models import (
    CanonicalGraph, CanonicalNode, CanonicalEdge, CLASS, DATATYPE, SUBCLASS_OF, DATATYPE_PROPERTY,
    OBJECT_PROPERTY, RDF_PROPERTY
)


def property_edge(source, target, name, kind=DATATYPE_PROPERTY, flags=()):
    return CanonicalEdge(f"{source}_{name}_{target}", source, target, kind, name, label_parts=(name,), flags=flags)


@pytest.fixture
def graph():
    nodes = [
        CanonicalNode("test:Animal", CLASS, "test:Animal"),
        CanonicalNode("test:Dog", CLASS, "test:Dog"),
        CanonicalNode("xsd:string", DATATYPE, "xsd:string"),
    ]
    edges = [
        CanonicalEdge("test:Dog_subClassOf_test:Animal", "test:Dog", "test:Animal", SUBCLASS_OF, SUBCLASS_OF),
        property_edge("test:Animal", "xsd:string", "test:name", flags=("functional",)),
        property_edge("test:Animal", "xsd:string", "test:nickname"),
        property_edge("test:Dog", "test:Animal", "test:chases", kind=OBJECT_PROPERTY),
    ]
    return CanonicalGraph(nodes, edges)


def test_edge_text():
    assert edge_text(property_edge("a", "b", "test:name", flags=("functional", "transitive"))) == \
        "test:name (functional, transitive)"
    assert edge_text(property_edge("a", "b", "test:nickname")) == "test:nickname"


def test_parallel_edges_are_merged(graph):
    collapsed = collapse(graph, "graffoo")
    assert collapsed.edge_ids() == [
        "test:Dog_subClassOf_test:Animal",
        "test:Animal_datatypeProperty_xsd:string",
        "test:Dog_test:chases_test:Animal",
    ]
    merged = collapsed.edges[1]
    assert merged.label_parts == ("test:name (functional)", "test:nickname")
    assert merged.kind == DATATYPE_PROPERTY
    assert collapsed.nodes == graph.nodes
    # the input graph is not modified
    assert len(graph.edges) == 4


def test_single_edges_are_kept_as_is(graph):
    collapsed = collapse(graph, "custom")
    assert collapsed.edges[0] is graph.edges[0]
    assert collapsed.edges[2] is graph.edges[3]


def test_vowl_graphs_are_not_collapsed(graph):
    assert collapse(graph, "vowl") is graph


def test_rdf_property_edges_are_not_collapsed():
    nodes = [CanonicalNode("ex:a", CLASS, "ex:a"), CanonicalNode("ex:b", CLASS, "ex:b")]
    edges = [property_edge("ex:a", "ex:b", "ex:p", kind=RDF_PROPERTY),
             property_edge("ex:a", "ex:b", "ex:q", kind=RDF_PROPERTY)]
    collapsed = collapse(CanonicalGraph(nodes, edges), "graffoo")
    assert collapsed.edge_ids() == ["ex:a_ex:p_ex:b", "ex:a_ex:q_ex:b"]
