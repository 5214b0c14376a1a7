from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

# -------------------- node kinds --------------------
TITLE = "title"
PREFIXES = "prefixes"
CLASS = "class"
DATATYPE = "datatype"
INDIVIDUAL = "individual"
LITERAL = "literal"
PROPERTY = "property"
UNION = "unionOf"
INTERSECTION = "intersectionOf"
COMPLEMENT = "complementOf"
ONE_OF = "oneOf"
RESTRICTION = "restriction"
ANONYMOUS = "anonymous"
CONTAINER = "container"
LIST_CELL = "listCell"
LIST_NIL = "listNil"
STATEMENT = "statement"

EXPRESSION_KINDS = (UNION, INTERSECTION, COMPLEMENT, ONE_OF, RESTRICTION, ANONYMOUS)

# -------------------- edge kinds --------------------
SUBCLASS_OF = "subClassOf"
EQUIVALENT_CLASS = "equivalentClass"
DISJOINT_WITH = "disjointWith"
MEMBER = "member"
COMPLEMENT_OF = "complementOf"
ONE_OF_MEMBER = "oneOf"
RESTRICTION_OF = "restriction"
VALUES_FROM = "valuesFrom"
TYPE_OF = "typeOf"
OBJECT_PROPERTY = "objectProperty"
DATATYPE_PROPERTY = "datatypeProperty"
ANNOTATION_PROPERTY = "annotationProperty"
RDF_PROPERTY = "rdfProperty"
LIST_FIRST = "listFirst"
LIST_REST = "listRest"
CONTAINER_MEMBER = "containerMember"
REIFICATION = "reification"

PROPERTY_EDGE_KINDS = (OBJECT_PROPERTY, DATATYPE_PROPERTY, ANNOTATION_PROPERTY, RDF_PROPERTY)

# Order in which property characteristics are printed
FLAG_ORDER = ("functional", "inverseFunctional", "reflexive", "irreflexive",
              "asymmetric", "symmetric", "transitive")

TITLE_NODE_ID = "title::n0"
PREFIXES_NODE_ID = "prefixes::n0"


@dataclass(frozen=True)
class GraphRequest:
    """One diagram request: the ontology payload plus how it should be drawn."""
    title: str
    file_name: str
    file_data: bytes
    scope: str = "class"
    notation: str = "graffoo"
    collapse_edges: str = "collapseFalse"
    reasoning: str = "reasoningFalse"
    media_type: Optional[str] = None
    style: Dict[str, str] = field(default_factory=dict)

    @property
    def collapse(self) -> bool:
        return self.collapse_edges == "collapseTrue"


@dataclass(frozen=True)
class CanonicalNode:
    id: str
    kind: str
    label: str
    source: Optional[str] = None
    external: bool = False
    attributes: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CanonicalEdge:
    id: str
    source: str
    target: str
    kind: str
    relation: str
    label_parts: Tuple[str, ...] = ()
    flags: Tuple[str, ...] = ()

    @property
    def is_property(self) -> bool:
        return self.kind in PROPERTY_EDGE_KINDS


class CanonicalGraph:
    """Ordered, id-indexed nodes and edges produced by the graph builder."""

    def __init__(self, nodes: Optional[List[CanonicalNode]] = None,
                 edges: Optional[List[CanonicalEdge]] = None):
        self.nodes: List[CanonicalNode] = []
        self.edges: List[CanonicalEdge] = []
        self._node_index: Dict[str, CanonicalNode] = {}
        self._edge_ids = set()
        for node in nodes or []:
            self.add_node(node)
        for edge in edges or []:
            self.add_edge(edge)

    def add_node(self, node: CanonicalNode) -> CanonicalNode:
        existing = self._node_index.get(node.id)
        if existing is not None:
            return existing
        self.nodes.append(node)
        self._node_index[node.id] = node
        return node

    def add_edge(self, edge: CanonicalEdge) -> bool:
        if edge.id in self._edge_ids:
            return False
        self.edges.append(edge)
        self._edge_ids.add(edge.id)
        return True

    def has_node(self, node_id: str) -> bool:
        return node_id in self._node_index

    def has_edge(self, edge_id: str) -> bool:
        return edge_id in self._edge_ids

    def node(self, node_id: str) -> Optional[CanonicalNode]:
        return self._node_index.get(node_id)

    def node_ids(self) -> List[str]:
        return [n.id for n in self.nodes]

    def edge_ids(self) -> List[str]:
        return [e.id for e in self.edges]

    def __len__(self):
        return len(self.nodes)


@dataclass(frozen=True)
class NodeStyle:
    node_type: str = "shape"  # shape, note or uml
    shape: str = "roundRectangle"
    fill_color: str = "#FFFFFF"
    text_color: str = "#000000"
    border_color: str = "#000000"
    border_type: str = "solid"
    border_width: float = 1.0
    width: float = 100.0
    height: float = 50.0
    model_name: str = "internal"
    model_position: str = "c"
    font_size: int = 16


@dataclass(frozen=True)
class EdgeStyle:
    source_arrow: str = "none"
    target_arrow: str = "triangleSolid"
    line_color: str = "#000000"
    line_type: str = "solid"
    line_width: float = 1.0
    label_color: str = "#000000"
    label_background: str = "#FFFFFF"
    font_size: int = 16


@dataclass(frozen=True)
class StyledNode:
    node: CanonicalNode
    style: NodeStyle
    label: str


@dataclass(frozen=True)
class StyledEdge:
    edge: CanonicalEdge
    style: EdgeStyle
    label: str


@dataclass
class StyledGraph:
    notation: str
    nodes: List[StyledNode] = field(default_factory=list)
    edges: List[StyledEdge] = field(default_factory=list)
