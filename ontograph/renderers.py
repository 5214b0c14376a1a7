import logging
from collections import Counter, defaultdict
from dataclasses import replace
from typing import Dict, List, Optional, Tuple
from rdflib import OWL, RDFS

from ontograph.models import (
    GraphRequest, CanonicalGraph, CanonicalNode, CanonicalEdge, NodeStyle, EdgeStyle, StyledNode, StyledEdge,
    StyledGraph, TITLE, PREFIXES, CLASS, DATATYPE, INDIVIDUAL, LITERAL, PROPERTY, SUBCLASS_OF, TYPE_OF,
    OBJECT_PROPERTY, DATATYPE_PROPERTY, ANNOTATION_PROPERTY, RDF_PROPERTY, LIST_FIRST, LIST_REST, CONTAINER_MEMBER,
    REIFICATION
)
from ontograph.style_vocabulary import NOTATION_STYLES, CUSTOM_DEFAULTS, WHITE, node_fields, edge_fields
from ontograph.utils import get_local_name, line_stats

log = logging.getLogger("onto2graphml")

THING_SOURCES = (str(OWL.Thing), str(OWL.Nothing))
RDFS_SOURCES = (str(RDFS.Class), str(RDFS.Resource))

UML_HEIGHTS = (40.0, 60.0, 80.0, 100.0, 120.0, 140.0, 150.0, 160.0, 170.0, 180.0)


def node_geometry(shape: str, label: str, size: Optional[float] = None,
                  char_width: float = 11.0) -> Tuple[float, float, str, str]:
    """(width, height, label model name, label model position) of a shape node."""
    extra_lines, longest = line_stats(label)
    width = longest * char_width
    if size:
        return float(size), float(size), "internal", "c"
    if shape == "circle":
        width = max(width, 50.0)
        return width, width, "internal", "c"
    if shape == "smallCircle":
        return 20.0, 20.0, "eight_pos", "e"
    if shape == "none":
        return width, (extra_lines + 1) * 20.0 + 20.0, "internal", "c"
    return width, extra_lines * 23.0 + 50.0, "internal", "c"


def flags_text(flags: Tuple[str, ...]) -> str:
    if not flags:
        return ""
    return "\n(" + ", ".join(flags) + ")"


def trim_label(label: str, limit: int) -> str:
    if len(label) > limit:
        return label[:limit - 3] + "..."
    return label


class NotationRenderer:
    """Maps canonical nodes and edges to the visual attributes of one notation."""
    notation: str = None

    def __init__(self, request: GraphRequest, styles: Optional[dict] = None):
        self.request = request
        self.scope = request.scope
        self.styles = (styles or NOTATION_STYLES)[self.notation]
        self.line_width = float(self.styles.get("line_width", 1.0))
        self.font_size = int(self.styles.get("font_size", 16))

    # -------------------- hooks --------------------
    def prepare(self, graph: CanonicalGraph) -> CanonicalGraph:
        return graph

    def node_entry(self, node: CanonicalNode) -> dict:
        nodes = self.styles["nodes"]
        return nodes.get(node.kind, nodes["default"])

    def edge_entry(self, edge: CanonicalEdge) -> dict:
        edges = self.styles["edges"]
        return edges.get(edge.kind, edges["default"])

    def node_label(self, node: CanonicalNode) -> str:
        return node.label

    def fill_color(self, value: str) -> str:
        return value

    # -------------------- styling --------------------
    def node_style(self, entry: dict, label: str) -> NodeStyle:
        node_type = entry.get("node_type", "shape")
        shape = entry.get("shape", "squareRectangle")
        width, height, model_name, model_position = node_geometry(shape, label, entry.get("size"))
        fill, border = self.fill_color(entry["fill"]), entry["border"]
        if shape == "none":
            fill = border = WHITE
        return NodeStyle(node_type=node_type, shape=shape, fill_color=fill, text_color=entry["text"],
                         border_color=border, border_type=entry.get("border_type", "solid"),
                         border_width=self.line_width, width=width, height=height, model_name=model_name,
                         model_position=model_position, font_size=self.font_size)

    def style_node(self, node: CanonicalNode) -> StyledNode:
        label = self.node_label(node)
        return StyledNode(node, self.node_style(self.node_entry(node), label), label)

    def edge_label(self, edge: CanonicalEdge, entry: dict) -> str:
        if "label" in entry:
            text = entry["label"]
        else:
            text = ",\n".join(edge.label_parts)
        return text + flags_text(edge.flags)

    def style_edge(self, edge: CanonicalEdge) -> StyledEdge:
        entry = self.edge_entry(edge)
        style = EdgeStyle(source_arrow=entry["source"], target_arrow=entry["target"], line_color=entry["color"],
                          line_type=entry["line_type"], line_width=self.line_width, font_size=self.font_size)
        return StyledEdge(edge, style, self.edge_label(edge, entry))

    def render(self, graph: CanonicalGraph) -> StyledGraph:
        graph = self.prepare(graph)
        styled = StyledGraph(self.notation)
        for node in graph.nodes:
            if node.kind in (TITLE, PREFIXES):
                continue
            styled.nodes.append(self.style_node(node))
        for edge in graph.edges:
            styled.edges.append(self.style_edge(edge))
        log.info("Rendered %d nodes and %d edges in %s notation", len(styled.nodes), len(styled.edges),
                 self.notation)
        return styled


class GraffooRenderer(NotationRenderer):
    notation = "graffoo"


class VowlRenderer(NotationRenderer):
    """VOWL palette with class and datatype splitting; caller style fields are ignored."""
    notation = "vowl"

    RESTRICTION_LABELS = {"rdfs:subClassOf": "Subclass of", "owl:equivalentClass": "Equivalent to"}

    def __init__(self, request: GraphRequest, styles: Optional[dict] = None):
        super().__init__(request, styles)
        self.label_limit = int(self.styles.get("label_limit", 15))
        self.symbols = self.styles.get("symbols", {})

    @staticmethod
    def is_split_candidate(node: CanonicalNode) -> bool:
        return node.kind in (DATATYPE, LITERAL) or node.source in THING_SOURCES

    def prepare(self, graph: CanonicalGraph) -> CanonicalGraph:
        incoming = Counter(edge.target for edge in graph.edges)
        outgoing = Counter(edge.source for edge in graph.edges)
        split = {node.id for node in graph.nodes if self.is_split_candidate(node) and incoming[node.id] > 1}
        if not split:
            return graph

        copies: Dict[str, List[CanonicalNode]] = defaultdict(list)
        edges = []
        for edge in graph.edges:
            if edge.target in split:
                original = graph.node(edge.target)
                copy_id = f"{original.id}_{len(copies[original.id]) + 1}"
                copies[original.id].append(replace(original, id=copy_id))
                edge = replace(edge, id=f"{edge.source}_{edge.relation}_{copy_id}", target=copy_id)
            edges.append(edge)

        nodes = []
        for node in graph.nodes:
            if node.id in split:
                if outgoing[node.id]:
                    nodes.append(node)
                nodes.extend(copies[node.id])
            else:
                nodes.append(node)
        log.debug("Split %d shared nodes into %d copies", len(split), sum(len(c) for c in copies.values()))
        return CanonicalGraph(nodes, edges)

    def node_entry(self, node: CanonicalNode) -> dict:
        nodes = self.styles["nodes"]
        if node.kind == CLASS:
            if node.source in THING_SOURCES:
                return nodes["thing"]
            if node.source in RDFS_SOURCES:
                return nodes["rdfs_class"]
            if node.external:
                return nodes["external"]
        return super().node_entry(node)

    def node_label(self, node: CanonicalNode) -> str:
        if node.kind in self.symbols:
            return self.symbols[node.kind]
        if node.source is None or node.kind not in (CLASS, DATATYPE, INDIVIDUAL, PROPERTY):
            return node.label
        if node.label == node.source:
            local = get_local_name(node.source)
        else:
            local = node.label.rsplit(":", 1)[-1]
        label = trim_label(local, self.label_limit)
        if node.external:
            label += "\n(external)"
        return label

    def edge_label(self, edge: CanonicalEdge, entry: dict) -> str:
        if edge.is_property:
            names = [trim_label(part.rsplit(":", 1)[-1], self.label_limit) for part in edge.label_parts]
            return ",\n".join(names) + flags_text(edge.flags)
        if "label" not in entry and edge.label_parts:
            return ",\n".join(self.RESTRICTION_LABELS.get(p, p) for p in edge.label_parts)
        return super().edge_label(edge, entry)


class UmlRenderer(NotationRenderer):
    """Classes and individuals as entity boxes, with datatype properties folded into attribute rows."""
    notation = "uml"

    def __init__(self, request: GraphRequest, styles: Optional[dict] = None):
        super().__init__(request, styles)
        style = {**CUSTOM_DEFAULTS, **(request.style or {})}
        self.node_color = style["umlNodeColor"]
        self.data_node_color = style["umlDataNodeColor"]

    def fill_color(self, value: str) -> str:
        if value == "node_color":
            return self.node_color
        if value == "data_node_color":
            return self.data_node_color
        return value

    def prepare(self, graph: CanonicalGraph) -> CanonicalGraph:
        if self.scope == "individual":
            return self.fold_individuals(graph)
        return self.fold_attributes(graph)

    @staticmethod
    def rebuild(graph: CanonicalGraph, edges: List[CanonicalEdge], rows: Dict[str, List[str]],
                labels: Dict[str, str], droppable) -> CanonicalGraph:
        used = {e.source for e in edges} | {e.target for e in edges}
        nodes = []
        for node in graph.nodes:
            if droppable(node) and node.id not in used:
                continue
            if node.id in rows or node.id in labels:
                node = replace(node, label=labels.get(node.id, node.label),
                               attributes=tuple(rows.get(node.id, ())))
            nodes.append(node)
        return CanonicalGraph(nodes, edges)

    def fold_attributes(self, graph: CanonicalGraph) -> CanonicalGraph:
        rows: Dict[str, List[str]] = defaultdict(list)
        edges = []
        for edge in graph.edges:
            source, target = graph.node(edge.source), graph.node(edge.target)
            if edge.kind == DATATYPE_PROPERTY and source.kind == CLASS and target.kind == DATATYPE:
                range_name = "xsd:String" if target.source == str(RDFS.Literal) else target.label
                if edge.relation == edge.kind:
                    # collapsed edge, flags are already part of each name
                    rows[source.id].extend(f"{name} : {range_name}" for name in edge.label_parts)
                    continue
                row = f"{edge.relation} : {range_name}"
                if "functional" in edge.flags:
                    row += " [0..1]"
                rows[source.id].append(row)
            else:
                edges.append(edge)
        log.debug("Folded datatype properties into attributes of %d classes", len(rows))
        return self.rebuild(graph, edges, rows, {}, lambda n: n.kind == DATATYPE)

    def fold_individuals(self, graph: CanonicalGraph) -> CanonicalGraph:
        rows: Dict[str, List[str]] = defaultdict(list)
        types: Dict[str, List[str]] = defaultdict(list)
        edges = []
        for edge in graph.edges:
            target = graph.node(edge.target)
            if edge.kind == TYPE_OF:
                types[edge.source].append(target.label)
            elif target.kind == LITERAL:
                rows[edge.source].append(f"{edge.relation} = {target.label}")
            else:
                edges.append(edge)
        labels = {}
        for node in graph.nodes:
            if node.kind == INDIVIDUAL:
                type_names = ", ".join(types.get(node.id, [])) or "Unknown"
                labels[node.id] = f"{node.label} : {type_names}"
        return self.rebuild(graph, edges, rows, labels, lambda n: n.kind in (LITERAL, CLASS))

    def node_style(self, entry: dict, label: str, rows: Tuple[str, ...] = ()) -> NodeStyle:
        if entry.get("node_type") != "uml":
            return super().node_style(entry, label)
        longest = max(len(text) for text in (label.split("\n") + list(rows)))
        if len(rows) < len(UML_HEIGHTS):
            height = UML_HEIGHTS[len(rows)]
        else:
            height = UML_HEIGHTS[-1] + 10.0 * (len(rows) - len(UML_HEIGHTS) + 1)
        return NodeStyle(node_type="uml", shape="squareRectangle", fill_color=self.fill_color(entry["fill"]),
                         text_color=entry["text"], border_color=entry["border"],
                         border_type=entry.get("border_type", "solid"), border_width=self.line_width,
                         width=longest * 9.0, height=height, font_size=self.font_size)

    def style_node(self, node: CanonicalNode) -> StyledNode:
        label = self.node_label(node)
        return StyledNode(node, self.node_style(self.node_entry(node), label, node.attributes), label)


class CustomRenderer(NotationRenderer):
    """Styles taken from the request's validated style fields."""
    notation = "custom"

    EDGE_GROUPS = {
        SUBCLASS_OF: "subclassOf",
        TYPE_OF: "typeOf",
        DATATYPE_PROPERTY: "dataProp",
        OBJECT_PROPERTY: "objProp",
        ANNOTATION_PROPERTY: "annProp",
        RDF_PROPERTY: "rdfProp",
        LIST_FIRST: "rdfProp",
        LIST_REST: "rdfProp",
        CONTAINER_MEMBER: "rdfProp",
        REIFICATION: "rdfProp",
    }

    def __init__(self, request: GraphRequest, styles: Optional[dict] = None):
        super().__init__(request, styles)
        self.style = {**CUSTOM_DEFAULTS, **(request.style or {})}
        self.class_group = "class" if self.scope == "class" else "obj"

    def node_group(self, node: CanonicalNode) -> str:
        if node.kind == INDIVIDUAL:
            return "individual"
        if node.kind in (DATATYPE, LITERAL, PROPERTY):
            return "data"
        return self.class_group

    def node_entry(self, node: CanonicalNode) -> dict:
        fields = node_fields(self.node_group(node))
        return {key: self.style[name] for key, name in fields.items()}

    def edge_entry(self, edge: CanonicalEdge) -> dict:
        group = self.EDGE_GROUPS.get(edge.kind)
        if group is not None:
            entry = {key: self.style[name] for key, name in edge_fields(group).items()}
        else:
            arrows = self.styles["relationship_arrows"]
            entry = dict(arrows.get(edge.kind, arrows["default"]))
            entry["color"] = self.style[edge_fields("subclassOf")["color"]]
        labels = self.styles["relationship_labels"]
        if edge.kind in labels:
            entry["label"] = labels[edge.kind]
        override = {SUBCLASS_OF: "subclassOfText", TYPE_OF: "typeOfText"}.get(edge.kind)
        if override and self.style.get(override):
            entry["label"] = self.style[override]
        return entry


RENDERERS = {
    "graffoo": GraffooRenderer,
    "vowl": VowlRenderer,
    "uml": UmlRenderer,
    "custom": CustomRenderer,
}


def get_renderer(request: GraphRequest) -> NotationRenderer:
    return RENDERERS[request.notation](request)
