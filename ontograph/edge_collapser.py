import logging
from collections import OrderedDict
from typing import Optional

from ontograph.models import CanonicalGraph, CanonicalEdge, OBJECT_PROPERTY, DATATYPE_PROPERTY, ANNOTATION_PROPERTY

log = logging.getLogger("onto2graphml")

COLLAPSIBLE_KINDS = (OBJECT_PROPERTY, DATATYPE_PROPERTY, ANNOTATION_PROPERTY)


def edge_text(edge: CanonicalEdge) -> str:
    """'name (flag, flag)' text of one property edge."""
    name = ", ".join(edge.label_parts) if edge.label_parts else edge.relation
    if edge.flags:
        return f"{name} ({', '.join(edge.flags)})"
    return name


def collapse(graph: CanonicalGraph, notation: Optional[str] = None) -> CanonicalGraph:
    """Merge parallel property edges between the same two nodes into one multi-labelled edge.

    Returns a new graph; the edges of the given graph are left untouched."""
    if notation == "vowl":
        log.debug("Edge collapsing is not applied to VOWL diagrams")
        return graph

    groups = OrderedDict()
    for edge in graph.edges:
        if edge.kind in COLLAPSIBLE_KINDS:
            key = (edge.source, edge.target, edge.kind)
        else:
            key = edge.id
        groups.setdefault(key, []).append(edge)

    collapsed = CanonicalGraph(nodes=graph.nodes)
    merged = 0
    for key, edges in groups.items():
        if len(edges) == 1:
            collapsed.add_edge(edges[0])
            continue
        source, target, kind = key
        parts = []
        for edge in edges:
            text = edge_text(edge)
            if text not in parts:
                parts.append(text)
        collapsed.add_edge(CanonicalEdge(f"{source}_{kind}_{target}", source, target, kind, kind,
                                         label_parts=tuple(parts)))
        merged += len(edges) - 1
    log.info("Collapsed %d parallel edges, %d edges remain", merged, len(collapsed.edges))
    return collapsed
