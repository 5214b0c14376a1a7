import logging
from typing import Callable, List, Optional, Iterable, Tuple
from rdflib import Graph, RDF, OWL, URIRef, BNode, Literal

log = logging.getLogger("onto2graphml")

CARDINALITY_WORDS = {
    OWL.cardinality: "exactly",
    OWL.qualifiedCardinality: "exactly",
    OWL.minCardinality: "min",
    OWL.minQualifiedCardinality: "min",
    OWL.maxCardinality: "max",
    OWL.maxQualifiedCardinality: "max",
}


def get_qname(uri: URIRef, prefix_map: dict) -> str:
    """Shorten a URI with the longest matching namespace in prefix_map ({uri: prefix}).

    URIs outside every declared namespace are returned whole."""
    if uri is None or not str(uri).strip():
        log.error("Invalid URI provided to get_qname: %s", uri)
        return "INVALID_URI"
    s = str(uri)
    for base in sorted(prefix_map.keys(), key=len, reverse=True):
        if s.startswith(base) and len(s) > len(base):
            local = s[len(base):]
            if not base.endswith(('/', '#')) and local.startswith(('/', '#')):
                local = local[1:]
            return f"{prefix_map[base]}:{local.rstrip()}"
    log.warning("No prefix found for URI: %s", s)
    return s


def get_local_name(uri) -> str:
    s = str(uri)
    if '#' in s:
        return s.split('#')[-1]
    return s.rstrip('/').split('/')[-1]


def collect_list(g: Graph, head) -> List:
    """Return the members of an RDF list in order, stopping on a malformed or cyclic tail."""
    members = []
    seen = set()
    current = head
    while current is not None and current != RDF.nil and current not in seen:
        seen.add(current)
        first = g.value(current, RDF.first)
        if first is not None:
            members.append(first)
        current = g.value(current, RDF.rest)
    return members


def is_list_node(g: Graph, node) -> bool:
    return node == RDF.nil or (node, RDF.first, None) in g


def format_literal(lit: Literal) -> str:
    text = str(lit)
    if lit.language:
        return f'"{text}"@{lit.language}'
    return f'"{text}"'


def get_class_expression_str(g: Graph, expr, qname: Callable, seen: Optional[set] = None) -> str:
    """Render a class expression in a compact Manchester-like form.

    Used for labels and as the deterministic sort key of anonymous expressions."""
    if isinstance(expr, Literal):
        return format_literal(expr)
    if not isinstance(expr, BNode):
        return qname(expr)
    seen = set() if seen is None else seen
    if expr in seen:
        return "..."
    seen = seen | {expr}

    def render(term):
        return get_class_expression_str(g, term, qname, seen)

    union_col = g.value(expr, OWL.unionOf)
    if union_col is not None:
        return "(" + " or ".join(render(m) for m in collect_list(g, union_col)) + ")"
    inter_col = g.value(expr, OWL.intersectionOf)
    if inter_col is not None:
        return "(" + " and ".join(render(m) for m in collect_list(g, inter_col)) + ")"
    complement = g.value(expr, OWL.complementOf)
    if complement is not None:
        return f"not {render(complement)}"
    one_of = g.value(expr, OWL.oneOf)
    if one_of is not None:
        return "{" + ", ".join(render(m) for m in collect_list(g, one_of)) + "}"
    on_prop = g.value(expr, OWL.onProperty)
    if on_prop is not None:
        return f"{render(on_prop)} " + " ".join(restriction_phrases(g, expr, render))
    if is_list_node(g, expr):
        return "(" + " ".join(render(m) for m in collect_list(g, expr)) + ")"
    pairs = sorted(f"{qname(p)} {render(o)}" for p, o in g.predicate_objects(expr) if p != RDF.type)
    return "[" + "; ".join(pairs) + "]"


def get_canonical_str(g: Graph, term, qname: Callable, seen: Optional[set] = None) -> str:
    """Every outgoing triple of a blank node, rdf:type included, nested blank nodes inlined.

    Independent of blank node labels, so it orders blank nodes reproducibly across parses."""
    if isinstance(term, Literal):
        return term.n3()
    if not isinstance(term, BNode):
        return qname(term)
    seen = set() if seen is None else seen
    if term in seen:
        return "[...]"
    seen = seen | {term}
    pairs = sorted(f"{qname(p)} {get_canonical_str(g, o, qname, seen)}" for p, o in g.predicate_objects(term))
    return "[" + "; ".join(pairs) + "]"


def restriction_phrases(g: Graph, restr, render: Callable) -> List[str]:
    """Phrases describing one owl:Restriction, e.g. ['min 1 ex:Part', 'only xsd:string']."""
    phrases = []
    on_class = g.value(restr, OWL.onClass) or g.value(restr, OWL.onDataRange)
    for pred, word in CARDINALITY_WORDS.items():
        value = g.value(restr, pred)
        if value is not None:
            phrase = f"{word} {value}"
            if on_class is not None and "qualified" in str(pred).lower():
                phrase += f" {render(on_class)}"
            phrases.append(phrase)
    some = g.value(restr, OWL.someValuesFrom)
    if some is not None:
        phrases.append(f"some {render(some)}")
    only = g.value(restr, OWL.allValuesFrom)
    if only is not None:
        phrases.append(f"only {render(only)}")
    has_value = g.value(restr, OWL.hasValue)
    if has_value is not None:
        phrases.append(f"value {render(has_value)}")
    if g.value(restr, OWL.hasSelf) is not None:
        phrases.append("Self")
    return phrases


def sort_terms(terms: Iterable, key: Callable) -> List:
    """Named terms first (by key), then blank nodes (by key), duplicates removed."""
    unique = set(terms)
    return sorted(unique, key=lambda t: (isinstance(t, BNode), key(t)))


def line_stats(text: str) -> Tuple[int, int]:
    """(number of lines after the first, length of the longest line) of a label."""
    lines = text.split("\n") if text else [""]
    return len(lines) - 1, max(len(line) for line in lines)
