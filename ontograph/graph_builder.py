import logging
from typing import Callable, Optional, Tuple
from rdflib import RDF, RDFS, OWL, URIRef, BNode, Literal

from ontograph.errors import InternalBuildError
from ontograph.models import (
    CanonicalGraph, CanonicalNode, CanonicalEdge, TITLE, PREFIXES, TITLE_NODE_ID, PREFIXES_NODE_ID,
    CLASS, INDIVIDUAL, PROPERTY, UNION, INTERSECTION, COMPLEMENT, ONE_OF, RESTRICTION, ANONYMOUS,
    CONTAINER, LIST_CELL, LIST_NIL, STATEMENT, SUBCLASS_OF, EQUIVALENT_CLASS, DISJOINT_WITH, MEMBER,
    COMPLEMENT_OF, ONE_OF_MEMBER, RESTRICTION_OF, VALUES_FROM, TYPE_OF, OBJECT_PROPERTY, DATATYPE_PROPERTY,
    ANNOTATION_PROPERTY, RDF_PROPERTY, LIST_FIRST, LIST_REST, CONTAINER_MEMBER, REIFICATION
)
from ontograph.ontology_processor import OntologyView, BlankNodeIds, ClassExpression
from ontograph.utils import collect_list, is_list_node

log = logging.getLogger("onto2graphml")

OPERAND_EDGE_KINDS = {
    UNION: MEMBER,
    INTERSECTION: MEMBER,
    COMPLEMENT: COMPLEMENT_OF,
    ONE_OF: ONE_OF_MEMBER,
    RESTRICTION: VALUES_FROM,
}

CONTAINER_TYPES = (RDF.Bag, RDF.Seq, RDF.Alt)
EXPRESSION_PREDICATES = (OWL.unionOf, OWL.intersectionOf, OWL.complementOf, OWL.oneOf, OWL.onProperty)
RDF_MEMBER_PREFIX = str(RDF) + "_"

Resolver = Callable[[CanonicalGraph, object, str], str]


# -------------------- shared helpers --------------------
def edge_id(source: str, relation: str, target: str) -> str:
    return f"{source}_{relation}_{target}"


def add_edge(cg: CanonicalGraph, source: str, target: str, kind: str, relation: Optional[str] = None,
             label_parts: Tuple[str, ...] = (), flags: Tuple[str, ...] = ()) -> str:
    relation = relation or kind
    eid = edge_id(source, relation, target)
    if cg.add_edge(CanonicalEdge(eid, source, target, kind, relation, tuple(label_parts), tuple(flags))):
        log.debug("Added %s edge %s", kind, eid)
    return eid


def add_expression(cg: CanonicalGraph, expr: ClassExpression) -> str:
    """Add an expression node and, the first time it is seen, its operands and operand edges."""
    if cg.has_node(expr.id):
        return expr.id
    source = str(expr.term) if isinstance(expr.term, URIRef) else None
    cg.add_node(CanonicalNode(expr.id, expr.kind, expr.label, source=source, external=expr.external))
    for role, operand in expr.operands:
        operand_id = add_expression(cg, operand)
        kind = OPERAND_EDGE_KINDS.get(expr.kind, MEMBER)
        if kind == VALUES_FROM:
            add_edge(cg, expr.id, operand_id, kind, role, label_parts=(role,))
        else:
            add_edge(cg, expr.id, operand_id, kind)
    return expr.id


def add_term(cg: CanonicalGraph, view: OntologyView, term, ids: BlankNodeIds, owner: str,
             kind: Optional[str] = None, default: str = CLASS) -> str:
    if isinstance(term, URIRef):
        return add_expression(cg, view.named(term, kind, default))
    return add_expression(cg, view.expression(term, ids, owner, kind))


def relation_edge(cg: CanonicalGraph, source: str, target: str, target_kind: str, kind: str, relation_qname: str):
    """Class-to-class axiom edge; anonymous restrictions get a restriction edge labelled with the axiom."""
    if target_kind == RESTRICTION:
        add_edge(cg, source, target, RESTRICTION_OF, label_parts=(relation_qname,))
    else:
        add_edge(cg, source, target, kind)


# -------------------- class scope --------------------
def add_pairwise(cg: CanonicalGraph, view: OntologyView, node_id: str, term, kind: str, relation_qname: str,
                 ids: BlankNodeIds, owner: str, pairs: set):
    target_id = add_term(cg, view, term, ids, owner)
    if isinstance(term, BNode):
        relation_edge(cg, node_id, target_id, cg.node(target_id).kind, kind, relation_qname)
        return
    if target_id == node_id:
        return
    pair = (kind,) + tuple(sorted((node_id, target_id)))
    if pair in pairs:
        return
    pairs.add(pair)
    add_edge(cg, pair[1], pair[2], kind)


def build_class_graph(cg: CanonicalGraph, view: OntologyView, ids: BlankNodeIds):
    g = view.graph
    pairs = set()
    for cls in view.classes:
        owner = view.qname(cls)
        cls_id = add_term(cg, view, cls, ids, owner, CLASS)

        for sup in view.sorted_objects(cls, RDFS.subClassOf):
            if sup == OWL.Thing:
                continue
            sup_id = add_term(cg, view, sup, ids, owner)
            relation_edge(cg, cls_id, sup_id, cg.node(sup_id).kind, SUBCLASS_OF, "rdfs:subClassOf")

        equivalents = set(g.objects(cls, OWL.equivalentClass)) | set(g.subjects(OWL.equivalentClass, cls))
        for eq in view.sorted_terms(equivalents):
            add_pairwise(cg, view, cls_id, eq, EQUIVALENT_CLASS, "owl:equivalentClass", ids, owner, pairs)

        disjoints = set(g.objects(cls, OWL.disjointWith)) | set(g.subjects(OWL.disjointWith, cls))
        for dis in view.sorted_terms(disjoints):
            add_pairwise(cg, view, cls_id, dis, DISJOINT_WITH, "owl:disjointWith", ids, owner, pairs)

        enumeration = view.enumeration(cls, ids, owner)
        if enumeration is not None:
            add_edge(cg, cls_id, add_expression(cg, enumeration), EQUIVALENT_CLASS)

        disjoint_union = view.disjoint_union(cls, ids, owner)
        if disjoint_union is not None:
            add_edge(cg, cls_id, add_expression(cg, disjoint_union), EQUIVALENT_CLASS)

    for axiom in view.sorted_terms(g.subjects(RDF.type, OWL.AllDisjointClasses)):
        head = g.value(axiom, OWL.members)
        if head is None:
            continue
        classes = collect_list(g, head)
        owner = view.sort_key(classes[0]) if classes else "AllDisjointClasses"
        member_ids = [add_term(cg, view, c, ids, owner) for c in classes]
        for i, first in enumerate(member_ids):
            for second in member_ids[i + 1:]:
                pair = (DISJOINT_WITH,) + tuple(sorted((first, second)))
                if first != second and pair not in pairs:
                    pairs.add(pair)
                    add_edge(cg, pair[1], pair[2], DISJOINT_WITH)
    log.info("Class graph has %d nodes and %d edges", len(cg.nodes), len(cg.edges))


# -------------------- property scope --------------------
def build_property_graph(cg: CanonicalGraph, view: OntologyView, ids: BlankNodeIds):
    groups = (
        (OBJECT_PROPERTY, view.object_properties),
        (DATATYPE_PROPERTY, view.datatype_properties),
        (ANNOTATION_PROPERTY, view.annotation_properties),
        (RDF_PROPERTY, view.rdf_properties),
    )
    for category, props in groups:
        for prop in props:
            owner = view.qname(prop)
            flags = view.property_flags(prop)
            domains = view.sorted_objects(prop, RDFS.domain) or [OWL.Thing]
            default_range = OWL.Thing if category == OBJECT_PROPERTY else RDFS.Literal
            ranges = view.sorted_objects(prop, RDFS.range) or [default_range]
            for domain in domains:
                domain_id = add_term(cg, view, domain, ids, owner)
                for rng in ranges:
                    range_id = add_term(cg, view, rng, ids, owner)
                    add_edge(cg, domain_id, range_id, category, owner, label_parts=(owner,), flags=flags)
    log.info("Property graph has %d nodes and %d edges", len(cg.nodes), len(cg.edges))


# -------------------- individual scope --------------------
def is_assertion_predicate(view: OntologyView, pred) -> bool:
    return pred in (OWL.sameAs, OWL.differentFrom) or not view.is_builtin(pred)


def assertion_category(view: OntologyView, pred, obj) -> str:
    if view.is_property(pred):
        return view.property_category(pred)
    return DATATYPE_PROPERTY if isinstance(obj, Literal) else OBJECT_PROPERTY


def resolve_individual_object(view: OntologyView, ids: BlankNodeIds) -> Resolver:
    def resolve(cg: CanonicalGraph, term, owner: str) -> str:
        return add_term(cg, view, term, ids, owner, default=INDIVIDUAL)
    return resolve


def add_assertions(cg: CanonicalGraph, view: OntologyView, subject, subject_id: str, owner: str,
                   resolve: Resolver):
    g = view.graph
    preds = sorted({p for p in g.predicates(subject) if is_assertion_predicate(view, p)}, key=view.qname)
    for pred in preds:
        relation = view.qname(pred)
        flags = view.property_flags(pred)
        for obj in view.sorted_objects(subject, pred):
            target_id = resolve(cg, obj, owner)
            add_edge(cg, subject_id, target_id, assertion_category(view, pred, obj), relation,
                     label_parts=(relation,), flags=flags)


def add_types(cg: CanonicalGraph, view: OntologyView, subject, subject_id: str, ids: BlankNodeIds, owner: str):
    for typ in view.types_of(subject):
        type_id = add_term(cg, view, typ, ids, owner, CLASS if isinstance(typ, URIRef) and not view.is_datatype(typ) else None)
        add_edge(cg, subject_id, type_id, TYPE_OF)


def build_individual_graph(cg: CanonicalGraph, view: OntologyView, ids: BlankNodeIds,
                           resolve: Optional[Resolver] = None):
    resolve = resolve or resolve_individual_object(view, ids)
    for ind in view.individuals:
        owner = view.qname(ind)
        ind_id = add_term(cg, view, ind, ids, owner, INDIVIDUAL)
        add_types(cg, view, ind, ind_id, ids, owner)
        add_assertions(cg, view, ind, ind_id, owner, resolve)
    log.info("Individual graph has %d nodes and %d edges", len(cg.nodes), len(cg.edges))


# -------------------- rdf scope --------------------
def container_members(view: OntologyView, container):
    members = []
    for pred, obj in view.graph.predicate_objects(container):
        s = str(pred)
        if s.startswith(RDF_MEMBER_PREFIX) and s[len(RDF_MEMBER_PREFIX):].isdigit():
            members.append((int(s[len(RDF_MEMBER_PREFIX):]), obj))
    return sorted(members, key=lambda m: (m[0], view.order_key(m[1])))


def is_container(view: OntologyView, term) -> bool:
    g = view.graph
    return any((term, RDF.type, t) in g for t in CONTAINER_TYPES) or bool(container_members(view, term))


def is_statement(view: OntologyView, term) -> bool:
    g = view.graph
    return (term, RDF.type, RDF.Statement) in g or g.value(term, RDF.subject) is not None


def is_class_expression(view: OntologyView, term) -> bool:
    return any(view.graph.value(term, p) is not None for p in EXPRESSION_PREDICATES)


class RdfResolver:
    """Resolves objects met while walking plain RDF data into nodes, expanding
    containers, lists, reified statements and described blank nodes."""

    def __init__(self, view: OntologyView, ids: BlankNodeIds):
        self.view = view
        self.ids = ids

    def node_id(self, term, owner: str) -> str:
        if isinstance(term, BNode):
            return self.ids.id_for(term, owner)
        return self.view.qname(term)

    def __call__(self, cg: CanonicalGraph, term, owner: str) -> str:
        view = self.view
        if term == RDF.nil:
            cg.add_node(CanonicalNode("rdf:nil", LIST_NIL, "rdf:nil", source=str(RDF.nil)))
            return "rdf:nil"
        if isinstance(term, Literal):
            return add_term(cg, view, term, self.ids, owner)
        if isinstance(term, BNode):
            if is_list_node(view.graph, term):
                return self.add_list(cg, term, owner)
            if is_class_expression(view, term):
                return add_term(cg, view, term, self.ids, owner)
        if is_container(view, term):
            return self.add_container(cg, term, owner)
        if is_statement(view, term):
            return self.add_statement(cg, term, owner)
        if isinstance(term, URIRef):
            return add_term(cg, view, term, self.ids, owner, default=INDIVIDUAL)
        return self.add_anonymous(cg, term, owner)

    def add_list(self, cg: CanonicalGraph, head, owner: str) -> str:
        g = self.view.graph
        head_id = self.node_id(head, owner)
        cell, cell_id = head, head_id
        while not cg.has_node(cell_id):
            cg.add_node(CanonicalNode(cell_id, LIST_CELL, "rdf:List"))
            first = g.value(cell, RDF.first)
            if first is not None:
                add_edge(cg, cell_id, self(cg, first, owner), LIST_FIRST, label_parts=("rdf:first",))
            rest = g.value(cell, RDF.rest)
            if rest is None or rest == RDF.nil or not is_list_node(g, rest):
                add_edge(cg, cell_id, self(cg, RDF.nil, owner), LIST_REST, label_parts=("rdf:rest",))
                break
            rest_id = self.node_id(rest, owner)
            add_edge(cg, cell_id, rest_id, LIST_REST, label_parts=("rdf:rest",))
            cell, cell_id = rest, rest_id
        return head_id

    def add_container(self, cg: CanonicalGraph, container, owner: str) -> str:
        view = self.view
        container_id = self.node_id(container, owner)
        if cg.has_node(container_id):
            return container_id
        types = [t for t in CONTAINER_TYPES if (container, RDF.type, t) in view.graph]
        if isinstance(container, URIRef):
            label = view.qname(container)
        else:
            label = view.qname(types[0]) if types else "rdfs:Container"
        cg.add_node(CanonicalNode(container_id, CONTAINER, label,
                                  source=str(container) if isinstance(container, URIRef) else None))
        for index, member in container_members(view, container):
            relation = f"rdf:_{index}"
            add_edge(cg, container_id, self(cg, member, owner), CONTAINER_MEMBER, relation, label_parts=(relation,))
        add_assertions(cg, view, container, container_id, owner, self)
        return container_id

    def add_statement(self, cg: CanonicalGraph, statement, owner: str) -> str:
        view = self.view
        g = view.graph
        statement_id = self.node_id(statement, owner)
        if cg.has_node(statement_id):
            return statement_id
        label = view.qname(statement) if isinstance(statement, URIRef) else "rdf:Statement"
        cg.add_node(CanonicalNode(statement_id, STATEMENT, label,
                                  source=str(statement) if isinstance(statement, URIRef) else None))
        subject = g.value(statement, RDF.subject)
        if subject is not None:
            add_edge(cg, statement_id, self(cg, subject, owner), REIFICATION, "rdf:subject", label_parts=("rdf:subject",))
        predicate = g.value(statement, RDF.predicate)
        if predicate is not None:
            pred_id = view.qname(predicate)
            cg.add_node(CanonicalNode(pred_id, PROPERTY, pred_id, source=str(predicate)))
            add_edge(cg, statement_id, pred_id, REIFICATION, "rdf:predicate", label_parts=("rdf:predicate",))
        obj = g.value(statement, RDF.object)
        if obj is not None:
            add_edge(cg, statement_id, self(cg, obj, owner), REIFICATION, "rdf:object", label_parts=("rdf:object",))
        add_assertions(cg, view, statement, statement_id, owner, self)
        return statement_id

    def add_anonymous(self, cg: CanonicalGraph, term, owner: str) -> str:
        anon_id = self.node_id(term, owner)
        if cg.has_node(anon_id):
            return anon_id
        cg.add_node(CanonicalNode(anon_id, ANONYMOUS, "Blank Node"))
        add_types(cg, self.view, term, anon_id, self.ids, owner)
        add_assertions(cg, self.view, term, anon_id, owner, self)
        return anon_id


def has_data(view: OntologyView, subject) -> bool:
    return any(is_assertion_predicate(view, p) for p in view.graph.predicates(subject))


def build_rdf_graph(cg: CanonicalGraph, view: OntologyView, ids: BlankNodeIds):
    g = view.graph
    build_class_graph(cg, view, ids)
    build_property_graph(cg, view, ids)
    resolver = RdfResolver(view, ids)
    build_individual_graph(cg, view, ids, resolver)

    subjects = set(s for s in g.subjects() if not isinstance(s, Literal))
    containers = {s for s in subjects if is_container(view, s)}
    statements = {s for s in subjects if is_statement(view, s)} - containers
    for term in view.sorted_terms(containers) + view.sorted_terms(statements):
        resolver(cg, term, view.sort_key(term))

    skip = set(view.classes) | set(view.individuals) | containers | statements
    untyped = [s for s in subjects if isinstance(s, URIRef) and s not in skip and not view.is_property(s)
               and (s, RDF.type, OWL.Ontology) not in g and has_data(view, s)]
    for subject in view.sorted_terms(untyped):
        owner = view.qname(subject)
        subject_id = add_term(cg, view, subject, ids, owner, default=INDIVIDUAL)
        add_types(cg, view, subject, subject_id, ids, owner)
        add_assertions(cg, view, subject, subject_id, owner, resolver)

    # Blank nodes that nothing points to are only reachable as subjects
    roots = [s for s in subjects if isinstance(s, BNode) and (None, None, s) not in g and has_data(view, s)]
    for root in view.sorted_terms(roots):
        resolver(cg, root, view.sort_key(root))
    log.info("RDF graph has %d nodes and %d edges", len(cg.nodes), len(cg.edges))


# -------------------- entry point --------------------
SCOPE_BUILDERS = {
    "class": (build_class_graph,),
    "property": (build_property_graph,),
    "individual": (build_individual_graph,),
    "both": (build_class_graph, build_property_graph),
    "rdf": (build_rdf_graph,),
}


def check_endpoints(cg: CanonicalGraph):
    for edge in cg.edges:
        for end in (edge.source, edge.target):
            if not cg.has_node(end):
                raise InternalBuildError(f"Edge {edge.id} refers to the missing node {end}", end)


def build(view: OntologyView, scope: str, title: str) -> CanonicalGraph:
    """Build the notation independent graph of the ontology for one scope."""
    if scope not in SCOPE_BUILDERS:
        raise InternalBuildError(f"Unknown graph scope {scope}")
    cg = CanonicalGraph()
    cg.add_node(CanonicalNode(TITLE_NODE_ID, TITLE, title))
    cg.add_node(CanonicalNode(PREFIXES_NODE_ID, PREFIXES, "Prefixes"))
    ids = BlankNodeIds()
    for builder in SCOPE_BUILDERS[scope]:
        builder(cg, view, ids)
    check_endpoints(cg)
    log.info("Built %s graph for %s: %d nodes, %d edges", scope, view.file_name, len(cg.nodes), len(cg.edges))
    return cg
