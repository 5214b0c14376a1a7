import os
import io
import re
import logging
import traceback
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple
from rdflib import Graph, RDF, RDFS, OWL, XSD, URIRef, BNode, Literal
from funowl.converters.functional_converter import to_python

from ontograph.errors import OntologyLoadError
from ontograph.models import (
    GraphRequest, CLASS, DATATYPE, INDIVIDUAL, LITERAL, UNION, INTERSECTION, COMPLEMENT, ONE_OF,
    RESTRICTION, ANONYMOUS, OBJECT_PROPERTY, DATATYPE_PROPERTY, ANNOTATION_PROPERTY, RDF_PROPERTY
)
from ontograph.utils import (
    get_qname, get_class_expression_str, get_canonical_str, collect_list, restriction_phrases,
    sort_terms, format_literal
)

log = logging.getLogger("onto2graphml")

SUFFIX_FORMATS = {
    ".ttl": "turtle",
    ".n3": "n3",
    ".nt": "nt",
    ".nq": "nquads",
    ".trig": "trig",
    ".jsonld": "json-ld",
    ".json": "json-ld",
    ".rdf": "xml",
    ".owl": "xml",
    ".xml": "xml",
    ".trix": "trix",
    ".ofn": "ofn",
}

MEDIA_TYPE_FORMATS = {
    "text/turtle": "turtle",
    "application/x-turtle": "turtle",
    "text/n3": "n3",
    "application/n-triples": "nt",
    "application/n-quads": "nquads",
    "application/trig": "trig",
    "application/ld+json": "json-ld",
    "application/rdf+xml": "xml",
    "application/owl+xml": "xml",
    "application/trix": "trix",
    "text/owl-functional": "ofn",
}

CORE_PREFIXES = (("owl", str(OWL)), ("rdf", str(RDF)), ("rdfs", str(RDFS)), ("xsd", str(XSD)))
XML_NAMESPACE = "http://www.w3.org/XML/1998/namespace"
BUILTIN_NAMESPACES = (str(RDF), str(RDFS), str(OWL), str(XSD), XML_NAMESPACE)

TURTLE_PREFIX = re.compile(r"@?prefix\s+([A-Za-z][\w.\-]*)?:\s*<([^>]*)>", re.IGNORECASE)
FUNCTIONAL_PREFIX = re.compile(r"Prefix\(\s*([A-Za-z][\w.\-]*)?:=\s*<([^>]*)>\s*\)")
PREFIX_DECLARATIONS = {"turtle": TURTLE_PREFIX, "n3": TURTLE_PREFIX, "trig": TURTLE_PREFIX, "ofn": FUNCTIONAL_PREFIX}

NON_CLASSES = {OWL.Thing, OWL.Nothing, RDFS.Class, RDFS.Resource}

OBJECT_PROPERTY_TYPES = (OWL.ObjectProperty, OWL.InverseFunctionalProperty, OWL.TransitiveProperty,
                         OWL.SymmetricProperty, OWL.AsymmetricProperty, OWL.ReflexiveProperty,
                         OWL.IrreflexiveProperty)

FLAG_TYPES = (
    (OWL.FunctionalProperty, "functional"),
    (OWL.InverseFunctionalProperty, "inverseFunctional"),
    (OWL.ReflexiveProperty, "reflexive"),
    (OWL.IrreflexiveProperty, "irreflexive"),
    (OWL.AsymmetricProperty, "asymmetric"),
    (OWL.SymmetricProperty, "symmetric"),
    (OWL.TransitiveProperty, "transitive"),
)

LITERAL_TYPES = {RDFS.Literal, RDF.PlainLiteral, RDF.langString, RDF.XMLLiteral, RDF.HTML}

# Restriction predicates whose objects are drawn as separate, edged operands
RESTRICTION_OPERANDS = (
    (OWL.someValuesFrom, "someValuesFrom"),
    (OWL.allValuesFrom, "allValuesFrom"),
    (OWL.hasValue, "hasValue"),
    (OWL.onClass, "onClass"),
    (OWL.onDataRange, "onDataRange"),
)


class BlankNodeIds:
    """Synthetic ids for blank nodes and literal values, owned by a single build.

    Ids are handed out from a monotonic counter in the order terms are first seen,
    and the declaring entity of each id is remembered."""

    def __init__(self, prefix: str = "bnode_"):
        self.prefix = prefix
        self.counter = 0
        self.ids: Dict[object, str] = {}
        self.owners: Dict[str, str] = {}

    def id_for(self, key, owner: str) -> str:
        if key not in self.ids:
            self.counter += 1
            synthetic = f"{self.prefix}{self.counter}"
            self.ids[key] = synthetic
            self.owners[synthetic] = owner
            log.debug("Assigned %s to a blank construct declared by %s", synthetic, owner)
        return self.ids[key]


@dataclass(frozen=True)
class ClassExpression:
    id: str
    kind: str
    label: str
    term: object = None
    operands: Tuple[Tuple[str, "ClassExpression"], ...] = ()
    external: bool = False


class OntologyView:
    """Read-only, deterministically ordered view over a parsed ontology graph."""

    def __init__(self, graph: Graph, ontology_uri: Optional[str], prefixes: List[Tuple[str, str]],
                 file_name: str = ""):
        self.graph = graph
        self.ontology_uri = ontology_uri
        self.prefixes = prefixes
        self.file_name = file_name
        self.prefix_map = {}
        for prefix, uri in prefixes:
            self.prefix_map.setdefault(uri, prefix)
        self._qnames: Dict[URIRef, str] = {}
        self._canonical: Dict[object, str] = {}
        self.classes = self._collect_classes()
        self._class_set = set(self.classes)
        self.object_properties = self._collect_properties(OBJECT_PROPERTY_TYPES)
        self.datatype_properties = self._collect_properties((OWL.DatatypeProperty,), exclude=self.object_properties)
        self.annotation_properties = self._collect_properties((OWL.AnnotationProperty,))
        declared = set(self.object_properties) | set(self.datatype_properties) | set(self.annotation_properties)
        self.rdf_properties = self._collect_properties((RDF.Property,), exclude=declared)
        self._property_set = declared | set(self.rdf_properties)
        self.individuals = self._collect_individuals()
        self._individual_set = set(self.individuals)

    # -------------------- names --------------------
    def qname(self, term, ids: Optional["BlankNodeIds"] = None) -> str:
        if isinstance(term, BNode):
            if ids is not None and term in ids.ids:
                return ids.ids[term]
            return "Blank Node"
        if isinstance(term, Literal):
            return format_literal(term)
        if term not in self._qnames:
            self._qnames[term] = get_qname(term, self.prefix_map)
        return self._qnames[term]

    def expression_str(self, term) -> str:
        return get_class_expression_str(self.graph, term, self.qname)

    def sort_key(self, term) -> str:
        if isinstance(term, BNode):
            return self.expression_str(term)
        return self.qname(term)

    def order_key(self, term) -> Tuple[str, str]:
        """sort_key, with ties between blank nodes or literals broken by their full content."""
        if isinstance(term, URIRef):
            return self.sort_key(term), ""
        if term not in self._canonical:
            self._canonical[term] = get_canonical_str(self.graph, term, self.qname)
        return self.sort_key(term), self._canonical[term]

    def sorted_terms(self, terms) -> List:
        return sort_terms(terms, self.order_key)

    def sorted_objects(self, subject, predicate) -> List:
        return self.sorted_terms(self.graph.objects(subject, predicate))

    # -------------------- entity classification --------------------
    @staticmethod
    def is_builtin(term) -> bool:
        return isinstance(term, URIRef) and str(term).startswith(BUILTIN_NAMESPACES)

    def is_class(self, term) -> bool:
        return term in self._class_set

    def is_property(self, term) -> bool:
        return term in self._property_set

    def is_individual(self, term) -> bool:
        return term in self._individual_set

    def is_datatype(self, term) -> bool:
        if not isinstance(term, URIRef):
            return False
        return (term in LITERAL_TYPES or str(term).startswith(str(XSD))
                or (term, RDF.type, RDFS.Datatype) in self.graph)

    def _collect_classes(self) -> List[URIRef]:
        g = self.graph
        classes = set(g.subjects(RDF.type, OWL.Class)) | set(g.subjects(RDF.type, RDFS.Class))
        classes = {c for c in classes if isinstance(c, URIRef) and c not in NON_CLASSES and not self.is_datatype(c)}
        log.info("Found %d classes in ontology %s", len(classes), self.file_name)
        return sorted(classes, key=self.qname)

    def _collect_properties(self, types, exclude=()) -> List[URIRef]:
        props = set()
        for t in types:
            props.update(p for p in self.graph.subjects(RDF.type, t) if isinstance(p, URIRef))
        props -= set(exclude)
        return sorted(props, key=self.qname)

    def _collect_individuals(self) -> List[URIRef]:
        g = self.graph
        individuals = set(g.subjects(RDF.type, OWL.NamedIndividual))
        for subj, typ in g.subject_objects(RDF.type):
            if typ in self._class_set or (isinstance(typ, URIRef) and not self.is_builtin(typ)):
                individuals.add(subj)
        individuals = {i for i in individuals
                       if isinstance(i, URIRef) and i not in self._class_set and i not in self._property_set
                       and not self.is_builtin(i) and (i, RDF.type, OWL.Ontology) not in g}
        log.info("Found %d individuals in ontology %s", len(individuals), self.file_name)
        return sorted(individuals, key=self.qname)

    def property_category(self, prop) -> str:
        if prop in self.object_properties:
            return OBJECT_PROPERTY
        if prop in self.datatype_properties:
            return DATATYPE_PROPERTY
        if prop in self.annotation_properties:
            return ANNOTATION_PROPERTY
        return RDF_PROPERTY

    def property_flags(self, prop) -> Tuple[str, ...]:
        return tuple(flag for typ, flag in FLAG_TYPES if (prop, RDF.type, typ) in self.graph)

    def types_of(self, individual) -> List:
        types = [t for t in self.graph.objects(individual, RDF.type)
                 if t not in (OWL.NamedIndividual, OWL.Thing) and not (self.is_builtin(t) and t not in self._class_set)]
        return self.sorted_terms(types)

    # -------------------- anonymous expressions --------------------
    def named(self, term, kind: Optional[str] = None, default: str = CLASS) -> ClassExpression:
        if kind is None:
            if self.is_datatype(term):
                kind = DATATYPE
            elif self.is_class(term):
                kind = CLASS
            elif self.is_individual(term):
                kind = INDIVIDUAL
            else:
                kind = default
        external = (kind in (CLASS, INDIVIDUAL) and not self.is_builtin(term)
                    and not (self.is_class(term) or self.is_individual(term)))
        if external:
            log.debug("Referenced entity %s is not declared in %s", self.qname(term), self.file_name)
        return ClassExpression(self.qname(term), kind, self.qname(term), term, external=external)

    def expression(self, term, ids: BlankNodeIds, owner: str, kind: Optional[str] = None,
                   seen: Optional[frozenset] = None) -> ClassExpression:
        """Return the expression tree of term, assigning synthetic ids to anonymous parts."""
        g = self.graph
        if isinstance(term, Literal):
            return ClassExpression(ids.id_for((owner, term), owner), LITERAL, format_literal(term), term)
        if not isinstance(term, BNode):
            return self.named(term, kind)

        node_id = ids.id_for(term, owner)
        seen = frozenset() if seen is None else seen
        if term in seen:
            return ClassExpression(node_id, ANONYMOUS, "Blank Node", term)
        seen = seen | {term}

        def sub(t, k=None):
            return self.expression(t, ids, owner, k, seen)

        union_col = g.value(term, OWL.unionOf)
        if union_col is not None:
            members = tuple(("member", sub(m)) for m in collect_list(g, union_col))
            return ClassExpression(node_id, UNION, "Union Of", term, members)
        inter_col = g.value(term, OWL.intersectionOf)
        if inter_col is not None:
            members = tuple(("member", sub(m)) for m in collect_list(g, inter_col))
            return ClassExpression(node_id, INTERSECTION, "Intersection Of", term, members)
        complement = g.value(term, OWL.complementOf) or g.value(term, OWL.datatypeComplementOf)
        if complement is not None:
            return ClassExpression(node_id, COMPLEMENT, "Complement Of", term, (("complementOf", sub(complement)),))
        one_of = g.value(term, OWL.oneOf)
        if one_of is not None:
            members = tuple(("oneOf", sub(m, INDIVIDUAL if not isinstance(m, Literal) else None))
                            for m in collect_list(g, one_of))
            return ClassExpression(node_id, ONE_OF, "Enumeration Individuals (OneOf)", term, members)
        on_prop = g.value(term, OWL.onProperty)
        if on_prop is not None:
            lines = ["Restriction:", f"{self.qname(on_prop)} " + " ".join(
                restriction_phrases(g, term, self.expression_str))]
            operands = []
            for pred, role in RESTRICTION_OPERANDS:
                filler = g.value(term, pred)
                if filler is None or isinstance(filler, Literal):
                    continue
                filler_kind = INDIVIDUAL if pred == OWL.hasValue else (DATATYPE if pred == OWL.onDataRange else None)
                operands.append((role, sub(filler, filler_kind)))
            return ClassExpression(node_id, RESTRICTION, "\n".join(lines), term, tuple(operands))
        return ClassExpression(node_id, ANONYMOUS, "Blank Node", term)

    def enumeration(self, cls, ids: BlankNodeIds, owner: str) -> Optional[ClassExpression]:
        head = self.graph.value(cls, OWL.oneOf)
        if head is None:
            return None
        node_id = ids.id_for(head, owner)
        members = tuple(("oneOf", self.expression(m, ids, owner, None if isinstance(m, Literal) else INDIVIDUAL))
                        for m in collect_list(self.graph, head))
        return ClassExpression(node_id, ONE_OF, "Enumeration Individuals (OneOf)", head, members)

    def disjoint_union(self, cls, ids: BlankNodeIds, owner: str) -> Optional[ClassExpression]:
        head = self.graph.value(cls, OWL.disjointUnionOf)
        if head is None:
            return None
        node_id = ids.id_for(head, owner)
        members = tuple(("member", self.expression(m, ids, owner)) for m in collect_list(self.graph, head))
        return ClassExpression(node_id, UNION, "Disjoint Union Of", head, members)


# -------------------- loading --------------------
def select_format(file_name: str, media_type: Optional[str] = None) -> str:
    suffix = os.path.splitext(file_name or "")[1].lower()
    if suffix in SUFFIX_FORMATS:
        return SUFFIX_FORMATS[suffix]
    if media_type:
        fmt = MEDIA_TYPE_FORMATS.get(media_type.split(";")[0].strip().lower())
        if fmt:
            return fmt
    raise OntologyLoadError(file_name, f"Unsupported ontology file type '{suffix or media_type}'")


def _decode(file_name: str, data: bytes) -> str:
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise OntologyLoadError(file_name, f"Content is not valid UTF-8 text ({e})") from e


def _parse_functional(file_name: str, data: bytes) -> Tuple[Graph, Optional[str]]:
    doc = to_python(_decode(file_name, data))
    if not doc:
        raise ValueError("Failed to parse OWL functional syntax document")
    ns = None
    if hasattr(doc, 'ontology') and doc.ontology and doc.ontology.iri:
        ns = str(doc.ontology.iri)
    g = Graph(bind_namespaces="none")
    doc.to_rdf(g)
    return g, ns


def _parse_with_owlready2(data: bytes) -> Graph:
    from owlready2 import World
    world = World()
    onto = world.get_ontology("http://anonymous.org/ontology.owl").load(fileobj=io.BytesIO(data))
    if onto is None:
        raise ValueError("owlready2 returned None")
    g = Graph(bind_namespaces="none")
    for triple in world.as_rdflib_graph():
        g.add(triple)
    return g


def parse_payload(file_name: str, data: bytes, fmt: str) -> Tuple[Graph, Optional[str]]:
    """Parse the payload with the parser selected for fmt; returns (graph, ontology IRI or None)."""
    if fmt == "ofn":
        return _parse_functional(file_name, data)
    g = Graph(bind_namespaces="none")
    if fmt != "xml":
        g.parse(data=_decode(file_name, data), format=fmt)
        return g, None
    try:
        g.parse(data=data, format="xml")
    except Exception as xml_e:
        log.warning("RDF/XML parsing of %s failed (%s); trying owlready2", file_name, xml_e)
        g = _parse_with_owlready2(data)
        log.info("Loaded ontology %s with owlready2 fallback, %d triples", file_name, len(g))
    return g, None


def declared_prefixes(text: str, fmt: str) -> List[Tuple[str, str]]:
    """Prefix declarations as written in Turtle-family or functional syntax text, including the default prefix."""
    pattern = PREFIX_DECLARATIONS.get(fmt)
    if pattern is None:
        return []
    return [(m.group(1) or "", m.group(2)) for m in pattern.finditer(text)]


def collect_prefixes(g: Graph, declared=()) -> List[Tuple[str, str]]:
    prefixes = {}
    for prefix, uri in list(declared) + list(g.namespaces()):
        if str(uri) == XML_NAMESPACE or prefix == "xml":
            continue
        prefixes.setdefault(str(prefix), str(uri))
    bound = set(prefixes.values())
    for prefix, uri in CORE_PREFIXES:
        if prefix not in prefixes and uri not in bound:
            prefixes[prefix] = uri
    return sorted(prefixes.items())


def find_ontology_uri(g: Graph) -> Optional[str]:
    for s in sorted(g.subjects(RDF.type, OWL.Ontology), key=str):
        if isinstance(s, URIRef):
            return str(s)
    return None


def load_ontology(request: GraphRequest) -> OntologyView:
    """Parse the request's ontology payload and wrap it in an OntologyView."""
    file_name = request.file_name
    if not request.file_data or not request.file_data.strip():
        raise OntologyLoadError(file_name, "Ontology content is empty")
    fmt = select_format(file_name, request.media_type)

    try:
        g, ns = parse_payload(file_name, request.file_data, fmt)
        if len(g) == 0:
            raise ValueError("RDF graph is empty after loading ontology")
    except OntologyLoadError:
        raise
    except Exception as e:
        error_msg = f"Failed to load or parse ontology from {file_name}: {str(e)}\n{traceback.format_exc()}"
        log.error(error_msg)
        raise OntologyLoadError(file_name, str(e)) from e
    log.info("Loaded ontology %s (%s) with %d triples", file_name, fmt, len(g))

    if request.reasoning == "reasoningTrue":
        log.warning("Reasoning requested for %s; only asserted and parser supplied triples are drawn", file_name)

    ontology_uri = ns or find_ontology_uri(g)
    if not ontology_uri:
        log.warning("No ontology IRI found in %s", file_name)
    declared = declared_prefixes(_decode(file_name, request.file_data), fmt) if fmt in PREFIX_DECLARATIONS else []
    prefixes = collect_prefixes(g, declared)
    log.debug("Prefixes for %s: %s", file_name, prefixes)
    return OntologyView(g, ontology_uri, prefixes, file_name)
