import logging
import traceback
from dataclasses import replace
from datetime import date
from typing import Optional

from ontograph.errors import InternalBuildError, OntologyLoadError, ValidationError
from ontograph.models import GraphRequest
from ontograph.request_validator import validate
from ontograph.ontology_processor import load_ontology
from ontograph.graph_builder import build
from ontograph.edge_collapser import collapse
from ontograph.renderers import get_renderer
from ontograph.graphml_serializer import serialize

log = logging.getLogger("onto2graphml")


def effective_scope(request: GraphRequest) -> str:
    """UML draws classes and properties together unless individuals were asked for."""
    if request.notation == "uml" and request.scope != "individual":
        return "both"
    return request.scope


def generate_graphml(request: GraphRequest, generated: Optional[date] = None) -> str:
    """Validate the request, then load, build, collapse, render and serialize its ontology."""
    validate(request)
    try:
        view = load_ontology(request)
        scope = effective_scope(request)
        if scope != request.scope:
            log.info("Drawing %s scope as %s for %s notation", request.scope, scope, request.notation)
            request = replace(request, scope=scope)
        graph = build(view, scope, request.title)
        if request.collapse and request.notation != "vowl":
            graph = collapse(graph, request.notation)
        styled = get_renderer(request).render(graph)
        output = serialize(styled, request.title, view.ontology_uri, view.prefixes, generated)
    except (ValidationError, OntologyLoadError, InternalBuildError):
        raise
    except Exception as e:
        error_msg = f"Error creating the graph. Exception details: {str(e)}\n{traceback.format_exc()}"
        log.error(error_msg)
        raise InternalBuildError(f"Error creating the graph. Exception details: {str(e)}") from e
    log.info("Generated GraphML for %s (%s, %s)", request.file_name, request.notation, scope)
    return output
