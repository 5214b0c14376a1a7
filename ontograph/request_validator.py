import logging
from typing import Dict, Iterable, Optional

from ontograph.errors import ValidationError
from ontograph.models import GraphRequest
from ontograph.style_vocabulary import (
    NOTATIONS, SCOPES, COLLAPSE_VALUES, REASONING_VALUES, NODE_SHAPES, LINE_TYPES, ARROW_SHAPES,
    COLOR_PATTERN, CUSTOM_SCOPE_GROUPS, UML_COLOR_FIELDS, node_fields, edge_fields, describe_field
)

log = logging.getLogger("onto2graphml")

VOWL_COLLAPSE_ERROR = ("Defining collapsed edges is not valid for a VOWL visualization since it mandates "
                       "the use of class and property splitting.")
VOWL_INDIVIDUAL_ERROR = "A selection of an 'Individual' graph type is not valid for a VOWL visualization."


def _check_string(errors: Dict[str, str], field: str, value: Optional[str], description: str,
                  allowed: Optional[Iterable[str]] = None):
    if value is None or not str(value).strip():
        errors[field] = f"The string, {value if value is not None else ''}, defining the {description}, is null or empty."
    elif allowed is not None and value not in allowed:
        errors[field] = f"The string, {value}, defining the {description}, is not one of the expected values."


def _check_color(errors: Dict[str, str], field: str, value: Optional[str], description: str):
    if value is None or not COLOR_PATTERN.match(str(value)):
        errors[field] = f"Please provide the 6-digit hex color code, beginning with # for {description}."


def _check_custom_fields(errors: Dict[str, str], request: GraphRequest):
    node_groups, edge_groups = CUSTOM_SCOPE_GROUPS[request.scope]
    style = request.style or {}
    for group in node_groups:
        fields = node_fields(group)
        _check_string(errors, fields["shape"], style.get(fields["shape"]), describe_field(fields["shape"]), NODE_SHAPES)
        _check_string(errors, fields["border_type"], style.get(fields["border_type"]),
                      describe_field(fields["border_type"]), LINE_TYPES)
        for key in ("fill", "text", "border"):
            _check_color(errors, fields[key], style.get(fields[key]), describe_field(fields[key]))
    for group in edge_groups:
        fields = edge_fields(group)
        for key in ("source", "target"):
            _check_string(errors, fields[key], style.get(fields[key]), describe_field(fields[key]), ARROW_SHAPES)
        _check_string(errors, fields["line_type"], style.get(fields["line_type"]),
                      describe_field(fields["line_type"]), LINE_TYPES)
        _check_color(errors, fields["color"], style.get(fields["color"]), describe_field(fields["color"]))


def collect_errors(request: GraphRequest) -> Dict[str, str]:
    """Run every request rule and return {field: message} for the ones that fail."""
    errors: Dict[str, str] = {}
    _check_string(errors, "title", request.title, "graph title")
    _check_string(errors, "file_name", request.file_name, "input file")
    if not request.file_data or not request.file_data.strip():
        errors["file_data"] = f"The ontology payload of the input file, {request.file_name or ''}, is empty."
    _check_string(errors, "reasoning", request.reasoning, "reasoning type", REASONING_VALUES)
    _check_string(errors, "notation", request.notation, "visualization type", NOTATIONS)
    _check_string(errors, "scope", request.scope, "graph type", SCOPES)
    _check_string(errors, "collapse_edges", request.collapse_edges, "collapse edges flag", COLLAPSE_VALUES)

    if request.notation == "vowl":
        if request.scope == "individual":
            errors["vowl_scope"] = VOWL_INDIVIDUAL_ERROR
        if request.collapse_edges == "collapseTrue":
            errors["vowl_collapse"] = VOWL_COLLAPSE_ERROR

    if request.notation == "uml":
        style = request.style or {}
        for field, description in UML_COLOR_FIELDS.items():
            _check_color(errors, field, style.get(field), description)

    if request.notation == "custom" and request.scope in CUSTOM_SCOPE_GROUPS:
        _check_custom_fields(errors, request)
    return errors


def validate(request: GraphRequest):
    errors = collect_errors(request)
    if errors:
        log.error("Invalid graph request with %d error(s):\n%s", len(errors), "\n".join(errors.values()))
        raise ValidationError(errors)
    log.debug("Graph request for %s validated (%s, %s)", request.file_name, request.notation, request.scope)
