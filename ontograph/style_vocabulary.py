import os
import re
import logging
import yaml

log = logging.getLogger("onto2graphml")

# -------------------- request enumerations --------------------
NOTATIONS = ("custom", "graffoo", "uml", "vowl")
SCOPES = ("class", "property", "individual", "both", "rdf")
COLLAPSE_VALUES = ("collapseTrue", "collapseFalse")
REASONING_VALUES = ("reasoningTrue", "reasoningFalse")

# -------------------- style enumerations and their yEd spellings --------------------
NODE_SHAPES = {
    "none": "rectangle",
    "circle": "ellipse",
    "smallCircle": "ellipse",
    "diamond": "diamond",
    "ellipse": "ellipse",
    "hexagon": "hexagon",
    "parallelogramLeft": "parallelogram2",
    "parallelogramRight": "parallelogram",
    "roundRectangle": "roundrectangle",
    "squareRectangle": "rectangle",
}

LINE_TYPES = {
    "solid": "line",
    "dashed": "dashed",
    "dotted": "dotted",
    "dashedDotted": "dashed_dotted",
}

ARROW_SHAPES = {
    "none": "none",
    "circleEmpty": "transparent_circle",
    "circleSolid": "circle",
    "diamondEmpty": "white_diamond",
    "diamondSolid": "diamond",
    "triangleEmpty": "white_delta",
    "triangleSolid": "delta",
    "angleBracket": "plain",
    "backslash": "skewed_dash",
}

COLOR_PATTERN = re.compile(r"^#[0-9A-Fa-f]{6}$")

WHITE = "#FFFFFF"
BLACK = "#000000"

# -------------------- request style fields --------------------
NODE_FIELD_SUFFIXES = ("NodeShape", "FillColor", "TextColor", "BorderColor", "BorderType")
RELATIONSHIP_FIELD_SUFFIXES = ("SourceShape", "TargetShape", "LineColor", "LineType")
PROPERTY_FIELD_SUFFIXES = ("SourceShape", "TargetShape", "EdgeColor", "EdgeType")

NODE_GROUP_NAMES = {
    "class": "class node",
    "individual": "individual node",
    "data": "datatype node",
    "obj": "object node",
}

EDGE_GROUP_NAMES = {
    "subclassOf": "subclassOf",
    "typeOf": "typeOf",
    "dataProp": "data property",
    "objProp": "object property",
    "annProp": "annotation property",
    "rdfProp": "RDF property",
}

RELATIONSHIP_GROUPS = ("subclassOf", "typeOf")

# Which custom style groups apply to each scope
CUSTOM_SCOPE_GROUPS = {
    "class": (("class", "data"), ("subclassOf",)),
    "individual": (("data", "individual", "class"), ("typeOf", "dataProp", "objProp")),
    "property": (("data", "obj"), ("annProp", "dataProp", "objProp", "rdfProp")),
    "both": (("data", "obj"), ("annProp", "dataProp", "objProp", "rdfProp", "subclassOf")),
    "rdf": (("data", "obj", "individual"),
            ("annProp", "dataProp", "objProp", "rdfProp", "subclassOf", "typeOf")),
}

UML_COLOR_FIELDS = {
    "umlNodeColor": "UML node fill color",
    "umlDataNodeColor": "UML datatype node fill color",
}


def node_fields(group: str) -> dict:
    """Return {'shape': 'classNodeShape', 'fill': 'classFillColor', ...} for a node group."""
    keys = ("shape", "fill", "text", "border", "border_type")
    return {k: f"{group}{suffix}" for k, suffix in zip(keys, NODE_FIELD_SUFFIXES)}


def edge_fields(group: str) -> dict:
    keys = ("source", "target", "color", "line_type")
    suffixes = RELATIONSHIP_FIELD_SUFFIXES if group in RELATIONSHIP_GROUPS else PROPERTY_FIELD_SUFFIXES
    return {k: f"{group}{suffix}" for k, suffix in zip(keys, suffixes)}


def describe_field(field_name: str) -> str:
    """Human readable description of a style field, used in validation messages."""
    for group, name in NODE_GROUP_NAMES.items():
        fields = node_fields(group)
        if field_name == fields["shape"]:
            return f"{name} shape"
        if field_name == fields["fill"]:
            return f"{name} fill color"
        if field_name == fields["text"]:
            return f"{name} text color"
        if field_name == fields["border"]:
            return f"{name} border color"
        if field_name == fields["border_type"]:
            return f"{name} border type"
    for group, name in EDGE_GROUP_NAMES.items():
        fields = edge_fields(group)
        if field_name == fields["source"]:
            return f"{name} source arrow shape"
        if field_name == fields["target"]:
            return f"{name} target arrow shape"
        if field_name == fields["color"]:
            return f"{name} line color"
        if field_name == fields["line_type"]:
            return f"{name} line type"
    return UML_COLOR_FIELDS.get(field_name, field_name)


# -------------------- fixed notation styles --------------------
STYLES_PATH = os.path.join(os.path.dirname(__file__), "notation_styles.yaml")


def load_notation_styles(path: str = STYLES_PATH) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        styles = yaml.safe_load(f)
    log.debug("Loaded notation styles from %s: %s", path, sorted(styles.keys()))
    return styles


NOTATION_STYLES = load_notation_styles()
CUSTOM_DEFAULTS = dict(NOTATION_STYLES.get("custom_defaults", {}))
