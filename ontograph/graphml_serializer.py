import re
import html
import logging
from datetime import date
from typing import List, Optional, Tuple

from ontograph.errors import InternalBuildError
from ontograph.models import StyledGraph, StyledNode, StyledEdge, TITLE_NODE_ID, PREFIXES_NODE_ID
from ontograph.style_vocabulary import NODE_SHAPES, LINE_TYPES, ARROW_SHAPES

log = logging.getLogger("onto2graphml")

HEADER = [
    '<?xml version="1.0" encoding="UTF-8" standalone="no"?>',
    '<graphml xmlns="http://graphml.graphdrawing.org/xmlns" '
    'xmlns:xsi="http://www.w3.org/2001/XMLSchema-instance" '
    'xmlns:sys="http://www.yworks.com/xml/yfiles-common/markup/primitives/2.0" '
    'xmlns:x="http://www.yworks.com/xml/yfiles-common/markup/2.0" '
    'xmlns:y="http://www.yworks.com/xml/graphml" '
    'xmlns:yed="http://www.yworks.com/xml/yed/3" '
    'xsi:schemaLocation="http://graphml.graphdrawing.org/xmlns '
    'http://www.yworks.com/xml/schema/graphml/1.1/ygraphml.xsd">',
    '<key attr.name="Description" attr.type="string" for="graph" id="d0"/>',
    '<key for="port" id="d1" yfiles.type="portgraphics"/>',
    '<key for="port" id="d2" yfiles.type="portgeometry"/>',
    '<key for="port" id="d3" yfiles.type="portuserdata"/>',
    '<key attr.name="url" attr.type="string" for="node" id="d4"/>',
    '<key attr.name="description" attr.type="string" for="node" id="d5"/>',
    '<key for="node" id="d6" yfiles.type="nodegraphics"/>',
    '<key for="graphml" id="d7" yfiles.type="resources"/>',
    '<key attr.name="url" attr.type="string" for="edge" id="d8"/>',
    '<key attr.name="description" attr.type="string" for="edge" id="d9"/>',
    '<key for="edge" id="d10" yfiles.type="edgegraphics"/>',
    '<graph edgedefault="directed" id="G">',
    '  <data key="d0"/>',
]

FOOTER = [
    '</graph>',
    '<data key="d7">',
    '  <y:Resources/>',
    '</data>',
    '</graphml>',
]

GROUPS = {
    "title": ("Graph Information", "#99CCFF", TITLE_NODE_ID),
    "prefixes": ("Prefixes", "#B7B69E", PREFIXES_NODE_ID),
}


# Characters outside the XML 1.0 Char production
INVALID_XML_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


def escape(text: str) -> str:
    return html.escape(INVALID_XML_CHARS.sub("", text), quote=True)


def attr(name: str, value, entity: Optional[str] = None) -> str:
    """Render name="value", refusing values that would print as null or nothing."""
    if value is None or str(value) == "" or str(value) == "null":
        raise InternalBuildError(f"Attribute {name} has no value for {entity or 'the document'}", entity)
    if isinstance(value, float):
        value = f"{value:.1f}"
    return f'{name}="{escape(str(value))}"'


def attrs(entity: Optional[str], *pairs) -> str:
    return " ".join(attr(name, value, entity) for name, value in pairs)


def lookup(table: dict, key: str, entity: str, what: str) -> str:
    if key not in table:
        raise InternalBuildError(f"Unknown {what} {key} for {entity}", entity)
    return table[key]


# -------------------- title and prefixes --------------------
def title_text(title: str, ontology_uri: Optional[str], generated: Optional[date] = None) -> str:
    generated = generated or date.today()
    return (f"Title:  {title}\n\nOntology URI:  {ontology_uri or 'None defined'}\n\n"
            f"Generated:  {generated.isoformat()}")


def prefixes_text(prefix_list: List[Tuple[str, str]]) -> str:
    if not prefix_list:
        return "None defined"
    return "\n".join(f"{prefix}: {uri}" for prefix, uri in prefix_list)


def group_node(group: str, text: str) -> List[str]:
    header, background, child_id = GROUPS[group]
    return [
        f'<node {attrs(group, ("id", group), ("yfiles.foldertype", "group"))}>',
        '  <data key="d4"/>',
        '  <data key="d6">',
        '    <y:ProxyAutoBoundsNode>',
        '      <y:Realizers active="0">',
        '        <y:GroupNode>',
        '          <y:Geometry height="112.2" width="449.12" x="0.0" y="0.0"/>',
        '          <y:Fill color="#FFFFFF" transparent="false"/>',
        '          <y:BorderStyle color="#000000" type="line" width="1.0"/>',
        f'          <y:NodeLabel alignment="right" autoSizePolicy="node_width" {attr("backgroundColor", background, group)} '
        'borderDistance="0.0" fontFamily="Dialog" fontSize="15" fontStyle="bold" hasLineColor="false" '
        'modelName="internal" modelPosition="t" textColor="#000000" visible="true">'
        f'{escape(header)}</y:NodeLabel>',
        '          <y:Shape type="rectangle"/>',
        '          <y:State closed="false" closedHeight="50.0" closedWidth="50.0" innerGraphDisplayEnabled="false"/>',
        '          <y:Insets bottom="15" bottomF="15.0" left="15" leftF="15.0" right="15" rightF="15.0" top="15" topF="15.0"/>',
        '        </y:GroupNode>',
        '      </y:Realizers>',
        '    </y:ProxyAutoBoundsNode>',
        '  </data>',
        f'  <graph edgedefault="directed" id="{escape(group)}:">',
        f'    <node id="{escape(child_id)}">',
        '      <data key="d6">',
        '        <y:ShapeNode>',
        '          <y:Geometry height="25.0" width="150.0" x="0.0" y="0.0"/>',
        '          <y:Fill hasColor="false" transparent="false"/>',
        '          <y:BorderStyle hasColor="false" type="line" width="1.0"/>',
        '          <y:NodeLabel alignment="left" autoSizePolicy="content" borderDistance="0.0" fontFamily="Dialog" '
        'fontSize="16" fontStyle="plain" hasBackgroundColor="false" hasLineColor="false" modelName="internal" '
        f'modelPosition="c" textColor="#000000" visible="true">{escape(text)}</y:NodeLabel>',
        '          <y:Shape type="rectangle"/>',
        '        </y:ShapeNode>',
        '      </data>',
        '    </node>',
        '  </graph>',
        '</node>',
    ]


# -------------------- entity nodes --------------------
def shape_node(styled: StyledNode) -> List[str]:
    node, style = styled.node, styled.style
    shape = lookup(NODE_SHAPES, style.shape, node.id, "node shape")
    border = lookup(LINE_TYPES, style.border_type, node.id, "border type")
    return [
        f'<node {attr("id", node.id, node.id)}>',
        '  <data key="d6">',
        '    <y:ShapeNode>',
        f'      <y:Geometry {attrs(node.id, ("height", style.height), ("width", style.width))} x="0.0" y="0.0"/>',
        f'      <y:Fill {attr("color", style.fill_color, node.id)} transparent="false"/>',
        f'      <y:BorderStyle {attrs(node.id, ("color", style.border_color), ("type", border), ("width", style.border_width))}/>',
        f'      <y:NodeLabel alignment="center" autoSizePolicy="content" fontFamily="Dialog" '
        f'{attr("fontSize", style.font_size, node.id)} fontStyle="plain" hasBackgroundColor="false" hasLineColor="false" '
        f'{attrs(node.id, ("modelName", style.model_name), ("modelPosition", style.model_position), ("textColor", style.text_color))} '
        f'visible="true">{escape(styled.label)}</y:NodeLabel>',
        f'      <y:Shape {attr("type", shape, node.id)}/>',
        '    </y:ShapeNode>',
        '  </data>',
        '</node>',
    ]


def note_node(styled: StyledNode) -> List[str]:
    node, style = styled.node, styled.style
    border = lookup(LINE_TYPES, style.border_type, node.id, "border type")
    return [
        f'<node {attr("id", node.id, node.id)}>',
        '  <data key="d4"/>',
        '  <data key="d5"><![CDATA[UMLNote]]></data>',
        '  <data key="d6">',
        '    <y:UMLNoteNode>',
        f'      <y:Geometry {attrs(node.id, ("height", style.height), ("width", style.width))} x="0.0" y="0.0"/>',
        f'      <y:Fill {attr("color", style.fill_color, node.id)} transparent="false"/>',
        f'      <y:BorderStyle {attrs(node.id, ("color", style.border_color), ("type", border), ("width", style.border_width))}/>',
        f'      <y:NodeLabel alignment="left" autoSizePolicy="content" fontFamily="Dialog" '
        f'{attr("fontSize", style.font_size, node.id)} fontStyle="plain" hasBackgroundColor="false" hasLineColor="false" '
        f'modelName="internal" modelPosition="c" {attr("textColor", style.text_color, node.id)} '
        f'visible="true">{escape(styled.label)}</y:NodeLabel>',
        '    </y:UMLNoteNode>',
        '  </data>',
        '</node>',
    ]


def uml_node(styled: StyledNode) -> List[str]:
    node, style = styled.node, styled.style
    rows = "\n".join(node.attributes)
    return [
        f'<node {attr("id", node.id, node.id)}>',
        '  <data key="d5"/>',
        '  <data key="d6">',
        '    <y:GenericNode configuration="com.yworks.entityRelationship.big_entity">',
        f'      <y:Geometry {attrs(node.id, ("height", style.height), ("width", style.width))} x="0.0" y="0.0"/>',
        f'      <y:Fill {attr("color", style.fill_color, node.id)} transparent="false"/>',
        f'      <y:BorderStyle {attr("color", style.border_color, node.id)} type="line" width="1.0"/>',
        f'      <y:NodeLabel alignment="center" autoSizePolicy="content" {attr("backgroundColor", style.fill_color, node.id)} '
        'configuration="com.yworks.entityRelationship.label.name" fontFamily="Dialog" '
        f'{attr("fontSize", style.font_size, node.id)} fontStyle="plain" hasLineColor="false" modelName="internal" '
        f'modelPosition="t" {attr("textColor", style.text_color, node.id)} visible="true">{escape(styled.label)}</y:NodeLabel>',
        '      <y:NodeLabel alignment="left" autoSizePolicy="content" '
        'configuration="com.yworks.entityRelationship.label.attributes" fontFamily="Dialog" '
        f'{attr("fontSize", style.font_size, node.id)} fontStyle="plain" hasBackgroundColor="false" hasLineColor="false" '
        f'modelName="custom" {attr("textColor", style.text_color, node.id)} visible="true">{escape(rows)}',
        '        <y:LabelModel>',
        '          <y:ErdAttributesNodeLabelModel/>',
        '        </y:LabelModel>',
        '        <y:ModelParameter>',
        '          <y:ErdAttributesNodeLabelModelParameter/>',
        '        </y:ModelParameter>',
        '      </y:NodeLabel>',
        '      <y:StyleProperties>',
        '        <y:Property class="java.lang.Boolean" name="y.view.ShadowNodePainter.SHADOW_PAINTING" value="false"/>',
        '      </y:StyleProperties>',
        '    </y:GenericNode>',
        '  </data>',
        '</node>',
    ]


NODE_WRITERS = {
    "shape": shape_node,
    "note": note_node,
    "uml": uml_node,
}


# -------------------- edges --------------------
def edge_element(styled: StyledEdge) -> List[str]:
    edge, style = styled.edge, styled.style
    line = lookup(LINE_TYPES, style.line_type, edge.id, "line type")
    source_arrow = lookup(ARROW_SHAPES, style.source_arrow, edge.id, "arrow")
    target_arrow = lookup(ARROW_SHAPES, style.target_arrow, edge.id, "arrow")
    visible = "true" if styled.label else "false"
    return [
        f'<edge {attrs(edge.id, ("id", edge.id), ("source", edge.source), ("target", edge.target))}>',
        '  <data key="d10">',
        '    <y:PolyLineEdge>',
        '      <y:Path sx="0.0" sy="0.0" tx="0.0" ty="0.0"/>',
        f'      <y:LineStyle {attrs(edge.id, ("color", style.line_color), ("type", line), ("width", style.line_width))}/>',
        f'      <y:Arrows {attrs(edge.id, ("source", source_arrow), ("target", target_arrow))}/>',
        f'      <y:EdgeLabel alignment="center" {attr("backgroundColor", style.label_background, edge.id)} distance="2.0" '
        f'fontFamily="Dialog" {attr("fontSize", style.font_size, edge.id)} fontStyle="plain" hasLineColor="false" '
        'modelName="centered" modelPosition="center" preferredPlacement="anywhere" ratio="0.5" '
        f'{attr("textColor", style.label_color, edge.id)} visible="{visible}">{escape(styled.label)}</y:EdgeLabel>',
        '      <y:BendStyle smoothed="false"/>',
        '    </y:PolyLineEdge>',
        '  </data>',
        '</edge>',
    ]


def serialize(styled_graph: StyledGraph, title: str, ontology_uri: Optional[str],
              prefix_list: List[Tuple[str, str]], generated: Optional[date] = None) -> str:
    """Write the styled graph as a yEd GraphML document.

    The title and prefixes groups come first, then the entity nodes in build order, then the edges."""
    lines = list(HEADER)
    lines.extend(group_node("title", title_text(title, ontology_uri, generated)))
    lines.extend(group_node("prefixes", prefixes_text(prefix_list)))
    for styled in styled_graph.nodes:
        writer = NODE_WRITERS.get(styled.style.node_type)
        if writer is None:
            raise InternalBuildError(f"Unknown node type {styled.style.node_type} for {styled.node.id}",
                                     styled.node.id)
        lines.extend(writer(styled))
    for styled in styled_graph.edges:
        lines.extend(edge_element(styled))
    lines.extend(FOOTER)
    log.info("Serialized %d nodes and %d edges as GraphML", len(styled_graph.nodes), len(styled_graph.edges))
    return "\n".join(lines) + "\n"
