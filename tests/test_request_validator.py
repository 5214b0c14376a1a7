import pytest

from ontograph.diagram_generator import generate_graphml
from ontograph.errors import ValidationError
from ontograph.models import GraphRequest
from ontograph.request_validator import (
    collect_errors, validate, VOWL_COLLAPSE_ERROR, VOWL_INDIVIDUAL_ERROR
)

CLASS_TTL = """
test:Animal a owl:Class .
"""


def test_valid_request_passes(make_request):
    assert validate(make_request(CLASS_TTL)) is None


def test_errors_are_aggregated(make_request):
    request = make_request(CLASS_TTL, title="", notation="bogus", scope="everything")
    errors = collect_errors(request)
    assert set(errors) == {"title", "notation", "scope"}
    with pytest.raises(ValidationError) as info:
        validate(request)
    assert len(str(info.value).split("\n")) == 3
    assert info.value.errors["title"] == "The string, , defining the graph title, is null or empty."
    assert "is not one of the expected values" in info.value.errors["scope"]


def test_empty_payload_is_reported():
    request = GraphRequest(title="T", file_name="empty.ttl", file_data=b"")
    assert "file_data" in collect_errors(request)


def test_vowl_rejects_collapse_before_parsing(make_request):
    request = make_request("this is not turtle", notation="vowl", collapse_edges="collapseTrue")
    with pytest.raises(ValidationError, match="Defining collapsed edges is not valid"):
        generate_graphml(request)
    assert collect_errors(request) == {"vowl_collapse": VOWL_COLLAPSE_ERROR}


def test_vowl_rejects_individual_scope(make_request):
    request = make_request(CLASS_TTL, notation="vowl", scope="individual")
    with pytest.raises(ValidationError, match="'Individual' graph type is not valid"):
        validate(request)
    assert collect_errors(request)["vowl_scope"] == VOWL_INDIVIDUAL_ERROR


@pytest.mark.parametrize("color", ["yellow", "#FFF", "FFFF00", "#GGGGGG", ""])
def test_custom_colors_must_be_six_digit_hex(make_request, color):
    request = make_request(CLASS_TTL, notation="custom")
    request.style["classFillColor"] = color
    errors = collect_errors(request)
    assert errors == {
        "classFillColor": "Please provide the 6-digit hex color code, beginning with # for class node fill color."
    }


def test_custom_fields_checked_per_scope(make_request):
    request = make_request(CLASS_TTL, notation="custom", scope="property")
    request.style["objNodeShape"] = "triangle"
    request.style["rdfPropEdgeType"] = "wavy"
    # class group is not drawn in property scope
    request.style["classNodeShape"] = "triangle"
    assert set(collect_errors(request)) == {"objNodeShape", "rdfPropEdgeType"}


def test_uml_colors_are_checked(make_request):
    request = make_request(CLASS_TTL, notation="uml")
    request.style["umlNodeColor"] = "red"
    assert set(collect_errors(request)) == {"umlNodeColor"}


@pytest.mark.parametrize("notation", ["graffoo", "vowl"])
def test_fixed_notations_ignore_style_fields(make_request, notation):
    request = make_request(CLASS_TTL, notation=notation, style={"classFillColor": "nonsense"})
    assert collect_errors(request) == {}
