import pytest

from ontograph.models import GraphRequest
from ontograph.ontology_processor import load_ontology
from ontograph.style_vocabulary import CUSTOM_DEFAULTS

PREFIXES_TTL = """
@prefix owl: <http://www.w3.org/2002/07/owl#> .
@prefix rdf: <http://www.w3.org/1999/02/22-rdf-syntax-ns#> .
@prefix rdfs: <http://www.w3.org/2000/01/rdf-schema#> .
@prefix xsd: <http://www.w3.org/2001/XMLSchema#> .
@prefix test: <http://purl.org/ninepts/test#> .
@prefix ninepts: <http://purl.org/ninepts/> .
@prefix ex: <http://example.org/> .
"""


@pytest.fixture
def make_request():
    def _make(body: str, file_name: str = "test.ttl", **kwargs) -> GraphRequest:
        data = body if body.lstrip().startswith(("@prefix", "<?xml", "Prefix", "{")) else PREFIXES_TTL + body
        kwargs.setdefault("title", "Test Graph")
        kwargs.setdefault("style", dict(CUSTOM_DEFAULTS))
        return GraphRequest(file_name=file_name, file_data=data.encode("utf-8"), **kwargs)
    return _make


@pytest.fixture
def load_view(make_request):
    def _load(body: str, **kwargs):
        return load_ontology(make_request(body, **kwargs))
    return _load
