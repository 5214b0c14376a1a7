from ontograph.diagram_generator import generate_graphml
from ontograph.errors import InternalBuildError, OntologyLoadError, ValidationError
from ontograph.models import GraphRequest

__version__ = "0.1.0"
