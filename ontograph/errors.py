from typing import Dict, Optional


class OntographError(Exception):
    """Base class for failures raised while generating a graph."""


class ValidationError(OntographError, ValueError):
    """Raised once with every invalid request field found."""

    def __init__(self, errors: Dict[str, str]):
        self.errors = dict(errors)
        super().__init__("\n".join(self.errors.values()))


class OntologyLoadError(OntographError, ValueError):
    """Raised when the ontology payload cannot be read or parsed."""

    def __init__(self, file_name: str, cause: str):
        self.file_name = file_name
        self.cause = cause
        super().__init__(f"Failed to load or parse ontology from {file_name}: {cause}")


class InternalBuildError(OntographError, ValueError):
    """Raised when a built or rendered graph is inconsistent, or an unexpected failure is wrapped."""

    def __init__(self, message: str, entity_id: Optional[str] = None):
        self.entity_id = entity_id
        super().__init__(message)
