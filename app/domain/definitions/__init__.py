"""Definition accessor module."""

from app.domain.definitions.accessor import DefinitionAccessor
from app.domain.definitions.models import Step, WorkflowDefinition

__all__ = [
    "DefinitionAccessor",
    "Step",
    "WorkflowDefinition",
]
