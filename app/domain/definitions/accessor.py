"""Abstract access to workflow definitions."""

from abc import ABC, abstractmethod
from typing import Optional

from app.domain.definitions.models import WorkflowDefinition


class DefinitionAccessor(ABC):
    """Read-only source of workflow definitions.

    Implementations return ``None`` when the definition does not exist and
    raise ``UnavailableError`` when they cannot tell (timeouts, transport
    errors, malformed payloads). They must never fall back to a default
    definition.
    """

    @abstractmethod
    def get_definition(self, definition_id: str) -> Optional[WorkflowDefinition]:
        """Fetch the current definition for ``definition_id``."""
