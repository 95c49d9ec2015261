"""Read-only view of workflow definitions owned by the definition service.

Definitions are fetched on demand and never persisted by this service,
except as the step snapshot an instance captures when it starts.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.domain.types import DefinitionStatus, StepKind


class Step(BaseModel):
    """A node in a definition's step graph.

    The definition service names the kind field ``type``.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str = ""
    kind: StepKind = Field(default=StepKind.TASK, alias="type")


class WorkflowDefinition(BaseModel):
    """Definition as returned by the definition service."""
    id: str
    name: str = ""
    version: Optional[str] = None
    status: DefinitionStatus
    steps: List[Step] = Field(default_factory=list)

    @property
    def is_active(self) -> bool:
        return self.status == DefinitionStatus.ACTIVE

    @property
    def first_step_id(self) -> Optional[str]:
        return self.steps[0].id if self.steps else None
