"""Domain schemas for API requests and responses."""
from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, Field

from app.domain.types import (
    ApprovalStatus,
    ApproverStatus,
    DecisionType,
    InstancePriority,
    InstanceStatus,
    TransitionAction,
)


# ==================== Instance Schemas ====================

class InstanceStart(BaseModel):
    """Schema for starting a workflow instance."""
    definition_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: Optional[str] = None
    context: Dict[str, Any] = Field(default_factory=dict)
    priority: InstancePriority = InstancePriority.NORMAL
    due_date: Optional[datetime] = None


class InstanceTransition(BaseModel):
    """Schema for advancing a workflow instance."""
    action: TransitionAction
    comment: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class InstanceResponse(BaseModel):
    """Schema for workflow instance response."""
    id: UUID
    definition_id: str
    definition_version: Optional[str]
    name: str
    description: Optional[str]
    current_step_id: Optional[str]
    status: InstanceStatus
    context: Dict[str, Any]
    priority: InstancePriority
    due_date: Optional[datetime]
    started_by: Optional[str]
    started_at: Optional[datetime]
    completed_at: Optional[datetime]
    version: int

    model_config = {"from_attributes": True}


class HistoryEntryResponse(BaseModel):
    """Schema for a workflow history entry."""
    id: int
    instance_id: UUID
    step_id: Optional[str]
    action: str
    payload: Dict[str, Any]
    payload_version: int
    performed_by: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


# ==================== Approval Schemas ====================

class ApproverInput(BaseModel):
    """One approver entry when creating a request.

    ``order`` defaults to the entry's position in the list.
    """
    user_id: str = Field(min_length=1)
    order: Optional[int] = None
    required: bool = True


class ApprovalCreate(BaseModel):
    """Schema for creating an approval request."""
    title: str = Field(min_length=1)
    description: Optional[str] = None
    type: str = Field(min_length=1)
    approvers: List[ApproverInput]
    workflow_instance_id: Optional[UUID] = None
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    due_date: Optional[datetime] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ApprovalDecide(BaseModel):
    """Schema for submitting an approver decision."""
    decision: DecisionType
    comment: Optional[str] = None


class ApproverResponse(BaseModel):
    """Schema for approver response."""
    user_id: str
    order: int
    required: bool
    status: ApproverStatus
    decided_at: Optional[datetime]

    model_config = {"from_attributes": True}


class ApprovalResponse(BaseModel):
    """Schema for approval request response."""
    id: UUID
    title: str
    description: Optional[str]
    type: str
    status: ApprovalStatus
    workflow_instance_id: Optional[UUID]
    entity_type: Optional[str]
    entity_id: Optional[str]
    # ORM rows carry this as ``meta``
    metadata: Dict[str, Any] = Field(validation_alias=AliasChoices("meta", "metadata"))
    created_by: str
    due_date: Optional[datetime]
    approvers: List[ApproverResponse]
    version: int
    created_at: datetime

    model_config = {"from_attributes": True}


class DecisionResponse(BaseModel):
    """Schema for a recorded approval decision."""
    id: int
    request_id: UUID
    user_id: str
    decision: str
    comment: Optional[str]
    created_at: datetime

    model_config = {"from_attributes": True}


# ==================== Error Schemas ====================

class ErrorBody(BaseModel):
    code: str
    message: str
    details: List[Any] = Field(default_factory=list)


class ErrorResponse(BaseModel):
    """Envelope returned for every failed request."""
    success: bool = False
    error: ErrorBody
