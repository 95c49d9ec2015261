"""Approval request API router."""
from uuid import UUID

from fastapi import APIRouter, status

from app.api.dependencies import ApprovalServiceDep, RequiredActorIdDep
from app.api.errors import ERROR_RESPONSES
from app.domain.schemas import (
    ApprovalCreate,
    ApprovalDecide,
    ApprovalResponse,
    DecisionResponse,
)

router = APIRouter(prefix="/approvals", tags=["approvals"], responses=ERROR_RESPONSES)


@router.post("", response_model=ApprovalResponse, status_code=status.HTTP_201_CREATED)
def create_approval(
    service: ApprovalServiceDep,
    actor_id: RequiredActorIdDep,
    data: ApprovalCreate,
) -> ApprovalResponse:
    """Create a pending approval request with its approvers."""
    request = service.create(
        title=data.title,
        type=data.type,
        approvers=data.approvers,
        created_by=actor_id,
        description=data.description,
        workflow_instance_id=data.workflow_instance_id,
        entity_type=data.entity_type,
        entity_id=data.entity_id,
        due_date=data.due_date,
        metadata=data.metadata,
    )
    return ApprovalResponse.model_validate(request)


@router.get("/{request_id}", response_model=ApprovalResponse)
def get_approval(
    service: ApprovalServiceDep,
    request_id: UUID,
) -> ApprovalResponse:
    """Get an approval request with its approvers."""
    return ApprovalResponse.model_validate(service.get_request(request_id))


@router.post("/{request_id}/decide", response_model=ApprovalResponse)
def decide_approval(
    service: ApprovalServiceDep,
    actor_id: RequiredActorIdDep,
    request_id: UUID,
    data: ApprovalDecide,
) -> ApprovalResponse:
    """Record the acting user's decision on a request."""
    request = service.decide(request_id, actor_id, data.decision, data.comment)
    return ApprovalResponse.model_validate(request)


@router.post("/{request_id}/cancel", response_model=ApprovalResponse)
def cancel_approval(
    service: ApprovalServiceDep,
    request_id: UUID,
) -> ApprovalResponse:
    """Cancel a pending request."""
    return ApprovalResponse.model_validate(service.cancel(request_id))


@router.get("/{request_id}/history", response_model=list[DecisionResponse])
def get_approval_history(
    service: ApprovalServiceDep,
    request_id: UUID,
) -> list[DecisionResponse]:
    """Get the request's decisions, newest first."""
    return [
        DecisionResponse.model_validate(decision)
        for decision in service.get_history(request_id)
    ]
