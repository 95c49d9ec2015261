"""Workflow instance API router."""
from uuid import UUID

from fastapi import APIRouter, status

from app.api.dependencies import ActorIdDep, InstanceServiceDep
from app.api.errors import ERROR_RESPONSES
from app.domain.schemas import (
    HistoryEntryResponse,
    InstanceResponse,
    InstanceStart,
    InstanceTransition,
)

router = APIRouter(prefix="/instances", tags=["instances"], responses=ERROR_RESPONSES)


@router.post("", response_model=InstanceResponse, status_code=status.HTTP_201_CREATED)
def start_instance(
    service: InstanceServiceDep,
    actor_id: ActorIdDep,
    data: InstanceStart,
) -> InstanceResponse:
    """Start a workflow instance at the first step of an active definition."""
    instance = service.start(
        definition_id=data.definition_id,
        name=data.name,
        context=data.context,
        priority=data.priority,
        due_date=data.due_date,
        started_by=actor_id,
        description=data.description,
    )
    return InstanceResponse.model_validate(instance)


@router.get("/{instance_id}", response_model=InstanceResponse)
def get_instance(
    service: InstanceServiceDep,
    instance_id: UUID,
) -> InstanceResponse:
    """Get a workflow instance by ID."""
    return InstanceResponse.model_validate(service.get_instance(instance_id))


@router.post("/{instance_id}/transition", response_model=InstanceResponse)
def transition_instance(
    service: InstanceServiceDep,
    actor_id: ActorIdDep,
    instance_id: UUID,
    data: InstanceTransition,
) -> InstanceResponse:
    """Advance a running instance to its next step.

    The attempt is recorded in the instance history even when it completes
    the instance.
    """
    instance = service.transition(
        instance_id,
        action=data.action,
        comment=data.comment,
        data=data.data,
        performed_by=actor_id,
    )
    return InstanceResponse.model_validate(instance)


@router.post("/{instance_id}/cancel", response_model=InstanceResponse)
def cancel_instance(
    service: InstanceServiceDep,
    instance_id: UUID,
) -> InstanceResponse:
    """Cancel a pending or running instance."""
    return InstanceResponse.model_validate(service.cancel(instance_id))


@router.get("/{instance_id}/history", response_model=list[HistoryEntryResponse])
def get_instance_history(
    service: InstanceServiceDep,
    instance_id: UUID,
) -> list[HistoryEntryResponse]:
    """Get the instance's history, newest first."""
    return [
        HistoryEntryResponse.model_validate(entry)
        for entry in service.get_history(instance_id)
    ]
