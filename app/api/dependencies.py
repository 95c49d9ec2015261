"""API dependencies for dependency injection."""
from typing import Annotated, Optional

from fastapi import Depends, Header
from sqlmodel import Session

from app.domain.approvals.service import ApprovalService
from app.domain.definitions import DefinitionAccessor
from app.domain.errors import ValidationError
from app.domain.instances.service import WorkflowInstanceService
from app.infra.db.connection import get_session
from app.infra.external.definition_client import get_definition_client


def get_definition_accessor() -> DefinitionAccessor:
    """Definition source used by the instance engine."""
    return get_definition_client()


def get_actor_id(
    x_user_id: Annotated[Optional[str], Header()] = None,
) -> Optional[str]:
    """Acting user supplied by the gateway, if any."""
    return x_user_id or None


def require_actor_id(
    actor_id: Annotated[Optional[str], Depends(get_actor_id)],
) -> str:
    """Acting user, which the operation cannot proceed without."""
    if not actor_id:
        raise ValidationError("X-User-ID header is required")
    return actor_id


SessionDep = Annotated[Session, Depends(get_session)]
ActorIdDep = Annotated[Optional[str], Depends(get_actor_id)]
RequiredActorIdDep = Annotated[str, Depends(require_actor_id)]


def get_instance_service(
    session: SessionDep,
    definitions: Annotated[DefinitionAccessor, Depends(get_definition_accessor)],
) -> WorkflowInstanceService:
    return WorkflowInstanceService(session, definitions)


def get_approval_service(session: SessionDep) -> ApprovalService:
    return ApprovalService(session)


InstanceServiceDep = Annotated[WorkflowInstanceService, Depends(get_instance_service)]
ApprovalServiceDep = Annotated[ApprovalService, Depends(get_approval_service)]
