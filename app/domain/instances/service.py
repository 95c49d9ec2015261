"""Workflow instance engine.

This service owns the lifecycle of workflow instances:
- Start an instance at the head of its definition's step graph
- Advance it one step per transition, recording every attempt in history
- Cancel it while it is still pending or running

State machine:
    pending -> running -> completed | cancelled
    pending -> cancelled
Completed and cancelled are terminal.

Every update goes through a version-checked write (see
``app.domain.concurrency``) so concurrent transitions on one instance are
serialized rather than lost.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from sqlmodel import Session

from app.config import settings
from app.domain.concurrency import compare_and_set, run_serialized, store_errors
from app.domain.definitions import DefinitionAccessor, Step, WorkflowDefinition
from app.domain.errors import (
    ErrorCode,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    WorkflowCoreError,
)
from app.domain.instances.context import merge_context
from app.domain.instances.ledger import HistoryLedger
from app.domain.instances.models import WorkflowHistory, WorkflowInstance
from app.domain.types import (
    DefinitionPolicy,
    HistoryAction,
    InstancePriority,
    InstanceStatus,
    MergeStrategy,
    TERMINAL_INSTANCE_STATUSES,
    TransitionAction,
    parse_enum,
)
from app.infra.metrics import get_metrics
from app.utils import coerce_uuid, utc_now

logger = logging.getLogger(__name__)


def next_step_after(steps: Sequence[Step], current_step_id: Optional[str]) -> Optional[str]:
    """Step following ``current_step_id`` in ``steps``.

    Returns None when the current step is last, null, or no longer part of
    the graph; the instance then completes.
    """
    step_ids = [step.id for step in steps]
    if current_step_id not in step_ids:
        return None
    index = step_ids.index(current_step_id)
    if index + 1 < len(step_ids):
        return step_ids[index + 1]
    return None


class WorkflowInstanceService:
    """Service for starting and advancing workflow instances.

    Usage:
        service = WorkflowInstanceService(session, get_definition_client())
        instance = service.start("expense-approval", "Q3 travel", started_by="u-1")
        instance = service.transition(instance.id, "advance", performed_by="u-2")
        history = service.get_history(instance.id)
    """

    def __init__(
        self,
        session: Session,
        definitions: DefinitionAccessor,
        definition_policy: Optional[DefinitionPolicy] = None,
        merge_strategy: Optional[MergeStrategy] = None,
        max_attempts: Optional[int] = None,
    ):
        """Initialize workflow instance service.

        Args:
            session: Database session
            definitions: Source of workflow definitions
            definition_policy: latest or pinned (default: from settings)
            merge_strategy: shallow, deep or replace (default: from settings)
            max_attempts: Version-conflict attempts per write (default: from settings)
        """
        self.session = session
        self.definitions = definitions
        self.definition_policy = DefinitionPolicy(
            definition_policy or settings.workflow_definition_policy
        )
        self.merge_strategy = MergeStrategy(
            merge_strategy or settings.workflow_context_merge_strategy
        )
        self.max_attempts = max_attempts or settings.concurrency_max_attempts
        self.history = HistoryLedger(session)
        self.metrics = get_metrics()

    def get_instance(self, instance_id: Any) -> WorkflowInstance:
        """Get instance by ID.

        Raises:
            NotFoundError: If the instance does not exist
            UnavailableError: If the store cannot be reached
        """
        instance_uuid = coerce_uuid(instance_id)
        instance = None
        if instance_uuid is not None:
            with store_errors(self.session):
                instance = self.session.get(
                    WorkflowInstance, instance_uuid, populate_existing=True
                )
        if instance is None:
            raise NotFoundError(
                "Workflow instance not found",
                code=ErrorCode.WORKFLOW_INSTANCE_NOT_FOUND,
            )
        return instance

    def get_history(self, instance_id: Any) -> List[WorkflowHistory]:
        """History entries for an instance, newest first."""
        instance = self.get_instance(instance_id)
        with store_errors(self.session):
            return self.history.list_for_instance(instance.id)

    def start(
        self,
        definition_id: str,
        name: str,
        context: Optional[Dict[str, Any]] = None,
        priority: Any = InstancePriority.NORMAL,
        due_date: Optional[datetime] = None,
        started_by: Optional[str] = None,
        description: Optional[str] = None,
    ) -> WorkflowInstance:
        """Start a new instance of an active definition.

        Returns:
            Created WorkflowInstance, running at the definition's first step

        Raises:
            ValidationError: If priority or context is malformed
            NotFoundError: If the definition does not exist
            InvalidStateError: If the definition is not active
            UnavailableError: If the definition service or the store cannot be reached
        """
        priority = parse_enum(InstancePriority, priority, "priority")
        if context is not None and not isinstance(context, dict):
            raise ValidationError("context must be an object")

        try:
            definition = self._fetch_definition(definition_id)
            if not definition.is_active:
                raise InvalidStateError(
                    f"Workflow definition {definition_id} is not active",
                    code=ErrorCode.WORKFLOW_DEFINITION_NOT_ACTIVE,
                )
        except WorkflowCoreError as e:
            self._record("start", e.code)
            raise

        first_step_id = definition.first_step_id
        now = utc_now()

        try:
            with store_errors(self.session):
                instance = WorkflowInstance(
                    definition_id=definition_id,
                    definition_version=definition.version,
                    definition_snapshot=[
                        step.model_dump(mode="json", by_alias=True) for step in definition.steps
                    ],
                    name=name,
                    description=description,
                    current_step_id=first_step_id,
                    status=InstanceStatus.RUNNING.value,
                    context=dict(context or {}),
                    priority=priority.value,
                    due_date=due_date,
                    started_by=started_by,
                    started_at=now,
                )
                self.session.add(instance)
                self.session.flush()

                if first_step_id is not None:
                    self.history.append(
                        instance.id,
                        first_step_id,
                        HistoryAction.STARTED.value,
                        performed_by=started_by,
                    )

                self.session.commit()
                self.session.refresh(instance)

        except WorkflowCoreError as e:
            self._record("start", e.code)
            raise
        except Exception as e:
            logger.error(f"Failed to start workflow instance: {e}", exc_info=True)
            self.session.rollback()
            raise

        self._record("start", "success")
        logger.info(
            f"Started instance {instance.id} of {definition_id} at step {first_step_id}",
            extra={
                "instance_id": str(instance.id),
                "definition_id": definition_id,
                "status": instance.status,
            },
        )
        return instance

    def transition(
        self,
        instance_id: Any,
        action: Any,
        comment: Optional[str] = None,
        data: Optional[Dict[str, Any]] = None,
        performed_by: Optional[str] = None,
    ) -> WorkflowInstance:
        """Advance a running instance by one step.

        The attempt is recorded in history before the next step is
        computed. The next step comes from the latest definition or from the
        snapshot taken at start, depending on the definition policy.

        Returns:
            Updated WorkflowInstance

        Raises:
            ValidationError: If the action or data is malformed
            NotFoundError: If the instance (or, under the latest policy, its
                definition) does not exist
            InvalidStateError: If the instance is not running
            UnavailableError: If the definition service or the store cannot be reached
            ConflictError: If concurrent writers kept winning
        """
        action = parse_enum(TransitionAction, action, "action")
        if data is not None and not isinstance(data, dict):
            raise ValidationError("data must be an object")

        def unit() -> InstanceStatus:
            instance = self.get_instance(instance_uuid)
            if instance.status != InstanceStatus.RUNNING:
                raise InvalidStateError(
                    f"Instance is not running (status: {instance.status})",
                    code=ErrorCode.WORKFLOW_INVALID_STATE,
                )

            read_version = instance.version
            current_step_id = instance.current_step_id
            current_context = instance.context
            definition_id = instance.definition_id
            snapshot = instance.definition_snapshot

            # End the read transaction; the version check catches later writers
            self.session.rollback()
            steps = self._resolve_steps(definition_id, snapshot)

            payload = dict(data or {})
            if comment is not None:
                payload["comment"] = comment
            self.history.append(
                instance_uuid, current_step_id, action.value, payload, performed_by
            )

            next_step_id = next_step_after(steps, current_step_id)
            status = InstanceStatus.COMPLETED if next_step_id is None else InstanceStatus.RUNNING
            now = utc_now()

            values = {
                "current_step_id": next_step_id,
                "status": status.value,
                "context": merge_context(current_context, data, self.merge_strategy),
                "updated_at": now,
            }
            if status == InstanceStatus.COMPLETED:
                values["completed_at"] = now

            self.session.flush()
            compare_and_set(self.session, WorkflowInstance, instance_uuid, read_version, values)
            return status

        try:
            instance_uuid = self.get_instance(instance_id).id
            status = run_serialized(
                self.session, "instance", instance_uuid, unit, self.max_attempts
            )
        except WorkflowCoreError as e:
            self._record("transition", e.code)
            raise

        self._record("transition", "success")
        if status == InstanceStatus.COMPLETED:
            self.metrics.instances_finished.labels(status=status.value).inc()

        instance = self.get_instance(instance_uuid)
        logger.info(
            f"Instance {instance.id} {action.value} -> step {instance.current_step_id} ({instance.status})",
            extra={"instance_id": str(instance.id), "status": instance.status},
        )
        return instance

    def cancel(self, instance_id: Any) -> WorkflowInstance:
        """Cancel a pending or running instance.

        The current step is left where it was.

        Raises:
            NotFoundError: If the instance does not exist
            InvalidStateError: If the instance is already completed or cancelled
            ConflictError: If concurrent writers kept winning
        """
        def unit() -> None:
            instance = self.get_instance(instance_uuid)
            if InstanceStatus(instance.status) in TERMINAL_INSTANCE_STATUSES:
                raise InvalidStateError(
                    f"Cannot cancel instance in status {instance.status}",
                    code=ErrorCode.WORKFLOW_CANNOT_CANCEL,
                )
            now = utc_now()
            compare_and_set(
                self.session,
                WorkflowInstance,
                instance.id,
                instance.version,
                {"status": InstanceStatus.CANCELLED.value, "completed_at": now, "updated_at": now},
            )

        try:
            instance_uuid = self.get_instance(instance_id).id
            run_serialized(self.session, "instance", instance_uuid, unit, self.max_attempts)
        except WorkflowCoreError as e:
            self._record("cancel", e.code)
            raise

        self._record("cancel", "success")
        self.metrics.instances_finished.labels(status=InstanceStatus.CANCELLED.value).inc()

        instance = self.get_instance(instance_uuid)
        logger.info(
            f"Cancelled instance {instance.id} at step {instance.current_step_id}",
            extra={"instance_id": str(instance.id), "status": instance.status},
        )
        return instance

    def _fetch_definition(self, definition_id: str) -> WorkflowDefinition:
        definition = self.definitions.get_definition(definition_id)
        if definition is None:
            raise NotFoundError(
                f"Workflow definition {definition_id} not found",
                code=ErrorCode.WORKFLOW_NOT_FOUND,
            )
        return definition

    def _resolve_steps(
        self, definition_id: str, snapshot: Optional[List[Dict[str, Any]]]
    ) -> List[Step]:
        if self.definition_policy == DefinitionPolicy.PINNED:
            return [Step.model_validate(step) for step in snapshot or []]
        return self._fetch_definition(definition_id).steps

    def _record(self, operation: str, outcome: str) -> None:
        self.metrics.instance_operations.labels(operation=operation, outcome=outcome).inc()

