"""Approval consensus engine.

This service owns the lifecycle of approval requests:
- Create a request with its ordered set of approvers
- Record approver decisions and recompute the aggregate status
- Cancel a request that is still pending

State machine:
    pending -> approved | rejected | cancelled
All three outcomes are terminal.

The decision row, the approver status and the recomputed request status are
written in one unit of work guarded by the request's version, so two
approvers voting at the same moment can never leave a stale aggregate.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union
from uuid import UUID

from sqlmodel import Session, select

from app.config import settings
from app.domain.approvals.consensus import compute_request_status
from app.domain.approvals.ledger import DecisionLedger
from app.domain.approvals.models import ApprovalApprover, ApprovalDecision, ApprovalRequest
from app.domain.concurrency import compare_and_set, run_serialized, store_errors
from app.domain.errors import (
    ErrorCode,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
    WorkflowCoreError,
)
from app.domain.schemas import ApproverInput
from app.domain.types import ApprovalStatus, DecisionType, parse_enum
from app.infra.metrics import get_metrics
from app.utils import coerce_uuid, utc_now

logger = logging.getLogger(__name__)


class ApprovalService:
    """Service for creating approval requests and processing decisions.

    Usage:
        service = ApprovalService(session)
        request = service.create(
            title="Laptop purchase",
            type="expense",
            approvers=[{"user_id": "manager"}, {"user_id": "finance", "required": False}],
            created_by="employee",
        )
        request = service.decide(request.id, "manager", "approve", "Looks fine")
    """

    def __init__(self, session: Session, max_attempts: Optional[int] = None):
        """Initialize approval service.

        Args:
            session: Database session
            max_attempts: Version-conflict attempts per write (default: from settings)
        """
        self.session = session
        self.max_attempts = max_attempts or settings.concurrency_max_attempts
        self.decisions = DecisionLedger(session)
        self.metrics = get_metrics()

    def get_request(self, request_id: Any) -> ApprovalRequest:
        """Get approval request by ID.

        Raises:
            NotFoundError: If the request does not exist
            UnavailableError: If the store cannot be reached
        """
        request_uuid = coerce_uuid(request_id)
        request = None
        if request_uuid is not None:
            with store_errors(self.session):
                request = self.session.get(
                    ApprovalRequest, request_uuid, populate_existing=True
                )
        if request is None:
            raise NotFoundError(
                "Approval request not found",
                code=ErrorCode.APPROVAL_NOT_FOUND,
            )
        return request

    def get_history(self, request_id: Any) -> List[ApprovalDecision]:
        """Decisions recorded for a request, newest first."""
        request = self.get_request(request_id)
        with store_errors(self.session):
            return self.decisions.list_for_request(request.id)

    def create(
        self,
        title: str,
        type: str,
        approvers: Sequence[Union[ApproverInput, Mapping[str, Any]]],
        created_by: str,
        description: Optional[str] = None,
        workflow_instance_id: Optional[UUID] = None,
        entity_type: Optional[str] = None,
        entity_id: Optional[str] = None,
        due_date: Optional[datetime] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> ApprovalRequest:
        """Create a pending request with its approvers.

        Args:
            title: Short summary
            type: Request category
            approvers: Entries with user_id, optional order (defaults to the
                entry's index) and optional required flag (defaults to True)
            created_by: User raising the request

        Returns:
            Created ApprovalRequest with approvers loaded

        Raises:
            ValidationError: If approvers are empty, duplicated, or none is required
            UnavailableError: If the store cannot be reached
        """
        entries = self._validate_approvers(approvers)

        try:
            with store_errors(self.session):
                request = ApprovalRequest(
                    title=title,
                    description=description,
                    type=type,
                    status=ApprovalStatus.PENDING.value,
                    workflow_instance_id=workflow_instance_id,
                    entity_type=entity_type,
                    entity_id=entity_id,
                    meta=dict(metadata or {}),
                    created_by=created_by,
                    due_date=due_date,
                )
                self.session.add(request)
                self.session.flush()

                for index, entry in enumerate(entries):
                    self.session.add(
                        ApprovalApprover(
                            request_id=request.id,
                            user_id=entry.user_id,
                            order=entry.order if entry.order is not None else index,
                            required=entry.required,
                        )
                    )

                self.session.commit()

        except WorkflowCoreError:
            raise
        except Exception as e:
            logger.error(f"Failed to create approval request: {e}", exc_info=True)
            self.session.rollback()
            raise

        logger.info(
            f"Created approval request {request.id} with {len(entries)} approvers",
            extra={"request_id": str(request.id), "status": ApprovalStatus.PENDING.value},
        )
        return self.get_request(request.id)

    def decide(
        self,
        request_id: Any,
        user_id: str,
        decision: Any,
        comment: Optional[str] = None,
    ) -> ApprovalRequest:
        """Record an approver's decision and recompute the request status.

        Returns:
            Updated ApprovalRequest

        Raises:
            ValidationError: If the decision is not approve or reject
            NotFoundError: If the request does not exist
            InvalidStateError: If the request is no longer pending
            ForbiddenError: If the user is not an approver of the request
            ConflictError: If concurrent writers kept winning
            UnavailableError: If the store cannot be reached
        """
        decision = parse_enum(DecisionType, decision, "decision")
        if not user_id:
            raise ValidationError("user_id is required")

        def unit() -> ApprovalStatus:
            request = self.get_request(request_uuid)
            if request.status != ApprovalStatus.PENDING:
                raise InvalidStateError(
                    f"Approval already processed (status: {request.status})",
                    code=ErrorCode.APPROVAL_ALREADY_PROCESSED,
                )

            read_version = request.version
            approvers = self._load_approvers(request.id)
            approver = next((a for a in approvers if a.user_id == user_id), None)
            if approver is None:
                raise ForbiddenError(
                    "Not an approver",
                    code=ErrorCode.APPROVAL_NOT_APPROVER,
                )

            now = utc_now()
            self.decisions.append(request.id, user_id, decision.value, comment)
            approver.status = decision.approver_status.value
            approver.decided_at = now
            self.session.add(approver)

            status = compute_request_status(approvers)

            self.session.flush()
            compare_and_set(
                self.session,
                ApprovalRequest,
                request.id,
                read_version,
                {"status": status.value, "updated_at": now},
            )
            return status

        try:
            request_uuid = self.get_request(request_id).id
            status = run_serialized(
                self.session, "request", request_uuid, unit, self.max_attempts
            )
        except WorkflowCoreError as e:
            self.metrics.approval_decisions.labels(decision=decision.value, outcome=e.code).inc()
            raise

        self.metrics.approval_decisions.labels(decision=decision.value, outcome="success").inc()
        if status != ApprovalStatus.PENDING:
            self.metrics.approval_outcomes.labels(status=status.value).inc()

        logger.info(
            f"User {user_id} decided {decision.value} on request {request_uuid}; status {status.value}",
            extra={"request_id": str(request_uuid), "user_id": user_id, "status": status.value},
        )
        return self.get_request(request_uuid)

    def cancel(self, request_id: Any) -> ApprovalRequest:
        """Cancel a pending request.

        Raises:
            NotFoundError: If the request does not exist
            InvalidStateError: If the request is no longer pending
            ConflictError: If concurrent writers kept winning
        """
        def unit() -> None:
            request = self.get_request(request_uuid)
            if request.status != ApprovalStatus.PENDING:
                raise InvalidStateError(
                    f"Cannot cancel request in status {request.status}",
                    code=ErrorCode.APPROVAL_CANNOT_CANCEL,
                )
            compare_and_set(
                self.session,
                ApprovalRequest,
                request.id,
                request.version,
                {"status": ApprovalStatus.CANCELLED.value, "updated_at": utc_now()},
            )

        request_uuid = self.get_request(request_id).id
        run_serialized(self.session, "request", request_uuid, unit, self.max_attempts)
        self.metrics.approval_outcomes.labels(status=ApprovalStatus.CANCELLED.value).inc()

        logger.info(
            f"Cancelled approval request {request_uuid}",
            extra={"request_id": str(request_uuid), "status": ApprovalStatus.CANCELLED.value},
        )
        return self.get_request(request_uuid)

    def _load_approvers(self, request_id: UUID) -> List[ApprovalApprover]:
        statement = (
            select(ApprovalApprover)
            .where(ApprovalApprover.request_id == request_id)
            .order_by(ApprovalApprover.order)
            .execution_options(populate_existing=True)
        )
        return list(self.session.exec(statement).all())

    @staticmethod
    def _validate_approvers(
        approvers: Sequence[Union[ApproverInput, Mapping[str, Any]]],
    ) -> List[ApproverInput]:
        if not approvers:
            raise ValidationError("At least one approver is required")

        try:
            entries = [ApproverInput.model_validate(a) for a in approvers]
        except ValueError as e:
            raise ValidationError(f"Malformed approver entry: {e}") from e

        seen = set()
        duplicates = []
        for entry in entries:
            if entry.user_id in seen:
                duplicates.append(entry.user_id)
            seen.add(entry.user_id)
        if duplicates:
            raise ValidationError(
                f"Duplicate approvers: {', '.join(sorted(set(duplicates)))}",
                details=[{"field": "approvers", "duplicates": sorted(set(duplicates))}],
            )

        if not any(entry.required for entry in entries):
            raise ValidationError("At least one approver must be required")

        return entries
