"""Append-only decision ledger for approval requests."""

from typing import List, Optional
from uuid import UUID

from sqlmodel import Session, select

from app.domain.approvals.models import ApprovalDecision


class DecisionLedger:
    """Records approver decisions; entries are written once and never changed."""

    def __init__(self, session: Session):
        self.session = session

    def append(
        self,
        request_id: UUID,
        user_id: str,
        decision: str,
        comment: Optional[str] = None,
    ) -> ApprovalDecision:
        """Stage a decision in the current unit of work."""
        entry = ApprovalDecision(
            request_id=request_id,
            user_id=user_id,
            decision=decision,
            comment=comment,
        )
        self.session.add(entry)
        return entry

    def list_for_request(self, request_id: UUID) -> List[ApprovalDecision]:
        """Decisions for ``request_id``, newest first."""
        statement = (
            select(ApprovalDecision)
            .where(ApprovalDecision.request_id == request_id)
            .order_by(ApprovalDecision.created_at.desc(), ApprovalDecision.id.desc())
        )
        return list(self.session.exec(statement).all())
