"""Approval domain module: consensus engine and decision ledger."""

from app.domain.approvals.consensus import compute_request_status
from app.domain.approvals.ledger import DecisionLedger
from app.domain.approvals.models import ApprovalApprover, ApprovalDecision, ApprovalRequest
from app.domain.approvals.service import ApprovalService

__all__ = [
    "ApprovalApprover",
    "ApprovalDecision",
    "ApprovalRequest",
    "ApprovalService",
    "DecisionLedger",
    "compute_request_status",
]
