"""Consensus rule turning individual votes into a request outcome.

- Any rejection, from a required or optional approver, rejects the request
- Otherwise the request is approved once every required approver approved
- Otherwise it stays pending

The rule only looks at the current snapshot of approver statuses, so the
order in which votes arrived never changes the result.
"""

from typing import Iterable, Protocol

from app.domain.types import ApprovalStatus, ApproverStatus


class Vote(Protocol):
    required: bool
    status: str


def compute_request_status(approvers: Iterable[Vote]) -> ApprovalStatus:
    """Aggregate status for a set of approvers."""
    approvers = list(approvers)

    if any(approver.status == ApproverStatus.REJECTED for approver in approvers):
        return ApprovalStatus.REJECTED

    required = [approver for approver in approvers if approver.required]
    if all(approver.status == ApproverStatus.APPROVED for approver in required):
        return ApprovalStatus.APPROVED

    return ApprovalStatus.PENDING
