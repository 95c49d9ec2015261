"""Tests for the approval consensus engine."""
import pytest
from sqlmodel import select

from app.domain.approvals.models import ApprovalDecision, ApprovalRequest
from app.domain.errors import (
    ErrorCode,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from app.domain.types import ApprovalStatus, ApproverStatus


def _create(service, approvers, **kwargs):
    return service.create(
        title=kwargs.pop("title", "Laptop purchase"),
        type=kwargs.pop("type", "expense"),
        approvers=approvers,
        created_by=kwargs.pop("created_by", "employee"),
        **kwargs,
    )


def _statuses(request):
    return {a.user_id: a.status for a in request.approvers}


def test_create_starts_pending_with_approvers_in_order(approval_service):
    request = _create(
        approval_service,
        [{"user_id": "manager"}, {"user_id": "finance", "required": False}],
        metadata={"amount": 1200},
    )

    assert request.status == ApprovalStatus.PENDING.value
    assert request.version == 1
    assert request.meta == {"amount": 1200}
    assert [(a.user_id, a.order, a.required) for a in request.approvers] == [
        ("manager", 0, True),
        ("finance", 1, False),
    ]
    assert all(a.status == ApproverStatus.PENDING.value for a in request.approvers)


def test_create_keeps_explicit_order(approval_service):
    request = _create(
        approval_service,
        [{"user_id": "cfo", "order": 5}, {"user_id": "manager", "order": 1}],
    )

    assert [a.user_id for a in request.approvers] == ["manager", "cfo"]


def test_create_rejects_empty_approvers(session, approval_service):
    with pytest.raises(ValidationError):
        _create(approval_service, [])

    assert session.exec(select(ApprovalRequest)).all() == []


def test_create_rejects_duplicate_approvers(session, approval_service):
    with pytest.raises(ValidationError) as exc_info:
        _create(approval_service, [{"user_id": "a"}, {"user_id": "a"}])

    assert exc_info.value.details == [{"field": "approvers", "duplicates": ["a"]}]
    assert session.exec(select(ApprovalRequest)).all() == []


def test_create_requires_a_required_approver(approval_service):
    with pytest.raises(ValidationError):
        _create(approval_service, [{"user_id": "a", "required": False}])


def test_required_approvals_approve_in_either_order(approval_service):
    for order in (("a", "b"), ("b", "a")):
        request = _create(approval_service, [{"user_id": "a"}, {"user_id": "b"}])

        first = approval_service.decide(request.id, order[0], "approve")
        assert first.status == ApprovalStatus.PENDING.value

        second = approval_service.decide(request.id, order[1], "approve")
        assert second.status == ApprovalStatus.APPROVED.value
        assert _statuses(second) == {"a": "approved", "b": "approved"}
        assert len(approval_service.get_history(request.id)) == 2


def test_optional_rejection_rejects_and_locks_request(approval_service):
    request = _create(
        approval_service,
        [{"user_id": "a"}, {"user_id": "b", "required": False}],
    )

    request = approval_service.decide(request.id, "b", "reject", "Over budget")
    assert request.status == ApprovalStatus.REJECTED.value

    with pytest.raises(InvalidStateError) as exc_info:
        approval_service.decide(request.id, "a", "approve")

    assert exc_info.value.code == ErrorCode.APPROVAL_ALREADY_PROCESSED
    history = approval_service.get_history(request.id)
    assert [(d.user_id, d.decision, d.comment) for d in history] == [("b", "reject", "Over budget")]


def test_optional_approval_alone_keeps_pending(approval_service):
    request = _create(
        approval_service,
        [{"user_id": "a"}, {"user_id": "b", "required": False}],
    )

    request = approval_service.decide(request.id, "b", "approve")

    assert request.status == ApprovalStatus.PENDING.value


def test_decide_by_non_approver_is_forbidden(session, approval_service):
    request = _create(approval_service, [{"user_id": "a"}])

    with pytest.raises(ForbiddenError) as exc_info:
        approval_service.decide(request.id, "intruder", "approve")

    assert exc_info.value.code == ErrorCode.APPROVAL_NOT_APPROVER
    assert session.exec(select(ApprovalDecision)).all() == []
    assert approval_service.get_request(request.id).version == 1


def test_decide_unknown_request_fails(approval_service):
    with pytest.raises(NotFoundError) as exc_info:
        approval_service.decide("1b4e28ba-2fa1-11d2-883f-0016d3cca427", "a", "approve")

    assert exc_info.value.code == ErrorCode.APPROVAL_NOT_FOUND


def test_decide_rejects_unknown_decision(session, approval_service):
    request = _create(approval_service, [{"user_id": "a"}])

    with pytest.raises(ValidationError):
        approval_service.decide(request.id, "a", "maybe")

    assert session.exec(select(ApprovalDecision)).all() == []
    assert approval_service.get_request(request.id).status == ApprovalStatus.PENDING.value


def test_approver_may_change_vote_while_pending(approval_service):
    request = _create(approval_service, [{"user_id": "a"}, {"user_id": "b"}])

    approval_service.decide(request.id, "a", "approve")
    request = approval_service.decide(request.id, "b", "reject")

    assert request.status == ApprovalStatus.REJECTED.value
    assert _statuses(request) == {"a": "approved", "b": "rejected"}


def test_decision_sets_decided_at(approval_service):
    request = _create(approval_service, [{"user_id": "a"}, {"user_id": "b"}])

    request = approval_service.decide(request.id, "a", "approve")

    decided = {a.user_id: a.decided_at for a in request.approvers}
    assert decided["a"] is not None
    assert decided["b"] is None


def test_history_is_newest_first(approval_service):
    request = _create(approval_service, [{"user_id": "a"}, {"user_id": "b"}, {"user_id": "c"}])

    approval_service.decide(request.id, "a", "approve")
    approval_service.decide(request.id, "b", "approve")
    approval_service.decide(request.id, "c", "approve")

    history = approval_service.get_history(request.id)
    assert [d.user_id for d in history] == ["c", "b", "a"]


def test_history_of_unknown_request_fails(approval_service):
    with pytest.raises(NotFoundError):
        approval_service.get_history("not-a-uuid")


def test_cancel_pending_request(approval_service):
    request = _create(approval_service, [{"user_id": "a"}])

    request = approval_service.cancel(request.id)

    assert request.status == ApprovalStatus.CANCELLED.value
    with pytest.raises(InvalidStateError):
        approval_service.decide(request.id, "a", "approve")


def test_cancel_resolved_request_fails(approval_service):
    request = _create(approval_service, [{"user_id": "a"}])
    approval_service.decide(request.id, "a", "approve")

    with pytest.raises(InvalidStateError) as exc_info:
        approval_service.cancel(request.id)

    assert exc_info.value.code == ErrorCode.APPROVAL_CANNOT_CANCEL
    assert approval_service.get_request(request.id).status == ApprovalStatus.APPROVED.value


def test_required_approve_and_reject_rejects_in_either_order(approval_service):
    # approve first: the later rejection still wins
    request = _create(approval_service, [{"user_id": "a"}, {"user_id": "b"}])
    request = approval_service.decide(request.id, "a", "approve")
    assert request.status == ApprovalStatus.PENDING.value
    request = approval_service.decide(request.id, "b", "reject")
    assert request.status == ApprovalStatus.REJECTED.value

    # reject first: the request is closed before the approval arrives
    request = _create(approval_service, [{"user_id": "a"}, {"user_id": "b"}])
    request = approval_service.decide(request.id, "b", "reject")
    assert request.status == ApprovalStatus.REJECTED.value

    with pytest.raises(InvalidStateError) as exc_info:
        approval_service.decide(request.id, "a", "approve")

    assert exc_info.value.code == ErrorCode.APPROVAL_ALREADY_PROCESSED
    request = approval_service.get_request(request.id)
    assert request.status == ApprovalStatus.REJECTED.value
    assert _statuses(request) == {"a": "pending", "b": "rejected"}
    assert len(approval_service.get_history(request.id)) == 1
