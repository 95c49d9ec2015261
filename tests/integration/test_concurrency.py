"""Interleaved writers on one entity are serialized by the version check.

Each test lets a second session commit in the middle of the first session's
unit of work, then checks that the first writer restarted from fresh state
instead of overwriting the second one's result.
"""
import pytest
from sqlmodel import Session, create_engine

from app.domain.approvals.service import ApprovalService
from app.domain.errors import ConflictError
from app.domain.instances.service import WorkflowInstanceService
from app.domain.types import ApprovalStatus, InstanceStatus
from app.infra.db.connection import init_db


@pytest.fixture
def file_engine(tmp_path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'workflow_core.db'}",
        connect_args={"check_same_thread": False},
    )
    init_db(engine)
    yield engine
    engine.dispose()


class InterleavedApprovalService(ApprovalService):
    """Runs ``interleave`` right after the approvers snapshot is read, once."""

    def __init__(self, session, interleave, **kwargs):
        super().__init__(session, **kwargs)
        self.interleave = interleave

    def _load_approvers(self, request_id):
        approvers = super()._load_approvers(request_id)
        if self.interleave is not None:
            hook, self.interleave = self.interleave, None
            hook()
        return approvers


def test_simultaneous_required_approvals_both_count(file_engine):
    with Session(file_engine) as setup:
        request = ApprovalService(setup).create(
            title="Budget",
            type="expense",
            approvers=[{"user_id": "a"}, {"user_id": "b"}],
            created_by="owner",
        )
        request_id = request.id

    def competing_vote():
        with Session(file_engine) as other:
            ApprovalService(other).decide(request_id, "b", "approve")

    with Session(file_engine) as session:
        service = InterleavedApprovalService(session, competing_vote)
        request = service.decide(request_id, "a", "approve")

        assert request.status == ApprovalStatus.APPROVED.value
        assert {a.user_id: a.status for a in request.approvers} == {
            "a": "approved",
            "b": "approved",
        }
        assert request.version == 3
        assert len(service.get_history(request_id)) == 2


def test_simultaneous_transitions_advance_twice(file_engine, definitions):
    with Session(file_engine) as setup:
        instance_id = WorkflowInstanceService(setup, definitions).start("review", "Race").id

    def competing_transition():
        with Session(file_engine) as other:
            WorkflowInstanceService(other, definitions).transition(
                instance_id, "advance", performed_by="rival"
            )

    definitions.before_fetch = competing_transition

    with Session(file_engine) as session:
        service = WorkflowInstanceService(session, definitions)
        instance = service.transition(instance_id, "advance", performed_by="me")

        assert instance.current_step_id == "end"
        assert instance.status == InstanceStatus.RUNNING.value
        assert instance.version == 3

        history = service.get_history(instance_id)
        assert [(h.step_id, h.performed_by) for h in history] == [
            ("approve", "me"),
            ("start", "rival"),
            ("start", None),
        ]


def test_persistent_conflicts_give_up(file_engine):
    with Session(file_engine) as setup:
        request_id = ApprovalService(setup).create(
            title="Budget",
            type="expense",
            approvers=[{"user_id": "a"}, {"user_id": "b"}, {"user_id": "c"}],
            created_by="owner",
        ).id

    class AlwaysInterleaved(ApprovalService):
        def _load_approvers(self, request_id):
            approvers = super()._load_approvers(request_id)
            with Session(file_engine) as other:
                ApprovalService(other).decide(request_id, "c", "approve")
            return approvers

    with Session(file_engine) as session:
        service = AlwaysInterleaved(session, max_attempts=2)

        with pytest.raises(ConflictError) as exc_info:
            service.decide(request_id, "a", "approve")

        assert exc_info.value.status_code == 409
        decisions = service.get_history(request_id)
        assert [d.user_id for d in decisions] == ["c", "c"]
