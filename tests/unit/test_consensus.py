"""Tests for the approval consensus rule."""
from dataclasses import dataclass
from itertools import permutations

import pytest

from app.domain.approvals.consensus import compute_request_status
from app.domain.types import ApprovalStatus


@dataclass
class Voter:
    required: bool
    status: str = "pending"


def test_all_pending_stays_pending():
    assert compute_request_status([Voter(True), Voter(True)]) == ApprovalStatus.PENDING


def test_all_required_approved_approves():
    voters = [Voter(True, "approved"), Voter(True, "approved")]
    assert compute_request_status(voters) == ApprovalStatus.APPROVED


def test_partial_required_approval_stays_pending():
    voters = [Voter(True, "approved"), Voter(True)]
    assert compute_request_status(voters) == ApprovalStatus.PENDING


def test_optional_approver_does_not_block_approval():
    voters = [Voter(True, "approved"), Voter(False)]
    assert compute_request_status(voters) == ApprovalStatus.APPROVED


@pytest.mark.parametrize("required", [True, False])
def test_any_rejection_rejects(required):
    voters = [Voter(True, "approved"), Voter(True, "approved"), Voter(required, "rejected")]
    assert compute_request_status(voters) == ApprovalStatus.REJECTED


def test_rejection_dominates_pending_votes():
    voters = [Voter(True), Voter(True, "rejected")]
    assert compute_request_status(voters) == ApprovalStatus.REJECTED


def test_outcome_independent_of_vote_order():
    voters = [Voter(True, "approved"), Voter(False, "approved"), Voter(True, "rejected")]

    outcomes = {compute_request_status(list(order)) for order in permutations(voters)}

    assert outcomes == {ApprovalStatus.REJECTED}


def test_no_required_approvers_is_vacuously_approved():
    assert compute_request_status([Voter(False)]) == ApprovalStatus.APPROVED
