"""Approval request, approver and decision models.

Key Concepts:
- ApprovalRequest: a unit of multi-party sign-off; its status is derived
  from its approvers unless it was cancelled
- ApprovalApprover: one registered voter, required or optional
- ApprovalDecision: append-only ledger of submitted votes
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, UniqueConstraint
from sqlmodel import JSON, Column, Field, Relationship, SQLModel, Text

from app.domain.types import ApprovalStatus, ApproverStatus
from app.utils import utc_now


class ApprovalRequest(SQLModel, table=True):
    """Multi-party approval request.

    Attributes:
        id: Request UUID
        title: Short summary shown to approvers
        type: Caller-defined request category (expense, leave, ...)
        status: pending, approved, rejected, cancelled
        workflow_instance_id: Instance that raised the request, if any
        entity_type / entity_id: Business entity the request is about
        meta: Free-form caller metadata
        version: Optimistic concurrency token, bumped on every update
    """
    __tablename__ = "approval_requests"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    title: str
    description: Optional[str] = Field(default=None, sa_column=Column(Text))
    type: str = Field(index=True)
    status: str = Field(default=ApprovalStatus.PENDING.value, index=True)

    workflow_instance_id: Optional[UUID] = Field(default=None, index=True)
    entity_type: Optional[str] = None
    entity_id: Optional[str] = None
    meta: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))

    created_by: str = Field(index=True)
    due_date: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))

    # Relationships
    approvers: List["ApprovalApprover"] = Relationship(
        back_populates="request",
        sa_relationship_kwargs={"order_by": "ApprovalApprover.order"},
    )


class ApprovalApprover(SQLModel, table=True):
    """A user registered to vote on a request."""
    __tablename__ = "approval_approvers"
    __table_args__ = (
        UniqueConstraint("request_id", "user_id", name="uq_approval_approvers_request_user"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    request_id: UUID = Field(foreign_key="approval_requests.id", index=True)
    user_id: str = Field(index=True)
    order: int = Field(default=0)
    required: bool = Field(default=True)
    status: str = Field(default=ApproverStatus.PENDING.value)
    decided_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    request: ApprovalRequest = Relationship(back_populates="approvers")


class ApprovalDecision(SQLModel, table=True):
    """One submitted vote. Never updated or deleted."""
    __tablename__ = "approval_decisions"

    id: Optional[int] = Field(default=None, primary_key=True)
    request_id: UUID = Field(foreign_key="approval_requests.id", index=True)
    user_id: str = Field(index=True)
    decision: str
    comment: Optional[str] = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
