"""Workflow instance and history models.

Key Concepts:
- WorkflowInstance: one execution of a definition, tracking the current
  step and the context accumulated from transitions
- WorkflowHistory: append-only ledger of every start and transition
  attempt, newest first when read back
"""

from datetime import datetime
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from sqlalchemy import DateTime, Index
from sqlmodel import JSON, Column, Field, SQLModel

from app.domain.types import InstancePriority, InstanceStatus
from app.utils import utc_now


class WorkflowInstance(SQLModel, table=True):
    """Runtime state of a workflow instance.

    Attributes:
        id: Instance UUID
        definition_id: Definition the instance follows
        definition_version: Definition version seen at start (if reported)
        definition_snapshot: Step list captured at start, used by the
            ``pinned`` definition policy
        name: Human-readable instance name
        current_step_id: Step the instance is waiting on; null once completed
        status: pending, running, completed, cancelled
        context: Data accumulated from transitions
        priority: low, normal, high, urgent
        started_by: User who started the instance
        version: Optimistic concurrency token, bumped on every update
    """
    __tablename__ = "workflow_instances"

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    definition_id: str = Field(index=True)
    definition_version: Optional[str] = None
    definition_snapshot: List[Dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))

    name: str
    description: Optional[str] = None
    current_step_id: Optional[str] = None
    status: str = Field(default=InstanceStatus.PENDING.value, index=True)
    context: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    priority: str = Field(default=InstancePriority.NORMAL.value)
    due_date: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    started_by: Optional[str] = None
    started_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))
    completed_at: Optional[datetime] = Field(default=None, sa_type=DateTime(timezone=True))

    version: int = Field(default=1)
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
    updated_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))


class WorkflowHistory(SQLModel, table=True):
    """One recorded start or transition attempt. Never updated or deleted."""
    __tablename__ = "workflow_history"
    __table_args__ = (
        Index("ix_workflow_history_instance_created", "instance_id", "created_at"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    instance_id: UUID = Field(foreign_key="workflow_instances.id", index=True)
    step_id: Optional[str] = None
    action: str
    payload: Dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    payload_version: int = Field(default=1)
    performed_by: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now, sa_type=DateTime(timezone=True))
