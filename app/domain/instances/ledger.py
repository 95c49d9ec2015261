"""Append-only history ledger for workflow instances."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlmodel import Session, select

from app.domain.instances.models import WorkflowHistory


class HistoryLedger:
    """Records instance transitions; entries are written once and never changed."""

    def __init__(self, session: Session):
        self.session = session

    def append(
        self,
        instance_id: UUID,
        step_id: Optional[str],
        action: str,
        payload: Optional[Dict[str, Any]] = None,
        performed_by: Optional[str] = None,
    ) -> WorkflowHistory:
        """Stage a history entry in the current unit of work.

        The caller commits; a rolled-back unit leaves no entry behind.
        """
        entry = WorkflowHistory(
            instance_id=instance_id,
            step_id=step_id,
            action=action,
            payload=payload or {},
            performed_by=performed_by,
        )
        self.session.add(entry)
        return entry

    def list_for_instance(self, instance_id: UUID) -> List[WorkflowHistory]:
        """Entries for ``instance_id``, newest first."""
        statement = (
            select(WorkflowHistory)
            .where(WorkflowHistory.instance_id == instance_id)
            .order_by(WorkflowHistory.created_at.desc(), WorkflowHistory.id.desc())
        )
        return list(self.session.exec(statement).all())
