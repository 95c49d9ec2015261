"""Workflow instance domain module: execution engine and history ledger."""

from app.domain.instances.context import merge_context
from app.domain.instances.ledger import HistoryLedger
from app.domain.instances.models import WorkflowHistory, WorkflowInstance
from app.domain.instances.service import WorkflowInstanceService, next_step_after

__all__ = [
    "HistoryLedger",
    "WorkflowHistory",
    "WorkflowInstance",
    "WorkflowInstanceService",
    "merge_context",
    "next_step_after",
]
