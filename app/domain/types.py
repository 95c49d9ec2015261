"""Domain types and enums for type safety."""
from enum import Enum

from app.domain.errors import ValidationError


class DefinitionStatus(str, Enum):
    """Lifecycle status of a workflow definition."""
    DRAFT = "draft"
    ACTIVE = "active"
    DEPRECATED = "deprecated"


class StepKind(str, Enum):
    """Kinds of step a definition graph may contain."""
    TASK = "task"
    APPROVAL = "approval"
    TERMINAL = "terminal"


class InstanceStatus(str, Enum):
    """Status of a workflow instance."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_INSTANCE_STATUSES = frozenset({InstanceStatus.COMPLETED, InstanceStatus.CANCELLED})


class InstancePriority(str, Enum):
    """Scheduling priority of a workflow instance."""
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


class TransitionAction(str, Enum):
    """Actions a caller may submit to advance an instance by one step."""
    ADVANCE = "advance"
    SUBMIT = "submit"
    APPROVE = "approve"
    COMPLETE = "complete"


class HistoryAction(str, Enum):
    """Actions recorded by the engine itself rather than by callers."""
    STARTED = "started"


class ApprovalStatus(str, Enum):
    """Aggregate status of an approval request."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class ApproverStatus(str, Enum):
    """Status of a single approver's vote."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DecisionType(str, Enum):
    """Decisions an approver may submit."""
    APPROVE = "approve"
    REJECT = "reject"

    @property
    def approver_status(self) -> ApproverStatus:
        if self is DecisionType.APPROVE:
            return ApproverStatus.APPROVED
        return ApproverStatus.REJECTED


class DefinitionPolicy(str, Enum):
    """Which step graph a running instance follows on transition."""
    LATEST = "latest"  # re-fetch the definition on every transition
    PINNED = "pinned"  # use the steps captured when the instance started


class MergeStrategy(str, Enum):
    """How transition data is folded into an instance's context."""
    SHALLOW = "shallow"
    DEEP = "deep"
    REPLACE = "replace"


def parse_enum(enum_cls, value, field: str):
    """Coerce ``value`` to ``enum_cls`` or fail with a ValidationError naming the choices."""
    try:
        return enum_cls(value)
    except ValueError:
        allowed = [member.value for member in enum_cls]
        raise ValidationError(
            f"Invalid {field} {value!r}; expected one of: {', '.join(allowed)}",
            details=[{"field": field, "allowed": allowed}],
        ) from None
