"""Typed failures raised by the workflow and approval engines.

Each failure carries a stable machine-readable ``code`` and the HTTP status
the API layer should answer with. Engines raise these before any write, so
a failed operation never leaves partial state behind.
"""
from typing import Any, List, Optional


class ErrorCode:
    """Error code constants."""
    WORKFLOW_INSTANCE_NOT_FOUND = "WORKFLOW_INSTANCE_NOT_FOUND"
    WORKFLOW_NOT_FOUND = "WORKFLOW_NOT_FOUND"
    WORKFLOW_INVALID_STATE = "WORKFLOW_INVALID_STATE"
    WORKFLOW_CANNOT_CANCEL = "WORKFLOW_CANNOT_CANCEL"
    WORKFLOW_DEFINITION_NOT_ACTIVE = "WORKFLOW_DEFINITION_NOT_ACTIVE"
    APPROVAL_NOT_FOUND = "APPROVAL_NOT_FOUND"
    APPROVAL_ALREADY_PROCESSED = "APPROVAL_ALREADY_PROCESSED"
    APPROVAL_NOT_APPROVER = "APPROVAL_NOT_APPROVER"
    APPROVAL_CANNOT_CANCEL = "APPROVAL_CANNOT_CANCEL"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    DEFINITION_UNAVAILABLE = "DEFINITION_UNAVAILABLE"
    STORE_UNAVAILABLE = "STORE_UNAVAILABLE"
    CONCURRENCY_CONFLICT = "CONCURRENCY_CONFLICT"


class WorkflowCoreError(Exception):
    """Base class for all failures returned to callers of the engines."""

    status_code: int = 500
    default_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[List[Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details or []

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


class NotFoundError(WorkflowCoreError):
    """Entity or referenced definition is absent."""
    status_code = 404
    default_code = "NOT_FOUND"


class InvalidStateError(WorkflowCoreError):
    """Action is not valid for the entity's current lifecycle state."""
    status_code = 400
    default_code = ErrorCode.WORKFLOW_INVALID_STATE


class ForbiddenError(WorkflowCoreError):
    """Actor is not authorized for the action."""
    status_code = 403
    default_code = "FORBIDDEN"


class ValidationError(WorkflowCoreError):
    """Malformed input shape."""
    status_code = 422
    default_code = ErrorCode.VALIDATION_ERROR


class UnavailableError(WorkflowCoreError):
    """A collaborator (definition service, store) failed transiently."""
    status_code = 503
    default_code = ErrorCode.DEFINITION_UNAVAILABLE


class ConflictError(WorkflowCoreError):
    """Concurrent writers kept winning the version check."""
    status_code = 409
    default_code = ErrorCode.CONCURRENCY_CONFLICT
