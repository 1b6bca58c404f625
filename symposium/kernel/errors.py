"""
Workflow error taxonomy.

Domain errors (NotFound, Conflict, Forbidden, InvalidState, InvalidInput) are
surfaced to the caller verbatim. ExternalFailure wraps blob store and notifier
transport errors. Database errors are not wrapped.
"""

from typing import Optional


class WorkflowError(Exception):
    """Base class for every error the workflow layer raises on purpose."""

    code = "workflow_error"

    def __init__(self, message: str, *, detail: Optional[dict] = None):
        super().__init__(message)
        self.message = message
        self.detail = detail or {}


class NotFound(WorkflowError):
    code = "not_found"


class Conflict(WorkflowError):
    code = "conflict"


class Forbidden(WorkflowError):
    code = "forbidden"


class InvalidState(WorkflowError):
    code = "invalid_state"


class InvalidInput(WorkflowError):
    code = "invalid_input"


class ExternalFailure(WorkflowError):
    """A collaborator (blob store, notifier) failed at the transport level."""

    code = "external_failure"

    def __init__(self, message: str, *, service: str, detail: Optional[dict] = None):
        super().__init__(message, detail=detail)
        self.service = service
