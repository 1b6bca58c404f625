"""
Kernel Layer

Foundational components the workflow is built on:
- Data models (users, events, submissions, assignments, reviews)
- Stores (one per aggregate, single-statement writes)
- Audit log (every workflow mutation recorded in the same transaction)
- Identity (accounts, roles, tokens)
- Permissions (pure authorization rules over an Actor)
"""

from symposium.kernel.errors import (
    Conflict,
    ExternalFailure,
    Forbidden,
    InvalidInput,
    InvalidState,
    NotFound,
    WorkflowError,
)
from symposium.kernel.models import (
    AssignmentStatus,
    AuditAction,
    AuditLog,
    Event,
    EventStatus,
    Review,
    ReviewAssignment,
    ReviewRecommendation,
    Submission,
    SubmissionStatus,
    User,
    UserRole,
)

__all__ = [
    # Errors
    "WorkflowError",
    "NotFound",
    "Conflict",
    "Forbidden",
    "InvalidState",
    "InvalidInput",
    "ExternalFailure",
    # Models
    "User",
    "UserRole",
    "Event",
    "EventStatus",
    "Submission",
    "SubmissionStatus",
    "ReviewAssignment",
    "AssignmentStatus",
    "Review",
    "ReviewRecommendation",
    "AuditLog",
    "AuditAction",
]
