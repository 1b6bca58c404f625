"""
Kernel Data Models

SQLAlchemy models for users, events, submissions, reviewer assignments,
reviews and the audit log.
"""

from symposium.kernel.models.base import Base, TimestampMixin, generate_uuid, utcnow, ensure_utc
from symposium.kernel.models.user import User, UserRole
from symposium.kernel.models.event import Event, EventStatus
from symposium.kernel.models.submission import Submission, SubmissionStatus
from symposium.kernel.models.review import (
    AssignmentStatus,
    Review,
    ReviewAssignment,
    ReviewRecommendation,
    SCORE_FIELDS,
)
from symposium.kernel.models.audit_log import AuditLog, AuditAction

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "generate_uuid",
    "utcnow",
    "ensure_utc",
    # User
    "User",
    "UserRole",
    # Event
    "Event",
    "EventStatus",
    # Submission
    "Submission",
    "SubmissionStatus",
    # Review
    "AssignmentStatus",
    "Review",
    "ReviewAssignment",
    "ReviewRecommendation",
    "SCORE_FIELDS",
    # Audit
    "AuditLog",
    "AuditAction",
]
