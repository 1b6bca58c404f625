"""
Append-only audit log.

Every workflow mutation is recorded here inside the same transaction as
the change itself.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, String, func, Index, JSON, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from symposium.kernel.models.base import Base, generate_uuid


class AuditAction(str, Enum):
    """All recorded actions."""

    # Users
    USER_REGISTERED = "user.registered"
    USER_EMAIL_VERIFIED = "user.email_verified"
    USER_ROLES_CHANGED = "user.roles_changed"

    # Events
    EVENT_CREATED = "event.created"

    # Submissions
    SUBMISSION_CREATED = "submission.created"
    SUBMISSION_UPDATED = "submission.updated"
    SUBMISSION_ARTIFACT_REPLACED = "submission.artifact_replaced"
    SUBMISSION_DELETED = "submission.deleted"
    SUBMISSION_STATUS_CHANGED = "submission.status_changed"
    SUBMISSION_STATUS_OVERRIDDEN = "submission.status_overridden"
    DECISION_NOTIFICATION_SENT = "submission.decision_notified"

    # Review assignments
    REVIEWER_ASSIGNED = "assignment.created"
    REVIEWER_UNASSIGNED = "assignment.removed"
    ASSIGNMENT_STATUS_CHANGED = "assignment.status_changed"

    # Reviews
    REVIEW_SAVED = "review.saved"
    REVIEW_COMPLETED = "review.completed"


class AuditLog(Base):
    """
    Immutable audit entry.

    Rows are only ever inserted.
    """

    __tablename__ = "audit_logs"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    action: Mapped[AuditAction] = mapped_column(
        String(100),
        nullable=False,
        index=True,
    )

    # Subject
    entity_type: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )
    entity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        nullable=False,
        index=True,
    )

    # Actor; None for system-triggered transitions
    actor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        nullable=True,
        index=True,
    )

    payload: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    request_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        index=True,
    )

    __table_args__ = (
        Index("ix_audit_logs_entity", "entity_type", "entity_id"),
        Index("ix_audit_logs_actor_time", "actor_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<AuditLog {self.action} {self.entity_type}:{self.entity_id}>"
