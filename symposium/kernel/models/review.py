"""
Review models - reviewer assignments and the reviews they produce.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column

from symposium.kernel.models.base import Base, TimestampMixin, generate_uuid


class AssignmentStatus(str, Enum):
    """Status of a reviewer's obligation on one submission."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class ReviewRecommendation(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    MAJOR_REVISION = "major_revision"
    MINOR_REVISION = "minor_revision"


SCORE_FIELDS = (
    "originality_score",
    "methodology_score",
    "clarity_score",
    "contribution_score",
)


class ReviewAssignment(Base):
    """Obligation of one reviewer to review one submission."""

    __tablename__ = "review_assignments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    submission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reviewer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    assigned_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    assigned_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    due_date: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    status: Mapped[AssignmentStatus] = mapped_column(
        String(20),
        default=AssignmentStatus.PENDING.value,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("submission_id", "reviewer_id", name="uq_review_assignments_pair"),
    )

    def __repr__(self) -> str:
        return f"<ReviewAssignment {self.submission_id}:{self.reviewer_id} {self.status}>"


class Review(Base, TimestampMixin):
    """
    A reviewer's evaluation of one submission.

    Keyed by (submission_id, reviewer_id); ``id`` only addresses the row.
    overall_score is derived from the component scores on every write.
    """

    __tablename__ = "reviews"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    submission_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("submissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reviewer_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    originality_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    methodology_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    clarity_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    contribution_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    overall_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    strengths: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    weaknesses: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    comments_to_authors: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    comments_to_committee: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    recommendation: Mapped[Optional[ReviewRecommendation]] = mapped_column(
        String(30),
        nullable=True,
    )
    is_completed: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("submission_id", "reviewer_id", name="uq_reviews_pair"),
    )

    def __repr__(self) -> str:
        return f"<Review {self.submission_id}:{self.reviewer_id} completed={self.is_completed}>"
