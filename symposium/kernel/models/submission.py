"""
Submission model - one paper entered into one event by one author.

Submission.status is only ever written by the workflow orchestrator.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, JSON, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from symposium.kernel.models.base import Base, TimestampMixin, generate_uuid


class SubmissionStatus(str, Enum):
    """Lifecycle status of a submission."""

    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    REVIEW_COMPLETE = "review_complete"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    REVISION_REQUESTED = "revision_requested"


class Submission(Base, TimestampMixin):
    """A paper submission and its single current artifact reference."""

    __tablename__ = "submissions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    title: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
    )
    abstract: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    keywords: Mapped[List[str]] = mapped_column(
        JSON,
        default=list,
        nullable=False,
    )
    corresponding_author: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    co_authors: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    # Artifact reference (blob store URL)
    pdf_url: Mapped[Optional[str]] = mapped_column(
        String(1024),
        nullable=True,
    )
    pdf_filename: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    pdf_size: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )

    status: Mapped[SubmissionStatus] = mapped_column(
        String(50),
        default=SubmissionStatus.DRAFT.value,
        nullable=False,
    )
    submitted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_submissions_event_status", "event_id", "status"),
        UniqueConstraint("user_id", "event_id", name="uq_submissions_user_event"),
    )

    def __repr__(self) -> str:
        return f"<Submission {self.title} {self.status}>"
