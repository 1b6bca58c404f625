"""
Submission repository.

Every write is one statement against one row, so concurrent readers never
observe a half-applied change. Absent rows come back as None/False.
"""

import uuid
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from symposium.kernel.errors import Conflict
from symposium.kernel.models.base import utcnow
from symposium.kernel.models.review import ReviewAssignment
from symposium.kernel.models.submission import Submission, SubmissionStatus

# Columns an owner or admin may change through update_fields
UPDATABLE_FIELDS = (
    "title",
    "abstract",
    "keywords",
    "corresponding_author",
    "co_authors",
    "pdf_url",
    "pdf_filename",
    "pdf_size",
)


class SubmissionRepository:
    """Owns Submission rows and their status column."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        *,
        event_id: uuid.UUID,
        user_id: uuid.UUID,
        title: str,
        abstract: str,
        corresponding_author: str,
        keywords: Optional[List[str]] = None,
        co_authors: Optional[str] = None,
        pdf_url: Optional[str] = None,
        pdf_filename: Optional[str] = None,
        pdf_size: Optional[int] = None,
        status: SubmissionStatus = SubmissionStatus.SUBMITTED,
    ) -> Submission:
        """
        Insert a submission.

        Raises:
            Conflict: the user already has a submission for the event
        """
        submission = Submission(
            event_id=event_id,
            user_id=user_id,
            title=title,
            abstract=abstract,
            keywords=list(keywords or []),
            corresponding_author=corresponding_author,
            co_authors=co_authors,
            pdf_url=pdf_url,
            pdf_filename=pdf_filename,
            pdf_size=pdf_size,
            status=status.value,
            submitted_at=utcnow() if status == SubmissionStatus.SUBMITTED else None,
        )
        self.session.add(submission)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise Conflict(
                "You have already submitted a paper for this event",
                detail={"event_id": str(event_id), "user_id": str(user_id)},
            ) from exc
        await self.session.refresh(submission)
        return submission

    async def get(self, submission_id: uuid.UUID) -> Optional[Submission]:
        """Fresh read of one submission; None when it does not exist."""
        query = (
            select(Submission)
            .where(Submission.id == submission_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_for_update(self, submission_id: uuid.UUID) -> Optional[Submission]:
        """
        Like get, but holds the row lock until the transaction ends.

        Concurrent callers queue behind each other. SQLite has no FOR UPDATE
        and serializes writers on its own.
        """
        query = (
            select(Submission)
            .where(Submission.id == submission_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list_for_user(self, user_id: uuid.UUID) -> List[Submission]:
        query = (
            select(Submission)
            .where(Submission.user_id == user_id)
            .order_by(Submission.created_at.desc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_for_event(self, event_id: uuid.UUID) -> List[Submission]:
        query = (
            select(Submission)
            .where(Submission.event_id == event_id)
            .order_by(Submission.created_at.desc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def list_for_reviewer(self, reviewer_id: uuid.UUID) -> List[Submission]:
        """Submissions the reviewer holds an assignment for."""
        query = (
            select(Submission)
            .join(ReviewAssignment, ReviewAssignment.submission_id == Submission.id)
            .where(ReviewAssignment.reviewer_id == reviewer_id)
            .order_by(Submission.created_at.desc())
        )
        result = await self.session.execute(query)
        return list(result.scalars().unique().all())

    async def has_submission_for_event(self, user_id: uuid.UUID, event_id: uuid.UUID) -> bool:
        query = (
            select(Submission.id)
            .where(Submission.user_id == user_id, Submission.event_id == event_id)
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.first() is not None

    async def update_fields(
        self,
        submission_id: uuid.UUID,
        changes: Dict[str, Any],
    ) -> Optional[Submission]:
        """
        Partial update. Keys outside UPDATABLE_FIELDS and None values are
        ignored, so an omitted field keeps its stored value.
        """
        values = {
            key: value
            for key, value in changes.items()
            if key in UPDATABLE_FIELDS and value is not None
        }
        if values:
            await self.session.execute(
                update(Submission)
                .where(Submission.id == submission_id)
                .values(**values)
                .execution_options(synchronize_session=False)
            )
        return await self.get(submission_id)

    async def update_status(
        self,
        submission_id: uuid.UUID,
        status: SubmissionStatus,
    ) -> Optional[Submission]:
        """Unconditional status write (administrative override path)."""
        values: Dict[str, Any] = {"status": status.value}
        if status == SubmissionStatus.SUBMITTED:
            values["submitted_at"] = utcnow()
        await self.session.execute(
            update(Submission)
            .where(Submission.id == submission_id)
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return await self.get(submission_id)

    async def advance_status(
        self,
        submission_id: uuid.UUID,
        to_status: SubmissionStatus,
        from_statuses: Iterable[SubmissionStatus],
    ) -> bool:
        """
        Compare-and-set status change.

        Only moves the row if its current status is one of from_statuses;
        returns whether a row moved. Repeating a completed move is a no-op.
        """
        allowed = [s.value for s in from_statuses]
        values: Dict[str, Any] = {"status": to_status.value}
        if to_status == SubmissionStatus.SUBMITTED:
            values["submitted_at"] = utcnow()
        result = await self.session.execute(
            update(Submission)
            .where(Submission.id == submission_id, Submission.status.in_(allowed))
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) > 0

    async def delete(self, submission_id: uuid.UUID) -> bool:
        result = await self.session.execute(
            delete(Submission)
            .where(Submission.id == submission_id)
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) > 0

    async def count_by_status(self, event_id: uuid.UUID) -> Dict[str, int]:
        """Submission counts per status for one event; every status is present."""
        counts = {status.value: 0 for status in SubmissionStatus}
        query = (
            select(Submission.status, func.count(Submission.id))
            .where(Submission.event_id == event_id)
            .group_by(Submission.status)
        )
        result = await self.session.execute(query)
        for status, count in result.all():
            counts[str(status)] = int(count)
        return counts
