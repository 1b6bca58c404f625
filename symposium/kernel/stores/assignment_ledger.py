"""
Reviewer assignment ledger.

At most one assignment exists per (submission, reviewer) pair; the unique
constraint backs the explicit check so concurrent assigns cannot both win.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from symposium.kernel.errors import Conflict
from symposium.kernel.models.review import AssignmentStatus, ReviewAssignment


class AssignmentLedger:
    """Records which reviewer owes a review on which submission."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        submission_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        assigned_by: Optional[uuid.UUID] = None,
        due_date: Optional[datetime] = None,
    ) -> ReviewAssignment:
        """
        Record a new pending assignment.

        Raises:
            Conflict: the reviewer is already assigned to this submission
        """
        if await self.is_assigned(submission_id, reviewer_id):
            raise Conflict(
                "Reviewer is already assigned to this submission",
                detail={"submission_id": str(submission_id), "reviewer_id": str(reviewer_id)},
            )

        assignment = ReviewAssignment(
            submission_id=submission_id,
            reviewer_id=reviewer_id,
            assigned_by=assigned_by,
            due_date=due_date,
            status=AssignmentStatus.PENDING.value,
        )
        self.session.add(assignment)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise Conflict(
                "Reviewer is already assigned to this submission",
                detail={"submission_id": str(submission_id), "reviewer_id": str(reviewer_id)},
            ) from exc
        await self.session.refresh(assignment)
        return assignment

    async def get(self, assignment_id: uuid.UUID) -> Optional[ReviewAssignment]:
        query = (
            select(ReviewAssignment)
            .where(ReviewAssignment.id == assignment_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def find_for_pair(
        self,
        submission_id: uuid.UUID,
        reviewer_id: uuid.UUID,
    ) -> Optional[ReviewAssignment]:
        query = (
            select(ReviewAssignment)
            .where(
                ReviewAssignment.submission_id == submission_id,
                ReviewAssignment.reviewer_id == reviewer_id,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def is_assigned(self, submission_id: uuid.UUID, reviewer_id: uuid.UUID) -> bool:
        query = (
            select(ReviewAssignment.id)
            .where(
                ReviewAssignment.submission_id == submission_id,
                ReviewAssignment.reviewer_id == reviewer_id,
            )
            .limit(1)
        )
        result = await self.session.execute(query)
        return result.first() is not None

    async def find_by_submission(self, submission_id: uuid.UUID) -> List[ReviewAssignment]:
        query = (
            select(ReviewAssignment)
            .where(ReviewAssignment.submission_id == submission_id)
            .order_by(ReviewAssignment.assigned_at)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def find_by_reviewer(self, reviewer_id: uuid.UUID) -> List[ReviewAssignment]:
        """A reviewer's assignments, earliest due date first, undated last."""
        query = (
            select(ReviewAssignment)
            .where(ReviewAssignment.reviewer_id == reviewer_id)
            .order_by(
                ReviewAssignment.due_date.is_(None),
                ReviewAssignment.due_date,
                ReviewAssignment.assigned_at,
            )
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def update_status(
        self,
        assignment_id: uuid.UUID,
        status: AssignmentStatus,
    ) -> Optional[ReviewAssignment]:
        await self.session.execute(
            update(ReviewAssignment)
            .where(ReviewAssignment.id == assignment_id)
            .values(status=status.value)
            .execution_options(synchronize_session=False)
        )
        return await self.get(assignment_id)

    async def mark_in_progress(self, assignment_id: uuid.UUID) -> bool:
        """pending -> in_progress; never moves a completed assignment back."""
        result = await self.session.execute(
            update(ReviewAssignment)
            .where(
                ReviewAssignment.id == assignment_id,
                ReviewAssignment.status == AssignmentStatus.PENDING.value,
            )
            .values(status=AssignmentStatus.IN_PROGRESS.value)
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) > 0

    async def mark_completed(self, assignment_id: uuid.UUID) -> bool:
        """Idempotent; returns False only when the assignment is already completed or gone."""
        result = await self.session.execute(
            update(ReviewAssignment)
            .where(
                ReviewAssignment.id == assignment_id,
                ReviewAssignment.status != AssignmentStatus.COMPLETED.value,
            )
            .values(status=AssignmentStatus.COMPLETED.value)
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) > 0

    async def delete(self, assignment_id: uuid.UUID) -> bool:
        result = await self.session.execute(
            delete(ReviewAssignment)
            .where(ReviewAssignment.id == assignment_id)
            .execution_options(synchronize_session=False)
        )
        return (result.rowcount or 0) > 0

    async def delete_for_submission(self, submission_id: uuid.UUID) -> int:
        result = await self.session.execute(
            delete(ReviewAssignment)
            .where(ReviewAssignment.submission_id == submission_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0
