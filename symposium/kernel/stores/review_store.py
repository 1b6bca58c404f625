"""
Review record store.

A review is addressed by (submission_id, reviewer_id). Saves are upserts:
fields left out of a save keep their stored value, and overall_score is
recomputed from whichever component scores are stored after the merge.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from sqlalchemy import Float, Integer, case, cast, delete, func, literal, null, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from symposium.kernel.models.base import generate_uuid
from symposium.kernel.models.review import Review, ReviewRecommendation, SCORE_FIELDS
from symposium.logging_config import get_logger

logger = get_logger(__name__)

TEXT_FIELDS = (
    "strengths",
    "weaknesses",
    "comments_to_authors",
    "comments_to_committee",
)


def compute_overall_score(scores: Sequence[Optional[int]]) -> Optional[float]:
    """
    Mean of the scores that are set.

    >>> compute_overall_score([4, 5, None, 3])
    4.0
    """
    present = [s for s in scores if s is not None]
    if not present:
        return None
    return sum(present) / len(present)


@dataclass(frozen=True)
class ReviewStats:
    total_reviews: int
    completed_reviews: int
    accept_count: int
    reject_count: int
    avg_score: Optional[float]


def _insert_for(dialect_name: str):
    if dialect_name == "postgresql":
        return postgresql.insert
    if dialect_name == "sqlite":
        return sqlite.insert
    raise NotImplementedError(f"Review upsert is not supported on {dialect_name}")


class ReviewStore:
    """Reads and writes Review rows."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def upsert(
        self,
        submission_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        data: Mapping[str, Any],
    ) -> Review:
        """
        Insert or merge the review for (submission_id, reviewer_id).

        Args:
            submission_id: Reviewed submission
            reviewer_id: Author of the review
            data: Any of the score fields, text fields, ``recommendation`` and
                ``is_completed``. Missing keys and None values leave the stored
                value alone.

        Returns:
            The review as stored after the merge
        """
        scores = {field: data.get(field) for field in SCORE_FIELDS}
        texts = {field: data.get(field) for field in TEXT_FIELDS}
        recommendation = data.get("recommendation")
        if isinstance(recommendation, ReviewRecommendation):
            recommendation = recommendation.value
        is_completed = data.get("is_completed")

        table = Review.__table__
        insert = _insert_for(self.session.get_bind().dialect.name)

        stmt = insert(table).values(
            id=generate_uuid(),
            submission_id=submission_id,
            reviewer_id=reviewer_id,
            overall_score=compute_overall_score(list(scores.values())),
            recommendation=recommendation,
            is_completed=bool(is_completed),
            **scores,
            **texts,
        )

        # Score values as they will stand once the merge is applied
        merged_scores = [
            literal(value, Integer) if value is not None else table.c[field]
            for field, value in scores.items()
        ]
        present = sum(case((score.is_not(None), 1), else_=0) for score in merged_scores)
        total = sum(func.coalesce(score, 0) for score in merged_scores)

        set_: Dict[str, Any] = {
            field: value
            for field, value in {**scores, **texts}.items()
            if value is not None
        }
        if recommendation is not None:
            set_["recommendation"] = recommendation
        if is_completed is not None:
            set_["is_completed"] = bool(is_completed)
        set_["overall_score"] = case(
            (present == 0, null()),
            else_=cast(total, Float) / present,
        )
        set_["updated_at"] = func.now()

        stmt = stmt.on_conflict_do_update(
            index_elements=["submission_id", "reviewer_id"],
            set_=set_,
        )
        await self.session.execute(stmt)

        review = await self.find_for_pair(submission_id, reviewer_id)
        logger.debug(
            "Review saved",
            extra={
                "submission_id": str(submission_id),
                "reviewer_id": str(reviewer_id),
                "is_completed": review.is_completed,
            },
        )
        return review

    async def find_for_pair(
        self,
        submission_id: uuid.UUID,
        reviewer_id: uuid.UUID,
    ) -> Optional[Review]:
        query = (
            select(Review)
            .where(Review.submission_id == submission_id, Review.reviewer_id == reviewer_id)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def find_by_submission(self, submission_id: uuid.UUID) -> List[Review]:
        query = (
            select(Review)
            .where(Review.submission_id == submission_id)
            .order_by(Review.created_at)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def find_by_reviewer(self, reviewer_id: uuid.UUID) -> List[Review]:
        query = (
            select(Review)
            .where(Review.reviewer_id == reviewer_id)
            .order_by(Review.updated_at.desc())
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def delete_for_submission(self, submission_id: uuid.UUID) -> int:
        result = await self.session.execute(
            delete(Review)
            .where(Review.submission_id == submission_id)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def get_submission_stats(self, submission_id: uuid.UUID) -> ReviewStats:
        """Aggregate counts and mean overall score over a submission's reviews."""
        query = select(
            func.count(Review.id),
            func.count(case((Review.is_completed.is_(True), 1))),
            func.count(case((Review.recommendation == ReviewRecommendation.ACCEPT.value, 1))),
            func.count(case((Review.recommendation == ReviewRecommendation.REJECT.value, 1))),
            func.avg(Review.overall_score),
        ).where(Review.submission_id == submission_id)

        result = await self.session.execute(query)
        total, completed, accepted, rejected, avg_score = result.one()
        return ReviewStats(
            total_reviews=int(total or 0),
            completed_reviews=int(completed or 0),
            accept_count=int(accepted or 0),
            reject_count=int(rejected or 0),
            avg_score=float(avg_score) if avg_score is not None else None,
        )
