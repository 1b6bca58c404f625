"""
Consensus rule: a submission is ready for a decision once every reviewer
assigned to it has completed their review.
"""

import uuid
from dataclasses import dataclass
from typing import List, Sequence

from symposium.kernel.models.review import AssignmentStatus, ReviewAssignment
from symposium.kernel.models.submission import SubmissionStatus


@dataclass(frozen=True)
class ConsensusOutcome:
    total: int
    completed: int

    @property
    def all_completed(self) -> bool:
        return self.total > 0 and self.completed == self.total


def evaluate_consensus(
    assignments: Sequence[ReviewAssignment],
    completed_reviewer_id: uuid.UUID,
) -> ConsensusOutcome:
    """
    Count completed assignments.

    The assignment held by completed_reviewer_id counts as completed
    whatever its stored status, since its completion write may not be
    visible yet.
    """
    completed = sum(
        1
        for a in assignments
        if a.reviewer_id == completed_reviewer_id
        or a.status == AssignmentStatus.COMPLETED.value
    )
    return ConsensusOutcome(total=len(assignments), completed=completed)


def plan_transitions(current_status: str, outcome: ConsensusOutcome) -> List[SubmissionStatus]:
    """
    Status hops a completed review should cause, in order.

    A submission still in ``submitted`` passes through ``under_review`` on
    its way to ``review_complete``. Anything past ``under_review`` (or still
    a draft) is left alone.
    """
    if current_status == SubmissionStatus.SUBMITTED.value:
        if outcome.all_completed:
            return [SubmissionStatus.UNDER_REVIEW, SubmissionStatus.REVIEW_COMPLETE]
        return [SubmissionStatus.UNDER_REVIEW]
    if current_status == SubmissionStatus.UNDER_REVIEW.value and outcome.all_completed:
        return [SubmissionStatus.REVIEW_COMPLETE]
    return []
