"""Unit tests for the consensus rule."""

import uuid

from symposium.kernel.models.review import AssignmentStatus, ReviewAssignment
from symposium.kernel.models.submission import SubmissionStatus as S
from symposium.orchestration.consensus import (
    ConsensusOutcome,
    evaluate_consensus,
    plan_transitions,
)


def _assignment(reviewer_id: uuid.UUID, status: AssignmentStatus) -> ReviewAssignment:
    return ReviewAssignment(
        id=uuid.uuid4(),
        submission_id=uuid.uuid4(),
        reviewer_id=reviewer_id,
        status=status.value,
    )


class TestEvaluateConsensus:
    def test_completing_reviewer_counts_even_if_stale(self):
        r1, r2 = uuid.uuid4(), uuid.uuid4()
        assignments = [
            _assignment(r1, AssignmentStatus.IN_PROGRESS),
            _assignment(r2, AssignmentStatus.COMPLETED),
        ]

        outcome = evaluate_consensus(assignments, completed_reviewer_id=r1)

        assert outcome == ConsensusOutcome(total=2, completed=2)
        assert outcome.all_completed

    def test_partial_completion(self):
        r1, r2, r3 = uuid.uuid4(), uuid.uuid4(), uuid.uuid4()
        assignments = [
            _assignment(r1, AssignmentStatus.COMPLETED),
            _assignment(r2, AssignmentStatus.PENDING),
            _assignment(r3, AssignmentStatus.IN_PROGRESS),
        ]

        outcome = evaluate_consensus(assignments, completed_reviewer_id=r1)

        assert outcome.completed == 1
        assert not outcome.all_completed

    def test_no_assignments_is_never_complete(self):
        outcome = evaluate_consensus([], completed_reviewer_id=uuid.uuid4())

        assert outcome.total == 0
        assert not outcome.all_completed


class TestPlanTransitions:
    done = ConsensusOutcome(total=2, completed=2)
    partial = ConsensusOutcome(total=2, completed=1)

    def test_submitted_and_partial_opens_review(self):
        assert plan_transitions(S.SUBMITTED.value, self.partial) == [S.UNDER_REVIEW]

    def test_submitted_and_all_done_passes_through_under_review(self):
        assert plan_transitions(S.SUBMITTED.value, self.done) == [
            S.UNDER_REVIEW,
            S.REVIEW_COMPLETE,
        ]

    def test_under_review_and_all_done(self):
        assert plan_transitions(S.UNDER_REVIEW.value, self.done) == [S.REVIEW_COMPLETE]

    def test_under_review_and_partial_stays(self):
        assert plan_transitions(S.UNDER_REVIEW.value, self.partial) == []

    def test_later_statuses_are_left_alone(self):
        for status in (S.REVIEW_COMPLETE, S.ACCEPTED, S.REJECTED, S.REVISION_REQUESTED, S.DRAFT):
            assert plan_transitions(status.value, self.done) == []
