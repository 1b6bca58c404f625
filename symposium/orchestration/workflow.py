"""
Submission workflow orchestration.

Coordinates the submission repository, the assignment ledger and the review
store with the state machine, the blob store and the notifier. Each public
operation is one database transaction that this class commits; notification
happens after the commit and never fails the operation.

Artifact ordering:
- create: upload, then insert; an orphaned upload is removed if the insert fails
- replace: upload new, commit the new reference, then delete the old blob
- delete: commit the row deletion, then delete the blob
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from symposium.config import Settings, get_settings
from symposium.kernel.audit import AuditStore
from symposium.kernel.errors import Conflict, Forbidden, InvalidInput, InvalidState, NotFound
from symposium.kernel.models.audit_log import AuditAction
from symposium.kernel.models.base import utcnow
from symposium.kernel.models.event import Event
from symposium.kernel.models.review import SCORE_FIELDS, Review, ReviewAssignment
from symposium.kernel.models.submission import Submission, SubmissionStatus
from symposium.kernel.models.user import User, UserRole
from symposium.kernel.permissions import Actor, PermissionService, require_admin
from symposium.kernel.stores import (
    AssignmentLedger,
    EventRepository,
    ReviewStats,
    ReviewStore,
    SubmissionRepository,
)
from symposium.logging_config import get_logger
from symposium.orchestration.consensus import evaluate_consensus, plan_transitions
from symposium.orchestration.eligibility import can_submit, submission_window_open
from symposium.orchestration.state_machine import (
    DECISION_TARGETS,
    TERMINAL_DECISIONS,
    Decision,
    StateMachine,
    Trigger,
)
from symposium.services.notifier import NotificationKind, Notifier
from symposium.services.storage import BlobStore, StoredArtifact

logger = get_logger(__name__)

# Reviewers cannot be assigned once a submission is a draft or decided
_UNASSIGNABLE_STATUSES = frozenset({
    SubmissionStatus.DRAFT.value,
    SubmissionStatus.ACCEPTED.value,
    SubmissionStatus.REJECTED.value,
})


@dataclass(frozen=True)
class ArtifactUpload:
    data: bytes
    filename: str
    content_type: Optional[str]


@dataclass(frozen=True)
class DeleteResult:
    submission_id: uuid.UUID
    artifact_deleted: bool


@dataclass(frozen=True)
class SubmissionReviews:
    reviews: List[Review]
    stats: ReviewStats


@dataclass(frozen=True)
class EventSubmissionStats:
    event_id: uuid.UUID
    total: int
    by_status: Dict[str, int]


class SubmissionWorkflow:
    """
    Entry point for every submission, assignment and review operation.

    Usage:
        workflow = SubmissionWorkflow(session, blob_store, notifier)
        submission = await workflow.create_submission(actor, event_id, ...)
    """

    def __init__(
        self,
        session: AsyncSession,
        blob_store: BlobStore,
        notifier: Notifier,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.session = session
        self.blob_store = blob_store
        self.notifier = notifier
        self.settings = settings or get_settings()
        self.clock = clock or utcnow

        self.submissions = SubmissionRepository(session)
        self.assignments = AssignmentLedger(session)
        self.reviews = ReviewStore(session)
        self.events = EventRepository(session)
        self.state_machine = StateMachine(session)
        self.permissions = PermissionService(session)
        self.audit = AuditStore(session)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_submission(self, submission_id: uuid.UUID) -> Submission:
        submission = await self.submissions.get(submission_id)
        if submission is None:
            raise NotFound("Submission not found", detail={"submission_id": str(submission_id)})
        return submission

    async def _get_event(self, event_id: uuid.UUID) -> Event:
        event = await self.events.get(event_id)
        if event is None:
            raise NotFound("Event not found", detail={"event_id": str(event_id)})
        return event

    async def _get_user(self, user_id: uuid.UUID) -> Optional[User]:
        result = await self.session.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def _notify(
        self,
        kind: NotificationKind,
        recipient: Optional[str],
        payload: Dict[str, Any],
    ) -> bool:
        """Best-effort delivery; failures are logged and reported as False."""
        if not recipient:
            return False
        try:
            await self.notifier.notify(kind, recipient, payload)
        except Exception:
            logger.warning(
                "Notification failed",
                extra={"kind": kind.value, "recipient": recipient},
                exc_info=True,
            )
            return False
        return True

    async def _discard_blob(self, url: str, reason: str) -> bool:
        """Delete a blob nothing references any more; failure leaves an orphan."""
        try:
            await self.blob_store.delete(url)
        except Exception:
            logger.error(
                "Failed to delete artifact",
                extra={"url": url, "reason": reason},
                exc_info=True,
            )
            return False
        return True

    def _validate_scores(self, data: Dict[str, Any]) -> None:
        low, high = self.settings.review_score_min, self.settings.review_score_max
        for field in SCORE_FIELDS:
            value = data.get(field)
            if value is not None and not (low <= value <= high):
                raise InvalidInput(
                    f"{field} must be between {low} and {high}",
                    detail={"field": field, "value": value},
                )

    async def _submission_payload(self, submission: Submission) -> Dict[str, Any]:
        event = await self.events.get(submission.event_id)
        return {
            "submission_id": str(submission.id),
            "submission_title": submission.title,
            "event_title": event.title if event else "",
        }

    # ------------------------------------------------------------------
    # Eligibility
    # ------------------------------------------------------------------

    async def can_submit(
        self,
        user_id: uuid.UUID,
        event_id: uuid.UUID,
        now: Optional[datetime] = None,
    ) -> bool:
        event = await self._get_event(event_id)
        existing = await self.submissions.has_submission_for_event(user_id, event_id)
        return can_submit(event, now or self.clock(), existing)

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    async def create_submission(
        self,
        actor: Actor,
        event_id: uuid.UUID,
        *,
        title: str,
        abstract: str,
        corresponding_author: str,
        keywords: Optional[List[str]] = None,
        co_authors: Optional[str] = None,
        artifact: Optional[ArtifactUpload] = None,
        as_draft: bool = False,
    ) -> Submission:
        """
        Create the actor's submission to an event.

        Raises:
            NotFound: no such event
            Conflict: the actor already has a submission for the event
            Forbidden: the submission window is closed
            InvalidInput: missing or unacceptable artifact
            ExternalFailure: the blob store failed
        """
        event = await self._get_event(event_id)
        if await self.submissions.has_submission_for_event(actor.user_id, event_id):
            raise Conflict("You have already submitted a paper for this event")
        if not submission_window_open(event, self.clock()):
            raise Forbidden("Submissions are not being accepted for this event")
        if artifact is None and not as_draft:
            raise InvalidInput("A PDF file is required")

        stored: Optional[StoredArtifact] = None
        if artifact is not None:
            stored = await self.blob_store.put(artifact.data, artifact.filename, artifact.content_type)

        status = SubmissionStatus.DRAFT if as_draft else SubmissionStatus.SUBMITTED
        try:
            submission = await self.submissions.create(
                event_id=event_id,
                user_id=actor.user_id,
                title=title,
                abstract=abstract,
                corresponding_author=corresponding_author,
                keywords=keywords,
                co_authors=co_authors,
                pdf_url=stored.url if stored else None,
                pdf_filename=stored.filename if stored else None,
                pdf_size=stored.size if stored else None,
                status=status,
            )
            await self.audit.log(
                action=AuditAction.SUBMISSION_CREATED,
                entity_type="submission",
                entity_id=submission.id,
                actor_id=actor.user_id,
                payload={"event_id": event_id, "status": status},
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            if stored is not None:
                logger.warning(
                    "Submission insert failed, removing uploaded artifact",
                    extra={"url": stored.url},
                )
                await self._discard_blob(stored.url, reason="create_failed")
            raise

        logger.info(
            "Submission created",
            extra={"submission_id": str(submission.id), "event_id": str(event_id), "status": status.value},
        )
        if status == SubmissionStatus.SUBMITTED:
            await self._notify(
                NotificationKind.SUBMISSION_RECEIVED,
                actor.email,
                {
                    "submission_id": str(submission.id),
                    "submission_title": submission.title,
                    "event_title": event.title,
                    "name": corresponding_author,
                },
            )
        return submission

    async def update_submission(
        self,
        actor: Actor,
        submission_id: uuid.UUID,
        changes: Dict[str, Any],
        artifact: Optional[ArtifactUpload] = None,
    ) -> Submission:
        """
        Apply a partial update, optionally replacing the artifact.

        The previous blob is deleted only after the new reference is committed.
        """
        submission = await self._get_submission(submission_id)
        self.permissions.check_modify_submission(actor, submission)
        old_url = submission.pdf_url

        stored: Optional[StoredArtifact] = None
        if artifact is not None:
            stored = await self.blob_store.put(artifact.data, artifact.filename, artifact.content_type)

        values = dict(changes)
        if stored is not None:
            values.update(pdf_url=stored.url, pdf_filename=stored.filename, pdf_size=stored.size)

        try:
            updated = await self.submissions.update_fields(submission_id, values)
            await self.audit.log(
                action=AuditAction.SUBMISSION_UPDATED,
                entity_type="submission",
                entity_id=submission_id,
                actor_id=actor.user_id,
                payload={"fields": sorted(k for k, v in changes.items() if v is not None)},
            )
            if stored is not None:
                await self.audit.log(
                    action=AuditAction.SUBMISSION_ARTIFACT_REPLACED,
                    entity_type="submission",
                    entity_id=submission_id,
                    actor_id=actor.user_id,
                    payload={"previous_url": old_url, "new_url": stored.url},
                )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            if stored is not None:
                await self._discard_blob(stored.url, reason="update_failed")
            raise

        if stored is not None and old_url:
            await self._discard_blob(old_url, reason="replaced")
        return updated

    async def submit(self, actor: Actor, submission_id: uuid.UUID) -> Submission:
        """draft -> submitted."""
        submission = await self._get_submission(submission_id)
        self.permissions.check_modify_submission(actor, submission)
        if not submission.pdf_url:
            raise InvalidInput("A PDF file is required before submitting")

        event = await self._get_event(submission.event_id)
        if not actor.is_admin and not submission_window_open(event, self.clock()):
            raise Forbidden("Submissions are not being accepted for this event")

        try:
            await self.state_machine.advance(
                submission_id,
                SubmissionStatus.SUBMITTED,
                Trigger.SUBMIT,
                actor_id=actor.user_id,
                strict=True,
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        submission = await self._get_submission(submission_id)
        owner = await self._get_user(submission.user_id)
        await self._notify(
            NotificationKind.SUBMISSION_RECEIVED,
            owner.email if owner else None,
            {
                "submission_id": str(submission.id),
                "submission_title": submission.title,
                "event_title": event.title,
                "name": submission.corresponding_author,
            },
        )
        return submission

    async def delete_submission(self, actor: Actor, submission_id: uuid.UUID) -> DeleteResult:
        """
        Delete a submission with its assignments and reviews.

        Non-admins cannot delete once review has started or a decision exists.
        """
        submission = await self._get_submission(submission_id)
        self.permissions.check_delete_submission(actor, submission)
        url = submission.pdf_url

        try:
            await self.reviews.delete_for_submission(submission_id)
            await self.assignments.delete_for_submission(submission_id)
            await self.submissions.delete(submission_id)
            await self.audit.log(
                action=AuditAction.SUBMISSION_DELETED,
                entity_type="submission",
                entity_id=submission_id,
                actor_id=actor.user_id,
                payload={"status": submission.status, "pdf_url": url},
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        artifact_deleted = True
        if url:
            artifact_deleted = await self._discard_blob(url, reason="submission_deleted")
        logger.info(
            "Submission deleted",
            extra={"submission_id": str(submission_id), "artifact_deleted": artifact_deleted},
        )
        return DeleteResult(submission_id=submission_id, artifact_deleted=artifact_deleted)

    async def get_submission(self, actor: Actor, submission_id: uuid.UUID) -> Submission:
        submission = await self._get_submission(submission_id)
        await self.permissions.check_view_submission(actor, submission)
        return submission

    async def list_my_submissions(self, actor: Actor) -> List[Submission]:
        return await self.submissions.list_for_user(actor.user_id)

    async def list_event_submissions(self, actor: Actor, event_id: uuid.UUID) -> List[Submission]:
        require_admin(actor, "list event submissions")
        await self._get_event(event_id)
        return await self.submissions.list_for_event(event_id)

    async def list_reviewer_submissions(self, actor: Actor) -> List[Submission]:
        return await self.submissions.list_for_reviewer(actor.user_id)

    async def event_stats(self, actor: Actor, event_id: uuid.UUID) -> EventSubmissionStats:
        require_admin(actor, "view event statistics")
        await self._get_event(event_id)
        counts = await self.submissions.count_by_status(event_id)
        return EventSubmissionStats(event_id=event_id, total=sum(counts.values()), by_status=counts)

    # ------------------------------------------------------------------
    # Status administration
    # ------------------------------------------------------------------

    async def decide(
        self,
        actor: Actor,
        submission_id: uuid.UUID,
        decision: Decision,
        comments: Optional[str] = None,
    ) -> Submission:
        """
        Record the administrative decision.

        accept/reject need review_complete; revise also works from under_review.
        """
        require_admin(actor, "decide on submissions")
        await self._get_submission(submission_id)
        try:
            await self.state_machine.advance(
                submission_id,
                DECISION_TARGETS[decision],
                Trigger.ADMIN_DECISION,
                actor_id=actor.user_id,
                payload={"decision": decision.value, "comments": comments},
                strict=True,
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return await self._get_submission(submission_id)

    async def override_status(
        self,
        actor: Actor,
        submission_id: uuid.UUID,
        status: SubmissionStatus,
        reason: Optional[str] = None,
    ) -> Submission:
        require_admin(actor, "change submission status")
        try:
            submission = await self.state_machine.override(
                submission_id, status, actor_id=actor.user_id, reason=reason
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise
        return submission

    async def send_decision_notification(
        self,
        actor: Actor,
        submission_id: uuid.UUID,
        comments: Optional[str] = None,
    ) -> bool:
        """
        Email the author the decision.

        Returns:
            Whether the notifier accepted the message

        Raises:
            InvalidState: the submission is neither accepted nor rejected
        """
        require_admin(actor, "send decision notifications")
        submission = await self._get_submission(submission_id)
        if submission.status not in TERMINAL_DECISIONS:
            raise InvalidState(
                "Decision notifications can only be sent for accepted or rejected submissions",
                detail={"status": submission.status},
            )

        author = await self._get_user(submission.user_id)
        payload = await self._submission_payload(submission)
        payload.update(
            name=author.full_name if author else submission.corresponding_author,
            decision=submission.status,
            comments=comments,
        )
        sent = await self._notify(NotificationKind.DECISION, author.email if author else None, payload)

        if sent:
            await self.audit.log(
                action=AuditAction.DECISION_NOTIFICATION_SENT,
                entity_type="submission",
                entity_id=submission_id,
                actor_id=actor.user_id,
                payload={"decision": submission.status},
            )
            await self.session.commit()
        return sent

    # ------------------------------------------------------------------
    # Reviewer assignments
    # ------------------------------------------------------------------

    async def assign_reviewer(
        self,
        actor: Actor,
        submission_id: uuid.UUID,
        reviewer_id: uuid.UUID,
        due_date: Optional[datetime] = None,
    ) -> ReviewAssignment:
        """
        Assign a reviewer; a submitted paper moves to under_review.

        Raises:
            NotFound: no such submission or reviewer
            InvalidInput: the user does not hold the reviewer role
            InvalidState: the submission is a draft or already decided
            Conflict: the reviewer is already assigned
        """
        require_admin(actor, "assign reviewers")
        submission = await self._get_submission(submission_id)
        reviewer = await self._get_user(reviewer_id)
        if reviewer is None:
            raise NotFound("Reviewer not found", detail={"reviewer_id": str(reviewer_id)})
        if not reviewer.has_role(UserRole.REVIEWER):
            raise InvalidInput("User does not have the reviewer role")
        if submission.status in _UNASSIGNABLE_STATUSES:
            raise InvalidState(
                f"Cannot assign reviewers to a submission with status {submission.status}",
                detail={"status": submission.status},
            )

        try:
            assignment = await self.assignments.create(
                submission_id, reviewer_id, assigned_by=actor.user_id, due_date=due_date
            )
            await self.audit.log(
                action=AuditAction.REVIEWER_ASSIGNED,
                entity_type="submission",
                entity_id=submission_id,
                actor_id=actor.user_id,
                payload={"assignment_id": assignment.id, "reviewer_id": reviewer_id},
            )
            await self.state_machine.advance(
                submission_id,
                SubmissionStatus.UNDER_REVIEW,
                Trigger.REVIEWER_ASSIGNED,
                actor_id=actor.user_id,
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Reviewer assigned",
            extra={"submission_id": str(submission_id), "reviewer_id": str(reviewer_id)},
        )
        payload = await self._submission_payload(submission)
        payload.update(
            name=reviewer.full_name,
            due_date=due_date.date().isoformat() if due_date else None,
        )
        await self._notify(NotificationKind.REVIEWER_ASSIGNED, reviewer.email, payload)
        return assignment

    async def remove_assignment(self, actor: Actor, assignment_id: uuid.UUID) -> None:
        """Remove an assignment; the submission's status is left as it is."""
        require_admin(actor, "remove reviewer assignments")
        assignment = await self.assignments.get(assignment_id)
        if assignment is None:
            raise NotFound("Assignment not found", detail={"assignment_id": str(assignment_id)})

        try:
            await self.assignments.delete(assignment_id)
            await self.audit.log(
                action=AuditAction.REVIEWER_UNASSIGNED,
                entity_type="submission",
                entity_id=assignment.submission_id,
                actor_id=actor.user_id,
                payload={"assignment_id": assignment_id, "reviewer_id": assignment.reviewer_id},
            )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

    async def list_assignments(self, actor: Actor, submission_id: uuid.UUID) -> List[ReviewAssignment]:
        require_admin(actor, "list reviewer assignments")
        await self._get_submission(submission_id)
        return await self.assignments.find_by_submission(submission_id)

    async def my_assignments(self, actor: Actor) -> List[ReviewAssignment]:
        return await self.assignments.find_by_reviewer(actor.user_id)

    # ------------------------------------------------------------------
    # Reviews
    # ------------------------------------------------------------------

    async def submit_review(
        self,
        actor: Actor,
        submission_id: uuid.UUID,
        data: Dict[str, Any],
        complete: bool = False,
    ) -> Review:
        """
        Save the actor's review, as a draft or as complete.

        A draft save moves the assignment from pending to in_progress. A
        complete save marks the assignment completed and applies the
        consensus rule. A completed review stays completed; later saves
        only change its content.
        """
        submission = await self._get_submission(submission_id)
        await self.permissions.check_reviewer_assigned(actor, submission_id)
        assignment = await self.assignments.find_for_pair(submission_id, actor.user_id)
        if assignment is None:
            raise NotFound("Assignment not found")
        self._validate_scores(data)

        values = {k: v for k, v in data.items() if k != "is_completed"}
        if complete:
            values["is_completed"] = True

        try:
            review = await self.reviews.upsert(submission_id, actor.user_id, values)
            await self.audit.log(
                action=AuditAction.REVIEW_COMPLETED if complete else AuditAction.REVIEW_SAVED,
                entity_type="review",
                entity_id=review.id,
                actor_id=actor.user_id,
                payload={"submission_id": submission_id, "overall_score": review.overall_score},
            )
            if complete:
                await self._complete_assignment(submission, assignment, actor)
            elif await self.assignments.mark_in_progress(assignment.id):
                await self.audit.log(
                    action=AuditAction.ASSIGNMENT_STATUS_CHANGED,
                    entity_type="assignment",
                    entity_id=assignment.id,
                    actor_id=actor.user_id,
                    payload={"status": "in_progress"},
                )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        return review

    async def _complete_assignment(
        self,
        submission: Submission,
        assignment: ReviewAssignment,
        actor: Actor,
    ) -> None:
        """
        Mark the actor's assignment completed and run the consensus rule.

        The submission row is locked before the assignments are read. Two
        reviewers finishing at once are serialized, so the later one counts
        the earlier one's completion and the last review always moves the
        submission to review_complete.
        """
        if await self.assignments.mark_completed(assignment.id):
            await self.audit.log(
                action=AuditAction.ASSIGNMENT_STATUS_CHANGED,
                entity_type="assignment",
                entity_id=assignment.id,
                actor_id=actor.user_id,
                payload={"status": "completed"},
            )

        locked = await self.submissions.get_for_update(submission.id)
        if locked is None or locked.status == SubmissionStatus.DRAFT.value:
            return
        submission = locked

        assignments = await self.assignments.find_by_submission(submission.id)
        outcome = evaluate_consensus(assignments, actor.user_id)
        logger.info(
            "Review completed",
            extra={
                "submission_id": str(submission.id),
                "reviewer_id": str(actor.user_id),
                "completed": outcome.completed,
                "total": outcome.total,
            },
        )

        for target in plan_transitions(submission.status, outcome):
            trigger = (
                Trigger.REVIEW_COMPLETED
                if target == SubmissionStatus.UNDER_REVIEW
                else Trigger.ALL_REVIEWS_COMPLETED
            )
            # Each hop re-reads the status, so a hop already taken by a
            # concurrent request is skipped rather than failing the next one
            await self.state_machine.advance(submission.id, target, trigger)

    async def get_my_review(self, actor: Actor, submission_id: uuid.UUID) -> Optional[Review]:
        await self._get_submission(submission_id)
        await self.permissions.check_reviewer_assigned(actor, submission_id)
        return await self.reviews.find_for_pair(submission_id, actor.user_id)

    async def get_submission_reviews(self, actor: Actor, submission_id: uuid.UUID) -> SubmissionReviews:
        require_admin(actor, "view all reviews")
        await self._get_submission(submission_id)
        reviews = await self.reviews.find_by_submission(submission_id)
        stats = await self.reviews.get_submission_stats(submission_id)
        return SubmissionReviews(reviews=reviews, stats=stats)
