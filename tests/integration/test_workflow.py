"""
Workflow integration tests.

Drives SubmissionWorkflow end to end against SQLite, a local blob store and
an in-memory notifier.
"""

import os
import uuid
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.exc import SQLAlchemyError

from symposium.config import get_settings
from symposium.kernel.audit import AuditStore
from symposium.kernel.errors import Conflict, ExternalFailure, Forbidden, InvalidInput, InvalidState, NotFound
from symposium.kernel.models import AssignmentStatus, AuditAction, SubmissionStatus
from symposium.kernel.permissions import Actor
from symposium.kernel.stores import SubmissionRepository
from symposium.orchestration.state_machine import Decision
from symposium.orchestration.workflow import ArtifactUpload, SubmissionWorkflow
from symposium.services.notifier import NotificationKind


async def _submit(workflow, actor, event_id, artifact, **overrides):
    fields = dict(
        title="Continuous Audit of Public Ledgers",
        abstract="We propose a continuous audit procedure.",
        corresponding_author="Author Tester",
        keywords=["audit", "ledger"],
        artifact=artifact,
    )
    fields.update(overrides)
    return await workflow.create_submission(actor, event_id, **fields)


@pytest_asyncio.fixture
async def submission(workflow, author_actor, event, pdf):
    return await _submit(workflow, author_actor, event.id, pdf())


def _files(upload_dir):
    return sorted(os.listdir(upload_dir)) if os.path.isdir(upload_dir) else []


class TestFullReviewCycle:
    @pytest.mark.asyncio
    async def test_two_reviewers_to_acceptance(
        self,
        workflow,
        notifier,
        db_session,
        author,
        author_actor,
        admin_actor,
        reviewer,
        reviewer_actor,
        second_reviewer,
        second_reviewer_actor,
        event,
        pdf,
    ):
        submission = await _submit(workflow, author_actor, event.id, pdf())
        sid = submission.id
        assert submission.status == SubmissionStatus.SUBMITTED.value
        assert [n[1] for n in notifier.of_kind(NotificationKind.SUBMISSION_RECEIVED)] == [author.email]

        first = await workflow.assign_reviewer(admin_actor, sid, reviewer.id)
        assert (await workflow.submissions.get(sid)).status == SubmissionStatus.UNDER_REVIEW.value
        await workflow.assign_reviewer(admin_actor, sid, second_reviewer.id)
        assert len(notifier.of_kind(NotificationKind.REVIEWER_ASSIGNED)) == 2

        # Draft save
        draft = await workflow.submit_review(reviewer_actor, sid, {"originality_score": 4})
        assert draft.is_completed is False
        assert (await workflow.assignments.get(first.id)).status == AssignmentStatus.IN_PROGRESS.value

        # First completion: one of two done
        review = await workflow.submit_review(
            reviewer_actor,
            sid,
            {"methodology_score": 5, "recommendation": "accept"},
            complete=True,
        )
        assert review.is_completed is True
        assert review.originality_score == 4
        assert review.overall_score == pytest.approx(4.5)
        assert (await workflow.submissions.get(sid)).status == SubmissionStatus.UNDER_REVIEW.value

        with pytest.raises(InvalidState):
            await workflow.send_decision_notification(admin_actor, sid)

        # Second completion: ready for a decision
        await workflow.submit_review(
            second_reviewer_actor,
            sid,
            {"originality_score": 3, "recommendation": "accept"},
            complete=True,
        )
        assert (await workflow.submissions.get(sid)).status == SubmissionStatus.REVIEW_COMPLETE.value

        decided = await workflow.decide(admin_actor, sid, Decision.ACCEPT, comments="Strong paper")
        assert decided.status == SubmissionStatus.ACCEPTED.value
        assert notifier.of_kind(NotificationKind.DECISION) == []

        sent = await workflow.send_decision_notification(admin_actor, sid, comments="Congratulations")
        assert sent is True
        decisions = notifier.of_kind(NotificationKind.DECISION)
        assert len(decisions) == 1
        _, recipient, payload = decisions[0]
        assert recipient == author.email
        assert payload["decision"] == SubmissionStatus.ACCEPTED.value

        audit = AuditStore(db_session)
        assert await audit.count(entity_id=sid, action=AuditAction.SUBMISSION_STATUS_CHANGED) == 3
        assert await audit.count(entity_id=sid, action=AuditAction.DECISION_NOTIFICATION_SENT) == 1

        stats = (await workflow.get_submission_reviews(admin_actor, sid)).stats
        assert stats.total_reviews == 2
        assert stats.completed_reviews == 2
        assert stats.accept_count == 2
        assert stats.avg_score == pytest.approx((4.5 + 3.0) / 2)

    @pytest.mark.asyncio
    async def test_completion_while_submitted_passes_through_under_review(
        self, workflow, db_session, submission, admin_actor, reviewer, reviewer_actor
    ):
        sid = submission.id
        await workflow.assign_reviewer(admin_actor, sid, reviewer.id)
        # Put it back to submitted so the completion has to open review itself
        await workflow.override_status(admin_actor, sid, SubmissionStatus.SUBMITTED, reason="test")

        await workflow.submit_review(reviewer_actor, sid, {"clarity_score": 4}, complete=True)

        assert (await workflow.submissions.get(sid)).status == SubmissionStatus.REVIEW_COMPLETE.value
        history = await AuditStore(db_session).get_entity_history(
            "submission", sid, actions=[AuditAction.SUBMISSION_STATUS_CHANGED]
        )
        triggers = sorted(entry.payload["trigger"] for entry in history)
        assert triggers == ["all_reviews_completed", "review_completed", "reviewer_assigned"]

    @pytest.mark.asyncio
    async def test_reviews_after_decision_do_not_move_status(
        self, workflow, submission, admin_actor, reviewer, reviewer_actor
    ):
        sid = submission.id
        await workflow.assign_reviewer(admin_actor, sid, reviewer.id)
        await workflow.submit_review(reviewer_actor, sid, {"clarity_score": 4}, complete=True)
        await workflow.decide(admin_actor, sid, Decision.REJECT)

        await workflow.submit_review(reviewer_actor, sid, {"comments_to_authors": "Late note"}, complete=True)

        assert (await workflow.submissions.get(sid)).status == SubmissionStatus.REJECTED.value

    @pytest.mark.asyncio
    async def test_completed_review_stays_completed(
        self, workflow, submission, admin_actor, reviewer, reviewer_actor
    ):
        sid = submission.id
        assignment = await workflow.assign_reviewer(admin_actor, sid, reviewer.id)
        await workflow.submit_review(reviewer_actor, sid, {"clarity_score": 4}, complete=True)

        review = await workflow.submit_review(reviewer_actor, sid, {"clarity_score": 3}, complete=False)

        assert review.is_completed is True
        assert review.clarity_score == 3
        assert (await workflow.assignments.get(assignment.id)).status == AssignmentStatus.COMPLETED.value


class TestCreateSubmission:
    @pytest.mark.asyncio
    async def test_unknown_event(self, workflow, author_actor, pdf):
        with pytest.raises(NotFound):
            await _submit(workflow, author_actor, uuid.uuid4(), pdf())

    @pytest.mark.asyncio
    async def test_one_submission_per_event(self, workflow, submission, author_actor, event, pdf, upload_dir):
        with pytest.raises(Conflict):
            await _submit(workflow, author_actor, event.id, pdf("second.pdf"))

        # The refused attempt uploaded nothing
        assert len(_files(upload_dir)) == 1

    @pytest.mark.asyncio
    async def test_window_closed(self, make_workflow, author_actor, event, pdf, now):
        late = make_workflow(now=now + timedelta(days=11))

        with pytest.raises(Forbidden):
            await _submit(late, author_actor, event.id, pdf())

    @pytest.mark.asyncio
    async def test_pdf_required_unless_draft(self, workflow, author_actor, event):
        with pytest.raises(InvalidInput):
            await _submit(workflow, author_actor, event.id, None)

    @pytest.mark.asyncio
    async def test_rejected_file_type(self, workflow, author_actor, event, upload_dir):
        image = ArtifactUpload(data=b"\x89PNG", filename="figure.png", content_type="image/png")

        with pytest.raises(InvalidInput):
            await _submit(workflow, author_actor, event.id, image)

        assert await workflow.submissions.list_for_user(author_actor.user_id) == []
        assert _files(upload_dir) == []

    @pytest.mark.asyncio
    async def test_database_failure_removes_upload(
        self, workflow, notifier, author_actor, event, pdf, upload_dir
    ):
        event_id = event.id
        workflow.submissions.create = AsyncMock(side_effect=SQLAlchemyError("insert failed"))

        with pytest.raises(SQLAlchemyError):
            await _submit(workflow, author_actor, event_id, pdf())

        assert _files(upload_dir) == []
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_cleanup_failure_keeps_database_error(
        self, workflow, notifier, author_actor, event, pdf, upload_dir
    ):
        event_id = event.id
        workflow.submissions.create = AsyncMock(side_effect=SQLAlchemyError("insert failed"))
        workflow.blob_store.delete = AsyncMock(side_effect=ExternalFailure("disk gone", service="storage"))

        with pytest.raises(SQLAlchemyError, match="insert failed"):
            await _submit(workflow, author_actor, event_id, pdf())

        workflow.blob_store.delete.assert_awaited_once()
        # The orphan stays behind; only the log records it
        assert len(_files(upload_dir)) == 1
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_upload_failure_surfaces(self, workflow, notifier, author_actor, event, pdf):
        event_id = event.id
        user_id = author_actor.user_id
        workflow.blob_store.put = AsyncMock(side_effect=ExternalFailure("S3 unavailable", service="s3"))

        with pytest.raises(ExternalFailure):
            await _submit(workflow, author_actor, event_id, pdf())

        assert await workflow.submissions.list_for_user(user_id) == []
        assert await workflow.submissions.has_submission_for_event(user_id, event_id) is False
        assert notifier.sent == []

    @pytest.mark.asyncio
    async def test_racing_duplicate_is_refused(
        self, workflow, session_maker, blob_store, notifier, author_actor, event, pdf, upload_dir, now
    ):
        event_id = event.id
        first = await _submit(workflow, author_actor, event_id, pdf())
        first_id = first.id

        async with session_maker() as other_session:
            racing = SubmissionWorkflow(
                other_session, blob_store, notifier, settings=get_settings(), clock=lambda: now
            )
            # A concurrent request that checked before the first insert committed
            racing.submissions.has_submission_for_event = AsyncMock(return_value=False)

            with pytest.raises(Conflict):
                await _submit(racing, author_actor, event_id, pdf("racing.pdf"))

        async with session_maker() as check_session:
            rows = await SubmissionRepository(check_session).list_for_event(event_id)

        assert [s.id for s in rows] == [first_id]
        assert len(_files(upload_dir)) == 1
        assert len(notifier.of_kind(NotificationKind.SUBMISSION_RECEIVED)) == 1

    @pytest.mark.asyncio
    async def test_notifier_failure_does_not_fail_creation(
        self, make_workflow, failing_notifier, author_actor, event, pdf
    ):
        workflow = make_workflow(notifier_override=failing_notifier)

        submission = await _submit(workflow, author_actor, event.id, pdf())

        assert submission.status == SubmissionStatus.SUBMITTED.value
        assert failing_notifier.attempts == 1


class TestDrafts:
    @pytest.mark.asyncio
    async def test_draft_then_submit(self, workflow, notifier, author, author_actor, admin_actor, reviewer, event, pdf):
        draft = await _submit(workflow, author_actor, event.id, None, as_draft=True)
        assert draft.status == SubmissionStatus.DRAFT.value
        assert draft.submitted_at is None
        assert notifier.sent == []

        with pytest.raises(InvalidState):
            await workflow.assign_reviewer(admin_actor, draft.id, reviewer.id)
        with pytest.raises(InvalidInput):
            await workflow.submit(author_actor, draft.id)

        await workflow.update_submission(author_actor, draft.id, {}, artifact=pdf())
        submitted = await workflow.submit(author_actor, draft.id)

        assert submitted.status == SubmissionStatus.SUBMITTED.value
        assert submitted.submitted_at is not None
        assert [n[1] for n in notifier.of_kind(NotificationKind.SUBMISSION_RECEIVED)] == [author.email]

        with pytest.raises(InvalidState):
            await workflow.submit(author_actor, draft.id)

    @pytest.mark.asyncio
    async def test_submit_outside_window(self, workflow, make_workflow, author_actor, admin_actor, event, pdf, now):
        draft = await _submit(workflow, author_actor, event.id, pdf(), as_draft=True)
        late = make_workflow(now=now + timedelta(days=11))

        with pytest.raises(Forbidden):
            await late.submit(author_actor, draft.id)

        # Administrators are not bound by the window
        submitted = await late.submit(admin_actor, draft.id)
        assert submitted.status == SubmissionStatus.SUBMITTED.value


class TestArtifactReplacement:
    @pytest.mark.asyncio
    async def test_old_blob_deleted_after_update(self, workflow, submission, author_actor, pdf, upload_dir):
        old_name = os.path.basename(submission.pdf_url)

        updated = await workflow.update_submission(
            author_actor, submission.id, {"title": "Revised Title"}, artifact=pdf("v2.pdf")
        )

        assert updated.title == "Revised Title"
        assert updated.pdf_filename == "v2.pdf"
        assert _files(upload_dir) == [os.path.basename(updated.pdf_url)]
        assert old_name not in _files(upload_dir)

    @pytest.mark.asyncio
    async def test_failed_update_keeps_old_blob(self, workflow, submission, author_actor, pdf, upload_dir):
        sid = submission.id
        old_url = submission.pdf_url
        workflow.submissions.update_fields = AsyncMock(side_effect=SQLAlchemyError("update failed"))

        with pytest.raises(SQLAlchemyError):
            await workflow.update_submission(author_actor, sid, {}, artifact=pdf("v2.pdf"))

        assert _files(upload_dir) == [os.path.basename(old_url)]
        assert (await workflow.submissions.get(sid)).pdf_url == old_url

    @pytest.mark.asyncio
    async def test_only_owner_or_admin_may_update(self, workflow, submission, other_author):
        with pytest.raises(Forbidden):
            await workflow.update_submission(Actor.from_user(other_author), submission.id, {"title": "Mine"})

    @pytest.mark.asyncio
    async def test_omitted_fields_are_kept(self, workflow, submission, author_actor):
        updated = await workflow.update_submission(
            author_actor, submission.id, {"abstract": "New abstract", "title": None}
        )

        assert updated.title == "Continuous Audit of Public Ledgers"
        assert updated.abstract == "New abstract"


class TestDeleteSubmission:
    @pytest.mark.asyncio
    async def test_owner_deletes_before_review(self, workflow, submission, author_actor, upload_dir):
        result = await workflow.delete_submission(author_actor, submission.id)

        assert result.artifact_deleted is True
        assert _files(upload_dir) == []
        assert await workflow.submissions.get(submission.id) is None

    @pytest.mark.asyncio
    async def test_owner_cannot_delete_under_review(
        self, workflow, submission, author_actor, admin_actor, reviewer, reviewer_actor, upload_dir
    ):
        sid = submission.id
        await workflow.assign_reviewer(admin_actor, sid, reviewer.id)
        await workflow.submit_review(reviewer_actor, sid, {"clarity_score": 4})

        with pytest.raises(Forbidden):
            await workflow.delete_submission(author_actor, sid)

        result = await workflow.delete_submission(admin_actor, sid)

        assert result.artifact_deleted is True
        assert _files(upload_dir) == []
        assert await workflow.assignments.find_by_submission(sid) == []
        assert await workflow.reviews.find_by_submission(sid) == []

    @pytest.mark.asyncio
    async def test_admin_deletes_accepted(self, workflow, submission, author_actor, admin_actor):
        sid = submission.id
        await workflow.override_status(admin_actor, sid, SubmissionStatus.ACCEPTED, reason="test")

        with pytest.raises(Forbidden):
            await workflow.delete_submission(author_actor, sid)

        result = await workflow.delete_submission(admin_actor, sid)
        assert result.submission_id == sid

    @pytest.mark.asyncio
    async def test_blob_failure_is_reported_not_raised(self, workflow, submission, author_actor):
        sid = submission.id
        workflow.blob_store.delete = AsyncMock(side_effect=OSError("disk gone"))

        result = await workflow.delete_submission(author_actor, sid)

        assert result.artifact_deleted is False
        assert await workflow.submissions.get(sid) is None


class TestAssignments:
    @pytest.mark.asyncio
    async def test_duplicate_assignment(self, workflow, submission, admin_actor, reviewer):
        await workflow.assign_reviewer(admin_actor, submission.id, reviewer.id)

        with pytest.raises(Conflict):
            await workflow.assign_reviewer(admin_actor, submission.id, reviewer.id)

    @pytest.mark.asyncio
    async def test_assignee_must_be_reviewer(self, workflow, submission, admin_actor, other_author):
        with pytest.raises(InvalidInput):
            await workflow.assign_reviewer(admin_actor, submission.id, other_author.id)

    @pytest.mark.asyncio
    async def test_admin_only(self, workflow, submission, author_actor, reviewer):
        with pytest.raises(Forbidden):
            await workflow.assign_reviewer(author_actor, submission.id, reviewer.id)

    @pytest.mark.asyncio
    async def test_decided_submission_refuses_assignment(
        self, workflow, submission, admin_actor, reviewer
    ):
        sid = submission.id
        await workflow.override_status(admin_actor, sid, SubmissionStatus.REJECTED)

        with pytest.raises(InvalidState):
            await workflow.assign_reviewer(admin_actor, sid, reviewer.id)

    @pytest.mark.asyncio
    async def test_remove_assignment_keeps_status(self, workflow, submission, admin_actor, reviewer):
        sid = submission.id
        assignment = await workflow.assign_reviewer(admin_actor, sid, reviewer.id)

        await workflow.remove_assignment(admin_actor, assignment.id)

        assert await workflow.list_assignments(admin_actor, sid) == []
        assert (await workflow.submissions.get(sid)).status == SubmissionStatus.UNDER_REVIEW.value
        with pytest.raises(NotFound):
            await workflow.remove_assignment(admin_actor, assignment.id)

    @pytest.mark.asyncio
    async def test_reviewer_lists(self, workflow, submission, admin_actor, reviewer, reviewer_actor, now):
        await workflow.assign_reviewer(admin_actor, submission.id, reviewer.id, due_date=now + timedelta(days=14))

        assignments = await workflow.my_assignments(reviewer_actor)
        submissions = await workflow.list_reviewer_submissions(reviewer_actor)

        assert [a.submission_id for a in assignments] == [submission.id]
        assert [s.id for s in submissions] == [submission.id]


class TestReviewRules:
    @pytest.mark.asyncio
    async def test_unassigned_reviewer_forbidden(self, workflow, submission, reviewer_actor):
        with pytest.raises(Forbidden):
            await workflow.submit_review(reviewer_actor, submission.id, {"clarity_score": 4})

    @pytest.mark.asyncio
    async def test_score_out_of_range(self, workflow, submission, admin_actor, reviewer, reviewer_actor):
        await workflow.assign_reviewer(admin_actor, submission.id, reviewer.id)

        with pytest.raises(InvalidInput) as exc_info:
            await workflow.submit_review(reviewer_actor, submission.id, {"clarity_score": 9})
        assert exc_info.value.detail["field"] == "clarity_score"

    @pytest.mark.asyncio
    async def test_reviewer_sees_only_own_review(
        self, workflow, submission, admin_actor, reviewer, reviewer_actor, second_reviewer_actor
    ):
        await workflow.assign_reviewer(admin_actor, submission.id, reviewer.id)
        await workflow.submit_review(reviewer_actor, submission.id, {"clarity_score": 4})

        mine = await workflow.get_my_review(reviewer_actor, submission.id)
        assert mine.clarity_score == 4

        with pytest.raises(Forbidden):
            await workflow.get_my_review(second_reviewer_actor, submission.id)
        with pytest.raises(Forbidden):
            await workflow.get_submission_reviews(reviewer_actor, submission.id)


class TestDecisions:
    @pytest.mark.asyncio
    async def test_accept_requires_review_complete(self, workflow, submission, admin_actor, reviewer):
        await workflow.assign_reviewer(admin_actor, submission.id, reviewer.id)

        with pytest.raises(InvalidState):
            await workflow.decide(admin_actor, submission.id, Decision.ACCEPT)

    @pytest.mark.asyncio
    async def test_revision_from_under_review(self, workflow, submission, admin_actor, reviewer):
        await workflow.assign_reviewer(admin_actor, submission.id, reviewer.id)

        decided = await workflow.decide(admin_actor, submission.id, Decision.REVISE)

        assert decided.status == SubmissionStatus.REVISION_REQUESTED.value

    @pytest.mark.asyncio
    async def test_only_admin_decides(self, workflow, submission, author_actor):
        with pytest.raises(Forbidden):
            await workflow.decide(author_actor, submission.id, Decision.ACCEPT)

    @pytest.mark.asyncio
    async def test_failed_decision_email_reported(
        self, make_workflow, failing_notifier, submission, admin_actor, db_session
    ):
        sid = submission.id
        workflow = make_workflow(notifier_override=failing_notifier)
        await workflow.override_status(admin_actor, sid, SubmissionStatus.ACCEPTED)

        sent = await workflow.send_decision_notification(admin_actor, sid)

        assert sent is False
        assert await AuditStore(db_session).count(
            entity_id=sid, action=AuditAction.DECISION_NOTIFICATION_SENT
        ) == 0


class TestVisibility:
    @pytest.mark.asyncio
    async def test_view_rules(
        self, workflow, submission, author_actor, admin_actor, reviewer, reviewer_actor, other_author
    ):
        sid = submission.id
        assert (await workflow.get_submission(author_actor, sid)).id == sid
        assert (await workflow.get_submission(admin_actor, sid)).id == sid

        with pytest.raises(Forbidden):
            await workflow.get_submission(reviewer_actor, sid)
        with pytest.raises(Forbidden):
            await workflow.get_submission(Actor.from_user(other_author), sid)

        await workflow.assign_reviewer(admin_actor, sid, reviewer.id)
        assert (await workflow.get_submission(reviewer_actor, sid)).id == sid

    @pytest.mark.asyncio
    async def test_event_listing_and_stats_are_admin_only(
        self, workflow, submission, author_actor, admin_actor, event
    ):
        with pytest.raises(Forbidden):
            await workflow.list_event_submissions(author_actor, event.id)

        listed = await workflow.list_event_submissions(admin_actor, event.id)
        stats = await workflow.event_stats(admin_actor, event.id)

        assert [s.id for s in listed] == [submission.id]
        assert stats.total == 1
        assert stats.by_status[SubmissionStatus.SUBMITTED.value] == 1


class TestEligibility:
    @pytest.mark.asyncio
    async def test_can_submit(self, workflow, author_actor, other_author, event, pdf, now):
        assert await workflow.can_submit(author_actor.user_id, event.id) is True

        await _submit(workflow, author_actor, event.id, pdf())

        assert await workflow.can_submit(author_actor.user_id, event.id) is False
        assert await workflow.can_submit(other_author.id, event.id) is True
        assert await workflow.can_submit(other_author.id, event.id, now=now + timedelta(days=40)) is False
