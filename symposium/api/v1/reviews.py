"""
Review and reviewer assignment endpoints.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, status

from symposium.api.deps import CurrentActor, Workflow
from symposium.schemas.review import (
    AssignmentCreate,
    AssignmentResponse,
    ReviewResponse,
    ReviewStatsResponse,
    ReviewSubmit,
    SubmissionReviewsResponse,
)
from symposium.schemas.submission import SubmissionResponse

router = APIRouter()


# Reviewer side

@router.get("/assignments/mine", response_model=List[AssignmentResponse])
async def my_assignments(actor: CurrentActor, workflow: Workflow):
    """The caller's assignments, earliest due date first."""
    assignments = await workflow.my_assignments(actor)
    return [AssignmentResponse.model_validate(a) for a in assignments]


@router.get("/assigned-submissions", response_model=List[SubmissionResponse])
async def my_assigned_submissions(actor: CurrentActor, workflow: Workflow):
    submissions = await workflow.list_reviewer_submissions(actor)
    return [SubmissionResponse.model_validate(s) for s in submissions]


@router.get("/submission/{submission_id}/mine", response_model=Optional[ReviewResponse])
async def my_review(
    submission_id: uuid.UUID,
    actor: CurrentActor,
    workflow: Workflow,
):
    review = await workflow.get_my_review(actor, submission_id)
    return ReviewResponse.model_validate(review) if review else None


@router.post("/submission/{submission_id}", response_model=ReviewResponse)
async def submit_review(
    submission_id: uuid.UUID,
    data: ReviewSubmit,
    actor: CurrentActor,
    workflow: Workflow,
):
    """Save a draft review, or finalize it with is_completed."""
    review = await workflow.submit_review(
        actor,
        submission_id,
        data.model_dump(exclude={"is_completed"}, exclude_none=True),
        complete=data.is_completed,
    )
    return ReviewResponse.model_validate(review)


# Admin side

@router.get("/submission/{submission_id}", response_model=SubmissionReviewsResponse)
async def submission_reviews(
    submission_id: uuid.UUID,
    actor: CurrentActor,
    workflow: Workflow,
):
    result = await workflow.get_submission_reviews(actor, submission_id)
    return SubmissionReviewsResponse(
        reviews=[ReviewResponse.model_validate(r) for r in result.reviews],
        stats=ReviewStatsResponse.model_validate(result.stats),
    )


@router.post(
    "/submission/{submission_id}/assignments",
    response_model=AssignmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def assign_reviewer(
    submission_id: uuid.UUID,
    data: AssignmentCreate,
    actor: CurrentActor,
    workflow: Workflow,
):
    assignment = await workflow.assign_reviewer(actor, submission_id, data.reviewer_id, data.due_date)
    return AssignmentResponse.model_validate(assignment)


@router.get("/submission/{submission_id}/assignments", response_model=List[AssignmentResponse])
async def list_assignments(
    submission_id: uuid.UUID,
    actor: CurrentActor,
    workflow: Workflow,
):
    assignments = await workflow.list_assignments(actor, submission_id)
    return [AssignmentResponse.model_validate(a) for a in assignments]


@router.delete("/assignments/{assignment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_assignment(
    assignment_id: uuid.UUID,
    actor: CurrentActor,
    workflow: Workflow,
):
    await workflow.remove_assignment(actor, assignment_id)
