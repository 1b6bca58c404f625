"""
Submission endpoints.

Create and update take multipart form data so the PDF can travel with
the metadata.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, File, Form, UploadFile, status

from symposium.api.deps import CurrentActor, Workflow
from symposium.orchestration.workflow import ArtifactUpload
from symposium.schemas.submission import (
    DecisionNotificationRequest,
    DecisionNotificationResponse,
    DecisionRequest,
    StatusOverrideRequest,
    SubmissionDeleteResponse,
    SubmissionResponse,
    parse_keywords,
)

router = APIRouter()


async def _read_upload(file: Optional[UploadFile]) -> Optional[ArtifactUpload]:
    if file is None or not file.filename:
        return None
    data = await file.read()
    return ArtifactUpload(data=data, filename=file.filename, content_type=file.content_type)


@router.post("", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def create_submission(
    actor: CurrentActor,
    workflow: Workflow,
    event_id: uuid.UUID = Form(...),
    title: str = Form(..., min_length=1, max_length=500),
    abstract: str = Form(..., min_length=1),
    corresponding_author: str = Form(..., min_length=1, max_length=255),
    keywords: Optional[str] = Form(None),
    co_authors: Optional[str] = Form(None),
    as_draft: bool = Form(False),
    file: Optional[UploadFile] = File(None),
):
    """Submit a paper to an event. The PDF is required unless saving a draft."""
    submission = await workflow.create_submission(
        actor,
        event_id,
        title=title,
        abstract=abstract,
        corresponding_author=corresponding_author,
        keywords=parse_keywords(keywords),
        co_authors=co_authors,
        artifact=await _read_upload(file),
        as_draft=as_draft,
    )
    return SubmissionResponse.model_validate(submission)


@router.get("/mine", response_model=List[SubmissionResponse])
async def list_my_submissions(actor: CurrentActor, workflow: Workflow):
    submissions = await workflow.list_my_submissions(actor)
    return [SubmissionResponse.model_validate(s) for s in submissions]


@router.get("/event/{event_id}", response_model=List[SubmissionResponse])
async def list_event_submissions(
    event_id: uuid.UUID,
    actor: CurrentActor,
    workflow: Workflow,
):
    submissions = await workflow.list_event_submissions(actor, event_id)
    return [SubmissionResponse.model_validate(s) for s in submissions]


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: uuid.UUID,
    actor: CurrentActor,
    workflow: Workflow,
):
    submission = await workflow.get_submission(actor, submission_id)
    return SubmissionResponse.model_validate(submission)


@router.put("/{submission_id}", response_model=SubmissionResponse)
async def update_submission(
    submission_id: uuid.UUID,
    actor: CurrentActor,
    workflow: Workflow,
    title: Optional[str] = Form(None, max_length=500),
    abstract: Optional[str] = Form(None),
    corresponding_author: Optional[str] = Form(None, max_length=255),
    keywords: Optional[str] = Form(None),
    co_authors: Optional[str] = Form(None),
    file: Optional[UploadFile] = File(None),
):
    """Partial update; an attached PDF replaces the current one."""
    changes = {
        "title": title,
        "abstract": abstract,
        "corresponding_author": corresponding_author,
        "keywords": parse_keywords(keywords),
        "co_authors": co_authors,
    }
    submission = await workflow.update_submission(
        actor, submission_id, changes, artifact=await _read_upload(file)
    )
    return SubmissionResponse.model_validate(submission)


@router.post("/{submission_id}/submit", response_model=SubmissionResponse)
async def submit_draft(
    submission_id: uuid.UUID,
    actor: CurrentActor,
    workflow: Workflow,
):
    submission = await workflow.submit(actor, submission_id)
    return SubmissionResponse.model_validate(submission)


@router.delete("/{submission_id}", response_model=SubmissionDeleteResponse)
async def delete_submission(
    submission_id: uuid.UUID,
    actor: CurrentActor,
    workflow: Workflow,
):
    result = await workflow.delete_submission(actor, submission_id)
    return SubmissionDeleteResponse(id=result.submission_id, artifact_deleted=result.artifact_deleted)


@router.put("/{submission_id}/status", response_model=SubmissionResponse)
async def override_status(
    submission_id: uuid.UUID,
    data: StatusOverrideRequest,
    actor: CurrentActor,
    workflow: Workflow,
):
    """Set any status directly (admin). Recorded in the audit log with the reason."""
    submission = await workflow.override_status(actor, submission_id, data.status, data.reason)
    return SubmissionResponse.model_validate(submission)


@router.post("/{submission_id}/decision", response_model=SubmissionResponse)
async def decide(
    submission_id: uuid.UUID,
    data: DecisionRequest,
    actor: CurrentActor,
    workflow: Workflow,
):
    submission = await workflow.decide(actor, submission_id, data.decision, data.comments)
    return SubmissionResponse.model_validate(submission)


@router.post("/{submission_id}/notify-decision", response_model=DecisionNotificationResponse)
async def send_decision_notification(
    submission_id: uuid.UUID,
    data: DecisionNotificationRequest,
    actor: CurrentActor,
    workflow: Workflow,
):
    sent = await workflow.send_decision_notification(actor, submission_id, data.comments)
    return DecisionNotificationResponse(sent=sent)
