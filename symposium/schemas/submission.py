"""
Submission schemas.
"""

import json
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from symposium.kernel.models.submission import SubmissionStatus
from symposium.orchestration.state_machine import Decision


def parse_keywords(raw: Optional[str]) -> Optional[List[str]]:
    """
    Keywords arrive either as a JSON array or as a comma-separated string.

    >>> parse_keywords("audit, tax ,")
    ['audit', 'tax']
    """
    if raw is None:
        return None
    raw = raw.strip()
    if raw.startswith("["):
        try:
            values = json.loads(raw)
        except json.JSONDecodeError:
            values = None
        if isinstance(values, list):
            return [str(v).strip() for v in values if str(v).strip()]
    return [part.strip() for part in raw.split(",") if part.strip()]


class SubmissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    event_id: uuid.UUID
    user_id: uuid.UUID
    title: str
    abstract: str
    keywords: List[str] = []
    corresponding_author: str
    co_authors: Optional[str] = None
    pdf_url: Optional[str] = None
    pdf_filename: Optional[str] = None
    pdf_size: Optional[int] = None
    status: SubmissionStatus
    submitted_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class SubmissionDeleteResponse(BaseModel):
    id: uuid.UUID
    artifact_deleted: bool


class StatusOverrideRequest(BaseModel):
    status: SubmissionStatus
    reason: Optional[str] = Field(None, max_length=1000)


class DecisionRequest(BaseModel):
    decision: Decision
    comments: Optional[str] = None


class DecisionNotificationRequest(BaseModel):
    comments: Optional[str] = None


class DecisionNotificationResponse(BaseModel):
    sent: bool


class EligibilityResponse(BaseModel):
    event_id: uuid.UUID
    can_submit: bool


class EventStatsResponse(BaseModel):
    event_id: uuid.UUID
    total: int
    by_status: Dict[str, int]
