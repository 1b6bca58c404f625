"""
Review and reviewer assignment schemas.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from symposium.kernel.models.review import AssignmentStatus, ReviewRecommendation


class ReviewSubmit(BaseModel):
    """
    A review save. Omitted fields keep their stored value; is_completed
    finalizes the review.
    """

    originality_score: Optional[int] = None
    methodology_score: Optional[int] = None
    clarity_score: Optional[int] = None
    contribution_score: Optional[int] = None
    strengths: Optional[str] = None
    weaknesses: Optional[str] = None
    comments_to_authors: Optional[str] = None
    comments_to_committee: Optional[str] = None
    recommendation: Optional[ReviewRecommendation] = None
    is_completed: bool = False


class ReviewResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    submission_id: uuid.UUID
    reviewer_id: uuid.UUID
    originality_score: Optional[int] = None
    methodology_score: Optional[int] = None
    clarity_score: Optional[int] = None
    contribution_score: Optional[int] = None
    overall_score: Optional[float] = None
    strengths: Optional[str] = None
    weaknesses: Optional[str] = None
    comments_to_authors: Optional[str] = None
    comments_to_committee: Optional[str] = None
    recommendation: Optional[ReviewRecommendation] = None
    is_completed: bool
    created_at: datetime
    updated_at: datetime


class ReviewStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    total_reviews: int
    completed_reviews: int
    accept_count: int
    reject_count: int
    avg_score: Optional[float] = None


class SubmissionReviewsResponse(BaseModel):
    reviews: List[ReviewResponse]
    stats: ReviewStatsResponse


class AssignmentCreate(BaseModel):
    reviewer_id: uuid.UUID
    due_date: Optional[datetime] = None


class AssignmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    submission_id: uuid.UUID
    reviewer_id: uuid.UUID
    assigned_by: Optional[uuid.UUID] = None
    assigned_at: datetime
    due_date: Optional[datetime] = None
    status: AssignmentStatus
