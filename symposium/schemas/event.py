"""
Event schemas.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from symposium.kernel.models.event import EventStatus


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    location: Optional[str] = Field(None, max_length=255)
    event_date: datetime
    submission_start_date: datetime
    submission_end_date: datetime
    review_deadline: Optional[datetime] = None
    notification_date: Optional[datetime] = None
    status: EventStatus = EventStatus.UPCOMING

    @model_validator(mode="after")
    def check_window(self) -> "EventCreate":
        if self.submission_start_date > self.submission_end_date:
            raise ValueError("submission_start_date must not be after submission_end_date")
        return self


class EventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    location: Optional[str] = None
    event_date: datetime
    submission_start_date: datetime
    submission_end_date: datetime
    review_deadline: Optional[datetime] = None
    notification_date: Optional[datetime] = None
    status: EventStatus
    created_at: datetime
