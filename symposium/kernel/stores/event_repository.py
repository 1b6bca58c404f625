"""
Event repository.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from symposium.kernel.models.event import Event, EventStatus


class EventRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(
        self,
        *,
        title: str,
        event_date: datetime,
        submission_start_date: datetime,
        submission_end_date: datetime,
        description: Optional[str] = None,
        location: Optional[str] = None,
        review_deadline: Optional[datetime] = None,
        notification_date: Optional[datetime] = None,
        status: EventStatus = EventStatus.UPCOMING,
        created_by: Optional[uuid.UUID] = None,
    ) -> Event:
        event = Event(
            title=title,
            description=description,
            location=location,
            event_date=event_date,
            submission_start_date=submission_start_date,
            submission_end_date=submission_end_date,
            review_deadline=review_deadline,
            notification_date=notification_date,
            status=status.value,
            created_by=created_by,
        )
        self.session.add(event)
        await self.session.flush()
        await self.session.refresh(event)
        return event

    async def get(self, event_id: uuid.UUID) -> Optional[Event]:
        result = await self.session.execute(select(Event).where(Event.id == event_id))
        return result.scalar_one_or_none()

    async def list(self, status: Optional[EventStatus] = None) -> List[Event]:
        query = select(Event).order_by(Event.event_date.desc())
        if status is not None:
            query = query.where(Event.status == status.value)
        result = await self.session.execute(query)
        return list(result.scalars().all())
