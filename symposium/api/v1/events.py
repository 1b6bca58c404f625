"""
Event endpoints.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, HTTPException, status

from symposium.api.deps import AdminUser, CurrentActor, DbSession, Workflow
from symposium.kernel.audit import AuditStore
from symposium.kernel.models.audit_log import AuditAction
from symposium.kernel.models.event import EventStatus
from symposium.kernel.stores import EventRepository
from symposium.schemas.event import EventCreate, EventResponse
from symposium.schemas.submission import EligibilityResponse, EventStatsResponse

router = APIRouter()


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_event(
    data: EventCreate,
    admin: AdminUser,
    db: DbSession,
):
    events = EventRepository(db)
    event = await events.create(**data.model_dump(), created_by=admin.id)
    await AuditStore(db).log(
        action=AuditAction.EVENT_CREATED,
        entity_type="event",
        entity_id=event.id,
        actor_id=admin.id,
        payload={"title": event.title},
    )
    return EventResponse.model_validate(event)


@router.get("", response_model=List[EventResponse])
async def list_events(
    db: DbSession,
    status_filter: Optional[EventStatus] = None,
):
    events = await EventRepository(db).list(status_filter)
    return [EventResponse.model_validate(e) for e in events]


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event_id: uuid.UUID,
    db: DbSession,
):
    event = await EventRepository(db).get(event_id)
    if not event:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Event not found",
        )
    return EventResponse.model_validate(event)


@router.get("/{event_id}/eligibility", response_model=EligibilityResponse)
async def check_eligibility(
    event_id: uuid.UUID,
    actor: CurrentActor,
    workflow: Workflow,
):
    """Whether the caller may submit to this event right now."""
    allowed = await workflow.can_submit(actor.user_id, event_id)
    return EligibilityResponse(event_id=event_id, can_submit=allowed)


@router.get("/{event_id}/stats", response_model=EventStatsResponse)
async def get_event_stats(
    event_id: uuid.UUID,
    actor: CurrentActor,
    workflow: Workflow,
):
    stats = await workflow.event_stats(actor, event_id)
    return EventStatsResponse(event_id=stats.event_id, total=stats.total, by_status=stats.by_status)
