"""
Audit store for the append-only workflow log.

Entries are added to the caller's session; they commit or roll back
together with the change they describe.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import select, and_, desc, func
from sqlalchemy.ext.asyncio import AsyncSession

from symposium.kernel.models.audit_log import AuditLog, AuditAction
from symposium.logging_config import get_request_id


class AuditStore:
    """
    Service for writing and reading the audit log.

    Usage:
        audit = AuditStore(session)
        await audit.log(
            action=AuditAction.REVIEWER_ASSIGNED,
            entity_type="submission",
            entity_id=submission.id,
            actor_id=admin.user_id,
            payload={"reviewer_id": reviewer_id},
        )
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def log(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: uuid.UUID,
        actor_id: Optional[uuid.UUID] = None,
        payload: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        """
        Append an entry to the audit log.

        Args:
            action: What happened
            entity_type: submission, assignment, review, user or event
            entity_id: The ID of the entity
            actor_id: Who triggered it (None for system transitions)
            payload: Additional event data

        Returns:
            The pending AuditLog row
        """
        entry = AuditLog(
            action=action.value,
            entity_type=entity_type,
            entity_id=entity_id,
            actor_id=actor_id,
            payload=self._serialize_payload(payload or {}),
            request_id=get_request_id(),
        )
        self.session.add(entry)
        # Flushed together with the caller's change
        return entry

    async def get_entity_history(
        self,
        entity_type: str,
        entity_id: uuid.UUID,
        actions: Optional[List[AuditAction]] = None,
        limit: int = 100,
    ) -> List[AuditLog]:
        """Entries for one entity, newest first."""
        query = select(AuditLog).where(
            and_(
                AuditLog.entity_type == entity_type,
                AuditLog.entity_id == entity_id,
            )
        )
        if actions:
            query = query.where(AuditLog.action.in_([a.value for a in actions]))

        query = query.order_by(desc(AuditLog.created_at)).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count(
        self,
        entity_type: Optional[str] = None,
        entity_id: Optional[uuid.UUID] = None,
        action: Optional[AuditAction] = None,
        since: Optional[datetime] = None,
    ) -> int:
        query = select(func.count(AuditLog.id))
        if entity_type:
            query = query.where(AuditLog.entity_type == entity_type)
        if entity_id:
            query = query.where(AuditLog.entity_id == entity_id)
        if action:
            query = query.where(AuditLog.action == action.value)
        if since:
            query = query.where(AuditLog.created_at >= since)

        result = await self.session.execute(query)
        return result.scalar() or 0

    def _serialize_payload(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Convert payload values to JSON-serializable types."""
        return {key: self._serialize_value(value) for key, value in payload.items()}

    def _serialize_value(self, value: Any) -> Any:
        if isinstance(value, uuid.UUID):
            return str(value)
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, dict):
            return self._serialize_payload(value)
        if isinstance(value, (list, tuple)):
            return [self._serialize_value(v) for v in value]
        return value
