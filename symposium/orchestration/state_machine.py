"""
State machine for the Submission lifecycle.

Valid transitions and the triggers that may fire them are defined here.
Moves are applied with a conditional UPDATE on the status observed before
the move, so two racing triggers can never both apply or move a submission
backwards. Administrative override is the only way off the graph.
"""

import uuid
from enum import Enum
from typing import Any, Dict, List, Optional, Set, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from symposium.kernel.audit import AuditStore
from symposium.kernel.errors import InvalidState, NotFound
from symposium.kernel.models.audit_log import AuditAction
from symposium.kernel.models.submission import Submission, SubmissionStatus
from symposium.kernel.stores.submission_repository import SubmissionRepository
from symposium.logging_config import get_logger

logger = get_logger(__name__)


class Trigger(str, Enum):
    """What caused a status change."""
    SUBMIT = "submit"
    REVIEWER_ASSIGNED = "reviewer_assigned"
    REVIEW_COMPLETED = "review_completed"
    ALL_REVIEWS_COMPLETED = "all_reviews_completed"
    ADMIN_DECISION = "admin_decision"
    ADMIN_OVERRIDE = "admin_override"


class Decision(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    REVISE = "revise"


_S = SubmissionStatus

# Valid transitions: (from_status, to_status) -> triggers that may fire them
_TRANSITIONS: Dict[Tuple[str, str], Set[Trigger]] = {
    (_S.DRAFT.value, _S.SUBMITTED.value): {Trigger.SUBMIT},
    # Either the first assignment or the first completed review opens review
    (_S.SUBMITTED.value, _S.UNDER_REVIEW.value): {Trigger.REVIEWER_ASSIGNED, Trigger.REVIEW_COMPLETED},
    (_S.UNDER_REVIEW.value, _S.REVIEW_COMPLETE.value): {Trigger.ALL_REVIEWS_COMPLETED},
    (_S.REVIEW_COMPLETE.value, _S.ACCEPTED.value): {Trigger.ADMIN_DECISION},
    (_S.REVIEW_COMPLETE.value, _S.REJECTED.value): {Trigger.ADMIN_DECISION},
    (_S.UNDER_REVIEW.value, _S.REVISION_REQUESTED.value): {Trigger.ADMIN_DECISION},
    (_S.REVIEW_COMPLETE.value, _S.REVISION_REQUESTED.value): {Trigger.ADMIN_DECISION},
}

DECISION_TARGETS: Dict[Decision, SubmissionStatus] = {
    Decision.ACCEPT: _S.ACCEPTED,
    Decision.REJECT: _S.REJECTED,
    Decision.REVISE: _S.REVISION_REQUESTED,
}

TERMINAL_DECISIONS = frozenset({_S.ACCEPTED.value, _S.REJECTED.value})


def valid_transitions(from_status: str) -> List[str]:
    """Target statuses reachable from from_status without an override."""
    return sorted({t for (f, t) in _TRANSITIONS if f == from_status})


def can_transition(trigger: Trigger, from_status: str, to_status: str) -> bool:
    """Check if trigger may move a submission from from_status to to_status."""
    if trigger == Trigger.ADMIN_OVERRIDE:
        return True
    return trigger in _TRANSITIONS.get((from_status, to_status), set())


def _status_value(status: Any) -> str:
    return status.value if isinstance(status, Enum) else str(status)


class StateMachine:
    """Service for performing submission status transitions with audit logging."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.submissions = SubmissionRepository(session)
        self.audit = AuditStore(session)

    async def advance(
        self,
        submission_id: uuid.UUID,
        to_status: SubmissionStatus,
        trigger: Trigger,
        actor_id: Optional[uuid.UUID] = None,
        payload: Optional[Dict[str, Any]] = None,
        strict: bool = False,
    ) -> bool:
        """
        Move a submission along one edge of the graph.

        Args:
            submission_id: Submission to move
            to_status: Target status
            trigger: Cause of the move, checked against the graph
            actor_id: Who caused it (None for automatic moves)
            payload: Extra audit data
            strict: Raise instead of returning False when the move is not allowed

        Returns:
            True if the status changed

        Raises:
            NotFound: strict and the submission does not exist
            InvalidState: strict and the edge is not allowed from the current status
        """
        submission = await self.submissions.get(submission_id)
        if submission is None:
            if strict:
                raise NotFound("Submission not found")
            return False

        from_status = _status_value(submission.status)
        if not can_transition(trigger, from_status, to_status.value):
            if strict:
                raise InvalidState(
                    f"Invalid transition: {from_status} -> {to_status.value}",
                    detail={"status": from_status, "allowed": valid_transitions(from_status)},
                )
            logger.debug(
                "Transition not applicable",
                extra={
                    "submission_id": str(submission_id),
                    "from_status": from_status,
                    "to_status": to_status.value,
                    "trigger": trigger.value,
                },
            )
            return False

        moved = await self.submissions.advance_status(
            submission_id, to_status, [SubmissionStatus(from_status)]
        )
        if not moved:
            # Another request moved it between our read and the update
            if strict:
                raise InvalidState(
                    "Submission status changed concurrently",
                    detail={"status": from_status},
                )
            return False

        await self.audit.log(
            action=AuditAction.SUBMISSION_STATUS_CHANGED,
            entity_type="submission",
            entity_id=submission_id,
            actor_id=actor_id,
            payload={
                "from_status": from_status,
                "to_status": to_status.value,
                "trigger": trigger.value,
                **(payload or {}),
            },
        )
        logger.info(
            "Submission status changed",
            extra={
                "submission_id": str(submission_id),
                "from_status": from_status,
                "to_status": to_status.value,
                "trigger": trigger.value,
            },
        )
        return True

    async def override(
        self,
        submission_id: uuid.UUID,
        to_status: SubmissionStatus,
        actor_id: uuid.UUID,
        reason: Optional[str] = None,
    ) -> Submission:
        """Set any status regardless of the graph; always audit-logged."""
        submission = await self.submissions.get(submission_id)
        if submission is None:
            raise NotFound("Submission not found")

        from_status = _status_value(submission.status)
        updated = await self.submissions.update_status(submission_id, to_status)

        await self.audit.log(
            action=AuditAction.SUBMISSION_STATUS_OVERRIDDEN,
            entity_type="submission",
            entity_id=submission_id,
            actor_id=actor_id,
            payload={
                "from_status": from_status,
                "to_status": to_status.value,
                "reason": reason,
            },
        )
        logger.warning(
            "Submission status overridden",
            extra={
                "submission_id": str(submission_id),
                "from_status": from_status,
                "to_status": to_status.value,
                "actor_id": str(actor_id),
                "reason": reason,
            },
        )
        return updated
