"""
Authorization rules for submissions, assignments and reviews.

The rules are plain functions over an Actor and the entity involved;
PermissionService adds the one lookup they need (is this reviewer assigned)
and raises Forbidden when a rule fails.
"""

import uuid
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from symposium.kernel.errors import Forbidden
from symposium.kernel.models.submission import Submission, SubmissionStatus
from symposium.kernel.models.user import User, UserRole
from symposium.kernel.stores.assignment_ledger import AssignmentLedger

# Once a submission reaches one of these, only an admin may delete it
PROTECTED_STATUSES = frozenset({
    SubmissionStatus.UNDER_REVIEW.value,
    SubmissionStatus.ACCEPTED.value,
    SubmissionStatus.REJECTED.value,
    SubmissionStatus.REVISION_REQUESTED.value,
})


@dataclass(frozen=True)
class Actor:
    """The authenticated caller of a workflow operation."""

    user_id: uuid.UUID
    roles: FrozenSet[str] = field(default_factory=frozenset)
    email: Optional[str] = None

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(user_id=user.id, roles=frozenset(user.roles or []), email=user.email)

    @classmethod
    def with_roles(cls, user_id: uuid.UUID, roles: Iterable[str], email: Optional[str] = None) -> "Actor":
        return cls(user_id=user_id, roles=frozenset(roles), email=email)

    def has_role(self, role: UserRole) -> bool:
        return role.value in self.roles

    @property
    def is_admin(self) -> bool:
        return self.has_role(UserRole.ADMIN)

    @property
    def is_reviewer(self) -> bool:
        return self.has_role(UserRole.REVIEWER)


def is_owner(actor: Actor, submission: Submission) -> bool:
    return submission.user_id == actor.user_id


def can_view_submission(actor: Actor, submission: Submission, is_assigned: bool) -> bool:
    """Owner, admin, or a reviewer assigned to the submission."""
    if actor.is_admin or is_owner(actor, submission):
        return True
    return actor.is_reviewer and is_assigned


def can_modify_submission(actor: Actor, submission: Submission) -> bool:
    return actor.is_admin or is_owner(actor, submission)


def can_delete_submission(actor: Actor, submission: Submission) -> bool:
    if actor.is_admin:
        return True
    return is_owner(actor, submission) and submission.status not in PROTECTED_STATUSES


def require_admin(actor: Actor, action: str = "perform this action") -> None:
    if not actor.is_admin:
        raise Forbidden(f"Admin access required to {action}")


class PermissionService:
    """
    Enforces the authorization rules, raising Forbidden on failure.

    Usage:
        permissions = PermissionService(session)
        await permissions.check_view_submission(actor, submission)
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.assignments = AssignmentLedger(session)

    async def check_view_submission(self, actor: Actor, submission: Submission) -> None:
        if actor.is_admin or is_owner(actor, submission):
            return
        assigned = actor.is_reviewer and await self.assignments.is_assigned(
            submission.id, actor.user_id
        )
        if not can_view_submission(actor, submission, assigned):
            raise Forbidden("Access denied")

    def check_modify_submission(self, actor: Actor, submission: Submission) -> None:
        if not can_modify_submission(actor, submission):
            raise Forbidden("Access denied")

    def check_delete_submission(self, actor: Actor, submission: Submission) -> None:
        if not can_modify_submission(actor, submission):
            raise Forbidden("Access denied")
        if not can_delete_submission(actor, submission):
            raise Forbidden(
                f"Cannot delete a submission with status {submission.status}",
                detail={"status": submission.status},
            )

    async def check_reviewer_assigned(self, actor: Actor, submission_id: uuid.UUID) -> None:
        """The actor must hold an assignment for submission_id."""
        if not await self.assignments.is_assigned(submission_id, actor.user_id):
            raise Forbidden("You are not assigned to review this submission")
