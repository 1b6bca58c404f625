"""
Role change requests.

An administrator either replaces a user's whole role set or adds/removes a
single role. Both leave the user with at least one valid role.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Union

from symposium.kernel.errors import InvalidInput
from symposium.kernel.models.user import UserRole

VALID_ROLES = frozenset(role.value for role in UserRole)


class RoleAction(str, Enum):
    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True)
class ReplaceRoles:
    roles: Sequence[str]


@dataclass(frozen=True)
class AdjustRole:
    action: RoleAction
    role: str


RoleChange = Union[ReplaceRoles, AdjustRole]


def apply_role_change(current: Sequence[str], change: RoleChange) -> List[str]:
    """
    Compute the role set after applying change to current.

    Raises:
        InvalidInput: unknown role, or the result would be empty
    """
    if isinstance(change, ReplaceRoles):
        requested = list(dict.fromkeys(change.roles))
        invalid = [r for r in requested if r not in VALID_ROLES]
        if invalid:
            raise InvalidInput(f"Invalid roles: {', '.join(invalid)}")
        if not requested:
            raise InvalidInput("User must have at least one role")
        return requested

    if change.role not in VALID_ROLES:
        raise InvalidInput(f"Invalid role: {change.role}")

    roles = list(current)
    if change.action == RoleAction.ADD:
        if change.role not in roles:
            roles.append(change.role)
        return roles

    remaining = [r for r in roles if r != change.role]
    if not remaining:
        raise InvalidInput("User must have at least one role")
    return remaining
