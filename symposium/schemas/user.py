"""
User administration schemas.
"""

from typing import List, Literal, Union

from pydantic import BaseModel

from symposium.kernel.identity.roles import AdjustRole, ReplaceRoles, RoleAction
from symposium.kernel.models.user import UserRole


class ReplaceRolesRequest(BaseModel):
    """Replace the user's whole role set."""

    kind: Literal["replace"] = "replace"
    roles: List[UserRole]

    def to_change(self) -> ReplaceRoles:
        return ReplaceRoles(roles=[r.value for r in self.roles])


class AdjustRoleRequest(BaseModel):
    """Add or remove a single role."""

    kind: Literal["adjust"] = "adjust"
    action: RoleAction
    role: UserRole

    def to_change(self) -> AdjustRole:
        return AdjustRole(action=self.action, role=self.role.value)


# Discriminated on "kind" where it is used as a request body
RoleChangeRequest = Union[ReplaceRolesRequest, AdjustRoleRequest]
