"""
User administration endpoints.
"""

import uuid
from typing import Annotated

from fastapi import APIRouter, Body

from symposium.api.deps import AdminUser, DbSession
from symposium.kernel.identity.identity_service import IdentityService
from symposium.schemas.auth import UserResponse
from symposium.schemas.user import RoleChangeRequest

router = APIRouter()


@router.put("/{user_id}/roles", response_model=UserResponse)
async def update_user_roles(
    user_id: uuid.UUID,
    data: Annotated[RoleChangeRequest, Body(discriminator="kind")],
    admin: AdminUser,
    db: DbSession,
):
    """
    Change a user's roles.

    Body is either {"kind": "replace", "roles": [...]} or
    {"kind": "adjust", "action": "add" | "remove", "role": "..."}.
    """
    identity_service = IdentityService(db)
    user = await identity_service.change_roles(user_id, data.to_change(), changed_by=admin.id)
    return UserResponse.model_validate(user)
