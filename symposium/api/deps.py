"""
FastAPI dependencies for authentication, authorization, database sessions
and the workflow's collaborators.
"""

import uuid
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from symposium.database import get_db
from symposium.kernel.identity.identity_service import IdentityService
from symposium.kernel.identity.jwt import verify_access_token
from symposium.kernel.models.user import User, UserRole
from symposium.kernel.permissions import Actor
from symposium.logging_config import bind_actor
from symposium.orchestration.workflow import SubmissionWorkflow
from symposium.services.notifier import Notifier
from symposium.services.storage import BlobStore


# Security scheme
security = HTTPBearer(auto_error=False)

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: DbSession,
) -> User:
    """Get current authenticated user or raise 401."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_access_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    identity_service = IdentityService(db)
    user = await identity_service.get_user_by_id(uuid.UUID(payload.sub))

    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is disabled",
        )

    bind_actor(user.id)
    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def get_current_actor(user: CurrentUser) -> Actor:
    """Roles are taken from the stored user, not the token, so role changes apply at once."""
    return Actor.from_user(user)


CurrentActor = Annotated[Actor, Depends(get_current_actor)]


async def require_admin(user: CurrentUser) -> User:
    """Require the current user to be an admin."""
    if not user.has_role(UserRole.ADMIN):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required",
        )
    return user


AdminUser = Annotated[User, Depends(require_admin)]



def get_blob_store(request: Request) -> BlobStore:
    return request.app.state.blob_store


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


async def get_workflow(
    db: DbSession,
    blob_store: Annotated[BlobStore, Depends(get_blob_store)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> SubmissionWorkflow:
    return SubmissionWorkflow(db, blob_store, notifier)


Workflow = Annotated[SubmissionWorkflow, Depends(get_workflow)]
NotifierDep = Annotated[Notifier, Depends(get_notifier)]
