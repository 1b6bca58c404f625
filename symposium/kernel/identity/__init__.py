"""
Identity Core - Authentication and user management.
"""

from symposium.kernel.identity.password import generate_token, hash_password, verify_password
from symposium.kernel.identity.jwt import (
    AccessToken,
    AccessTokenPayload,
    JWTManager,
    create_access_token,
    verify_access_token,
)
from symposium.kernel.identity.roles import (
    AdjustRole,
    ReplaceRoles,
    RoleAction,
    RoleChange,
    apply_role_change,
)
from symposium.kernel.identity.identity_service import IdentityService

__all__ = [
    "generate_token",
    "hash_password",
    "verify_password",
    "AccessToken",
    "AccessTokenPayload",
    "JWTManager",
    "create_access_token",
    "verify_access_token",
    "AdjustRole",
    "ReplaceRoles",
    "RoleAction",
    "RoleChange",
    "apply_role_change",
    "IdentityService",
]
