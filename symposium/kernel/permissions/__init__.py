"""
Permission Core - role and ownership based access control.
"""

from symposium.kernel.permissions.permission_service import (
    PROTECTED_STATUSES,
    Actor,
    PermissionService,
    can_delete_submission,
    can_modify_submission,
    can_view_submission,
    is_owner,
    require_admin,
)

__all__ = [
    "PROTECTED_STATUSES",
    "Actor",
    "PermissionService",
    "can_delete_submission",
    "can_modify_submission",
    "can_view_submission",
    "is_owner",
    "require_admin",
]
