"""
User model for identity management.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import List, Optional

from sqlalchemy import Boolean, DateTime, JSON, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from symposium.kernel.models.base import Base, TimestampMixin, generate_uuid


class UserRole(str, Enum):
    """Roles a user may hold; a user holds one or more."""
    USER = "user"
    REVIEWER = "reviewer"
    ADMIN = "admin"


class User(Base, TimestampMixin):
    """User account model."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        index=True,
        nullable=False,
    )
    password_hash: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    first_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    last_name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    affiliation: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    roles: Mapped[List[str]] = mapped_column(
        JSON,
        default=lambda: [UserRole.USER.value],
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )

    # Email verification
    is_email_verified: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    email_verification_token: Mapped[Optional[str]] = mapped_column(
        String(128),
        nullable=True,
        index=True,
    )
    # Also carries resent verification tokens, see IdentityService.resend_verification
    password_reset_token: Mapped[Optional[str]] = mapped_column(
        String(128),
        nullable=True,
    )
    password_reset_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def has_role(self, role: UserRole) -> bool:
        return role.value in (self.roles or [])

    def __repr__(self) -> str:
        return f"<User {self.email}>"
