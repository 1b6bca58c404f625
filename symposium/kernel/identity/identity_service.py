"""
Identity service for user management operations.
"""

import uuid
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from symposium.kernel.audit import AuditStore
from symposium.kernel.errors import Conflict, Forbidden, InvalidInput, NotFound
from symposium.kernel.identity.jwt import AccessToken, JWTManager
from symposium.kernel.identity.password import generate_token, hash_password, verify_password
from symposium.kernel.identity.roles import RoleChange, apply_role_change
from symposium.kernel.models.audit_log import AuditAction
from symposium.kernel.models.base import ensure_utc, utcnow
from symposium.kernel.models.user import User, UserRole
from symposium.logging_config import get_logger

logger = get_logger(__name__)

RESEND_VERIFICATION_TTL = timedelta(hours=24)


class IdentityService:
    """
    Service for user identity operations.

    Handles registration, authentication, email verification and role
    management. The caller owns the transaction.
    """

    def __init__(self, session: AsyncSession, jwt_manager: Optional[JWTManager] = None):
        self.session = session
        self.jwt_manager = jwt_manager or JWTManager()
        self.audit = AuditStore(session)

    async def register_user(
        self,
        email: str,
        password: str,
        first_name: str,
        last_name: str,
        affiliation: Optional[str] = None,
    ) -> User:
        """
        Register a new user with the default ``user`` role.

        The account starts unverified with a fresh verification token.

        Raises:
            Conflict: If email already exists
        """
        existing = await self.get_user_by_email(email)
        if existing:
            raise Conflict("Email already registered")

        user = User(
            email=email.lower().strip(),
            password_hash=hash_password(password),
            first_name=first_name.strip(),
            last_name=last_name.strip(),
            affiliation=affiliation,
            roles=[UserRole.USER.value],
            email_verification_token=generate_token(),
        )
        self.session.add(user)
        await self.session.flush()

        await self.audit.log(
            action=AuditAction.USER_REGISTERED,
            entity_type="user",
            entity_id=user.id,
            actor_id=user.id,
            payload={"email": user.email},
        )
        return user

    async def authenticate(
        self,
        email: str,
        password: str,
        role: Optional[UserRole] = None,
    ) -> Optional[tuple[User, AccessToken]]:
        """
        Check credentials and issue an access token.

        Args:
            email: User's email
            password: Plain text password
            role: If given, the user must hold this role

        Returns:
            Tuple of (User, AccessToken), or None for bad credentials

        Raises:
            Forbidden: email not verified, or the requested role is not held
        """
        user = await self.get_user_by_email(email)
        if not user or not user.is_active:
            return None

        if not verify_password(password, user.password_hash):
            return None

        if not user.is_email_verified:
            raise Forbidden("Please verify your email before logging in")

        if role is not None and not user.has_role(role):
            raise Forbidden(f"You do not have {role.value} access")

        token = self.jwt_manager.create_access_token(
            user_id=user.id,
            email=user.email,
            roles=list(user.roles),
        )
        return user, token

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        query = select(User).where(User.id == user_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        query = select(User).where(User.email == email.lower().strip())
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def verify_email(self, token: str, now: Optional[datetime] = None) -> User:
        """
        Mark the account holding token as verified.

        A token issued by resend_verification lives in the password reset
        field and is honoured until it expires.

        Raises:
            InvalidInput: unknown or expired token
            Conflict: email already verified
        """
        now = now or utcnow()
        query = select(User).where(
            or_(
                User.email_verification_token == token,
                User.password_reset_token == token,
            )
        )
        result = await self.session.execute(query)
        user = result.scalars().first()
        if user is None:
            raise InvalidInput("Invalid or expired verification token")

        if user.email_verification_token != token:
            expires = ensure_utc(user.password_reset_expires)
            if expires is None or expires < now:
                raise InvalidInput("Invalid or expired verification token")

        if user.is_email_verified:
            raise Conflict("Email is already verified")

        user.is_email_verified = True
        user.email_verification_token = None
        user.password_reset_token = None
        user.password_reset_expires = None
        await self.session.flush()

        await self.audit.log(
            action=AuditAction.USER_EMAIL_VERIFIED,
            entity_type="user",
            entity_id=user.id,
            actor_id=user.id,
        )
        return user

    async def resend_verification(
        self,
        email: str,
        now: Optional[datetime] = None,
    ) -> Optional[tuple[User, str]]:
        """
        Produce the token to put in a fresh verification email.

        Reuses the outstanding verification token; when there is none, a new
        token is stored in the password reset field with a 24 hour expiry.

        Returns:
            (user, token), or None when no account has this email

        Raises:
            Conflict: email already verified
        """
        user = await self.get_user_by_email(email)
        if user is None:
            return None

        if user.is_email_verified:
            raise Conflict("Email is already verified")

        token = user.email_verification_token
        if not token:
            token = generate_token()
            user.password_reset_token = token
            user.password_reset_expires = (now or utcnow()) + RESEND_VERIFICATION_TTL
            await self.session.flush()

        return user, token

    async def change_roles(
        self,
        user_id: uuid.UUID,
        change: RoleChange,
        changed_by: uuid.UUID,
    ) -> User:
        """
        Apply an administrator's role change.

        Raises:
            NotFound: no such user
            InvalidInput: unknown role or empty result
        """
        user = await self.get_user_by_id(user_id)
        if user is None:
            raise NotFound("User not found")

        previous = list(user.roles or [])
        user.roles = apply_role_change(previous, change)
        await self.session.flush()

        await self.audit.log(
            action=AuditAction.USER_ROLES_CHANGED,
            entity_type="user",
            entity_id=user.id,
            actor_id=changed_by,
            payload={"previous_roles": previous, "new_roles": user.roles},
        )
        logger.info(
            "User roles changed",
            extra={"user_id": str(user.id), "roles": user.roles, "changed_by": str(changed_by)},
        )
        return user
