"""
JWT access tokens for the identity provider.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from symposium.config import get_settings


class AccessTokenPayload(BaseModel):
    """Decoded access token claims."""

    sub: str  # User ID
    email: str
    roles: List[str]
    exp: datetime
    iat: datetime
    jti: str


class AccessToken(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int  # Seconds until expiry


class JWTManager:
    """
    JWT token creation and verification.

    Only short-lived access tokens are issued; there is no refresh flow.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        access_token_expire_minutes: Optional[int] = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.secret_key
        self.algorithm = algorithm or settings.algorithm
        self.access_token_expire_minutes = (
            access_token_expire_minutes or settings.access_token_expire_minutes
        )

    def create_access_token(
        self,
        user_id: uuid.UUID,
        email: str,
        roles: List[str],
        expires_delta: Optional[timedelta] = None,
    ) -> AccessToken:
        """
        Create a signed access token.

        Args:
            user_id: User's unique identifier
            email: User's email
            roles: Role names at the time of issue
            expires_delta: Optional custom expiration time
        """
        now = datetime.now(timezone.utc)
        lifetime = expires_delta or timedelta(minutes=self.access_token_expire_minutes)
        payload = {
            "sub": str(user_id),
            "email": email,
            "roles": list(roles),
            "exp": now + lifetime,
            "iat": now,
            "jti": str(uuid.uuid4()),
            "type": "access",
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        return AccessToken(access_token=token, expires_in=int(lifetime.total_seconds()))

    def verify_access_token(self, token: str) -> Optional[AccessTokenPayload]:
        """
        Verify and decode an access token.

        Returns:
            AccessTokenPayload if valid, None otherwise
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
            )
        except JWTError:
            return None

        if payload.get("type") != "access":
            return None

        return AccessTokenPayload(
            sub=payload["sub"],
            email=payload["email"],
            roles=payload.get("roles", []),
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            jti=payload["jti"],
        )


_jwt_manager: Optional[JWTManager] = None


def get_jwt_manager() -> JWTManager:
    """Get or create the default JWT manager."""
    global _jwt_manager
    if _jwt_manager is None:
        _jwt_manager = JWTManager()
    return _jwt_manager


def create_access_token(
    user_id: uuid.UUID,
    email: str,
    roles: List[str],
    expires_delta: Optional[timedelta] = None,
) -> AccessToken:
    return get_jwt_manager().create_access_token(user_id, email, roles, expires_delta)


def verify_access_token(token: str) -> Optional[AccessTokenPayload]:
    return get_jwt_manager().verify_access_token(token)
