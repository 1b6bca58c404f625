"""
Authentication endpoints.
"""

from fastapi import APIRouter, HTTPException, status

from symposium.api.deps import CurrentUser, DbSession, NotifierDep
from symposium.kernel.identity.identity_service import IdentityService
from symposium.logging_config import get_logger
from symposium.schemas.auth import (
    ResendVerificationRequest,
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
    VerifyEmailRequest,
)
from symposium.schemas.common import MessageResponse
from symposium.services.notifier import NotificationKind

logger = get_logger(__name__)

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(
    data: UserCreate,
    db: DbSession,
    notifier: NotifierDep,
):
    """
    Register a new user account.

    The account must verify its email before it can log in.
    """
    identity_service = IdentityService(db)
    user = await identity_service.register_user(
        email=data.email,
        password=data.password,
        first_name=data.first_name,
        last_name=data.last_name,
        affiliation=data.affiliation,
    )
    await db.commit()

    try:
        await notifier.notify(
            NotificationKind.EMAIL_VERIFICATION,
            user.email,
            {"name": user.full_name, "token": user.email_verification_token},
        )
    except Exception:
        # Registration stands; the user can ask for the email again
        logger.warning(
            "Failed to send verification email",
            extra={"user_id": str(user.id)},
            exc_info=True,
        )

    return UserResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    data: UserLogin,
    db: DbSession,
):
    """Authenticate user and return an access token."""
    identity_service = IdentityService(db)

    result = await identity_service.authenticate(
        email=data.email,
        password=data.password,
        role=data.role,
    )

    if not result:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    user, token = result

    return TokenResponse(
        access_token=token.access_token,
        token_type=token.token_type,
        expires_in=token.expires_in,
        user=UserResponse.model_validate(user),
    )


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(user: CurrentUser):
    """Get current user's profile."""
    return UserResponse.model_validate(user)


@router.post("/verify-email", response_model=MessageResponse)
async def verify_email(
    data: VerifyEmailRequest,
    db: DbSession,
):
    identity_service = IdentityService(db)
    await identity_service.verify_email(data.token)
    return MessageResponse(message="Email verified successfully. You can now log in.")


@router.post("/resend-verification", response_model=MessageResponse)
async def resend_verification(
    data: ResendVerificationRequest,
    db: DbSession,
    notifier: NotifierDep,
):
    """
    Send the verification email again.

    Unknown addresses get the same answer as known ones.
    """
    identity_service = IdentityService(db)
    result = await identity_service.resend_verification(data.email)
    if result is None:
        return MessageResponse(message="If the email exists, a verification email has been sent.")

    user, token = result
    await db.commit()
    # Here the email is the whole point, so a transport failure is reported
    await notifier.notify(
        NotificationKind.EMAIL_VERIFICATION,
        user.email,
        {"name": user.full_name, "token": token},
    )
    return MessageResponse(message="Verification email sent.")
