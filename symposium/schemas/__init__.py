"""
Pydantic schemas for API request/response validation.
"""

from symposium.schemas.common import ErrorResponse, HealthResponse, MessageResponse
from symposium.schemas.auth import (
    ResendVerificationRequest,
    TokenResponse,
    UserCreate,
    UserLogin,
    UserResponse,
    VerifyEmailRequest,
)
from symposium.schemas.user import AdjustRoleRequest, ReplaceRolesRequest, RoleChangeRequest
from symposium.schemas.event import EventCreate, EventResponse
from symposium.schemas.submission import (
    DecisionNotificationRequest,
    DecisionNotificationResponse,
    DecisionRequest,
    EligibilityResponse,
    EventStatsResponse,
    StatusOverrideRequest,
    SubmissionDeleteResponse,
    SubmissionResponse,
    parse_keywords,
)
from symposium.schemas.review import (
    AssignmentCreate,
    AssignmentResponse,
    ReviewResponse,
    ReviewStatsResponse,
    ReviewSubmit,
    SubmissionReviewsResponse,
)

__all__ = [
    # Common
    "ErrorResponse",
    "HealthResponse",
    "MessageResponse",
    # Auth
    "UserCreate",
    "UserLogin",
    "UserResponse",
    "TokenResponse",
    "VerifyEmailRequest",
    "ResendVerificationRequest",
    # Users
    "ReplaceRolesRequest",
    "AdjustRoleRequest",
    "RoleChangeRequest",
    # Events
    "EventCreate",
    "EventResponse",
    # Submissions
    "SubmissionResponse",
    "SubmissionDeleteResponse",
    "StatusOverrideRequest",
    "DecisionRequest",
    "DecisionNotificationRequest",
    "DecisionNotificationResponse",
    "EligibilityResponse",
    "EventStatsResponse",
    "parse_keywords",
    # Reviews
    "ReviewSubmit",
    "ReviewResponse",
    "ReviewStatsResponse",
    "SubmissionReviewsResponse",
    "AssignmentCreate",
    "AssignmentResponse",
]
