"""
API v1 routes.
"""

from fastapi import APIRouter

from symposium.api.v1 import auth, events, reviews, submissions, users

router = APIRouter()

router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
router.include_router(users.router, prefix="/users", tags=["Users"])
router.include_router(events.router, prefix="/events", tags=["Events"])
router.include_router(submissions.router, prefix="/submissions", tags=["Submissions"])
router.include_router(reviews.router, prefix="/reviews", tags=["Reviews"])
