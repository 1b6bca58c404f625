"""
Persistence stores for submissions, reviewer assignments and reviews.
"""

from symposium.kernel.stores.submission_repository import SubmissionRepository, UPDATABLE_FIELDS
from symposium.kernel.stores.assignment_ledger import AssignmentLedger
from symposium.kernel.stores.event_repository import EventRepository
from symposium.kernel.stores.review_store import ReviewStats, ReviewStore, compute_overall_score

__all__ = [
    "SubmissionRepository",
    "UPDATABLE_FIELDS",
    "AssignmentLedger",
    "EventRepository",
    "ReviewStore",
    "ReviewStats",
    "compute_overall_score",
]
