"""
Submission eligibility gate.
"""

from datetime import datetime

from symposium.kernel.models.base import ensure_utc
from symposium.kernel.models.event import Event


def submission_window_open(event: Event, now: datetime) -> bool:
    """
    True while the event accepts submissions.

    Both window bounds are inclusive; nothing is accepted after the event date.
    """
    now = ensure_utc(now)
    if now > ensure_utc(event.event_date):
        return False
    start = ensure_utc(event.submission_start_date)
    end = ensure_utc(event.submission_end_date)
    return start <= now <= end


def can_submit(event: Event, now: datetime, has_existing_submission: bool) -> bool:
    """A user may submit once per event, inside the submission window."""
    if has_existing_submission:
        return False
    return submission_window_open(event, now)
