from datetime import date
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from dental_backend.scheduling.records import BookedWindow
from dental_backend.scheduling.repository import get_active_windows
from dental_backend.scheduling.times import intervals_overlap


def find_conflict(windows: Iterable[BookedWindow], start: int, end: int) -> Optional[BookedWindow]:
    """First window that overlaps ``[start, end)``, or None."""
    for window in windows:
        if intervals_overlap(start, end, window.start, window.end):
            return window
    return None


def has_conflict(
    db: Session,
    provider_id: int,
    day: date,
    candidate_start: int,
    duration_minutes: int,
    exclude_appointment_id: Optional[int] = None,
) -> bool:
    """Whether a candidate booking overlaps any pending or confirmed appointment.

    Back-to-back bookings do not conflict: an appointment ending at 10:00
    leaves 10:00 free.
    """
    if duration_minutes <= 0:
        raise ValueError('Duration must be a positive number of minutes.')

    windows = get_active_windows(db, provider_id, day, exclude_appointment_id=exclude_appointment_id)
    return find_conflict(windows, candidate_start, candidate_start + duration_minutes) is not None
