"""Open appointment slots for a provider on a date.

Candidate starts step through the working day at a fixed increment (30
minutes by default) no matter how long the requested service is, so every
booking begins on the half hour. A candidate survives when the whole service
fits before closing, misses the break entirely, misses every admin time block
and overlaps no pending or confirmed appointment.

Results are computed fresh on each call.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.orm import Session

from dental_backend.core.config import BookingConfig
from dental_backend.scheduling.conflicts import find_conflict
from dental_backend.scheduling.records import TimeSlot
from dental_backend.scheduling.repository import get_active_windows, get_blocked_windows, get_working_day
from dental_backend.scheduling.times import intervals_overlap, parse_time

logger = logging.getLogger(__name__)


def get_available_slots(
    db: Session,
    provider_id: int,
    day: date,
    duration_minutes: int,
    config: Optional[BookingConfig] = None,
    exclude_appointment_id: Optional[int] = None,
) -> list[TimeSlot]:
    if duration_minutes <= 0:
        raise ValueError('Duration must be a positive number of minutes.')

    config = config or BookingConfig()

    working_day = get_working_day(db, provider_id, day)
    if working_day is None or not working_day.is_available:
        logger.debug('Provider %s has no hours on %s', provider_id, day.isoformat())
        return []

    booked = get_active_windows(db, provider_id, day, exclude_appointment_id=exclude_appointment_id)
    blocked = get_blocked_windows(db, provider_id, day)

    slots: list[TimeSlot] = []
    candidate_start = working_day.start
    while candidate_start + duration_minutes <= working_day.end:
        candidate_end = candidate_start + duration_minutes

        in_break = working_day.has_break and intervals_overlap(
            candidate_start, candidate_end, working_day.break_start, working_day.break_end,
        )
        if (
            not in_break
            and find_conflict(blocked, candidate_start, candidate_end) is None
            and find_conflict(booked, candidate_start, candidate_end) is None
        ):
            slots.append(TimeSlot(start=candidate_start, duration_minutes=duration_minutes))

        candidate_start += config.slot_increment_minutes

    return slots


def is_slot_offered(
    db: Session,
    provider_id: int,
    day: date,
    start_time: str,
    duration_minutes: int,
    config: Optional[BookingConfig] = None,
    exclude_appointment_id: Optional[int] = None,
) -> bool:
    start = parse_time(start_time)
    return any(
        slot.start == start
        for slot in get_available_slots(
            db,
            provider_id,
            day,
            duration_minutes,
            config=config,
            exclude_appointment_id=exclude_appointment_id,
        )
    )
