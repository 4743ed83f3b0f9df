"""Reads against the scheduling tables.

Every query failure surfaces as ``DatabaseUnavailable``.
"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dental_backend.core.errors import (
    AppointmentNotFound,
    DatabaseUnavailable,
    MalformedAppointmentRecord,
    ScheduleNotFound,
)
from dental_backend.models.appointment import ACTIVE_STATUSES, Appointment
from dental_backend.models.schedule import ScheduleEntry, TimeBlock
from dental_backend.scheduling.records import BookedWindow, WorkingDay
from dental_backend.scheduling.times import day_of_week

logger = logging.getLogger(__name__)


def get_working_day(db: Session, provider_id: int, day: date) -> Optional[WorkingDay]:
    """Return the provider's schedule for the weekday of ``day``, if one exists."""
    weekday = day_of_week(day)
    try:
        entry = db.query(ScheduleEntry).filter(
            ScheduleEntry.provider_id == provider_id,
            ScheduleEntry.day_of_week == weekday,
        ).first()
    except SQLAlchemyError as exc:
        raise DatabaseUnavailable(f'Could not load schedule for provider {provider_id}.') from exc

    if entry is None:
        return None

    try:
        return WorkingDay.from_entry(entry)
    except ValueError:
        logger.warning(
            'Ignoring invalid schedule entry %s for provider %s on weekday %s',
            entry.id, provider_id, weekday,
        )
        return None


def get_active_windows(
    db: Session,
    provider_id: int,
    day: date,
    exclude_appointment_id: Optional[int] = None,
) -> list[BookedWindow]:
    """Time windows held by pending or confirmed appointments on ``day``."""
    try:
        query = db.query(Appointment).filter(
            Appointment.provider_id == provider_id,
            Appointment.appointment_date == day,
            Appointment.status.in_(ACTIVE_STATUSES),
        )
        if exclude_appointment_id is not None:
            query = query.filter(Appointment.id != exclude_appointment_id)
        appointments = query.order_by(Appointment.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise DatabaseUnavailable(f'Could not load appointments for provider {provider_id}.') from exc

    windows: list[BookedWindow] = []
    for appointment in appointments:
        try:
            windows.append(BookedWindow.from_appointment(appointment))
        except MalformedAppointmentRecord as exc:
            logger.warning('Skipping appointment during conflict check: %s', exc)
    return windows


def get_blocked_windows(db: Session, provider_id: int, day: date) -> list[BookedWindow]:
    try:
        blocks = db.query(TimeBlock).filter(
            TimeBlock.provider_id == provider_id,
            TimeBlock.block_date == day,
        ).all()
    except SQLAlchemyError as exc:
        raise DatabaseUnavailable(f'Could not load time blocks for provider {provider_id}.') from exc

    windows: list[BookedWindow] = []
    for block in blocks:
        try:
            windows.append(BookedWindow.from_time_block(block))
        except ValueError:
            logger.warning('Skipping invalid time block %s for provider %s', block.id, provider_id)
    return windows


def get_appointment(db: Session, appointment_id: int) -> Appointment:
    try:
        appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    except SQLAlchemyError as exc:
        raise DatabaseUnavailable(f'Could not load appointment {appointment_id}.') from exc

    if appointment is None:
        raise AppointmentNotFound(f'Appointment {appointment_id} not found.')
    return appointment


def get_schedule_entry(db: Session, provider_id: int, weekday: int) -> ScheduleEntry:
    try:
        entry = db.query(ScheduleEntry).filter(
            ScheduleEntry.provider_id == provider_id,
            ScheduleEntry.day_of_week == weekday,
        ).first()
    except SQLAlchemyError as exc:
        raise DatabaseUnavailable(f'Could not load schedule for provider {provider_id}.') from exc

    if entry is None:
        raise ScheduleNotFound(f'Provider {provider_id} has no schedule for weekday {weekday}.')
    return entry
