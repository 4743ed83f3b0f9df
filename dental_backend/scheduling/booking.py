"""Writes that create or move appointments and change their status.

Each operation re-checks conflicts inside the same transaction that
performs the write, after taking a row lock on the provider. On PostgreSQL
that lock serialises concurrent bookings for one provider; engines without
row locks fall back to plain check-then-write. Nothing here retries.
"""

import logging
import secrets
import string
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dental_backend.core.config import BookingConfig
from dental_backend.core.errors import (
    DatabaseUnavailable,
    InvalidStatusTransition,
    ProviderNotFound,
    RescheduleLimitReached,
    ServiceNotFound,
    SlotUnavailable,
)
from dental_backend.models.appointment import (
    ACTIVE_STATUSES,
    APPOINTMENT_STATUSES,
    Appointment,
    RescheduleHistoryEntry,
)
from dental_backend.models.provider import DentalService, Provider
from dental_backend.scheduling.availability import is_slot_offered
from dental_backend.scheduling.conflicts import find_conflict
from dental_backend.scheduling.repository import get_active_windows, get_appointment, get_blocked_windows
from dental_backend.scheduling.times import MINUTES_PER_DAY, format_end_time, parse_time

logger = logging.getLogger(__name__)

CONFIRMATION_CODE_LENGTH = 8
CONFIRMATION_CODE_ALPHABET = string.ascii_uppercase + string.digits

ALLOWED_TRANSITIONS = {
    'pending': {'confirmed', 'cancelled', 'no_show'},
    'confirmed': {'completed', 'cancelled', 'no_show'},
}


@dataclass
class BookingRequest:
    provider_id: int
    appointment_date: date
    start_time: str
    patient_name: str
    patient_email: str
    patient_phone: Optional[str] = None
    patient_id: Optional[str] = None
    service_id: Optional[int] = None
    duration_minutes: Optional[int] = None
    notes: Optional[str] = None
    status: str = 'pending'


def generate_confirmation_code() -> str:
    return ''.join(secrets.choice(CONFIRMATION_CODE_ALPHABET) for _ in range(CONFIRMATION_CODE_LENGTH))


def resolve_duration(db: Session, service_id: Optional[int], duration_minutes: Optional[int]) -> int:
    """Explicit duration wins; otherwise the booked service decides."""
    if duration_minutes is not None:
        if duration_minutes <= 0:
            raise ValueError('Duration must be a positive number of minutes.')
        return duration_minutes

    if service_id is None:
        raise ValueError('Either a service or a duration is required.')

    try:
        service = db.query(DentalService).filter(DentalService.id == service_id).first()
    except SQLAlchemyError as exc:
        raise DatabaseUnavailable(f'Could not load service {service_id}.') from exc

    if service is None or not service.is_active:
        raise ServiceNotFound(f'Service {service_id} not found.')
    return service.duration_minutes


def _lock_provider(db: Session, provider_id: int) -> Provider:
    provider = db.query(Provider).filter(Provider.id == provider_id).with_for_update().first()
    if provider is None or not provider.is_active:
        raise ProviderNotFound(f'Provider {provider_id} not found.')
    return provider


def _window_bounds(start_time: str, duration_minutes: int) -> tuple[int, int]:
    start = parse_time(start_time)
    end = start + duration_minutes
    if end > MINUTES_PER_DAY:
        raise ValueError('Appointments cannot run past midnight.')
    return start, end


def ensure_future_start(day: date, start: int, now: Optional[datetime] = None) -> None:
    """Reject a start that the clinic's local clock has already passed."""
    now = now or datetime.now()
    if datetime.combine(day, time.min) + timedelta(minutes=start) <= now:
        raise ValueError('Appointments must be scheduled in the future.')


def _ensure_window_free(
    db: Session,
    provider_id: int,
    day: date,
    start: int,
    end: int,
    exclude_appointment_id: Optional[int] = None,
) -> None:
    booked = get_active_windows(db, provider_id, day, exclude_appointment_id=exclude_appointment_id)
    if find_conflict(booked, start, end) is not None:
        raise SlotUnavailable(f'Provider {provider_id} is already booked at that time on {day.isoformat()}.')

    if find_conflict(get_blocked_windows(db, provider_id, day), start, end) is not None:
        raise SlotUnavailable(f'Provider {provider_id} is unavailable at that time on {day.isoformat()}.')


def book_appointment(
    db: Session,
    request: BookingRequest,
    config: Optional[BookingConfig] = None,
    require_offered_slot: bool = False,
) -> Appointment:
    """Insert a new appointment if its window is still free.

    With ``require_offered_slot`` the start must also lie in the future and
    be one of the slots the availability calculator offers (patient
    bookings); admins may book any free window.
    """
    config = config or BookingConfig()

    if request.status not in ACTIVE_STATUSES:
        raise ValueError('New appointments must be pending or confirmed.')

    duration_minutes = resolve_duration(db, request.service_id, request.duration_minutes)
    start, end = _window_bounds(request.start_time, duration_minutes)
    if require_offered_slot:
        ensure_future_start(request.appointment_date, start)

    try:
        if require_offered_slot and not is_slot_offered(
            db, request.provider_id, request.appointment_date, request.start_time, duration_minutes, config=config,
        ):
            raise SlotUnavailable(
                f'{request.start_time} is not an open slot on {request.appointment_date.isoformat()}.'
            )

        _lock_provider(db, request.provider_id)
        _ensure_window_free(db, request.provider_id, request.appointment_date, start, end)

        appointment = Appointment(
            confirmation_code=generate_confirmation_code(),
            patient_id=request.patient_id,
            patient_name=request.patient_name,
            patient_email=request.patient_email,
            patient_phone=request.patient_phone,
            provider_id=request.provider_id,
            service_id=request.service_id,
            service_duration=duration_minutes,
            appointment_date=request.appointment_date,
            start_time=request.start_time,
            end_time=format_end_time(end),
            status=request.status,
            notes=request.notes,
            reschedule_count=0,
            max_reschedules=config.max_reschedules,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Booking write failed for provider %s', request.provider_id)
        raise DatabaseUnavailable('Could not save the appointment.') from exc
    except Exception:
        db.rollback()
        raise

    logger.info(
        'Booked appointment %s (%s) with provider %s on %s at %s',
        appointment.id,
        appointment.confirmation_code,
        appointment.provider_id,
        appointment.appointment_date.isoformat(),
        appointment.start_time,
    )
    return appointment


def reschedule_appointment(
    db: Session,
    appointment_id: int,
    new_date: date,
    new_start_time: str,
    rescheduled_by: str,
    rescheduled_by_role: str,
    reason: Optional[str] = None,
    config: Optional[BookingConfig] = None,
    require_offered_slot: bool = False,
) -> Appointment:
    """Move an active appointment to a new date and start time.

    The record keeps its id and status. ``reschedule_count`` goes up by one
    and the move is appended to the reschedule history. An appointment that
    has reached its limit is rejected before anything is written.
    """
    config = config or BookingConfig()

    if rescheduled_by_role not in ('patient', 'admin'):
        raise ValueError('Reschedules are made by a patient or an admin.')

    try:
        appointment = get_appointment(db, appointment_id)

        if not appointment.is_active:
            raise InvalidStatusTransition(
                appointment.status,
                appointment.status,
                message=f'A {appointment.status} appointment cannot be rescheduled.',
            )

        max_reschedules = appointment.max_reschedules
        if max_reschedules is None:
            max_reschedules = config.max_reschedules
        if (appointment.reschedule_count or 0) >= max_reschedules:
            raise RescheduleLimitReached(max_reschedules)

        start, end = _window_bounds(new_start_time, appointment.service_duration)
        if require_offered_slot:
            ensure_future_start(new_date, start)

        if require_offered_slot and not is_slot_offered(
            db,
            appointment.provider_id,
            new_date,
            new_start_time,
            appointment.service_duration,
            config=config,
            exclude_appointment_id=appointment.id,
        ):
            raise SlotUnavailable(f'{new_start_time} is not an open slot on {new_date.isoformat()}.')

        _lock_provider(db, appointment.provider_id)
        _ensure_window_free(
            db,
            appointment.provider_id,
            new_date,
            start,
            end,
            exclude_appointment_id=appointment.id,
        )

        appointment.reschedule_history.append(
            RescheduleHistoryEntry(
                from_date=appointment.appointment_date,
                from_start_time=appointment.start_time,
                from_end_time=appointment.end_time,
                to_date=new_date,
                to_start_time=new_start_time,
                to_end_time=format_end_time(end),
                reason=reason,
                rescheduled_by=rescheduled_by,
                rescheduled_by_role=rescheduled_by_role,
                rescheduled_at=datetime.utcnow(),
            )
        )
        appointment.appointment_date = new_date
        appointment.start_time = new_start_time
        appointment.end_time = format_end_time(end)
        appointment.reschedule_count = (appointment.reschedule_count or 0) + 1

        db.commit()
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Reschedule write failed for appointment %s', appointment_id)
        raise DatabaseUnavailable('Could not reschedule the appointment.') from exc
    except Exception:
        db.rollback()
        raise

    logger.info(
        'Rescheduled appointment %s to %s at %s (%s of %s)',
        appointment.id,
        new_date.isoformat(),
        new_start_time,
        appointment.reschedule_count,
        appointment.max_reschedules,
    )
    return appointment


def transition_status(
    db: Session,
    appointment_id: int,
    new_status: str,
    reason: Optional[str] = None,
    admin_notes: Optional[str] = None,
) -> Appointment:
    if new_status not in APPOINTMENT_STATUSES:
        raise ValueError(f'Unknown appointment status {new_status!r}.')

    try:
        appointment = get_appointment(db, appointment_id)
        current = appointment.status

        if new_status not in ALLOWED_TRANSITIONS.get(current, set()):
            raise InvalidStatusTransition(current, new_status)

        appointment.status = new_status
        if admin_notes is not None:
            appointment.admin_notes = admin_notes
        if new_status == 'cancelled':
            appointment.cancelled_at = datetime.utcnow()
            appointment.cancellation_reason = reason

        db.commit()
        db.refresh(appointment)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Status update failed for appointment %s', appointment_id)
        raise DatabaseUnavailable('Could not update the appointment.') from exc
    except Exception:
        db.rollback()
        raise

    logger.info('Appointment %s moved from %s to %s', appointment.id, current, new_status)
    return appointment


def cancel_appointment(db: Session, appointment_id: int, reason: Optional[str] = None) -> Appointment:
    return transition_status(db, appointment_id, 'cancelled', reason=reason)
