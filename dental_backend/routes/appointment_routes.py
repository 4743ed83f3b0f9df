import logging
from datetime import date, datetime

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dental_backend.auth.dependencies import require_admin
from dental_backend.core.config import BookingConfig, get_booking_config
from dental_backend.core.errors import SchedulingError
from dental_backend.database import get_db
from dental_backend.models.appointment import Appointment
from dental_backend.models.user import User
from dental_backend.notifications import (
    APPOINTMENT_BOOKED,
    APPOINTMENT_CANCELLED,
    APPOINTMENT_RESCHEDULED,
    APPOINTMENT_STATUS_CHANGED,
    NotificationDispatcher,
    get_notification_dispatcher,
)
from dental_backend.routes.common import DATABASE_UNAVAILABLE_DETAIL, ensure_database_ready, to_http_exception
from dental_backend.scheduling.booking import (
    BookingRequest,
    book_appointment,
    cancel_appointment,
    reschedule_appointment,
    transition_status,
)
from dental_backend.scheduling.repository import get_appointment
from dental_backend.scheduling.times import parse_time

logger = logging.getLogger(__name__)

router = APIRouter(tags=['appointments'])

MAX_APPOINTMENT_NOTES_LENGTH = 600
MAX_REASON_LENGTH = 300
ADMIN_STATUS_CHANGES = {'confirmed', 'completed', 'no_show', 'cancelled'}


def _normalize_email(value: str) -> str:
    normalized = value.strip().lower()
    if not normalized or '@' not in normalized:
        raise ValueError('A valid patient email is required.')
    return normalized


def _normalize_start_time(value: str) -> str:
    normalized = value.strip()
    parse_time(normalized)
    return normalized


def _optional_text(value: str | None, limit: int, label: str) -> str | None:
    if value is None:
        return None

    normalized = value.strip()
    if not normalized:
        return None

    if len(normalized) > limit:
        raise ValueError(f'{label} must be {limit} characters or fewer.')

    return normalized


class CreateAppointmentRequest(BaseModel):
    provider_id: int
    appointment_date: date
    start_time: str
    patient_name: str
    patient_email: str
    patient_phone: str | None = None
    patient_id: str | None = None
    service_id: int | None = None
    duration_minutes: int | None = None
    notes: str | None = None

    @field_validator('patient_email')
    @classmethod
    def validate_patient_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator('patient_name')
    @classmethod
    def validate_patient_name(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('Patient name is required.')
        return normalized

    @field_validator('start_time')
    @classmethod
    def validate_start_time(cls, value: str) -> str:
        return _normalize_start_time(value)

    @field_validator('notes')
    @classmethod
    def validate_notes(cls, value: str | None) -> str | None:
        return _optional_text(value, MAX_APPOINTMENT_NOTES_LENGTH, 'Notes')


class RescheduleRequest(BaseModel):
    appointment_date: date
    start_time: str
    patient_email: str
    reason: str | None = None

    @field_validator('patient_email')
    @classmethod
    def validate_patient_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator('start_time')
    @classmethod
    def validate_start_time(cls, value: str) -> str:
        return _normalize_start_time(value)

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        return _optional_text(value, MAX_REASON_LENGTH, 'Reason')


class AdminRescheduleRequest(BaseModel):
    appointment_date: date
    start_time: str
    reason: str | None = None

    @field_validator('start_time')
    @classmethod
    def validate_start_time(cls, value: str) -> str:
        return _normalize_start_time(value)

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        return _optional_text(value, MAX_REASON_LENGTH, 'Reason')


class CancelAppointmentRequest(BaseModel):
    patient_email: str
    reason: str | None = None

    @field_validator('patient_email')
    @classmethod
    def validate_patient_email(cls, value: str) -> str:
        return _normalize_email(value)

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        return _optional_text(value, MAX_REASON_LENGTH, 'Reason')


class StatusChangeRequest(BaseModel):
    status: str
    reason: str | None = None
    admin_notes: str | None = None

    @field_validator('status')
    @classmethod
    def validate_status(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in ADMIN_STATUS_CHANGES:
            raise ValueError('Invalid appointment status.')
        return normalized

    @field_validator('reason')
    @classmethod
    def validate_reason(cls, value: str | None) -> str | None:
        return _optional_text(value, MAX_REASON_LENGTH, 'Reason')

    @field_validator('admin_notes')
    @classmethod
    def validate_admin_notes(cls, value: str | None) -> str | None:
        return _optional_text(value, MAX_APPOINTMENT_NOTES_LENGTH, 'Admin notes')


class RescheduleHistoryResponse(BaseModel):
    from_date: date
    from_start_time: str | None = None
    from_end_time: str | None = None
    to_date: date
    to_start_time: str
    to_end_time: str
    reason: str | None = None
    rescheduled_by: str
    rescheduled_by_role: str
    rescheduled_at: datetime

    class Config:
        from_attributes = True


class AppointmentResponse(BaseModel):
    id: int
    confirmation_code: str | None = None
    patient_name: str
    patient_email: str
    patient_phone: str | None = None
    provider_id: int
    service_id: int | None = None
    service_duration: int
    appointment_date: date
    start_time: str | None = None
    end_time: str | None = None
    status: str
    notes: str | None = None
    cancellation_reason: str | None = None
    reschedule_count: int
    max_reschedules: int
    reschedule_history: list[RescheduleHistoryResponse] = []

    class Config:
        from_attributes = True


class AdminAppointmentResponse(AppointmentResponse):
    admin_notes: str | None = None


def _load_owned_appointment(db: Session, appointment_id: int, patient_email: str) -> Appointment:
    appointment = get_appointment(db, appointment_id)
    if (appointment.patient_email or '').strip().lower() != patient_email:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail='Only the patient who booked this appointment can change it.',
        )
    return appointment


def _reschedule_details(appointment: Appointment) -> dict:
    last_move = appointment.reschedule_history[-1]
    return {
        'previous_date': last_move.from_date.isoformat(),
        'previous_start_time': last_move.from_start_time,
        'rescheduled_by_role': last_move.rescheduled_by_role,
        'reason': last_move.reason,
    }


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    db: Session = Depends(get_db),
    booking_config: BookingConfig = Depends(get_booking_config),
    notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    ensure_database_ready()

    try:
        appointment = book_appointment(
            db,
            BookingRequest(**data.model_dump()),
            config=booking_config,
            require_offered_slot=True,
        )
    except (SchedulingError, ValueError, SQLAlchemyError) as exc:
        raise to_http_exception(exc) from exc

    notifier.send(APPOINTMENT_BOOKED, appointment)
    return appointment


@router.post('/admin', response_model=AdminAppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment_as_admin(
    data: CreateAppointmentRequest,
    db: Session = Depends(get_db),
    booking_config: BookingConfig = Depends(get_booking_config),
    notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
    admin: User = Depends(require_admin),
):
    ensure_database_ready()

    try:
        appointment = book_appointment(
            db,
            BookingRequest(**data.model_dump(), status='confirmed'),
            config=booking_config,
        )
    except (SchedulingError, ValueError, SQLAlchemyError) as exc:
        raise to_http_exception(exc) from exc

    logger.info('Admin %s created appointment %s', admin.email, appointment.id)
    notifier.send(APPOINTMENT_BOOKED, appointment)
    return appointment


@router.get('', response_model=list[AppointmentResponse])
def list_my_appointments(
    patient_email: str = Query(...),
    db: Session = Depends(get_db),
):
    normalized_email = patient_email.strip().lower()
    if not normalized_email:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail='Patient email is required.',
        )

    ensure_database_ready()

    try:
        return db.query(Appointment).filter(
            Appointment.patient_email == normalized_email,
        ).order_by(Appointment.appointment_date.desc(), Appointment.start_time.desc()).all()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/admin', response_model=list[AdminAppointmentResponse])
def list_appointments_for_day(
    appointment_date: date = Query(...),
    provider_id: int | None = Query(default=None),
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    ensure_database_ready()

    try:
        query = db.query(Appointment).filter(Appointment.appointment_date == appointment_date)
        if provider_id is not None:
            query = query.filter(Appointment.provider_id == provider_id)
        return query.order_by(Appointment.start_time.asc()).all()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc


@router.get('/by-code/{confirmation_code}', response_model=AppointmentResponse)
def get_appointment_by_code(confirmation_code: str, db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        appointment = db.query(Appointment).filter(
            Appointment.confirmation_code == confirmation_code.strip().upper(),
        ).first()
    except SQLAlchemyError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=DATABASE_UNAVAILABLE_DETAIL,
        ) from exc

    if appointment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail='Appointment not found.')
    return appointment


@router.post('/{appointment_id}/reschedule', response_model=AppointmentResponse)
def reschedule_my_appointment(
    appointment_id: int,
    data: RescheduleRequest,
    db: Session = Depends(get_db),
    booking_config: BookingConfig = Depends(get_booking_config),
    notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    ensure_database_ready()

    try:
        _load_owned_appointment(db, appointment_id, data.patient_email)
        appointment = reschedule_appointment(
            db,
            appointment_id,
            data.appointment_date,
            data.start_time,
            rescheduled_by=data.patient_email,
            rescheduled_by_role='patient',
            reason=data.reason,
            config=booking_config,
            require_offered_slot=True,
        )
    except (SchedulingError, ValueError, SQLAlchemyError) as exc:
        raise to_http_exception(exc) from exc

    notifier.send(APPOINTMENT_RESCHEDULED, appointment, extra=_reschedule_details(appointment))
    return appointment


@router.post('/{appointment_id}/admin-reschedule', response_model=AdminAppointmentResponse)
def reschedule_appointment_as_admin(
    appointment_id: int,
    data: AdminRescheduleRequest,
    db: Session = Depends(get_db),
    booking_config: BookingConfig = Depends(get_booking_config),
    notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
    admin: User = Depends(require_admin),
):
    ensure_database_ready()

    try:
        appointment = reschedule_appointment(
            db,
            appointment_id,
            data.appointment_date,
            data.start_time,
            rescheduled_by=admin.email,
            rescheduled_by_role='admin',
            reason=data.reason,
            config=booking_config,
        )
    except (SchedulingError, ValueError, SQLAlchemyError) as exc:
        raise to_http_exception(exc) from exc

    notifier.send(APPOINTMENT_RESCHEDULED, appointment, extra=_reschedule_details(appointment))
    return appointment


@router.post('/{appointment_id}/cancel', response_model=AppointmentResponse)
def cancel_my_appointment(
    appointment_id: int,
    data: CancelAppointmentRequest,
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
):
    ensure_database_ready()

    try:
        _load_owned_appointment(db, appointment_id, data.patient_email)
        appointment = cancel_appointment(db, appointment_id, reason=data.reason)
    except (SchedulingError, ValueError, SQLAlchemyError) as exc:
        raise to_http_exception(exc) from exc

    notifier.send(APPOINTMENT_CANCELLED, appointment)
    return appointment


@router.post('/{appointment_id}/status', response_model=AdminAppointmentResponse)
def change_appointment_status(
    appointment_id: int,
    data: StatusChangeRequest,
    db: Session = Depends(get_db),
    notifier: NotificationDispatcher = Depends(get_notification_dispatcher),
    admin: User = Depends(require_admin),
):
    ensure_database_ready()

    try:
        appointment = transition_status(
            db, appointment_id, data.status, reason=data.reason, admin_notes=data.admin_notes,
        )
    except (SchedulingError, ValueError, SQLAlchemyError) as exc:
        raise to_http_exception(exc) from exc

    logger.info('Admin %s set appointment %s to %s', admin.email, appointment_id, data.status)
    event = APPOINTMENT_CANCELLED if data.status == 'cancelled' else APPOINTMENT_STATUS_CHANGED
    notifier.send(event, appointment)
    return appointment
