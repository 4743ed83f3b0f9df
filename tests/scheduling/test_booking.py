from datetime import datetime

import pytest

from calendar_days import MONDAY, PAST_MONDAY, TUESDAY
from dental_backend.core.config import BookingConfig
from dental_backend.core.errors import (
    AppointmentNotFound,
    InvalidStatusTransition,
    ProviderNotFound,
    RescheduleLimitReached,
    ServiceNotFound,
    SlotUnavailable,
)
from dental_backend.models.appointment import Appointment
from dental_backend.scheduling.booking import (
    CONFIRMATION_CODE_ALPHABET,
    BookingRequest,
    book_appointment,
    cancel_appointment,
    ensure_future_start,
    generate_confirmation_code,
    reschedule_appointment,
    resolve_duration,
    transition_status,
)


def _request(provider_id, start_time='10:00', **overrides) -> BookingRequest:
    values = {
        'provider_id': provider_id,
        'appointment_date': MONDAY,
        'start_time': start_time,
        'patient_name': 'Priya Sharma',
        'patient_email': 'priya@example.com',
        'duration_minutes': 60,
    }
    values.update(overrides)
    return BookingRequest(**values)


def test_generate_confirmation_code_uses_uppercase_alphanumerics() -> None:
    code = generate_confirmation_code()

    assert len(code) == 8
    assert all(character in CONFIRMATION_CODE_ALPHABET for character in code)


def test_resolve_duration_prefers_explicit_minutes(db, cleaning_service) -> None:
    assert resolve_duration(db, cleaning_service.id, 45) == 45
    assert resolve_duration(db, cleaning_service.id, None) == 60


def test_resolve_duration_rejects_missing_inputs(db, cleaning_service) -> None:
    with pytest.raises(ValueError):
        resolve_duration(db, None, None)

    with pytest.raises(ValueError):
        resolve_duration(db, None, -15)

    with pytest.raises(ServiceNotFound):
        resolve_duration(db, cleaning_service.id + 100, None)


def test_book_appointment_creates_pending_record(db, provider, add_schedule) -> None:
    add_schedule(provider.id)

    appointment = book_appointment(db, _request(provider.id), config=BookingConfig(max_reschedules=3))

    assert appointment.id is not None
    assert appointment.status == 'pending'
    assert appointment.start_time == '10:00'
    assert appointment.end_time == '11:00'
    assert appointment.service_duration == 60
    assert appointment.reschedule_count == 0
    assert appointment.max_reschedules == 3
    assert len(appointment.confirmation_code) == 8


def test_book_appointment_uses_service_duration(db, provider, cleaning_service) -> None:
    appointment = book_appointment(
        db,
        _request(provider.id, start_time='14:00', duration_minutes=None, service_id=cleaning_service.id),
    )

    assert appointment.end_time == '15:00'
    assert appointment.service_id == cleaning_service.id


def test_overlapping_booking_is_rejected_without_a_write(db, provider, add_appointment) -> None:
    add_appointment(provider.id, start_time='10:00', end_time='11:00')

    with pytest.raises(SlotUnavailable):
        book_appointment(db, _request(provider.id, start_time='10:30'))

    assert db.query(Appointment).count() == 1


def test_booking_inside_a_time_block_is_rejected(db, provider, add_time_block) -> None:
    add_time_block(provider.id, '09:00', '12:00')

    with pytest.raises(SlotUnavailable):
        book_appointment(db, _request(provider.id, start_time='11:30'))


def test_back_to_back_booking_is_accepted(db, provider, add_appointment) -> None:
    add_appointment(provider.id, start_time='10:00', end_time='11:00')

    appointment = book_appointment(db, _request(provider.id, start_time='11:00'))

    assert appointment.start_time == '11:00'


def test_offered_slot_is_required_for_patient_bookings(db, provider, add_schedule) -> None:
    add_schedule(provider.id)

    with pytest.raises(SlotUnavailable):
        book_appointment(db, _request(provider.id, start_time='12:00'), require_offered_slot=True)

    with pytest.raises(SlotUnavailable):
        book_appointment(db, _request(provider.id, start_time='10:15'), require_offered_slot=True)

    assert db.query(Appointment).count() == 0


def test_booking_unknown_provider_fails(db) -> None:
    with pytest.raises(ProviderNotFound):
        book_appointment(db, _request(999))


def test_booking_past_midnight_fails(db, provider) -> None:
    with pytest.raises(ValueError):
        book_appointment(db, _request(provider.id, start_time='23:30'))


def test_new_appointments_must_be_active(db, provider) -> None:
    with pytest.raises(ValueError):
        book_appointment(db, _request(provider.id, status='completed'))


def test_reschedule_moves_appointment_and_records_history(db, provider, add_appointment) -> None:
    appointment = add_appointment(provider.id, start_time='10:00', end_time='11:00', status='confirmed')

    moved = reschedule_appointment(
        db,
        appointment.id,
        TUESDAY,
        '14:00',
        rescheduled_by='priya@example.com',
        rescheduled_by_role='patient',
        reason='Work conflict',
    )

    assert moved.id == appointment.id
    assert moved.status == 'confirmed'
    assert moved.appointment_date == TUESDAY
    assert moved.start_time == '14:00'
    assert moved.end_time == '15:00'
    assert moved.reschedule_count == 1

    history = moved.reschedule_history
    assert len(history) == 1
    assert history[0].from_date == MONDAY
    assert history[0].from_start_time == '10:00'
    assert history[0].to_start_time == '14:00'
    assert history[0].reason == 'Work conflict'
    assert history[0].rescheduled_by_role == 'patient'


def test_reschedule_within_own_window_is_allowed(db, provider, add_appointment) -> None:
    appointment = add_appointment(provider.id, start_time='10:00', end_time='11:00')

    moved = reschedule_appointment(db, appointment.id, MONDAY, '10:30', 'admin@smiledental.test', 'admin')

    assert moved.start_time == '10:30'


def test_reschedule_limit_blocks_further_moves(db, provider, add_appointment) -> None:
    appointment = add_appointment(provider.id, reschedule_count=2, max_reschedules=2)

    with pytest.raises(RescheduleLimitReached) as exc_info:
        reschedule_appointment(db, appointment.id, TUESDAY, '09:00', 'priya@example.com', 'patient')

    assert 'maximum of 2 times' in str(exc_info.value)

    stored = db.query(Appointment).filter(Appointment.id == appointment.id).one()
    assert stored.appointment_date == MONDAY
    assert stored.start_time == '10:00'
    assert stored.reschedule_count == 2
    assert stored.reschedule_history == []


def test_reschedule_into_conflict_leaves_appointment_untouched(db, provider, add_appointment) -> None:
    appointment = add_appointment(provider.id, start_time='10:00', end_time='11:00')
    add_appointment(provider.id, start_time='14:00', end_time='15:00', patient_email='other@example.com')

    with pytest.raises(SlotUnavailable):
        reschedule_appointment(db, appointment.id, MONDAY, '14:30', 'priya@example.com', 'patient')

    stored = db.query(Appointment).filter(Appointment.id == appointment.id).one()
    assert stored.start_time == '10:00'
    assert stored.reschedule_count == 0


def test_inactive_appointments_cannot_be_rescheduled(db, provider, add_appointment) -> None:
    appointment = add_appointment(provider.id, status='cancelled')

    with pytest.raises(InvalidStatusTransition):
        reschedule_appointment(db, appointment.id, TUESDAY, '09:00', 'priya@example.com', 'patient')


def test_reschedule_requires_known_role(db, provider, add_appointment) -> None:
    appointment = add_appointment(provider.id)

    with pytest.raises(ValueError):
        reschedule_appointment(db, appointment.id, TUESDAY, '09:00', 'someone', 'provider')


def test_reschedule_unknown_appointment(db) -> None:
    with pytest.raises(AppointmentNotFound):
        reschedule_appointment(db, 42, TUESDAY, '09:00', 'priya@example.com', 'patient')


@pytest.mark.parametrize(
    ('current', 'requested'),
    [
        ('pending', 'confirmed'),
        ('pending', 'no_show'),
        ('confirmed', 'completed'),
        ('confirmed', 'no_show'),
    ],
)
def test_allowed_status_transitions(db, provider, add_appointment, current, requested) -> None:
    appointment = add_appointment(provider.id, status=current)

    assert transition_status(db, appointment.id, requested).status == requested


@pytest.mark.parametrize(
    ('current', 'requested'),
    [
        ('pending', 'completed'),
        ('pending', 'pending'),
        ('confirmed', 'pending'),
        ('completed', 'cancelled'),
        ('cancelled', 'confirmed'),
        ('no_show', 'completed'),
    ],
)
def test_rejected_status_transitions(db, provider, add_appointment, current, requested) -> None:
    appointment = add_appointment(provider.id, status=current)

    with pytest.raises(InvalidStatusTransition):
        transition_status(db, appointment.id, requested)

    stored = db.query(Appointment).filter(Appointment.id == appointment.id).one()
    assert stored.status == current


def test_cancel_records_reason_and_frees_the_slot(db, provider, add_appointment) -> None:
    appointment = add_appointment(provider.id, start_time='10:00', end_time='11:00')

    cancelled = cancel_appointment(db, appointment.id, reason='Feeling better')

    assert cancelled.status == 'cancelled'
    assert cancelled.cancellation_reason == 'Feeling better'
    assert cancelled.cancelled_at is not None

    rebooked = book_appointment(db, _request(provider.id, start_time='10:00', patient_email='next@example.com'))
    assert rebooked.start_time == '10:00'


def test_ensure_future_start_compares_against_local_clock() -> None:
    now = datetime(2030, 1, 7, 10, 0)

    ensure_future_start(MONDAY, 10 * 60 + 30, now=now)
    ensure_future_start(TUESDAY, 9 * 60, now=now)

    with pytest.raises(ValueError, match='must be scheduled in the future'):
        ensure_future_start(MONDAY, 10 * 60, now=now)

    with pytest.raises(ValueError):
        ensure_future_start(MONDAY, 9 * 60 + 30, now=now)


def test_patient_booking_in_the_past_is_rejected(db, provider, add_schedule) -> None:
    add_schedule(provider.id)

    with pytest.raises(ValueError, match='must be scheduled in the future'):
        book_appointment(
            db,
            _request(provider.id, appointment_date=PAST_MONDAY),
            require_offered_slot=True,
        )

    assert db.query(Appointment).count() == 0


def test_patient_reschedule_into_the_past_is_rejected(db, provider, add_schedule, add_appointment) -> None:
    add_schedule(provider.id)
    appointment = add_appointment(provider.id)

    with pytest.raises(ValueError, match='must be scheduled in the future'):
        reschedule_appointment(
            db, appointment.id, PAST_MONDAY, '09:00', 'priya@example.com', 'patient', require_offered_slot=True,
        )

    stored = db.query(Appointment).filter(Appointment.id == appointment.id).one()
    assert stored.appointment_date == MONDAY
    assert stored.reschedule_count == 0


def test_unknown_status_is_rejected(db, provider, add_appointment) -> None:
    appointment = add_appointment(provider.id, status='pending')

    with pytest.raises(ValueError, match='Unknown appointment status'):
        transition_status(db, appointment.id, 'archived')


def test_status_change_can_record_admin_notes(db, provider, add_appointment) -> None:
    appointment = add_appointment(provider.id, status='pending')

    updated = transition_status(db, appointment.id, 'confirmed', admin_notes='Prefers morning calls')

    assert updated.admin_notes == 'Prefers morning calls'
