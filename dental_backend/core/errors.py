"""Failure conditions raised by the scheduling code.

Routers translate these into HTTP responses; nothing in here knows about HTTP.
"""


class SchedulingError(Exception):
    """Base class for every scheduling failure."""


class ScheduleNotFound(SchedulingError):
    """No usable schedule entry exists for a provider on a weekday.

    The availability calculator treats this as zero availability and never
    lets it escape; it is raised only by lookups that need an entry to exist.
    """


class MalformedAppointmentRecord(SchedulingError):
    """A stored appointment is missing or has unreadable time fields."""

    def __init__(self, appointment_id, reason: str):
        super().__init__(f'Appointment {appointment_id} is malformed: {reason}')
        self.appointment_id = appointment_id
        self.reason = reason


class SlotUnavailable(SchedulingError):
    """The requested time overlaps an active appointment or a blocked period."""

    user_message = 'This time is no longer available. Please pick another time.'


class DatabaseUnavailable(SchedulingError):
    """The database call behind a scheduling operation failed."""

    user_message = 'Database unavailable. Please try again in a moment.'


class RecordNotFound(SchedulingError):
    """A provider, service or appointment id did not match any row."""


class AppointmentNotFound(RecordNotFound):
    pass


class ProviderNotFound(RecordNotFound):
    pass


class ServiceNotFound(RecordNotFound):
    pass


class RescheduleLimitReached(SchedulingError):
    def __init__(self, max_reschedules: int):
        super().__init__(
            f'This appointment has already been rescheduled the maximum of {max_reschedules} times.'
        )
        self.max_reschedules = max_reschedules


class InvalidStatusTransition(SchedulingError):
    def __init__(self, current: str, requested: str, message: str | None = None):
        super().__init__(message or f'Cannot change appointment status from {current} to {requested}.')
        self.current = current
        self.requested = requested
