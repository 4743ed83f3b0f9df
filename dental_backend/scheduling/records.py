"""Validated views of stored scheduling rows.

Rows are converted here, once, so the calculators below only ever see
minute-of-day integers that satisfy their invariants.
"""

from dataclasses import dataclass
from typing import Optional

from dental_backend.core.errors import MalformedAppointmentRecord
from dental_backend.scheduling.times import format_end_time, format_time, parse_end_time, parse_time


@dataclass(frozen=True)
class WorkingDay:
    provider_id: int
    day_of_week: int
    start: int
    end: int
    break_start: Optional[int] = None
    break_end: Optional[int] = None
    is_available: bool = True

    @property
    def has_break(self) -> bool:
        return self.break_start is not None and self.break_end is not None

    @classmethod
    def from_entry(cls, entry) -> 'WorkingDay':
        start = parse_time(entry.start_time)
        end = parse_end_time(entry.end_time)
        break_start = parse_time(entry.break_start_time) if entry.break_start_time else None
        break_end = parse_end_time(entry.break_end_time) if entry.break_end_time else None
        validate_working_hours(start, end, break_start, break_end)
        return cls(
            provider_id=entry.provider_id,
            day_of_week=entry.day_of_week,
            start=start,
            end=end,
            break_start=break_start,
            break_end=break_end,
            is_available=bool(entry.is_available),
        )


def validate_working_hours(
    start: int,
    end: int,
    break_start: Optional[int] = None,
    break_end: Optional[int] = None,
) -> None:
    if start >= end:
        raise ValueError('Working hours must start before they end.')

    if (break_start is None) != (break_end is None):
        raise ValueError('A break needs both a start and an end time.')

    if break_start is not None and not start <= break_start < break_end <= end:
        raise ValueError('The break must fall inside working hours and start before it ends.')


@dataclass(frozen=True)
class BookedWindow:
    """Time occupied by an active appointment or a time block."""

    start: int
    end: int
    source_id: Optional[int] = None

    @classmethod
    def from_appointment(cls, appointment) -> 'BookedWindow':
        if not appointment.start_time or not appointment.end_time:
            raise MalformedAppointmentRecord(appointment.id, 'missing start or end time')

        try:
            start = parse_time(appointment.start_time)
            end = parse_end_time(appointment.end_time)
        except ValueError as exc:
            raise MalformedAppointmentRecord(appointment.id, str(exc)) from exc

        if start >= end:
            raise MalformedAppointmentRecord(appointment.id, 'start time is not before end time')

        return cls(start=start, end=end, source_id=appointment.id)

    @classmethod
    def from_time_block(cls, block) -> 'BookedWindow':
        start = parse_time(block.start_time)
        end = parse_end_time(block.end_time)
        if start >= end:
            raise ValueError(f'Time block {block.id} starts after it ends.')
        return cls(start=start, end=end, source_id=block.id)


@dataclass(frozen=True)
class TimeSlot:
    start: int
    duration_minutes: int

    @property
    def end(self) -> int:
        return self.start + self.duration_minutes

    @property
    def start_time(self) -> str:
        return format_time(self.start)

    @property
    def end_time(self) -> str:
        return format_end_time(self.end)
