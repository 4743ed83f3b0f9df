"""Wall-clock helpers for ``HH:MM`` time strings.

Every comparison in scheduling happens on minute-of-day integers in the
clinic's local time; no timezone conversion is performed.
"""

import re
from datetime import date

MINUTES_PER_DAY = 24 * 60

_TIME_PATTERN = re.compile(r'^([01]\d|2[0-3]):([0-5]\d)$')


def parse_time(value: str) -> int:
    """Return minutes since midnight for a zero-padded 24-hour ``HH:MM`` string."""
    if not isinstance(value, str):
        raise ValueError(f'Time must be a string in HH:MM format, got {value!r}.')

    match = _TIME_PATTERN.match(value)
    if match is None:
        raise ValueError(f'Time must be in zero-padded HH:MM format, got {value!r}.')

    return int(match.group(1)) * 60 + int(match.group(2))


def format_time(minutes: int) -> str:
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f'{minutes} is not a minute of the day.')
    return f'{minutes // 60:02d}:{minutes % 60:02d}'


def format_end_time(minutes: int) -> str:
    # An appointment may run until midnight exactly.
    if minutes == MINUTES_PER_DAY:
        return '24:00'
    return format_time(minutes)


def parse_end_time(value: str) -> int:
    if value == '24:00':
        return MINUTES_PER_DAY
    return parse_time(value)


def day_of_week(day: date) -> int:
    """Weekday number with Sunday as 0 and Saturday as 6."""
    return day.isoweekday() % 7


def intervals_overlap(start: int, end: int, other_start: int, other_end: int) -> bool:
    return start < other_end and end > other_start
