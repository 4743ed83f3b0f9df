from datetime import date

import pytest

from dental_backend.scheduling.times import (
    day_of_week,
    format_end_time,
    format_time,
    intervals_overlap,
    parse_end_time,
    parse_time,
)


def test_parse_time_returns_minutes_since_midnight() -> None:
    assert parse_time('00:00') == 0
    assert parse_time('09:30') == 570
    assert parse_time('23:59') == 1439


@pytest.mark.parametrize('value', ['9:00', '24:00', '12:60', '09:00:00', '', ' 09:00'])
def test_parse_time_rejects_malformed_values(value) -> None:
    with pytest.raises(ValueError):
        parse_time(value)


def test_parse_time_rejects_non_strings() -> None:
    with pytest.raises(ValueError):
        parse_time(None)


def test_format_time_zero_pads_hours_and_minutes() -> None:
    assert format_time(545) == '09:05'
    assert format_time(0) == '00:00'


def test_end_times_may_be_midnight() -> None:
    assert parse_end_time('24:00') == 1440
    assert format_end_time(1440) == '24:00'
    assert format_end_time(1020) == '17:00'

    with pytest.raises(ValueError):
        format_time(1440)


def test_day_of_week_counts_from_sunday() -> None:
    assert day_of_week(date(2026, 1, 4)) == 0
    assert day_of_week(date(2026, 1, 5)) == 1
    assert day_of_week(date(2026, 1, 10)) == 6


def test_intervals_overlap_is_half_open() -> None:
    assert intervals_overlap(600, 660, 630, 690)
    assert intervals_overlap(600, 720, 630, 660)
    assert not intervals_overlap(600, 660, 660, 720)
    assert not intervals_overlap(660, 720, 600, 660)
