from __future__ import annotations

import datetime as dt

import pytest

from bloodslot.clinic_calendar import ClinicCalendar
from bloodslot.domain import ClinicTime, ValidationError


def _fixed_clock(value: dt.datetime):
    return lambda: value


@pytest.mark.parametrize("hour", range(8, 16))
@pytest.mark.parametrize("minute", [0, 1, 30, 59])
def test_is_open_during_opening_hours(hour: int, minute: int) -> None:
    assert ClinicCalendar.is_open(hour, minute) is True


@pytest.mark.parametrize("hour", [0, 5, 7, 16, 17, 23])
def test_is_closed_outside_opening_hours(hour: int) -> None:
    assert ClinicCalendar.is_open(hour, 0) is False


def test_is_open_rejects_out_of_range_hour() -> None:
    with pytest.raises(ValidationError, match="Hour out of range"):
        ClinicCalendar.is_open(24, 0)


def test_current_clinic_time_adds_three_hours_to_utc() -> None:
    calendar = ClinicCalendar(clock=_fixed_clock(dt.datetime(2026, 10, 19, 6, 7, tzinfo=dt.timezone.utc)))
    assert calendar.current_clinic_time() == ClinicTime(hour=9, minute=7)


def test_current_clinic_time_ignores_caller_timezone() -> None:
    # 06:07 UTC expressed in UTC-5.
    local = dt.datetime(2026, 10, 19, 1, 7, tzinfo=dt.timezone(dt.timedelta(hours=-5)))
    calendar = ClinicCalendar(clock=_fixed_clock(local))
    assert calendar.current_clinic_time() == ClinicTime(hour=9, minute=7)


def test_current_clinic_time_wraps_past_midnight() -> None:
    calendar = ClinicCalendar(clock=_fixed_clock(dt.datetime(2026, 10, 19, 22, 30, tzinfo=dt.timezone.utc)))
    assert calendar.current_clinic_time() == ClinicTime(hour=1, minute=30)
    assert calendar.clinic_now().date() == dt.date(2026, 10, 20)


def test_naive_clock_is_rejected() -> None:
    calendar = ClinicCalendar(clock=_fixed_clock(dt.datetime(2026, 10, 19, 6, 7)))
    with pytest.raises(ValidationError, match="naive"):
        calendar.current_clinic_time()


def test_override_allows_booking_when_closed() -> None:
    assert ClinicCalendar(override_hours=False).allows_booking(17, 0) is False
    assert ClinicCalendar(override_hours=True).allows_booking(17, 0) is True


def test_clinic_time_str_pads_minutes() -> None:
    assert str(ClinicTime(hour=16, minute=5)) == "16:05"
