from __future__ import annotations

import datetime as dt
from typing import Callable

from bloodslot.domain import ClinicTime, ValidationError

# Fixed civil offset, no DST. Applied arithmetically so results never depend on
# the host's timezone database or local settings.
CLINIC_UTC_OFFSET = dt.timedelta(hours=3)
CLINIC_TZ = dt.timezone(CLINIC_UTC_OFFSET)

OPEN_HOUR = 8
CLOSE_HOUR = 16


def _utc_now() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def validate_clock(hour: int, minute: int) -> None:
    for name, value in (("Hour", hour), ("Minute", minute)):
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"{name} must be an integer, got {value!r}")
    if not 0 <= hour <= 23:
        raise ValidationError(f"Hour out of range: {hour!r}")
    if not 0 <= minute <= 59:
        raise ValidationError(f"Minute out of range: {minute!r}")


class ClinicCalendar:
    def __init__(self, *, override_hours: bool = False, clock: Callable[[], dt.datetime] = _utc_now) -> None:
        self.override_hours = override_hours
        self._clock = clock

    def clinic_now(self) -> dt.datetime:
        now = self._clock()
        if now.tzinfo is None or now.utcoffset() is None:
            raise ValidationError("Clock returned a naive datetime; an aware datetime is required")
        shifted = now.astimezone(dt.timezone.utc) + CLINIC_UTC_OFFSET
        return shifted.replace(tzinfo=CLINIC_TZ)

    def current_clinic_time(self) -> ClinicTime:
        now = self.clinic_now()
        return ClinicTime(hour=now.hour, minute=now.minute)

    @staticmethod
    def is_open(hour: int, minute: int) -> bool:
        validate_clock(hour, minute)
        return OPEN_HOUR <= hour < CLOSE_HOUR

    def allows_booking(self, hour: int, minute: int) -> bool:
        return self.is_open(hour, minute) or self.override_hours
