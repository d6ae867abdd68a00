from __future__ import annotations

import math

from bloodslot.clinic_calendar import CLOSE_HOUR, OPEN_HOUR, validate_clock

SLOT_INTERVAL_MINUTES = 20

MORNING = "صباحًا"
AFTERNOON = "مساءً"


def format_slot(hour: int, minute: int) -> str:
    period = MORNING if hour < 12 else AFTERNOON
    display_hour = hour - 12 if hour > 12 else hour
    if display_hour == 0:
        display_hour = 12
    return f"{display_hour}:{minute:02d} {period}"


def generate_slots(now_hour: int, now_minute: int) -> tuple[str, ...]:
    """Bookable slot labels for the rest of the clinic day.

    The first slot is the next 20-minute boundary at or after ``now`` (clamped
    to opening time). An empty tuple means nothing is left today, which
    includes rounding up into closing time.
    """
    validate_clock(now_hour, now_minute)

    if now_hour < OPEN_HOUR:
        # Before opening the day starts at the opening hour sharp.
        start_hour, first_minute = OPEN_HOUR, 0
    else:
        start_hour = now_hour
        first_minute = math.ceil(now_minute / SLOT_INTERVAL_MINUTES) * SLOT_INTERVAL_MINUTES
        if first_minute >= 60:
            first_minute = 0
            start_hour += 1

    slots: list[str] = []
    for hour in range(start_hour, CLOSE_HOUR):
        start_minute = first_minute if hour == start_hour else 0
        for minute in range(start_minute, 60, SLOT_INTERVAL_MINUTES):
            slots.append(format_slot(hour, minute))
    return tuple(slots)
