from datetime import date, datetime, timedelta


def weekday_index(day: date) -> int:
    """Day of week with Sunday as 0, the numbering used by schedule entries."""
    return (day.weekday() + 1) % 7


def wall_clock(dt: datetime) -> datetime:
    """Keep the caller's local wall-clock time, dropping any offset."""
    return dt.replace(tzinfo=None)


def month_bounds(day: date) -> tuple[date, date]:
    first = day.replace(day=1)
    if first.month == 12:
        following = first.replace(year=first.year + 1, month=1)
    else:
        following = first.replace(month=first.month + 1)
    return first, following - timedelta(days=1)


def overlaps(start_a: datetime, end_a: datetime, start_b: datetime, end_b: datetime) -> bool:
    # touching endpoints are not an overlap
    return start_a < end_b and end_a > start_b


def step_slots(start: datetime, end: datetime, slot_minutes: int) -> list[tuple[datetime, datetime]]:
    if slot_minutes <= 0:
        raise ValueError("slot_minutes must be positive")
    step = timedelta(minutes=slot_minutes)
    result = []
    cur = start
    while cur + step <= end:
        result.append((cur, cur + step))
        cur += step
    return result
