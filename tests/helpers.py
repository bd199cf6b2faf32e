from datetime import datetime, time, timezone

# Sunday; the booking day used across the suite is Monday 2025-03-10
FIXED_NOW = datetime(2025, 3, 9, 12, 0, tzinfo=timezone.utc)
SUNDAY, MONDAY, TUESDAY = 0, 1, 2


def fixed_clock():
    return FIXED_NOW


def hm(value: str) -> time:
    h, m = value.split(":")
    return time(int(h), int(m))


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)
