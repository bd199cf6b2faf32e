from dataclasses import dataclass
from datetime import date, timedelta
from zoneinfo import ZoneInfo
from app.core.timezones import local_day_bounds_utc
from app.modules.availability.working_hours import (
    DoctorSchedule, covers_instant, on_time_off, shift_windows_between,
)

DAY_END_SLACK = timedelta(microseconds=1)

@dataclass(frozen=True)
class DayAvailability:
    date: date
    label: str
    timezone: str
    is_available: bool

def day_label(d: date, today: date) -> str:
    if d == today:
        return "Today"
    if d == today + timedelta(days=1):
        return "Tomorrow"
    return d.strftime("%a")

def _open_at_boundary(schedule: DoctorSchedule, day_start, day_end) -> bool:
    for instant in (day_start, day_end):
        if covers_instant(schedule, instant) and not on_time_off(schedule, instant):
            return True
    return False

def _has_uncovered_shift(schedule: DoctorSchedule, day_start, next_midnight) -> bool:
    # a shift window inside the day that no single time-off swallows whole
    for lo, hi in shift_windows_between(schedule, day_start, next_midnight):
        if not any(t.start <= lo and hi <= t.end for t in schedule.time_offs):
            return True
    return False

def is_day_open(schedules: list[DoctorSchedule], d: date, tz: ZoneInfo) -> bool:
    day_start, next_midnight = local_day_bounds_utc(d, tz)
    day_end = next_midnight - DAY_END_SLACK
    for schedule in schedules:
        if _open_at_boundary(schedule, day_start, day_end):
            return True
    # boundaries missed; still open when a shift falls strictly inside the day
    return any(_has_uncovered_shift(s, day_start, next_midnight) for s in schedules)

def scan_days(schedules: list[DoctorSchedule], patient_tz: ZoneInfo, today: date, next_days: int) -> list[DayAvailability]:
    out = []
    for offset in range(next_days):
        d = today + timedelta(days=offset)
        out.append(DayAvailability(
            date=d,
            label=day_label(d, today),
            timezone=patient_tz.key,
            is_available=bool(schedules) and is_day_open(schedules, d, patient_tz),
        ))
    return out
