"""Shift and time-off evaluation in the doctor's own timezone.

Both checks return booleans; "not working" is a normal answer, never an error.
"""
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo
from app.core.timezones import day_of_week


@dataclass(frozen=True)
class ShiftWindow:
    day_of_week: int  # 0=Sun..6=Sat
    start: time
    end: time
    enabled: bool = True

    @property
    def overnight(self) -> bool:
        return self.end < self.start

    def bounds_on(self, local_day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
        """Absolute [start, end] of this shift when worked on `local_day`."""
        start = datetime.combine(local_day, self.start, tzinfo=tz)
        end_day = local_day + timedelta(days=1) if self.overnight else local_day
        end = datetime.combine(end_day, self.end, tzinfo=tz)
        return start.astimezone(timezone.utc), end.astimezone(timezone.utc)


@dataclass(frozen=True)
class TimeOffWindow:
    start: datetime
    end: datetime

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return start < self.end and end > self.start

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


@dataclass(frozen=True)
class DoctorSchedule:
    doctor_id: uuid.UUID
    timezone: str
    shifts: tuple[ShiftWindow, ...] = ()
    time_offs: tuple[TimeOffWindow, ...] = ()
    is_online: bool = False
    tz: ZoneInfo = field(init=False, repr=False, compare=False)

    def __post_init__(self):
        object.__setattr__(self, "tz", ZoneInfo(self.timezone))

    def shifts_on(self, dow: int) -> list[ShiftWindow]:
        return [s for s in self.shifts if s.enabled and s.day_of_week == dow]


def covers_instant(schedule: DoctorSchedule, instant: datetime) -> bool:
    """Point check: is `instant` inside a shift declared for its local weekday."""
    local = instant.astimezone(schedule.tz)
    clock = local.time().replace(tzinfo=None)
    for shift in schedule.shifts_on(day_of_week(local.date())):
        if shift.overnight:
            # end rolls to the next day, so the rest of this day is covered
            if clock >= shift.start:
                return True
        elif shift.start <= clock <= shift.end:
            return True
    return False


def on_time_off(schedule: DoctorSchedule, instant: datetime) -> bool:
    return any(t.contains(instant) for t in schedule.time_offs)


def covers_interval(schedule: DoctorSchedule, start: datetime, end: datetime) -> bool:
    """Interval check anchored on the weekday of `start` in the doctor's zone."""
    local_start = start.astimezone(schedule.tz)
    local_day = local_start.date()
    for shift in schedule.shifts_on(day_of_week(local_day)):
        shift_start, shift_end = shift.bounds_on(local_day, schedule.tz)
        if shift_start <= start and end <= shift_end:
            return True
    return False


def overlaps_time_off(schedule: DoctorSchedule, start: datetime, end: datetime) -> bool:
    return any(t.overlaps(start, end) for t in schedule.time_offs)


def is_working(schedule: DoctorSchedule, start: datetime, end: datetime) -> bool:
    return covers_interval(schedule, start, end) and not overlaps_time_off(schedule, start, end)


def shift_windows_between(schedule: DoctorSchedule, start: datetime, end: datetime) -> list[tuple[datetime, datetime]]:
    """Absolute shift windows, anchored on the local dates spanned by [start, end), clipped to it."""
    first = start.astimezone(schedule.tz).date()
    last = (end - timedelta(microseconds=1)).astimezone(schedule.tz).date()
    windows: list[tuple[datetime, datetime]] = []
    day = first
    while day <= last:
        for shift in schedule.shifts_on(day_of_week(day)):
            s, e = shift.bounds_on(day, schedule.tz)
            lo, hi = max(s, start), min(e, end)
            if lo < hi:
                windows.append((lo, hi))
        day += timedelta(days=1)
    return windows
