import uuid
from collections import defaultdict
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterable, Mapping, Sequence
from zoneinfo import ZoneInfo
from app.core.timezones import local_day_bounds_utc, to_iso
from app.modules.availability.working_hours import DoctorSchedule, is_working

@dataclass(frozen=True)
class Slot:
    start: datetime  # UTC
    end: datetime
    time: str  # HH:MM in the patient's zone

@dataclass(frozen=True)
class SlotAvailability:
    time: str
    start: str
    end: str
    is_available: bool

def generate_slots(day: date, duration_minutes: int, buffer_minutes: int, patient_tz: ZoneInfo,
                   now: datetime, lead: timedelta = timedelta(minutes=1)) -> list[Slot]:
    """Fixed-width slots over one patient-local day.

    Stepping runs on absolute time from local midnight, so DST days yield real instants.
    A slot has to finish before the day's last instant (23:59:59.999999 local).
    """
    if duration_minutes <= 0:
        raise ValueError("duration must be positive")
    length = timedelta(minutes=duration_minutes)
    step = timedelta(minutes=duration_minutes + buffer_minutes)
    day_start, next_midnight = local_day_bounds_utc(day, patient_tz)
    earliest = now + lead

    slots: list[Slot] = []
    cursor = day_start
    while cursor < next_midnight:
        end = cursor + length
        if end >= next_midnight:
            break
        if cursor >= earliest:
            slots.append(Slot(start=cursor, end=end, time=cursor.astimezone(patient_tz).strftime("%H:%M")))
        cursor += step
    return slots

def count_overlaps(intervals: Iterable[tuple[datetime, datetime]], start: datetime, end: datetime) -> int:
    return sum(1 for s, e in intervals if start < e and end > s)

def index_by_doctor(rows: Iterable[tuple[uuid.UUID | None, datetime, datetime]]) -> dict[uuid.UUID, list[tuple[datetime, datetime]]]:
    out: dict[uuid.UUID, list[tuple[datetime, datetime]]] = defaultdict(list)
    for doctor_id, start, end in rows:
        if doctor_id is not None:
            out[doctor_id].append((start, end))
    return out

def doctor_can_take(schedule: DoctorSchedule, start: datetime, end: datetime,
                    booked: Sequence[tuple[datetime, datetime]], concurrency: int) -> bool:
    return is_working(schedule, start, end) and count_overlaps(booked, start, end) < concurrency

def build_slot_matrix(slots: Sequence[Slot], schedules: Sequence[DoctorSchedule],
                      booked_by_doctor: Mapping[uuid.UUID, Sequence[tuple[datetime, datetime]]],
                      concurrency: int) -> list[SlotAvailability]:
    rows: list[tuple[str, datetime, SlotAvailability]] = []
    for slot in slots:
        available = any(
            doctor_can_take(s, slot.start, slot.end, booked_by_doctor.get(s.doctor_id, ()), concurrency)
            for s in schedules
        )
        rows.append((slot.time, slot.start, SlotAvailability(
            time=slot.time, start=to_iso(slot.start), end=to_iso(slot.end), is_available=available,
        )))
    rows.sort(key=lambda r: (r[0], r[1]))
    return [r[2] for r in rows]

def working_doctors(schedules: Sequence[DoctorSchedule], start: datetime, end: datetime) -> list[DoctorSchedule]:
    return [s for s in schedules if is_working(s, start, end)]
