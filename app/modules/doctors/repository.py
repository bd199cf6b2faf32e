import uuid
import logging
from collections import defaultdict
from datetime import datetime
from zoneinfo import ZoneInfoNotFoundError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from app.modules.doctors.models import Doctor, BusinessHourShift, TimeOff
from app.modules.categories.models import CategoryDoctorAssignment
from app.modules.availability.working_hours import DoctorSchedule, ShiftWindow, TimeOffWindow

logger = logging.getLogger(__name__)

class ScheduleRepository:
    """Read-only access to the weekly shifts and upcoming time-off of a category's doctors."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def active_doctors_for_category(self, category_id: uuid.UUID) -> list[Doctor]:
        q = (
            select(Doctor)
            .join(CategoryDoctorAssignment, CategoryDoctorAssignment.doctor_id == Doctor.id)
            .where(and_(CategoryDoctorAssignment.category_id == category_id,
                        Doctor.status == "active"))
            .order_by(Doctor.created_at, Doctor.id)
        )
        res = await self.session.execute(q)
        return list(res.scalars().all())

    async def load_for_category(self, category_id: uuid.UUID, now: datetime) -> list[DoctorSchedule]:
        doctors = await self.active_doctors_for_category(category_id)
        if not doctors:
            return []
        ids = [d.id for d in doctors]

        shifts_res = await self.session.execute(
            select(BusinessHourShift).where(BusinessHourShift.doctor_id.in_(ids))
        )
        offs_res = await self.session.execute(
            select(TimeOff).where(and_(TimeOff.doctor_id.in_(ids), TimeOff.end_at >= now))
        )

        shifts_by_doctor: dict[uuid.UUID, list[ShiftWindow]] = defaultdict(list)
        for s in shifts_res.scalars().all():
            shifts_by_doctor[s.doctor_id].append(
                ShiftWindow(day_of_week=s.day_of_week, start=s.start_time, end=s.end_time, enabled=s.is_enabled)
            )
        offs_by_doctor: dict[uuid.UUID, list[TimeOffWindow]] = defaultdict(list)
        for t in offs_res.scalars().all():
            offs_by_doctor[t.doctor_id].append(TimeOffWindow(start=t.start_at, end=t.end_at))

        schedules: list[DoctorSchedule] = []
        for d in doctors:
            try:
                schedules.append(DoctorSchedule(
                    doctor_id=d.id,
                    timezone=d.timezone,
                    shifts=tuple(shifts_by_doctor.get(d.id, ())),
                    time_offs=tuple(offs_by_doctor.get(d.id, ())),
                    is_online=d.is_online,
                ))
            except (ZoneInfoNotFoundError, ValueError):
                logger.warning(f"Skipping doctor {d.id}: unknown timezone {d.timezone!r}")
        return schedules
