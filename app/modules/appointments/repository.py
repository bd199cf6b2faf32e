import uuid
from datetime import datetime
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, func, and_
from app.modules.appointments.models import Appointment, ACTIVE_STATUSES

class AppointmentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> Appointment:
        obj = Appointment(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, appt_id: uuid.UUID) -> Appointment | None:
        return await self.session.get(Appointment, appt_id, populate_existing=True)

    async def active_for_task(self, task_id: uuid.UUID) -> Appointment | None:
        q = (
            select(Appointment)
            .where(and_(Appointment.task_id == task_id, Appointment.status.in_(ACTIVE_STATUSES)))
            .order_by(Appointment.created_at.desc(), Appointment.id.desc())
            .limit(1)
            .execution_options(populate_existing=True)
        )
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def category_window(self, category_id: uuid.UUID, start: datetime, end: datetime) -> list[tuple[uuid.UUID | None, datetime, datetime]]:
        """Active bookings of a category whose start falls in [start, end]."""
        q = select(Appointment.doctor_id, Appointment.start_at, Appointment.end_at).where(and_(
            Appointment.category_id == category_id,
            Appointment.status.in_(ACTIVE_STATUSES),
            Appointment.start_at >= start,
            Appointment.start_at <= end,
        ))
        res = await self.session.execute(q)
        return [(d, s, e) for d, s, e in res.all()]

    async def count_doctor_overlaps(self, doctor_id: uuid.UUID, start: datetime, end: datetime,
                                    exclude_id: uuid.UUID | None = None) -> int:
        cond = [
            Appointment.doctor_id == doctor_id,
            Appointment.status.in_(ACTIVE_STATUSES),
            Appointment.start_at < end,
            Appointment.end_at > start,
        ]
        if exclude_id is not None:
            cond.append(Appointment.id != exclude_id)
        res = await self.session.execute(select(func.count()).select_from(Appointment).where(and_(*cond)))
        return int(res.scalar_one())

    async def rebind(self, appt_id: uuid.UUID, doctor_id: uuid.UUID, start: datetime, end: datetime,
                     status: str = "scheduled") -> bool:
        """Move an active appointment to a new doctor/time; False if it is no longer active."""
        res = await self.session.execute(
            update(Appointment)
            .where(and_(Appointment.id == appt_id, Appointment.status.in_(ACTIVE_STATUSES)))
            .values(doctor_id=doctor_id, start_at=start, end_at=end, status=status)
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1
