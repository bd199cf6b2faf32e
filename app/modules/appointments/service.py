import uuid
import random
import logging
from datetime import datetime, timedelta
from typing import Callable
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from app.core.config import settings
from app.core.errors import (
    InvalidInputError, InvalidStateError, NotFoundError, NoEligibleDoctorError, SlotFullyBookedError,
)
from app.core.timezones import utc_now, parse_timezone, parse_instant
from app.platform.ports.slot_lock import SlotLockPort
from app.modules.appointments.models import Appointment, VALID_NEXT
from app.modules.appointments.repository import AppointmentRepository
from app.modules.appointments.allocation import (
    SlotAllocator, AllocationRequest, AllocationMode, AllocationResult, order_candidates,
)
from app.modules.availability.slots import working_doctors
from app.modules.availability.working_hours import DoctorSchedule
from app.modules.categories.models import Category
from app.modules.categories.repository import CategoryRepository
from app.modules.doctors.repository import ScheduleRepository
from app.modules.tasks.models import Task
from app.modules.tasks.repository import TaskRepository

logger = logging.getLogger(__name__)

BOOKABLE_TASK_STATUSES = ("pending",)
RESCHEDULABLE_TASK_STATUSES = ("scheduled", "pending")
CANCELLABLE_TASK_STATUSES = ("scheduled", "pending")

def transition(appt: Appointment, nxt: str) -> None:
    if nxt not in VALID_NEXT.get(appt.status, set()):
        raise InvalidStateError(f"Appointment cannot move from {appt.status} to {nxt}")
    appt.status = nxt

class AppointmentService:
    def __init__(self, session: AsyncSession, *, session_factory: async_sessionmaker[AsyncSession],
                 locks: SlotLockPort, now: Callable[[], datetime] = utc_now, rng: random.Random | None = None):
        self.session = session
        self.now = now
        self.rng = rng or random.Random()
        self.tasks = TaskRepository(session)
        self.appts = AppointmentRepository(session)
        self.categories = CategoryRepository(session)
        self.schedules = ScheduleRepository(session)
        self.allocator = SlotAllocator(session_factory, locks)

    async def _task(self, task_id: uuid.UUID, patient_id: uuid.UUID | None) -> Task:
        task = await self.tasks.get(task_id, patient_id)
        if not task:
            raise NotFoundError("Task not found")
        return task

    async def _category(self, category_id: uuid.UUID) -> Category:
        category = await self.categories.get(category_id)
        if not category or not category.is_active:
            raise NotFoundError("Category not found")
        return category

    def _window(self, slot_start: str | datetime, category: Category) -> tuple[datetime, datetime]:
        start = parse_instant(slot_start) if isinstance(slot_start, str) else slot_start
        if start.tzinfo is None:
            raise InvalidInputError("Slot start must carry a UTC offset")
        if start < self.now() + timedelta(minutes=settings.SLOT_LEAD_MINUTES):
            raise InvalidInputError("Slot start is in the past")
        return start, start + timedelta(minutes=category.duration_minutes)

    async def _working(self, category: Category, start: datetime, end: datetime) -> list[DoctorSchedule]:
        schedules = await self.schedules.load_for_category(category.id, self.now())
        if not schedules:
            raise NoEligibleDoctorError("No doctors available for this category")
        working = working_doctors(schedules, start, end)
        if not working:
            raise NoEligibleDoctorError("No doctors available for this time slot")
        return working

    async def _run(self, request: AllocationRequest, candidates: list[DoctorSchedule]) -> Appointment:
        # reads are done; do not hold this session's transaction while allocating
        await self.session.commit()
        result: AllocationResult = await self.allocator.allocate(request, candidates)
        if result.fully_booked:
            raise SlotFullyBookedError()
        appt = await self.appts.get(result.appointment_id)
        await self.session.commit()
        return appt

    async def book(self, task_id: uuid.UUID, slot_start: str | datetime, patient_tz: str,
                   patient_id: uuid.UUID | None = None) -> Appointment:
        parse_timezone(patient_tz)
        task = await self._task(task_id, patient_id)
        if task.status not in BOOKABLE_TASK_STATUSES:
            raise InvalidStateError(f"Task cannot be scheduled. Current status: {task.status}")
        category = await self._category(task.category_id)
        start, end = self._window(slot_start, category)
        working = await self._working(category, start, end)

        request = AllocationRequest(
            task_id=task.id, patient_id=task.patient_id, category_id=category.id,
            start=start, end=end, concurrency=category.concurrency, mode=AllocationMode.CREATE,
        )
        appt = await self._run(request, order_candidates(working, self.rng))
        logger.info(f"Booked task {task_id} with doctor {appt.doctor_id} at {start.isoformat()}")
        return appt

    async def reschedule(self, task_id: uuid.UUID, slot_start: str | datetime, patient_tz: str,
                         patient_id: uuid.UUID | None = None) -> Appointment:
        parse_timezone(patient_tz)
        task = await self._task(task_id, patient_id)
        if task.status not in RESCHEDULABLE_TASK_STATUSES:
            raise InvalidStateError(f"Appointment cannot be rescheduled. Current status: {task.status}")
        current = await self.appts.active_for_task(task.id)
        if not current:
            raise NotFoundError("No active appointment found for this task")
        category = await self._category(task.category_id)
        start, end = self._window(slot_start, category)
        working = await self._working(category, start, end)

        request = AllocationRequest(
            task_id=task.id, patient_id=task.patient_id, category_id=category.id,
            start=start, end=end, concurrency=category.concurrency,
            mode=AllocationMode.REBIND, appointment_id=current.id,
            # a paid booking stays confirmed after the move
            rebind_status="confirmed" if task.payment_status == "paid" else "scheduled",
        )
        previous_doctor = current.doctor_id
        appt = await self._run(request, order_candidates(working, self.rng, current_doctor_id=previous_doctor))
        logger.info(f"Rescheduled appointment {appt.id} to {start.isoformat()} "
                    f"(doctor {previous_doctor} -> {appt.doctor_id})")
        return appt

    async def cancel(self, task_id: uuid.UUID, patient_id: uuid.UUID | None = None) -> Appointment:
        task = await self._task(task_id, patient_id)
        if task.status not in CANCELLABLE_TASK_STATUSES:
            raise InvalidStateError(f"Appointment cannot be cancelled. Current status: {task.status}")
        appt = await self.appts.active_for_task(task.id)
        if not appt:
            raise NotFoundError("No active appointment found to cancel")
        transition(appt, "cancelled")
        task.status = "cancelled"
        await self.session.commit()
        logger.info(f"Cancelled task {task_id} and appointment {appt.id}")
        return appt

    async def get_active_appointment(self, task_id: uuid.UUID, patient_id: uuid.UUID | None = None) -> Appointment:
        await self._task(task_id, patient_id)
        appt = await self.appts.active_for_task(task_id)
        if not appt:
            raise NotFoundError("No active appointment found for this task")
        return appt
