import uuid
import logging
from datetime import datetime
from typing import Callable
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.errors import NotFoundError, InvalidStateError
from app.core.timezones import utc_now
from app.modules.appointments.repository import AppointmentRepository
from app.modules.appointments.service import transition
from app.modules.categories.repository import CategoryRepository
from app.modules.patients.repository import PatientRepository
from app.modules.selection.service import DoctorSelectionService
from app.modules.tasks.models import Task
from app.modules.tasks.repository import TaskRepository

logger = logging.getLogger(__name__)

CLOSED_STATUSES = ("completed", "cancelled")

class TaskService:
    def __init__(self, session: AsyncSession, *, now: Callable[[], datetime] = utc_now,
                 selection: DoctorSelectionService | None = None):
        self.session = session
        self.now = now
        self.tasks = TaskRepository(session)
        self.appts = AppointmentRepository(session)
        self.categories = CategoryRepository(session)
        self.patients = PatientRepository(session)
        self.selection = selection or DoctorSelectionService(session, now=now)

    async def _task(self, task_id: uuid.UUID, patient_id: uuid.UUID | None = None) -> Task:
        task = await self.tasks.get(task_id, patient_id)
        if not task:
            raise NotFoundError("Task not found")
        return task

    async def create_task(self, patient_id: uuid.UUID, category_id: uuid.UUID) -> Task:
        if not await self.patients.get(patient_id):
            raise NotFoundError("Patient not found")
        category = await self.categories.get(category_id)
        if not category or not category.is_active:
            raise NotFoundError("Category not found")
        task = await self.tasks.create(patient_id=patient_id, category_id=category.id,
                                       status="pending", payment_status="unpaid")
        await self.session.commit()
        return task

    async def get(self, task_id: uuid.UUID, patient_id: uuid.UUID | None = None) -> Task:
        return await self._task(task_id, patient_id)

    async def mark_paid(self, task_id: uuid.UUID, patient_id: uuid.UUID | None = None) -> Task:
        """Record payment, confirm the booking and, if nobody is bound yet, assign a doctor by policy."""
        task = await self._task(task_id, patient_id)
        if task.status in CLOSED_STATUSES:
            raise InvalidStateError(f"Task cannot be paid. Current status: {task.status}")
        if task.payment_status == "paid":
            raise InvalidStateError("Task is already paid")

        task.payment_status = "paid"
        task.paid_at = self.now()
        appt = await self.appts.active_for_task(task.id)
        if appt and appt.status == "scheduled":
            transition(appt, "confirmed")

        if task.doctor_id is None:
            doctor_id = await self.selection.pick(task.category_id)
            if doctor_id is None:
                logger.warning(f"Task {task.id} paid but no doctor could be assigned")
            else:
                task.doctor_id = doctor_id
                if appt and appt.doctor_id is None:
                    appt.doctor_id = doctor_id
                logger.info(f"Assigned doctor {doctor_id} to task {task.id} on payment")

        await self.session.commit()
        return task

    async def complete(self, task_id: uuid.UUID, doctor_id: uuid.UUID | None = None) -> Task:
        task = await self._task(task_id)
        if doctor_id is not None and task.doctor_id != doctor_id:
            raise NotFoundError("Task not found")
        if task.status != "scheduled":
            raise InvalidStateError(f"Task cannot be completed. Current status: {task.status}")
        appt = await self.appts.active_for_task(task.id)
        if appt:
            transition(appt, "completed")
        task.status = "completed"
        task.completed_at = self.now()
        await self.session.commit()
        return task
