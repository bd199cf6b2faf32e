import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./.pytest-consult.db"
os.environ["SLOT_LOCK_PROVIDER"] = "local"
os.environ["ENV"] = "local"
os.environ["DB_MANAGE"] = "create_all"

import random
import uuid
from datetime import datetime

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession

from app.core.base import Base
from app.core.db import import_models
from app.modules.categories.models import Category, CategoryDoctorAssignment
from app.modules.doctors.models import Doctor, BusinessHourShift, TimeOff
from app.modules.patients.models import Patient
from app.modules.tasks.models import Task
from app.modules.appointments.models import Appointment
from app.platform.adapters.lock_local import LocalSlotLock

from helpers import MONDAY, hm


@pytest_asyncio.fixture
async def engine(tmp_path):
    eng = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'consult.db'}")
    import_models()
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def session(session_factory):
    async with session_factory() as s:
        yield s


@pytest.fixture
def locks():
    return LocalSlotLock(timeout_seconds=10)


@pytest.fixture
def rng():
    return random.Random(1234)


class Seeder:
    def __init__(self, session_factory):
        self.session_factory = session_factory

    async def _add(self, *objs):
        async with self.session_factory() as s:
            s.add_all(objs)
            await s.commit()
        return objs[0] if len(objs) == 1 else objs

    async def category(self, **kw) -> Category:
        data = dict(name="General consult", slug=f"general-{uuid.uuid4().hex[:8]}",
                    duration_minutes=30, buffer_minutes=0, concurrency=1, next_days=7,
                    selection_algorithm="round_robin", is_active=True)
        data.update(kw)
        return await self._add(Category(**data))

    async def doctor(self, category: Category | None = None, *, timezone: str = "UTC",
                     shifts=((MONDAY, "09:00", "17:00"),), status: str = "active",
                     is_online: bool = False, **assignment) -> Doctor:
        doc = Doctor(id=uuid.uuid4(), name=f"Dr {uuid.uuid4().hex[:6]}", timezone=timezone,
                     status=status, is_online=is_online)
        rows = [doc]
        for dow, start, end in shifts:
            rows.append(BusinessHourShift(doctor_id=doc.id, day_of_week=dow,
                                          start_time=hm(start), end_time=hm(end), is_enabled=True))
        if category is not None:
            rows.append(CategoryDoctorAssignment(doctor_id=doc.id, category_id=category.id, **assignment))
        await self._add(*rows)
        return doc

    async def time_off(self, doctor: Doctor, start: datetime, end: datetime) -> TimeOff:
        return await self._add(TimeOff(doctor_id=doctor.id, start_at=start, end_at=end, reason="leave"))

    async def patient(self) -> Patient:
        return await self._add(Patient(name="Pat", email=f"{uuid.uuid4().hex[:8]}@example.com", timezone="UTC"))

    async def task(self, category: Category, patient: Patient | None = None, **kw) -> Task:
        patient = patient or await self.patient()
        data = dict(patient_id=patient.id, category_id=category.id, status="pending", payment_status="unpaid")
        data.update(kw)
        return await self._add(Task(**data))

    async def appointment(self, task: Task, doctor: Doctor | None, start: datetime, end: datetime,
                          status: str = "scheduled") -> Appointment:
        return await self._add(Appointment(
            task_id=task.id, patient_id=task.patient_id, category_id=task.category_id,
            doctor_id=doctor.id if doctor else None, start_at=start, end_at=end, status=status,
        ))


@pytest.fixture
def seed(session_factory):
    return Seeder(session_factory)
