import uuid

import pytest
from sqlalchemy import select, update

from app.core.errors import (
    InvalidInputError, InvalidStateError, NoEligibleDoctorError, NotFoundError, SlotFullyBookedError,
)
from app.modules.appointments.models import Appointment
from app.modules.appointments.service import AppointmentService
from app.modules.categories.models import Category
from app.modules.tasks.models import Task
from app.modules.tasks.service import TaskService
from helpers import TUESDAY, fixed_clock, utc

NINE_Z = "2025-03-10T09:00:00Z"


@pytest.fixture
def service_for(session_factory, locks, rng):
    def build(session):
        return AppointmentService(session, session_factory=session_factory, locks=locks, now=fixed_clock, rng=rng)
    return build


async def appointments_of(session_factory, task_id):
    async with session_factory() as s:
        res = await s.execute(select(Appointment).where(Appointment.task_id == task_id))
        return list(res.scalars().all())


async def test_book_binds_task_and_doctor(seed, session, service_for):
    category = await seed.category()
    doctor = await seed.doctor(category)
    task = await seed.task(category)

    appt = await service_for(session).book(task.id, NINE_Z, "Asia/Kolkata", patient_id=task.patient_id)

    assert appt.doctor_id == doctor.id
    assert appt.start_at == utc(2025, 3, 10, 9, 0)
    assert appt.end_at == utc(2025, 3, 10, 9, 30)
    assert appt.status == "scheduled"
    stored = await session.get(Task, task.id, populate_existing=True)
    assert stored.status == "scheduled"
    assert stored.doctor_id == doctor.id


async def test_book_rejects_unknown_timezone(seed, session, service_for):
    category = await seed.category()
    task = await seed.task(category)
    with pytest.raises(InvalidInputError):
        await service_for(session).book(task.id, NINE_Z, "Mars/Olympus")


async def test_book_rejects_slot_in_the_past(seed, session, service_for):
    category = await seed.category()
    await seed.doctor(category)
    task = await seed.task(category)
    with pytest.raises(InvalidInputError):
        await service_for(session).book(task.id, "2025-03-09T11:00:00Z", "UTC")


async def test_book_needs_pending_task(seed, session, service_for):
    category = await seed.category()
    await seed.doctor(category)
    task = await seed.task(category, status="completed")
    with pytest.raises(InvalidStateError) as exc:
        await service_for(session).book(task.id, NINE_Z, "UTC")
    assert "completed" in exc.value.message


async def test_book_other_patients_task_is_not_found(seed, session, service_for):
    category = await seed.category()
    task = await seed.task(category)
    with pytest.raises(NotFoundError):
        await service_for(session).book(task.id, NINE_Z, "UTC", patient_id=uuid.uuid4())


async def test_book_without_doctors(seed, session, service_for):
    category = await seed.category()
    task = await seed.task(category)
    with pytest.raises(NoEligibleDoctorError) as exc:
        await service_for(session).book(task.id, NINE_Z, "UTC")
    assert exc.value.message == "No doctors available for this category"


async def test_book_when_nobody_works_that_slot(seed, session, service_for):
    category = await seed.category()
    await seed.doctor(category, shifts=((TUESDAY, "09:00", "17:00"),))
    task = await seed.task(category)
    with pytest.raises(NoEligibleDoctorError) as exc:
        await service_for(session).book(task.id, NINE_Z, "UTC")
    assert exc.value.message == "No doctors available for this time slot"


async def test_book_fully_booked(seed, session, session_factory, service_for):
    category = await seed.category()
    doctor = await seed.doctor(category)
    await seed.appointment(await seed.task(category), doctor, utc(2025, 3, 10, 9, 0), utc(2025, 3, 10, 9, 30))
    task = await seed.task(category)

    with pytest.raises(SlotFullyBookedError) as exc:
        await service_for(session).book(task.id, NINE_Z, "UTC")
    assert exc.value.status_code == 409
    assert await appointments_of(session_factory, task.id) == []


async def test_reschedule_moves_the_same_appointment(seed, session, session_factory, service_for):
    category = await seed.category()
    await seed.doctor(category)
    task = await seed.task(category)
    svc = service_for(session)
    booked = await svc.book(task.id, NINE_Z, "UTC")

    moved = await svc.reschedule(task.id, "2025-03-10T14:00:00Z", "UTC")

    assert moved.id == booked.id
    assert moved.start_at == utc(2025, 3, 10, 14, 0)
    rows = await appointments_of(session_factory, task.id)
    assert len(rows) == 1
    assert rows[0].status == "scheduled"


async def test_reschedule_keeps_confirmed_slot_when_target_is_full(seed, session, session_factory, service_for):
    category = await seed.category()
    doctor = await seed.doctor(category)
    await seed.appointment(await seed.task(category), doctor, utc(2025, 3, 10, 14, 0), utc(2025, 3, 10, 14, 30))
    task = await seed.task(category, status="scheduled", doctor_id=doctor.id)
    appt = await seed.appointment(task, doctor, utc(2025, 3, 10, 9, 0), utc(2025, 3, 10, 9, 30), status="confirmed")

    with pytest.raises(SlotFullyBookedError):
        await service_for(session).reschedule(task.id, "2025-03-10T14:00:00Z", "UTC")

    rows = await appointments_of(session_factory, task.id)
    assert [(r.id, r.start_at, r.status) for r in rows] == [(appt.id, utc(2025, 3, 10, 9, 0), "confirmed")]


async def test_reschedule_without_active_appointment(seed, session, service_for):
    category = await seed.category()
    await seed.doctor(category)
    task = await seed.task(category)
    with pytest.raises(NotFoundError):
        await service_for(session).reschedule(task.id, NINE_Z, "UTC")


async def test_cancel_releases_the_slot(seed, session, service_for):
    category = await seed.category()
    await seed.doctor(category)
    first = await seed.task(category)
    svc = service_for(session)
    await svc.book(first.id, NINE_Z, "UTC")

    cancelled = await svc.cancel(first.id)
    assert cancelled.status == "cancelled"
    assert (await session.get(Task, first.id, populate_existing=True)).status == "cancelled"

    second = await seed.task(category)
    again = await svc.book(second.id, NINE_Z, "UTC")
    assert again.start_at == utc(2025, 3, 10, 9, 0)


async def test_cancel_twice_is_rejected(seed, session, service_for):
    category = await seed.category()
    await seed.doctor(category)
    task = await seed.task(category)
    svc = service_for(session)
    await svc.book(task.id, NINE_Z, "UTC")
    await svc.cancel(task.id)
    with pytest.raises(InvalidStateError):
        await svc.cancel(task.id)


async def test_get_active_appointment(seed, session, service_for):
    category = await seed.category()
    await seed.doctor(category)
    task = await seed.task(category)
    svc = service_for(session)
    with pytest.raises(NotFoundError):
        await svc.get_active_appointment(task.id)
    booked = await svc.book(task.id, NINE_Z, "UTC")
    assert (await svc.get_active_appointment(task.id)).id == booked.id


async def test_paid_booking_stays_completable_after_reschedule(seed, session, service_for):
    category = await seed.category()
    doctor = await seed.doctor(category)
    task = await seed.task(category)
    svc = service_for(session)
    await svc.book(task.id, NINE_Z, "UTC")
    await TaskService(session, now=fixed_clock).mark_paid(task.id)

    moved = await svc.reschedule(task.id, "2025-03-10T14:00:00Z", "UTC")
    assert moved.status == "confirmed"

    done = await TaskService(session, now=fixed_clock).complete(task.id, doctor_id=doctor.id)
    assert done.status == "completed"
    assert (await session.get(Appointment, moved.id, populate_existing=True)).status == "completed"


async def test_deactivated_category_blocks_booking_and_rescheduling(seed, session, service_for):
    category = await seed.category()
    await seed.doctor(category)
    booked = await seed.task(category)
    fresh = await seed.task(category)
    svc = service_for(session)
    await svc.book(booked.id, NINE_Z, "UTC")
    async with seed.session_factory() as s:
        await s.execute(update(Category).where(Category.id == category.id).values(is_active=False))
        await s.commit()

    with pytest.raises(NotFoundError) as exc:
        await svc.book(fresh.id, "2025-03-10T10:00:00Z", "UTC")
    assert exc.value.message == "Category not found"
    with pytest.raises(NotFoundError):
        await svc.reschedule(booked.id, "2025-03-10T14:00:00Z", "UTC")
