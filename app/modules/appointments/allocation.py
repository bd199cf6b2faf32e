"""Race-free reservation of one (doctor, slot) pair out of an ordered candidate list.

Each candidate gets its own unit of work: take the (doctor, slot start) lock,
recount the doctor's active bookings overlapping the slot, and write only while
the doctor is under the category's concurrency. A full doctor or a lock timeout
is recorded as a tagged attempt and the loop moves on; the loop ends at the
first committed reservation. Database errors propagate untouched.
"""
import enum
import random
import uuid
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from app.core.errors import SlotLockTimeout, InvalidStateError
from app.platform.ports.slot_lock import SlotLockPort
from app.modules.appointments.repository import AppointmentRepository
from app.modules.availability.working_hours import DoctorSchedule, is_working
from app.modules.tasks.repository import TaskRepository

logger = logging.getLogger(__name__)

class AllocationMode(str, enum.Enum):
    CREATE = "create"
    REBIND = "rebind"

class AttemptStatus(str, enum.Enum):
    RESERVED = "reserved"
    AT_CAPACITY = "at_capacity"
    NOT_WORKING = "not_working"
    LOCK_TIMEOUT = "lock_timeout"

@dataclass(frozen=True)
class AllocationRequest:
    task_id: uuid.UUID
    patient_id: uuid.UUID
    category_id: uuid.UUID
    start: datetime
    end: datetime
    concurrency: int
    mode: AllocationMode = AllocationMode.CREATE
    appointment_id: uuid.UUID | None = None  # rebind target, left out of its own overlap count
    rebind_status: str = "scheduled"

@dataclass(frozen=True)
class AllocationAttempt:
    doctor_id: uuid.UUID
    status: AttemptStatus

@dataclass
class AllocationResult:
    appointment_id: uuid.UUID | None = None
    doctor_id: uuid.UUID | None = None
    attempts: list[AllocationAttempt] = field(default_factory=list)

    @property
    def reserved(self) -> bool:
        return self.appointment_id is not None

    @property
    def fully_booked(self) -> bool:
        return self.appointment_id is None

def slot_lock_key(doctor_id: uuid.UUID, start: datetime) -> str:
    iso = start.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")
    return f"doc_{doctor_id}_{iso}"

def order_candidates(schedules: Sequence[DoctorSchedule], rng: random.Random,
                     current_doctor_id: uuid.UUID | None = None) -> list[DoctorSchedule]:
    """Shuffle; a reschedule puts the doctor already holding the booking first."""
    first = [s for s in schedules if current_doctor_id is not None and s.doctor_id == current_doctor_id]
    rest = [s for s in schedules if current_doctor_id is None or s.doctor_id != current_doctor_id]
    rng.shuffle(rest)
    return first + rest

class SlotAllocator:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], locks: SlotLockPort):
        self.session_factory = session_factory
        self.locks = locks

    async def allocate(self, request: AllocationRequest, candidates: Sequence[DoctorSchedule]) -> AllocationResult:
        if request.mode is AllocationMode.REBIND and request.appointment_id is None:
            raise ValueError("rebind needs the appointment being moved")
        result = AllocationResult()
        for schedule in candidates:
            # the caller's filter can be stale; a doctor must still be on shift here
            if not is_working(schedule, request.start, request.end):
                result.attempts.append(AllocationAttempt(schedule.doctor_id, AttemptStatus.NOT_WORKING))
                continue
            try:
                status, appointment_id = await self._attempt(request, schedule.doctor_id)
            except SlotLockTimeout:
                status, appointment_id = AttemptStatus.LOCK_TIMEOUT, None
            result.attempts.append(AllocationAttempt(schedule.doctor_id, status))
            logger.debug(f"Allocation task={request.task_id} doctor={schedule.doctor_id} -> {status.value}")
            if status is AttemptStatus.RESERVED:
                result.appointment_id = appointment_id
                result.doctor_id = schedule.doctor_id
                return result

        logger.info(f"Slot {request.start.isoformat()} full for task {request.task_id} "
                    f"after {len(result.attempts)} candidate(s)")
        return result

    async def _attempt(self, request: AllocationRequest, doctor_id: uuid.UUID) -> tuple[AttemptStatus, uuid.UUID | None]:
        async with self.session_factory() as session:
            async with self.locks.unit_of_work(session, slot_lock_key(doctor_id, request.start)):
                appts = AppointmentRepository(session)
                taken = await appts.count_doctor_overlaps(
                    doctor_id, request.start, request.end, exclude_id=request.appointment_id
                )
                if taken >= request.concurrency:
                    # nothing written; the unit of work closes empty
                    return AttemptStatus.AT_CAPACITY, None
                if request.mode is AllocationMode.CREATE:
                    appointment_id = await self._create(session, request, doctor_id)
                else:
                    appointment_id = await self._rebind(session, request, doctor_id)
                return AttemptStatus.RESERVED, appointment_id

    async def _create(self, session: AsyncSession, request: AllocationRequest, doctor_id: uuid.UUID) -> uuid.UUID:
        tasks = TaskRepository(session)
        if not await tasks.schedule_with(request.task_id, doctor_id, from_statuses=("pending",)):
            raise InvalidStateError("Task is no longer pending")
        appt = await AppointmentRepository(session).create(
            task_id=request.task_id,
            patient_id=request.patient_id,
            category_id=request.category_id,
            doctor_id=doctor_id,
            start_at=request.start,
            end_at=request.end,
            status="scheduled",
        )
        return appt.id

    async def _rebind(self, session: AsyncSession, request: AllocationRequest, doctor_id: uuid.UUID) -> uuid.UUID:
        if not await AppointmentRepository(session).rebind(request.appointment_id, doctor_id, request.start, request.end,
                                                           status=request.rebind_status):
            raise InvalidStateError("Appointment is no longer active")
        tasks = TaskRepository(session)
        if not await tasks.schedule_with(request.task_id, doctor_id, from_statuses=("pending", "scheduled")):
            # raising rolls back the appointment move made above
            raise InvalidStateError("Task can no longer be rescheduled")
        return request.appointment_id
