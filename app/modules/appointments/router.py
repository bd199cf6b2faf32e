import uuid
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session, get_session_factory
from app.core.security import get_principal, Principal
from app.core.timezones import get_clock
from app.platform.provider_registry import get_slot_lock
from app.modules.appointments.schemas import BookRequest, RescheduleRequest, CancelRequest, AppointmentOut
from app.modules.appointments.service import AppointmentService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session), factory=Depends(get_session_factory),
        locks=Depends(get_slot_lock), clock=Depends(get_clock)) -> AppointmentService:
    return AppointmentService(session, session_factory=factory, locks=locks, now=clock)

@router.post("/appointments/book", response_model=AppointmentOut, status_code=status.HTTP_201_CREATED)
async def book(payload: BookRequest, principal: Principal = Depends(get_principal), service: AppointmentService = Depends(svc)):
    return await service.book(payload.task_id, payload.slot_start, payload.timezone, patient_id=principal.patient_scope())

@router.put("/appointments/reschedule", response_model=AppointmentOut)
async def reschedule(payload: RescheduleRequest, principal: Principal = Depends(get_principal), service: AppointmentService = Depends(svc)):
    return await service.reschedule(payload.task_id, payload.slot_start, payload.timezone, patient_id=principal.patient_scope())

@router.put("/appointments/cancel", response_model=AppointmentOut)
async def cancel(payload: CancelRequest, principal: Principal = Depends(get_principal), service: AppointmentService = Depends(svc)):
    return await service.cancel(payload.task_id, patient_id=principal.patient_scope())

@router.get("/tasks/{task_id}/appointment", response_model=AppointmentOut)
async def active_appointment(task_id: uuid.UUID, principal: Principal = Depends(get_principal), service: AppointmentService = Depends(svc)):
    return await service.get_active_appointment(task_id, patient_id=principal.patient_scope())
