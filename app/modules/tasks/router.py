import uuid
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.security import get_principal, require_roles, Principal
from app.core.timezones import get_clock
from app.modules.tasks.schemas import TaskCreate, TaskOut
from app.modules.tasks.service import TaskService

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session), clock=Depends(get_clock)) -> TaskService:
    return TaskService(session, now=clock)

@router.post("/tasks", response_model=TaskOut, status_code=status.HTTP_201_CREATED)
async def create_task(payload: TaskCreate, principal: Principal = Depends(get_principal), service: TaskService = Depends(svc)):
    patient_id = principal.user_id
    if principal.is_staff and payload.patient_id:
        patient_id = payload.patient_id
    return await service.create_task(patient_id, payload.category_id)

@router.get("/tasks/{task_id}", response_model=TaskOut)
async def get_task(task_id: uuid.UUID, principal: Principal = Depends(get_principal), service: TaskService = Depends(svc)):
    return await service.get(task_id, patient_id=principal.patient_scope())

@router.put("/tasks/{task_id}/payment", response_model=TaskOut)
async def pay_task(task_id: uuid.UUID, principal: Principal = Depends(get_principal), service: TaskService = Depends(svc)):
    return await service.mark_paid(task_id, patient_id=principal.patient_scope())

@router.put("/tasks/{task_id}/complete", response_model=TaskOut)
async def complete_task(task_id: uuid.UUID, principal: Principal = Depends(require_roles("doctor")), service: TaskService = Depends(svc)):
    doctor_id = None if "admin" in principal.roles else principal.user_id
    return await service.complete(task_id, doctor_id=doctor_id)
