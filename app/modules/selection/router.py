import uuid
from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.security import require_roles, Principal
from app.core.timezones import get_clock
from app.modules.selection.service import DoctorSelectionService

router = APIRouter()

class SelectionRequest(BaseModel):
    algorithm: str | None = None
    exclude: list[uuid.UUID] = []

class SelectionOut(BaseModel):
    category_id: uuid.UUID
    doctor_id: uuid.UUID | None

def svc(session: AsyncSession = Depends(get_session), clock=Depends(get_clock)) -> DoctorSelectionService:
    return DoctorSelectionService(session, now=clock)

@router.post("/categories/{category_id}/doctor-selection", response_model=SelectionOut)
async def select_doctor(category_id: uuid.UUID, payload: SelectionRequest,
                        principal: Principal = Depends(require_roles("admin")),
                        service: DoctorSelectionService = Depends(svc)):
    doctor_id = await service.select_doctor(category_id, payload.algorithm, payload.exclude)
    return {"category_id": category_id, "doctor_id": doctor_id}
