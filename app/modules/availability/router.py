import uuid
from dataclasses import asdict
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.db import get_session
from app.core.security import get_principal, Principal
from app.core.timezones import get_clock
from app.modules.availability.service import AvailabilityService
from app.modules.availability.schemas import DayOut, DaySlotsOut

router = APIRouter()

def svc(session: AsyncSession = Depends(get_session), clock=Depends(get_clock)) -> AvailabilityService:
    return AvailabilityService(session, now=clock)

@router.get("/availability/days", response_model=list[DayOut])
async def list_days(
    category_id: uuid.UUID,
    timezone: str = Query(..., min_length=1),
    principal: Principal = Depends(get_principal),
    service: AvailabilityService = Depends(svc),
):
    days = await service.compute_day_availability(category_id, timezone)
    return [asdict(d) for d in days]

@router.get("/availability/slots", response_model=DaySlotsOut)
async def list_slots(
    category_id: uuid.UUID,
    date: str,
    timezone: str = Query(..., min_length=1),
    principal: Principal = Depends(get_principal),
    service: AvailabilityService = Depends(svc),
):
    slots = await service.compute_slot_availability(category_id, date, timezone)
    return {
        "date": date,
        "timezone": timezone,
        "slots": [asdict(s) for s in slots],
    }
