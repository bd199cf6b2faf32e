import uuid
import logging
from datetime import date, datetime, timedelta
from typing import Callable
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.core.errors import NotFoundError
from app.core.timezones import utc_now, parse_timezone, parse_date, local_day_bounds_utc
from app.modules.categories.models import Category
from app.modules.categories.repository import CategoryRepository
from app.modules.doctors.repository import ScheduleRepository
from app.modules.appointments.repository import AppointmentRepository
from app.modules.availability.day_scanner import DayAvailability, scan_days
from app.modules.availability.slots import SlotAvailability, generate_slots, build_slot_matrix, index_by_doctor

logger = logging.getLogger(__name__)

# bookings starting up to a day either side can still overlap the requested day
APPOINTMENT_WINDOW_PAD = timedelta(days=1)

class AvailabilityService:
    def __init__(self, session: AsyncSession, *, now: Callable[[], datetime] = utc_now):
        self.session = session
        self.now = now
        self.categories = CategoryRepository(session)
        self.schedules = ScheduleRepository(session)
        self.appts = AppointmentRepository(session)

    async def _active_category(self, category_id: uuid.UUID) -> Category:
        category = await self.categories.get(category_id)
        if not category or not category.is_active:
            raise NotFoundError("Category not found")
        return category

    async def compute_day_availability(self, category_id: uuid.UUID, patient_tz: str,
                                       today: date | None = None) -> list[DayAvailability]:
        tz = parse_timezone(patient_tz)
        category = await self._active_category(category_id)
        now = self.now()
        if today is None:
            today = now.astimezone(tz).date()
        schedules = await self.schedules.load_for_category(category.id, now)
        if not schedules:
            logger.info(f"Category {category.id} has no active doctors; every day closed")
        return scan_days(schedules, tz, today, category.next_days)

    async def compute_slot_availability(self, category_id: uuid.UUID, day: str | date,
                                        patient_tz: str) -> list[SlotAvailability]:
        tz = parse_timezone(patient_tz)
        if not isinstance(day, date):
            day = parse_date(day)
        category = await self._active_category(category_id)
        now = self.now()

        schedules = await self.schedules.load_for_category(category.id, now)
        if not schedules:
            return []

        day_start, next_midnight = local_day_bounds_utc(day, tz)
        rows = await self.appts.category_window(
            category.id, day_start - APPOINTMENT_WINDOW_PAD, next_midnight + APPOINTMENT_WINDOW_PAD
        )
        slots = generate_slots(
            day, category.duration_minutes, category.buffer_minutes, tz, now,
            lead=timedelta(minutes=settings.SLOT_LEAD_MINUTES),
        )
        matrix = build_slot_matrix(slots, schedules, index_by_doctor(rows), category.concurrency)
        logger.debug(f"Category {category.id} {day.isoformat()} {tz.key}: "
                     f"{sum(1 for s in matrix if s.is_available)}/{len(matrix)} slots open")
        return matrix
