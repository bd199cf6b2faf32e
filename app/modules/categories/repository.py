import uuid
from typing import Sequence
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, and_
from app.modules.categories.models import Category, CategoryDoctorAssignment
from app.modules.doctors.models import Doctor

class CategoryRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, category_id: uuid.UUID) -> Category | None:
        return await self.session.get(Category, category_id, populate_existing=True)

    async def active_assignments(self, category_id: uuid.UUID, exclude: Sequence[uuid.UUID] = (), *, fresh: bool = False) -> list[tuple[CategoryDoctorAssignment, Doctor]]:
        cond = [CategoryDoctorAssignment.category_id == category_id, Doctor.status == "active"]
        if exclude:
            cond.append(Doctor.id.not_in(list(exclude)))
        q = (
            select(CategoryDoctorAssignment, Doctor)
            .join(Doctor, CategoryDoctorAssignment.doctor_id == Doctor.id)
            .where(and_(*cond))
            .order_by(CategoryDoctorAssignment.created_at, CategoryDoctorAssignment.id)
        )
        if fresh:
            # selection state may have moved since the rows entered the identity map
            q = q.execution_options(populate_existing=True)
        res = await self.session.execute(q)
        return [(a, d) for a, d in res.all()]
