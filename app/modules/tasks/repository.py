import uuid
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, update, and_
from app.modules.tasks.models import Task

class TaskRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, **data) -> Task:
        obj = Task(**data)
        self.session.add(obj)
        await self.session.flush()
        return obj

    async def get(self, task_id: uuid.UUID, patient_id: uuid.UUID | None = None) -> Task | None:
        cond = [Task.id == task_id]
        if patient_id is not None:
            cond.append(Task.patient_id == patient_id)
        q = select(Task).where(and_(*cond)).execution_options(populate_existing=True)
        res = await self.session.execute(q)
        return res.scalar_one_or_none()

    async def schedule_with(self, task_id: uuid.UUID, doctor_id: uuid.UUID, *, from_statuses: tuple[str, ...]) -> bool:
        """Bind the doctor and move to 'scheduled' only while the task is in `from_statuses`."""
        res = await self.session.execute(
            update(Task)
            .where(and_(Task.id == task_id, Task.status.in_(from_statuses)))
            .values(doctor_id=doctor_id, status="scheduled")
            .execution_options(synchronize_session=False)
        )
        return res.rowcount == 1
