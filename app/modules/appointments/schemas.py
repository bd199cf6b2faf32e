import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

class BookRequest(BaseModel):
    task_id: uuid.UUID
    slot_start: str = Field(min_length=1, description="UTC instant, e.g. 2025-03-10T03:30:00.000Z")
    timezone: str = Field(min_length=1)

class RescheduleRequest(BookRequest):
    pass

class CancelRequest(BaseModel):
    task_id: uuid.UUID

class AppointmentOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    task_id: uuid.UUID
    patient_id: uuid.UUID
    category_id: uuid.UUID
    doctor_id: uuid.UUID | None = None
    start_at: datetime
    end_at: datetime
    status: str
    link: str | None = None
