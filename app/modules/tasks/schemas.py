import uuid
from datetime import datetime
from pydantic import BaseModel, ConfigDict

class TaskCreate(BaseModel):
    category_id: uuid.UUID
    patient_id: uuid.UUID | None = None  # staff only; patients always book for themselves

class TaskOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    patient_id: uuid.UUID
    category_id: uuid.UUID
    doctor_id: uuid.UUID | None = None
    status: str
    payment_status: str
    paid_at: datetime | None = None
    completed_at: datetime | None = None
