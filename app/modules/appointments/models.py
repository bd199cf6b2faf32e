import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, ForeignKey, Index
from app.core.base import Base, TimestampedMixin, UTCDateTime

# statuses that hold capacity on a doctor's calendar
ACTIVE_STATUSES = ("scheduled", "confirmed")

VALID_NEXT = {
    "scheduled": {"confirmed", "cancelled"},
    "confirmed": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}

class Appointment(Base, TimestampedMixin):
    __table_args__ = (
        Index("ix_appointment_doctor_window", "doctor_id", "status", "start_at"),
        Index("ix_appointment_category_window", "category_id", "status", "start_at"),
    )

    task_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("task.id", ondelete="CASCADE"), index=True)
    patient_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("patient.id", ondelete="CASCADE"))
    category_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("category.id"))
    doctor_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("doctor.id", ondelete="SET NULL"), nullable=True)

    start_at: Mapped[datetime] = mapped_column(UTCDateTime())
    end_at: Mapped[datetime] = mapped_column(UTCDateTime())
    status: Mapped[str] = mapped_column(String(16), default="scheduled")  # scheduled, confirmed, completed, cancelled
    link: Mapped[str | None] = mapped_column(String(500), nullable=True)  # meeting link, filled by the doctor
