import uuid
from datetime import datetime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, ForeignKey, CheckConstraint
from app.core.base import Base, TimestampedMixin, UTCDateTime

TASK_STATUSES = ("pending", "scheduled", "completed", "cancelled")
PAYMENT_STATUSES = ("unpaid", "paid", "refunded", "failed")

# A patient's request for one consultation in a category.
class Task(Base, TimestampedMixin):
    __table_args__ = (
        CheckConstraint(f"status IN {TASK_STATUSES}", name="ck_task_status"),
        CheckConstraint(f"payment_status IN {PAYMENT_STATUSES}", name="ck_task_payment_status"),
    )

    patient_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("patient.id", ondelete="CASCADE"), index=True)
    category_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("category.id"), index=True)
    doctor_id: Mapped[uuid.UUID | None] = mapped_column(ForeignKey("doctor.id", ondelete="SET NULL"), nullable=True, index=True)

    status: Mapped[str] = mapped_column(String(16), default="pending", index=True)
    payment_status: Mapped[str] = mapped_column(String(16), default="unpaid")
    paid_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
