import uuid
from datetime import datetime
from decimal import Decimal
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, Numeric, ForeignKey, UniqueConstraint, CheckConstraint
from app.core.base import Base, TimestampedMixin, UTCDateTime

SELECTION_ALGORITHMS = ("priority", "weighted", "random", "least_recently_used", "round_robin")
HORIZON_DAYS = (7, 14, 30)

class Category(Base, TimestampedMixin):
    __table_args__ = (
        CheckConstraint("concurrency >= 1", name="ck_category_concurrency"),
        CheckConstraint("duration_minutes > 0", name="ck_category_duration"),
        CheckConstraint("buffer_minutes >= 0", name="ck_category_buffer"),
        CheckConstraint(f"next_days IN {HORIZON_DAYS}", name="ck_category_horizon"),
        CheckConstraint(f"selection_algorithm IN {SELECTION_ALGORITHMS}", name="ck_category_algorithm"),
    )

    name: Mapped[str] = mapped_column(String(120))
    slug: Mapped[str] = mapped_column(String(120), unique=True, index=True)
    description: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"))

    duration_minutes: Mapped[int] = mapped_column(Integer, default=15)
    buffer_minutes: Mapped[int] = mapped_column(Integer, default=0)
    concurrency: Mapped[int] = mapped_column(Integer, default=1)  # bookings one doctor may hold per overlapping window
    next_days: Mapped[int] = mapped_column(Integer, default=7)  # 7 | 14 | 30
    selection_algorithm: Mapped[str] = mapped_column(String(32), default="round_robin")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)


class CategoryDoctorAssignment(Base, TimestampedMixin):
    __table_args__ = (
        UniqueConstraint("doctor_id", "category_id", name="uq_assignment_doctor_category"),
        CheckConstraint("weight >= 0", name="ck_assignment_weight"),
        CheckConstraint("round_robin_counter >= 0", name="ck_assignment_counter"),
    )

    doctor_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("doctor.id", ondelete="CASCADE"), index=True)
    category_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("category.id", ondelete="CASCADE"), index=True)
    priority: Mapped[int] = mapped_column(Integer, default=100)  # lower wins
    weight: Mapped[int] = mapped_column(Integer, default=50)
    last_assigned_at: Mapped[datetime | None] = mapped_column(UTCDateTime(), nullable=True)
    round_robin_counter: Mapped[int] = mapped_column(Integer, default=0)
