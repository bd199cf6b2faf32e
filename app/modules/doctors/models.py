import uuid
from datetime import datetime, time
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy import String, Integer, Boolean, Time, ForeignKey, CheckConstraint
from app.core.base import Base, TimestampedMixin, UTCDateTime

DOCTOR_STATUSES = ("in_review", "active", "declined", "suspended")

class Doctor(Base, TimestampedMixin):
    name: Mapped[str] = mapped_column(String(200))
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, unique=True)
    timezone: Mapped[str] = mapped_column(String(64), default="UTC")  # IANA name
    status: Mapped[str] = mapped_column(String(16), default="in_review", index=True)
    is_online: Mapped[bool] = mapped_column(Boolean, default=False)


# Weekly recurring shift; day_of_week 0=Sun..6=Sat, times are doctor-local.
# end_time < start_time means the shift runs past midnight into the next day.
class BusinessHourShift(Base, TimestampedMixin):
    __table_args__ = (
        CheckConstraint("day_of_week BETWEEN 0 AND 6", name="ck_shift_day_of_week"),
    )

    doctor_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("doctor.id", ondelete="CASCADE"), index=True)
    day_of_week: Mapped[int] = mapped_column(Integer)
    start_time: Mapped[time] = mapped_column(Time)
    end_time: Mapped[time] = mapped_column(Time)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True)


class TimeOff(Base, TimestampedMixin):
    doctor_id: Mapped[uuid.UUID] = mapped_column(ForeignKey("doctor.id", ondelete="CASCADE"), index=True)
    start_at: Mapped[datetime] = mapped_column(UTCDateTime())
    end_at: Mapped[datetime] = mapped_column(UTCDateTime(), index=True)
    reason: Mapped[str | None] = mapped_column(String(500), nullable=True)
