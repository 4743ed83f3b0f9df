"""Provider working-hours and blocked-time model definitions."""

from sqlalchemy import Boolean, Column, Date, ForeignKey, Integer, String, UniqueConstraint
from dental_backend.database import Base


class ScheduleEntry(Base):
    """Working window of one provider on one weekday (0 = Sunday)."""
    __tablename__ = "provider_schedules"
    __table_args__ = (
        UniqueConstraint('provider_id', 'day_of_week', name='uq_provider_schedules_provider_day'),
    )

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("providers.id", ondelete="CASCADE"), nullable=False, index=True)
    day_of_week = Column(Integer, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    break_start_time = Column(String(5))
    break_end_time = Column(String(5))
    is_available = Column(Boolean, default=True, nullable=False)


class TimeBlock(Base):
    """One-off period on a date during which a provider takes no bookings."""
    __tablename__ = "time_blocks"

    id = Column(Integer, primary_key=True)
    provider_id = Column(Integer, ForeignKey("providers.id", ondelete="CASCADE"), nullable=False)
    block_date = Column(Date, nullable=False)
    start_time = Column(String(5), nullable=False)
    end_time = Column(String(5), nullable=False)
    reason = Column(String)
