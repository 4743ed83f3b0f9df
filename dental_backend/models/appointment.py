"""Appointment model definitions."""

from datetime import datetime

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from dental_backend.database import Base


ACTIVE_STATUSES = ('pending', 'confirmed')
APPOINTMENT_STATUSES = ('pending', 'confirmed', 'completed', 'cancelled', 'no_show')


class Appointment(Base):
    """A booking of one provider for one patient on one date."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    confirmation_code = Column(String(8), unique=True, index=True)
    patient_id = Column(String)
    patient_name = Column(String, nullable=False)
    patient_email = Column(String, nullable=False)
    patient_phone = Column(String)
    provider_id = Column(Integer, ForeignKey("providers.id"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id"))
    service_duration = Column(Integer, nullable=False)
    appointment_date = Column(Date, nullable=False)
    # Nullable: rows written by older clients may lack times and are skipped.
    start_time = Column(String(5))
    end_time = Column(String(5))
    status = Column(String, nullable=False, default='pending')
    notes = Column(String)
    admin_notes = Column(String)
    cancellation_reason = Column(String)
    cancelled_at = Column(DateTime)
    reschedule_count = Column(Integer, nullable=False, default=0)
    max_reschedules = Column(Integer, nullable=False, default=2)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    reschedule_history = relationship(
        "RescheduleHistoryEntry",
        back_populates="appointment",
        order_by="RescheduleHistoryEntry.id",
        cascade="all, delete-orphan",
    )

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES


class RescheduleHistoryEntry(Base):
    """One move of an appointment from an old date/time to a new one."""
    __tablename__ = "appointment_reschedules"

    id = Column(Integer, primary_key=True)
    appointment_id = Column(Integer, ForeignKey("appointments.id", ondelete="CASCADE"), nullable=False, index=True)
    from_date = Column(Date, nullable=False)
    from_start_time = Column(String(5))
    from_end_time = Column(String(5))
    to_date = Column(Date, nullable=False)
    to_start_time = Column(String(5), nullable=False)
    to_end_time = Column(String(5), nullable=False)
    reason = Column(String)
    rescheduled_by = Column(String, nullable=False)
    rescheduled_by_role = Column(String, nullable=False)  # patient/admin
    rescheduled_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    appointment = relationship("Appointment", back_populates="reschedule_history")
