"""Provider and dental service model definitions."""

from sqlalchemy import Boolean, Column, Float, Integer, String
from dental_backend.database import Base


class Provider(Base):
    """A dentist or hygienist who can be booked."""
    __tablename__ = "providers"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    specialty = Column(String)
    email = Column(String)
    is_active = Column(Boolean, default=True, nullable=False)


class DentalService(Base):
    """A bookable treatment; its duration sizes the appointment."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    category = Column(String, default="general")
    duration_minutes = Column(Integer, nullable=False, default=30)
    price = Column(Float, nullable=False, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
