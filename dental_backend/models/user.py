"""User model definitions."""

from sqlalchemy import Column, Integer, String
from dental_backend.database import Base


class User(Base):
    """Represents an account known to the identity provider."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    full_name = Column(String)
    role = Column(String, nullable=False, default="patient")  # patient/admin/staff/dentist
