"""Appointment model definitions."""

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String, Time
from backend.database import Base


class AppointmentRow(Base):
    """Represents a patient appointment. Cancelled rows are kept for history."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    patient_name = Column(String, nullable=False)
    phone = Column(String, nullable=False, index=True)
    email = Column(String, default="")
    date = Column(Date, nullable=False)
    time = Column(Time, nullable=False)
    appointment_type = Column(String, nullable=False, default="consultation")
    is_new_patient = Column(Boolean, nullable=False, default=False)
    status = Column(String, nullable=False, default="confirmed")
    cancel_reason = Column(String)
    created_at = Column(DateTime(timezone=True))
    updated_at = Column(DateTime(timezone=True))
    cancelled_at = Column(DateTime(timezone=True))
