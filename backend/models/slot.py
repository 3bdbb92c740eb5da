"""Slot model definitions."""

from sqlalchemy import Boolean, Column, Date, Integer, Time, UniqueConstraint
from backend.database import Base


class SlotRow(Base):
    """A bookable (date, time) slot and its availability flag."""
    __tablename__ = "slots"
    __table_args__ = (UniqueConstraint("date", "time", name="uq_slots_date_time"),)

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False, index=True)
    time = Column(Time, nullable=False)
    available = Column(Boolean, nullable=False, default=True)
