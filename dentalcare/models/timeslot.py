"""Time slot model definitions."""

from sqlalchemy import Boolean, Column, Date, DateTime, Integer, String, UniqueConstraint
from dentalcare.database import Base, utcnow


class TimeSlot(Base):
    """A bookable (date, time, doctor) unit with finite capacity."""
    __tablename__ = "time_slots"
    __table_args__ = (
        UniqueConstraint("date", "time", "doctor_name", name="uq_time_slots_date_time_doctor"),
    )

    id = Column(Integer, primary_key=True)
    date = Column(Date, nullable=False, index=True)
    time = Column(String, nullable=False)  # "10:30 AM"
    doctor_name = Column(String, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    slot_type = Column(String, default="general")
    duration = Column(Integer, default=30)
    max_bookings = Column(Integer, default=1, nullable=False)
    current_bookings = Column(Integer, default=0, nullable=False)
    notes = Column(String)
    created_at = Column(DateTime, default=utcnow)
