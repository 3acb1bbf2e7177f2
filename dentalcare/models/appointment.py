"""Appointment model definitions."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text
from dentalcare.database import Base, utcnow


class Appointment(Base):
    """A patient's claim against a time slot."""
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True)
    patient_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    slot_id = Column(Integer, ForeignKey("time_slots.id"), nullable=True)
    doctor_name = Column(String, nullable=False)
    treatment_type = Column(String, nullable=False)
    appointment_date = Column(Date, nullable=False)
    appointment_time = Column(String, nullable=False)  # "10:30 AM"
    status = Column(String, nullable=False, default="pending")
    notes = Column(Text)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)


STATUS_PENDING = "pending"
STATUS_CONFIRMED = "confirmed"
STATUS_COMPLETED = "completed"
STATUS_CANCELLED = "cancelled"
STATUS_MISSED = "missed"
# Legacy status some older records still carry; treated like pending.
STATUS_SCHEDULED = "scheduled"

APPOINTMENT_STATUSES = (
    STATUS_PENDING,
    STATUS_CONFIRMED,
    STATUS_COMPLETED,
    STATUS_CANCELLED,
    STATUS_MISSED,
)

# Statuses whose appointment still holds a seat on its slot.
SEAT_HOLDING_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED, STATUS_SCHEDULED)
