import math
from datetime import date, timedelta

from sqlalchemy.orm import Session

from dentalcare.core import config
from dentalcare.models.timeslot import TimeSlot
from dentalcare.scheduling import slot_store

EMERGENCY_PROCEDURE = 'Emergency Consultation'
DEFAULT_SUITABILITY_RATIO = 0.3

# Share of the open slots each procedure is assumed to fit into. This is an
# estimate for display only and reserves nothing.
SUITABILITY_RATIOS = {
    'Routine Cleaning': 0.4,
    'New Patient Consultation': 0.25,
    'Follow-up': 0.6,
    EMERGENCY_PROCEDURE: 1.0,
}


def available_slots(db: Session, slot_date: date, doctor_name: str | None = None) -> list[TimeSlot]:
    """Bookable slots for ``slot_date`` in time order; empty when none exist.

    Slots left behind by doctors who have since left the roster are not
    bookable and are skipped.
    """
    return [
        slot
        for slot in slot_store.list_slots(db, slot_date, doctor_name)
        if slot_store.is_bookable(slot) and slot.doctor_name in config.DOCTOR_ROSTER
    ]


def available_slots_in_window(
    db: Session,
    start_date: date | None = None,
    days: int | None = None,
    doctor_name: str | None = None,
) -> list[TimeSlot]:
    start_date = start_date or date.today() + timedelta(days=1)
    days = config.QUICK_BOOK_SEARCH_DAYS if days is None else days
    end_date = start_date + timedelta(days=max(days, 0))

    query = db.query(TimeSlot).filter(
        TimeSlot.date >= start_date,
        TimeSlot.date < end_date,
        TimeSlot.is_available.is_(True),
        TimeSlot.current_bookings < TimeSlot.max_bookings,
        TimeSlot.doctor_name.in_(config.DOCTOR_ROSTER),
    )
    if doctor_name:
        query = query.filter(TimeSlot.doctor_name == doctor_name.strip())

    return slot_store.sort_by_time(query.all())


def estimate_suitable_slots(total_available: int, procedure: str) -> int:
    ratio = SUITABILITY_RATIOS.get(procedure, DEFAULT_SUITABILITY_RATIO)
    return math.floor(max(total_available, 0) * ratio)
