"""Turns a chosen (date, time, doctor) into an appointment.

Claiming capacity on the slot and inserting the appointment happen in one
transaction. The claim is a conditional UPDATE that only succeeds while the slot
is open and ``current_bookings < max_bookings``, so concurrent requests for the
same slot can never push it past its limit: the losers see zero affected rows
and get a ``CapacityError``.
"""

import logging
from datetime import date, datetime

from sqlalchemy import update
from sqlalchemy.orm import Session

from dentalcare.core import config
from dentalcare.models.appointment import Appointment, STATUS_CONFIRMED, STATUS_PENDING
from dentalcare.models.timeslot import TimeSlot
from dentalcare.models.user import User
from dentalcare.scheduling import slot_store, timefmt
from dentalcare.scheduling.errors import AuthorizationError, CapacityError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

BOOKABLE_STATUSES = (STATUS_PENDING, STATUS_CONFIRMED)


def _parse_date(value: date | str) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise ValidationError(f'Invalid appointment date "{value}". Expected YYYY-MM-DD.') from exc


def _require_fields(**fields) -> None:
    missing = [name for name, value in fields.items() if value is None or not str(value).strip()]
    if missing:
        raise ValidationError(f'Missing required fields: {", ".join(missing)}.')


def claim_slot(db: Session, slot_id: int) -> bool:
    result = db.execute(
        update(TimeSlot)
        .where(
            TimeSlot.id == slot_id,
            TimeSlot.is_available.is_(True),
            TimeSlot.current_bookings < TimeSlot.max_bookings,
        )
        .values(current_bookings=TimeSlot.current_bookings + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def release(db: Session, appointment: Appointment) -> bool:
    """Give the appointment's seat back to its slot. The caller commits."""
    if appointment.slot_id is None:
        return False
    result = db.execute(
        update(TimeSlot)
        .where(TimeSlot.id == appointment.slot_id, TimeSlot.current_bookings > 0)
        .values(current_bookings=TimeSlot.current_bookings - 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def book(
    db: Session,
    patient: User | None,
    doctor_name: str,
    treatment_type: str,
    appointment_date: date | str,
    appointment_time: str,
    notes: str | None = None,
    status: str = STATUS_PENDING,
    now: datetime | None = None,
) -> Appointment:
    if patient is None or patient.id is None:
        raise AuthorizationError('You must be signed in to book an appointment.')

    _require_fields(
        doctorName=doctor_name,
        treatmentType=treatment_type,
        appointmentDate=appointment_date,
        appointmentTime=appointment_time,
    )
    if status not in BOOKABLE_STATUSES:
        raise ValidationError(f'New appointments must be {" or ".join(BOOKABLE_STATUSES)}.')

    doctor_name = slot_store.validate_doctor(doctor_name)
    slot_date = _parse_date(appointment_date)
    slot_time = timefmt.normalize_time(appointment_time)
    notes = (notes or '').strip() or None
    if notes and len(notes) > config.MAX_APPOINTMENT_NOTES_LENGTH:
        raise ValidationError(f'Notes must be {config.MAX_APPOINTMENT_NOTES_LENGTH} characters or fewer.')

    now = now or datetime.now()
    if timefmt.combine(slot_date, slot_time) <= now:
        raise ValidationError('Appointments must be scheduled in the future.')

    candidates = slot_store.find_slots_by_key(db, slot_date, slot_time, doctor_name)
    if not candidates:
        raise NotFoundError(f'No time slot exists for {doctor_name} on {slot_date.isoformat()} at {slot_time}.')

    for slot in candidates:
        if not claim_slot(db, slot.id):
            continue

        appointment = Appointment(
            patient_id=patient.id,
            slot_id=slot.id,
            doctor_name=doctor_name,
            treatment_type=treatment_type.strip(),
            appointment_date=slot_date,
            appointment_time=slot_time,
            status=status,
            notes=notes,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)

        logger.info(
            'Booked appointment %s for patient %s with %s on %s at %s (slot %s)',
            appointment.id,
            patient.id,
            doctor_name,
            slot_date.isoformat(),
            slot_time,
            slot.id,
        )
        return appointment

    db.rollback()
    logger.warning('No capacity left for %s on %s at %s', doctor_name, slot_date.isoformat(), slot_time)
    raise CapacityError(
        f'{doctor_name} is fully booked on {slot_date.isoformat()} at {slot_time}. Please choose another time.'
    )
