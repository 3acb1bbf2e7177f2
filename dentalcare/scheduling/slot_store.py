"""Persistence helpers for time slots.

Every write to ``time_slots`` outside of booking goes through this module.
Capacity counters (``current_bookings``) are only ever changed by the booking
engine; here they are read, and guarded when staff edit ``max_bookings``.
"""

import logging
from dataclasses import dataclass
from datetime import date
from typing import Iterable

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from dentalcare.core import config
from dentalcare.models.appointment import SEAT_HOLDING_STATUSES, Appointment
from dentalcare.models.timeslot import TimeSlot
from dentalcare.scheduling import timefmt
from dentalcare.scheduling.errors import NotFoundError, ValidationError

logger = logging.getLogger(__name__)


@dataclass
class SlotPlan:
    """The shape of a slot that has not been persisted yet."""

    date: date
    time: str
    doctor_name: str
    is_available: bool = True
    slot_type: str = config.DEFAULT_SLOT_TYPE
    duration: int = config.DEFAULT_SLOT_DURATION_MINUTES
    max_bookings: int = config.DEFAULT_SLOT_MAX_BOOKINGS
    notes: str | None = None

    @property
    def key(self) -> tuple[date, str, str]:
        return self.date, self.time, self.doctor_name


def remaining_capacity(slot: TimeSlot) -> int:
    return max(0, (slot.max_bookings or 0) - (slot.current_bookings or 0))


def is_bookable(slot: TimeSlot) -> bool:
    # A slot may be flagged available with no capacity left, or blocked with
    # capacity to spare; both count as not bookable.
    return bool(slot.is_available) and remaining_capacity(slot) > 0


def sort_by_time(slots: Iterable[TimeSlot]) -> list[TimeSlot]:
    return sorted(slots, key=lambda slot: (slot.date, timefmt.time_sort_key(slot.time), slot.doctor_name, slot.id))


def validate_doctor(doctor_name: str, roster: list[str] | None = None) -> str:
    roster = config.DOCTOR_ROSTER if roster is None else roster
    normalized = (doctor_name or '').strip()
    if not normalized:
        raise ValidationError('Doctor name is required.')
    if normalized not in roster:
        raise ValidationError(f'{normalized} is not on the practice roster.')
    return normalized


def validate_plan(plan: SlotPlan, roster: list[str] | None = None) -> SlotPlan:
    if plan.date.weekday() >= 5:
        raise ValidationError('Time slots can only be created on weekdays (Monday through Friday).')
    if plan.max_bookings is None or plan.max_bookings < 1:
        raise ValidationError('Max bookings must be at least 1.')
    if plan.duration is None or plan.duration < 1:
        raise ValidationError('Duration must be a positive number of minutes.')

    plan.time = timefmt.normalize_time(plan.time)
    plan.doctor_name = validate_doctor(plan.doctor_name, roster)
    plan.slot_type = (plan.slot_type or config.DEFAULT_SLOT_TYPE).strip().lower()
    plan.notes = (plan.notes or '').strip() or None
    return plan


def find_slot(db: Session, slot_id: int) -> TimeSlot:
    slot = db.query(TimeSlot).filter(TimeSlot.id == slot_id).first()
    if slot is None:
        raise NotFoundError('Time slot not found.')
    return slot


def find_slots_by_key(db: Session, slot_date: date, slot_time: str, doctor_name: str) -> list[TimeSlot]:
    return db.query(TimeSlot).filter(
        TimeSlot.date == slot_date,
        TimeSlot.time == slot_time,
        TimeSlot.doctor_name == doctor_name,
    ).order_by(TimeSlot.id.asc()).all()


def existing_keys(db: Session, dates: Iterable[date]) -> set[tuple[date, str, str]]:
    dates = set(dates)
    if not dates:
        return set()
    rows = db.query(TimeSlot.date, TimeSlot.time, TimeSlot.doctor_name).filter(TimeSlot.date.in_(dates)).all()
    return {(row[0], row[1], row[2]) for row in rows}


def list_slots(db: Session, slot_date: date, doctor_name: str | None = None) -> list[TimeSlot]:
    query = db.query(TimeSlot).filter(TimeSlot.date == slot_date)
    if doctor_name:
        query = query.filter(TimeSlot.doctor_name == doctor_name.strip())
    return sort_by_time(query.all())


def _to_model(plan: SlotPlan) -> TimeSlot:
    return TimeSlot(
        date=plan.date,
        time=plan.time,
        doctor_name=plan.doctor_name,
        is_available=plan.is_available,
        slot_type=plan.slot_type,
        duration=plan.duration,
        max_bookings=plan.max_bookings,
        current_bookings=0,
        notes=plan.notes,
    )


def create_slots(db: Session, plans: Iterable[SlotPlan], roster: list[str] | None = None) -> list[TimeSlot]:
    """Validate and insert ``plans`` in one transaction.

    Either every slot is created or none is. A key that already exists, in the
    database or earlier in the same batch, rejects the whole batch.
    """
    validated = [validate_plan(plan, roster) for plan in plans]
    if not validated:
        return []

    seen: set[tuple[date, str, str]] = set()
    taken = existing_keys(db, {plan.date for plan in validated})
    for plan in validated:
        if plan.key in seen or plan.key in taken:
            raise ValidationError(
                f'A time slot for {plan.doctor_name} on {plan.date.isoformat()} at {plan.time} already exists.'
            )
        seen.add(plan.key)

    slots = [_to_model(plan) for plan in validated]
    db.add_all(slots)
    try:
        db.commit()
    except IntegrityError as exc:
        db.rollback()
        raise ValidationError('One or more of these time slots already exists.') from exc

    for slot in slots:
        db.refresh(slot)

    logger.info('Created %d time slot(s)', len(slots))
    return slots


def create_slot(db: Session, plan: SlotPlan, roster: list[str] | None = None) -> TimeSlot:
    return create_slots(db, [plan], roster)[0]


def update_slot(
    db: Session,
    slot_id: int,
    *,
    is_available: bool | None = None,
    max_bookings: int | None = None,
    slot_type: str | None = None,
    duration: int | None = None,
    notes: str | None = None,
) -> TimeSlot:
    slot = find_slot(db, slot_id)

    if max_bookings is not None:
        if max_bookings < 1:
            raise ValidationError('Max bookings must be at least 1.')
        # Guarded like a claim so a concurrent booking cannot slip past the new limit.
        result = db.execute(
            update(TimeSlot)
            .where(TimeSlot.id == slot_id, TimeSlot.current_bookings <= max_bookings)
            .values(max_bookings=max_bookings)
        )
        if result.rowcount == 0:
            db.rollback()
            raise ValidationError(
                f'Max bookings cannot be lower than the {slot.current_bookings} booking(s) already on this slot.'
            )

    if duration is not None:
        if duration < 1:
            db.rollback()
            raise ValidationError('Duration must be a positive number of minutes.')
        slot.duration = duration
    if is_available is not None:
        slot.is_available = is_available
    if slot_type is not None:
        slot.slot_type = slot_type.strip().lower() or config.DEFAULT_SLOT_TYPE
    if notes is not None:
        slot.notes = notes.strip() or None

    db.commit()
    db.refresh(slot)
    logger.info('Updated time slot %s (available=%s, max_bookings=%s)', slot.id, slot.is_available, slot.max_bookings)
    return slot


def delete_slot(db: Session, slot_id: int) -> None:
    slot = find_slot(db, slot_id)

    active = db.query(Appointment).filter(
        Appointment.slot_id == slot_id,
        Appointment.status.in_(SEAT_HOLDING_STATUSES),
    ).count()
    if active:
        raise ValidationError('This time slot has active appointments. Cancel them before deleting the slot.')

    db.query(Appointment).filter(Appointment.slot_id == slot_id).update(
        {Appointment.slot_id: None}, synchronize_session=False
    )
    db.delete(slot)
    db.commit()
    logger.info('Deleted time slot %s', slot_id)
