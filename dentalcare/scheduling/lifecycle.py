"""Appointment status transitions and the missed-appointment sweep.

    pending   -> confirmed | cancelled
    confirmed -> completed | cancelled
    scheduled -> confirmed | cancelled   (legacy rows, handled like pending)

``missed`` is only ever set by ``cleanup_missed``; nothing marks appointments
missed on a timer. Until the sweep runs, "missed" is a classification computed
from the status and the scheduled wall-clock time.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from sqlalchemy import update
from sqlalchemy.orm import Session

from dentalcare.database import utcnow
from dentalcare.models.appointment import (
    APPOINTMENT_STATUSES,
    Appointment,
    SEAT_HOLDING_STATUSES,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_CONFIRMED,
    STATUS_MISSED,
    STATUS_PENDING,
    STATUS_SCHEDULED,
)
from dentalcare.scheduling import booking, timefmt
from dentalcare.scheduling.errors import CapacityError, NotFoundError, TransitionError, ValidationError

logger = logging.getLogger(__name__)

TRANSITIONS = {
    STATUS_PENDING: {STATUS_CONFIRMED, STATUS_CANCELLED},
    STATUS_SCHEDULED: {STATUS_CONFIRMED, STATUS_CANCELLED},
    STATUS_CONFIRMED: {STATUS_COMPLETED, STATUS_CANCELLED},
    STATUS_COMPLETED: set(),
    STATUS_CANCELLED: set(),
    STATUS_MISSED: set(),
}

UPCOMING_STATUSES = set(SEAT_HOLDING_STATUSES)


@dataclass
class CleanupResult:
    missed_ids: list[int] = field(default_factory=list)
    skipped_ids: list[int] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.missed_ids)


def scheduled_at(appointment: Appointment) -> datetime | None:
    try:
        return timefmt.combine(appointment.appointment_date, appointment.appointment_time)
    except ValidationError:
        logger.warning('Appointment %s has an unreadable time %r', appointment.id, appointment.appointment_time)
        return None


def is_missed(appointment: Appointment, now: datetime | None = None) -> bool:
    if (appointment.status or '').lower() != STATUS_PENDING:
        return False
    when = scheduled_at(appointment)
    return when is not None and when < (now or datetime.now())


def is_upcoming(appointment: Appointment, now: datetime | None = None) -> bool:
    return (appointment.status or '').lower() in UPCOMING_STATUSES and not is_missed(appointment, now)


def classify(appointment: Appointment, now: datetime | None = None) -> str:
    now = now or datetime.now()
    if is_missed(appointment, now):
        return 'missed'
    if is_upcoming(appointment, now):
        return 'upcoming'
    return (appointment.status or '').lower()


def can_transition(current_status: str, new_status: str) -> bool:
    return new_status in TRANSITIONS.get(current_status, set())


def find_appointment(db: Session, appointment_id: int) -> Appointment:
    appointment = db.query(Appointment).filter(Appointment.id == appointment_id).first()
    if appointment is None:
        raise NotFoundError('Appointment not found.')
    return appointment


def update_status(db: Session, appointment_id: int, new_status: str, force: bool = False) -> Appointment:
    """Move an appointment to ``new_status``.

    ``force`` is the explicit staff override: it skips the transition table but
    still only accepts known statuses, and never sets ``missed`` (that belongs
    to the sweep). Only the status changes; the owning patient never does.
    """
    normalized = (new_status or '').strip().lower()
    if normalized not in APPOINTMENT_STATUSES:
        raise ValidationError(f'Unknown appointment status "{new_status}".')
    if normalized == STATUS_MISSED:
        raise ValidationError('Appointments are marked missed by the cleanup sweep only.')

    appointment = find_appointment(db, appointment_id)
    current = (appointment.status or STATUS_PENDING).lower()

    if current == normalized:
        return appointment

    if not can_transition(current, normalized):
        if not force:
            raise TransitionError(current, normalized)
        logger.warning('Forcing appointment %s from %s to %s', appointment.id, current, normalized)

    if normalized == STATUS_CANCELLED and current in SEAT_HOLDING_STATUSES:
        booking.release(db, appointment)
    elif current == STATUS_CANCELLED and normalized in SEAT_HOLDING_STATUSES and appointment.slot_id is not None:
        # Forced reinstatement has to win the seat back like a fresh booking.
        if not booking.claim_slot(db, appointment.slot_id):
            db.rollback()
            raise CapacityError('The original time slot is fully booked; book a new time instead.')

    # Conditional on the status we read, so two racing updates cannot both
    # release the same seat.
    changed = db.execute(
        update(Appointment)
        .where(Appointment.id == appointment.id, Appointment.status == appointment.status)
        .values(status=normalized, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    if changed.rowcount != 1:
        db.rollback()
        raise TransitionError(current, normalized)
    db.commit()
    db.refresh(appointment)

    logger.info('Appointment %s moved from %s to %s', appointment.id, current, normalized)
    return appointment


def missed_candidates(db: Session, now: datetime | None = None) -> list[Appointment]:
    now = now or datetime.now()
    pending = db.query(Appointment).filter(
        Appointment.status == STATUS_PENDING,
        Appointment.appointment_date <= now.date(),
    ).order_by(Appointment.appointment_date.asc(), Appointment.id.asc()).all()
    return [appointment for appointment in pending if is_missed(appointment, now)]


def cleanup_missed(db: Session, appointment_ids: Iterable[int], now: datetime | None = None) -> CleanupResult:
    """Mark the given past, still-pending appointments as missed.

    Ids that are unknown, not pending, or not yet due are reported back in
    ``skipped_ids``. Running the same ids again changes nothing.
    """
    now = now or datetime.now()
    requested = list(dict.fromkeys(appointment_ids))
    result = CleanupResult()
    if not requested:
        return result

    appointments = {
        appointment.id: appointment
        for appointment in db.query(Appointment).filter(Appointment.id.in_(requested)).all()
    }

    for appointment_id in requested:
        appointment = appointments.get(appointment_id)
        if appointment is None or not is_missed(appointment, now):
            result.skipped_ids.append(appointment_id)
            continue
        appointment.status = STATUS_MISSED
        appointment.updated_at = utcnow()
        result.missed_ids.append(appointment_id)

    db.commit()
    logger.info('Missed-appointment sweep marked %d, skipped %d', result.count, len(result.skipped_ids))
    return result
