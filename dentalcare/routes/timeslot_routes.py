from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dentalcare.auth.dependencies import require_staff
from dentalcare.database import get_db
from dentalcare.models.timeslot import TimeSlot
from dentalcare.models.user import User
from dentalcare.routes.errors import database_unavailable, ensure_database_ready, to_http_exception
from dentalcare.routes.schemas import (
    BulkTimeSlotRequest,
    GenerateSlotsRequest,
    GenerateSlotsResponse,
    TimeSlotCreateRequest,
    TimeSlotResponse,
    TimeSlotUpdateRequest,
)
from dentalcare.scheduling import availability, slot_generator, slot_store
from dentalcare.scheduling.errors import SchedulingError
from dentalcare.scheduling.slot_store import SlotPlan

router = APIRouter(tags=['timeslots'])


def slot_response(slot: TimeSlot) -> TimeSlotResponse:
    return TimeSlotResponse(
        id=slot.id,
        date=slot.date,
        time=slot.time,
        doctor_name=slot.doctor_name,
        is_available=bool(slot.is_available),
        slot_type=slot.slot_type,
        duration=slot.duration,
        max_bookings=slot.max_bookings,
        current_bookings=slot.current_bookings or 0,
        remaining_capacity=slot_store.remaining_capacity(slot),
        is_bookable=slot_store.is_bookable(slot),
        notes=slot.notes,
        created_at=slot.created_at,
    )


def to_plan(data: TimeSlotCreateRequest) -> SlotPlan:
    return SlotPlan(
        date=data.date,
        time=data.time,
        doctor_name=data.doctor_name,
        is_available=data.is_available,
        slot_type=data.slot_type,
        duration=data.duration,
        max_bookings=data.max_bookings,
        notes=data.notes,
    )


@router.get('/available', response_model=list[TimeSlotResponse])
def list_available_slots(
    days: int = Query(default=7, ge=1, le=30),
    doctor: str | None = Query(default=None),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        slots = availability.available_slots_in_window(db, days=days, doctor_name=doctor)
        return [slot_response(slot) for slot in slots]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/{slot_date}', response_model=list[TimeSlotResponse])
def list_slots_for_date(
    slot_date: date,
    doctor: str | None = Query(default=None),
    available_only: bool = Query(default=False),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        if available_only:
            slots = availability.available_slots(db, slot_date, doctor)
        else:
            slots = slot_store.list_slots(db, slot_date, doctor)
        return [slot_response(slot) for slot in slots]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.post('', response_model=TimeSlotResponse, status_code=status.HTTP_201_CREATED)
def create_time_slot(
    data: TimeSlotCreateRequest,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        return slot_response(slot_store.create_slot(db, to_plan(data)))
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/bulk', response_model=list[TimeSlotResponse], status_code=status.HTTP_201_CREATED)
def create_time_slots_bulk(
    data: BulkTimeSlotRequest,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        slots = slot_store.create_slots(db, [to_plan(item) for item in data.time_slots])
        return [slot_response(slot) for slot in slots]
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/generate', response_model=GenerateSlotsResponse, status_code=status.HTTP_201_CREATED)
def generate_time_slots(
    data: GenerateSlotsRequest,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        result = slot_generator.generate_slots(
            db,
            start_date=data.start_date,
            days=data.days,
            time_grid=data.time_grid,
            doctors=data.doctors,
            **data.model_dump(include={'slot_type', 'duration', 'max_bookings'}, exclude_none=True),
        )
        return GenerateSlotsResponse(
            created=len(result.created),
            skipped=result.skipped,
            slots=[slot_response(slot) for slot in result.created],
        )
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.patch('/{slot_id}', response_model=TimeSlotResponse)
def update_time_slot(
    slot_id: int,
    data: TimeSlotUpdateRequest,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='No changes provided.')

    ensure_database_ready()

    try:
        return slot_response(slot_store.update_slot(db, slot_id, **changes))
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.delete('/{slot_id}', status_code=status.HTTP_204_NO_CONTENT)
def delete_time_slot(
    slot_id: int,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        slot_store.delete_slot(db, slot_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc
