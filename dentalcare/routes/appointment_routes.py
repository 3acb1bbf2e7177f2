from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dentalcare.auth.dependencies import get_current_user, require_staff
from dentalcare.core import config
from dentalcare.database import get_db
from dentalcare.models.appointment import Appointment
from dentalcare.models.user import User
from dentalcare.routes.errors import database_unavailable, ensure_database_ready, to_http_exception
from dentalcare.routes.schemas import (
    AppointmentResponse,
    CleanupRequest,
    CleanupResponse,
    CreateAppointmentRequest,
    StatusUpdateRequest,
)
from dentalcare.scheduling import booking, lifecycle
from dentalcare.scheduling.errors import SchedulingError

router = APIRouter(tags=['appointments'])


def appointment_response(appointment: Appointment, now: datetime | None = None) -> AppointmentResponse:
    return AppointmentResponse(
        id=appointment.id,
        patient_id=appointment.patient_id,
        slot_id=appointment.slot_id,
        doctor_name=appointment.doctor_name,
        treatment_type=appointment.treatment_type,
        appointment_date=appointment.appointment_date,
        appointment_time=appointment.appointment_time,
        status=appointment.status,
        classification=lifecycle.classify(appointment, now),
        notes=appointment.notes,
        created_at=appointment.created_at,
        updated_at=appointment.updated_at,
    )


@router.post('', response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
def create_appointment(
    data: CreateAppointmentRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = booking.book(
            db,
            current_user,
            doctor_name=data.doctor_name,
            treatment_type=data.treatment_type,
            appointment_date=data.appointment_date,
            appointment_time=data.appointment_time,
            notes=data.notes,
        )
        return appointment_response(appointment)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.get('', response_model=list[AppointmentResponse])
def list_appointments(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        query = db.query(Appointment)
        if not config.is_staff_role(current_user.role):
            query = query.filter(Appointment.patient_id == current_user.id)
        appointments = query.order_by(Appointment.appointment_date.desc(), Appointment.id.desc()).all()

        now = datetime.now()
        return [appointment_response(appointment, now) for appointment in appointments]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.get('/missed', response_model=list[AppointmentResponse])
def list_missed_appointments(
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        now = datetime.now()
        return [appointment_response(appointment, now) for appointment in lifecycle.missed_candidates(db, now)]
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


@router.patch('/{appointment_id}/status', response_model=AppointmentResponse)
def update_appointment_status(
    appointment_id: int,
    data: StatusUpdateRequest,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        appointment = lifecycle.update_status(db, appointment_id, data.status, force=data.force)
        return appointment_response(appointment)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc


@router.post('/cleanup', response_model=CleanupResponse)
def cleanup_missed_appointments(
    data: CleanupRequest,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    if data.appointment_ids is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail='Invalid appointment IDs')

    ensure_database_ready()

    try:
        result = lifecycle.cleanup_missed(db, data.appointment_ids)
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return CleanupResponse(
        message='Appointments cleaned up successfully',
        count=result.count,
        missed_ids=result.missed_ids,
        skipped_ids=result.skipped_ids,
    )
