from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dentalcare.auth.dependencies import get_current_user
from dentalcare.database import get_db
from dentalcare.models.user import User
from dentalcare.routes.appointment_routes import appointment_response
from dentalcare.routes.errors import database_unavailable, ensure_database_ready, to_http_exception
from dentalcare.routes.schemas import (
    QuickBookOptionResponse,
    QuickBookRequest,
    QuickBookResponse,
    QuickBookStepResponse,
)
from dentalcare.scheduling import quick_book
from dentalcare.scheduling.errors import SchedulingError

router = APIRouter(tags=['quick-book'])


@router.get('/options', response_model=list[QuickBookOptionResponse])
def list_booking_options(db: Session = Depends(get_db)):
    ensure_database_ready()

    try:
        options = quick_book.booking_options(db)
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return [
        QuickBookOptionResponse(
            id=option.profile.id,
            title=option.profile.title,
            description=option.profile.description,
            procedure=option.profile.procedure,
            estimated_time=option.profile.estimated_time,
            priority=option.profile.priority,
            available_slots=option.available_slots,
        )
        for option in options
    ]


@router.post('', response_model=QuickBookResponse)
def run_quick_book(
    data: QuickBookRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        result = quick_book.quick_book(db, current_user, data.option_id)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        db.rollback()
        raise database_unavailable() from exc

    return QuickBookResponse(
        option_id=result.profile.id,
        title=result.profile.title,
        appointment=appointment_response(result.appointment),
        steps=[
            QuickBookStepResponse(id=step.id, name=step.name, description=step.description, progress=step.progress)
            for step in result.steps
        ],
        progress=result.progress,
    )
