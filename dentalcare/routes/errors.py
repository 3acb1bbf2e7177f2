from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from dentalcare.database import ensure_appointment_schema, ensure_timeslot_schema
from dentalcare.scheduling.errors import CapacityError, SchedulingError

DATABASE_UNAVAILABLE_DETAIL = 'Database unavailable. Verify DATABASE_URL and database credentials.'


def ensure_database_ready() -> None:
    try:
        ensure_timeslot_schema()
        ensure_appointment_schema()
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc


def database_unavailable() -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=DATABASE_UNAVAILABLE_DETAIL)


def to_http_exception(error: SchedulingError) -> HTTPException:
    if isinstance(error, CapacityError):
        return HTTPException(
            status_code=error.status_code,
            detail={'message': error.message, 'retryable': error.retryable},
        )
    return HTTPException(status_code=error.status_code, detail=error.message)
