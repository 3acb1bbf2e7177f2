import logging
import logging.config

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from dentalcare.core import config
from dentalcare.database import Base, engine, ensure_appointment_schema, ensure_timeslot_schema
from dentalcare.models import appointment, timeslot, user  # noqa: F401
from dentalcare.routes import (
    appointment_routes,
    auth_routes,
    quick_book_routes,
    reminder_routes,
    timeslot_routes,
)

logging.config.dictConfig(config.LOGGING_CONFIG)
logger = logging.getLogger(__name__)

app = FastAPI(title='Dental Practice Scheduling API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        Base.metadata.create_all(bind=engine)
        ensure_timeslot_schema()
        ensure_appointment_schema()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL and database credentials.')


@app.get('/')
def root():
    return {'status': 'Dental Practice API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(timeslot_routes.router, prefix='/timeslots')
app.include_router(appointment_routes.router, prefix='/appointments')
app.include_router(quick_book_routes.router, prefix='/quick-book')
app.include_router(reminder_routes.router, prefix='/reminders')


if __name__ == '__main__':
    import uvicorn

    uvicorn.run('dentalcare.main:app', host='0.0.0.0', port=8000, reload=config.DEBUG)
