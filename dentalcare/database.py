from datetime import datetime, timezone
from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from dentalcare.core import config

DATABASE_URL = config.DATABASE_URL

connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, matching the naive DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)

_schema_lock = Lock()
_timeslot_schema_checked = False
_appointment_schema_checked = False


def ensure_timeslot_schema() -> None:
    global _timeslot_schema_checked

    if _timeslot_schema_checked:
        return

    with _schema_lock:
        if _timeslot_schema_checked:
            return

        inspector = inspect(engine)

        if 'time_slots' not in inspector.get_table_names():
            _timeslot_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('time_slots')}
        migration_steps = [
            ('slot_type', "ALTER TABLE time_slots ADD COLUMN slot_type VARCHAR DEFAULT 'general'"),
            ('duration', 'ALTER TABLE time_slots ADD COLUMN duration INTEGER DEFAULT 30'),
            ('max_bookings', 'ALTER TABLE time_slots ADD COLUMN max_bookings INTEGER DEFAULT 1'),
            ('current_bookings', 'ALTER TABLE time_slots ADD COLUMN current_bookings INTEGER DEFAULT 0'),
            ('notes', 'ALTER TABLE time_slots ADD COLUMN notes VARCHAR'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_time_slots_date_doctor ON time_slots(date, doctor_name)')
            )

        _timeslot_schema_checked = True


def ensure_appointment_schema() -> None:
    global _appointment_schema_checked

    if _appointment_schema_checked:
        return

    with _schema_lock:
        if _appointment_schema_checked:
            return

        inspector = inspect(engine)

        if 'appointments' not in inspector.get_table_names():
            _appointment_schema_checked = True
            return

        existing_columns = {column['name'] for column in inspector.get_columns('appointments')}
        migration_steps = [
            ('slot_id', 'ALTER TABLE appointments ADD COLUMN slot_id INTEGER'),
            ('notes', 'ALTER TABLE appointments ADD COLUMN notes TEXT'),
            ('updated_at', 'ALTER TABLE appointments ADD COLUMN updated_at TIMESTAMP'),
        ]

        with engine.begin() as connection:
            for column_name, statement in migration_steps:
                if column_name not in existing_columns:
                    connection.execute(text(statement))
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_status_date ON appointments(status, appointment_date)')
            )
            connection.execute(
                text('CREATE INDEX IF NOT EXISTS idx_appointments_patient ON appointments(patient_id)')
            )

        _appointment_schema_checked = True


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
