import os
from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault('DATABASE_URL', 'sqlite:///:memory:')
os.environ.setdefault('JWT_SECRET_KEY', 'test-secret')

from dentalcare.database import Base  # noqa: E402
from dentalcare.models.appointment import Appointment  # noqa: E402
from dentalcare.models.timeslot import TimeSlot  # noqa: E402
from dentalcare.models.user import User  # noqa: E402

TABLES = [User.__table__, TimeSlot.__table__, Appointment.__table__]


def next_weekday(start: date) -> date:
    while start.weekday() >= 5:
        start += timedelta(days=1)
    return start


@pytest.fixture
def next_open_day() -> date:
    """The first weekday after today; slots there are always still in the future."""
    return next_weekday(date.today() + timedelta(days=1))


@pytest.fixture
def session_factory():
    engine = create_engine('sqlite:///:memory:')
    Base.metadata.create_all(bind=engine, tables=TABLES)
    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine, tables=list(reversed(TABLES)))
        engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def patient(db):
    user = User(email='patient@example.com', hashed_password='', role='patient', first_name='Pat')
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def other_patient(db):
    user = User(email='other@example.com', hashed_password='', role='patient')
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def staff(db):
    user = User(email='frontdesk@example.com', hashed_password='', role='admin')
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def add_slot(db):
    def _add_slot(slot_date, slot_time, doctor_name='Dr. Mike Chen', **fields):
        slot = TimeSlot(
            date=slot_date,
            time=slot_time,
            doctor_name=doctor_name,
            is_available=fields.pop('is_available', True),
            max_bookings=fields.pop('max_bookings', 1),
            current_bookings=fields.pop('current_bookings', 0),
            **fields,
        )
        db.add(slot)
        db.commit()
        db.refresh(slot)
        return slot

    return _add_slot


@pytest.fixture
def add_appointment(db):
    def _add_appointment(patient, appointment_date, appointment_time, status='pending', **fields):
        appointment = Appointment(
            patient_id=patient.id,
            doctor_name=fields.pop('doctor_name', 'Dr. Mike Chen'),
            treatment_type=fields.pop('treatment_type', 'Routine Cleaning'),
            appointment_date=appointment_date,
            appointment_time=appointment_time,
            status=status,
            **fields,
        )
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    return _add_appointment
