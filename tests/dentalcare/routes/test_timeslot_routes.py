from datetime import date

import pytest
from fastapi import HTTPException
from pydantic import ValidationError

from dentalcare.models.timeslot import TimeSlot
from dentalcare.routes.schemas import (
    BulkTimeSlotRequest,
    GenerateSlotsRequest,
    TimeSlotCreateRequest,
    TimeSlotUpdateRequest,
)
from dentalcare.routes.timeslot_routes import (
    create_time_slot,
    create_time_slots_bulk,
    delete_time_slot,
    generate_time_slots,
    list_available_slots,
    list_slots_for_date,
    update_time_slot,
)

MONDAY = date(2025, 2, 3)
SATURDAY = date(2025, 2, 8)


@pytest.fixture(autouse=True)
def skip_schema_checks(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr('dentalcare.routes.timeslot_routes.ensure_database_ready', lambda: None)


def test_create_request_accepts_camel_case_keys() -> None:
    request = TimeSlotCreateRequest.model_validate(
        {'date': '2025-02-03', 'time': ' 9:00 AM ', 'doctorName': 'Dr. Mike Chen', 'maxBookings': 2}
    )

    assert request.time == '9:00 AM'
    assert request.doctor_name == 'Dr. Mike Chen'
    assert request.max_bookings == 2


def test_create_request_rejects_blank_doctor() -> None:
    with pytest.raises(ValidationError):
        TimeSlotCreateRequest(date=MONDAY, time='9:00 AM', doctor_name='  ')


def test_create_time_slot_returns_capacity_fields(db, staff) -> None:
    created = create_time_slot(
        TimeSlotCreateRequest(date=MONDAY, time='9:00 am', doctor_name='Dr. Mike Chen', max_bookings=2),
        current_user=staff,
        db=db,
    )

    assert created.time == '9:00 AM'
    assert created.remaining_capacity == 2
    assert created.is_bookable is True
    assert created.slot_type == 'general'


def test_create_time_slot_rejects_duplicates(db, staff) -> None:
    request = TimeSlotCreateRequest(date=MONDAY, time='9:00 AM', doctor_name='Dr. Mike Chen')
    create_time_slot(request, current_user=staff, db=db)

    with pytest.raises(HTTPException) as exception_info:
        create_time_slot(request, current_user=staff, db=db)

    assert exception_info.value.status_code == 400
    assert 'already exists' in exception_info.value.detail


def test_create_time_slot_rejects_weekends(db, staff) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_time_slot(
            TimeSlotCreateRequest(date=SATURDAY, time='9:00 AM', doctor_name='Dr. Mike Chen'),
            current_user=staff,
            db=db,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Time slots can only be created on weekdays (Monday through Friday).'


def test_create_time_slot_rejects_unknown_doctor(db, staff) -> None:
    with pytest.raises(HTTPException) as exception_info:
        create_time_slot(
            TimeSlotCreateRequest(date=MONDAY, time='9:00 AM', doctor_name='Dr. Nobody'),
            current_user=staff,
            db=db,
        )

    assert exception_info.value.status_code == 400


def test_bulk_create_is_all_or_nothing(db, staff) -> None:
    request = BulkTimeSlotRequest(
        time_slots=[
            TimeSlotCreateRequest(date=MONDAY, time='9:00 AM', doctor_name='Dr. Mike Chen'),
            TimeSlotCreateRequest(date=MONDAY, time='25:00 PM', doctor_name='Dr. Mike Chen'),
        ]
    )

    with pytest.raises(HTTPException) as exception_info:
        create_time_slots_bulk(request, current_user=staff, db=db)

    assert exception_info.value.status_code == 400
    assert db.query(TimeSlot).count() == 0


def test_bulk_create_returns_every_slot(db, staff) -> None:
    request = BulkTimeSlotRequest.model_validate(
        {
            'timeSlots': [
                {'date': '2025-02-03', 'time': '9:00 AM', 'doctorName': 'Dr. Mike Chen'},
                {'date': '2025-02-03', 'time': '9:30 AM', 'doctorName': 'Dr. Mike Chen'},
            ]
        }
    )

    created = create_time_slots_bulk(request, current_user=staff, db=db)

    assert [slot.time for slot in created] == ['9:00 AM', '9:30 AM']


def test_generate_time_slots_skips_existing_keys(db, staff) -> None:
    request = GenerateSlotsRequest(start_date=MONDAY, days=1)

    first = generate_time_slots(request, current_user=staff, db=db)
    second = generate_time_slots(request, current_user=staff, db=db)

    assert first.created == 54
    assert first.skipped == 0
    assert second.created == 0
    assert second.skipped == 54
    assert db.query(TimeSlot).count() == 54


def test_generate_time_slots_accepts_capacity_overrides(db, staff) -> None:
    request = GenerateSlotsRequest.model_validate(
        {'startDate': '2025-02-03', 'days': 1, 'doctors': ['Dr. Mike Chen'], 'timeGrid': ['9:00 AM'], 'maxBookings': 2}
    )

    response = generate_time_slots(request, current_user=staff, db=db)

    assert response.created == 1
    assert response.slots[0].max_bookings == 2
    assert response.slots[0].duration == 30


def test_list_slots_for_date_can_filter_to_bookable(db, add_slot) -> None:
    add_slot(MONDAY, '2:00 PM')
    add_slot(MONDAY, '9:00 AM', current_bookings=1)
    add_slot(MONDAY, '10:00 AM', is_available=False)
    add_slot(MONDAY, '11:00 AM', doctor_name='Dr. Sarah Johnson')

    every_slot = list_slots_for_date(MONDAY, doctor='Dr. Mike Chen', available_only=False, db=db)
    bookable = list_slots_for_date(MONDAY, doctor=None, available_only=True, db=db)

    assert [slot.time for slot in every_slot] == ['9:00 AM', '10:00 AM', '2:00 PM']
    assert [slot.time for slot in bookable] == ['11:00 AM', '2:00 PM']


def test_list_slots_for_date_returns_empty_list_for_empty_day(db) -> None:
    assert list_slots_for_date(MONDAY, doctor=None, available_only=True, db=db) == []


def test_list_available_slots_starts_tomorrow(db, add_slot, next_open_day) -> None:
    add_slot(next_open_day, '9:00 AM')
    add_slot(date.today(), '11:00 PM')

    slots = list_available_slots(days=7, doctor=None, db=db)

    assert [(slot.date, slot.time) for slot in slots] == [(next_open_day, '9:00 AM')]


def test_update_time_slot_requires_changes(db, staff, add_slot) -> None:
    slot = add_slot(MONDAY, '9:00 AM')

    with pytest.raises(HTTPException) as exception_info:
        update_time_slot(slot.id, TimeSlotUpdateRequest(), current_user=staff, db=db)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'No changes provided.'


def test_update_time_slot_cannot_drop_capacity_below_bookings(db, staff, add_slot) -> None:
    slot = add_slot(MONDAY, '9:00 AM', max_bookings=3, current_bookings=2)

    with pytest.raises(HTTPException) as exception_info:
        update_time_slot(slot.id, TimeSlotUpdateRequest(max_bookings=1), current_user=staff, db=db)

    assert exception_info.value.status_code == 400


def test_update_time_slot_blocks_a_slot(db, staff, add_slot) -> None:
    slot = add_slot(MONDAY, '9:00 AM')

    updated = update_time_slot(slot.id, TimeSlotUpdateRequest(is_available=False), current_user=staff, db=db)

    assert updated.is_available is False
    assert updated.is_bookable is False


def test_update_time_slot_returns_not_found(db, staff) -> None:
    with pytest.raises(HTTPException) as exception_info:
        update_time_slot(404, TimeSlotUpdateRequest(notes='x'), current_user=staff, db=db)

    assert exception_info.value.status_code == 404


def test_delete_time_slot_refuses_active_bookings(db, staff, patient, add_slot, add_appointment) -> None:
    slot = add_slot(MONDAY, '9:00 AM', current_bookings=1)
    add_appointment(patient, MONDAY, '9:00 AM', slot_id=slot.id)

    with pytest.raises(HTTPException) as exception_info:
        delete_time_slot(slot.id, current_user=staff, db=db)

    assert exception_info.value.status_code == 400
    assert db.query(TimeSlot).count() == 1


def test_delete_time_slot_removes_free_slot(db, staff, add_slot) -> None:
    slot = add_slot(MONDAY, '9:00 AM')

    delete_time_slot(slot.id, current_user=staff, db=db)

    assert db.query(TimeSlot).count() == 0
