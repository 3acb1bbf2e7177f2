from datetime import date

import pytest

from dentalcare.models.timeslot import TimeSlot
from dentalcare.scheduling import slot_store
from dentalcare.scheduling.errors import NotFoundError, ValidationError
from dentalcare.scheduling.slot_store import SlotPlan

MONDAY = date(2025, 2, 3)


def test_create_slot_normalizes_time_and_slot_type(db) -> None:
    slot = slot_store.create_slot(
        db,
        SlotPlan(date=MONDAY, time='9:00am', doctor_name=' Dr. Mike Chen ', slot_type=' Cleaning '),
    )

    assert slot.id is not None
    assert slot.time == '9:00 AM'
    assert slot.doctor_name == 'Dr. Mike Chen'
    assert slot.slot_type == 'cleaning'
    assert slot.current_bookings == 0


@pytest.mark.parametrize(
    ('plan', 'message'),
    [
        (SlotPlan(date=date(2025, 2, 8), time='9:00 AM', doctor_name='Dr. Mike Chen'), 'weekdays'),
        (SlotPlan(date=MONDAY, time='9:00 AM', doctor_name='Dr. Nobody'), 'roster'),
        (SlotPlan(date=MONDAY, time='9:00 AM', doctor_name='Dr. Mike Chen', max_bookings=0), 'at least 1'),
        (SlotPlan(date=MONDAY, time='nine', doctor_name='Dr. Mike Chen'), 'Invalid time'),
    ],
)
def test_create_slot_rejects_invalid_plans(db, plan: SlotPlan, message: str) -> None:
    with pytest.raises(ValidationError) as exception_info:
        slot_store.create_slot(db, plan)

    assert message in exception_info.value.message
    assert db.query(TimeSlot).count() == 0


def test_create_slots_rejects_existing_key(db, add_slot) -> None:
    add_slot(MONDAY, '9:00 AM')

    with pytest.raises(ValidationError) as exception_info:
        slot_store.create_slot(db, SlotPlan(date=MONDAY, time='9:00 AM', doctor_name='Dr. Mike Chen'))

    assert 'already exists' in exception_info.value.message


def test_create_slots_is_all_or_nothing(db) -> None:
    plans = [
        SlotPlan(date=MONDAY, time='9:00 AM', doctor_name='Dr. Mike Chen'),
        SlotPlan(date=MONDAY, time='9:30 AM', doctor_name='Dr. Mike Chen'),
        SlotPlan(date=MONDAY, time='9:00 AM', doctor_name='Dr. Mike Chen'),
    ]

    with pytest.raises(ValidationError):
        slot_store.create_slots(db, plans)

    assert db.query(TimeSlot).count() == 0


def test_list_slots_orders_by_time_of_day(db, add_slot) -> None:
    add_slot(MONDAY, '1:00 PM')
    add_slot(MONDAY, '10:00 AM')
    add_slot(MONDAY, '8:30 AM')
    add_slot(MONDAY, '9:00 AM', doctor_name='Dr. Sarah Johnson')

    slots = slot_store.list_slots(db, MONDAY)

    assert [slot.time for slot in slots] == ['8:30 AM', '9:00 AM', '10:00 AM', '1:00 PM']
    assert [slot.time for slot in slot_store.list_slots(db, MONDAY, 'Dr. Sarah Johnson')] == ['9:00 AM']


def test_is_bookable_tolerates_stale_and_blocked_flags(add_slot) -> None:
    stale = add_slot(MONDAY, '9:00 AM', max_bookings=1, current_bookings=1, is_available=True)
    blocked = add_slot(MONDAY, '9:30 AM', max_bookings=2, current_bookings=0, is_available=False)
    open_slot = add_slot(MONDAY, '10:00 AM', max_bookings=2, current_bookings=1)

    assert slot_store.remaining_capacity(stale) == 0
    assert slot_store.is_bookable(stale) is False
    assert slot_store.remaining_capacity(blocked) == 2
    assert slot_store.is_bookable(blocked) is False
    assert slot_store.is_bookable(open_slot) is True


def test_update_slot_toggles_availability_and_notes(db, add_slot) -> None:
    slot = add_slot(MONDAY, '9:00 AM')

    updated = slot_store.update_slot(db, slot.id, is_available=False, notes=' Doctor at conference ')

    assert updated.is_available is False
    assert updated.notes == 'Doctor at conference'


def test_update_slot_raises_capacity_when_nothing_is_booked(db, add_slot) -> None:
    slot = add_slot(MONDAY, '9:00 AM', max_bookings=1, current_bookings=1)

    updated = slot_store.update_slot(db, slot.id, max_bookings=3)

    assert updated.max_bookings == 3
    assert slot_store.remaining_capacity(updated) == 2


def test_update_slot_rejects_capacity_below_current_bookings(db, add_slot) -> None:
    slot = add_slot(MONDAY, '9:00 AM', max_bookings=3, current_bookings=2)

    with pytest.raises(ValidationError):
        slot_store.update_slot(db, slot.id, max_bookings=1)

    db.refresh(slot)
    assert slot.max_bookings == 3


def test_update_slot_raises_not_found_for_unknown_id(db) -> None:
    with pytest.raises(NotFoundError):
        slot_store.update_slot(db, 999, is_available=False)


def test_delete_slot_refuses_while_active_appointments_hold_it(db, add_slot, add_appointment, patient) -> None:
    slot = add_slot(MONDAY, '9:00 AM', current_bookings=1)
    add_appointment(patient, MONDAY, '9:00 AM', slot_id=slot.id)

    with pytest.raises(ValidationError):
        slot_store.delete_slot(db, slot.id)

    assert db.query(TimeSlot).filter(TimeSlot.id == slot.id).count() == 1


def test_delete_slot_counts_legacy_scheduled_appointments_as_active(db, add_slot, add_appointment, patient) -> None:
    slot = add_slot(MONDAY, '9:00 AM', current_bookings=1)
    appointment = add_appointment(patient, MONDAY, '9:00 AM', status='scheduled', slot_id=slot.id)

    with pytest.raises(ValidationError):
        slot_store.delete_slot(db, slot.id)

    db.refresh(appointment)
    assert appointment.slot_id == slot.id


def test_delete_slot_detaches_historical_appointments(db, add_slot, add_appointment, patient) -> None:
    slot = add_slot(MONDAY, '9:00 AM')
    appointment = add_appointment(patient, MONDAY, '9:00 AM', status='completed', slot_id=slot.id)

    slot_store.delete_slot(db, slot.id)

    db.refresh(appointment)
    assert appointment.slot_id is None
    assert db.query(TimeSlot).count() == 0


def test_delete_slot_raises_not_found_for_unknown_id(db) -> None:
    with pytest.raises(NotFoundError):
        slot_store.delete_slot(db, 12345)
