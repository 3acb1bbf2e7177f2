from datetime import date

import pytest

from dentalcare.scheduling import availability

MONDAY = date(2025, 2, 3)


def test_available_slots_returns_open_slots_in_time_order(db, add_slot) -> None:
    add_slot(MONDAY, '2:00 PM')
    add_slot(MONDAY, '9:00 AM')
    add_slot(MONDAY, '11:30 AM', doctor_name='Dr. James Wilson')

    slots = availability.available_slots(db, MONDAY)

    assert [slot.time for slot in slots] == ['9:00 AM', '11:30 AM', '2:00 PM']


def test_available_slots_excludes_blocked_and_full_slots(db, add_slot) -> None:
    add_slot(MONDAY, '9:00 AM', is_available=False)
    add_slot(MONDAY, '9:30 AM', max_bookings=1, current_bookings=1)
    add_slot(MONDAY, '10:00 AM', max_bookings=2, current_bookings=1)

    slots = availability.available_slots(db, MONDAY)

    assert [slot.time for slot in slots] == ['10:00 AM']


def test_available_slots_filters_by_doctor(db, add_slot) -> None:
    add_slot(MONDAY, '9:00 AM', doctor_name='Dr. Sarah Johnson')
    add_slot(MONDAY, '9:00 AM', doctor_name='Dr. Mike Chen')

    slots = availability.available_slots(db, MONDAY, 'Dr. Sarah Johnson')

    assert [slot.doctor_name for slot in slots] == ['Dr. Sarah Johnson']


def test_available_slots_is_empty_for_a_date_without_slots(db) -> None:
    assert availability.available_slots(db, MONDAY) == []


def test_available_slots_in_window_spans_days_in_order(db, add_slot) -> None:
    add_slot(date(2025, 2, 5), '9:00 AM')
    add_slot(date(2025, 2, 4), '1:00 PM')
    add_slot(date(2025, 2, 4), '10:00 AM')
    add_slot(date(2025, 2, 12), '9:00 AM')

    slots = availability.available_slots_in_window(db, date(2025, 2, 4), 7)

    assert [(slot.date.day, slot.time) for slot in slots] == [(4, '10:00 AM'), (4, '1:00 PM'), (5, '9:00 AM')]


@pytest.mark.parametrize(
    ('procedure', 'expected'),
    [
        ('Routine Cleaning', 4),
        ('New Patient Consultation', 2),
        ('Follow-up', 6),
        ('Emergency Consultation', 10),
        ('Whitening', 3),
    ],
)
def test_estimate_suitable_slots_applies_procedure_ratios(procedure: str, expected: int) -> None:
    assert availability.estimate_suitable_slots(10, procedure) == expected


def test_estimate_suitable_slots_is_zero_without_inventory() -> None:
    assert availability.estimate_suitable_slots(0, 'Emergency Consultation') == 0


def test_slots_of_doctors_off_the_roster_are_not_offered(db, add_slot) -> None:
    add_slot(date(2025, 2, 4), '8:00 AM', doctor_name='Dr. Former')
    add_slot(date(2025, 2, 4), '11:00 AM')

    in_window = availability.available_slots_in_window(db, date(2025, 2, 4), 7)
    on_day = availability.available_slots(db, date(2025, 2, 4))

    assert [slot.doctor_name for slot in in_window] == ['Dr. Mike Chen']
    assert [slot.doctor_name for slot in on_day] == ['Dr. Mike Chen']
