"""Builds the slot catalog for a range of days.

Every doctor on the roster gets the same daily time grid. Saturdays and Sundays
never get slots. Holidays and per-doctor grids are not modelled.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta

from sqlalchemy.orm import Session

from dentalcare.core import config
from dentalcare.models.timeslot import TimeSlot
from dentalcare.scheduling import slot_store
from dentalcare.scheduling.slot_store import SlotPlan

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    created: list[TimeSlot] = field(default_factory=list)
    skipped: int = 0


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5


def weekdays_in_range(start_date: date, days: int) -> list[date]:
    """Weekdays among the ``days`` calendar days starting at ``start_date``."""
    return [
        start_date + timedelta(days=offset)
        for offset in range(max(days, 0))
        if not is_weekend(start_date + timedelta(days=offset))
    ]


def plan_day(
    day: date,
    doctor_name: str,
    time_grid: list[str] | None = None,
    **overrides,
) -> list[SlotPlan]:
    if is_weekend(day):
        return []
    time_grid = config.SLOT_TIME_GRID if time_grid is None else time_grid
    return [SlotPlan(date=day, time=slot_time, doctor_name=doctor_name, **overrides) for slot_time in time_grid]


def plan_slots(
    start_date: date,
    days: int,
    time_grid: list[str] | None = None,
    doctors: list[str] | None = None,
    **overrides,
) -> list[SlotPlan]:
    doctors = config.DOCTOR_ROSTER if doctors is None else doctors
    plans: list[SlotPlan] = []
    for day in weekdays_in_range(start_date, days):
        for doctor_name in doctors:
            plans.extend(plan_day(day, doctor_name, time_grid, **overrides))
    return plans


def unique_plans(plans) -> list[SlotPlan]:
    """Drop plans whose normalized key repeats an earlier one ("9:00 AM" vs "09:00 am")."""
    seen = set()
    unique = []
    for plan in plans:
        if plan.key not in seen:
            seen.add(plan.key)
            unique.append(plan)
    return unique


def generate_slots(
    db: Session,
    start_date: date | None = None,
    days: int | None = None,
    time_grid: list[str] | None = None,
    doctors: list[str] | None = None,
    **overrides,
) -> GenerationResult:
    """Persist the catalog for ``days`` calendar days from ``start_date``.

    ``start_date`` defaults to tomorrow. Keys that already have a slot are
    skipped, so running the generator twice over the same range creates
    nothing the second time.
    """
    start_date = start_date or date.today() + timedelta(days=1)
    days = config.SLOT_GENERATION_DAYS if days is None else days

    plans = unique_plans(
        slot_store.validate_plan(plan) for plan in plan_slots(start_date, days, time_grid, doctors, **overrides)
    )
    taken = slot_store.existing_keys(db, {plan.date for plan in plans})
    fresh = [plan for plan in plans if plan.key not in taken]

    result = GenerationResult(skipped=len(plans) - len(fresh))
    if fresh:
        result.created = slot_store.create_slots(db, fresh)

    logger.info(
        'Generated %d slot(s) from %s over %d day(s); skipped %d existing',
        len(result.created),
        start_date.isoformat(),
        days,
        result.skipped,
    )
    return result
