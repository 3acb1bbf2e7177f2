"""One-click booking.

A four step flow (select type, find slot, confirm, complete) over the
availability calculator and the booking engine. Steps run strictly in order and
a started flow is not cancellable; it ends with an appointment or an error.

Finding a slot queries real inventory: starting tomorrow, each day's bookable
slots are checked against the priority's preferred times first, then the
earliest open time that day. If the chosen slot is taken between the query and
the claim, the flow re-queries and tries the next candidate.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from sqlalchemy.orm import Session

from dentalcare.core import config
from dentalcare.models.appointment import Appointment
from dentalcare.models.timeslot import TimeSlot
from dentalcare.models.user import User
from dentalcare.scheduling import availability, booking
from dentalcare.scheduling.errors import CapacityError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

MAX_CLAIM_ATTEMPTS = 3

HIGH_PRIORITY_TIMES = ['9:00 AM', '10:30 AM', '2:00 PM']
STANDARD_PRIORITY_TIMES = ['10:00 AM', '2:00 PM', '4:00 PM']


@dataclass(frozen=True)
class BookingProfile:
    id: str
    title: str
    description: str
    procedure: str
    estimated_time: str
    priority: str  # high/medium/low

    @property
    def preferred_times(self) -> list[str]:
        return HIGH_PRIORITY_TIMES if self.priority == 'high' else STANDARD_PRIORITY_TIMES


BOOKING_PROFILES = (
    BookingProfile(
        id='emergency',
        title='Emergency Visit',
        description='Urgent dental care - next available slot',
        procedure=availability.EMERGENCY_PROCEDURE,
        estimated_time='30-45 min',
        priority='high',
    ),
    BookingProfile(
        id='checkup',
        title='Routine Checkup',
        description='Regular dental examination and cleaning',
        procedure='Routine Cleaning',
        estimated_time='60 min',
        priority='medium',
    ),
    BookingProfile(
        id='consultation',
        title='New Patient Consultation',
        description='First visit - comprehensive examination',
        procedure='New Patient Consultation',
        estimated_time='90 min',
        priority='medium',
    ),
    BookingProfile(
        id='followup',
        title='Follow-up Visit',
        description='Check progress from previous treatment',
        procedure='Follow-up',
        estimated_time='30 min',
        priority='low',
    ),
)


@dataclass(frozen=True)
class BookingStep:
    id: int
    name: str
    description: str
    progress: int


BOOKING_STEPS = (
    BookingStep(1, 'Select Type', 'Choose appointment type', 10),
    BookingStep(2, 'Find Slot', 'Finding best available time', 25),
    BookingStep(3, 'Confirm', 'Booking appointment', 75),
    BookingStep(4, 'Complete', 'Appointment confirmed', 100),
)


@dataclass
class BookingOption:
    profile: BookingProfile
    available_slots: int


@dataclass
class QuickBookResult:
    profile: BookingProfile
    appointment: Appointment
    steps: list[BookingStep] = field(default_factory=list)

    @property
    def progress(self) -> int:
        return self.steps[-1].progress if self.steps else 0


def find_profile(profile_id: str) -> BookingProfile:
    normalized = (profile_id or '').strip().lower()
    for profile in BOOKING_PROFILES:
        if profile.id == normalized:
            return profile
    raise ValidationError(f'Unknown booking option "{profile_id}".')


def booking_options(db: Session, start_date: date | None = None) -> list[BookingOption]:
    """Each profile with an estimated count of suitable open slots."""
    total = len(availability.available_slots_in_window(db, start_date))
    return [
        BookingOption(profile=profile, available_slots=availability.estimate_suitable_slots(total, profile.procedure))
        for profile in BOOKING_PROFILES
    ]


def rank_candidates(slots: list[TimeSlot], preferred_times: list[str]) -> list[TimeSlot]:
    """Order slots day by day: preferred times first (in preference order), then the rest by time."""
    preference = {slot_time: index for index, slot_time in enumerate(preferred_times)}
    ordered = sorted(
        enumerate(slots),
        key=lambda item: (item[1].date, preference.get(item[1].time, len(preference)), item[0]),
    )
    return [slot for _, slot in ordered]


class QuickBookFlow:
    def __init__(self, db: Session, patient: User | None, profile: BookingProfile, on_step=None):
        self.db = db
        self.patient = patient
        self.profile = profile
        self.on_step = on_step
        self.steps: list[BookingStep] = []

    def _advance(self, step_id: int) -> None:
        step = BOOKING_STEPS[step_id - 1]
        self.steps.append(step)
        logger.debug('Quick-book %s: step %d %s (%d%%)', self.profile.id, step.id, step.name, step.progress)
        if self.on_step is not None:
            self.on_step(step)

    def find_slots(self, now: datetime) -> list[TimeSlot]:
        start = now.date() + timedelta(days=1)
        slots = availability.available_slots_in_window(self.db, start, config.QUICK_BOOK_SEARCH_DAYS)
        return rank_candidates(slots, self.profile.preferred_times)

    def run(self, now: datetime | None = None) -> QuickBookResult:
        now = now or datetime.now()
        self._advance(1)

        self._advance(2)
        candidates = self.find_slots(now)
        if not candidates:
            raise NotFoundError('No appointment slots are open in the next week. Please call the office.')

        self._advance(3)
        appointment = self._confirm(candidates, now)

        self._advance(4)
        logger.info('Quick-booked %s as appointment %s', self.profile.id, appointment.id)
        return QuickBookResult(profile=self.profile, appointment=appointment, steps=list(self.steps))

    def _confirm(self, candidates: list[TimeSlot], now: datetime) -> Appointment:
        attempts = 0
        while candidates and attempts < MAX_CLAIM_ATTEMPTS:
            slot = candidates[0]
            attempts += 1
            try:
                return booking.book(
                    self.db,
                    self.patient,
                    doctor_name=slot.doctor_name,
                    treatment_type=self.profile.procedure,
                    appointment_date=slot.date,
                    appointment_time=slot.time,
                    notes=f'One-click booking - {self.profile.title}',
                    now=now,
                )
            except CapacityError:
                logger.info('Quick-book lost slot %s, re-querying availability', slot.id)
                candidates = [candidate for candidate in self.find_slots(now) if candidate.id != slot.id]

        raise CapacityError('The open slots filled up while booking. Please try again.')


def quick_book(
    db: Session,
    patient: User | None,
    profile_id: str,
    now: datetime | None = None,
    on_step=None,
) -> QuickBookResult:
    return QuickBookFlow(db, patient, find_profile(profile_id), on_step=on_step).run(now)
