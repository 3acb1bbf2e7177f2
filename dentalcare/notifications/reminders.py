"""Appointment reminders.

Delivery providers (email, SMS) are outside this service; the senders here
record the reminder and log it so a provider integration can be dropped in
behind ``ReminderSender.deliver``.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from sqlalchemy.orm import Session

from dentalcare.core import config
from dentalcare.scheduling import lifecycle
from dentalcare.scheduling.errors import ValidationError

logger = logging.getLogger(__name__)


@dataclass
class Reminder:
    id: str
    appointment_id: int
    type: str
    recipient: str
    message: str
    sent_at: datetime
    status: str = 'sent'


class ReminderSender:
    channel = 'generic'

    def prepare_message(self, message: str) -> str:
        return message.strip()

    def deliver(self, reminder: Reminder) -> None:
        logger.info(
            'Sending %s reminder for appointment %s to %s',
            reminder.type,
            reminder.appointment_id,
            reminder.recipient,
        )

    def send(self, db: Session, appointment_id: int, recipient: str, message: str | None = None) -> Reminder:
        recipient = (recipient or '').strip()
        if not appointment_id or not recipient:
            raise ValidationError('Missing required fields')

        appointment = lifecycle.find_appointment(db, appointment_id)
        message = (message or '').strip() or default_message(appointment)
        sent_at = datetime.now(timezone.utc)
        reminder = Reminder(
            id=str(int(sent_at.timestamp() * 1000)),
            appointment_id=appointment.id,
            type=self.channel,
            recipient=recipient,
            message=self.prepare_message(message),
            sent_at=sent_at,
        )
        self.deliver(reminder)
        return reminder


class EmailReminderSender(ReminderSender):
    channel = 'email'


class SmsReminderSender(ReminderSender):
    channel = 'sms'

    def prepare_message(self, message: str) -> str:
        return message.strip()[:config.SMS_MAX_LENGTH]


def default_message(appointment) -> str:
    day = appointment.appointment_date
    return (
        f'Reminder: You have a dental appointment scheduled for '
        f'{day:%A, %B} {day.day}, {day.year} at {appointment.appointment_time} '
        f'with {appointment.doctor_name} for {appointment.treatment_type}.'
    )
