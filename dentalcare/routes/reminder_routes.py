from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dentalcare.auth.dependencies import require_staff
from dentalcare.database import get_db
from dentalcare.models.user import User
from dentalcare.notifications.reminders import EmailReminderSender, Reminder, SmsReminderSender
from dentalcare.routes.errors import database_unavailable, ensure_database_ready, to_http_exception
from dentalcare.routes.schemas import EmailReminderRequest, ReminderDetail, ReminderResponse, SmsReminderRequest
from dentalcare.scheduling.errors import SchedulingError

router = APIRouter(tags=['reminders'])

email_sender = EmailReminderSender()
sms_sender = SmsReminderSender()


def reminder_response(reminder: Reminder, label: str) -> ReminderResponse:
    return ReminderResponse(
        success=True,
        message=f'{label} reminder sent successfully',
        reminder=ReminderDetail(
            id=reminder.id,
            appointment_id=reminder.appointment_id,
            type=reminder.type,
            recipient=reminder.recipient,
            message=reminder.message,
            sent_at=reminder.sent_at,
            status=reminder.status,
        ),
    )


@router.post('/email', response_model=ReminderResponse)
def send_email_reminder(
    data: EmailReminderRequest,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        reminder = email_sender.send(db, data.appointment_id, data.email, data.message)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return reminder_response(reminder, 'Email')


@router.post('/sms', response_model=ReminderResponse)
def send_sms_reminder(
    data: SmsReminderRequest,
    current_user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    ensure_database_ready()

    try:
        reminder = sms_sender.send(db, data.appointment_id, data.phone, data.message)
    except SchedulingError as exc:
        raise to_http_exception(exc) from exc
    except SQLAlchemyError as exc:
        raise database_unavailable() from exc

    return reminder_response(reminder, 'SMS')
