from datetime import date, datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from dentalcare.core import config


class ApiModel(BaseModel):
    """JSON bodies use camelCase keys; Python code uses the snake_case names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


class TimeSlotCreateRequest(ApiModel):
    date: date
    time: str
    doctor_name: str
    is_available: bool = True
    slot_type: str = config.DEFAULT_SLOT_TYPE
    duration: int = Field(default=config.DEFAULT_SLOT_DURATION_MINUTES, ge=1)
    max_bookings: int = Field(default=config.DEFAULT_SLOT_MAX_BOOKINGS, ge=1)
    notes: str | None = None

    @field_validator('time', 'doctor_name')
    @classmethod
    def strip_required(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError('This field is required.')
        return normalized


class BulkTimeSlotRequest(ApiModel):
    time_slots: list[TimeSlotCreateRequest] = Field(min_length=1)


class GenerateSlotsRequest(ApiModel):
    start_date: date | None = None
    days: int | None = Field(default=None, ge=1, le=60)
    doctors: list[str] | None = None
    time_grid: list[str] | None = None
    slot_type: str | None = None
    duration: int | None = Field(default=None, ge=1)
    max_bookings: int | None = Field(default=None, ge=1)


class TimeSlotUpdateRequest(ApiModel):
    is_available: bool | None = None
    max_bookings: int | None = None
    slot_type: str | None = None
    duration: int | None = None
    notes: str | None = None


class TimeSlotResponse(ApiModel):
    id: int
    date: date
    time: str
    doctor_name: str
    is_available: bool
    slot_type: str | None = None
    duration: int | None = None
    max_bookings: int
    current_bookings: int
    remaining_capacity: int
    is_bookable: bool
    notes: str | None = None
    created_at: datetime | None = None


class GenerateSlotsResponse(ApiModel):
    created: int
    skipped: int
    slots: list[TimeSlotResponse]


class CreateAppointmentRequest(ApiModel):
    # Left optional so missing fields reach the booking engine and come back
    # as a 400 naming every missing field.
    doctor_name: str | None = None
    treatment_type: str | None = None
    appointment_date: str | None = None
    appointment_time: str | None = None
    notes: str | None = None


class AppointmentResponse(ApiModel):
    id: int
    patient_id: int
    slot_id: int | None = None
    doctor_name: str
    treatment_type: str
    appointment_date: date
    appointment_time: str
    status: str
    classification: str
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class StatusUpdateRequest(ApiModel):
    status: str
    force: bool = False


class CleanupRequest(ApiModel):
    appointment_ids: list[int] | None = None


class CleanupResponse(ApiModel):
    message: str
    count: int
    missed_ids: list[int]
    skipped_ids: list[int]


class QuickBookOptionResponse(ApiModel):
    id: str
    title: str
    description: str
    procedure: str
    estimated_time: str
    priority: str
    available_slots: int
    is_estimate: bool = True


class QuickBookRequest(ApiModel):
    option_id: str


class QuickBookStepResponse(ApiModel):
    id: int
    name: str
    description: str
    progress: int


class QuickBookResponse(ApiModel):
    option_id: str
    title: str
    appointment: AppointmentResponse
    steps: list[QuickBookStepResponse]
    progress: int


class EmailReminderRequest(ApiModel):
    appointment_id: int | None = None
    email: str | None = None
    message: str | None = None


class SmsReminderRequest(ApiModel):
    appointment_id: int | None = None
    phone: str | None = None
    message: str | None = None


class ReminderDetail(ApiModel):
    id: str
    appointment_id: int
    type: str
    recipient: str
    message: str
    sent_at: datetime
    status: str


class ReminderResponse(ApiModel):
    success: bool
    message: str
    reminder: ReminderDetail


class RegisterRequest(ApiModel):
    email: str
    password: str = Field(min_length=8)
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None

    @field_validator('email')
    @classmethod
    def validate_email(cls, value: str) -> str:
        normalized = value.strip().lower()
        if '@' not in normalized:
            raise ValueError('A valid email address is required.')
        return normalized


class LoginRequest(ApiModel):
    email: str
    password: str

    @field_validator('email')
    @classmethod
    def normalize_email(cls, value: str) -> str:
        return value.strip().lower()


class TokenResponse(ApiModel):
    access_token: str
    token_type: str = 'bearer'


class UserResponse(ApiModel):
    id: int
    email: str
    role: str
    first_name: str | None = None
    last_name: str | None = None
