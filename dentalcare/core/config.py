import os

from dotenv import load_dotenv

load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None or not value.strip():
        return list(default)
    separator = ";" if ";" in value else ","
    return [item.strip() for item in value.split(separator) if item.strip()]


APP_ENV = os.getenv("APP_ENV", "development")
DEBUG = _get_bool(os.getenv("DEBUG"), default=False)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./dentalcare.db")

CORS_ORIGINS = _get_list(os.getenv("CORS_ORIGINS"), ["http://localhost:5173"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_MINUTES = int(os.getenv("JWT_EXPIRES_MINUTES", "60"))

STAFF_ROLE = os.getenv("STAFF_ROLE", "admin")
PATIENT_ROLE = "patient"

DOCTOR_ROSTER = _get_list(
    os.getenv("DOCTOR_ROSTER"),
    ["Dr. Sarah Johnson", "Dr. Mike Chen", "Dr. James Wilson"],
)

# Half-hour grid with the midday gap (12:00 PM - 1:00 PM) left out.
SLOT_TIME_GRID = _get_list(
    os.getenv("SLOT_TIME_GRID"),
    [
        "8:00 AM", "8:30 AM", "9:00 AM", "9:30 AM", "10:00 AM", "10:30 AM",
        "11:00 AM", "11:30 AM", "1:00 PM", "1:30 PM", "2:00 PM", "2:30 PM",
        "3:00 PM", "3:30 PM", "4:00 PM", "4:30 PM", "5:00 PM", "5:30 PM",
    ],
)

DEFAULT_SLOT_TYPE = os.getenv("DEFAULT_SLOT_TYPE", "general")
DEFAULT_SLOT_DURATION_MINUTES = int(os.getenv("DEFAULT_SLOT_DURATION_MINUTES", "30"))
DEFAULT_SLOT_MAX_BOOKINGS = int(os.getenv("DEFAULT_SLOT_MAX_BOOKINGS", "1"))
SLOT_GENERATION_DAYS = int(os.getenv("SLOT_GENERATION_DAYS", "7"))
QUICK_BOOK_SEARCH_DAYS = int(os.getenv("QUICK_BOOK_SEARCH_DAYS", "7"))
MAX_APPOINTMENT_NOTES_LENGTH = 600
SMS_MAX_LENGTH = int(os.getenv("SMS_MAX_LENGTH", "160"))

LOGGING_CONFIG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "default": {
            "format": "%(asctime)s %(levelname)s [%(name)s] %(message)s",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "default",
        },
    },
    "loggers": {
        "dentalcare": {
            "handlers": ["console"],
            "level": LOG_LEVEL,
            "propagate": False,
        },
    },
    "root": {"handlers": ["console"], "level": "WARNING"},
}


def is_staff_role(role: str | None) -> bool:
    return (role or "").strip().lower() == STAFF_ROLE


def validate_runtime_config() -> None:
    # Local import keeps config importable before the scheduling package.
    from dentalcare.scheduling import timefmt
    from dentalcare.scheduling.errors import ValidationError

    if APP_ENV.lower() == "production" and JWT_SECRET_KEY == "change-me":
        raise RuntimeError("JWT_SECRET_KEY must be set in production.")
    if not DOCTOR_ROSTER:
        raise RuntimeError("DOCTOR_ROSTER must name at least one doctor.")
    try:
        for entry in SLOT_TIME_GRID:
            timefmt.parse_time(entry)
    except ValidationError as exc:
        raise RuntimeError(f"SLOT_TIME_GRID is invalid: {exc}") from exc
