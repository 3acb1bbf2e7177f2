"""Parsing and formatting for 12-hour appointment times ("10:30 AM")."""

import re
from datetime import date, datetime, time

from dentalcare.scheduling.errors import ValidationError

_TIME_PATTERN = re.compile(r'^\s*(\d{1,2}):(\d{2})\s*([AaPp][Mm])\s*$')


def parse_time(value: str) -> time:
    match = _TIME_PATTERN.match(value or '')
    if not match:
        raise ValidationError(f'Invalid time "{value}". Expected a time like "10:30 AM".')

    hours, minutes, period = int(match.group(1)), int(match.group(2)), match.group(3).upper()
    if not 1 <= hours <= 12 or minutes > 59:
        raise ValidationError(f'Invalid time "{value}". Expected a time like "10:30 AM".')

    # 12:xx AM is just after midnight, 12:xx PM is just after noon.
    if hours == 12:
        hours = 0
    if period == 'PM':
        hours += 12

    return time(hours, minutes)


def format_time(value: time) -> str:
    hours = value.hour % 12 or 12
    period = 'AM' if value.hour < 12 else 'PM'
    return f'{hours}:{value.minute:02d} {period}'


def normalize_time(value: str) -> str:
    return format_time(parse_time(value))


def combine(day: date, value: str) -> datetime:
    return datetime.combine(day, parse_time(value))


def time_sort_key(value: str) -> int:
    parsed = parse_time(value)
    return parsed.hour * 60 + parsed.minute
