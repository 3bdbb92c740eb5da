"""Normalization of loosely formatted, voice-transcribed caller input.

Every ``normalize_*``/``clean_*`` helper fails closed: it returns ``None``
instead of guessing so the assistant can ask the caller to repeat.
"""

import re
from datetime import date, datetime, time, timedelta

from dateutil import parser as date_parser

ISO_DATE_PATTERN = re.compile(r'^([0-9]{4})-([0-9]{2})-([0-9]{2})$')
US_DATE_PATTERN = re.compile(r'^([0-9]{1,2})/([0-9]{1,2})/([0-9]{4})$')
TWENTY_FOUR_HOUR_PATTERN = re.compile(r'^([01]?[0-9]|2[0-3]):([0-5][0-9])$')
MERIDIEM_PATTERN = re.compile(r'^([0-9]{1,2})(?::([0-5][0-9]))?\s*(am|pm)$')

TIME_BANDS = {
    'morning': (8, 12),
    'afternoon': (12, 17),
    'evening': (17, 24),
}

WEEKDAY_NAMES = ('Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday', 'Sunday')
MONTH_NAMES = (
    'January', 'February', 'March', 'April', 'May', 'June',
    'July', 'August', 'September', 'October', 'November', 'December',
)


def normalize_date(value, today: date | None = None) -> str | None:
    if value is None:
        return None

    raw = str(value).strip()
    if not raw:
        return None

    today = today or date.today()
    lowered = raw.lower()

    if lowered == 'today':
        return today.isoformat()
    if lowered == 'tomorrow':
        return (today + timedelta(days=1)).isoformat()

    iso_match = ISO_DATE_PATTERN.match(raw)
    if iso_match:
        return _safe_date(*(int(part) for part in iso_match.groups()))

    us_match = US_DATE_PATTERN.match(raw)
    if us_match:
        month, day, year = (int(part) for part in us_match.groups())
        return _safe_date(year, month, day)

    try:
        parsed = date_parser.parse(raw, default=datetime.combine(today, time()))
    except (ValueError, OverflowError):
        return None

    return parsed.date().isoformat()


def _safe_date(year: int, month: int, day: int) -> str | None:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def normalize_time(value) -> str | None:
    if value is None:
        return None

    normalized = str(value).strip().lower().replace('.', '')
    normalized = re.sub(r'\s+', ' ', normalized)
    if not normalized:
        return None

    twenty_four_hour = TWENTY_FOUR_HOUR_PATTERN.match(normalized)
    if twenty_four_hour:
        hour, minute = twenty_four_hour.groups()
        return f'{int(hour):02d}:{minute}'

    meridiem_match = MERIDIEM_PATTERN.match(normalized)
    if not meridiem_match:
        return None

    hour = int(meridiem_match.group(1))
    minute = meridiem_match.group(2) or '00'
    meridiem = meridiem_match.group(3)

    if hour < 1 or hour > 12:
        return None

    if meridiem == 'am':
        hour = 0 if hour == 12 else hour
    elif hour != 12:
        hour += 12

    return f'{hour:02d}:{minute}'


def clean_phone(value) -> str | None:
    if not value:
        return None

    digits = re.sub(r'[^0-9]', '', str(value))
    if len(digits) == 11 and digits.startswith('1'):
        digits = digits[1:]
    if len(digits) != 10:
        return None

    return f'{digits[:3]}-{digits[3:6]}-{digits[6:]}'


def normalize_time_band(value) -> str | None:
    if not value:
        return None
    band = str(value).strip().lower()
    return band if band in TIME_BANDS else None


def is_in_time_band(slot_time: str, band: str) -> bool:
    start_hour, end_hour = TIME_BANDS[band]
    hour = int(slot_time.split(':')[0])
    return start_hour <= hour < end_hour


def format_phone_for_display(phone: str) -> str:
    digits = re.sub(r'[^0-9]', '', phone or '')
    if len(digits) != 10:
        return phone
    return f'({digits[:3]}) {digits[3:6]}-{digits[6:]}'


def format_date_for_display(iso_date: str) -> str:
    """``2026-02-18`` -> ``Wednesday, February 18``."""
    try:
        parsed = date.fromisoformat(iso_date)
    except (TypeError, ValueError):
        return iso_date
    return f'{WEEKDAY_NAMES[parsed.weekday()]}, {MONTH_NAMES[parsed.month - 1]} {parsed.day}'


def format_time_for_display(hhmm: str) -> str:
    """``14:30`` -> ``2:30 PM``."""
    hours, minutes = hhmm.split(':')
    hour = int(hours)
    suffix = 'PM' if hour >= 12 else 'AM'
    display_hour = hour % 12 or 12
    return f'{display_hour}:{minutes} {suffix}'
