# phpayroll/attendance/daytype.py

import logging
from collections import namedtuple
from datetime import date, datetime
from enum import Enum

logger = logging.getLogger(__name__)


class DayType(str, Enum):
    REGULAR = 'regular'
    SUNDAY = 'sunday'
    NON_WORKING_HOLIDAY = 'non-working-holiday'
    REGULAR_HOLIDAY = 'regular-holiday'
    SUNDAY_SPECIAL_HOLIDAY = 'sunday-special-holiday'
    SUNDAY_REGULAR_HOLIDAY = 'sunday-regular-holiday'


DAY_TYPE_LABELS = {
    DayType.REGULAR: 'Regular Day',
    DayType.SUNDAY: 'Sunday/Rest Day',
    DayType.NON_WORKING_HOLIDAY: 'Non-Working Holiday',
    DayType.REGULAR_HOLIDAY: 'Regular Holiday',
    DayType.SUNDAY_SPECIAL_HOLIDAY: 'Sunday + Special Holiday',
    DayType.SUNDAY_REGULAR_HOLIDAY: 'Sunday + Regular Holiday',
}

HOLIDAY_TYPES = (DayType.REGULAR_HOLIDAY, DayType.NON_WORKING_HOLIDAY)

# date is always a 'YYYY-MM-DD' string, type is 'regular' or 'non-working'
CalendarHoliday = namedtuple('CalendarHoliday', ['date', 'name', 'type'])


def day_type_label(day_type):
    return DAY_TYPE_LABELS[DayType(day_type)]


def to_date_string(value):
    """Normalize a date, datetime or string to 'YYYY-MM-DD'."""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value).strip()[:10]


def _holiday_type(row):
    if isinstance(row, dict):
        if 'is_regular' in row:
            return 'regular' if row['is_regular'] else 'non-working'
        raw = row.get('type') or row.get('holiday_type') or 'regular'
    else:
        raw = getattr(row, 'type', None) or 'regular'
    raw = str(raw).strip().lower()
    return 'regular' if raw == 'regular' else 'non-working'


def normalize_holidays(rows):
    """
    Turns holiday source rows (dicts or ORM objects) into CalendarHoliday tuples.

    Dates are normalized to 'YYYY-MM-DD'; when one date is listed twice the
    regular holiday wins over the non-working one.
    """
    by_date = {}
    for row in rows:
        if isinstance(row, CalendarHoliday):
            holiday = row
        elif isinstance(row, dict):
            raw_date = row.get('date') or row.get('holiday_date')
            holiday = CalendarHoliday(to_date_string(raw_date), row.get('name', ''), _holiday_type(row))
        else:
            holiday = CalendarHoliday(to_date_string(row.date), getattr(row, 'name', ''), _holiday_type(row))

        existing = by_date.get(holiday.date)
        if existing is None or (existing.type != 'regular' and holiday.type == 'regular'):
            by_date[holiday.date] = holiday
    return [by_date[key] for key in sorted(by_date)]


def find_holiday(date_str, holidays):
    for holiday in holidays:
        if holiday.date == date_str:
            return holiday
    # Timestamp-suffixed values such as '2025-12-25T00:00:00+08:00'
    for holiday in holidays:
        if str(holiday.date)[:10] == date_str:
            return holiday
    return None


def classify_day(day, holidays, is_rest_day=None, is_client_based=False):
    """
    Decide which of the six day categories applies to a calendar date.

    A holiday on a rest day always yields the compound type. When
    ``is_rest_day`` is not given, Sunday is the rest day for office-based
    staff and an ordinary day for client-based staff. Never raises: a
    malformed date is logged and classified as a regular day.
    """
    try:
        date_str = to_date_string(day)
        weekday = date.fromisoformat(date_str).weekday()

        if is_rest_day is None:
            is_rest_day = False if is_client_based else weekday == 6

        holiday = find_holiday(date_str, holidays)
        holiday_type = holiday.type if holiday else None

        if is_rest_day and holiday_type == 'regular':
            return DayType.SUNDAY_REGULAR_HOLIDAY
        if is_rest_day and holiday_type == 'non-working':
            return DayType.SUNDAY_SPECIAL_HOLIDAY
        if holiday_type == 'regular':
            return DayType.REGULAR_HOLIDAY
        if holiday_type == 'non-working':
            return DayType.NON_WORKING_HOLIDAY
        if is_rest_day:
            return DayType.SUNDAY
        return DayType.REGULAR
    except Exception:
        logger.warning('Could not classify %r, defaulting to regular day', day, exc_info=True)
        return DayType.REGULAR
