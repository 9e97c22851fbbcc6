# phpayroll/attendance/timesheet.py
"""
Timesheet generation from time-clock data.

Aggregates clock entries, approved overtime and the rest-day schedule into
one classified DailyAttendance record per calendar day of a pay period.
"""

import logging
import math
from collections import namedtuple
from datetime import date, timedelta
from decimal import Decimal

import pytz

from .daytype import DayType, HOLIDAY_TYPES, classify_day, to_date_string

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = 'Asia/Manila'
DEFAULT_LOOKBACK_DAYS = 7
DEFAULT_CUTOVER_DATES = ('2026-01-01',)

COUNTED_STATUSES = ('approved', 'auto_approved', 'clocked_out')
FULL_DAY_HOURS = 8
HALF_DAY_HOURS = 4
SATURDAY = 5

SIL_LEAVE_TYPES = ('sil', 'sick leave', 'service incentive leave')

DailyAttendance = namedtuple(
    'DailyAttendance',
    ['date', 'day_type', 'regular_hours', 'overtime_hours', 'night_diff_hours'],
)

Timesheet = namedtuple(
    'Timesheet',
    ['attendance', 'total_regular_hours', 'total_overtime_hours',
     'total_night_diff_hours', 'has_attendance'],
)

# source is 'clock' or 'approved-request'
HourClaim = namedtuple('HourClaim', ['source', 'hours'])

ClockValidation = namedtuple('ClockValidation', ['is_valid', 'missing_days', 'incomplete_entries'])


def attendance_to_dict(day):
    return {
        'date': day.date,
        'day_type': DayType(day.day_type).value,
        'regular_hours': day.regular_hours,
        'overtime_hours': day.overtime_hours,
        'night_diff_hours': day.night_diff_hours,
    }


def _as_date(value):
    if isinstance(value, date):
        return value
    return date.fromisoformat(to_date_string(value))


def _daterange(start, end):
    current = start
    while current <= end:
        yield current
        current += timedelta(days=1)


def local_date_string(dt, tz_name=DEFAULT_TIMEZONE):
    """Civil date of a timestamp in the payroll timezone. Naive values are UTC."""
    if dt.tzinfo is None:
        dt = pytz.UTC.localize(dt)
    return dt.astimezone(pytz.timezone(tz_name)).date().isoformat()


def group_entries_by_local_date(clock_entries, tz_name=DEFAULT_TIMEZONE):
    entries_by_date = {}
    for entry in clock_entries:
        if entry.clock_out is None:
            # Skip incomplete entries
            continue
        key = local_date_string(entry.clock_in, tz_name)
        entries_by_date.setdefault(key, []).append(entry)
    return entries_by_date


def sum_clock_hours(entries, eligible_for_ot=True, eligible_for_night_diff=True):
    regular = Decimal('0')
    overtime = Decimal('0')
    night_diff = Decimal('0')
    for entry in entries:
        if entry.status not in COUNTED_STATUSES:
            logger.debug('Ignoring clock entry with status %s', entry.status)
            continue
        regular += Decimal(str(entry.regular_hours or 0))
        if eligible_for_ot:
            overtime += Decimal(str(entry.overtime_hours or 0))
        if eligible_for_night_diff:
            night_diff += Decimal(str(entry.night_diff_hours or 0))
    return regular, overtime, night_diff


def resolve_hours(clock_claim, request_claim=None):
    """
    Pick the authoritative hours between clock data and an approved request.

    Without clock entries the request stands alone; with both, the larger
    claim wins. The two are never added together.
    """
    if request_claim is None:
        return clock_claim.hours if clock_claim else Decimal('0')
    if clock_claim is None:
        return request_claim.hours
    return max(clock_claim, request_claim, key=lambda claim: claim.hours).hours


def resolve_rest_days(rest_days, is_client_based=False):
    """
    Returns (actual_rest_days, guaranteed_workdays) without touching ``rest_days``.

    Client-based staff may declare two rest days in a week; only the first
    one (chronologically, per ISO week) stays a rest day. Later ones become
    ordinary workdays that are paid even when unworked.
    """
    actual = {to_date_string(key): bool(value) for key, value in (rest_days or {}).items()}
    guaranteed = set()
    if not is_client_based:
        return actual, guaranteed

    seen_weeks = set()
    for key in sorted(actual):
        if not actual[key]:
            continue
        week = date.fromisoformat(key).isocalendar()[:2]
        if week in seen_weeks:
            actual[key] = False
            guaranteed.add(key)
        else:
            seen_weeks.add(week)
    return actual, guaranteed


def generate_timesheet(clock_entries, period_start, period_end, holidays,
                       rest_days=None, eligible_for_ot=True, eligible_for_night_diff=True,
                       is_client_based_account_supervisor=False,
                       approved_ot_by_date=None, approved_nd_by_date=None,
                       is_client_based=False, lookback_days=DEFAULT_LOOKBACK_DAYS,
                       cutover_dates=DEFAULT_CUTOVER_DATES, tz_name=DEFAULT_TIMEZONE):
    """
    Generate one DailyAttendance per calendar day in [period_start, period_end].

    ``holidays`` are CalendarHoliday tuples. ``clock_entries`` should reach
    back ``lookback_days`` before the period so the "1 Day Before" holiday
    rule can see the last working day ahead of an early-period holiday.
    A period without any data yields all-zero days, not an error.
    """
    period_start = _as_date(period_start)
    period_end = _as_date(period_end)
    client_based = is_client_based or is_client_based_account_supervisor
    entries_by_date = group_entries_by_local_date(clock_entries, tz_name)
    actual_rest_days, guaranteed_workdays = resolve_rest_days(rest_days, client_based)
    cutover_dates = {to_date_string(d) for d in cutover_dates or ()}

    def base_day(day):
        date_str = day.isoformat()
        entries = entries_by_date.get(date_str, [])
        day_type = classify_day(date_str, holidays, actual_rest_days.get(date_str), client_based)
        regular, overtime, night_diff = sum_clock_hours(entries, eligible_for_ot, eligible_for_night_diff)

        clock_source = bool(entries)
        if approved_ot_by_date is not None and eligible_for_ot:
            request = approved_ot_by_date.get(date_str)
            overtime = resolve_hours(
                HourClaim('clock', overtime) if clock_source else None,
                HourClaim('approved-request', Decimal(str(request))) if request is not None else None,
            )
        if approved_nd_by_date is not None and eligible_for_night_diff:
            request = approved_nd_by_date.get(date_str)
            night_diff = resolve_hours(
                HourClaim('clock', night_diff) if clock_source else None,
                HourClaim('approved-request', Decimal(str(request))) if request is not None else None,
            )

        if day_type == DayType.REGULAR and regular == 0:
            # Saturday is paid even unworked (6-day week company benefit);
            # a client-based second rest day is treated the same way
            if day.weekday() == SATURDAY or date_str in guaranteed_workdays:
                regular = Decimal(FULL_DAY_HOURS)
        return day_type, regular, overtime, night_diff

    produced = {}

    def worked_last_regular_day(holiday_day):
        for offset in range(1, lookback_days + 1):
            previous = holiday_day - timedelta(days=offset)
            record = produced.get(previous.isoformat())
            if record is not None:
                day_type, regular = record.day_type, record.regular_hours
            else:
                day_type, regular = base_day(previous)[:2]
            if day_type == DayType.REGULAR:
                return regular >= FULL_DAY_HOURS
        return False

    attendance = []
    previous_granted_holiday = False
    for day in _daterange(period_start, period_end):
        date_str = day.isoformat()
        day_type, regular, overtime, night_diff = base_day(day)

        granted = False
        if day_type in HOLIDAY_TYPES and regular == 0:
            if date_str in cutover_dates or previous_granted_holiday or worked_last_regular_day(day):
                regular = Decimal(FULL_DAY_HOURS)
                granted = True
        previous_granted_holiday = granted

        record = DailyAttendance(
            date=date_str,
            day_type=day_type,
            regular_hours=int(math.floor(regular)),
            overtime_hours=int(math.floor(overtime)),
            night_diff_hours=int(math.floor(night_diff)),
        )
        produced[date_str] = record
        attendance.append(record)

    period_keys = {day.date for day in attendance}
    has_attendance = any(key in entries_by_date for key in period_keys) or any(
        Decimal(str(hours)) > 0
        for source in (approved_ot_by_date or {}, approved_nd_by_date or {})
        for key, hours in source.items() if key in period_keys
    )
    return _with_totals(attendance, has_attendance)


def _with_totals(attendance, has_attendance):
    # Days are floored already; totals are floored again on purpose
    return Timesheet(
        attendance=attendance,
        total_regular_hours=int(math.floor(sum(math.floor(d.regular_hours) for d in attendance))),
        total_overtime_hours=int(math.floor(sum(math.floor(d.overtime_hours) for d in attendance))),
        total_night_diff_hours=int(math.floor(sum(math.floor(d.night_diff_hours) for d in attendance))),
        has_attendance=has_attendance,
    )


def _leave_field(leave, name, default=None):
    if isinstance(leave, dict):
        return leave.get(name, default)
    return getattr(leave, name, default)


def is_sil_leave(leave_type):
    return (leave_type or '').strip().lower() in SIL_LEAVE_TYPES


def apply_leave_overlay(timesheet, leaves):
    """
    Overlay approved leave on a generated timesheet.

    Only SIL counts as worked time: the day becomes a regular day with 8
    hours (4 for a half day). Other leave types leave the day unpaid and
    untouched. Returns a new Timesheet.
    """
    sil_hours = {}
    for leave in leaves:
        if not is_sil_leave(_leave_field(leave, 'leave_type')):
            continue
        hours = HALF_DAY_HOURS if _leave_field(leave, 'is_half_day', False) else FULL_DAY_HOURS
        dates = _leave_field(leave, 'leave_dates') or _leave_field(leave, 'dates') or []
        for raw in dates:
            key = to_date_string(raw)
            sil_hours[key] = max(sil_hours.get(key, 0), hours)

    if not sil_hours:
        return timesheet

    attendance = [
        day._replace(day_type=DayType.REGULAR, regular_hours=sil_hours[day.date])
        if day.date in sil_hours else day
        for day in timesheet.attendance
    ]
    return _with_totals(attendance, timesheet.has_attendance or any(d.date in sil_hours for d in attendance))


def validate_clock_entries(clock_entries, period_start, period_end, expected_weekdays,
                           skip_dates=(), tz_name=DEFAULT_TIMEZONE):
    """
    Reports expected working days with no complete clock entry.

    ``skip_dates`` ('YYYY-MM-DD') are never expected, e.g. holidays and
    scheduled rest days.
    """
    period_start = _as_date(period_start)
    period_end = _as_date(period_end)
    skip_dates = {to_date_string(d) for d in skip_dates}

    entries_by_date = {}
    for entry in clock_entries:
        entries_by_date.setdefault(local_date_string(entry.clock_in, tz_name), []).append(entry)

    missing_days = []
    incomplete_entries = []
    for day in _daterange(period_start, period_end):
        if day.weekday() not in expected_weekdays or day.isoformat() in skip_dates:
            continue
        day_entries = entries_by_date.get(day.isoformat(), [])
        has_complete_entry = any(
            e.clock_out is not None and e.status in COUNTED_STATUSES for e in day_entries
        )
        if has_complete_entry:
            continue
        if day_entries:
            incomplete_entries.append(day.isoformat())
        else:
            missing_days.append(day.isoformat())

    return ClockValidation(
        is_valid=not missing_days and not incomplete_entries,
        missing_days=missing_days,
        incomplete_entries=incomplete_entries,
    )
