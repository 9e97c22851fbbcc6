# phpayroll/attendance/sources.py
"""Read access to the attendance inputs of a payroll run."""

from datetime import datetime, time, timedelta
from decimal import Decimal

from phpayroll.models.payroll import (
    ClockEntry, Holiday, LeaveRequest, OvertimeRequest, ScheduleDay,
)
from .daytype import normalize_holidays, to_date_string
from .overtime import approved_hours_by_date
from .timesheet import (
    DEFAULT_CUTOVER_DATES, DEFAULT_LOOKBACK_DAYS, DEFAULT_TIMEZONE,
    apply_leave_overlay, generate_timesheet, is_sil_leave, validate_clock_entries,
)


def list_holidays(start_date, end_date):
    rows = Holiday.query.filter(
        Holiday.date >= start_date,
        Holiday.date <= end_date
    ).order_by(Holiday.date).all()
    return normalize_holidays(rows)


def list_clock_entries(employee_id, start_date, end_date):
    # Widen by a day on each side: rows are stored in UTC and are bucketed
    # by Manila civil date later
    window_start = datetime.combine(start_date - timedelta(days=1), time.min)
    window_end = datetime.combine(end_date + timedelta(days=1), time.max)
    return ClockEntry.query.filter(
        ClockEntry.employee_id == employee_id,
        ClockEntry.clock_in >= window_start,
        ClockEntry.clock_in <= window_end
    ).order_by(ClockEntry.clock_in).all()


def list_approved_overtime(employee_id, start_date, end_date):
    return OvertimeRequest.query.filter(
        OvertimeRequest.employee_id == employee_id,
        OvertimeRequest.status == 'approved',
        OvertimeRequest.ot_date >= start_date,
        OvertimeRequest.ot_date <= end_date
    ).order_by(OvertimeRequest.ot_date).all()


def list_schedule(employee_id, start_date, end_date):
    """Rest-day map: 'YYYY-MM-DD' -> day_off."""
    rows = ScheduleDay.query.filter(
        ScheduleDay.employee_id == employee_id,
        ScheduleDay.schedule_date >= start_date,
        ScheduleDay.schedule_date <= end_date
    ).all()
    return {row.schedule_date.isoformat(): bool(row.day_off) for row in rows}


def list_approved_leave(employee_id, start_date, end_date):
    """
    Approved leave touching the period, with dates clipped to it.

    When several leave types cover the same date only the SIL one is kept.
    """
    start_key, end_key = start_date.isoformat(), end_date.isoformat()
    requests = LeaveRequest.query.filter(
        LeaveRequest.employee_id == employee_id,
        LeaveRequest.status == 'approved'
    ).all()

    leaves = []
    for req in requests:
        dates = sorted(
            key for key in (to_date_string(d) for d in req.leave_dates or [])
            if start_key <= key <= end_key
        )
        if dates:
            leaves.append({'leave_type': req.leave_type, 'dates': dates,
                           'is_half_day': bool(req.is_half_day)})

    sil_dates = {d for leave in leaves if is_sil_leave(leave['leave_type']) for d in leave['dates']}
    result = []
    for leave in leaves:
        if not is_sil_leave(leave['leave_type']):
            leave = dict(leave, dates=[d for d in leave['dates'] if d not in sil_dates])
            if not leave['dates']:
                continue
        result.append(leave)
    return result


def build_timesheet(employee, period_start, period_end, lookback_days=DEFAULT_LOOKBACK_DAYS,
                    cutover_dates=DEFAULT_CUTOVER_DATES, tz_name=DEFAULT_TIMEZONE):
    """Read every attendance input for the period, then generate the timesheet with SIL overlaid."""
    history_start = period_start - timedelta(days=lookback_days)

    holidays = list_holidays(history_start, period_end)
    clock_entries = list_clock_entries(employee.id, history_start, period_end)
    overtime_requests = list_approved_overtime(employee.id, period_start, period_end)
    rest_days = list_schedule(employee.id, history_start, period_end)
    leaves = list_approved_leave(employee.id, period_start, period_end)

    ot_by_date, nd_by_date = approved_hours_by_date(overtime_requests)
    timesheet = generate_timesheet(
        clock_entries, period_start, period_end, holidays,
        rest_days=rest_days,
        eligible_for_ot=employee.eligible_for_ot,
        eligible_for_night_diff=employee.eligible_for_night_diff,
        is_client_based_account_supervisor=employee.is_client_based_account_supervisor,
        approved_ot_by_date=ot_by_date,
        approved_nd_by_date=nd_by_date,
        is_client_based=employee.is_client_based,
        lookback_days=lookback_days,
        cutover_dates=cutover_dates,
        tz_name=tz_name,
    )
    return apply_leave_overlay(timesheet, leaves)


def expected_weekdays(employee):
    """Office staff work Monday to Friday; client-based staff follow their schedule."""
    if employee.is_client_based:
        return set(range(7))
    return {0, 1, 2, 3, 4}


def check_clock_entries(employee, period_start, period_end, tz_name=DEFAULT_TIMEZONE):
    """Missing or incomplete clock entries on the employee's working days."""
    holidays = list_holidays(period_start, period_end)
    clock_entries = list_clock_entries(employee.id, period_start, period_end)
    rest_days = list_schedule(employee.id, period_start, period_end)

    skip_dates = [h.date for h in holidays]
    if employee.is_client_based:
        skip_dates.extend(key for key, day_off in rest_days.items() if day_off)
    return validate_clock_entries(clock_entries, period_start, period_end,
                                  expected_weekdays(employee), skip_dates=skip_dates,
                                  tz_name=tz_name)


def count_sil_days(employee_id, year):
    """Approved SIL days taken in ``year``; half days count as 0.5."""
    prefix = f'{year}-'
    requests = LeaveRequest.query.filter(
        LeaveRequest.employee_id == employee_id,
        LeaveRequest.status == 'approved'
    ).all()

    total = Decimal('0')
    for req in requests:
        if not is_sil_leave(req.leave_type):
            continue
        days = sum(1 for d in req.leave_dates or [] if to_date_string(d).startswith(prefix))
        total += Decimal(days) * (Decimal('0.5') if req.is_half_day else Decimal('1'))
    return total
