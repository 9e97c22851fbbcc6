# phpayroll/payroll/calculator.py

from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP

from phpayroll.attendance.daytype import DayType, day_type_label, normalize_holidays, to_date_string
from phpayroll.attendance.timesheet import DEFAULT_TIMEZONE, FULL_DAY_HOURS, group_entries_by_local_date

CENT = Decimal('0.01')

# --- PAYROLL MULTIPLIERS (Philippine Labor Code) ---
REGULAR_OT_MULTIPLIER = Decimal('1.25')
OT_PREMIUM = Decimal('1.3')  # applied on top of the day's base multiplier
NIGHT_DIFF_RATE = Decimal('0.1')

BASE_MULTIPLIERS = {
    DayType.REGULAR: Decimal('1.0'),
    DayType.SUNDAY: Decimal('1.3'),
    DayType.NON_WORKING_HOLIDAY: Decimal('1.3'),
    DayType.REGULAR_HOLIDAY: Decimal('2.0'),
    DayType.SUNDAY_SPECIAL_HOLIDAY: Decimal('1.5'),
    DayType.SUNDAY_REGULAR_HOLIDAY: Decimal('2.6'),
}

# 13 working days x 8 hours per semi-monthly cutoff
BI_MONTHLY_BASE_HOURS = Decimal('104')


def money(value):
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _dec(value):
    return value if isinstance(value, Decimal) else Decimal(str(value or 0))


def _to_date(value):
    if value is None or isinstance(value, date):
        return value
    return date.fromisoformat(to_date_string(value))


def get_multiplier(day_type):
    return BASE_MULTIPLIERS[DayType(day_type)]


def overtime_multiplier(day_type):
    day_type = DayType(day_type)
    if day_type == DayType.REGULAR:
        return REGULAR_OT_MULTIPLIER
    return get_multiplier(day_type) * OT_PREMIUM


def calculate_daily_pay(day_type, regular_hours, overtime_hours, night_diff_hours, rate_per_hour):
    """
    Gross pay for one day.

    Regular pay is HRS x RATE x base multiplier, overtime is HRS x RATE x 1.25
    on a regular day and HRS x RATE x base x 1.3 otherwise. Night
    differential is HRS x RATE x 0.1 on every day type. Nothing is rounded
    here; callers round per day and on totals.
    """
    day_type = DayType(day_type)
    rate = _dec(rate_per_hour)
    multiplier = get_multiplier(day_type)

    regular_pay = _dec(regular_hours) * rate * multiplier
    overtime_pay = _dec(overtime_hours) * rate * overtime_multiplier(day_type)
    night_diff_pay = _dec(night_diff_hours) * rate * NIGHT_DIFF_RATE

    return {
        'regular_pay': regular_pay,
        'overtime_pay': overtime_pay,
        'night_diff_pay': night_diff_pay,
        'total': regular_pay + overtime_pay + night_diff_pay,
        'multiplier': multiplier,
        'description': day_type_label(day_type),
    }


def calculate_period_pay(attendance, rate_per_hour):
    """Sum daily pay across a period. Each day is rounded before summing."""
    breakdown = []
    for day in attendance:
        pay = calculate_daily_pay(day.day_type, day.regular_hours, day.overtime_hours,
                                  day.night_diff_hours, rate_per_hour)
        for key in ('regular_pay', 'overtime_pay', 'night_diff_pay', 'total'):
            pay[key] = money(pay[key])
        breakdown.append(pay)

    return {
        'breakdown': breakdown,
        'regular_pay': money(sum((p['regular_pay'] for p in breakdown), Decimal('0'))),
        'overtime_pay': money(sum((p['overtime_pay'] for p in breakdown), Decimal('0'))),
        'night_diff_pay': money(sum((p['night_diff_pay'] for p in breakdown), Decimal('0'))),
        'gross_pay': money(sum((p['total'] for p in breakdown), Decimal('0'))),
    }


def calculate_base_pay(period_start, period_end, clock_entries, holidays, rest_days=None,
                       is_client_based=False, hire_date=None, termination_date=None,
                       tz_name=DEFAULT_TIMEZONE):
    """
    Base hours for a cutoff, less 8 hours per absence.

    The base is 104 hours, prorated by the share of the cutoff's calendar
    days the employee was employed (hire or termination mid-cutoff). A
    scheduled workday with no complete clock entry is an absence. Office
    staff work Monday to Friday; client-based staff follow ``rest_days``.
    Holidays and days outside employment are never absences.
    """
    start, end = _to_date(period_start), _to_date(period_end)
    hire_date, termination_date = _to_date(hire_date), _to_date(termination_date)

    total_days = (end - start).days + 1
    employed_from = max(start, hire_date) if hire_date else start
    employed_to = min(end, termination_date) if termination_date else end
    if employed_from > start or employed_to < end:
        employed_days = max(0, (employed_to - employed_from).days + 1)
        proration = (Decimal(employed_days) / Decimal(total_days)).quantize(CENT, rounding=ROUND_HALF_UP)
    else:
        proration = Decimal('1.00')
    base_hours = money(BI_MONTHLY_BASE_HOURS * proration)

    worked_dates = set(group_entries_by_local_date(clock_entries, tz_name))
    holiday_dates = {holiday.date for holiday in normalize_holidays(holidays)}
    schedule = {to_date_string(key): bool(value) for key, value in (rest_days or {}).items()}

    absence_dates = []
    day = start
    while day <= end:
        key = day.isoformat()
        if is_client_based:
            is_rest_day = schedule.get(key, False)
        else:
            is_rest_day = day.weekday() >= 5
        outside_employment = ((hire_date and day < hire_date)
                              or (termination_date and day > termination_date))
        if not (outside_employment or is_rest_day or key in holiday_dates or key in worked_dates):
            absence_dates.append(key)
        day += timedelta(days=1)

    absence_hours = Decimal(len(absence_dates) * FULL_DAY_HOURS)
    return {
        'base_hours': base_hours,
        'proration_factor': proration,
        'absences': len(absence_dates),
        'absence_hours': absence_hours,
        'final_base_hours': max(Decimal('0'), base_hours - absence_hours),
        'absence_dates': absence_dates,
    }
