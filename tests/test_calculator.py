from collections import namedtuple
from datetime import date, datetime
from decimal import Decimal

import pytest

from phpayroll.attendance.daytype import CalendarHoliday, DayType
from phpayroll.payroll.calculator import (
    calculate_base_pay, calculate_daily_pay, calculate_period_pay, get_multiplier, money,
    overtime_multiplier,
)

Day = namedtuple('Day', ['day_type', 'regular_hours', 'overtime_hours', 'night_diff_hours'])
Entry = namedtuple('Entry', ['clock_in', 'clock_out'])

DECEMBER_HOLIDAYS = [
    CalendarHoliday('2025-12-25', 'Christmas Day', 'regular'),
    CalendarHoliday('2025-12-30', 'Rizal Day', 'regular'),
    CalendarHoliday('2025-12-31', 'Last Day of the Year', 'non-working'),
]


def shift(day):
    clock_in = datetime(day.year, day.month, day.day, 0, 0)
    return Entry(clock_in, clock_in.replace(hour=9))


def test_regular_holiday_multiplier_exactness():
    pay = calculate_daily_pay('regular-holiday', 8, 2, 1, 100)
    assert pay['regular_pay'] == Decimal('1600')
    assert pay['overtime_pay'] == Decimal('520')
    assert pay['night_diff_pay'] == Decimal('10')
    assert pay['total'] == Decimal('2130')
    assert pay['multiplier'] == Decimal('2.0')
    assert pay['description'] == 'Regular Holiday'


def test_regular_day_with_overtime_and_night_diff():
    pay = calculate_daily_pay(DayType.REGULAR, 8, 2, 1, 100)
    assert pay['total'] == Decimal('1060')


def test_rest_day_without_overtime():
    pay = calculate_daily_pay(DayType.SUNDAY, 8, 0, 0, 100)
    assert pay['total'] == Decimal('1040')


@pytest.mark.parametrize('day_type, base, ot', [
    (DayType.REGULAR, '1.0', '1.25'),
    (DayType.SUNDAY, '1.3', '1.69'),
    (DayType.NON_WORKING_HOLIDAY, '1.3', '1.69'),
    (DayType.REGULAR_HOLIDAY, '2.0', '2.6'),
    (DayType.SUNDAY_SPECIAL_HOLIDAY, '1.5', '1.95'),
    (DayType.SUNDAY_REGULAR_HOLIDAY, '2.6', '3.38'),
])
def test_multiplier_table(day_type, base, ot):
    assert get_multiplier(day_type) == Decimal(base)
    assert overtime_multiplier(day_type) == Decimal(ot)
    assert calculate_daily_pay(day_type, 1, 0, 0, 1)['multiplier'] == Decimal(base)


def test_unknown_day_type_is_rejected():
    with pytest.raises(ValueError):
        calculate_daily_pay('half-day', 8, 0, 0, 100)


def test_period_pay_rounds_each_day_half_up():
    # 26000 / 26 / 8 = 125; a third of that leaves fractional cents
    rate = Decimal('125') / 3
    days = [
        Day(DayType.REGULAR, 1, 0, 0),
        Day(DayType.REGULAR, 1, 0, 0),
        Day(DayType.SUNDAY, 0, 0, 0),
    ]
    period = calculate_period_pay(days, rate)
    assert [p['total'] for p in period['breakdown']] == [Decimal('41.67'), Decimal('41.67'), Decimal('0.00')]
    assert period['gross_pay'] == Decimal('83.34')


def test_period_totals():
    days = [
        Day(DayType.REGULAR, 8, 2, 1),
        Day(DayType.SUNDAY, 8, 0, 0),
        Day(DayType.REGULAR_HOLIDAY, 8, 2, 1),
    ]
    period = calculate_period_pay(days, Decimal('100'))
    assert period['regular_pay'] == Decimal('3440.00')
    assert period['overtime_pay'] == Decimal('770.00')
    assert period['night_diff_pay'] == Decimal('20.00')
    assert period['gross_pay'] == Decimal('4230.00')


def test_money_rounds_half_up():
    assert money(Decimal('0.005')) == Decimal('0.01')
    assert money('226.275') == Decimal('226.28')


def test_base_pay_deducts_unworked_weekdays():
    entries = [shift(date(2025, 12, d)) for d in (16, 17, 18)]
    base = calculate_base_pay('2025-12-16', '2025-12-31', entries, DECEMBER_HOLIDAYS)

    assert base['base_hours'] == Decimal('104.00')
    assert base['absence_dates'] == ['2025-12-19', '2025-12-22', '2025-12-23', '2025-12-24',
                                     '2025-12-26', '2025-12-29']
    assert base['absences'] == 6
    assert base['absence_hours'] == Decimal('48')
    assert base['final_base_hours'] == Decimal('56.00')


def test_base_pay_ignores_open_clock_entries():
    open_entry = shift(date(2025, 12, 16))._replace(clock_out=None)
    base = calculate_base_pay('2025-12-16', '2025-12-16', [open_entry], [])
    assert base['absence_dates'] == ['2025-12-16']


def test_base_pay_prorated_for_mid_cutoff_hire():
    base = calculate_base_pay('2025-12-16', '2025-12-31', [], DECEMBER_HOLIDAYS,
                              hire_date=date(2025, 12, 24))

    # employed 8 of 16 days
    assert base['proration_factor'] == Decimal('0.50')
    assert base['base_hours'] == Decimal('52.00')
    assert base['absence_dates'] == ['2025-12-24', '2025-12-26', '2025-12-29']
    assert base['final_base_hours'] == Decimal('28.00')


def test_base_pay_never_negative_after_termination():
    base = calculate_base_pay(date(2025, 12, 1), date(2025, 12, 15), [], [],
                              termination_date=date(2025, 12, 5))

    assert base['proration_factor'] == Decimal('0.33')
    assert base['base_hours'] == Decimal('34.32')
    assert base['absences'] == 5
    assert base['final_base_hours'] == 0


def test_client_based_base_pay_follows_schedule():
    schedule = {'2025-12-20': True, '2025-12-21': False}
    base = calculate_base_pay('2025-12-20', '2025-12-21', [], [], rest_days=schedule,
                              is_client_based=True)
    assert base['absence_dates'] == ['2025-12-21']
