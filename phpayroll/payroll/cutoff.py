# phpayroll/payroll/cutoff.py
"""
Bi-monthly cutoffs: the 1st to the 15th, and the 16th to the end of the month.
"""

import calendar
from datetime import date


def is_second_cutoff(day):
    return day.day >= 16


def cutoff_period_for(day):
    """(period_start, period_end) of the cutoff containing ``day``."""
    if day.day <= 15:
        return date(day.year, day.month, 1), date(day.year, day.month, 15)
    last_day = calendar.monthrange(day.year, day.month)[1]
    return date(day.year, day.month, 16), date(day.year, day.month, last_day)


def cutoff_index(day):
    """1..24 within the year: January first cutoff is 1, December second is 24."""
    return (day.month - 1) * 2 + (2 if is_second_cutoff(day) else 1)


def generate_payslip_number(employee_code, index, year):
    return f'{employee_code}-{year}-C{index:02d}'
