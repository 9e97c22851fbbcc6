# phpayroll/payroll/deductions.py

from decimal import Decimal

from .calculator import money
from .cutoff import is_second_cutoff

ZERO = Decimal('0.00')

# --- SSS CONTRIBUTION TABLE (2025) ---
# (bracket_max, monthly_salary_credit), taken row for row from the official table.
# Salaries below the first row use the minimum MSC; above the last, SSS_MAX_MSC.
SSS_TABLE = [
    (Decimal('5249.99'), Decimal('5000')),
    (Decimal('5749.99'), Decimal('5500')),
    (Decimal('6249.99'), Decimal('6000')),
    (Decimal('6749.99'), Decimal('6500')),
    (Decimal('7249.99'), Decimal('7000')),
    (Decimal('7749.99'), Decimal('7500')),
    (Decimal('8249.99'), Decimal('8000')),
    (Decimal('8749.99'), Decimal('8500')),
    (Decimal('9249.99'), Decimal('9000')),
    (Decimal('9749.99'), Decimal('9500')),
    (Decimal('10249.99'), Decimal('10000')),
    (Decimal('10749.99'), Decimal('10500')),
    (Decimal('11249.99'), Decimal('11000')),
    (Decimal('11749.99'), Decimal('11500')),
    (Decimal('12249.99'), Decimal('12000')),
    (Decimal('12749.99'), Decimal('12500')),
    (Decimal('13249.99'), Decimal('13000')),
    (Decimal('13749.99'), Decimal('13500')),
    (Decimal('14249.99'), Decimal('14000')),
    (Decimal('14749.99'), Decimal('14500')),
    (Decimal('15249.99'), Decimal('15000')),
    (Decimal('15749.99'), Decimal('15500')),
    (Decimal('16249.99'), Decimal('16000')),
    (Decimal('16749.99'), Decimal('16500')),
    (Decimal('17249.99'), Decimal('17000')),
    (Decimal('17749.99'), Decimal('17500')),
    (Decimal('18249.99'), Decimal('18000')),
    (Decimal('18749.99'), Decimal('18500')),
    (Decimal('19249.99'), Decimal('19000')),
    (Decimal('19749.99'), Decimal('19500')),
    (Decimal('20249.99'), Decimal('20000')),
    (Decimal('20749.99'), Decimal('20500')),
    (Decimal('21249.99'), Decimal('21000')),
    (Decimal('21749.99'), Decimal('21500')),
    (Decimal('22249.99'), Decimal('22000')),
    (Decimal('22749.99'), Decimal('22500')),
    (Decimal('23249.99'), Decimal('23000')),
    (Decimal('23749.99'), Decimal('23500')),
    (Decimal('24249.99'), Decimal('24000')),
    (Decimal('24749.99'), Decimal('24500')),
    (Decimal('25249.99'), Decimal('25000')),
    (Decimal('25749.99'), Decimal('25500')),
    (Decimal('26249.99'), Decimal('26000')),
    (Decimal('26749.99'), Decimal('26500')),
    (Decimal('27249.99'), Decimal('27000')),
    (Decimal('27749.99'), Decimal('27500')),
    (Decimal('28249.99'), Decimal('28000')),
    (Decimal('28749.99'), Decimal('28500')),
    (Decimal('29249.99'), Decimal('29000')),
    (Decimal('29749.99'), Decimal('29500')),
    (Decimal('30000.00'), Decimal('30000')),
    (Decimal('30749.99'), Decimal('30500')),
    (Decimal('31499.99'), Decimal('31000')),
    (Decimal('32249.99'), Decimal('31500')),
    (Decimal('32999.99'), Decimal('32000')),
    (Decimal('33749.99'), Decimal('32500')),
    (Decimal('34249.99'), Decimal('34000')),
    (Decimal('34749.99'), Decimal('34500')),
]
SSS_MAX_MSC = Decimal('35000.00')
SSS_EMPLOYEE_RATE = Decimal('0.05')
SSS_EMPLOYER_RATE = Decimal('0.10')
# MSC above this goes to the Workers' Investment and Savings Program
WISP_THRESHOLD = Decimal('20000.00')

# --- PHILHEALTH (2025) ---
PHILHEALTH_EMPLOYEE_RATE = Decimal('0.025')

# --- PAG-IBIG (HDMF) ---
PAGIBIG_MONTHLY_AMOUNT = Decimal('200.00')

# --- WITHHOLDING TAX (BIR monthly table, effective January 1, 2023) ---
# (max_compensation, prescribed_tax, rate, excess_over)
TAX_TABLE = [
    (Decimal('20833.00'), Decimal('0.00'), Decimal('0.00'), Decimal('0.00')),
    (Decimal('33332.00'), Decimal('0.00'), Decimal('0.15'), Decimal('20833.00')),
    (Decimal('66666.00'), Decimal('1875.00'), Decimal('0.20'), Decimal('33333.00')),
    (Decimal('166666.00'), Decimal('8541.80'), Decimal('0.25'), Decimal('66667.00')),
    (Decimal('666666.00'), Decimal('33541.80'), Decimal('0.30'), Decimal('166667.00')),
    (None, Decimal('183541.80'), Decimal('0.35'), Decimal('666667.00')),
]


def find_sss_msc(monthly_salary):
    for max_bracket, msc in SSS_TABLE:
        if monthly_salary <= max_bracket:
            return msc
    return SSS_MAX_MSC


def calculate_sss(monthly_salary):
    """SSS employee and employer shares, with WISP split out above the 20,000 MSC."""
    msc = find_sss_msc(Decimal(monthly_salary))
    regular_msc = min(msc, WISP_THRESHOLD)
    wisp_msc = max(ZERO, msc - WISP_THRESHOLD)

    regular_employee_share = money(regular_msc * SSS_EMPLOYEE_RATE)
    wisp_employee_share = money(wisp_msc * SSS_EMPLOYEE_RATE)
    return {
        'msc': msc,
        'regular_msc': regular_msc,
        'wisp_msc': wisp_msc,
        'regular_employee_share': regular_employee_share,
        'wisp_employee_share': wisp_employee_share,
        'employee_share': regular_employee_share + wisp_employee_share,
        'employer_share': money(msc * SSS_EMPLOYER_RATE),
    }


def calculate_philhealth(monthly_basic_salary):
    """Employee share only; the employer pays the other half."""
    salary = max(ZERO, Decimal(monthly_basic_salary or 0))
    return money(salary * PHILHEALTH_EMPLOYEE_RATE)


def calculate_pagibig(monthly_basic_salary=None):
    return PAGIBIG_MONTHLY_AMOUNT


def withholding_tax_breakdown(monthly_taxable_income):
    taxable = max(ZERO, Decimal(monthly_taxable_income or 0))
    for index, (max_comp, prescribed, rate, over) in enumerate(TAX_TABLE, start=1):
        if max_comp is None or taxable <= max_comp:
            excess = max(ZERO, taxable - over)
            tax_on_excess = money(excess * rate)
            return {
                'taxable_income': taxable,
                'bracket': index,
                'prescribed_tax': prescribed,
                'rate': rate,
                'excess_over': over,
                'excess_amount': money(excess),
                'tax_on_excess': tax_on_excess,
                'withholding_tax': money(prescribed + tax_on_excess),
            }


def calculate_withholding_tax(monthly_taxable_income):
    """Monthly withholding tax on compensation."""
    return withholding_tax_breakdown(monthly_taxable_income)['withholding_tax']


def calculate_statutory_deductions(monthly_basic_salary, period_start):
    """
    Statutory deductions for one cutoff.

    ``monthly_basic_salary`` must exclude allowances. SSS, PhilHealth and
    Pag-IBIG are taken once a month, on the second cutoff. Withholding tax
    is computed on the month's taxable income and split evenly across both
    cutoffs.
    """
    monthly = Decimal(monthly_basic_salary or 0)
    sss = calculate_sss(monthly)
    philhealth = calculate_philhealth(monthly)
    pagibig = calculate_pagibig(monthly)

    taxable_income = max(ZERO, monthly - (sss['employee_share'] + philhealth + pagibig))
    monthly_tax = calculate_withholding_tax(taxable_income)

    second = is_second_cutoff(period_start)
    return {
        'sss': sss['regular_employee_share'] if second else ZERO,
        'sss_wisp': sss['wisp_employee_share'] if second else ZERO,
        'philhealth': philhealth if second else ZERO,
        'pagibig': pagibig if second else ZERO,
        'withholding_tax': money(monthly_tax / 2),
        'monthly_withholding_tax': monthly_tax,
        'taxable_income': money(taxable_income),
        'is_second_cutoff': second,
    }
