# phpayroll/payroll/assembler.py
"""
Payslip assembly.

Composes the timesheet, period pay, statutory deductions and loan
installments into a persisted Payslip. Steps that run after the payslip is
written (loan balances, 13th-month accrual) are recorded one by one in the
PayrollSideEffect log; a failing step is reported as a warning and does not
roll the payslip back.
"""

import logging
from collections import namedtuple
from decimal import Decimal

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from phpayroll import db
from phpayroll.attendance.sources import (
    build_timesheet, count_sil_days, list_clock_entries, list_holidays, list_schedule,
)
from phpayroll.attendance.timesheet import (
    DEFAULT_CUTOVER_DATES, DEFAULT_LOOKBACK_DAYS, DEFAULT_TIMEZONE, attendance_to_dict,
)
from phpayroll.models.payroll import Payslip, PayrollRegister, PayrollSideEffect
from .calculator import calculate_base_pay, calculate_period_pay, money
from .cutoff import cutoff_index, cutoff_period_for, generate_payslip_number
from .deductions import calculate_statutory_deductions
from .loans import (
    LoanConcurrencyError, apply_installment, list_loans_for_cutoff, resolve_loan_deductions,
)

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')

PayslipValues = namedtuple('PayslipValues', [
    'earnings_breakdown', 'gross_pay', 'allowance_amount', 'deductions_breakdown',
    'total_deductions', 'sss_amount', 'philhealth_amount', 'pagibig_amount',
    'withholding_tax', 'net_pay',
])

PayslipResult = namedtuple('PayslipResult', ['payslip', 'created', 'warnings'])


class PayrollValidationError(ValueError):
    """Raised before persistence when a payslip cannot be saved."""


def months_worked_in_year(hire_date, year):
    if hire_date is None or hire_date.year < year:
        return 12
    if hire_date.year > year:
        return 0
    return 12 - hire_date.month + 1


def compute_thirteenth_month(monthly_basic_salary, months_worked, sil_days, daily_rate):
    """
    (monthly basic / 12) x months worked, less the SIL days' pay / 12.

    SIL days are excluded from 13th-month pay. Never negative.
    """
    monthly = Decimal(monthly_basic_salary or 0)
    accrued = monthly / 12 * Decimal(months_worked)
    sil_pay = Decimal(sil_days or 0) * Decimal(daily_rate or 0) / 12
    return money(max(Decimal('0'), accrued - sil_pay))


def base_pay_to_dict(base_pay, rate_per_hour):
    return {
        'base_hours': str(base_pay['base_hours']),
        'proration_factor': str(base_pay['proration_factor']),
        'absences': base_pay['absences'],
        'absence_hours': str(base_pay['absence_hours']),
        'final_base_hours': str(base_pay['final_base_hours']),
        'absence_dates': base_pay['absence_dates'],
        'amount': str(money(base_pay['final_base_hours'] * Decimal(rate_per_hour or 0))),
    }


def assemble_payslip_values(timesheet, rate_per_hour, monthly_basic_salary, period_start,
                            installments=(), allowance=ZERO, base_pay=None):
    """
    Pure composition of gross, deductions and net pay for one cutoff.

    Gross pay is the sum of the daily rows. ``base_pay`` (from
    calculate_base_pay) is reported alongside them for absence review.
    """
    period_pay = calculate_period_pay(timesheet.attendance, rate_per_hour)
    statutory = calculate_statutory_deductions(monthly_basic_salary, period_start)

    days = []
    for day, pay in zip(timesheet.attendance, period_pay['breakdown']):
        row = attendance_to_dict(day)
        row.update(description=pay['description'], multiplier=str(pay['multiplier']),
                   amount=str(pay['total']))
        days.append(row)
    earnings = {'days': days}
    if base_pay is not None:
        earnings['base_pay'] = base_pay_to_dict(base_pay, rate_per_hour)

    loan_total = sum((i.amount for i in installments), ZERO)
    sss_amount = statutory['sss'] + statutory['sss_wisp']
    total_deductions = money(sss_amount + statutory['philhealth'] + statutory['pagibig']
                             + statutory['withholding_tax'] + loan_total)
    allowance = money(allowance or 0)

    breakdown = {
        key: str(statutory[key])
        for key in ('sss', 'sss_wisp', 'philhealth', 'pagibig', 'withholding_tax', 'taxable_income')
    }
    breakdown['loans'] = [
        {'loan_id': i.loan_id, 'loan_type': i.loan_type, 'amount': str(i.amount)}
        for i in installments
    ]

    return PayslipValues(
        earnings_breakdown=earnings,
        gross_pay=period_pay['gross_pay'],
        allowance_amount=allowance,
        deductions_breakdown=breakdown,
        total_deductions=total_deductions,
        sss_amount=sss_amount,
        philhealth_amount=statutory['philhealth'],
        pagibig_amount=statutory['pagibig'],
        withholding_tax=statutory['withholding_tax'],
        net_pay=money(period_pay['gross_pay'] - total_deductions + allowance),
    )


class PayslipAssembler:
    """Runs payroll for one employee and one cutoff."""

    def __init__(self, employee, period_start, lookback_days=DEFAULT_LOOKBACK_DAYS,
                 cutover_dates=DEFAULT_CUTOVER_DATES, tz_name=DEFAULT_TIMEZONE):
        self.employee = employee
        self.period_start, self.period_end = cutoff_period_for(period_start)
        self.lookback_days = lookback_days
        self.cutover_dates = cutover_dates
        self.tz_name = tz_name
        self.payslip_number = generate_payslip_number(
            employee.employee_code, cutoff_index(self.period_start), self.period_start.year)

    def run(self):
        employee = self.employee
        logger.info('Running payroll %s for %s to %s', self.payslip_number,
                    self.period_start, self.period_end)

        # All reads happen before any computation
        timesheet = build_timesheet(employee, self.period_start, self.period_end,
                                    lookback_days=self.lookback_days,
                                    cutover_dates=self.cutover_dates, tz_name=self.tz_name)
        loans, applied = list_loans_for_cutoff(employee.id, self.payslip_number)
        base_pay = self._base_pay()

        installments = resolve_loan_deductions(loans, self.period_start, self.period_end, applied)
        values = assemble_payslip_values(
            timesheet, employee.rate_per_hour, employee.monthly_basic_salary,
            self.period_start, installments, employee.allowance_per_cutoff, base_pay)

        if employee.rate_per_hour <= 0 or values.gross_pay <= 0:
            raise PayrollValidationError('Gross pay is invalid, please recalculate')

        payslip, created = self._upsert(values)
        warnings = self._run_side_effects(payslip, [
            ('apply_loan_installments', lambda: self._apply_loan_installments(loans, installments)),
            ('accrue_thirteenth_month', lambda: self._accrue_thirteenth_month(payslip)),
        ])
        logger.info('Payroll %s saved (net %s, %d warning(s))', self.payslip_number,
                    payslip.net_pay, len(warnings))
        return PayslipResult(payslip, created, warnings)

    def _base_pay(self):
        employee = self.employee
        return calculate_base_pay(
            self.period_start, self.period_end,
            list_clock_entries(employee.id, self.period_start, self.period_end),
            list_holidays(self.period_start, self.period_end),
            rest_days=list_schedule(employee.id, self.period_start, self.period_end),
            is_client_based=employee.is_client_based,
            hire_date=employee.hire_date,
            termination_date=employee.termination_date,
            tz_name=self.tz_name,
        )

    def _register(self):
        register = PayrollRegister.query.filter_by(
            period_start=self.period_start, period_end=self.period_end).first()
        if register is None:
            register = PayrollRegister(period_start=self.period_start, period_end=self.period_end)
            db.session.add(register)
            db.session.flush()
        return register

    def _upsert(self, values):
        # Resolve the register first so no half-built payslip is autoflushed
        register = self._register()
        payslip = Payslip.query.filter_by(payslip_number=self.payslip_number).first()
        created = payslip is None
        if created:
            payslip = Payslip(payslip_number=self.payslip_number, employee_id=self.employee.id,
                              status='draft')

        payslip.payroll_register_id = register.id
        payslip.period_start = self.period_start
        payslip.period_end = self.period_end
        payslip.cutoff_index = cutoff_index(self.period_start)
        for field, value in values._asdict().items():
            setattr(payslip, field, value)
        payslip.status = 'saved'
        if created:
            db.session.add(payslip)

        try:
            db.session.commit()
        except Exception:
            db.session.rollback()
            raise
        return payslip, created

    def _run_side_effects(self, payslip, steps):
        warnings = []
        for name, step in steps:
            try:
                status, details = step()
                db.session.add(PayrollSideEffect(payslip_id=payslip.id, step=name,
                                                 status=status, details=details))
                db.session.commit()
            except Exception as e:
                db.session.rollback()
                logger.error('Side effect %s failed for payslip %s: %s', name,
                             self.payslip_number, e)
                db.session.add(PayrollSideEffect(payslip_id=payslip.id, step=name,
                                                 status='failed', details=str(e)))
                db.session.commit()
                warnings.append(f'{name} failed: {e}')
        return warnings

    def _apply_loan_installments(self, loans, installments):
        loans_by_id = {loan.id: loan for loan in loans}
        applied = []
        for installment in installments:
            ledger = apply_installment(loans_by_id[installment.loan_id], installment,
                                       self.payslip_number)
            if ledger is not None:
                applied.append(f'loan {installment.loan_id}: -{installment.amount}')
        try:
            db.session.flush()
        except (StaleDataError, IntegrityError) as e:
            raise LoanConcurrencyError(
                f'Loan balances changed by another payroll run for {self.payslip_number}') from e

        if not applied:
            return 'skipped', 'No new loan installments'
        return 'applied', '; '.join(applied)

    def _accrue_thirteenth_month(self, payslip):
        if self.period_start.month != 12:
            return 'skipped', 'Not a December cutoff'

        employee = self.employee
        year = self.period_start.year
        months_worked = months_worked_in_year(employee.hire_date, year)
        sil_days = count_sil_days(employee.id, year)
        payslip.thirteenth_month_pay = compute_thirteenth_month(
            employee.monthly_basic_salary, months_worked, sil_days, employee.daily_rate)
        return 'applied', (f'{months_worked} month(s) worked, {sil_days} SIL day(s) excluded: '
                           f'{payslip.thirteenth_month_pay}')
