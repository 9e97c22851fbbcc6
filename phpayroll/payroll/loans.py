# phpayroll/payroll/loans.py

import math
from collections import namedtuple
from decimal import Decimal

from phpayroll import db
from phpayroll.models.payroll import Loan, LoanDeduction
from .calculator import money
from .cutoff import is_second_cutoff

FIRST_CUTOFF = 'first'
SECOND_CUTOFF = 'second'
BOTH_CUTOFFS = 'both'

PAID_OFF_TOLERANCE = Decimal('0.01')

LoanInstallment = namedtuple(
    'LoanInstallment',
    ['loan_id', 'loan_type', 'amount', 'term_decrement', 'already_applied'],
)


class LoanConcurrencyError(ValueError):
    """Another payroll run changed the loan while this one was applying an installment."""


def loan_due_in_cutoff(loan, period_start, period_end):
    if not loan.is_active or Decimal(loan.current_balance) <= 0:
        return False
    if loan.effectivity_date > period_end:
        return False
    if loan.cutoff_assignment == BOTH_CUTOFFS:
        return True
    current = SECOND_CUTOFF if is_second_cutoff(period_start) else FIRST_CUTOFF
    return loan.cutoff_assignment == current


def loan_deduction_amount(loan):
    monthly = Decimal(loan.monthly_payment)
    if loan.cutoff_assignment == BOTH_CUTOFFS:
        return money(monthly / 2)
    return money(monthly)


def loan_term_decrement(loan):
    return Decimal('0.5') if loan.cutoff_assignment == BOTH_CUTOFFS else Decimal('1.0')


def resolve_loan_deductions(loans, period_start, period_end, applied=None):
    """
    Installments due in this cutoff.

    ``applied`` maps loan id to the amount already recorded for this payslip;
    those loans are reported with that amount and flagged so a re-run does
    not deduct twice. A new installment never exceeds the remaining balance.
    """
    applied = applied or {}
    installments = []
    for loan in loans:
        if loan.id in applied:
            installments.append(LoanInstallment(loan.id, loan.loan_type, money(applied[loan.id]),
                                                loan_term_decrement(loan), True))
        elif loan_due_in_cutoff(loan, period_start, period_end):
            amount = min(loan_deduction_amount(loan), money(loan.current_balance))
            installments.append(LoanInstallment(loan.id, loan.loan_type, amount,
                                                loan_term_decrement(loan), False))
    return installments


def apply_installment(loan, installment, payslip_number):
    """Decrement balance and terms, deactivating a paid-off loan. Records a ledger row."""
    if installment.already_applied:
        return None

    new_balance = max(Decimal('0'), Decimal(loan.current_balance) - installment.amount)
    # Terms are whole numbers; a half-term decrement rounds back up
    remaining = Decimal(math.ceil(
        max(Decimal('0'), Decimal(loan.remaining_terms) - installment.term_decrement)))

    if new_balance <= PAID_OFF_TOLERANCE or math.ceil(remaining) <= 0:
        loan.is_active = False
        new_balance = Decimal('0')
        remaining = Decimal('0')

    loan.current_balance = money(new_balance)
    loan.remaining_terms = remaining

    ledger = LoanDeduction(
        loan_id=loan.id,
        payslip_number=payslip_number,
        amount=installment.amount,
        term_decrement=installment.term_decrement,
        balance_after=loan.current_balance,
    )
    db.session.add(ledger)
    return ledger


def list_loans_for_cutoff(employee_id, payslip_number):
    """
    Active loans plus any loan already charged on this payslip.

    Returns (loans, applied) where ``applied`` maps loan id to the recorded amount.
    """
    recorded = db.session.query(LoanDeduction).join(Loan).filter(
        Loan.employee_id == employee_id,
        LoanDeduction.payslip_number == payslip_number
    ).all()
    applied = {row.loan_id: row.amount for row in recorded}

    query = Loan.query.filter(Loan.employee_id == employee_id)
    if applied:
        query = query.filter(db.or_(Loan.is_active.is_(True), Loan.id.in_(list(applied))))
    else:
        query = query.filter(Loan.is_active.is_(True))
    return query.order_by(Loan.effectivity_date, Loan.id).all(), applied
