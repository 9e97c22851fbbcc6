from datetime import date
from decimal import Decimal

import pytest

from phpayroll.models.payroll import Loan, LoanDeduction
from phpayroll.payroll.loans import (
    apply_installment, list_loans_for_cutoff, loan_deduction_amount, loan_due_in_cutoff,
    loan_term_decrement, resolve_loan_deductions,
)

FIRST = (date(2025, 12, 1), date(2025, 12, 15))
SECOND = (date(2025, 12, 16), date(2025, 12, 31))
PAYSLIP = 'EMP001-2025-C23'


@pytest.fixture
def make_loan(db, employee):
    def _make(**overrides):
        values = dict(
            employee_id=employee.id,
            loan_type='SSS Salary Loan',
            original_balance=Decimal('10000.00'),
            current_balance=Decimal('10000.00'),
            monthly_payment=Decimal('1000.00'),
            total_terms=10,
            remaining_terms=Decimal('10'),
            cutoff_assignment='first',
            effectivity_date=date(2025, 12, 1),
        )
        values.update(overrides)
        loan = Loan(**values)
        db.session.add(loan)
        db.session.commit()
        return loan
    return _make


def test_cutoff_assignment(make_loan):
    first = make_loan()
    second = make_loan(cutoff_assignment='second')
    both = make_loan(cutoff_assignment='both')

    assert loan_due_in_cutoff(first, *FIRST) is True
    assert loan_due_in_cutoff(first, *SECOND) is False
    assert loan_due_in_cutoff(second, *SECOND) is True
    assert loan_due_in_cutoff(both, *FIRST) is True
    assert loan_due_in_cutoff(both, *SECOND) is True


def test_loan_not_due_before_effectivity_or_when_inactive(make_loan):
    future = make_loan(effectivity_date=date(2026, 1, 1))
    inactive = make_loan(is_active=False)
    assert loan_due_in_cutoff(future, *FIRST) is False
    assert loan_due_in_cutoff(inactive, *FIRST) is False


def test_split_loans_deduct_half_each_cutoff(make_loan):
    both = make_loan(cutoff_assignment='both')
    assert loan_deduction_amount(both) == Decimal('500.00')
    assert loan_term_decrement(both) == Decimal('0.5')
    assert loan_deduction_amount(make_loan()) == Decimal('1000.00')
    assert loan_term_decrement(make_loan()) == Decimal('1.0')


def test_installment_capped_at_balance(make_loan):
    loan = make_loan(current_balance=Decimal('300.00'))
    [installment] = resolve_loan_deductions([loan], *FIRST)
    assert installment.amount == Decimal('300.00')


def test_apply_installment_updates_balance_and_ledger(db, make_loan):
    loan = make_loan()
    [installment] = resolve_loan_deductions([loan], *FIRST)
    apply_installment(loan, installment, PAYSLIP)
    db.session.commit()

    assert loan.current_balance == Decimal('9000.00')
    assert loan.remaining_terms == Decimal('9')
    assert loan.is_active is True
    assert loan.version == 2
    assert LoanDeduction.query.filter_by(loan_id=loan.id).count() == 1


def test_rerun_does_not_deduct_twice(db, employee, make_loan):
    loan = make_loan()
    [installment] = resolve_loan_deductions([loan], *FIRST)
    apply_installment(loan, installment, PAYSLIP)
    db.session.commit()

    loans, applied = list_loans_for_cutoff(employee.id, PAYSLIP)
    assert applied == {loan.id: Decimal('1000.00')}
    [again] = resolve_loan_deductions(loans, *FIRST, applied)
    assert again.already_applied is True
    assert again.amount == Decimal('1000.00')
    assert apply_installment(loan, again, PAYSLIP) is None
    db.session.commit()

    assert loan.current_balance == Decimal('9000.00')
    assert LoanDeduction.query.count() == 1


def test_final_installment_deactivates_loan(db, employee, make_loan):
    loan = make_loan(current_balance=Decimal('1000.00'), remaining_terms=Decimal('1'))
    [installment] = resolve_loan_deductions([loan], *FIRST)
    apply_installment(loan, installment, PAYSLIP)
    db.session.commit()

    assert loan.current_balance == Decimal('0.00')
    assert loan.is_active is False

    # Still listed for the payslip that paid it off
    loans, applied = list_loans_for_cutoff(employee.id, PAYSLIP)
    assert [row.id for row in loans] == [loan.id]
    assert loan.id in applied


def test_split_loan_terms_decrement_by_half(db, make_loan):
    loan = make_loan(cutoff_assignment='both')
    [installment] = resolve_loan_deductions([loan], *FIRST)
    apply_installment(loan, installment, PAYSLIP)
    db.session.commit()

    assert loan.current_balance == Decimal('9500.00')
    assert loan.remaining_terms == Decimal('10')
    assert loan.is_active is True


def test_split_loan_on_last_term_stays_active_until_paid(db, make_loan):
    loan = make_loan(cutoff_assignment='both', current_balance=Decimal('1000.00'),
                     monthly_payment=Decimal('400.00'), remaining_terms=Decimal('1'))
    for period, payslip_number in ((FIRST, 'EMP001-2025-C23'), (SECOND, 'EMP001-2025-C24')):
        [installment] = resolve_loan_deductions([loan], *period)
        apply_installment(loan, installment, payslip_number)
        db.session.commit()

    assert loan.current_balance == Decimal('600.00')
    assert loan.remaining_terms == Decimal('1')
    assert loan.is_active is True
