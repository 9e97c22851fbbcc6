from datetime import date

from phpayroll.payroll.cutoff import (
    cutoff_index, cutoff_period_for, generate_payslip_number, is_second_cutoff,
)


def test_cutoff_periods():
    assert cutoff_period_for(date(2025, 12, 5)) == (date(2025, 12, 1), date(2025, 12, 15))
    assert cutoff_period_for(date(2025, 2, 20)) == (date(2025, 2, 16), date(2025, 2, 28))
    assert cutoff_period_for(date(2024, 2, 16)) == (date(2024, 2, 16), date(2024, 2, 29))


def test_second_cutoff_starts_on_the_16th():
    assert is_second_cutoff(date(2025, 12, 15)) is False
    assert is_second_cutoff(date(2025, 12, 16)) is True


def test_cutoff_index_runs_1_to_24():
    assert cutoff_index(date(2025, 1, 1)) == 1
    assert cutoff_index(date(2025, 1, 16)) == 2
    assert cutoff_index(date(2025, 12, 1)) == 23
    assert cutoff_index(date(2025, 12, 31)) == 24


def test_payslip_number_is_deterministic():
    assert generate_payslip_number('EMP001', 3, 2025) == 'EMP001-2025-C03'
    assert generate_payslip_number('EMP001', 24, 2025) == 'EMP001-2025-C24'
