from datetime import date
from decimal import Decimal

import pytest

from phpayroll import create_app, db as _db
from phpayroll.models.payroll import Employee


@pytest.fixture
def app():
    """
    Application bound to an in-memory SQLite database, schema created fresh per test.
    """
    app = create_app('testing')
    with app.app_context():
        _db.create_all()
        yield app
        _db.session.remove()
        _db.drop_all()


@pytest.fixture
def db(app):
    return _db


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def employee(db):
    """Office-based employee on a ₱26,000 monthly rate (₱125/hr)."""
    emp = Employee(
        employee_code='EMP001',
        first_name='Juan',
        last_name='Dela Cruz',
        position='Accountant',
        hire_date=date(2020, 3, 1),
        employee_type='office-based',
        monthly_rate=Decimal('26000.00'),
        allowance_per_cutoff=Decimal('500.00'),
    )
    db.session.add(emp)
    db.session.commit()
    return emp
