from datetime import date, datetime
from decimal import Decimal

from phpayroll.models.payroll import ClockEntry, Employee, Holiday


def add_shift(db, employee, day):
    db.session.add(ClockEntry(
        employee_id=employee.id,
        clock_in=datetime(day.year, day.month, day.day, 0, 0),
        clock_out=datetime(day.year, day.month, day.day, 9, 0),
        regular_hours=Decimal('8'),
        status='clocked_out',
    ))
    db.session.commit()


def test_timesheet_endpoint(client, db, employee):
    add_shift(db, employee, date(2025, 12, 16))

    response = client.post(f'/attendance/timesheet/{employee.id}',
                           data={'period_start': '2025-12-16', 'period_end': '2025-12-20'})

    assert response.status_code == 200
    body = response.get_json()
    assert len(body['attendance']) == 5
    assert body['attendance'][0] == {'date': '2025-12-16', 'day_type': 'regular',
                                     'regular_hours': 8, 'overtime_hours': 0,
                                     'night_diff_hours': 0}
    # Tuesday worked plus the unworked Saturday
    assert body['total_regular_hours'] == 16
    assert body['has_attendance'] is True
    assert body['warnings'] == ['No clock entry on 2025-12-17', 'No clock entry on 2025-12-18',
                                'No clock entry on 2025-12-19']


def test_timesheet_warnings_skip_holidays_and_flag_open_entries(client, db, employee):
    db.session.add(Holiday(date=date(2025, 12, 25), name='Christmas Day', type='regular'))
    add_shift(db, employee, date(2025, 12, 24))
    db.session.add(ClockEntry(employee_id=employee.id, clock_in=datetime(2025, 12, 26, 0, 0),
                              status='clocked_in'))
    db.session.commit()

    response = client.post(f'/attendance/timesheet/{employee.id}',
                           data={'period_start': '2025-12-24', 'period_end': '2025-12-26'})
    assert response.get_json()['warnings'] == ['Incomplete clock entry on 2025-12-26']


def test_timesheet_rejects_inverted_period(client, employee):
    response = client.post(f'/attendance/timesheet/{employee.id}',
                           data={'period_start': '2025-12-20', 'period_end': '2025-12-16'})
    assert response.status_code == 422
    assert 'period_end' in response.get_json()['errors']


def test_unknown_employee_is_404(client, db):
    response = client.post('/attendance/timesheet/999',
                           data={'period_start': '2025-12-16', 'period_end': '2025-12-20'})
    assert response.status_code == 404
    assert response.get_json() == {'error': 'Not found'}

    response = client.post('/payroll/payslips/999', data={'period_start': '2025-12-16'})
    assert response.status_code == 404


def test_payslip_is_created_then_updated(client, db, employee):
    add_shift(db, employee, date(2025, 12, 1))

    response = client.post(f'/payroll/payslips/{employee.id}', data={'period_start': '2025-12-01'})
    assert response.status_code == 201
    body = response.get_json()
    assert body['payslip_number'] == 'EMP001-2025-C23'
    assert body['gross_pay'] == '3000.00'
    assert body['net_pay'] == '3273.72'
    assert body['warnings'] == []

    response = client.post(f'/payroll/payslips/{employee.id}', data={'period_start': '2025-12-05'})
    assert response.status_code == 200
    assert response.get_json()['payslip_number'] == 'EMP001-2025-C23'


def test_payslip_requires_valid_date(client, employee):
    response = client.post(f'/payroll/payslips/{employee.id}', data={'period_start': '12/01/2025'})
    assert response.status_code == 422
    assert 'period_start' in response.get_json()['errors']


def test_payslip_without_rate_is_rejected(client, db):
    employee = Employee(employee_code='EMP003', first_name='Pedro', last_name='Penduko')
    db.session.add(employee)
    db.session.commit()

    response = client.post(f'/payroll/payslips/{employee.id}', data={'period_start': '2025-12-01'})
    assert response.status_code == 422
    assert response.get_json() == {'error': 'Gross pay is invalid, please recalculate'}


def test_register_endpoint(client, db, employee):
    client.post(f'/payroll/payslips/{employee.id}', data={'period_start': '2025-12-01'})

    response = client.get('/payroll/register?period_start=2025-12-10')
    assert response.status_code == 200
    body = response.get_json()
    assert body['period_start'] == '2025-12-01'
    assert body['period_end'] == '2025-12-15'
    assert body['headcount'] == 1
    assert [p['payslip_number'] for p in body['payslips']] == ['EMP001-2025-C23']


def test_register_errors(client, db):
    assert client.get('/payroll/register?period_start=2025-12-10').status_code == 404
    response = client.get('/payroll/register?period_start=soon')
    assert response.status_code == 422
    assert 'period_start' in response.get_json()['errors']
    assert client.get('/payroll/register').status_code == 422
