# phpayroll/attendance/routes.py

from flask import jsonify, current_app, abort
from phpayroll.attendance import bp
from phpayroll import db
from phpayroll.models.payroll import Employee
from .forms import TimesheetPeriodForm
from .sources import build_timesheet, check_clock_entries
from .timesheet import attendance_to_dict


@bp.route('/timesheet/<int:employee_id>', methods=['POST'])
def generate_employee_timesheet(employee_id):
    employee = db.session.get(Employee, employee_id)
    if not employee:
        abort(404)

    form = TimesheetPeriodForm()
    if not form.validate_on_submit():
        return jsonify(errors=form.errors), 422

    timesheet = build_timesheet(
        employee,
        form.period_start.data,
        form.period_end.data,
        lookback_days=current_app.config['HOLIDAY_LOOKBACK_DAYS'],
        cutover_dates=current_app.config['HOLIDAY_CUTOVER_DATES'],
        tz_name=current_app.config['TIMEZONE'],
    )
    validation = check_clock_entries(employee, form.period_start.data, form.period_end.data,
                                     tz_name=current_app.config['TIMEZONE'])
    warnings = [f'No clock entry on {day}' for day in validation.missing_days]
    warnings += [f'Incomplete clock entry on {day}' for day in validation.incomplete_entries]

    return jsonify(
        employee_id=employee.id,
        period_start=form.period_start.data.isoformat(),
        period_end=form.period_end.data.isoformat(),
        attendance=[attendance_to_dict(day) for day in timesheet.attendance],
        total_regular_hours=timesheet.total_regular_hours,
        total_overtime_hours=timesheet.total_overtime_hours,
        total_night_diff_hours=timesheet.total_night_diff_hours,
        has_attendance=timesheet.has_attendance,
        warnings=warnings,
    )
