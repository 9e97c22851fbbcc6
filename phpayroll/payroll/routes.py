# phpayroll/payroll/routes.py

from flask import jsonify, current_app, abort, request
from phpayroll.payroll import bp
from phpayroll import db
from phpayroll.models.payroll import Employee, Payslip, PayrollRegister
from .forms import RegisterQueryForm, RunPayslipForm
from .assembler import PayslipAssembler, PayrollValidationError
from .cutoff import cutoff_period_for
from .loans import LoanConcurrencyError


@bp.route('/payslips/<int:employee_id>', methods=['POST'])
def run_payslip(employee_id):
    employee = db.session.get(Employee, employee_id)
    if not employee:
        abort(404)

    form = RunPayslipForm()
    if not form.validate_on_submit():
        return jsonify(errors=form.errors), 422

    assembler = PayslipAssembler(
        employee,
        form.period_start.data,
        lookback_days=current_app.config['HOLIDAY_LOOKBACK_DAYS'],
        cutover_dates=current_app.config['HOLIDAY_CUTOVER_DATES'],
        tz_name=current_app.config['TIMEZONE'],
    )
    try:
        result = assembler.run()
    except PayrollValidationError as e:
        current_app.logger.warning('Payroll rejected for %s: %s', employee.employee_code, e)
        return jsonify(error=str(e)), 422
    except LoanConcurrencyError as e:
        current_app.logger.warning('Payroll conflict for %s: %s', employee.employee_code, e)
        return jsonify(error=str(e)), 409

    body = result.payslip.to_dict()
    body['warnings'] = result.warnings
    return jsonify(body), 201 if result.created else 200


@bp.route('/register')
def payroll_register():
    form = RegisterQueryForm(formdata=request.args, meta={'csrf': False})
    if not form.validate():
        return jsonify(errors=form.errors), 422

    period_start, period_end = cutoff_period_for(form.period_start.data)
    register = PayrollRegister.query.filter_by(
        period_start=period_start, period_end=period_end).first()
    if not register:
        abort(404)

    payslips = Payslip.query.filter_by(payroll_register_id=register.id) \
        .order_by(Payslip.payslip_number).all()
    return jsonify(
        period_start=period_start.isoformat(),
        period_end=period_end.isoformat(),
        total_gross_pay=str(register.total_gross_pay),
        total_deductions=str(register.total_deductions),
        total_net_pay=str(register.total_net_pay),
        headcount=register.headcount,
        payslips=[p.to_dict() for p in payslips],
    )
