# phpayroll/models/payroll.py

from phpayroll import db
from datetime import datetime
from decimal import Decimal
from sqlalchemy import event, select, func

STANDARD_DAY_HOURS = Decimal('8')
WORKING_DAYS_PER_MONTH = Decimal('26')


class Employee(db.Model):
    __tablename__ = 'employee'
    id = db.Column(db.Integer, primary_key=True)
    employee_code = db.Column(db.String(20), index=True, unique=True, nullable=False)
    first_name = db.Column(db.String(64), nullable=False)
    last_name = db.Column(db.String(64), nullable=False)
    position = db.Column(db.String(64))
    job_level = db.Column(db.String(32))
    hire_date = db.Column(db.Date)
    termination_date = db.Column(db.Date)
    employee_type = db.Column(db.String(20), nullable=False, default='office-based')
    rate_per_day = db.Column(db.Numeric(10, 2))
    monthly_rate = db.Column(db.Numeric(10, 2))
    # Non-taxable; added to net pay only
    allowance_per_cutoff = db.Column(db.Numeric(10, 2), default=Decimal('0.00'))
    eligible_for_ot = db.Column(db.Boolean, nullable=False, default=True)
    eligible_for_night_diff = db.Column(db.Boolean, nullable=False, default=True)
    status = db.Column(db.String(20), default='Active')

    clock_entries = db.relationship('ClockEntry', back_populates='employee', lazy='dynamic')
    loans = db.relationship('Loan', back_populates='employee', lazy='dynamic')
    payslips = db.relationship('Payslip', back_populates='employee', lazy='dynamic')

    def __repr__(self):
        return f'<Employee {self.employee_code}>'

    @property
    def is_client_based(self):
        return self.employee_type == 'client-based'

    @property
    def is_client_based_account_supervisor(self):
        return self.is_client_based and (self.position or '').strip().lower() == 'account supervisor'

    @property
    def daily_rate(self):
        """Monthly rate is authoritative when present."""
        if self.monthly_rate:
            return Decimal(self.monthly_rate) / WORKING_DAYS_PER_MONTH
        if self.rate_per_day:
            return Decimal(self.rate_per_day)
        return Decimal('0')

    @property
    def rate_per_hour(self):
        return self.daily_rate / STANDARD_DAY_HOURS

    @property
    def monthly_basic_salary(self):
        if self.monthly_rate:
            return Decimal(self.monthly_rate)
        if self.rate_per_day:
            return Decimal(self.rate_per_day) * WORKING_DAYS_PER_MONTH
        return Decimal('0')


class Holiday(db.Model):
    __tablename__ = 'holiday'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(64), nullable=False)
    date = db.Column(db.Date, nullable=False, index=True)
    type = db.Column(db.String(20), nullable=False, default='regular')

    def __repr__(self):
        return f'<Holiday {self.name} on {self.date}>'


class ClockEntry(db.Model):
    __tablename__ = 'clock_entry'

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey('employee.id'), nullable=False, index=True)
    # Stored in UTC
    clock_in = db.Column(db.DateTime, nullable=False)
    clock_out = db.Column(db.DateTime)
    regular_hours = db.Column(db.Numeric(6, 2), default=Decimal('0.00'))
    overtime_hours = db.Column(db.Numeric(6, 2), default=Decimal('0.00'))
    night_diff_hours = db.Column(db.Numeric(6, 2), default=Decimal('0.00'))
    status = db.Column(db.String(20), nullable=False, default='clocked_in')

    employee = db.relationship('Employee', back_populates='clock_entries')

    def __repr__(self):
        return f'<ClockEntry {self.clock_in} ({self.status})>'


class OvertimeRequest(db.Model):
    __tablename__ = 'overtime_request'

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey('employee.id'), nullable=False, index=True)
    ot_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    total_hours = db.Column(db.Numeric(5, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default='pending')

    def __repr__(self):
        return f'<OvertimeRequest {self.ot_date} {self.total_hours}h>'


class ScheduleDay(db.Model):
    __tablename__ = 'schedule_day'

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey('employee.id'), nullable=False)
    schedule_date = db.Column(db.Date, nullable=False)
    day_off = db.Column(db.Boolean, nullable=False, default=False)

    __table_args__ = (db.UniqueConstraint('employee_id', 'schedule_date', name='_employee_schedule_date_uc'),)


class LeaveRequest(db.Model):
    __tablename__ = 'leave_request'

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey('employee.id'), nullable=False, index=True)
    leave_type = db.Column(db.String(50), nullable=False)
    # ISO date strings
    leave_dates = db.Column(db.JSON, nullable=False, default=list)
    is_half_day = db.Column(db.Boolean, nullable=False, default=False)
    status = db.Column(db.String(20), nullable=False, default='pending')

    def __repr__(self):
        return f'<LeaveRequest {self.id} {self.leave_type}>'


class Loan(db.Model):
    __tablename__ = 'loan'

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey('employee.id'), nullable=False, index=True)
    loan_type = db.Column(db.String(30), nullable=False)
    original_balance = db.Column(db.Numeric(12, 2), nullable=False)
    current_balance = db.Column(db.Numeric(12, 2), nullable=False)
    monthly_payment = db.Column(db.Numeric(12, 2), nullable=False)
    total_terms = db.Column(db.Integer, nullable=False)
    remaining_terms = db.Column(db.Numeric(6, 1), nullable=False)
    cutoff_assignment = db.Column(db.String(10), nullable=False, default='first')
    effectivity_date = db.Column(db.Date, nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    version = db.Column(db.Integer, nullable=False)

    employee = db.relationship('Employee', back_populates='loans')
    deductions = db.relationship('LoanDeduction', back_populates='loan', lazy='dynamic')

    # Optimistic concurrency: concurrent payroll runs cannot both decrement
    __mapper_args__ = {'version_id_col': version}

    def __repr__(self):
        return f'<Loan {self.loan_type} balance={self.current_balance}>'


class LoanDeduction(db.Model):
    __tablename__ = 'loan_deduction'

    id = db.Column(db.Integer, primary_key=True)
    loan_id = db.Column(db.Integer, db.ForeignKey('loan.id'), nullable=False)
    payslip_number = db.Column(db.String(40), nullable=False)
    amount = db.Column(db.Numeric(12, 2), nullable=False)
    term_decrement = db.Column(db.Numeric(3, 1), nullable=False)
    balance_after = db.Column(db.Numeric(12, 2), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    loan = db.relationship('Loan', back_populates='deductions')

    __table_args__ = (db.UniqueConstraint('loan_id', 'payslip_number', name='_loan_payslip_uc'),)


class PayrollRegister(db.Model):
    __tablename__ = 'payroll_register'
    id = db.Column(db.Integer, primary_key=True)
    period_start = db.Column(db.Date, nullable=False)
    period_end = db.Column(db.Date, nullable=False)
    total_gross_pay = db.Column(db.Numeric(14, 2), default=0.00)
    total_deductions = db.Column(db.Numeric(14, 2), default=0.00)
    total_net_pay = db.Column(db.Numeric(14, 2), default=0.00)
    headcount = db.Column(db.Integer, default=0)

    payslips = db.relationship('Payslip', back_populates='payroll_register', lazy='dynamic')

    __table_args__ = (db.UniqueConstraint('period_start', 'period_end', name='_register_period_uc'),)

    def __repr__(self):
        return f'<PayrollRegister {self.period_start}>'


class Payslip(db.Model):
    __tablename__ = 'payslip'
    id = db.Column(db.Integer, primary_key=True)
    payslip_number = db.Column(db.String(40), unique=True, nullable=False)
    employee_id = db.Column(db.Integer, db.ForeignKey('employee.id'), nullable=False)
    payroll_register_id = db.Column(db.Integer, db.ForeignKey('payroll_register.id'), nullable=False)
    employee = db.relationship('Employee', back_populates='payslips')
    payroll_register = db.relationship('PayrollRegister', back_populates='payslips')

    period_start = db.Column(db.Date, nullable=False)
    period_end = db.Column(db.Date, nullable=False)
    cutoff_index = db.Column(db.Integer, nullable=False)

    earnings_breakdown = db.Column(db.JSON, nullable=False, default=dict)
    gross_pay = db.Column(db.Numeric(12, 2), nullable=False)
    allowance_amount = db.Column(db.Numeric(12, 2), default=0.00)
    deductions_breakdown = db.Column(db.JSON, nullable=False, default=dict)
    total_deductions = db.Column(db.Numeric(12, 2), nullable=False)
    sss_amount = db.Column(db.Numeric(10, 2), default=0.00)
    philhealth_amount = db.Column(db.Numeric(10, 2), default=0.00)
    pagibig_amount = db.Column(db.Numeric(10, 2), default=0.00)
    withholding_tax = db.Column(db.Numeric(10, 2), default=0.00)
    thirteenth_month_pay = db.Column(db.Numeric(12, 2), default=0.00)
    net_pay = db.Column(db.Numeric(12, 2), nullable=False)
    status = db.Column(db.String(20), nullable=False, default='draft')
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    side_effects = db.relationship('PayrollSideEffect', back_populates='payslip', lazy='dynamic')

    def __repr__(self):
        return f'<Payslip {self.payslip_number}>'

    def to_dict(self):
        return {
            'payslip_number': self.payslip_number,
            'employee_id': self.employee_id,
            'period_start': self.period_start.isoformat(),
            'period_end': self.period_end.isoformat(),
            'earnings_breakdown': self.earnings_breakdown,
            'gross_pay': str(self.gross_pay),
            'allowance_amount': str(self.allowance_amount),
            'deductions_breakdown': self.deductions_breakdown,
            'total_deductions': str(self.total_deductions),
            'sss_amount': str(self.sss_amount),
            'philhealth_amount': str(self.philhealth_amount),
            'pagibig_amount': str(self.pagibig_amount),
            'withholding_tax': str(self.withholding_tax),
            'thirteenth_month_pay': str(self.thirteenth_month_pay),
            'net_pay': str(self.net_pay),
            'status': self.status,
        }


class PayrollSideEffect(db.Model):
    """Compensating-action log for steps run after a payslip is written."""
    __tablename__ = 'payroll_side_effect'

    id = db.Column(db.Integer, primary_key=True)
    payslip_id = db.Column(db.Integer, db.ForeignKey('payslip.id'), nullable=False)
    step = db.Column(db.String(50), nullable=False)
    status = db.Column(db.String(20), nullable=False)  # applied | skipped | failed
    details = db.Column(db.Text)
    timestamp = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    payslip = db.relationship('Payslip', back_populates='side_effects')

    def __repr__(self):
        return f"<PayrollSideEffect {self.step} {self.status}>"


# ==========================================
# DATABASE TRIGGERS (ORM EVENTS)
# ==========================================

# TRIGGER: Auto-Update Payroll Register Totals
def update_payroll_register_totals(mapper, connection, target):
    register_id = target.payroll_register_id
    register_table = PayrollRegister.__table__
    payslip_table = Payslip.__table__

    totals = connection.execute(
        select(
            func.sum(payslip_table.c.gross_pay),
            func.sum(payslip_table.c.total_deductions),
            func.sum(payslip_table.c.net_pay),
            func.count(payslip_table.c.id)
        ).where(payslip_table.c.payroll_register_id == register_id)
    ).first()

    connection.execute(
        register_table.update()
        .where(register_table.c.id == register_id)
        .values(
            total_gross_pay=totals[0] or 0,
            total_deductions=totals[1] or 0,
            total_net_pay=totals[2] or 0,
            headcount=totals[3] or 0
        )
    )

event.listen(Payslip, 'after_insert', update_payroll_register_totals)
event.listen(Payslip, 'after_update', update_payroll_register_totals)
event.listen(Payslip, 'after_delete', update_payroll_register_totals)
