# run.py

import os
from phpayroll import create_app, db
from phpayroll.models.payroll import (
    Employee, Holiday, ClockEntry, OvertimeRequest, ScheduleDay, LeaveRequest,
    Loan, LoanDeduction, Payslip, PayrollRegister, PayrollSideEffect,
)


app = create_app(os.environ.get('FLASK_ENV', 'default'))

@app.shell_context_processor
def make_shell_context():
    """Adds database instance and models to the Flask shell."""
    return dict(db=db, Employee=Employee, Holiday=Holiday, ClockEntry=ClockEntry,
                OvertimeRequest=OvertimeRequest, ScheduleDay=ScheduleDay,
                LeaveRequest=LeaveRequest, Loan=Loan, LoanDeduction=LoanDeduction,
                Payslip=Payslip, PayrollRegister=PayrollRegister,
                PayrollSideEffect=PayrollSideEffect)

if __name__ == '__main__':
    app.run()
