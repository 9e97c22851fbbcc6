# phpayroll/attendance/forms.py

from flask_wtf import FlaskForm
from wtforms import DateField
from wtforms.validators import DataRequired, ValidationError


class TimesheetPeriodForm(FlaskForm):
    """Period bounds for generating an employee's timesheet."""
    period_start = DateField('Period Start', format='%Y-%m-%d', validators=[DataRequired()])
    period_end = DateField('Period End', format='%Y-%m-%d', validators=[DataRequired()])

    def validate_period_end(self, field):
        if self.period_start.data and field.data and field.data < self.period_start.data:
            raise ValidationError('Period end date must be on or after start date.')
