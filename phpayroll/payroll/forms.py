# phpayroll/payroll/forms.py

from flask_wtf import FlaskForm
from wtforms import DateField
from wtforms.validators import DataRequired


class RunPayslipForm(FlaskForm):
    """Any date inside the cutoff; it is normalized to the cutoff's first day."""
    period_start = DateField('Period Start', format='%Y-%m-%d', validators=[DataRequired()])


class RegisterQueryForm(FlaskForm):
    period_start = DateField('Period Start', format='%Y-%m-%d', validators=[DataRequired()])
