# ==============================================================================
# app/main/forms.py
# ------------------------------------------------------------------------------
# Defines web forms using Flask-WTF for user input and validation.
# ==============================================================================

import math

from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired
from wtforms import (StringField, FloatField, IntegerField, SubmitField, SelectField,
                     PasswordField, TextAreaField, BooleanField, DateField)
from wtforms.validators import (DataRequired, NumberRange, InputRequired, Optional, Email, Regexp,
                                ValidationError)

class Finite:
    """Rejects infinity and NaN, which FloatField parses as valid floats."""
    def __init__(self, message="Enter a finite number."):
        self.message = message

    def __call__(self, form, field):
        if field.data is not None and not math.isfinite(field.data):
            raise ValidationError(self.message)

PIN_VALIDATORS = [
    InputRequired(message="PIN is required."),
    Regexp(r'^\d{4,6}$', message="PIN must be 4 to 6 digits."),
]

class LoginForm(FlaskForm):
    username = StringField('Username', validators=[DataRequired(message="Username is required.")])
    pin = PasswordField('PIN', validators=[InputRequired(message="PIN is required.")])
    submit = SubmitField('Login')

class EntryForm(FlaskForm):
    """
    Daily entry capture. Room rent and the payroll figures are not inputs;
    they are derived when the entry is saved.
    """
    date = DateField('Date', validators=[InputRequired(message="Date is required.")])
    driver_id = SelectField('Driver', coerce=int, validators=[InputRequired(message="Select a driver.")])
    vehicle_id = SelectField('Vehicle', coerce=int, validators=[InputRequired(message="Select a vehicle.")])
    earnings = FloatField('Earnings', default=0, validators=[Optional(), Finite(), NumberRange(min=0)])
    cash_collection = FloatField('Cash Collection', default=0, validators=[Optional(), Finite()])
    offline_earnings = FloatField('Offline Earnings', default=0, validators=[Optional(), Finite(), NumberRange(min=0)])
    offline_cash = FloatField('Offline Cash', default=0, validators=[Optional(), Finite()])
    trips = IntegerField('Trips', default=0, validators=[Optional(), NumberRange(min=0)])
    toll = FloatField('Toll', default=0, validators=[Optional(), Finite(), NumberRange(min=0)])
    cng = FloatField('CNG', default=0, validators=[Optional(), Finite(), NumberRange(min=0)])
    petrol = FloatField('Petrol', default=0, validators=[Optional(), Finite(), NumberRange(min=0)])
    other_expenses = FloatField('Other Expenses', default=0, validators=[Optional(), Finite(), NumberRange(min=0)])
    login_hours = FloatField('Login Hrs', default=0, validators=[Optional(), Finite(), NumberRange(min=0, max=24)])
    opening_balance = FloatField('Opening Balance', default=0, validators=[Optional(), Finite()])
    submit = SubmitField('Save Entry')

class EditEntryForm(EntryForm):
    """Admin edit of a saved entry. Room rent is editable here, as a raw field."""
    room_rent = FloatField('Room Rent', default=0, validators=[Optional(), Finite(), NumberRange(min=0)])
    submit = SubmitField('Save Changes')

class EntryFilterForm(FlaskForm):
    class Meta:
        csrf = False

    from_date = DateField('From', validators=[Optional()])
    to_date = DateField('To', validators=[Optional()])
    driver = StringField('Driver', validators=[Optional()])
    vehicle = StringField('Vehicle', validators=[Optional()])
    submit = SubmitField('Filter')

class WeeklyFilterForm(FlaskForm):
    class Meta:
        csrf = False

    from_date = DateField('From', validators=[Optional()])
    to_date = DateField('To', validators=[Optional()])
    vehicle = StringField('Vehicle', validators=[Optional()])
    submit = SubmitField('Generate')

class TdsForm(FlaskForm):
    key = StringField('Week', validators=[DataRequired()])
    tds = FloatField('TDS', validators=[InputRequired(message="Enter a TDS amount."), Finite()])
    submit = SubmitField('Update')

class ImportForm(FlaskForm):
    file = FileField('Spreadsheet', validators=[FileRequired(message="Choose a file to import.")])
    submit = SubmitField('Import')

class VehicleForm(FlaskForm):
    number = StringField('Vehicle Number', validators=[DataRequired(message="This field is required.")])
    type = StringField('Type', validators=[Optional()])
    assigned_driver_id = SelectField('Assigned Driver', coerce=int, validators=[Optional()])
    submit = SubmitField('Save Vehicle')

class PinForm(FlaskForm):
    pin = PasswordField('New PIN', validators=PIN_VALIDATORS)
    submit = SubmitField('Update PIN')

class DriverForm(FlaskForm):
    """Driver joining form."""
    name = StringField('Full Name', validators=[DataRequired(message="This field is required.")])
    father_name = StringField("Father's Name", validators=[Optional()])
    dob = DateField('Date of Birth', validators=[Optional()])
    mobile = StringField('Mobile', validators=[DataRequired(message="This field is required.")])
    mobile2 = StringField('Alternate Mobile', validators=[Optional()])
    email = StringField('Email', validators=[Optional(), Email()])
    dl_number = StringField('DL Number', validators=[Optional()])
    dl_status = SelectField('DL Status', choices=[('pending', 'Pending'), ('received', 'Received')], default='pending')
    aadhar_number = StringField('Aadhar Number', validators=[Optional()])
    aadhar_status = SelectField('Aadhar Status', choices=[('pending', 'Pending'), ('received', 'Received')], default='pending')
    pan_number = StringField('PAN Number', validators=[Optional()])
    passport_number = StringField('Passport Number', validators=[Optional()])
    passport_status = SelectField('Passport Status', choices=[('pending', 'Pending'), ('received', 'Received')], default='pending')
    permanent_address = TextAreaField('Permanent Address', validators=[Optional()], render_kw={'rows': 2})
    present_address = TextAreaField('Present Address', validators=[Optional()], render_kw={'rows': 2})
    photo_status = SelectField('Photo', choices=[('pending', 'Pending'), ('received', 'Received')], default='pending')
    reference1_name = StringField('Reference 1 Name', validators=[Optional()])
    reference1_relationship = StringField('Reference 1 Relationship', validators=[Optional()])
    reference1_mobile = StringField('Reference 1 Mobile', validators=[Optional()])
    reference2_name = StringField('Reference 2 Name', validators=[Optional()])
    reference2_relationship = StringField('Reference 2 Relationship', validators=[Optional()])
    reference2_mobile = StringField('Reference 2 Mobile', validators=[Optional()])
    room_rent = BooleanField('Company Room (₹50/day)')
    submit = SubmitField('Save Driver')
