# ==============================================================================
# app/models.py
# ------------------------------------------------------------------------------
# Defines the database schema using SQLAlchemy ORM models.
# ==============================================================================

from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash
from app import db
from app.calculator.engine import derive_entry_fields

class User(db.Model):
    """
    A login account. Admins see every page; drivers only log and view their
    own entries. Accounts sign in with a username and a numeric PIN.
    """
    __tablename__ = 'user'
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False, index=True)
    name = db.Column(db.String(128), nullable=False)
    pin_hash = db.Column(db.String(256), nullable=False)
    role = db.Column(db.String(16), nullable=False, default='driver')

    # Set for driver accounts created from the joining form
    driver_id = db.Column(db.Integer, db.ForeignKey('driver.id'), nullable=True)

    def __repr__(self):
        return f'<User {self.id}: {self.username} ({self.role})>'

    @property
    def is_admin(self):
        return self.role == 'admin'

    def set_pin(self, pin):
        self.pin_hash = generate_password_hash(str(pin))

    def check_pin(self, pin):
        return check_password_hash(self.pin_hash, str(pin))

class Driver(db.Model):
    """
    A driver on the roster, with the joining-form details. `room_rent` marks
    drivers living in company housing; their entries carry a daily room rent.
    """
    __tablename__ = 'driver'
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False, index=True)
    father_name = db.Column(db.String(128))
    dob = db.Column(db.Date)
    mobile = db.Column(db.String(20))
    mobile2 = db.Column(db.String(20))
    email = db.Column(db.String(128))
    dl_number = db.Column(db.String(64))
    dl_status = db.Column(db.String(32))
    aadhar_number = db.Column(db.String(32))
    aadhar_status = db.Column(db.String(32))
    pan_number = db.Column(db.String(32))
    passport_number = db.Column(db.String(32))
    passport_status = db.Column(db.String(32))
    permanent_address = db.Column(db.Text)
    present_address = db.Column(db.Text)
    photo_status = db.Column(db.String(32))
    reference1_name = db.Column(db.String(128))
    reference1_relationship = db.Column(db.String(64))
    reference1_mobile = db.Column(db.String(20))
    reference2_name = db.Column(db.String(128))
    reference2_relationship = db.Column(db.String(64))
    reference2_mobile = db.Column(db.String(20))
    room_rent = db.Column(db.Boolean, nullable=False, default=False)

    user = db.relationship('User', backref='driver', uselist=False)

    def __repr__(self):
        return f'<Driver {self.id}: {self.name}>'

class Vehicle(db.Model):
    __tablename__ = 'vehicle'
    id = db.Column(db.Integer, primary_key=True)
    number = db.Column(db.String(32), unique=True, nullable=False, index=True)
    type = db.Column(db.String(64))
    assigned_driver_id = db.Column(db.Integer, db.ForeignKey('driver.id'), nullable=True)

    assigned_driver = db.relationship('Driver')

    def __repr__(self):
        return f'<Vehicle {self.id}: {self.number}>'

class Entry(db.Model):
    """
    One driver-vehicle-day payroll record.

    The derived columns (pay_percent to pl) are a snapshot computed from the
    raw columns when the entry is saved. Any change to the raw columns must
    go through `apply_calculations` again.
    """
    __tablename__ = 'entry'
    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, index=True)

    # Stable references, with the display names kept as a snapshot
    driver_id = db.Column(db.Integer, db.ForeignKey('driver.id'), nullable=True, index=True)
    vehicle_id = db.Column(db.Integer, db.ForeignKey('vehicle.id'), nullable=True, index=True)
    driver = db.Column(db.String(128), nullable=False, index=True)
    vehicle = db.Column(db.String(32), nullable=False, index=True)

    earnings = db.Column(db.Float, default=0)
    cash_collection = db.Column(db.Float, default=0)
    offline_earnings = db.Column(db.Float, default=0)
    offline_cash = db.Column(db.Float, default=0)
    trips = db.Column(db.Integer, default=0)
    toll = db.Column(db.Float, default=0)
    cng = db.Column(db.Float, default=0)
    petrol = db.Column(db.Float, default=0)
    other_expenses = db.Column(db.Float, default=0)
    login_hours = db.Column(db.Float, default=0)
    opening_balance = db.Column(db.Float, default=0)
    room_rent = db.Column(db.Float, default=0)

    pay_percent = db.Column(db.Integer, default=0)
    salary = db.Column(db.Float, default=0)
    payable = db.Column(db.Float, default=0)
    commission = db.Column(db.Float, default=0)
    pl = db.Column(db.Float, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    driver_ref = db.relationship('Driver', backref=db.backref('entries', lazy='dynamic'))
    vehicle_ref = db.relationship('Vehicle', backref=db.backref('entries', lazy='dynamic'))

    RAW_FIELDS = [
        'earnings', 'cash_collection', 'offline_earnings', 'offline_cash', 'trips',
        'toll', 'cng', 'petrol', 'other_expenses', 'login_hours', 'opening_balance', 'room_rent',
    ]
    DERIVED_FIELDS = ['pay_percent', 'salary', 'payable', 'commission', 'pl']

    def __repr__(self):
        return f'<Entry {self.id}: {self.date} {self.driver} / {self.vehicle}>'

    def apply_calculations(self, roster=None):
        """
        Re-derives the stored payroll fields from the raw fields.

        Args:
            roster (iterable, optional): Driver records. When given, room rent
                is looked up by this entry's driver_id; otherwise the entry's
                own room_rent value is kept.
        """
        raw = {field: getattr(self, field) for field in self.RAW_FIELDS}
        derived = derive_entry_fields(raw, roster=roster, driver=self.driver_id, key='id')
        for field, value in derived.items():
            setattr(self, field, value)
        return self

    def to_dict(self):
        data = {
            'id': self.id,
            'date': self.date.isoformat() if self.date else None,
            'driver': self.driver,
            'vehicle': self.vehicle,
        }
        for field in self.RAW_FIELDS + self.DERIVED_FIELDS:
            data[field] = getattr(self, field) or 0
        return data
