# ==============================================================================
# app/main/routes.py
# ------------------------------------------------------------------------------
# Defines all user-facing routes for the main application blueprint.
# This file acts as the main controller for the web interface.
# ==============================================================================

import os
from datetime import date
from functools import wraps
from flask import (render_template, request, flash, redirect, url_for,
                   current_app, session, send_file, Response, abort)
from werkzeug.utils import secure_filename
from sqlalchemy.exc import IntegrityError
import pdfkit

from app import db
from app.main import bp
from app.models import Driver, Entry, User, Vehicle
from app.calculator.spreadsheet import (XLSX_MIMETYPE, export_entries, export_weekly_summaries,
                                        rows_from_frame)
from app.calculator.validator import validate_excel_file
from app.calculator.weekly import aggregate_weekly, apply_tds_override, filter_entries, parse_date
from app.main.forms import (LoginForm, EntryForm, EditEntryForm, EntryFilterForm, WeeklyFilterForm,
                            TdsForm, ImportForm, VehicleForm, PinForm, DriverForm)
from app.main.utils import (prepare_summary_data, default_summary_range, get_tds_overrides,
                            set_tds_override, clear_tds_overrides)

# --- Helper Functions ---

def allowed_file(filename):
    """Checks if the file extension is allowed based on the app config."""
    return '.' in filename and \
           os.path.splitext(filename)[1].lower() in current_app.config['ALLOWED_EXTENSIONS']

def login_required(f):
    """Decorator to protect routes with session-based authentication."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if not session.get('user_id'):
            flash('Please log in to continue.', 'warning')
            return redirect(url_for('main.login'))
        return f(*args, **kwargs)
    return decorated_function

def admin_required(f):
    """Decorator for pages only administrators may open."""
    @wraps(f)
    @login_required
    def decorated_function(*args, **kwargs):
        if session.get('user_role') != 'admin':
            flash('Access denied.', 'danger')
            return redirect(url_for('main.database'))
        return f(*args, **kwargs)
    return decorated_function

def _is_admin():
    return session.get('user_role') == 'admin'

def _driver_choices():
    return [(d.id, d.name) for d in Driver.query.order_by(Driver.name).all()]

def _vehicle_choices():
    return [(v.id, v.number) for v in Vehicle.query.order_by(Vehicle.number).all()]

def _visible_entries(order_desc=True):
    """All entries for admins; a driver only sees their own."""
    query = Entry.query
    if not _is_admin():
        query = query.filter_by(driver_id=session.get('driver_id'))
    if order_desc:
        query = query.order_by(Entry.date.desc(), Entry.id.desc())
    else:
        query = query.order_by(Entry.date, Entry.id)
    return [entry.to_dict() for entry in query.all()]

def _save_entry(entry, form):
    """Copies raw fields from the form and re-derives the payroll figures."""
    driver = Driver.query.get_or_404(form.driver_id.data)
    vehicle = Vehicle.query.get_or_404(form.vehicle_id.data)
    entry.date = form.date.data
    entry.driver_id, entry.driver = driver.id, driver.name
    entry.vehicle_id, entry.vehicle = vehicle.id, vehicle.number
    for field in Entry.RAW_FIELDS:
        if field == 'room_rent' or not hasattr(form, field):
            continue
        setattr(entry, field, getattr(form, field).data or 0)

    if isinstance(form, EditEntryForm):
        entry.room_rent = form.room_rent.data or 0
        entry.apply_calculations()
    else:
        entry.apply_calculations(roster=Driver.query.all())
    return entry

def _validate_filters(form):
    """
    Validates a GET filter form. Malformed dates are flashed and dropped,
    so the page still renders with the remaining filters.
    """
    if not form.validate():
        for field_name, errors in form.errors.items():
            for error in errors:
                flash(f"{form[field_name].label.text}: {error}", "warning")
    return form

def _iso(value):
    return value.isoformat() if value else None

def _weekly_filters():
    form = _validate_filters(WeeklyFilterForm(request.values))
    filters = {
        'from_date': _iso(form.from_date.data),
        'to_date': _iso(form.to_date.data),
        'vehicle': (form.vehicle.data or '').strip() or None,
    }
    return form, filters

def _entry_filters():
    form = _validate_filters(EntryFilterForm(request.args))
    filters = {
        'from_date': form.from_date.data,
        'to_date': form.to_date.data,
        'vehicle': form.vehicle.data,
        'driver': form.driver.data,
    }
    return form, filters

# --- Authentication ---

@bp.route('/')
def index():
    if not session.get('user_id'):
        return redirect(url_for('main.login'))
    return redirect(url_for('main.new_entry'))

@bp.route('/login', methods=['GET', 'POST'])
def login():
    """PIN login for admins and drivers."""
    form = LoginForm()
    if form.validate_on_submit():
        user = User.query.filter_by(username=form.username.data.strip()).first()
        if user and user.check_pin(form.pin.data):
            session.clear()
            session['user_id'] = user.id
            session['user_name'] = user.name
            session['user_role'] = user.role
            session['driver_id'] = user.driver_id
            current_app.logger.info(f"User '{user.username}' logged in as {user.role}.")
            return redirect(url_for('main.index'))
        current_app.logger.warning(f"Failed login attempt for username '{form.username.data}'.")
        flash('Invalid username or PIN.', 'danger')
    return render_template('login.html', form=form, title='Login')

@bp.route('/logout')
def logout():
    session.clear()
    flash('You have been logged out.', 'info')
    return redirect(url_for('main.login'))

# --- Daily Entries ---

@bp.route('/entry', methods=['GET', 'POST'])
@login_required
def new_entry():
    """Daily entry capture. Payroll figures are derived on save."""
    form = EntryForm()
    form.driver_id.choices = _driver_choices()
    form.vehicle_id.choices = _vehicle_choices()
    if not _is_admin():
        form.driver_id.choices = [c for c in form.driver_id.choices if c[0] == session.get('driver_id')]
    if request.method == 'GET':
        form.date.data = date.today()

    if form.validate_on_submit():
        entry = _save_entry(Entry(), form)
        db.session.add(entry)
        db.session.commit()
        current_app.logger.info(f"Saved entry {entry.id}: {entry.driver} / {entry.vehicle} on {entry.date}, payable {entry.payable:,.2f}")
        flash(f'Entry saved. Salary {entry.salary:,.2f}, payable {entry.payable:,.2f}.', 'success')
        return redirect(url_for('main.new_entry'))
    return render_template('entry.html', form=form, title='New Entry')

@bp.route('/database')
@login_required
def database():
    """Entry list with date, driver and vehicle filters, newest first."""
    form, filters = _entry_filters()
    entries = filter_entries(_visible_entries(), **filters)
    return render_template('database.html', form=form, entries=entries,
                           import_form=ImportForm(), title='Database')

@bp.route('/entry/edit/<int:entry_id>', methods=['GET', 'POST'])
@admin_required
def edit_entry(entry_id):
    entry = Entry.query.get_or_404(entry_id)
    form = EditEntryForm(obj=entry)
    form.driver_id.choices = _driver_choices()
    form.vehicle_id.choices = _vehicle_choices()
    if form.validate_on_submit():
        _save_entry(entry, form)
        db.session.commit()
        current_app.logger.info(f"Entry {entry.id} edited and recalculated.")
        flash('Entry updated successfully.', 'success')
        return redirect(url_for('main.database'))
    return render_template('entry.html', form=form, entry=entry, title=f'Edit Entry #{entry.id}')

@bp.route('/entry/delete/<int:entry_id>', methods=['POST'])
@admin_required
def delete_entry(entry_id):
    entry = Entry.query.get_or_404(entry_id)
    db.session.delete(entry)
    db.session.commit()
    flash('Entry deleted successfully.', 'success')
    return redirect(url_for('main.database'))

@bp.route('/database/export')
@login_required
def export_database():
    _, filters = _entry_filters()
    entries = filter_entries(_visible_entries(), **filters)
    if not entries:
        flash('No data to export.', 'warning')
        return redirect(url_for('main.database'))
    return send_file(export_entries(entries), mimetype=XLSX_MIMETYPE,
                     as_attachment=True, download_name='bn_cabs_database.xlsx')

@bp.route('/database/import', methods=['POST'])
@admin_required
def import_database():
    """Imports raw entries from a spreadsheet and back-fills their payroll figures."""
    form = ImportForm()
    if not form.validate_on_submit():
        for errors in form.errors.values():
            for error in errors:
                flash(error, 'warning')
        return redirect(url_for('main.database'))

    file = form.file.data
    if not allowed_file(file.filename):
        flash('File type not allowed. Please upload an .xlsx file.', 'danger')
        return redirect(url_for('main.database'))

    filename = secure_filename(file.filename)
    filepath = os.path.join(current_app.config['UPLOAD_FOLDER'], filename)
    os.makedirs(current_app.config['UPLOAD_FOLDER'], exist_ok=True)
    file.save(filepath)

    df, errors = validate_excel_file(filepath)
    if errors:
        for error in errors:
            flash(error, 'danger')
        return redirect(url_for('main.database'))

    try:
        drivers = {d.name: d.id for d in Driver.query.all()}
        vehicles = {v.number: v.id for v in Vehicle.query.all()}
        rows = rows_from_frame(df)
        for row in rows:
            entry = Entry(**{k: v for k, v in row.items() if k != 'date'})
            entry.date = parse_date(row['date'])
            entry.driver_id = drivers.get(row['driver'])
            entry.vehicle_id = vehicles.get(row['vehicle'])
            db.session.add(entry)
        db.session.commit()
        current_app.logger.info(f"Imported {len(rows)} entries from '{filename}'.")
        flash(f'Successfully imported {len(rows)} entries.', 'success')
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Import of '{filename}' failed: {e}", exc_info=True)
        flash(f'Error importing file. Please check the format and try again. Error: {e}', 'danger')
    return redirect(url_for('main.database'))

# --- Reports ---

@bp.route('/summary')
@admin_required
def summary():
    """Earnings and trips per driver and per vehicle over a date range."""
    default_from, default_to = default_summary_range()
    _, filters = _entry_filters()
    from_date = (filters['from_date'] or default_from).isoformat()
    to_date = (filters['to_date'] or default_to).isoformat()
    data = prepare_summary_data(_visible_entries(), from_date, to_date)
    return render_template('summary.html', data=data, from_date=from_date, to_date=to_date, title='Summary')

@bp.route('/weekly', methods=['GET'])
@admin_required
def weekly_summary():
    form, filters = _weekly_filters()
    summaries = aggregate_weekly(_visible_entries(order_desc=False), tds_overrides=get_tds_overrides(), **filters)
    return render_template('weekly.html', form=form, summaries=summaries, filters=filters,
                           tds_form=TdsForm(), title='Weekly Summary')

@bp.route('/weekly/tds', methods=['POST'])
@admin_required
def update_tds():
    """
    Stores a TDS override for one week/vehicle bucket. Only that bucket's
    payable is recomputed; every other bucket is left as generated.
    """
    filter_form, filters = _weekly_filters()
    form = TdsForm()
    summaries = aggregate_weekly(_visible_entries(order_desc=False), tds_overrides=get_tds_overrides(), **filters)
    if form.validate_on_submit():
        key = form.key.data
        if key not in {s['key'] for s in summaries}:
            abort(404)
        set_tds_override(key, form.tds.data)
        summaries = apply_tds_override(summaries, key, form.tds.data)
        current_app.logger.info(f"TDS for {key} set to {form.tds.data:,.2f}.")
    else:
        for errors in form.errors.values():
            for error in errors:
                flash(error, 'danger')
    return render_template('weekly.html', form=filter_form, summaries=summaries,
                           filters=filters, tds_form=TdsForm(), title='Weekly Summary')

@bp.route('/weekly/reset', methods=['POST'])
@admin_required
def reset_tds():
    clear_tds_overrides()
    flash('TDS values cleared.', 'info')
    _, filters = _weekly_filters()
    return redirect(url_for('main.weekly_summary', **{k: v for k, v in filters.items() if v}))

@bp.route('/weekly/export')
@admin_required
def export_weekly():
    _, filters = _weekly_filters()
    summaries = aggregate_weekly(_visible_entries(order_desc=False), tds_overrides=get_tds_overrides(), **filters)
    if not summaries:
        flash('No data to export.', 'warning')
        return redirect(url_for('main.weekly_summary'))
    return send_file(export_weekly_summaries(summaries), mimetype=XLSX_MIMETYPE,
                     as_attachment=True, download_name='bn_cabs_weekly_summary.xlsx')

@bp.route('/weekly/pdf')
@admin_required
def export_weekly_pdf():
    _, filters = _weekly_filters()
    summaries = aggregate_weekly(_visible_entries(order_desc=False), tds_overrides=get_tds_overrides(), **filters)
    html = render_template('weekly_pdf.html', summaries=summaries, filters=filters)
    wkhtmltopdf_path = current_app.config.get('WKHTMLTOPDF_PATH')
    try:
        configuration = pdfkit.configuration(wkhtmltopdf=wkhtmltopdf_path) if wkhtmltopdf_path else None
        pdf = pdfkit.from_string(html, False, configuration=configuration, options={'encoding': 'UTF-8'})
    except OSError as e:
        current_app.logger.error(f"PDF generation failed: {e}", exc_info=True)
        flash('PDF export is unavailable. Check the wkhtmltopdf installation.', 'danger')
        return redirect(url_for('main.weekly_summary'))
    return Response(pdf, mimetype='application/pdf',
                    headers={'Content-Disposition': 'attachment; filename=bn_cabs_weekly_summary.pdf'})

# --- Setup: vehicles, room rent, PINs ---

@bp.route('/setup')
@admin_required
def setup():
    vehicles = Vehicle.query.order_by(Vehicle.number).all()
    drivers = Driver.query.order_by(Driver.name).all()
    driver_users = User.query.filter_by(role='driver').order_by(User.name).all()
    return render_template('setup.html', vehicles=vehicles, drivers=drivers, driver_users=driver_users,
                           pin_form=PinForm(), title='Setup')

@bp.route('/setup/vehicle/add', methods=['GET', 'POST'])
@bp.route('/setup/vehicle/edit/<int:vehicle_id>', methods=['GET', 'POST'])
@admin_required
def edit_vehicle(vehicle_id=None):
    vehicle = Vehicle.query.get_or_404(vehicle_id) if vehicle_id else Vehicle()
    form = VehicleForm(obj=vehicle)
    form.assigned_driver_id.choices = [(0, '-- None --')] + _driver_choices()
    if request.method == 'GET':
        form.assigned_driver_id.data = vehicle.assigned_driver_id or 0
    if form.validate_on_submit():
        try:
            old_number = vehicle.number
            vehicle.number = form.number.data.strip().upper()
            vehicle.type = form.type.data
            vehicle.assigned_driver_id = form.assigned_driver_id.data or None
            db.session.add(vehicle)
            db.session.flush()

            # Weekly buckets group on the number snapshot, so past entries follow the rename
            if old_number and old_number != vehicle.number:
                Entry.query.filter_by(vehicle_id=vehicle.id).update({'vehicle': vehicle.number})
                current_app.logger.info(f"Vehicle {old_number} renamed to {vehicle.number}; entries updated.")
            db.session.commit()
            flash(f'Vehicle "{vehicle.number}" saved.', 'success')
            return redirect(url_for('main.setup'))
        except IntegrityError:
            db.session.rollback()
            flash('A vehicle with this number already exists.', 'danger')
    return render_template('form.html', form=form, title='Edit Vehicle' if vehicle_id else 'Add Vehicle')

@bp.route('/setup/vehicle/delete/<int:vehicle_id>', methods=['POST'])
@admin_required
def delete_vehicle(vehicle_id):
    vehicle = Vehicle.query.get_or_404(vehicle_id)
    db.session.delete(vehicle)
    db.session.commit()
    flash(f'Vehicle "{vehicle.number}" deleted.', 'success')
    return redirect(url_for('main.setup'))

@bp.route('/setup/driver/<int:driver_id>/room-rent', methods=['POST'])
@admin_required
def toggle_room_rent(driver_id):
    """Flips the company-room flag. Saved entries keep their room rent snapshot."""
    driver = Driver.query.get_or_404(driver_id)
    driver.room_rent = not driver.room_rent
    db.session.commit()
    flash(f'Room rent {"enabled" if driver.room_rent else "disabled"} for {driver.name}.', 'success')
    return redirect(url_for('main.setup'))

@bp.route('/setup/user/<int:user_id>/pin', methods=['POST'])
@admin_required
def update_pin(user_id):
    user = User.query.get_or_404(user_id)
    form = PinForm()
    if form.validate_on_submit():
        user.set_pin(form.pin.data)
        db.session.commit()
        flash(f'PIN updated for {user.name}.', 'success')
    else:
        for errors in form.errors.values():
            for error in errors:
                flash(error, 'danger')
    return redirect(url_for('main.setup'))

# --- Driver Joining Form ---

@bp.route('/drivers')
@admin_required
def drivers():
    roster = Driver.query.order_by(Driver.name).all()
    return render_template('drivers.html', drivers=roster, title='Drivers')

@bp.route('/drivers/<int:driver_id>')
@admin_required
def view_driver(driver_id):
    driver = Driver.query.get_or_404(driver_id)
    return render_template('driver_detail.html', driver=driver, title=driver.name)

@bp.route('/drivers/add', methods=['GET', 'POST'])
@bp.route('/drivers/edit/<int:driver_id>', methods=['GET', 'POST'])
@admin_required
def edit_driver(driver_id=None):
    """
    Adds or edits a driver. A new driver also gets a 'driver' login whose
    username is derived from the name and whose PIN is the configured default.
    """
    driver = Driver.query.get_or_404(driver_id) if driver_id else Driver()
    form = DriverForm(obj=driver)
    if form.validate_on_submit():
        try:
            old_name = driver.name
            form.populate_obj(driver)
            db.session.add(driver)
            db.session.flush()

            if driver.user is None:
                user = User(username=_username_for(driver), name=driver.name, role='driver', driver_id=driver.id)
                user.set_pin(current_app.config['DEFAULT_DRIVER_PIN'])
                db.session.add(user)
            else:
                driver.user.name = driver.name

            # Display names on past entries follow the roster
            if old_name and old_name != driver.name:
                Entry.query.filter_by(driver_id=driver.id).update({'driver': driver.name})

            db.session.commit()
            flash(f'Driver "{driver.name}" saved.', 'success')
            return redirect(url_for('main.drivers'))
        except IntegrityError:
            db.session.rollback()
            flash('Could not save the driver: the login name is already taken.', 'danger')
    return render_template('form.html', form=form, title='Edit Driver' if driver_id else 'Driver Joining Form')

def _username_for(driver):
    base = ''.join(ch for ch in driver.name.lower() if ch.isalnum()) or 'driver'
    username, suffix = base, 1
    while User.query.filter_by(username=username).first():
        suffix += 1
        username = f'{base}{suffix}'
    return username

@bp.route('/drivers/delete/<int:driver_id>', methods=['POST'])
@admin_required
def delete_driver(driver_id):
    driver = Driver.query.get_or_404(driver_id)
    if driver.user:
        db.session.delete(driver.user)
    Entry.query.filter_by(driver_id=driver.id).update({'driver_id': None})
    Vehicle.query.filter_by(assigned_driver_id=driver.id).update({'assigned_driver_id': None})
    db.session.delete(driver)
    db.session.commit()
    flash(f'Driver "{driver.name}" deleted.', 'success')
    return redirect(url_for('main.drivers'))
