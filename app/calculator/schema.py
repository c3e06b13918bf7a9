# ==============================================================================
# app/calculator/schema.py
# ------------------------------------------------------------------------------
# Defines the column layout of the spreadsheets the app reads and writes.
# This schema is the single source of truth for the validator and exporters.
# ==============================================================================

# Spreadsheet header -> Entry field, in export order
ENTRY_COLUMNS = {
    'Date': 'date',
    'Driver': 'driver',
    'Vehicle': 'vehicle',
    'Earnings': 'earnings',
    'Cash Collection': 'cash_collection',
    'Offline Earnings': 'offline_earnings',
    'Offline Cash': 'offline_cash',
    'Trips': 'trips',
    'Toll': 'toll',
    'Login Hrs': 'login_hours',
    'Salary': 'salary',
    'CNG': 'cng',
    'Petrol': 'petrol',
    'Other Expenses': 'other_expenses',
    'Opening Balance': 'opening_balance',
    'Room Rent': 'room_rent',
    'Payable': 'payable',
    'P&L': 'pl',
}

WEEKLY_SUMMARY_COLUMNS = {
    'Week Start': 'week_start',
    'Week End': 'week_end',
    'Vehicle': 'vehicle',
    'Earnings': 'earnings',
    'Cash': 'cash',
    'Uber Commission': 'uber_commission',
    'Toll': 'toll',
    'Trips': 'trips',
    'Rent': 'rent',
    'Days': 'days',
    'Insurance': 'insurance',
    'TDS': 'tds',
    'Payable': 'payable',
}

ENTRY_SHEET_NAME = 'Database'
WEEKLY_SHEET_NAME = 'Weekly Summary'

IMPORT_SCHEMA = {
    'required_columns': ['Date', 'Driver', 'Vehicle'],
    'numeric_columns': [
        'Earnings', 'Cash Collection', 'Offline Earnings', 'Offline Cash', 'Trips',
        'Toll', 'Login Hrs', 'CNG', 'Petrol', 'Other Expenses', 'Opening Balance',
        'Room Rent',
    ],
}
