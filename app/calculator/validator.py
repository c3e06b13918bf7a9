# ==============================================================================
# app/calculator/validator.py
# ------------------------------------------------------------------------------
# Handles the validation of an uploaded entries spreadsheet's structure and
# data types.
# ==============================================================================

import numbers
import pandas as pd
from .schema import IMPORT_SCHEMA

# Excel stores dates as days since this epoch
EXCEL_EPOCH = pd.Timestamp('1899-12-30')

def parse_sheet_date(value):
    """
    Converts a spreadsheet date cell to an ISO 'YYYY-MM-DD' string.

    Accepts datetimes, Excel serial numbers and date-like text. Returns None
    when the cell cannot be read as a date.
    """
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return None
    try:
        if isinstance(value, numbers.Number) and not isinstance(value, bool):
            timestamp = EXCEL_EPOCH + pd.to_timedelta(float(value), unit='D')
        else:
            timestamp = pd.Timestamp(value)
    except (ValueError, TypeError):
        return None
    if pd.isna(timestamp):
        return None
    return timestamp.date().isoformat()

def validate_entries_frame(df):
    """
    Checks a DataFrame read from an entries spreadsheet.

    Returns:
        list: Human-readable error messages; empty when the frame is valid.
    """
    errors = []

    missing_columns = [col for col in IMPORT_SCHEMA['required_columns'] if col not in df.columns]
    if missing_columns:
        errors.append(f"Required columns are missing: {', '.join(missing_columns)}")
        return errors

    for index, value in df['Date'].items():
        if parse_sheet_date(value) is None:
            errors.append(f"Row {index + 2}: '{value}' in column 'Date' is not a valid date.")

    for col in IMPORT_SCHEMA['numeric_columns']:
        if col not in df.columns:
            continue
        # Coerce to numeric, making non-numbers NaN
        numeric_series = pd.to_numeric(df[col].astype(str).str.replace(',', ''), errors='coerce')
        # Find rows where the original value was not empty but the numeric version is NaN
        blank = df[col].isna() | (df[col].astype(str).str.strip() == '')
        invalid_rows = df[numeric_series.isna() & ~blank]

        for index in invalid_rows.index:
            value = invalid_rows.loc[index, col]
            errors.append(f"Row {index + 2}: '{value}' in column '{col}' must be a number.")

    return errors

def validate_excel_file(filepath):
    """
    Validates the structure and basic data types of an uploaded spreadsheet.
    Only the first sheet is read.

    Args:
        filepath (str): The path to the uploaded file, or a file-like object.

    Returns:
        tuple: A tuple containing:
            - pandas.DataFrame: The sheet if validation is successful, else None.
            - list: A list of human-readable error messages if validation fails.
    """
    try:
        df = pd.read_excel(filepath, sheet_name=0)
    except Exception as e:
        return None, [f"The spreadsheet is invalid or could not be read. Technical error: {e}"]

    errors = validate_entries_frame(df)
    if errors:
        return None, errors

    return df, []
