# ==============================================================================
# app/calculator/spreadsheet.py
# ------------------------------------------------------------------------------
# Reads and writes the entries and weekly summary spreadsheets.
# ==============================================================================

import logging
from io import BytesIO

import pandas as pd

from app.calculator.engine import derive_entry_fields, normalize_amount
from app.calculator.schema import (ENTRY_COLUMNS, ENTRY_SHEET_NAME, WEEKLY_SHEET_NAME,
                                   WEEKLY_SUMMARY_COLUMNS)
from app.calculator.validator import parse_sheet_date

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'


def _to_workbook(records, columns, sheet_name):
    """Writes a list of dicts to an in-memory .xlsx using the given header map."""
    rows = [{header: record.get(field) for header, field in columns.items()} for record in records]
    df = pd.DataFrame(rows, columns=list(columns.keys()))
    buffer = BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
    buffer.seek(0)
    return buffer

def export_entries(entries):
    """
    Args:
        entries (list): Entry dicts as produced by `Entry.to_dict`.

    Returns:
        BytesIO: The 'Database' workbook.
    """
    logger.info(f"Exporting {len(entries)} entries to spreadsheet.")
    return _to_workbook(entries, ENTRY_COLUMNS, ENTRY_SHEET_NAME)

def export_weekly_summaries(summaries):
    logger.info(f"Exporting {len(summaries)} weekly summaries to spreadsheet.")
    return _to_workbook(summaries, WEEKLY_SUMMARY_COLUMNS, WEEKLY_SHEET_NAME)

def _cell_text(value):
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ''
    return str(value).strip()

def rows_from_frame(df):
    """
    Turns a validated entries sheet into raw entry dicts with their derived
    fields back-filled by the daily calculation engine.

    Room rent is taken from the sheet as given. Rows with an unreadable date
    are skipped with a warning; `validate_entries_frame` reports them first.
    """
    rows = []
    for index, row in df.iterrows():
        excel_row_num = index + 2
        entry_date = parse_sheet_date(row.get('Date'))
        if entry_date is None:
            logger.warning(f"SKIPPING Row {excel_row_num}: unreadable date '{row.get('Date')}'.")
            continue

        raw = {'date': entry_date, 'driver': _cell_text(row.get('Driver')), 'vehicle': _cell_text(row.get('Vehicle'))}
        for header, field in ENTRY_COLUMNS.items():
            if field in ('date', 'driver', 'vehicle', 'salary', 'payable', 'pl'):
                continue
            raw[field] = normalize_amount(row.get(header))
        raw['trips'] = int(raw['trips'])

        raw.update(derive_entry_fields(raw))
        logger.debug(f"Row {excel_row_num}: {raw['driver']} / {raw['vehicle']} on {entry_date} -> payable {raw['payable']:,.2f}")
        rows.append(raw)

    logger.info(f"Read {len(rows)} of {len(df)} rows from the imported spreadsheet.")
    return rows
