# ==============================================================================
# app/calculator/weekly.py
# ------------------------------------------------------------------------------
# Weekly aggregation engine. Buckets daily entries into Monday-to-Sunday
# weeks per vehicle and derives rent, insurance, TDS and the weekly payable.
# ==============================================================================

import logging
from datetime import date, datetime, timedelta

from app.calculator.engine import round2, to_decimal

logger = logging.getLogger(__name__)

# (minimum weekly trips, daily rent), checked from the top down
WEEKLY_RENT_TIERS = [
    (120, 750),
    (90, 850),
    (60, 950),
]
BASE_WEEKLY_RENT = 1050
INSURANCE_PER_DAY = 30


# --- Helper Functions ---

def _field(record, name, default=None):
    """Reads a field from either a dict or an object record."""
    if isinstance(record, dict):
        return record.get(name, default)
    return getattr(record, name, default)

def parse_date(value):
    """Accepts a date, a datetime or an ISO 'YYYY-MM-DD' string."""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])

def get_week_start(value):
    """Monday on or before the given date. A Sunday belongs to the week that began six days earlier."""
    day = parse_date(value)
    return day - timedelta(days=day.weekday())

def get_week_end(value):
    """Sunday closing the week that contains the given date."""
    return get_week_start(value) + timedelta(days=6)

def week_key(week_start, week_end, vehicle):
    return f"{parse_date(week_start).isoformat()}_{parse_date(week_end).isoformat()}_{vehicle}"

def compute_weekly_rent(trips):
    for min_trips, rent in WEEKLY_RENT_TIERS:
        if trips >= min_trips:
            return rent
    return BASE_WEEKLY_RENT

def compute_weekly_payable(rent, days, insurance, tds, uber_commission, toll):
    payable = (to_decimal(rent) * days + to_decimal(insurance) + to_decimal(tds)
               + to_decimal(uber_commission) - to_decimal(toll))
    return round2(payable)


# --- Filtering ---

def filter_entries(entries, from_date=None, to_date=None, vehicle=None, driver=None):
    """
    Returns the entries inside the inclusive date range whose vehicle (and
    driver, when given) contains the filter text, ignoring case. Empty
    filters are ignored. The input collection is left untouched.
    """
    start = parse_date(from_date)
    end = parse_date(to_date)
    vehicle_filter = (vehicle or '').strip().lower()
    driver_filter = (driver or '').strip().lower()

    filtered = []
    for entry in entries:
        entry_date = parse_date(_field(entry, 'date'))
        if start is not None and entry_date < start:
            continue
        if end is not None and entry_date > end:
            continue
        if vehicle_filter and vehicle_filter not in str(_field(entry, 'vehicle', '')).lower():
            continue
        if driver_filter and driver_filter not in str(_field(entry, 'driver', '')).lower():
            continue
        filtered.append(entry)
    return filtered


# --- Main Aggregation ---

def aggregate_weekly(entries, from_date=None, to_date=None, vehicle=None, tds_overrides=None):
    """
    Builds one weekly summary per (week start, week end, vehicle) bucket.

    Args:
        entries (iterable): Entry records (dicts or objects) with date, vehicle,
            earnings, offline_earnings, cash_collection, toll and trips.
        from_date, to_date: Optional inclusive date bounds.
        vehicle (str, optional): Case-insensitive vehicle substring filter.
        tds_overrides (dict, optional): TDS values keyed by `week_key`.
            Buckets without an override get a TDS of 0.

    Returns:
        list: Summary dicts, most recent week first. Buckets sharing a week
            keep the order in which their vehicles first appeared.
    """
    tds_overrides = tds_overrides or {}
    filtered = filter_entries(entries, from_date=from_date, to_date=to_date, vehicle=vehicle)

    buckets = {}
    for entry in filtered:
        entry_date = _field(entry, 'date')
        bucket = (get_week_start(entry_date), get_week_end(entry_date), _field(entry, 'vehicle', ''))
        buckets.setdefault(bucket, []).append(entry)

    summaries = []
    for (week_start, week_end, bucket_vehicle), week_entries in buckets.items():
        total_earnings = sum(to_decimal(_field(e, 'earnings', 0) or 0) + to_decimal(_field(e, 'offline_earnings', 0) or 0)
                             for e in week_entries)
        total_cash = sum(to_decimal(_field(e, 'cash_collection', 0) or 0) for e in week_entries)
        total_toll = sum(to_decimal(_field(e, 'toll', 0) or 0) for e in week_entries)
        total_trips = sum(int(_field(e, 'trips', 0) or 0) for e in week_entries)
        days = len(week_entries)

        # payable uses the rounded row figures, as apply_tds_override does
        uber_commission = round2(total_cash - total_earnings)
        toll = round2(total_toll)
        rent = compute_weekly_rent(total_trips)
        insurance = INSURANCE_PER_DAY * days
        key = week_key(week_start, week_end, bucket_vehicle)
        tds = round2(tds_overrides.get(key) or 0)
        payable = compute_weekly_payable(rent, days, insurance, tds, uber_commission, toll)

        summaries.append({
            'key': key,
            'week_start': week_start.isoformat(),
            'week_end': week_end.isoformat(),
            'vehicle': bucket_vehicle,
            'earnings': round2(total_earnings),
            'cash': round2(total_cash),
            'uber_commission': uber_commission,
            'toll': toll,
            'trips': total_trips,
            'rent': round2(rent),
            'days': days,
            'insurance': round2(insurance),
            'tds': tds,
            'payable': payable,
        })
        logger.debug(f"Week {key}: {days} day(s), {total_trips} trips, rent {rent}, payable {payable:,.2f}")

    # sorted() stays stable with reverse=True, so ties keep their bucket order
    summaries = sorted(summaries, key=lambda s: s['week_start'], reverse=True)
    logger.info(f"Weekly aggregation produced {len(summaries)} bucket(s) from {len(filtered)} entries.")
    return summaries

def apply_tds_override(summaries, key, tds):
    """
    Returns a copy of `summaries` where only the bucket matching `key` carries
    the new TDS. Its payable is recomputed from the row's rounded rent,
    days, insurance, uber commission and toll, the same figures
    `aggregate_weekly` uses, so both paths agree to the cent.
    """
    tds = round2(tds)
    updated = []
    for summary in summaries:
        if summary['key'] == key:
            summary = dict(summary, tds=tds, payable=compute_weekly_payable(
                summary['rent'], summary['days'], summary['insurance'], tds,
                summary['uber_commission'], summary['toll']
            ))
        updated.append(summary)
    return updated
