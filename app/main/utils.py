# ==============================================================================
# app/main/utils.py
# ------------------------------------------------------------------------------
# Report helpers shared by the routes: earnings/trips totals per driver or
# vehicle, chart data, and the session-held TDS override table.
# ==============================================================================
from datetime import date, timedelta

from flask import session

from app.calculator.engine import round2
from app.calculator.weekly import filter_entries

TDS_SESSION_KEY = 'tds_overrides'
DEFAULT_SUMMARY_DAYS = 30
CHART_LIMIT = 10

def summarize_by(entries, field):
    """
    Sums total earnings (online + offline) and trips per value of `field`
    ('driver' or 'vehicle'), highest earnings first.
    """
    stats = {}
    for entry in entries:
        name = entry[field]
        totals = stats.setdefault(name, {'name': name, 'earnings': 0, 'trips': 0})
        totals['earnings'] += (entry.get('earnings') or 0) + (entry.get('offline_earnings') or 0)
        totals['trips'] += entry.get('trips') or 0

    for totals in stats.values():
        totals['earnings'] = round2(totals['earnings'])
    return sorted(stats.values(), key=lambda s: s['earnings'], reverse=True)

def default_summary_range(today=None):
    today = today or date.today()
    return today - timedelta(days=DEFAULT_SUMMARY_DAYS), today

def prepare_summary_data(entries, from_date, to_date):
    """
    Builds the driver and vehicle leaderboards plus chart series for the
    summary page from plain entry dicts.
    """
    in_range = filter_entries(entries, from_date=from_date, to_date=to_date)
    driver_summary = summarize_by(in_range, 'driver')
    vehicle_summary = summarize_by(in_range, 'vehicle')

    def _chart(rows):
        top = rows[:CHART_LIMIT]
        return {
            'labels': [r['name'] for r in top],
            'earnings': [r['earnings'] for r in top],
            'trips': [r['trips'] for r in top],
        }

    return {
        'driverSummary': driver_summary,
        'vehicleSummary': vehicle_summary,
        'chartData': {'drivers': _chart(driver_summary), 'vehicles': _chart(vehicle_summary)},
        'totals': {
            'entries': len(in_range),
            'earnings': round2(sum(r['earnings'] for r in driver_summary)),
            'trips': sum(r['trips'] for r in driver_summary),
        },
    }

# --- TDS override table (owned by the report session) ---

def get_tds_overrides():
    return dict(session.get(TDS_SESSION_KEY, {}))

def set_tds_override(key, tds):
    overrides = get_tds_overrides()
    overrides[key] = round2(tds)
    session[TDS_SESSION_KEY] = overrides
    return overrides

def clear_tds_overrides():
    session.pop(TDS_SESSION_KEY, None)
