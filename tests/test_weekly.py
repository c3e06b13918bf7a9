# tests/test_weekly.py

import copy
from datetime import date, datetime

import pytest

from app.calculator.weekly import (get_week_start, get_week_end, compute_weekly_rent, week_key,
                                   filter_entries, aggregate_weekly, apply_tds_override)

def make_entry(day, vehicle='V1', **fields):
    entry = {
        'date': day, 'driver': 'Ravi', 'vehicle': vehicle, 'earnings': 0, 'offline_earnings': 0,
        'cash_collection': 0, 'toll': 0, 'trips': 0,
    }
    entry.update(fields)
    return entry

# --- Week boundaries ---

@pytest.mark.parametrize("day", ['2024-01-01', '2024-01-02', '2024-01-03', '2024-01-04',
                                 '2024-01-05', '2024-01-06', '2024-01-07'])
def test_every_weekday_maps_to_the_same_monday_to_sunday_week(day):
    assert get_week_start(day) == date(2024, 1, 1)
    assert get_week_end(day) == date(2024, 1, 7)

def test_sunday_belongs_to_the_preceding_monday():
    sunday = date(2024, 3, 10)
    assert get_week_start(sunday) == date(2024, 3, 4)
    assert get_week_end(sunday) == sunday

def test_week_boundaries_across_month_and_year():
    assert get_week_start('2024-03-02') == date(2024, 2, 26)
    assert get_week_start('2025-01-01') == date(2024, 12, 30)
    assert get_week_end('2024-12-31') == date(2025, 1, 5)

def test_week_boundaries_accept_datetimes():
    assert get_week_start(datetime(2024, 1, 7, 23, 59)) == date(2024, 1, 1)

def test_week_key_format():
    assert week_key(date(2024, 1, 1), date(2024, 1, 7), 'KA01') == '2024-01-01_2024-01-07_KA01'

# --- Weekly rent ---

@pytest.mark.parametrize("trips, rent", [(0, 1050), (59, 1050), (60, 950), (89, 950), (90, 850),
                                         (119, 850), (120, 750), (300, 750)])
def test_weekly_rent_tiers(trips, rent):
    assert compute_weekly_rent(trips) == rent

# --- Filtering ---

def test_filter_entries_by_inclusive_dates_and_vehicle_substring():
    entries = [
        make_entry('2024-01-01', 'KA01AB1234'),
        make_entry('2024-01-05', 'ka01ab9999'),
        make_entry('2024-01-10', 'KA01AB1234'),
        make_entry('2024-01-05', 'TN09DE5595'),
    ]
    result = filter_entries(entries, from_date='2024-01-01', to_date='2024-01-05', vehicle='KA01')
    assert result == [entries[0], entries[1]]
    assert filter_entries(entries) == entries
    assert filter_entries(entries, driver='nobody') == []

def test_filter_entries_does_not_mutate_input():
    entries = [make_entry('2024-01-01'), make_entry('2024-02-01')]
    snapshot = copy.deepcopy(entries)
    filter_entries(entries, from_date='2024-01-15')
    assert entries == snapshot

# --- Aggregation ---

def test_end_to_end_weekly_example():
    entries = [
        make_entry('2024-01-02', earnings=1000, offline_earnings=0, cash_collection=1200, toll=50, trips=70),
        make_entry('2024-01-04', earnings=1000, offline_earnings=0, cash_collection=1200, toll=50, trips=70),
    ]
    [summary] = aggregate_weekly(entries)
    assert summary == {
        'key': '2024-01-01_2024-01-07_V1',
        'week_start': '2024-01-01',
        'week_end': '2024-01-07',
        'vehicle': 'V1',
        'earnings': 2000.0,
        'cash': 2400.0,
        'uber_commission': 400.0,
        'toll': 100.0,
        'trips': 140,
        'rent': 750.0,
        'days': 2,
        'insurance': 60.0,
        'tds': 0.0,
        # 750 * 2 + 60 + 0 + 400 - 100
        'payable': 1860.0,
    }

def test_offline_earnings_count_towards_weekly_earnings():
    entries = [make_entry('2024-01-02', earnings=1000, offline_earnings=250, cash_collection=1000)]
    [summary] = aggregate_weekly(entries)
    assert summary['earnings'] == 1250.0
    assert summary['uber_commission'] == -250.0

def test_buckets_split_by_vehicle_and_week_and_sort_newest_first():
    entries = [
        make_entry('2024-01-02', 'V2', trips=10),
        make_entry('2024-01-03', 'V1', trips=10),
        make_entry('2024-01-09', 'V1', trips=10),
        make_entry('2024-01-07', 'V2', trips=5),
    ]
    summaries = aggregate_weekly(entries)
    assert [(s['week_start'], s['vehicle'], s['days']) for s in summaries] == [
        ('2024-01-08', 'V1', 1),
        ('2024-01-01', 'V2', 2),
        ('2024-01-01', 'V1', 1),
    ]

def test_same_day_entries_for_one_vehicle_add_days():
    entries = [make_entry('2024-01-02', trips=40), make_entry('2024-01-02', trips=30)]
    [summary] = aggregate_weekly(entries)
    assert summary['days'] == 2
    assert summary['trips'] == 70
    assert summary['rent'] == 950.0
    assert summary['insurance'] == 60.0

def test_aggregation_applies_filters_before_bucketing():
    entries = [make_entry('2024-01-02', 'KA01'), make_entry('2024-01-03', 'TN09'), make_entry('2024-01-20', 'KA01')]
    summaries = aggregate_weekly(entries, from_date='2024-01-01', to_date='2024-01-07', vehicle='ka')
    assert [(s['vehicle'], s['days']) for s in summaries] == [('KA01', 1)]

def test_empty_input_gives_empty_list():
    assert aggregate_weekly([]) == []

def test_aggregation_is_idempotent_and_pure():
    entries = [
        make_entry('2024-01-02', earnings=1234.56, cash_collection=1500.1, toll=12.345, trips=33),
        make_entry('2024-01-10', 'V9', earnings=999.99, cash_collection=800, trips=95),
    ]
    snapshot = copy.deepcopy(entries)
    overrides = {'2024-01-08_2024-01-14_V9': 25}
    first = aggregate_weekly(entries, tds_overrides=overrides)
    second = aggregate_weekly(entries, tds_overrides=overrides)
    assert first == second
    assert repr(first) == repr(second)
    assert entries == snapshot
    assert overrides == {'2024-01-08_2024-01-14_V9': 25}

def test_monetary_outputs_are_rounded():
    [summary] = aggregate_weekly([make_entry('2024-01-02', toll=10.005, cash_collection=0.125)])
    assert summary['toll'] == 10.01
    assert summary['cash'] == 0.13

# --- TDS overrides ---

def test_tds_override_from_side_table_defaults_to_zero():
    entries = [make_entry('2024-01-02', 'A', trips=10), make_entry('2024-01-02', 'B', trips=10)]
    summaries = aggregate_weekly(entries, tds_overrides={'2024-01-01_2024-01-07_A': 120.5})
    by_vehicle = {s['vehicle']: s for s in summaries}
    assert by_vehicle['A']['tds'] == 120.5
    assert by_vehicle['A']['payable'] == 1050 + 30 + 120.5
    assert by_vehicle['B']['tds'] == 0.0
    assert by_vehicle['B']['payable'] == 1050 + 30

def test_tds_override_isolated_to_one_bucket():
    entries = [
        make_entry('2024-01-02', 'A', earnings=1000, cash_collection=1100, trips=50),
        make_entry('2024-01-02', 'B', earnings=2000, cash_collection=1800, toll=40, trips=95),
    ]
    summaries = aggregate_weekly(entries)
    key_a = '2024-01-01_2024-01-07_A'
    updated = apply_tds_override(summaries, key_a, 99.999)

    assert updated[1] == summaries[1]
    assert updated[0]['tds'] == 100.0
    assert updated[0]['payable'] == summaries[0]['payable'] + 100
    # the original list is left untouched
    assert summaries[0]['tds'] == 0.0

def test_applied_override_matches_a_fresh_aggregation_with_the_same_table():
    entries = [make_entry('2024-01-02', 'A', earnings=800, cash_collection=950, toll=20, trips=65)]
    key = '2024-01-01_2024-01-07_A'
    in_place = apply_tds_override(aggregate_weekly(entries), key, 45.5)
    regenerated = aggregate_weekly(entries, tds_overrides={key: 45.5})
    assert in_place == regenerated

def test_tds_override_for_unknown_key_changes_nothing():
    summaries = aggregate_weekly([make_entry('2024-01-02')])
    assert apply_tds_override(summaries, 'no-such-key', 10) == summaries

def test_override_and_regeneration_agree_for_sub_cent_amounts():
    # cash 0.005 rounds up to 0.01 while toll 0.004 rounds down to 0.00
    entries = [make_entry('2024-01-02', 'A', cash_collection=0.005, toll=0.004)]
    key = '2024-01-01_2024-01-07_A'
    [generated] = aggregate_weekly(entries)
    assert generated['uber_commission'] == 0.01
    assert generated['toll'] == 0.0
    assert generated['payable'] == 1080.01

    [in_place] = apply_tds_override([generated], key, 12.345)
    [regenerated] = aggregate_weekly(entries, tds_overrides={key: 12.345})
    assert in_place == regenerated
    assert in_place['tds'] == 12.35
