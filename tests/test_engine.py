# tests/test_engine.py

import math
from types import SimpleNamespace

import pytest

from app.calculator.engine import (compute_pay_percent, compute_salary, compute_payable,
                                   compute_commission, compute_pl, get_room_rent, round2,
                                   normalize_amount, derive_entry_fields)

# --- Pay percent ---

@pytest.mark.parametrize("total_earnings, expected", [
    (1799, 0), (1800, 25), (2499, 25), (2500, 30), (3999, 30), (4000, 32),
    (4999, 32), (5000, 34), (5999, 34), (6000, 38), (6999, 38), (7000, 38),
])
def test_pay_percent_tier_boundaries(total_earnings, expected):
    assert compute_pay_percent(total_earnings, 0, 11) == expected

def test_pay_percent_uses_online_plus_offline_earnings():
    assert compute_pay_percent(1500, 300, 12) == 25
    assert compute_pay_percent(2000, 2000, 12) == 32

@pytest.mark.parametrize("login_hours, expected", [(8, 22), (8.99, 22), (9, 27), (10, 27), (10.99, 27), (11, 32), (14, 32)])
def test_login_hour_penalty(login_hours, expected):
    # 4500 sits in the 32% tier
    assert compute_pay_percent(4500, 0, login_hours) == expected

def test_login_hour_penalty_from_34_percent_tier():
    assert compute_pay_percent(5000, 0, 8) == 24
    assert compute_pay_percent(5000, 0, 10) == 29
    assert compute_pay_percent(5000, 0, 11) == 34

def test_pay_percent_never_negative():
    assert compute_pay_percent(1000, 0, 5) == 0
    assert compute_pay_percent(2000, 0, 5) == 15
    assert compute_pay_percent(0, 0, 0) == 0

# --- Currency formulas ---

def test_salary_applies_percent_to_total_earnings():
    assert compute_salary(3000, 500, 25) == 875.0
    assert compute_salary(1000, 0, 0) == 0.0

def test_payable_formula_ignores_offline_terms():
    base = compute_payable(3000, 500, 2800, 0, 875, 300, 0, 20, 100, 50)
    assert base == 1655.0
    # offline earnings and offline cash are accepted but do not move the payable
    assert compute_payable(3000, 9999, 2800, 4444, 875, 300, 0, 20, 100, 50) == base

def test_commission_uses_online_earnings_only():
    assert compute_commission(2800, 3000) == -200.0
    assert compute_commission(1200, 1000) == 200.0

def test_pl_subtracts_daily_fixed_cost():
    assert compute_pl(3000, 0, 900, 300, 50, 0, 20) == 650.0
    assert compute_pl(0, 0, 0, 0, 0, 0, 0) == -1080.0

@pytest.mark.parametrize("value, expected", [
    (0.005, 0.01), (2.675, 2.68), (1.005, 1.01), (1.004, 1.0), (-0.5, -0.5), (100, 100.0),
])
def test_round2_rounds_half_up_at_cent(value, expected):
    assert round2(value) == expected

def test_currency_formulas_round_exact_half_cent_up():
    # 1000.02 * 25% = 250.005
    assert compute_salary(1000.02, 0, 25) == 250.01
    assert compute_commission(1200.005, 1000) == 200.01
    assert compute_payable(0, 0, 100.005, 0, 0, 0, 0, 0, 0, 0) == 100.01
    assert compute_pl(1080.015, 0, 0, 0, 0, 0, 0) == 0.02

# --- Room rent ---

def test_room_rent_lookup_by_name():
    drivers = [SimpleNamespace(id=1, name='Ravi', room_rent=True), SimpleNamespace(id=2, name='Suresh', room_rent=False)]
    assert get_room_rent('Ravi', drivers) == 50
    assert get_room_rent('Suresh', drivers) == 0
    assert get_room_rent('Unknown', drivers) == 0
    assert get_room_rent('Ravi', []) == 0

def test_room_rent_lookup_by_id():
    drivers = [SimpleNamespace(id=1, name='Ravi', room_rent=True)]
    assert get_room_rent(1, drivers, key='id') == 50
    assert get_room_rent(2, drivers, key='id') == 0

# --- Boundary helpers ---

@pytest.mark.parametrize("value, expected", [
    (None, 0.0), ('', 0.0), ('  ', 0.0), ('1,250.50', 1250.5), ('abc', 0.0),
    (float('nan'), 0.0), (float('inf'), 0.0), (42, 42.0), (True, 0.0),
])
def test_normalize_amount(value, expected):
    assert normalize_amount(value) == expected

def test_derive_entry_fields_full_day():
    raw = {
        'earnings': 3000, 'offline_earnings': 500, 'cash_collection': 2800, 'offline_cash': 0,
        'toll': 50, 'cng': 300, 'petrol': 0, 'other_expenses': 20, 'login_hours': 10,
        'opening_balance': 100, 'room_rent': 50,
    }
    derived = derive_entry_fields(raw)
    assert derived == {
        'room_rent': 50.0, 'pay_percent': 25, 'salary': 875.0, 'payable': 1655.0,
        'commission': -200.0, 'pl': 1175.0,
    }

def test_derive_entry_fields_looks_up_room_rent_from_roster():
    drivers = [SimpleNamespace(id=7, name='Ravi', room_rent=False)]
    raw = {'earnings': 3000, 'cash_collection': 3000, 'login_hours': 12, 'room_rent': 50}
    derived = derive_entry_fields(raw, roster=drivers, driver=7, key='id')
    assert derived['room_rent'] == 0
    assert derived['payable'] == 2100.0

def test_derive_entry_fields_treats_missing_values_as_zero():
    derived = derive_entry_fields({'earnings': None, 'cash_collection': 'n/a'})
    assert derived['pay_percent'] == 0
    assert derived['salary'] == 0.0
    assert derived['pl'] == -1080.0
    assert not any(math.isnan(v) for v in derived.values())
