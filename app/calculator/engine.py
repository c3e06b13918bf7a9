# ==============================================================================
# app/calculator/engine.py
# ------------------------------------------------------------------------------
# Daily payroll calculation engine. Converts one entry's raw trip/earnings
# fields into its derived fields: pay percent, salary, payable, commission
# and profit/loss. Every function here is pure.
# ==============================================================================

import logging
import math
from decimal import Decimal, ROUND_HALF_UP

logger = logging.getLogger(__name__)

# (lower bound, pay percent), checked in ascending order. The last bound
# stays open-ended.
PAY_PERCENT_TIERS = [
    (0, 0),
    (1800, 25),
    (2500, 30),
    (4000, 32),
    (5000, 34),
    (6000, 38),
    (7000, 38),
]

FULL_SHIFT_HOURS = 11
SHORT_SHIFT_HOURS = 9
SHORT_SHIFT_PENALTY = 5
PARTIAL_SHIFT_PENALTY = 10

DAILY_FIXED_COST = 1080
ROOM_RENT_AMOUNT = 50

_CENT = Decimal('0.01')


# --- Helper Functions ---

def to_decimal(value):
    # str() keeps the shortest repr, so 2.675 stays 2.675 instead of 2.67499...
    return Decimal(str(value))

def round2(value):
    """Rounds a currency amount to 2 places, half-up at the cent boundary."""
    return float(to_decimal(value).quantize(_CENT, rounding=ROUND_HALF_UP))

def normalize_amount(value):
    """
    Coerces an untyped form or spreadsheet value into a float.

    None, blanks, NaN and infinities become 0; strings may carry thousands
    separators. Anything that still is not a number also becomes 0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, str):
        value = value.replace(',', '').strip()
        if not value:
            return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


# --- Daily Formulas ---

def compute_pay_percent(earnings, offline_earnings, login_hours):
    """
    Returns the driver's share of total earnings as an integer percent.

    The base rate comes from the earnings tier; short shifts lose 5 points
    (9 to 11 hours) or 10 points (under 9 hours). Never below 0.
    """
    total_earnings = earnings + offline_earnings
    pay_percent = 0
    for lower_bound, percent in PAY_PERCENT_TIERS:
        if total_earnings >= lower_bound:
            pay_percent = percent
        else:
            break

    if login_hours < SHORT_SHIFT_HOURS:
        pay_percent -= PARTIAL_SHIFT_PENALTY
    elif login_hours < FULL_SHIFT_HOURS:
        pay_percent -= SHORT_SHIFT_PENALTY

    return max(pay_percent, 0)

def compute_salary(earnings, offline_earnings, pay_percent):
    total_earnings = to_decimal(earnings) + to_decimal(offline_earnings)
    return round2(total_earnings * to_decimal(pay_percent) / 100)

def compute_payable(earnings, offline_earnings, cash_collection, offline_cash, salary,
                    cng, petrol, other_expenses, opening_balance, room_rent):
    """
    Net cash the driver owes the company for the day.

    offline_earnings and offline_cash are part of the signature but not of the
    formula; offline earnings reach the payable only through the salary.
    """
    payable = (to_decimal(cash_collection) - to_decimal(salary) - to_decimal(cng) - to_decimal(petrol)
               - to_decimal(other_expenses) + to_decimal(opening_balance) - to_decimal(room_rent))
    return round2(payable)

def compute_commission(cash_collection, earnings):
    return round2(to_decimal(cash_collection) - to_decimal(earnings))

def compute_pl(earnings, offline_earnings, salary, cng, toll, petrol, other_expenses):
    """Profit/loss for the day after the fixed daily vehicle cost."""
    total_earnings = to_decimal(earnings) + to_decimal(offline_earnings)
    pl = (total_earnings - to_decimal(salary) - to_decimal(cng) - to_decimal(toll) - to_decimal(petrol)
          - to_decimal(other_expenses) - DAILY_FIXED_COST)
    return round2(pl)

def get_room_rent(driver, roster, key='name'):
    """
    Looks up the daily room rent for a driver in the roster.

    Args:
        driver: The value to match, a driver name by default.
        roster (iterable): Driver records exposing `room_rent` and the
            attribute named by `key`.
        key (str): Attribute to match on. The web app passes 'id'.

    Returns:
        int: ROOM_RENT_AMOUNT for a flagged driver, 0 otherwise (including
            when no driver matches).
    """
    for record in roster or []:
        if getattr(record, key, None) == driver:
            return ROOM_RENT_AMOUNT if getattr(record, 'room_rent', False) else 0
    logger.debug(f"No driver matched {key}={driver!r}; room rent defaults to 0.")
    return 0


# --- Entry Derivation ---

RAW_AMOUNT_FIELDS = [
    'earnings', 'cash_collection', 'offline_earnings', 'offline_cash', 'toll',
    'cng', 'petrol', 'other_expenses', 'login_hours', 'opening_balance', 'room_rent',
]

def derive_entry_fields(raw, roster=None, driver=None, key='name'):
    """
    Runs all daily formulas for one entry.

    Args:
        raw (dict): Raw entry fields. Missing or malformed amounts count as 0.
        roster (iterable, optional): When given, room rent is looked up for
            `driver` instead of taken from `raw`.
        driver: Value matched against the roster on attribute `key`.

    Returns:
        dict: room_rent, pay_percent, salary, payable, commission and pl.
    """
    values = {field: normalize_amount(raw.get(field)) for field in RAW_AMOUNT_FIELDS}
    if roster is not None:
        values['room_rent'] = get_room_rent(driver, roster, key=key)

    pay_percent = compute_pay_percent(values['earnings'], values['offline_earnings'], values['login_hours'])
    salary = compute_salary(values['earnings'], values['offline_earnings'], pay_percent)
    payable = compute_payable(
        values['earnings'], values['offline_earnings'], values['cash_collection'],
        values['offline_cash'], salary, values['cng'], values['petrol'],
        values['other_expenses'], values['opening_balance'], values['room_rent']
    )
    commission = compute_commission(values['cash_collection'], values['earnings'])
    pl = compute_pl(
        values['earnings'], values['offline_earnings'], salary, values['cng'],
        values['toll'], values['petrol'], values['other_expenses']
    )

    return {
        'room_rent': values['room_rent'],
        'pay_percent': pay_percent,
        'salary': salary,
        'payable': payable,
        'commission': commission,
        'pl': pl,
    }
