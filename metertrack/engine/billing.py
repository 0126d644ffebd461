"""
Billing Summaries

Current-month figures shown next to the projection table, and the helpers
that turn consumption into bills and year-end balance messages.
"""

import math
from datetime import date
from typing import Iterable, Optional

from .conversion import to_energy_for
from .ledger import variable_cost
from .models import MeterConfig, Reading
from .projection import readings_in_month
from .rounding import round2


BALANCE_CREDIT = "credit"
BALANCE_CHARGE = "charge"
BALANCE_ON_TRACK = "balance"

MONTHS_PER_YEAR = 12

CURRENCY_SYMBOLS = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
    "MXN": "MX$",
    "ARS": "ARS ",
}


def current_month_consumption(readings: Iterable[Reading], today: Optional[date] = None) -> float:
    """
    Meter-unit delta between the first and last reading of the current month.

    Returns 0 with fewer than two readings; never negative.
    """
    if today is None:
        today = date.today()
    monthly = readings_in_month(readings, today.year, today.month)
    if len(monthly) < 2:
        return 0.0
    return max(0.0, monthly[-1].value - monthly[0].value)


def current_month_cost(
    readings: Iterable[Reading],
    config: MeterConfig,
    today: Optional[date] = None
) -> float:
    """Variable cost of the current month so far, after conversion to kWh."""
    raw = current_month_consumption(readings, today)
    return variable_cost(to_energy_for(raw, config), config)


def average_daily_consumption(readings: Iterable[Reading], today: Optional[date] = None) -> float:
    """
    Average daily meter-unit consumption over the current month.

    Elapsed days are counted from the first to the last timestamp, rounded
    up, and never less than one.
    """
    if today is None:
        today = date.today()
    monthly = readings_in_month(readings, today.year, today.month)
    if len(monthly) < 2:
        return 0.0

    first, last = monthly[0], monthly[-1]
    elapsed_days = (last.timestamp - first.timestamp).total_seconds() / 86400
    days = max(1, math.ceil(elapsed_days))
    return round2((last.value - first.value) / days)


def monthly_bill(consumption_kwh: float, config: MeterConfig) -> float:
    """Fixed fee plus variable cost for a month's consumption."""
    return round2(config.base_monthly_fee + variable_cost(consumption_kwh, config))


def expected_monthly_bill(config: MeterConfig) -> float:
    """Monthly bill implied by the expected annual consumption."""
    annual_variable_cost = config.expected_annual_consumption * config.price_per_kwh
    return round2(config.base_monthly_fee + annual_variable_cost / 12)


def balance(actual_consumption: float, expected_consumption: float, price_per_kwh: float) -> float:
    return (actual_consumption - expected_consumption) * price_per_kwh


def yearly_balance(expected_monthly: float, projected_monthly: float, price_per_kwh: float) -> float:
    """
    Year-end balance if the projected month repeated for twelve months.

    Positive (credit) when consuming below the expected baseline that the
    fixed payments assume, negative (additional charge) above it.
    """
    monthly_saving = (expected_monthly - projected_monthly) * price_per_kwh
    return round2(monthly_saving * MONTHS_PER_YEAR)


def balance_status(amount: float) -> str:
    if amount > 0:
        return BALANCE_CREDIT
    if amount < 0:
        return BALANCE_CHARGE
    return BALANCE_ON_TRACK


def balance_message(amount: float, currency: str) -> str:
    status = balance_status(amount)
    formatted = format_currency(abs(amount), currency)

    if status == BALANCE_CREDIT:
        return f"Estimated refund of {formatted} at year end"
    if status == BALANCE_CHARGE:
        return f"Estimated additional charge of {formatted} at year end"
    return "Consumption is on track with expectations"


def format_number(value: float, decimals: int = 2) -> str:
    """Thousands-separated fixed-point text, e.g. 1,234.50."""
    return f"{value:,.{decimals}f}"


def format_currency(amount: float, currency: str = "USD") -> str:
    symbol = CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{format_number(abs(amount), 2)}"
