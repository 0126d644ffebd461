"""
Dashboard Orchestrator

Runs every read-side computation over one snapshot of readings and config:
1. Latest reading
2. Current-month comparison (30-day projection vs expected baseline)
3. Month-by-month comparison table
4. Current-month billing figures
5. Reading history (newest first)

This is the single entry point the HTTP layer uses to render the dashboard.
"""

from datetime import date
from typing import Any, Dict, List, Optional

from .billing import (
    average_daily_consumption,
    balance_message,
    balance_status,
    current_month_consumption,
    current_month_cost,
    expected_monthly_bill,
    yearly_balance,
)
from .comparison import DEFAULT_LOCALE, DEFAULT_MONTHS_BACK, compare_month, table_data
from .ledger import latest_reading, raw_consumption_of
from .models import MeterConfig, Reading
from .rounding import round2


def build_dashboard(
    readings: List[Reading],
    config: MeterConfig,
    today: Optional[date] = None,
    months_back: int = DEFAULT_MONTHS_BACK,
    locale: str = DEFAULT_LOCALE
) -> Dict[str, Any]:
    """
    Compute the dashboard for one meter.

    Args:
        readings: Snapshot of every reading of the meter
        config: Active meter configuration
        today: Reference date for "current month"; defaults to today
        months_back: Rows of the comparison table
        locale: Language of month labels

    Returns:
        JSON-ready dictionary. With no readings ``has_data`` is False and
        the computed sections are empty.
    """
    if today is None:
        today = date.today()

    if not readings:
        return {
            "has_data": False,
            "config": config.to_dict(),
            "latest_reading": None,
            "current_month": None,
            "monthly_table": [],
            "billing": _billing_section(readings, config, None, today),
            "history": [],
        }

    latest = latest_reading(readings)
    current = compare_month(readings, config, today.year, today.month, today=today)
    table = table_data(readings, config, months_back=months_back, today=today, locale=locale)

    return {
        "has_data": True,
        "config": config.to_dict(),
        "latest_reading": latest.to_dict(),
        "current_month": current.to_dict(),
        "monthly_table": [row.to_dict() for row in table],
        "billing": _billing_section(readings, config, current.real, today),
        "history": _history(readings, config),
    }


def _billing_section(
    readings: List[Reading],
    config: MeterConfig,
    projected_consumption: Optional[float],
    today: date
) -> Dict[str, Any]:
    section = {
        "currency": config.currency,
        "expected_monthly_bill": expected_monthly_bill(config),
        "current_month_consumption_raw": round2(current_month_consumption(readings, today)),
        "current_month_cost": current_month_cost(readings, config, today),
        "average_daily_consumption_raw": average_daily_consumption(readings, today),
        "balance": None,
        "balance_status": None,
        "balance_message": None,
    }
    if projected_consumption is None:
        return section

    amount = yearly_balance(
        config.expected_monthly_baseline, projected_consumption, config.price_per_kwh
    )
    section["balance"] = amount
    section["balance_status"] = balance_status(amount)
    section["balance_message"] = balance_message(amount, config.currency)
    return section


def _history(readings: List[Reading], config: MeterConfig) -> List[Dict[str, Any]]:
    history = []
    for reading in sorted(readings, key=lambda r: r.timestamp, reverse=True):
        item = reading.to_dict()
        item["consumption_raw"] = raw_consumption_of(reading, config)
        history.append(item)
    return history
