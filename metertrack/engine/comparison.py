"""
Monthly Comparison Builder

Compares projected 30-day consumption against the expected monthly baseline
(expected annual consumption / 12) and turns both into monthly bills.
``table_data`` repeats the comparison over a sliding window of consecutive
months ending with the current one.
"""

from datetime import date
from typing import Iterable, List, Optional

from .models import MeterConfig, MonthlyComparison, MonthlyTableRow, Reading
from .projection import project_month, shift_month
from .rounding import round2


DEFAULT_MONTHS_BACK = 6
DEFAULT_LOCALE = "es"

MONTH_NAMES = {
    "es": [
        "enero", "febrero", "marzo", "abril", "mayo", "junio",
        "julio", "agosto", "septiembre", "octubre", "noviembre", "diciembre",
    ],
    "en": [
        "January", "February", "March", "April", "May", "June",
        "July", "August", "September", "October", "November", "December",
    ],
}

SHORT_MONTH_NAMES = {
    "es": ["ene", "feb", "mar", "abr", "may", "jun", "jul", "ago", "sept", "oct", "nov", "dic"],
    "en": ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"],
}


def compare_month(
    readings: Iterable[Reading],
    config: MeterConfig,
    year: int,
    month: int,
    today: Optional[date] = None
) -> MonthlyComparison:
    """
    Compare a month's 30-day projection with the expected baseline.

    Args:
        readings: Snapshot of every reading of the meter
        config: Active meter configuration (required, never None)
        year: Target year
        month: Target month (1-12)
        today: Reference date for the projection

    Returns:
        MonthlyComparison; percentage_diff is 0 when the expected
        consumption is 0
    """
    projection = project_month(readings, config, year, month, today=today)

    expected = config.expected_monthly_baseline
    real = projection.consumption_30_days
    difference = real - expected
    percentage_diff = (difference / expected * 100) if expected > 0 else 0.0

    price = config.price_per_kwh
    base_fee = config.base_monthly_fee
    real_monthly_cost = base_fee + real * price
    expected_monthly_cost = base_fee + expected * price

    return MonthlyComparison(
        expected=round2(expected),
        real=real,
        difference=round2(difference),
        percentage_diff=round2(percentage_diff),
        real_monthly_cost=round2(real_monthly_cost),
        expected_monthly_cost=round2(expected_monthly_cost),
        cost_difference=round2(real_monthly_cost - expected_monthly_cost),
        is_projected=projection.is_projected,
        confidence=projection.confidence,
        status=projection.status,
        photos_count=projection.photos_count,
        days_observed=projection.days_observed,
        observed_consumption=projection.observed_consumption,
    )


def table_data(
    readings: Iterable[Reading],
    config: MeterConfig,
    months_back: int = DEFAULT_MONTHS_BACK,
    today: Optional[date] = None,
    locale: str = DEFAULT_LOCALE
) -> List[MonthlyTableRow]:
    """
    Build the month-by-month comparison table.

    Args:
        readings: Snapshot of every reading of the meter
        config: Active meter configuration
        months_back: Number of months to include, current month last
        today: Reference date; its month is the last row
        locale: Language of the month labels ("es" or "en")

    Returns:
        Rows in ascending chronological order
    """
    if today is None:
        today = date.today()

    snapshot = list(readings)
    rows = []
    for i in range(months_back - 1, -1, -1):
        year, month = shift_month(today.year, today.month, -i)
        rows.append(MonthlyTableRow(
            month_label=month_label(year, month, locale),
            full_month_label=full_month_label(year, month, locale),
            year=year,
            month=month,
            comparison=compare_month(snapshot, config, year, month, today=today),
        ))
    return rows


def month_label(year: int, month: int, locale: str = DEFAULT_LOCALE) -> str:
    """Short label such as "ene 25" / "Jan 25"."""
    names = SHORT_MONTH_NAMES.get(_language(locale), SHORT_MONTH_NAMES[DEFAULT_LOCALE])
    return f"{names[month - 1]} {year % 100:02d}"


def full_month_label(year: int, month: int, locale: str = DEFAULT_LOCALE) -> str:
    """Long label such as "enero de 2025" / "January 2025"."""
    language = _language(locale)
    names = MONTH_NAMES.get(language, MONTH_NAMES[DEFAULT_LOCALE])
    if language == "en":
        return f"{names[month - 1]} {year}"
    return f"{names[month - 1]} de {year}"


def _language(locale: str) -> str:
    language = (locale or DEFAULT_LOCALE).replace("_", "-").split("-")[0].lower()
    return language if language in MONTH_NAMES else DEFAULT_LOCALE
