"""
Monthly Projection Engine

Estimates a calendar month's consumption normalized to a standard 30-day
period from however many readings happen to fall inside it.

Strategy by number of readings in the target month:
- 0 readings: insufficient data
- 1 reading: cross-month projection against the previous month's last
  reading, or insufficient data when the previous month is empty
- 2+ readings: same-day readings are collapsed to the latest one, then the
  first-to-last delta is turned into a daily rate and classified by how many
  days it covers

The engine is a pure function of (readings, config, target month, today).
"""

import calendar
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Tuple

from .conversion import to_energy_for
from .models import (
    Confidence,
    MeterConfig,
    MonthlyProjection,
    ProjectionStatus,
    Reading,
)
from .rounding import round2


NORMALIZED_PERIOD_DAYS = 30

# Classification thresholds
COMPLETE_MONTH_COVERAGE = 0.8   # Share of the month that must be observed
MONTH_END_TOLERANCE_DAYS = 2    # Last reading this close to month end closes the current month
HIGH_CONFIDENCE_MIN_DAYS = 15
MEDIUM_CONFIDENCE_MIN_DAYS = 7


def days_between(start: datetime, end: datetime) -> int:
    """Whole calendar days between two timestamps, ignoring time of day."""
    return (_calendar_date(end) - _calendar_date(start)).days


def previous_month(year: int, month: int) -> Tuple[int, int]:
    if month == 1:
        return year - 1, 12
    return year, month - 1


def shift_month(year: int, month: int, offset: int) -> Tuple[int, int]:
    """Move ``offset`` months forward (negative for backwards), wrapping years."""
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def readings_in_month(readings: Iterable[Reading], year: int, month: int) -> List[Reading]:
    """Readings whose calendar date falls in the given month, oldest first."""
    selected = [
        r for r in readings
        if r.timestamp.year == year and r.timestamp.month == month
    ]
    return sorted(selected, key=lambda r: r.timestamp)


def dedupe_same_day(readings: List[Reading]) -> List[Reading]:
    """
    Keep only the chronologically last reading of each calendar day.

    A user may photograph the meter several times in one day; only the
    latest photo counts.

    Args:
        readings: Readings in any order

    Returns:
        One reading per calendar day, sorted by timestamp
    """
    by_day: Dict[date, Reading] = {}
    for reading in sorted(readings, key=lambda r: r.timestamp):
        by_day[_calendar_date(reading.timestamp)] = reading
    return sorted(by_day.values(), key=lambda r: r.timestamp)


def project_month(
    readings: Iterable[Reading],
    config: MeterConfig,
    year: int,
    month: int,
    today: Optional[date] = None
) -> MonthlyProjection:
    """
    Project a calendar month's consumption onto a 30-day period.

    Args:
        readings: Snapshot of every reading of the meter (any order)
        config: Active meter configuration (conversion factor, meter type)
        year: Target year
        month: Target month (1-12)
        today: Reference date deciding whether the target month is still
            running; defaults to the current local date

    Returns:
        MonthlyProjection with all numeric outputs rounded to 2 decimals.
        Degenerate inputs map to an ``insufficient_data`` result, never
        to an exception.
    """
    if today is None:
        today = date.today()

    all_readings = list(readings)
    monthly = readings_in_month(all_readings, year, month)

    if len(monthly) == 0:
        return _insufficient(photos_count=0)

    if len(monthly) == 1:
        prev_year, prev_month = previous_month(year, month)
        previous = readings_in_month(all_readings, prev_year, prev_month)
        if not previous:
            return _insufficient(photos_count=1)
        return _project_cross_month(previous[-1], monthly[0], config, year, month)

    return _project_within_month(monthly, config, year, month, today)


def _project_cross_month(
    prev: Reading,
    curr: Reading,
    config: MeterConfig,
    year: int,
    month: int
) -> MonthlyProjection:
    """
    Project from the previous month's last reading to this month's only reading.

    The daily rate uses the whole span between both readings; ``days_observed``
    reports only the part of that span that falls inside the target month.
    """
    observed_raw = max(0.0, curr.value - prev.value)
    observed = to_energy_for(observed_raw, config)

    total_days_span = max(1, days_between(prev.timestamp, curr.timestamp))
    first_of_month = datetime(year, month, 1)
    days_in_target_month = max(1, days_between(first_of_month, curr.timestamp))

    daily_average = observed / total_days_span

    return MonthlyProjection(
        consumption_30_days=round2(daily_average * NORMALIZED_PERIOD_DAYS),
        is_projected=True,
        confidence=Confidence.VERY_LOW,
        status=ProjectionStatus.CROSS_MONTH,
        photos_count=1,
        days_observed=days_in_target_month,
        observed_consumption=round2(observed),
        observed_consumption_raw=round2(observed_raw),
        total_days_span=total_days_span,
        cross_month_projection=True,
    )


def _project_within_month(
    monthly: List[Reading],
    config: MeterConfig,
    year: int,
    month: int,
    today: date
) -> MonthlyProjection:
    photos_count = len(monthly)
    unique = dedupe_same_day(monthly)

    if len(unique) < 2:
        return _insufficient(photos_count=photos_count)

    first = unique[0]
    last = unique[-1]

    observed_raw = max(0.0, last.value - first.value)
    observed = to_energy_for(observed_raw, config)

    days_observed = days_between(first.timestamp, last.timestamp)
    if days_observed < 1:
        return _insufficient(photos_count=photos_count)

    if observed <= 0:
        return _insufficient(photos_count=photos_count, days_observed=days_observed)

    daily_average = observed / days_observed
    status, confidence, is_projected = _classify(
        days_observed, last.timestamp, year, month, today
    )

    return MonthlyProjection(
        consumption_30_days=round2(daily_average * NORMALIZED_PERIOD_DAYS),
        is_projected=is_projected,
        confidence=confidence,
        status=status,
        photos_count=photos_count,
        days_observed=days_observed,
        observed_consumption=round2(observed),
        observed_consumption_raw=round2(observed_raw),
    )


def _classify(
    days_observed: int,
    last_timestamp: datetime,
    year: int,
    month: int,
    today: date
) -> Tuple[ProjectionStatus, Confidence, bool]:
    """
    Classify a within-month projection. First matching rule wins:

    1. Month complete and >= 80% of its days observed -> complete / high
    2. >= 15 days observed -> projected / high
    3. >= 7 days observed -> projected / medium
    4. Otherwise -> projected / low

    A past (or future) month is always considered complete; the running month
    only once its last reading is within two days of the month end.
    """
    total_days_in_month = calendar.monthrange(year, month)[1]
    is_current_month = (year == today.year and month == today.month)
    is_month_complete = (
        not is_current_month
        or last_timestamp.day >= total_days_in_month - MONTH_END_TOLERANCE_DAYS
    )

    if is_month_complete and days_observed >= total_days_in_month * COMPLETE_MONTH_COVERAGE:
        return ProjectionStatus.COMPLETE, Confidence.HIGH, False
    if days_observed >= HIGH_CONFIDENCE_MIN_DAYS:
        return ProjectionStatus.PROJECTED, Confidence.HIGH, True
    if days_observed >= MEDIUM_CONFIDENCE_MIN_DAYS:
        return ProjectionStatus.PROJECTED, Confidence.MEDIUM, True
    return ProjectionStatus.PROJECTED, Confidence.LOW, True


def _insufficient(photos_count: int, days_observed: int = 0) -> MonthlyProjection:
    """Result for months that cannot be projected."""
    return MonthlyProjection(
        consumption_30_days=0.0,
        is_projected=False,
        confidence=Confidence.INSUFFICIENT,
        status=ProjectionStatus.INSUFFICIENT_DATA,
        photos_count=photos_count,
        days_observed=days_observed,
        observed_consumption=0.0,
        observed_consumption_raw=0.0,
    )


def _calendar_date(value: datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value
