"""
Reading Ledger

Write-side helpers for the reading history of one meter:
- building a new reading with its cached consumption/cost
- correcting the latest reading after a bad extraction
- looking up the latest reading

Cached consumption and cost are computed against the chronologically
preceding reading at write time and are for display only; the projection
engine always recomputes from raw values.
"""

import logging
from dataclasses import replace
from datetime import datetime
from typing import List, Optional, Sequence

from .conversion import raw_consumption, to_energy_for
from .models import MeterConfig, MeterType, Reading
from .rounding import round2

logger = logging.getLogger(__name__)


# Realistic cap on consumption between two readings
MAX_CONSUMPTION_PER_READING_KWH = 1000.0

MAX_READING_VALUE = 999999.99
MANUAL_CORRECTION_CONFIDENCE = 100.0


def validate_reading_value(value: float) -> bool:
    return 0 <= value <= MAX_READING_VALUE


def consumption_since(
    value: float,
    previous_value: Optional[float],
    config: MeterConfig
) -> float:
    """
    kWh consumed since the previous reading.

    Negative deltas are clamped to 0 and the result is capped at
    MAX_CONSUMPTION_PER_READING_KWH. Returns 0 when there is no previous
    reading.
    """
    if previous_value is None:
        return 0.0
    energy = to_energy_for(raw_consumption(value, previous_value), config)
    if energy > MAX_CONSUMPTION_PER_READING_KWH:
        logger.warning(
            f"Consumption of {energy:.2f} kWh since last reading exceeds "
            f"{MAX_CONSUMPTION_PER_READING_KWH:.0f} kWh, capping"
        )
        energy = MAX_CONSUMPTION_PER_READING_KWH
    return round2(energy)


def variable_cost(consumption_kwh: float, config: MeterConfig) -> float:
    """Energy cost of a consumption, without the fixed monthly fee."""
    return round2(consumption_kwh * config.price_per_kwh)


def sort_chronologically(readings: Sequence[Reading]) -> List[Reading]:
    return sorted(readings, key=lambda r: r.timestamp)


def latest_reading(readings: Sequence[Reading]) -> Optional[Reading]:
    if not readings:
        return None
    return max(readings, key=lambda r: r.timestamp)


def preceding_reading(readings: Sequence[Reading], timestamp: datetime) -> Optional[Reading]:
    """Last reading taken at or before ``timestamp``, or None."""
    previous = None
    for reading in sort_chronologically(readings):
        if reading.timestamp > timestamp:
            break
        previous = reading
    return previous


def recompute_cached(readings: Sequence[Reading], config: MeterConfig) -> List[Reading]:
    """
    Bring every cached consumption/cost back in line with its predecessor.

    Readings inserted out of order (backdated entries, CSV imports) change
    the predecessor of the reading that follows them.

    Returns:
        Replacement readings for those whose cached values changed, oldest first
    """
    changed = []
    previous = None
    for reading in sort_chronologically(readings):
        consumption = consumption_since(
            reading.value, previous.value if previous else None, config
        )
        cost = variable_cost(consumption, config)
        if consumption != reading.consumption or cost != reading.cost:
            changed.append(replace(reading, consumption=consumption, cost=cost))
        previous = reading
    return changed


def new_reading(
    readings: Sequence[Reading],
    value: float,
    config: MeterConfig,
    confidence: Optional[float] = None,
    timestamp: Optional[datetime] = None,
    image_url: Optional[str] = None
) -> Reading:
    """
    Build a reading to append to the history.

    Args:
        readings: Current history of the meter
        value: Meter display value
        config: Active meter configuration
        confidence: Optional extraction confidence (0-100)
        timestamp: When the value was read; defaults to now
        image_url: Optional location of the uploaded photo

    Returns:
        New Reading with consumption/cost cached against the reading just
        before ``timestamp``. A backdated reading leaves the cache of the
        reading after it stale; ``recompute_cached`` refreshes it.
    """
    if timestamp is None:
        timestamp = datetime.now()

    previous = preceding_reading(readings, timestamp)
    consumption = consumption_since(value, previous.value if previous else None, config)

    return Reading(
        timestamp=timestamp,
        value=value,
        confidence=confidence,
        consumption=consumption,
        cost=variable_cost(consumption, config),
        image_url=image_url,
    )


def correct_latest(
    readings: Sequence[Reading],
    corrected_value: float,
    config: MeterConfig,
    image_url: Optional[str] = None
) -> Optional[Reading]:
    """
    Replacement for the latest reading carrying a manually corrected value.

    The replacement keeps the id and timestamp of the reading it supersedes,
    gets confidence 100, and has its consumption/cost recomputed against the
    reading before it.

    Returns:
        The corrected Reading, or None when the history is empty
    """
    if not readings:
        logger.warning("No readings to correct")
        return None

    ordered = sort_chronologically(readings)
    latest = ordered[-1]
    previous = ordered[-2] if len(ordered) > 1 else None

    consumption = consumption_since(
        corrected_value, previous.value if previous else None, config
    )
    logger.info(
        f"Correcting reading {latest.id}: {latest.value} -> {corrected_value} "
        f"(consumption {latest.consumption} -> {consumption} kWh)"
    )

    return Reading(
        id=latest.id,
        timestamp=latest.timestamp,
        value=corrected_value,
        confidence=MANUAL_CORRECTION_CONFIDENCE,
        consumption=consumption,
        cost=variable_cost(consumption, config),
        image_url=image_url or latest.image_url,
    )


def raw_consumption_of(reading: Reading, config: MeterConfig) -> float:
    """Cached consumption of a reading expressed back in meter units."""
    if config.meter_type == MeterType.GAS and config.gas_conversion_factor:
        return round2(reading.consumption / config.gas_conversion_factor)
    return reading.consumption
