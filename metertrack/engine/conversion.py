"""
Unit Conversion

Maps raw meter-unit consumption to the standard energy unit (kWh) used for all
cost math. Gas meters display volume (m³) and need a calorific conversion
factor; electricity meters already display kWh.
"""

from typing import Optional

from .models import MeterConfig, MeterType, DEFAULT_GAS_CONVERSION_FACTOR


# m³ -> kWh conversion factors by country
GAS_CONVERSION_FACTORS = {
    "ES": 10.5,
    "FR": 10.7,
    "DE": 10.3,
    "IT": 10.5,
    "UK": 11.1,
    "NL": 10.4,
    "BE": 10.5,
    "PT": 10.5,
}


def to_energy(
    raw_delta: float,
    conversion_factor: float = DEFAULT_GAS_CONVERSION_FACTOR,
    meter_type: MeterType = MeterType.GAS
) -> float:
    """
    Convert a non-negative meter-unit delta to kWh.

    Args:
        raw_delta: Consumption in meter units (caller clamps negatives to 0)
        conversion_factor: m³ to kWh multiplier, ignored for electricity meters
        meter_type: Type of meter the delta was read from

    Returns:
        Consumption in kWh
    """
    if MeterType(meter_type) == MeterType.GAS:
        return raw_delta * conversion_factor
    return raw_delta


def to_energy_for(raw_delta: float, config: MeterConfig) -> float:
    """Convert a meter-unit delta to kWh using a meter configuration."""
    return to_energy(raw_delta, config.gas_conversion_factor, config.meter_type)


def raw_consumption(current_value: float, previous_value: Optional[float]) -> float:
    """
    Consumption in meter units between two readings.

    A reading lower than its predecessor yields zero, never a negative value
    (meter rollover is not modelled).
    """
    if previous_value is None:
        return 0.0
    return max(0.0, current_value - previous_value)


def default_gas_conversion_factor(country_code: Optional[str] = None) -> float:
    """Default m³ -> kWh factor for a country, falling back to the European average."""
    return GAS_CONVERSION_FACTORS.get((country_code or "ES").upper(), DEFAULT_GAS_CONVERSION_FACTOR)
