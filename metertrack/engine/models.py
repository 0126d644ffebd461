"""
Data models for meter readings, pricing configuration and computed projections.

Defines the structure for stored readings, the per-meter pricing configuration,
and the ephemeral monthly projection / comparison values produced by the engine.
"""

from dataclasses import dataclass, field, asdict, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from uuid import uuid4


class MeterType(str, Enum):
    GAS = "gas"
    ELECTRICITY = "electricity"


class Confidence(str, Enum):
    """Trust label of a monthly projection, driven by days of observed data."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    VERY_LOW = "very_low"
    INSUFFICIENT = "insufficient"


class ProjectionStatus(str, Enum):
    COMPLETE = "complete"
    PROJECTED = "projected"
    INSUFFICIENT_DATA = "insufficient_data"
    CROSS_MONTH = "cross_month"


# Standard defaults used when no configuration has been saved yet
DEFAULT_PRICE_PER_KWH = 0.1117
DEFAULT_BASE_MONTHLY_FEE = 14.76
DEFAULT_EXPECTED_ANNUAL_CONSUMPTION = 4370.0
DEFAULT_EXPECTED_MONTHLY_CONSUMPTION = 364.0
DEFAULT_GAS_CONVERSION_FACTOR = 10.5
DEFAULT_CURRENCY = "EUR"
DEFAULT_COUNTRY_CODE = "ES"
DEFAULT_READING_UNIT = "m³"


def _new_reading_id() -> str:
    return f"reading_{uuid4().hex}"


@dataclass
class Reading:
    """
    Represents a single meter value submission.

    Attributes:
        timestamp: When the photo was taken / the value was recorded
        value: Meter display value in the meter's native unit (m³ or kWh)
        id: Opaque unique identifier
        confidence: Optional 0-100 extraction trust (100 for manual corrections)
        consumption: Cached kWh delta from the preceding reading (display only)
        cost: Cached variable cost of that delta (display only)
        image_url: Optional location of the uploaded photo
    """
    timestamp: datetime
    value: float
    id: str = field(default_factory=_new_reading_id)
    confidence: Optional[float] = None
    consumption: float = 0.0
    cost: float = 0.0
    image_url: Optional[str] = None

    def __post_init__(self):
        """Ensure numeric fields are floats and the timestamp is a naive local datetime."""
        if isinstance(self.timestamp, str):
            self.timestamp = datetime.fromisoformat(self.timestamp.replace("Z", "+00:00"))
        if self.timestamp.tzinfo is not None:
            # Calendar-day math is done in local time
            self.timestamp = self.timestamp.astimezone().replace(tzinfo=None)
        self.value = float(self.value)
        self.consumption = float(self.consumption or 0.0)
        self.cost = float(self.cost or 0.0)
        if self.confidence is not None:
            self.confidence = float(self.confidence)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["timestamp"] = self.timestamp.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Reading":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class MeterConfig:
    """
    Pricing and conversion parameters for one tracked meter.

    Replaced wholesale on update, never patched in place by the engine.

    Attributes:
        price_per_kwh: Variable energy price (currency/kWh)
        base_monthly_fee: Fixed monthly fee (currency/month)
        currency: ISO currency code
        expected_annual_consumption: Expected yearly consumption (kWh/year)
        meter_type: Gas meters are converted to kWh, electricity meters are not
        gas_conversion_factor: m³ to kWh multiplier (gas meters only)
        reading_unit: Unit printed on the meter, display only
        country_code: Country used for default conversion factors
        expected_monthly_consumption: Informational monthly figure (kWh)
    """
    price_per_kwh: float = DEFAULT_PRICE_PER_KWH
    base_monthly_fee: float = DEFAULT_BASE_MONTHLY_FEE
    currency: str = DEFAULT_CURRENCY
    expected_annual_consumption: float = DEFAULT_EXPECTED_ANNUAL_CONSUMPTION
    meter_type: MeterType = MeterType.GAS
    gas_conversion_factor: float = DEFAULT_GAS_CONVERSION_FACTOR
    reading_unit: str = DEFAULT_READING_UNIT
    country_code: str = DEFAULT_COUNTRY_CODE
    expected_monthly_consumption: float = DEFAULT_EXPECTED_MONTHLY_CONSUMPTION

    def __post_init__(self):
        self.meter_type = MeterType(self.meter_type)
        self.price_per_kwh = float(self.price_per_kwh)
        self.base_monthly_fee = float(self.base_monthly_fee)
        self.expected_annual_consumption = float(self.expected_annual_consumption)
        self.gas_conversion_factor = float(self.gas_conversion_factor)
        self.expected_monthly_consumption = float(self.expected_monthly_consumption)

    @property
    def expected_monthly_baseline(self) -> float:
        """Expected 30-day-equivalent consumption (kWh) used by every comparison."""
        return self.expected_annual_consumption / 12

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["meter_type"] = self.meter_type.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MeterConfig":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass
class MonthlyProjection:
    """
    Consumption estimate for one calendar month, normalized to 30 days.

    Computed on demand and never persisted.

    Attributes:
        consumption_30_days: 30-day-equivalent consumption in kWh (>= 0)
        is_projected: False only when the observed span covers the month
        confidence: Trust label of the estimate
        status: How the estimate was obtained
        photos_count: Readings that fell inside the month (before dedup)
        days_observed: Calendar days covered by the observed readings
        observed_consumption: Observed delta in kWh
        observed_consumption_raw: Observed delta in meter units
        total_days_span: Day span used for cross-month projections
        cross_month_projection: True when the previous month's last reading was used
    """
    consumption_30_days: float
    is_projected: bool
    confidence: Confidence
    status: ProjectionStatus
    photos_count: int
    days_observed: int
    observed_consumption: float = 0.0
    observed_consumption_raw: float = 0.0
    total_days_span: Optional[int] = None
    cross_month_projection: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["confidence"] = self.confidence.value
        data["status"] = self.status.value
        return data


@dataclass
class MonthlyComparison:
    """Projection of a month compared against the expected baseline and its cost."""
    expected: float
    real: float
    difference: float
    percentage_diff: float
    real_monthly_cost: float
    expected_monthly_cost: float
    cost_difference: float
    is_projected: bool
    confidence: Confidence
    status: ProjectionStatus
    photos_count: int
    days_observed: int
    observed_consumption: float

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["confidence"] = self.confidence.value
        data["status"] = self.status.value
        return data


@dataclass
class MonthlyTableRow:
    """One labelled month of the comparison table."""
    month_label: str
    full_month_label: str
    year: int
    month: int
    comparison: MonthlyComparison

    def to_dict(self) -> Dict[str, Any]:
        return {
            "month_label": self.month_label,
            "full_month_label": self.full_month_label,
            "year": self.year,
            "month": self.month,
            **self.comparison.to_dict(),
        }
