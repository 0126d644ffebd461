"""Shared pytest configuration for the project test suite."""
import os
import sys
from datetime import datetime
from pathlib import Path

import pytest

# Tests never touch the on-disk stores or a real Gemini key
os.environ["STORAGE_BACKEND"] = "memory"
os.environ["GEMINI_API_KEY"] = ""

# Ensure the repository root (which contains the ``metertrack`` package) is importable.
ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from metertrack.engine.models import MeterConfig, MeterType, Reading  # noqa: E402


@pytest.fixture
def gas_config():
    """Default gas meter: 10.5 kWh per m³, 0.1117 €/kWh, 14.76 €/month, 4370 kWh/year."""
    return MeterConfig()


@pytest.fixture
def electricity_config():
    return MeterConfig(meter_type=MeterType.ELECTRICITY, reading_unit="kWh")


@pytest.fixture
def make_reading():
    """Factory building readings from (y, m, d[, h, min]) tuples."""
    def _make(value, y, m, d, hour=12, minute=0, **kwargs):
        return Reading(timestamp=datetime(y, m, d, hour, minute), value=value, **kwargs)
    return _make
