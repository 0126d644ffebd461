from datetime import date, datetime
from typing import List, Optional

from metertrack.core.config import STORAGE_MEMORY, settings
from metertrack.engine.ledger import new_reading
from metertrack.engine.models import MeterConfig, Reading
from metertrack.engine.projection import shift_month

from .config_store import ConfigStore, JsonFileConfigStore, MemoryConfigStore, migrate_config
from .readings import JsonFileReadingStore, MemoryReadingStore, ReadingStore

DEMO_MONTHS = 6
DEMO_START_VALUE = 1000.0
DEMO_MONTHLY_STEP = 50.0


def create_reading_store(meter_id: str = "default") -> ReadingStore:
    """Reading store for the configured backend."""
    if settings.STORAGE_BACKEND == STORAGE_MEMORY:
        return MemoryReadingStore()
    return JsonFileReadingStore(settings.DATA_DIR, meter_id)


def create_config_store(meter_id: str = "default") -> ConfigStore:
    if settings.STORAGE_BACKEND == STORAGE_MEMORY:
        return MemoryConfigStore()
    return JsonFileConfigStore(settings.DATA_DIR, meter_id)


def generate_demo_readings(
    today: Optional[date] = None,
    config: Optional[MeterConfig] = None
) -> List[Reading]:
    """One reading on the 15th of each of the last six months, growing 50 units a month."""
    if today is None:
        today = date.today()
    if config is None:
        config = MeterConfig()

    readings: List[Reading] = []
    for i in range(DEMO_MONTHS - 1, -1, -1):
        year, month = shift_month(today.year, today.month, -i)
        reading = new_reading(
            readings,
            DEMO_START_VALUE + (DEMO_MONTHS - 1 - i) * DEMO_MONTHLY_STEP,
            config,
            confidence=95.0,
            timestamp=datetime(year, month, 15, 12, 0),
        )
        reading.id = f"demo_{i}"
        readings.append(reading)
    return readings


__all__ = [
    "ReadingStore",
    "MemoryReadingStore",
    "JsonFileReadingStore",
    "ConfigStore",
    "MemoryConfigStore",
    "JsonFileConfigStore",
    "migrate_config",
    "create_reading_store",
    "create_config_store",
    "generate_demo_readings",
    "MeterConfig",
]
