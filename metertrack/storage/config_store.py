"""
Meter configuration stores.

A store always yields a configuration: when nothing has been saved yet the
standard defaults are returned, and stored configurations written by older
versions get their missing fields filled from those defaults.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, Optional

from metertrack.engine.models import MeterConfig

logger = logging.getLogger(__name__)


def migrate_config(data: Dict[str, Any]) -> MeterConfig:
    """
    Build a MeterConfig from stored data, filling missing or empty fields.

    Fields stored as null/0 (never valid for these parameters) take the
    default value as well.
    """
    defaults = MeterConfig().to_dict()
    merged = dict(defaults)
    for key, value in data.items():
        if key not in defaults:
            continue
        if value is None or value == "":
            continue
        merged[key] = value

    for key in ("gas_conversion_factor", "base_monthly_fee", "expected_annual_consumption"):
        if not merged[key]:
            merged[key] = defaults[key]

    return MeterConfig.from_dict(merged)


class ConfigStore:
    def get(self) -> MeterConfig:
        raise NotImplementedError

    def save(self, config: MeterConfig) -> MeterConfig:
        raise NotImplementedError


class MemoryConfigStore(ConfigStore):
    def __init__(self, config: Optional[MeterConfig] = None):
        self._config = config or MeterConfig()

    def get(self) -> MeterConfig:
        return MeterConfig.from_dict(self._config.to_dict())

    def save(self, config: MeterConfig) -> MeterConfig:
        self._config = MeterConfig.from_dict(config.to_dict())
        return self.get()


class JsonFileConfigStore(ConfigStore):
    """Configuration persisted as a JSON object under ``data_dir``."""

    def __init__(self, data_dir: Path, meter_id: str = "default"):
        self.path = Path(data_dir) / f"config_{meter_id}.json"
        self._lock = threading.Lock()

    def get(self) -> MeterConfig:
        with self._lock:
            if not self.path.exists():
                return MeterConfig()
            with open(self.path, "r", encoding="utf-8") as f:
                try:
                    data = json.load(f)
                except json.JSONDecodeError:
                    logger.error(f"Corrupt config file {self.path}, using defaults")
                    return MeterConfig()
        if not isinstance(data, dict):
            return MeterConfig()
        return migrate_config(data)

    def save(self, config: MeterConfig) -> MeterConfig:
        with self._lock:
            os.makedirs(self.path.parent, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(config.to_dict(), f, ensure_ascii=False, indent=2)
        logger.info(f"Saved meter configuration to {self.path.name}")
        return config
