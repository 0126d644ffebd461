"""
Reading stores.

Two interchangeable backends keep the ordered reading history of a meter:
- JsonFileReadingStore: one JSON file per meter on disk
- MemoryReadingStore: session-scoped store used for demo mode

Both hand out snapshots (new lists) so callers never mutate stored state.
"""

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from metertrack.engine.models import Reading

logger = logging.getLogger(__name__)


class ReadingStore:
    """Interface shared by every reading backend."""

    def list(self) -> List[Reading]:
        raise NotImplementedError

    def get(self, reading_id: str) -> Optional[Reading]:
        for reading in self.list():
            if reading.id == reading_id:
                return reading
        return None

    def add(self, reading: Reading) -> Reading:
        raise NotImplementedError

    def add_many(self, readings: List[Reading]) -> int:
        """Add readings whose id is not stored yet. Returns how many were added."""
        known = {r.id for r in self.list()}
        added = 0
        for reading in readings:
            if reading.id in known:
                continue
            self.add(reading)
            known.add(reading.id)
            added += 1
        return added

    def replace(self, reading: Reading) -> bool:
        """Replace the stored reading with the same id. Returns False if absent."""
        raise NotImplementedError

    def delete(self, reading_id: str) -> bool:
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class MemoryReadingStore(ReadingStore):
    def __init__(self, readings: Optional[List[Reading]] = None):
        self._readings: List[Reading] = list(readings or [])
        self._lock = threading.Lock()

    def list(self) -> List[Reading]:
        with self._lock:
            return list(self._readings)

    def add(self, reading: Reading) -> Reading:
        with self._lock:
            self._readings.append(reading)
        return reading

    def replace(self, reading: Reading) -> bool:
        with self._lock:
            for i, existing in enumerate(self._readings):
                if existing.id == reading.id:
                    self._readings[i] = reading
                    return True
        return False

    def delete(self, reading_id: str) -> bool:
        with self._lock:
            before = len(self._readings)
            self._readings = [r for r in self._readings if r.id != reading_id]
            return len(self._readings) < before

    def clear(self) -> None:
        with self._lock:
            self._readings = []


class JsonFileReadingStore(ReadingStore):
    """Reading history persisted as a JSON list under ``data_dir``."""

    def __init__(self, data_dir: Path, meter_id: str = "default"):
        self.path = Path(data_dir) / f"readings_{meter_id}.json"
        self._lock = threading.Lock()

    def _load_all(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError:
                logger.error(f"Corrupt readings file {self.path}, treating as empty")
                return []
        return data if isinstance(data, list) else []

    def _save_all(self, items: List[Dict[str, Any]]) -> None:
        os.makedirs(self.path.parent, exist_ok=True)
        tmp_path = self.path.with_suffix(".json.tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(items, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)

    def list(self) -> List[Reading]:
        with self._lock:
            return [Reading.from_dict(item) for item in self._load_all()]

    def add(self, reading: Reading) -> Reading:
        with self._lock:
            items = self._load_all()
            items.append(reading.to_dict())
            self._save_all(items)
        logger.info(f"Stored reading {reading.id} ({reading.value}) in {self.path.name}")
        return reading

    def add_many(self, readings: List[Reading]) -> int:
        with self._lock:
            items = self._load_all()
            known = {item.get("id") for item in items}
            added = 0
            for reading in readings:
                if reading.id in known:
                    continue
                items.append(reading.to_dict())
                known.add(reading.id)
                added += 1
            self._save_all(items)
        skipped = len(readings) - added
        logger.info(
            f"Stored {added} imported readings in {self.path.name}"
            + (f" ({skipped} already stored)" if skipped else "")
        )
        return added

    def replace(self, reading: Reading) -> bool:
        with self._lock:
            items = self._load_all()
            for i, item in enumerate(items):
                if item.get("id") == reading.id:
                    items[i] = reading.to_dict()
                    self._save_all(items)
                    return True
        return False

    def delete(self, reading_id: str) -> bool:
        with self._lock:
            items = self._load_all()
            remaining = [item for item in items if item.get("id") != reading_id]
            if len(remaining) == len(items):
                return False
            self._save_all(remaining)
        logger.info(f"Deleted reading {reading_id} from {self.path.name}")
        return True

    def clear(self) -> None:
        with self._lock:
            self._save_all([])
