"""
CSV Loader for Reading History

Imports a meter's reading history from a CSV export and writes the history
back out in the same shape. Column detection is tolerant of naming variants
("timestamp", "date", "reading_date" / "value", "reading", "reading_value").
"""

import io
import re
from datetime import datetime
from typing import List, Optional, Sequence

import pandas as pd

from .models import Reading


EXPORT_COLUMNS = ["id", "timestamp", "value", "confidence", "consumption", "cost"]

# Write-time cache columns carried over from our own exports
CACHED_COLUMNS = ["consumption", "cost"]


def load_readings_from_upload(file_bytes: bytes) -> List[Reading]:
    """
    Load readings from uploaded CSV bytes.

    Args:
        file_bytes: Raw bytes from file upload

    Returns:
        List of Reading objects, sorted by timestamp

    Raises:
        ValueError: If the CSV cannot be parsed or contains no usable rows
    """
    try:
        df = pd.read_csv(io.BytesIO(file_bytes), sep=None, engine="python", on_bad_lines="skip")
    except Exception as e:
        raise ValueError(f"Error reading CSV file: {str(e)}")

    if df.empty:
        raise ValueError("CSV file contains no rows")

    df.columns = [_normalize_column_name(col) for col in df.columns]

    timestamp_col = _find_column(df.columns, TIMESTAMP_CANDIDATES)
    value_col = _find_column(df.columns, VALUE_CANDIDATES)
    if not timestamp_col or not value_col:
        raise ValueError("CSV file needs a timestamp/date column and a value/reading column")
    confidence_col = _find_column(df.columns, ["confidencescore", "confidence"])
    id_col = "id" if "id" in df.columns else None
    cached_cols = [col for col in CACHED_COLUMNS if col in df.columns]

    df[timestamp_col] = pd.to_datetime(df[timestamp_col], errors="coerce")
    df[value_col] = pd.to_numeric(df[value_col], errors="coerce")
    if confidence_col:
        df[confidence_col] = pd.to_numeric(df[confidence_col], errors="coerce")
    for col in cached_cols:
        df[col] = pd.to_numeric(df[col], errors="coerce")

    valid_df = df[df[timestamp_col].notna() & df[value_col].notna()]
    valid_df = valid_df[valid_df[value_col] >= 0]

    readings = []
    for _, row in valid_df.iterrows():
        confidence = None
        if confidence_col and pd.notna(row[confidence_col]):
            confidence = float(row[confidence_col])

        kwargs = {}
        if id_col and pd.notna(row[id_col]):
            kwargs["id"] = str(row[id_col])
        for col in cached_cols:
            if pd.notna(row[col]):
                kwargs[col] = float(row[col])

        readings.append(Reading(
            timestamp=_to_datetime(row[timestamp_col]),
            value=float(row[value_col]),
            confidence=confidence,
            **kwargs,
        ))

    if not readings:
        raise ValueError("CSV file parsed but contained no usable readings")

    readings.sort(key=lambda r: r.timestamp)
    return readings


def export_readings_csv(readings: Sequence[Reading]) -> str:
    """Serialize readings to CSV text, oldest first."""
    rows = [
        {
            "id": r.id,
            "timestamp": r.timestamp.isoformat(),
            "value": r.value,
            "confidence": r.confidence,
            "consumption": r.consumption,
            "cost": r.cost,
        }
        for r in sorted(readings, key=lambda r: r.timestamp)
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS).to_csv(index=False)


# Priority order: more specific first
TIMESTAMP_CANDIDATES = ["readingdate", "timestamp", "datetime", "date", "time"]
VALUE_CANDIDATES = ["readingvalue", "reading", "metervalue", "value"]


def _normalize_column_name(name) -> str:
    """
    Normalize column name for matching.

    - Convert to lowercase
    - Remove spaces and underscores
    - Remove punctuation: [,.;():"']
    """
    if name is None or pd.isna(name):
        return ""
    name = str(name).lower().replace(" ", "").replace("_", "")
    return re.sub(r'[,.;():"\']', '', name)


def _find_column(columns: Sequence[str], candidates: List[str]) -> Optional[str]:
    for candidate in candidates:
        for col in columns:
            if col == candidate:
                return col
    for candidate in candidates:
        for col in columns:
            if candidate in col:
                return col
    return None


def _to_datetime(value) -> datetime:
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    return value
