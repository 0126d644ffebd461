"""
Projection engine: pure functions over a snapshot of readings and a meter configuration.
"""

from .comparison import compare_month, table_data
from .conversion import to_energy
from .models import (
    Confidence,
    MeterConfig,
    MeterType,
    MonthlyComparison,
    MonthlyProjection,
    MonthlyTableRow,
    ProjectionStatus,
    Reading,
)
from .projection import project_month

__all__ = [
    'Reading',
    'MeterConfig',
    'MeterType',
    'Confidence',
    'ProjectionStatus',
    'MonthlyProjection',
    'MonthlyComparison',
    'MonthlyTableRow',
    'to_energy',
    'project_month',
    'compare_month',
    'table_data',
]
