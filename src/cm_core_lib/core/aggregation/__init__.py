"""Case Aggregation Package

Folds case records into snapshot, regional, sector and time-series outputs.
"""

from .aggregator import (
    Aggregator,
    aggregate,
    build_snapshot,
    build_regional_data,
    build_sector_data,
    build_time_series,
    UNKNOWN_REGION,
)
from .cache import AggregationCache
from .filters import filter_cases_by_status, unique_field_values
from .time_buckets import bucket_key

__all__ = [
    "Aggregator",
    "aggregate",
    "build_snapshot",
    "build_regional_data",
    "build_sector_data",
    "build_time_series",
    "UNKNOWN_REGION",
    "AggregationCache",
    "filter_cases_by_status",
    "unique_field_values",
    "bucket_key",
]
