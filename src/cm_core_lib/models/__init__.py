"""
Shared data models for the Corruption Monitor core library.

This package provides Pydantic models shared by scoring, aggregation and the
live-update reducer so every consumer sees the same record and metric shapes.
"""

from cm_core_lib.models.case import (
    CaseRecord,
    StatusCategory,
    GovernmentLevel,
    TimeField,
    parse_case_rows,
)

from cm_core_lib.models.metrics import (
    MetricsSnapshot,
    RegionalData,
    SectorData,
    TimeSeriesPoint,
    TimeInterval,
    AggregationResult,
)

from cm_core_lib.models.events import (
    ChangeEvent,
    EventKind,
    ConnectionStatus,
)

from cm_core_lib.models.common import (
    parse_utc_timestamp,
    ensure_utc,
)

__all__ = [
    # Cases
    "CaseRecord", "StatusCategory", "GovernmentLevel", "TimeField", "parse_case_rows",
    # Metrics
    "MetricsSnapshot", "RegionalData", "SectorData", "TimeSeriesPoint",
    "TimeInterval", "AggregationResult",
    # Events
    "ChangeEvent", "EventKind", "ConnectionStatus",
    # Helpers
    "parse_utc_timestamp", "ensure_utc",
]
