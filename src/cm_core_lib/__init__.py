"""Corruption Monitor Core Library

Case models, severity scoring, metric aggregation and live updates for the
corruption case monitoring dashboard.
"""

__version__ = "0.1.0"

# Export shared models first (no dependencies)
from cm_core_lib.models import (
    CaseRecord, StatusCategory, GovernmentLevel, TimeField,
    MetricsSnapshot, RegionalData, SectorData, TimeSeriesPoint,
    TimeInterval, AggregationResult,
    ChangeEvent, EventKind, ConnectionStatus,
)

from cm_core_lib.exceptions import (
    CoreLibError,
    DataFetchError,
    SubscriptionError,
    MalformedRecordError,
)

from cm_core_lib.core.scoring import SeverityScorer, calculate_severity_score
from cm_core_lib.core.aggregation import Aggregator, aggregate
from cm_core_lib.core.realtime import LiveUpdateReducer, ChangeEventSource, QueueEventSource


# Lazy import for clients and services so that importing the models does not
# pull in the HTTP stack
def __getattr__(name):
    """Lazy import for CaseStoreClient and MetricsService."""
    if name == "CaseStoreClient":
        from cm_core_lib.clients import CaseStoreClient
        return CaseStoreClient
    if name == "MetricsService":
        from cm_core_lib.services import MetricsService
        return MetricsService
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")

__all__ = [
    # Models
    "CaseRecord", "StatusCategory", "GovernmentLevel", "TimeField",
    "MetricsSnapshot", "RegionalData", "SectorData", "TimeSeriesPoint",
    "TimeInterval", "AggregationResult",
    "ChangeEvent", "EventKind", "ConnectionStatus",
    # Errors
    "CoreLibError", "DataFetchError", "SubscriptionError", "MalformedRecordError",
    # Computation
    "SeverityScorer", "calculate_severity_score",
    "Aggregator", "aggregate",
    "LiveUpdateReducer", "ChangeEventSource", "QueueEventSource",
    # Clients (lazy loaded)
    "CaseStoreClient",
    "MetricsService",
]
