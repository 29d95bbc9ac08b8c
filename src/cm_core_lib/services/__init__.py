"""High-level services for presentation layers."""

from cm_core_lib.services.metrics_service import MetricsService

__all__ = [
    "MetricsService",
]
