"""Severity Scoring Package

Derives 0-10 severity scores from weighted case attributes.
"""

from .severity import (
    SeverityScorer,
    SeverityBreakdown,
    SEVERITY_WEIGHTS,
    calculate_severity_score,
)

__all__ = [
    "SeverityScorer",
    "SeverityBreakdown",
    "SEVERITY_WEIGHTS",
    "calculate_severity_score",
]
