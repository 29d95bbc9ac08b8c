"""Metrics Reporting Package

Formats aggregation results into human-readable text.
"""

from .summary import (
    format_currency,
    summarize_result,
)

__all__ = [
    "format_currency",
    "summarize_result",
]
