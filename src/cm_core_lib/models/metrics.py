"""Derived metrics models.

Every structure here is a pure function of a case collection plus a reference
``now``. They are immutable and compare structurally, so a snapshot can be
used directly for memoization and test assertions.

Key Models:
- MetricsSnapshot: Dashboard-wide summary statistics
- RegionalData: Per-region rollup (amounts divided across a case's regions)
- SectorData: Per-sector rollup
- TimeSeriesPoint: One time bucket of the trend series
- AggregationResult: Everything one aggregation pass produces
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from cm_core_lib.models.case import TimeField


class TimeInterval(str, Enum):
    """Granularity of time-series buckets"""

    DAY = "day"        # YYYY-MM-DD
    WEEK = "week"      # YYYY-MM-DD of the Sunday starting the week
    MONTH = "month"    # YYYY-MM
    YEAR = "year"      # YYYY


class MetricsSnapshot(BaseModel):
    """
    Summary statistics for a point-in-time case collection.

    Replaced wholesale on each recomputation. Invariants:
    - pending_cases + closed_cases + ongoing_cases == total_cases
    - recovery_rate == 0 whenever total_losses == 0
    """

    total_cases: int = Field(default=0, ge=0)
    pending_cases: int = Field(default=0, ge=0)
    closed_cases: int = Field(default=0, ge=0)
    ongoing_cases: int = Field(default=0, ge=0)

    total_losses: int = Field(default=0, ge=0, description="Sum of estimated losses (IDR)")
    total_recovered: int = Field(default=0, ge=0, description="Sum of recovered assets (IDR)")
    recovery_rate: float = Field(default=0.0, ge=0.0, description="Recovered / losses, in percent")

    average_severity_score: float = Field(default=0.0, description="Mean of present severity scores")
    high_severity_cases: int = Field(default=0, ge=0, description="Cases with severity > 7")

    cases_this_month: int = Field(default=0, ge=0)
    cases_this_year: int = Field(default=0, ge=0)
    cases_last_month: int = Field(default=0, ge=0)
    recent_cases_growth: float = Field(
        default=0.0,
        description="Percent change of this month's cases against last month's"
    )

    top_corruption_type: Optional[str] = None
    top_sector: Optional[str] = None
    top_region: Optional[str] = None

    class Config:
        frozen = True  # Immutable once created

    @classmethod
    def empty(cls) -> 'MetricsSnapshot':
        """Zero-value snapshot: all counts and rates 0, top-* fields None"""
        return cls()


class RegionalData(BaseModel):
    """Per-region rollup. Amounts of a multi-region case are split equally."""

    region: str
    case_count: int = Field(default=0, ge=0)
    total_losses: float = Field(default=0.0, ge=0.0, description="Region-divided losses (IDR)")
    total_recovered: float = Field(default=0.0, ge=0.0, description="Region-divided recoveries (IDR)")
    average_severity_score: float = 0.0
    recovery_rate: float = Field(default=0.0, ge=0.0)
    government_levels: List[str] = Field(default_factory=list)
    corruption_types: List[str] = Field(default_factory=list)
    cases_by_status: Dict[str, int] = Field(
        default_factory=dict,
        description="Raw case_status label → count ('unknown' when missing)"
    )
    cases_by_type: Dict[str, int] = Field(
        default_factory=dict,
        description="Corruption type label → count ('unknown' when missing)"
    )

    class Config:
        frozen = True


class SectorData(BaseModel):
    """Per-sector rollup"""

    sector: str
    case_count: int = Field(default=0, ge=0)
    total_losses: int = Field(default=0, ge=0)
    total_recovered: int = Field(default=0, ge=0)
    average_severity_score: float = 0.0
    recovery_rate: float = Field(default=0.0, ge=0.0)
    government_levels: List[str] = Field(default_factory=list)
    corruption_types: List[str] = Field(default_factory=list)

    class Config:
        frozen = True


class TimeSeriesPoint(BaseModel):
    """One bucket of the case trend"""

    bucket: str = Field(description="Bucket key, lexically sortable")
    count: int = Field(default=0, ge=0)
    total_losses: int = Field(default=0, ge=0)
    average_severity_score: float = 0.0

    class Config:
        frozen = True


class AggregationResult(BaseModel):
    """Output of one aggregation pass and the parameters it was computed with"""

    snapshot: MetricsSnapshot = Field(default_factory=MetricsSnapshot)
    regions: List[RegionalData] = Field(default_factory=list)
    sectors: List[SectorData] = Field(default_factory=list)
    time_series: List[TimeSeriesPoint] = Field(default_factory=list)

    now: datetime = Field(description="Reference instant used for month/year counters")
    time_field: TimeField = TimeField.PUBLISHED_DATE
    interval: TimeInterval = TimeInterval.MONTH

    class Config:
        frozen = True

    @property
    def top_sector_by_losses(self) -> Optional[SectorData]:
        """Sector with the highest total losses"""
        return self.sectors[0] if self.sectors else None

    @property
    def top_sector_by_cases(self) -> Optional[SectorData]:
        """Sector with the most cases (first on ties)"""
        best = None
        for sector in self.sectors:
            if best is None or sector.case_count > best.case_count:
                best = sector
        return best
