"""Case aggregation - folds case records into dashboard metrics.

Purpose: Turn a raw case collection into everything the dashboard renders

Key Functions:
- build_snapshot(): Global summary statistics (MetricsSnapshot)
- build_regional_data(): Per-region rollups, amounts split across regions
- build_sector_data(): Per-sector rollups
- build_time_series(): Bucketed trend series
- aggregate(): All of the above in one pass set

Design Principles:
- Pure functions: read the input, allocate a fresh result, no shared state
- ``now`` is injected by the caller and captured once per pass
- Records without an id are skipped, never abort the pass
- Empty input yields the zero snapshot, never a division by zero
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence

from cm_core_lib.core.aggregation.time_buckets import bucket_key
from cm_core_lib.core.scoring.severity import SeverityScorer
from cm_core_lib.models.case import CaseRecord, StatusCategory, TimeField
from cm_core_lib.models.common import ensure_utc, previous_month
from cm_core_lib.models.metrics import (
    AggregationResult,
    MetricsSnapshot,
    RegionalData,
    SectorData,
    TimeInterval,
    TimeSeriesPoint,
)

logger = logging.getLogger(__name__)

UNKNOWN_REGION = "Unknown"
UNKNOWN_LABEL = "unknown"
HIGH_SEVERITY_THRESHOLD = 7.0


def _mean(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _rate(recovered: float, losses: float) -> float:
    return (recovered / losses) * 100 if losses > 0 else 0.0


def _top_label(counts: Dict[str, int]) -> Optional[str]:
    """Label with the highest count; the first one encountered wins ties"""
    best_label = None
    best_count = 0
    for label, count in counts.items():
        if count > best_count:
            best_label, best_count = label, count
    return best_label


def _unique(labels: Iterable[str]) -> List[str]:
    return list(dict.fromkeys(labels))


def _add_unique(target: List[str], label: Optional[str]) -> None:
    if label and label not in target:
        target.append(label)


def identified_cases(cases: Iterable[CaseRecord]) -> List[CaseRecord]:
    """Drop records without an id, logging how many were skipped"""
    cases = list(cases)
    kept = [case for case in cases if case.id]
    skipped = len(cases) - len(kept)
    if skipped:
        logger.warning(f"Skipped {skipped} case record(s) without an id")
    return kept


# ============================================================
# Global snapshot
# ============================================================

def build_snapshot(cases: Sequence[CaseRecord], now: datetime) -> MetricsSnapshot:
    """
    Compute the dashboard-wide MetricsSnapshot.

    Month/year counters compare ``created_at`` (UTC) against ``now``; records
    without ``created_at`` are not counted in them.

    Args:
        cases: Identified case records
        now: Reference instant for month/year counters

    Returns:
        MetricsSnapshot (the zero snapshot for empty input)
    """
    if not cases:
        return MetricsSnapshot.empty()

    now = ensure_utc(now)
    last_month_year, last_month = previous_month(now)

    status_counts = {category: 0 for category in StatusCategory}
    total_losses = 0
    total_recovered = 0
    severity_scores: List[float] = []
    cases_this_month = cases_this_year = cases_last_month = 0
    type_counts: Dict[str, int] = {}
    sector_counts: Dict[str, int] = {}
    region_counts: Dict[str, int] = {}

    for case in cases:
        status_counts[case.status_category] += 1
        total_losses += case.estimated_losses or 0
        total_recovered += case.asset_recovery or 0

        if case.severity_score is not None:
            severity_scores.append(case.severity_score)

        if case.created_at is not None:
            created = ensure_utc(case.created_at)
            if created.year == now.year:
                cases_this_year += 1
                if created.month == now.month:
                    cases_this_month += 1
            if created.year == last_month_year and created.month == last_month:
                cases_last_month += 1

        for label in _unique(case.corruption_type):
            type_counts[label] = type_counts.get(label, 0) + 1
        if case.sector:
            sector_counts[case.sector] = sector_counts.get(case.sector, 0) + 1
        for region in _unique(case.regions_affected):
            region_counts[region] = region_counts.get(region, 0) + 1

    if cases_last_month > 0:
        growth = (cases_this_month - cases_last_month) / cases_last_month * 100
    else:
        growth = 100.0 if cases_this_month > 0 else 0.0

    return MetricsSnapshot(
        total_cases=len(cases),
        pending_cases=status_counts[StatusCategory.PENDING],
        closed_cases=status_counts[StatusCategory.CLOSED],
        ongoing_cases=status_counts[StatusCategory.ONGOING],
        total_losses=total_losses,
        total_recovered=total_recovered,
        recovery_rate=_rate(total_recovered, total_losses),
        average_severity_score=_mean(severity_scores),
        high_severity_cases=sum(1 for s in severity_scores if s > HIGH_SEVERITY_THRESHOLD),
        cases_this_month=cases_this_month,
        cases_this_year=cases_this_year,
        cases_last_month=cases_last_month,
        recent_cases_growth=growth,
        top_corruption_type=_top_label(type_counts),
        top_sector=_top_label(sector_counts),
        top_region=_top_label(region_counts),
    )


# ============================================================
# Category rollups
# ============================================================

@dataclass
class _RollupAccumulator:
    case_count: int = 0
    total_losses: float = 0
    total_recovered: float = 0
    severity_scores: List[float] = field(default_factory=list)
    government_levels: List[str] = field(default_factory=list)
    corruption_types: List[str] = field(default_factory=list)
    cases_by_status: Dict[str, int] = field(default_factory=dict)
    cases_by_type: Dict[str, int] = field(default_factory=dict)

    def add(self, case: CaseRecord, losses: float, recovered: float) -> None:
        self.case_count += 1
        self.total_losses += losses
        self.total_recovered += recovered
        if case.severity_score is not None:
            self.severity_scores.append(case.severity_score)
        _add_unique(self.government_levels, case.government_level)
        for label in case.corruption_type:
            _add_unique(self.corruption_types, label)

        status = case.case_status or UNKNOWN_LABEL
        self.cases_by_status[status] = self.cases_by_status.get(status, 0) + 1
        for label in _unique(case.corruption_type) or [UNKNOWN_LABEL]:
            self.cases_by_type[label] = self.cases_by_type.get(label, 0) + 1


def build_regional_data(cases: Sequence[CaseRecord]) -> List[RegionalData]:
    """
    Roll cases up by region.

    A case touching N regions adds 1 to each region's case count and 1/N of
    its losses and recoveries to each, so regional amounts sum back to the
    case totals. Cases without regions land in the "Unknown" region.

    Returns:
        RegionalData rows sorted by case count, descending
    """
    regions: Dict[str, _RollupAccumulator] = {}

    for case in cases:
        labels = _unique(case.regions_affected) or [UNKNOWN_REGION]
        share = len(labels)
        losses = (case.estimated_losses or 0) / share
        recovered = (case.asset_recovery or 0) / share
        for region in labels:
            regions.setdefault(region, _RollupAccumulator()).add(case, losses, recovered)

    rows = [
        RegionalData(
            region=region,
            case_count=acc.case_count,
            total_losses=acc.total_losses,
            total_recovered=acc.total_recovered,
            average_severity_score=_mean(acc.severity_scores),
            recovery_rate=_rate(acc.total_recovered, acc.total_losses),
            government_levels=acc.government_levels,
            corruption_types=acc.corruption_types,
            cases_by_status=acc.cases_by_status,
            cases_by_type=acc.cases_by_type,
        )
        for region, acc in regions.items()
    ]
    return sorted(rows, key=lambda row: row.case_count, reverse=True)


def build_sector_data(cases: Sequence[CaseRecord]) -> List[SectorData]:
    """
    Roll cases up by sector. Cases without a sector are left out.

    Returns:
        SectorData rows sorted by total losses, descending
    """
    sectors: Dict[str, _RollupAccumulator] = {}

    for case in cases:
        if not case.sector:
            continue
        sectors.setdefault(case.sector, _RollupAccumulator()).add(
            case, case.estimated_losses or 0, case.asset_recovery or 0
        )

    rows = [
        SectorData(
            sector=sector,
            case_count=acc.case_count,
            total_losses=int(acc.total_losses),
            total_recovered=int(acc.total_recovered),
            average_severity_score=_mean(acc.severity_scores),
            recovery_rate=_rate(acc.total_recovered, acc.total_losses),
            government_levels=acc.government_levels,
            corruption_types=acc.corruption_types,
        )
        for sector, acc in sectors.items()
    ]
    return sorted(rows, key=lambda row: row.total_losses, reverse=True)


# ============================================================
# Time series
# ============================================================

def build_time_series(
    cases: Sequence[CaseRecord],
    time_field: TimeField = TimeField.PUBLISHED_DATE,
    interval: TimeInterval = TimeInterval.MONTH,
) -> List[TimeSeriesPoint]:
    """
    Bucket cases by ``time_field`` at ``interval`` granularity.

    Cases without a value in ``time_field`` are skipped.

    Returns:
        TimeSeriesPoints sorted ascending by bucket key
    """
    buckets: Dict[str, _RollupAccumulator] = {}

    for case in cases:
        timestamp = case.timestamp_for(time_field)
        if timestamp is None:
            continue
        key = bucket_key(timestamp, interval)
        buckets.setdefault(key, _RollupAccumulator()).add(
            case, case.estimated_losses or 0, case.asset_recovery or 0
        )

    return [
        TimeSeriesPoint(
            bucket=key,
            count=acc.case_count,
            total_losses=int(acc.total_losses),
            average_severity_score=_mean(acc.severity_scores),
        )
        for key, acc in sorted(buckets.items())
    ]


# ============================================================
# Full pass
# ============================================================

class Aggregator:
    """Runs every rollup over one case collection.

    Usage:
        aggregator = Aggregator()
        result = aggregator.aggregate(cases, now=datetime.now(timezone.utc))
        result.snapshot.total_cases
    """

    def __init__(
        self,
        derive_missing_severity: bool = False,
        scorer: Optional[SeverityScorer] = None,
    ):
        """Initialize aggregator.

        Args:
            derive_missing_severity: Score records that carry no severity_score
                before averaging (default: only present scores are used)
            scorer: SeverityScorer used when deriving (default weights if None)
        """
        self.derive_missing_severity = derive_missing_severity
        self.scorer = scorer or SeverityScorer()

    def prepare(self, cases: Iterable[CaseRecord]) -> List[CaseRecord]:
        """Identified records, with severity derived when configured"""
        prepared = identified_cases(cases)
        if self.derive_missing_severity:
            prepared = [self.scorer.with_severity(case) for case in prepared]
        return prepared

    def aggregate(
        self,
        cases: Iterable[CaseRecord],
        now: datetime,
        time_field: TimeField = TimeField.PUBLISHED_DATE,
        interval: TimeInterval = TimeInterval.MONTH,
    ) -> AggregationResult:
        """
        Compute snapshot, regional, sector and time-series outputs.

        Args:
            cases: Case records (records without an id are skipped)
            now: Reference instant, captured once for the whole pass
            time_field: Timestamp column driving the time series
            interval: Time-series bucket granularity

        Returns:
            AggregationResult
        """
        now = ensure_utc(now)
        time_field = TimeField(time_field)
        interval = TimeInterval(interval)
        prepared = self.prepare(cases)

        result = AggregationResult(
            snapshot=build_snapshot(prepared, now),
            regions=build_regional_data(prepared),
            sectors=build_sector_data(prepared),
            time_series=build_time_series(prepared, time_field, interval),
            now=now,
            time_field=time_field,
            interval=interval,
        )

        logger.debug(
            f"Aggregated {len(prepared)} case(s): {len(result.regions)} region(s), "
            f"{len(result.sectors)} sector(s), {len(result.time_series)} bucket(s)"
        )
        return result


def aggregate(
    cases: Iterable[CaseRecord],
    now: datetime,
    time_field: TimeField = TimeField.PUBLISHED_DATE,
    interval: TimeInterval = TimeInterval.MONTH,
) -> AggregationResult:
    """Aggregate ``cases`` with the default Aggregator"""
    return Aggregator().aggregate(cases, now, time_field=time_field, interval=interval)
