"""Metrics Reporting Module

Purpose: Turn an AggregationResult into compact human-readable text

Used for ticker tapes, notification bodies and plain-text exports where the
dashboard's charts are not available.

Key Functions:
- format_currency(): Indonesian Rupiah formatting (full or compact)
- summarize_result(): Sectioned text summary of one aggregation pass
"""

import logging
from typing import List

from cm_core_lib.models.metrics import AggregationResult

logger = logging.getLogger(__name__)

# Indonesian short scale: juta (10^6), miliar (10^9), triliun (10^12)
_COMPACT_UNITS = (
    (1_000_000_000_000, "T"),
    (1_000_000_000, "M"),
    (1_000_000, "jt"),
)


def _group_thousands(value: int) -> str:
    return f"{value:,}".replace(",", ".")


def format_currency(amount: float, compact: bool = False) -> str:
    """
    Format an IDR amount the way the id-ID locale does.

    Args:
        amount: Amount in IDR
        compact: Use short-scale notation for amounts of one million or more

    Returns:
        e.g. "Rp 1.500.000.000", or "Rp 1,5 M" when compact

    Example:
        >>> format_currency(2_300_000, compact=True)
        'Rp 2,3 jt'
    """
    sign = "-" if amount < 0 else ""
    amount = abs(amount)

    if compact and amount >= 1_000_000:
        for threshold, unit in _COMPACT_UNITS:
            if amount >= threshold:
                scaled = round(amount / threshold, 1)
                text = f"{scaled:.1f}".rstrip("0").rstrip(".").replace(".", ",")
                return f"{sign}Rp {text} {unit}"

    return f"{sign}Rp {_group_thousands(int(round(amount)))}"


def summarize_result(result: AggregationResult, max_rows: int = 5, max_chars: int = 6000) -> str:
    """
    Format an aggregation pass into a sectioned text summary.

    Args:
        result: Output of Aggregator.aggregate()
        max_rows: Rows shown per rollup section
        max_chars: Maximum characters in output

    Returns:
        Formatted summary string
    """
    snapshot = result.snapshot
    summary_parts: List[str] = []

    # Header
    summary_parts.append("=" * 80)
    summary_parts.append("CORRUPTION CASE MONITOR SUMMARY")
    summary_parts.append(f"As of {result.now.isoformat()}")
    summary_parts.append("=" * 80)
    summary_parts.append("")

    # 1. Case counts
    summary_parts.append("## CASES")
    summary_parts.append(f"Total cases: {snapshot.total_cases:,}")
    if snapshot.total_cases > 0:
        for label, count in (
            ("Pending", snapshot.pending_cases),
            ("Ongoing", snapshot.ongoing_cases),
            ("Closed", snapshot.closed_cases),
        ):
            percentage = count / snapshot.total_cases * 100
            summary_parts.append(f"  {label:8s}: {count:6,} ({percentage:5.1f}%)")
        summary_parts.append(
            f"This month: {snapshot.cases_this_month:,} "
            f"(last month: {snapshot.cases_last_month:,}, "
            f"growth: {snapshot.recent_cases_growth:+.1f}%)"
        )
        summary_parts.append(f"This year: {snapshot.cases_this_year:,}")
    summary_parts.append("")

    # 2. Money
    summary_parts.append("## LOSSES AND RECOVERY")
    summary_parts.append(f"Estimated losses: {format_currency(snapshot.total_losses, compact=True)}")
    summary_parts.append(f"Recovered assets: {format_currency(snapshot.total_recovered, compact=True)}")
    summary_parts.append(f"Recovery rate: {snapshot.recovery_rate:.2f}%")
    summary_parts.append("")

    # 3. Severity
    summary_parts.append("## SEVERITY")
    summary_parts.append(f"Average severity: {snapshot.average_severity_score:.2f} / 10")
    summary_parts.append(f"High-severity cases (> 7): {snapshot.high_severity_cases:,}")
    summary_parts.append("")

    # 4. Leaders
    leaders = (
        ("Top corruption type", snapshot.top_corruption_type),
        ("Top sector", snapshot.top_sector),
        ("Top region", snapshot.top_region),
    )
    if any(value for _, value in leaders):
        summary_parts.append("## LEADERS")
        for label, value in leaders:
            if value:
                summary_parts.append(f"{label}: {value}")
        summary_parts.append("")

    # 5. Regions
    if result.regions:
        summary_parts.append("## TOP REGIONS")
        summary_parts.append(f"(Showing {min(max_rows, len(result.regions))} of {len(result.regions)})")
        for i, region in enumerate(result.regions[:max_rows], 1):
            summary_parts.append(
                f"{i}. {_truncate(region.region, 40)}: {region.case_count:,} case(s), "
                f"{format_currency(region.total_losses, compact=True)}, "
                f"severity {region.average_severity_score:.1f}"
            )
        summary_parts.append("")

    # 6. Sectors
    if result.sectors:
        summary_parts.append("## TOP SECTORS BY LOSSES")
        for i, sector in enumerate(result.sectors[:max_rows], 1):
            summary_parts.append(
                f"{i}. {_truncate(sector.sector, 40)}: "
                f"{format_currency(sector.total_losses, compact=True)} "
                f"({sector.case_count:,} case(s), recovery {sector.recovery_rate:.1f}%)"
            )
        summary_parts.append("")

    # 7. Latest buckets of the trend
    if result.time_series:
        summary_parts.append(f"## TREND ({result.interval.value} by {result.time_field.value})")
        for point in result.time_series[-max_rows:]:
            summary_parts.append(f"  {point.bucket}: {point.count:,} case(s)")
        summary_parts.append("")

    # Footer
    summary_parts.append("=" * 80)

    full_summary = "\n".join(summary_parts)

    if len(full_summary) > max_chars:
        truncation_msg = f"\n\n[TRUNCATED: Summary exceeded {max_chars} characters.]"
        full_summary = full_summary[:max_chars - len(truncation_msg)] + truncation_msg

    logger.debug(f"Summarized {snapshot.total_cases} case(s) into {len(full_summary)} chars")

    return full_summary


def _truncate(text: str, max_length: int) -> str:
    """Truncate text to max_length with ellipsis"""
    if len(text) <= max_length:
        return text
    return text[:max_length - 3] + "..."
