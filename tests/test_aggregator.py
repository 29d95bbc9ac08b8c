from datetime import datetime, timezone

import pytest

from cm_core_lib.core.aggregation import (
    UNKNOWN_REGION,
    Aggregator,
    aggregate,
    build_regional_data,
    build_sector_data,
    build_snapshot,
    build_time_series,
    bucket_key,
)
from cm_core_lib.models import CaseRecord, MetricsSnapshot, TimeField, TimeInterval


def test_empty_input_yields_zero_snapshot(now):
    result = aggregate([], now)

    assert result.snapshot == MetricsSnapshot.empty()
    assert result.snapshot.recovery_rate == 0
    assert result.snapshot.top_region is None
    assert result.regions == []
    assert result.sectors == []
    assert result.time_series == []


def test_status_counts_scenario(now):
    cases = [
        CaseRecord(id="1", estimated_losses=1_000_000_000, case_status="closed"),
        CaseRecord(id="2", estimated_losses=500_000_000, case_status="investigation"),
    ]

    snapshot = aggregate(cases, now).snapshot

    assert snapshot.total_cases == 2
    assert snapshot.closed_cases == 1
    assert snapshot.pending_cases == 1
    assert snapshot.ongoing_cases == 0
    assert snapshot.total_losses == 1_500_000_000


def test_status_buckets_decompose_total(sample_cases, now):
    extra = [
        CaseRecord(id="4", case_status="Pending review"),
        CaseRecord(id="5", case_status="Completed"),
        CaseRecord(id="6"),
    ]

    snapshot = build_snapshot(sample_cases + extra, now)

    assert snapshot.total_cases == 6
    assert snapshot.pending_cases == 2
    assert snapshot.closed_cases == 2
    assert snapshot.ongoing_cases == 2
    assert (
        snapshot.pending_cases + snapshot.closed_cases + snapshot.ongoing_cases
        == snapshot.total_cases
    )


def test_recovery_rate_is_zero_without_losses(now):
    cases = [CaseRecord(id="1", asset_recovery=1_000_000)]

    snapshot = build_snapshot(cases, now)

    assert snapshot.total_losses == 0
    assert snapshot.recovery_rate == 0


def test_snapshot_of_sample_cases(sample_cases, now):
    snapshot = build_snapshot(sample_cases, now)

    assert snapshot.total_losses == 3_500_000_000
    assert snapshot.total_recovered == 350_000_000
    assert snapshot.recovery_rate == pytest.approx(10.0)
    # Case 3 has no severity score and is left out of the mean
    assert snapshot.average_severity_score == pytest.approx(6.25)
    assert snapshot.high_severity_cases == 1
    assert snapshot.cases_this_year == 3
    # Embezzlement and bribery tie at 2; the first one seen wins
    assert snapshot.top_corruption_type == "embezzlement"
    assert snapshot.top_sector == "Health"
    assert snapshot.top_region == "Jawa Barat"


def test_month_over_month_growth(now):
    cases = [
        CaseRecord(id="1", created_at=datetime(2024, 3, 1, tzinfo=timezone.utc)),
        CaseRecord(id="2", created_at=datetime(2024, 3, 14, tzinfo=timezone.utc)),
        CaseRecord(id="3", created_at=datetime(2024, 2, 28, tzinfo=timezone.utc)),
    ]

    snapshot = build_snapshot(cases, now)

    assert snapshot.cases_this_month == 2
    assert snapshot.cases_last_month == 1
    assert snapshot.recent_cases_growth == pytest.approx(100.0)


def test_growth_without_last_month_cases(now):
    this_month = [CaseRecord(id="1", created_at=datetime(2024, 3, 1, tzinfo=timezone.utc))]
    older = [CaseRecord(id="2", created_at=datetime(2023, 6, 1, tzinfo=timezone.utc))]

    assert build_snapshot(this_month, now).recent_cases_growth == 100.0
    assert build_snapshot(older, now).recent_cases_growth == 0.0


def test_january_compares_against_previous_december():
    now = datetime(2024, 1, 10, tzinfo=timezone.utc)
    cases = [
        CaseRecord(id="1", created_at=datetime(2023, 12, 5, tzinfo=timezone.utc)),
        CaseRecord(id="2", created_at=datetime(2023, 12, 20, tzinfo=timezone.utc)),
        CaseRecord(id="3", created_at=datetime(2024, 1, 2, tzinfo=timezone.utc)),
    ]

    snapshot = build_snapshot(cases, now)

    assert snapshot.cases_last_month == 2
    assert snapshot.cases_this_year == 1
    assert snapshot.recent_cases_growth == pytest.approx(-50.0)


def test_records_without_id_are_skipped(now, caplog):
    cases = [CaseRecord(id="1", estimated_losses=10), CaseRecord(estimated_losses=99)]

    with caplog.at_level("WARNING"):
        snapshot = aggregate(cases, now).snapshot

    assert snapshot.total_cases == 1
    assert snapshot.total_losses == 10
    assert "without an id" in caplog.text


def test_multi_region_losses_are_split_equally():
    case = CaseRecord(
        id="1",
        estimated_losses=1_000_000_000,
        asset_recovery=300_000_000,
        regions_affected=["Aceh", "Riau", "Jambi"],
    )

    regions = build_regional_data([case])

    assert [r.region for r in regions] == ["Aceh", "Riau", "Jambi"]
    assert all(r.case_count == 1 for r in regions)
    assert sum(r.total_losses for r in regions) == pytest.approx(1_000_000_000)
    assert sum(r.total_recovered for r in regions) == pytest.approx(300_000_000)
    assert regions[0].recovery_rate == pytest.approx(30.0)


def test_regional_rollup_of_sample_cases(sample_cases):
    regions = build_regional_data(sample_cases)

    assert [r.region for r in regions] == ["Jawa Barat", "Banten", UNKNOWN_REGION]

    jawa_barat = regions[0]
    assert jawa_barat.case_count == 2
    assert jawa_barat.total_losses == pytest.approx(1_000_000_000)
    assert jawa_barat.total_recovered == pytest.approx(125_000_000)
    assert jawa_barat.average_severity_score == pytest.approx(6.25)
    assert jawa_barat.government_levels == ["provincial", "village"]
    assert jawa_barat.corruption_types == ["embezzlement", "bribery"]
    assert jawa_barat.cases_by_status == {"closed": 1, "investigation": 1}
    assert jawa_barat.cases_by_type == {"embezzlement": 2, "bribery": 1}

    assert sum(r.total_losses for r in regions) == pytest.approx(3_500_000_000)


def test_duplicate_region_labels_count_once():
    case = CaseRecord(id="1", estimated_losses=100, regions_affected=["Bali", "Bali"])

    regions = build_regional_data([case])

    assert len(regions) == 1
    assert regions[0].case_count == 1
    assert regions[0].total_losses == pytest.approx(100)


def test_unknown_region_does_not_become_top_region(now):
    cases = [
        CaseRecord(id="1"),
        CaseRecord(id="2"),
        CaseRecord(id="3", regions_affected=["Papua"]),
    ]

    assert build_snapshot(cases, now).top_region == "Papua"
    assert build_regional_data(cases)[0].region == UNKNOWN_REGION


def test_sector_rollup_sorted_by_losses(sample_cases):
    sectors = build_sector_data(sample_cases)

    assert [s.sector for s in sectors] == ["Health", "Rural Development"]
    assert sectors[0].case_count == 2
    assert sectors[0].total_losses == 3_000_000_000
    assert sectors[0].total_recovered == 350_000_000
    assert sectors[1].recovery_rate == 0


def test_cases_without_sector_are_left_out_of_sectors():
    sectors = build_sector_data([CaseRecord(id="1", estimated_losses=5)])

    assert sectors == []


def test_top_sector_by_cases_and_losses(now):
    cases = [
        CaseRecord(id="1", sector="Mining", estimated_losses=9_000),
        CaseRecord(id="2", sector="Education", estimated_losses=100),
        CaseRecord(id="3", sector="Education", estimated_losses=100),
    ]

    result = aggregate(cases, now)

    assert result.top_sector_by_losses.sector == "Mining"
    assert result.top_sector_by_cases.sector == "Education"


def test_monthly_time_series(sample_cases):
    series = build_time_series(sample_cases)

    assert [(p.bucket, p.count) for p in series] == [("2024-02", 1), ("2024-03", 2)]
    assert series[1].total_losses == 1_500_000_000
    assert series[1].average_severity_score == pytest.approx(6.25)


def test_time_series_on_other_fields(sample_cases):
    weekly = build_time_series(sample_cases, TimeField.PUBLISHED_DATE, TimeInterval.WEEK)
    yearly = build_time_series(sample_cases, TimeField.CREATED_AT, TimeInterval.YEAR)
    by_verdict = build_time_series(sample_cases, TimeField.VERDICT_DATE, TimeInterval.DAY)

    assert [p.bucket for p in weekly] == ["2024-02-18", "2024-03-03", "2024-03-10"]
    assert [(p.bucket, p.count) for p in yearly] == [("2024", 3)]
    assert by_verdict == []


def test_bucket_keys():
    sunday = datetime(2024, 3, 3, 23, 0, tzinfo=timezone.utc)
    saturday = datetime(2024, 3, 9, 8, 0, tzinfo=timezone.utc)

    assert bucket_key(sunday, TimeInterval.WEEK) == "2024-03-03"
    assert bucket_key(saturday, TimeInterval.WEEK) == "2024-03-03"
    assert bucket_key(saturday, TimeInterval.DAY) == "2024-03-09"
    assert bucket_key(saturday, TimeInterval.MONTH) == "2024-03"
    assert bucket_key(saturday, "year") == "2024"


def test_derive_missing_severity(sample_cases, now):
    plain = Aggregator().aggregate(sample_cases, now).snapshot
    derived = Aggregator(derive_missing_severity=True).aggregate(sample_cases, now).snapshot

    assert plain.average_severity_score == pytest.approx(6.25)
    assert derived.average_severity_score != plain.average_severity_score


def test_aggregate_is_deterministic(sample_cases, now):
    assert aggregate(sample_cases, now) == aggregate(list(sample_cases), now)


def test_result_records_parameters(sample_cases, now):
    result = aggregate(sample_cases, now, time_field="created_at", interval="year")

    assert result.now == now
    assert result.time_field is TimeField.CREATED_AT
    assert result.interval is TimeInterval.YEAR
