import pytest

from cm_core_lib.core.scoring import SeverityScorer, calculate_severity_score
from cm_core_lib.models import CaseRecord


def test_weighted_score_for_national_convicted_case():
    case = CaseRecord(
        id="b",
        corruption_type=["bribery", "embezzlement"],
        government_level="national",
        case_status="convicted",
        estimated_losses=1_000_000_000,
    )

    # 9*0.2 + 10*0.3 + 10*0.1 + 6*0.4
    assert calculate_severity_score(case) == pytest.approx(8.2)


def test_breakdown_adds_up_to_score():
    case = CaseRecord(
        id="b",
        corruption_type=["fraud"],
        government_level="City",
        case_status="Trial",
        estimated_losses=10_000_000,
    )
    scorer = SeverityScorer()
    breakdown = scorer.breakdown(case)

    assert breakdown.losses == pytest.approx(2 * 0.4)
    assert breakdown.government_level == pytest.approx(6 * 0.3)
    assert breakdown.corruption_type == pytest.approx(7 * 0.2)
    assert breakdown.case_status == pytest.approx(8 * 0.1)
    assert scorer.score(case) == pytest.approx(breakdown.total)


def test_empty_case_scores_zero():
    assert calculate_severity_score(CaseRecord(id="x")) == 0.0


def test_score_is_clamped_to_ten():
    scorer = SeverityScorer(weights={"losses": 5.0, "government_level": 5.0})
    case = CaseRecord(
        id="big",
        estimated_losses=10**18,
        government_level="national",
        corruption_type=["embezzlement"],
        case_status="convicted",
    )

    assert scorer.score(case) == 10.0


def test_losses_below_baseline_score_zero():
    assert SeverityScorer.losses_subscore(500_000) == 0.0
    assert SeverityScorer.losses_subscore(0) == 0.0
    assert SeverityScorer.losses_subscore(None) == 0.0


def test_corruption_type_labels_are_normalized():
    assert SeverityScorer.corruption_type_subscore(["Abuse of Power"]) == 6
    assert SeverityScorer.corruption_type_subscore(["conflict-of-interest"]) == 4
    assert SeverityScorer.corruption_type_subscore(["money laundering"]) == 5
    assert SeverityScorer.corruption_type_subscore([]) == 0


def test_unknown_level_and_status_contribute_nothing():
    assert SeverityScorer.government_level_subscore("galactic") == 0
    assert SeverityScorer.case_status_subscore("appeal") == 0


def test_unknown_weight_rejected():
    with pytest.raises(ValueError):
        SeverityScorer(weights={"popularity": 1.0})


def test_with_severity_fills_only_missing_scores():
    scorer = SeverityScorer()
    scored = CaseRecord(id="1", severity_score=3.0, government_level="national")
    unscored = CaseRecord(id="2", government_level="national")

    assert scorer.with_severity(scored) is scored
    assert scorer.with_severity(unscored).severity_score == pytest.approx(3.0)
    assert unscored.severity_score is None
